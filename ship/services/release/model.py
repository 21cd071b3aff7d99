from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal


ReleaseIncrement = Literal[
    "major",
    "minor",
    "patch",
    "premajor",
    "preminor",
    "prepatch",
    "prerelease",
]

INCREMENTS: tuple[ReleaseIncrement, ...] = (
    "major",
    "minor",
    "patch",
    "premajor",
    "preminor",
    "prepatch",
    "prerelease",
)

# Recommendation increments look like "conventional:angular".
RECOMMENDATION_PREFIX = "conventional"


class ChangelogTiming(Enum):
    """When the changelog is generated relative to the version bump."""

    BEFORE_BUMP = "before_bump"
    AFTER_BUMP = "after_bump"


@dataclass(frozen=True, slots=True)
class VersionState:
    """Resolved version facts, frozen once validated."""

    latest_version: str
    version: str | None
    increment: str | None
    pre_release_id: str | None
    is_pre_release: bool

    def as_dict(self) -> dict[str, object]:
        return {
            "latest_version": self.latest_version,
            "version": self.version,
            "increment": self.increment,
            "pre_release_id": self.pre_release_id,
            "is_pre_release": self.is_pre_release,
        }


@dataclass(frozen=True, slots=True)
class ReleaseResult:
    """Outcome returned to the caller of a successful release."""

    name: str
    changelog: str | None
    latest_version: str
    version: str
