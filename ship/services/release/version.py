"""Version resolution.

`VersionResolver` computes the version to release from the latest released
version, an increment request and the pre-release intent. It is a small
state machine: `set_latest_version` -> `bump` (possibly several times while
the user picks an increment interactively) -> `validate`, after which the
resolved `VersionState` is frozen.
"""

from __future__ import annotations

from collections.abc import Callable

from ship.core.result import Err, Ok, Result
from ship.output.console import ConsoleProtocol
from ship.services.release.config import DEFAULT_VERSION
from ship.services.release.errors import ReleaseError, invalid_version_error
from ship.services.release.model import (
    INCREMENTS,
    RECOMMENDATION_PREFIX,
    ChangelogTiming,
    ReleaseIncrement,
    VersionState,
)
from ship.services.release.semver import SemVer, clean_version, parse_version

__all__ = [
    "Recommender",
    "VersionResolver",
    "changelog_timing",
    "is_recommendation",
    "is_valid_increment",
    "next_version",
]

# Resolves a recommendation preset ("angular") to an increment keyword.
Recommender = Callable[[str], ReleaseIncrement | None]

_PRE_KEYWORDS: dict[str, ReleaseIncrement] = {
    "major": "premajor",
    "minor": "preminor",
    "patch": "prepatch",
}


def is_recommendation(increment: str | None) -> bool:
    if not increment:
        return False
    return increment == RECOMMENDATION_PREFIX or increment.startswith(f"{RECOMMENDATION_PREFIX}:")


def is_valid_increment(increment: str | None) -> bool:
    """True for an empty request, a keyword, a recommendation or a version."""
    if not increment:
        return True
    return (
        increment in INCREMENTS
        or is_recommendation(increment)
        or clean_version(increment) is not None
    )


def changelog_timing(increment: str | None) -> ChangelogTiming:
    """Recommendations read the commit log first, so the changelog waits for the bump."""
    if is_recommendation(increment):
        return ChangelogTiming.AFTER_BUMP
    return ChangelogTiming.BEFORE_BUMP


def next_version(
    latest: SemVer,
    keyword: ReleaseIncrement,
    *,
    pre_release: bool = False,
    pre_release_id: str | None = None,
) -> SemVer:
    """The version an increment keyword produces from `latest`.

    With pre-release intent, `major`/`minor`/`patch` become their `pre*`
    counterpart, or bump the counter when `latest` is already a
    pre-release of that target.
    """
    pre_keyword = _PRE_KEYWORDS.get(keyword)
    if pre_release and pre_keyword is not None:
        if latest.is_prerelease and latest.bump(keyword) == latest.release:
            return latest.bump("prerelease", pre_release_id)
        return latest.bump(pre_keyword, pre_release_id)
    return latest.bump(keyword, pre_release_id)


def _as_keyword(increment: str) -> ReleaseIncrement | None:
    for keyword in INCREMENTS:
        if keyword == increment:
            return keyword
    return None


class VersionResolver:
    def __init__(
        self,
        *,
        pre_release_id: str | None = None,
        recommender: Recommender | None = None,
        console: ConsoleProtocol | None = None,
    ) -> None:
        self.pre_release_id = pre_release_id
        self.recommender = recommender
        self.console = console
        self.latest_version = DEFAULT_VERSION
        self.version: str | None = None
        self.increment: str | None = None
        self._validated: VersionState | None = None

    def set_latest_version(
        self,
        *,
        use: str,
        git_tag: str | None,
        manifest_version: str | None,
        is_root_dir: bool,
    ) -> str:
        """Pick the reference version.

        Precedence: the manifest version when `use` is "pkg.version"; else
        the latest git tag when running from the repository root; else the
        manifest version; else 0.0.0.
        """
        manifest = clean_version(manifest_version)
        tag = clean_version(git_tag)

        chosen: SemVer | None
        if use == "pkg.version" and manifest is not None:
            chosen = manifest
        elif is_root_dir and tag is not None:
            chosen = tag
        else:
            chosen = manifest

        if chosen is None and git_tag and self.console is not None:
            self.console.warning(f'Latest git tag ("{git_tag}") is not a valid version.')

        self.latest_version = str(chosen) if chosen is not None else DEFAULT_VERSION
        return self.latest_version

    def _resolve_keyword(self, increment: str | None, pre_release: bool) -> ReleaseIncrement | None:
        latest = parse_version(self.latest_version)
        if not increment:
            if not pre_release:
                return None
            return "prerelease" if latest is not None and latest.is_prerelease else "prepatch"
        if is_recommendation(increment):
            if self.recommender is None:
                return None
            _, _, preset = increment.partition(":")
            return self.recommender(preset or "angular")
        return _as_keyword(increment)

    def bump(self, increment: str | None, *, pre_release: bool = False) -> str | None:
        """Compute `version` from the latest version.

        `increment` is a keyword, a recommendation (`conventional:<preset>`)
        or an explicit version. Anything else leaves `version` unset so a
        later `validate()` fails.
        """
        if self._validated is not None:
            raise RuntimeError("version is frozen after validation")

        explicit = clean_version(increment) if increment else None
        if explicit is not None:
            self.increment = None
            self.version = str(explicit)
            return self.version

        keyword = self._resolve_keyword(increment, pre_release)
        latest = parse_version(self.latest_version)
        if keyword is None or latest is None:
            self.increment = increment
            self.version = None
            return None

        self.increment = keyword
        self.version = str(
            next_version(
                latest, keyword, pre_release=pre_release, pre_release_id=self.pre_release_id
            )
        )
        return self.version

    def set_version(self, version: str) -> None:
        """Assign an explicit version (interactive "Other" choice)."""
        if self._validated is not None:
            raise RuntimeError("version is frozen after validation")
        parsed = clean_version(version)
        self.increment = None
        self.version = str(parsed) if parsed is not None else version

    def check(self) -> Result[None, ReleaseError]:
        """Validate without freezing (used by the interactive selection loop)."""
        if not self.version:
            return Err(invalid_version_error("No version could be resolved."))
        parsed = parse_version(self.version)
        if parsed is None:
            return Err(invalid_version_error(f'"{self.version}" is not a valid semantic version.'))
        latest = parse_version(self.latest_version)
        if latest is not None and not parsed > latest:
            return Err(
                invalid_version_error(
                    f"{self.version} must be greater than the latest version {self.latest_version}."
                )
            )
        return Ok(None)

    def validate(self) -> Result[VersionState, ReleaseError]:
        """Freeze the resolved version; idempotent once successful."""
        if self._validated is not None:
            return Ok(self._validated)
        match self.check():
            case Err() as err:
                return err
            case Ok(_):
                self._validated = self.details
                return Ok(self._validated)

    @property
    def details(self) -> VersionState:
        parsed = parse_version(self.version) if self.version else None
        return VersionState(
            latest_version=self.latest_version,
            version=self.version,
            increment=self.increment,
            pre_release_id=self.pre_release_id,
            is_pre_release=parsed is not None and parsed.is_prerelease,
        )

    @property
    def is_validated(self) -> bool:
        return self._validated is not None
