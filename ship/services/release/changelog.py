"""Changelog generation and commit-based increment recommendation."""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path

from ship.core.result import Err, Ok, Result
from ship.platform.shell import Shell
from ship.services.release.errors import ReleaseError, external_error
from ship.services.release.model import ReleaseIncrement

__all__ = ["Changelog", "recommend_increment", "rev_range"]

REV_RANGE_PLACEHOLDER = "[REV_RANGE]"

_COMMIT_SEPARATOR = "\x1e"
_HEADER_RE = re.compile(r"^(?P<type>\w+)(?:\([^)]*\))?(?P<breaking>!)?:")


def rev_range(latest_tag: str | None) -> str:
    return f"{latest_tag}...HEAD" if latest_tag else "HEAD"


def recommend_increment(messages: Iterable[str]) -> ReleaseIncrement:
    """Conventional-commits recommendation.

    A breaking change gives "major", any feature "minor", anything else
    "patch".
    """
    level: ReleaseIncrement = "patch"
    for message in messages:
        text = message.strip()
        if not text:
            continue
        m = _HEADER_RE.match(text)
        if "BREAKING CHANGE" in text or (m is not None and m.group("breaking")):
            return "major"
        if m is not None and m.group("type") == "feat":
            level = "minor"
    return level


class Changelog:
    def __init__(self, shell: Shell, cwd: Path) -> None:
        self.shell = shell
        self.cwd = cwd

    def create(self, script: str | None, latest_tag: str | None) -> Result[str | None, ReleaseError]:
        """Run the changelog command for commits since `latest_tag`."""
        if not script:
            return Ok(None)
        command = script.replace(REV_RANGE_PLACEHOLDER, rev_range(latest_tag))
        match self.shell.run(command, writes=False, cwd=self.cwd):
            case Ok(out):
                return Ok(out or None)
            case Err(e):
                return Err(external_error("Could not create changelog.", e.detail))

    def messages(self, latest_tag: str | None) -> list[str]:
        """Full commit messages since `latest_tag` (newest first)."""
        result = self.shell.run(
            ["git", "log", f"--format=%B{_COMMIT_SEPARATOR}", rev_range(latest_tag)],
            writes=False,
            cwd=self.cwd,
        )
        match result:
            case Ok(out):
                return [m.strip() for m in out.split(_COMMIT_SEPARATOR) if m.strip()]
            case Err(_):
                return []

    def recommend(self, latest_tag: str | None) -> ReleaseIncrement:
        return recommend_increment(self.messages(latest_tag))
