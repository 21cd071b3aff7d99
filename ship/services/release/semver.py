from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from functools import total_ordering

from ship.services.release.model import ReleaseIncrement


_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

PreId = int | str


def _parse_pre(raw: str | None) -> tuple[PreId, ...]:
    if not raw:
        return ()
    return tuple(int(p) if p.isdigit() else p for p in raw.split("."))


def _compare_ids(a: PreId, b: PreId) -> int:
    # Numeric identifiers always have lower precedence than alphanumeric ones.
    if isinstance(a, int) and isinstance(b, int):
        return (a > b) - (a < b)
    if isinstance(a, int):
        return -1
    if isinstance(b, int):
        return 1
    return (a > b) - (a < b)


@total_ordering
@dataclass(frozen=True, slots=True, eq=False)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: tuple[PreId, ...] = ()
    build: tuple[str, ...] = field(default=(), compare=False)

    def __str__(self) -> str:
        out = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            out += "-" + ".".join(str(p) for p in self.prerelease)
        return out

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def release(self) -> SemVer:
        """The version without pre-release and build metadata."""
        return SemVer(self.major, self.minor, self.patch)

    def compare(self, other: SemVer) -> int:
        main_a = (self.major, self.minor, self.patch)
        main_b = (other.major, other.minor, other.patch)
        if main_a != main_b:
            return -1 if main_a < main_b else 1

        # A pre-release has lower precedence than the associated release.
        if not self.prerelease and not other.prerelease:
            return 0
        if not self.prerelease:
            return 1
        if not other.prerelease:
            return -1

        for a, b in zip(self.prerelease, other.prerelease):
            c = _compare_ids(a, b)
            if c:
                return c
        la, lb = len(self.prerelease), len(other.prerelease)
        return (la > lb) - (la < lb)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: SemVer) -> bool:
        return self.compare(other) < 0

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch, self.prerelease))

    def _bump_pre(self, identifier: str | None) -> SemVer:
        pre = list(self.prerelease)
        if not pre:
            pre = [0]
        else:
            for i in range(len(pre) - 1, -1, -1):
                value = pre[i]
                if isinstance(value, int):
                    pre[i] = value + 1
                    break
            else:
                pre.append(0)

        if identifier:
            if pre[0] != identifier or len(pre) < 2 or not isinstance(pre[1], int):
                pre = [identifier, 0]
        return replace(self, prerelease=tuple(pre), build=())

    def bump(self, kind: ReleaseIncrement, identifier: str | None = None) -> SemVer:
        """Increment following semver rules.

        A release increment applied to a pre-release of that same release
        yields the release itself (`1.1.0-alpha.2` + minor -> `1.1.0`).
        """
        match kind:
            case "major":
                if self.minor or self.patch or not self.prerelease:
                    return SemVer(self.major + 1, 0, 0)
                return SemVer(self.major, 0, 0)
            case "minor":
                if self.patch or not self.prerelease:
                    return SemVer(self.major, self.minor + 1, 0)
                return SemVer(self.major, self.minor, 0)
            case "patch":
                if not self.prerelease:
                    return SemVer(self.major, self.minor, self.patch + 1)
                return self.release
            case "premajor":
                return SemVer(self.major + 1, 0, 0)._bump_pre(identifier)
            case "preminor":
                return SemVer(self.major, self.minor + 1, 0)._bump_pre(identifier)
            case "prepatch":
                return SemVer(self.major, self.minor, self.patch + 1)._bump_pre(identifier)
            case "prerelease":
                if not self.prerelease:
                    return SemVer(self.major, self.minor, self.patch + 1)._bump_pre(identifier)
                return self._bump_pre(identifier)
            case _:
                raise AssertionError(f"unexpected increment: {kind}")


def parse_version(text: str) -> SemVer | None:
    """Parse a strict semantic version (no `v` prefix)."""
    m = _SEMVER_RE.match(text.strip())
    if m is None:
        return None
    build = tuple(m.group(5).split(".")) if m.group(5) else ()
    return SemVer(
        int(m.group(1)),
        int(m.group(2)),
        int(m.group(3)),
        _parse_pre(m.group(4)),
        build,
    )


def clean_version(text: str | None) -> SemVer | None:
    """Parse a version as found in tags or manifests (`v1.2.3`, `=1.2.3`)."""
    if not text:
        return None
    s = text.strip().lstrip("=")
    if s[:1] in ("v", "V"):
        s = s[1:]
    return parse_version(s)
