from __future__ import annotations

from pathlib import Path

from ship.core.config import DistOptions
from ship.core.result import Err, Ok, Result
from ship.git.repository import parse_clone_url
from ship.platform.shell import is_sub_dir
from ship.services.release.errors import ReleaseError, dist_stage_dir_error


def resolve_stage_dir(cwd: Path, dist: DistOptions) -> Result[Path, ReleaseError]:
    """The staging clone must live strictly inside the working tree."""
    target = cwd / dist.stage_dir
    if not is_sub_dir(cwd, target):
        return Err(dist_stage_dir_error(dist.stage_dir, cwd))
    return Ok(target)


def dist_remote_url(dist: DistOptions, cloned_remote: str | None) -> str | None:
    if cloned_remote:
        return cloned_remote
    if dist.repo is None:
        return None
    url, _ = parse_clone_url(dist.repo)
    return url


def same_remote(a: str | None, b: str | None) -> bool:
    def norm(url: str) -> str:
        text = url.strip().rstrip("/")
        return text[: -len(".git")] if text.endswith(".git") else text

    return a is not None and b is not None and norm(a) == norm(b)


def tag_conflicts(
    *,
    source_remote: str | None,
    dist_remote: str | None,
    source_tag: str,
    dist_tag: str,
) -> bool:
    """True when the distribution tag would collide with the source tag.

    This happens when both repositories are the same remote and the tag
    names format identically.
    """
    return same_remote(source_remote, dist_remote) and source_tag == dist_tag
