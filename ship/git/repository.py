"""Git repository abstraction for releases.

`Repository` wraps the git commands a release needs: inspecting the
repository (root dir, remote, latest tag), validating its state, and the
stage/commit/tag/push operations. Commands go through `Shell`, so dry-run
and verbose modes are honored uniformly: read-only commands always run,
writing commands are echoed and skipped in dry-run.

Usage:
    repo = Repository(Path("."), options.git, shell)
    match repo.init():
        case Ok(_):
            print(repo.latest_tag, repo.remote_url)
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from ship.core.config import GitOptions
from ship.core.result import Err, Ok, Result
from ship.platform.process import ProcessError
from ship.platform.shell import Shell

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

_NOTHING_TO_COMMIT_RE = re.compile(r"nothing (added )?to commit")

__all__ = [
    "GitError",
    "GitErrorKind",
    "Repository",
    "parse_clone_url",
]

GitErrorKind = Literal["repo", "remote_url", "clean_working_dir", "upstream", "command"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        kind: What went wrong ("command" for a plain failed git command)
        command: The git command that failed
        message: Error message
    """

    kind: GitErrorKind
    command: str
    message: str


def _command_error(command: str, e: ProcessError) -> GitError:
    return GitError(kind="command", command=command, message=e.detail)


def parse_clone_url(repo: str) -> tuple[str, str | None]:
    """Split `url#branch` into its url and optional branch."""
    url, sep, branch = repo.partition("#")
    return url, (branch or None) if sep else None


class Repository:
    """Git repository used by one release sequence.

    Attributes:
        path: Working directory of the release
        options: Effective git options
        remote_url: Push remote URL, set by init()
        latest_tag: Most recent reachable tag, set by init()
        is_root_dir: True when `path` is the repository top level, set by init()
    """

    def __init__(self, path: Path, options: GitOptions, shell: Shell) -> None:
        self.path = path
        self.options = options
        self.shell = shell
        self.remote_url: str | None = None
        self.latest_tag: str | None = None
        self.is_root_dir = False

    def _read(self, args: list[str]) -> Result[str, ProcessError]:
        return self.shell.run(
            ["git", *args], writes=False, cwd=self.path, timeout=_GIT_TIMEOUT_SECONDS
        )

    def _write(self, args: list[str], *, network: bool = False) -> Result[str, ProcessError]:
        timeout = _GIT_NETWORK_TIMEOUT_SECONDS if network else _GIT_TIMEOUT_SECONDS
        return self.shell.run(["git", *args], writes=True, cwd=self.path, timeout=timeout)

    def init(self) -> Result[None, GitError]:
        """Inspect the repository: remote URL, root-dir flag and latest tag."""
        if isinstance(self._read(["rev-parse", "--git-dir"]), Err):
            return Err(
                GitError(
                    kind="repo",
                    command="rev-parse --git-dir",
                    message=f"Not a git repository ({self.path})",
                )
            )

        self.remote_url = self._get_remote_url()

        match self._read(["rev-parse", "--show-toplevel"]):
            case Ok(top):
                self.is_root_dir = Path(top).resolve() == self.path.resolve()
            case Err(_):
                self.is_root_dir = False

        match self._read(["describe", "--tags", "--abbrev=0"]):
            case Ok(tag):
                self.latest_tag = tag or None
            case Err(_):
                self.latest_tag = None

        return Ok(None)

    def _get_remote_url(self) -> str | None:
        remote = self.options.push_repo
        # `push_repo` may itself be a URL rather than a remote name.
        if "://" in remote or remote.startswith("git@"):
            return remote
        match self._read(["remote", "get-url", remote]):
            case Ok(url) if url:
                return url
            case _:
                pass
        match self._read(["config", "--get", "remote.origin.url"]):
            case Ok(url) if url:
                return url
            case _:
                return None

    def has_upstream(self) -> bool:
        """Check if current branch has an upstream configured."""
        result = self._read(["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"])
        return isinstance(result, Ok)

    def current_branch(self) -> str | None:
        """Get current branch name.

        Returns None if detached HEAD or error.
        """
        match self._read(["rev-parse", "--abbrev-ref", "HEAD"]):
            case Ok(branch):
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def is_clean(self) -> bool:
        """True when tracked files have no uncommitted changes."""
        return isinstance(self._read(["diff-index", "--quiet", "HEAD", "--"]), Ok)

    def validate(self) -> Result[None, GitError]:
        """Check the working tree and upstream requirements."""
        if self.options.require_clean_working_dir and not self.is_clean():
            return Err(
                GitError(
                    kind="clean_working_dir",
                    command="diff-index",
                    message="Working dir must be clean.",
                )
            )
        if self.options.require_upstream and not self.has_upstream():
            return Err(
                GitError(
                    kind="upstream",
                    command="rev-parse @{u}",
                    message="No upstream configured for current branch.",
                )
            )
        return Ok(None)

    def stage(self, files: tuple[str, ...] | list[str]) -> None:
        """Stage files one by one; a failure only warns."""
        for name in files:
            if isinstance(self._write(["add", name]), Err):
                self.shell.console.warning(f"Could not stage {name}")

    def stage_dir(self, base_dir: str = ".") -> Result[None, GitError]:
        """Stage changes in a directory (new files too with add_untracked_files)."""
        flag = "--all" if self.options.add_untracked_files else "--update"
        match self._write(["add", base_dir, flag]):
            case Err(e):
                return Err(_command_error("add", e))
            case Ok(_):
                return Ok(None)

    def status(self) -> str:
        """Short status of tracked changes (the release changeset)."""
        match self._read(["status", "--short", "--untracked-files=no"]):
            case Ok(out):
                return out
            case Err(_):
                return ""

    def commit(self, message: str) -> Result[None, GitError]:
        args = ["commit", f"--message={message}", *shlex.split(self.options.commit_args)]
        match self._write(args):
            case Err(e):
                if _NOTHING_TO_COMMIT_RE.search(f"{e.stdout}\n{e.stderr}"):
                    self.shell.console.warning(
                        "No changes to commit. The latest commit will be tagged."
                    )
                    return Ok(None)
                return Err(_command_error("commit", e))
            case Ok(_):
                return Ok(None)

    def tag(self, name: str, annotation: str) -> Result[None, GitError]:
        args = [
            "tag",
            "--annotate",
            f"--message={annotation}",
            *shlex.split(self.options.tag_args),
            name,
        ]
        match self._write(args):
            case Err(e):
                return Err(_command_error("tag", e))
            case Ok(_):
                return Ok(None)

    def push(self) -> Result[None, GitError]:
        """Push to `push_repo`, setting the upstream when there is none."""
        args = ["push", *shlex.split(self.options.push_args), self.options.push_repo]
        if not self.has_upstream():
            branch = self.current_branch()
            if branch is not None:
                args = [*args[:-1], "--set-upstream", self.options.push_repo, branch]
        match self._write(args, network=True):
            case Err(e):
                return Err(_command_error("push", e))
            case Ok(_):
                return Ok(None)

    def reset(self, files: tuple[str, ...] | list[str]) -> Result[None, GitError]:
        """Restore files to their committed state."""
        if not files:
            return Ok(None)
        match self._write(["checkout", "HEAD", "--", *files]):
            case Err(e):
                return Err(_command_error("checkout", e))
            case Ok(_):
                return Ok(None)

    def clone(self, repo: str, target: Path) -> Result[None, GitError]:
        """Shallow-clone `url[#branch]` into target."""
        url, branch = parse_clone_url(repo)
        args = ["clone", url, "--depth", "1"]
        if branch:
            args += ["--single-branch", "--branch", branch]
        args.append(str(target))
        match self._write(args, network=True):
            case Err(e):
                return Err(_command_error("clone", e))
            case Ok(_):
                return Ok(None)
