from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from ship.core.config import ConfigError
from ship.git.repository import GitError


ReleaseErrorKind = Literal[
    "git_repo",
    "git_remote_url",
    "git_clean_working_dir",
    "git_upstream",
    "token_missing",
    "invalid_version",
    "dist_stage_dir",
    "config_not_found",
    "invalid_config",
    "external_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    `kind` is stable and drives the CLI exit code; `message` is the single
    line shown to the user, `hint` an optional follow-up.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


def git_remote_url_error() -> ReleaseError:
    return ReleaseError(
        kind="git_remote_url",
        message="Could not get remote Git url.",
        hint="Please add a remote repository.",
    )


def git_clean_working_dir_error() -> ReleaseError:
    return ReleaseError(
        kind="git_clean_working_dir",
        message="Working dir must be clean.",
        hint="Please stage and commit your changes.",
    )


def git_upstream_error() -> ReleaseError:
    return ReleaseError(
        kind="git_upstream",
        message="No upstream configured for current branch.",
        hint="Please set an upstream branch.",
    )


def token_missing_error(*, token_ref: str, service: str) -> ReleaseError:
    return ReleaseError(
        kind="token_missing",
        message=f'Environment variable "{token_ref}" is required for {service} releases.',
        hint=f"Set {token_ref} or disable {service.lower()}.release.",
    )


def invalid_version_error(detail: str | None = None) -> ReleaseError:
    return ReleaseError(
        kind="invalid_version",
        message="An invalid version was provided.",
        hint=detail,
    )


def dist_stage_dir_error(stage_dir: str, cwd: Path) -> ReleaseError:
    return ReleaseError(
        kind="dist_stage_dir",
        message=f'`dist.stage_dir` ("{stage_dir}") must resolve to a sub directory of {cwd}.',
    )


def external_error(message: str, detail: str | None = None) -> ReleaseError:
    return ReleaseError(kind="external_failed", message=message, hint=detail or None)


def git_error(e: GitError) -> ReleaseError:
    """Translate a git failure into a release error."""
    match e.kind:
        case "repo":
            return ReleaseError(kind="git_repo", message=e.message)
        case "remote_url":
            return git_remote_url_error()
        case "clean_working_dir":
            return git_clean_working_dir_error()
        case "upstream":
            return git_upstream_error()
        case _:
            return external_error(f"git {e.command} failed", e.message)


def config_error(e: ConfigError) -> ReleaseError:
    if e.not_found:
        return ReleaseError(kind="config_not_found", message=e.message)
    return ReleaseError(kind="invalid_config", message=e.message)
