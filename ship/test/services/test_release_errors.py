from __future__ import annotations

from pathlib import Path

import pytest

from ship.core.config import ConfigError
from ship.git.repository import GitError
from ship.services.release.errors import (
    ReleaseError,
    config_error,
    external_error,
    git_error,
    token_missing_error,
)


@pytest.mark.parametrize(
    ("kind", "expected"),
    [
        ("remote_url", "git_remote_url"),
        ("clean_working_dir", "git_clean_working_dir"),
        ("upstream", "git_upstream"),
        ("repo", "git_repo"),
        ("command", "external_failed"),
    ],
)
def test_git_error_kinds(kind: str, expected: str) -> None:
    err = git_error(GitError(kind=kind, command="push", message="rejected"))  # type: ignore[arg-type]
    assert err.kind == expected


def test_git_command_error_message() -> None:
    err = git_error(GitError(kind="command", command="push", message="rejected"))
    assert err.message == "git push failed"
    assert err.hint == "rejected"


def test_config_error() -> None:
    missing = config_error(ConfigError("Config file not found", Path("x.toml"), not_found=True))
    invalid = config_error(ConfigError("Invalid TOML"))
    assert missing.kind == "config_not_found"
    assert invalid.kind == "invalid_config"


def test_pretty() -> None:
    assert ReleaseError(kind="git_repo", message="No repo").pretty() == "No repo"
    err = token_missing_error(token_ref="GITHUB_TOKEN", service="GitHub")
    assert err.pretty() == (
        'Environment variable "GITHUB_TOKEN" is required for GitHub releases. '
        "(hint: Set GITHUB_TOKEN or disable github.release.)"
    )


def test_external_error_drops_empty_detail() -> None:
    assert external_error("boom", "").hint is None
