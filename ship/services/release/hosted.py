"""Shared base for hosted-git release clients (GitHub, GitLab).

Both clients follow the same contract:
- validate(): the token environment variable must be set when releasing
- release(): create the release object for the tag
- upload_assets(): attach files; only after release() succeeded
- get_notes(): output of the `release_notes` command, if configured
- release_url(): link to the created release
"""

from __future__ import annotations

import glob
import mimetypes
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ship.core.result import Err, Ok, Result
from ship.output.console import ConsoleProtocol, print_command
from ship.platform.http import HttpClient
from ship.platform.shell import Shell, format_template
from ship.services.release.errors import ReleaseError, external_error, token_missing_error

__all__ = [
    "HostedGitClient",
    "RepoInfo",
    "collect_assets",
    "guess_content_type",
    "parse_repo_url",
    "token_from_env",
]

_SCP_RE = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>[^/].*)$")
_URL_RE = re.compile(r"^[a-z+]+://(?:[^@/]+@)?(?P<host>[^/:]+)(?::\d+)?/(?P<path>.+)$")


@dataclass(frozen=True, slots=True)
class RepoInfo:
    """Hosted repository coordinates parsed from a remote URL.

    Attributes:
        host: Host name (github.com, gitlab.example.org)
        owner: Owner or group path (may contain "/" for GitLab subgroups)
        project: Repository name without ".git"
    """

    host: str
    owner: str
    project: str

    @property
    def path(self) -> str:
        return f"{self.owner}/{self.project}"


def parse_repo_url(url: str | None) -> RepoInfo | None:
    """Parse https, ssh and scp-like (`git@host:owner/repo.git`) remote URLs."""
    if not url:
        return None
    text = url.strip()
    m = _URL_RE.match(text) or _SCP_RE.match(text)
    if m is None:
        return None
    path = m.group("path").strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    owner, _, project = path.rpartition("/")
    if not owner or not project:
        return None
    return RepoInfo(host=m.group("host"), owner=owner, project=project)


def collect_assets(patterns: tuple[str, ...], cwd: Path) -> list[Path]:
    """Files matching the asset glob patterns, in pattern order, without duplicates.

    Patterns are relative to `cwd`; absolute and `../` patterns are accepted.
    """
    seen: set[Path] = set()
    out: list[Path] = []
    for pattern in patterns:
        for match in sorted(glob.glob(pattern, root_dir=cwd, recursive=True)):
            path = cwd / match
            key = path.resolve()
            if path.is_file() and key not in seen:
                seen.add(key)
                out.append(path)
    return out


def token_from_env(env: Mapping[str, str], token_ref: str) -> str | None:
    """The token named by `token_ref`; blank values count as missing."""
    value = env.get(token_ref)
    return value.strip() if value and value.strip() else None


def guess_content_type(path: Path) -> str:
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or "application/octet-stream"


class HostedGitClient(ABC):
    """Base class for hosted-git release clients.

    Subclasses must define:
    - service: display name used in messages ("GitHub")
    - release(): create the release
    - upload_assets(): attach the configured assets
    - release_url(): URL of the created release
    """

    service: str

    def __init__(
        self,
        *,
        enabled: bool,
        token_ref: str,
        release_notes: str | None,
        assets: tuple[str, ...],
        remote_url: str | None,
        http: HttpClient,
        shell: Shell,
        console: ConsoleProtocol,
        env: Mapping[str, str],
        cwd: Path,
        dry_run: bool,
    ) -> None:
        self.enabled = enabled
        self.token_ref = token_ref
        self.release_notes = release_notes
        self.assets = assets
        self.remote_url = remote_url
        self.repo = parse_repo_url(remote_url)
        self.http = http
        self.shell = shell
        self.console = console
        self.env = env
        self.cwd = cwd
        self.dry_run = dry_run
        self.is_released = False
        self.tag_name: str | None = None

    @property
    def token(self) -> str | None:
        return token_from_env(self.env, self.token_ref)

    def validate(self) -> Result[None, ReleaseError]:
        if not self.enabled:
            return Ok(None)
        if self.token is None:
            return Err(token_missing_error(token_ref=self.token_ref, service=self.service))
        if self.repo is None:
            return Err(
                external_error(
                    f"Could not determine the {self.service} repository.",
                    f"Unrecognized remote URL: {self.remote_url}",
                )
            )
        return Ok(None)

    def get_notes(self, context: Mapping[str, object]) -> Result[str | None, ReleaseError]:
        """Run the `release_notes` command; None when not configured."""
        if not self.release_notes:
            return Ok(None)
        command = format_template(self.release_notes, context)
        match self.shell.run(command, writes=False, cwd=self.cwd):
            case Ok(out):
                return Ok(out or None)
            case Err(e):
                return Err(external_error("Could not create release notes.", e.detail))

    def release_body(
        self, context: Mapping[str, object], changelog: str | None
    ) -> Result[str, ReleaseError]:
        match self.get_notes(context):
            case Err() as err:
                return err
            case Ok(notes):
                return Ok(notes if notes is not None else (changelog or ""))

    def echo(self, description: str) -> None:
        """Show a skipped API call in dry-run mode."""
        print_command(self.console, description, dry_run=True)

    @abstractmethod
    def release(
        self,
        *,
        version: str,
        is_pre_release: bool,
        changelog: str | None,
        context: Mapping[str, object],
    ) -> Result[None, ReleaseError]: ...

    @abstractmethod
    def upload_assets(self) -> Result[None, ReleaseError]: ...

    @abstractmethod
    def release_url(self) -> str | None: ...
