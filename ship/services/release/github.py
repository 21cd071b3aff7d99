"""GitHub releases client (REST API v3)."""

from __future__ import annotations

import urllib.parse
from collections.abc import Mapping
from pathlib import Path

from ship.core.config import GitHubOptions, GitOptions
from ship.core.result import Err, Ok, Result
from ship.core.structured import as_str_dict, get_int, get_str
from ship.output.console import ConsoleProtocol
from ship.platform.http import HttpClient
from ship.platform.shell import Shell, format_template
from ship.services.release.config import GITHUB_API_URL, GITHUB_HOST
from ship.services.release.errors import ReleaseError, external_error
from ship.services.release.hosted import HostedGitClient, collect_assets, guess_content_type

__all__ = ["GitHubClient"]


class GitHubClient(HostedGitClient):
    service = "GitHub"

    def __init__(
        self,
        options: GitHubOptions,
        git: GitOptions,
        *,
        remote_url: str | None,
        http: HttpClient,
        shell: Shell,
        console: ConsoleProtocol,
        env: Mapping[str, str],
        cwd: Path,
        dry_run: bool,
    ) -> None:
        super().__init__(
            enabled=options.release,
            token_ref=options.token_ref,
            release_notes=options.release_notes,
            assets=options.assets,
            remote_url=remote_url,
            http=http,
            shell=shell,
            console=console,
            env=env,
            cwd=cwd,
            dry_run=dry_run,
        )
        self.options = options
        self.git = git
        self._release_id: int | None = None
        self._upload_url: str | None = None
        self._html_url: str | None = None

    @property
    def host(self) -> str:
        if self.options.host:
            return self.options.host
        return self.repo.host if self.repo is not None else GITHUB_HOST

    @property
    def api_url(self) -> str:
        if self.host == GITHUB_HOST:
            return GITHUB_API_URL
        return f"https://{self.host}/api/v3"

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github.v3+json",
            "Authorization": f"token {self.token or ''}",
        }

    def release(
        self,
        *,
        version: str,
        is_pre_release: bool,
        changelog: str | None,
        context: Mapping[str, object],
    ) -> Result[None, ReleaseError]:
        """Create the GitHub release for the version tag."""
        tag_name = format_template(self.git.tag_name, context)
        name = format_template(self.options.release_name, context)
        self.tag_name = tag_name

        body = self.release_body(context, changelog)
        if isinstance(body, Err):
            return body

        if self.repo is None:
            return Err(external_error("Could not determine the GitHub repository."))
        url = f"{self.api_url}/repos/{self.repo.path}/releases"

        if self.dry_run:
            self.echo(f"POST {url} ({tag_name})")
            return Ok(None)

        payload: dict[str, object] = {
            "tag_name": tag_name,
            "name": name,
            "body": body.value,
            "prerelease": is_pre_release or self.options.pre_release,
            "draft": self.options.draft,
        }
        match self.http.request_json("POST", url, headers=self._headers(), body=payload):
            case Err(e):
                return Err(external_error("GitHub release failed.", str(e)))
            case Ok(obj):
                data = as_str_dict(obj) or {}
                self._release_id = get_int(data, "id")
                self._upload_url = get_str(data, "upload_url")
                self._html_url = get_str(data, "html_url")
                self.is_released = True
                return Ok(None)

    def _asset_upload_url(self, name: str) -> str | None:
        base = self._upload_url
        if base is not None:
            # "https://uploads.github.com/repos/o/r/releases/1/assets{?name,label}"
            base = base.split("{", 1)[0]
        elif self._release_id is not None and self.repo is not None:
            uploads = self.api_url.replace("://api.", "://uploads.")
            base = f"{uploads}/repos/{self.repo.path}/releases/{self._release_id}/assets"
        if base is None:
            return None
        return f"{base}?{urllib.parse.urlencode({'name': name})}"

    def upload_assets(self) -> Result[None, ReleaseError]:
        """Upload the configured assets to the created release."""
        files = collect_assets(self.assets, self.cwd)
        if not files:
            return Ok(None)

        if self.dry_run:
            for path in files:
                self.echo(f"upload {path.name}")
            return Ok(None)

        if not self.is_released:
            return Err(external_error("Cannot upload assets before the GitHub release exists."))

        for path in files:
            url = self._asset_upload_url(path.name)
            if url is None:
                return Err(external_error("GitHub release has no upload URL."))
            try:
                data = path.read_bytes()
            except OSError as e:
                return Err(external_error(f"Could not read asset {path.name}.", str(e)))
            result = self.http.send_bytes(
                url, data, content_type=guess_content_type(path), headers=self._headers()
            )
            if isinstance(result, Err):
                return Err(external_error(f"Could not upload {path.name}.", str(result.error)))
        return Ok(None)

    def release_url(self) -> str | None:
        if self._html_url:
            return self._html_url
        if self.repo is None or self.tag_name is None:
            return None
        return f"https://{self.host}/{self.repo.path}/releases/tag/{self.tag_name}"
