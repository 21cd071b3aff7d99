"""GitLab releases client (REST API v4)."""

from __future__ import annotations

import urllib.parse
import uuid
from collections.abc import Mapping
from pathlib import Path

from ship.core.config import GitLabOptions, GitOptions
from ship.core.result import Err, Ok, Result
from ship.core.structured import as_str_dict, get_str
from ship.output.console import ConsoleProtocol
from ship.platform.http import HttpClient
from ship.platform.shell import Shell, format_template
from ship.services.release.errors import ReleaseError, external_error
from ship.services.release.hosted import (
    HostedGitClient,
    RepoInfo,
    collect_assets,
    guess_content_type,
)

__all__ = ["GitLabClient", "encode_multipart"]


def encode_multipart(field: str, filename: str, data: bytes, content_type: str) -> tuple[bytes, str]:
    """Encode one file as multipart/form-data; returns (body, content type)."""
    boundary = f"----ship{uuid.uuid4().hex}"
    head = (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="{field}"; filename="{filename}"\r\n'
        f"Content-Type: {content_type}\r\n\r\n"
    ).encode("utf-8")
    tail = f"\r\n--{boundary}--\r\n".encode("utf-8")
    return head + data + tail, f"multipart/form-data; boundary={boundary}"


class GitLabClient(HostedGitClient):
    service = "GitLab"

    def __init__(
        self,
        options: GitLabOptions,
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

    @property
    def origin(self) -> str:
        if self.options.origin:
            return self.options.origin.rstrip("/")
        host = self.repo.host if self.repo is not None else "gitlab.com"
        return f"https://{host}"

    @property
    def project_url(self) -> str | None:
        if self.repo is None:
            return None
        project_id = urllib.parse.quote(self.repo.path, safe="")
        return f"{self.origin}/api/v4/projects/{project_id}"

    def _headers(self) -> dict[str, str]:
        return {"Private-Token": self.token or ""}

    def release(
        self,
        *,
        version: str,
        is_pre_release: bool,
        changelog: str | None,
        context: Mapping[str, object],
    ) -> Result[None, ReleaseError]:
        """Create the GitLab release for the version tag."""
        tag_name = format_template(self.git.tag_name, context)
        name = format_template(self.options.release_name, context)
        self.tag_name = tag_name

        body = self.release_body(context, changelog)
        if isinstance(body, Err):
            return body

        project_url = self.project_url
        if project_url is None:
            return Err(external_error("Could not determine the GitLab repository."))
        url = f"{project_url}/releases"

        if self.dry_run:
            self.echo(f"POST {url} ({tag_name})")
            return Ok(None)

        payload: dict[str, object] = {
            "name": name,
            "tag_name": tag_name,
            "description": body.value,
        }
        match self.http.request_json("POST", url, headers=self._headers(), body=payload):
            case Err(e):
                return Err(external_error("GitLab release failed.", str(e)))
            case Ok(_):
                self.is_released = True
                return Ok(None)

    def _upload(self, repo: RepoInfo, project_url: str, path: Path) -> Result[str, ReleaseError]:
        try:
            data = path.read_bytes()
        except OSError as e:
            return Err(external_error(f"Could not read asset {path.name}.", str(e)))
        body, content_type = encode_multipart("file", path.name, data, guess_content_type(path))
        match self.http.send_bytes(
            f"{project_url}/uploads", body, content_type=content_type, headers=self._headers()
        ):
            case Err(e):
                return Err(external_error(f"Could not upload {path.name}.", str(e)))
            case Ok(obj):
                rel = get_str(as_str_dict(obj) or {}, "url")
                if rel is None:
                    return Err(external_error(f"Unexpected upload response for {path.name}."))
                # Upload URLs are relative to the project page.
                return Ok(f"{self.origin}/{repo.path}{rel}")

    def upload_assets(self) -> Result[None, ReleaseError]:
        """Upload assets to the project and link them to the created release."""
        files = collect_assets(self.assets, self.cwd)
        if not files:
            return Ok(None)

        if self.dry_run:
            for path in files:
                self.echo(f"upload {path.name}")
            return Ok(None)

        repo = self.repo
        project_url = self.project_url
        if not self.is_released or repo is None or project_url is None or self.tag_name is None:
            return Err(external_error("Cannot upload assets before the GitLab release exists."))

        tag = urllib.parse.quote(self.tag_name, safe="")
        for path in files:
            uploaded = self._upload(repo, project_url, path)
            if isinstance(uploaded, Err):
                return uploaded
            link = self.http.request_json(
                "POST",
                f"{project_url}/releases/{tag}/assets/links",
                headers=self._headers(),
                body={"name": path.name, "url": uploaded.value},
            )
            if isinstance(link, Err):
                return Err(external_error(f"Could not link {path.name}.", str(link.error)))
        return Ok(None)

    def release_url(self) -> str | None:
        if self.repo is None or self.tag_name is None:
            return None
        return f"{self.origin}/{self.repo.path}/-/releases/{self.tag_name}"
