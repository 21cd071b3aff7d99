from __future__ import annotations

import sys
from pathlib import Path

from ship.core.config import GitHubOptions, GitOptions
from ship.core.result import Err, Ok
from ship.output.console import MockConsole
from ship.platform.http import HttpError, MockHttpClient
from ship.platform.shell import Shell
from ship.services.release.github import GitHubClient

API = "https://api.github.com/repos/owner/repo/releases"
UPLOAD = "https://uploads.github.com/repos/owner/repo/releases/7/assets"
CTX: dict[str, object] = {"version": "1.2.4", "name": "pkg"}


def _client(
    tmp_path: Path,
    http: MockHttpClient,
    *,
    options: GitHubOptions | None = None,
    remote_url: str | None = "git@github.com:owner/repo.git",
    env: dict[str, str] | None = None,
    dry_run: bool = False,
    console: MockConsole | None = None,
) -> GitHubClient:
    console = console or MockConsole()
    return GitHubClient(
        options or GitHubOptions(release=True),
        GitOptions(),
        remote_url=remote_url,
        http=http,
        shell=Shell(tmp_path, console),
        console=console,
        env={"GITHUB_TOKEN": "t0k"} if env is None else env,
        cwd=tmp_path,
        dry_run=dry_run,
    )


def _release_response() -> dict[str, object]:
    return {
        "id": 7,
        "upload_url": UPLOAD + "{?name,label}",
        "html_url": "https://github.com/owner/repo/releases/tag/1.2.4",
    }


class TestValidate:
    def test_disabled(self, tmp_path: Path) -> None:
        client = _client(tmp_path, MockHttpClient(), options=GitHubOptions(), env={})
        assert client.validate() == Ok(None)

    def test_token_missing(self, tmp_path: Path) -> None:
        result = _client(tmp_path, MockHttpClient(), env={}).validate()
        assert isinstance(result, Err)
        assert result.error.kind == "token_missing"
        assert "GITHUB_TOKEN" in result.error.message

    def test_unknown_remote(self, tmp_path: Path) -> None:
        result = _client(tmp_path, MockHttpClient(), remote_url="/tmp/remote.git").validate()
        assert isinstance(result, Err)
        assert result.error.kind == "external_failed"


class TestRelease:
    def test_creates_release(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.on("POST", API, _release_response())
        client = _client(tmp_path, http)

        result = client.release(version="1.2.4", is_pre_release=False, changelog="* fix", context=CTX)

        assert result == Ok(None)
        assert client.is_released is True
        call = http.calls[0]
        assert call.url == API
        assert call.headers["Authorization"] == "token t0k"
        assert call.body == {
            "tag_name": "1.2.4",
            "name": "Release 1.2.4",
            "body": "* fix",
            "prerelease": False,
            "draft": False,
        }
        assert client.release_url() == "https://github.com/owner/repo/releases/tag/1.2.4"

    def test_pre_release_flag(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.on("POST", API, {})
        _client(tmp_path, http).release(
            version="1.3.0-beta.0", is_pre_release=True, changelog=None, context=CTX
        )
        body = http.calls[0].body
        assert isinstance(body, dict)
        assert body["prerelease"] is True
        assert body["body"] == ""

    def test_release_notes_command(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.on("POST", API, {})
        options = GitHubOptions(release=True, release_notes=f"{sys.executable} -c \"print('notes ${{version}}')\"")
        _client(tmp_path, http, options=options).release(
            version="1.2.4", is_pre_release=False, changelog="ignored", context=CTX
        )
        body = http.calls[0].body
        assert isinstance(body, dict)
        assert body["body"] == "notes 1.2.4"

    def test_api_failure(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.on("POST", API, HttpError(url=API, status=422, message="already_exists"))
        client = _client(tmp_path, http)
        result = client.release(version="1.2.4", is_pre_release=False, changelog=None, context=CTX)
        assert isinstance(result, Err)
        assert result.error.message == "GitHub release failed."
        assert client.is_released is False

    def test_dry_run(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        console = MockConsole()
        client = _client(tmp_path, http, dry_run=True, console=console)
        result = client.release(version="1.2.4", is_pre_release=False, changelog=None, context=CTX)
        assert result == Ok(None)
        assert http.calls == []
        assert console.find(f"$ POST {API} (1.2.4)")
        assert client.release_url() == "https://github.com/owner/repo/releases/tag/1.2.4"

    def test_enterprise_host(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        client = _client(tmp_path, http, remote_url="https://git.corp.example/team/app.git")
        assert client.api_url == "https://git.corp.example/api/v3"


class TestUploadAssets:
    def _assets(self, tmp_path: Path) -> GitHubOptions:
        (tmp_path / "dist").mkdir()
        (tmp_path / "dist" / "app.zip").write_bytes(b"PK")
        return GitHubOptions(release=True, assets=("dist/*.zip",))

    def test_requires_release(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        client = _client(tmp_path, http, options=self._assets(tmp_path))
        result = client.upload_assets()
        assert isinstance(result, Err)
        assert http.calls == []

    def test_uploads_after_release(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.on("POST", API, _release_response())
        http.on("POST", UPLOAD, {"id": 1})
        client = _client(tmp_path, http, options=self._assets(tmp_path))

        client.release(version="1.2.4", is_pre_release=False, changelog=None, context=CTX)
        assert client.upload_assets() == Ok(None)

        upload = http.calls[1]
        assert upload.url == f"{UPLOAD}?name=app.zip"
        assert upload.data == b"PK"
        assert upload.headers["Content-Type"] == "application/zip"

    def test_no_assets(self, tmp_path: Path) -> None:
        assert _client(tmp_path, MockHttpClient()).upload_assets() == Ok(None)
