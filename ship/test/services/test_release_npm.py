from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from ship.core.config import NpmOptions
from ship.core.result import Err, Ok, Result
from ship.output.console import MockConsole
from ship.platform.process import ProcessError
from ship.platform.shell import Shell
from ship.services.release.npm import NpmClient, is_otp_error


class ScriptedShell(Shell):
    """Records commands and replays canned results."""

    def __init__(self, results: list[Result[str, ProcessError]], *, dry_run: bool = False) -> None:
        super().__init__(Path("."), MockConsole(), dry_run=dry_run)
        self.results = results
        self.commands: list[list[str]] = []

    def run(
        self,
        command: str | Sequence[str],
        *,
        writes: bool = True,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> Result[str, ProcessError]:
        assert not isinstance(command, str)
        self.commands.append(list(command))
        if self.dry_run and writes:
            return Ok("")
        return self.results.pop(0)


def _failure(stderr: str) -> Err[ProcessError]:
    return Err(ProcessError(command=("npm", "publish"), returncode=1, stdout="", stderr=stderr))


def _client(shell: ScriptedShell, **options: object) -> tuple[NpmClient, MockConsole]:
    console = MockConsole()
    npm = NpmClient(
        NpmOptions(name="pkg", **options),  # type: ignore[arg-type]
        shell=shell,
        console=console,
        cwd=Path("."),
        dry_run=shell.dry_run,
    )
    return npm, console


def test_is_otp_error() -> None:
    assert is_otp_error("npm ERR! code EOTP")
    assert is_otp_error("This operation requires a one-time password")
    assert not is_otp_error("npm ERR! code E403")


class TestDistTag:
    def test_pre_release_goes_to_next(self) -> None:
        npm, _ = _client(ScriptedShell([]))
        assert npm.dist_tag(True) == "next"
        assert npm.dist_tag(False) == "latest"

    def test_explicit_tag_kept(self) -> None:
        npm, _ = _client(ScriptedShell([]), tag="beta")
        assert npm.dist_tag(True) == "beta"


class TestPublish:
    def test_command(self) -> None:
        shell = ScriptedShell([Ok("+ pkg@1.2.4")])
        npm, _ = _client(shell, access="public")

        assert npm.publish(version="1.2.4", is_pre_release=False) == Ok(None)

        assert shell.commands == [["npm", "publish", ".", "--tag", "latest", "--access", "public"]]
        assert npm.is_published is True

    def test_private_package_is_skipped(self) -> None:
        shell = ScriptedShell([])
        npm, console = _client(shell, private=True)

        assert npm.publish(version="1.2.4", is_pre_release=False) == Ok(None)

        assert shell.commands == []
        assert console.has_warning()
        assert console.find("Skip publish: package is private.")
        assert npm.is_published is False

    def test_otp_retry(self) -> None:
        shell = ScriptedShell([_failure("npm ERR! code EOTP"), Ok("")])
        npm, _ = _client(shell)

        result = npm.publish(version="1.2.4", is_pre_release=True, otp_prompt=lambda: "123456")

        assert result == Ok(None)
        assert shell.commands[1] == ["npm", "publish", ".", "--tag", "next", "--otp", "123456"]

    def test_otp_required_without_prompt(self) -> None:
        shell = ScriptedShell([_failure("npm ERR! code EOTP")])
        npm, _ = _client(shell)

        result = npm.publish(version="1.2.4", is_pre_release=False)

        assert isinstance(result, Err)
        assert result.error.kind == "external_failed"
        assert result.error.message == "npm publish 1.2.4 failed."
        assert result.error.hint == "npm ERR! code EOTP"

    def test_empty_otp_aborts(self) -> None:
        shell = ScriptedShell([_failure("EOTP")])
        npm, _ = _client(shell)
        result = npm.publish(version="1.2.4", is_pre_release=False, otp_prompt=lambda: None)
        assert isinstance(result, Err)
        assert len(shell.commands) == 1

    def test_dry_run_is_not_published(self) -> None:
        shell = ScriptedShell([], dry_run=True)
        npm, _ = _client(shell)
        assert npm.publish(version="1.2.4", is_pre_release=False) == Ok(None)
        assert npm.is_published is False


def test_package_url() -> None:
    npm, _ = _client(ScriptedShell([]))
    assert npm.package_url() == "https://www.npmjs.com/package/pkg"
