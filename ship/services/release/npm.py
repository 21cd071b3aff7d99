"""npm registry client."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from ship.core.config import NpmOptions
from ship.core.result import Err, Ok, Result
from ship.output.console import ConsoleProtocol
from ship.platform.shell import Shell
from ship.services.release.config import NPM_PACKAGE_URL, PRE_RELEASE_DIST_TAG
from ship.services.release.errors import ReleaseError, external_error

__all__ = ["NpmClient", "OtpPrompt", "is_otp_error"]

# Asks the user for a one-time password; None aborts.
OtpPrompt = Callable[[], str | None]

_OTP_MARKERS = ("EOTP", "one-time pass")


def is_otp_error(detail: str) -> bool:
    return any(marker in detail for marker in _OTP_MARKERS)


class NpmClient:
    def __init__(
        self,
        options: NpmOptions,
        *,
        shell: Shell,
        console: ConsoleProtocol,
        cwd: Path,
        dry_run: bool,
    ) -> None:
        self.options = options
        self.shell = shell
        self.console = console
        self.cwd = cwd
        self.dry_run = dry_run
        self.is_published = False

    @property
    def enabled(self) -> bool:
        return self.options.publish and self.options.name is not None

    def dist_tag(self, is_pre_release: bool) -> str:
        """Pre-releases never go to "latest" unless another tag was chosen."""
        if is_pre_release and self.options.tag == "latest":
            return PRE_RELEASE_DIST_TAG
        return self.options.tag

    def _command(self, tag: str, otp: str | None) -> list[str]:
        cmd = ["npm", "publish", self.options.publish_path, "--tag", tag]
        if self.options.access:
            cmd += ["--access", self.options.access]
        if otp:
            cmd += ["--otp", otp]
        return cmd

    def publish(
        self,
        *,
        version: str,
        is_pre_release: bool,
        otp_prompt: OtpPrompt | None = None,
    ) -> Result[None, ReleaseError]:
        """Publish the package; asks for an OTP and retries when the registry requires one."""
        if self.options.private:
            self.console.warning("Skip publish: package is private.")
            return Ok(None)

        tag = self.dist_tag(is_pre_release)
        otp = self.options.otp
        while True:
            match self.shell.run(self._command(tag, otp), cwd=self.cwd, timeout=5 * 60.0):
                case Ok(_):
                    if not self.dry_run:
                        self.is_published = True
                    return Ok(None)
                case Err(e):
                    if otp_prompt is not None and is_otp_error(e.detail):
                        otp = otp_prompt()
                        if otp:
                            continue
                    return Err(external_error(f"npm publish {version} failed.", e.detail))

    def package_url(self) -> str | None:
        if not self.options.name:
            return None
        return f"{NPM_PACKAGE_URL}/{self.options.name}"

