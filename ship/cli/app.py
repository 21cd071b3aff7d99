from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from ship import __version__
from ship.cli.prompt import TyperPrompter
from ship.core.config import load_options
from ship.core.errors import ErrorCode
from ship.core.result import Err
from ship.core.structured import StrDict, set_path
from ship.output.console import ConsoleProtocol, RichConsole, Style
from ship.platform.http import RealHttpClient
from ship.services.release.errors import ReleaseError, ReleaseErrorKind, config_error
from ship.services.release.orchestrator import ReleaseRequest, ReleaseServices, run_release


app = typer.Typer(add_completion=False, no_args_is_help=False)

EXIT_CODES: dict[ReleaseErrorKind, ErrorCode] = {
    "invalid_version": ErrorCode.USER_ERROR,
    "dist_stage_dir": ErrorCode.USER_ERROR,
    "invalid_config": ErrorCode.USER_ERROR,
    "git_repo": ErrorCode.ENV_ERROR,
    "git_remote_url": ErrorCode.ENV_ERROR,
    "git_clean_working_dir": ErrorCode.ENV_ERROR,
    "git_upstream": ErrorCode.ENV_ERROR,
    "token_missing": ErrorCode.ENV_ERROR,
    "config_not_found": ErrorCode.IO_ERROR,
    "external_failed": ErrorCode.RELEASE_ERROR,
}


def _exit(err: ReleaseError, *, console: ConsoleProtocol) -> NoReturn:
    console.error(err.message)
    if err.hint:
        console.print(f"hint: {err.hint}", Style.DIM)
    raise typer.Exit(code=int(EXIT_CODES.get(err.kind, ErrorCode.RELEASE_ERROR)))


def parse_assignment(raw: str) -> tuple[str, object]:
    """Parse a `--set key.path=value` override.

    "true"/"false" become booleans, integers become ints, anything else
    stays a string.
    """
    key, sep, value = raw.partition("=")
    key = key.strip()
    if not sep or not key:
        raise typer.BadParameter(f"expected key=value, got {raw!r}", param_hint="--set")
    text = value.strip()
    if text.lower() in ("true", "false"):
        return key, text.lower() == "true"
    if text.isdigit():
        return key, int(text)
    return key, text


def build_overrides(
    *,
    increment: str | None,
    pre_release: bool,
    pre_release_id: str | None,
    dry_run: bool,
    verbose: bool,
    non_interactive: bool,
    no_metrics: bool,
    debug: bool,
    assignments: list[str],
) -> StrDict:
    """CLI flags as the highest-precedence option layer."""
    overrides: StrDict = {}
    for raw in assignments:
        key, value = parse_assignment(raw)
        set_path(overrides, key, value)

    if increment:
        overrides["increment"] = increment
    if pre_release_id:
        overrides["pre_release"] = pre_release_id
    elif pre_release:
        overrides["pre_release"] = True
    flags = {
        "dry_run": dry_run,
        "verbose": verbose,
        "non_interactive": non_interactive,
        "disable_metrics": no_metrics,
        "debug": debug,
    }
    overrides.update({k: True for k, v in flags.items() if v})
    return overrides


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.command()
def release(
    increment: str | None = typer.Argument(
        None, help="major, minor, patch, pre*, conventional:<preset> or an explicit version"
    ),
    pre_release: bool = typer.Option(False, "--pre-release", help="Release a pre-release version"),
    pre_release_id: str | None = typer.Option(
        None, "--pre-release-id", help="Pre-release identifier (alpha, beta, rc)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Print actions without mutating"),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Print executed commands"),
    non_interactive: bool = typer.Option(
        False, "--ci", "--non-interactive", "-n", help="No prompts, run unattended"
    ),
    no_metrics: bool = typer.Option(False, "--no-metrics", help="Disable usage metrics"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file (TOML)"),
    no_config: bool = typer.Option(False, "--no-config", help="Ignore the local config file"),
    manifest: Path | None = typer.Option(None, "--manifest", help="Manifest file (package.json)"),
    debug: bool = typer.Option(False, "--debug", help="Show tracebacks and disable spinners"),
    assignments: list[str] = typer.Option(
        [], "--set", help="Override any option: key.path=value (repeatable)"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Release a new version: bump, changelog, commit, tag, push, publish."""
    console = RichConsole()
    cwd = Path.cwd()

    overrides = build_overrides(
        increment=increment,
        pre_release=pre_release,
        pre_release_id=pre_release_id,
        dry_run=dry_run,
        verbose=verbose,
        non_interactive=non_interactive,
        no_metrics=no_metrics,
        debug=debug,
        assignments=assignments,
    )
    loaded = load_options(
        cwd,
        overrides=overrides,
        config_path=config,
        use_config=not no_config,
        manifest_path=manifest,
    )
    if isinstance(loaded, Err):
        _exit(config_error(loaded.error), console=console)
    options = loaded.value

    services = ReleaseServices(
        console=console,
        http=RealHttpClient(),
        prompter=TyperPrompter(console) if options.interactive else None,
        tool_version=__version__,
    )
    result = run_release(ReleaseRequest(cwd=cwd, options=options), services)
    if isinstance(result, Err):
        _exit(result.error, console=console)


def main() -> None:
    app()
