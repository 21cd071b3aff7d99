"""Top-level release driver.

`run_release` validates everything that can be checked up front (increment,
distribution stage dir, repository state, tokens), then runs the source
`ReleaseSequence` and, when a distribution repository is configured, a
second sequence against the staged clone with the already validated
version.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from ship.core.config import ReleaseOptions
from ship.core.result import Err, Ok, Result
from ship.git.repository import Repository
from ship.output.console import ConsoleProtocol
from ship.output.spinner import Spinner, spinner_enabled
from ship.platform.http import HttpClient
from ship.platform.shell import Shell, format_template
from ship.services.release.context import RuntimeContext
from ship.services.release.dist_repo import dist_remote_url, resolve_stage_dir, tag_conflicts
from ship.services.release.errors import (
    ReleaseError,
    git_error,
    git_remote_url_error,
    invalid_version_error,
    token_missing_error,
)
from ship.services.release.github import GitHubClient
from ship.services.release.gitlab import GitLabClient
from ship.services.release.hosted import token_from_env
from ship.services.release.metrics import Metrics
from ship.services.release.model import ReleaseResult, VersionState
from ship.services.release.npm import NpmClient
from ship.services.release.prompts import Prompter
from ship.services.release.sequence import ReleaseSequence, ReleaseTarget
from ship.services.release.version import is_valid_increment

__all__ = ["ReleaseRequest", "ReleaseServices", "run_release"]


def _environ() -> dict[str, str]:
    return dict(os.environ)


@dataclass(frozen=True, slots=True)
class ReleaseRequest:
    cwd: Path
    options: ReleaseOptions


@dataclass(frozen=True, slots=True)
class ReleaseServices:
    """Injectable collaborators of a release run."""

    console: ConsoleProtocol
    http: HttpClient
    prompter: Prompter | None = None
    env: Mapping[str, str] = field(default_factory=_environ)
    spinner: Spinner | None = None
    clock: Callable[[], float] = time.monotonic
    tool_version: str = "0.0.0"


def _build_target(
    cwd: Path,
    git: Repository,
    options: ReleaseOptions,
    *,
    remote_url: str | None,
    dist: bool,
    shell: Shell,
    services: ReleaseServices,
) -> ReleaseTarget:
    github_opts = options.dist.github if dist else options.github
    gitlab_opts = options.dist.gitlab if dist else options.gitlab
    npm_opts = options.dist.npm if dist else options.npm
    return ReleaseTarget(
        cwd=cwd,
        git=git,
        github=GitHubClient(
            github_opts,
            git.options,
            remote_url=remote_url,
            http=services.http,
            shell=shell,
            console=services.console,
            env=services.env,
            cwd=cwd,
            dry_run=options.dry_run,
        ),
        gitlab=GitLabClient(
            gitlab_opts,
            git.options,
            remote_url=remote_url,
            http=services.http,
            shell=shell,
            console=services.console,
            env=services.env,
            cwd=cwd,
            dry_run=options.dry_run,
        ),
        npm=NpmClient(npm_opts, shell=shell, console=services.console, cwd=cwd, dry_run=options.dry_run),
        scripts=options.dist.scripts if dist else options.scripts,
    )


def _validate_hosted(target: ReleaseTarget) -> Result[None, ReleaseError]:
    for client in (target.github, target.gitlab):
        checked = client.validate()
        if isinstance(checked, Err):
            return checked
    return Ok(None)


def _validate_dist_tokens(
    options: ReleaseOptions, env: Mapping[str, str]
) -> Result[None, ReleaseError]:
    """Token presence for distribution releases, checked before the source release.

    The distribution remote is only known after the clone, so the full
    client validation still happens in the distribution phase.
    """
    dist = options.dist
    for service, enabled, token_ref in (
        ("GitHub", dist.github.release, dist.github.token_ref),
        ("GitLab", dist.gitlab.release, dist.gitlab.token_ref),
    ):
        if enabled and token_from_env(env, token_ref) is None:
            return Err(token_missing_error(token_ref=token_ref, service=service))
    return Ok(None)


def _sequence(
    options: ReleaseOptions,
    target: ReleaseTarget,
    *,
    shell: Shell,
    context: RuntimeContext,
    services: ReleaseServices,
    spinner: Spinner,
    state: VersionState | None = None,
) -> ReleaseSequence:
    return ReleaseSequence(
        options,
        target=target,
        shell=shell,
        context=context,
        spinner=spinner,
        console=services.console,
        prompter=services.prompter,
        state=state,
    )


def _release(request: ReleaseRequest, services: ReleaseServices) -> Result[ReleaseResult, ReleaseError]:
    options = request.options
    cwd = request.cwd
    console = services.console

    # Checks that need neither git nor the network come first.
    if not is_valid_increment(options.increment):
        return Err(invalid_version_error(f'"{options.increment}" is not a valid increment or version.'))
    if options.dist.enabled:
        stage_dir = resolve_stage_dir(cwd, options.dist)
        if isinstance(stage_dir, Err):
            return stage_dir

    spinner = services.spinner or Spinner(
        enabled=spinner_enabled(
            interactive=options.interactive,
            verbose=options.verbose,
            dry_run=options.dry_run,
            debug=options.debug,
        ),
        interactive=options.interactive,
    )
    shell = Shell(cwd, console, dry_run=options.dry_run, verbose=options.verbose)

    git = Repository(cwd, options.git, shell)
    for check in (git.init, git.validate):
        checked = check()
        if isinstance(checked, Err):
            return Err(git_error(checked.error))
    needs_remote = options.git.push or options.github.release or options.gitlab.release
    if git.remote_url is None and needs_remote:
        return Err(git_remote_url_error())

    source = _build_target(
        cwd, git, options, remote_url=git.remote_url, dist=False, shell=shell, services=services
    )
    validated = _validate_hosted(source)
    if isinstance(validated, Err):
        return validated
    if options.dist.enabled:
        dist_tokens = _validate_dist_tokens(options, services.env)
        if isinstance(dist_tokens, Err):
            return dist_tokens

    context = RuntimeContext(options)
    sequence = _sequence(options, source, shell=shell, context=context, services=services, spinner=spinner)
    released = sequence.run()
    if isinstance(released, Err):
        return released
    state = released.value

    if options.dist.enabled:
        dist_released = _release_distribution(
            request, services, git=git, state=state, shell=shell, context=context, spinner=spinner
        )
        if isinstance(dist_released, Err):
            return dist_released

    changelog = context.get("changelog")
    return Ok(
        ReleaseResult(
            name=options.name,
            changelog=changelog if isinstance(changelog, str) else None,
            latest_version=state.latest_version,
            version=state.version or "",
        )
    )


def _release_distribution(
    request: ReleaseRequest,
    services: ReleaseServices,
    *,
    git: Repository,
    state: VersionState,
    shell: Shell,
    context: RuntimeContext,
    spinner: Spinner,
) -> Result[None, ReleaseError]:
    options = request.options
    console = services.console
    resolved = resolve_stage_dir(request.cwd, options.dist)
    if isinstance(resolved, Err):
        return resolved
    stage_dir = resolved.value

    console.header(f"Let's release the distribution repo for {options.name}")

    dist_git_options = options.dist.git
    dist_git = Repository(stage_dir, dist_git_options, shell)
    # A dry run never cloned the repository.
    if stage_dir.is_dir():
        initialized = dist_git.init()
        if isinstance(initialized, Err):
            return Err(git_error(initialized.error))
    remote_url = dist_remote_url(options.dist, dist_git.remote_url)

    tmpl = context.template_context()
    if dist_git_options.tag and tag_conflicts(
        source_remote=git.remote_url,
        dist_remote=remote_url,
        source_tag=format_template(options.git.tag_name, tmpl),
        dist_tag=format_template(dist_git_options.tag_name, tmpl),
    ):
        console.warning("Distribution repo tag equals the source tag; skipping distribution tag.")
        dist_git.options = replace(dist_git_options, tag=False)

    target = _build_target(
        stage_dir, dist_git, options, remote_url=remote_url, dist=True, shell=shell, services=services
    )
    validated = _validate_hosted(target)
    if isinstance(validated, Err):
        return validated

    sequence = _sequence(
        options, target, shell=shell, context=context, services=services, spinner=spinner, state=state
    )
    released = sequence.run()
    if isinstance(released, Err):
        return released

    shell.remove_dir(stage_dir)
    return Ok(None)


def run_release(request: ReleaseRequest, services: ReleaseServices) -> Result[ReleaseResult, ReleaseError]:
    """Run a complete release.

    Emits `start`/`end` usage events; an error result or an unexpected
    exception is tracked as an `exception` event before being returned or
    re-raised.
    """
    started = services.clock()
    metrics = Metrics(
        enabled=request.options.metrics,
        http=services.http,
        env=services.env,
        version=services.tool_version,
    )
    metrics.track_event("start", request.options.as_dict())

    try:
        result = _release(request, services)
    except Exception as e:
        metrics.track_exception(e)
        raise

    match result:
        case Err(e):
            metrics.track_exception(e)
            return result
        case Ok(_):
            metrics.track_event("end")
            elapsed = int(services.clock() - started)
            services.console.print(f"Done (in {elapsed}s.)")
            return result
