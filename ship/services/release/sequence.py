"""Ordered release workflow for one repository.

A source run goes through every phase:

1. `before_start` hook
2. version resolution (changelog before or after the bump, see
   `changelog_timing`)
3. interactive version selection, then validation
4. interrupt guard (interactive, clean tree required, manifests in scope)
5. `before_bump` hook, manifest bump, `after_bump` hook
6. late changelog (recommendation increments)
7. `before_stage` hook, stage manifests and the working dir
8. distribution staging (clone, copy, bump, hook, stage)
9. release: commit, tag, push, GitHub, GitLab, npm, `after_release`

A distribution run reuses the validated version and only runs phase 9
against the distribution collaborators.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from pathlib import Path

from ship.core.config import ReleaseOptions, ScriptsOptions
from ship.core.result import Err, Ok, Result
from ship.core.structured import StrDict
from ship.git.repository import GitError, Repository
from ship.output.console import ConsoleProtocol, print_preview
from ship.output.spinner import Spinner
from ship.platform.shell import Shell, format_template
from ship.services.release.changelog import Changelog
from ship.services.release.context import RuntimeContext
from ship.services.release.dist_repo import resolve_stage_dir
from ship.services.release.errors import ReleaseError, external_error, git_error
from ship.services.release.github import GitHubClient
from ship.services.release.gitlab import GitLabClient
from ship.services.release.guard import InterruptGuard
from ship.services.release.hosted import HostedGitClient
from ship.services.release.model import ChangelogTiming, VersionState
from ship.services.release.npm import NpmClient
from ship.services.release.prompts import OTHER_CHOICE, Prompter, increment_choices, prompt_message
from ship.services.release.steps import Step, StepExecutor
from ship.services.release.version import VersionResolver, changelog_timing

__all__ = ["ReleaseSequence", "ReleaseTarget"]


@dataclass(frozen=True, slots=True)
class ReleaseTarget:
    """Collaborators of one repository (source or distribution)."""

    cwd: Path
    git: Repository
    github: GitHubClient
    gitlab: GitLabClient
    npm: NpmClient
    scripts: ScriptsOptions


def _from_git(result: Result[None, GitError]) -> Result[object, ReleaseError]:
    match result:
        case Err(e):
            return Err(git_error(e))
        case Ok(_):
            return Ok(None)


class ReleaseSequence:
    def __init__(
        self,
        options: ReleaseOptions,
        *,
        target: ReleaseTarget,
        shell: Shell,
        context: RuntimeContext,
        spinner: Spinner,
        console: ConsoleProtocol,
        prompter: Prompter | None,
        state: VersionState | None = None,
    ) -> None:
        self.options = options
        self.target = target
        self.shell = shell
        self.context = context
        self.executor = StepExecutor(
            interactive=options.interactive,
            spinner=spinner,
            prompter=prompter,
            context=self.template_context,
        )
        self.console = console
        self.prompter = prompter
        self.state = state
        self.changelog = Changelog(shell, target.cwd)

    def template_context(self) -> StrDict:
        """Options, runtime facts and this target's collaborator options."""
        t = self.target
        ctx = self.context.template_context(
            git=asdict(t.git.options),
            github=asdict(t.github.options),
            gitlab=asdict(t.gitlab.options),
            npm=asdict(t.npm.options),
        )
        is_pre_release = self.state.is_pre_release if self.state is not None else False
        tag = t.npm.dist_tag(is_pre_release)
        ctx["npm_tag_suffix"] = "" if tag == "latest" else f"@{tag}"
        return ctx

    def _format(self, template: str) -> str:
        ctx = self.template_context()
        # Option values may themselves hold placeholders.
        return format_template(format_template(template, ctx), ctx)

    def _run_all(self, steps: Iterable[Step]) -> Result[None, ReleaseError]:
        for step in steps:
            outcome = self.executor.run(step)
            if isinstance(outcome, Err):
                return outcome
        return Ok(None)

    def _hook_step(self, name: str, command: str | None, *, cwd: Path | None = None) -> Step:
        where = cwd or self.target.cwd

        def action() -> Result[object, ReleaseError]:
            match self.shell.run_template_command(command, self.template_context(), cwd=where):
                case Err(e):
                    return Err(external_error(f'Hook "{command}" failed.', e.detail))
                case Ok(out):
                    return Ok(out)

        return Step(name=name, label=command or name, action=action, enabled=bool(command), forced=True)

    def run(self) -> Result[VersionState, ReleaseError]:
        """Run the sequence; returns the released version state."""
        if self.state is not None:
            state = self.state
            released = self.release(state)
            if isinstance(released, Err):
                return released
            return Ok(state)

        started = self._run_all([self._hook_step("before_start", self.target.scripts.before_start)])
        if isinstance(started, Err):
            return started

        resolved = self._resolve_version()
        if isinstance(resolved, Err):
            return resolved
        state = resolved.value
        self.state = state

        git = self.target.git
        guard = InterruptGuard(
            lambda: git.reset(self.options.pkg_files),
            active=(
                self.options.interactive
                and bool(self.options.pkg_files)
                and git.options.require_clean_working_dir
            ),
        )
        with guard:
            prepared = self._prepare(state)
            if isinstance(prepared, Err):
                return prepared
            released = self.release(state)
            if isinstance(released, Err):
                return released
            guard.complete()

        return Ok(state)

    def _fetch_changelog(self) -> Result[None, ReleaseError]:
        created = self.changelog.create(self.target.scripts.changelog, self.target.git.latest_tag)
        if isinstance(created, Err):
            return created
        self.context.set("changelog", created.value)
        print_preview(self.console, "Changelog", created.value)
        return Ok(None)

    def _resolve_version(self) -> Result[VersionState, ReleaseError]:
        opts = self.options
        git = self.target.git
        resolver = VersionResolver(
            pre_release_id=opts.pre_release_id,
            recommender=lambda _preset: self.changelog.recommend(git.latest_tag),
            console=self.console,
        )
        resolver.set_latest_version(
            use=opts.use,
            git_tag=git.latest_tag,
            manifest_version=opts.npm.version,
            is_root_dir=git.is_root_dir,
        )
        resolver.bump(opts.increment, pre_release=opts.pre_release)
        self.context.merge(resolver.details.as_dict())

        latest = resolver.latest_version
        suffix = f"{latest}...{resolver.version}" if resolver.version else f"currently at {latest}"
        self.console.header(f"Let's release {opts.name} ({suffix})")

        if changelog_timing(opts.increment) is ChangelogTiming.BEFORE_BUMP:
            fetched = self._fetch_changelog()
            if isinstance(fetched, Err):
                return fetched

        if opts.interactive and not resolver.version:
            self._select_version(resolver)

        validated = resolver.validate()
        if isinstance(validated, Err):
            return validated
        self.context.merge(validated.value.as_dict())
        return validated

    def _select_version(self, resolver: VersionResolver) -> None:
        """Ask for an increment (or an explicit version) until it validates."""
        if self.prompter is None:
            raise RuntimeError("interactive release requires a prompter")
        ctx = self.template_context()
        while True:
            choice = self.prompter.select(
                "increment",
                prompt_message("increment", ctx),
                increment_choices(
                    resolver.latest_version,
                    resolver.pre_release_id,
                    pre_release=self.options.pre_release,
                ),
            )
            if choice == OTHER_CHOICE:
                resolver.set_version(self.prompter.text("version", prompt_message("version", ctx)))
            else:
                resolver.bump(choice, pre_release=self.options.pre_release)
            checked = resolver.check()
            if isinstance(checked, Ok):
                return
            self.console.error(checked.error.pretty())

    def _prepare(self, state: VersionState) -> Result[None, ReleaseError]:
        opts = self.options
        scripts = self.target.scripts
        git = self.target.git
        version = state.version or ""

        def bump() -> Result[object, ReleaseError]:
            self.shell.bump(opts.pkg_files, version, cwd=self.target.cwd)
            return Ok(None)

        bumped = self._run_all(
            [
                self._hook_step("before_bump", scripts.before_bump),
                Step(name="bump", label="Bump version", action=bump),
                self._hook_step("after_bump", scripts.after_bump),
            ]
        )
        if isinstance(bumped, Err):
            return bumped

        if changelog_timing(opts.increment) is ChangelogTiming.AFTER_BUMP:
            fetched = self._fetch_changelog()
            if isinstance(fetched, Err):
                return fetched

        def stage() -> Result[object, ReleaseError]:
            git.stage(opts.pkg_files)
            return _from_git(git.stage_dir())

        staged = self._run_all(
            [
                self._hook_step("before_stage", scripts.before_stage),
                Step(name="stage", label="Stage", action=stage),
            ]
        )
        if isinstance(staged, Err):
            return staged

        if opts.dist.enabled:
            return self._stage_distribution(version)
        return Ok(None)

    def _stage_distribution(self, version: str) -> Result[None, ReleaseError]:
        dist = self.options.dist
        cwd = self.target.cwd
        resolved = resolve_stage_dir(cwd, dist)
        if isinstance(resolved, Err):
            return resolved
        stage_dir = resolved.value
        repo = dist.repo or ""

        def clone() -> Result[object, ReleaseError]:
            return _from_git(self.target.git.clone(repo, stage_dir))

        def copy() -> Result[object, ReleaseError]:
            match self.shell.copy(dist.files, stage_dir, cwd=cwd / dist.base_dir):
                case Err(message):
                    return Err(external_error("Could not copy distribution files.", message))
                case Ok(_):
                    return Ok(None)

        def bump() -> Result[object, ReleaseError]:
            self.shell.bump(dist.pkg_files, version, cwd=stage_dir)
            return Ok(None)

        def stage() -> Result[object, ReleaseError]:
            return _from_git(Repository(stage_dir, dist.git, self.shell).stage_dir())

        return self._run_all(
            [
                Step(name="dist_clone", label="Clone", action=clone),
                Step(name="dist_copy", label="Copy files", action=copy),
                Step(name="dist_bump", label="Bump version", action=bump),
                self._hook_step("dist_before_stage", dist.scripts.before_stage, cwd=stage_dir),
                Step(name="dist_stage", label="Stage", action=stage),
            ]
        )

    def _preview_notes(self, client: HostedGitClient) -> Result[None, ReleaseError]:
        if not client.enabled or not client.release_notes:
            return Ok(None)
        notes = client.get_notes(self.template_context())
        if isinstance(notes, Err):
            return notes
        print_preview(self.console, "Release notes", notes.value)
        return Ok(None)

    def _hosted_release(
        self, client: HostedGitClient, state: VersionState
    ) -> Result[object, ReleaseError]:
        value = self.context.get("changelog")
        created = client.release(
            version=state.version or "",
            is_pre_release=state.is_pre_release,
            changelog=value if isinstance(value, str) else None,
            context=self.template_context(),
        )
        if isinstance(created, Err) or not self.options.interactive:
            return created
        # One interactive confirmation covers the release and its assets.
        return client.upload_assets()

    def release(self, state: VersionState) -> Result[None, ReleaseError]:
        """Commit, tag, push, create hosted releases, publish, run `after_release`."""
        t = self.target
        git = t.git.options
        interactive = self.options.interactive

        print_preview(self.console, "Changeset", t.git.status())

        def otp_prompt() -> str | None:
            if self.prompter is None:
                return None
            answer = self.prompter.text("otp", prompt_message("otp", self.template_context()))
            return answer.strip() or None

        def publish() -> Result[object, ReleaseError]:
            return t.npm.publish(
                version=state.version or "",
                is_pre_release=state.is_pre_release,
                otp_prompt=otp_prompt if interactive else None,
            )

        pushed = self._run_all(
            [
                Step(
                    name="git_commit",
                    label="Git commit",
                    action=lambda: _from_git(t.git.commit(self._format(git.commit_message))),
                    enabled=git.commit,
                    prompt="commit",
                ),
                Step(
                    name="git_tag",
                    label="Git tag",
                    action=lambda: _from_git(
                        t.git.tag(self._format(git.tag_name), self._format(git.tag_annotation))
                    ),
                    enabled=git.tag,
                    prompt="tag",
                ),
                Step(
                    name="git_push",
                    label="Git push",
                    action=lambda: _from_git(t.git.push()),
                    enabled=git.push,
                    prompt="push",
                ),
            ]
        )
        if isinstance(pushed, Err):
            return pushed

        for client, prompt_key in ((t.github, "gh_release"), (t.gitlab, "gl_release")):
            key = client.service.lower()
            notes = self._preview_notes(client)
            if isinstance(notes, Err):
                return notes
            released = self._run_all(
                [
                    Step(
                        name=f"{key}_release",
                        label=f"{client.service} release",
                        action=lambda c=client: self._hosted_release(c, state),
                        enabled=client.enabled,
                        prompt=prompt_key,
                    ),
                    Step(
                        name=f"{key}_upload_assets",
                        label=f"{client.service} upload assets",
                        action=client.upload_assets,
                        enabled=client.enabled and bool(client.assets) and not interactive,
                    ),
                ]
            )
            if isinstance(released, Err):
                return released

        published = self._run_all(
            [
                Step(
                    name="npm_publish",
                    label="npm publish",
                    action=publish,
                    enabled=t.npm.enabled,
                    prompt="publish",
                ),
                self._hook_step("after_release", t.scripts.after_release),
            ]
        )
        if isinstance(published, Err):
            return published

        for url in (
            t.github.release_url() if t.github.is_released else None,
            t.gitlab.release_url() if t.gitlab.is_released else None,
            t.npm.package_url() if t.npm.is_published else None,
        ):
            if url:
                self.console.print(url)
        return Ok(None)
