from __future__ import annotations

import pytest

from ship.core.result import Err, Ok, Result
from ship.output.spinner import Spinner
from ship.services.release.errors import ReleaseError, external_error
from ship.services.release.prompts import ScriptedPrompter
from ship.services.release.steps import Step, StepExecutor


def _executor(
    *, interactive: bool = False, prompter: ScriptedPrompter | None = None
) -> StepExecutor:
    return StepExecutor(
        interactive=interactive,
        spinner=Spinner(enabled=False),
        prompter=prompter,
        context=lambda: {"git": {"commit_message": "Release ${version}"}, "version": "1.2.4"},
    )


class _Recorder:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def action(self, name: str) -> Step:
        def run() -> Result[object, ReleaseError]:
            self.calls.append(name)
            return Ok(None)

        return Step(name=name, label=name, action=run, prompt="commit")


class TestUnattended:
    def test_runs_enabled_step(self) -> None:
        rec = _Recorder()
        executor = _executor()
        assert executor.run(rec.action("git_commit")) == Ok(True)
        assert rec.calls == ["git_commit"]
        assert executor.executed == ["git_commit"]

    def test_skips_disabled_step(self) -> None:
        rec = _Recorder()
        executor = _executor()
        step = rec.action("git_tag")
        disabled = Step(name=step.name, label=step.label, action=step.action, enabled=False)
        assert executor.run(disabled) == Ok(False)
        assert rec.calls == []
        assert executor.executed == []

    def test_step_runs_at_most_once(self) -> None:
        rec = _Recorder()
        executor = _executor()
        executor.run(rec.action("git_push"))
        with pytest.raises(RuntimeError, match="git_push"):
            executor.run(rec.action("git_push"))
        assert rec.calls == ["git_push"]

    def test_error_propagates(self) -> None:
        err = external_error("git push failed")
        step = Step(name="git_push", label="Git push", action=lambda: Err(err))
        assert _executor().run(step) == Err(err)

    def test_no_prompt_when_unattended(self) -> None:
        prompter = ScriptedPrompter(declined={"commit"})
        rec = _Recorder()
        assert _executor(prompter=prompter).run(rec.action("git_commit")) == Ok(True)
        assert prompter.asked == []


class TestInteractive:
    def test_confirmed_step_runs(self) -> None:
        prompter = ScriptedPrompter()
        rec = _Recorder()
        result = _executor(interactive=True, prompter=prompter).run(rec.action("git_commit"))
        assert result == Ok(True)
        assert prompter.asked == [("commit", "Commit (Release 1.2.4)?")]

    def test_declined_step_is_skipped(self) -> None:
        prompter = ScriptedPrompter(declined={"commit"})
        rec = _Recorder()
        executor = _executor(interactive=True, prompter=prompter)
        assert executor.run(rec.action("git_commit")) == Ok(False)
        assert rec.calls == []
        assert executor.executed == []

    def test_forced_step_is_not_confirmed(self) -> None:
        prompter = ScriptedPrompter(declined={"commit"})
        calls: list[str] = []
        step = Step(
            name="before_bump",
            label="npm test",
            action=lambda: Ok(calls.append("hook")),
            prompt="commit",
            forced=True,
        )
        assert _executor(interactive=True, prompter=prompter).run(step) == Ok(True)
        assert calls == ["hook"]
        assert prompter.asked == []

    def test_step_without_prompt_runs(self) -> None:
        prompter = ScriptedPrompter()
        step = Step(name="bump", label="Bump version", action=lambda: Ok(None))
        assert _executor(interactive=True, prompter=prompter).run(step) == Ok(True)
        assert prompter.asked == []

    def test_requires_prompter(self) -> None:
        rec = _Recorder()
        with pytest.raises(RuntimeError, match="prompter"):
            _executor(interactive=True).run(rec.action("git_commit"))
