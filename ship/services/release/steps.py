"""Uniform execution of release steps.

Every step of a release goes through `StepExecutor.run`, whatever the mode:

- disabled steps are skipped
- unattended runs execute the action under the spinner
- interactive runs ask for confirmation first when the step has a prompt
  key; declining skips the step
- forced steps (hook commands) always run, without confirmation

Errors returned by an action propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from ship.core.result import Err, Ok, Result
from ship.output.spinner import Spinner
from ship.services.release.errors import ReleaseError
from ship.services.release.prompts import Prompter, prompt_message

__all__ = ["Step", "StepAction", "StepExecutor"]

StepAction = Callable[[], Result[object, ReleaseError]]


@dataclass(frozen=True, slots=True)
class Step:
    """One unit of release work.

    Attributes:
        name: Identifier, unique within one executor ("git_commit")
        label: Text shown next to the spinner
        action: Zero-argument callable returning a Result
        enabled: Skip the step entirely when False
        prompt: Confirmation prompt key for interactive runs
        forced: Run even in interactive mode without confirmation
    """

    name: str
    label: str
    action: StepAction
    enabled: bool = True
    prompt: str | None = None
    forced: bool = False


class StepExecutor:
    def __init__(
        self,
        *,
        interactive: bool,
        spinner: Spinner,
        prompter: Prompter | None,
        context: Callable[[], Mapping[str, object]],
    ) -> None:
        self.interactive = interactive
        self.spinner = spinner
        self.prompter = prompter
        self.context = context
        self.executed: list[str] = []

    def _confirmed(self, step: Step) -> bool:
        if not self.interactive or step.prompt is None or step.forced:
            return True
        if self.prompter is None:
            raise RuntimeError("interactive release requires a prompter")
        return self.prompter.confirm(step.prompt, prompt_message(step.prompt, self.context()))

    def run(self, step: Step) -> Result[bool, ReleaseError]:
        """Run a step; Ok(True) when the action executed, Ok(False) when skipped."""
        if not step.enabled:
            return Ok(False)
        if step.name in self.executed:
            raise RuntimeError(f"step already executed: {step.name}")
        if not self._confirmed(step):
            return Ok(False)

        self.executed.append(step.name)
        result = self.spinner.show(step.label, step.action, forced=step.forced)
        if isinstance(result, Err):
            return result
        return Ok(True)
