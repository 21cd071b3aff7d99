"""Progress spinner for unattended steps.

The spinner is purely cosmetic: it wraps a step's action in a Rich status
line and never changes the action's result.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from rich.console import Console

__all__ = ["Spinner", "spinner_enabled"]

T = TypeVar("T")


def spinner_enabled(*, interactive: bool, verbose: bool, dry_run: bool, debug: bool) -> bool:
    """Spinners are shown only for quiet, unattended, real runs.

    Verbose, dry-run and debug modes print commands as they run, which a
    spinner line would garble.
    """
    return not (interactive or verbose or dry_run or debug)


class Spinner:
    def __init__(self, *, enabled: bool, interactive: bool = False) -> None:
        self.enabled = enabled
        self.interactive = interactive
        self._console: Console | None = None

    def is_visible(self, *, forced: bool) -> bool:
        # Forced steps (hooks) still get a spinner in interactive mode.
        return self.enabled or (forced and self.interactive)

    def show(self, label: str, task: Callable[[], T], *, forced: bool = False) -> T:
        if not self.is_visible(forced=forced):
            return task()

        if self._console is None:
            from rich.console import Console

            self._console = Console()
        with self._console.status(label):
            return task()
