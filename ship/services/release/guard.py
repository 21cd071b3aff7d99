"""Compensating reset for interrupted interactive releases.

Between the manifest bump and the release commit, the working tree holds
uncommitted version changes. If the user interrupts an interactive release
in that window (Ctrl-C, or the process exits after an aborted run), the
manifest files are restored from HEAD.

The guard is scoped: handlers are installed on enter and removed on exit,
so a second run in the same process starts clean.
"""

from __future__ import annotations

import atexit
import signal
import threading
from collections.abc import Callable
from types import FrameType, TracebackType
from typing import Any

__all__ = ["InterruptGuard"]

_SignalHandler = Callable[[int, FrameType | None], Any] | int | None


class InterruptGuard:
    def __init__(self, reset: Callable[[], object], *, active: bool) -> None:
        self._reset_action = reset
        self.active = active
        self.completed = False
        self._has_reset = False
        self._previous: _SignalHandler = None
        self._installed_signal = False

    def reset(self) -> None:
        """Run the reset action at most once."""
        if self._has_reset:
            return
        self._has_reset = True
        self._reset_action()

    def complete(self) -> None:
        """Mark the guarded work as finished; no reset happens on exit."""
        self.completed = True

    def _on_sigint(self, signum: int, frame: FrameType | None) -> None:
        self.reset()
        raise KeyboardInterrupt

    def __enter__(self) -> InterruptGuard:
        if not self.active:
            return self
        if threading.current_thread() is threading.main_thread():
            self._previous = signal.getsignal(signal.SIGINT)
            signal.signal(signal.SIGINT, self._on_sigint)
            self._installed_signal = True
        atexit.register(self.reset)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self.active:
            return
        atexit.unregister(self.reset)
        if self._installed_signal:
            previous = self._previous if self._previous is not None else signal.default_int_handler
            signal.signal(signal.SIGINT, previous)
            self._installed_signal = False
        if not self.completed:
            self.reset()
