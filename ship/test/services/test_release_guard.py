from __future__ import annotations

import atexit
import signal
from collections.abc import Callable

import pytest

from ship.services.release.guard import InterruptGuard


class _Reset:
    def __init__(self) -> None:
        self.count = 0

    def __call__(self) -> None:
        self.count += 1


def test_completed_run_does_not_reset() -> None:
    reset = _Reset()
    with InterruptGuard(reset, active=True) as guard:
        guard.complete()
    assert reset.count == 0


def test_early_exit_resets() -> None:
    reset = _Reset()
    with InterruptGuard(reset, active=True):
        pass
    assert reset.count == 1


def test_exception_resets_and_propagates() -> None:
    reset = _Reset()
    with pytest.raises(ValueError):
        with InterruptGuard(reset, active=True):
            raise ValueError("boom")
    assert reset.count == 1


def test_reset_runs_once() -> None:
    reset = _Reset()
    guard = InterruptGuard(reset, active=True)
    guard.reset()
    guard.reset()
    assert reset.count == 1


def test_inactive_guard_does_nothing() -> None:
    reset = _Reset()
    before = signal.getsignal(signal.SIGINT)
    with InterruptGuard(reset, active=False):
        assert signal.getsignal(signal.SIGINT) == before
    assert reset.count == 0


def test_sigint_handler_is_scoped() -> None:
    before = signal.getsignal(signal.SIGINT)
    reset = _Reset()
    with InterruptGuard(reset, active=True) as guard:
        assert signal.getsignal(signal.SIGINT) == guard._on_sigint
        guard.complete()
    assert signal.getsignal(signal.SIGINT) == before


def test_sigint_resets_then_interrupts() -> None:
    reset = _Reset()
    with pytest.raises(KeyboardInterrupt):
        with InterruptGuard(reset, active=True) as guard:
            guard._on_sigint(signal.SIGINT, None)
    assert reset.count == 1


def test_exit_handler_is_scoped(monkeypatch: pytest.MonkeyPatch) -> None:
    registered: list[Callable[[], object]] = []

    def register(func: Callable[[], object]) -> None:
        registered.append(func)

    def unregister(func: Callable[[], object]) -> None:
        registered.remove(func)

    monkeypatch.setattr(atexit, "register", register)
    monkeypatch.setattr(atexit, "unregister", unregister)

    reset = _Reset()
    with InterruptGuard(reset, active=True) as guard:
        assert registered == [guard.reset]
        guard.complete()
    assert registered == []

    # Repeated runs in one process start clean.
    with InterruptGuard(reset, active=True) as second:
        assert registered == [second.reset]
        second.complete()
    assert registered == []
