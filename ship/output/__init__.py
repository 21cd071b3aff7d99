"""Output abstraction layer."""

from .console import (
    ConsoleProtocol,
    MockConsole,
    RichConsole,
    Style,
    print_command,
    print_preview,
)
from .spinner import Spinner, spinner_enabled

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "RichConsole",
    "Spinner",
    "Style",
    "print_command",
    "print_preview",
    "spinner_enabled",
]
