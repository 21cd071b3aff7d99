from __future__ import annotations

from collections.abc import Sequence

import typer

from ship.output.console import ConsoleProtocol, Style
from ship.services.release.prompts import Choice


class TyperPrompter:
    """Terminal prompts backed by typer/click."""

    def __init__(self, console: ConsoleProtocol) -> None:
        self.console = console

    def confirm(self, key: str, message: str) -> bool:
        return typer.confirm(message, default=True)

    def select(self, key: str, message: str, choices: Sequence[Choice]) -> str:
        self.console.print(message, Style.BOLD)
        for i, choice in enumerate(choices, start=1):
            self.console.print(f"{i:2}. {choice.label}", Style.DIM)

        while True:
            raw = typer.prompt("Pick number", default="1")
            try:
                idx = int(raw)
            except ValueError:
                self.console.error("invalid number")
                continue
            if idx < 1 or idx > len(choices):
                self.console.error("out of range")
                continue
            return choices[idx - 1].value

    def text(self, key: str, message: str) -> str:
        value: str = typer.prompt(message, hide_input=key == "otp")
        return value
