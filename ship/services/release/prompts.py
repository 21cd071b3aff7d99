"""Interactive prompts used by release steps.

Release services only see the `Prompter` protocol. The CLI provides a
typer-backed implementation; tests use `ScriptedPrompter`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from ship.platform.shell import format_template
from ship.services.release.model import ReleaseIncrement
from ship.services.release.semver import parse_version
from ship.services.release.version import next_version

__all__ = [
    "OTHER_CHOICE",
    "PROMPTS",
    "Choice",
    "Prompter",
    "ScriptedPrompter",
    "increment_choices",
    "prompt_message",
]

# Step confirmations, keyed by the step's prompt key.
PROMPTS: dict[str, str] = {
    "commit": "Commit (${git.commit_message})?",
    "tag": "Tag (${git.tag_name})?",
    "push": "Push?",
    "gh_release": "Create a release on GitHub (${github.release_name})?",
    "gl_release": "Create a release on GitLab (${gitlab.release_name})?",
    "publish": "Publish ${npm.name}${npm_tag_suffix} to npm?",
    "otp": "Please enter OTP for npm:",
    "increment": "Select increment (next version):",
    "version": "Please enter a valid version:",
}

OTHER_CHOICE = ""
_OTHER_LABEL = "Other, please specify..."


@dataclass(frozen=True, slots=True)
class Choice:
    value: str
    label: str


def prompt_message(key: str, context: Mapping[str, object]) -> str:
    """Format a prompt message; nested placeholders (a commit message
    containing `${version}`) are resolved too."""
    message = format_template(PROMPTS[key], context)
    return format_template(message, context)


def increment_choices(
    latest_version: str, pre_release_id: str | None, *, pre_release: bool = False
) -> list[Choice]:
    """Increment options labelled with the version each would produce.

    With `pre_release` intent the plain keywords are labelled the way the
    resolver reads them (`minor` from 1.2.3 is 1.3.0-beta.0).
    """
    latest = parse_version(latest_version)
    keywords: list[ReleaseIncrement] = ["patch", "minor", "major"]
    if latest is not None and latest.is_prerelease:
        keywords.append("prerelease")
    keywords += ["prepatch", "preminor", "premajor"]

    choices: list[Choice] = []
    for keyword in keywords:
        label = keyword
        if latest is not None:
            target = next_version(
                latest, keyword, pre_release=pre_release, pre_release_id=pre_release_id
            )
            label = f"{keyword} ({target})"
        choices.append(Choice(value=keyword, label=label))
    choices.append(Choice(value=OTHER_CHOICE, label=_OTHER_LABEL))
    return choices


class Prompter(Protocol):
    """Protocol for interactive questions."""

    def confirm(self, key: str, message: str) -> bool: ...

    def select(self, key: str, message: str, choices: Sequence[Choice]) -> str: ...

    def text(self, key: str, message: str) -> str: ...


@dataclass
class ScriptedPrompter:
    """Prompter answering from pre-recorded answers (for tests).

    Confirmations default to yes unless listed in `declined`. Selections
    and text answers are consumed in order.
    """

    declined: set[str] = field(default_factory=set)
    selections: list[str] = field(default_factory=list)
    texts: list[str] = field(default_factory=list)
    asked: list[tuple[str, str]] = field(default_factory=list)

    def confirm(self, key: str, message: str) -> bool:
        self.asked.append((key, message))
        return key not in self.declined

    def select(self, key: str, message: str, choices: Sequence[Choice]) -> str:
        self.asked.append((key, message))
        if not self.selections:
            raise AssertionError(f"no scripted selection for {key!r}")
        answer = self.selections.pop(0)
        if answer not in {c.value for c in choices}:
            raise AssertionError(f"{answer!r} is not a choice for {key!r}")
        return answer

    def text(self, key: str, message: str) -> str:
        self.asked.append((key, message))
        if not self.texts:
            raise AssertionError(f"no scripted answer for {key!r}")
        return self.texts.pop(0)
