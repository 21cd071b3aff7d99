"""Runtime facts shared by the steps of one release run.

Fields (resolved version, changelog, ...) are written once with `set`.
Replacing an existing field is only possible through `merge`, which makes
the intent explicit at the call site.
"""

from __future__ import annotations

from collections.abc import Mapping

from ship.core.config import ReleaseOptions
from ship.core.structured import StrDict, deep_merge

__all__ = ["RuntimeContext"]


class RuntimeContext:
    def __init__(self, options: ReleaseOptions) -> None:
        self.options = options
        self._facts: StrDict = {}

    def set(self, key: str, value: object) -> None:
        """Record a fact; raises ValueError if it was already recorded."""
        if key in self._facts:
            raise ValueError(f"runtime field already set: {key}")
        self._facts[key] = value

    def merge(self, facts: Mapping[str, object]) -> None:
        """Record or replace several facts at once."""
        self._facts.update(facts)

    def get(self, key: str) -> object | None:
        return self._facts.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._facts

    def template_context(self, **sections: Mapping[str, object]) -> StrDict:
        """Context used to format hook commands, messages and prompts.

        Runtime facts win over options; `sections` (e.g. `git=...` for the
        distribution repository) replace the matching option section.
        """
        base = self.options.as_dict()
        for name, section in sections.items():
            base[name] = dict(section)
        return deep_merge(self._facts, base)
