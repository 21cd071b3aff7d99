from __future__ import annotations

import pytest

from ship.core.config import ReleaseOptions
from ship.services.release.context import RuntimeContext


def _context() -> RuntimeContext:
    return RuntimeContext(ReleaseOptions(name="pkg"))


def test_set_once() -> None:
    ctx = _context()
    ctx.set("changelog", "* fix")
    assert ctx.get("changelog") == "* fix"
    assert "changelog" in ctx
    with pytest.raises(ValueError, match="changelog"):
        ctx.set("changelog", "other")


def test_merge_replaces() -> None:
    ctx = _context()
    ctx.merge({"version": None})
    ctx.merge({"version": "1.2.4"})
    assert ctx.get("version") == "1.2.4"


def test_template_context_layers_facts_over_options() -> None:
    ctx = _context()
    ctx.merge({"version": "1.2.4", "name": "runtime"})
    data = ctx.template_context()
    assert data["version"] == "1.2.4"
    assert data["name"] == "runtime"
    assert data["git"]["tag_name"] == "${version}"  # type: ignore[index]


def test_template_context_sections_replace_options() -> None:
    ctx = _context()
    data = ctx.template_context(git={"tag_name": "dist-${version}"})
    assert data["git"] == {"tag_name": "dist-${version}"}


def test_template_context_is_a_copy() -> None:
    ctx = _context()
    data = ctx.template_context()
    data["version"] = "9.9.9"
    assert ctx.get("version") is None
