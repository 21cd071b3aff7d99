from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from ship.core.result import Err, Ok
from ship.platform.files import atomic_write_text, bump_manifest_version


def test_atomic_write_text_creates_parent_dirs(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "package.json"
    atomic_write_text(path, '{"ok":true}\n')

    assert path.read_text(encoding="utf-8") == '{"ok":true}\n'


def test_atomic_write_text_cleans_temp_file_on_replace_failure(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    path = tmp_path / "package.json"

    def fail_replace(_src: Path, _dst: Path) -> None:
        raise OSError("replace failed")

    monkeypatch.setattr(os, "replace", fail_replace)

    with pytest.raises(OSError, match="replace failed"):
        atomic_write_text(path, "payload")

    assert list(path.parent.glob(f".{path.name}.*.tmp")) == []


def test_bump_keeps_layout(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    path.write_text('{\n    "name": "pkg",\n    "version": "1.2.3"\n}\n', encoding="utf-8")

    assert bump_manifest_version(path, "1.3.0") == Ok(None)

    text = path.read_text(encoding="utf-8")
    assert text == '{\n    "name": "pkg",\n    "version": "1.3.0"\n}\n'


def test_bump_adds_missing_version(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    path.write_text('{"name": "pkg"}', encoding="utf-8")

    assert isinstance(bump_manifest_version(path, "0.1.0"), Ok)
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == "0.1.0"


def test_bump_missing_file(tmp_path: Path) -> None:
    assert isinstance(bump_manifest_version(tmp_path / "missing.json", "1.0.0"), Err)


def test_bump_rejects_non_object(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    path.write_text("[1, 2]", encoding="utf-8")
    result = bump_manifest_version(path, "1.0.0")
    assert isinstance(result, Err)
    assert "JSON object" in result.error
