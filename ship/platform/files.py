"""Filesystem helpers."""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path

from ship.core.result import Err, Ok, Result
from ship.core.structured import as_str_dict

__all__ = ["atomic_write_text", "bump_manifest_version"]

_INDENT_RE = re.compile(r'^([ \t]+)"', re.MULTILINE)


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def bump_manifest_version(path: Path, version: str) -> Result[None, str]:
    """Set the top-level "version" of a JSON manifest, keeping its layout.

    Indentation and the trailing newline of the original file are preserved.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Err(str(e))

    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(f"invalid JSON: {e}")

    data = as_str_dict(obj)
    if data is None:
        return Err("manifest root must be a JSON object")

    data["version"] = version

    m = _INDENT_RE.search(text)
    indent: str | int = m.group(1) if m else 2
    out = json.dumps(data, indent=indent, ensure_ascii=False)
    if text.endswith("\n"):
        out += "\n"

    try:
        atomic_write_text(path, out)
    except OSError as e:
        return Err(str(e))
    return Ok(None)
