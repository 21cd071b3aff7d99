"""Shell helpers used by release steps.

Commands are echoed to the console in verbose and dry-run modes. In dry-run
mode, commands that write (hooks, commits, pushes, file changes) are
skipped while read-only commands still run, so a simulation resolves the
same versions and remotes as a real run.
"""

from __future__ import annotations

import glob
import re
import shutil
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from ship.core.result import Err, Ok, Result
from ship.core.structured import as_obj_list, get_path
from ship.output.console import ConsoleProtocol, Style, print_command
from ship.platform.files import bump_manifest_version
from ship.platform.process import ProcessError, run, run_shell

__all__ = ["Shell", "format_template", "is_sub_dir"]

_PLACEHOLDER_RE = re.compile(r"\$\{\s*([\w.]+)\s*\}")
_HOOK_TIMEOUT_SECONDS = 10 * 60.0
_BUMP_WORKERS = 8


def _render(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    items = as_obj_list(value)
    if items is not None:
        return ",".join(_render(v) for v in items)
    if isinstance(value, tuple):
        return ",".join(_render(v) for v in value)
    return str(value)


def format_template(template: str, context: Mapping[str, object]) -> str:
    """Substitute `${dotted.path}` placeholders from a context mapping.

    Unknown paths render as an empty string.
    """
    return _PLACEHOLDER_RE.sub(lambda m: _render(get_path(context, m.group(1))), template)


def _relative_or_name(path: Path, base: Path) -> Path:
    resolved = path.resolve()
    root = base.resolve()
    if resolved.is_relative_to(root):
        return resolved.relative_to(root)
    return Path(path.name)


def is_sub_dir(parent: Path, child: Path) -> bool:
    """True when child resolves strictly inside parent."""
    p = parent.resolve()
    c = child.resolve()
    return c != p and c.is_relative_to(p)


class Shell:
    def __init__(
        self,
        cwd: Path,
        console: ConsoleProtocol,
        *,
        dry_run: bool = False,
        verbose: bool = False,
    ) -> None:
        self.cwd = cwd
        self.console = console
        self.dry_run = dry_run
        self.verbose = verbose

    def _echo(self, command: str, *, skipped: bool) -> None:
        if self.verbose or self.dry_run:
            print_command(self.console, command, dry_run=skipped)

    def run(
        self,
        command: str | Sequence[str],
        *,
        writes: bool = True,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> Result[str, ProcessError]:
        """Run a command and return its stripped stdout.

        A string is a shell command line (hooks); a sequence is executed
        directly. In dry-run mode a writing command is echoed and skipped,
        yielding Ok("").
        """
        display = command if isinstance(command, str) else " ".join(command)
        skipped = self.dry_run and writes
        self._echo(display, skipped=skipped)
        if skipped:
            return Ok("")

        where = cwd or self.cwd
        if isinstance(command, str):
            result = run_shell(command, where, timeout=timeout or _HOOK_TIMEOUT_SECONDS)
        else:
            result = run(list(command), where, timeout=timeout)

        match result:
            case Ok(stdout):
                out = stdout.strip()
                if self.verbose and out:
                    self.console.print(out, Style.DIM)
                return Ok(out)
            case Err() as err:
                return err

    def run_template_command(
        self,
        template: str | None,
        context: Mapping[str, object],
        *,
        cwd: Path | None = None,
    ) -> Result[str, ProcessError]:
        """Format a hook command against the context and run it.

        An empty template is a no-op.
        """
        if not template:
            return Ok("")
        return self.run(format_template(template, context), cwd=cwd)

    def bump(self, files: Sequence[str], version: str, *, cwd: Path | None = None) -> None:
        """Write `version` into each manifest file.

        Best effort: every file is attempted (in parallel, the files are
        disjoint) and a failure only warns "Could not bump <file>".
        """
        names = [f for f in files if f]
        self._echo(f"bump {' '.join(names)} {version}", skipped=self.dry_run)
        if self.dry_run or not names:
            return

        base = cwd or self.cwd
        with ThreadPoolExecutor(max_workers=min(_BUMP_WORKERS, len(names))) as pool:
            results = list(pool.map(lambda f: bump_manifest_version(base / f, version), names))

        for name, result in zip(names, results):
            if isinstance(result, Err):
                self.console.warning(f"Could not bump {name}")

    def copy(self, patterns: Sequence[str], target: Path, *, cwd: Path) -> Result[list[Path], str]:
        """Copy files matching glob patterns into target.

        Files under `cwd` keep their relative path; files matched outside it
        (absolute or `../` patterns) are copied to the top of target.
        """
        self._echo(f"copy {' '.join(patterns)} {target}", skipped=self.dry_run)
        if self.dry_run:
            return Ok([])

        copied: list[Path] = []
        try:
            for pattern in patterns:
                for match in sorted(glob.glob(pattern, root_dir=cwd, recursive=True)):
                    src = cwd / match
                    if not src.is_file():
                        continue
                    dest = target / _relative_or_name(src, cwd)
                    dest.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(src, dest)
                    copied.append(dest)
        except OSError as e:
            return Err(f"copy failed: {e}")
        return Ok(copied)

    def remove_dir(self, path: Path) -> None:
        """Remove a directory tree (the distribution staging dir)."""
        self._echo(f"rm -rf {path}", skipped=self.dry_run)
        if self.dry_run:
            return
        shutil.rmtree(path, ignore_errors=True)
