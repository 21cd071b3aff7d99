from __future__ import annotations

import pytest

from ship.test.architecture._utils import iter_python_files, matches_prefix, parse_imports, ship_root


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    root = ship_root()
    offenders: list[str] = []
    for file_path in iter_python_files(root / package):
        rel = file_path.relative_to(root)
        for item in parse_imports(file_path):
            if any(matches_prefix(item.module, prefix) for prefix in forbidden):
                offenders.append(f"{rel}:{item.line}: forbidden import '{item.module}'")
    return offenders


def test_services_do_not_import_cli_modules() -> None:
    offenders = _violations("services", ("ship.cli",))
    assert not offenders, "services -> cli dependency violations:\n" + "\n".join(offenders)


@pytest.mark.parametrize("package", ["core", "platform", "output", "git"])
def test_lower_layers_do_not_import_services(package: str) -> None:
    offenders = _violations(package, ("ship.services", "ship.cli"))
    assert not offenders, f"{package} -> services/cli dependency violations:\n" + "\n".join(offenders)


def test_core_is_standalone() -> None:
    offenders = _violations("core", ("ship.platform", "ship.output", "ship.git"))
    assert not offenders, "core dependency violations:\n" + "\n".join(offenders)
