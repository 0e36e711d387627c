# ruff: noqa: E402

import sys
from pathlib import Path

import pytest
from _pytest.doctest import DoctestModule

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for entry in (SRC, ROOT):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))

import jxsbuild.log as jxsbuild_log

DOCTEST_MODULES = {
    ROOT / "src" / "jxsbuild" / "__init__.py",
    ROOT / "src" / "jxsbuild" / "config.py",
    ROOT / "src" / "jxsbuild" / "environment.py",
    ROOT / "src" / "jxsbuild" / "exec.py",
    ROOT / "src" / "jxsbuild" / "git.py",
    ROOT / "src" / "jxsbuild" / "io.py",
    ROOT / "src" / "jxsbuild" / "libswap.py",
    ROOT / "src" / "jxsbuild" / "models.py",
    ROOT / "src" / "jxsbuild" / "paths.py",
    ROOT / "src" / "jxsbuild" / "profiles.py",
}


@pytest.fixture(autouse=True)
def _isolated_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("JXSBUILD_LOG_LEVEL", raising=False)
    monkeypatch.setattr(jxsbuild_log, "_configured_level", None)
    monkeypatch.setattr(jxsbuild_log, "_no_color_override", None)
    monkeypatch.setenv("NO_COLOR", "1")


def pytest_collect_file(
    parent: pytest.Collector, file_path: Path
) -> DoctestModule | None:
    path = file_path if isinstance(file_path, Path) else Path(str(file_path))
    if path in DOCTEST_MODULES:
        return DoctestModule.from_parent(parent, path=path)
    return None
