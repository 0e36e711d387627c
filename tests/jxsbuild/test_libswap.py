import json
import os
from pathlib import Path

import pytest

from jxsbuild import libswap
from jxsbuild.errors import LibraryIOError, NoBackupError, OutstandingBackupError, UsageError


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def _snapshot(directory: Path) -> dict[str, str]:
    return {
        path.name: path.read_text(encoding="utf-8")
        for path in sorted(directory.iterdir())
        if path.is_file()
    }


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("libcodec.so.2", "libcodec.so"),
        ("libavcodec.so.61.19.100", "libavcodec.so"),
        ("libsvtjpegxs.so", "libsvtjpegxs.so"),
    ],
)
def test_base_name_strips_version_suffix(name: str, expected: str) -> None:
    assert libswap.base_name(name) == expected


def test_swap_then_restore_scenario(tmp_path: Path) -> None:
    source = tmp_path / "build"
    target = tmp_path / "lib"
    _write(source / "libcodec.so.2", "new")
    _write(target / "libcodec.so.1", "old")

    report = libswap.swap(source, target)

    assert report.installed == ["libcodec.so.2"]
    assert report.displaced == ["libcodec.so.1"]
    assert sorted(path.name for path in target.iterdir()) == ["backup", "libcodec.so.2"]
    assert (target / "backup" / "libcodec.so.1").read_text(encoding="utf-8") == "old"

    libswap.restore(target)

    assert (target / "libcodec.so.1").read_text(encoding="utf-8") == "old"
    assert not (target / "backup").exists()


def test_swap_moves_every_version_sharing_the_base_name(tmp_path: Path) -> None:
    source = tmp_path / "build"
    target = tmp_path / "lib"
    _write(source / "libavutil.so.59", "new")
    for name in ("libavutil.so", "libavutil.so.58", "libavutil.so.58.29.100"):
        _write(target / name, f"old {name}")
    _write(target / "libswscale.so.7", "untouched")

    libswap.swap(source, target)

    backup = target / "backup"
    assert sorted(
        path.name for path in backup.iterdir() if path.name != libswap.MANIFEST_FILENAME
    ) == ["libavutil.so", "libavutil.so.58", "libavutil.so.58.29.100"]
    assert sorted(path.name for path in target.iterdir() if path.is_file()) == [
        "libavutil.so.59",
        "libswscale.so.7",
    ]


def test_swap_keeps_all_incoming_files_of_one_base_name(tmp_path: Path) -> None:
    source = tmp_path / "build"
    target = tmp_path / "lib"
    _write(source / "libcodec.so.2", "new-major")
    _write(source / "libcodec.so.2.1.0", "new-full")
    _write(target / "libcodec.so.1", "old")

    report = libswap.swap(source, target)

    assert report.installed == ["libcodec.so.2", "libcodec.so.2.1.0"]
    assert report.displaced == ["libcodec.so.1"]
    assert (target / "libcodec.so.2").exists()
    assert (target / "libcodec.so.2.1.0").exists()


def test_swap_ignores_files_that_are_not_shared_libraries(tmp_path: Path) -> None:
    source = tmp_path / "build"
    target = tmp_path / "lib"
    _write(source / "libcodec.a", "static")
    _write(source / "README", "docs")
    target.mkdir()

    report = libswap.swap(source, target)

    assert report.installed == []
    assert not (target / "libcodec.a").exists()


def test_swap_copies_symlinks_as_symlinks(tmp_path: Path) -> None:
    source = tmp_path / "build"
    target = tmp_path / "lib"
    _write(source / "libcodec.so.2.0", "real")
    (source / "libcodec.so.2").symlink_to("libcodec.so.2.0")
    target.mkdir()

    libswap.swap(source, target)

    assert (target / "libcodec.so.2").is_symlink()
    assert (target / "libcodec.so.2").read_text(encoding="utf-8") == "real"


def test_restore_is_exact_inverse_of_swap(tmp_path: Path) -> None:
    source = tmp_path / "build"
    target = tmp_path / "lib"
    _write(source / "libcodec.so.2", "new codec")
    _write(source / "libextra.so.1", "brand new library")
    _write(target / "libcodec.so.1", "old codec")
    _write(target / "libcodec.so", "old link")
    _write(target / "libother.so.3", "other")
    before = _snapshot(target)

    libswap.swap(source, target)
    libswap.restore(target)

    assert _snapshot(target) == before
    assert not (target / "backup").exists()


def test_swap_writes_manifest(tmp_path: Path) -> None:
    source = tmp_path / "build"
    target = tmp_path / "lib"
    _write(source / "libcodec.so.2", "new")
    _write(target / "libcodec.so.1", "old")

    libswap.swap(source, target)

    manifest = json.loads(
        (target / "backup" / libswap.MANIFEST_FILENAME).read_text(encoding="utf-8")
    )
    assert manifest["installed"] == ["libcodec.so.2"]
    assert manifest["displaced"] == ["libcodec.so.1"]


def test_second_swap_refuses_to_overwrite_outstanding_backup(tmp_path: Path) -> None:
    source = tmp_path / "build"
    target = tmp_path / "lib"
    _write(source / "libcodec.so.2", "new")
    _write(target / "libcodec.so.1", "original")
    libswap.swap(source, target)

    with pytest.raises(OutstandingBackupError):
        libswap.swap(source, target)

    assert (target / "backup" / "libcodec.so.1").read_text(encoding="utf-8") == "original"


def test_forced_second_swap_overwrites_backup(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    target = tmp_path / "lib"
    _write(first / "libcodec.so.2", "gen2")
    _write(second / "libcodec.so.2", "gen3")
    _write(target / "libcodec.so.2", "gen1")
    libswap.swap(first, target)

    libswap.swap(second, target, force=True)

    assert (target / "backup" / "libcodec.so.2").read_text(encoding="utf-8") == "gen2"
    assert (target / "libcodec.so.2").read_text(encoding="utf-8") == "gen3"


def test_swap_requires_existing_directories(tmp_path: Path) -> None:
    target = tmp_path / "lib"
    target.mkdir()
    with pytest.raises(UsageError, match="Source not found"):
        libswap.swap(tmp_path / "missing", target)
    with pytest.raises(UsageError, match="Target not found"):
        libswap.swap(target, tmp_path / "missing")


def test_restore_without_backup_fails(tmp_path: Path) -> None:
    with pytest.raises(NoBackupError):
        libswap.restore(tmp_path)


def test_restore_legacy_backup_without_manifest(tmp_path: Path) -> None:
    target = tmp_path / "lib"
    _write(target / "libcodec.so.2", "new")
    _write(target / "backup" / "libcodec.so.1", "old")
    _write(target / "backup" / "libcodec.so.2", "older same name")

    report = libswap.restore(target)

    assert sorted(report.restored) == ["libcodec.so.1", "libcodec.so.2"]
    assert (target / "libcodec.so.2").read_text(encoding="utf-8") == "older same name"
    assert report.backup_removed is True


def test_restore_reports_failed_move(tmp_path: Path) -> None:
    target = tmp_path / "lib"
    _write(target / "backup" / "plugins" / "a.so", "old")
    _write(target / "plugins" / "b.so", "occupied")

    with pytest.raises(LibraryIOError):
        libswap.restore(target)

    assert (target / "backup").is_dir()


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="named pipes unsupported")
def test_restore_undoes_a_swap_that_failed_part_way(tmp_path: Path) -> None:
    source = tmp_path / "build"
    target = tmp_path / "lib"
    _write(source / "liba.so.1", "new a")
    os.mkfifo(source / "libb.so.1")
    _write(target / "liba.so.0", "old a")
    before = _snapshot(target)

    with pytest.raises(LibraryIOError):
        libswap.swap(source, target)

    manifest_path = target / "backup" / ".swap-manifest.json"
    manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    assert manifest["installed"] == ["liba.so.1", "libb.so.1"]
    assert manifest["displaced"] == ["liba.so.0"]

    libswap.restore(target)

    assert sorted(path.name for path in target.iterdir()) == ["liba.so.0"]
    assert _snapshot(target) == before
