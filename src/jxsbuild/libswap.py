"""Versioned shared-library swap and restore.

``swap`` installs ``*.so*`` artifacts from a build output directory into a
live library directory, moving every superseded file into ``backup/``
first. ``restore`` moves the backup back. The presence of ``backup/`` is the
only durable record of an outstanding swap; callers must serialize swaps
and restores against the same target directory.
"""

from __future__ import annotations

import datetime as dt
import json
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from . import log, paths
from .errors import LibraryIOError, NoBackupError, OutstandingBackupError, UsageError
from .models import SwapManifest

SHARED_LIBRARY_MARKER = ".so"
MANIFEST_FILENAME = ".swap-manifest.json"


def is_shared_library(name: str) -> bool:
    """Return whether ``name`` follows the ``<name>.so[.<version>...]`` pattern.

    Example:
        >>> is_shared_library("libavcodec.so.61")
        True
        >>> is_shared_library("libavcodec.a")
        False
    """
    return SHARED_LIBRARY_MARKER in name


def base_name(name: str) -> str:
    """Strip the version suffix from a shared-library file name.

    Everything before the first ``.so`` is kept and ``.so`` is re-appended.

    Example:
        >>> base_name("libcodec.so.2")
        'libcodec.so'
        >>> base_name("libavutil.so.59.39.100")
        'libavutil.so'
        >>> base_name("libfoo.so")
        'libfoo.so'
    """
    index = name.index(SHARED_LIBRARY_MARKER)
    return name[:index] + SHARED_LIBRARY_MARKER


def _utc_now() -> str:
    now = dt.datetime.now(tz=dt.timezone.utc).replace(microsecond=0)
    return now.isoformat().replace("+00:00", "Z")


@dataclass
class SwapReport:
    installed: list[str] = field(default_factory=list)
    displaced: list[str] = field(default_factory=list)


@dataclass
class RestoreReport:
    restored: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    backup_removed: bool = False


class LibraryTransaction:
    """Swap shared libraries into ``target_dir`` and undo the swap.

    Attributes:
        target_dir: Live library directory being modified.
        source_dir: Directory holding the replacement artifacts (swap only).
    """

    def __init__(self, target_dir: Path, *, source_dir: Path | None = None) -> None:
        self.target_dir = target_dir
        self.source_dir = source_dir

    @property
    def backup_dir(self) -> Path:
        return paths.backup_dir(self.target_dir)

    @property
    def manifest_path(self) -> Path:
        return self.backup_dir / MANIFEST_FILENAME

    def _backup_entries(self) -> list[Path]:
        if not self.backup_dir.is_dir():
            return []
        return sorted(
            path for path in self.backup_dir.iterdir() if path.name != MANIFEST_FILENAME
        )

    def has_outstanding_backup(self) -> bool:
        if not self.backup_dir.is_dir():
            return False
        return any(self.backup_dir.iterdir())

    def candidates(self) -> dict[str, list[Path]]:
        """Group incoming artifacts by base name."""
        if self.source_dir is None:
            raise UsageError("swap requires a source directory")
        groups: dict[str, list[Path]] = {}
        for path in sorted(self.source_dir.iterdir()):
            if path.is_dir() or not is_shared_library(path.name):
                continue
            groups.setdefault(base_name(path.name), []).append(path)
        return groups

    def _superseded(self, base: str) -> list[Path]:
        return sorted(
            path
            for path in self.target_dir.iterdir()
            if path.name.startswith(base) and path != self.backup_dir and not path.is_dir()
        )

    def swap(self, *, force: bool = False) -> SwapReport:
        """Install every incoming artifact, backing up what it supersedes.

        Args:
            force: Swap even when an unrestored backup exists. Files already
                in the backup area are then overwritten by the newly
                displaced ones.

        Raises:
            UsageError: Source or target directory is missing.
            OutstandingBackupError: A previous swap was never restored.
            LibraryIOError: A move or copy failed part-way. The manifest still
                records what was displaced and installed so far.
        """
        if self.source_dir is None or not self.source_dir.is_dir():
            raise UsageError(f"Source not found: {self.source_dir}")
        if not self.target_dir.is_dir():
            raise UsageError(f"Target not found: {self.target_dir}")
        if self.has_outstanding_backup():
            if not force:
                raise OutstandingBackupError(
                    f"{self.backup_dir} already holds an unrestored backup",
                    recovery_hint="run restore first, or pass --force to overwrite it",
                )
            log.warning(f"overwriting outstanding backup in {self.backup_dir}")

        report = SwapReport()
        try:
            self.backup_dir.mkdir(exist_ok=True)
            for base, incoming in self.candidates().items():
                for old in self._superseded(base):
                    os.replace(old, self.backup_dir / old.name)
                    report.displaced.append(old.name)
                    log.debug(f"backed up {old.name}")
                for path in incoming:
                    # Listed before copying; restore skips names that never landed.
                    report.installed.append(path.name)
                    shutil.copy2(path, self.target_dir / path.name, follow_symlinks=False)
                    log.debug(f"installed {path.name}")
        except OSError as exc:
            if self.backup_dir.is_dir():
                self._write_manifest(report)
            raise LibraryIOError(
                f"swap into {self.target_dir} failed: {exc}",
                recovery_hint=f"inspect {self.backup_dir} before retrying",
            ) from exc
        self._write_manifest(report)
        return report

    def _write_manifest(self, report: SwapReport) -> None:
        manifest = SwapManifest(
            source_dir=str(self.source_dir),
            installed=report.installed,
            displaced=report.displaced,
            created_at=_utc_now(),
        )
        with self.manifest_path.open("w", encoding="utf-8") as fh:
            json.dump(manifest.model_dump(), fh, indent=2)
            fh.write("\n")

    def _read_manifest(self) -> SwapManifest | None:
        if not self.manifest_path.exists():
            return None
        try:
            with self.manifest_path.open("r", encoding="utf-8") as fh:
                return SwapManifest.model_validate(json.load(fh))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            log.warning(f"ignoring unreadable swap manifest {self.manifest_path}: {exc}")
            return None

    def restore(self) -> RestoreReport:
        """Move every backed-up file back and drop the backup area.

        Files the last swap installed are removed first unless a backed-up
        file of the same name replaces them.

        Raises:
            UsageError: Target directory is missing.
            NoBackupError: There is no backup directory.
            LibraryIOError: A move failed part-way.
        """
        if not self.target_dir.is_dir():
            raise UsageError(f"Target not found: {self.target_dir}")
        if not self.backup_dir.is_dir():
            raise NoBackupError(f"No backup directory: {self.backup_dir}")

        report = RestoreReport()
        entries = self._backup_entries()
        backed_up = {path.name for path in entries}
        manifest = self._read_manifest()
        try:
            if manifest is not None:
                for name in manifest.installed:
                    installed = self.target_dir / name
                    if name in backed_up or not (installed.exists() or installed.is_symlink()):
                        continue
                    installed.unlink()
                    report.removed.append(name)
            for path in entries:
                os.replace(path, self.target_dir / path.name)
                report.restored.append(path.name)
            if manifest is not None:
                self.manifest_path.unlink()
        except OSError as exc:
            raise LibraryIOError(
                f"restore into {self.target_dir} failed: {exc}",
                recovery_hint=f"move the remaining files out of {self.backup_dir} by hand",
            ) from exc
        try:
            self.backup_dir.rmdir()
            report.backup_removed = True
        except OSError:
            log.debug(f"left {self.backup_dir} in place (not empty)")
        return report


def swap(source_dir: Path, target_dir: Path, *, force: bool = False) -> SwapReport:
    """Swap libraries from ``source_dir`` into ``target_dir``."""
    return LibraryTransaction(target_dir, source_dir=source_dir).swap(force=force)


def restore(target_dir: Path) -> RestoreReport:
    """Undo the outstanding swap in ``target_dir``."""
    return LibraryTransaction(target_dir).restore()
