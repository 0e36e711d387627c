"""Compiler toolchain probing with cross-prefix alias materialization.

Downstream configure logic needs consistently named cross tools. The probe
runs once per pipeline and the resulting ``ToolchainDescriptor`` is the only
place the cross/native decision lives.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from . import log
from .errors import NoCompilerError
from .models import ToolchainSpec
from .result import StepOutcome

_EXECUTABLE_SUFFIXES = ("", ".exe")


@dataclass(frozen=True)
class ToolchainDescriptor:
    """Result of a toolchain probe.

    Attributes:
        cross_prefix: Prefix to hand to configure; empty for native builds.
        tools: Tool names that resolved on the search path.
        fallback: Cross tools were requested but only native ones exist.
        cc: C compiler name.
        cxx: C++ compiler name.
    """

    cross_prefix: str
    tools: tuple[str, ...]
    fallback: bool
    cc: str
    cxx: str

    @property
    def cross(self) -> bool:
        return bool(self.cross_prefix)


def _tool_file(bin_dir: Path, name: str) -> Path | None:
    for suffix in _EXECUTABLE_SUFFIXES:
        candidate = bin_dir / f"{name}{suffix}"
        if candidate.is_file() or candidate.is_symlink():
            return candidate
    return None


def link_or_copy(src: Path, dest: Path) -> None:
    """Create ``dest`` as a relative symlink to ``src``, copying on failure.

    Raises:
        OSError: Neither a symlink nor a copy could be created.
    """
    if dest.exists() or dest.is_symlink():
        return
    try:
        dest.symlink_to(src.name)
        return
    except (OSError, NotImplementedError):
        pass
    shutil.copy2(src, dest)


class ToolchainProbe:
    """Detect cross or native compiler tools for a host profile."""

    def __init__(self, spec: ToolchainSpec, *, search_path: str | None = None) -> None:
        self.spec = spec
        self._search_path = search_path
        self._descriptor: ToolchainDescriptor | None = None

    @property
    def bin_dir(self) -> Path | None:
        return Path(self.spec.bin_dir) if self.spec.bin_dir else None

    def _path(self) -> str | None:
        entries: list[str] = []
        if self.bin_dir is not None:
            entries.append(str(self.bin_dir))
        base = self._search_path if self._search_path is not None else os.environ.get("PATH")
        if base:
            entries.append(base)
        return os.pathsep.join(entries) if entries else None

    def _which(self, name: str) -> str | None:
        return shutil.which(name, path=self._path())

    def detect(
        self,
        candidate_tools: list[str] | None = None,
        cross_prefix: str | None = None,
    ) -> StepOutcome[list[str]]:
        """Materialize missing cross-prefixed aliases for native tools.

        Args:
            candidate_tools: Tool names to check; defaults to the profile list.
            cross_prefix: Prefix to check for; defaults to the profile prefix.

        Returns:
            Outcome whose value lists the aliases created. Alias failures are
            reported as ``alias`` warnings and leave the native name in use.
        """
        tools = list(candidate_tools or self.spec.tools)
        prefix = self.spec.cross_prefix if cross_prefix is None else cross_prefix
        outcome: StepOutcome[list[str]] = StepOutcome(value=[])
        bin_dir = self.bin_dir
        if not prefix or bin_dir is None or not self.spec.create_aliases:
            return outcome
        if not bin_dir.is_dir():
            log.debug(f"toolchain bin dir {bin_dir} not found; skipping aliases")
            return outcome
        for tool in tools:
            cross_name = f"{prefix}{tool}"
            if _tool_file(bin_dir, cross_name) is not None:
                continue
            native = _tool_file(bin_dir, tool)
            if native is None:
                continue
            alias = bin_dir / f"{cross_name}{native.suffix}"
            log.info(f"Creating alias: {alias.name} -> {native.name}")
            try:
                link_or_copy(native, alias)
            except OSError as exc:
                outcome.warn("alias", f"failed to create alias {alias.name}: {exc}")
                continue
            outcome.value.append(alias.name)
        self._descriptor = None
        return outcome

    def verify(self) -> ToolchainDescriptor:
        """Return the cached toolchain descriptor, probing on first use.

        Raises:
            NoCompilerError: No cross or native C compiler is available.
        """
        if self._descriptor is None:
            self._descriptor = self._probe()
        return self._descriptor

    def _resolved(self, prefix: str) -> tuple[str, ...]:
        names = (f"{prefix}{tool}" for tool in self.spec.tools)
        return tuple(name for name in names if self._which(name))

    def _probe(self) -> ToolchainDescriptor:
        prefix = self.spec.cross_prefix
        if prefix and all(
            self._which(f"{prefix}{tool}") for tool in self.spec.required_cross_tools
        ):
            log.success(f"Cross-compilation toolchain ready ({prefix})")
            return ToolchainDescriptor(
                cross_prefix=prefix,
                tools=self._resolved(prefix),
                fallback=False,
                cc=f"{prefix}{self.spec.native_cc}",
                cxx=f"{prefix}{self.spec.native_cxx}",
            )
        if self._which(self.spec.native_cc):
            return ToolchainDescriptor(
                cross_prefix="",
                tools=self._resolved(""),
                fallback=bool(prefix),
                cc=self.spec.native_cc,
                cxx=self.spec.native_cxx,
            )
        raise NoCompilerError(
            "no suitable compiler found",
            recovery_hint=f"install {self.spec.native_cc} or a {prefix or 'native'} toolchain",
        )
