"""Host environment checks and pluggable dependency provisioning.

The pipeline itself is host-agnostic; one ``EnvironmentProvisioner`` is
selected from the profile at startup.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Protocol

from . import exec as exec_util
from . import log
from .errors import ProvisionError
from .models import ProvisionSpec
from .result import StepOutcome

OS_RELEASE_PATH = Path("/etc/os-release")


def read_os_release(path: Path = OS_RELEASE_PATH) -> dict[str, str] | None:
    """Parse an ``os-release`` file into a dict, or ``None`` if unreadable.

    Example:
        >>> read_os_release(Path("/nonexistent/os-release")) is None
        True
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return None
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def check_os_id(
    outcome: StepOutcome[object], expected: str, *, os_release: Path = OS_RELEASE_PATH
) -> None:
    """Warn when the host is not the expected distribution."""
    release = read_os_release(os_release)
    if release is None:
        outcome.warn(
            "environment",
            f"{os_release} not found; cannot confirm a {expected} host",
        )
        return
    if release.get("ID", "").lower() != expected.lower():
        outcome.warn(
            "environment",
            f"this build is intended for {expected} hosts (found {release.get('ID') or 'unknown'})",
        )


def is_msys(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return bool(env.get("MSYSTEM")) or env.get("OSTYPE", "").lower() in {"msys", "cygwin"}


class EnvironmentProvisioner(Protocol):
    """Capability that checks the host and installs build dependencies."""

    name: str

    def provision(self) -> StepOutcome[list[str]]: ...


class NullProvisioner:
    """Provisioner for hosts that are managed by hand."""

    name = "none"

    def provision(self) -> StepOutcome[list[str]]:
        log.debug("host provisioning disabled")
        return StepOutcome(value=[])


class AptProvisioner:
    """Ubuntu host check; missing ``dpkg`` packages are reported, not installed."""

    name = "apt"

    def __init__(
        self,
        packages: list[str],
        *,
        expected_os_id: str | None = "ubuntu",
        os_release: Path = OS_RELEASE_PATH,
        runner: exec_util.CommandRunner | None = None,
    ) -> None:
        self.packages = packages
        self.expected_os_id = expected_os_id
        self.os_release = os_release
        self.runner = runner

    def _installed(self, package: str) -> bool | None:
        result = exec_util.run_with_runner(
            exec_util.CommandRequest(argv=("dpkg", "-s", package)), runner=self.runner
        )
        if result is None:
            return None
        return result.ok

    def provision(self) -> StepOutcome[list[str]]:
        outcome: StepOutcome[list[str]] = StepOutcome(value=[])
        if self.expected_os_id:
            check_os_id(outcome, self.expected_os_id, os_release=self.os_release)
        missing: list[str] = []
        for package in self.packages:
            installed = self._installed(package)
            if installed is None:
                outcome.warn("provision", "dpkg not available; skipping package checks")
                return outcome
            if not installed:
                missing.append(package)
        if missing:
            outcome.warn(
                "provision",
                "missing packages: "
                f"{' '.join(missing)} (install with: sudo apt-get install {' '.join(missing)})",
            )
        else:
            log.success("All dependencies are already installed.")
        outcome.value = missing
        return outcome


class PacmanProvisioner:
    """MSYS2 provisioner that installs missing packages with ``pacman``."""

    name = "pacman"

    def __init__(
        self,
        packages: list[str],
        *,
        environ: Mapping[str, str] | None = None,
        runner: exec_util.CommandRunner | None = None,
    ) -> None:
        self.packages = packages
        self.environ = environ
        self.runner = runner

    def _query(self, package: str) -> bool:
        result = exec_util.run_with_runner(
            exec_util.CommandRequest(argv=("pacman", "-Qi", package)), runner=self.runner
        )
        if result is None:
            raise ProvisionError(
                "missing required command: pacman",
                recovery_hint=(
                    "run the build from an MSYS2 MinGW-w64 shell or pass --skip-provision"
                ),
            )
        return result.ok

    def provision(self) -> StepOutcome[list[str]]:
        outcome: StepOutcome[list[str]] = StepOutcome(value=[])
        if not is_msys(self.environ):
            outcome.warn(
                "environment", "this build is designed for the MSYS2 environment on Windows"
            )
        log.info("Checking and installing dependencies...")
        missing = [package for package in self.packages if not self._query(package)]
        if not missing:
            log.success("All dependencies are already installed.")
            return outcome
        log.info(f"Installing missing packages: {' '.join(missing)}")
        try:
            exec_util.run_checked(
                exec_util.CommandRequest(
                    argv=("pacman", "-S", "--needed", "--noconfirm", *missing),
                    capture_output=False,
                ),
                runner=self.runner,
            )
        except exec_util.CommandExecutionError as exc:
            raise ProvisionError(
                f"failed to install dependencies: {exc}",
                recovery_hint="run as administrator or install the packages manually",
            ) from exc
        outcome.value = missing
        return outcome


def select_provisioner(
    spec: ProvisionSpec,
    *,
    enabled: bool = True,
    runner: exec_util.CommandRunner | None = None,
) -> EnvironmentProvisioner:
    """Pick the provisioner variant for a profile."""
    if not enabled or spec.manager == "none":
        return NullProvisioner()
    if spec.manager == "apt":
        return AptProvisioner(
            list(spec.packages), expected_os_id=spec.expected_os_id, runner=runner
        )
    return PacmanProvisioner(list(spec.packages), runner=runner)
