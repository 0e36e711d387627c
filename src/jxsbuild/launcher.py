"""Run the installed program against the freshly built libraries."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Mapping, NoReturn

from . import exec as exec_util
from . import log, paths
from .config import prepend_search_path
from .environment import check_os_id
from .errors import LaunchError
from .result import StepOutcome

Exec = Callable[[str, list[str], dict[str, str]], NoReturn]


def launch_environment(install_dir: Path, base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return ``base`` with the install library dir prepended to ``LD_LIBRARY_PATH``."""
    env = dict(os.environ if base is None else base)
    env["LD_LIBRARY_PATH"] = prepend_search_path(
        paths.install_lib_dir(install_dir).as_posix(), env.get("LD_LIBRARY_PATH")
    )
    return env


def launch(
    install_dir: Path,
    program: str,
    args: list[str],
    *,
    expected_os_id: str | None = "ubuntu",
    base_env: Mapping[str, str] | None = None,
    execve: Exec = os.execve,
) -> NoReturn:
    """Replace the current process with ``<install_dir>/bin/<program> args``.

    Raises:
        LaunchError: The program is missing or not executable.
    """
    if expected_os_id:
        check_os_id(StepOutcome(value=None), expected_os_id)
    env = launch_environment(install_dir, base_env)
    log.info(f"LD_LIBRARY_PATH set to: {env['LD_LIBRARY_PATH']}")
    binary = paths.install_bin_dir(install_dir) / program
    if not (binary.is_file() and os.access(binary, os.X_OK)):
        raise LaunchError(
            f"{program} executable not found: {binary}",
            recovery_hint="run `jxsbuild build` first",
        )
    argv = [str(binary), *args]
    log.info(f"Executing: {exec_util.format_argv(argv)}")
    execve(str(binary), argv, env)
