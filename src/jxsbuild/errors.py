"""Build failure contracts.

Components return typed outcomes on success and raise ``BuildFailure`` on
expected failures. Non-fatal conditions are reported as warnings on the
outcome instead (see ``jxsbuild.result``). Programmer bugs raise normal
exceptions.
"""

from __future__ import annotations

from typing import Literal

BuildFailureCode = Literal[
    "usage",
    "config_invalid",
    "provision_failed",
    "clone_failed",
    "checkout_failed",
    "clean_failed",
    "no_compiler",
    "dependency_build_failed",
    "plugin_copy_failed",
    "patch_apply_failed",
    "configure_failed",
    "compile_failed",
    "install_failed",
    "no_backup",
    "outstanding_backup",
    "launch_failed",
    "io_failed",
]


class BuildFailure(Exception):
    """Expected fatal failure of a build step or utility.

    Use ``raise BuildFailure(...) from exc`` to chain a causing exception.
    The CLI catches ``BuildFailure``, reports it, and exits non-zero.
    """

    def __init__(
        self,
        code: BuildFailureCode,
        message: str,
        *,
        stage: str | None = None,
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.stage = stage
        self.recovery_hint = recovery_hint


class UsageError(BuildFailure):
    """Bad command-line invocation."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("usage", message, recovery_hint=recovery_hint)


class ConfigError(BuildFailure):
    """Configuration file could not be read or validated."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("config_invalid", message, recovery_hint=recovery_hint)


class ProvisionError(BuildFailure):
    """Host dependencies could not be installed."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__(
            "provision_failed", message, stage="provision", recovery_hint=recovery_hint
        )


class CloneError(BuildFailure):
    """A tracked repository could not be cloned."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__(
            "clone_failed", message, stage="ensure-repositories", recovery_hint=recovery_hint
        )


class CheckoutError(BuildFailure):
    """A tracked repository could not be switched to its target ref."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__(
            "checkout_failed", message, stage="reset-repositories", recovery_hint=recovery_hint
        )


class CleanError(BuildFailure):
    """Untracked files could not be removed from a working tree."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__(
            "clean_failed", message, stage="reset-repositories", recovery_hint=recovery_hint
        )


class NoCompilerError(BuildFailure):
    """Neither a cross nor a native compiler is available."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__(
            "no_compiler", message, stage="detect-toolchain", recovery_hint=recovery_hint
        )


class DependencyBuildError(BuildFailure):
    """The codec dependency library failed to build or install."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__(
            "dependency_build_failed",
            message,
            stage="build-dependency",
            recovery_hint=recovery_hint,
        )


class PluginCopyError(BuildFailure):
    """Plugin source files could not be staged into the framework tree."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__(
            "plugin_copy_failed", message, stage="copy-plugin", recovery_hint=recovery_hint
        )


class PatchApplyError(BuildFailure):
    """A patch in a patch set failed to apply."""

    def __init__(
        self,
        message: str,
        *,
        patch_set: str,
        patch: str,
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__(
            "patch_apply_failed", message, stage="apply-patches", recovery_hint=recovery_hint
        )
        self.patch_set = patch_set
        self.patch = patch


class ConfigureError(BuildFailure):
    """The framework configure step failed, including its retry."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__(
            "configure_failed", message, stage="configure", recovery_hint=recovery_hint
        )


class CompileError(BuildFailure):
    """Compilation failed."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("compile_failed", message, stage="compile", recovery_hint=recovery_hint)


class InstallError(BuildFailure):
    """Installation of the built framework failed."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("install_failed", message, stage="install", recovery_hint=recovery_hint)


class NoBackupError(BuildFailure):
    """Restore was requested but no backup directory exists."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("no_backup", message, recovery_hint=recovery_hint)


class OutstandingBackupError(BuildFailure):
    """Swap was requested while a previous swap is still unrestored."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("outstanding_backup", message, recovery_hint=recovery_hint)


class LaunchError(BuildFailure):
    """The installed program could not be launched."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("launch_failed", message, recovery_hint=recovery_hint)


class LibraryIOError(BuildFailure):
    """A file move or copy failed during a library swap or restore."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("io_failed", message, recovery_hint=recovery_hint)
