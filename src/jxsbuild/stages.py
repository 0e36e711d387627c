"""Build stages composed by the pipeline.

Stages extend ``BuildStage`` and implement ``_run(context)``. They raise
``BuildFailure`` on expected errors. ``__call__`` catches ``BuildFailure``
and invokes ``_handle_failure``; the default tags the failure with the stage
name and re-raises. ``ConfigureStage`` overrides it for its single retry.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, ClassVar

from . import exec as exec_util
from . import log
from .config import BuildEnvironment, BuildSettings
from .errors import (
    BuildFailure,
    CompileError,
    ConfigureError,
    DependencyBuildError,
    InstallError,
    PluginCopyError,
)
from .patches import PatchApplier, official_patch_set, user_patch_set
from .repository import RepositoryState
from .result import StepOutcome
from .toolchain import ToolchainDescriptor, ToolchainProbe

TARGET_FLAG_PREFIXES = ("--cross-prefix=", "--cc=", "--cxx=", "--arch=", "--target-os=")


@dataclass
class StageContext:
    """State shared by the stages of one pipeline run."""

    settings: BuildSettings
    environment: BuildEnvironment
    runner: exec_util.CommandRunner | None = None
    toolchain: ToolchainDescriptor | None = None

    def repositories(self) -> list[RepositoryState]:
        return [
            RepositoryState(spec=spec, path=self.settings.repository_dir(spec), runner=self.runner)
            for spec in self.settings.repositories
        ]


def run_stage_command(
    context: StageContext,
    argv: list[str],
    *,
    cwd: Path,
    failure: Callable[[str], BuildFailure],
) -> None:
    """Run one external command with output streamed to the terminal."""
    request = exec_util.CommandRequest(
        argv=tuple(argv),
        cwd=cwd,
        env=context.environment.variables,
        capture_output=False,
    )
    try:
        exec_util.run_checked(request, runner=context.runner)
    except exec_util.CommandExecutionError as exc:
        raise failure(str(exc)) from exc


class BuildStage(ABC):
    """Abstract base for one atomic pipeline stage."""

    name: ClassVar[str]

    def __call__(self, context: StageContext) -> StepOutcome[object]:
        try:
            return self._run(context)
        except BuildFailure as failure:
            return self._handle_failure(context, failure)

    @abstractmethod
    def _run(self, context: StageContext) -> StepOutcome[object]:
        """Execute the stage. Raise BuildFailure on expected errors."""
        ...

    def _handle_failure(self, context: StageContext, failure: BuildFailure) -> StepOutcome[object]:
        """Handle BuildFailure. Default tags the stage and re-raises."""
        if failure.stage is None:
            failure.stage = self.name
        raise failure


class EnsureRepositoriesStage(BuildStage):
    name = "ensure-repositories"

    def _run(self, context: StageContext) -> StepOutcome[object]:
        outcome: StepOutcome[object] = StepOutcome(value=[])
        for repository in context.repositories():
            cloned = repository.ensure()
            if cloned.value:
                outcome.value.append(repository.name)
        return outcome


class ResetRepositoriesStage(BuildStage):
    name = "reset-repositories"

    def _run(self, context: StageContext) -> StepOutcome[object]:
        outcome: StepOutcome[object] = StepOutcome(value={})
        for repository in context.repositories():
            reset = repository.reset()
            outcome.extend(reset)
            outcome.value[repository.name] = reset.value
        return outcome


class BuildDependencyStage(BuildStage):
    name = "build-dependency"

    def _run(self, context: StageContext) -> StepOutcome[object]:
        settings = context.settings
        spec = settings.profile.dependency_build
        cwd = settings.dependency_dir / spec.cwd
        if not cwd.is_dir():
            raise DependencyBuildError(f"dependency build directory not found: {cwd}")
        log.info(f"Building {settings.profile.dependency.name} into {settings.install_dir}...")
        for command in spec.commands:
            argv = [settings.render(part) for part in command]
            run_stage_command(context, argv, cwd=cwd, failure=DependencyBuildError)
        log.success(f"{settings.profile.dependency.name} built and installed successfully")
        return StepOutcome(value=None)


class CopyPluginStage(BuildStage):
    name = "copy-plugin"

    def _run(self, context: StageContext) -> StepOutcome[object]:
        settings = context.settings
        plugin = settings.profile.plugin
        source_dir = settings.dependency_dir / plugin.source_dir
        destination = settings.framework_dir / plugin.destination
        if not source_dir.is_dir():
            raise PluginCopyError(f"plugin directory not found: {source_dir}")
        if not destination.is_dir():
            raise PluginCopyError(f"plugin destination not found: {destination}")
        files = sorted(path for path in source_dir.glob(plugin.pattern) if path.is_file())
        if not files:
            raise PluginCopyError(f"no plugin files matching {plugin.pattern} in {source_dir}")
        log.info(f"Copying {len(files)} plugin file(s) into {destination}...")
        copied: list[str] = []
        for path in files:
            try:
                shutil.copy2(path, destination / path.name)
            except OSError as exc:
                raise PluginCopyError(f"failed to copy {path.name}: {exc}") from exc
            copied.append(path.name)
        log.success("Plugin files copied successfully")
        return StepOutcome(value=copied)


class ApplyPatchesStage(BuildStage):
    name = "apply-patches"

    def _run(self, context: StageContext) -> StepOutcome[object]:
        settings = context.settings
        plugin = settings.profile.plugin
        patch_sets = [
            official_patch_set(settings.dependency_dir / plugin.source_dir / plugin.patches_subdir),
            user_patch_set(settings.patches_dir),
        ]
        applier = PatchApplier(
            settings.framework_dir, runner=context.runner, env=context.environment.variables
        )
        applied = applier.apply(patch_sets)
        return StepOutcome(value=[path.name for path in applied.value])


class DetectToolchainStage(BuildStage):
    name = "detect-toolchain"

    def _run(self, context: StageContext) -> StepOutcome[object]:
        probe = ToolchainProbe(
            context.settings.profile.toolchain,
            search_path=context.environment.get("PATH"),
        )
        outcome: StepOutcome[object] = StepOutcome(value=None)
        outcome.extend(probe.detect())
        descriptor = probe.verify()
        if descriptor.fallback:
            outcome.warn("toolchain", "Cross-compilation tools not available, using native tools")
        context.toolchain = descriptor
        outcome.value = descriptor
        return outcome


def configure_arguments(settings: BuildSettings, toolchain: ToolchainDescriptor) -> list[str]:
    """Full configure argument list for the detected toolchain."""
    spec = settings.profile.configure
    args = [settings.render(flag) for flag in (*spec.flags, *spec.arch_flags)]
    args.extend(settings.render(flag) for flag in settings.extra_configure_flags)
    if toolchain.cross:
        args.append(f"--cross-prefix={toolchain.cross_prefix}")
    else:
        args.extend([f"--cc={toolchain.cc}", f"--cxx={toolchain.cxx}"])
    return args


def reduced_configure_arguments(settings: BuildSettings) -> list[str]:
    """Cross-compilation agnostic configure arguments used for the retry."""
    spec = settings.profile.configure
    args = [settings.render(flag) for flag in spec.flags]
    args.extend(settings.render(flag) for flag in settings.extra_configure_flags)
    return [arg for arg in args if not arg.startswith(TARGET_FLAG_PREFIXES)]


class ConfigureStage(BuildStage):
    name = "configure"

    def _configure(self, context: StageContext, args: list[str]) -> None:
        settings = context.settings
        log.info(f"{settings.profile.framework.name} configure arguments: {' '.join(args)}")
        run_stage_command(
            context,
            [settings.profile.configure.script, *args],
            cwd=settings.framework_dir,
            failure=ConfigureError,
        )

    def _run(self, context: StageContext) -> StepOutcome[object]:
        if context.toolchain is None:
            raise ConfigureError("toolchain has not been detected")
        args = configure_arguments(context.settings, context.toolchain)
        self._configure(context, args)
        log.success("Configured successfully")
        return StepOutcome(value=args)

    def _handle_failure(self, context: StageContext, failure: BuildFailure) -> StepOutcome[object]:
        if not isinstance(failure, ConfigureError) or context.toolchain is None:
            return super()._handle_failure(context, failure)
        outcome: StepOutcome[object] = StepOutcome(value=None)
        outcome.warn(
            "configure",
            f"configuration failed; retrying without cross-compilation\n{failure.message}",
        )
        args = reduced_configure_arguments(context.settings)
        try:
            self._configure(context, args)
        except ConfigureError as retry_failure:
            raise ConfigureError(
                f"fallback configuration also failed\n{retry_failure.message}",
                recovery_hint="inspect ffbuild/config.log in the framework tree",
            ) from failure
        log.success("Configured successfully with fallback arguments")
        outcome.value = args
        return outcome


class CompileStage(BuildStage):
    name = "compile"

    def _run(self, context: StageContext) -> StepOutcome[object]:
        settings = context.settings
        log.info(f"Building {settings.profile.framework.name} (this may take a while)...")
        run_stage_command(
            context,
            ["make", f"-j{settings.jobs}"],
            cwd=settings.framework_dir,
            failure=CompileError,
        )
        log.success(f"{settings.profile.framework.name} built successfully")
        return StepOutcome(value=None)


class InstallStage(BuildStage):
    name = "install"

    def _run(self, context: StageContext) -> StepOutcome[object]:
        settings = context.settings
        log.info(f"Installing {settings.profile.framework.name}...")
        run_stage_command(
            context, ["make", "install"], cwd=settings.framework_dir, failure=InstallError
        )
        return StepOutcome(value=str(settings.install_dir))


def default_stages() -> list[BuildStage]:
    """Return the fixed stage sequence."""
    return [
        EnsureRepositoriesStage(),
        ResetRepositoriesStage(),
        BuildDependencyStage(),
        CopyPluginStage(),
        ApplyPatchesStage(),
        DetectToolchainStage(),
        ConfigureStage(),
        CompileStage(),
        InstallStage(),
    ]
