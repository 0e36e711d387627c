"""Build pipeline orchestration.

The pipeline drives a fixed, strictly sequential list of stages. It halts
at the first fatal failure and never rolls back completed stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from . import exec as exec_util
from . import log, paths
from .config import BuildEnvironment, BuildSettings, build_environment
from .environment import EnvironmentProvisioner, select_provisioner
from .errors import BuildFailure, ConfigError
from .result import StepWarning
from .stages import BuildStage, StageContext, default_stages
from .toolchain import ToolchainDescriptor


@dataclass
class PipelineReport:
    """What a pipeline run did, for summaries and tests."""

    completed: list[str] = field(default_factory=list)
    warnings: list[StepWarning] = field(default_factory=list)
    failed_stage: str | None = None
    toolchain: ToolchainDescriptor | None = None

    @property
    def last_completed(self) -> str | None:
        return self.completed[-1] if self.completed else None

    @property
    def succeeded(self) -> bool:
        return self.failed_stage is None


class Pipeline:
    """Prepare repositories, patch, configure, compile and install."""

    def __init__(
        self,
        settings: BuildSettings,
        *,
        environment: BuildEnvironment | None = None,
        runner: exec_util.CommandRunner | None = None,
        provisioner: EnvironmentProvisioner | None = None,
        stages: list[BuildStage] | None = None,
    ) -> None:
        self.settings = settings
        self.environment = environment or build_environment(settings)
        self.runner = runner
        self.provisioner = provisioner or select_provisioner(
            settings.profile.provision, enabled=settings.provision, runner=runner
        )
        self.stages = stages if stages is not None else default_stages()
        self.report = PipelineReport()

    def _prepare(self) -> None:
        settings = self.settings
        log.info("Build directories:")
        log.info(f"  - Patches: {settings.patches_dir}")
        log.info(f"  - Install: {settings.install_dir}")
        for spec in settings.repositories:
            log.info(f"  - {spec.name}: {settings.repository_dir(spec)}")
        provisioned = self.provisioner.provision()
        self.report.warnings.extend(provisioned.warnings)
        if not settings.install_dir.is_dir():
            log.info(f"Creating install directory: {settings.install_dir}")
            try:
                settings.install_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ConfigError(f"failed to create install directory: {exc}") from exc

    def run(self) -> PipelineReport:
        """Run every stage in order.

        Returns:
            The run report; ``report.succeeded`` is always ``True`` here.

        Raises:
            BuildFailure: The first fatal failure, tagged with its stage.
                ``self.report`` names the failing and last completed stages.
        """
        log.info(
            f"Starting {self.settings.profile.framework.name} build with "
            f"{self.settings.profile.dependency.name} ({self.settings.profile.name} profile)..."
        )
        context = StageContext(
            settings=self.settings, environment=self.environment, runner=self.runner
        )
        try:
            self._prepare()
        except BuildFailure as failure:
            self._fail(failure.stage or "prepare", failure)
            raise
        total = len(self.stages)
        for index, stage in enumerate(self.stages, start=1):
            log.stage(index, total, stage.name)
            try:
                outcome = stage(context)
            except BuildFailure as failure:
                self._fail(stage.name, failure)
                raise
            self.report.warnings.extend(outcome.warnings)
            self.report.completed.append(stage.name)
        self.report.toolchain = context.toolchain
        self._summarize()
        return self.report

    def _fail(self, stage: str, failure: BuildFailure) -> None:
        if failure.stage is None:
            failure.stage = stage
        self.report.failed_stage = stage
        log.stage_failure(stage, failure.message, last_completed=self.report.last_completed)
        if failure.recovery_hint:
            log.info(f"hint: {failure.recovery_hint}")

    def _summarize(self) -> None:
        settings = self.settings
        log.success("Build completed successfully!")
        log.info(
            f"{settings.profile.framework.name} with {settings.profile.dependency.name} "
            f"support installed to: {settings.install_dir}"
        )
        log.info(f"Add {paths.install_bin_dir(settings.install_dir)} to your PATH to use it")
        if self.report.warnings:
            log.warning(f"{len(self.report.warnings)} warning(s) during the build")
