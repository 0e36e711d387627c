"""Repository state normalization: clone once, then reset to a known ref."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from . import exec as exec_util
from . import git
from . import log
from .errors import CheckoutError, CleanError, CloneError
from .models import RepositorySpec
from .result import StepOutcome


@dataclass
class RepositoryState:
    """One external source tree tracked against a remote and a target ref.

    Attributes:
        spec: Remote URL, target ref and naming for the repository.
        path: Local working tree location.
        runner: Optional command runner override (tests inject fakes).
    """

    spec: RepositorySpec
    path: Path
    runner: exec_util.CommandRunner | None = None

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def present(self) -> bool:
        return self.path.exists()

    def ensure(self) -> StepOutcome[bool]:
        """Clone the repository if its path is absent.

        Returns:
            Outcome whose value is ``True`` when a clone happened. An existing
            path is accepted as-is, whatever it contains.

        Raises:
            CloneError: The clone command failed.
        """
        if self.present:
            log.info(f"{self.name} directory already exists")
            return StepOutcome(value=False)
        log.info(f"Cloning {self.name} into {self.path}...")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        result = git.git_clone(self.spec.url, self.path, runner=self.runner)
        if not result.ok:
            raise CloneError(
                f"failed to clone {self.name} from {self.spec.url}",
                recovery_hint="check network access and the repository URL",
            )
        log.success(f"{self.name} cloned successfully")
        return StepOutcome(value=True)

    def reset(self) -> StepOutcome[str | None]:
        """Bring the working tree to a clean state at the target ref.

        Returns:
            Outcome carrying the resulting ``HEAD`` commit (``None`` if it
            cannot be resolved) and any non-fatal warnings.

        Raises:
            CheckoutError: The target branch could not be checked out.
            CleanError: Untracked files could not be removed.
        """
        outcome: StepOutcome[str | None] = StepOutcome(value=None)
        self._abort_in_progress(outcome)

        log.info(f"Fetching latest changes for {self.name}...")
        fetch = git.git_fetch_all(self.path, runner=self.runner)
        if not fetch.ok:
            outcome.warn(
                "fetch",
                f"{self.name}: failed to fetch remote changes; continuing with local state",
            )

        if self.spec.checkout:
            self._checkout_target()

        self._hard_reset(outcome)

        clean = git.git_clean(self.path, runner=self.runner)
        if not clean.ok:
            raise CleanError(
                f"failed to clean {self.name} working tree at {self.path}",
                recovery_hint="remove the untracked files by hand and rerun",
            )

        outcome.value = git.git_rev_parse(self.path, "HEAD", runner=self.runner)
        log.success(f"Repository {self.name} reset successfully")
        return outcome

    def _abort_in_progress(self, outcome: StepOutcome[str | None]) -> None:
        markers = git.git_in_progress_markers(self.path, runner=self.runner)
        if not markers:
            return
        outcome.warn(
            "abort",
            f"{self.name}: ongoing git operation detected ({', '.join(markers)}); aborting",
        )
        # Only one of these is active; the others fail harmlessly.
        for abort in git.ABORT_COMMANDS:
            git.git_run(self.path, abort, runner=self.runner)

    def _checkout_target(self) -> None:
        ref = self.spec.ref
        if git.git_current_branch(self.path, runner=self.runner) == ref:
            return
        log.info(f"Checking out {self.name} {ref}...")
        result = git.git_checkout(self.path, ref, runner=self.runner)
        if not result.ok:
            raise CheckoutError(
                f"failed to checkout {self.name} {ref}",
                recovery_hint=f"make sure {self.spec.remote_ref} exists in {self.path}",
            )

    def _hard_reset(self, outcome: StepOutcome[str | None]) -> str:
        target = self.spec.remote_ref
        log.info(f"Resetting {self.name} to {target}")
        if git.git_reset_hard(self.path, target, runner=self.runner).ok:
            return target

        candidates: list[str] = []
        if self.spec.fallback_depth > 0:
            candidates.append(f"HEAD~{self.spec.fallback_depth}")
        candidates.append("HEAD")
        for candidate in candidates:
            outcome.warn(
                "reset",
                f"{self.name}: failed to reset to {target}; trying {candidate}",
            )
            if git.git_reset_hard(self.path, candidate, runner=self.runner).ok:
                return candidate
            target = candidate
        raise CleanError(
            f"failed to reset {self.name} working tree at {self.path}",
            recovery_hint="inspect the repository state with git status",
        )
