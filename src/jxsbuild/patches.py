"""Ordered patch-set application onto the framework working tree."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from . import exec as exec_util
from . import git
from . import log
from .errors import PatchApplyError
from .result import StepOutcome

PATCH_SUFFIX = ".patch"
OFFICIAL_RANK = 0
USER_RANK = 10


@dataclass(frozen=True)
class PatchSet:
    """A directory of unified-diff patches applied together.

    Attributes:
        name: Label used in logs and errors.
        directory: Directory holding ``*.patch`` files.
        rank: Application order; lower ranks apply first.
    """

    name: str
    directory: Path
    rank: int

    def patches(self) -> list[Path]:
        """Return patch files in lexical order, or ``[]`` if there are none."""
        if not self.directory.is_dir():
            return []
        return sorted(
            path
            for path in self.directory.iterdir()
            if path.suffix == PATCH_SUFFIX and path.is_file()
        )


def official_patch_set(directory: Path) -> PatchSet:
    return PatchSet(name="plugin-integration", directory=directory, rank=OFFICIAL_RANK)


def user_patch_set(directory: Path) -> PatchSet:
    return PatchSet(name="user", directory=directory, rank=USER_RANK)


class PatchApplier:
    """Apply patch sets to a git working tree with ``git am``."""

    def __init__(
        self,
        repo_dir: Path,
        *,
        runner: exec_util.CommandRunner | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.repo_dir = repo_dir
        self.runner = runner
        self.env = env

    def apply(self, patch_sets: Iterable[PatchSet]) -> StepOutcome[list[Path]]:
        """Apply every patch set in rank order.

        Empty or missing patch directories are skipped. The first failing
        patch stops everything; the working tree is left as ``git am`` left
        it so the conflict can be inspected.

        Raises:
            PatchApplyError: A patch did not apply.
        """
        outcome: StepOutcome[list[Path]] = StepOutcome(value=[])
        for patch_set in sorted(patch_sets, key=lambda item: item.rank):
            patches = patch_set.patches()
            if not patches:
                log.info(f"No {patch_set.name} patches in {patch_set.directory}; skipping")
                continue
            log.info(
                f"Applying {len(patches)} {patch_set.name} patch(es) from {patch_set.directory}"
            )
            for patch in patches:
                result = git.git_am(self.repo_dir, patch, runner=self.runner, env=self.env)
                if not result.ok:
                    detail = (result.stderr or result.stdout).strip()
                    message = f"failed to apply {patch_set.name} patch {patch.name}"
                    if detail:
                        message = f"{message}\n{detail}"
                    raise PatchApplyError(
                        message,
                        patch_set=patch_set.name,
                        patch=str(patch),
                        recovery_hint=(
                            f"resolve the conflict in {self.repo_dir} "
                            "(git am --continue or git am --abort) and rerun"
                        ),
                    )
                log.debug(f"applied {patch.name}")
                outcome.value.append(patch)
            log.success(f"{patch_set.name} patches applied")
        return outcome
