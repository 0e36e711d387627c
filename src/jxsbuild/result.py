"""Outcome contracts that carry non-fatal warnings alongside a value."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Literal, TypeVar

from . import log

WarningKind = Literal[
    "abort",
    "alias",
    "configure",
    "environment",
    "fetch",
    "provision",
    "reset",
    "toolchain",
]

T = TypeVar("T")


@dataclass(frozen=True)
class StepWarning:
    """A non-fatal condition observed while running a step.

    Args:
        kind: Stable warning category for callers and tests.
        message: Human-readable summary.
    """

    kind: WarningKind
    message: str


@dataclass
class StepOutcome(Generic[T]):
    """Successful step result plus any warnings raised on the way.

    Args:
        value: Typed payload returned by the step.
        warnings: Non-fatal conditions, in the order they occurred.
    """

    value: T
    warnings: list[StepWarning] = field(default_factory=list)

    def warn(self, kind: WarningKind, message: str) -> None:
        """Record and log a warning."""
        self.warnings.append(StepWarning(kind=kind, message=message))
        log.warning(message)

    def extend(self, other: "StepOutcome[object]") -> None:
        """Adopt warnings already logged by a nested step."""
        self.warnings.extend(other.warnings)

    def kinds(self) -> list[WarningKind]:
        return [item.kind for item in self.warnings]
