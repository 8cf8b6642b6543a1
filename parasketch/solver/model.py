"""Core data structures for the solver pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Dict, Tuple

from ..constraints import EntityId


class ResidualShapeError(RuntimeError):
    """Raised when a perturbed evaluation yields a different number of residual rows."""


@dataclass(frozen=True)
class SolveResult:
    """Outcome of one solve; ``kind`` is the serialisation tag."""

    kind: ClassVar[str] = ""

    @property
    def converged(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind}
        data.update(asdict(self))
        return data


@dataclass(frozen=True)
class FullyConstrained(SolveResult):
    """All constraints satisfied and no degrees of freedom remain."""

    kind: ClassVar[str] = "fully_constrained"


@dataclass(frozen=True)
class UnderConstrained(SolveResult):
    """Constraints satisfied with ``dof`` degrees of freedom left."""

    kind: ClassVar[str] = "under_constrained"

    dof: int


@dataclass(frozen=True)
class OverConstrained(SolveResult):
    """Conflicting constraints.  Declared for callers; the Newton driver never returns it."""

    kind: ClassVar[str] = "over_constrained"

    conflicts: Tuple[EntityId, ...] = ()


@dataclass(frozen=True)
class Failed(SolveResult):
    kind: ClassVar[str] = "failed"

    reason: str

    @property
    def converged(self) -> bool:
        return False


@dataclass
class SolveOptions:
    """Solver options.

    ``damping`` is clamped to ``[0.1, 1.0]`` when a solver is built from
    these options.
    """

    tolerance: float = 1e-4
    max_iterations: int = 200
    damping: float = 0.8
    regularization: float = 1e-6
    pivot_tolerance: float = 1e-12
    fd_step: float = 1e-5


@dataclass(frozen=True)
class ResidualEntry:
    """Residual rows emitted by one constraint for the current configuration."""

    constraint_id: EntityId
    type_name: str
    values: Tuple[float, ...]

    @property
    def resolved(self) -> bool:
        return bool(self.values)

    @property
    def max_abs(self) -> float:
        return max((abs(v) for v in self.values), default=0.0)


__all__ = [
    "Failed",
    "FullyConstrained",
    "OverConstrained",
    "ResidualEntry",
    "ResidualShapeError",
    "SolveOptions",
    "SolveResult",
    "UnderConstrained",
]
