from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Optional

import numpy as np

from ..sketch import Sketch
from .config import get_default_solve_options
from .jacobian import build_jacobian
from .linalg import solve_normal_equations
from .model import (
    Failed,
    FullyConstrained,
    ResidualShapeError,
    SolveOptions,
    SolveResult,
    UnderConstrained,
)
from .residuals import evaluate_residuals
from .variables import VariableMap

logger = logging.getLogger(__name__)

MIN_DAMPING = 0.1
MAX_DAMPING = 1.0


def _clamp_damping(value: float) -> float:
    return min(max(float(value), MIN_DAMPING), MAX_DAMPING)


def _checked_options(options: SolveOptions) -> SolveOptions:
    if not options.tolerance > 0.0:
        raise ValueError(f"tolerance must be positive, got {options.tolerance!r}")
    if int(options.max_iterations) < 0:
        raise ValueError(f"max_iterations must be non-negative, got {options.max_iterations!r}")
    if not math.isfinite(options.damping):
        raise ValueError(f"damping must be finite, got {options.damping!r}")
    if not options.fd_step > 0.0:
        raise ValueError(f"fd_step must be positive, got {options.fd_step!r}")
    if options.regularization < 0.0:
        raise ValueError(f"regularization must be non-negative, got {options.regularization!r}")
    return replace(
        options,
        max_iterations=int(options.max_iterations),
        damping=_clamp_damping(options.damping),
    )


def _classify(dof: int) -> SolveResult:
    if dof > 0:
        return UnderConstrained(dof=dof)
    return FullyConstrained()


class ConstraintSolver:
    """Damped Newton iteration over the point coordinates of a sketch.

    The solver is immutable: ``with_tolerance``, ``with_max_iterations`` and
    ``with_damping`` return reconfigured copies.  A solver built without
    options starts from :func:`get_default_solve_options`.
    """

    def __init__(self, options: Optional[SolveOptions] = None) -> None:
        self._options = _checked_options(options if options is not None else get_default_solve_options())

    @classmethod
    def from_options(cls, options: SolveOptions) -> "ConstraintSolver":
        return cls(options)

    @property
    def options(self) -> SolveOptions:
        return replace(self._options)

    @property
    def tolerance(self) -> float:
        return self._options.tolerance

    @property
    def max_iterations(self) -> int:
        return self._options.max_iterations

    @property
    def damping(self) -> float:
        return self._options.damping

    def with_tolerance(self, tolerance: float) -> "ConstraintSolver":
        return ConstraintSolver(replace(self._options, tolerance=float(tolerance)))

    def with_max_iterations(self, max_iterations: int) -> "ConstraintSolver":
        return ConstraintSolver(replace(self._options, max_iterations=max_iterations))

    def with_damping(self, damping: float) -> "ConstraintSolver":
        """Return a solver using ``damping``, clamped to ``[0.1, 1.0]``."""

        return ConstraintSolver(replace(self._options, damping=damping))

    def solve(self, sketch: Sketch) -> SolveResult:
        """Move the sketch's points until every constraint residual vanishes.

        Points are written back on every iteration; a failed solve leaves the
        sketch at the last iterate.
        """

        opts = self._options
        var_map = VariableMap.from_sketch(sketch)
        n_vars = len(var_map)
        if n_vars == 0:
            logger.info("Sketch has no points; nothing to solve")
            return FullyConstrained()

        n_equations = sum(c.equation_count() for c in sketch.constraints_iter())
        dof = n_vars - n_equations
        logger.info(
            "Solving sketch: variables=%d equations=%d dof=%d tolerance=%.1e max_iterations=%d damping=%.2f",
            n_vars,
            n_equations,
            dof,
            opts.tolerance,
            opts.max_iterations,
            opts.damping,
        )
        if n_equations == 0:
            logger.info("No constraints; returning %d free degree(s) of freedom", n_vars)
            return UnderConstrained(dof=n_vars)

        x = var_map.get_values(sketch)
        mismatch_reported = False
        for iteration in range(opts.max_iterations):
            var_map.set_values(sketch, x)
            f = evaluate_residuals(sketch, var_map)
            norm = float(np.linalg.norm(f))
            logger.debug("Iteration %d: residual_norm=%.6e rows=%d", iteration, norm, f.size)

            if f.size != n_equations and not mismatch_reported:
                logger.warning(
                    "Constraints declare %d equation(s) but %d residual row(s) were evaluated; "
                    "unresolved references are ignored",
                    n_equations,
                    f.size,
                )
                mismatch_reported = True

            if norm < opts.tolerance:
                result = _classify(dof)
                logger.info(
                    "Converged after %d iteration(s): residual_norm=%.3e result=%s",
                    iteration,
                    norm,
                    result.kind,
                )
                return result

            try:
                jacobian = build_jacobian(sketch, var_map, x, step=opts.fd_step, f0=f)
            except ResidualShapeError as exc:
                logger.info("Solve aborted at iteration %d: %s", iteration, exc)
                return Failed(reason=f"Inconsistent residual rows at iteration {iteration}: {exc}")

            dx = solve_normal_equations(
                jacobian,
                f,
                regularization=opts.regularization,
                pivot_tolerance=opts.pivot_tolerance,
            )
            if dx is None:
                reason = f"Singular Jacobian at iteration {iteration} (possibly over-constrained)"
                logger.info("Solve failed: %s", reason)
                return Failed(reason=reason)

            x = x + opts.damping * dx

        reason = f"Failed to converge after {opts.max_iterations} iterations"
        logger.info("Solve failed: %s", reason)
        return Failed(reason=reason)

    def __repr__(self) -> str:
        return (
            f"ConstraintSolver(tolerance={self.tolerance!r}, "
            f"max_iterations={self.max_iterations!r}, damping={self.damping!r})"
        )


__all__ = ["ConstraintSolver", "MAX_DAMPING", "MIN_DAMPING"]
