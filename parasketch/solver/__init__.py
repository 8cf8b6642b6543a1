"""Solver façade: variable map, residuals, Jacobian, linear step and Newton loop."""

from __future__ import annotations

import logging
from typing import Optional

from ..sketch import Sketch
from ..validate import validate_sketch
from .config import get_default_solve_options, reset_default_solve_options, set_default_solve_options
from .jacobian import build_jacobian
from .linalg import gaussian_elimination, normal_equations, solve_normal_equations
from .model import (
    Failed,
    FullyConstrained,
    OverConstrained,
    ResidualEntry,
    ResidualShapeError,
    SolveOptions,
    SolveResult,
    UnderConstrained,
)
from .residuals import constraint_residuals, evaluate_residuals, residual_breakdown
from .solver_core import ConstraintSolver
from .variables import VariableMap

logger = logging.getLogger(__name__)


def solve(sketch: Sketch, options: Optional[SolveOptions] = None, *, validate: bool = False) -> SolveResult:
    """Solve ``sketch`` in place and record the outcome on ``sketch.last_result``.

    With ``validate=True`` the sketch is checked by
    :func:`parasketch.validate.validate_sketch` first and a
    :class:`~parasketch.validate.ValidationError` propagates to the caller.
    """

    if validate:
        validate_sketch(sketch)
        logger.info("Validation succeeded for sketch '%s'", sketch.name)
    return sketch.solve(ConstraintSolver(options))


solve_sketch = solve


__all__ = [
    "ConstraintSolver",
    "Failed",
    "FullyConstrained",
    "OverConstrained",
    "ResidualEntry",
    "ResidualShapeError",
    "SolveOptions",
    "SolveResult",
    "UnderConstrained",
    "VariableMap",
    "build_jacobian",
    "constraint_residuals",
    "evaluate_residuals",
    "gaussian_elimination",
    "get_default_solve_options",
    "normal_equations",
    "reset_default_solve_options",
    "residual_breakdown",
    "set_default_solve_options",
    "solve",
    "solve_sketch",
]
