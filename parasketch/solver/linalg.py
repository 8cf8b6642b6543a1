"""Regularised least-squares step via the normal equations."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

from ..logging_utils import apply_debug_logging

logger = logging.getLogger(__name__)

REGULARIZATION = 1e-6
PIVOT_TOLERANCE = 1e-12


def normal_equations(
    jacobian: np.ndarray, residuals: np.ndarray, regularization: float = REGULARIZATION
) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(JᵀJ + λI, Jᵀ(-f))``."""

    jac = np.asarray(jacobian, dtype=float)
    f = np.asarray(residuals, dtype=float)
    if jac.ndim != 2 or jac.shape[0] != f.size:
        raise ValueError(f"Jacobian shape {jac.shape} does not match {f.size} residual(s)")
    n_vars = jac.shape[1]
    a = jac.T @ jac + regularization * np.eye(n_vars)
    b = -(jac.T @ f)
    return a, b


def gaussian_elimination(
    a: np.ndarray, b: np.ndarray, *, pivot_tolerance: float = PIVOT_TOLERANCE
) -> Optional[np.ndarray]:
    """Solve ``a @ x = b`` with partial pivoting.

    Returns ``None`` when the largest candidate pivot of some column is below
    ``pivot_tolerance``.  The inputs are not modified.
    """

    a = np.array(a, dtype=float)
    b = np.array(b, dtype=float)
    n = b.size
    if a.shape != (n, n):
        raise ValueError(f"expected a {n}x{n} matrix, got shape {a.shape}")
    if n == 0:
        return np.zeros(0, dtype=float)

    for i in range(n):
        # first row holding the largest magnitude wins ties
        pivot_row = i + int(np.argmax(np.abs(a[i:, i])))
        pivot = abs(a[pivot_row, i])
        if pivot < pivot_tolerance:
            logger.debug("Pivot %.3e in column %d is below tolerance %.1e", pivot, i, pivot_tolerance)
            return None
        if pivot_row != i:
            a[[i, pivot_row]] = a[[pivot_row, i]]
            b[[i, pivot_row]] = b[[pivot_row, i]]

        factors = a[i + 1 :, i] / a[i, i]
        a[i + 1 :, i:] -= np.outer(factors, a[i, i:])
        b[i + 1 :] -= factors * b[i]

    x = np.zeros(n, dtype=float)
    for i in range(n - 1, -1, -1):
        x[i] = (b[i] - a[i, i + 1 :] @ x[i + 1 :]) / a[i, i]
    return x


def solve_normal_equations(
    jacobian: np.ndarray,
    residuals: np.ndarray,
    *,
    regularization: float = REGULARIZATION,
    pivot_tolerance: float = PIVOT_TOLERANCE,
) -> Optional[np.ndarray]:
    """Least-squares step ``dx`` for ``J dx = -f``; ``None`` when singular.

    The ridge term keeps the system solvable when there are fewer equations
    than variables or the Jacobian is rank deficient.
    """

    a, b = normal_equations(jacobian, residuals, regularization)
    if b.size == 0:
        return np.zeros(0, dtype=float)
    return gaussian_elimination(a, b, pivot_tolerance=pivot_tolerance)


__all__ = [
    "PIVOT_TOLERANCE",
    "REGULARIZATION",
    "gaussian_elimination",
    "normal_equations",
    "solve_normal_equations",
]


apply_debug_logging(globals(), logger=logger)
