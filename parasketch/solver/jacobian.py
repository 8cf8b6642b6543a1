"""Forward-difference Jacobian of the residual vector."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from ..logging_utils import apply_debug_logging
from ..sketch import Sketch
from .model import ResidualShapeError
from .residuals import evaluate_residuals
from .variables import VariableMap

logger = logging.getLogger(__name__)

FD_STEP = 1e-5


def build_jacobian(
    sketch: Sketch,
    var_map: VariableMap,
    x: np.ndarray,
    *,
    step: float = FD_STEP,
    f0: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Return ``J[i, j] = d f_i / d x_j`` at ``x``.

    ``sketch`` must already hold ``x``.  Perturbations are applied to a deep
    copy, so ``sketch`` itself is left untouched.  ``f0`` may be passed when
    the caller has just evaluated the residuals at ``x``.
    """

    x = np.asarray(x, dtype=float)
    if f0 is None:
        f0 = evaluate_residuals(sketch, var_map)
    jacobian = np.zeros((f0.size, x.size), dtype=float)

    perturbed = sketch.copy()
    for j in range(x.size):
        x_plus = x.copy()
        x_plus[j] += step
        var_map.set_values(perturbed, x_plus)
        f_plus = evaluate_residuals(perturbed, var_map)
        if f_plus.shape != f0.shape:
            raise ResidualShapeError(
                f"residual count changed from {f0.size} to {f_plus.size} when perturbing variable {j}"
            )
        jacobian[:, j] = (f_plus - f0) / step

    return jacobian


__all__ = ["FD_STEP", "build_jacobian"]


apply_debug_logging(globals(), logger=logger)
