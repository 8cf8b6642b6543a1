"""Process-wide default options for newly built solvers."""

from __future__ import annotations

import copy

from .model import SolveOptions

_DEFAULT_SOLVE_OPTIONS = SolveOptions()


def get_default_solve_options() -> SolveOptions:
    return copy.deepcopy(_DEFAULT_SOLVE_OPTIONS)


def set_default_solve_options(options: SolveOptions) -> None:
    global _DEFAULT_SOLVE_OPTIONS
    _DEFAULT_SOLVE_OPTIONS = copy.deepcopy(options)


def reset_default_solve_options() -> None:
    set_default_solve_options(SolveOptions())
