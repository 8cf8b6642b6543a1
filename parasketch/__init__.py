from .constraints import (
    CONSTRAINT_TYPES,
    Angle,
    Coincident,
    Diameter,
    Distance,
    EqualLength,
    EqualRadius,
    Fixed,
    Horizontal,
    HorizontalDistance,
    Length,
    Midpoint,
    Parallel,
    Perpendicular,
    PointOnCurve,
    Radius,
    SketchConstraint,
    Symmetric,
    Tangent,
    Vertical,
    VerticalDistance,
    constraint_from_dict,
)
from .sketch import Arc, Circle, Line, Point, Sketch, SketchError, entity_from_dict
from .validate import ValidationError, validate_sketch
from .solver import (
    ConstraintSolver,
    Failed,
    FullyConstrained,
    OverConstrained,
    SolveOptions,
    SolveResult,
    UnderConstrained,
    VariableMap,
    get_default_solve_options,
    set_default_solve_options,
    solve,
    solve_sketch,
)

__all__ = [
    'CONSTRAINT_TYPES',
    'Angle',
    'Coincident',
    'Diameter',
    'Distance',
    'EqualLength',
    'EqualRadius',
    'Fixed',
    'Horizontal',
    'HorizontalDistance',
    'Length',
    'Midpoint',
    'Parallel',
    'Perpendicular',
    'PointOnCurve',
    'Radius',
    'SketchConstraint',
    'Symmetric',
    'Tangent',
    'Vertical',
    'VerticalDistance',
    'constraint_from_dict',
    'Arc',
    'Circle',
    'Line',
    'Point',
    'Sketch',
    'SketchError',
    'entity_from_dict',
    'ValidationError',
    'validate_sketch',
    'ConstraintSolver',
    'Failed',
    'FullyConstrained',
    'OverConstrained',
    'SolveOptions',
    'SolveResult',
    'UnderConstrained',
    'VariableMap',
    'get_default_solve_options',
    'set_default_solve_options',
    'solve',
    'solve_sketch',
]
