"""Strict structural checks for a sketch.

The solver tolerates dangling or mistyped references by dropping the
affected residual rows.  :func:`validate_sketch` is the opt-in path that
reports them instead.
"""

from __future__ import annotations

import math
from typing import Dict, Tuple, Type

from .constraints import (
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
)
from .sketch import Arc, Circle, Line, Point, Sketch


class ValidationError(Exception):
    pass


_ROUND = (Circle, Arc)
_CURVE = (Line, Circle, Arc)

# Accepted entity types for each reference field, in ``entity_fields`` order.
_EXPECTED: Dict[Type[SketchConstraint], Tuple[Tuple[type, ...], ...]] = {
    Coincident: ((Point,), (Point,)),
    Horizontal: ((Line,),),
    Vertical: ((Line,),),
    Parallel: ((Line,), (Line,)),
    Perpendicular: ((Line,), (Line,)),
    Tangent: (_CURVE, _CURVE),
    EqualLength: ((Line,), (Line,)),
    EqualRadius: (_ROUND, _ROUND),
    PointOnCurve: ((Point,), _CURVE),
    Midpoint: ((Point,), (Line,)),
    Symmetric: ((Point,), (Point,), (Line,)),
    Fixed: ((Point,),),
    Distance: ((Point,), (Point,)),
    HorizontalDistance: ((Point,), (Point,)),
    VerticalDistance: ((Point,), (Point,)),
    Angle: ((Line,), (Line,)),
    Radius: (_ROUND,),
    Diameter: (_ROUND,),
    Length: ((Line,),),
}


def _describe(constraint: SketchConstraint) -> str:
    return f"{constraint.type_name} constraint '{constraint.id}'"


def _type_names(types: Tuple[type, ...]) -> str:
    return " or ".join(t.__name__ for t in types)


def _validate_entities(sketch: Sketch) -> None:
    for entity in sketch.entities_iter():
        if isinstance(entity, Point):
            if not all(math.isfinite(v) for v in entity.position):
                raise ValidationError(f"point '{entity.id}' has non-finite position {entity.position!r}")
            continue
        for point_id in entity.referenced_points():
            if not isinstance(sketch.get_entity(point_id), Point):
                raise ValidationError(f"{entity.kind} '{entity.id}' references missing point '{point_id}'")
        if isinstance(entity, _ROUND):
            if not math.isfinite(entity.radius) or entity.radius <= 0.0:
                raise ValidationError(f"{entity.kind} '{entity.id}' must have a positive radius, got {entity.radius!r}")
        if isinstance(entity, Line) and entity.start == entity.end:
            raise ValidationError(f"line '{entity.id}' starts and ends at the same point")


def _validate_constraint(sketch: Sketch, constraint: SketchConstraint) -> None:
    expected = _EXPECTED.get(type(constraint))
    if expected is None:
        raise ValidationError(f"unsupported constraint type {type(constraint).__name__}")

    refs = constraint.referenced_entities()
    if len(set(refs)) != len(refs):
        raise ValidationError(f"{_describe(constraint)} references the same entity twice")

    for name, ref, allowed in zip(constraint.entity_fields, refs, expected):
        entity = sketch.get_entity(ref)
        if entity is None:
            raise ValidationError(f"{_describe(constraint)} references missing entity '{ref}' ({name})")
        if not isinstance(entity, allowed):
            raise ValidationError(
                f"{_describe(constraint)} expects {_type_names(allowed)} for {name}, "
                f"got {type(entity).__name__} '{ref}'"
            )

    if isinstance(constraint, Tangent):
        kinds = (type(sketch.get_entity(constraint.curve1)), type(sketch.get_entity(constraint.curve2)))
        lines = sum(1 for k in kinds if k is Line)
        if lines == 2 or (lines == 0 and kinds != (Circle, Circle)):
            raise ValidationError(
                f"{_describe(constraint)} supports line/circle, line/arc and circle/circle pairs only"
            )

    if isinstance(constraint, Fixed):
        values = (constraint.x, constraint.y)
    else:
        value = constraint.value()
        values = () if value is None else (value,)
    for value in values:
        if not math.isfinite(value):
            raise ValidationError(f"{_describe(constraint)} has non-finite value {value!r}")
    if isinstance(constraint, (Radius, Diameter, Length)) and constraint.value() <= 0.0:
        raise ValidationError(f"{_describe(constraint)} must have a positive value")
    if isinstance(constraint, Distance) and constraint.distance < 0.0:
        raise ValidationError(f"{_describe(constraint)} must have a non-negative distance")


def validate_sketch(sketch: Sketch) -> None:
    """Raise :class:`ValidationError` for the first structural problem found."""

    _validate_entities(sketch)
    for constraint in sketch.constraints_iter():
        _validate_constraint(sketch, constraint)


__all__ = ["ValidationError", "validate_sketch"]
