"""Residual evaluation: one function per constraint kind.

Every function returns the residual rows of its constraint for the sketch's
current point positions; all rows are zero when the constraint holds.  A
constraint whose references do not resolve to entities of the expected kind
returns no rows at all.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple, Type

import numpy as np

from ..constraints import (
    CONSTRAINT_TYPES,
    Angle,
    Coincident,
    Diameter,
    Distance,
    EntityId,
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
from ..sketch import Arc, Circle, Line, Sketch
from .math_utils import (
    Vec2,
    _MIN_LENGTH,
    _closest_on_segment,
    _cross2,
    _dist2,
    _dot2,
    _heading,
    _midpoint2,
    _norm2,
    _vec2,
)
from .model import ResidualEntry
from .variables import VariableMap


Residuals = List[float]
_Evaluator = Callable[[SketchConstraint, Sketch, VariableMap], Residuals]


# ---------------------------------------------------------------------------
# Entity resolution
# ---------------------------------------------------------------------------


def _points(sketch: Sketch, var_map: VariableMap, *ids: EntityId) -> Optional[List[Vec2]]:
    positions: List[Vec2] = []
    for point_id in ids:
        position = var_map.resolve_point(sketch, point_id)
        if position is None:
            return None
        positions.append(position)
    return positions


def _segment(sketch: Sketch, var_map: VariableMap, line_id: EntityId) -> Optional[Tuple[Vec2, Vec2]]:
    entity = sketch.get_entity(line_id)
    if not isinstance(entity, Line):
        return None
    ends = _points(sketch, var_map, entity.start, entity.end)
    if ends is None:
        return None
    return ends[0], ends[1]


def _direction(sketch: Sketch, var_map: VariableMap, line_id: EntityId) -> Optional[Vec2]:
    segment = _segment(sketch, var_map, line_id)
    if segment is None:
        return None
    return _vec2(segment[0], segment[1])


def _round(sketch: Sketch, var_map: VariableMap, curve_id: EntityId) -> Optional[Tuple[Vec2, float]]:
    """Center and radius of a circle or arc."""

    entity = sketch.get_entity(curve_id)
    if not isinstance(entity, (Circle, Arc)):
        return None
    center = var_map.resolve_point(sketch, entity.center)
    if center is None:
        return None
    return center, float(entity.radius)


def _radius(sketch: Sketch, curve_id: EntityId) -> Optional[float]:
    entity = sketch.get_entity(curve_id)
    if isinstance(entity, (Circle, Arc)):
        return float(entity.radius)
    return None


# ---------------------------------------------------------------------------
# Per-kind residuals
# ---------------------------------------------------------------------------


def _coincident(c: Coincident, sketch: Sketch, var_map: VariableMap) -> Residuals:
    pts = _points(sketch, var_map, c.point1, c.point2)
    if pts is None:
        return []
    p1, p2 = pts
    return [p1[0] - p2[0], p1[1] - p2[1]]


def _horizontal(c: Horizontal, sketch: Sketch, var_map: VariableMap) -> Residuals:
    segment = _segment(sketch, var_map, c.line)
    if segment is None:
        return []
    start, end = segment
    return [start[1] - end[1]]


def _vertical(c: Vertical, sketch: Sketch, var_map: VariableMap) -> Residuals:
    segment = _segment(sketch, var_map, c.line)
    if segment is None:
        return []
    start, end = segment
    return [start[0] - end[0]]


def _parallel(c: Parallel, sketch: Sketch, var_map: VariableMap) -> Residuals:
    d1 = _direction(sketch, var_map, c.line1)
    d2 = _direction(sketch, var_map, c.line2)
    if d1 is None or d2 is None:
        return []
    return [_cross2(d1, d2)]


def _perpendicular(c: Perpendicular, sketch: Sketch, var_map: VariableMap) -> Residuals:
    d1 = _direction(sketch, var_map, c.line1)
    d2 = _direction(sketch, var_map, c.line2)
    if d1 is None or d2 is None:
        return []
    return [_dot2(d1, d2)]


def _equal_length(c: EqualLength, sketch: Sketch, var_map: VariableMap) -> Residuals:
    d1 = _direction(sketch, var_map, c.line1)
    d2 = _direction(sketch, var_map, c.line2)
    if d1 is None or d2 is None:
        return []
    return [_norm2(d1) - _norm2(d2)]


def _equal_radius(c: EqualRadius, sketch: Sketch, var_map: VariableMap) -> Residuals:
    r1 = _radius(sketch, c.circle1)
    r2 = _radius(sketch, c.circle2)
    if r1 is None or r2 is None:
        return []
    return [r1 - r2]


def _point_on_curve(c: PointOnCurve, sketch: Sketch, var_map: VariableMap) -> Residuals:
    p = var_map.resolve_point(sketch, c.point)
    if p is None:
        return []
    segment = _segment(sketch, var_map, c.curve)
    if segment is not None:
        start, end = segment
        return [_cross2(_vec2(start, p), _vec2(start, end))]
    round_ = _round(sketch, var_map, c.curve)
    if round_ is not None:
        center, radius = round_
        return [_dist2(p, center) - radius]
    return []


def _midpoint(c: Midpoint, sketch: Sketch, var_map: VariableMap) -> Residuals:
    p = var_map.resolve_point(sketch, c.point)
    segment = _segment(sketch, var_map, c.line)
    if p is None or segment is None:
        return []
    mid = _midpoint2(*segment)
    return [p[0] - mid[0], p[1] - mid[1]]


def _symmetric(c: Symmetric, sketch: Sketch, var_map: VariableMap) -> Residuals:
    pts = _points(sketch, var_map, c.entity1, c.entity2)
    axis = _segment(sketch, var_map, c.axis)
    if pts is None or axis is None:
        return []
    axis_start, axis_end = axis
    axis_dir = _vec2(axis_start, axis_end)
    axis_len = _norm2(axis_dir)
    if axis_len <= _MIN_LENGTH:
        return []
    unit = (axis_dir[0] / axis_len, axis_dir[1] / axis_len)
    p1, p2 = pts
    # midpoint on the axis, p1->p2 across it
    return [_cross2(_vec2(axis_start, _midpoint2(p1, p2)), unit), _dot2(_vec2(p1, p2), unit)]


def _fixed(c: Fixed, sketch: Sketch, var_map: VariableMap) -> Residuals:
    p = var_map.resolve_point(sketch, c.point)
    if p is None:
        return []
    return [p[0] - c.x, p[1] - c.y]


def _distance(c: Distance, sketch: Sketch, var_map: VariableMap) -> Residuals:
    pts = _points(sketch, var_map, c.entity1, c.entity2)
    if pts is None:
        return []
    return [_dist2(pts[0], pts[1]) - c.distance]


def _horizontal_distance(c: HorizontalDistance, sketch: Sketch, var_map: VariableMap) -> Residuals:
    pts = _points(sketch, var_map, c.point1, c.point2)
    if pts is None:
        return []
    p1, p2 = pts
    return [(p2[0] - p1[0]) - c.distance]


def _vertical_distance(c: VerticalDistance, sketch: Sketch, var_map: VariableMap) -> Residuals:
    pts = _points(sketch, var_map, c.point1, c.point2)
    if pts is None:
        return []
    p1, p2 = pts
    return [(p2[1] - p1[1]) - c.distance]


def _angle(c: Angle, sketch: Sketch, var_map: VariableMap) -> Residuals:
    d1 = _direction(sketch, var_map, c.line1)
    d2 = _direction(sketch, var_map, c.line2)
    if d1 is None or d2 is None:
        return []
    return [_heading(d1) - _heading(d2) - c.angle]


def _radius_value(c: Radius, sketch: Sketch, var_map: VariableMap) -> Residuals:
    radius = _radius(sketch, c.circle)
    if radius is None:
        return []
    return [radius - c.radius]


def _diameter(c: Diameter, sketch: Sketch, var_map: VariableMap) -> Residuals:
    radius = _radius(sketch, c.circle)
    if radius is None:
        return []
    return [2.0 * radius - c.diameter]


def _length(c: Length, sketch: Sketch, var_map: VariableMap) -> Residuals:
    d = _direction(sketch, var_map, c.line)
    if d is None:
        return []
    return [_norm2(d) - c.length]


def _line_round_tangent(
    sketch: Sketch, var_map: VariableMap, line_id: EntityId, curve_id: EntityId
) -> Residuals:
    segment = _segment(sketch, var_map, line_id)
    round_ = _round(sketch, var_map, curve_id)
    if segment is None or round_ is None:
        return []
    start, end = segment
    if _dist2(start, end) <= _MIN_LENGTH:
        return []
    center, radius = round_
    return [_dist2(center, _closest_on_segment(center, start, end)) - radius]


def _tangent(c: Tangent, sketch: Sketch, var_map: VariableMap) -> Residuals:
    first = sketch.get_entity(c.curve1)
    second = sketch.get_entity(c.curve2)
    if isinstance(first, Line) and isinstance(second, (Circle, Arc)):
        return _line_round_tangent(sketch, var_map, c.curve1, c.curve2)
    if isinstance(first, (Circle, Arc)) and isinstance(second, Line):
        return _line_round_tangent(sketch, var_map, c.curve2, c.curve1)
    if isinstance(first, Circle) and isinstance(second, Circle):
        c1 = _round(sketch, var_map, c.curve1)
        c2 = _round(sketch, var_map, c.curve2)
        if c1 is None or c2 is None:
            return []
        # external tangency only
        return [_dist2(c1[0], c2[0]) - (c1[1] + c2[1])]
    return []


_EVALUATORS: Dict[Type[SketchConstraint], _Evaluator] = {
    Coincident: _coincident,
    Horizontal: _horizontal,
    Vertical: _vertical,
    Parallel: _parallel,
    Perpendicular: _perpendicular,
    Tangent: _tangent,
    EqualLength: _equal_length,
    EqualRadius: _equal_radius,
    PointOnCurve: _point_on_curve,
    Midpoint: _midpoint,
    Symmetric: _symmetric,
    Fixed: _fixed,
    Distance: _distance,
    HorizontalDistance: _horizontal_distance,
    VerticalDistance: _vertical_distance,
    Angle: _angle,
    Radius: _radius_value,
    Diameter: _diameter,
    Length: _length,
}  # type: ignore[dict-item]

_missing = sorted(kind for kind, cls in CONSTRAINT_TYPES.items() if cls not in _EVALUATORS)
if _missing:  # pragma: no cover - guards future constraint kinds
    raise ImportError(f"no residual evaluator for constraint kinds: {', '.join(_missing)}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def constraint_residuals(constraint: SketchConstraint, sketch: Sketch, var_map: VariableMap) -> Residuals:
    try:
        evaluator = _EVALUATORS[type(constraint)]
    except KeyError as exc:
        raise TypeError(f"unsupported constraint type {type(constraint).__name__}") from exc
    return [float(value) for value in evaluator(constraint, sketch, var_map)]


def evaluate_residuals(sketch: Sketch, var_map: VariableMap) -> np.ndarray:
    """Residual vector ``f`` for the sketch's current point positions."""

    rows: Residuals = []
    for constraint in sketch.constraints_iter():
        rows.extend(constraint_residuals(constraint, sketch, var_map))
    return np.asarray(rows, dtype=float)


def residual_breakdown(sketch: Sketch, var_map: VariableMap) -> List[ResidualEntry]:
    return [
        ResidualEntry(
            constraint_id=constraint.id,
            type_name=constraint.type_name,
            values=tuple(constraint_residuals(constraint, sketch, var_map)),
        )
        for constraint in sketch.constraints_iter()
    ]


__all__ = [
    "constraint_residuals",
    "evaluate_residuals",
    "residual_breakdown",
]
