from __future__ import annotations

import math
from typing import Tuple

Vec2 = Tuple[float, float]

# Lines and axes shorter than this have no usable direction.
_MIN_LENGTH = 1e-6


def _vec2(a: Vec2, b: Vec2) -> Vec2:
    return b[0] - a[0], b[1] - a[1]


def _add2(a: Vec2, b: Vec2) -> Vec2:
    return a[0] + b[0], a[1] + b[1]


def _scale2(v: Vec2, k: float) -> Vec2:
    return v[0] * k, v[1] * k


def _dot2(a: Vec2, b: Vec2) -> float:
    return a[0] * b[0] + a[1] * b[1]


def _cross2(a: Vec2, b: Vec2) -> float:
    return a[0] * b[1] - a[1] * b[0]


def _norm2(v: Vec2) -> float:
    return math.sqrt(max(_dot2(v, v), 0.0))


def _dist2(a: Vec2, b: Vec2) -> float:
    return _norm2(_vec2(a, b))


def _midpoint2(a: Vec2, b: Vec2) -> Vec2:
    return (a[0] + b[0]) * 0.5, (a[1] + b[1]) * 0.5


def _heading(v: Vec2) -> float:
    return math.atan2(v[1], v[0])


def _closest_on_segment(p: Vec2, start: Vec2, end: Vec2) -> Vec2:
    """Closest point to ``p`` on the segment; the segment must be non-degenerate."""

    direction = _vec2(start, end)
    t = _dot2(_vec2(start, p), direction) / _dot2(direction, direction)
    t = min(max(t, 0.0), 1.0)
    return _add2(start, _scale2(direction, t))


__all__ = [
    "Vec2",
    "_MIN_LENGTH",
    "_add2",
    "_closest_on_segment",
    "_cross2",
    "_dist2",
    "_dot2",
    "_heading",
    "_midpoint2",
    "_norm2",
    "_scale2",
    "_vec2",
]
