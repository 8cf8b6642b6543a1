"""Mapping between sketch points and the flat solver variable vector."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..constraints import EntityId
from ..logging_utils import apply_debug_logging
from ..sketch import Point, Sketch
from .math_utils import Vec2

logger = logging.getLogger(__name__)

_ORIGIN: Vec2 = (0.0, 0.0)


class VariableMap:
    """Assigns every point entity the slots ``[i, i + 1]`` for ``(x, y)``.

    Slots follow the sketch's entity order.  The map is only meaningful for
    the sketch (or copies of the sketch) it was built from, and only while
    that sketch's set of points is unchanged.
    """

    def __init__(self) -> None:
        self._point_indices: Dict[EntityId, int] = {}
        self._count = 0

    @classmethod
    def from_sketch(cls, sketch: Sketch) -> "VariableMap":
        var_map = cls()
        var_map.build(sketch)
        return var_map

    def build(self, sketch: Sketch) -> None:
        self._point_indices.clear()
        self._count = 0
        for entity in sketch.entities_iter():
            if isinstance(entity, Point):
                self._point_indices[entity.id] = self._count
                self._count += 2
        logger.debug("Built variable map with %d point(s), %d variable(s)", len(self._point_indices), self._count)

    def __len__(self) -> int:
        return self._count

    def is_empty(self) -> bool:
        return self._count == 0

    @property
    def point_ids(self) -> List[EntityId]:
        return list(self._point_indices)

    def index_of(self, point_id: EntityId) -> Optional[int]:
        """Index of the point's x slot (y follows it), or ``None`` if unmapped."""

        return self._point_indices.get(point_id)

    def get_values(self, sketch: Sketch) -> np.ndarray:
        values = np.zeros(self._count, dtype=float)
        for point_id, index in self._point_indices.items():
            entity = sketch.get_entity(point_id)
            if isinstance(entity, Point):
                values[index] = entity.position[0]
                values[index + 1] = entity.position[1]
        return values

    def set_values(self, sketch: Sketch, values: Sequence[float]) -> None:
        if len(values) != self._count:
            raise ValueError(f"expected {self._count} variable values, got {len(values)}")
        for point_id, index in self._point_indices.items():
            entity = sketch.get_entity_mut(point_id)
            if isinstance(entity, Point):
                entity.position = (float(values[index]), float(values[index + 1]))

    def resolve_point(self, sketch: Sketch, point_id: EntityId) -> Optional[Vec2]:
        entity = sketch.get_entity(point_id)
        if isinstance(entity, Point):
            return entity.position
        return None

    def get_point_position(self, sketch: Sketch, point_id: EntityId) -> Vec2:
        """Position of ``point_id``, or the origin when it is not a point."""

        position = self.resolve_point(sketch, point_id)
        return _ORIGIN if position is None else position


__all__ = ["VariableMap"]


apply_debug_logging(globals(), logger=logger)
