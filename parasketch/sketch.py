"""Sketch container: points, lines, circles and arcs plus their constraints.

Only :class:`Point` entities carry solver variables.  Lines, circles and
arcs reference points by id; circle and arc radii are plain scalars that
constraints read but the solver never adjusts.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Iterator, List, Mapping, Optional, Set, Tuple

from .constraints import EntityId, SketchConstraint, constraint_from_dict, new_id

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .solver.model import SolveResult
    from .solver.solver_core import ConstraintSolver

logger = logging.getLogger(__name__)

Vec2 = Tuple[float, float]


class SketchError(ValueError):
    """Raised when an edit would leave the sketch referencing unknown entities."""


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass
class Point:
    id: EntityId
    position: Vec2
    kind: ClassVar[str] = "point"

    @property
    def x(self) -> float:
        return self.position[0]

    @property
    def y(self) -> float:
        return self.position[1]

    def referenced_points(self) -> List[EntityId]:
        return []

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "id": self.id, "position": [self.position[0], self.position[1]]}


@dataclass
class Line:
    id: EntityId
    start: EntityId
    end: EntityId
    kind: ClassVar[str] = "line"

    def referenced_points(self) -> List[EntityId]:
        return [self.start, self.end]

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "id": self.id, "start": self.start, "end": self.end}


@dataclass
class Circle:
    id: EntityId
    center: EntityId
    radius: float
    kind: ClassVar[str] = "circle"

    def referenced_points(self) -> List[EntityId]:
        return [self.center]

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "id": self.id, "center": self.center, "radius": self.radius}


@dataclass
class Arc:
    """Circular arc; angles are in radians, counter-clockwise from +X."""

    id: EntityId
    center: EntityId
    radius: float
    start_angle: float
    end_angle: float
    kind: ClassVar[str] = "arc"

    def referenced_points(self) -> List[EntityId]:
        return [self.center]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.id,
            "center": self.center,
            "radius": self.radius,
            "start_angle": self.start_angle,
            "end_angle": self.end_angle,
        }


SketchEntity = Any  # Point | Line | Circle | Arc


def entity_from_dict(data: Mapping[str, Any]) -> SketchEntity:
    kind = data.get("kind")
    try:
        if kind == "point":
            x, y = data["position"]
            return Point(id=str(data["id"]), position=(float(x), float(y)))
        if kind == "line":
            return Line(id=str(data["id"]), start=str(data["start"]), end=str(data["end"]))
        if kind == "circle":
            return Circle(id=str(data["id"]), center=str(data["center"]), radius=float(data["radius"]))
        if kind == "arc":
            return Arc(
                id=str(data["id"]),
                center=str(data["center"]),
                radius=float(data["radius"]),
                start_angle=float(data["start_angle"]),
                end_angle=float(data["end_angle"]),
            )
    except KeyError as exc:
        raise ValueError(f"{kind} entity is missing field {exc.args[0]!r}") from exc
    raise ValueError(f"unknown entity kind {kind!r}")


# ---------------------------------------------------------------------------
# Sketch
# ---------------------------------------------------------------------------


class Sketch:
    """A planar sketch.

    Entities are kept in insertion order, which is the order the solver uses
    when it lays out its variable vector.
    """

    def __init__(self, name: str = "Sketch") -> None:
        self.name = name
        self._entities: Dict[EntityId, SketchEntity] = {}
        self._constraints: List[SketchConstraint] = []
        self.last_result: Optional["SolveResult"] = None

    # -- Queries -------------------------------------------------------------

    def entities_iter(self) -> Iterator[SketchEntity]:
        return iter(self._entities.values())

    def constraints_iter(self) -> Iterator[SketchConstraint]:
        return iter(self._constraints)

    def get_entity(self, entity_id: EntityId) -> Optional[SketchEntity]:
        return self._entities.get(entity_id)

    def get_entity_mut(self, entity_id: EntityId) -> Optional[SketchEntity]:
        # Entities are mutable dataclasses; the same object is handed out.
        return self._entities.get(entity_id)

    def get_constraint(self, constraint_id: EntityId) -> Optional[SketchConstraint]:
        for constraint in self._constraints:
            if constraint.id == constraint_id:
                return constraint
        return None

    def point_position(self, point_id: EntityId) -> Vec2:
        entity = self._entities.get(point_id)
        if not isinstance(entity, Point):
            raise SketchError(f"'{point_id}' is not a point of sketch '{self.name}'")
        return entity.position

    @property
    def entity_count(self) -> int:
        return len(self._entities)

    @property
    def constraint_count(self) -> int:
        return len(self._constraints)

    @property
    def point_ids(self) -> List[EntityId]:
        return [entity.id for entity in self._entities.values() if isinstance(entity, Point)]

    def degrees_of_freedom(self) -> int:
        """``2 * points - sum(equation_count)``; negative when over-counted."""

        n_vars = 2 * len(self.point_ids)
        n_equations = sum(c.equation_count() for c in self._constraints)
        return n_vars - n_equations

    # -- Entity creation -----------------------------------------------------

    def _register(self, entity: SketchEntity) -> EntityId:
        if entity.id in self._entities:
            raise SketchError(f"duplicate entity id '{entity.id}'")
        for point_id in entity.referenced_points():
            if not isinstance(self._entities.get(point_id), Point):
                raise SketchError(f"{entity.kind} '{entity.id}' references unknown point '{point_id}'")
        self._entities[entity.id] = entity
        return entity.id

    def add_point(self, x: float, y: float, *, entity_id: Optional[EntityId] = None) -> EntityId:
        return self._register(Point(id=entity_id or new_id(), position=(float(x), float(y))))

    def add_line(self, start: EntityId, end: EntityId, *, entity_id: Optional[EntityId] = None) -> EntityId:
        if start == end:
            raise SketchError("a line needs two distinct end points")
        return self._register(Line(id=entity_id or new_id(), start=start, end=end))

    def add_line_from_coords(
        self, x1: float, y1: float, x2: float, y2: float
    ) -> Tuple[EntityId, EntityId, EntityId]:
        """Add two points and the line between them; returns ``(line, start, end)``."""

        start = self.add_point(x1, y1)
        end = self.add_point(x2, y2)
        return self.add_line(start, end), start, end

    def add_circle(self, center: EntityId, radius: float, *, entity_id: Optional[EntityId] = None) -> EntityId:
        return self._register(Circle(id=entity_id or new_id(), center=center, radius=float(radius)))

    def add_arc(
        self,
        center: EntityId,
        radius: float,
        start_angle: float,
        end_angle: float,
        *,
        entity_id: Optional[EntityId] = None,
    ) -> EntityId:
        return self._register(
            Arc(
                id=entity_id or new_id(),
                center=center,
                radius=float(radius),
                start_angle=float(start_angle),
                end_angle=float(end_angle),
            )
        )

    def set_point(self, point_id: EntityId, x: float, y: float) -> None:
        entity = self._entities.get(point_id)
        if not isinstance(entity, Point):
            raise SketchError(f"'{point_id}' is not a point of sketch '{self.name}'")
        entity.position = (float(x), float(y))

    # -- Constraints ---------------------------------------------------------

    def add_constraint(self, constraint: SketchConstraint) -> EntityId:
        if self.get_constraint(constraint.id) is not None:
            raise SketchError(f"duplicate constraint id '{constraint.id}'")
        for entity_id in constraint.referenced_entities():
            if entity_id not in self._entities:
                raise SketchError(
                    f"{constraint.type_name} constraint references unknown entity '{entity_id}'"
                )
        self._constraints.append(constraint)
        logger.debug("Added %s constraint %s to sketch '%s'", constraint.type_name, constraint.id, self.name)
        return constraint.id

    def replace_constraint(self, constraint: SketchConstraint) -> None:
        """Swap the constraint with the same id, e.g. after ``with_value``."""

        for idx, existing in enumerate(self._constraints):
            if existing.id == constraint.id:
                self._constraints[idx] = constraint
                return
        raise SketchError(f"unknown constraint '{constraint.id}'")

    def remove_constraint(self, constraint_id: EntityId) -> bool:
        before = len(self._constraints)
        self._constraints = [c for c in self._constraints if c.id != constraint_id]
        return len(self._constraints) != before

    def clear_constraints(self) -> None:
        self._constraints.clear()

    def remove_entity(self, entity_id: EntityId) -> Set[EntityId]:
        """Remove an entity, the curves built on it and every constraint touching them.

        Returns the ids of all removed entities.
        """

        if entity_id not in self._entities:
            return set()
        removed: Set[EntityId] = {entity_id}
        for entity in self._entities.values():
            if entity_id in entity.referenced_points():
                removed.add(entity.id)
        for removed_id in removed:
            del self._entities[removed_id]
        dropped = {c.id for c in self._constraints if any(c.references_entity(e) for e in removed)}
        self._constraints = [c for c in self._constraints if c.id not in dropped]
        logger.debug(
            "Removed %d entit%s and %d constraint(s) from sketch '%s'",
            len(removed),
            "y" if len(removed) == 1 else "ies",
            len(dropped),
            self.name,
        )
        return removed

    # -- Solving -------------------------------------------------------------

    def solve(self, solver: Optional["ConstraintSolver"] = None) -> "SolveResult":
        """Solve in place with ``solver`` (default settings when omitted)."""

        from .solver.solver_core import ConstraintSolver

        result = (solver or ConstraintSolver()).solve(self)
        self.last_result = result
        return result

    # -- Copy / serialisation ------------------------------------------------

    def copy(self) -> "Sketch":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "entities": [entity.to_dict() for entity in self._entities.values()],
            "constraints": [constraint.to_dict() for constraint in self._constraints],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Sketch":
        sketch = cls(name=str(data.get("name", "Sketch")))
        for entity_data in data.get("entities", []):
            sketch._register(entity_from_dict(entity_data))
        for constraint_data in data.get("constraints", []):
            sketch.add_constraint(constraint_from_dict(constraint_data))
        return sketch

    def __repr__(self) -> str:
        return (
            f"Sketch(name={self.name!r}, entities={len(self._entities)}, "
            f"constraints={len(self._constraints)})"
        )


__all__ = [
    "Arc",
    "Circle",
    "Line",
    "Point",
    "Sketch",
    "SketchEntity",
    "SketchError",
    "Vec2",
    "entity_from_dict",
]
