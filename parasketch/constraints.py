"""Geometric and dimensional constraints between sketch entities.

The set of constraint kinds is closed: every kind is a frozen dataclass
deriving from :class:`SketchConstraint` and registered in
``CONSTRAINT_TYPES``.  The residual evaluator keeps one function per kind
and refuses to import if a kind is left without one.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type

EntityId = str


def new_id() -> str:
    return uuid.uuid4().hex


class SketchConstraint:
    """Behaviour shared by every constraint kind.

    Subclasses declare ``kind`` (serialisation tag), ``type_name`` (human
    readable), ``equations`` (residual rows the kind contributes when all of
    its references resolve), ``entity_fields`` (names of the fields holding
    entity ids, in order) and, for valued kinds, ``value_field``.
    """

    kind: ClassVar[str] = ""
    type_name: ClassVar[str] = ""
    equations: ClassVar[int] = 1
    entity_fields: ClassVar[Tuple[str, ...]] = ()
    value_field: ClassVar[Optional[str]] = None
    dimensional: ClassVar[bool] = False

    id: EntityId

    def equation_count(self) -> int:
        """Static number of equations, independent of entity resolution."""

        return self.equations

    def referenced_entities(self) -> List[EntityId]:
        return [getattr(self, name) for name in self.entity_fields]

    def references_entity(self, entity_id: EntityId) -> bool:
        return entity_id in self.referenced_entities()

    @property
    def is_dimensional(self) -> bool:
        return self.dimensional

    def value(self) -> Optional[float]:
        if self.value_field is None:
            return None
        return float(getattr(self, self.value_field))

    def with_value(self, new_value: float) -> "SketchConstraint":
        """Return a copy carrying ``new_value`` as its dimension."""

        if self.value_field is None:
            raise ValueError(f"{self.type_name} constraint has no dimensional value")
        return replace(self, **{self.value_field: float(new_value)})

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind}
        data.update(asdict(self))  # type: ignore[call-overload]
        return data


# ============== Geometric constraints ==============


@dataclass(frozen=True)
class Coincident(SketchConstraint):
    kind: ClassVar[str] = "coincident"
    type_name: ClassVar[str] = "Coincident"
    equations: ClassVar[int] = 2
    entity_fields: ClassVar[Tuple[str, ...]] = ("point1", "point2")

    point1: EntityId
    point2: EntityId
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class Horizontal(SketchConstraint):
    kind: ClassVar[str] = "horizontal"
    type_name: ClassVar[str] = "Horizontal"
    entity_fields: ClassVar[Tuple[str, ...]] = ("line",)

    line: EntityId
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class Vertical(SketchConstraint):
    kind: ClassVar[str] = "vertical"
    type_name: ClassVar[str] = "Vertical"
    entity_fields: ClassVar[Tuple[str, ...]] = ("line",)

    line: EntityId
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class Parallel(SketchConstraint):
    kind: ClassVar[str] = "parallel"
    type_name: ClassVar[str] = "Parallel"
    entity_fields: ClassVar[Tuple[str, ...]] = ("line1", "line2")

    line1: EntityId
    line2: EntityId
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class Perpendicular(SketchConstraint):
    kind: ClassVar[str] = "perpendicular"
    type_name: ClassVar[str] = "Perpendicular"
    entity_fields: ClassVar[Tuple[str, ...]] = ("line1", "line2")

    line1: EntityId
    line2: EntityId
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class Tangent(SketchConstraint):
    kind: ClassVar[str] = "tangent"
    type_name: ClassVar[str] = "Tangent"
    entity_fields: ClassVar[Tuple[str, ...]] = ("curve1", "curve2")

    curve1: EntityId
    curve2: EntityId
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class EqualLength(SketchConstraint):
    kind: ClassVar[str] = "equal_length"
    type_name: ClassVar[str] = "Equal Length"
    entity_fields: ClassVar[Tuple[str, ...]] = ("line1", "line2")

    line1: EntityId
    line2: EntityId
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class EqualRadius(SketchConstraint):
    kind: ClassVar[str] = "equal_radius"
    type_name: ClassVar[str] = "Equal Radius"
    entity_fields: ClassVar[Tuple[str, ...]] = ("circle1", "circle2")

    circle1: EntityId
    circle2: EntityId
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class PointOnCurve(SketchConstraint):
    kind: ClassVar[str] = "point_on_curve"
    type_name: ClassVar[str] = "Point on Curve"
    entity_fields: ClassVar[Tuple[str, ...]] = ("point", "curve")

    point: EntityId
    curve: EntityId
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class Midpoint(SketchConstraint):
    kind: ClassVar[str] = "midpoint"
    type_name: ClassVar[str] = "Midpoint"
    equations: ClassVar[int] = 2
    entity_fields: ClassVar[Tuple[str, ...]] = ("point", "line")

    point: EntityId
    line: EntityId
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class Symmetric(SketchConstraint):
    kind: ClassVar[str] = "symmetric"
    type_name: ClassVar[str] = "Symmetric"
    equations: ClassVar[int] = 2
    entity_fields: ClassVar[Tuple[str, ...]] = ("entity1", "entity2", "axis")

    entity1: EntityId
    entity2: EntityId
    axis: EntityId
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class Fixed(SketchConstraint):
    kind: ClassVar[str] = "fixed"
    type_name: ClassVar[str] = "Fixed"
    equations: ClassVar[int] = 2
    entity_fields: ClassVar[Tuple[str, ...]] = ("point",)
    dimensional: ClassVar[bool] = True

    point: EntityId
    x: float
    y: float
    id: EntityId = field(default_factory=new_id)


# ============== Dimensional constraints ==============


@dataclass(frozen=True)
class Distance(SketchConstraint):
    kind: ClassVar[str] = "distance"
    type_name: ClassVar[str] = "Distance"
    entity_fields: ClassVar[Tuple[str, ...]] = ("entity1", "entity2")
    value_field: ClassVar[Optional[str]] = "distance"
    dimensional: ClassVar[bool] = True

    entity1: EntityId
    entity2: EntityId
    distance: float
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class HorizontalDistance(SketchConstraint):
    kind: ClassVar[str] = "horizontal_distance"
    type_name: ClassVar[str] = "Horizontal Distance"
    entity_fields: ClassVar[Tuple[str, ...]] = ("point1", "point2")
    value_field: ClassVar[Optional[str]] = "distance"
    dimensional: ClassVar[bool] = True

    point1: EntityId
    point2: EntityId
    distance: float
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class VerticalDistance(SketchConstraint):
    kind: ClassVar[str] = "vertical_distance"
    type_name: ClassVar[str] = "Vertical Distance"
    entity_fields: ClassVar[Tuple[str, ...]] = ("point1", "point2")
    value_field: ClassVar[Optional[str]] = "distance"
    dimensional: ClassVar[bool] = True

    point1: EntityId
    point2: EntityId
    distance: float
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class Angle(SketchConstraint):
    """Signed angle from ``line2`` to ``line1`` in radians."""

    kind: ClassVar[str] = "angle"
    type_name: ClassVar[str] = "Angle"
    entity_fields: ClassVar[Tuple[str, ...]] = ("line1", "line2")
    value_field: ClassVar[Optional[str]] = "angle"
    dimensional: ClassVar[bool] = True

    line1: EntityId
    line2: EntityId
    angle: float
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class Radius(SketchConstraint):
    kind: ClassVar[str] = "radius"
    type_name: ClassVar[str] = "Radius"
    entity_fields: ClassVar[Tuple[str, ...]] = ("circle",)
    value_field: ClassVar[Optional[str]] = "radius"
    dimensional: ClassVar[bool] = True

    circle: EntityId
    radius: float
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class Diameter(SketchConstraint):
    kind: ClassVar[str] = "diameter"
    type_name: ClassVar[str] = "Diameter"
    entity_fields: ClassVar[Tuple[str, ...]] = ("circle",)
    value_field: ClassVar[Optional[str]] = "diameter"
    dimensional: ClassVar[bool] = True

    circle: EntityId
    diameter: float
    id: EntityId = field(default_factory=new_id)


@dataclass(frozen=True)
class Length(SketchConstraint):
    kind: ClassVar[str] = "length"
    type_name: ClassVar[str] = "Length"
    entity_fields: ClassVar[Tuple[str, ...]] = ("line",)
    value_field: ClassVar[Optional[str]] = "length"
    dimensional: ClassVar[bool] = True

    line: EntityId
    length: float
    id: EntityId = field(default_factory=new_id)


CONSTRAINT_TYPES: Dict[str, Type[SketchConstraint]] = {
    cls.kind: cls
    for cls in (
        Coincident,
        Horizontal,
        Vertical,
        Parallel,
        Perpendicular,
        Tangent,
        EqualLength,
        EqualRadius,
        PointOnCurve,
        Midpoint,
        Symmetric,
        Fixed,
        Distance,
        HorizontalDistance,
        VerticalDistance,
        Angle,
        Radius,
        Diameter,
        Length,
    )
}

_FLOAT_FIELDS = {"x", "y", "distance", "angle", "radius", "diameter", "length"}


def constraint_from_dict(data: Mapping[str, Any]) -> SketchConstraint:
    """Rebuild a constraint from :meth:`SketchConstraint.to_dict` output."""

    kind = data.get("kind")
    try:
        cls = CONSTRAINT_TYPES[str(kind)]
    except KeyError as exc:
        raise ValueError(f"unknown constraint kind {kind!r}") from exc

    kwargs: Dict[str, Any] = {}
    for fld in fields(cls):  # type: ignore[arg-type]
        if fld.name not in data:
            if fld.name == "id":
                continue
            raise ValueError(f"{cls.type_name} constraint is missing field '{fld.name}'")
        raw = data[fld.name]
        if fld.name in _FLOAT_FIELDS:
            value = float(raw)
            if not math.isfinite(value):
                raise ValueError(f"{cls.type_name} constraint field '{fld.name}' must be finite")
            kwargs[fld.name] = value
        else:
            kwargs[fld.name] = str(raw)
    return cls(**kwargs)


__all__ = [
    "Angle",
    "CONSTRAINT_TYPES",
    "Coincident",
    "Diameter",
    "Distance",
    "EntityId",
    "EqualLength",
    "EqualRadius",
    "Fixed",
    "Horizontal",
    "HorizontalDistance",
    "Length",
    "Midpoint",
    "Parallel",
    "Perpendicular",
    "PointOnCurve",
    "Radius",
    "SketchConstraint",
    "Symmetric",
    "Tangent",
    "Vertical",
    "VerticalDistance",
    "constraint_from_dict",
    "new_id",
]
