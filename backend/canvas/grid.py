"""
Canvas grid vocabulary: grid spec, component shapes, footprints.

Positions are grid cells: x is a column index, y is a row index. Widths are
in columns; heights are in pixels and occupy ceil(height / row_height) rows.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from canvas.errors import InvalidLayoutError
from canvas.filter_model import to_datetime

logger = logging.getLogger(__name__)


class ComponentKind(Enum):
    KPI = "kpi"
    CHART = "chart"
    TABLE = "table"
    METRIC = "metric"
    ALERT = "alert"
    SAVED = "saved"


# Older saved dashboards use the long form
_KIND_ALIASES = {"saved-component": ComponentKind.SAVED}


def parse_kind(raw: Any) -> ComponentKind:
    if isinstance(raw, ComponentKind):
        return raw
    if raw in _KIND_ALIASES:
        return _KIND_ALIASES[raw]
    try:
        return ComponentKind(raw)
    except ValueError:
        raise InvalidLayoutError(f"Unknown component kind '{raw}'", "kind", raw)


@dataclass(frozen=True)
class GridSpec:
    columns: int = 12
    row_height: int = 100
    margin: int = 16

    def __post_init__(self):
        if self.columns <= 0:
            raise InvalidLayoutError("Grid columns must be positive", "columns", self.columns)
        if self.row_height <= 0:
            raise InvalidLayoutError("Grid row height must be positive", "row_height", self.row_height)
        if self.margin < 0:
            raise InvalidLayoutError("Grid margin cannot be negative", "margin", self.margin)

    def rows_for(self, height: int) -> int:
        """Rows covered by a component of the given pixel height."""
        return math.ceil(height / self.row_height)

    def to_dict(self) -> dict:
        return {"columns": self.columns, "row_height": self.row_height, "margin": self.margin}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "GridSpec":
        if not data:
            return cls.from_settings()
        defaults = cls.from_settings()
        try:
            return cls(
                columns=int(data.get("columns", defaults.columns)),
                row_height=int(data.get("row_height", data.get("rowHeight", defaults.row_height))),
                margin=int(data.get("margin", defaults.margin)),
            )
        except (TypeError, ValueError):
            raise InvalidLayoutError("Grid values must be integers", "grid", data)

    @classmethod
    def from_settings(cls) -> "GridSpec":
        """Grid configured in Django settings (CANVAS_GRID)."""
        from django.conf import settings

        grid = getattr(settings, "CANVAS_GRID", {})
        return cls(
            columns=grid.get("columns", 12),
            row_height=grid.get("row_height", 100),
            margin=grid.get("margin", 16),
        )


@dataclass(frozen=True)
class Position:
    x: int = 0
    y: int = 0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Size:
    width: int
    height: int

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict) -> "Size":
        if not isinstance(data, dict):
            raise InvalidLayoutError("Size must be an object with width/height", "size", data)
        try:
            width = int(data["width"])
            height = int(data["height"])
        except (KeyError, TypeError, ValueError):
            raise InvalidLayoutError("Size needs integer width and height", "size", data)
        if width <= 0 or height <= 0:
            raise InvalidLayoutError("Size width and height must be positive", "size", data)
        return cls(width=width, height=height)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Component:
    id: str
    kind: ComponentKind
    position: Position
    size: Size
    title: str = ""
    payload: Any = field(default_factory=dict)
    config: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def moved_to(self, position: Position, at: Optional[datetime] = None) -> "Component":
        return replace(self, position=position, updated_at=at or _now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "title": self.title,
            "position": self.position.to_dict(),
            "size": self.size.to_dict(),
            "payload": self.payload,
            "config": self.config,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Component":
        if not isinstance(data, dict):
            raise InvalidLayoutError("Component must be an object", "component", data)
        component_id = data.get("id")
        if not component_id:
            raise InvalidLayoutError("Component id is required", "id", component_id)

        raw_position = data.get("position") or {}
        try:
            position = Position(x=int(raw_position.get("x", 0)), y=int(raw_position.get("y", 0)))
        except (AttributeError, TypeError, ValueError):
            raise InvalidLayoutError("Position needs integer x and y", f"{component_id}.position", raw_position)
        if position.x < 0 or position.y < 0:
            raise InvalidLayoutError("Position cannot be negative", f"{component_id}.position", raw_position)

        created = to_datetime(data.get("created_at", data.get("createdAt"))) or _now()
        updated = to_datetime(data.get("updated_at", data.get("updatedAt"))) or created

        return cls(
            id=str(component_id),
            kind=parse_kind(data.get("kind", data.get("type", ComponentKind.KPI.value))),
            position=position,
            size=Size.from_dict(data.get("size")),
            title=data.get("title") or "",
            payload=data.get("payload", data.get("data", {})),
            config=data.get("config") or {},
            created_at=created,
            updated_at=updated,
        )


# ── Footprints ──


@dataclass(frozen=True)
class Footprint:
    """Half-open cell rectangle [x0, x1) x [y0, y1)."""
    x0: int
    x1: int
    y0: int
    y1: int

    def intersects(self, other: "Footprint") -> bool:
        return self.x0 < other.x1 and other.x0 < self.x1 and self.y0 < other.y1 and other.y0 < self.y1


def footprint(position: Position, size: Size, grid: GridSpec) -> Footprint:
    return Footprint(
        x0=position.x,
        x1=position.x + size.width,
        y0=position.y,
        y1=position.y + grid.rows_for(size.height),
    )


def find_overlaps(components: list[Component], grid: GridSpec) -> list[tuple[str, str]]:
    """Id pairs of components whose footprints intersect. Empty for a valid layout."""
    prints = [(c.id, footprint(c.position, c.size, grid)) for c in components]
    overlaps = []
    for i, (id_a, fp_a) in enumerate(prints):
        for id_b, fp_b in prints[i + 1:]:
            if fp_a.intersects(fp_b):
                overlaps.append((id_a, id_b))
    return overlaps


def occupied_rows(components: list[Component], grid: GridSpec) -> int:
    """Row index just below the lowest component (0 for an empty canvas)."""
    return max((c.position.y + grid.rows_for(c.size.height) for c in components), default=0)
