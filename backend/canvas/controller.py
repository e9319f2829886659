"""
Canvas controller: the caller side of placement and compaction.

Owns no state of its own: every operation reads the current components from
the injected store, computes new positions, and writes the changes back.
Callers serialize concurrent edits (two rapid drags) themselves.
"""

import logging
import random
import string
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Optional

from canvas.compaction import compact_layout
from canvas.errors import ComponentNotFoundError
from canvas.grid import Component, ComponentKind, GridSpec, Position, Size, parse_kind
from canvas.placement import MIN_ROWS, find_position
from canvas.store import DashboardStore

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Component"
_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_component_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"component-{int(time.time() * 1000)}-{suffix}"


def configured_min_rows() -> int:
    from django.conf import settings

    return getattr(settings, "CANVAS_MIN_ROWS", MIN_ROWS)


def default_component_size() -> Size:
    from django.conf import settings

    size = getattr(settings, "CANVAS_DEFAULT_COMPONENT_SIZE", {"width": 3, "height": 200})
    return Size(width=size["width"], height=size["height"])


class CanvasController:

    UPDATABLE_FIELDS = ("title", "payload", "config")

    def __init__(self, store: DashboardStore, grid: Optional[GridSpec] = None, min_rows: Optional[int] = None):
        self.store = store
        self.grid = grid or GridSpec.from_settings()
        self.min_rows = min_rows if min_rows is not None else configured_min_rows()

    # ── Reads ──

    def components(self) -> list[Component]:
        return [Component.from_dict(entity) for entity in self.store.list()]

    def get_component(self, component_id: str) -> Component:
        return self._find(self.components(), component_id)

    # ── Mutations ──

    def add_component(
        self,
        kind: Any = ComponentKind.KPI,
        size: Optional[Size] = None,
        title: str = DEFAULT_TITLE,
        payload: Any = None,
        config: Optional[dict] = None,
    ) -> Component:
        """Create a component at the first free slot and save it."""
        size = self._clamp_size(size or default_component_size())
        position = find_position(self.components(), size, self.grid, self.min_rows)
        now = datetime.now(timezone.utc)
        component = Component(
            id=generate_component_id(),
            kind=parse_kind(kind),
            position=position,
            size=size,
            title=title or DEFAULT_TITLE,
            payload=payload if payload is not None else {},
            config=config or {},
            created_at=now,
            updated_at=now,
        )
        self.store.save(component.to_dict())
        logger.info(f"Added {component.kind.value} component {component.id} at ({position.x}, {position.y})")
        return component

    def update_component(self, component_id: str, patch: dict) -> Component:
        """Merge title/payload/config changes. Position and size go through move/resize."""
        self.get_component(component_id)
        changes = {key: value for key, value in patch.items() if key in self.UPDATABLE_FIELDS}
        ignored = set(patch) - set(changes)
        if ignored:
            logger.debug(f"update_component ignored fields {sorted(ignored)} for {component_id}")
        changes["updated_at"] = datetime.now(timezone.utc).isoformat()
        entity = self.store.update(component_id, changes)
        if entity is None:
            raise ComponentNotFoundError(component_id)
        return Component.from_dict(entity)

    def move_component(self, component_id: str, x: int, y: int) -> list[Component]:
        """Drop a dragged component at (x, y), clamped to the grid, then re-pack."""
        components = self.components()
        target = self._find(components, component_id)
        max_x = max(0, self.grid.columns - target.size.width)
        clamped = Position(x=max(0, min(int(x), max_x)), y=max(0, int(y)))
        if (clamped.x, clamped.y) != (x, y):
            logger.debug(f"Clamped drop of {component_id} from ({x}, {y}) to ({clamped.x}, {clamped.y})")
        components = [c.moved_to(clamped) if c.id == component_id else c for c in components]
        return self._compact_and_persist(components)

    def resize_component(self, component_id: str, width: int, height: int) -> list[Component]:
        components = self.components()
        self._find(components, component_id)
        size = self._clamp_size(Size(width=max(1, int(width)), height=max(1, int(height))))
        resized = []
        for component in components:
            if component.id == component_id:
                component = replace(component, size=size)
            resized.append(component)
        return self._compact_and_persist(resized)

    def delete_component(self, component_id: str) -> list[Component]:
        """Remove a component and re-pack what is left."""
        if not self.store.delete(component_id):
            raise ComponentNotFoundError(component_id)
        logger.info(f"Deleted component {component_id}")
        return self._compact_and_persist(self.components())

    def compact(self) -> list[Component]:
        return self._compact_and_persist(self.components())

    # ── Internals ──

    @staticmethod
    def _find(components: list[Component], component_id: str) -> Component:
        for component in components:
            if component.id == component_id:
                return component
        raise ComponentNotFoundError(component_id)

    def _clamp_size(self, size: Size) -> Size:
        if size.width > self.grid.columns:
            logger.warning(f"Width {size.width} exceeds {self.grid.columns} columns, clamping")
            return Size(width=self.grid.columns, height=size.height)
        return size

    def _compact_and_persist(self, components: list[Component]) -> list[Component]:
        compacted = compact_layout(components, self.grid, self.min_rows)
        for component in compacted:
            self.store.update(component.id, {
                "position": component.position.to_dict(),
                "size": component.size.to_dict(),
                "updated_at": component.updated_at.isoformat(),
            })
        return compacted
