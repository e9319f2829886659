"""
Layout compaction: re-pack every component after a delete, drag or resize.

Components are taken in (y, x) order and re-placed one by one with the
first-fit allocator against those already re-placed. A pass can change the
(y, x) order when a later component drops into a hole above an earlier one,
so the pass is repeated in the order its own output reads until the order
stops changing. A layout whose reading order matches the order it was
packed in reproduces itself when compacted again.

Some layouts never settle (two components trading places on every pass,
usually around the fallback row). Those are packed once more in the
original reading order with each component kept after the previous one,
which fixes the reading order by construction.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from canvas.grid import Component, GridSpec
from canvas.placement import MIN_ROWS, find_position

logger = logging.getLogger(__name__)


def _reading_order(components: list[Component]) -> list[Component]:
    # sorted() is stable, so ties keep their incoming order
    return sorted(components, key=lambda c: (c.position.y, c.position.x))


def _order_key(components: list[Component]) -> tuple:
    return tuple(c.id for c in components)


def _pack(ordered: list[Component], grid: GridSpec, min_rows: int, at: datetime) -> list[Component]:
    packed: list[Component] = []
    for component in ordered:
        position = find_position(packed, component.size, grid, min_rows)
        packed.append(component.moved_to(position, at))
    return packed


def _pack_in_order(ordered: list[Component], grid: GridSpec, min_rows: int, at: datetime) -> list[Component]:
    packed: list[Component] = []
    for component in ordered:
        after = packed[-1].position if packed else None
        position = find_position(packed, component.size, grid, min_rows, after=after)
        packed.append(component.moved_to(position, at))
    return packed


def compact_layout(
    components: list[Component],
    grid: GridSpec,
    min_rows: int = MIN_ROWS,
    now: Optional[datetime] = None,
) -> list[Component]:
    """
    Reassign every component's position to a gap-free, overlap-free packing.

    Returns new Component objects in reading order with `updated_at` set
    to `now`. The input list is not modified. Compacting the result again
    leaves every position unchanged.
    """
    if not components:
        return []

    at = now or datetime.now(timezone.utc)
    initial = _reading_order(components)
    ordered = initial
    seen = {_order_key(ordered)}
    packed = None

    for _ in range(len(components) + 1):
        candidate = _pack(ordered, grid, min_rows, at)
        next_order = _reading_order(candidate)
        key = _order_key(next_order)
        if key == _order_key(ordered):
            packed = candidate
            break
        if key in seen:
            break
        seen.add(key)
        ordered = next_order

    if packed is None:
        logger.warning(
            f"Compaction of {len(components)} component(s) did not settle, packing in reading order"
        )
        packed = _pack_in_order(initial, grid, min_rows, at)

    final = {c.id: c.position for c in packed}
    moved = sum(1 for c in components if final.get(c.id) != c.position)
    logger.info(f"Compacted {len(components)} component(s), {moved} moved")
    return packed
