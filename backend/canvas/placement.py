"""
First-fit placement of a new component on the canvas grid.

Builds an occupancy matrix from the components already placed and scans it
row-major (top to bottom, then left to right) for the first origin where the
new footprint is entirely free.
"""

import logging
from typing import Optional

from canvas.grid import Component, GridSpec, Position, Size, occupied_rows

logger = logging.getLogger(__name__)

# Minimum height of the occupancy matrix, in rows
MIN_ROWS = 10


def build_occupancy(existing: list[Component], grid: GridSpec, max_rows: int) -> list[list[bool]]:
    """max_rows x columns matrix, True where an existing component covers the cell."""
    occupancy = [[False] * grid.columns for _ in range(max_rows)]
    for component in existing:
        start_x = component.position.x
        start_y = component.position.y
        end_x = min(start_x + component.size.width, grid.columns)
        end_y = min(start_y + grid.rows_for(component.size.height), max_rows)
        for y in range(start_y, end_y):
            row = occupancy[y]
            for x in range(start_x, end_x):
                row[x] = True
    return occupancy


def _fits(occupancy: list[list[bool]], x: int, y: int, width: int, rows: int) -> bool:
    if y + rows > len(occupancy):
        return False
    for dy in range(rows):
        row = occupancy[y + dy]
        for dx in range(width):
            if row[x + dx]:
                return False
    return True


def find_position(
    existing: list[Component],
    size: Size,
    grid: GridSpec,
    min_rows: int = MIN_ROWS,
    after: Optional[Position] = None,
) -> Position:
    """
    First free origin for a component of `size`, scanning row-major.

    `size.width` must not exceed `grid.columns`; callers clamp before calling.
    When nothing fits inside the matrix the component goes on a new row
    below everything else, so the result never overlaps `existing`.

    With `after`, origins at or before that position in reading order are
    skipped, so the result always sorts after it.
    """
    rows = grid.rows_for(size.height)
    max_rows = max(min_rows, occupied_rows(existing, grid))
    occupancy = build_occupancy(existing, grid, max_rows)

    for y in range(max_rows):
        for x in range(grid.columns - size.width + 1):
            if after is not None and (y, x) <= (after.y, after.x):
                continue
            if _fits(occupancy, x, y, size.width, rows):
                logger.debug(f"Placed {size.width}x{rows} at ({x}, {y}) among {len(existing)} component(s)")
                return Position(x=x, y=y)

    fallback_row = max_rows if after is None else max(max_rows, after.y + 1)
    logger.debug(f"No slot for {size.width}x{rows} within {max_rows} rows, appending at row {fallback_row}")
    return Position(x=0, y=fallback_row)
