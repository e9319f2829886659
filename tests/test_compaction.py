"""
Tests for layout compaction.

Test IDs: LC-01 through LC-03
"""
import random
from datetime import datetime, timezone

import pytest

from canvas.compaction import compact_layout
from canvas.grid import Position, find_overlaps


def positions(components):
    return {c.id: (c.position.x, c.position.y) for c in components}


TALL_HEIGHTS = [50, 100, 200, 300, 700, 1200]


def random_layout(seed, grid, make_component, count=25, heights=(60, 100, 180, 200, 320)):
    rng = random.Random(seed)
    components = []
    for i in range(count):
        width = rng.randint(1, grid.columns)
        components.append(make_component(
            f"c{i}",
            rng.randint(0, grid.columns - width),
            rng.randint(0, 20),
            width,
            rng.choice(heights),
        ))
    return components


class TestCompaction:
    """LC-01: Gaps and overlaps are removed."""

    def test_gap_left_by_delete_is_closed(self, grid, make_component):
        remaining = [make_component("b", 6, 0, 6, 100), make_component("c", 0, 1, 12, 100)]
        compacted = compact_layout(remaining, grid)
        assert positions(compacted) == {"b": (0, 0), "c": (0, 1)}

    def test_vertical_gap_closed(self, grid, make_component):
        compacted = compact_layout([make_component("a", 3, 7, 4, 100)], grid)
        assert compacted[0].position == Position(x=0, y=0)

    def test_overlapping_input_is_separated_in_input_order(self, grid, make_component):
        components = [make_component("a", 0, 0, 6, 200), make_component("b", 0, 0, 6, 200)]
        compacted = compact_layout(components, grid)
        assert positions(compacted) == {"a": (0, 0), "b": (6, 0)}

    def test_reading_order_drives_placement(self, grid, make_component):
        components = [
            make_component("low", 0, 4, 6, 100),
            make_component("high", 6, 1, 6, 100),
        ]
        compacted = compact_layout(components, grid)
        assert [c.id for c in compacted] == ["high", "low"]
        assert positions(compacted) == {"high": (0, 0), "low": (6, 0)}

    def test_empty(self, grid):
        assert compact_layout([], grid) == []


class TestCompactionBookkeeping:
    """LC-02: Timestamps and input immutability."""

    def test_updated_at_refreshed_created_at_kept(self, grid, make_component):
        component = make_component("a", 2, 2, 4, 100)
        created = component.created_at
        at = datetime(2030, 1, 1, tzinfo=timezone.utc)
        compacted = compact_layout([component], grid, now=at)
        assert compacted[0].updated_at == at
        assert compacted[0].created_at == created

    def test_input_not_modified(self, grid, make_component):
        components = [make_component("a", 2, 2, 4, 100)]
        compact_layout(components, grid)
        assert components[0].position == Position(x=2, y=2)

    def test_same_component_set(self, grid, make_component):
        components = random_layout(3, grid, make_component)
        compacted = compact_layout(components, grid)
        assert sorted(c.id for c in compacted) == sorted(c.id for c in components)
        sizes = {c.id: c.size for c in components}
        assert all(c.size == sizes[c.id] for c in compacted)


class TestCompactionProperties:
    """LC-03: Overlap-free and idempotent over generated layouts."""

    @pytest.mark.parametrize("seed", range(15))
    def test_no_overlaps(self, seed, grid, make_component):
        compacted = compact_layout(random_layout(seed, grid, make_component), grid)
        assert find_overlaps(compacted, grid) == []

    @pytest.mark.parametrize("seed", range(15))
    def test_idempotent(self, seed, grid, make_component):
        once = compact_layout(random_layout(seed, grid, make_component), grid)
        twice = compact_layout(once, grid)
        assert positions(twice) == positions(once)

    def test_idempotent_when_a_hole_is_filled_later(self, grid, make_component):
        # "c" drops into the hole beside "a", ahead of "b" in reading order
        components = [
            make_component("a", 0, 0, 6, 100),
            make_component("b", 0, 1, 12, 100),
            make_component("c", 0, 2, 6, 100),
        ]
        once = compact_layout(components, grid)
        assert positions(once) == {"a": (0, 0), "b": (0, 1), "c": (6, 0)}
        assert positions(compact_layout(once, grid)) == positions(once)

    def test_idempotent_with_components_taller_than_the_matrix(self, grid, make_component):
        components = [
            make_component("c0", 6, 7, 1, 1200),
            make_component("c1", 3, 7, 1, 700),
            make_component("c2", 2, 0, 5, 1200),
            make_component("c3", 2, 1, 8, 200),
        ]
        once = compact_layout(components, grid)
        twice = compact_layout(once, grid)
        assert positions(twice) == positions(once)
        assert positions(compact_layout(twice, grid)) == positions(once)
        assert find_overlaps(once, grid) == []

    @pytest.mark.parametrize("seed", range(150))
    def test_idempotent_with_tall_and_fallback_heights(self, seed, grid, make_component):
        layout = random_layout(seed, grid, make_component, count=12, heights=TALL_HEIGHTS)
        once = compact_layout(layout, grid)
        twice = compact_layout(once, grid)
        assert positions(twice) == positions(once)
        assert find_overlaps(once, grid) == []

    def test_result_is_in_reading_order(self, grid, make_component):
        compacted = compact_layout(random_layout(7, grid, make_component, heights=TALL_HEIGHTS), grid)
        order = [(c.position.y, c.position.x) for c in compacted]
        assert order == sorted(order)
