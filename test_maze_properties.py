"""
Property-based tests for mazegrid.

Mazes are carved from random seeds with the backtracker helper in
test_mazegrid, then checked for invariants across link, braid and cull.
"""

import random

import pytest

from maze_types import MASKED, Direction
from mazegrid import (
    adjacent,
    all_positions,
    braid,
    cull,
    dead_ends,
    direction,
    in_bounds,
    init,
    link,
    link_violations,
    neighbors,
    opposite,
    path_west,
    step_toward,
    unlink,
)
from test_mazegrid import carve_maze

pytest.importorskip("hypothesis")

from hypothesis import assume, given, settings  # noqa: E402
from hypothesis import strategies as st  # noqa: E402

# === Test Strategies ===

coordinates = st.integers(min_value=0, max_value=50)
positions = st.tuples(coordinates, coordinates)
directions = st.sampled_from(list(Direction))
dimensions = st.integers(min_value=1, max_value=8)
seeds = st.integers(min_value=0, max_value=2**32 - 1)
rates = st.floats(min_value=0.0, max_value=1.0)


class TestPositionProperties:
    """Position arithmetic holds for any coordinates."""

    @given(p1=positions, heading=directions)
    def test_direction_is_antisymmetric(self, p1, heading) -> None:
        """Adjacent positions see each other in opposite directions."""
        p2 = step_toward(heading, p1)
        assert adjacent(p1, p2)
        assert direction(p1, p2) == heading
        assert direction(p2, p1) == opposite(heading)
        assert direction(p1, p2) == opposite(direction(p2, p1))
        assert opposite(opposite(heading)) == heading

    @given(p1=positions, p2=positions)
    def test_no_direction_unless_adjacent(self, p1, p2) -> None:
        assume(not adjacent(p1, p2))
        assert direction(p1, p2) is None
        assert direction(p2, p1) is None


class TestGridProperties:
    """Neighbor discovery respects bounds and adjacency."""

    @given(rows=dimensions, cols=dimensions, data=st.data())
    def test_neighbors_adjacent_and_in_bounds(self, rows, cols, data) -> None:
        grid = init(rows, cols)
        pos = data.draw(st.sampled_from(all_positions(grid)))
        for neighbor in neighbors(grid, pos):
            assert adjacent(pos, neighbor)
            assert in_bounds(grid, neighbor)


class TestMazeProperties:
    """The mutual-link invariant survives every structural edit."""

    @given(rows=dimensions, cols=dimensions, seed=seeds)
    @settings(max_examples=50, deadline=None)
    def test_carved_maze_is_consistent(self, rows, cols, seed) -> None:
        maze = carve_maze(rows, cols, random.Random(seed))
        assert link_violations(maze) == []

    @given(rows=dimensions, cols=dimensions, data=st.data())
    @settings(max_examples=50, deadline=None)
    def test_link_then_unlink(self, rows, cols, data) -> None:
        """link sets both directions; unlink clears both, masking bare cells."""
        grid = init(rows, cols)
        pos = data.draw(st.sampled_from(all_positions(grid)))
        options = sorted(neighbors(grid, pos))
        if not options:
            return
        other = data.draw(st.sampled_from(options))

        linked = link(grid, pos, other)
        assert direction(pos, other) in linked.cell(pos)
        assert direction(other, pos) in linked.cell(other)
        assert link(linked, pos, other) == linked
        assert link_violations(linked) == []

        unlinked = unlink(linked, pos, other)
        assert unlinked.cell(pos) == MASKED
        assert unlinked.cell(other) == MASKED
        assert link_violations(unlinked) == []

    @given(rows=dimensions, cols=dimensions, seed=seeds, rate=rates)
    @settings(max_examples=50, deadline=None)
    def test_braid_keeps_invariant(self, rows, cols, seed, rate) -> None:
        maze = carve_maze(rows, cols, random.Random(seed))
        braided = braid(maze, rate, random.Random(seed))
        assert link_violations(braided) == []
        assert len(dead_ends(braided)) <= len(dead_ends(maze))

    @given(rows=dimensions, cols=dimensions, seed=seeds, rate=rates)
    @settings(max_examples=50, deadline=None)
    def test_cull_keeps_invariant(self, rows, cols, seed, rate) -> None:
        maze = carve_maze(rows, cols, random.Random(seed))
        culled = cull(maze, rate, random.Random(seed))
        assert link_violations(culled) == []

    @given(rows=dimensions, cols=dimensions, seed=seeds)
    @settings(max_examples=50, deadline=None)
    def test_full_cull_masks_snapshot(self, rows, cols, seed) -> None:
        maze = carve_maze(rows, cols, random.Random(seed))
        culled = cull(maze, 1.0, random.Random(seed))
        assert all(culled.cell(pos) == MASKED for pos in dead_ends(maze))

    @given(rows=dimensions, cols=dimensions, seed=seeds)
    @settings(max_examples=50, deadline=None)
    def test_rate_zero_is_identity(self, rows, cols, seed) -> None:
        maze = carve_maze(rows, cols, random.Random(seed))
        assert braid(maze, 0.0, random.Random(seed)) == maze
        assert cull(maze, 0.0, random.Random(seed)) == maze

    @given(rows=dimensions, cols=dimensions, seed=seeds, data=st.data())
    @settings(max_examples=50, deadline=None)
    def test_path_west_bounded_and_restartable(self, rows, cols, seed, data) -> None:
        maze = carve_maze(rows, cols, random.Random(seed))
        pos = data.draw(st.sampled_from(all_positions(maze)))
        path = path_west(maze, pos)
        assert path == path_west(maze, pos)
        assert path[0] == pos
        assert len(path) <= cols
        assert all(row == pos[0] for row, _ in path)
        assert Direction.W not in maze.cell(path[-1])
