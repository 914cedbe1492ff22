"""
Rectangular grid mazes built from cells linked to their neighbors.
Layers: position arithmetic -> grid -> maze links -> graph surgery (braid/cull).

All values are immutable. Every operation that "changes" a grid returns a new
Grid, rebuilding only the rows it touches.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass
from typing import Callable

from maze_types import (
    EMPTY,
    MASKED,
    Cell,
    Direction,
    Grid,
    Link,
    Mask,
    Maze,
    Path,
    Position,
    is_masked,
)

__all__ = [
    "DirectionFn",
    "LinkFn",
    "MazeStats",
    "NeighborFn",
    "adjacent",
    "all_positions",
    "braid",
    "cull",
    "dead_ends",
    "direction",
    "east",
    "empty_neighbors",
    "in_bounds",
    "init",
    "link",
    "link_violations",
    "link_with",
    "maze_stats",
    "neighbors",
    "north",
    "opposite",
    "path_toward",
    "path_west",
    "random_position",
    "south",
    "step_toward",
    "unlink",
    "validate_maze",
    "west",
]

logger = logging.getLogger(__name__)

# Type alias for neighbor discovery (rectangular, wrapped, ...)
NeighborFn = Callable[[Grid, Position], set[Position]]

# Type alias for direction inference between two positions
DirectionFn = Callable[[Position, Position], Direction | None]

# Type alias for a function linking two cells of a maze
LinkFn = Callable[[Maze, Position, Position], Maze]


# =============================================================================
# Position Arithmetic
# =============================================================================
# None of these check positions against a grid; see in_bounds().


def adjacent(pos_1: Position, pos_2: Position) -> bool:
    """Are two positions one step apart along a single axis (no diagonals)."""
    row_1, col_1 = pos_1
    row_2, col_2 = pos_2
    return abs(row_1 - row_2) + abs(col_1 - col_2) == 1


def direction(pos_1: Position, pos_2: Position) -> Direction | None:
    """
    Get the direction from pos_1 to pos_2.
    Assumes (0, 0) is the north-west corner. Returns None unless the positions
    are axis-adjacent.
    """
    match (pos_2[0] - pos_1[0], pos_2[1] - pos_1[1]):
        case (-1, 0):
            return Direction.N
        case (1, 0):
            return Direction.S
        case (0, 1):
            return Direction.E
        case (0, -1):
            return Direction.W
        case _:
            return None


def opposite(heading: Direction) -> Direction:
    match heading:
        case Direction.N:
            return Direction.S
        case Direction.S:
            return Direction.N
        case Direction.E:
            return Direction.W
        case Direction.W:
            return Direction.E
        case _:
            raise ValueError(f"No opposite for {heading!r}: only N, S, E, W are directions")


def north(pos: Position) -> Position:
    row, col = pos
    return (row - 1, col)


def south(pos: Position) -> Position:
    row, col = pos
    return (row + 1, col)


def east(pos: Position) -> Position:
    row, col = pos
    return (row, col + 1)


def west(pos: Position) -> Position:
    row, col = pos
    return (row, col - 1)


def step_toward(heading: Link, pos: Position) -> Position:
    """
    Get the neighboring position in the given direction.
    No bounds checking, so may return an invalid position.

    Raises:
        ValueError: If heading is MASK or not a Direction at all
    """
    match heading:
        case Direction.N:
            return north(pos)
        case Direction.S:
            return south(pos)
        case Direction.E:
            return east(pos)
        case Direction.W:
            return west(pos)
        case _:
            raise ValueError(
                f"Cannot step toward {heading!r} from {pos}\n"
                f"  Only N, S, E, W are navigable"
            )


# =============================================================================
# Grid
# =============================================================================


def init(rows: int, cols: int, fill: Cell = EMPTY) -> Grid:
    """
    Build a rows x cols grid with every cell set to fill.
    Conceptually, (0, 0) is the upper left corner.

    Raises:
        ValueError: If rows or cols is less than 1
    """
    if rows <= 0 or cols <= 0:
        raise ValueError(
            f"Invalid grid dimensions: {rows} rows x {cols} columns\n"
            f"  A grid needs at least 1 row and 1 column"
        )
    row = tuple(fill for _ in range(cols))
    return Grid(tuple(row for _ in range(rows)))


def in_bounds(grid: Grid, pos: Position | None) -> bool:
    """Is the position within the bounds of the grid. Never raises."""
    if not pos or len(pos) != 2:
        return False
    row, col = pos
    return 0 <= row < grid.rows and 0 <= col < len(grid.cells[row])


def neighbors(grid: Grid, pos: Position) -> set[Position]:
    """Get the in-bounds positions one step north, south, east and west of pos."""
    candidates = {north(pos), south(pos), east(pos), west(pos)}
    return {candidate for candidate in candidates if in_bounds(grid, candidate)}


def all_positions(grid: Grid) -> list[Position]:
    """Every position in the grid, in row-major order."""
    return [(row, col) for row in range(grid.rows) for col in range(grid.cols)]


def _random_source(rng: random.Random | None) -> random.Random:
    # Module-level functions draw from the process-wide generator
    return rng if rng is not None else random  # type: ignore[return-value]


def random_position(grid: Grid, rng: random.Random | None = None) -> Position:
    """
    Select a random position whose cell is empty (unvisited).

    Row and column are drawn independently and uniformly; occupied cells are
    rejected and redrawn. The grid MUST contain at least one empty cell,
    otherwise this never returns.

    Args:
        grid: The grid to sample from
        rng: Random source, the process-wide one when omitted
    """
    source = _random_source(rng)
    while True:
        pos = (source.randrange(grid.rows), source.randrange(grid.cols))
        if not grid.cell(pos):
            return pos


def _replace_cells(grid: Grid, updates: dict[Position, Cell]) -> Grid:
    """Return a copy of grid with the given cells replaced. Untouched rows are shared."""
    rows = list(grid.cells)
    for (row, col), cell in updates.items():
        cells = list(rows[row])
        cells[col] = cell
        rows[row] = tuple(cells)
    return Grid(tuple(rows))


# =============================================================================
# Maze: Links
# =============================================================================


def empty_neighbors(
    maze: Maze,
    pos: Position,
    neighbor_fn: NeighborFn = neighbors,
) -> list[Position]:
    """
    Get all positions neighboring pos which have not been visited.

    Args:
        maze: The maze being generated
        pos: Position whose neighbors to inspect
        neighbor_fn: Neighbor discovery, swap in for other topologies
    """
    return sorted(candidate for candidate in neighbor_fn(maze, pos) if not maze.cell(candidate))


def _require_in_bounds(maze: Maze, *positions: Position) -> None:
    outside = [pos for pos in positions if not in_bounds(maze, pos)]
    if outside:
        raise ValueError(
            f"Position(s) outside the maze: {', '.join(map(str, outside))}\n"
            f"  Maze is {maze.rows} rows x {maze.cols} columns"
        )


def link_with(direction_fn: DirectionFn) -> LinkFn:
    """
    Create a link function which uses the provided direction_fn.

    The returned function adds direction_fn(pos_1, pos_2) to the first cell
    and direction_fn(pos_2, pos_1) to the second. Linking an already linked
    pair returns an equal maze.

    Raises (from the returned function):
        ValueError: If either position is out of bounds, direction_fn finds no
            direction between them, or either cell is masked
    """

    def link_cells(maze: Maze, pos_1: Position, pos_2: Position) -> Maze:
        _require_in_bounds(maze, pos_1, pos_2)
        forward = direction_fn(pos_1, pos_2)
        backward = direction_fn(pos_2, pos_1)
        if forward is None or backward is None:
            raise ValueError(
                f"Cannot link {pos_1} and {pos_2}: positions are not adjacent\n"
                f"  Only neighboring cells can be linked"
            )

        cell_1 = maze.cell(pos_1)
        cell_2 = maze.cell(pos_2)
        for pos, cell in ((pos_1, cell_1), (pos_2, cell_2)):
            if is_masked(cell):
                raise ValueError(
                    f"Cannot link masked cell at {pos}\n"
                    f"  Masked cells are permanently excluded from the maze"
                )

        return _replace_cells(maze, {pos_1: cell_1 | {forward}, pos_2: cell_2 | {backward}})

    return link_cells


_link_cardinal = link_with(direction)


def link(maze: Maze, pos_1: Position, pos_2: Position) -> Maze:
    """Link two adjacent cells in a maze."""
    return _link_cardinal(maze, pos_1, pos_2)


def _without(cell: Cell, heading: Direction) -> Cell:
    if heading not in cell:
        return cell
    remaining = cell - {heading}
    return remaining if remaining else MASKED


def unlink(maze: Maze, pos_1: Position, pos_2: Position) -> Maze:
    """
    Unlink two adjacent cells in a maze.

    A cell left without any link is replaced with MASKED rather than EMPTY, so
    it reads as severed and excluded instead of never visited. A cell that
    does not hold the link is left as is.

    Raises:
        ValueError: If either position is out of bounds or they are not adjacent
    """
    _require_in_bounds(maze, pos_1, pos_2)
    forward = direction(pos_1, pos_2)
    backward = direction(pos_2, pos_1)
    if forward is None or backward is None:
        raise ValueError(
            f"Cannot unlink {pos_1} and {pos_2}: positions are not adjacent\n"
            f"  Only neighboring cells can be unlinked"
        )
    return _replace_cells(
        maze,
        {
            pos_1: _without(maze.cell(pos_1), forward),
            pos_2: _without(maze.cell(pos_2), backward),
        },
    )


def path_toward(maze: Maze, pos: Position, heading: Direction) -> Path:
    """
    Trace the positions reached by following links in one direction.

    Starts at pos (included) and stops at the first cell without a link in
    that direction, or at the edge of the maze.
    """
    path = [pos]
    current = pos
    while heading in maze.cell(current):
        following = step_toward(heading, current)
        if not in_bounds(maze, following):
            break
        path.append(following)
        current = following
    return path


def path_west(maze: Maze, pos: Position) -> Path:
    """Get the positions west of pos joined by west links, including pos."""
    return path_toward(maze, pos, Direction.W)


# =============================================================================
# Maze: Validation
# =============================================================================


def _ordered(cell: Cell) -> list[Link]:
    return sorted(cell, key=lambda tag: tag.value)


def link_violations(maze: Maze) -> list[tuple[Position, Link]]:
    """
    Find every link that breaks the mutual-link invariant.

    A (position, tag) pair is reported when the tag points off the maze, is not
    reciprocated by the neighbor, or shares its cell with MASK.
    """
    violations: list[tuple[Position, Link]] = []
    for pos in all_positions(maze):
        cell = maze.cell(pos)
        headings = [tag for tag in _ordered(cell) if isinstance(tag, Direction)]
        if is_masked(cell):
            violations.extend((pos, heading) for heading in headings)
            continue
        for heading in headings:
            other = step_toward(heading, pos)
            if not in_bounds(maze, other) or opposite(heading) not in maze.cell(other):
                violations.append((pos, heading))
    return violations


def _violation_reason(maze: Maze, pos: Position, tag: Link) -> str:
    if is_masked(maze.cell(pos)):
        return "shares a masked cell"
    if not in_bounds(maze, step_toward(tag, pos)):
        return "points off the maze"
    return "is not reciprocated"


def validate_maze(maze: Maze) -> None:
    """
    Check that a maze is well formed.

    Raises:
        ValueError: If the maze is empty or ragged, holds a cell that is not a
            set of links, or breaks the mutual-link invariant
    """
    if maze.rows == 0 or maze.cols == 0:
        raise ValueError("Maze must have at least 1 row and 1 column")

    mismatched = [(i, len(row)) for i, row in enumerate(maze.cells) if len(row) != maze.cols]
    if mismatched:
        error_msg = (
            f"Inconsistent row lengths in maze\n"
            f"  Expected: {maze.cols} columns (from row 0)\n"
            f"  Mismatched rows:\n"
        )
        for row_idx, actual_cols in mismatched:
            error_msg += f"    Row {row_idx}: {actual_cols} columns\n"
        error_msg += "  All rows must have the same number of cells"
        raise ValueError(error_msg)

    for pos in all_positions(maze):
        cell = maze.cell(pos)
        if not isinstance(cell, frozenset) or not all(isinstance(tag, (Direction, Mask)) for tag in cell):
            raise ValueError(
                f"Invalid cell at {pos}: {cell!r}\n"
                f"  Cells must be frozensets of Direction values, or MASKED"
            )

    violations = link_violations(maze)
    if violations:
        error_msg = "Maze breaks the mutual-link invariant\n"
        for pos, tag in violations:
            error_msg += f"    {pos}: {tag.name} {_violation_reason(maze, pos, tag)}\n"
        raise ValueError(error_msg.rstrip("\n"))


# =============================================================================
# Graph Surgery: Dead Ends, Braid, Cull
# =============================================================================


def _is_dead_end(cell: Cell) -> bool:
    return len(cell) == 1 and not is_masked(cell)


def dead_ends(maze: Maze) -> list[Position]:
    """
    Find the dead ends in a maze: cells with exactly one link, MASK excluded.
    Fewer dead ends make for a more flowing, river-like maze.
    """
    return [pos for pos in all_positions(maze) if _is_dead_end(maze.cell(pos))]


def braid(maze: Maze, rate: float = 1.0, rng: random.Random | None = None) -> Maze:
    """
    Braid a maze by linking dead ends to a neighbor, introducing loops.

    Dead ends are collected once up front and processed in that order. Each is
    braided with probability `rate`:
    - if another unprocessed dead end is adjacent, link to one of those at
      random and drop it from the work list
    - otherwise link to a random unmasked neighbor, which may already be
      linked (a no-op, not counted as a link)

    Args:
        maze: The maze to braid
        rate: Fraction of dead ends to link, 1.0 links them all
        rng: Random source, the process-wide one when omitted

    Returns:
        The braided maze
    """
    source = _random_source(rng)
    snapshot = dead_ends(maze)
    remaining = deque(snapshot)
    result = maze
    linked = 0

    while remaining:
        pos = remaining.popleft()
        if not rate > source.random():
            logger.debug("braid: leaving dead end %s", pos)
            continue

        adjacent_ends = [candidate for candidate in remaining if adjacent(pos, candidate)]
        if adjacent_ends:
            target = source.choice(adjacent_ends)
            remaining.remove(target)
        else:
            candidates = sorted(
                candidate for candidate in neighbors(result, pos) if not is_masked(result.cell(candidate))
            )
            if not candidates:
                logger.debug("braid: no unmasked neighbor for dead end %s", pos)
                continue
            target = source.choice(candidates)

        if direction(pos, target) in result.cell(pos):
            logger.debug("braid: %s already linked to %s", pos, target)
            continue

        logger.debug("braid: linking %s -> %s", pos, target)
        result = link(result, pos, target)
        linked += 1

    logger.info("braid: linked %d of %d dead ends (rate=%.2f)", linked, len(snapshot), rate)
    return result


def cull(maze: Maze, rate: float = 1.0, rng: random.Random | None = None) -> Maze:
    """
    Cull dead ends from a maze by unlinking them, masking the culled cells.

    This results in a sparse maze. Dead ends are collected once up front; cells
    that become dead ends while culling are left for a later call.

    Args:
        maze: The maze to cull
        rate: Fraction of dead ends to unlink, 1.0 unlinks them all
        rng: Random source, the process-wide one when omitted

    Returns:
        The culled maze
    """
    source = _random_source(rng)
    snapshot = dead_ends(maze)
    result = maze
    culled = 0

    for pos in snapshot:
        if not rate > source.random():
            logger.debug("cull: leaving dead end %s", pos)
            continue

        # Two dead ends linked only to each other are both masked by the first unlink
        cell = result.cell(pos)
        if not _is_dead_end(cell):
            logger.debug("cull: %s already masked", pos)
            continue

        (heading,) = cell
        logger.debug("cull: unlinking %s toward %s", pos, heading.name)
        result = unlink(result, pos, step_toward(heading, pos))
        culled += 1

    logger.info("cull: unlinked %d of %d dead ends (rate=%.2f)", culled, len(snapshot), rate)
    return result


# =============================================================================
# Statistics
# =============================================================================


@dataclass(frozen=True)
class MazeStats:
    """Counts of cells by how many links they hold."""

    dead_ends: int  # Exactly one link
    corridors: int  # Exactly two links
    junctions: int  # Three or four links
    masked: int
    unvisited: int

    @property
    def total(self) -> int:
        return self.dead_ends + self.corridors + self.junctions + self.masked + self.unvisited

    @property
    def dead_end_ratio(self) -> float:
        return self.dead_ends / self.total if self.total else 0.0


def maze_stats(maze: Maze) -> MazeStats:
    counts = {"dead_ends": 0, "corridors": 0, "junctions": 0, "masked": 0, "unvisited": 0}
    for row in maze.cells:
        for cell in row:
            if is_masked(cell):
                counts["masked"] += 1
            elif not cell:
                counts["unvisited"] += 1
            elif len(cell) == 1:
                counts["dead_ends"] += 1
            elif len(cell) == 2:
                counts["corridors"] += 1
            else:
                counts["junctions"] += 1
    return MazeStats(**counts)
