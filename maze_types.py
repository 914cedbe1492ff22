"""
Shared type definitions for the mazegrid system.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Direction(Enum):
    """Cardinal direction between neighboring cells."""

    N = "N"  # Up (decreasing row)
    S = "S"  # Down (increasing row)
    E = "E"  # Right (increasing col)
    W = "W"  # Left (decreasing col)


class Mask(Enum):
    """Marks a cell as excluded from the maze. Not a navigable direction."""

    MASK = "mask"


MASK = Mask.MASK

Link = Direction | Mask

# (row, col), row 0 is north and col 0 is west
Position = tuple[int, int]
Path = list[Position]


# =============================================================================
# Cells
# =============================================================================

# A cell is the set of directions it is linked toward.
Cell = frozenset[Link]

EMPTY: Cell = frozenset()  # Not yet visited
MASKED: Cell = frozenset({MASK})  # Deliberately excluded, non-traversable


def is_masked(cell: Cell) -> bool:
    return MASK in cell


# =============================================================================
# Grid
# =============================================================================


@dataclass(frozen=True)
class Grid:
    """A 2D grid of cells. Position (0, 0) is the north-west corner."""

    cells: tuple[tuple[Cell, ...], ...]

    @property
    def rows(self) -> int:
        return len(self.cells)

    @property
    def cols(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    def cell(self, pos: Position) -> Cell:
        row, col = pos
        return self.cells[row][col]


# A maze is a grid whose cells satisfy the mutual-link invariant.
Maze = Grid
