"""
Maze parsing utilities for mazegrid.

Builds mazes from a compact string format, handy for literal mazes in tests
and for strategies that start from a fixed layout.
"""

from __future__ import annotations

from maze_types import EMPTY, MASKED, Cell, Direction, Grid, Maze
from mazegrid import validate_maze

__all__ = ["parse_maze"]

_DIRECTION_CHARS = {
    "n": Direction.N,
    "s": Direction.S,
    "e": Direction.E,
    "w": Direction.W,
}


def _parse_cell(cell_str: str, row_idx: int, col_idx: int, row_str: str) -> Cell:
    if not cell_str or cell_str == "_":
        return EMPTY
    if cell_str.lower() == "x":
        return MASKED

    links: set[Direction] = set()
    for char in cell_str.lower():
        if char not in _DIRECTION_CHARS:
            raise ValueError(
                f"Invalid cell string: '{cell_str}'\n"
                f"  Row {row_idx}: \"{row_str}\"\n"
                f"  Position: column {col_idx}\n"
                f"  Valid formats:\n"
                f"    - Any of n, s, e, w (e.g., 'e', 'nsw'): linked directions\n"
                f"    - '_': Empty (unvisited) cell\n"
                f"    - 'x': Masked cell"
            )
        heading = _DIRECTION_CHARS[char]
        if heading in links:
            raise ValueError(
                f"Repeated direction '{char}' in cell string '{cell_str}'\n"
                f"  Row {row_idx}, column {col_idx}"
            )
        links.add(heading)
    return frozenset(links)


def parse_maze(definition: str) -> Maze:
    """
    Parse a maze from a compact string format.

    Format:
    - Rows separated by |
    - Cells separated by single spaces
    - Each cell lists the directions it links toward, any order, any case:
      * n, s, e, w: linked north, south, east, west (e.g., "e", "sw", "NSEW")
      * _ (or an empty string from adjacent spaces): Empty, unvisited cell
      * x: Masked cell

    Example:
        "es w|n _"
        Creates a 2x2 maze where (0, 0) links east and south, (0, 1) links
        west, (1, 0) links north and (1, 1) is unvisited.

    Args:
        definition: The maze definition

    Returns:
        The parsed maze

    Raises:
        ValueError: On a blank definition, an unknown character, a repeated
            direction, rows of different lengths, or links that are not
            reciprocated
    """
    if not definition.strip():
        raise ValueError(
            "Empty maze definition\n"
            "  A maze needs at least 1 row and 1 column (use '_' for an empty cell)"
        )

    row_strings = [row_str.strip() for row_str in definition.strip().split("|")]
    rows: list[tuple[Cell, ...]] = []

    for row_idx, row_str in enumerate(row_strings):
        cell_strings = row_str.split(" ")
        rows.append(
            tuple(
                _parse_cell(cell_str, row_idx, col_idx, row_str)
                for col_idx, cell_str in enumerate(cell_strings)
            )
        )

    cols = len(rows[0])
    mismatched = [(i, len(row)) for i, row in enumerate(rows) if len(row) != cols]
    if mismatched:
        error_msg = (
            f"Inconsistent row lengths in maze definition\n"
            f"  Expected: {cols} columns (from row 0)\n"
            f"  Mismatched rows:\n"
        )
        for row_idx, actual_cols in mismatched:
            error_msg += f"    Row {row_idx}: {actual_cols} columns - \"{row_strings[row_idx]}\"\n"
        error_msg += "  All rows must have the same number of cells"
        raise ValueError(error_msg)

    maze = Grid(tuple(rows))
    validate_maze(maze)
    return maze
