"""Reading puzzle documents and formatting solutions as text.

Two JSON layouts are accepted.

Row layout::

    {"grid": [[1, null, "WALL"], ...],
     "walls": {"0,1": {"bottom": true}, ...},
     "max_number": 9}

Flat cell-index layout, as scraped from a page that numbers its cells
``0..N-1`` in row-major order::

    {"cells": {"0": 1, "17": 2, ...},
     "walls": {"10": {"left": true}, ...}}

In the flat layout the grid size is inferred from the cell count unless
``width``/``height`` are given.
"""

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from exceptions import InvalidGridError, PuzzleFormatError
from grid import Coord, Walls, ZipGrid, parse_coord
from logger import get_logger

LOGGER = get_logger(__name__)

# Widths tried when a flat cell count is not a perfect square
CANDIDATE_WIDTHS = (5, 6, 7, 8, 9, 10, 11, 12)


@dataclass(frozen=True)
class Puzzle:
    grid: ZipGrid
    max_number: Optional[int] = None
    source: Optional[Path] = None


def infer_dimensions(total_cells: int) -> Tuple[int, int]:
    """Return ``(height, width)`` for a row-major cell count."""
    if total_cells <= 0:
        raise PuzzleFormatError("Puzzle has no cells")
    side = math.isqrt(total_cells)
    if side * side == total_cells:
        return side, side
    for width in CANDIDATE_WIDTHS:
        if total_cells % width == 0:
            return total_cells // width, width
    raise PuzzleFormatError(f"Cannot infer a grid shape for {total_cells} cells")


def wall_map_from_matrices(walls_h: Sequence[Sequence[bool]],
                           walls_v: Sequence[Sequence[bool]]) -> Dict[Coord, Walls]:
    """Convert border matrices into the canonical bottom/left wall map.

    ``walls_h[r][c]`` is the border between ``(r, c)`` and ``(r + 1, c)``;
    ``walls_v[r][c]`` is the border between ``(r, c)`` and ``(r, c + 1)``.
    """
    bottom = {(r, c) for r, row in enumerate(walls_h) for c, wall in enumerate(row) if wall}
    left = {(r, c + 1) for r, row in enumerate(walls_v) for c, wall in enumerate(row) if wall}
    return {pos: Walls(bottom=pos in bottom, left=pos in left) for pos in sorted(bottom | left)}


def _walls_from_document(raw: Any, index_to_coord=None) -> Dict[Coord, Walls]:
    if raw is None:
        return {}
    entries: Iterable[Tuple[Any, Mapping[str, Any]]]
    if isinstance(raw, Mapping):
        entries = raw.items()
    elif isinstance(raw, list):
        try:
            entries = [((item["row"], item["col"]), item) for item in raw]
        except (KeyError, TypeError) as exc:
            raise PuzzleFormatError("Wall list entries need 'row' and 'col'") from exc
    else:
        raise PuzzleFormatError(f"Unsupported walls value of type {type(raw).__name__}")

    walls: Dict[Coord, Walls] = {}
    for key, record in entries:
        if not isinstance(record, Mapping):
            raise PuzzleFormatError(f"Wall record for {key!r} must be an object")
        if index_to_coord is not None:
            pos = index_to_coord(key)
        else:
            try:
                pos = parse_coord(key)
            except InvalidGridError as exc:
                raise PuzzleFormatError(str(exc)) from exc
        try:
            walls[pos] = Walls.from_mapping(record)
        except InvalidGridError as exc:
            raise PuzzleFormatError(f"Wall record for {key!r}: {exc}") from exc
    return walls


def _rows_from_cells(data: Mapping[str, Any]) -> Tuple[List[List[Any]], Dict[Coord, Walls]]:
    cells = data["cells"]
    if not isinstance(cells, Mapping):
        raise PuzzleFormatError("'cells' must map cell indices to values")
    try:
        indexed = {int(idx): value for idx, value in cells.items()}
    except (TypeError, ValueError) as exc:
        raise PuzzleFormatError("Cell indices must be integers") from exc
    if any(idx < 0 for idx in indexed):
        raise PuzzleFormatError("Cell indices must be non-negative")

    if "width" in data and "height" in data:
        try:
            height, width = int(data["height"]), int(data["width"])
        except (TypeError, ValueError) as exc:
            raise PuzzleFormatError("'width' and 'height' must be integers") from exc
        if height <= 0 or width <= 0:
            raise PuzzleFormatError(f"Grid size {height}x{width} must be positive")
    else:
        height, width = infer_dimensions(max(indexed, default=-1) + 1)
    if max(indexed, default=-1) >= height * width:
        raise PuzzleFormatError(f"Cell index beyond a {height}x{width} grid")
    LOGGER.debug("Flat puzzle shaped as %dx%d", height, width)

    rows: List[List[Any]] = [[None] * width for _ in range(height)]
    for idx, value in indexed.items():
        rows[idx // width][idx % width] = value

    def index_to_coord(key: Any) -> Coord:
        try:
            idx = int(key)
        except (TypeError, ValueError) as exc:
            raise PuzzleFormatError(f"Bad wall cell index {key!r}") from exc
        return idx // width, idx % width

    return rows, _walls_from_document(data.get("walls"), index_to_coord)


def parse_puzzle(data: Mapping[str, Any], source: Optional[Path] = None) -> Puzzle:
    if not isinstance(data, Mapping):
        raise PuzzleFormatError("Puzzle document must be a JSON object")
    if "grid" in data:
        rows = data["grid"]
        if not isinstance(rows, list) or not all(isinstance(row, list) for row in rows):
            raise PuzzleFormatError("'grid' must be a list of rows")
        walls = _walls_from_document(data.get("walls"))
    elif "cells" in data:
        rows, walls = _rows_from_cells(data)
    else:
        raise PuzzleFormatError("Puzzle document needs a 'grid' or 'cells' field")

    max_number = data.get("max_number")
    if max_number is not None and (isinstance(max_number, bool) or not isinstance(max_number, int)):
        raise PuzzleFormatError("'max_number' must be an integer")

    try:
        grid = ZipGrid.from_rows(rows, walls)
    except InvalidGridError as exc:
        raise PuzzleFormatError(str(exc)) from exc
    return Puzzle(grid=grid, max_number=max_number, source=source)


def load_puzzle(path: Union[str, Path]) -> Puzzle:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Puzzle not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise PuzzleFormatError(f"{path}: invalid JSON ({exc})") from exc
    puzzle = parse_puzzle(data, source=path)
    LOGGER.info("Loaded %s from %s", puzzle.grid, path)
    return puzzle


# ---------- Text output ----------
def format_grid(grid: ZipGrid) -> str:
    lines = []
    for r in range(grid.height):
        tokens = []
        for c in range(grid.width):
            cell = grid.cell((r, c))
            if cell.blocked:
                tokens.append(" #")
            elif cell.number is None:
                tokens.append(" .")
            else:
                tokens.append(f"{cell.number:>2}")
        lines.append(f"{r:>3}: [{', '.join(tokens)}]")
    return "\n".join(lines)


def format_steps(grid: ZipGrid, path: Sequence[Coord], limit: Optional[int] = None) -> str:
    shown = path if limit is None else path[:limit]
    lines = []
    for idx, (r, c) in enumerate(shown, 1):
        number = grid.number_at((r, c))
        value = "empty" if number is None else str(number)
        lines.append(f"{idx:>3}. [{r},{c}] = {value}")
    if len(path) > len(shown):
        lines.append(f"  ... ({len(path) - len(shown)} more steps)")
    return "\n".join(lines)


def path_to_cell_indices(path: Sequence[Coord], width: int) -> List[int]:
    """Row-major cell indices, one per step, for replaying the path."""
    return [r * width + c for r, c in path]
