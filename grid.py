"""Wall-aware grid model for Zip puzzles.

Cells hold a waypoint number, nothing, or blocked terrain. Walls sit on the
boundary between two orthogonal neighbours and are stored once per physical
edge: on the *bottom* of the upper cell and on the *left* of the right cell.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterator, List, Mapping, Optional, Sequence, Set, Tuple, Union

import networkx as nx
import numpy as np

from exceptions import InvalidGridError

Coord = Tuple[int, int]

FREE = 0
BLOCKED = -1
BLOCKED_TOKENS = frozenset({"WALL", "#"})
ROW_TYPES = (list, tuple, np.ndarray)

# Default move order: left, right, down, up
DIRECTIONS: Tuple[Coord, ...] = ((0, -1), (0, 1), (1, 0), (-1, 0))


@dataclass(frozen=True)
class Walls:
    """Blocked sides of a single cell."""

    top: bool = False
    right: bool = False
    bottom: bool = False
    left: bool = False

    def any(self) -> bool:
        return self.top or self.right or self.bottom or self.left

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "Walls":
        if not isinstance(data, Mapping):
            raise InvalidGridError(f"Wall record must map sides to flags, got {data!r}")
        unknown = set(data) - {"top", "right", "bottom", "left", "row", "col"}
        if unknown:
            raise InvalidGridError(f"Unknown wall sides: {sorted(unknown)}")
        return cls(
            top=bool(data.get("top", False)),
            right=bool(data.get("right", False)),
            bottom=bool(data.get("bottom", False)),
            left=bool(data.get("left", False)),
        )


@dataclass(frozen=True)
class Cell:
    row: int
    col: int
    number: Optional[int] = None
    blocked: bool = False

    @property
    def pos(self) -> Coord:
        return (self.row, self.col)

    @property
    def is_waypoint(self) -> bool:
        return self.number is not None


WallInput = Union[Walls, Mapping[str, object]]


def parse_coord(key: Union[str, Sequence[int]]) -> Coord:
    """Accept ``(r, c)`` tuples/lists or ``"r,c"`` strings."""
    if isinstance(key, str):
        parts = key.split(",")
        if len(parts) != 2:
            raise InvalidGridError(f"Bad coordinate key: {key!r}")
        try:
            return int(parts[0]), int(parts[1])
        except ValueError as exc:
            raise InvalidGridError(f"Bad coordinate key: {key!r}") from exc
    try:
        if len(key) != 2:
            raise InvalidGridError(f"Bad coordinate: {key!r}")
        return int(key[0]), int(key[1])
    except (TypeError, ValueError) as exc:
        raise InvalidGridError(f"Bad coordinate: {key!r}") from exc


def _parse_value(token: object, row: int, col: int) -> int:
    if token is None:
        return FREE
    if isinstance(token, bool):
        raise InvalidGridError(f"Boolean value at ({row},{col}) is not a cell value")
    if isinstance(token, (int, np.integer)):
        value = int(token)
        if value == BLOCKED:
            return BLOCKED
    elif isinstance(token, str):
        text = token.strip()
        if not text:
            return FREE
        if text.upper() in BLOCKED_TOKENS:
            return BLOCKED
        if not text.isdigit():
            raise InvalidGridError(f"Cannot read cell value {token!r} at ({row},{col})")
        value = int(text)
    else:
        raise InvalidGridError(f"Cannot read cell value {token!r} at ({row},{col})")
    if value < 0:
        raise InvalidGridError(f"Negative number {value} at ({row},{col})")
    return value


class ZipGrid:
    """Immutable grid of cell values plus the canonical wall map.

    ``values`` is a read-only integer array: ``0`` for a free cell, ``-1`` for
    blocked terrain, ``k > 0`` for waypoint ``k``.
    """

    def __init__(self, values, walls: Optional[Mapping[object, WallInput]] = None) -> None:
        try:
            array = np.array(values, dtype=int)
        except (TypeError, ValueError) as exc:
            raise InvalidGridError(f"Grid values are not a rectangle of integers: {exc}") from exc
        if array.ndim != 2 or array.size == 0:
            raise InvalidGridError("Grid must be a non-empty rectangle")
        if (array < BLOCKED).any():
            raise InvalidGridError("Grid holds values below the blocked sentinel")
        array.setflags(write=False)
        self.values = array
        self.height, self.width = array.shape

        self.waypoints: Dict[int, Coord] = {}
        for r, c in zip(*np.nonzero(array > 0)):
            number = int(array[r, c])
            if number in self.waypoints:
                raise InvalidGridError(
                    f"Number {number} appears at {self.waypoints[number]} and {(int(r), int(c))}"
                )
            self.waypoints[number] = (int(r), int(c))

        self.passable_count = int(np.count_nonzero(array != BLOCKED))
        self._bottom, self._left = self._normalize_walls(walls or {})

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[object]],
                  walls: Optional[Mapping[object, WallInput]] = None) -> "ZipGrid":
        """Build a grid from raw rows of ``None``/numbers/``"WALL"`` tokens."""
        if not isinstance(rows, ROW_TYPES):
            raise InvalidGridError(f"Grid must be a list of rows, got {type(rows).__name__}")
        if len(rows) == 0:
            raise InvalidGridError("Grid has no rows")
        for r, row in enumerate(rows):
            if not isinstance(row, ROW_TYPES):
                raise InvalidGridError(f"Row {r} is not a list of cells: {row!r}")
        width = len(rows[0])
        if width == 0:
            raise InvalidGridError("Grid rows are empty")
        for r, row in enumerate(rows):
            if len(row) != width:
                raise InvalidGridError(
                    f"Grid is not rectangular: row {r} has {len(row)} cells, expected {width}"
                )
        values = [[_parse_value(token, r, c) for c, token in enumerate(row)] for r, row in enumerate(rows)]
        return cls(values, walls)

    # ---------- Walls ----------
    def _normalize_walls(self, walls: Mapping[object, WallInput]) -> Tuple[FrozenSet[Coord], FrozenSet[Coord]]:
        if not isinstance(walls, Mapping):
            raise InvalidGridError(f"Wall map must be keyed by cell, got {type(walls).__name__}")
        bottom: Set[Coord] = set()
        left: Set[Coord] = set()
        for key, record in walls.items():
            r, c = parse_coord(key)
            if not self.in_bounds((r, c)):
                raise InvalidGridError(f"Wall entry ({r},{c}) is outside the {self.height}x{self.width} grid")
            if not isinstance(record, Walls):
                record = Walls.from_mapping(record)
            if record.bottom:
                bottom.add((r, c))
            if record.left:
                left.add((r, c))
            # top/right are the mirrored sides of the neighbour; the outer border needs no entry
            if record.top and r > 0:
                bottom.add((r - 1, c))
            if record.right and c + 1 < self.width:
                left.add((r, c + 1))
        return frozenset(bottom), frozenset(left)

    def walls_at(self, pos: Coord) -> Walls:
        r, c = pos
        return Walls(
            top=(r - 1, c) in self._bottom,
            right=(r, c + 1) in self._left,
            bottom=pos in self._bottom,
            left=pos in self._left,
        )

    def wall_map(self) -> Dict[Coord, Walls]:
        """Sparse canonical map: only bottom/left sides, only cells with a wall."""
        keys = sorted(self._bottom | self._left)
        return {pos: Walls(bottom=pos in self._bottom, left=pos in self._left) for pos in keys}

    def wall_between(self, a: Coord, b: Coord) -> bool:
        """Whether the edge crossed moving from ``a`` to ``b`` is walled.

        The wall belongs to the lower cell of a vertical pair and to the
        right cell of a horizontal pair.
        """
        dr, dc = b[0] - a[0], b[1] - a[1]
        if (dr, dc) == (1, 0):
            return a in self._bottom
        if (dr, dc) == (-1, 0):
            return b in self._bottom
        if (dr, dc) == (0, -1):
            return a in self._left
        if (dr, dc) == (0, 1):
            return b in self._left
        raise ValueError(f"{a} and {b} are not orthogonal neighbours")

    # ---------- Cells ----------
    def in_bounds(self, pos: Coord) -> bool:
        return 0 <= pos[0] < self.height and 0 <= pos[1] < self.width

    def is_passable(self, pos: Coord) -> bool:
        return self.in_bounds(pos) and int(self.values[pos]) != BLOCKED

    def neighbors(self, pos: Coord) -> List[Coord]:
        r, c = pos
        return [(r + dr, c + dc) for dr, dc in DIRECTIONS if self.in_bounds((r + dr, c + dc))]

    def can_move(self, a: Coord, b: Coord) -> bool:
        if not self.is_passable(a) or not self.is_passable(b):
            return False
        if abs(a[0] - b[0]) + abs(a[1] - b[1]) != 1:
            return False
        return not self.wall_between(a, b)

    def number_at(self, pos: Coord) -> Optional[int]:
        value = int(self.values[pos])
        return value if value > 0 else None

    def cell(self, pos: Coord) -> Cell:
        value = int(self.values[pos])
        return Cell(pos[0], pos[1], number=value if value > 0 else None, blocked=value == BLOCKED)

    def cells(self) -> Iterator[Cell]:
        for r in range(self.height):
            for c in range(self.width):
                yield self.cell((r, c))

    # ---------- Waypoints ----------
    @property
    def max_number(self) -> int:
        return max(self.waypoints, default=0)

    @property
    def start(self) -> Optional[Coord]:
        return self.waypoints.get(1)

    @property
    def end(self) -> Optional[Coord]:
        return self.waypoints.get(self.max_number) if self.waypoints else None

    def missing_waypoints(self) -> List[int]:
        return [n for n in range(1, self.max_number + 1) if n not in self.waypoints]

    # ---------- Graph view ----------
    def to_graph(self) -> nx.Graph:
        """Passable cells as nodes, wall-free adjacencies as edges."""
        graph = nx.Graph()
        for cell in self.cells():
            if not cell.blocked:
                graph.add_node(cell.pos, number=cell.number)
        for r, c in list(graph.nodes):
            for nxt in ((r + 1, c), (r, c + 1)):
                if nxt in graph and not self.wall_between((r, c), nxt):
                    graph.add_edge((r, c), nxt)
        return graph

    def component_count(self, graph: Optional[nx.Graph] = None) -> int:
        """Connected regions of the passable graph; pass ``graph`` to reuse a built one."""
        if graph is None:
            graph = self.to_graph()
        if graph.number_of_nodes() == 0:
            return 0
        return nx.number_connected_components(graph)

    def __repr__(self) -> str:
        return (
            f"ZipGrid({self.height}x{self.width}, numbers=1..{self.max_number}, "
            f"walls={len(self._bottom) + len(self._left)}, blocked={self.values.size - self.passable_count})"
        )
