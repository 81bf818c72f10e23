"""Backtracking search for a full-coverage, waypoint-ordered Zip path."""

import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple, Union

from exceptions import InvalidGridError
from grid import DIRECTIONS, Coord, ZipGrid
from logger import get_logger
from reachability import ReachabilityOracle

LOGGER = get_logger(__name__)

DEFAULT_NODE_BUDGET = 2_000_000
PROGRESS_INTERVAL = 100_000
CANCEL_CHECK_INTERVAL = 1024


class SolveStatus(str, Enum):
    SOLVED = "solved"
    INVALID_INPUT = "invalid_input"
    NO_START_OR_END = "no_start_or_end"
    SEARCH_EXHAUSTED = "search_exhausted"
    BUDGET_EXCEEDED = "budget_exceeded"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PathResult:
    """Outcome of one solve call.

    ``path`` is set only for ``SOLVED``; every other status carries a
    ``message`` and no path.
    """

    status: SolveStatus
    path: Optional[Tuple[Coord, ...]] = None
    nodes_expanded: int = 0
    nodes_pruned: int = 0
    passable_cells: int = 0
    elapsed: float = 0.0
    message: str = ""

    @property
    def success(self) -> bool:
        return self.status is SolveStatus.SOLVED


@dataclass
class SolverConfig:
    """Search knobs. ``timeout`` is in seconds; ``None`` means no deadline."""

    node_budget: int = DEFAULT_NODE_BUDGET
    progress_interval: int = PROGRESS_INTERVAL
    timeout: Optional[float] = None


@contextmanager
def _recursion_headroom(depth: int) -> Iterator[None]:
    # one interpreter frame per path step
    previous = sys.getrecursionlimit()
    sys.setrecursionlimit(previous + depth)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


class ZipSolver:
    """Depth-first search over partial paths with reachability pruning.

    The path and visited set are shared across the whole recursion and
    restored after every child call, so sibling branches always see the
    same state.
    """

    def __init__(self, grid: ZipGrid, config: Optional[SolverConfig] = None,
                 should_cancel: Optional[Callable[[], bool]] = None) -> None:
        self.grid = grid
        self.config = config or SolverConfig()
        self.should_cancel = should_cancel
        self._graph = grid.to_graph()
        self.oracle = ReachabilityOracle(grid, self._graph)
        self.nodes_expanded = 0
        self.nodes_pruned = 0
        self._waypoints: Dict[int, Coord] = dict(grid.waypoints)
        self._numbers: Dict[Coord, int] = {pos: n for n, pos in grid.waypoints.items()}
        # waypoints are visited in ascending order of the numbers actually on the grid
        order = sorted(grid.waypoints)
        self._next_number: Dict[int, Optional[int]] = dict(zip(order, order[1:] + [None]))
        self._target_length = grid.passable_count
        self._end: Optional[Coord] = grid.end
        self._path: List[Coord] = []
        self._visited: Set[Coord] = set()
        self._solution: Optional[Tuple[Coord, ...]] = None
        self._abort: Optional[SolveStatus] = None
        self._deadline: Optional[float] = None

    def run(self) -> PathResult:
        started = time.perf_counter()
        grid = self.grid
        start, end = grid.start, grid.end
        if start is None or end is None:
            return self._finish(SolveStatus.NO_START_OR_END, started, "No start (1) or end cell found")
        missing = grid.missing_waypoints()
        if missing:
            LOGGER.info("Numbers %s are absent; waypoints follow the numbers present", missing)

        LOGGER.info(
            "Solving %dx%d grid: start %s, end %s (max %d), %d cells, %d connected region(s)",
            grid.height, grid.width, start, end, grid.max_number,
            self._target_length, grid.component_count(self._graph),
        )
        if self.config.timeout is not None:
            self._deadline = time.monotonic() + self.config.timeout

        self._path = [start]
        self._visited = {start}
        with _recursion_headroom(self._target_length):
            found = self._search(start, 1)

        if found:
            return self._finish(SolveStatus.SOLVED, started)
        if self._abort is SolveStatus.BUDGET_EXCEEDED:
            return self._finish(
                self._abort, started,
                f"Node budget of {self.config.node_budget} expansions exhausted",
            )
        if self._abort is SolveStatus.CANCELLED:
            return self._finish(self._abort, started, "Search cancelled before completion")
        return self._finish(SolveStatus.SEARCH_EXHAUSTED, started, "No path covers every cell in order")

    def _finish(self, status: SolveStatus, started: float, message: str = "") -> PathResult:
        elapsed = time.perf_counter() - started
        if status is SolveStatus.SOLVED:
            LOGGER.info(
                "Solution found after %d expansions (%d pruned) in %.3fs",
                self.nodes_expanded, self.nodes_pruned, elapsed,
            )
        else:
            LOGGER.warning(
                "No solution (%s): %s [%d expansions, %d pruned]",
                status.value, message, self.nodes_expanded, self.nodes_pruned,
            )
        return PathResult(
            status=status,
            path=self._solution if status is SolveStatus.SOLVED else None,
            nodes_expanded=self.nodes_expanded,
            nodes_pruned=self.nodes_pruned,
            passable_cells=self._target_length,
            elapsed=elapsed,
            message=message,
        )

    def _cancelled(self) -> bool:
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self.should_cancel is not None and bool(self.should_cancel())

    def _ordered_moves(self, pos: Coord, number: int) -> List[Tuple[Coord, int]]:
        """Legal moves as ``(cell, number after the move)``, closest to the next waypoint first."""
        open_cells = self.oracle.neighbors(pos)
        following = self._next_number[number]
        moves: List[Tuple[Coord, int]] = []
        for dr, dc in DIRECTIONS:
            nxt = (pos[0] + dr, pos[1] + dc)
            if nxt in self._visited or nxt not in open_cells:
                continue
            value = self._numbers.get(nxt)
            if value is None:
                moves.append((nxt, number))
            elif value == following:
                moves.append((nxt, value))

        if following is not None:
            target = self._waypoints[following]
            # stable sort keeps the default direction order on ties
            moves.sort(key=lambda move: abs(move[0][0] - target[0]) + abs(move[0][1] - target[1]))
        return moves

    def _search(self, pos: Coord, number: int) -> bool:
        self.nodes_expanded += 1
        if self.nodes_expanded > self.config.node_budget:
            self._abort = SolveStatus.BUDGET_EXCEEDED
            return False
        if (self.nodes_expanded - 1) % CANCEL_CHECK_INTERVAL == 0 and self._cancelled():
            self._abort = SolveStatus.CANCELLED
            return False
        if self.config.progress_interval and self.nodes_expanded % self.config.progress_interval == 0:
            LOGGER.info("Searching... %d expansions, %d pruned", self.nodes_expanded, self.nodes_pruned)

        if pos == self._end and len(self._path) == self._target_length:
            self._solution = tuple(self._path)
            return True

        following = self._next_number[number]
        if following is not None and not self.oracle.all_waypoints_reachable(pos, self._visited, following):
            self.nodes_pruned += 1
            return False
        if not self.oracle.enough_cells_reachable(pos, self._visited, self._target_length - len(self._path)):
            self.nodes_pruned += 1
            return False

        for nxt, nxt_number in self._ordered_moves(pos, number):
            self._path.append(nxt)
            self._visited.add(nxt)
            try:
                found = self._search(nxt, nxt_number)
            finally:
                self._visited.discard(nxt)
                self._path.pop()
            if found:
                return True
            if self._abort is not None:
                return False
        return False


def solve(grid: Union[ZipGrid, Sequence[Sequence[object]]],
          wall_map: Optional[Mapping[object, object]] = None,
          max_number: Optional[int] = None,
          node_budget: int = DEFAULT_NODE_BUDGET,
          timeout: Optional[float] = None,
          should_cancel: Optional[Callable[[], bool]] = None) -> PathResult:
    """Find a path through every open cell visiting 1..max_number in order.

    Args:
        grid: raw rows (``None``/``""`` free, numbers, ``"WALL"`` blocked) or a
            prepared :class:`ZipGrid`.
        wall_map: sparse ``{(r, c) or "r,c": {"bottom": bool, "left": bool, ...}}``.
            Only used with raw rows.
        max_number: expected last waypoint; defaults to the largest number
            found on the grid.
        node_budget: maximum search expansions before giving up.
        timeout: optional deadline in seconds.
        should_cancel: optional callable polled during the search.

    Returns:
        A :class:`PathResult`. Input problems are reported through its
        status, never raised.
    """
    if isinstance(grid, ZipGrid):
        if wall_map is not None:
            raise ValueError("wall_map cannot be combined with a prepared ZipGrid")
        zip_grid = grid
    else:
        try:
            zip_grid = ZipGrid.from_rows(grid, wall_map)
        except InvalidGridError as exc:
            LOGGER.warning("Invalid puzzle: %s", exc)
            return PathResult(status=SolveStatus.INVALID_INPUT, message=str(exc))

    if max_number is not None and max_number != zip_grid.max_number:
        if max_number not in zip_grid.waypoints:
            message = f"No cell holds the end number {max_number}"
            status = SolveStatus.NO_START_OR_END
        else:
            message = f"Grid holds numbers above the end number {max_number}"
            status = SolveStatus.INVALID_INPUT
        LOGGER.warning("Invalid puzzle: %s", message)
        return PathResult(status=status, passable_cells=zip_grid.passable_count, message=message)

    config = SolverConfig(node_budget=node_budget, timeout=timeout)
    return ZipSolver(zip_grid, config, should_cancel=should_cancel).run()


def validate_path(grid: ZipGrid, path: Optional[Sequence[Coord]]) -> List[str]:
    """Return every rule the path breaks; an empty list means it is a solution."""
    if not path:
        return ["Path is empty"]
    problems: List[str] = []
    path = [tuple(pos) for pos in path]

    if len(path) != grid.passable_count:
        problems.append(f"Path covers {len(path)} cells, grid has {grid.passable_count} open cells")
    if len(set(path)) != len(path):
        problems.append("Path visits a cell more than once")
    for pos in path:
        if not grid.is_passable(pos):
            problems.append(f"Path enters blocked or out-of-bounds cell {pos}")
    if path[0] != grid.start:
        problems.append(f"Path starts at {path[0]}, expected {grid.start}")
    if path[-1] != grid.end:
        problems.append(f"Path ends at {path[-1]}, expected {grid.end}")

    for a, b in zip(path, path[1:]):
        if abs(a[0] - b[0]) + abs(a[1] - b[1]) != 1:
            problems.append(f"Step {a} -> {b} is not between neighbours")
        elif grid.wall_between(a, b):
            problems.append(f"Step {a} -> {b} crosses a wall")

    numbers = [n for n in (grid.number_at(pos) for pos in path if grid.in_bounds(pos)) if n is not None]
    if numbers != sorted(grid.waypoints):
        problems.append(f"Waypoints visited out of order: {numbers}")
    return problems
