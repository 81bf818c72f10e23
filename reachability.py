"""Breadth-first connectivity checks used to prune the path search."""

from collections import deque
from typing import AbstractSet, Dict, List, Optional, Set, Tuple

import networkx as nx

from grid import Coord, ZipGrid


class ReachabilityOracle:
    """Answers "can the rest of the puzzle still be reached from here?".

    Both checks are necessary conditions only: a ``False`` proves the partial
    path cannot be completed, a ``True`` proves nothing. Neither mutates the
    ``visited`` set it is given.
    """

    def __init__(self, grid: ZipGrid, graph: Optional[nx.Graph] = None) -> None:
        self.grid = grid
        if graph is None:
            graph = grid.to_graph()
        self._adjacency: Dict[Coord, Tuple[Coord, ...]] = {
            node: tuple(graph.neighbors(node)) for node in graph.nodes
        }
        self._waypoints: List[Tuple[int, Coord]] = sorted(grid.waypoints.items())

    def neighbors(self, pos: Coord) -> Tuple[Coord, ...]:
        """Passable neighbours of ``pos`` not separated from it by a wall."""
        return self._adjacency.get(pos, ())

    def reachable_region(self, origin: Coord, visited: AbstractSet[Coord]) -> Set[Coord]:
        """Cells reachable from ``origin`` without entering ``visited``.

        ``origin`` itself is always part of the region.
        """
        region = {origin}
        queue = deque([origin])
        while queue:
            cur = queue.popleft()
            for nxt in self._adjacency.get(cur, ()):
                if nxt in region or nxt in visited:
                    continue
                region.add(nxt)
                queue.append(nxt)
        return region

    def all_waypoints_reachable(self, origin: Coord, visited: AbstractSet[Coord], next_number: int) -> bool:
        required = [pos for number, pos in self._waypoints if number >= next_number and pos not in visited]
        if not required:
            return True
        region = self.reachable_region(origin, visited)
        return all(pos in region for pos in required)

    def enough_cells_reachable(self, origin: Coord, visited: AbstractSet[Coord], cells_needed: int) -> bool:
        """Whether the region around ``origin`` holds at least ``cells_needed`` cells.

        Stops expanding as soon as the threshold is met.
        """
        if cells_needed <= 0:
            return True
        region = {origin}
        if len(region) >= cells_needed:
            return True
        queue = deque([origin])
        while queue:
            cur = queue.popleft()
            for nxt in self._adjacency.get(cur, ()):
                if nxt in region or nxt in visited:
                    continue
                region.add(nxt)
                if len(region) >= cells_needed:
                    return True
                queue.append(nxt)
        return False
