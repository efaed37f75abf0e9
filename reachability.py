"""
reachability.py
Graph reachability over the tile grid: which tiles, resources and objective
tiles can be reached from a start position, how many walkable regions are cut
off, and which tiles are choke points. Every traversal uses an explicit queue,
heap or stack.
"""
import heapq
from collections import deque
from typing import Dict, Iterator, List, Optional, Set, Tuple

from dat_model import (
    DatDocument,
    DiscoverTileObjective,
    FindBuildingObjective,
    ReachabilityResult,
    TOOL_STORE_TYPE,
)
from tile_catalog import DEFAULT_TILE_CATALOG, TileCatalog

Position = Tuple[int, int]

# N, E, S, W
DIRECTIONS = ((-1, 0), (0, 1), (1, 0), (0, -1))


def default_origin(document: DatDocument) -> Position:
    """Tile of the first Tool Store, or (0, 0) when there is none."""
    for building in document.buildings or []:
        if building.type_name == TOOL_STORE_TYPE:
            return building.coordinates.tile_position()
    return (0, 0)


class ReachabilityAnalyzer:
    def __init__(self, catalog: Optional[TileCatalog] = None, can_mine: bool = False, verbose: bool = False):
        self.catalog = catalog or DEFAULT_TILE_CATALOG
        self.can_mine = can_mine
        self.verbose = verbose

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] {message}")

    # Grid access

    def _rows(self, document: DatDocument) -> List[List[int]]:
        return document.tiles.rows if document.tiles is not None else []

    @staticmethod
    def _neighbours(rows: List[List[int]], position: Position) -> Iterator[Position]:
        row, col = position
        for d_row, d_col in DIRECTIONS:
            n_row, n_col = row + d_row, col + d_col
            if 0 <= n_row < len(rows) and 0 <= n_col < len(rows[n_row]):
                yield (n_row, n_col)

    def _cost(self, rows: List[List[int]], position: Position) -> Optional[int]:
        return self.catalog.move_cost(rows[position[0]][position[1]], self.can_mine)

    def _walkable_cells(self, rows: List[List[int]]) -> Set[Position]:
        return {
            (row, col)
            for row, values in enumerate(rows)
            for col, code in enumerate(values)
            if self.catalog.is_walkable(code)
        }

    # Searches

    def _breadth_first(self, rows: List[List[int]], origin: Position) -> Dict[Position, int]:
        distances = {origin: 0}
        queue = deque([origin])
        while queue:
            current = queue.popleft()
            for neighbour in self._neighbours(rows, current):
                if neighbour in distances or self._cost(rows, neighbour) is None:
                    continue
                distances[neighbour] = distances[current] + 1
                queue.append(neighbour)
        return distances

    def _cheapest_paths(self, rows: List[List[int]], origin: Position) -> Dict[Position, int]:
        """Dijkstra over drill costs; ties break on insertion order."""
        distances = {origin: 0}
        counter = 0
        heap = [(0, counter, origin)]
        done = set()
        while heap:
            cost, _, current = heapq.heappop(heap)
            if current in done:
                continue
            done.add(current)
            for neighbour in self._neighbours(rows, current):
                step = self._cost(rows, neighbour)
                if step is None or neighbour in done:
                    continue
                total = cost + step
                if total < distances.get(neighbour, total + 1):
                    distances[neighbour] = total
                    counter += 1
                    heapq.heappush(heap, (total, counter, neighbour))
        return distances

    # Region analysis

    def _components(self, rows: List[List[int]], cells: Set[Position]) -> List[Set[Position]]:
        components = []
        seen: Set[Position] = set()
        for start in sorted(cells):
            if start in seen:
                continue
            component = {start}
            seen.add(start)
            stack = [start]
            while stack:
                current = stack.pop()
                for neighbour in self._neighbours(rows, current):
                    if neighbour in cells and neighbour not in seen:
                        seen.add(neighbour)
                        component.add(neighbour)
                        stack.append(neighbour)
            components.append(component)
        return components

    def _articulation_points(self, rows: List[List[int]], cells: Set[Position]) -> List[Position]:
        """Iterative Tarjan over the 4-connected graph induced by cells."""
        discovery: Dict[Position, int] = {}
        low: Dict[Position, int] = {}
        parent: Dict[Position, Position] = {}
        points: Set[Position] = set()
        timer = 0

        def linked(position):
            return (n for n in self._neighbours(rows, position) if n in cells)

        for root in sorted(cells):
            if root in discovery:
                continue
            discovery[root] = low[root] = timer
            timer += 1
            root_children = 0
            stack = [(root, linked(root))]
            while stack:
                node, pending = stack[-1]
                advanced = False
                for neighbour in pending:
                    if neighbour not in discovery:
                        parent[neighbour] = node
                        discovery[neighbour] = low[neighbour] = timer
                        timer += 1
                        if node == root:
                            root_children += 1
                        stack.append((neighbour, linked(neighbour)))
                        advanced = True
                        break
                    if neighbour != parent.get(node):
                        low[node] = min(low[node], discovery[neighbour])
                if advanced:
                    continue
                stack.pop()
                if stack:
                    above = stack[-1][0]
                    low[above] = min(low[above], low[node])
                    if above != root and low[node] >= discovery[above]:
                        points.add(above)
            if root_children > 1:
                points.add(root)
        return sorted(points)

    def _resource_cells(self, document: DatDocument, rows: List[List[int]]) -> Set[Position]:
        cells = set()
        for row, values in enumerate(rows):
            for col, code in enumerate(values):
                if self.catalog.is_resource(code):
                    cells.add((row, col))
        if document.resources is not None:
            for name in ("crystals", "ore"):
                grid = document.resources.get(name)
                if grid is None:
                    continue
                for row, values in enumerate(grid.rows):
                    for col, amount in enumerate(values):
                        if amount > 0:
                            cells.add((row, col))
        return cells

    def _within_reach(self, rows: List[List[int]], reachable: Set[Position], position: Position) -> bool:
        """Reachable, or next to a reachable tile so it can be drilled or collected from there."""
        if position in reachable:
            return True
        return any(neighbour in reachable for neighbour in self._neighbours(rows, position))

    def analyze(self, document: DatDocument, origin: Optional[Position] = None) -> ReachabilityResult:
        rows = self._rows(document)
        if origin is None:
            origin = default_origin(document)
        origin = (int(origin[0]), int(origin[1]))

        in_grid = 0 <= origin[0] < len(rows) and 0 <= origin[1] < len(rows[origin[0]])
        if not in_grid or self._cost(rows, origin) is None:
            self.debug_print(f"Origin {origin} is outside the grid or not traversable")
            distances: Dict[Position, int] = {}
        elif self.can_mine:
            distances = self._cheapest_paths(rows, origin)
        else:
            distances = self._breadth_first(rows, origin)
        reachable = set(distances)

        walkable = self._walkable_cells(rows)
        reachable_walkable = walkable & reachable
        isolated = sum(1 for component in self._components(rows, walkable) if not component & reachable)
        choke_points = self._articulation_points(rows, reachable_walkable)

        resources = self._resource_cells(document, rows)
        unreachable_resources = sorted(cell for cell in resources if not self._within_reach(rows, reachable, cell))

        unreachable_objectives = []
        for objective in document.objectives or []:
            if isinstance(objective, (DiscoverTileObjective, FindBuildingObjective)):
                if not self._within_reach(rows, reachable, (objective.row, objective.col)):
                    unreachable_objectives.append(objective)

        result = ReachabilityResult(
            origin=origin,
            reachable=frozenset(reachable),
            distances=distances,
            reachable_floor=len(reachable_walkable),
            total_floor=len(walkable),
            isolated_regions=isolated,
            choke_points=choke_points,
            reachable_resources=len(resources) - len(unreachable_resources),
            total_resources=len(resources),
            unreachable_resources=unreachable_resources,
            unreachable_objectives=unreachable_objectives,
        )
        self.debug_print(repr(result))
        return result


def analyze(document: DatDocument, origin: Optional[Position] = None, can_mine: bool = False,
            catalog: Optional[TileCatalog] = None) -> ReachabilityResult:
    return ReachabilityAnalyzer(catalog, can_mine).analyze(document, origin)
