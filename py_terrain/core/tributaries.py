"""
Tributary generation.

A tributary branches off the middle of a parent river and runs through
vertices no river or earlier tributary has used. Candidate end vertices
come from a bounded breadth-first expansion around the branch point and are
tried farthest first, so tributaries tend to be long and distinct.
"""

import math
from collections import deque
from dataclasses import dataclass
from typing import List, Optional, Set

import structlog

from .alea_prng import AleaPRNG
from .geometry import PathFeature
from .graph_state import GraphState
from .pathfinder import DEFAULT_MAX_ITERATIONS, find_path
from .rivers import RiverGenerator, build_path_feature
from .vertex_graph import VertexGraph, remove_vertices
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()

BRANCH_RANGE = (0.3, 0.7)
MIN_FALLBACK_LENGTH = 3


@dataclass
class TributaryOptions:
    """Tributary generation parameters."""
    num_tributaries: int = 1  # Per river
    max_tributary_length: Optional[int] = None  # Upper cap on vertices per tributary
    max_iterations: int = DEFAULT_MAX_ITERATIONS


def select_branch_index(path_length: int, prng: AleaPRNG) -> int:
    """Random index in the middle of a path (30% to 70% of its length)."""
    start = math.floor(path_length * BRANCH_RANGE[0])
    end = math.floor(path_length * BRANCH_RANGE[1])
    return start + math.floor(prng.random() * (end - start))


def expand_candidates(graph: VertexGraph, branch: int, generations: int,
                      blocked: Set[int]) -> List[int]:
    """
    Vertices reachable from ``branch`` within a number of BFS generations.

    Args:
        graph: Graph to expand over
        branch: Starting vertex (not included in the result)
        generations: Maximum number of expansion rounds
        blocked: Vertices never entered

    Returns:
        Vertex ids in discovery order
    """
    seen = {branch}
    found = []
    frontier = deque([branch])

    for _ in range(generations):
        next_frontier = deque()
        while frontier:
            vertex = frontier.popleft()
            for neighbor in graph.adjacency.get(vertex, []):
                if neighbor in seen or neighbor in blocked or not graph.has_vertex(neighbor):
                    continue
                seen.add(neighbor)
                found.append(neighbor)
                next_frontier.append(neighbor)
        if not next_frontier:
            break
        frontier = next_frontier

    return found


class TributaryGenerator:
    """Carves tributaries off existing rivers."""

    def __init__(self, graph: VoronoiGraph, prng: AleaPRNG, graph_state: GraphState,
                 river_generator: RiverGenerator):
        self.graph = graph
        self.prng = prng
        self.graph_state = graph_state
        self.river_generator = river_generator
        self.tributaries: List[PathFeature] = []
        self.tributary_cells: Set[int] = set()

    def routing_graph(self, branch: int) -> VertexGraph:
        """Base graph without consumed vertices, keeping the branch vertex."""
        routing = self.graph.to_vertex_graph()
        blocked = self.graph_state.consumed_vertices | self.river_generator.get_river_vertices()
        blocked.discard(branch)
        remove_vertices(routing, blocked)
        return routing

    def generate_single_tributary(self, river_path: List[int],
                                  max_iterations: int = DEFAULT_MAX_ITERATIONS) -> List[int]:
        """
        Build one tributary for a river.

        The target length is a third of the river's vertex count. Candidates
        are tried farthest first and the first route no longer than the
        target wins. Otherwise candidates are retried nearest first and the
        first route longer than three vertices wins.

        Returns:
            Vertex path starting at the branch vertex, or an empty list
        """
        length = len(river_path)
        if length == 0:
            return []

        target = length // 3
        branch = river_path[select_branch_index(length, self.prng)]
        routing = self.routing_graph(branch)

        candidates = expand_candidates(routing, branch, math.ceil(length / 3),
                                       self.river_generator.get_river_vertices() - {branch})
        if not candidates:
            logger.info("No tributary candidates found", branch=branch)
            return []

        origin = routing.vertices[branch]
        ranked = sorted(candidates, key=lambda v: -origin.distance_to(routing.vertices[v]))

        for vertex in ranked:
            path = find_path(routing, branch, vertex, max_iterations)
            if path and len(path) <= target:
                logger.debug("Selected tributary end vertex", end=vertex,
                             vertices=len(path), target=target)
                return path

        for vertex in reversed(ranked):
            path = find_path(routing, branch, vertex, max_iterations)
            if len(path) > MIN_FALLBACK_LENGTH:
                logger.debug("Selected fallback tributary end vertex", end=vertex,
                             vertices=len(path), target=target)
                return path

        logger.info("No suitable tributary path found", branch=branch, candidates=len(ranked))
        return []

    def generate(self, options: Optional[TributaryOptions] = None) -> List[PathFeature]:
        """
        Replace any existing tributaries with new ones for every river.

        Each accepted tributary, apart from its branch vertex, is split out
        of the graph state.

        Returns:
            The generated tributaries
        """
        options = options or TributaryOptions()
        self.clear()

        rivers = self.river_generator.rivers
        if not rivers:
            logger.warning("No rivers found, generate rivers before tributaries")
            return []

        for river in rivers:
            for index in range(options.num_tributaries):
                path = self.generate_single_tributary(river.vertices, options.max_iterations)
                if not path:
                    logger.info("Failed to generate tributary", river=river.id, tributary=index)
                    continue
                if options.max_tributary_length is not None and len(path) > options.max_tributary_length:
                    logger.info("Tributary exceeds maximum length", river=river.id,
                                vertices=len(path), max_length=options.max_tributary_length)
                    continue

                number = len(self.tributaries)
                feature = build_path_feature(self.graph, f"tributary-{number}", "tributary",
                                             path, parent_id=river.id)
                self.tributaries.append(feature)
                self._carve(path, number)

        logger.info("Tributaries generated", rivers=len(rivers), tributaries=len(self.tributaries))
        return self.tributaries

    def _carve(self, path: List[int], number: int) -> None:
        for cell_id in self.graph.cells_touching(path):
            self.graph.cells[cell_id].features.river = True
            self.tributary_cells.add(cell_id)

        partition = self.graph_state.find_partition_containing(path[1])
        if partition is None:
            logger.warning("No partition contains tributary", tributary=number)
            return
        self.graph_state.split_by_path(partition.id, path[1:], feature_type="tributary",
                                       feature_index=number,
                                       description=f"Tributary {number + 1}")

    def clear(self) -> None:
        """Remove tributary tagging, keeping cells that also touch a river."""
        for cell_id in self.tributary_cells - self.river_generator.river_cells:
            self.graph.cells[cell_id].features.river = False
        self.tributary_cells = set()
        self.tributaries = []

    def get_tributary_paths(self) -> List[List[int]]:
        return [list(t.vertices) for t in self.tributaries]
