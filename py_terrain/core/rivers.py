"""
River generation.

Each river runs from a random vertex near the north edge of the map to a
random vertex near the south edge, routed with A* over the largest
remaining graph partition. Accepted paths are carved out of the graph state
so later rivers and tributaries cannot reuse their vertices.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Set

import structlog

from .alea_prng import AleaPRNG
from .geometry import PathFeature, mean_point, polyline_length
from .graph_state import GraphState
from .pathfinder import DEFAULT_MAX_ITERATIONS, find_path
from .vertex_graph import VertexGraph
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()


@dataclass
class RiverOptions:
    """River generation parameters."""
    num_rivers: int = 1
    north_tolerance: float = 30.0  # Start band: z < north_tolerance
    south_tolerance: float = 10.0  # End band: z >= grid_size - south_tolerance
    max_iterations: int = DEFAULT_MAX_ITERATIONS


def north_edge_vertices(graph: VertexGraph, grid_size: float, tolerance: float) -> List[int]:
    """Routable vertices inside the north border band."""
    return [
        i for i in graph.valid_vertices()
        if 0 <= graph.vertices[i].z < tolerance and 0 <= graph.vertices[i].x <= grid_size
        and graph.adjacency.get(i)
    ]


def south_edge_vertices(graph: VertexGraph, grid_size: float, tolerance: float) -> List[int]:
    """Routable vertices inside the south border band."""
    return [
        i for i in graph.valid_vertices()
        if grid_size - tolerance <= graph.vertices[i].z <= grid_size
        and 0 <= graph.vertices[i].x <= grid_size and graph.adjacency.get(i)
    ]


def build_path_feature(graph: VoronoiGraph, feature_id: str, kind: str, path: List[int],
                       parent_id: Optional[str] = None) -> PathFeature:
    points = [graph.vertices[v] for v in path]
    return PathFeature(
        id=feature_id,
        kind=kind,
        vertices=list(path),
        length=polyline_length(points),
        centroid=mean_point(points),
        parent_id=parent_id,
    )


class RiverGenerator:
    """Carves rivers into the vertex graph and tracks them."""

    def __init__(self, graph: VoronoiGraph, prng: AleaPRNG, graph_state: GraphState):
        self.graph = graph
        self.prng = prng
        self.graph_state = graph_state
        self.rivers: List[PathFeature] = []
        self.river_cells: Set[int] = set()

    def generate_single_river(self, routing: VertexGraph,
                              options: RiverOptions) -> List[int]:
        """
        Route one river over a graph.

        Returns:
            The vertex path, or an empty list if a border band is empty or
            no route exists
        """
        north = north_edge_vertices(routing, self.graph.grid_size, options.north_tolerance)
        if not north:
            logger.warning("No vertices found on north edge", tolerance=options.north_tolerance)
            return []
        start = north[self.prng.randint(len(north))]

        south = south_edge_vertices(routing, self.graph.grid_size, options.south_tolerance)
        if not south:
            logger.warning("No vertices found on south edge", tolerance=options.south_tolerance)
            return []
        end = south[self.prng.randint(len(south))]

        logger.debug("Selected river endpoints", start=start, end=end,
                     north_candidates=len(north), south_candidates=len(south))
        return find_path(routing, start, end, options.max_iterations)

    def generate(self, options: Optional[RiverOptions] = None) -> List[PathFeature]:
        """
        Replace any existing rivers with new ones.

        Each river is routed on the largest partition of the graph state and
        then split out of it. A failed river is skipped; the remaining
        rivers are still attempted.

        Returns:
            The generated rivers
        """
        options = options or RiverOptions()
        self.clear()

        for index in range(options.num_rivers):
            partition = self.graph_state.get_largest_partition()
            if partition is None:
                logger.warning("No partitions left for river generation", river=index)
                break

            path = self.generate_single_river(partition.graph, options)
            if not path:
                logger.warning("River generation failed", river=index, partition_id=partition.id)
                continue

            feature = build_path_feature(self.graph, f"river-{index}", "river", path)
            self.rivers.append(feature)
            self._flag_cells(path)
            self.graph_state.split_by_path(partition.id, path, feature_type="river",
                                           feature_index=index, description=f"River {index + 1}")
            logger.info("River generated", river=index, vertices=len(path),
                        length=round(feature.length, 2))

        logger.info("Rivers generated", requested=options.num_rivers, generated=len(self.rivers))
        return self.rivers

    def _flag_cells(self, path: List[int]) -> None:
        for cell_id in self.graph.cells_touching(path):
            self.graph.cells[cell_id].features.river = True
            self.river_cells.add(cell_id)

    def clear(self) -> None:
        """Remove all river tagging. Graph state is not restored."""
        for cell_id in self.river_cells:
            self.graph.cells[cell_id].features.river = False
        self.river_cells = set()
        self.rivers = []

    def get_river_paths(self) -> List[List[int]]:
        return [list(river.vertices) for river in self.rivers]

    def get_river_vertices(self) -> Set[int]:
        return {v for river in self.rivers for v in river.vertices}

    def is_river_cell(self, cell_id: int) -> bool:
        return cell_id in self.river_cells

    def get_river_cells(self) -> List[int]:
        return sorted(self.river_cells)

    def get_river_stats(self) -> Dict[str, float]:
        lengths = [len(river.vertices) for river in self.rivers]
        return {
            "number_of_rivers": len(lengths),
            "total_river_cells": len(self.river_cells),
            "average_river_length": sum(lengths) / len(lengths) if lengths else 0,
            "longest_river": max(lengths, default=0),
        }
