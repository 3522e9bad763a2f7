"""A* search over a vertex graph."""

import heapq
import math
from typing import Dict, List, Optional, Sequence

import structlog

from .vertex_graph import VertexGraph

logger = structlog.get_logger()

DEFAULT_MAX_ITERATIONS = 1000


def heuristic(graph: VertexGraph, vertex_id: int, goal_id: int) -> float:
    """Straight-line distance between two vertices."""
    a = graph.vertices[vertex_id]
    b = graph.vertices[goal_id]
    return math.hypot(a.x - b.x, a.z - b.z)


def reconstruct_path(came_from: Dict[int, int], current: int) -> List[int]:
    path = [current]
    while current in came_from:
        current = came_from[current]
        path.append(current)
    path.reverse()
    return path


def find_path(graph: VertexGraph, start: int, goal: int,
              max_iterations: int = DEFAULT_MAX_ITERATIONS) -> List[int]:
    """
    Find the cheapest vertex path from ``start`` to ``goal``.

    Path cost is the sum of the directed edge weights. The straight-line
    heuristic is admissible as long as no edge weight is below its Euclidean
    length, in which case the returned path is optimal.

    Neighbours without an edge weight are logged and skipped. Every
    expansion counts against ``max_iterations``.

    Args:
        graph: Base graph or partition to search
        start: Start vertex id
        goal: Goal vertex id
        max_iterations: Cap on node expansions

    Returns:
        Vertex ids from start to goal inclusive, or an empty list if there
        is no route within the cap
    """
    if not graph.has_vertex(start) or not graph.has_vertex(goal):
        logger.warning("Path endpoint not in graph", start=start, goal=goal)
        return []
    if start == goal:
        return [start]

    g_score = {start: 0.0}
    came_from: Dict[int, int] = {}
    closed = set()
    counter = 0
    open_heap = [(heuristic(graph, start, goal), counter, start)]
    iterations = 0

    while open_heap:
        if iterations >= max_iterations:
            logger.warning("Pathfinding iteration cap reached", start=start, goal=goal,
                           max_iterations=max_iterations)
            return []

        _, _, current = heapq.heappop(open_heap)
        if current in closed:
            continue
        iterations += 1

        if current == goal:
            path = reconstruct_path(came_from, current)
            logger.debug("Path found", start=start, goal=goal, length=len(path),
                         cost=round(g_score[goal], 3), iterations=iterations)
            return path

        closed.add(current)

        if current not in graph.adjacency:
            logger.warning("Vertex has no adjacency entry", vertex=current)
            continue

        for neighbor in graph.adjacency[current]:
            if neighbor in closed or not graph.has_vertex(neighbor):
                continue
            weight = graph.edges.get((current, neighbor))
            if weight is None:
                logger.warning("Missing edge weight", edge=f"{current}-{neighbor}")
                continue

            tentative = g_score[current] + weight
            if tentative < g_score.get(neighbor, math.inf):
                came_from[neighbor] = current
                g_score[neighbor] = tentative
                counter += 1
                heapq.heappush(open_heap,
                               (tentative + heuristic(graph, neighbor, goal), counter, neighbor))

    logger.info("No path found, open set exhausted", start=start, goal=goal, iterations=iterations)
    return []


def path_cost(graph: VertexGraph, path: Sequence[int]) -> Optional[float]:
    """Sum of edge weights along a path, or ``None`` if an edge is missing."""
    total = 0.0
    for u, v in zip(path, path[1:]):
        weight = graph.edges.get((u, v))
        if weight is None:
            return None
        total += weight
    return total
