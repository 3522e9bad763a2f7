"""
Vertex graph value type and stateless graph utilities.

A ``VertexGraph`` is the routable part of the Voronoi diagram: vertex
coordinates (``None`` for degenerate or removed vertices), a symmetric
adjacency map and directed edge weights keyed by ``(u, v)``. The base graph
and every Graph State partition are independent instances of it; vertex
indices stay stable across copies and splits.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

import numpy as np
import structlog

from .geometry import Point

logger = structlog.get_logger()

EdgeKey = Tuple[int, int]

CENTROID_METHODS = ("geometric", "weighted", "medoid")


@dataclass
class VertexGraph:
    """Vertices, vertex adjacency and edge weights of a (partial) Voronoi graph."""
    vertices: List[Optional[Point]] = field(default_factory=list)
    adjacency: Dict[int, List[int]] = field(default_factory=dict)
    edges: Dict[EdgeKey, float] = field(default_factory=dict)

    def valid_vertices(self) -> List[int]:
        """Indices of vertices that are present."""
        return [i for i, v in enumerate(self.vertices) if v is not None]

    @property
    def valid_vertex_count(self) -> int:
        return sum(1 for v in self.vertices if v is not None)

    def has_vertex(self, vertex_id: int) -> bool:
        return 0 <= vertex_id < len(self.vertices) and self.vertices[vertex_id] is not None

    def neighbors(self, vertex_id: int) -> List[int]:
        return self.adjacency.get(vertex_id, [])

    def weight(self, u: int, v: int) -> Optional[float]:
        return self.edges.get((u, v))


@dataclass
class CentroidResult:
    """Centre of a vertex graph."""
    x: float
    z: float
    method: str
    vertex_count: int
    is_actual_vertex: bool = False
    vertex_id: Optional[int] = None
    total_distance: Optional[float] = None

    @property
    def point(self) -> Point:
        return Point(self.x, self.z)


@dataclass
class GraphValidation:
    """Result of ``validate_graph``."""
    stats: Dict[str, int]
    issues: List[str]

    @property
    def is_valid(self) -> bool:
        return not self.issues


def deep_copy_graph(graph: VertexGraph) -> VertexGraph:
    """
    Value-copy a vertex graph.

    Splitting mutates its working copy in place, so the base graph and each
    partition must never share containers.
    """
    copy = VertexGraph(
        vertices=list(graph.vertices),
        adjacency={v: list(connected) for v, connected in graph.adjacency.items()},
        edges=dict(graph.edges),
    )
    logger.debug("Created deep copy of graph",
                 vertices=len(copy.vertices),
                 mappings=len(copy.adjacency),
                 edges=len(copy.edges))
    return copy


def remove_vertices(graph: VertexGraph, vertex_ids: Iterable[int]) -> int:
    """
    Remove vertices from a graph in place.

    Nulls the vertex slots (indices stay stable), deletes their adjacency
    entries, strips them from every other adjacency list and drops every
    edge incident to them.

    Args:
        graph: Graph to modify
        vertex_ids: Vertices to remove; ids not present are ignored

    Returns:
        Number of removed edges
    """
    removed = set(vertex_ids)

    for vertex_id in removed:
        if 0 <= vertex_id < len(graph.vertices):
            graph.vertices[vertex_id] = None
        graph.adjacency.pop(vertex_id, None)

    for vertex_id, connected in graph.adjacency.items():
        if any(c in removed for c in connected):
            graph.adjacency[vertex_id] = [c for c in connected if c not in removed]

    dropped = [key for key in graph.edges if key[0] in removed or key[1] in removed]
    for key in dropped:
        del graph.edges[key]

    logger.debug("Removed vertices from graph", vertices=len(removed), edges=len(dropped))
    return len(dropped)


def find_connected_subgraphs(graph: VertexGraph) -> List[VertexGraph]:
    """
    Split a graph into its connected components with a flood fill.

    Every valid vertex ends up in exactly one component, including isolated
    vertices (which become single-vertex components). Components keep the
    original vertex indices; all other slots are ``None``.

    Args:
        graph: Graph to partition

    Returns:
        One subgraph per component, ordered by smallest vertex index
    """
    visited: Set[int] = set()
    subgraphs = []

    for start in graph.valid_vertices():
        if start in visited:
            continue
        members = _flood_fill(graph, start, visited)
        subgraphs.append(_extract_subgraph(graph, members))

    logger.info("Found connected subgraphs", count=len(subgraphs),
                sizes=[s.valid_vertex_count for s in subgraphs])
    return subgraphs


def _flood_fill(graph: VertexGraph, start: int, visited: Set[int]) -> Set[int]:
    members = set()
    queue = deque([start])
    visited.add(start)

    while queue:
        current = queue.popleft()
        members.add(current)
        for neighbor in graph.adjacency.get(current, []):
            if neighbor not in visited and graph.has_vertex(neighbor):
                visited.add(neighbor)
                queue.append(neighbor)

    return members


def _extract_subgraph(graph: VertexGraph, members: Set[int]) -> VertexGraph:
    vertices: List[Optional[Point]] = [None] * len(graph.vertices)
    adjacency = {}
    for vertex_id in sorted(members):
        vertices[vertex_id] = graph.vertices[vertex_id]
        adjacency[vertex_id] = [c for c in graph.adjacency.get(vertex_id, []) if c in members]

    edges = {key: weight for key, weight in graph.edges.items()
             if key[0] in members and key[1] in members}
    return VertexGraph(vertices=vertices, adjacency=adjacency, edges=edges)


def find_largest_graph(graphs: List[VertexGraph]) -> int:
    """
    Index of the graph with the most valid vertices (first one on ties).

    Raises:
        ValueError: If ``graphs`` is empty
    """
    if not graphs:
        raise ValueError("No graphs provided to find_largest_graph")

    sizes = [g.valid_vertex_count for g in graphs]
    largest = int(np.argmax(sizes))
    logger.debug("Selected largest graph", index=largest, vertices=sizes[largest])
    return largest


def determine_centroid(graph: VertexGraph, method: str = "geometric") -> Optional[CentroidResult]:
    """
    Determine the centre of a graph.

    Methods:
        geometric: arithmetic mean of the vertex coordinates
        weighted: mean weighted by adjacency-list length (at least 1)
        medoid: the vertex minimizing the summed distance to all others

    Returns:
        Centroid, or ``None`` if the graph has no valid vertices
    """
    ids = graph.valid_vertices()
    if not ids:
        logger.warning("No valid vertices found for centroid calculation")
        return None

    if method not in CENTROID_METHODS:
        logger.warning("Unknown centroid method, using geometric", method=method)
        method = "geometric"

    coords = np.array([[graph.vertices[i].x, graph.vertices[i].z] for i in ids], dtype=float)

    if method == "weighted":
        weights = np.array([max(1, len(graph.adjacency.get(i, []))) for i in ids], dtype=float)
        x, z = (coords * weights[:, None]).sum(axis=0) / weights.sum()
        result = CentroidResult(float(x), float(z), method, len(ids))
    elif method == "medoid":
        totals = np.array([np.hypot(*(coords - row).T).sum() for row in coords])
        best = int(np.argmin(totals))
        result = CentroidResult(
            float(coords[best, 0]), float(coords[best, 1]), method, len(ids),
            is_actual_vertex=True, vertex_id=ids[best], total_distance=float(totals[best]))
    else:
        x, z = coords.mean(axis=0)
        result = CentroidResult(float(x), float(z), method, len(ids))

    logger.debug("Calculated centroid", method=method, x=round(result.x, 2),
                 z=round(result.z, 2), vertices=len(ids))
    return result


def validate_graph(graph: VertexGraph) -> GraphValidation:
    """
    Check the structural integrity of a graph.

    Counts null and valid vertices, orphaned vertices (valid but without an
    adjacency entry), asymmetric adjacency entries and invalid edges (an
    endpoint missing or a non-numeric weight). Any issue makes the graph
    invalid.
    """
    issues = []
    stats = {
        "total_vertices": len(graph.vertices),
        "valid_vertices": 0,
        "null_vertices": 0,
        "total_edges": len(graph.edges),
        "vertex_mappings": len(graph.adjacency),
        "orphaned_vertices": 0,
        "asymmetric_links": 0,
        "invalid_edges": 0,
    }

    for index, vertex in enumerate(graph.vertices):
        if vertex is None:
            stats["null_vertices"] += 1
            continue
        stats["valid_vertices"] += 1
        if index not in graph.adjacency:
            stats["orphaned_vertices"] += 1
            issues.append(f"Vertex {index} has no connectivity mapping")

    for vertex_id, connected in graph.adjacency.items():
        for other in connected:
            if vertex_id not in graph.adjacency.get(other, []):
                stats["asymmetric_links"] += 1
                issues.append(f"Adjacency {vertex_id}->{other} has no reverse entry")

    for (u, v), weight in graph.edges.items():
        numeric = isinstance(weight, (int, float)) and not isinstance(weight, bool)
        if not graph.has_vertex(u) or not graph.has_vertex(v) or not numeric or weight != weight:
            stats["invalid_edges"] += 1
            issues.append(f"Invalid edge structure: {u}-{v}")

    if issues:
        logger.warning("Graph validation issues", issue_count=len(issues), **stats)
    else:
        logger.debug("Graph validation passed", **stats)

    return GraphValidation(stats=stats, issues=issues)
