"""Voronoi graph generation from a Delaunay triangulation."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

import numpy as np
import structlog

from .alea_prng import AleaPRNG
from .delaunay import Triangulation, next_halfedge, triangulate
from .geometry import Cell, Edge, Point, Site, order_vertices_cyclically
from .sampling import generate_sites
from .vertex_graph import EdgeKey, VertexGraph

logger = structlog.get_logger()

VERTEX_DEDUP_PRECISION = 6
DEGENERATE_EPSILON = 1e-10
DEFAULT_VERTEX_TOLERANCE = 0.01
DEFAULT_BOUNDARY_TOLERANCE = 30.0
DEFAULT_BOUNDARY_WEIGHT = 1000.0


@dataclass
class VoronoiGraph:
    """Voronoi diagram of one generation pass.

    Vertex ``t`` is the circumcenter of triangle ``t`` (``None`` when the
    triangle is degenerate). Cell ids are the indices of their sites in
    ``sites``. Geometry is never modified after construction; generators
    only write cell features.
    """
    grid_size: float
    sites: List[Site]
    triangulation: Triangulation
    vertices: List[Optional[Point]]
    cells: Dict[int, Cell]
    edges: Dict[EdgeKey, Edge]
    vertex_adjacency: Dict[int, List[int]] = field(default_factory=dict)
    vertex_edges: Dict[int, List[EdgeKey]] = field(default_factory=dict)
    vertex_cells: Dict[int, List[int]] = field(default_factory=dict)
    clamped_vertex_count: int = 0

    def to_vertex_graph(self) -> VertexGraph:
        """Routable copy of the vertex graph with the current edge weights."""
        return VertexGraph(
            vertices=list(self.vertices),
            adjacency={v: list(connected) for v, connected in self.vertex_adjacency.items()},
            edges={key: edge.weight for key, edge in self.edges.items()},
        )

    def cells_touching(self, vertex_ids: Iterable[int]) -> Set[int]:
        """Ids of the cells whose polygon has any of the given vertices."""
        cells = set()
        for vertex_id in vertex_ids:
            cells.update(self.vertex_cells.get(vertex_id, []))
        return cells


def compute_circumcenters(triangulation: Triangulation) -> List[Optional[Point]]:
    """
    Circumcenter of every triangle.

    Collinear (zero-area) triangles have no circumcenter and yield ``None``.
    """
    if triangulation.is_empty:
        return []

    pts = triangulation.coords[triangulation.triangles.reshape(-1, 3)]
    ax, ay = pts[:, 0, 0], pts[:, 0, 1]
    bx, by = pts[:, 1, 0], pts[:, 1, 1]
    cx, cy = pts[:, 2, 0], pts[:, 2, 1]

    dx = ax - cx
    dy = ay - cy
    ex = bx - cx
    ey = by - cy

    bl = dx * dx + dy * dy
    cl = ex * ex + ey * ey
    denominator = dx * ey - dy * ex
    degenerate = np.abs(denominator) < DEGENERATE_EPSILON

    with np.errstate(divide="ignore", invalid="ignore"):
        d = 0.5 / denominator
        x = cx + (ey * bl - dy * cl) * d
        y = cy + (dx * cl - ex * bl) * d

    invalid = degenerate | ~np.isfinite(x) | ~np.isfinite(y)
    if invalid.any():
        logger.warning("Degenerate triangles have no circumcenter", count=int(invalid.sum()))

    return [None if invalid[t] else Point(float(x[t]), float(y[t])) for t in range(len(x))]


def clamp_vertices_to_bounds(vertices: Sequence[Optional[Point]], grid_size: float) -> List[Optional[Point]]:
    """Clamp every vertex into ``[0, grid_size]`` on both axes."""
    clamped = []
    for vertex in vertices:
        if vertex is None:
            clamped.append(None)
            continue
        clamped.append(Point(min(max(vertex.x, 0.0), grid_size),
                             min(max(vertex.z, 0.0), grid_size)))
    return clamped


def is_near_boundary(point: Optional[Point], grid_size: float, tolerance: float) -> bool:
    """True if the point lies within ``tolerance`` of any grid edge."""
    if point is None:
        return False
    return (point.x <= tolerance or point.x >= grid_size - tolerance or
            point.z <= tolerance or point.z >= grid_size - tolerance)


def walk_triangles_around_point(triangulation: Triangulation, start: int) -> List[int]:
    """
    Triangles around a point, found by circling it through the half-edges.

    Args:
        triangulation: Triangulation to walk
        start: A half-edge ending at the point (``-1`` if it has none)

    Returns:
        Triangle ids in walk order
    """
    triangles = []
    if start == -1:
        return triangles

    incoming = start
    while True:
        triangles.append(incoming // 3)
        outgoing = next_halfedge(incoming)
        incoming = int(triangulation.halfedges[outgoing])
        if incoming == -1 or incoming == start:
            break
    return triangles


def build_cells(triangulation: Triangulation, sites: Sequence[Site],
                vertices: Sequence[Optional[Point]]) -> Dict[int, Cell]:
    """
    Build one cell per non-boundary site.

    Cell vertices are the circumcenters of the triangles around the site,
    de-duplicated by coordinate (symmetric configurations give several
    triangles the same circumcenter) and ordered counterclockwise.
    Neighbors are the other non-boundary sites of those triangles.
    """
    cells = {}
    inedges = triangulation.incoming_halfedges()

    for p in range(len(triangulation.coords)):
        site_index = int(triangulation.site_indices[p])
        site = sites[site_index]
        if site.is_boundary:
            continue

        triangle_ids = walk_triangles_around_point(triangulation, int(inedges[p]))

        seen = set()
        vertex_ids = []
        points = []
        neighbors = set()
        for t in triangle_ids:
            for other in triangulation.triangle_sites(t):
                if other != site_index and not sites[other].is_boundary:
                    neighbors.add(other)

            vertex = vertices[t]
            if vertex is None:
                continue
            key = (round(vertex.x, VERTEX_DEDUP_PRECISION), round(vertex.z, VERTEX_DEDUP_PRECISION))
            if key in seen:
                continue
            seen.add(key)
            vertex_ids.append(t)
            points.append(vertex)

        order = order_vertices_cyclically(points)
        cells[site_index] = Cell(
            id=site_index,
            site=site,
            vertex_ids=[vertex_ids[i] for i in order],
            vertices=[points[i] for i in order],
            neighbors=sorted(neighbors),
        )

    return cells


def build_edges(triangulation: Triangulation, vertices: Sequence[Optional[Point]],
                grid_size: float, tolerance: float = DEFAULT_VERTEX_TOLERANCE) -> Dict[EdgeKey, Edge]:
    """
    Build the bidirectional Voronoi edge set.

    Each pair of triangles sharing a half-edge contributes ``(t1, t2)`` and
    ``(t2, t1)``. Edges with a missing circumcenter are skipped, and edges
    whose endpoints both lie within ``tolerance`` of the grid edge are
    dropped so the clamped outer ring never becomes routable.
    """
    edges = {}
    dropped = 0
    halfedges = triangulation.halfedges

    for e in range(len(halfedges)):
        opposite = int(halfedges[e])
        if opposite < e:
            continue

        t1 = e // 3
        t2 = opposite // 3
        p1 = vertices[t1]
        p2 = vertices[t2]
        if p1 is None or p2 is None:
            continue

        if is_near_boundary(p1, grid_size, tolerance) and is_near_boundary(p2, grid_size, tolerance):
            dropped += 1
            continue

        length = p1.distance_to(p2)
        edges[(t1, t2)] = Edge(t1, t2, length, length)
        edges[(t2, t1)] = Edge(t2, t1, length, length)

    logger.info("Voronoi edges built", edges=len(edges), dropped_boundary_edges=dropped)
    return edges


def build_vertex_cells(triangulation: Triangulation, vertices: Sequence[Optional[Point]],
                       cells: Dict[int, Cell]) -> Dict[int, List[int]]:
    """Map each valid vertex to the cells of its triangle's sites."""
    vertex_cells = {}
    for t, vertex in enumerate(vertices):
        if vertex is None:
            continue
        vertex_cells[t] = sorted(s for s in triangulation.triangle_sites(t) if s in cells)
    return vertex_cells


def build_voronoi_graph(sites: Sequence[Site], grid_size: float,
                        vertex_tolerance: float = DEFAULT_VERTEX_TOLERANCE) -> VoronoiGraph:
    """
    Build the complete Voronoi graph for a set of sites.

    Vertices are clamped into the grid before cells and edges are derived,
    so no cell polygon or edge references out-of-bounds geometry. Fewer than
    three usable sites produce an empty graph.

    Args:
        sites: Real sites followed by boundary sites
        grid_size: Side length of the square map
        vertex_tolerance: Band along the grid edge in which an edge with both
            endpoints is dropped

    Returns:
        VoronoiGraph with unweighted edges (weight == length)
    """
    sites = list(sites)
    logger.info("Generating Voronoi graph", sites=len(sites), grid_size=grid_size)

    triangulation = triangulate(sites)
    if triangulation.is_empty:
        return VoronoiGraph(grid_size=grid_size, sites=sites, triangulation=triangulation,
                            vertices=[], cells={}, edges={})

    raw_vertices = compute_circumcenters(triangulation)
    vertices = clamp_vertices_to_bounds(raw_vertices, grid_size)
    clamped = sum(1 for raw, v in zip(raw_vertices, vertices) if raw is not None and raw != v)
    logger.info("Clamped out-of-bounds vertices to grid bounds",
                clamped=clamped, total=sum(1 for v in vertices if v is not None))

    cells = build_cells(triangulation, sites, vertices)
    edges = build_edges(triangulation, vertices, grid_size, vertex_tolerance)

    vertex_adjacency = {t: [] for t, v in enumerate(vertices) if v is not None}
    vertex_edges = {t: [] for t in vertex_adjacency}
    for key in edges:
        vertex_adjacency[key[0]].append(key[1])
        vertex_edges[key[0]].append(key)

    graph = VoronoiGraph(
        grid_size=grid_size,
        sites=sites,
        triangulation=triangulation,
        vertices=vertices,
        cells=cells,
        edges=edges,
        vertex_adjacency=vertex_adjacency,
        vertex_edges=vertex_edges,
        vertex_cells=build_vertex_cells(triangulation, vertices, cells),
        clamped_vertex_count=clamped,
    )

    logger.info("Voronoi graph built", cells=len(cells), vertices=len(vertex_adjacency),
                edges=len(edges))
    return graph


def apply_boundary_weighting(graph: VoronoiGraph, tolerance: float = DEFAULT_BOUNDARY_TOLERANCE,
                             weight: float = DEFAULT_BOUNDARY_WEIGHT) -> int:
    """
    Discourage routing along the map edge.

    Every edge with an endpoint within ``tolerance`` of the grid edge gets
    weight ``max(weight, length)``. Weights never drop below the Euclidean
    length, which keeps the straight-line A* heuristic admissible.

    Returns:
        Number of reweighted directed edges
    """
    count = 0
    for edge in graph.edges.values():
        start = graph.vertices[edge.start]
        end = graph.vertices[edge.end]
        if is_near_boundary(start, graph.grid_size, tolerance) or \
                is_near_boundary(end, graph.grid_size, tolerance):
            edge.weight = max(weight, edge.length)
            count += 1

    logger.info("Applied boundary weighting", edges=count, tolerance=tolerance, weight=weight)
    return count


def generate_voronoi(grid_size: float, prng: AleaPRNG, num_sites: Optional[int] = None,
                     poisson_radius: Optional[float] = None,
                     boundary_tolerance: float = DEFAULT_BOUNDARY_TOLERANCE,
                     boundary_weight: float = DEFAULT_BOUNDARY_WEIGHT,
                     vertex_tolerance: float = DEFAULT_VERTEX_TOLERANCE) -> VoronoiGraph:
    """
    Generate sites, build the Voronoi graph and weight its boundary edges.

    This is the first consumer of the pass's random stream.
    """
    sites = generate_sites(grid_size, prng, num_sites=num_sites, poisson_radius=poisson_radius)
    graph = build_voronoi_graph(sites, grid_size, vertex_tolerance)
    apply_boundary_weighting(graph, boundary_tolerance, boundary_weight)
    return graph
