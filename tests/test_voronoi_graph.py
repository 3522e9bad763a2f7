"""Tests for Voronoi graph generation."""

import math

import numpy as np
import pytest

from py_terrain.core.alea_prng import AleaPRNG
from py_terrain.core.geometry import Point, Site
from py_terrain.core.sampling import generate_poisson_sites, get_boundary_sites
from py_terrain.core.voronoi_graph import (
    DEFAULT_BOUNDARY_WEIGHT,
    apply_boundary_weighting,
    build_voronoi_graph,
    compute_circumcenters,
    generate_voronoi,
    is_near_boundary,
)
from py_terrain.core.delaunay import triangulate


class TestSiteSampling:
    """Test site generation."""

    def test_poisson_min_distance(self):
        """Test that Poisson sites keep the minimum distance."""
        sites = generate_poisson_sites(200, 20, AleaPRNG("poisson"))
        coords = np.array([[s.x, s.z] for s in sites])
        diff = coords[:, None, :] - coords[None, :, :]
        dist = np.sqrt((diff ** 2).sum(axis=2))
        np.fill_diagonal(dist, np.inf)

        assert len(sites) > 10
        assert dist.min() >= 20 - 1e-9

    def test_poisson_bounds(self):
        """Test that Poisson sites stay one radius away from the grid edge."""
        sites = generate_poisson_sites(200, 20, AleaPRNG("poisson"))

        for site in sites:
            assert 20 <= site.x < 180
            assert 20 <= site.z < 180

    def test_poisson_grid_too_small(self):
        """Test that a grid narrower than two radii is rejected."""
        with pytest.raises(ValueError):
            generate_poisson_sites(40, 30, AleaPRNG("narrow"))

    def test_poisson_grid_of_two_radii(self):
        """Test that a grid of exactly two radii holds a single centred site."""
        sites = generate_poisson_sites(60, 30, AleaPRNG("narrow"))

        assert sites == [Site(30, 30)]

    def test_poisson_reproducibility(self):
        """Test that the same seed gives the same sites."""
        first = generate_poisson_sites(200, 20, AleaPRNG("same"))
        second = generate_poisson_sites(200, 20, AleaPRNG("same"))

        assert first == second

    def test_boundary_sites(self):
        """Test the eight boundary sites outside the grid."""
        boundary = get_boundary_sites(100)

        assert len(boundary) == 8
        assert all(s.is_boundary for s in boundary)
        for site in boundary:
            assert site.x < 0 or site.x > 100 or site.z < 0 or site.z > 100
        assert Site(-10, -10, is_boundary=True) in boundary
        assert Site(110, 110, is_boundary=True) in boundary


class TestCircumcenters:
    """Test circumcenter computation."""

    def test_right_triangle(self):
        """Test that a right triangle's circumcenter is its hypotenuse midpoint."""
        tri = triangulate([Site(0, 0), Site(4, 0), Site(0, 4)])
        centers = compute_circumcenters(tri)

        assert len(centers) == 1
        assert centers[0].x == pytest.approx(2.0)
        assert centers[0].z == pytest.approx(2.0)

    def test_equidistant(self, small_voronoi):
        """Test that unclamped circumcenters are equidistant from their sites."""
        tri = small_voronoi.triangulation
        centers = compute_circumcenters(tri)

        for t in range(0, tri.n_triangles, 7):
            center = centers[t]
            distances = [math.hypot(center.x - x, center.z - z) for x, z in tri.coords[tri.triangle_points(t)]]
            assert max(distances) - min(distances) < 1e-6 * max(distances)


class TestVoronoiGraph:
    """Test complete Voronoi graph generation."""

    def test_one_cell_per_real_site(self, small_voronoi):
        """Test that every non-boundary site has exactly one cell."""
        real = [i for i, s in enumerate(small_voronoi.sites) if not s.is_boundary]

        assert sorted(small_voronoi.cells) == real

    def test_vertices_clamped(self, small_voronoi):
        """Test that every vertex lies inside the grid."""
        for vertex in small_voronoi.vertices:
            assert vertex is not None
            assert 0 <= vertex.x <= 400
            assert 0 <= vertex.z <= 400
        assert small_voronoi.clamped_vertex_count > 0

    def test_interior_cells_are_simple_polygons(self, small_voronoi):
        """Test that cells away from the border form valid counterclockwise polygons."""
        checked = 0
        for cell in small_voronoi.cells.values():
            if any(is_near_boundary(v, 400, 0.5) for v in cell.vertices):
                continue
            polygon = cell.polygon
            assert polygon is not None
            assert polygon.is_valid
            assert polygon.exterior.is_ccw
            assert polygon.contains(cell.polygon.representative_point())
            assert cell.area > 0
            checked += 1
        assert checked > 0

    def test_cell_contains_site(self, small_voronoi):
        """Test that interior cells contain their own site."""
        from shapely.geometry import Point as ShapelyPoint

        for cell in small_voronoi.cells.values():
            if any(is_near_boundary(v, 400, 0.5) for v in cell.vertices):
                continue
            assert cell.polygon.buffer(1e-6).contains(ShapelyPoint(cell.site.x, cell.site.z))

    def test_cell_neighbors_symmetric(self, small_voronoi):
        """Test that cell adjacency is symmetric and excludes boundary sites."""
        cells = small_voronoi.cells
        for cell_id, cell in cells.items():
            for neighbor in cell.neighbors:
                assert neighbor in cells
                assert cell_id in cells[neighbor].neighbors

    def test_vertex_adjacency_symmetric(self, small_voronoi):
        """Test that vertex adjacency and edge weights are symmetric."""
        adjacency = small_voronoi.vertex_adjacency
        for u, connected in adjacency.items():
            for v in connected:
                assert u in adjacency[v]
                assert small_voronoi.edges[(u, v)].weight == small_voronoi.edges[(v, u)].weight

        for (u, v) in small_voronoi.edges:
            assert (v, u) in small_voronoi.edges
            assert v in adjacency[u]

    def test_no_edges_along_the_border(self, small_voronoi):
        """Test that no edge joins two vertices in the boundary band."""
        for edge in small_voronoi.edges.values():
            start = small_voronoi.vertices[edge.start]
            end = small_voronoi.vertices[edge.end]
            assert not (is_near_boundary(start, 400, 0.01) and is_near_boundary(end, 400, 0.01))

    def test_boundary_weighting(self, small_voronoi):
        """Test that edges near the border are penalized and others keep their length."""
        penalized = 0
        for edge in small_voronoi.edges.values():
            start = small_voronoi.vertices[edge.start]
            end = small_voronoi.vertices[edge.end]
            assert edge.weight >= edge.length
            assert edge.length == pytest.approx(start.distance_to(end))
            if is_near_boundary(start, 400, 30) or is_near_boundary(end, 400, 30):
                assert edge.weight == max(DEFAULT_BOUNDARY_WEIGHT, edge.length)
                penalized += 1
            else:
                assert edge.weight == edge.length
        assert penalized > 0

    def test_vertex_cells(self, small_voronoi):
        """Test that each cell vertex maps back to the cell."""
        for cell_id, cell in small_voronoi.cells.items():
            for vertex_id in cell.vertex_ids:
                assert cell_id in small_voronoi.vertex_cells[vertex_id]

    def test_reproducibility(self):
        """Test that the same seed produces identical graphs."""
        first = generate_voronoi(300, AleaPRNG("repro"), poisson_radius=30)
        second = generate_voronoi(300, AleaPRNG("repro"), poisson_radius=30)

        assert first.sites == second.sites
        assert first.vertices == second.vertices
        assert {k: e.weight for k, e in first.edges.items()} == {k: e.weight for k, e in second.edges.items()}

    def test_random_sites(self):
        """Test uniform site generation by count."""
        graph = generate_voronoi(300, AleaPRNG("uniform"), num_sites=40)

        assert len(graph.cells) == 40
        assert len(graph.sites) == 48

    def test_vertex_graph_copy(self, small_voronoi):
        """Test that the routable copy does not share containers."""
        routable = small_voronoi.to_vertex_graph()
        routable.adjacency[next(iter(routable.adjacency))].clear()
        routable.edges.clear()

        assert small_voronoi.edges
        assert all(small_voronoi.vertex_adjacency[v] is not routable.adjacency.get(v)
                   for v in small_voronoi.vertex_adjacency)


class TestDegenerateInput:
    """Test soft failure of graph construction."""

    def test_too_few_sites(self):
        """Test that fewer than three sites give an empty graph."""
        graph = build_voronoi_graph([Site(1, 1), Site(2, 2)], 10)

        assert graph.cells == {}
        assert graph.edges == {}
        assert graph.vertices == []

    def test_reweighting_returns_count(self):
        """Test that boundary weighting reports the reweighted edges."""
        sites = [Site(50, 50)] + get_boundary_sites(100)
        graph = build_voronoi_graph(sites, 100)

        count = apply_boundary_weighting(graph, tolerance=30, weight=500)
        assert count == sum(1 for e in graph.edges.values() if e.weight == max(500, e.length))

    def test_single_site_cell(self):
        """Test that one real site gets one cell covering the grid centre."""
        sites = [Site(50, 50)] + get_boundary_sites(100)
        graph = build_voronoi_graph(sites, 100)

        assert list(graph.cells) == [0]
        cell = graph.cells[0]
        assert len(cell.vertices) >= 3
        assert cell.polygon.contains(cell.polygon.centroid)
        assert Point(50, 50) == cell.site.point
