"""Tests for tributary generation."""

import pytest

from py_terrain.core.alea_prng import AleaPRNG
from py_terrain.core.delaunay import Triangulation
from py_terrain.core.geometry import Edge, Point
from py_terrain.core.graph_state import GraphState
from py_terrain.core.rivers import RiverGenerator, build_path_feature
from py_terrain.core.terrain_map import TerrainMap
from py_terrain.core.tributaries import (
    TributaryGenerator,
    TributaryOptions,
    expand_candidates,
    select_branch_index,
)
from py_terrain.core.voronoi_graph import VoronoiGraph


class GraphBuilder:
    """Builds a small hand-made Voronoi graph without cells."""

    def __init__(self):
        self.points = []
        self.links = []

    def add(self, x, z):
        self.points.append(Point(x, z))
        return len(self.points) - 1

    def link(self, u, v, weight=None):
        self.links.append((u, v, weight))

    def build(self):
        adjacency = {i: [] for i in range(len(self.points))}
        edges = {}
        for u, v, weight in self.links:
            length = self.points[u].distance_to(self.points[v])
            weight = length if weight is None else weight
            adjacency[u].append(v)
            adjacency[v].append(u)
            edges[(u, v)] = Edge(u, v, length, weight)
            edges[(v, u)] = Edge(v, u, length, weight)
        return VoronoiGraph(grid_size=100, sites=[], triangulation=Triangulation(),
                            vertices=list(self.points), cells={}, edges=edges,
                            vertex_adjacency=adjacency)


def river_on(graph, river, prng):
    """Graph state and river generator with ``river`` already carved."""
    state = GraphState()
    state.initialize(graph.to_vertex_graph())
    state.split_by_path("initial-0", river, feature_type="river")
    rivers = RiverGenerator(graph, prng, state)
    rivers.rivers = [build_path_feature(graph, "river-0", "river", river)]
    return state, rivers


@pytest.fixture
def combed_river():
    """A nine vertex river with a five vertex chain off each middle vertex."""
    builder = GraphBuilder()
    river = [builder.add(0, 10 * k) for k in range(9)]
    for u, v in zip(river, river[1:]):
        builder.link(u, v)

    chains = {}
    for k in range(2, 6):
        chain = [builder.add(10 * (j + 1), 10 * k) for j in range(5)]
        builder.link(river[k], chain[0])
        for u, v in zip(chain, chain[1:]):
            builder.link(u, v)
        chains[river[k]] = chain
    return builder.build(), river, chains


@pytest.fixture
def hooked_river():
    """A five vertex river where the short way round is blocked by a heavy edge."""
    builder = GraphBuilder()
    river = [builder.add(0, 10 * k) for k in range(5)]
    for u, v in zip(river, river[1:]):
        builder.link(u, v)

    hooks = {}
    for k in (1, 2):
        branch = river[k]
        z = 10 * k
        a = builder.add(10, z)
        b = builder.add(20, z)
        c = builder.add(20, z + 5)
        d = builder.add(10, z + 5)
        builder.link(branch, a)
        builder.link(a, b)
        builder.link(b, c)
        builder.link(c, d)
        builder.link(branch, d, weight=1000.0)
        hooks[branch] = [branch, a, b, c, d]
    return builder.build(), river, hooks


class TestBranchSelection:
    """Test branch point selection."""

    @pytest.mark.parametrize("length", [3, 5, 9, 20, 101])
    def test_branch_in_middle(self, length):
        """Test that the branch index falls between 30% and 70% of the path."""
        prng = AleaPRNG("branch")
        low = int(length * 0.3)
        high = int(length * 0.7)

        for _ in range(200):
            index = select_branch_index(length, prng)
            assert low <= index <= max(low, high - 1)


class TestExpandCandidates:
    """Test bounded breadth-first expansion."""

    def test_generation_limit(self, combed_river):
        """Test that expansion stops after the given number of generations."""
        graph, river, chains = combed_river
        routable = graph.to_vertex_graph()
        branch = river[3]

        found = expand_candidates(routable, branch, 2, set(river) - {branch})

        assert found == chains[branch][:2]

    def test_blocked_vertices(self, combed_river):
        """Test that blocked vertices are never entered."""
        graph, river, chains = combed_river
        routable = graph.to_vertex_graph()
        branch = river[3]

        found = expand_candidates(routable, branch, 10, set(river) - {branch})

        assert found == chains[branch]
        assert not set(found) & set(river)


class TestGenerateSingleTributary:
    """Test the choice of tributary path."""

    def test_longest_path_within_target(self, combed_river):
        """Test that the farthest candidate reachable within a third of the river wins."""
        graph, river, chains = combed_river
        state, rivers = river_on(graph, river, AleaPRNG("comb"))
        generator = TributaryGenerator(graph, rivers.prng, state, rivers)

        path = generator.generate_single_tributary(river)

        branch = path[0]
        assert branch in river[2:6]
        assert path == [branch] + chains[branch][:2]

    def test_fallback_takes_nearest_long_route(self, hooked_river):
        """Test that the fallback accepts the first route longer than three vertices."""
        graph, river, hooks = hooked_river
        state, rivers = river_on(graph, river, AleaPRNG("hook"))
        generator = TributaryGenerator(graph, rivers.prng, state, rivers)

        path = generator.generate_single_tributary(river)

        assert path[0] in (river[1], river[2])
        assert path == hooks[path[0]]

    def test_no_candidates(self):
        """Test that a river with nothing around it gets no tributary."""
        builder = GraphBuilder()
        river = [builder.add(0, 10 * k) for k in range(6)]
        for u, v in zip(river, river[1:]):
            builder.link(u, v)
        graph = builder.build()
        state, rivers = river_on(graph, river, AleaPRNG("bare"))
        generator = TributaryGenerator(graph, rivers.prng, state, rivers)

        assert generator.generate_single_tributary(river) == []
        assert generator.generate_single_tributary([]) == []


class TestTributaryGenerator:
    """Test tributary carving."""

    def test_tributary_is_carved(self, combed_river):
        """Test that everything but the branch vertex is consumed."""
        graph, river, chains = combed_river
        state, rivers = river_on(graph, river, AleaPRNG("comb"))
        generator = TributaryGenerator(graph, rivers.prng, state, rivers)

        tributaries = generator.generate(TributaryOptions(num_tributaries=1))

        assert len(tributaries) == 1
        tributary = tributaries[0]
        assert tributary.id == "tributary-0"
        assert tributary.parent_id == "river-0"
        assert state.consumed_vertices == set(river) | set(tributary.vertices[1:])
        assert state.operation_history[-1].details["split_type"] == "tributary"
        assert generator.get_tributary_paths() == [tributary.vertices]

    def test_maximum_length(self, combed_river):
        """Test that paths over the maximum length are rejected."""
        graph, river, _ = combed_river
        state, rivers = river_on(graph, river, AleaPRNG("comb"))
        generator = TributaryGenerator(graph, rivers.prng, state, rivers)

        assert generator.generate(TributaryOptions(max_tributary_length=2)) == []
        assert state.consumed_vertices == set(river)

    def test_without_rivers(self, combed_river):
        """Test that no tributaries are made before any river."""
        graph, _, _ = combed_river
        state = GraphState()
        state.initialize(graph.to_vertex_graph())
        rivers = RiverGenerator(graph, AleaPRNG("none"), state)
        generator = TributaryGenerator(graph, rivers.prng, state, rivers)

        assert generator.generate() == []


class TestTributariesOnMap:
    """Test tributaries on a generated map."""

    @pytest.fixture
    def terrain(self, base_settings):
        return TerrainMap(base_settings).generate_map()

    def test_branch_on_river(self, terrain):
        """Test that tributaries start on their river and never touch it again."""
        river_vertices = set(terrain.rivers.get_river_vertices())

        for tributary in terrain.tributaries.tributaries:
            parent = next(r for r in terrain.rivers.rivers if r.id == tributary.parent_id)
            assert tributary.start in parent.vertices
            assert not set(tributary.vertices[1:]) & river_vertices
            assert set(tributary.vertices[1:]) <= terrain.graph_state.consumed_vertices

    def test_tributaries_are_disjoint(self, terrain):
        """Test that tributaries share no vertices beyond their branch points."""
        seen = set()
        for tributary in terrain.tributaries.tributaries:
            tail = set(tributary.vertices[1:])
            assert not tail & seen
            seen |= tail

    def test_clear_keeps_river_cells(self, terrain):
        """Test that clearing tributaries leaves river cells flagged."""
        river_cells = set(terrain.rivers.get_river_cells())
        terrain.clear_tributaries()

        flagged = {cell_id for cell_id, cell in terrain.cells.items() if cell.features.river}
        assert flagged == river_cells
        assert terrain.get_tributary_paths() == []
        assert terrain.graph_state.consumed_vertices == terrain.rivers.get_river_vertices()
