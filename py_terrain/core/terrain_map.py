"""
Generation pass orchestration.

``TerrainMap`` owns everything built during one pass: the random stream,
the Voronoi graph, the graph state and the feature generators. Generators
run in a fixed order (Voronoi, coastlines, lakes, rivers, tributaries) and
all draw from the same stream, so a seed fully determines the map.
"""

from typing import Any, Dict, List, Mapping, Optional, Set, Union

import structlog

from ..config.generation_settings import GenerationSettings, load_generation_settings
from ..errors import TerrainError
from .alea_prng import AleaPRNG
from .coastlines import CoastlineGenerator, CoastlineOptions
from .export import build_voronoi_export
from .geometry import Cell, PathFeature, RegionFeature
from .graph_state import GraphState
from .lakes import LakeGenerator, LakeOptions
from .rivers import RiverGenerator, RiverOptions
from .tributaries import TributaryGenerator, TributaryOptions
from .voronoi_graph import VoronoiGraph, generate_voronoi

logger = structlog.get_logger()


class TerrainMap:
    """A map and the generators that carve features into it."""

    def __init__(self, settings: Union[GenerationSettings, Mapping[str, Any]]):
        """
        Args:
            settings: Generation settings or a mapping of them

        Raises:
            SettingsError: If the settings are malformed
        """
        self.settings = load_generation_settings(settings)
        self.prng = AleaPRNG(self.settings.seed)
        self.graph: Optional[VoronoiGraph] = None
        self.graph_state = GraphState()
        self.coastlines: Optional[CoastlineGenerator] = None
        self.lakes: Optional[LakeGenerator] = None
        self.rivers: Optional[RiverGenerator] = None
        self.tributaries: Optional[TributaryGenerator] = None

    @property
    def cells(self) -> Dict[int, Cell]:
        return self.graph.cells if self.graph else {}

    def _require_graph(self) -> VoronoiGraph:
        if self.graph is None:
            raise TerrainError("Voronoi graph has not been generated")
        return self.graph

    def generate_voronoi(self) -> VoronoiGraph:
        """Build the base graph and reset every feature."""
        voronoi = self.settings.voronoi
        self.graph = generate_voronoi(
            self.settings.grid_size,
            self.prng,
            num_sites=voronoi.num_sites,
            poisson_radius=voronoi.poisson_radius,
            boundary_tolerance=voronoi.boundary_tolerance,
            boundary_weight=voronoi.boundary_weight,
            vertex_tolerance=voronoi.vertex_tolerance,
        )
        self.graph_state.initialize(self.graph.to_vertex_graph(), self.settings.to_snapshot())

        self.coastlines = CoastlineGenerator(self.graph, self.prng)
        self.lakes = LakeGenerator(self.graph, self.prng)
        self.rivers = RiverGenerator(self.graph, self.prng, self.graph_state)
        self.tributaries = TributaryGenerator(self.graph, self.prng, self.graph_state, self.rivers)
        return self.graph

    def generate_coastlines(self) -> List[RegionFeature]:
        self._require_graph()
        config = self.settings.coastlines
        if config is None or not config.enabled:
            logger.info("Coastline generation disabled")
            return []
        return self.coastlines.generate(CoastlineOptions(
            direction=config.direction,
            budget=config.budget,
            margin=config.margin,
            max_depth=config.max_depth,
        ))

    def generate_lakes(self) -> List[RegionFeature]:
        self._require_graph()
        config = self.settings.lakes
        if config is None or not config.enabled:
            logger.info("Lake generation disabled")
            return []
        self.lakes.exclusions = [self.coastlines.is_coastal] if config.avoid_coastlines else []
        return self.lakes.generate(LakeOptions(
            budget=config.budget,
            num_lakes=config.num_lakes,
            retry_factor=config.retry_factor,
        ))

    def generate_rivers(self) -> List[PathFeature]:
        """Replace rivers and tributaries, routing over a fresh graph state."""
        self._require_graph()
        self.clear_rivers()
        config = self.settings.rivers
        if not config.enabled:
            logger.info("River generation disabled")
            return []
        return self.rivers.generate(RiverOptions(
            num_rivers=config.num_rivers,
            north_tolerance=config.north_tolerance,
            south_tolerance=config.south_tolerance,
            max_iterations=config.max_iterations,
        ))

    def generate_tributaries(self) -> List[PathFeature]:
        self._require_graph()
        self.clear_tributaries()
        config = self.settings.tributaries
        if not config.enabled:
            logger.info("Tributary generation disabled")
            return []
        return self.tributaries.generate(TributaryOptions(
            num_tributaries=config.num_tributaries,
            max_tributary_length=config.max_tributary_length,
            max_iterations=self.settings.rivers.max_iterations,
        ))

    def generate_map(self) -> "TerrainMap":
        """Run a full pass from a fresh random stream."""
        logger.info("Generating map", seed=self.settings.seed, grid_size=self.settings.grid_size)
        self.prng = AleaPRNG(self.settings.seed)
        self.generate_voronoi()
        self.generate_coastlines()
        self.generate_lakes()
        self.generate_rivers()
        self.generate_tributaries()
        logger.info("Map generated", cells=len(self.graph.cells),
                    coastline_cells=self.coastlines.get_coastline_cell_count(),
                    lake_cells=self.lakes.get_lake_cell_count(),
                    rivers=len(self.rivers.rivers), tributaries=len(self.tributaries.tributaries),
                    random_calls=self.prng.call_count)
        return self

    def clear_coastlines(self) -> None:
        if self.coastlines:
            self.coastlines.clear()

    def clear_lakes(self) -> None:
        if self.lakes:
            self.lakes.clear()

    def clear_rivers(self) -> None:
        """Remove rivers and tributaries and restore the full routable graph."""
        if self.graph is None:
            return
        self.tributaries.clear()
        self.rivers.clear()
        self.graph_state.initialize(self.graph.to_vertex_graph(), self.settings.to_snapshot())

    def clear_tributaries(self) -> None:
        """Remove tributaries and restore the graph state left by the rivers."""
        if self.graph is None:
            return
        self.tributaries.clear()
        self.graph_state.initialize(self.graph.to_vertex_graph(), self.settings.to_snapshot())
        for index, river in enumerate(self.rivers.rivers):
            partition = self.graph_state.find_partition_containing(river.start)
            if partition is not None:
                self.graph_state.split_by_path(partition.id, river.vertices, feature_type="river",
                                               feature_index=index,
                                               description=f"River {index + 1}")

    def get_coastline_cells(self) -> List[int]:
        return self.coastlines.get_coastline_cells() if self.coastlines else []

    def get_lake_cells(self) -> List[int]:
        return self.lakes.get_lake_cells() if self.lakes else []

    def get_lake_sets(self) -> Dict[int, Set[int]]:
        return self.lakes.get_lake_sets() if self.lakes else {}

    def get_lake_depth(self, cell_id: int) -> float:
        return self.lakes.get_lake_depth(cell_id) if self.lakes else 0.0

    def get_river_paths(self) -> List[List[int]]:
        return self.rivers.get_river_paths() if self.rivers else []

    def get_tributary_paths(self) -> List[List[int]]:
        return self.tributaries.get_tributary_paths() if self.tributaries else []

    def export(self, description: str = "Voronoi terrain export") -> Dict[str, Any]:
        return build_voronoi_export(self, description=description)
