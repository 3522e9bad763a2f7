"""
Coastline generation.

A coastline is grown over the cell adjacency graph from a band of cells
along one edge of the map, in breadth-first waves, until its cell budget is
spent.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog

from .alea_prng import AleaPRNG
from .geometry import RegionFeature
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()

DIRECTIONS = ("N", "S", "E", "W")
RANDOM_DIRECTION = "RANDOM"


@dataclass
class CoastlineOptions:
    """Coastline growth parameters."""
    direction: str = "N"
    budget: int = 0
    margin: float = 0.10  # Seed band width as a fraction of the grid size
    max_depth: int = 10  # Safety cap on growth waves


class CoastlineGenerator:
    """Grows and tracks the coastline of a Voronoi graph."""

    def __init__(self, graph: VoronoiGraph, prng: AleaPRNG):
        self.graph = graph
        self.prng = prng
        self.coastlines: List[RegionFeature] = []
        self.depths: Dict[int, int] = {}

    def resolve_direction(self, direction: str) -> str:
        """Normalize a direction; ``RANDOM`` draws one from the stream."""
        direction = direction.upper()
        if direction == RANDOM_DIRECTION:
            return DIRECTIONS[self.prng.randint(len(DIRECTIONS))]
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown coastline direction: {direction}")
        return direction

    def collect_seed_band(self, direction: str, margin: float) -> List[int]:
        """Ids of the cells whose site lies within the margin band of a map edge."""
        size = self.graph.grid_size
        thickness = size * margin
        band = []
        for cell_id in sorted(self.graph.cells):
            site = self.graph.cells[cell_id].site
            if direction == "N":
                inside = site.z <= thickness
            elif direction == "S":
                inside = site.z >= size - thickness
            elif direction == "E":
                inside = site.x >= size - thickness
            else:
                inside = site.x <= thickness
            if inside:
                band.append(cell_id)
        return band

    def generate(self, options: Optional[CoastlineOptions] = None) -> List[RegionFeature]:
        """
        Replace any existing coastline with a new one.

        Seeds are the band cells in id order, up to the budget, at depth 0.
        Each following wave takes the unclaimed neighbours of the previous
        wave, one cell at a time, until the budget is spent, a wave comes up
        empty or ``max_depth`` waves have run.

        Returns:
            The coastline features (empty if the band has no cells or the
            budget is zero)
        """
        options = options or CoastlineOptions()
        self.clear()

        direction = self.resolve_direction(options.direction)
        remaining = max(0, int(options.budget))
        band = self.collect_seed_band(direction, options.margin)

        if not band:
            logger.warning("No cells in coastline seed band", direction=direction,
                           margin=options.margin)
            return []
        if remaining == 0:
            logger.info("Coastline budget is zero, nothing to grow")
            return []

        coastline = RegionFeature(id="coastline-0", kind="coastline", direction=direction)

        wave = []
        for cell_id in band[:remaining]:
            self._claim(cell_id, 0, direction, coastline)
            wave.append(cell_id)
        remaining -= len(wave)

        depth = 0
        while remaining > 0 and depth < options.max_depth:
            candidates = []
            seen = set()
            for cell_id in wave:
                for neighbor in self.graph.cells[cell_id].neighbors:
                    if neighbor in self.depths or neighbor in seen or neighbor not in self.graph.cells:
                        continue
                    seen.add(neighbor)
                    candidates.append(neighbor)

            if not candidates:
                logger.debug("Coastline frontier exhausted", depth=depth)
                break

            depth += 1
            wave = candidates[:remaining]
            for cell_id in wave:
                self._claim(cell_id, depth, direction, coastline)
            remaining -= len(wave)

        self.coastlines = [coastline]
        logger.info("Coastline generated", direction=direction, cells=coastline.size,
                    budget=options.budget, max_depth=depth)
        return self.coastlines

    def _claim(self, cell_id: int, depth: int, direction: str, coastline: RegionFeature) -> None:
        features = self.graph.cells[cell_id].features
        features.coast_depth = depth
        features.coast_direction = direction
        self.depths[cell_id] = depth
        coastline.cells.append(cell_id)
        coastline.depths[cell_id] = depth

    def clear(self) -> None:
        """Remove all coastline tagging."""
        for cell_id in self.depths:
            cell = self.graph.cells.get(cell_id)
            if cell is not None:
                cell.features.clear_coastline()
        self.depths = {}
        self.coastlines = []

    def is_coastal(self, cell_id: int) -> bool:
        return cell_id in self.depths

    def get_coastline_cells(self) -> List[int]:
        return sorted(self.depths)

    def get_coastline_cell_count(self) -> int:
        return len(self.depths)
