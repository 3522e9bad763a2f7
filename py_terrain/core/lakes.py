"""
Lake generation.

Lakes start from randomly chosen origin cells and grow one random cell at a
time, each step extending one randomly chosen lake, until the shared cell
budget is spent or no lake can grow.

Every lake cell has a depth. Origins sit at the maximum depth and each
grown cell is a random 3 to 10 units shallower than the lake cell it grew
from, never shallower than the minimum depth.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import structlog

from .alea_prng import AleaPRNG
from .geometry import RegionFeature
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()

ExclusionHook = Callable[[int], bool]


@dataclass
class LakeOptions:
    """Lake growth parameters."""
    budget: int = 30  # Total cells across all lakes
    num_lakes: int = 2
    retry_factor: int = 5  # Growth loop cap is budget * retry_factor
    max_depth: float = 50.0  # Depth of every origin
    min_depth: float = 5.0
    min_step: float = 3.0  # A grown cell is min_step to max_step shallower than its parent
    max_step: float = 10.0


class LakeGenerator:
    """Grows and tracks the lakes of a Voronoi graph."""

    def __init__(self, graph: VoronoiGraph, prng: AleaPRNG,
                 exclusions: Optional[Sequence[ExclusionHook]] = None):
        """
        Args:
            graph: Voronoi graph whose cells are tagged
            prng: Random stream of the generation pass
            exclusions: Predicates on cell ids; a cell any of them accepts is
                never claimed (e.g. ``CoastlineGenerator.is_coastal``)
        """
        self.graph = graph
        self.prng = prng
        self.exclusions: List[ExclusionHook] = list(exclusions or [])
        self.lakes: List[RegionFeature] = []
        self.lake_of: Dict[int, int] = {}

    def is_excluded(self, cell_id: int) -> bool:
        return any(hook(cell_id) for hook in self.exclusions)

    def is_available(self, cell_id: int) -> bool:
        return (cell_id in self.graph.cells and cell_id not in self.lake_of
                and not self.is_excluded(cell_id))

    def select_origins(self, num_lakes: int) -> List[int]:
        """Draw up to ``num_lakes`` distinct available cells."""
        available = [cell_id for cell_id in sorted(self.graph.cells) if self.is_available(cell_id)]
        origins = []
        while len(origins) < num_lakes and available:
            origins.append(available.pop(self.prng.randint(len(available))))
        return origins

    def frontier(self, lake: RegionFeature) -> List[Tuple[int, int]]:
        """
        Available neighbours of a lake's cells, in discovery order.

        Returns:
            ``(cell_id, parent_id)`` pairs, where the parent is the first lake
            cell the candidate was discovered from
        """
        candidates = []
        seen = set()
        for cell_id in lake.cells:
            for neighbor in self.graph.cells[cell_id].neighbors:
                if neighbor not in seen and self.is_available(neighbor):
                    seen.add(neighbor)
                    candidates.append((neighbor, cell_id))
        return candidates

    def generate(self, options: Optional[LakeOptions] = None) -> List[RegionFeature]:
        """
        Replace any existing lakes with new ones.

        Origins take one budget cell each. The remaining budget is spent by
        repeatedly picking a random growable lake and adding one random
        cell of its frontier. A lake whose frontier is empty stops growing.
        Each grown cell takes one more draw for its depth. The loop ends
        when the budget is spent or no lake can grow, and after at most
        ``budget * retry_factor`` iterations.

        Returns:
            One feature per lake, in origin order
        """
        options = options or LakeOptions()
        self.clear()

        budget = max(0, int(options.budget))
        if budget == 0 or options.num_lakes <= 0:
            logger.info("Lake generation skipped", budget=budget, num_lakes=options.num_lakes)
            return []

        origins = self.select_origins(min(options.num_lakes, budget))
        if not origins:
            logger.warning("No available cells for lake origins")
            return []

        for lake_id, cell_id in enumerate(origins):
            lake = RegionFeature(id=f"lake-{lake_id}", kind="lake", origin=cell_id)
            self.lakes.append(lake)
            self._claim(cell_id, lake_id, options.max_depth)

        remaining = budget - len(origins)
        growing = list(range(len(self.lakes)))
        max_iterations = budget * options.retry_factor
        iterations = 0

        while remaining > 0 and growing and iterations < max_iterations:
            iterations += 1
            slot = self.prng.randint(len(growing))
            lake_id = growing[slot]
            candidates = self.frontier(self.lakes[lake_id])
            if not candidates:
                growing.pop(slot)
                continue
            cell_id, parent_id = candidates[self.prng.randint(len(candidates))]
            step = options.min_step + self.prng.random() * (options.max_step - options.min_step)
            depth = max(options.min_depth, self.lakes[lake_id].depths[parent_id] - step)
            self._claim(cell_id, lake_id, depth)
            remaining -= 1

        if remaining > 0:
            logger.warning("Lake budget not fully spent", remaining=remaining,
                           iterations=iterations, growable_lakes=len(growing))

        logger.info("Lakes generated", lakes=len(self.lakes), cells=len(self.lake_of),
                    budget=budget)
        return self.lakes

    def _claim(self, cell_id: int, lake_id: int, depth: float) -> None:
        features = self.graph.cells[cell_id].features
        features.lake_id = lake_id
        features.lake_depth = depth
        self.lake_of[cell_id] = lake_id
        self.lakes[lake_id].cells.append(cell_id)
        self.lakes[lake_id].depths[cell_id] = depth

    def clear(self) -> None:
        """Remove all lake tagging."""
        for cell_id in self.lake_of:
            cell = self.graph.cells.get(cell_id)
            if cell is not None:
                cell.features.clear_lake()
        self.lake_of = {}
        self.lakes = []

    def is_lake_cell(self, cell_id: int) -> bool:
        return cell_id in self.lake_of

    def get_lake_cells(self) -> List[int]:
        return sorted(self.lake_of)

    def get_lake_cell_count(self) -> int:
        return len(self.lake_of)

    def get_lake_origins(self) -> List[int]:
        return [lake.origin for lake in self.lakes]

    def get_lake_sets(self) -> Dict[int, set]:
        """Lake id to its set of cell ids."""
        return {lake_id: set(lake.cells) for lake_id, lake in enumerate(self.lakes)}

    def get_lake_depth(self, cell_id: int) -> float:
        """Depth of a lake cell, 0 for cells outside every lake."""
        lake_id = self.lake_of.get(cell_id)
        if lake_id is None:
            return 0.0
        return self.lakes[lake_id].depths[cell_id]

    def get_depth_stats(self) -> Dict[str, float]:
        depths = [depth for lake in self.lakes for depth in lake.depths.values()]
        return {
            "minDepth": min(depths) if depths else 0.0,
            "maxDepth": max(depths) if depths else 0.0,
            "avgDepth": sum(depths) / len(depths) if depths else 0.0,
            "lakeCells": len(depths),
            "origins": len(self.lakes),
        }
