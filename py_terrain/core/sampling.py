"""Site generation for the Voronoi diagram."""

import math
from typing import List, Optional

import structlog

from .alea_prng import AleaPRNG
from .geometry import Site

logger = structlog.get_logger()

POISSON_ATTEMPTS = 30
BOUNDARY_MARGIN = 0.1


def generate_poisson_sites(grid_size: float, radius: float, prng: AleaPRNG) -> List[Site]:
    """
    Generate sites with Poisson disk sampling.

    Grows an active list from one random point; each active point gets
    ``POISSON_ATTEMPTS`` tries to place a neighbour between ``radius`` and
    ``2 * radius`` away, after which it is retired. A background grid with
    cell size ``radius / sqrt(2)`` holds at most one site per cell.

    Args:
        grid_size: Side length of the square map
        radius: Minimum distance between sites
        prng: Random stream of the generation pass

    Returns:
        Sites in placement order, all at least ``radius`` away from the grid edge

    Raises:
        ValueError: If the grid is narrower than two radii
    """
    if grid_size < 2 * radius:
        raise ValueError(f"grid_size {grid_size} is smaller than twice the Poisson radius {radius}")

    cell_size = radius / math.sqrt(2)
    grid_width = int(math.ceil(grid_size / cell_size))
    background = [None] * (grid_width * grid_width)

    first = Site(
        radius + prng.random() * (grid_size - 2 * radius),
        radius + prng.random() * (grid_size - 2 * radius),
    )
    sites = [first]
    active = [first]
    background[int(first.x // cell_size) + int(first.z // cell_size) * grid_width] = first

    while active:
        index = prng.randint(len(active))
        point = active[index]
        found = False

        for _ in range(POISSON_ATTEMPTS):
            angle = prng.random() * 2 * math.pi
            distance = radius + prng.random() * radius
            candidate = Site(
                point.x + math.cos(angle) * distance,
                point.z + math.sin(angle) * distance,
            )

            if (candidate.x < radius or candidate.x >= grid_size - radius or
                    candidate.z < radius or candidate.z >= grid_size - radius):
                continue

            gx = int(candidate.x // cell_size)
            gz = int(candidate.z // cell_size)
            if _is_far_enough(candidate, gx, gz, background, grid_width, radius):
                sites.append(candidate)
                active.append(candidate)
                background[gx + gz * grid_width] = candidate
                found = True
                break

        if not found:
            active.pop(index)

    logger.info("Poisson sites generated", count=len(sites), radius=radius)
    return sites


def _is_far_enough(candidate: Site, gx: int, gz: int, background: List[Optional[Site]],
                   grid_width: int, radius: float) -> bool:
    for dx in range(-2, 3):
        for dz in range(-2, 3):
            nx = gx + dx
            nz = gz + dz
            if 0 <= nx < grid_width and 0 <= nz < grid_width:
                neighbor = background[nx + nz * grid_width]
                if neighbor is not None and math.hypot(
                        candidate.x - neighbor.x, candidate.z - neighbor.z) < radius:
                    return False
    return True


def generate_random_sites(grid_size: float, num_sites: int, prng: AleaPRNG) -> List[Site]:
    """Generate ``num_sites`` uniformly distributed sites inside the grid."""
    sites = []
    for _ in range(num_sites):
        x = prng.random() * grid_size
        z = prng.random() * grid_size
        sites.append(Site(x, z))
    logger.info("Random sites generated", count=len(sites))
    return sites


def get_boundary_sites(grid_size: float) -> List[Site]:
    """
    Generate the synthetic sites that bound the diagram.

    Eight points (corners and edge midpoints) placed 10% of the grid size
    outside the map, so every real site is strictly inside the convex hull.
    """
    margin = grid_size * BOUNDARY_MARGIN
    coords = [
        (-margin, -margin),
        (grid_size / 2, -margin),
        (grid_size + margin, -margin),
        (-margin, grid_size / 2),
        (grid_size + margin, grid_size / 2),
        (-margin, grid_size + margin),
        (grid_size / 2, grid_size + margin),
        (grid_size + margin, grid_size + margin),
    ]
    return [Site(x, z, is_boundary=True) for x, z in coords]


def generate_sites(grid_size: float, prng: AleaPRNG, num_sites: Optional[int] = None,
                   poisson_radius: Optional[float] = None) -> List[Site]:
    """
    Generate all triangulation input sites: real sites followed by boundary sites.

    Poisson disk sampling is used when ``poisson_radius`` is given, otherwise
    ``num_sites`` uniform random sites.
    """
    if poisson_radius:
        sites = generate_poisson_sites(grid_size, poisson_radius, prng)
    elif num_sites:
        sites = generate_random_sites(grid_size, num_sites, prng)
    else:
        logger.warning("No site distribution configured")
        sites = []
    return sites + get_boundary_sites(grid_size)
