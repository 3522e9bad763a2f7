"""Shared fixtures for the terrain tests."""

import pytest

from py_terrain.core.alea_prng import AleaPRNG
from py_terrain.core.voronoi_graph import generate_voronoi


@pytest.fixture
def small_voronoi():
    """A 400x400 Poisson map with a few hundred vertices."""
    return generate_voronoi(400, AleaPRNG("small_map"), poisson_radius=30)


@pytest.fixture
def base_settings():
    """Settings for a small full map."""
    return {
        "gridSize": 400,
        "seed": 12345,
        "voronoi": {"poissonRadius": 30},
        "coastlines": {"direction": "N", "budget": 20, "margin": 0.2},
        "lakes": {"budget": 12, "numLakes": 2},
        "rivers": {"numRivers": 1},
        "tributaries": {"numTributaries": 1},
    }
