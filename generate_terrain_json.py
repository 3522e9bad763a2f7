#!/usr/bin/env python3
"""
Generate a terrain map and save its JSON snapshot.

Settings come from a JSON file (camelCase or snake_case keys) or, without
one, from a small built-in default map.
"""

import argparse
import json
from pathlib import Path

import structlog

from py_terrain.config import configure_logging, settings
from py_terrain.core.export import build_voronoi_export, save_export
from py_terrain.core.terrain_map import TerrainMap

logger = structlog.get_logger()

DEFAULT_SETTINGS = {
    "gridSize": 600,
    "seed": "162921633",
    "voronoi": {"poissonRadius": 25},
    "coastlines": {"direction": "N", "budget": 60, "margin": 0.1},
    "lakes": {"budget": 30, "numLakes": 2},
    "rivers": {"numRivers": 1},
    "tributaries": {"numTributaries": 1},
}


def main():
    parser = argparse.ArgumentParser(description="Generate a terrain map JSON snapshot")
    parser.add_argument("--settings", help="JSON file with generation settings")
    parser.add_argument("--seed", help="Override the seed of the settings")
    parser.add_argument("--output", help="Output file (defaults to the output directory)")
    parser.add_argument("--description", default="Voronoi terrain export",
                        help="Description stored in the snapshot metadata")
    args = parser.parse_args()

    configure_logging(settings)

    data = dict(DEFAULT_SETTINGS)
    if args.settings:
        with open(args.settings) as f:
            data = json.load(f)
    if args.seed:
        data["seed"] = args.seed

    terrain = TerrainMap(data).generate_map()
    snapshot = build_voronoi_export(terrain, description=args.description)

    output = Path(args.output) if args.output else Path(settings.output_dir) / f"terrain_{terrain.settings.seed}.json"
    save_export(snapshot, output)

    logger.info("Terrain snapshot written", path=str(output), cells=len(terrain.cells),
                coastline_cells=len(terrain.get_coastline_cells()),
                lake_cells=len(terrain.get_lake_cells()),
                rivers=len(terrain.get_river_paths()),
                tributaries=len(terrain.get_tributary_paths()))


if __name__ == "__main__":
    main()
