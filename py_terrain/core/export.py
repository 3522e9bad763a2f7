"""
JSON snapshot of a generated map.

The snapshot holds the settings, the full diagram and every feature. It is
what ``generate_terrain_json.py`` writes and what regression tests load to
regenerate a map from its stored settings.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import structlog

logger = structlog.get_logger()

EXPORT_VERSION = "1.0"
NUMERIC_DIGITS = 9


def normalize_numeric_values(obj: Any, digits: int = NUMERIC_DIGITS) -> Any:
    """Recursively convert numpy types to Python types and round floats."""
    if isinstance(obj, (bool, np.bool_)):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, (float, np.floating)):
        return round(float(obj), digits)
    if isinstance(obj, np.ndarray):
        return normalize_numeric_values(obj.tolist(), digits)
    if isinstance(obj, (list, tuple)):
        return [normalize_numeric_values(item, digits) for item in obj]
    if isinstance(obj, dict):
        return {key: normalize_numeric_values(value, digits) for key, value in obj.items()}
    return obj


def _xz(point) -> Dict[str, Optional[float]]:
    if point is None:
        return {"x": None, "z": None}
    return {"x": point.x, "z": point.z}


def _path_entry(graph, index: int, feature) -> Dict[str, Any]:
    return {
        "index": index,
        "id": feature.id,
        "parentId": feature.parent_id,
        "length": feature.length,
        "vertexIndices": list(feature.vertices),
        "vertices": [dict(index=v, **_xz(graph.vertices[v])) for v in feature.vertices],
    }


def build_voronoi_export(terrain_map, description: str = "Voronoi terrain export",
                         timestamp: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the JSON snapshot of a map.

    Args:
        terrain_map: A ``TerrainMap`` whose Voronoi graph has been generated
        description: Free text stored in the metadata
        timestamp: Export time; defaults to now (UTC)

    Returns:
        Snapshot dictionary with floats rounded to nine digits
    """
    graph = terrain_map.graph
    if graph is None:
        raise ValueError("build_voronoi_export requires a generated Voronoi graph")

    triangulation = graph.triangulation
    coastlines = terrain_map.coastlines.coastlines if terrain_map.coastlines else []
    lakes = terrain_map.lakes.lakes if terrain_map.lakes else []
    rivers = terrain_map.rivers.rivers if terrain_map.rivers else []
    tributaries = terrain_map.tributaries.tributaries if terrain_map.tributaries else []

    data = {
        "metadata": {
            "exportTimestamp": timestamp or datetime.now(timezone.utc).isoformat(),
            "version": EXPORT_VERSION,
            "description": description,
            "settings": terrain_map.settings.to_snapshot(),
            "stats": {
                "cells": len(graph.cells),
                "vertices": len(graph.vertex_adjacency),
                "edges": len(graph.edges),
                "clampedVertices": graph.clamped_vertex_count,
                "lakeDepths": terrain_map.lakes.get_depth_stats() if terrain_map.lakes else None,
            },
        },
        "points": [
            {"index": i, "x": site.x, "z": site.z, "isBoundary": site.is_boundary}
            for i, site in enumerate(graph.sites)
        ],
        "triangles": triangulation.site_indices[triangulation.triangles].tolist()
        if not triangulation.is_empty else [],
        "edges": [
            {
                "index": i,
                "key": f"{edge.start}-{edge.end}",
                "start": edge.start,
                "end": edge.end,
                "pointA": _xz(graph.vertices[edge.start]),
                "pointB": _xz(graph.vertices[edge.end]),
                "length": edge.length,
                "weight": edge.weight,
            }
            for i, edge in enumerate(graph.edges.values())
        ],
        "voronoiCells": [
            {
                "index": cell_id,
                "site": {"x": cell.site.x, "z": cell.site.z, "index": cell_id},
                "vertexIndices": list(cell.vertex_ids),
                "vertices": [_xz(v) for v in cell.vertices],
                "neighbors": list(cell.neighbors),
                "metadata": cell.features.to_dict(),
            }
            for cell_id, cell in sorted(graph.cells.items())
        ],
        "delaunayCircumcenters": [
            dict(index=i, **_xz(v)) for i, v in enumerate(graph.vertices)
        ],
        "rivers": [_path_entry(graph, i, river) for i, river in enumerate(rivers)],
        "tributaries": [_path_entry(graph, i, t) for i, t in enumerate(tributaries)],
        "coastlines": [
            {
                "index": i,
                "id": coastline.id,
                "direction": coastline.direction,
                "cells": list(coastline.cells),
                "depths": {str(cell_id): depth for cell_id, depth in coastline.depths.items()},
            }
            for i, coastline in enumerate(coastlines)
        ],
        "lakes": [
            {
                "index": i,
                "id": lake.id,
                "lakeId": i,
                "origin": lake.origin,
                "cells": list(lake.cells),
                "depths": {str(cell_id): depth for cell_id, depth in lake.depths.items()},
            }
            for i, lake in enumerate(lakes)
        ],
    }
    return normalize_numeric_values(data)


def save_export(data: Dict[str, Any], path: Union[str, Path]) -> Path:
    """Write a snapshot as indented JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2, separators=(",", ": "))
    logger.info("Saved map snapshot", path=str(path))
    return path


def load_export(path: Union[str, Path]) -> Dict[str, Any]:
    with open(path) as f:
        return json.load(f)
