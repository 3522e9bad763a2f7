"""
Core terrain generation functionality.
"""

from .alea_prng import AleaPRNG
from .graph_state import GraphPartition, GraphState
from .pathfinder import find_path
from .terrain_map import TerrainMap
from .vertex_graph import VertexGraph
from .voronoi_graph import VoronoiGraph, build_voronoi_graph, generate_voronoi

__all__ = ['AleaPRNG', 'GraphPartition', 'GraphState', 'find_path', 'TerrainMap',
           'VertexGraph', 'VoronoiGraph', 'build_voronoi_graph', 'generate_voronoi']
