"""Geometry value types shared by the Voronoi builder and the feature generators."""

import math
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence

from shapely.geometry import Polygon


class Point(NamedTuple):
    """A 2D coordinate on the flat map grid (``z`` is the second axis)."""
    x: float
    z: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.z - other.z)


@dataclass(frozen=True)
class Site:
    """Triangulation input point.

    Boundary sites only bound the diagram and never become cells.
    """
    x: float
    z: float
    is_boundary: bool = False

    @property
    def point(self) -> Point:
        return Point(self.x, self.z)


@dataclass
class Edge:
    """Directed Voronoi edge between two vertex ids.

    ``length`` is the Euclidean distance between the endpoints; ``weight``
    starts equal to it and is only ever raised by boundary weighting.
    """
    start: int
    end: int
    length: float
    weight: float


@dataclass
class CellFeatures:
    """Feature flags of a cell, written by the region and path generators."""
    coast_depth: Optional[int] = None
    coast_direction: Optional[str] = None
    lake_id: Optional[int] = None
    lake_depth: Optional[float] = None
    river: bool = False

    @property
    def is_coastal(self) -> bool:
        return self.coast_depth is not None

    @property
    def is_lake(self) -> bool:
        return self.lake_id is not None

    def clear_coastline(self) -> None:
        self.coast_depth = None
        self.coast_direction = None

    def clear_lake(self) -> None:
        self.lake_id = None
        self.lake_depth = None

    def to_dict(self) -> Dict:
        return {
            "coastal": self.is_coastal,
            "depth": self.coast_depth,
            "direction": self.coast_direction,
            "isLake": self.is_lake,
            "lakeId": self.lake_id,
            "lakeDepth": self.lake_depth,
            "river": self.river,
        }


@dataclass
class Cell:
    """Voronoi cell of one non-boundary site.

    ``vertex_ids`` and ``vertices`` are aligned and ordered counterclockwise
    around the cell centre.
    """
    id: int
    site: Site
    vertex_ids: List[int] = field(default_factory=list)
    vertices: List[Point] = field(default_factory=list)
    neighbors: List[int] = field(default_factory=list)
    features: CellFeatures = field(default_factory=CellFeatures)

    @property
    def polygon(self) -> Optional[Polygon]:
        if len(self.vertices) < 3:
            return None
        return Polygon([(v.x, v.z) for v in self.vertices])

    @property
    def area(self) -> float:
        polygon = self.polygon
        return polygon.area if polygon is not None else 0.0

    @property
    def perimeter(self) -> float:
        polygon = self.polygon
        return polygon.length if polygon is not None else 0.0


@dataclass
class RegionFeature:
    """A set of claimed cells (a coastline or a single lake)."""
    id: str
    kind: str
    cells: List[int] = field(default_factory=list)
    origin: Optional[int] = None
    direction: Optional[str] = None
    depths: Dict[int, float] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.cells)


@dataclass
class PathFeature:
    """An ordered vertex path (a river or a tributary)."""
    id: str
    kind: str
    vertices: List[int]
    length: float = 0.0
    centroid: Optional[Point] = None
    parent_id: Optional[str] = None

    @property
    def start(self) -> int:
        return self.vertices[0]

    @property
    def end(self) -> int:
        return self.vertices[-1]


def order_vertices_cyclically(points: Sequence[Point]) -> List[int]:
    """
    Return the indices of ``points`` sorted counterclockwise.

    Angles are measured from the arithmetic mean of the points, which is
    inside the convex Voronoi polygon.

    Args:
        points: Polygon corner coordinates in any order

    Returns:
        Permutation of ``range(len(points))``
    """
    if len(points) <= 2:
        return list(range(len(points)))

    cx = sum(p.x for p in points) / len(points)
    cz = sum(p.z for p in points) / len(points)
    return sorted(
        range(len(points)),
        key=lambda i: math.atan2(points[i].z - cz, points[i].x - cx),
    )


def polyline_length(points: Sequence[Point]) -> float:
    """Sum of segment lengths along an ordered list of points."""
    return sum(points[i - 1].distance_to(points[i]) for i in range(1, len(points)))


def mean_point(points: Sequence[Point]) -> Optional[Point]:
    if not points:
        return None
    return Point(
        sum(p.x for p in points) / len(points),
        sum(p.z for p in points) / len(points),
    )
