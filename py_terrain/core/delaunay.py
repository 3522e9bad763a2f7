"""
Delaunay triangulation adapter.

Wraps ``scipy.spatial.Delaunay`` and exposes its output in the flat
half-edge layout used by the Voronoi builder:

- ``triangles[3 * t + i]`` is the i-th point of triangle ``t``
  (counterclockwise order)
- half-edge ``e`` runs from ``triangles[e]`` to ``triangles[next_halfedge(e)]``
- ``halfedges[e]`` is the opposite half-edge in the adjacent triangle, or
  ``-1`` on the convex hull
"""

from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np
import structlog
from scipy.spatial import Delaunay, QhullError

from .geometry import Site

logger = structlog.get_logger()


def next_halfedge(e: int) -> int:
    return e - 2 if e % 3 == 2 else e + 1


@dataclass
class Triangulation:
    """Delaunay triangulation of the usable input sites."""
    coords: np.ndarray = field(default_factory=lambda: np.empty((0, 2)))
    site_indices: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.int64))
    triangles: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.int64))
    halfedges: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.int64))

    @property
    def n_triangles(self) -> int:
        return len(self.triangles) // 3

    @property
    def is_empty(self) -> bool:
        return len(self.triangles) == 0

    def triangle_points(self, t: int) -> List[int]:
        """Point indices of triangle ``t``."""
        return self.triangles[3 * t:3 * t + 3].tolist()

    def triangle_sites(self, t: int) -> List[int]:
        """Input site indices of triangle ``t``."""
        return [int(self.site_indices[p]) for p in self.triangle_points(t)]

    def incoming_halfedges(self) -> np.ndarray:
        """
        For each point, one half-edge ending at it (``-1`` if none).

        Hull points get the half-edge without an opposite so that walking
        around them visits every incident triangle.
        """
        inedges = np.full(len(self.coords), -1, dtype=np.int64)
        for e in range(len(self.triangles)):
            p = self.triangles[next_halfedge(e)]
            if self.halfedges[e] == -1 or inedges[p] == -1:
                inedges[p] = e
        return inedges

    def hull_halfedges(self) -> np.ndarray:
        return np.flatnonzero(self.halfedges == -1)


def triangulate(sites: Sequence[Site]) -> Triangulation:
    """
    Triangulate a list of sites.

    Sites with non-finite coordinates are logged and skipped. Fewer than
    three usable sites, or a point set Qhull rejects (e.g. all collinear),
    yields an empty triangulation instead of an error.

    Args:
        sites: Ordered triangulation input; indices are preserved through
            ``Triangulation.site_indices``

    Returns:
        Triangulation with counterclockwise triangles and paired half-edges
    """
    coords = np.array([[s.x, s.z] for s in sites], dtype=float).reshape(-1, 2)
    finite = np.all(np.isfinite(coords), axis=1)
    skipped = np.flatnonzero(~finite)
    if len(skipped):
        logger.warning("Skipping sites with non-finite coordinates",
                       count=len(skipped), site_indices=skipped.tolist())

    site_indices = np.flatnonzero(finite)
    coords = coords[finite]

    if len(coords) < 3:
        logger.warning("Not enough points for triangulation", usable=len(coords))
        return Triangulation(coords=coords, site_indices=site_indices)

    try:
        delaunay = Delaunay(coords)
    except QhullError as exc:
        logger.error("Triangulation error", error=str(exc), points=len(coords))
        return Triangulation(coords=coords, site_indices=site_indices)

    simplices = delaunay.simplices.astype(np.int64).copy()
    neighbors = delaunay.neighbors.astype(np.int64).copy()

    # Qhull does not guarantee orientation; flip clockwise triangles.
    # neighbors[t, k] is opposite vertex k, so it is swapped along with it.
    a = coords[simplices[:, 0]]
    b = coords[simplices[:, 1]]
    c = coords[simplices[:, 2]]
    cross = (b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])
    clockwise = cross < 0
    simplices[clockwise, 1], simplices[clockwise, 2] = (
        simplices[clockwise, 2].copy(), simplices[clockwise, 1].copy())
    neighbors[clockwise, 1], neighbors[clockwise, 2] = (
        neighbors[clockwise, 2].copy(), neighbors[clockwise, 1].copy())

    n_halfedges = 3 * len(simplices)
    e = np.arange(n_halfedges)
    t = e // 3
    i = e % 3

    # Half-edge (v_i -> v_i+1) lies opposite v_i+2; its twin in the
    # neighbouring triangle starts at v_i+1.
    opposite_triangle = neighbors[t, (i + 2) % 3]
    start_of_twin = simplices[t, (i + 1) % 3]
    paired = opposite_triangle >= 0

    halfedges = np.full(n_halfedges, -1, dtype=np.int64)
    twin_slot = np.argmax(
        simplices[opposite_triangle[paired]] == start_of_twin[paired, None], axis=1)
    halfedges[paired] = 3 * opposite_triangle[paired] + twin_slot

    if len(delaunay.coplanar):
        logger.warning("Qhull dropped coincident points", count=len(delaunay.coplanar))

    logger.info("Triangulation complete", points=len(coords),
                triangles=len(simplices), hull_edges=int(np.sum(~paired)))

    return Triangulation(
        coords=coords,
        site_indices=site_indices,
        triangles=simplices.ravel(),
        halfedges=halfedges,
    )
