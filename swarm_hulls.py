"""
Group Boundary Extraction
=========================

Per frame, each group's particle cloud is turned into a handful of
outline polygons:

1. Density clustering: a particle is a *core* point when at least
   ``min_points`` particles (itself included) lie strictly within
   ``radius``. Core points that are within ``radius`` of one another
   belong to the same cluster. Border and noise points are dropped.
2. Concave hull per cluster ("gift opening"): start from the convex hull
   and repeatedly dig each edge in towards the nearest interior point,
   as long as edge_length / distance_to_nearest_endpoint > concavity and
   the edge is the closest boundary edge to that point.
3. Ramer-Douglas-Peucker simplification of the closed ring.

Rings are returned closed (first point == last point), as (k, 2) arrays.
Nothing is cached between calls: the same positions always give the same
rings, and ring order carries no identity from frame to frame.
"""

from __future__ import annotations

from collections import deque
from typing import List, Optional

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components
from scipy.spatial import ConvexHull, QhullError, cKDTree

CLUSTER_RADIUS = 40.0
CLUSTER_MIN_POINTS = 20
HULL_CONCAVITY = 2.0
SIMPLIFY_TOLERANCE = 1.0


# =============================================================================
# GEOMETRY HELPERS
# =============================================================================

def segment_distances(points: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Distance from each point (n, 2) to the segment a-b."""
    ab = b - a
    denom = float(ab @ ab)
    if denom == 0.0:
        return np.linalg.norm(points - a, axis=1)
    t = np.clip(((points - a) @ ab) / denom, 0.0, 1.0)
    proj = a + t[:, None] * ab
    return np.linalg.norm(points - proj, axis=1)


def point_to_segments(p: np.ndarray, starts: np.ndarray, ends: np.ndarray) -> np.ndarray:
    """Distance from one point to each segment starts[i]-ends[i]."""
    ab = ends - starts
    denom = np.einsum('ij,ij->i', ab, ab)
    t = np.einsum('ij,ij->i', p - starts, ab) / np.where(denom == 0.0, 1.0, denom)
    t = np.where(denom == 0.0, 0.0, np.clip(t, 0.0, 1.0))
    proj = starts + t[:, None] * ab
    return np.linalg.norm(p - proj, axis=1)


# =============================================================================
# DENSITY CLUSTERING
# =============================================================================

def core_clusters(points: np.ndarray,
                  radius: float = CLUSTER_RADIUS,
                  min_points: int = CLUSTER_MIN_POINTS) -> List[np.ndarray]:
    """
    Group the core points of ``points`` into density-connected clusters.

    Returns a list of (k, 2) arrays, ordered by the first core point of
    each cluster in input order.
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    n = len(points)
    if n < min_points or n == 0:
        return []

    # Neighbourhood is strictly inside the radius
    r = np.nextafter(radius, 0.0)
    tree = cKDTree(points)
    counts = tree.query_ball_point(points, r, return_length=True)
    core = np.flatnonzero(counts >= min_points)
    if core.size == 0:
        return []

    core_pts = points[core]
    k = len(core_pts)
    pairs = cKDTree(core_pts).query_pairs(r, output_type='ndarray')
    graph = coo_matrix(
        (np.ones(len(pairs), dtype=np.int8), (pairs[:, 0], pairs[:, 1])),
        shape=(k, k)
    )
    n_comp, labels = connected_components(graph, directed=False)
    return [core_pts[labels == c] for c in range(n_comp)]


# =============================================================================
# CONCAVE HULL
# =============================================================================

def _dig_point(pts: np.ndarray, interior: np.ndarray, edge, edges: set,
               concavity: float) -> Optional[int]:
    """Index of the interior point edge ``(a, b)`` should be split at, if any."""
    a_idx, b_idx = edge
    a, b = pts[a_idx], pts[b_idx]
    edge_length = float(np.linalg.norm(b - a))
    if edge_length == 0.0:
        return None

    max_dist = edge_length / concavity
    h = max_dist + max_dist
    w = edge_length + h
    search_dist = np.sqrt(w * w + h * h) / 2.0

    candidates = np.flatnonzero(interior)
    if candidates.size == 0:
        return None
    centroid = (a + b) / 2.0
    near = np.linalg.norm(pts[candidates] - centroid, axis=1) <= search_dist
    candidates = candidates[near]
    if candidates.size == 0:
        return None

    # Only points that project onto the edge itself, endpoints included.
    # A point past either end would make the ring run back over its own edges.
    ab = b - a
    t = ((pts[candidates] - a) @ ab) / (edge_length * edge_length)
    candidates = candidates[(t >= 0.0) & (t <= 1.0)]
    if candidates.size == 0:
        return None

    dists = segment_distances(pts[candidates], a, b)
    best = int(candidates[np.argmin(dists)])
    p = pts[best]
    d_edge = float(dists.min())

    # This edge must be the nearest boundary edge to the point (ties go to it)
    others = np.array([e for e in edges if e != edge], dtype=np.intp).reshape(-1, 2)
    if len(others):
        if point_to_segments(p, pts[others[:, 0]], pts[others[:, 1]]).min() < d_edge:
            return None

    decision = min(float(np.linalg.norm(p - a)), float(np.linalg.norm(p - b)))
    if decision == 0.0:
        return None
    if edge_length / decision > concavity:
        return best
    return None


def concave_hull(points: np.ndarray, concavity: float = HULL_CONCAVITY) -> Optional[np.ndarray]:
    """
    Closed concave hull ring of ``points``, or None for degenerate input
    (fewer than 3 distinct points, or all points collinear).
    """
    pts = np.unique(np.asarray(points, dtype=np.float64).reshape(-1, 2), axis=0)
    if len(pts) < 3:
        return None
    try:
        hull = ConvexHull(pts)
    except QhullError:
        return None

    ring = [int(v) for v in hull.vertices]  # counter-clockwise
    if len(pts) < 4:
        return pts[ring + [ring[0]]]

    interior = np.ones(len(pts), dtype=bool)
    interior[ring] = False

    queue = deque()
    edges = set()
    for i in range(len(ring)):
        e = (ring[i], ring[(i + 1) % len(ring)])
        queue.append(e)
        edges.add(e)

    out: List[int] = []
    while queue:
        edge = queue.popleft()
        split = _dig_point(pts, interior, edge, edges, concavity)
        if split is not None:
            interior[split] = False
            edges.discard(edge)
            first, second = (edge[0], split), (split, edge[1])
            edges.add(first)
            edges.add(second)
            queue.appendleft(second)
            queue.appendleft(first)
        else:
            if not out or out[-1] != edge[0]:
                out.append(edge[0])
            out.append(edge[1])

    return pts[out]


# =============================================================================
# SIMPLIFICATION
# =============================================================================

def simplify_ring(ring: np.ndarray, tolerance: float = SIMPLIFY_TOLERANCE) -> np.ndarray:
    """Ramer-Douglas-Peucker on a polyline; endpoints are always kept."""
    ring = np.asarray(ring, dtype=np.float64)
    n = len(ring)
    if n < 3:
        return ring.copy()

    keep = np.zeros(n, dtype=bool)
    keep[0] = keep[-1] = True
    stack = [(0, n - 1)]
    while stack:
        start, end = stack.pop()
        if end - start < 2:
            continue
        inner = ring[start + 1:end]
        d = segment_distances(inner, ring[start], ring[end])
        i = int(np.argmax(d))
        if d[i] > tolerance:
            split = start + 1 + i
            keep[split] = True
            stack.append((start, split))
            stack.append((split, end))
    return ring[keep]


# =============================================================================
# PIPELINE
# =============================================================================

def extract_boundaries(positions: np.ndarray,
                       radius: float = CLUSTER_RADIUS,
                       min_points: int = CLUSTER_MIN_POINTS,
                       concavity: float = HULL_CONCAVITY,
                       tolerance: float = SIMPLIFY_TOLERANCE) -> List[np.ndarray]:
    """Simplified closed outline of every dense cluster in ``positions``."""
    rings = []
    for cluster in core_clusters(positions, radius, min_points):
        if len(cluster) < 3:
            continue
        hull = concave_hull(cluster, concavity)
        if hull is None:
            continue
        simple = simplify_ring(hull, tolerance)
        # A closed triangle needs 4 coordinates
        if len(simple) < 4:
            continue
        rings.append(simple)
    return rings
