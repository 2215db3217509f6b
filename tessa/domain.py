from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np

from .triangulation import Triangulation, Vertex
from .utils import XY, BoundedSide, Loop, bounded_side, bounded_side_many

logger = logging.getLogger(__name__)

# Offset along both edge vectors of a face: strictly inside any
# non-degenerate triangle, and away from the exact centroid.
_REPRESENTATIVE_OFFSET = 0.33

_SEED_EPS_FIRST = 0.0001
_SEED_EPS_SECOND = -0.01


def _ring_points(ring: Sequence[Vertex]) -> Loop:
    return [vh.point for vh in ring]


def representative_point(a: XY, b: XY, c: XY) -> XY:
    return (
        a[0] + _REPRESENTATIVE_OFFSET * (b[0] - a[0]) + _REPRESENTATIVE_OFFSET * (c[0] - a[0]),
        a[1] + _REPRESENTATIVE_OFFSET * (b[1] - a[1]) + _REPRESENTATIVE_OFFSET * (c[1] - a[1]),
    )


def points_in_domain(points, polygon: Sequence[Loop]) -> np.ndarray:
    """Mask of points strictly inside polygon[0] and not strictly inside any hole."""
    P = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if not polygon:
        return np.zeros(P.shape[0], dtype=bool)
    inside = bounded_side_many(P, polygon[0]) == BoundedSide.ON_BOUNDED_SIDE.value
    for hole in polygon[1:]:
        inside &= bounded_side_many(P, hole) != BoundedSide.ON_BOUNDED_SIDE.value
    return inside


def point_is_in_domain(pt: XY, polygon: Sequence[Loop]) -> bool:
    return bool(points_in_domain([pt], polygon)[0])


def set_domain_from_rings(cdt: Triangulation, rings: Sequence[Sequence[Vertex]]) -> int:
    """Flag every face whose representative point lies in the domain.

    `rings` holds the outer ring at index 0 and the holes after it. Returns
    the number of faces in the domain.
    """
    faces = cdt.faces()
    if not faces:
        return 0
    polygon = [_ring_points(ring) for ring in rings]
    tri_pts = np.asarray(
        [[vh.point for vh in f.vertices] for f in faces], dtype=np.float64
    )  # (F,3,2)
    reps = (
        tri_pts[:, 0, :]
        + _REPRESENTATIVE_OFFSET * (tri_pts[:, 1, :] - tri_pts[:, 0, :])
        + _REPRESENTATIVE_OFFSET * (tri_pts[:, 2, :] - tri_pts[:, 0, :])
    )
    inside = points_in_domain(reps, polygon)
    for f, flag in zip(faces, inside.tolist()):
        f.in_domain = flag
    num_inside = int(inside.sum())
    logger.info(f"{num_inside} of {len(faces)} faces are in the domain")
    return num_inside


def construct_point_in_polygon(ring: Sequence[XY]) -> XY:
    """Best-effort point strictly inside `ring`, placed next to its second vertex.

    Assumes the turn a-b-c at the first three vertices is convex and steps a
    little into the angle; if that misses, steps further the other way (the
    turn was reflex). If both miss, an error is logged and the second point
    is returned anyway.
    """
    if len(ring) < 3:
        raise ValueError(f"Need at least 3 ring vertices for a seed point, got {len(ring)}")
    (ax, ay), (bx, by), (cx, cy) = ring[0], ring[1], ring[2]
    dx = (ax - bx) + (cx - bx)
    dy = (ay - by) + (cy - by)

    seed = (bx + _SEED_EPS_FIRST * dx, by + _SEED_EPS_FIRST * dy)
    if bounded_side(seed, ring) == BoundedSide.ON_BOUNDED_SIDE:
        logger.info("Seed is inside the hole on first attempt")
        return seed

    seed = (bx + _SEED_EPS_SECOND * dx, by + _SEED_EPS_SECOND * dy)
    if bounded_side(seed, ring) == BoundedSide.ON_BOUNDED_SIDE:
        logger.info("Seed inside the hole on second attempt")
    else:
        logger.error("Seed point not in the hole. Result will be bad.")
    return seed


def hole_seeds(holes: Sequence[Sequence[Vertex]]) -> List[XY]:
    seeds: List[XY] = []
    for k, ring in enumerate(holes, start=1):
        try:
            seeds.append(construct_point_in_polygon(_ring_points(ring)))
        except ValueError as x:
            logger.error(f"Skipping seed for ring {k}: {x}")
    return seeds
