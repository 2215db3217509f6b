from __future__ import annotations

import enum
import logging
import math
import time
from typing import List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

_t: Optional[float] = None


def tic():
    global _t
    _t = time.time()


def toc(task: Optional[str] = None):
    global _t
    if _t is None:
        raise RuntimeError("Must call tic() before toc()")
    dt = time.time() - _t
    _t = None
    if task:
        logger.info(f"Elapsed time: {dt:.3f} s for {task}")
    else:
        logger.info(f"Elapsed time: {dt:.3f} s")
    return dt


# ------------- Types -------------
XY = Tuple[float, float]
Loop = List[XY]


class BoundedSide(enum.Enum):
    ON_BOUNDED_SIDE = 1
    ON_BOUNDARY = 0
    ON_UNBOUNDED_SIDE = -1


def tolerance_for(points: Sequence[XY], rel: float = 1e-9) -> float:
    """Absolute tolerance scaled by the bounding-box diagonal of `points`."""
    if not points:
        return rel
    P = np.asarray(points, dtype=np.float64)
    diag = float(np.hypot(*(P.max(axis=0) - P.min(axis=0))))
    return rel * max(diag, 1.0)


# ------------- Point location -------------


def _on_ring_boundary(P: np.ndarray, ring: np.ndarray, tol: float) -> np.ndarray:
    """Mask of points within `tol` of any edge of `ring` (edges between consecutive vertices)."""
    on = np.zeros(P.shape[0], dtype=bool)
    n = ring.shape[0]
    for i in range(n):
        x0, y0 = ring[i]
        x1, y1 = ring[(i + 1) % n]
        vx = x1 - x0
        vy = y1 - y0
        denom = vx * vx + vy * vy
        wx = P[:, 0] - x0
        wy = P[:, 1] - y0
        if denom == 0.0:
            d2 = wx * wx + wy * wy
        else:
            t = np.clip((wx * vx + wy * vy) / denom, 0.0, 1.0)
            dx = wx - t * vx
            dy = wy - t * vy
            d2 = dx * dx + dy * dy
        on |= d2 <= tol * tol
    return on


def _ray_cast(P: np.ndarray, ring: np.ndarray) -> np.ndarray:
    inside = np.zeros(P.shape[0], dtype=bool)
    x = P[:, 0]
    y = P[:, 1]
    n = ring.shape[0]
    for i in range(n):
        x0, y0 = ring[i]
        x1, y1 = ring[(i + 1) % n]
        if y0 == y1:
            continue
        crosses = (y0 > y) != (y1 > y)
        xin = (x1 - x0) * (y - y0) / (y1 - y0) + x0
        inside ^= crosses & (x < xin)
    return inside


def bounded_side_many(points, ring: Sequence[XY], tol: float = 0.0) -> np.ndarray:
    """Classify many points against one ring.

    Returns an int array holding `BoundedSide` values: 1 strictly inside,
    0 on the boundary (within `tol`), -1 outside. Rings may repeat their
    first vertex at the end; the resulting zero-length edge is harmless.
    """
    P = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    R = np.asarray(ring, dtype=np.float64).reshape(-1, 2)
    side = np.full(P.shape[0], BoundedSide.ON_UNBOUNDED_SIDE.value, dtype=np.int8)
    if R.shape[0] < 3 or P.shape[0] == 0:
        return side
    inside = _ray_cast(P, R)
    side[inside] = BoundedSide.ON_BOUNDED_SIDE.value
    side[_on_ring_boundary(P, R, tol)] = BoundedSide.ON_BOUNDARY.value
    return side


def bounded_side(pt: XY, ring: Sequence[XY], tol: float = 0.0) -> BoundedSide:
    return BoundedSide(int(bounded_side_many([pt], ring, tol)[0]))


# ------------- Segment overlap -------------


def segment_overlaps(
    p: XY,
    q: XY,
    seg_a: np.ndarray,
    seg_b: np.ndarray,
    tol: float,
) -> np.ndarray:
    """Mask of reference segments (seg_a[i], seg_b[i]) whose intersection with pq is a segment.

    The intersection of two segments is a segment exactly when they are
    collinear and share a stretch of positive length. Collinearity is judged
    by the distance of p and q from each reference line, the shared stretch
    by the overlap of the projections onto the reference direction.
    """
    A = np.asarray(seg_a, dtype=np.float64).reshape(-1, 2)
    B = np.asarray(seg_b, dtype=np.float64).reshape(-1, 2)
    if A.shape[0] == 0:
        return np.zeros(0, dtype=bool)
    d = B - A
    length = np.hypot(d[:, 0], d[:, 1])
    safe = np.where(length > 0.0, length, 1.0)
    ux = d[:, 0] / safe
    uy = d[:, 1] / safe

    px = p[0] - A[:, 0]
    py = p[1] - A[:, 1]
    qx = q[0] - A[:, 0]
    qy = q[1] - A[:, 1]

    # signed distances of p and q from the reference line
    dist_p = ux * py - uy * px
    dist_q = ux * qy - uy * qx
    collinear = (np.abs(dist_p) <= tol) & (np.abs(dist_q) <= tol) & (length > tol)

    # positions of p and q along the reference segment
    sp = ux * px + uy * py
    sq = ux * qx + uy * qy
    lo = np.maximum(np.minimum(sp, sq), 0.0)
    hi = np.minimum(np.maximum(sp, sq), length)
    return collinear & (hi - lo > tol)


def squared_distance(a: XY, b: XY) -> float:
    dx = a[0] - b[0]
    dy = a[1] - b[1]
    return dx * dx + dy * dy


def min_angle_for_shape_bound(b: float) -> float:
    """Minimum angle in degrees for a shape bound B = sin^2(min angle)."""
    return math.degrees(math.asin(math.sqrt(b)))
