"""
Label repair after structural operations.

Conforming transforms and refinement split constraint segments by inserting
new vertices. Those vertices still carry the sentinel id, and the pieces of a
split segment are not in the provenance table. For every edge touching a new
vertex we search the table for an input segment that the edge overlaps
along a stretch (not just a point) and copy its type.

The search is a linear scan of the table per candidate edge, vectorised with
numpy: O(new edges x table size). A bounding-box index over the table
segments would be the next step for large inputs.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from .provenance import EdgeType, ProvenanceTable
from .triangulation import SENTINEL_ID, Triangulation
from .utils import XY, segment_overlaps, tic, toc

logger = logging.getLogger(__name__)


def find_edge_type_bruteforce(
    p: XY,
    q: XY,
    table: ProvenanceTable,
    tol: float = 0.0,
    *,
    _segments: Optional[Tuple[np.ndarray, np.ndarray, List[EdgeType]]] = None,
) -> Optional[EdgeType]:
    """Type of the first table segment that pq overlaps, or None."""
    starts, ends, types = _segments if _segments is not None else table.segments()
    mask = segment_overlaps(p, q, starts, ends, tol)
    hits = np.flatnonzero(mask)
    if hits.size == 0:
        return None
    return types[int(hits[0])]


def repair_labels(cdt: Triangulation, table: ProvenanceTable, tol: float = 0.0) -> ProvenanceTable:
    """Recover types of edges incident to sentinel-id vertices.

    Returns a delta table; merge it into `table` with `table.merge(delta)`.
    """
    tic()
    delta = ProvenanceTable()
    segments = table.segments()
    checked = 0
    for va, vb, _, _ in cdt.finite_edges():
        if va.id != SENTINEL_ID and vb.id != SENTINEL_ID:
            continue
        if (va, vb) in table or (va, vb) in delta:
            continue
        checked += 1
        input_type = find_edge_type_bruteforce(va.point, vb.point, table, tol, _segments=segments)
        if input_type is not None:
            delta.record(va, vb, input_type)
    logger.info(f"Checked {checked} edges at new vertices, recovered {len(delta)} labels")
    toc("label repair")
    return delta
