"""
Vertex/edge ingestion and the edge provenance table.

Every constraint segment inserted from the input remembers where it came
from (outer ring, hole ring or road chain). Lookups are order-insensitive:
keys are canonical vertex-handle pairs, ordered by the kernel's serial
number, so entries that involve vertices which have not been given an id yet
are already valid.
"""

from __future__ import annotations

import enum
import logging
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .triangulation import SENTINEL_ID, Triangulation, Vertex
from .utils import XY
from .wkt import TessaInput

logger = logging.getLogger(__name__)

EdgeKey = Tuple[Vertex, Vertex]


class EdgeType(enum.IntEnum):
    BOUNDARY = 0
    HOLE = 1
    ROAD = 2
    MESH = 3


def type_name(code: int) -> str:
    try:
        return EdgeType(code).name.lower()
    except ValueError:
        return "unknown"


def edge_key(va: Vertex, vb: Vertex) -> EdgeKey:
    return (va, vb) if va.serial <= vb.serial else (vb, va)


class ProvenanceTable:
    """Mapping from unordered vertex pair to the EdgeType it was inserted with."""

    def __init__(self):
        self._types: Dict[EdgeKey, EdgeType] = {}

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, pair) -> bool:
        va, vb = pair
        return edge_key(va, vb) in self._types

    def __iter__(self) -> Iterator[Tuple[EdgeKey, EdgeType]]:
        return iter(self._types.items())

    def record(self, va: Vertex, vb: Vertex, edge_type: EdgeType) -> None:
        # first recorded type wins when chains share an edge
        self._types.setdefault(edge_key(va, vb), EdgeType(edge_type))

    def get(self, va: Vertex, vb: Vertex) -> Optional[EdgeType]:
        return self._types.get(edge_key(va, vb))

    def lookup(self, va: Vertex, vb: Vertex) -> EdgeType:
        """Type of edge (va, vb); edges we never recorded are mesh edges."""
        return self._types.get(edge_key(va, vb), EdgeType.MESH)

    def merge(self, other: "ProvenanceTable") -> int:
        """Add entries of `other` that are not known yet; returns how many were added."""
        added = 0
        for key, edge_type in other:
            if key not in self._types:
                self._types[key] = edge_type
                added += 1
        return added

    def segments(self) -> Tuple[np.ndarray, np.ndarray, List[EdgeType]]:
        """Endpoint arrays (M,2), (M,2) and types, in insertion order."""
        starts = np.asarray([va.point for va, _ in self._types], dtype=np.float64).reshape(-1, 2)
        ends = np.asarray([vb.point for _, vb in self._types], dtype=np.float64).reshape(-1, 2)
        return starts, ends, list(self._types.values())

    def snapshot(self) -> Dict[Tuple[int, int], EdgeType]:
        """Entries keyed by vertex serial numbers, for comparisons."""
        return {(va.serial, vb.serial): t for (va, vb), t in self._types.items()}


class IngestionContext:
    """Owns the vertex-id counter, the provenance table and the ingested rings/chains."""

    def __init__(self, triangulation: Optional[Triangulation] = None):
        self.triangulation = triangulation if triangulation is not None else Triangulation()
        self.table = ProvenanceTable()
        self.next_id = 0
        self.edges_inserted = 0
        # index 0 is the outer ring, then holes, then road chains
        self.rings: List[List[Vertex]] = []
        self.num_polygon_rings = 0

    def insert_chain(self, chain: Sequence[XY], edge_type: EdgeType) -> List[Vertex]:
        cdt = self.triangulation
        vhs: List[Vertex] = []
        for x, y in chain:
            vh = cdt.insert((x, y))
            if vh.id == SENTINEL_ID:
                vh.id = self.next_id
                self.next_id += 1
            vhs.append(vh)
        self.rings.append(vhs)
        if len(vhs) == 1:
            return vhs
        for va, vb in zip(vhs, vhs[1:]):
            if va.id == vb.id:
                continue
            cdt.insert_constraint(va, vb)
            logger.info(f"Inserting edge {va.id} - {vb.id} with type {type_name(edge_type)}")
            self.table.record(va, vb, edge_type)
            self.edges_inserted += 1
        return vhs

    def ingest(self, data: TessaInput) -> None:
        edge_type = EdgeType.BOUNDARY
        for ring in data.polygon:
            self.insert_chain(ring, edge_type)
            edge_type = EdgeType.HOLE
        self.num_polygon_rings = len(data.polygon)
        for chain in data.linestrings:
            self.insert_chain(chain, EdgeType.ROAD)
        logger.info(f"Number of input vertices: {self.triangulation.number_of_vertices()}")
        logger.info(f"Number of edges inserted: {self.edges_inserted}")

    @property
    def polygon_rings(self) -> List[List[Vertex]]:
        return self.rings[: self.num_polygon_rings]

    @property
    def hole_rings(self) -> List[List[Vertex]]:
        return self.rings[1 : self.num_polygon_rings]
