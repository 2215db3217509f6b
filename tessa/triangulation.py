"""
Constrained triangulation kernel backed by Shewchuk's Triangle.

Triangle is a batch library, so this class keeps the point set and the
constraint segments itself and re-runs Triangle for every structural
operation. Vertices are matched back to their `Vertex` handles by exact
coordinates after each run; Triangle keeps input vertices in input order and
appends Steiner points at the end, so existing handles survive every
operation and new points arrive with the sentinel id.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import triangle

from .utils import XY, min_angle_for_shape_bound, tic, toc

logger = logging.getLogger(__name__)

SENTINEL_ID = -1

_SQRT3_OVER4 = math.sqrt(3.0) / 4.0
_CONSTRAINT_MARKER = 2  # hull segments added by Triangle's -c carry marker 1

# p: honour segments, c: triangulate the convex hull, z: zero-based indices,
# n: emit neighbours, Q: quiet
_BASE_SWITCHES = "pczQn"
# -D makes Triangle split every subsegment whose diametral circle holds a
# vertex; q0 enables that pass without any angle requirement. The result is
# both conforming Delaunay and conforming Gabriel.
CONFORMING_SWITCHES = "pczDq0Qn"

# Re-refinement passes used to bring every edge under the size bound
_MAX_SIZE_PASSES = 30


class TriangulationError(RuntimeError):
    pass


class Vertex:
    __slots__ = ("point", "serial", "id")

    def __init__(self, point: XY, serial: int, id: int = SENTINEL_ID):
        self.point = point
        self.serial = serial
        self.id = id

    def __repr__(self) -> str:
        return f"Vertex(id={self.id}, point={self.point})"


@dataclass(eq=False)
class Face:
    vertices: Tuple[Vertex, Vertex, Vertex]
    neighbors: Tuple[int, int, int]
    in_domain: bool = False


class TransformOutcome(enum.Enum):
    APPLIED = "applied"
    PARTIAL = "partial"
    REJECTED = "rejected"


@dataclass
class TransformResult:
    operation: str
    outcome: TransformOutcome
    message: str = ""

    @property
    def applied(self) -> bool:
        """True when the triangulation was changed (fully or partially)."""
        return self.outcome is not TransformOutcome.REJECTED


def _checked(result: dict) -> dict:
    if "triangles" not in result or result["triangles"] is None or len(result["triangles"]) == 0:
        raise TriangulationError("triangle returned no triangles")
    if result.get("vertices") is None:
        raise TriangulationError("triangle returned no vertices")
    return result


def _longest_edges(points: np.ndarray, tris: np.ndarray) -> np.ndarray:
    """Length of the longest edge of every triangle, shape (T,)."""
    corners = points[tris]  # (T,3,2)
    d = corners - np.roll(corners, -1, axis=1)
    return np.sqrt((d ** 2).sum(axis=2)).max(axis=1)


def _triangle_areas(points: np.ndarray, tris: np.ndarray) -> np.ndarray:
    a = points[tris[:, 0]]
    b = points[tris[:, 1]]
    c = points[tris[:, 2]]
    cross = (b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])
    return 0.5 * np.abs(cross)


class Triangulation:
    def __init__(self):
        self._vertices: List[Vertex] = []
        self._lookup: Dict[XY, Vertex] = {}
        self._constraints: Dict[Tuple[int, int], Tuple[Vertex, Vertex]] = {}
        self._faces: Optional[List[Face]] = None

    # ------------- Construction -------------

    def insert(self, point: XY) -> Vertex:
        key = (float(point[0]), float(point[1]))
        vh = self._lookup.get(key)
        if vh is not None:
            return vh
        vh = Vertex(key, len(self._vertices))
        self._vertices.append(vh)
        self._lookup[key] = vh
        self._faces = None
        return vh

    def insert_constraint(self, va: Vertex, vb: Vertex) -> None:
        if va is vb:
            return
        key = (va.serial, vb.serial) if va.serial < vb.serial else (vb.serial, va.serial)
        if key not in self._constraints:
            self._constraints[key] = (va, vb)
            self._faces = None

    # ------------- Enumeration -------------

    def number_of_vertices(self) -> int:
        return len(self._vertices)

    def finite_vertices(self) -> List[Vertex]:
        return list(self._vertices)

    def constraints(self) -> List[Tuple[Vertex, Vertex]]:
        return list(self._constraints.values())

    def faces(self) -> List[Face]:
        if self._faces is None:
            self._faces = []
            try:
                self._apply(self._run_triangle(_BASE_SWITCHES), in_domain=False)
            except (RuntimeError, ValueError) as x:
                logger.error(f"Constrained triangulation failed: {x}")
        return self._faces

    def finite_edges(self) -> Iterator[Tuple[Vertex, Vertex, int, int]]:
        """Yield (va, vb, face, neighbour) once per edge; neighbour is -1 on the hull."""
        faces = self.faces()
        for t, f in enumerate(faces):
            for j in range(3):
                n = f.neighbors[j]
                if n < 0 or t < n:
                    yield f.vertices[(j + 2) % 3], f.vertices[(j + 1) % 3], t, n

    # ------------- Structural operations -------------

    def make_conforming_delaunay(self) -> TransformResult:
        return self._transform("conforming Delaunay", CONFORMING_SWITCHES)

    def make_conforming_gabriel(self) -> TransformResult:
        return self._transform("conforming Gabriel", CONFORMING_SWITCHES)

    def refine_mesh(
        self,
        seeds: Sequence[XY],
        shape_bound: float = 0.125,
        size_bound: float = 0.0,
    ) -> TransformResult:
        """Delaunay refinement; faces reachable from a seed or the outside are removed.

        shape_bound is B = sin^2 of the minimum angle, size_bound is the bound
        on the longest edge of every triangle (0 disables it). The first pass
        uses the area of the equilateral triangle with that edge; triangles
        that still have a longer edge are then refined again.
        """
        quality = f"q{min_angle_for_shape_bound(shape_bound):.12g}"
        switches = f"pz{quality}"
        finish = None
        if size_bound > 0.0:
            switches += f"a{_SQRT3_OVER4 * size_bound ** 2:.12g}"
            finish = partial(self._cap_edge_length, quality=quality, size_bound=size_bound)
        switches += "Qn"
        return self._transform(
            "mesh refinement", switches, holes=seeds, in_domain=True, finish=finish
        )

    def assign_missing_ids(self, next_id: int) -> int:
        """Give every sentinel vertex the next free id, in traversal order."""
        for vh in self._vertices:
            if vh.id == SENTINEL_ID:
                vh.id = next_id
                next_id += 1
        return next_id

    # ------------- Kernel plumbing -------------

    def _transform(
        self,
        operation: str,
        switches: str,
        *,
        holes: Optional[Sequence[XY]] = None,
        in_domain: bool = False,
        finish: Optional[Callable[[dict], dict]] = None,
    ) -> TransformResult:
        tic()
        try:
            result = self._run_triangle(switches, holes)
            if finish is not None:
                result = finish(result)
            unmatched = self._apply(result, in_domain=in_domain)
        except (RuntimeError, ValueError) as x:
            toc(f"{operation} (rejected)")
            return TransformResult(operation, TransformOutcome.REJECTED, str(x))
        toc(operation)
        if unmatched:
            return TransformResult(
                operation,
                TransformOutcome.PARTIAL,
                f"{unmatched} existing vertices are missing from the {operation} result",
            )
        return TransformResult(operation, TransformOutcome.APPLIED)

    def _run_triangle(self, switches: str, holes: Optional[Sequence[XY]] = None) -> dict:
        if len(self._vertices) < 3:
            raise TriangulationError(f"Need at least 3 vertices, got {len(self._vertices)}")
        vertices_arr = np.asarray([vh.point for vh in self._vertices], dtype=np.float64)
        if np.linalg.matrix_rank(vertices_arr - vertices_arr[0]) < 2:
            raise TriangulationError("All vertices are collinear")

        mesh_in = {"vertices": vertices_arr}
        if self._constraints:
            mesh_in["segments"] = np.asarray(
                [(va.serial, vb.serial) for va, vb in self._constraints.values()], dtype=np.int32
            )
            mesh_in["segment_markers"] = np.full(
                (len(self._constraints), 1), _CONSTRAINT_MARKER, dtype=np.int32
            )
        if holes:
            mesh_in["holes"] = np.asarray(holes, dtype=np.float64)

        return _checked(triangle.triangulate(mesh_in, switches))

    def _cap_edge_length(self, result: dict, *, quality: str, size_bound: float) -> dict:
        """Re-refine `result` until no triangle has an edge longer than size_bound.

        Offending triangles get a per-triangle area limit of a quarter of their
        area; the others are left unconstrained (-1).
        """
        limit = size_bound * (1.0 + 1e-9)
        switches = f"prz{quality}aQn"
        for npass in range(_MAX_SIZE_PASSES):
            vertices_arr = np.asarray(result["vertices"], dtype=np.float64)
            tris_arr = np.asarray(result["triangles"], dtype=np.int64)
            too_long = _longest_edges(vertices_arr, tris_arr) > limit
            if not too_long.any():
                logger.info(f"All edges within S={size_bound} after {npass} extra passes")
                return result
            max_area = np.where(too_long, _triangle_areas(vertices_arr, tris_arr) / 4.0, -1.0)
            mesh_in = {
                key: result[key]
                for key in ("vertices", "vertex_markers", "segments", "segment_markers", "triangles")
                if result.get(key) is not None
            }
            mesh_in["triangle_max_area"] = max_area.reshape(-1, 1)
            result = _checked(triangle.triangulate(mesh_in, switches))

        vertices_arr = np.asarray(result["vertices"], dtype=np.float64)
        tris_arr = np.asarray(result["triangles"], dtype=np.int64)
        remaining = int((_longest_edges(vertices_arr, tris_arr) > limit).sum())
        if remaining:
            logger.warning(
                f"{remaining} triangles still have an edge longer than S={size_bound} "
                f"after {_MAX_SIZE_PASSES} passes"
            )
        return result

    def _apply(self, result: dict, *, in_domain: bool) -> int:
        """Adopt Triangle's output; returns how many known vertices went missing.

        Triangle keeps every input vertex with -p, so a nonzero count means the
        kernel output did not come from the stored point set.
        """
        points_arr = np.asarray(result["vertices"], dtype=np.float64)
        by_index: List[Vertex] = []
        seen = set()
        for x, y in points_arr.tolist():
            vh = self._lookup.get((x, y))
            if vh is None:
                vh = Vertex((x, y), len(self._vertices))
                self._vertices.append(vh)
                self._lookup[(x, y)] = vh
            by_index.append(vh)
            seen.add(vh.serial)
        unmatched = sum(1 for vh in self._vertices if vh.serial not in seen)

        segs = result.get("segments")
        markers = result.get("segment_markers")
        if segs is not None:
            segs = np.asarray(segs, dtype=np.int64).reshape(-1, 2)
            if markers is None:
                keep = np.ones(len(segs), dtype=bool)
            else:
                keep = np.asarray(markers).reshape(-1) == _CONSTRAINT_MARKER
            self._constraints = {}
            for a, b in segs[keep].tolist():
                va, vb = by_index[a], by_index[b]
                if va is vb:
                    continue
                key = (va.serial, vb.serial) if va.serial < vb.serial else (vb.serial, va.serial)
                self._constraints[key] = (va, vb)

        tris_arr = np.asarray(result["triangles"], dtype=np.int64)
        nbrs = result.get("neighbors")
        nbrs_arr = (
            np.asarray(nbrs, dtype=np.int64)
            if nbrs is not None
            else np.full(tris_arr.shape, -1, dtype=np.int64)
        )
        self._faces = [
            Face(
                vertices=(by_index[a], by_index[b], by_index[c]),
                neighbors=(int(n0), int(n1), int(n2)),
                in_domain=in_domain,
            )
            for (a, b, c), (n0, n1, n2) in zip(tris_arr.tolist(), nbrs_arr.tolist())
        ]
        return unmatched
