from __future__ import annotations

import logging
from typing import IO, List, Optional, Sequence, Tuple

import meshio
import numpy as np

from .provenance import EdgeType, ProvenanceTable, type_name
from .triangulation import Face, Triangulation, Vertex
from .utils import squared_distance, tic, toc

logger = logging.getLogger(__name__)

LabeledEdge = Tuple[Vertex, Vertex, EdgeType]

_BIDIRECTIONAL = "1"


def domain_edges(cdt: Triangulation, table: ProvenanceTable) -> List[LabeledEdge]:
    """Triangulation edges with an in-domain face on at least one side."""
    faces = cdt.faces()
    edges: List[LabeledEdge] = []
    for va, vb, t, n in cdt.finite_edges():
        if faces[t].in_domain or (n >= 0 and faces[n].in_domain):
            edges.append((va, vb, table.lookup(va, vb)))
    return edges


def chain_edges(rings: Sequence[Sequence[Vertex]], table: ProvenanceTable) -> List[LabeledEdge]:
    """The input rings and chains edge by edge, skipping zero-length pairs."""
    edges: List[LabeledEdge] = []
    for ring in rings:
        for va, vb in zip(ring, ring[1:]):
            if va is not vb:
                edges.append((va, vb, table.lookup(va, vb)))
    return edges


def check_vertex_ids(vertices: Sequence[Vertex]) -> bool:
    """Ids in traversal order must read 0, 1, 2, ...; logs once if they do not."""
    for expected, vh in enumerate(vertices):
        if vh.id != expected:
            logger.error("Watch out! Vertex ids are not consecutive from 0.")
            return False
    return True


def write_output(
    out: IO[str],
    vertices: Sequence[Vertex],
    edges: Sequence[LabeledEdge],
    free_for: str = "",
) -> None:
    """Write the vertex/edge listing.

    Line 1 vertex count, line 2 edge count, then `id;x;y` per vertex and
    `id_a;id_b;squared_distance;free_for;1;type;` per edge. Floats use fixed
    notation with 7 decimals.
    """
    check_vertex_ids(vertices)
    out.write(f"{len(vertices)}\n")
    out.write(f"{len(edges)}\n")
    for vh in vertices:
        x, y = vh.point
        out.write(f"{vh.id};{x:.7f};{y:.7f}\n")
    for va, vb, edge_type in edges:
        distance = squared_distance(va.point, vb.point)
        out.write(
            f"{va.id};{vb.id};{distance:.7f};{free_for};{_BIDIRECTIONAL};{type_name(edge_type)};\n"
        )


def save_vtu(
    filename: str,
    vertices: Sequence[Vertex],
    faces: Sequence[Face],
    edges: Sequence[LabeledEdge],
) -> None:
    """Write in-domain triangles and labeled edges for ParaView (color by 'edge_type')."""
    tic()
    index = {vh.serial: i for i, vh in enumerate(vertices)}
    points_xyz = np.zeros((len(vertices), 3), dtype=np.float64)
    if vertices:
        points_xyz[:, :2] = np.asarray([vh.point for vh in vertices], dtype=np.float64)

    triangles = np.asarray(
        [[index[vh.serial] for vh in f.vertices] for f in faces if f.in_domain], dtype=np.int32
    ).reshape(-1, 3)
    lines = np.asarray(
        [[index[va.serial], index[vb.serial]] for va, vb, _ in edges], dtype=np.int32
    ).reshape(-1, 2)
    line_types = np.asarray([int(t) for _, _, t in edges], dtype=np.int32)

    cells = []
    edge_type_data = []
    if len(triangles) > 0:
        cells.append(("triangle", triangles))
        edge_type_data.append(np.full(len(triangles), -1, dtype=np.int32))
    if len(lines) > 0:
        cells.append(("line", lines))
        edge_type_data.append(line_types)
    cell_data: Optional[dict] = {"edge_type": edge_type_data} if cells else None
    meshio.Mesh(points=points_xyz, cells=cells, cell_data=cell_data).write(filename)
    logger.info(f"Saved {filename} (triangles={len(triangles)}, lines={len(lines)})")
    toc(f"write {filename}")
