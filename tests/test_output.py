"""Unit tests for the edge listing and VTU output."""

import io
import logging

import meshio
import numpy as np
import pytest

from conftest import HOLE, OUTER, parse_output
from tessa.domain import set_domain_from_rings
from tessa.output import chain_edges, check_vertex_ids, domain_edges, save_vtu, write_output
from tessa.provenance import EdgeType, IngestionContext
from tessa.triangulation import Triangulation
from tessa.wkt import TessaInput


def _ingest(polygon, linestrings=()):
    ctx = IngestionContext()
    ctx.ingest(TessaInput(polygon=polygon, linestrings=list(linestrings)))
    return ctx


class TestWriteOutput:
    """Tests for the text format."""

    def test_square_listing(self):
        ctx = _ingest([OUTER])
        out = io.StringIO()
        edges = chain_edges(ctx.rings, ctx.table)
        write_output(out, ctx.triangulation.finite_vertices(), edges)
        lines = out.getvalue().splitlines()
        assert lines[:2] == ["4", "4"]
        assert lines[2] == "0;0.0000000;0.0000000"
        assert lines[4] == "2;4.0000000;4.0000000"
        assert lines[6] == "0;1;16.0000000;;1;boundary;"
        assert lines[9] == "3;0;16.0000000;;1;boundary;"

    def test_free_for_field(self):
        ctx = _ingest([OUTER])
        out = io.StringIO()
        write_output(out, ctx.triangulation.finite_vertices(), chain_edges(ctx.rings, ctx.table), "car")
        _, edges = parse_output(out.getvalue())
        assert {e[3] for e in edges} == {"car"}
        assert {e[4] for e in edges} == {"1"}

    def test_fixed_notation(self):
        cdt = Triangulation()
        a = cdt.insert((1e-8, 123456.5))
        a.id = 0
        out = io.StringIO()
        write_output(out, [a], [])
        assert out.getvalue().splitlines()[2] == "0;0.0000000;123456.5000000"

    def test_type_names(self):
        ctx = _ingest([OUTER, HOLE], [[(0, 0), (1, 1)]])
        out = io.StringIO()
        write_output(out, ctx.triangulation.finite_vertices(), chain_edges(ctx.rings, ctx.table))
        _, edges = parse_output(out.getvalue())
        assert [e[5] for e in edges] == ["boundary"] * 4 + ["hole"] * 4 + ["road"]


class TestCheckVertexIds:
    """Tests for the consecutive id check."""

    def test_consecutive(self, caplog):
        ctx = _ingest([OUTER])
        with caplog.at_level(logging.ERROR, logger="tessa"):
            assert check_vertex_ids(ctx.triangulation.finite_vertices())
        assert caplog.text == ""

    def test_gap_is_logged(self, caplog):
        ctx = _ingest([OUTER])
        ctx.triangulation.insert((9, 9))
        with caplog.at_level(logging.ERROR, logger="tessa"):
            assert not check_vertex_ids(ctx.triangulation.finite_vertices())
        assert "Vertex ids are not consecutive" in caplog.text

    def test_output_still_written(self, caplog):
        ctx = _ingest([OUTER])
        ctx.triangulation.insert((9, 9))
        out = io.StringIO()
        with caplog.at_level(logging.ERROR, logger="tessa"):
            write_output(out, ctx.triangulation.finite_vertices(), [])
        assert out.getvalue().splitlines()[-1] == "-1;9.0000000;9.0000000"


class TestEdgeSelection:
    """Tests for choosing which edges are emitted."""

    def test_chain_edges_skip_repeated_points(self):
        ctx = _ingest([OUTER], [[(0.5, 0.5), (1, 1), (1, 1), (2, 1)]])
        edges = chain_edges(ctx.rings, ctx.table)
        assert len(edges) == 6
        assert all(va is not vb for va, vb, _ in edges)

    def test_single_point_chain_emits_nothing(self):
        ctx = _ingest([OUTER], [[(2, 2)]])
        assert len(chain_edges(ctx.rings, ctx.table)) == 4

    def test_domain_edges_exclude_hole_interior(self):
        ctx = _ingest([OUTER, HOLE])
        cdt = ctx.triangulation
        set_domain_from_rings(cdt, ctx.polygon_rings)
        edges = domain_edges(cdt, ctx.table)
        all_edges = list(cdt.finite_edges())
        assert len(edges) < len(all_edges)
        types = [t for _, _, t in edges]
        assert types.count(EdgeType.BOUNDARY) == 4
        assert types.count(EdgeType.HOLE) == 4
        for va, vb, _ in edges:
            mid = ((va.point[0] + vb.point[0]) / 2, (va.point[1] + vb.point[1]) / 2)
            assert not (1 < mid[0] < 3 and 1 < mid[1] < 3)

    def test_domain_edges_empty_without_domain(self):
        ctx = _ingest([OUTER])
        assert domain_edges(ctx.triangulation, ctx.table) == []


class TestSaveVtu:
    """Tests for the ParaView export."""

    def test_triangles_and_lines(self, tmp_path):
        ctx = _ingest([OUTER, HOLE])
        cdt = ctx.triangulation
        set_domain_from_rings(cdt, ctx.polygon_rings)
        edges = domain_edges(cdt, ctx.table)
        path = tmp_path / "graph.vtu"
        save_vtu(str(path), cdt.finite_vertices(), cdt.faces(), edges)

        mesh = meshio.read(path)
        assert mesh.points.shape == (8, 3)
        assert np.all(mesh.points[:, 2] == 0.0)
        n_domain = sum(1 for f in cdt.faces() if f.in_domain)
        assert len(mesh.cells_dict["triangle"]) == n_domain
        assert len(mesh.cells_dict["line"]) == len(edges)
        line_types = mesh.cell_data_dict["edge_type"]["line"]
        assert sorted(set(line_types.tolist())) == [0, 1, 3]
        assert np.all(mesh.cell_data_dict["edge_type"]["triangle"] == -1)

    def test_lines_only(self, tmp_path):
        ctx = _ingest([OUTER])
        path = tmp_path / "chains.vtu"
        save_vtu(str(path), ctx.triangulation.finite_vertices(), [], chain_edges(ctx.rings, ctx.table))
        mesh = meshio.read(path)
        assert "triangle" not in mesh.cells_dict
        assert mesh.cell_data_dict["edge_type"]["line"].tolist() == [0, 0, 0, 0]


@pytest.mark.parametrize("free_for", ["", "bike;walk"])
def test_edge_field_count(free_for):
    ctx = _ingest([OUTER])
    out = io.StringIO()
    write_output(out, ctx.triangulation.finite_vertices(), chain_edges(ctx.rings, ctx.table), free_for)
    edge_line = out.getvalue().splitlines()[6]
    assert edge_line.endswith(";boundary;")
    assert edge_line.count(";") == 6 + free_for.count(";")
