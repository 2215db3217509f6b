"""Unit tests for ingestion and the edge provenance table."""

import pytest

from conftest import HOLE, OUTER
from tessa.provenance import EdgeType, IngestionContext, ProvenanceTable, edge_key, type_name
from tessa.triangulation import SENTINEL_ID, Triangulation
from tessa.wkt import TessaInput


class TestEdgeType:
    """Tests for edge type names."""

    def test_names(self):
        assert type_name(EdgeType.BOUNDARY) == "boundary"
        assert type_name(EdgeType.HOLE) == "hole"
        assert type_name(EdgeType.ROAD) == "road"
        assert type_name(EdgeType.MESH) == "mesh"

    def test_unknown_code(self):
        assert type_name(7) == "unknown"
        assert type_name(-1) == "unknown"


class TestProvenanceTable:
    """Tests for order-insensitive lookup and merging."""

    def setup_method(self):
        self.cdt = Triangulation()
        self.a = self.cdt.insert((0, 0))
        self.b = self.cdt.insert((1, 0))
        self.c = self.cdt.insert((1, 1))

    def test_key_is_canonical(self):
        assert edge_key(self.a, self.b) == edge_key(self.b, self.a)

    def test_lookup_reversed_pair(self):
        table = ProvenanceTable()
        table.record(self.a, self.b, EdgeType.BOUNDARY)
        assert table.lookup(self.b, self.a) == EdgeType.BOUNDARY
        assert (self.b, self.a) in table
        assert len(table) == 1

    def test_unknown_edge_is_mesh(self):
        table = ProvenanceTable()
        assert table.lookup(self.a, self.c) == EdgeType.MESH
        assert table.get(self.a, self.c) is None

    def test_first_recorded_type_wins(self):
        table = ProvenanceTable()
        table.record(self.a, self.b, EdgeType.BOUNDARY)
        table.record(self.b, self.a, EdgeType.ROAD)
        assert table.lookup(self.a, self.b) == EdgeType.BOUNDARY

    def test_merge_does_not_overwrite(self):
        table = ProvenanceTable()
        table.record(self.a, self.b, EdgeType.HOLE)
        delta = ProvenanceTable()
        delta.record(self.b, self.a, EdgeType.ROAD)
        delta.record(self.b, self.c, EdgeType.ROAD)
        assert table.merge(delta) == 1
        assert table.lookup(self.a, self.b) == EdgeType.HOLE
        assert table.lookup(self.c, self.b) == EdgeType.ROAD

    def test_segments_in_insertion_order(self):
        table = ProvenanceTable()
        table.record(self.b, self.c, EdgeType.ROAD)
        table.record(self.b, self.a, EdgeType.BOUNDARY)
        starts, ends, types = table.segments()
        assert starts.shape == (2, 2)
        assert types == [EdgeType.ROAD, EdgeType.BOUNDARY]
        # canonical order puts the earlier vertex first
        assert tuple(starts[1]) == (0.0, 0.0)
        assert tuple(ends[1]) == (1.0, 0.0)

    def test_empty_segments(self):
        starts, ends, types = ProvenanceTable().segments()
        assert starts.shape == (0, 2)
        assert types == []


class TestInsertChain:
    """Tests for vertex/edge ingestion."""

    def test_ids_consecutive_from_zero(self):
        ctx = IngestionContext()
        vhs = ctx.insert_chain([(0, 0), (1, 0), (1, 1)], EdgeType.ROAD)
        assert [vh.id for vh in vhs] == [0, 1, 2]
        assert ctx.next_id == 3
        assert ctx.edges_inserted == 2

    def test_shared_corner_reuses_identity(self):
        ctx = IngestionContext()
        first = ctx.insert_chain([(0, 0), (1, 0)], EdgeType.ROAD)
        second = ctx.insert_chain([(1, 0), (2, 0)], EdgeType.ROAD)
        assert second[0] is first[1]
        assert second[0].id == 1
        assert ctx.triangulation.number_of_vertices() == 3

    def test_closed_ring_reuses_first_vertex(self):
        ctx = IngestionContext()
        vhs = ctx.insert_chain(OUTER, EdgeType.BOUNDARY)
        assert vhs[0] is vhs[-1]
        assert ctx.next_id == 4
        assert ctx.edges_inserted == 4
        assert len(ctx.table) == 4

    def test_zero_length_edge_skipped(self):
        ctx = IngestionContext()
        ctx.insert_chain([(0, 0), (1, 0), (1, 0), (2, 0)], EdgeType.ROAD)
        assert ctx.edges_inserted == 2
        assert len(ctx.table) == 2
        assert len(ctx.triangulation.constraints()) == 2

    def test_single_point_chain_has_no_edges(self):
        ctx = IngestionContext()
        vhs = ctx.insert_chain([(5, 5)], EdgeType.ROAD)
        assert len(vhs) == 1
        assert vhs[0].id == 0
        assert ctx.edges_inserted == 0
        assert len(ctx.table) == 0

    def test_vertices_outside_ingestion_keep_sentinel(self):
        ctx = IngestionContext()
        ctx.insert_chain([(0, 0), (1, 0)], EdgeType.ROAD)
        extra = ctx.triangulation.insert((3, 3))
        assert extra.id == SENTINEL_ID


class TestIngest:
    """Tests for ring/chain type assignment."""

    def test_types_by_position(self):
        ctx = IngestionContext()
        ctx.ingest(TessaInput(polygon=[OUTER, HOLE], linestrings=[[(0, 0), (1, 1)]]))
        outer, hole, road = ctx.rings
        assert ctx.table.lookup(outer[0], outer[1]) == EdgeType.BOUNDARY
        assert ctx.table.lookup(hole[1], hole[0]) == EdgeType.HOLE
        assert ctx.table.lookup(road[0], road[1]) == EdgeType.ROAD
        assert ctx.polygon_rings == [outer, hole]
        assert ctx.hole_rings == [hole]

    def test_counts(self):
        ctx = IngestionContext()
        ctx.ingest(TessaInput(polygon=[OUTER, HOLE]))
        assert ctx.triangulation.number_of_vertices() == 8
        assert ctx.edges_inserted == 8
        assert ctx.next_id == 8

    @pytest.mark.parametrize("count", [1, 3])
    def test_every_later_ring_is_a_hole(self, count):
        holes = [[(1 + k, 1), (1.5 + k, 1), (1.5 + k, 1.5), (1 + k, 1)] for k in range(count)]
        ctx = IngestionContext()
        ctx.ingest(TessaInput(polygon=[OUTER] + holes))
        for ring in ctx.hole_rings:
            assert ctx.table.lookup(ring[0], ring[1]) == EdgeType.HOLE
