"""Pytest fixtures for tessa tests."""

import logging

import pytest

OUTER = [(0.0, 0.0), (4.0, 0.0), (4.0, 4.0), (0.0, 4.0), (0.0, 0.0)]
HOLE = [(1.0, 1.0), (3.0, 1.0), (3.0, 3.0), (1.0, 3.0), (1.0, 1.0)]


@pytest.fixture(autouse=True)
def reset_tessa_logger():
    """Undo configure_logging() between tests so caplog sees tessa records."""
    yield
    log = logging.getLogger("tessa")
    log.handlers[:] = []
    log.propagate = True
    log.setLevel(logging.NOTSET)


@pytest.fixture
def square_wkt() -> str:
    return "POLYGON((0 0,4 0,4 4,0 4,0 0))"


@pytest.fixture
def square_with_hole_wkt() -> str:
    return "POLYGON((0 0,4 0,4 4,0 4,0 0),(1 1,3 1,3 3,1 3,1 1))"


@pytest.fixture
def collection_wkt() -> str:
    return (
        "GEOMETRYCOLLECTION(\n"
        "  POLYGON((0 0,4 0,4 4,0 4,0 0),(1 1,3 1,3 3,1 3,1 1)),\n"
        "  MULTILINESTRING((0 0,0.5 2),(4 4,3.5 2))\n"
        ")\n"
    )


def parse_output(text: str):
    """Split tessa output into (vertices, edges) with typed fields."""
    lines = text.splitlines()
    n_vertices = int(lines[0])
    n_edges = int(lines[1])
    vertices = {}
    for line in lines[2 : 2 + n_vertices]:
        vid, x, y = line.split(";")
        vertices[int(vid)] = (float(x), float(y))
    edges = []
    for line in lines[2 + n_vertices :]:
        a, b, dist, free_for, bidir, type_name, rest = line.split(";")
        edges.append((int(a), int(b), float(dist), free_for, bidir, type_name))
    assert len(vertices) == n_vertices
    assert len(edges) == n_edges
    return vertices, edges
