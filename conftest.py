"""
Shared fixtures: small cubic graphs used throughout the test suite.
"""

import pytest

from yutsis_graph import YutsisGraph


def _labelled(pairs):
    return [(f"x{k}", i, j) for k, (i, j) in enumerate(pairs)]


K4_EDGES = [("a", 0, 1), ("b", 0, 2), ("c", 0, 3), ("d", 1, 2), ("e", 2, 3), ("f", 3, 1)]

PRISM_PAIRS = [(0, 1), (1, 2), (2, 0), (3, 4), (4, 5), (5, 3), (0, 3), (1, 4), (2, 5)]

K33_PAIRS = [(i, j) for i in range(3) for j in range(3, 6)]

CUBE_PAIRS = [(i, i ^ bit) for i in range(8) for bit in (1, 2, 4) if i < i ^ bit]

PETERSEN_PAIRS = ([(i, (i + 1) % 5) for i in range(5)]
                  + [(i, i + 5) for i in range(5)]
                  + [(i + 5, (i + 2) % 5 + 5) for i in range(5)])

GRAPH_PAIRS = {
    "prism": PRISM_PAIRS,
    "k33": K33_PAIRS,
    "cube": CUBE_PAIRS,
    "petersen": PETERSEN_PAIRS,
}


def make_graph(name):
    if name == "k4":
        return YutsisGraph.from_edges(K4_EDGES)
    return YutsisGraph.from_edges(_labelled(GRAPH_PAIRS[name]))


@pytest.fixture
def k4():
    return make_graph("k4")


@pytest.fixture
def prism():
    return make_graph("prism")


@pytest.fixture
def k33():
    return make_graph("k33")


@pytest.fixture
def cube():
    return make_graph("cube")


@pytest.fixture
def petersen():
    return make_graph("petersen")


@pytest.fixture(params=["k4", "prism", "k33", "cube", "petersen"])
def cubic_graph(request):
    """Every sample graph in turn."""
    return make_graph(request.param)


@pytest.fixture(params=["k4", "prism", "k33", "cube"])
def reducible_graph(request):
    """Sample graphs that are Yutsis graphs (Hamiltonian)."""
    return make_graph(request.param)
