"""
Tests for the CycleGenerator module

The generated cycles are checked against networkx: the girth, the rank of
the cycle space and the weight of a minimum cycle basis.
"""

import io

import networkx as nx
import pytest

from cycle_generator import Cycle, CycleGenerator
from path_generator import Path


def to_networkx(graph):
    g = nx.Graph()
    for i in graph.nodes():
        for j in graph.neighbors(i):
            g.add_edge(i, j)
    return g


def edge_mask(cycle, index):
    mask = 0
    for i, j in cycle.edges():
        mask |= 1 << index[frozenset((i, j))]
    return mask


def edge_index(graph):
    index = {}
    for i in graph.nodes():
        for j in graph.neighbors(i):
            index.setdefault(frozenset((i, j)), len(index))
    return index


def insert(basis, mask):
    """Gaussian elimination over GF(2); True if ``mask`` was independent."""
    while mask:
        top = mask.bit_length() - 1
        if top not in basis:
            basis[top] = mask
            return True
        mask ^= basis[top]
    return False


class TestCycle:
    """Test the cycle value"""

    def test_odd(self):
        """Two equally long paths closed by an edge"""
        cycle = Cycle.odd(Path((0, 1, 3)), Path((0, 2, 4)))
        assert cycle.nodes == (0, 1, 3, 4, 2)
        assert str(cycle) == "0->1->3->4->2->0"

    def test_even(self):
        """Two equally long paths meeting in a common neighbour"""
        cycle = Cycle.even(Path((0, 1)), Path((0, 2)), 3)
        assert cycle.nodes == (0, 1, 3, 2)
        assert cycle.length == 4

    def test_edges_include_closing_edge(self):
        """The last edge returns to the first node"""
        assert list(Cycle((0, 1, 2)).edges()) == [(0, 1), (1, 2), (2, 0)]

    def test_node_at_wraps(self):
        """Indices are taken modulo the length"""
        cycle = Cycle((4, 5, 6))
        assert cycle.node_at(3) == 4
        assert cycle.node_at(-1) == 6


class TestCycleGenerator:
    """Test relevant cycle enumeration"""

    def test_girth_matches_networkx(self, cubic_graph):
        """The shortest generated cycle is a shortest cycle"""
        cycles = CycleGenerator(cubic_graph)
        assert cycles.girth() == nx.girth(to_networkx(cubic_graph))

    def test_cycles_are_simple(self, cubic_graph):
        """Distinct nodes, consecutive ones adjacent"""
        for cycle in CycleGenerator(cubic_graph).all_cycles():
            assert len(set(cycle.nodes)) == cycle.length
            for i, j in cycle.edges():
                assert cubic_graph.connected(i, j)

    def test_cycles_span_cycle_space(self, cubic_graph):
        """Rank over GF(2) equals m - n + 1"""
        index = edge_index(cubic_graph)
        basis = {}
        for cycle in CycleGenerator(cubic_graph).all_cycles():
            insert(basis, edge_mask(cycle, index))
        expected = cubic_graph.nr_of_edges() - cubic_graph.nr_of_nodes() + 1
        assert len(basis) == expected

    def test_contains_minimum_cycle_basis(self, cubic_graph):
        """Greedy selection yields the weight of a minimum cycle basis"""
        index = edge_index(cubic_graph)
        basis = {}
        weight = 0
        for cycle in CycleGenerator(cubic_graph).all_cycles():
            if insert(basis, edge_mask(cycle, index)):
                weight += cycle.length
        expected = sum(len(c) for c in nx.minimum_cycle_basis(to_networkx(cubic_graph)))
        assert weight == expected

    @pytest.mark.parametrize("name, length, count", [
        ("k4", 3, 4),
        ("cube", 4, 6),
        ("k33", 4, 9),
        ("petersen", 5, 12),
    ])
    def test_girth_cycle_counts(self, name, length, count, request):
        """Every shortest cycle is generated exactly once"""
        graph = request.getfixturevalue(name)
        cycles = CycleGenerator(graph).cycles(length)
        assert len(cycles) == count
        assert len({frozenset(c.nodes) for c in cycles}) == count

    def test_petersen_has_only_pentagons(self, petersen):
        """The twelve 5-cycles are the only relevant cycles"""
        cycles = CycleGenerator(petersen)
        assert cycles.lengths() == [5]
        assert cycles.nr_of_cycles() == 12

    def test_regenerates_after_change(self, cube):
        """An interchange creates triangles"""
        cycles = CycleGenerator(cube)
        assert cycles.girth() == 4
        cube.interchange((0, 1), (2, 5))
        assert cycles.is_stale()
        assert cycles.girth() == 3
        assert cycles.nr_of_regenerations == 2

    def test_no_cycles_in_triangular_delta(self, k4):
        """Parallel edges are not reported as cycles"""
        k4.remove_triangle((0, 1, 2))
        assert CycleGenerator(k4).girth() is None

    def test_str(self, k4):
        """Bucket listing"""
        out = io.StringIO()
        CycleGenerator(k4).print_cycles(out)
        assert out.getvalue().startswith("4 cycles of length 3:")
