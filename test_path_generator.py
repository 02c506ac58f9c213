"""
Tests for the PathGenerator module

Distances are compared against networkx; path sets are checked for
completeness and canonical filtering.
"""

import networkx as nx
import numpy as np
import pytest

from path_generator import Path, PathGenerator


def to_networkx(graph):
    g = nx.MultiGraph()
    for i in graph.nodes():
        for j in graph.neighbors(i):
            if i < j:
                g.add_edge(i, j)
    return g


class TestPath:
    """Test the immutable path value"""

    def test_basic_properties(self):
        """Length counts edges"""
        path = Path((0, 1, 2))
        assert path.length == 2
        assert path.first == 0
        assert path.last == 2
        assert path.reversed() == Path((2, 1, 0))
        assert str(path) == "0->1->2"

    def test_immutable(self):
        """Attributes cannot be reassigned"""
        with pytest.raises(AttributeError, match="immutable"):
            Path((0, 1)).nodes = (1, 2)

    def test_canonical(self):
        """Interior nodes must exceed the first node"""
        assert Path((2, 5, 3)).is_canonical()
        assert not Path((2, 1, 3)).is_canonical()
        assert Path((4, 1)).is_canonical()

    def test_only_start_in_common(self):
        """Paths sharing more than their start are rejected"""
        assert Path((0, 1)).only_start_in_common(Path((0, 2)))
        assert not Path((0, 1, 2)).only_start_in_common(Path((0, 3, 2)))

    @pytest.mark.parametrize("left, right, expected", [
        ((0, 1, 2), (2, 3), (0, 1, 2, 3)),
        ((0, 1, 2), (3, 2), (0, 1, 2, 3)),
        ((1, 2), (3, 1), (3, 1, 2)),
        ((0, 1), (0, 2), (1, 0, 2)),
    ])
    def test_concat(self, left, right, expected):
        """The shared endpoint appears once"""
        assert Path(left).concat(Path(right)) == Path(expected)

    def test_concat_without_common_endpoint(self):
        """Disjoint paths cannot be joined"""
        with pytest.raises(ValueError, match="share no endpoint"):
            Path((0, 1)).concat(Path((2, 3)))


class TestPathGenerator:
    """Test the all-pairs shortest path table"""

    def test_distances_match_networkx(self, cubic_graph):
        """Every distance equals the BFS distance"""
        paths = PathGenerator(cubic_graph)
        expected = dict(nx.all_pairs_shortest_path_length(to_networkx(cubic_graph)))
        for i in cubic_graph.nodes():
            for j in cubic_graph.nodes():
                assert paths.distance(i, j) == expected[i][j]

    def test_triangle_inequality(self, cubic_graph):
        """d(i,k) <= d(i,j) + d(j,k) over the whole matrix"""
        d = PathGenerator(cubic_graph).distance_matrix()
        n = d.shape[0]
        for j in range(n):
            assert np.all(d <= d[:, [j]] + d[[j], :])

    def test_all_shortest_paths(self, cube):
        """Opposite corners of the cube are joined by 3! shortest paths"""
        paths = PathGenerator(cube)
        found = paths.paths(0, 7)
        assert len(found) == 6
        assert len(set(found)) == 6
        assert all(p.first == 0 and p.last == 7 and p.length == 3 for p in found)

    def test_paths_are_real_paths(self, cubic_graph):
        """Consecutive nodes are adjacent"""
        paths = PathGenerator(cubic_graph)
        for i in cubic_graph.nodes():
            for j in cubic_graph.nodes(i):
                for path in paths.paths(i, j):
                    for a, b in zip(path.nodes, path.nodes[1:]):
                        assert cubic_graph.connected(a, b)

    def test_make_canonical(self, prism):
        """Only paths whose interior lies above the start survive"""
        paths = PathGenerator(prism)
        paths.make_canonical()
        assert paths.canonical
        for i in prism.nodes():
            for j in prism.nodes(i):
                assert all(p.is_canonical() for p in paths.paths(i, j))

    @pytest.mark.parametrize("name, diameter", [("k4", 1), ("cube", 3), ("petersen", 2)])
    def test_diameter(self, name, diameter, request):
        """Known diameters"""
        graph = request.getfixturevalue(name)
        assert PathGenerator(graph).diameter() == diameter

    def test_regenerates_after_change(self, cube):
        """A structural change invalidates the table"""
        paths = PathGenerator(cube)
        assert paths.distance(0, 3) == 2
        cube.interchange((0, 1), (2, 5))
        assert paths.is_stale()
        assert paths.distance(0, 5) == 1
        assert paths.nr_of_regenerations == 2

    def test_str(self, k4):
        """One line per pair"""
        lines = str(PathGenerator(k4)).splitlines()
        assert lines[0] == "P(0,1):0->1"
        assert len(lines) == 6
