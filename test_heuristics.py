"""
Tests for the cycle cost heuristics

Interchange node selection, edge costs, cycle count effects and the two
comparison policies.
"""

import io

import pytest

from cca_heuristics import (
    CycleCountHeuristic,
    EdgeCostHeuristic,
    Interchange,
    Strategy,
    make_heuristic,
)
from cycle_generator import Cycle, CycleGenerator
from conftest import make_graph


class TestInterchangeNodes:
    """Test the canonical choice of interchange nodes"""

    def test_canonical_ic_is_idempotent(self, cube):
        """Both descriptions of an interchange map to the same pair"""
        heuristic = EdgeCostHeuristic(cube)
        edge = (0, 1)
        for ic in [(2, 3), (2, 5), (4, 3), (4, 5)]:
            canonical = heuristic.canonical_ic(edge, ic)
            alternative = heuristic.alternative_ic(edge, ic)
            assert heuristic.canonical_ic(edge, canonical) == canonical
            assert heuristic.canonical_ic(edge, alternative) == canonical

    def test_alternative_ic(self, cube):
        """The other neighbours of both base nodes"""
        heuristic = EdgeCostHeuristic(cube)
        assert heuristic.alternative_ic((0, 1), (2, 5)) == (4, 3)

    def test_interchange_shrinks_its_cycle(self, reducible_graph):
        """Applying the chosen interchange shortens the cycle by one"""
        heuristic = CycleCountHeuristic(reducible_graph)
        generator = heuristic.cycle_generator
        girth = generator.girth()
        if girth < 4:
            pytest.skip("graph has triangles")
        for cycle in generator.cycles(girth):
            for edge in cycle.edges():
                op = heuristic.interchange_nodes(cycle, edge)
                assert op.edge == tuple(sorted(edge))
                assert heuristic.length_change(cycle, op.edge, op.ic_nodes) == -1
                work = reducible_graph.copy()
                work.interchange(op.edge, op.ic_nodes)
                assert work.triangle() is not None

    def test_interchange_nodes_rejects_foreign_edge(self, cube):
        """The edge has to lie on the cycle"""
        heuristic = EdgeCostHeuristic(cube)
        cycle = heuristic.cycle_generator.cycles(4)[0]
        outside = next((i, j) for i in cube.nodes() for j in cube.neighbors(i)
                       if i not in cycle.nodes and j not in cycle.nodes)
        with pytest.raises(ValueError, match="is not an edge of cycle"):
            heuristic.interchange_nodes(cycle, outside)

    def test_interchange_str(self):
        """Operation text"""
        assert str(Interchange((0, 1), (2, 5))) == "IC 0 1 2 5"


class TestEdgeCostHeuristic:
    """Test the edge cost heuristic"""

    def test_cube_edge_costs(self, cube):
        """Every cube edge lies on two squares"""
        heuristic = EdgeCostHeuristic(cube)
        for i in cube.nodes():
            for j in cube.neighbors(i):
                assert heuristic.edge_cost(i, j) == 0
                assert heuristic.shortest_cycle_length(i, j) == 4

    def test_best_cycle(self, cube):
        """The chosen operation is the first candidate"""
        best = EdgeCostHeuristic(cube).best_cycle()
        assert best.cycle.length == 4
        assert best.candidates[0] == Interchange(best.edge, best.ic_nodes)
        assert len(best.candidates) == len(set(best.candidates))

    def test_triangle_shortcut_warns(self, k4):
        """With triangles present there is nothing to interchange"""
        with pytest.warns(RuntimeWarning, match="Girth 3"):
            best = EdgeCostHeuristic(k4).best_cycle()
        assert best.edge is None
        assert best.cycle.length == 3

    def test_no_cycles(self, k4):
        """A triangular delta has no cycles to work on"""
        k4.remove_triangle((0, 1, 2))
        with pytest.raises(ValueError, match="no cycles left"):
            EdgeCostHeuristic(k4).best_cycle()

    def test_costs_follow_graph_changes(self, cube):
        """Edge costs are recomputed after an interchange"""
        heuristic = EdgeCostHeuristic(cube)
        assert heuristic.shortest_cycle_length(1, 3) == 4
        cube.interchange((0, 1), (2, 5))
        assert heuristic.shortest_cycle_length(1, 3) == 3

    def test_print_cycle_costs(self, cube):
        """Cycle listing with edge costs"""
        out = io.StringIO()
        EdgeCostHeuristic(cube).print_cycle_costs(out)
        assert out.getvalue().startswith("6 cycles of length 4")
        assert "-0->" in out.getvalue()


class TestCycleCountHeuristic:
    """Test the cycle count heuristic"""

    def test_default_strategy(self, cube):
        """More smaller, less bigger unless told otherwise"""
        assert CycleCountHeuristic(cube).strategy is Strategy.MORE_SMALLER_LESS_BIGGER

    def test_invalid_strategy(self, cube):
        """Strategies are enum members"""
        with pytest.raises(TypeError, match="must be a Strategy"):
            CycleCountHeuristic(cube).set_strategy("cycle-count")

    def test_effect_contains_source_cycle(self, cube):
        """The cycle an interchange is made for shrinks"""
        heuristic = CycleCountHeuristic(cube)
        cycle = heuristic.cycle_generator.cycles(4)[0]
        op = heuristic.interchange_nodes(cycle, next(iter(cycle.edges())))
        smaller, bigger = heuristic.effect(op.edge, op.ic_nodes)
        assert cycle in smaller[4]
        assert all(c not in bigger.get(4, []) for c in smaller[4])

    def test_split_cycle_counts_as_unchanged(self, cube):
        """A cycle through both base nodes but not the base edge is scored 0"""
        cycle = Cycle([0, 2, 3, 1, 5, 4])
        assert CycleCountHeuristic.length_change(cycle, (0, 1), (2, 3)) == 0
        work = cube.copy()
        work.interchange((0, 1), (2, 3))
        # the hexagon falls apart into the squares 0-3-2-1 and 0-4-5-1
        for square in ([0, 3, 2, 1], [0, 4, 5, 1]):
            assert all(work.connected(square[k - 1], square[k]) for k in range(4))

    @pytest.mark.parametrize("strategy", list(Strategy))
    def test_best_cycle(self, cube, strategy):
        """A girth cycle with the chosen operation first among equals"""
        best = CycleCountHeuristic(cube, strategy=strategy).best_cycle()
        assert best.cycle.length == 4
        assert best.candidates[0] == Interchange(best.edge, best.ic_nodes)

    @pytest.mark.parametrize("strategy", list(Strategy))
    def test_deterministic(self, strategy):
        """Identical graphs give identical choices"""
        first = CycleCountHeuristic(make_graph("k33"), strategy=strategy).best_cycle()
        second = CycleCountHeuristic(make_graph("k33"), strategy=strategy).best_cycle()
        assert first == second

    def test_better_effect_more_smaller(self, cube):
        """More shrinking girth cycles win"""
        heuristic = CycleCountHeuristic(cube)
        cycle = heuristic.cycle_generator.cycles(4)[0]
        assert heuristic.better_effect({4: [cycle, cycle]}, {}, {4: [cycle]}, {}) == 1
        assert heuristic.better_effect({4: [cycle]}, {}, {4: [cycle, cycle]}, {}) == -1

    def test_better_effect_less_bigger(self, cube):
        """On equal shrinking, fewer growing cycles win"""
        heuristic = CycleCountHeuristic(cube)
        cycle = heuristic.cycle_generator.cycles(4)[0]
        assert heuristic.better_effect({4: [cycle]}, {}, {4: [cycle]}, {4: [cycle]}) == 1
        assert heuristic.better_effect({4: [cycle]}, {4: [cycle]}, {4: [cycle]}, {}) == -1
        assert heuristic.better_effect({4: [cycle]}, {}, {4: [cycle]}, {}) == 0

    def test_better_effect_cycle_count(self, cube):
        """Growing girth cycles are offset by shrinking next-girth cycles"""
        heuristic = CycleCountHeuristic(cube, strategy=Strategy.CYCLE_COUNT)
        cycle = heuristic.cycle_generator.cycles(4)[0]
        smaller = {4: [cycle], 5: [cycle]}
        bigger = {4: [cycle]}
        assert heuristic.better_effect(smaller, bigger, {4: [cycle]}, {4: [cycle]}) == 1
        assert heuristic.better_effect(smaller, bigger, {4: [cycle]}, {}) == 0

    def test_print_effect(self, cube):
        """Balance of growing and shrinking cycles"""
        heuristic = CycleCountHeuristic(cube)
        cycle = heuristic.cycle_generator.cycles(4)[0]
        op = heuristic.interchange_nodes(cycle, next(iter(cycle.edges())))
        out = io.StringIO()
        balance = heuristic.print_effect(op.edge, op.ic_nodes, out)
        assert f"#(increasing) - #(decreasing) = {balance}" in out.getvalue()
        assert "decreasing cycles of length 4" in out.getvalue()


class TestFactory:
    """Test heuristic lookup by name"""

    @pytest.mark.parametrize("name, cls", [
        ("edge-cost", EdgeCostHeuristic),
        ("more-smaller", CycleCountHeuristic),
        ("cycle-count", CycleCountHeuristic),
    ])
    def test_make_heuristic(self, cube, name, cls):
        """Command line names map to heuristics"""
        assert isinstance(make_heuristic(name, cube), cls)

    def test_cycle_count_policy(self, cube):
        """The cycle-count name selects the cycle count policy"""
        assert make_heuristic("cycle-count", cube).strategy is Strategy.CYCLE_COUNT

    def test_unknown_name(self, cube):
        """Unknown names are rejected"""
        with pytest.raises(ValueError, match="Unknown heuristic"):
            make_heuristic("random", cube)

    def test_shared_cycle_generator(self, cube):
        """A cycle generator can be passed in"""
        generator = CycleGenerator(cube)
        assert make_heuristic("edge-cost", cube, generator).cycle_generator is generator
