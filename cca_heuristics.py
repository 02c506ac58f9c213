"""
Cycle Cost Algorithm Heuristics Module

Strategies that choose the next interchange when a Yutsis graph has neither
a bubble nor a triangle (girth >= 4). An interchange on an edge of a cycle
shortens that cycle by one; repeated on girth cycles it eventually creates
a triangle or a bubble. The heuristics decide *which* girth cycle and edge
to attack:

- EdgeCostHeuristic: prefers edges whose shortest enclosing cycle is much
  shorter than the next one, so that other cycles are hardly affected.
- CycleCountHeuristic: counts, for every candidate interchange, the cycles
  that shrink and the cycles that grow and compares the candidates with one
  of two policies (see ``Strategy``).

Both return a ``BestOperation``: the chosen cycle, the (sorted) edge, the
canonical interchange nodes and the list of equivalent candidates.

Usage Example:
--------------
    from cca_heuristics import CycleCountHeuristic, Strategy

    heuristic = CycleCountHeuristic(graph, strategy=Strategy.CYCLE_COUNT)
    best = heuristic.best_cycle()
    graph.interchange(best.edge, best.ic_nodes)
"""

from __future__ import annotations

import warnings
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple

import numpy as np

from cycle_generator import Cycle, CycleGenerator


class Interchange(NamedTuple):
    """Interchange on ``edge`` (sorted) with interchange nodes ``ic_nodes``."""
    edge: Tuple[int, int]
    ic_nodes: Tuple[int, int]

    def __str__(self) -> str:
        return f"IC {self.edge[0]} {self.edge[1]} {self.ic_nodes[0]} {self.ic_nodes[1]}"


class BestOperation(NamedTuple):
    """
    Result of a heuristic.

    ``edge`` and ``ic_nodes`` are None when the graph still has a triangle;
    ``candidates`` lists the equivalent operations, the chosen one first.
    """
    cycle: Cycle
    edge: Optional[Tuple[int, int]]
    ic_nodes: Optional[Tuple[int, int]]
    candidates: List[Interchange]


class Strategy(Enum):
    """Tie-break policy of the cycle count heuristic."""
    MORE_SMALLER_LESS_BIGGER = 1
    CYCLE_COUNT = 2


class CCAHeuristic:
    """Base class: interchange-node selection shared by all heuristics."""

    name = "cca"

    def __init__(self, graph, cycle_generator: Optional[CycleGenerator] = None):
        self.set_problem(graph, cycle_generator)

    def set_problem(self, graph, cycle_generator: Optional[CycleGenerator] = None) -> None:
        """Attach the heuristic to a (new) graph."""
        self.graph = graph
        self.cycle_generator = cycle_generator if cycle_generator is not None else CycleGenerator(graph)

    def alternative_ic(self, edge: Tuple[int, int], ic_nodes: Tuple[int, int]) -> Tuple[int, int]:
        """
        The second description of the same interchange: for every end of
        ``edge`` its neighbour that is neither the other end nor given in
        ``ic_nodes``.
        """
        alternative = []
        for end, other, taken in ((edge[0], edge[1], ic_nodes[0]), (edge[1], edge[0], ic_nodes[1])):
            remaining = [n for n in self.graph.neighbors(end) if n != other and n != taken]
            if not remaining:
                raise ValueError(f"Node {end} has no neighbour besides {other} and {taken}")
            alternative.append(remaining[0])
        return alternative[0], alternative[1]

    def canonical_ic(
        self,
        edge: Tuple[int, int],
        ic_nodes: Tuple[int, int],
        alternative: Optional[Tuple[int, int]] = None,
    ) -> Tuple[int, int]:
        """Of the two equivalent interchange-node pairs, the one with the smaller first node."""
        if alternative is None:
            alternative = self.alternative_ic(edge, ic_nodes)
        return tuple(ic_nodes) if ic_nodes[0] < alternative[0] else tuple(alternative)

    def interchange_nodes(self, cycle: Cycle, edge: Tuple[int, int]) -> Interchange:
        """
        Canonical interchange on ``edge`` that shortens ``cycle`` by one.

        Args:
            cycle: a cycle containing ``edge``
            edge: two consecutive nodes of the cycle (any order)

        Returns:
            Interchange with the sorted edge and canonical interchange nodes

        Raises:
            ValueError: if ``edge`` is not an edge of ``cycle``
        """
        a, b = sorted(edge)
        nodes = cycle.nodes
        length = len(nodes)
        index = next((k for k in range(length) if {nodes[k], nodes[(k + 1) % length]} == {a, b}), None)
        if index is None:
            raise ValueError(f"({a},{b}) is not an edge of cycle {cycle}")
        if nodes[index] == a:
            on_cycle = (nodes[index - 1], nodes[(index + 2) % length])
        else:
            on_cycle = (nodes[(index + 2) % length], nodes[index - 1])
        outside = []
        for end, other, neighbour in ((a, b, on_cycle[0]), (b, a, on_cycle[1])):
            remaining = [n for n in self.graph.neighbors(end) if n != other and n != neighbour]
            outside.append(remaining[0])
        ic_nodes = self.canonical_ic((a, b), (on_cycle[0], outside[1]), (outside[0], on_cycle[1]))
        return Interchange((a, b), ic_nodes)

    def best_cycle(self) -> BestOperation:
        raise NotImplementedError

    def _girth_or_triangle(self) -> Tuple[int, Optional[BestOperation]]:
        girth = self.cycle_generator.girth()
        if girth is None:
            raise ValueError("The graph has no cycles left to reduce")
        if girth < 4:
            cycle = self.cycle_generator.cycles(girth)[0]
            warnings.warn(f"Girth {girth}: returning cycle {cycle} instead of an interchange",
                          RuntimeWarning)
            return girth, BestOperation(cycle, None, None, [])
        return girth, None


class EdgeCostHeuristic(CCAHeuristic):
    """
    Edge cost = difference between the lengths of the two shortest relevant
    cycles through an edge (``graph.order()`` if only one is known).

    Among the girth cycles, the one with the smallest minimal edge cost wins;
    ties go to the cycle with fewer edges at that minimum, then to the
    smaller total edge cost.
    """

    name = "edge-cost"

    def set_problem(self, graph, cycle_generator: Optional[CycleGenerator] = None) -> None:
        super().set_problem(graph, cycle_generator)
        self._shortest: Optional[np.ndarray] = None
        self._cost: Optional[np.ndarray] = None
        self._costs_generation: Optional[int] = None

    def _ensure_costs(self) -> None:
        if self._costs_generation == self.graph.generation and self._cost is not None:
            return
        order = self.graph.order()
        shortest = np.zeros((order, order), dtype=int)
        cost = np.full((order, order), order, dtype=int)
        for cycle in self.cycle_generator.all_cycles():
            length = cycle.length
            for i, j in cycle.edges():
                if i > j:
                    i, j = j, i
                if shortest[i, j] == 0:
                    shortest[i, j] = length
                elif length < shortest[i, j]:
                    cost[i, j] = shortest[i, j] - length
                    shortest[i, j] = length
                elif cost[i, j] > length - shortest[i, j]:
                    cost[i, j] = length - shortest[i, j]
        self._shortest = shortest
        self._cost = cost
        self._costs_generation = self.graph.generation

    def edge_cost(self, i: int, j: int) -> int:
        self._ensure_costs()
        if i > j:
            i, j = j, i
        return int(self._cost[i, j])

    def shortest_cycle_length(self, i: int, j: int) -> Optional[int]:
        """Length of the shortest relevant cycle through edge (i, j), None if none."""
        self._ensure_costs()
        if i > j:
            i, j = j, i
        value = int(self._shortest[i, j])
        return value if value else None

    def best_cycle(self) -> BestOperation:
        girth, shortcut = self._girth_or_triangle()
        if shortcut is not None:
            return shortcut
        self._ensure_costs()
        best_key = None
        best_cycle = None
        candidates: List[Interchange] = []
        for cycle in self.cycle_generator.cycles(girth):
            costs = [(self.edge_cost(i, j), (i, j)) for i, j in cycle.edges()]
            minimum = min(c for c, _ in costs)
            tied = [e for c, e in costs if c == minimum]
            key = (minimum, len(tied), sum(c for c, _ in costs))
            if best_key is not None and key > best_key:
                continue
            operations = [self.interchange_nodes(cycle, e) for e in tied]
            if best_key is None or key < best_key:
                best_key = key
                best_cycle = cycle
                candidates = []
            for op in operations:
                if op not in candidates:
                    candidates.append(op)
        chosen = candidates[0]
        return BestOperation(best_cycle, chosen.edge, chosen.ic_nodes, candidates)

    def print_cycle_costs(self, out=None) -> None:
        """Print every relevant cycle with the cost of each of its edges."""
        self._ensure_costs()
        order = self.graph.order()
        for length in self.cycle_generator.lengths():
            bucket = self.cycle_generator.cycles(length)
            print(f"{len(bucket)} cycles of length {length}", file=out)
            for cycle in bucket:
                text = str(cycle.nodes[0])
                for i, j in cycle.edges():
                    cost = self.edge_cost(i, j)
                    shown = f"!!{cost}!!" if cost == order else str(cost)
                    text += f"-{shown}->{j}"
                print(text, file=out)


class CycleCountHeuristic(CCAHeuristic):
    """
    Compares candidate interchanges by the cycles they shrink and grow.

    Cycle counts are indexed by ``length - 4``; the escalation over lengths
    stops at index ``order - 4`` (more-smaller/less-bigger) or ``order - 5``
    (cycle count).
    """

    name = "cycle-count"

    def __init__(
        self,
        graph,
        cycle_generator: Optional[CycleGenerator] = None,
        strategy: Strategy = Strategy.MORE_SMALLER_LESS_BIGGER,
    ):
        super().__init__(graph, cycle_generator)
        self.set_strategy(strategy)

    def set_strategy(self, strategy: Strategy) -> None:
        if not isinstance(strategy, Strategy):
            raise TypeError(f"strategy must be a Strategy, got {type(strategy).__name__}")
        self.strategy = strategy

    @staticmethod
    def length_change(cycle: Cycle, edge: Tuple[int, int], ic_nodes: Tuple[int, int]) -> int:
        """
        -1, 0 or +1: how the length of ``cycle`` changes under the interchange
        that moves (e1, a) to (e2, a) and (e2, b) to (e1, b).
        """
        e1, e2 = edge
        a, b = ic_nodes
        nodes = cycle.nodes
        length = len(nodes)
        position = {n: k for k, n in enumerate(nodes)}
        has1, has2 = e1 in position, e2 in position
        if has1 and has2:
            k1, k2 = position[e1], position[e2]
            if (k2 - k1) % length == 1:
                before, after = nodes[k1 - 1], nodes[(k2 + 1) % length]
                return -1 if (before == a) != (after == b) else 0
            if (k1 - k2) % length == 1:
                before, after = nodes[k2 - 1], nodes[(k1 + 1) % length]
                return -1 if (before == b) != (after == a) else 0
            # both ends visited without the edge: counted as unchanged, even
            # where the interchange splits the cycle into two shorter ones
            return 0
        if has1 or has2:
            return 1
        return 0

    def effect(
        self, edge: Tuple[int, int], ic_nodes: Tuple[int, int]
    ) -> Tuple[Dict[int, List[Cycle]], Dict[int, List[Cycle]]]:
        """
        Cycles shrinking and growing under an interchange, keyed by their
        current length.
        """
        smaller: Dict[int, List[Cycle]] = {}
        bigger: Dict[int, List[Cycle]] = {}
        for cycle in self.cycle_generator.all_cycles():
            change = self.length_change(cycle, edge, ic_nodes)
            if change < 0:
                smaller.setdefault(cycle.length, []).append(cycle)
            elif change > 0:
                bigger.setdefault(cycle.length, []).append(cycle)
        return smaller, bigger

    @staticmethod
    def _count(buckets: Dict[int, List[Cycle]], index: int) -> int:
        return len(buckets.get(index + 4, ()))

    def better_effect(self, smaller, bigger, best_smaller, best_bigger) -> int:
        """1 if (smaller, bigger) beats the best so far, -1 if it loses, 0 on a tie."""
        count = self._count
        order = self.graph.order()
        if self.strategy is Strategy.MORE_SMALLER_LESS_BIGGER:
            for i in range(order - 4):
                diff = count(smaller, i) - count(best_smaller, i)
                if diff:
                    return 1 if diff > 0 else -1
                diff = count(bigger, i) - count(best_bigger, i)
                if diff:
                    return 1 if diff < 0 else -1
            return 0

        diff = count(smaller, 0) - count(best_smaller, 0)
        if diff:
            return 1 if diff > 0 else -1
        # shrinking girth cycles are equal here, only inflow counts
        current = -count(bigger, 0) + count(smaller, 1)
        best = -count(best_bigger, 0) + count(best_smaller, 1)
        if current != best:
            return 1 if current > best else -1
        for i in range(1, order - 5):
            current = (count(bigger, i - 1) - count(smaller, i)
                       - count(bigger, i) + count(smaller, i + 1))
            best = (count(best_bigger, i - 1) - count(best_smaller, i)
                    - count(best_bigger, i) + count(best_smaller, i + 1))
            if current != best:
                return 1 if current > best else -1
        return 0

    def best_cycle(self) -> BestOperation:
        girth, shortcut = self._girth_or_triangle()
        if shortcut is not None:
            return shortcut
        seen = set()
        best_cycle = None
        best: Optional[Interchange] = None
        best_smaller = best_bigger = None
        candidates: List[Interchange] = []
        for cycle in self.cycle_generator.cycles(girth):
            for edge in cycle.edges():
                operation = self.interchange_nodes(cycle, edge)
                if operation in seen:
                    continue
                seen.add(operation)
                smaller, bigger = self.effect(operation.edge, operation.ic_nodes)
                if best is None:
                    result = 1
                else:
                    result = self.better_effect(smaller, bigger, best_smaller, best_bigger)
                if result == 1:
                    best_cycle, best = cycle, operation
                    best_smaller, best_bigger = smaller, bigger
                    candidates = [operation]
                elif result == 0:
                    candidates.append(operation)
        return BestOperation(best_cycle, best.edge, best.ic_nodes, candidates)

    def print_effect(self, edge: Tuple[int, int], ic_nodes: Tuple[int, int], out=None) -> int:
        """
        Print the cycles an interchange shrinks and grows.

        Returns:
            #(increasing) - #(decreasing)
        """
        smaller, bigger = self.effect(edge, ic_nodes)
        for title, buckets in (("decreasing", smaller), ("increasing", bigger)):
            for length in sorted(buckets):
                print(f"{len(buckets[length])} {title} cycles of length {length}:", file=out)
                for cycle in buckets[length]:
                    print(f"  {cycle}", file=out)
        balance = (sum(len(b) for b in bigger.values())
                   - sum(len(b) for b in smaller.values()))
        print(f"#(increasing) - #(decreasing) = {balance}", file=out)
        return balance


def make_heuristic(name: str, graph, cycle_generator: Optional[CycleGenerator] = None) -> CCAHeuristic:
    """
    Heuristic by command line name: 'edge-cost', 'more-smaller' or 'cycle-count'.

    Raises:
        ValueError: for an unknown name
    """
    if name == "edge-cost":
        return EdgeCostHeuristic(graph, cycle_generator)
    if name == "more-smaller":
        return CycleCountHeuristic(graph, cycle_generator, Strategy.MORE_SMALLER_LESS_BIGGER)
    if name == "cycle-count":
        return CycleCountHeuristic(graph, cycle_generator, Strategy.CYCLE_COUNT)
    raise ValueError(f"Unknown heuristic {name!r}; choose edge-cost, more-smaller or cycle-count")
