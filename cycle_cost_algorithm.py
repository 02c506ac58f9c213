"""
Cycle Cost Algorithm Module

Drives the reduction of a Yutsis graph to a triangular delta:

    while the graph is not a triangular delta:
        remove a bubble if there is one,
        otherwise remove a triangle if there is one,
        otherwise ask the heuristic for the best interchange and apply it.

Every triangle removal and every interchange counts as one operation;
bubble removals are free. The symbolic coefficient accumulates in
``graph.formula`` as the rules fire.

Usage Example:
--------------
    from braket import parse_braket
    from cca_heuristics import EdgeCostHeuristic
    from cycle_cost_algorithm import CycleCostAlgorithm

    graph = parse_braket("<((a,b)e,(c,d)f)j|((a,c)g,(b,d)h)j>")
    algorithm = CycleCostAlgorithm(graph, EdgeCostHeuristic(graph))
    algorithm.reduce()
    print(algorithm.nr_of_operations, graph.formula)
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Dict, List, Optional

from cca_heuristics import CCAHeuristic, CycleCountHeuristic, EdgeCostHeuristic, Strategy


class ReductionState(Enum):
    """What the next call of ``perform_operation`` will do."""
    HAS_BUBBLE = 1
    HAS_TRIANGLE = 2
    APPLY_HEURISTIC = 3
    TERMINAL = 4


class CycleCostAlgorithm:
    """
    Greedy reduction of a Yutsis graph: bubbles first, then triangles, then
    the interchange chosen by a ``CCAHeuristic``.
    """

    def __init__(self, graph, heuristic: Optional[CCAHeuristic] = None, *,
                 log=None, show_performance_warnings=False, cycle_warning_threshold=5000):
        """
        Initialize the driver.

        Args:
            graph: the YutsisGraph to reduce (mutated in place)
            heuristic: interchange selector; an EdgeCostHeuristic when omitted
            log: text stream receiving the chosen cycles and operations
            show_performance_warnings: if True, print a warning whenever the
                number of relevant cycles exceeds ``cycle_warning_threshold``
            cycle_warning_threshold: see ``show_performance_warnings``
        """
        self.graph = graph
        self.log = log
        self.show_performance_warnings = show_performance_warnings
        self.cycle_warning_threshold = cycle_warning_threshold
        self.nr_of_operations = 0
        self.nr_of_interchanges = 0
        self.operations: List[str] = []
        self.set_heuristic(heuristic if heuristic is not None else EdgeCostHeuristic(graph))

        # Performance timing statistics
        self._timing_stats = {
            'remove_bubble': 0.0,
            'remove_triangle': 0.0,
            'interchange': 0.0,
            'heuristic': 0.0,
        }
        self._timing_counts = {key: 0 for key in self._timing_stats.keys()}

    def set_heuristic(self, heuristic: CCAHeuristic) -> None:
        """Use ``heuristic`` for all further interchanges, attaching it to this graph."""
        if heuristic.graph is not self.graph:
            heuristic.set_problem(self.graph)
        self.heuristic = heuristic

    def _log(self, message: str) -> None:
        if self.log is not None:
            print(message, file=self.log)

    def _record(self, key: str, started: float) -> None:
        self._timing_stats[key] += time.time() - started
        self._timing_counts[key] += 1

    def state(self) -> ReductionState:
        graph = self.graph
        if graph.triangular_delta():
            return ReductionState.TERMINAL
        if graph.bubble() is not None:
            return ReductionState.HAS_BUBBLE
        if graph.triangle() is not None:
            return ReductionState.HAS_TRIANGLE
        return ReductionState.APPLY_HEURISTIC

    def perform_operation(self) -> ReductionState:
        """
        Apply one reduction step.

        Returns:
            The state that was handled; TERMINAL means nothing was done
        """
        state = self.state()
        graph = self.graph
        if state is ReductionState.HAS_BUBBLE:
            pair = graph.bubble()
            started = time.time()
            graph.remove_bubble(pair)
            self._record('remove_bubble', started)
            self.operations.append(f"B {pair[0]} {pair[1]}")
        elif state is ReductionState.HAS_TRIANGLE:
            triple = graph.triangle()
            started = time.time()
            graph.remove_triangle(triple)
            self._record('remove_triangle', started)
            self.operations.append(f"T {triple[0]} {triple[1]} {triple[2]}")
            self.nr_of_operations += 1
        elif state is ReductionState.APPLY_HEURISTIC:
            started = time.time()
            best = self.heuristic.best_cycle()
            self._record('heuristic', started)
            self._check_cycle_count()
            self._log(f"Best cycle: {best.cycle}")
            self._log("Equivalent operations: " + ", ".join(str(op) for op in best.candidates))
            started = time.time()
            graph.interchange(best.edge, best.ic_nodes)
            self._record('interchange', started)
            self.operations.append(str(best.candidates[0]))
            self.nr_of_operations += 1
            self.nr_of_interchanges += 1
        return state

    def _check_cycle_count(self) -> None:
        if not self.show_performance_warnings:
            return
        count = self.heuristic.cycle_generator.nr_of_cycles()
        if count > self.cycle_warning_threshold:
            print(f"Warning: Number of relevant cycles ({count}) exceeds threshold "
                  f"({self.cycle_warning_threshold}).")

    def reduce(self) -> int:
        """
        Reduce until the graph is a triangular delta and bring it into
        canonical orientation.

        Returns:
            The number of operations performed by this driver
        """
        while self.perform_operation() is not ReductionState.TERMINAL:
            pass
        self.graph.format_triangular_delta()
        return self.nr_of_operations

    def get_cache_statistics(self) -> Dict[str, int]:
        """
        Get statistics about the path and cycle caches.

        Returns:
            Dictionary with the regeneration counts and the number of shortest
            paths of the current graph (computed last, after the counts)
        """
        cycles = self.heuristic.cycle_generator
        return {
            'cycle_regenerations': cycles.nr_of_regenerations,
            'path_regenerations': cycles.path_generator.nr_of_regenerations,
            'graph_generation': self.graph.generation,
            'nr_of_paths': cycles.path_generator.nr_of_paths(),
        }

    def get_timing_statistics(self) -> Dict[str, Dict[str, float]]:
        """
        Get performance timing statistics.

        Returns:
            Dictionary with timing statistics for each operation including:
            - total_time: Total time spent in this operation
            - call_count: Number of times this operation was called
            - avg_time: Average time per call
        """
        stats = {}
        for key in self._timing_stats.keys():
            total_time = self._timing_stats[key]
            count = self._timing_counts[key]
            avg_time = total_time / count if count > 0 else 0.0
            stats[key] = {
                'total_time': total_time,
                'call_count': count,
                'avg_time': avg_time
            }
        return stats

    def reset_timing_statistics(self):
        """Reset all performance timing statistics to zero."""
        for key in self._timing_stats.keys():
            self._timing_stats[key] = 0.0
            self._timing_counts[key] = 0

    def print_performance_report(self, out=None):
        """Print a formatted performance report with timing and cache statistics."""
        print("\n" + "=" * 60, file=out)
        print("PERFORMANCE REPORT", file=out)
        print("=" * 60, file=out)

        cache_stats = self.get_cache_statistics()
        print("\nCache Statistics:", file=out)
        print("-" * 60, file=out)
        print(f"  Cycle regenerations: {cache_stats['cycle_regenerations']}", file=out)
        print(f"  Path regenerations:  {cache_stats['path_regenerations']}", file=out)
        print(f"  Graph generation:    {cache_stats['graph_generation']}", file=out)
        print(f"  Shortest paths:      {cache_stats['nr_of_paths']}", file=out)

        print("\nTiming Statistics:", file=out)
        print("-" * 60, file=out)
        timing_stats = self.get_timing_statistics()
        print(f"{'Operation':<30} {'Calls':<10} {'Total (s)':<12} {'Avg (s)':<12}", file=out)
        print("-" * 60, file=out)
        for op, stats in timing_stats.items():
            if stats['call_count'] > 0:
                print(f"{op:<30} {stats['call_count']:<10} {stats['total_time']:<12.4f} "
                      f"{stats['avg_time']:<12.6f}", file=out)

        print("=" * 60 + "\n", file=out)


def reduce_yutsis_graph(graph, heuristic: Optional[CCAHeuristic] = None, log=None) -> CycleCostAlgorithm:
    """Reduce ``graph`` in place and return the finished driver."""
    algorithm = CycleCostAlgorithm(graph, heuristic, log=log)
    algorithm.reduce()
    return algorithm


def reduce_best_of_strategies(graph, log=None) -> CycleCostAlgorithm:
    """
    Reduce copies of ``graph`` with both cycle count policies and return the
    driver with fewer operations (more-smaller/less-bigger on a tie). The
    original graph is left untouched.
    """
    best = None
    for strategy in (Strategy.MORE_SMALLER_LESS_BIGGER, Strategy.CYCLE_COUNT):
        work = graph.copy()
        algorithm = CycleCostAlgorithm(work, CycleCountHeuristic(work, strategy=strategy), log=log)
        algorithm.reduce()
        if best is None or algorithm.nr_of_operations < best.nr_of_operations:
            best = algorithm
    return best
