"""
Cycle Generator Module

Relevant cycles of a Yutsis graph following Vismara's construction.

Every relevant cycle C has a unique node r of smallest number and can be
split into two canonical shortest paths starting at r: either two paths
r..y and r..z of equal length closed by the edge (y, z) (odd cycle), or two
paths r..p and r..q of equal length meeting in a common neighbour y of p
and q (even cycle). Enumerating all such path pairs that meet only in r
yields every relevant cycle (and possibly some cycles that are not
relevant), which is what the reduction heuristics need.

Cycles are bucketed by length. The buckets are rebuilt from scratch
whenever the graph's generation counter has changed.

Usage Example:
--------------
    from cycle_generator import CycleGenerator

    cycles = CycleGenerator(graph)
    girth = cycles.girth()
    for cycle in cycles.cycles(girth):
        print(cycle)
"""

from __future__ import annotations

from itertools import combinations
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from path_generator import Path, PathGenerator


class Cycle:
    """
    Immutable cycle stored as its open node sequence; the closing edge from
    the last node back to the first one is implicit.
    """

    __slots__ = ("nodes",)

    def __init__(self, nodes: Sequence[int]):
        if len(nodes) < 2:
            raise ValueError("A cycle needs at least two nodes")
        object.__setattr__(self, "nodes", tuple(nodes))

    def __setattr__(self, name, value):
        raise AttributeError("Cycle is immutable")

    @classmethod
    def odd(cls, ry: Path, rz: Path) -> "Cycle":
        """Cycle r..y followed by z..r (without repeating r); y and z are adjacent."""
        return cls(ry.nodes + rz.nodes[:0:-1])

    @classmethod
    def even(cls, rp: Path, rq: Path, y: int) -> "Cycle":
        """Cycle r..p, y, q..r (without repeating r)."""
        return cls(rp.nodes + (y,) + rq.nodes[:0:-1])

    @property
    def length(self) -> int:
        return len(self.nodes)

    def node_at(self, index: int) -> int:
        return self.nodes[index % len(self.nodes)]

    def edges(self) -> Iterator[Tuple[int, int]]:
        """Consecutive node pairs, ending with the closing edge (last, first)."""
        for k in range(len(self.nodes)):
            yield self.nodes[k], self.nodes[(k + 1) % len(self.nodes)]

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[int]:
        return iter(self.nodes)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Cycle):
            return NotImplemented
        return self.nodes == other.nodes

    def __hash__(self) -> int:
        return hash(self.nodes)

    def __repr__(self) -> str:
        return f"Cycle({list(self.nodes)})"

    def __str__(self) -> str:
        return "->".join(str(n) for n in self.nodes + self.nodes[:1])


class CycleGenerator:
    """
    Relevant cycles of a Yutsis graph, bucketed by length and rebuilt lazily.

    The generator owns its own ``PathGenerator`` because it filters the path
    table down to canonical paths before every enumeration.
    """

    def __init__(self, graph, path_generator: Optional[PathGenerator] = None):
        self.graph = graph
        self.path_generator = path_generator if path_generator is not None else PathGenerator(graph)
        self._cycles: Dict[int, List[Cycle]] = {}
        self._generation: Optional[int] = None
        self.nr_of_regenerations = 0

    def is_stale(self) -> bool:
        return self._generation != self.graph.generation

    def _ensure(self) -> None:
        if self.is_stale():
            self.regenerate()

    def regenerate(self) -> None:
        """Rebuild canonical shortest paths and enumerate all relevant cycles."""
        self.path_generator.regenerate()
        self.path_generator.make_canonical()
        self._cycles = {}
        self._vismara()
        self._generation = self.graph.generation
        self.nr_of_regenerations += 1

    def _add(self, cycle: Cycle) -> None:
        self._cycles.setdefault(cycle.length, []).append(cycle)

    def _vismara(self) -> None:
        graph = self.graph
        paths = self.path_generator
        infinity = graph.order()
        for r in graph.nodes():
            for y in graph.nodes(r):
                d_ry = paths.distance(r, y)
                if d_ry >= infinity:
                    continue
                closer: List[int] = []
                for z in dict.fromkeys(graph.neighbors(y)):
                    if z <= r:
                        continue
                    d_rz = paths.distance(r, z)
                    if d_rz >= infinity:
                        continue
                    if d_rz + 1 == d_ry:
                        closer.append(z)
                    elif d_rz == d_ry and z > y:
                        for ry in paths.paths(r, y):
                            for rz in paths.paths(r, z):
                                if ry.only_start_in_common(rz):
                                    self._add(Cycle.odd(ry, rz))
                for p, q in combinations(closer, 2):
                    for rp in paths.paths(r, p):
                        for rq in paths.paths(r, q):
                            if rp.only_start_in_common(rq):
                                self._add(Cycle.even(rp, rq, y))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def cycles(self, length: int) -> List[Cycle]:
        """All generated cycles of the given length (possibly empty)."""
        self._ensure()
        return list(self._cycles.get(length, []))

    def lengths(self) -> List[int]:
        """Lengths with at least one cycle, ascending."""
        self._ensure()
        return sorted(self._cycles)

    def all_cycles(self) -> List[Cycle]:
        """All generated cycles, shortest first."""
        self._ensure()
        return [c for length in sorted(self._cycles) for c in self._cycles[length]]

    def girth(self) -> Optional[int]:
        """Length of the shortest relevant cycle, None if there is no cycle."""
        self._ensure()
        return min(self._cycles) if self._cycles else None

    def nr_of_cycles(self) -> int:
        self._ensure()
        return sum(len(bucket) for bucket in self._cycles.values())

    def print_cycles(self, out=None) -> None:
        print(self, file=out)

    def __str__(self) -> str:
        self._ensure()
        lines = []
        for length in sorted(self._cycles):
            bucket = self._cycles[length]
            lines.append(f"{len(bucket)} cycles of length {length}:")
            lines.extend(f"  {cycle}" for cycle in bucket)
        return "\n".join(lines)
