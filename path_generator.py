"""
Path Generator Module

All shortest paths between every pair of active nodes of a Yutsis graph.

For a pair (i, j) with i < j the generator keeps the complete set of
shortest paths, every one of them starting at i. The table is built with a
Floyd-Warshall style sweep: for every intermediate node k the path sets of
(i, k) and (k, j) are concatenated whenever they give a path at least as
short as the one known for (i, j). Equal lengths merge, shorter lengths
replace.

The table is rebuilt from scratch whenever the graph's generation counter
has moved since the last build.

Usage Example:
--------------
    from path_generator import PathGenerator

    paths = PathGenerator(graph)
    print(paths.distance(0, 5))
    for path in paths.paths(0, 5):
        print(path)
    print(paths.diameter())
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np


class Path:
    """
    Immutable sequence of adjacent nodes; ``length`` counts edges.

    Attributes:
        nodes: tuple of node numbers, first to last
    """

    __slots__ = ("nodes",)

    def __init__(self, nodes: Sequence[int]):
        if len(nodes) < 1:
            raise ValueError("A path needs at least one node")
        object.__setattr__(self, "nodes", tuple(nodes))

    def __setattr__(self, name, value):
        raise AttributeError("Path is immutable")

    @property
    def length(self) -> int:
        return len(self.nodes) - 1

    @property
    def first(self) -> int:
        return self.nodes[0]

    @property
    def last(self) -> int:
        return self.nodes[-1]

    def node_at(self, index: int) -> int:
        return self.nodes[index]

    def reversed(self) -> "Path":
        return Path(self.nodes[::-1])

    def is_canonical(self) -> bool:
        """True if every node strictly between the endpoints exceeds the first node."""
        start = self.nodes[0]
        return all(node > start for node in self.nodes[1:-1])

    def intersection(self, other: "Path") -> List[int]:
        """Nodes common to both paths, in the order of this path."""
        others = set(other.nodes)
        return [node for node in self.nodes if node in others]

    def only_start_in_common(self, other: "Path") -> bool:
        """True if the two paths share exactly their (common) start node."""
        common = self.intersection(other)
        return len(common) == 1 and common[0] == self.first == other.first

    def concat(self, other: "Path") -> "Path":
        """
        Join two paths sharing an endpoint into one path.

        The shared endpoint appears once. When both paths start at the same
        node the result runs from the end of this path through the start to
        the end of ``other``.

        Raises:
            ValueError: if the paths share no endpoint
        """
        a, b = self.nodes, other.nodes
        if a[-1] == b[0]:
            return Path(a + b[1:])
        if a[-1] == b[-1]:
            return Path(a + b[-2::-1])
        if a[0] == b[-1]:
            return Path(b + a[1:])
        if a[0] == b[0]:
            return Path(a[::-1] + b[1:])
        raise ValueError(f"Paths {self} and {other} share no endpoint")

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[int]:
        return iter(self.nodes)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Path):
            return NotImplemented
        return self.nodes == other.nodes

    def __hash__(self) -> int:
        return hash(self.nodes)

    def __repr__(self) -> str:
        return f"Path({list(self.nodes)})"

    def __str__(self) -> str:
        return "->".join(str(n) for n in self.nodes)


class PathGenerator:
    """
    All-pairs shortest path sets of a Yutsis graph, rebuilt lazily.

    ``distance`` returns ``graph.order()`` for pairs without a known path;
    no shortest path can be that long, so it acts as infinity.
    """

    def __init__(self, graph):
        self.graph = graph
        self._paths: Dict[Tuple[int, int], List[Path]] = {}
        self._generation: Optional[int] = None
        self.canonical = False
        self.nr_of_regenerations = 0

    # ------------------------------------------------------------------
    # Cache handling
    # ------------------------------------------------------------------
    def is_stale(self) -> bool:
        return self._generation != self.graph.generation

    def _ensure(self) -> None:
        if self.is_stale():
            self.regenerate()

    def regenerate(self) -> None:
        """Rebuild the complete table from the current graph."""
        graph = self.graph
        self._paths = {}
        self.canonical = False
        nodes = list(graph.nodes())
        for i in nodes:
            for nghb in graph.neighbors(i):
                if i < nghb:
                    self._paths[(i, nghb)] = [Path((i, nghb))]
        for k in nodes:
            for i in nodes:
                if i == k:
                    continue
                for j in nodes:
                    if j <= i or j == k:
                        continue
                    ik = self._stored(i, k)
                    kj = self._stored(k, j)
                    if not ik or not kj:
                        continue
                    via = ik[0].length + kj[0].length
                    current = self._stored(i, j)
                    if current and current[0].length < via:
                        continue
                    joined = [self._oriented(p, i).concat(self._oriented(q, k))
                              for p in ik for q in kj]
                    if current and current[0].length == via:
                        current.extend(joined)
                    else:
                        self._paths[(i, j)] = joined
        self._generation = graph.generation
        self.nr_of_regenerations += 1

    def make_canonical(self) -> None:
        """Drop every path that is not canonical; pairs left empty become unknown."""
        self._ensure()
        for key in list(self._paths):
            kept = [p for p in self._paths[key] if p.is_canonical()]
            if kept:
                self._paths[key] = kept
            else:
                del self._paths[key]
        self.canonical = True

    def _stored(self, i: int, j: int) -> Optional[List[Path]]:
        return self._paths.get((i, j) if i < j else (j, i))

    @staticmethod
    def _oriented(path: Path, start: int) -> Path:
        return path if path.first == start else path.reversed()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def paths(self, i: int, j: int) -> List[Path]:
        """
        All (remaining) shortest paths between i and j, each starting at
        min(i, j). Empty when no path is known.
        """
        self._ensure()
        return list(self._stored(i, j) or [])

    def distance(self, i: int, j: int) -> int:
        self._ensure()
        if i == j:
            return 0
        stored = self._stored(i, j)
        return stored[0].length if stored else self.graph.order()

    def distance_matrix(self) -> np.ndarray:
        """
        Distances as an (order x order) integer array. Unknown distances and
        rows of removed nodes hold ``graph.order()``; the diagonal is 0.
        """
        self._ensure()
        order = self.graph.order()
        matrix = np.full((order, order), order, dtype=int)
        np.fill_diagonal(matrix, 0)
        for (i, j), stored in self._paths.items():
            matrix[i, j] = matrix[j, i] = stored[0].length
        return matrix

    def diameter(self) -> int:
        """Largest finite distance between two active nodes."""
        matrix = self.distance_matrix()
        finite = matrix[matrix < self.graph.order()]
        return int(finite.max()) if finite.size else 0

    def nr_of_paths(self) -> int:
        self._ensure()
        return sum(len(stored) for stored in self._paths.values())

    def __str__(self) -> str:
        self._ensure()
        lines = []
        for (i, j) in sorted(self._paths):
            lines.append(f"P({i},{j}):" + "; ".join(str(p) for p in self._paths[(i, j)]))
        return "\n".join(lines)
