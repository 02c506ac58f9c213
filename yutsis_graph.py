"""
Yutsis Graph Module

Cubic (3-regular) labelled multigraph representing an angular momentum
recoupling coefficient, together with the three rewrite rules that reduce it
to a triangular delta (two nodes joined by three parallel edges):

- bubble removal     (two parallel edges, contributes a Kronecker delta)
- triangle removal   (a 3-cycle, contributes a 6j symbol)
- interchange        (swaps two edge ends across a base edge, contributes a
                      summation and a 6j symbol, relabels the base edge)

Edges live in an edge arena: every node stores three indices into a shared
list of ``Edge`` objects, so a change of direction or endpoint made through
one endpoint is seen from the other one as well.

The slot order of a node is the cyclic order of its 3jm columns; sign '-'
reverses it. Rewrites first flip signs and directions (recording the phase
of every flip in the formula) until the local pattern matches the one the
rewrite's factor was derived for; see ``orientation``.

Every structural mutation bumps ``generation``; path and cycle generators
compare it with the generation their caches were built for. Listeners added
with ``add_listener`` are called after each structural mutation.

Usage Example:
--------------
    from yutsis_graph import YutsisGraph

    # K4: the Yutsis graph of a single 6j symbol
    graph = YutsisGraph.from_edges([
        ("a", 0, 1), ("b", 0, 2), ("c", 0, 3),
        ("d", 1, 2), ("e", 2, 3), ("f", 3, 1),
    ])
    triple = graph.triangle()          # (0, 1, 2)
    graph.remove_triangle(triple)
    assert graph.triangular_delta()
    graph.format_triangular_delta()
    print(graph.formula)
"""

from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from orientation import PARALLEL_FLIPS, UNIFORM_FLIPS, reading, same_cycle, sign_for
from recoupling_coefficient import RecouplingFormula


FORMULA_METHODS = ("invert_node", "invert_edge", "bubble", "triangle", "interchange")


class Edge:
    """Directed labelled edge ``tail -> head``."""

    __slots__ = ("label", "tail", "head")

    def __init__(self, label: str, tail: int, head: int):
        self.label = label
        self.tail = tail
        self.head = head

    def other_node(self, node: int) -> int:
        """The endpoint opposite to ``node``, or -1 if ``node`` is not an endpoint."""
        if node == self.tail:
            return self.head
        if node == self.head:
            return self.tail
        return -1

    def connects(self, i: int, j: int) -> bool:
        return (self.tail == i and self.head == j) or (self.tail == j and self.head == i)

    def invert(self) -> None:
        self.tail, self.head = self.head, self.tail

    def copy(self) -> "Edge":
        return Edge(self.label, self.tail, self.head)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Edge):
            return NotImplemented
        return (self.label, self.tail, self.head) == (other.label, other.tail, other.head)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Edge({self.label!r}, {self.tail}, {self.head})"

    def __str__(self) -> str:
        return f"{self.label}:{self.tail}->{self.head}"


class YutsisGraph:
    """
    Cubic multigraph with signed nodes and directed labelled edges.

    Node numbers are fixed for the lifetime of the graph; removed nodes keep
    their number and are skipped by all queries.
    """

    def __init__(
        self,
        slots: Sequence[Sequence[str]],
        edges: Sequence[Tuple[str, int, int]],
        signs: Optional[Sequence[bool]] = None,
        formula=None,
        *,
        new_label_base: str = "z",
        log=None,
    ):
        """
        Initialize a Yutsis graph.

        Args:
            slots: for every node the labels of its three edges, in slot order
            edges: (label, tail, head) for every edge
            signs: node signs (True = '+'); all '-' when omitted
            formula: symbolic collaborator, a ``RecouplingFormula`` when omitted
            new_label_base: prefix of the labels created by interchanges
            log: text stream receiving a trace of every elementary operation

        Raises:
            ValueError: if the structure is not a valid cubic multigraph
            TypeError: if ``formula`` lacks one of the collaborator methods
        """
        nr_of_nodes = len(slots)
        if nr_of_nodes < 2 or nr_of_nodes % 2:
            raise ValueError(f"A cubic graph needs a positive even number of nodes, got {nr_of_nodes}")
        if signs is None:
            signs = [False] * nr_of_nodes
        if len(signs) != nr_of_nodes:
            raise ValueError(f"Expected {nr_of_nodes} node signs, got {len(signs)}")
        if formula is None:
            formula = RecouplingFormula()
        missing = [name for name in FORMULA_METHODS if not callable(getattr(formula, name, None))]
        if missing:
            raise TypeError(f"formula must provide {', '.join(missing)}")

        self._edges: List[Edge] = []
        index: Dict[str, int] = {}
        for label, tail, head in edges:
            if label in index:
                raise ValueError(f"duplicate edge label {label!r}")
            for node in (tail, head):
                if not 0 <= node < nr_of_nodes:
                    raise ValueError(f"Edge {label!r} refers to node {node} outside [0, {nr_of_nodes})")
            if tail == head:
                raise ValueError(f"Edge {label!r} is a self loop on node {tail}")
            index[label] = len(self._edges)
            self._edges.append(Edge(label, tail, head))

        self._slots: List[Optional[List[int]]] = []
        ends_seen: Dict[str, int] = {label: 0 for label in index}
        for node, labels in enumerate(slots):
            if len(labels) != 3:
                raise ValueError(f"Node {node} has {len(labels)} edges, a cubic graph needs 3")
            node_slots = []
            for label in labels:
                if label not in index:
                    raise ValueError(f"Node {node} refers to unknown edge label {label!r}")
                edge = self._edges[index[label]]
                if node not in (edge.tail, edge.head):
                    raise ValueError(f"Edge {label!r} listed at node {node} but joins {edge.tail} and {edge.head}")
                ends_seen[label] += 1
                node_slots.append(index[label])
            self._slots.append(node_slots)
        for label, count in ends_seen.items():
            if count != 2:
                raise ValueError(f"Edge {label!r} appears in {count} node slots, expected 2")

        self._order = nr_of_nodes
        self._n = nr_of_nodes
        self._signs: List[bool] = [bool(s) for s in signs]
        self.formula = formula
        self.log = log
        self.generation = 0
        self._listeners: List[Callable[["YutsisGraph"], None]] = []
        self._labels: Set[str] = set(index)
        self._new_labels: Set[str] = set()
        self._new_label_base = new_label_base
        self._new_label_count = 1

    @classmethod
    def from_edges(
        cls,
        edges: Sequence[Tuple[str, int, int]],
        signs: Optional[Sequence[bool]] = None,
        formula=None,
        **kwargs,
    ) -> "YutsisGraph":
        """
        Build a graph from an edge list; node slots follow the order in which
        the edges are listed.

        Args:
            edges: (label, tail, head) triples
            signs: node signs (True = '+')
            formula: symbolic collaborator
            **kwargs: forwarded to the constructor (new_label_base, log)
        """
        if not edges:
            raise ValueError("Edge list is empty")
        nr_of_nodes = max(max(tail, head) for _, tail, head in edges) + 1
        slots: List[List[str]] = [[] for _ in range(nr_of_nodes)]
        for label, tail, head in edges:
            slots[tail].append(label)
            if head != tail:
                slots[head].append(label)
        return cls(slots, edges, signs, formula, **kwargs)

    # ------------------------------------------------------------------
    # Listeners and tracing
    # ------------------------------------------------------------------
    def add_listener(self, listener: Callable[["YutsisGraph"], None]) -> None:
        """Register a callable invoked with the graph after every structural change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[["YutsisGraph"], None]) -> None:
        self._listeners.remove(listener)

    def _state_changed(self) -> None:
        self.generation += 1
        for listener in list(self._listeners):
            listener(self)

    def _log(self, message: str) -> None:
        if self.log is not None:
            print(message, file=self.log)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def order(self) -> int:
        """Original number of nodes; node numbers lie in [0, order())."""
        return self._order

    def nr_of_nodes(self) -> int:
        """Number of active nodes."""
        return self._n

    def nr_of_edges(self) -> int:
        return 3 * self._n // 2

    def is_removed(self, node: int) -> bool:
        if not 0 <= node < self._order:
            raise ValueError(f"Node {node} outside [0, {self._order})")
        return self._slots[node] is None

    def _check_active(self, node: int) -> List[int]:
        if self.is_removed(node):
            raise ValueError(f"Node {node} has been removed")
        return self._slots[node]

    def neighbors(self, node: int) -> List[int]:
        """The three neighbours of an active node, in slot order (repeats for parallel edges)."""
        return [self._edges[idx].other_node(node) for idx in self._check_active(node)]

    def connected(self, i: int, j: int) -> bool:
        return j in self.neighbors(i)

    def sign(self, node: int) -> bool:
        self._check_active(node)
        return self._signs[node]

    def nodes(self, start: int = -1) -> Iterator[int]:
        """Active nodes greater than ``start`` in ascending order."""
        for node in range(start + 1, self._order):
            if self._slots[node] is not None:
                yield node

    def nodes_descending(self, start: Optional[int] = None) -> Iterator[int]:
        """Active nodes smaller than ``start`` (default: all) in descending order."""
        first = self._order - 1 if start is None else start - 1
        for node in range(first, -1, -1):
            if self._slots[node] is not None:
                yield node

    def incident_edges(self, node: int) -> List[Edge]:
        """Copies of the three edges of ``node`` in slot order."""
        return [self._edges[idx].copy() for idx in self._check_active(node)]

    def edges(self, i: int, j: int) -> List[Edge]:
        """Copies of all edges joining ``i`` and ``j``."""
        return [self._edges[idx].copy() for idx in self._check_active(i)
                if self._edges[idx].other_node(i) == j]

    def edge_labels(self, node: int) -> List[str]:
        return [self._edges[idx].label for idx in self._check_active(node)]

    def is_new_label(self, label: str) -> bool:
        """True for labels created by interchanges."""
        return label in self._new_labels

    @property
    def new_labels(self) -> frozenset:
        return frozenset(self._new_labels)

    def bubble(self) -> Optional[Tuple[int, int]]:
        """First pair of nodes joined by (at least) two parallel edges."""
        for i in range(self._order - 1):
            if self._slots[i] is None:
                continue
            nghb = self.neighbors(i)
            if nghb[0] == nghb[1] or nghb[0] == nghb[2]:
                return i, nghb[0]
            if nghb[1] == nghb[2]:
                return i, nghb[1]
        return None

    def triangle(self) -> Optional[Tuple[int, int, int]]:
        """First triangle found as (i, smaller, larger), scanning neighbours of neighbours."""
        for i in range(self._order - 2):
            if self._slots[i] is None:
                continue
            nghb = self.neighbors(i)
            for j in range(2):
                for k in self.neighbors(nghb[j]):
                    if k == nghb[j + 1] or k == nghb[(j + 2) % 3]:
                        low, high = sorted((nghb[j], k))
                        return i, low, high
        return None

    def triangles(self) -> List[Tuple[int, int, int]]:
        """All triangles (i, j, k) with i < j < k."""
        found = set()
        for i in self.nodes():
            nghb = [n for n in set(self.neighbors(i)) if n > i]
            for j in nghb:
                for k in nghb:
                    if j < k and self.connected(j, k):
                        found.add((i, j, k))
        return sorted(found)

    def triangular_delta(self) -> bool:
        """True in the terminal state: two nodes joined by three parallel edges."""
        return self._n == 2

    # ------------------------------------------------------------------
    # Elementary sign and direction flips
    # ------------------------------------------------------------------
    def _invert_sign(self, node: int) -> None:
        self.formula.invert_node(self.edge_labels(node))
        self._signs[node] = not self._signs[node]
        self._log(f"Inverted node: {node}")

    def _invert_edge(self, idx: int) -> None:
        edge = self._edges[idx]
        self.formula.invert_edge(edge.label)
        edge.invert()
        self._log(f"Inverted edge: {edge}")

    def _orient_node(self, node: int, wanted: Sequence[int]) -> None:
        """Flip ``node`` unless it reads the edge indices ``wanted`` in cyclic order."""
        if not same_cycle(reading(self._slots[node], self._signs[node]), wanted):
            self._invert_sign(node)

    def _orient_edge(self, idx: int, tail: int) -> None:
        if self._edges[idx].tail != tail:
            self._invert_edge(idx)

    def _remove_nodes(self, *nodes: int) -> None:
        for node in nodes:
            self._slots[node] = None
        self._n -= len(nodes)
        self._log("Removed nodes: " + " ".join(str(n) for n in nodes))

    def _fresh_label(self) -> str:
        while True:
            label = f"{self._new_label_base}{self._new_label_count}"
            self._new_label_count += 1
            if label not in self._labels:
                break
        self._labels.add(label)
        self._new_labels.add(label)
        return label

    # ------------------------------------------------------------------
    # Rewrite rules
    # ------------------------------------------------------------------
    def remove_bubble(self, pair: Tuple[int, int]) -> None:
        """
        Remove the bubble formed by the two nodes in ``pair``.

        Both nodes disappear and their outward edges are spliced into one
        edge. The outward edge of the first node survives unless its label
        was created by an interchange.

        Raises:
            ValueError: if the nodes are not joined by exactly two edges
        """
        b0, b1 = pair
        slots0 = self._check_active(b0)
        slots1 = self._check_active(b1)
        bedges = [idx for idx in slots0 if self._edges[idx].other_node(b0) == b1]
        if len(bedges) != 2:
            raise ValueError(f"Nodes {b0} and {b1} are joined by {len(bedges)} edges, a bubble needs 2")
        ngs = [[idx for idx in slots0 if idx not in bedges][0],
               [idx for idx in slots1 if idx not in bedges][0]]
        nghb = [self._edges[ngs[0]].other_node(b0), self._edges[ngs[1]].other_node(b1)]
        if nghb[0] == nghb[1]:
            raise ValueError(f"Bubble ({b0},{b1}) hangs on a bridge at node {nghb[0]}")
        stay, remove = (1, 0) if self.is_new_label(self._edges[ngs[0]].label) else (0, 1)
        kept = self._edges[ngs[stay]]
        gone = self._edges[ngs[remove]]

        self._log(f"Formatting bubble: ({b0},{b1})")
        flags = tuple(self._edges[idx].tail == b0 for idx in bedges)
        for idx, flip in zip(bedges, PARALLEL_FLIPS[flags]):
            if flip:
                self._invert_edge(idx)
        first = 0 if self._edges[bedges[0]].tail == b0 else 1
        nodes = (b0, b1)[first], (b0, b1)[1 - first]
        outward = ngs[first], ngs[1 - first]
        ends = nghb[first], nghb[1 - first]
        read = reading(self._slots[nodes[0]], self._signs[nodes[0]])
        at = read.index(outward[0])
        x, y = read[(at + 1) % 3], read[(at + 2) % 3]
        self._orient_node(nodes[1], (x, y, outward[1]))
        self._orient_edge(outward[0], nodes[0])
        self._orient_edge(outward[1], nodes[1])

        self.formula.bubble(kept.label, gone.label)
        kept.tail, kept.head = ends
        far_slots = self._slots[nghb[remove]]
        far_slots[far_slots.index(ngs[remove])] = ngs[stay]
        self._remove_nodes(b0, b1)
        self._log(f"Removed bubble: ({b0},{b1}) keeping edge: {kept.label}")
        self._state_changed()

    def remove_triangle(self, triple: Tuple[int, int, int]) -> None:
        """
        Remove the triangle ``triple``; its first node survives.

        The survivor takes over the three outward edges, all directed away
        from it, and gets sign '+'.

        Raises:
            ValueError: if the three nodes do not form a triangle with one
                outward edge each
        """
        t = tuple(triple)
        for node in t:
            self._check_active(node)
        tedges: List[int] = []
        for k in range(3):
            between = [idx for idx in self._slots[t[k]]
                       if self._edges[idx].other_node(t[k]) == t[(k + 1) % 3]]
            if len(between) != 1:
                raise ValueError(f"Nodes {t} do not form a triangle with single edges")
            tedges.append(between[0])
        ngs = []
        for k in range(3):
            outward = [idx for idx in self._slots[t[k]] if idx not in tedges]
            if len(outward) != 1:
                raise ValueError(f"Node {t[k]} of triangle {t} has no single outward edge")
            ngs.append(outward[0])

        self._log(f"Formatting triangle: {t}")
        flags = tuple(self._edges[tedges[k]].tail == t[k] for k in range(3))
        for idx, flip in zip(tedges, UNIFORM_FLIPS[flags]):
            if flip:
                self._invert_edge(idx)
        forward = self._edges[tedges[0]].tail == t[0]
        for k in range(3):
            incoming, outgoing = tedges[k - 1], tedges[k]
            if not forward:
                incoming, outgoing = outgoing, incoming
            self._orient_node(t[k], (ngs[k], incoming, outgoing))
            self._orient_edge(ngs[k], t[k])

        # the survivor reads the outward edges in the cyclic order of the triangle
        survivor = self._slots[t[0]]
        survivor[:] = ngs if forward else [ngs[0], ngs[2], ngs[1]]
        for idx in ngs:
            self._edges[idx].tail = t[0]
        self._remove_nodes(t[1], t[2])
        self._signs[t[0]] = True
        self.formula.triangle([self._edges[idx].label for idx in tedges],
                              [self._edges[ngs[k]].label for k in (2, 0, 1)])
        self._log(f"Removed triangle: {t}")
        self._state_changed()

    def interchange(self, edge: Tuple[int, int], ic_nodes: Tuple[int, int]) -> str:
        """
        Interchange on ``edge`` = (u, v): edge (u, p) becomes (v, p) and edge
        (v, q) becomes (u, q), where (p, q) = ``ic_nodes``. The edge (u, v)
        receives a fresh label.

        Returns:
            The fresh label of the base edge

        Raises:
            ValueError: if (u, v) is not a single edge or p, q are not proper
                neighbours of u and v
        """
        u, v = edge
        p, q = ic_nodes
        slots_u = self._check_active(u)
        slots_v = self._check_active(v)
        base = [idx for idx in slots_u if self._edges[idx].other_node(u) == v]
        if len(base) != 1:
            raise ValueError(f"Interchange needs a single edge between {u} and {v}, found {len(base)}")
        if p == q or p in (u, v) or q in (u, v):
            raise ValueError(f"Invalid interchange nodes {ic_nodes} for edge {edge}")
        ic_u = [idx for idx in slots_u if self._edges[idx].other_node(u) == p]
        ic_v = [idx for idx in slots_v if self._edges[idx].other_node(v) == q]
        if not ic_u or not ic_v:
            raise ValueError(f"Interchange nodes {ic_nodes} are not neighbours of {u} and {v}")
        e = base[0]
        b, c = ic_u[0], ic_v[0]
        a = [idx for idx in slots_u if idx not in (e, b)][0]
        d = [idx for idx in slots_v if idx not in (e, c)][0]

        self._log(f"Formatting interchange: ({u},{v}) ({p},{q})")
        self._orient_edge(e, u)
        self._orient_edge(a, u)
        self._orient_edge(c, v)
        self._orient_node(u, (b, a, e))
        self._orient_node(v, (d, e, c))

        slots_u[slots_u.index(b)] = c
        slots_v[slots_v.index(c)] = b
        self._signs[u] = sign_for(slots_u, (a, c, e))
        self._signs[v] = sign_for(slots_v, (b, d, e))
        moved = self._edges[b]
        if moved.tail == u:
            moved.tail = v
        else:
            moved.head = v
        self._edges[c].tail = u
        base_edge = self._edges[e]
        old_label = base_edge.label
        base_edge.label = self._fresh_label()
        self.formula.interchange(old_label,
                                 self._edges[b].label, self._edges[c].label,
                                 self._edges[a].label, self._edges[d].label,
                                 base_edge.label)
        self._log(f"Performed interchange on edge: {old_label} -> {base_edge.label}")
        self._state_changed()
        return base_edge.label

    def format_triangular_delta(self) -> None:
        """
        Bring the terminal two-node graph into canonical orientation: all
        three edges in one direction, both nodes reading the same cyclic
        order, and opposite signs. No factor is added to the formula beyond
        the flips this needs.

        Raises:
            ValueError: if the graph is not a triangular delta
        """
        if not self.triangular_delta():
            raise ValueError(f"Not a triangular delta: {self._n} active nodes")
        n1, n2 = self.nodes()
        slots1 = self._slots[n1]
        flags = tuple(self._edges[idx].tail == n1 for idx in slots1)
        for idx, flip in zip(list(slots1), UNIFORM_FLIPS[flags]):
            if flip:
                self._invert_edge(idx)
        self._orient_node(n2, reading(slots1, self._signs[n1]))
        if self._signs[n1] == self._signs[n2]:
            # same reading with the other sign
            slots2 = self._slots[n2]
            slots2[1], slots2[2] = slots2[2], slots2[1]
            self._signs[n2] = not self._signs[n2]

    # ------------------------------------------------------------------
    # Copy and printing
    # ------------------------------------------------------------------
    def copy(self) -> "YutsisGraph":
        """Independent copy (edges, signs, formula); listeners are not copied."""
        clone = YutsisGraph.__new__(YutsisGraph)
        clone._edges = [edge.copy() for edge in self._edges]
        clone._slots = [None if s is None else list(s) for s in self._slots]
        clone._order = self._order
        clone._n = self._n
        clone._signs = list(self._signs)
        clone.formula = self.formula.copy() if hasattr(self.formula, "copy") else self.formula
        clone.log = self.log
        clone.generation = 0
        clone._listeners = []
        clone._labels = set(self._labels)
        clone._new_labels = set(self._new_labels)
        clone._new_label_base = self._new_label_base
        clone._new_label_count = self._new_label_count
        return clone

    def __str__(self) -> str:
        lines = [str(self._n)]
        for i in self.nodes():
            entries = []
            for idx in self._slots[i]:
                edge = self._edges[idx]
                entries.append(f"{edge.label}:{'+' if edge.head == i else '-'}{edge.other_node(i)}")
            lines.append(f"{'+' if self._signs[i] else '-'}{i} | " + " ".join(entries))
        return "\n".join(lines)
