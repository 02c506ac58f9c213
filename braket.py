"""
Braket Module

Builds Yutsis graphs from the two textual descriptions of a recoupling
coefficient:

BRAKET: both coupling trees as nested pairs, ``<BRA|KET>``, e.g.
    <((a,b)e,c)f|(a,(b,c)g)f>
  Every ``(x,y)z`` couples x and y to z. Intermediate labels may be left
  out, in which case they are numbered t1, t2, ... in the order their
  closing braces appear. Integer labels n become jn.

YTS: a node list. The first line holds an optional name and the order
  (number of couplings per tree), followed by 2*order lines with three
  labels each: the two coupled labels and the result. The first order
  lines describe the bra tree, the remaining ones the ket tree; in both
  halves children must precede their parents and the root coupling is
  the last line.

Every coupling becomes a node: bra couplings are numbered 0..order-1 in
post order and get sign '-', ket couplings are numbered order..2*order-1
and get sign '+'. A node's slots are [first child, second child, parent];
since a '-' node reads its slots in reverse, the initial formula carries
(-1)^(x+y+z) for every bra coupling (x, y, z).
Child edges leave a bra node and enter a ket node; the root edge runs from
the ket root to the bra root.

Usage Example:
--------------
    from braket import load_graph, parse_braket

    graph = parse_braket("<((a,b)e,c)f|(a,(b,c)g)f>")
    print(graph)

    graph = load_graph("ninej.yts")   # file in BRAKET or YTS format
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple, Union

from recoupling_coefficient import RecouplingFormula
from yutsis_graph import YutsisGraph


# A parsed coupling tree: a leaf label, or [left, right, label-or-None]
Tree = Union[str, list]

_RESERVED = "()<>|,"


def check_label(label: str) -> str:
    """Integer labels n become jn; everything else is kept."""
    try:
        int(label)
    except ValueError:
        return label
    return "j" + label


class _TreeParser:
    """Recursive descent over one side of a braket."""

    def __init__(self, text: str, side: str):
        self.text = text
        self.side = side
        self.pos = 0

    def error(self, message: str) -> ValueError:
        marker = f"{self.text[:self.pos]}^{self.text[self.pos:]}"
        return ValueError(f"{self.side} at position {self.pos}: {message}: {marker}")

    def skip_spaces(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def peek(self) -> str:
        self.skip_spaces()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def expect(self, char: str, message: str) -> None:
        if self.peek() != char:
            raise self.error(message)
        self.pos += 1

    def label(self, required: bool, message: str) -> Optional[str]:
        self.skip_spaces()
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in _RESERVED:
            self.pos += 1
        label = self.text[start:self.pos].strip()
        if not label:
            if required:
                raise self.error(message + " (empty label)")
            return None
        return check_label(label)

    def node(self) -> Tree:
        if self.peek() == "(":
            return self.coupling()
        return self.label(True, "expected a label or '('")

    def coupling(self) -> list:
        self.expect("(", "expected '('")
        left = self.node()
        self.expect(",", "expected label followed by ','")
        right = self.node()
        self.expect(")", "expected label followed by ')'")
        return [left, right, self.label(False, "")]

    def parse(self) -> list:
        if self.peek() != "(":
            raise self.error("expected '('")
        tree = self.coupling()
        if self.peek():
            raise self.error("unexpected text after the root label (no matching opening brace)")
        return tree


def _fill_labels(tree: Tree, counter: List[int]) -> None:
    """Name unnamed couplings t1, t2, ... in order of their closing braces."""
    if isinstance(tree, str):
        return
    _fill_labels(tree[0], counter)
    _fill_labels(tree[1], counter)
    if tree[2] is None:
        counter[0] += 1
        tree[2] = f"t{counter[0]}"


def _post_order(tree: Tree) -> List[Tuple[str, str, str]]:
    """(child, child, parent) labels of every coupling, children first."""
    if isinstance(tree, str):
        return []
    couplings = _post_order(tree[0]) + _post_order(tree[1])
    child0 = tree[0] if isinstance(tree[0], str) else tree[0][2]
    child1 = tree[1] if isinstance(tree[1], str) else tree[1][2]
    couplings.append((child0, child1, tree[2]))
    return couplings


def build_graph(couplings: List[Tuple[str, str, str]], order: int, *,
                new_label_base: str = "z", log=None) -> YutsisGraph:
    """
    Yutsis graph and initial formula from 2*order couplings (bra first,
    each tree in post order with its root last).

    Raises:
        ValueError: on duplicate labels, leaves or intermediate labels that
            do not appear in both trees, or differing root labels
    """
    if len(couplings) != 2 * order:
        raise ValueError(f"Expected {2 * order} couplings, got {len(couplings)}")
    ends: Dict[str, List[int]] = {}  # label -> [tail, head]
    slots = []
    for node, labels in enumerate(couplings):
        bra = node < order
        if len(set(labels)) != 3:
            raise ValueError(f"Coupling {labels} of node {node} repeats a label")
        for k, label in enumerate(labels):
            end = ends.setdefault(label, [-1, -1])
            # child edges: tail at a bra node, head at a ket node; parent edge reversed
            which = 0 if bra == (k < 2) else 1
            if end[which] != -1:
                raise ValueError(f"duplicate edge label {label!r} at node {node}")
            end[which] = node
        slots.append(list(labels))

    root = couplings[order - 1][2]
    if couplings[-1][2] != root:
        raise ValueError(f"Root labels from both trees differ: {root} != {couplings[-1][2]}")
    for label, (tail, head) in ends.items():
        if tail == -1 or head == -1:
            raise ValueError(f"Label {label!r} appears in only one of the two trees")

    a = [couplings[n][2] for n in range(order - 1)]
    b = [couplings[n][2] for n in range(order, 2 * order - 1)]
    s = [c[0] for c in couplings]
    formula = RecouplingFormula.from_trees(order, root, a, b, s)
    # bra nodes carry sign '-' and so read their couplings in reverse
    for labels in couplings[:order]:
        formula.invert_node(labels)
    edges = [(label, tail, head) for label, (tail, head) in ends.items()]
    signs = [node >= order for node in range(2 * order)]
    return YutsisGraph(slots, edges, signs, formula, new_label_base=new_label_base, log=log)


def parse_braket(braket: str, **kwargs) -> YutsisGraph:
    """
    Build a Yutsis graph from a ``<BRA|KET>`` string.

    Args:
        braket: the two coupling trees, e.g. "<((a,b)e,c)f|(a,(b,c)g)f>"
        **kwargs: forwarded to the YutsisGraph constructor (new_label_base, log)

    Returns:
        YutsisGraph carrying the initial RecouplingFormula

    Raises:
        ValueError: for malformed brakets or trees that do not match
    """
    text = braket.strip()
    if not text.startswith("<") or not text.endswith(">"):
        raise ValueError(f"Not a BRAKET (expected <BRA|KET>): {braket!r}")
    parts = text[1:-1].split("|")
    if len(parts) != 2:
        raise ValueError(f"Expected exactly one '|' in {braket!r}")
    bra_text, ket_text = parts[0].strip(), parts[1].strip()
    if not bra_text:
        raise ValueError("BRA is empty (<BRA|KET>)")
    if not ket_text:
        raise ValueError("KET is empty (<BRA|KET>)")

    bra = _TreeParser(bra_text, "<BRA|").parse()
    ket = _TreeParser(ket_text, "|KET>").parse()
    if bra[2] is None and ket[2] is not None:
        bra[2] = ket[2]
    counter = [0]
    _fill_labels(bra, counter)
    if ket[2] is None:
        ket[2] = bra[2]
    _fill_labels(ket, counter)

    bra_couplings = _post_order(bra)
    ket_couplings = _post_order(ket)
    if len(bra_couplings) != len(ket_couplings):
        raise ValueError(f"BRA has {len(bra_couplings)} couplings, KET has {len(ket_couplings)}")
    return build_graph(bra_couplings + ket_couplings, len(bra_couplings), **kwargs)


def read_yts(lines: Iterable[str], **kwargs) -> YutsisGraph:
    """
    Build a Yutsis graph from lines in YTS format.

    Raises:
        ValueError: for a malformed header, a line without three labels or
            inconsistent trees
    """
    content = [line.split() for line in lines if line.strip()]
    if not content:
        raise ValueError("YTS input is empty")
    header = content[0]
    if not 1 <= len(header) <= 2:
        raise ValueError(f"line 1: expected '[name] order', got {' '.join(header)!r}")
    try:
        order = int(header[-1])
    except ValueError as e:
        raise ValueError(f"line 1: order is not an integer: {e}") from e
    if order < 1:
        raise ValueError(f"line 1: order must be positive, got {order}")
    if len(content) - 1 < 2 * order:
        raise ValueError(f"Expected {2 * order} coupling lines, got {len(content) - 1}")
    couplings = []
    for number, tokens in enumerate(content[1:2 * order + 1], start=2):
        if len(tokens) != 3:
            raise ValueError(f"line {number}: expected 3 labels, got {len(tokens)}")
        couplings.append(tuple(check_label(t) for t in tokens))
    return build_graph(couplings, order, **kwargs)


def load_graph(source: str, **kwargs) -> YutsisGraph:
    """
    Graph from a braket string or from a file in BRAKET or YTS format.

    Raises:
        ValueError: if the file format cannot be recognised
    """
    if source.lstrip().startswith("<"):
        return parse_braket(source, **kwargs)
    with open(source, "r", encoding="utf-8") as f:
        lines = [line for line in f.read().splitlines() if line.strip()]
    if not lines:
        raise ValueError(f"{source} is empty")
    first = lines[0].strip()
    if first.startswith("<") and first.endswith(">"):
        return parse_braket(first, **kwargs)
    if len(lines) > 1 and len(lines[1].split()) == 3:
        return read_yts(lines, **kwargs)
    raise ValueError(f"{source}: unknown format, use BRAKET or YTS")
