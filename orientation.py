"""
Orientation Module

Helpers that tell the graph mutators which node signs and edge directions to
flip before a rewrite, so that every bubble, triangle, interchange and final
triangular delta is brought into the single orientation pattern the
recoupling formula expects.

A node stands for a 3jm symbol whose columns are the node's three slots. The
*reading* of a node is the cyclic order of its edges: the slot order for
sign ``+`` and the reversed slot order for sign ``-``. Reversing the reading
costs (-1)^(a+b+c); any rearrangement of the slots that keeps the reading is
free. An edge ``tail -> head`` carries +m at its tail and -m at its head, so
reversing it costs (-1)^(2j).

Canonical patterns:

- bubble ``(b0, b1)``: both parallel edges ``b0 -> b1``, both outward edges
  pointing away, and both nodes reading (x, y, outward) for the same
  parallel edges x and y.
- triangle ``(t0, t1, t2)``: the triangle edges run around one cyclic
  direction, and every node reads (outward, incoming, outgoing).
- interchange on ``u -> v``: u reads (b, a, e), v reads (d, e, c), with
  a leaving u and c leaving v (b and c are the interchanged edges).
- triangular delta ``(n1, n2)``: all three edges in one direction and the
  two nodes reading the same cyclic order.

Usage Example:
--------------
    from orientation import UNIFORM_FLIPS, reading, same_cycle

    flips = UNIFORM_FLIPS[(True, True, False)]      # (False, False, True)
    same_cycle(reading([0, 1, 2], False), (2, 1, 0))  # True
"""

from __future__ import annotations

from typing import Dict, Sequence, Tuple


def reading(slots: Sequence[int], sign: bool) -> Tuple[int, int, int]:
    """
    Cyclic order in which a node reads its edges.

    Args:
        slots: the node's three slots
        sign: node sign (True = '+')

    Returns:
        The slots themselves for '+', reversed (first slot kept) for '-'
    """
    if sign:
        return slots[0], slots[1], slots[2]
    return slots[0], slots[2], slots[1]


def same_cycle(first: Sequence[int], second: Sequence[int]) -> bool:
    """True if ``second`` is a rotation of ``first``."""
    if sorted(first) != sorted(second):
        raise ValueError(f"{tuple(second)} is not an arrangement of {tuple(first)}")
    start = list(first).index(second[0])
    return all(first[(start + k) % 3] == second[k] for k in range(3))


def sign_for(slots: Sequence[int], wanted: Sequence[int]) -> bool:
    """The sign that makes a node with ``slots`` read ``wanted``."""
    return same_cycle(slots, wanted)


# key: for each of two parallel edges, whether it runs from the first node
# to the second; both end up pointing the same way
PARALLEL_FLIPS: Dict[Tuple[bool, bool], Tuple[bool, bool]] = {
    (True, True): (False, False),
    (False, False): (False, False),
    (True, False): (False, True),
    (False, True): (True, False),
}

# key: for each of three edges, whether it runs in the reference direction
# (t0->t1, t1->t2, t2->t0 for a triangle; n1->n2 for a triangular delta).
# The minority is flipped, so at most one edge changes.
UNIFORM_FLIPS: Dict[Tuple[bool, bool, bool], Tuple[bool, bool, bool]] = {
    (False, False, False): (False, False, False),
    (True, False, False): (True, False, False),
    (False, True, False): (False, True, False),
    (False, False, True): (False, False, True),
    (True, True, False): (False, False, True),
    (True, False, True): (False, True, False),
    (False, True, True): (True, False, False),
    (True, True, True): (False, False, False),
}
