"""
Recoupling Coefficient Module

Symbolic accumulator for the summation formula of a general angular momentum
recoupling coefficient (3nj coefficient). The Yutsis graph calls one method
per elementary rewrite and this module collects the factor each rewrite
contributes:

- phase factors (-1)^(c*j) with integer coefficients c taken modulo 4
- weight factors (2j+1)^(e/2)
- Kronecker deltas produced by bubble removals
- 6j symbols produced by triangle removals and interchanges
- summations introduced by interchanges, nested in creation order

The formula can be printed in plain text, converted to a sympy expression
(for LaTeX output) and evaluated exactly for concrete angular momenta using
sympy's Wigner 6j implementation.

Usage Example:
--------------
    from recoupling_coefficient import RecouplingFormula

    formula = RecouplingFormula()
    formula.triangle(["a", "b", "c"], ["d", "e", "f"])
    print(formula)                      # {d,e,f;a,b,c}
    print(formula.evaluate({"a": 1, "b": 1, "c": 1,
                            "d": 1, "e": 1, "f": 1}))   # 1/6
"""

from __future__ import annotations

import copy
import re
from typing import Dict, List, Mapping, NamedTuple, Sequence, Tuple, Union

import sympy as sp
from sympy.physics.wigner import wigner_6j


# Unevaluated 6j symbol used in symbolic output
SixJ = sp.Function("SixJ")

Number = Union[int, float, str, sp.Rational]


def _natural_key(label: str):
    """Sort key ordering 'j2' before 'j10'."""
    return [int(part) if part.isdigit() else part for part in re.split(r"(\d+)", label)]


def _symbol(label: str) -> sp.Symbol:
    return sp.Symbol(label, nonnegative=True)


def _triad(a, b, c) -> bool:
    """Triangle condition for three angular momenta."""
    if not (a + b + c).is_integer:
        return False
    return abs(a - b) <= c <= a + b


class SixJSymbol(NamedTuple):
    """The 6j symbol {top; bottom}."""
    top: Tuple[str, str, str]
    bottom: Tuple[str, str, str]

    def labels(self) -> Tuple[str, ...]:
        return self.top + self.bottom

    def to_sympy(self) -> sp.Expr:
        return SixJ(*[_symbol(label) for label in self.labels()])

    def evaluate(self, js: Mapping[str, sp.Rational]) -> sp.Expr:
        j1, j2, j3, j4, j5, j6 = [js[label] for label in self.labels()]
        if not (_triad(j1, j2, j3) and _triad(j1, j5, j6)
                and _triad(j4, j2, j6) and _triad(j4, j5, j3)):
            return sp.Integer(0)
        return wigner_6j(j1, j2, j3, j4, j5, j6)

    def __str__(self) -> str:
        return "{" + ",".join(self.top) + ";" + ",".join(self.bottom) + "}"


class Delta(NamedTuple):
    """Kronecker delta between two labels."""
    left: str
    right: str

    def labels(self) -> Tuple[str, ...]:
        return (self.left, self.right)

    def to_sympy(self) -> sp.Expr:
        return sp.KroneckerDelta(_symbol(self.left), _symbol(self.right))

    def evaluate(self, js: Mapping[str, sp.Rational]) -> sp.Expr:
        return sp.Integer(1) if js[self.left] == js[self.right] else sp.Integer(0)

    def __str__(self) -> str:
        return f"delta({self.left},{self.right})"


class PreFactor:
    """
    Product of phase factors and (2j+1) weights.

    Attributes:
        phases: label -> c, meaning (-1)^(c*label), with c in {1, 2, 3}
        powers: label -> e, meaning (2*label+1)^(e/2), with e != 0
    """

    def __init__(self):
        self.phases: Dict[str, int] = {}
        self.powers: Dict[str, int] = {}

    def append_phase(self, label: str, coeff: int = 1) -> None:
        new = (self.phases.get(label, 0) + coeff) % 4
        if new:
            self.phases[label] = new
        else:
            self.phases.pop(label, None)

    def append_power(self, label: str, exp: int = 2) -> None:
        new = self.powers.get(label, 0) + exp
        if new:
            self.powers[label] = new
        else:
            self.powers.pop(label, None)

    def is_empty(self) -> bool:
        return not self.phases and not self.powers

    def labels(self) -> List[str]:
        return list(self.phases) + list(self.powers)

    def to_sympy(self) -> sp.Expr:
        expr = sp.Integer(1)
        if self.phases:
            exponent = sum(coeff * _symbol(label) for label, coeff in self.phases.items())
            expr *= sp.Pow(-1, exponent, evaluate=False)
        for label, exp in self.powers.items():
            expr *= (2 * _symbol(label) + 1) ** sp.Rational(exp, 2)
        return expr

    def evaluate(self, js: Mapping[str, sp.Rational]) -> sp.Expr:
        exponent = sum(coeff * js[label] for label, coeff in self.phases.items())
        value = sp.Integer(-1) ** exponent
        for label, exp in self.powers.items():
            value *= (2 * js[label] + 1) ** sp.Rational(exp, 2)
        return value

    def __str__(self) -> str:
        parts = []
        if self.phases:
            terms = []
            for i, label in enumerate(sorted(self.phases, key=_natural_key)):
                coeff = self.phases[label]
                if coeff == 3:
                    terms.append("-" + label)
                else:
                    sign = "+" if i > 0 else ""
                    terms.append(sign + ("2*" if coeff == 2 else "") + label)
            parts.append("(-1)^(" + "".join(terms) + ")")
        for label in sorted(self.powers, key=_natural_key):
            exp = self.powers[label]
            if exp == 2:
                suffix = ""
            elif exp % 2 == 0:
                suffix = f"^{exp // 2}" if exp > 0 else f"^({exp // 2})"
            else:
                suffix = f"^({exp}/2)"
            parts.append(f"(2*{label}+1){suffix}")
        return "*".join(parts)


class FactorProduct:
    """A prefactor followed by 6j symbols and Kronecker deltas."""

    def __init__(self):
        self.prefactor = PreFactor()
        self.factors: List[Union[SixJSymbol, Delta]] = []

    def append(self, factor: Union[SixJSymbol, Delta]) -> None:
        self.factors.append(factor)

    def to_sympy(self) -> sp.Expr:
        expr = self.prefactor.to_sympy()
        for factor in self.factors:
            expr *= factor.to_sympy()
        return expr

    def evaluate(self, js: Mapping[str, sp.Rational]) -> sp.Expr:
        value = self.prefactor.evaluate(js)
        for factor in self.factors:
            if value == 0:
                break
            value *= factor.evaluate(js)
        return value

    def __str__(self) -> str:
        return str(self.prefactor) + "".join(str(f) for f in self.factors)


class Summation(FactorProduct):
    """
    Sum over ``variable`` where (a, b, variable) and (c, d, variable) are
    coupled in a node; the range is max(|a-b|,|c-d|)..min(a+b,c+d).
    """

    def __init__(self, variable: str, a: str, b: str, c: str, d: str):
        super().__init__()
        self.variable = variable
        self.couplings = (a, b, c, d)

    def bounds(self, js: Mapping[str, sp.Rational]) -> Tuple[sp.Rational, sp.Rational]:
        a, b, c, d = [js[label] for label in self.couplings]
        return max(abs(a - b), abs(c - d)), min(a + b, c + d)

    def symbolic_bounds(self) -> Tuple[sp.Expr, sp.Expr]:
        a, b, c, d = [_symbol(label) for label in self.couplings]
        return sp.Max(sp.Abs(a - b), sp.Abs(c - d)), sp.Min(a + b, c + d)

    def __str__(self) -> str:
        a, b, c, d = self.couplings
        head = f"sum({self.variable},max(|{a}-{b}|,|{c}-{d}|)..min({a}+{b},{c}+{d}))"
        return head + super().__str__()


class RecouplingFormula:
    """
    Summation formula in terms of 6j symbols built up during a reduction.

    The five mutating methods (invert_node, invert_edge, bubble, triangle,
    interchange) are the interface used by ``YutsisGraph``. Each factor is
    attached to the innermost (last created) summation whose variable it
    mentions, or to the outer product when it mentions none.
    """

    def __init__(self):
        self.outer = FactorProduct()
        self.summations: List[Summation] = []
        self._nr_of_6js = 0

    @classmethod
    def from_trees(
        cls,
        order: int,
        root: str,
        a: Sequence[str],
        b: Sequence[str],
        s: Sequence[str],
    ) -> "RecouplingFormula":
        """
        Initial factors of the transformation from two coupling trees to the
        Yutsis graph.

        Args:
            order: number of couplings in each tree
            root: label of the common root
            a: intermediate labels of the bra tree (order - 1 of them)
            b: intermediate labels of the ket tree (order - 1 of them)
            s: first coupled label of every node (2 * order of them)

        Returns:
            RecouplingFormula holding (-1)^(2root+2Σb+2Σs) Π(2a+1)^(1/2)(2b+1)^(1/2)
        """
        if len(a) != order - 1 or len(b) != order - 1 or len(s) != 2 * order:
            raise ValueError(
                f"Expected {order - 1} intermediate labels per tree and {2 * order} "
                f"first-coupled labels, got {len(a)}, {len(b)} and {len(s)}"
            )
        formula = cls()
        pf = formula.outer.prefactor
        pf.append_phase(root, 2)
        for label in b:
            pf.append_phase(label, 2)
        for label in s:
            pf.append_phase(label, 2)
        for label in a:
            pf.append_power(label, 1)
        for label in b:
            pf.append_power(label, 1)
        return formula

    def nr_of_6js(self) -> int:
        return self._nr_of_6js

    def nr_of_summations(self) -> int:
        return len(self.summations)

    def copy(self) -> "RecouplingFormula":
        return copy.deepcopy(self)

    def _target(self, labels: Sequence[str]) -> FactorProduct:
        for summation in reversed(self.summations):
            if summation.variable in labels:
                return summation
        return self.outer

    # ------------------------------------------------------------------
    # Operations called by the Yutsis graph
    # ------------------------------------------------------------------
    def invert_node(self, labels: Sequence[str]) -> None:
        """Sign flip of a node coupling the three given labels."""
        for label in labels:
            self._target((label,)).prefactor.append_phase(label, 1)

    def invert_edge(self, label: str) -> None:
        """Direction flip of an edge: (-1)^(2*label)."""
        self._target((label,)).prefactor.append_phase(label, 2)

    def bubble(self, surviving: str, removed: str) -> None:
        """Bubble removal: delta(surviving, removed) / (2*surviving+1)."""
        target = self._target((surviving, removed))
        target.prefactor.append_power(surviving, -2)
        target.append(Delta(surviving, removed))

    def triangle(self, triangle_labels: Sequence[str], outward_labels: Sequence[str]) -> None:
        """Triangle removal: the 6j symbol {outward; triangle}."""
        if len(triangle_labels) != 3 or len(outward_labels) != 3:
            raise ValueError("A triangle needs three edge labels and three outward labels")
        six_j = SixJSymbol(tuple(outward_labels), tuple(triangle_labels))
        self._nr_of_6js += 1
        self._target(six_j.labels()).append(six_j)

    def interchange(self, e: str, b: str, c: str, a: str, d: str, f: str) -> None:
        """
        Interchange on the edge labelled ``e`` which is relabelled ``f``.

        ``b`` and ``c`` are the interchanged edges, ``a`` and ``d`` the
        outward edges of the two base nodes. Before the interchange the base
        nodes couple (a, b, e) and (d, c, e), afterwards (a, c, f) and
        (d, b, f). Introduces

            sum_f (-1)^(3a+c+f) (2f+1) {a,c,f;d,b,e}

        which holds when the base nodes read (b, a, e) and (d, e, c), the
        edge e runs between them in that order and a and c point away from
        their base nodes.
        """
        summation = Summation(f, a, c, d, b)
        summation.prefactor.append_phase(a, 3)
        summation.prefactor.append_phase(c, 1)
        summation.prefactor.append_phase(f, 1)
        summation.prefactor.append_power(f, 2)
        summation.append(SixJSymbol((a, c, f), (d, b, e)))
        self._nr_of_6js += 1
        self.summations.append(summation)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    def to_sympy(self) -> sp.Expr:
        """Symbolic expression with nested ``sp.Sum`` objects and ``SixJ`` calls."""
        body = sp.Integer(1)
        for summation in reversed(self.summations):
            lower, upper = summation.symbolic_bounds()
            body = sp.Sum(summation.to_sympy() * body,
                          (_symbol(summation.variable), lower, upper))
        return self.outer.to_sympy() * body

    def evaluate(self, values: Mapping[str, Number]) -> sp.Expr:
        """
        Exact value of the formula for concrete angular momenta.

        Args:
            values: label -> angular momentum (integer or half-integer, given
                as int, float, string such as "1/2" or sympy Rational). The
                summation variables are summed over and need not be given.

        Returns:
            Exact sympy number

        Raises:
            ValueError: if a value is not a non-negative (half-)integer or a
                label has no value
        """
        js: Dict[str, sp.Rational] = {}
        for label, value in values.items():
            j = sp.Rational(value)
            if j < 0 or not (2 * j).is_integer:
                raise ValueError(f"Label {label!r} must be a non-negative (half-)integer, got {value!r}")
            js[label] = j
        summed = {s.variable for s in self.summations}
        needed = set(self.outer.prefactor.labels())
        for factor in self.outer.factors:
            needed.update(factor.labels())
        for summation in self.summations:
            needed.update(summation.couplings)
            needed.update(summation.prefactor.labels())
            for factor in summation.factors:
                needed.update(factor.labels())
        missing = sorted(needed - summed - set(js), key=_natural_key)
        if missing:
            raise ValueError(f"No value given for label(s): {', '.join(missing)}")
        return sp.simplify(self.outer.evaluate(js) * self._sum_from(0, js))

    def _sum_from(self, index: int, js: Dict[str, sp.Rational]) -> sp.Expr:
        if index == len(self.summations):
            return sp.Integer(1)
        summation = self.summations[index]
        lower, upper = summation.bounds(js)
        total = sp.Integer(0)
        f = lower
        while f <= upper:
            inner = dict(js)
            inner[summation.variable] = f
            term = summation.evaluate(inner)
            if term != 0:
                total += term * self._sum_from(index + 1, inner)
            f += 1
        return total

    def __str__(self) -> str:
        text = str(self.outer) + "".join(str(s) for s in self.summations)
        return text if text else "1"
