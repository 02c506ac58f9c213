"""
Command line runner: reduce a Yutsis graph and write the resulting
recoupling formula.

Usage Example:
--------------
    yutsis-reduce "<((a,b)e,(c,d)f)j|((a,c)g,(b,d)h)j>" --heuristic best --out-prefix out/ninej
    yutsis-reduce ninej.yts --heuristic edge-cost --rules --latex
"""

from __future__ import annotations

import argparse
import json
import os
import sys

import sympy as sp

from braket import load_graph
from cca_heuristics import make_heuristic
from cycle_cost_algorithm import CycleCostAlgorithm, reduce_best_of_strategies
from cycle_generator import CycleGenerator
from path_generator import PathGenerator


HEURISTICS = ("edge-cost", "more-smaller", "cycle-count", "best")


def main() -> None:
    ap = argparse.ArgumentParser(description="Reduce a Yutsis graph to a summation formula over 6j symbols.")
    ap.add_argument("graph", help='braket string, e.g. "<((a,b)e,c)f|(a,(b,c)g)f>", or a BRAKET/YTS file')
    ap.add_argument("--heuristic", choices=HEURISTICS, default="edge-cost",
                    help="interchange selection (best = both cycle count policies, fewest operations)")
    ap.add_argument("--ops", action="store_true", help="trace every graph operation on stderr")
    ap.add_argument("--rules", action="store_true", help="trace chosen cycles and equivalent operations on stderr")
    ap.add_argument("--cycles", action="store_true", help="print the relevant cycles of the initial graph")
    ap.add_argument("--paths", action="store_true", help="print the shortest paths of the initial graph")
    ap.add_argument("--out-prefix", default=None, help="write <prefix>.formula.txt, .formula.srepr and .meta.json")
    ap.add_argument("--latex", action="store_true", help="also write LaTeX (<prefix>.formula.tex)")
    ap.add_argument("--report", action="store_true", help="print a performance report")
    args = ap.parse_args()

    try:
        graph = load_graph(args.graph, log=sys.stderr if args.ops else None)
    except ValueError as e:
        ap.error(f"Error parsing graph: {e}")
    except OSError as e:
        ap.error(f"Error reading {args.graph}: {e}")

    print(graph)
    if args.paths:
        print(PathGenerator(graph))
    if args.cycles:
        CycleGenerator(graph).print_cycles()

    rules_log = sys.stderr if args.rules else None
    if args.heuristic == "best":
        algorithm = reduce_best_of_strategies(graph, log=rules_log)
        graph = algorithm.graph
    else:
        algorithm = CycleCostAlgorithm(graph, make_heuristic(args.heuristic, graph), log=rules_log)
        algorithm.reduce()

    formula = graph.formula
    print(formula)
    print(f"#operations: {algorithm.nr_of_operations} #summations: {formula.nr_of_summations()} "
          f"#6j's: {formula.nr_of_6js()}")
    if args.report:
        algorithm.print_performance_report()

    if args.out_prefix is None:
        return
    expr = formula.to_sympy()
    meta = {
        "graph": args.graph,
        "heuristic": args.heuristic,
        "operations": algorithm.operations,
        "nr_of_operations": algorithm.nr_of_operations,
        "nr_of_interchanges": algorithm.nr_of_interchanges,
        "nr_of_summations": formula.nr_of_summations(),
        "nr_of_6js": formula.nr_of_6js(),
        "free_symbols": sorted(str(sym) for sym in getattr(expr, 'free_symbols', [])),
    }

    # Ensure output directory exists
    out_dir = os.path.dirname(args.out_prefix)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    with open(f"{args.out_prefix}.formula.txt", "w", encoding="utf-8") as f:
        f.write(str(formula))
    with open(f"{args.out_prefix}.formula.srepr", "w", encoding="utf-8") as f:
        f.write(sp.srepr(expr))
    with open(f"{args.out_prefix}.meta.json", "w", encoding="utf-8") as f:
        json.dump(meta, f, indent=2)
    if args.latex:
        with open(f"{args.out_prefix}.formula.tex", "w", encoding="utf-8") as f:
            f.write(sp.latex(expr))


if __name__ == "__main__":
    main()
