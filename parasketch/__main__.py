import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from parasketch import (
    Failed,
    Sketch,
    SolveOptions,
    UnderConstrained,
    VariableMap,
    get_default_solve_options,
    validate_sketch,
)
from parasketch.solver import ConstraintSolver, evaluate_residuals, residual_breakdown

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _build_options(args: argparse.Namespace) -> SolveOptions:
    options = get_default_solve_options()
    if args.tolerance is not None:
        options.tolerance = args.tolerance
    if args.max_iterations is not None:
        options.max_iterations = args.max_iterations
    if args.damping is not None:
        options.damping = args.damping
    return options


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Solve a 2D parametric sketch")
    parser.add_argument("path", help="Path to the sketch JSON document")
    parser.add_argument("--tolerance", type=float, help="Residual norm treated as converged")
    parser.add_argument("--max-iterations", type=int, help="Newton iteration budget")
    parser.add_argument("--damping", type=float, help="Step damping, clamped to [0.1, 1.0]")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--output", help="Write the solved sketch as JSON to the given path")
    parser.add_argument(
        "--no-validate",
        action="store_true",
        help="Skip structural validation and let the solver ignore references to entities of the wrong kind",
    )
    parser.add_argument(
        "--residuals",
        action="store_true",
        help="Print the residual rows of every constraint after solving",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    with open(args.path, encoding="utf-8") as fin:
        data = json.load(fin)

    logger.info("Loading sketch from %s", args.path)
    sketch = Sketch.from_dict(data)
    if not args.no_validate:
        validate_sketch(sketch)
        logger.info("Validation succeeded")

    solver = ConstraintSolver(_build_options(args))
    result = sketch.solve(solver)

    var_map = VariableMap.from_sketch(sketch)
    norm = float(np.linalg.norm(evaluate_residuals(sketch, var_map)))

    print(f"Sketch: {sketch.name}")
    print(f"Result: {result.kind}")
    if isinstance(result, UnderConstrained):
        print(f"DOF: {result.dof}")
    else:
        print(f"DOF: {sketch.degrees_of_freedom()}")
    if isinstance(result, Failed):
        print(f"Reason: {result.reason}")
    print(f"Residual norm: {norm:.3e}")
    print("Points:")
    for point_id in sketch.point_ids:
        x, y = sketch.point_position(point_id)
        print(f"  {point_id}: ({x:.6f}, {y:.6f})")

    if args.residuals:
        print("Residuals:")
        for entry in residual_breakdown(sketch, var_map):
            rows = ", ".join(f"{value:.3e}" for value in entry.values) or "(unresolved)"
            print(f"  {entry.type_name} {entry.constraint_id}: {rows}")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Writing solved sketch to %s", output_path)
        output_path.write_text(json.dumps(sketch.to_dict(), indent=2), encoding="utf-8")
        print(f"Solved sketch written to {output_path}")

    if isinstance(result, Failed):
        raise SystemExit(1)


if __name__ == "__main__":
    main(sys.argv[1:])
