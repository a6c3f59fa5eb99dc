"""CLI entrypoint: load calendar problem(s), run solver, and report metrics."""

import argparse
import csv
import json
import os
from pathlib import Path
from typing import Any

from solver import solve_problem
from src.csp.loader import load_problems
from src.csp.model import InvalidProblemError
from src.utils.io import save_json
from src.utils.trace import get_tracer, reset_tracer

DATA_PATH_ENV = "CALENDAR_DATA_PATH"
PROBLEM_SUFFIXES = [".json", ".jsonl", ".parquet", ".csv"]


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the calendar CSP solver on scheduling problems")
    parser.add_argument(
        "input",
        type=Path,
        nargs="?",
        default=None,
        help=f"Path to a problem file or directory of problems (defaults to ${DATA_PATH_ENV})",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Optional path to write results (.csv, or .json for a JSON array)",
    )
    parser.add_argument(
        "--fixed-point",
        action="store_true",
        help="Iterate arc consistency to a fixed point (AC-3) instead of a single sweep.",
    )
    parser.add_argument(
        "--trace-dir",
        type=Path,
        default=None,
        help="Optional directory receiving one solver trace CSV per problem.",
    )
    parser.add_argument(
        "--include-status",
        action="store_true",
        help="Include a 'status' column (solved / unsatisfiable / invalid / error).",
    )
    args = parser.parse_args(argv)

    if args.input is None:
        env_path = os.environ.get(DATA_PATH_ENV)
        if not env_path:
            parser.error(f"no input given and ${DATA_PATH_ENV} is not set")
        args.input = Path(env_path)
    return args


def format_solution(solution: Any) -> Any:
    """ISO date strings per meeting index, or None for an unsatisfiable problem."""
    if solution is None:
        return None
    return [d.isoformat() for d in solution]


def write_results_csv(results, output_path: Path, include_status: bool = False):
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        header = ["id", "solution", "steps"]
        if include_status:
            header.append("status")
        writer.writerow(header)

        for r in results:
            row = [
                r["id"],
                json.dumps(r["solution"], separators=(",", ":")),
                r["steps"],
            ]
            if include_status:
                row.append(r["status"])
            writer.writerow(row)


def _load_file(file_path: Path) -> list:
    try:
        return load_problems(str(file_path))
    except Exception as e:
        print(f"ERROR: Failed to load {file_path}: {e}")
        return []


def collect_problems(input_path: Path) -> list:
    problems = []
    if input_path.is_file():
        problems = _load_file(input_path)
    elif input_path.is_dir():
        for file_path in sorted(input_path.iterdir()):
            if file_path.suffix in PROBLEM_SUFFIXES:
                problems.extend(_load_file(file_path))
    else:
        raise ValueError(f"Input path {input_path} is neither file nor directory")
    return problems


def main(argv=None):
    args = parse_args(argv)
    problems = collect_problems(args.input)
    results = []

    for problem in problems:
        reset_tracer()
        tracer = get_tracer()
        problem_id = problem.get("id", "unknown")

        try:
            solution = solve_problem(problem, fixed_point=args.fixed_point, tracer=tracer)
            summary = tracer.summary()
            results.append({
                "id": problem_id,
                "solution": format_solution(solution),
                # Assignments are the search effort; filtering bookkeeping is not counted.
                "steps": summary["num_assignments"],
                "status": "solved" if solution is not None else "unsatisfiable",
            })
        except InvalidProblemError as e:
            print(f"ERROR: Invalid problem {problem_id}: {e}")
            results.append({"id": problem_id, "solution": None, "steps": -1, "status": "invalid"})
        except Exception as e:
            print(f"ERROR: Failed to solve problem {problem_id}: {e}")
            results.append({"id": problem_id, "solution": None, "steps": -1, "status": "error"})

        if args.trace_dir:
            tracer.to_csv(args.trace_dir / f"{problem_id}_trace.csv")

    if args.output:
        if args.output.suffix == ".json":
            save_json(args.output, results)
        else:
            write_results_csv(results, args.output, include_status=args.include_status)
    else:
        print(results)
    return results


if __name__ == "__main__":
    main()
