"""Top-level CSP solve interface.

Expose `solve_problem(problem)` that accepts either a pre-built CalendarProblem or a raw
problem dictionary compatible with `src.csp.parser.parse_problem`.
"""

from datetime import date
from typing import Any, List, Optional

from src.csp import solver_core
from src.csp.model import CalendarProblem
from src.csp.parser import parse_problem
from src.utils.trace import Tracer


def solve_problem(
    problem: Any, fixed_point: bool = False, tracer: Optional[Tracer] = None
) -> Optional[List[date]]:
    """
    Solve a calendar problem and return one date per meeting index, or None if unsatisfiable.
    Accepts:
      - CalendarProblem instances (used directly)
      - Raw problem dictionaries (parsed via `parse_problem`)
    """
    if isinstance(problem, CalendarProblem):
        calendar = problem
    elif isinstance(problem, dict):
        calendar = parse_problem(problem)
    else:
        raise TypeError("solve_problem expects a CalendarProblem instance or problem dictionary")

    return solver_core.solve_calendar(calendar, fixed_point=fixed_point, tracer=tracer)


__all__ = ["solve_problem"]
