"""CSP models, parsing, and solver core for calendar scheduling problems."""

from .model import (
    BinaryDateConstraint,
    CalendarProblem,
    DateVar,
    InvalidProblemError,
    UnaryDateConstraint,
)
from .solver_core import check_solution, solve, solve_calendar
from .parser import parse_problem

__all__ = [
    "BinaryDateConstraint",
    "CalendarProblem",
    "DateVar",
    "InvalidProblemError",
    "UnaryDateConstraint",
    "check_solution",
    "solve",
    "solve_calendar",
    "parse_problem",
]
