"""CSP core data structures for calendar scheduling problems."""

import operator
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Sequence, Set, Union

OPERATORS: Dict[str, Callable[[date, date], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_CONVERSE = {
    "==": "==",
    "!=": "!=",
    "<": ">",
    "<=": ">=",
    ">": "<",
    ">=": "<=",
}


class InvalidProblemError(ValueError):
    """Raised when a problem violates the solver's input preconditions."""


def compare(op: str, left: date, right: date) -> bool:
    """Evaluate `left op right` as a date comparison."""
    try:
        return OPERATORS[op](left, right)
    except KeyError:
        raise InvalidProblemError(f"Unknown operator: {op!r}") from None


def converse(op: str) -> str:
    """Relation seen from the right operand, e.g. `l < r` holds iff `r > l`."""
    try:
        return _CONVERSE[op]
    except KeyError:
        raise InvalidProblemError(f"Unknown operator: {op!r}") from None


@dataclass(frozen=True)
class UnaryDateConstraint:
    left: int
    op: str
    literal: date

    arity = 1

    @property
    def scope(self) -> List[int]:
        return [self.left]

    @property
    def description(self) -> str:
        return f"M{self.left} {self.op} {self.literal.isoformat()}"

    def is_satisfied(self, assignment: Sequence[date]) -> bool:
        return compare(self.op, assignment[self.left], self.literal)


@dataclass(frozen=True)
class BinaryDateConstraint:
    left: int
    op: str
    right: int

    arity = 2

    @property
    def scope(self) -> List[int]:
        return [self.left, self.right]

    @property
    def description(self) -> str:
        return f"M{self.left} {self.op} M{self.right}"

    def is_satisfied(self, assignment: Sequence[date]) -> bool:
        return compare(self.op, assignment[self.left], assignment[self.right])


DateConstraint = Union[UnaryDateConstraint, BinaryDateConstraint]


@dataclass
class DateVar:
    index: int
    domain: Set[date] = field(default_factory=set)


@dataclass
class CalendarProblem:
    """
    A calendar satisfaction problem: `n_meetings` meetings, each to be placed on
    one day of the inclusive range, subject to unary and binary date constraints.
    Preconditions are checked on construction so that a malformed request fails
    before any search starts.
    """

    n_meetings: int
    range_start: date
    range_end: date
    constraints: List[DateConstraint] = field(default_factory=list)
    id: str = "unknown"

    def __post_init__(self) -> None:
        if isinstance(self.n_meetings, bool) or not isinstance(self.n_meetings, int):
            raise InvalidProblemError(
                f"n_meetings must be an integer, got {type(self.n_meetings).__name__}"
            )
        if self.n_meetings <= 0:
            raise InvalidProblemError(f"n_meetings must be positive, got {self.n_meetings}")
        for label, value in (("range_start", self.range_start), ("range_end", self.range_end)):
            if not isinstance(value, date) or isinstance(value, datetime):
                raise InvalidProblemError(f"{label} must be a date, got {value!r}")
        if self.range_end < self.range_start:
            raise InvalidProblemError(
                f"Inverted date range: {self.range_start.isoformat()} > {self.range_end.isoformat()}"
            )

        self.constraints = list(self.constraints)
        for constraint in self.constraints:
            self._validate_constraint(constraint)

    def _validate_constraint(self, constraint: DateConstraint) -> None:
        if not isinstance(constraint, (UnaryDateConstraint, BinaryDateConstraint)):
            raise InvalidProblemError(f"Unsupported constraint: {constraint!r}")
        if constraint.op not in OPERATORS:
            raise InvalidProblemError(f"Unknown operator in {constraint!r}")
        if isinstance(constraint, UnaryDateConstraint) and (
            not isinstance(constraint.literal, date) or isinstance(constraint.literal, datetime)
        ):
            raise InvalidProblemError(f"Unary constraint literal must be a date in {constraint!r}")
        for index in constraint.scope:
            if isinstance(index, bool) or not isinstance(index, int):
                raise InvalidProblemError(f"Meeting index must be an integer in {constraint!r}")
            if not 0 <= index < self.n_meetings:
                raise InvalidProblemError(
                    f"Meeting index {index} out of range [0, {self.n_meetings}) in "
                    f"{constraint.description}"
                )

    def unary_constraints(self) -> List[UnaryDateConstraint]:
        return [c for c in self.constraints if c.arity == 1]

    def binary_constraints(self) -> List[BinaryDateConstraint]:
        return [c for c in self.constraints if c.arity == 2]
