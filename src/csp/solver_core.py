"""Calendar CSP solver: node consistency, arc consistency, then backtracking search."""

from collections import deque
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Deque, Iterable, Iterator, List, Optional, Sequence, Tuple

from .model import (
    BinaryDateConstraint,
    CalendarProblem,
    DateConstraint,
    DateVar,
    InvalidProblemError,
    compare,
    converse,
)
from src.utils.trace import Tracer

Assignment = List[date]
Domains = List[DateVar]


def solve(
    n_meetings: int,
    range_start: date,
    range_end: date,
    constraints: Iterable[DateConstraint],
    fixed_point: bool = False,
    tracer: Optional[Tracer] = None,
) -> Optional[Assignment]:
    """
    Schedule `n_meetings` meetings between `range_start` and `range_end` (inclusive).
    Returns one date per meeting index, or None if no schedule satisfies the constraints.
    Raises InvalidProblemError for malformed input. Steps are recorded on `tracer` when one
    is given; otherwise nothing outlives the call.
    """
    problem = CalendarProblem(
        n_meetings=n_meetings,
        range_start=range_start,
        range_end=range_end,
        constraints=list(constraints),
    )
    return solve_calendar(problem, fixed_point=fixed_point, tracer=tracer)


def solve_calendar(
    problem: CalendarProblem, fixed_point: bool = False, tracer: Optional[Tracer] = None
) -> Optional[Assignment]:
    """Run the modeling, filtering and search phases on a validated problem."""
    tracer = _local_tracer(tracer)
    domains = model_domains(problem.n_meetings, problem.range_start, problem.range_end)

    if not node_consistency(domains, problem.unary_constraints(), tracer):
        tracer.log_no_solution("Empty domain after node consistency")
        return None
    binary = problem.binary_constraints()
    if not arc_consistency(domains, binary, fixed_point=fixed_point, tracer=tracer):
        tracer.log_no_solution("Empty domain after arc consistency")
        return None

    result = backtracking(problem.n_meetings, domains, problem.constraints, tracer)
    if result is None:
        tracer.log_no_solution()
    return result


def _local_tracer(tracer: Optional[Tracer]) -> Tracer:
    # A disabled tracer keeps direct library calls free of recorded state.
    return tracer if tracer is not None else Tracer(enabled=False)


def model_domains(n_meetings: int, range_start: date, range_end: date) -> Domains:
    """One independent domain per meeting, each holding every day of the inclusive range."""
    if range_end < range_start:
        raise InvalidProblemError(
            f"Inverted date range: {range_start.isoformat()} > {range_end.isoformat()}"
        )
    span = (range_end - range_start).days
    days = [range_start + timedelta(days=offset) for offset in range(span + 1)]
    return [DateVar(index=i, domain=set(days)) for i in range(n_meetings)]


def node_consistency(
    domains: Domains, constraints: Iterable[DateConstraint], tracer: Optional[Tracer] = None
) -> bool:
    """Prune each domain with its unary constraints. False if some domain ends up empty."""
    tracer = _local_tracer(tracer)
    applied = 0
    removed = 0
    for constraint in constraints:
        if constraint.arity != 1:
            continue
        applied += 1
        var = domains[constraint.left]
        to_remove = {d for d in var.domain if not compare(constraint.op, d, constraint.literal)}
        if to_remove:
            var.domain -= to_remove
            removed += len(to_remove)
            tracer.log_domain_reduction(
                variable=var.index, new_domain_size=len(var.domain), reason=constraint.description
            )
    if applied:
        tracer.log_node_consistency(constraints_applied=applied, values_removed=removed)
    return all(var.domain for var in domains)


@dataclass(frozen=True)
class _Arc:
    """Directed view of a binary constraint: values of `xi` need support in `xj` under `op`."""

    xi: int
    op: str
    xj: int
    constraint: BinaryDateConstraint


def _arcs_of(constraint: BinaryDateConstraint) -> Tuple[_Arc, _Arc]:
    return (
        _Arc(constraint.left, constraint.op, constraint.right, constraint),
        _Arc(constraint.right, converse(constraint.op), constraint.left, constraint),
    )


def arc_consistency(
    domains: Domains,
    constraints: Iterable[DateConstraint],
    fixed_point: bool = False,
    tracer: Optional[Tracer] = None,
) -> bool:
    """
    Prune domains with the binary constraints.

    By default each constraint is swept once, left side first, then the right side
    against the already-updated left domain. With `fixed_point=True` this runs AC-3:
    arcs pointing at a shrunk domain are re-enqueued until nothing changes.
    False if some domain ends up empty.
    """
    tracer = _local_tracer(tracer)
    binary = [c for c in constraints if c.arity == 2]

    arcs = [arc for constraint in binary for arc in _arcs_of(constraint)]
    queue: Deque[_Arc] = deque(arcs)

    arcs_processed = 0
    removed = 0
    while queue:
        arc = queue.popleft()
        arcs_processed += 1
        pruned = _revise(domains, arc)
        if not pruned:
            continue
        removed += pruned
        tracer.log_domain_reduction(
            variable=arc.xi,
            new_domain_size=len(domains[arc.xi].domain),
            reason=arc.constraint.description,
        )
        if not domains[arc.xi].domain:
            tracer.log_arc_consistency(arcs_processed, removed, fixed_point)
            return False
        if fixed_point:
            # Arcs that look for support in the shrunk domain. The reverse arc of the
            # same constraint is skipped: removed values supported nothing there.
            for other in arcs:
                if other.xj == arc.xi and other.constraint is not arc.constraint and other not in queue:
                    queue.append(other)

    if arcs_processed:
        tracer.log_arc_consistency(arcs_processed, removed, fixed_point)
    return all(var.domain for var in domains)


def _revise(domains: Domains, arc: _Arc) -> int:
    """Remove values of `xi` without a supporting value in `xj`. Returns how many were removed."""
    xi_domain = domains[arc.xi].domain
    if arc.xi == arc.xj:
        # A meeting compared with itself: the only candidate partner is the value itself.
        to_remove = {v for v in xi_domain if not compare(arc.op, v, v)}
    else:
        xj_domain = domains[arc.xj].domain
        to_remove = {
            v for v in xi_domain if not any(compare(arc.op, v, other) for other in xj_domain)
        }
    xi_domain -= to_remove
    return len(to_remove)


@dataclass
class _Frame:
    """A level of the search stack: a meeting index and the dates not tried yet."""

    index: int
    candidates: Iterator[date]


def _order_domain_values(var: DateVar) -> List[date]:
    # Earliest date first, for reproducible output.
    return sorted(var.domain)


def backtracking(
    n_meetings: int,
    domains: Domains,
    constraints: Sequence[DateConstraint],
    tracer: Optional[Tracer] = None,
) -> Optional[Assignment]:
    """
    Depth-first search over meetings 0..n-1 in index order.

    The partial assignment and an explicit stack of frames replace recursion: pushing a
    frame follows an assignment, popping one undoes it. Only complete assignments are
    checked, against every constraint; the first valid one wins.
    """
    tracer = _local_tracer(tracer)
    assignment: Assignment = []
    stack: List[_Frame] = [_Frame(0, iter(_order_domain_values(domains[0])))]

    while stack:
        frame = stack[-1]
        if len(assignment) > frame.index:
            assignment.pop()

        value = next(frame.candidates, None)
        if value is None:
            stack.pop()
            tracer.log_backtrack(frame.index)
            continue

        assignment.append(value)
        tracer.log_assign(
            variable=frame.index,
            value=value,
            domain_size=len(domains[frame.index].domain),
            assignment_size=len(assignment),
        )

        if len(assignment) == n_meetings:
            if check_solution(assignment, constraints, tracer):
                tracer.log_solution_found(assignment_size=len(assignment))
                return list(assignment)
            continue

        next_index = len(assignment)
        stack.append(_Frame(next_index, iter(_order_domain_values(domains[next_index]))))

    return None


def check_solution(
    solution: Sequence[date],
    constraints: Iterable[DateConstraint],
    tracer: Optional[Tracer] = None,
) -> bool:
    """Validate a complete assignment against every constraint, unary and binary."""
    for constraint in constraints:
        if not constraint.is_satisfied(solution):
            if tracer is not None:
                tracer.log_constraint_check(
                    constraint.description, is_valid=False, variable=constraint.left
                )
            return False
    return True
