"""Integration-style tests for the calendar CSP solver."""

from datetime import date
from itertools import product

import pytest

from solver import solve_problem
from src.csp import solve
from src.csp.model import (
    BinaryDateConstraint,
    CalendarProblem,
    InvalidProblemError,
    UnaryDateConstraint,
    compare,
)
from src.csp.solver_core import check_solution
from src.utils.trace import Tracer, get_tracer, reset_tracer

D1 = date(2024, 1, 1)
D2 = date(2024, 1, 2)
D3 = date(2024, 1, 3)


def test_fixed_first_meeting_and_later_second():
    constraints = {UnaryDateConstraint(0, "==", D1), BinaryDateConstraint(1, ">", 0)}
    assert solve(2, D1, D3, constraints) == [D1, D2]


def test_cyclic_ordering_has_no_solution():
    constraints = {BinaryDateConstraint(0, "<", 1), BinaryDateConstraint(1, "<", 0)}
    assert solve(2, D1, D3, constraints) is None


def test_contradictory_unary_constraints_have_no_solution():
    constraints = [UnaryDateConstraint(0, "==", D1), UnaryDateConstraint(0, "!=", D1)]
    assert solve(1, D1, D3, constraints) is None


def test_finds_the_only_valid_combination():
    constraints = [
        BinaryDateConstraint(0, "<", 1),
        BinaryDateConstraint(1, "<", 2),
        BinaryDateConstraint(3, "==", 1),
        UnaryDateConstraint(3, "!=", D1),
    ]
    for fixed_point in (False, True):
        assert solve(4, D1, D3, constraints, fixed_point=fixed_point) == [D1, D2, D3, D2]


def test_solution_outside_range_is_never_returned():
    # The literal lies outside the range, so nothing can match it.
    assert solve(1, D1, D3, [UnaryDateConstraint(0, "==", date(2024, 2, 1))]) is None


def test_unconstrained_meetings_get_range_start():
    assert solve(3, D2, D3, []) == [D2, D2, D2]


def test_malformed_input_raises_instead_of_returning_none():
    with pytest.raises(InvalidProblemError):
        solve(0, D1, D3, [])
    with pytest.raises(InvalidProblemError):
        solve(2, D3, D1, [])
    with pytest.raises(InvalidProblemError):
        solve(2, D1, D3, [BinaryDateConstraint(0, "<", 5)])


def _brute_force(n, days, constraints):
    for candidate in product(days, repeat=n):
        if check_solution(list(candidate), constraints):
            return list(candidate)
    return None


@pytest.mark.parametrize("fixed_point", [False, True])
def test_agrees_with_exhaustive_search(fixed_point):
    days = [D1, D2, D3]
    ops = ["==", "!=", "<", "<=", ">", ">="]
    cases = []
    for op_a, op_b in product(ops, repeat=2):
        cases.append([BinaryDateConstraint(0, op_a, 1), BinaryDateConstraint(1, op_b, 2)])
        cases.append([UnaryDateConstraint(0, op_a, D2), BinaryDateConstraint(2, op_b, 0)])

    for constraints in cases:
        expected = _brute_force(3, days, constraints)
        result = solve(3, D1, D3, constraints, fixed_point=fixed_point)
        # Both walk candidates in ascending order, so the first solution matches.
        assert result == expected
        if result is not None:
            assert all(
                compare(c.op, result[c.left], c.literal if c.arity == 1 else result[c.right])
                for c in constraints
            )


def test_solve_problem_accepts_problem_or_dict():
    problem = CalendarProblem(2, D1, D3, [UnaryDateConstraint(0, "==", D1), BinaryDateConstraint(1, ">", 0)])
    assert solve_problem(problem) == [D1, D2]

    raw = {
        "id": "example",
        "n_meetings": 2,
        "range_start": "2024-01-01",
        "range_end": "2024-01-03",
        "constraints": ["M0 == 2024-01-01", "M1 > M0"],
    }
    assert solve_problem(raw) == [D1, D2]


def test_solve_problem_rejects_other_types():
    with pytest.raises(TypeError):
        solve_problem(["not", "a", "problem"])


def test_solver_records_trace_on_given_tracer():
    tracer = Tracer()
    solve(2, D1, D3, [UnaryDateConstraint(0, "==", D1), BinaryDateConstraint(1, ">", 0)], tracer=tracer)
    summary = tracer.summary()
    assert summary["action_counts"]["node_consistency"] == 1
    assert summary["action_counts"]["arc_consistency"] == 1
    assert summary["action_counts"]["solution_found"] == 1
    assert summary["num_assignments"] == 2
    assert summary["num_backtracks"] == 0

    tracer = Tracer()
    solve_problem(
        CalendarProblem(2, D1, D3, [BinaryDateConstraint(0, "<", 1), BinaryDateConstraint(1, "<", 0)]),
        tracer=tracer,
    )
    assert tracer.summary()["action_counts"]["no_solution"] == 1


def test_repeated_solves_leave_no_global_trace():
    reset_tracer()
    cyclic = [
        BinaryDateConstraint(0, "<", 1),
        BinaryDateConstraint(1, "<", 2),
        BinaryDateConstraint(2, "<", 0),
    ]
    for _ in range(3):
        assert solve(3, D1, date(2024, 1, 10), cyclic) is None
        assert solve_problem(CalendarProblem(2, D1, D3, [BinaryDateConstraint(1, ">", 0)])) == [D1, D2]
        assert get_tracer().steps == []
