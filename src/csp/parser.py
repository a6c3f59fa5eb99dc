"""Problem parser: convert raw problem records into CalendarProblem structures.

Supports:
- Constraint strings such as "0 == 2024-01-01", "M1 > M0" or "meeting 2 <= meeting 3"
- Constraint dicts: {"left": 0, "op": "<", "right": 1} / {"left": 0, "op": "==", "date": "2024-01-01"}
- Tabular encodings of the constraint list (JSON string or ";"-separated string)
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .model import (
    BinaryDateConstraint,
    CalendarProblem,
    DateConstraint,
    InvalidProblemError,
    UnaryDateConstraint,
)

_MEETING = r"(?:m(?:eeting)?\s*)?(\d+)"
_OPERATOR = r"(==|!=|<=|>=|<|>)"
_DATE = r"(\d{4}-\d{2}-\d{2})"

_CONSTRAINT_RE = re.compile(
    rf"^\s*{_MEETING}\s*{_OPERATOR}\s*(?:{_DATE}|{_MEETING})\s*$",
    re.IGNORECASE,
)

# Aliases seen in camelCase sources.
_FIELD_ALIASES = {
    "n_meetings": ("n_meetings", "nMeetings", "meetings"),
    "range_start": ("range_start", "rangeStart", "start"),
    "range_end": ("range_end", "rangeEnd", "end"),
}


def parse_date(value: Any) -> date:
    """Coerce ISO strings and datetime-likes (incl. pandas Timestamps) to a plain date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise InvalidProblemError(f"Invalid date: {value!r}") from None
    raise InvalidProblemError(f"Invalid date: {value!r}")


def parse_constraint(raw: Any) -> DateConstraint:
    if isinstance(raw, (UnaryDateConstraint, BinaryDateConstraint)):
        return raw
    if isinstance(raw, dict):
        return _constraint_from_dict(raw)
    if not isinstance(raw, str):
        raise InvalidProblemError(f"Unsupported constraint: {raw!r}")

    m = _CONSTRAINT_RE.match(raw)
    if not m:
        raise InvalidProblemError(f"Cannot parse constraint: {raw!r}")

    left, op, literal, right = m.groups()
    if literal is not None:
        return UnaryDateConstraint(int(left), op, parse_date(literal))
    return BinaryDateConstraint(int(left), op, int(right))


def _constraint_from_dict(raw: Dict[str, Any]) -> DateConstraint:
    try:
        left = _as_index(raw["left"])
        op = str(raw["op"]).strip()
    except KeyError as e:
        raise InvalidProblemError(f"Constraint {raw!r} is missing {e.args[0]!r}") from None

    if raw.get("date") is not None and raw.get("right") is not None:
        raise InvalidProblemError(f"Constraint {raw!r} has both 'date' and 'right'")
    if raw.get("date") is not None:
        return UnaryDateConstraint(left, op, parse_date(raw["date"]))
    if raw.get("right") is not None:
        return BinaryDateConstraint(left, op, _as_index(raw["right"]))
    raise InvalidProblemError(f"Constraint {raw!r} needs either 'date' or 'right'")


def _as_index(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidProblemError(f"Invalid meeting index: {value!r}")
    if isinstance(value, int):
        return value
    m = re.fullmatch(_MEETING, str(value).strip(), re.IGNORECASE)
    if not m:
        raise InvalidProblemError(f"Invalid meeting index: {value!r}")
    return int(m.group(1))


def _split_constraints(raw: Any) -> List[Any]:
    if raw is None or (isinstance(raw, float) and raw != raw):
        return []
    # Parquet rows come back as numpy arrays.
    if hasattr(raw, "tolist") and not isinstance(raw, str):
        raw = raw.tolist()
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                raise InvalidProblemError(f"Malformed constraint list: {text!r}") from None
            return list(decoded)
        return [part for part in (p.strip() for p in text.split(";")) if part]
    if isinstance(raw, (list, tuple, set, frozenset)):
        return list(raw)
    raise InvalidProblemError(f"Unsupported constraint list: {raw!r}")


def _lookup(record: Dict[str, Any], field: str) -> Optional[Any]:
    for key in _FIELD_ALIASES[field]:
        if record.get(key) is not None:
            return record[key]
    return None


def _as_meeting_count(value: Any) -> int:
    if value is None:
        raise InvalidProblemError("Problem is missing 'n_meetings'")
    if isinstance(value, bool):
        raise InvalidProblemError(f"Invalid n_meetings: {value!r}")
    if isinstance(value, float) and value.is_integer():
        # CSV columns with gaps are read as floats.
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    if hasattr(value, "item"):
        value = value.item()
    if not isinstance(value, int):
        raise InvalidProblemError(f"Invalid n_meetings: {value!r}")
    return value


def parse_problem(record: Dict[str, Any]) -> CalendarProblem:
    start = _lookup(record, "range_start")
    end = _lookup(record, "range_end")
    if start is None or end is None:
        raise InvalidProblemError("Problem needs both 'range_start' and 'range_end'")

    constraints = [parse_constraint(c) for c in _split_constraints(record.get("constraints"))]

    return CalendarProblem(
        n_meetings=_as_meeting_count(_lookup(record, "n_meetings")),
        range_start=parse_date(start),
        range_end=parse_date(end),
        constraints=constraints,
        id=str(record.get("id", "unknown")),
    )
