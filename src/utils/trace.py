"""Tracing module: logs calendar solver steps and writes them to CSV."""

import csv
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class TraceStep:
    """A single step in the solving process."""

    timestamp: float
    step_number: int
    action_type: str  # 'assign', 'backtrack', 'domain_reduced', 'node_consistency', 'arc_consistency', ...
    variable: Optional[int] = None  # meeting index
    value: Optional[str] = None  # ISO date
    domain_size: Optional[int] = None
    assignment_size: Optional[int] = None
    constraint_checked: Optional[str] = None
    is_valid: Optional[bool] = None
    reason: Optional[str] = None


class Tracer:
    """Records solver steps for logging and analysis."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.steps: List[TraceStep] = []
        self.start_time = datetime.now().timestamp()
        self.step_counter = 0

    def _get_timestamp(self) -> float:
        """Get elapsed time in seconds since tracer creation."""
        return datetime.now().timestamp() - self.start_time

    def _record(self, action_type: str, **fields: Any) -> None:
        self.step_counter += 1
        self.steps.append(TraceStep(
            timestamp=self._get_timestamp(),
            step_number=self.step_counter,
            action_type=action_type,
            **fields,
        ))

    def log_assign(self, variable: int, value: Any, domain_size: int, assignment_size: int):
        """Log a tentative date for a meeting."""
        if not self.enabled:
            return
        self._record(
            'assign',
            variable=variable,
            value=_format_value(value),
            domain_size=domain_size,
            assignment_size=assignment_size,
        )

    def log_backtrack(self, variable: int, reason: str = "No valid dates"):
        """Log a backtrack event."""
        if not self.enabled:
            return
        self._record('backtrack', variable=variable, reason=reason)

    def log_constraint_check(self, constraint_desc: str, is_valid: bool, variable: Optional[int] = None):
        """Log a constraint check."""
        if not self.enabled:
            return
        self._record(
            'constraint_check',
            constraint_checked=constraint_desc,
            is_valid=is_valid,
            variable=variable,
        )

    def log_domain_reduction(self, variable: int, new_domain_size: int, reason: str = ""):
        """Log domain reduction for a meeting."""
        if not self.enabled:
            return
        self._record('domain_reduced', variable=variable, domain_size=new_domain_size, reason=reason)

    def log_node_consistency(self, constraints_applied: int, values_removed: int):
        """Log a node consistency pass over the unary constraints."""
        if not self.enabled:
            return
        self._record(
            'node_consistency',
            reason=f"Applied {constraints_applied} unary constraints, removed {values_removed} dates",
        )

    def log_arc_consistency(self, arcs_processed: int, values_removed: int, fixed_point: bool = False):
        """Log an arc consistency pass."""
        if not self.enabled:
            return
        mode = "fixed-point" if fixed_point else "single-pass"
        self._record(
            'arc_consistency',
            reason=f"{mode}: processed {arcs_processed} arcs, removed {values_removed} dates",
        )

    def log_solution_found(self, assignment_size: int):
        """Log when a solution is found."""
        if not self.enabled:
            return
        self._record('solution_found', assignment_size=assignment_size)

    def log_no_solution(self, reason: str = "Search exhausted"):
        """Log when the problem turns out to be unsatisfiable."""
        if not self.enabled:
            return
        self._record('no_solution', reason=reason)

    def to_csv(self, filepath: Path) -> None:
        """Write trace to CSV file."""
        if not self.steps:
            print("No trace steps to write")
            return

        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        fieldnames = [
            'timestamp', 'step_number', 'action_type', 'variable', 'value',
            'domain_size', 'assignment_size', 'constraint_checked', 'is_valid', 'reason'
        ]

        with open(filepath, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for step in self.steps:
                writer.writerow(asdict(step))

        print(f"Trace written to {filepath} ({len(self.steps)} steps)")

    def summary(self) -> Dict[str, Any]:
        """Get a summary of the trace."""
        action_counts: Dict[str, int] = {}
        for step in self.steps:
            action_counts[step.action_type] = action_counts.get(step.action_type, 0) + 1

        return {
            'total_steps': len(self.steps),
            'elapsed_time_seconds': self._get_timestamp(),
            'action_counts': action_counts,
            'num_assignments': action_counts.get('assign', 0),
            'num_backtracks': action_counts.get('backtrack', 0),
        }


def _format_value(value: Any) -> str:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


# Global tracer instance
_global_tracer: Optional[Tracer] = None


def get_tracer() -> Tracer:
    """Get or create the global tracer."""
    global _global_tracer
    if _global_tracer is None:
        _global_tracer = Tracer(enabled=True)
    return _global_tracer


def reset_tracer() -> None:
    """Reset the global tracer."""
    global _global_tracer
    _global_tracer = None


def enable_tracing(enabled: bool = True) -> None:
    """Enable or disable tracing."""
    get_tracer().enabled = enabled
