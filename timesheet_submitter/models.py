"""
Data models for timesheet submission.

This module defines the data structures used throughout the application,
including timesheet rows, quarter definitions, per-row outcomes and the
aggregated automation result.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple


# Column labels used by the desktop grid / CSV exports
ROW_LABELS = {
    'date': 'Date',
    'hours': 'Hours',
    'project': 'Project',
    'tool': 'Tool',
    'charge_code': 'Charge Code',
    'task_description': 'Task Description',
}


def _blank_to_none(value: Any) -> Optional[str]:
    """Normalize empty-ish values to None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ('none', 'nan', 'null'):
        return None
    return text


@dataclass(frozen=True)
class TimesheetRow:
    """
    A single timesheet entry to submit.

    Rows are produced and validated by the caller; the core never mutates them.

    Attributes:
        date: Entry date in ISO format (YYYY-MM-DD)
        hours: Hours worked, 0.25 increments between 0.25 and 24.0
        project: Project name (e.g., "OSC-BBB")
        tool: Tool name, or None when the project has no tools
        charge_code: Detail charge code, or None when the tool takes none
        task_description: Free-text description of the work
    """
    date: str
    hours: Decimal
    project: str
    tool: Optional[str] = None
    charge_code: Optional[str] = None
    task_description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'TimesheetRow':
        """
        Build a row from a mapping.

        Accepts both snake_case keys and the grid column labels
        ("Date", "Hours", "Project", "Tool", "Charge Code", "Task Description").

        Raises:
            ValueError: If hours is not a number
        """
        def pick(key: str) -> Any:
            if key in data:
                return data[key]
            return data.get(ROW_LABELS[key])

        raw_hours = pick('hours')
        try:
            hours = raw_hours if isinstance(raw_hours, Decimal) else Decimal(str(raw_hours).strip())
        except (InvalidOperation, AttributeError):
            raise ValueError(f"Invalid hours value: {raw_hours!r}")

        return cls(
            date=str(pick('date') or '').strip(),
            hours=hours,
            project=str(pick('project') or '').strip(),
            tool=_blank_to_none(pick('tool')),
            charge_code=_blank_to_none(pick('charge_code')),
            task_description=str(pick('task_description') or '').strip(),
        )


@dataclass(frozen=True)
class QuarterDefinition:
    """
    One fiscal-quarter window and the form instance that accepts its entries.

    Attributes:
        id: Quarter identifier (e.g., "Q1-2026")
        name: Human-readable name (e.g., "Q1 2026")
        start_date: First day of the quarter, YYYY-MM-DD (inclusive)
        end_date: Last day of the quarter, YYYY-MM-DD (inclusive)
        form_url: URL of the quarter's web form
        form_id: Form identifier, always part of form_url
    """
    id: str
    name: str
    start_date: str
    end_date: str
    form_url: str
    form_id: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'QuarterDefinition':
        """Build a definition from snake_case or camelCase keys."""
        def pick(snake: str, camel: str) -> str:
            value = data.get(snake, data.get(camel))
            if value is None:
                raise ValueError(f"Quarter definition missing '{snake}'")
            return str(value)

        return cls(
            id=pick('id', 'id'),
            name=pick('name', 'name'),
            start_date=pick('start_date', 'startDate'),
            end_date=pick('end_date', 'endDate'),
            form_url=pick('form_url', 'formUrl'),
            form_id=pick('form_id', 'formId'),
        )


@dataclass(frozen=True)
class Credentials:
    """Login credentials for the form host."""
    email: str
    password: str = field(repr=False)

    def __post_init__(self):
        if not self.email or not self.email.strip():
            raise ValueError("Email cannot be empty")
        if not self.password:
            raise ValueError("Password cannot be empty")


class RowStatus(Enum):
    """Terminal state of a single row in one run."""
    SUBMITTED = 'submitted'
    FAILED = 'failed'
    ABORTED = 'aborted'


@dataclass(frozen=True)
class RowOutcome:
    """
    Outcome of one row: Submitted(index) | Failed(index, message) | Aborted(index).
    """
    index: int
    status: RowStatus
    message: Optional[str] = None

    @classmethod
    def submitted(cls, index: int) -> 'RowOutcome':
        return cls(index, RowStatus.SUBMITTED)

    @classmethod
    def failed(cls, index: int, message: str) -> 'RowOutcome':
        return cls(index, RowStatus.FAILED, message)

    @classmethod
    def aborted(cls, index: int) -> 'RowOutcome':
        return cls(index, RowStatus.ABORTED)

    @property
    def ok(self) -> bool:
        return self.status is RowStatus.SUBMITTED


@dataclass
class AutomationResult:
    """
    Result of one automation run.

    Attributes:
        ok: True only when every row was submitted
        submitted: Indices of submitted rows, in input order
        errors: (index, message) pairs; index -1 marks a run-level failure
        aborted: Indices never attempted because the run stopped early
        cancelled: Whether the run stopped because of a cancel request
    """
    ok: bool = True
    submitted: List[int] = field(default_factory=list)
    errors: List[Tuple[int, str]] = field(default_factory=list)
    aborted: List[int] = field(default_factory=list)
    cancelled: bool = False

    @classmethod
    def from_outcomes(
        cls,
        outcomes: Sequence[RowOutcome],
        total_rows: int,
        run_errors: Sequence[str] = (),
        cancelled: bool = False
    ) -> 'AutomationResult':
        """
        Fold ordered row outcomes into a result.

        Rows without an outcome are reported as aborted.

        Args:
            outcomes: Outcomes in the order they were recorded
            total_rows: Number of input rows
            run_errors: Run-level failure messages (reported with index -1)
            cancelled: Whether the run was cancelled

        Raises:
            ValueError: If an index is out of range or appears twice
        """
        result = cls(ok=False, cancelled=cancelled)
        seen = set()

        for outcome in outcomes:
            if not 0 <= outcome.index < total_rows:
                raise ValueError(f"Row index {outcome.index} out of range (0-{total_rows - 1})")
            if outcome.index in seen:
                raise ValueError(f"Row index {outcome.index} has more than one outcome")
            seen.add(outcome.index)

            if outcome.status is RowStatus.SUBMITTED:
                result.submitted.append(outcome.index)
            elif outcome.status is RowStatus.FAILED:
                result.errors.append((outcome.index, outcome.message or "Unknown error"))
            else:
                result.aborted.append(outcome.index)

        result.aborted.extend(i for i in range(total_rows) if i not in seen)
        result.aborted.sort()

        for message in run_errors:
            result.errors.append((-1, message))

        result.ok = len(result.submitted) == total_rows and not result.errors
        return result

    @classmethod
    def failure(cls, message: str, total_rows: int = 0) -> 'AutomationResult':
        """Result for a run that failed before any row was attempted."""
        return cls.from_outcomes([], total_rows, run_errors=[message])

    def as_tuple(self) -> Tuple[bool, List[int], List[Tuple[int, str]]]:
        """Return (ok, submitted, errors)."""
        return self.ok, list(self.submitted), list(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the shell-facing contract."""
        return {
            'ok': self.ok,
            'submitted': list(self.submitted),
            'errors': [[index, message] for index, message in self.errors],
        }

    def format_summary(self) -> str:
        """
        Format the result as a human-readable string.

        Returns:
            Formatted summary text
        """
        lines = [
            "\n" + "=" * 60,
            "SUBMISSION SUMMARY",
            "=" * 60,
            f"  Submitted: {len(self.submitted)}",
            f"  Failed:    {len([i for i, _ in self.errors if i >= 0])}",
            f"  Aborted:   {len(self.aborted)}",
        ]

        if self.cancelled:
            lines.append("  (run was cancelled)")

        if self.errors:
            lines.append("\nErrors:")
            for index, message in self.errors:
                label = "run" if index < 0 else f"row {index + 1}"
                lines.append(f"  - {label}: {message}")

        lines.append("=" * 60 + "\n")
        return "\n".join(lines)


@dataclass(frozen=True)
class ProgressEvent:
    """Incremental progress notification."""
    percent: int
    current: int
    total: int
    message: str
