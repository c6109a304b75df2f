"""
Quarter routing: map an entry date to the form instance for its fiscal quarter.

Each fiscal quarter has its own copy of the timesheet form. This module holds
the quarter table and the pure functions that pick the right form for a date,
explain why a date cannot be routed, and group entries by quarter.

Dates are ISO strings (YYYY-MM-DD). Anything else routes nowhere.
"""

import json
import re
from datetime import date as date_cls, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, TypeVar

from .models import QuarterDefinition


T = TypeVar('T')

_ISO_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


class QuarterConfigError(ValueError):
    """Raised when a quarter table is invalid."""
    pass


def parse_iso_date(value: Any) -> Optional[date_cls]:
    """
    Parse a strict YYYY-MM-DD string into a date.

    Invalid month/day values are rejected rather than rolled over.

    Args:
        value: Candidate date string

    Returns:
        The parsed date, or None if the value is not a valid calendar date

    Examples:
        >>> parse_iso_date("2026-01-15")
        datetime.date(2026, 1, 15)
        >>> parse_iso_date("2025-02-30") is None
        True
    """
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        return None


def to_form_date(iso_date: str) -> str:
    """
    Convert an ISO date to the form's mm/dd/yyyy input format.

    Raises:
        ValueError: If the date is not a valid ISO date

    Examples:
        >>> to_form_date("2026-01-05")
        '01/05/2026'
    """
    parsed = parse_iso_date(iso_date)
    if parsed is None:
        raise ValueError(f"Invalid date: '{iso_date}' (expected YYYY-MM-DD)")
    return parsed.strftime('%m/%d/%Y')


def _validate_definition(quarter: QuarterDefinition):
    start = parse_iso_date(quarter.start_date)
    end = parse_iso_date(quarter.end_date)
    if start is None or end is None:
        raise QuarterConfigError(
            f"Quarter {quarter.id}: dates must be YYYY-MM-DD "
            f"(got {quarter.start_date!r}, {quarter.end_date!r})"
        )
    if start > end:
        raise QuarterConfigError(
            f"Quarter {quarter.id}: start date {quarter.start_date} is after end date {quarter.end_date}"
        )
    if not quarter.form_id or quarter.form_id not in quarter.form_url:
        raise QuarterConfigError(
            f"Quarter {quarter.id}: form URL does not contain form ID '{quarter.form_id}'"
        )


class QuarterTable:
    """
    Immutable, validated set of quarter definitions.

    Quarters are kept sorted by start date. Construction fails if any
    definition is invalid, if IDs repeat, or if two windows share a day.
    """

    def __init__(self, quarters: Iterable[QuarterDefinition]):
        ordered = sorted(quarters, key=lambda q: q.start_date)
        if not ordered:
            raise QuarterConfigError("At least one quarter must be configured")

        seen_ids = set()
        for quarter in ordered:
            _validate_definition(quarter)
            if quarter.id in seen_ids:
                raise QuarterConfigError(f"Duplicate quarter ID: {quarter.id}")
            seen_ids.add(quarter.id)

        for previous, current in zip(ordered, ordered[1:]):
            if current.start_date <= previous.end_date:
                raise QuarterConfigError(
                    f"Quarters {previous.id} and {current.id} overlap "
                    f"({previous.end_date} >= {current.start_date})"
                )

        self._quarters = tuple(ordered)

    @property
    def quarters(self) -> Sequence[QuarterDefinition]:
        return self._quarters

    def __iter__(self):
        return iter(self._quarters)

    def __len__(self) -> int:
        return len(self._quarters)

    def __repr__(self) -> str:
        return f"QuarterTable({[q.id for q in self._quarters]})"


# Active quarters. Only quarters that can still receive entries belong here.
DEFAULT_QUARTERS = QuarterTable([
    QuarterDefinition(
        id='Q4-2025',
        name='Q4 2025',
        start_date='2025-10-01',
        end_date='2025-12-31',
        form_url='https://app.smartsheet.com/b/form/0199fabee6497e60abb6030c48d84585',
        form_id='0199fabee6497e60abb6030c48d84585',
    ),
    QuarterDefinition(
        id='Q1-2026',
        name='Q1 2026',
        start_date='2026-01-01',
        end_date='2026-03-31',
        form_url='https://app.smartsheet.com/b/form/019b5b17a03a79ac9437e45996f49f4f',
        form_id='019b5b17a03a79ac9437e45996f49f4f',
    ),
])


def load_quarter_definitions(path: str) -> QuarterTable:
    """
    Load a quarter table from a JSON file.

    The file holds a list of objects with id, name, start_date, end_date,
    form_url and form_id (camelCase keys are accepted too).

    Args:
        path: Path to the JSON file

    Returns:
        Validated quarter table

    Raises:
        QuarterConfigError: If the file is missing, malformed or invalid
    """
    file_path = Path(path)
    if not file_path.exists():
        raise QuarterConfigError(f"Quarter file not found: {path}")

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise QuarterConfigError(f"Failed to read quarter file {path}: {e}")

    if isinstance(raw, dict):
        raw = raw.get('quarters', [])
    if not isinstance(raw, list):
        raise QuarterConfigError("Quarter file must contain a list of quarters")

    try:
        definitions = [QuarterDefinition.from_dict(item) for item in raw]
    except (AttributeError, ValueError) as e:
        raise QuarterConfigError(f"Invalid quarter definition in {path}: {e}")

    return QuarterTable(definitions)


def resolve_quarter(date: Any, table: QuarterTable = DEFAULT_QUARTERS) -> Optional[QuarterDefinition]:
    """
    Find the quarter whose window contains a date.

    Windows are closed intervals: both start and end dates belong to the quarter.

    Args:
        date: Entry date (YYYY-MM-DD)
        table: Quarter table to search

    Returns:
        Matching quarter, or None if the date is malformed or outside every window
    """
    if parse_iso_date(date) is None:
        return None

    # ISO dates compare correctly as strings
    for quarter in table:
        if quarter.start_date <= date <= quarter.end_date:
            return quarter
    return None


def _format_window(quarter: QuarterDefinition) -> str:
    start = quarter.start_date.split('-')
    end = quarter.end_date.split('-')
    return f"{quarter.name} ({start[1]}/{start[2]}-{end[1]}/{end[2]})"


def validate_availability(date: Any, table: QuarterTable = DEFAULT_QUARTERS) -> Optional[str]:
    """
    Check that a date can be routed to a quarter.

    Args:
        date: Entry date (YYYY-MM-DD)
        table: Quarter table to check against

    Returns:
        None if the date routes to a quarter, otherwise a message listing the
        available quarters

    Examples:
        >>> validate_availability("2026-02-10") is None
        True
        >>> validate_availability("")
        'Please enter a date'
    """
    if not date:
        return 'Please enter a date'

    if resolve_quarter(date, table) is None:
        available = ' or '.join(_format_window(q) for q in table)
        return f"Date must be in {available}"

    return None


def _entry_date(entry: Any) -> Any:
    if isinstance(entry, dict):
        return entry.get('date', entry.get('Date'))
    return getattr(entry, 'date', None)


def group_by_quarter(entries: Iterable[T], table: QuarterTable = DEFAULT_QUARTERS) -> Dict[str, List[T]]:
    """
    Partition entries by the quarter their date falls in.

    Entries whose date cannot be routed are skipped silently. Groups keep
    input order, and appear in order of first occurrence.

    Args:
        entries: Rows or mappings with a 'date'
        table: Quarter table to route with

    Returns:
        Mapping of quarter ID to entries
    """
    grouped: Dict[str, List[T]] = {}
    for entry in entries:
        quarter = resolve_quarter(_entry_date(entry), table)
        if quarter is not None:
            grouped.setdefault(quarter.id, []).append(entry)
    return grouped


def get_quarter_by_id(quarter_id: str, table: QuarterTable = DEFAULT_QUARTERS) -> Optional[QuarterDefinition]:
    """Look up a quarter by its ID."""
    for quarter in table:
        if quarter.id == quarter_id:
            return quarter
    return None


def available_quarter_ids(table: QuarterTable = DEFAULT_QUARTERS) -> List[str]:
    """Get the IDs of all configured quarters, oldest first."""
    return [q.id for q in table]


def current_quarter(today: Optional[date_cls] = None,
                    table: QuarterTable = DEFAULT_QUARTERS) -> Optional[QuarterDefinition]:
    """Get the quarter containing today's date, if any."""
    today = today or date_cls.today()
    return resolve_quarter(today.isoformat(), table)
