"""
CSV loader for timesheet entries.

This module loads rows for the submit and check commands. It validates the
headers and the hours column; dates are left for quarter routing to judge.
"""

import csv
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

from .models import TimesheetRow


MIN_HOURS = Decimal('0.25')
MAX_HOURS = Decimal('24')
HOURS_STEP = Decimal('0.25')


class CSVLoadError(Exception):
    """Raised when CSV loading fails."""
    pass


def _normalize_header(header: str) -> str:
    """'Charge Code' and 'charge_code' both become 'charge_code'."""
    return header.strip().lower().replace(' ', '_')


class CSVLoader:
    """
    Loads timesheet entries from CSV files.

    Expected CSV format (grid column labels are accepted as headers too):
        date,hours,project,tool,charge_code,task_description
        2026-01-05,8,OSC-BBB,Hydraulic Press,CC-100,Press maintenance
        2026-01-06,2.5,PTO/RTO,,,Vacation
    """

    REQUIRED_HEADERS = [
        'date',
        'hours',
        'project',
        'task_description',
    ]
    OPTIONAL_HEADERS = [
        'tool',
        'charge_code',
    ]

    def __init__(self, file_path: str):
        """
        Initialize the CSV loader.

        Args:
            file_path: Path to the CSV file

        Raises:
            CSVLoadError: If file doesn't exist
        """
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise CSVLoadError(f"CSV file not found: {file_path}")

    def load(self) -> List[TimesheetRow]:
        """
        Load timesheet rows from the CSV file.

        Returns:
            List of TimesheetRow objects, in file order

        Raises:
            CSVLoadError: If CSV format is invalid or data is malformed
        """
        try:
            with open(self.file_path, 'r', encoding='utf-8-sig', newline='') as f:
                reader = csv.DictReader(f)
                self._validate_headers(reader.fieldnames)
                return self._parse_rows(reader)
        except CSVLoadError:
            raise
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            raise CSVLoadError(f"Failed to load CSV: {e}")

    def _validate_headers(self, headers: Optional[List[str]]):
        """
        Validate that CSV has all required headers.

        Raises:
            CSVLoadError: If headers are missing
        """
        if not headers:
            raise CSVLoadError("CSV file is empty or has no headers")

        normalized = [_normalize_header(h) for h in headers if h]

        missing = [h for h in self.REQUIRED_HEADERS if h not in normalized]
        if missing:
            raise CSVLoadError(
                f"CSV missing required headers: {', '.join(missing)}"
            )

    def _parse_rows(self, reader: csv.DictReader) -> List[TimesheetRow]:
        rows = []
        for line_num, row_dict in enumerate(reader, start=2):  # Header is line 1
            try:
                row = self._parse_row(row_dict)
                if row:
                    rows.append(row)
            except ValueError as e:
                raise CSVLoadError(f"Error on line {line_num}: {e}")

        if not rows:
            raise CSVLoadError("CSV file contains no valid data rows")

        return rows

    def _parse_row(self, row_dict: dict) -> Optional[TimesheetRow]:
        """
        Parse a single CSV row.

        Returns:
            TimesheetRow, or None for a blank line

        Raises:
            ValueError: If data is invalid
        """
        normalized = {
            _normalize_header(k): (v or '').strip()
            for k, v in row_dict.items()
            if k is not None
        }

        if not any(normalized.values()):
            return None

        if not normalized.get('project'):
            raise ValueError("Project is required")

        self._check_hours(normalized.get('hours', ''))
        return TimesheetRow.from_dict(normalized)

    def _check_hours(self, value: str):
        """
        Hours must be a multiple of 0.25 between 0.25 and 24.

        Raises:
            ValueError: If the value is not valid
        """
        try:
            hours = Decimal(value)
        except InvalidOperation:
            raise ValueError(f"Invalid hours value: '{value}' (must be a number)")

        if not hours.is_finite() or not (MIN_HOURS <= hours <= MAX_HOURS):
            raise ValueError(f"Hours must be between {MIN_HOURS} and {MAX_HOURS}, got: {value}")
        if hours % HOURS_STEP != 0:
            raise ValueError(f"Hours must be in {HOURS_STEP} increments, got: {value}")


def load_csv(file_path: str) -> List[TimesheetRow]:
    """
    Convenience function to load a CSV file.

    Raises:
        CSVLoadError: If loading fails
    """
    loader = CSVLoader(file_path)
    return loader.load()
