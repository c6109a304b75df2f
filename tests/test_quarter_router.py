"""
Tests for quarter routing.

Covers window boundaries, malformed dates, availability messages,
grouping, and loading/validating quarter tables.
"""

import json
from datetime import date

import pytest

from timesheet_submitter.models import QuarterDefinition
from timesheet_submitter.quarter_router import (
    DEFAULT_QUARTERS,
    QuarterConfigError,
    QuarterTable,
    available_quarter_ids,
    current_quarter,
    get_quarter_by_id,
    group_by_quarter,
    load_quarter_definitions,
    parse_iso_date,
    resolve_quarter,
    to_form_date,
    validate_availability,
)


def make_quarter(qid, start, end, form_id=None):
    form_id = form_id or qid.lower().replace('-', '')
    return QuarterDefinition(
        id=qid,
        name=qid.replace('-', ' '),
        start_date=start,
        end_date=end,
        form_url=f"https://app.smartsheet.com/b/form/{form_id}",
        form_id=form_id,
    )


class TestResolveQuarter:
    """Tests for resolve_quarter."""

    def test_date_inside_q1(self):
        """Test that a mid-quarter date routes to Q1 2026."""
        quarter = resolve_quarter('2026-02-15')
        assert quarter.id == 'Q1-2026'
        assert quarter.form_id == '019b5b17a03a79ac9437e45996f49f4f'

    def test_start_date_is_inclusive(self):
        """Test that the first day of a quarter belongs to it."""
        assert resolve_quarter('2025-10-01').id == 'Q4-2025'
        assert resolve_quarter('2026-01-01').id == 'Q1-2026'

    def test_end_date_is_inclusive(self):
        """Test that the last day of a quarter belongs to it."""
        assert resolve_quarter('2025-12-31').id == 'Q4-2025'
        assert resolve_quarter('2026-03-31').id == 'Q1-2026'

    def test_dates_outside_every_window(self):
        """Test that dates before and after the table route nowhere."""
        assert resolve_quarter('2025-09-30') is None
        assert resolve_quarter('2026-04-01') is None

    @pytest.mark.parametrize('value', ['', 'invalid', '2025-13-01', '2025-02-30', '2026-1-5', '01/05/2026'])
    def test_malformed_dates_route_nowhere(self, value):
        """Test that malformed dates return None instead of raising."""
        assert resolve_quarter(value) is None

    def test_non_string_input(self):
        """Test that non-string input returns None."""
        assert resolve_quarter(None) is None
        assert resolve_quarter(20260105) is None

    def test_custom_table(self):
        """Test routing against a substitute table."""
        table = QuarterTable([make_quarter('Q2-2026', '2026-04-01', '2026-06-30')])
        assert resolve_quarter('2026-05-01', table).id == 'Q2-2026'
        assert resolve_quarter('2026-02-01', table) is None


class TestValidateAvailability:
    """Tests for validate_availability."""

    def test_routable_date(self):
        """Test that a routable date has no message."""
        assert validate_availability('2025-11-11') is None

    def test_empty_date(self):
        """Test the message for a missing date."""
        assert validate_availability('') == 'Please enter a date'
        assert validate_availability(None) == 'Please enter a date'

    def test_out_of_range_date(self):
        """Test that the message lists every configured quarter."""
        assert validate_availability('2026-04-01') == (
            'Date must be in Q4 2025 (10/01-12/31) or Q1 2026 (01/01-03/31)'
        )

    def test_malformed_date(self):
        """Test that a malformed date gets the same message as an out-of-range date."""
        assert validate_availability('2025-02-30').startswith('Date must be in')


class TestGroupByQuarter:
    """Tests for group_by_quarter."""

    def test_groups_preserve_order(self, make_row):
        """Test that rows keep input order inside each group."""
        rows = [
            make_row(date='2026-01-05', task_description='a'),
            make_row(date='2025-12-01', task_description='b'),
            make_row(date='2026-02-01', task_description='c'),
        ]
        grouped = group_by_quarter(rows)

        assert list(grouped) == ['Q1-2026', 'Q4-2025']
        assert [r.task_description for r in grouped['Q1-2026']] == ['a', 'c']
        assert [r.task_description for r in grouped['Q4-2025']] == ['b']

    def test_unroutable_rows_skipped(self, make_row):
        """Test that rows outside every quarter are dropped silently."""
        grouped = group_by_quarter([make_row(date='2024-01-01'), make_row(date='bad')])
        assert grouped == {}

    def test_accepts_mappings(self):
        """Test grouping plain dictionaries by 'date' or 'Date'."""
        grouped = group_by_quarter([{'date': '2026-01-02'}, {'Date': '2025-10-02'}])
        assert set(grouped) == {'Q1-2026', 'Q4-2025'}


class TestQuarterTable:
    """Tests for QuarterTable validation."""

    def test_sorted_by_start_date(self):
        """Test that quarters are ordered oldest first."""
        table = QuarterTable([
            make_quarter('Q2-2026', '2026-04-01', '2026-06-30'),
            make_quarter('Q1-2026', '2026-01-01', '2026-03-31'),
        ])
        assert [q.id for q in table] == ['Q1-2026', 'Q2-2026']
        assert len(table) == 2

    def test_overlap_rejected(self):
        """Test that two windows sharing a day are rejected."""
        with pytest.raises(QuarterConfigError, match='overlap'):
            QuarterTable([
                make_quarter('A', '2026-01-01', '2026-03-31'),
                make_quarter('B', '2026-03-31', '2026-06-30'),
            ])

    def test_start_after_end_rejected(self):
        """Test that an inverted window is rejected."""
        with pytest.raises(QuarterConfigError, match='after end date'):
            QuarterTable([make_quarter('A', '2026-03-31', '2026-01-01')])

    def test_form_id_must_be_in_url(self):
        """Test that the form ID must appear in the form URL."""
        quarter = QuarterDefinition('A', 'A', '2026-01-01', '2026-03-31',
                                    'https://app.smartsheet.com/b/form/abc', 'xyz')
        with pytest.raises(QuarterConfigError, match='form ID'):
            QuarterTable([quarter])

    def test_duplicate_ids_rejected(self):
        """Test that repeated quarter IDs are rejected."""
        with pytest.raises(QuarterConfigError, match='Duplicate'):
            QuarterTable([
                make_quarter('A', '2026-01-01', '2026-03-31', form_id='f1'),
                make_quarter('A', '2026-04-01', '2026-06-30', form_id='f2'),
            ])

    def test_empty_table_rejected(self):
        """Test that at least one quarter is required."""
        with pytest.raises(QuarterConfigError):
            QuarterTable([])

    def test_default_table_is_valid(self):
        """Test the built-in quarters."""
        assert available_quarter_ids() == ['Q4-2025', 'Q1-2026']
        for quarter in DEFAULT_QUARTERS:
            assert quarter.form_id in quarter.form_url

    def test_default_quarters_do_not_overlap(self):
        """Test that the built-in windows are ordered and disjoint."""
        windows = sorted(
            (date.fromisoformat(q.start_date), date.fromisoformat(q.end_date)) for q in DEFAULT_QUARTERS
        )
        for start, end in windows:
            assert start <= end
        for (_, prev_end), (next_start, _) in zip(windows, windows[1:]):
            assert next_start > prev_end


class TestLoadQuarterDefinitions:
    """Tests for loading quarter tables from JSON."""

    def test_load_list(self, tmp_path):
        """Test loading a plain list with camelCase keys."""
        path = tmp_path / 'quarters.json'
        path.write_text(json.dumps([{
            'id': 'Q2-2026',
            'name': 'Q2 2026',
            'startDate': '2026-04-01',
            'endDate': '2026-06-30',
            'formUrl': 'https://app.smartsheet.com/b/form/q2form',
            'formId': 'q2form',
        }]), encoding='utf-8')

        table = load_quarter_definitions(str(path))
        assert resolve_quarter('2026-05-05', table).id == 'Q2-2026'

    def test_load_wrapped_object(self, tmp_path):
        """Test loading {"quarters": [...]} with snake_case keys."""
        path = tmp_path / 'quarters.json'
        path.write_text(json.dumps({'quarters': [{
            'id': 'Q2-2026',
            'name': 'Q2 2026',
            'start_date': '2026-04-01',
            'end_date': '2026-06-30',
            'form_url': 'https://app.smartsheet.com/b/form/q2form',
            'form_id': 'q2form',
        }]}), encoding='utf-8')

        assert len(load_quarter_definitions(str(path))) == 1

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises QuarterConfigError."""
        with pytest.raises(QuarterConfigError, match='not found'):
            load_quarter_definitions(str(tmp_path / 'nope.json'))

    def test_invalid_json(self, tmp_path):
        """Test that malformed JSON raises QuarterConfigError."""
        path = tmp_path / 'quarters.json'
        path.write_text('{not json', encoding='utf-8')
        with pytest.raises(QuarterConfigError):
            load_quarter_definitions(str(path))

    def test_missing_key(self, tmp_path):
        """Test that a definition without a form ID is rejected."""
        path = tmp_path / 'quarters.json'
        path.write_text(json.dumps([{'id': 'A', 'name': 'A', 'start_date': '2026-01-01',
                                     'end_date': '2026-03-31', 'form_url': 'x'}]), encoding='utf-8')
        with pytest.raises(QuarterConfigError, match='form_id'):
            load_quarter_definitions(str(path))


class TestHelpers:
    """Tests for the smaller routing helpers."""

    def test_to_form_date(self):
        """Test ISO to mm/dd/yyyy conversion."""
        assert to_form_date('2026-01-05') == '01/05/2026'

    def test_to_form_date_invalid(self):
        """Test that invalid dates raise ValueError."""
        with pytest.raises(ValueError):
            to_form_date('2026-02-30')

    def test_parse_iso_date(self):
        """Test strict ISO parsing."""
        assert parse_iso_date('2026-01-15') == date(2026, 1, 15)
        assert parse_iso_date('2026-01-15T00:00') is None

    def test_get_quarter_by_id(self):
        """Test lookup by ID."""
        assert get_quarter_by_id('Q4-2025').start_date == '2025-10-01'
        assert get_quarter_by_id('Q9-1999') is None

    def test_current_quarter(self):
        """Test finding the quarter for a given day."""
        assert current_quarter(date(2025, 11, 1)).id == 'Q4-2025'
        assert current_quarter(date(2030, 1, 1)) is None
