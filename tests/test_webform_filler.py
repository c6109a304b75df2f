"""
Tests for filling and submitting one row.
"""

import itertools
from unittest.mock import patch

import pytest

from timesheet_submitter.browser_session import BrowserSessionError
from timesheet_submitter.models import RowStatus
from timesheet_submitter.quarter_router import get_quarter_by_id
from timesheet_submitter.selectors import FormSelectors
from timesheet_submitter.webform_filler import WebformFiller


Q1 = get_quarter_by_id('Q1-2026')
Q4 = get_quarter_by_id('Q4-2025')


def selector(key):
    return FormSelectors.field(key).selector


class TestFillRow:
    """Tests for WebformFiller.fill_row."""

    def test_submitted(self, session, form_page, fast_config, make_row):
        """Test a row that is filled and confirmed."""
        outcome = WebformFiller(session, fast_config).fill_row(make_row(), Q1, 0)

        assert outcome.status is RowStatus.SUBMITTED
        assert outcome.index == 0
        assert form_page.goto_calls == [Q1.form_url]
        assert FormSelectors.SUBMIT_BUTTON in form_page.clicked

    def test_field_values(self, session, form_page, fast_config, make_row):
        """Test the values typed into each field."""
        WebformFiller(session, fast_config).fill_row(make_row(hours='2.50'), Q1, 0)

        assert form_page.filled_value(selector('project')) == 'OSC-BBB'
        assert form_page.filled_value(selector('date')) == '01/05/2026'
        assert form_page.filled_value(selector('hours')) == '2.50'
        assert form_page.filled_value("input[aria-label='BBB Tool']") == 'Hydraulic Press'
        assert form_page.filled_value(selector('task_description')) == 'Press maintenance'
        assert form_page.filled_value(selector('charge_code')) == 'CC-100'

    def test_fill_order(self, session, form_page, fast_config, make_row):
        """Test that fields are filled in the form's order."""
        WebformFiller(session, fast_config).fill_row(make_row(project='Other'), Q1, 0)

        assert [sel for sel, _ in form_page.filled] == [
            selector('project'),
            selector('date'),
            selector('hours'),
            selector('tool'),
            selector('task_description'),
            selector('charge_code'),
        ]

    def test_dropdowns_committed_with_enter(self, session, form_page, fast_config, make_row):
        """Test that dropdown fields are committed with Enter."""
        WebformFiller(session, fast_config).fill_row(make_row(project='Other'), Q1, 0)

        assert form_page.pressed == [
            (selector('project'), 'Enter'),
            (selector('tool'), 'Enter'),
            (selector('charge_code'), 'Enter'),
        ]

    def test_tool_and_charge_code_skipped(self, session, form_page, fast_config, make_row):
        """Test that tool-less projects skip tool and charge code."""
        row = make_row(project='PTO/RTO', tool='Hammer', charge_code='CC-1')
        outcome = WebformFiller(session, fast_config).fill_row(row, Q1, 0)

        filled = [sel for sel, _ in form_page.filled]
        assert outcome.ok
        assert selector('tool') not in filled
        assert selector('charge_code') not in filled

    def test_charge_code_skipped_for_meeting_tool(self, session, form_page, fast_config, make_row):
        """Test that tools without charge codes skip the charge code."""
        row = make_row(project='Other', tool='Internal Meeting', charge_code='CC-1')
        WebformFiller(session, fast_config).fill_row(row, Q1, 0)

        filled = [sel for sel, _ in form_page.filled]
        assert selector('tool') in filled
        assert selector('charge_code') not in filled

    def test_missing_field(self, session, form_page, fast_config, make_row):
        """Test that a missing field fails the row."""
        form_page.present.discard(selector('hours'))
        outcome = WebformFiller(session, fast_config).fill_row(make_row(), Q1, 3)

        assert outcome.status is RowStatus.FAILED
        assert outcome.index == 3
        assert "Field 'Hours' not found" in outcome.message
        assert FormSelectors.SUBMIT_BUTTON not in form_page.clicked

    def test_submit_fallback(self, session, form_page, fast_config, make_row):
        """Test that a fallback submit button is used."""
        fallback = FormSelectors.SUBMIT_BUTTON_FALLBACKS[0]
        form_page.present.discard(FormSelectors.SUBMIT_BUTTON)
        form_page.present.add(fallback)
        form_page.click_actions[fallback] = form_page.click_actions[FormSelectors.SUBMIT_BUTTON]

        outcome = WebformFiller(session, fast_config).fill_row(make_row(), Q1, 0)
        assert outcome.ok
        assert fallback in form_page.clicked

    def test_submit_button_missing(self, session, form_page, fast_config, make_row):
        """Test that a missing submit button fails the row."""
        form_page.present.discard(FormSelectors.SUBMIT_BUTTON)
        outcome = WebformFiller(session, fast_config).fill_row(make_row(), Q1, 0)

        assert outcome.message == 'Submit button not found'

    def test_confirmation_timeout(self, session, form_page, fast_config, make_row):
        """Test that an unconfirmed submission fails after the timeout."""
        form_page.click_actions.clear()
        outcome = WebformFiller(session, fast_config).fill_row(make_row(), Q1, 0)

        assert outcome.status is RowStatus.FAILED
        assert 'not confirmed' in outcome.message
        assert form_page.waited_ms >= fast_config.submit_timeout
        assert form_page.listeners['response'] == []

    def test_confirmation_timeout_slow_polls(self, session, form_page, fast_config, make_row):
        """Test that the submit timeout is wall-clock time when each poll runs long."""
        form_page.click_actions.clear()

        with patch('timesheet_submitter.webform_filler.time') as clock:
            clock.monotonic.side_effect = itertools.chain([0.0, 0.05], itertools.repeat(10.0))
            outcome = WebformFiller(session, fast_config).fill_row(make_row(), Q1, 0)

        assert outcome.status is RowStatus.FAILED
        assert 'not confirmed' in outcome.message
        assert form_page.waited_ms == fast_config.poll_interval

    def test_error_banner(self, session, form_page, fast_config, make_row):
        """Test that an error banner fails the row with its text."""
        banner = FormSelectors.ERROR_BANNERS[0]

        def reject(page):
            page.present.add(banner)
            page.texts[banner] = 'Hours must be a number'
        form_page.click_actions[FormSelectors.SUBMIT_BUTTON] = reject

        outcome = WebformFiller(session, fast_config).fill_row(make_row(), Q1, 0)
        assert outcome.message == 'Form error: Hours must be a number'

    def test_http_rejection(self, session, form_page, fast_config, make_row):
        """Test that a non-2xx submission response fails the row."""
        form_page.click_actions[FormSelectors.SUBMIT_BUTTON] = lambda page: page.emit_response(
            f"https://forms.smartsheet.com/api/submit/{Q1.form_id}", 500
        )
        outcome = WebformFiller(session, fast_config).fill_row(make_row(), Q1, 0)

        assert outcome.message == 'Submission rejected (HTTP 500)'

    def test_success_text(self, session, form_page, fast_config, make_row):
        """Test confirmation by the success message."""
        success = f"text={FormSelectors.SUCCESS_TEXTS[0]}"
        form_page.click_actions[FormSelectors.SUBMIT_BUTTON] = lambda page: page.present.add(success)

        assert WebformFiller(session, fast_config).fill_row(make_row(), Q1, 0).ok

    def test_invalid_date(self, session, form_page, fast_config, make_row):
        """Test that an unparseable date fails the row before typing it."""
        outcome = WebformFiller(session, fast_config).fill_row(make_row(date='2026-02-30'), Q1, 0)

        assert outcome.status is RowStatus.FAILED
        assert selector('project') not in [sel for sel, _ in form_page.filled]

    def test_form_reloaded_between_rows(self, session, form_page, fast_config, make_row):
        """Test that each row starts from a fresh form."""
        filler = WebformFiller(session, fast_config)
        filler.fill_row(make_row(), Q1, 0)
        filler.fill_row(make_row(date='2025-11-03'), Q4, 1)
        filler.fill_row(make_row(), Q1, 2)

        assert form_page.goto_calls == [Q1.form_url, Q4.form_url, Q1.form_url]

    def test_form_already_open(self, session, form_page, fast_config, make_row):
        """Test that an untouched open form is reused."""
        form_page.url = Q1.form_url
        WebformFiller(session, fast_config).fill_row(make_row(), Q1, 0)

        assert form_page.goto_calls == []

    def test_page_closed_mid_row(self, session, form_page, fast_config, make_row):
        """Test that losing the page raises instead of failing the row."""
        def close(page):
            page.closed = True
        form_page.click_actions[FormSelectors.SUBMIT_BUTTON] = close

        with pytest.raises(BrowserSessionError):
            WebformFiller(session, fast_config).fill_row(make_row(), Q1, 0)

    def test_page_closed_before_row(self, session, form_page, fast_config, make_row):
        """Test that a closed page raises before anything is attempted."""
        form_page.closed = True
        with pytest.raises(BrowserSessionError):
            WebformFiller(session, fast_config).fill_row(make_row(), Q1, 0)
