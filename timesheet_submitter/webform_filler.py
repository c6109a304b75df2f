"""
Webform filler: enter one timesheet row into its quarter's form and submit it.

Each call handles exactly one row and reports a RowOutcome. Row-level
problems (missing fields, rejected submissions, timeouts) become a failed
outcome; losing the browser page raises BrowserSessionError instead.
"""

import time
from typing import Dict, List, Optional

from playwright.sync_api import Page, Locator, Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from .browser_session import BrowserSession, BrowserSessionError
from .business_rules import applicable_tool, applicable_charge_code
from .config import Config
from .logging_utils import get_logger, log_step, log_success, log_error
from .models import TimesheetRow, QuarterDefinition, RowOutcome
from .quarter_router import to_form_date
from .selectors import FormSelectors, FieldDefinition


# Max wait for a dropdown listbox before committing with Enter
DROPDOWN_WAIT_MS = 2000


class WebformError(Exception):
    """Raised when a row cannot be entered or submitted."""
    pass


def _first_line(error: Exception) -> str:
    text = str(error).strip()
    return text.splitlines()[0] if text else error.__class__.__name__


def _session_lost(page: Page, error: Exception) -> bool:
    return page.is_closed() or 'has been closed' in str(error)


class WebformFiller:
    """
    Fills and submits the timesheet form, one row per call.
    """

    def __init__(self, session: BrowserSession, config: Config):
        """
        Initialize the filler.

        Args:
            session: Logged-in browser session
            config: Application configuration
        """
        self.session = session
        self.config = config
        self.logger = get_logger()
        # Set after any submit attempt; the page must be reloaded for the next row
        self._dirty = False

    def fill_row(self, row: TimesheetRow, target: QuarterDefinition, index: int) -> RowOutcome:
        """
        Enter and submit one row.

        Args:
            row: Row to submit
            target: Quarter whose form receives the row
            index: Row index in the run input

        Returns:
            Submitted or failed outcome for the row

        Raises:
            BrowserSessionError: If the browser page is gone
        """
        page = self.session.page
        log_step(f"Row {index + 1}: {row.date} {row.project} ({row.hours}h) -> {target.name}", self.logger)

        try:
            self._open_form(page, target)
            self._fill_fields(page, row)
            self._submit(page, target)
        except (PlaywrightError, WebformError) as e:
            self._dirty = True
            if _session_lost(page, e):
                raise BrowserSessionError(f"Browser page lost while submitting row {index + 1}") from e
            message = _first_line(e)
            log_error(f"Row {index + 1} failed: {message}", self.logger)
            return RowOutcome.failed(index, message)

        self._dirty = True
        log_success(f"Row {index + 1} submitted", self.logger)
        return RowOutcome.submitted(index)

    def _open_form(self, page: Page, target: QuarterDefinition):
        """Navigate to the form unless it is already open and untouched."""
        if not self._dirty and page.url.startswith(target.form_url):
            self.logger.debug(f"Form {target.id} already open")
            return

        try:
            page.goto(target.form_url, timeout=self.config.navigation_timeout, wait_until='domcontentloaded')
        except PlaywrightTimeoutError as e:
            raise WebformError(f"Timed out opening form for {target.name}") from e

        try:
            page.locator(FormSelectors.FORM_READY).first.wait_for(
                state='visible',
                timeout=self.config.element_timeout
            )
        except PlaywrightTimeoutError as e:
            raise WebformError(f"Form for {target.name} did not load") from e

        self._dirty = False

    def _field_values(self, row: TimesheetRow) -> Dict[str, Optional[str]]:
        try:
            form_date = to_form_date(row.date)
        except ValueError as e:
            raise WebformError(str(e))

        return {
            'project': row.project,
            'date': form_date,
            'hours': str(row.hours),
            'tool': applicable_tool(row.project, row.tool),
            'task_description': row.task_description,
            'charge_code': applicable_charge_code(row.project, row.tool, row.charge_code),
        }

    def _fill_fields(self, page: Page, row: TimesheetRow):
        values = self._field_values(row)

        for field in FormSelectors.FIELDS:
            value = values[field.key]
            if value is None:
                if field.optional:
                    self.logger.debug(f"  {field.label}: not applicable, skipped")
                    continue
                raise WebformError(f"Missing value for {field.label}")

            selector = field.selector
            if field.key == 'tool':
                selector = FormSelectors.get_tool_selector(row.project)

            self._fill_field(page, field, selector, value)

    def _fill_field(self, page: Page, field: FieldDefinition, selector: str, value: str):
        locator = page.locator(selector).first
        try:
            locator.wait_for(state='visible', timeout=self.config.element_timeout)
        except PlaywrightTimeoutError as e:
            raise WebformError(f"Field '{field.label}' not found ({selector})") from e

        locator.fill(value)
        if field.dropdown:
            self._commit_dropdown(page, locator)

        self.logger.debug(f"  {field.label}: {value}")

    def _commit_dropdown(self, page: Page, locator: Locator):
        try:
            page.locator(FormSelectors.DROPDOWN_LISTBOX).first.wait_for(
                state='visible',
                timeout=min(self.config.element_timeout, DROPDOWN_WAIT_MS)
            )
        except PlaywrightTimeoutError:
            self.logger.debug("  No listbox shown, committing typed value")
        locator.press('Enter')

    def _find_submit_button(self, page: Page) -> Locator:
        for selector in [FormSelectors.SUBMIT_BUTTON] + FormSelectors.SUBMIT_BUTTON_FALLBACKS:
            button = page.locator(selector).first
            if button.count() > 0:
                return button
        raise WebformError("Submit button not found")

    def _submit(self, page: Page, target: QuarterDefinition):
        """
        Click submit and wait for confirmation.

        Raises:
            WebformError: If the submission is rejected or never confirmed
        """
        endpoint = self.config.submission_endpoint(target.form_id)
        statuses: List[int] = []

        def on_response(response):
            if endpoint in response.url:
                statuses.append(response.status)

        button = self._find_submit_button(page)
        page.on('response', on_response)
        try:
            button.click()
            self._wait_for_confirmation(page, statuses)
        finally:
            page.remove_listener('response', on_response)

    def _wait_for_confirmation(self, page: Page, statuses: List[int]):
        elapsed = 0
        deadline = time.monotonic() + self.config.submit_timeout / 1000
        while True:
            if any(200 <= status < 300 for status in statuses):
                self.logger.debug("Submission endpoint returned success")
                return
            rejected = [status for status in statuses if status >= 400]
            if rejected:
                raise WebformError(f"Submission rejected (HTTP {rejected[-1]})")

            banner = self._visible_text(page, FormSelectors.ERROR_BANNERS)
            if banner is not None:
                raise WebformError(f"Form error: {banner}")

            if self._confirmation_shown(page):
                return

            if elapsed >= self.config.submit_timeout or time.monotonic() >= deadline:
                raise WebformError(f"Submission not confirmed within {self.config.submit_timeout} ms")

            page.wait_for_timeout(self.config.poll_interval)
            elapsed += self.config.poll_interval

    def _confirmation_shown(self, page: Page) -> bool:
        if any(fragment in page.url for fragment in FormSelectors.SUCCESS_URL_FRAGMENTS):
            return True
        selectors = [f"text={text}" for text in FormSelectors.SUCCESS_TEXTS] + FormSelectors.SUCCESS_ELEMENTS
        return self._visible_text(page, selectors) is not None

    def _visible_text(self, page: Page, selectors: List[str]) -> Optional[str]:
        """Get the text of the first visible element among selectors."""
        for selector in selectors:
            element = page.locator(selector).first
            if element.count() > 0 and element.is_visible():
                return (element.text_content() or '').strip() or selector
        return None
