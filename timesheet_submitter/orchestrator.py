"""
Bot orchestrator: one sequential submission run.

The orchestrator owns the browser session, logs in once, routes every row
to its quarter's form, submits the rows in order and folds the per-row
outcomes into an AutomationResult.
"""

import threading
from typing import Callable, List, Optional, Sequence

from .browser_session import BrowserSession, BrowserSessionError
from .config import Config, DEFAULT_CONFIG
from .logging_utils import get_logger, log_section, log_step, log_success, log_warning, log_error
from .login_manager import LoginManager, LoginError
from .models import AutomationResult, Credentials, ProgressEvent, RowOutcome, TimesheetRow
from .quarter_router import QuarterTable, DEFAULT_QUARTERS, resolve_quarter, validate_availability
from .webform_filler import WebformFiller


ProgressCallback = Callable[[ProgressEvent], None]
SessionFactory = Callable[[Config], BrowserSession]

# Progress checkpoints (percent)
PROGRESS_LOGIN = 10
PROGRESS_LOGGED_IN = 20
PROGRESS_ROWS_SPAN = 60
PROGRESS_DONE = 100


class BotNotStartedError(RuntimeError):
    """Raised when a run is requested before start()."""
    pass


class BotOrchestrator:
    """
    Runs timesheet submissions against the quarter forms.

    Usage:
        with BotOrchestrator(config) as bot:
            result = bot.run_automation(rows, credentials)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        quarters: QuarterTable = DEFAULT_QUARTERS,
        progress_callback: Optional[ProgressCallback] = None,
        session_factory: Optional[SessionFactory] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Application configuration (defaults to DEFAULT_CONFIG)
            quarters: Quarter table used to route rows
            progress_callback: Receives a ProgressEvent at each checkpoint
            session_factory: Builds the browser session (defaults to BrowserSession)
        """
        self.config = config or DEFAULT_CONFIG
        self.quarters = quarters
        self.progress_callback = progress_callback
        self.session_factory = session_factory or BrowserSession
        self.logger = get_logger()
        self.session: Optional[BrowserSession] = None

    def __enter__(self):
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    @property
    def is_started(self) -> bool:
        return self.session is not None

    def start(self):
        """
        Launch the browser session.

        Raises:
            BrowserSessionError: If the browser cannot be launched
        """
        if self.session is not None:
            self.logger.debug("Bot already started")
            return

        session = self.session_factory(self.config)
        session.start()
        self.session = session
        log_success("Browser ready", self.logger)

    def close(self):
        """Tear down the browser session. Errors are logged, never raised."""
        if self.session is None:
            return

        session, self.session = self.session, None
        try:
            session.close()
        except Exception as e:
            log_warning(f"Error while closing browser: {e}", self.logger)

    def _report(self, percent: int, current: int, total: int, message: str):
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(ProgressEvent(percent, current, total, message))
        except Exception as e:
            log_warning(f"Progress callback failed: {e}", self.logger)

    def _form_url(self, rows: Sequence[TimesheetRow]) -> str:
        for row in rows:
            quarter = resolve_quarter(row.date, self.quarters)
            if quarter is not None:
                return quarter.form_url
        return self.quarters.quarters[0].form_url

    def _login_url(self, rows: Sequence[TimesheetRow]) -> str:
        return self.config.login_url or self._form_url(rows)

    def run_automation(
        self,
        rows: Sequence[TimesheetRow],
        credentials: Credentials,
        cancel_event: Optional[threading.Event] = None
    ) -> AutomationResult:
        """
        Log in and submit every row, in order.

        Args:
            rows: Rows to submit
            credentials: Account email and password
            cancel_event: Set from another thread to stop between rows

        Returns:
            Run result; run-level failures appear in errors with index -1

        Raises:
            BotNotStartedError: If start() has not been called
        """
        total = len(rows)
        if total == 0:
            self.logger.info("No rows to submit")
            return AutomationResult()

        if self.session is None:
            raise BotNotStartedError("start() must be called before run_automation()")

        log_section(f"SUBMITTING {total} ROW(S)", self.logger)

        if cancel_event is not None and cancel_event.is_set():
            log_warning("Run cancelled before login", self.logger)
            return AutomationResult.from_outcomes([], total, cancelled=True)

        self._report(PROGRESS_LOGIN, 0, total, "Logging in...")
        login = LoginManager(self.session, self.config)
        try:
            login.login(credentials, self._login_url(rows), form_url=self._form_url(rows))
        except LoginError as e:
            return AutomationResult.failure(f"Login failed: {e}", total)

        if not login.validate_login_state():
            log_warning("Could not confirm login from the page URL, continuing", self.logger)
        self._report(PROGRESS_LOGGED_IN, 0, total, "Login complete")

        outcomes, run_errors, cancelled = self._process_rows(rows, cancel_event)

        result = AutomationResult.from_outcomes(outcomes, total, run_errors=run_errors, cancelled=cancelled)
        self._report(PROGRESS_DONE, total, total, "Done")

        if result.ok:
            log_success(f"All {total} row(s) submitted", self.logger)
        else:
            log_warning(
                f"{len(result.submitted)}/{total} row(s) submitted, {len(result.errors)} error(s)",
                self.logger
            )
        return result

    def _process_rows(self, rows: Sequence[TimesheetRow], cancel_event: Optional[threading.Event]):
        """
        Submit rows strictly in order.

        Returns:
            (outcomes, run_errors, cancelled)
        """
        total = len(rows)
        filler = WebformFiller(self.session, self.config)
        outcomes: List[RowOutcome] = []

        for index, row in enumerate(rows):
            if cancel_event is not None and cancel_event.is_set():
                log_warning(f"Run cancelled, {total - index} row(s) not attempted", self.logger)
                return outcomes, [], True

            quarter = resolve_quarter(row.date, self.quarters)
            if quarter is None:
                message = validate_availability(row.date, self.quarters)
                log_error(f"Row {index + 1}: {message}", self.logger)
                outcomes.append(RowOutcome.failed(index, message))
            else:
                try:
                    outcomes.append(filler.fill_row(row, quarter, index))
                except BrowserSessionError as e:
                    log_error(f"Browser session lost: {e}", self.logger)
                    return outcomes, [f"Browser session lost: {e}"], False

            self._report(
                PROGRESS_LOGGED_IN + PROGRESS_ROWS_SPAN * (index + 1) // total,
                index + 1,
                total,
                f"Processed row {index + 1} of {total}"
            )

        return outcomes, [], False


def run_timesheet(
    rows: Sequence[TimesheetRow],
    credentials: Credentials,
    config: Optional[Config] = None,
    quarters: QuarterTable = DEFAULT_QUARTERS,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
    session_factory: Optional[SessionFactory] = None
) -> AutomationResult:
    """
    Start a bot, run the rows, and always release the browser.

    A browser that fails to launch is reported as a run-level error.

    Returns:
        Run result
    """
    bot = BotOrchestrator(config, quarters, progress_callback, session_factory)
    if not rows:
        return bot.run_automation(rows, credentials, cancel_event)

    log_step("Launching browser...", bot.logger)
    try:
        bot.start()
    except BrowserSessionError as e:
        log_error(str(e), bot.logger)
        return AutomationResult.failure(f"Browser failed to start: {e}", len(rows))

    try:
        return bot.run_automation(rows, credentials, cancel_event)
    finally:
        bot.close()
