"""
Login handling for the form host.

This module drives the scripted sign-in flow (Smartsheet email page,
company SSO choice, Microsoft sign-in) and checks whether the page that
results looks like a logged-in form page.
"""

from enum import Enum
from typing import List, Optional

from playwright.sync_api import Page, Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from .browser_session import BrowserSession, BrowserSessionError
from .config import Config
from .logging_utils import get_logger, log_section, log_step, log_success, log_warning, log_error, mask_email
from .models import Credentials
from .selectors import FormSelectors, LoginStep


NETWORK_ERROR_MARKERS = [
    'ERR_NAME_NOT_RESOLVED',
    'ERR_CONNECTION',
    'ERR_TUNNEL_CONNECTION_FAILED',
    'ERR_INTERNET_DISCONNECTED',
    'net::',
]


class LoginError(Exception):
    """Raised when the login flow fails. Fatal to the run."""
    pass


class LoginState(Enum):
    """Login lifecycle. AUTHENTICATED and FAILED are terminal."""
    NOT_STARTED = 'not_started'
    AUTHENTICATING = 'authenticating'
    AUTHENTICATED = 'authenticated'
    FAILED = 'failed'


class LoginCheck(Enum):
    """Outcome of inspecting the current page after login."""
    CONFIRMED = 'confirmed'
    UNCONFIRMED = 'unconfirmed'
    FAILED = 'failed'


def is_network_error(message: str) -> bool:
    """
    Determine if a navigation error looks like a connectivity problem.

    Examples:
        >>> is_network_error("net::ERR_NAME_NOT_RESOLVED at https://x")
        True
        >>> is_network_error("Timeout 30000ms exceeded")
        False
    """
    return any(marker in message for marker in NETWORK_ERROR_MARKERS)


def _first_line(error: Exception) -> str:
    text = str(error).strip()
    return text.splitlines()[0] if text else error.__class__.__name__


class LoginManager:
    """
    Runs the login recipe once per browser session.
    """

    def __init__(self, session: BrowserSession, config: Config, steps: Optional[List[LoginStep]] = None):
        """
        Initialize the login manager.

        Args:
            session: Started browser session
            config: Application configuration
            steps: Login recipe (defaults to FormSelectors.LOGIN_STEPS)
        """
        self.session = session
        self.config = config
        self.steps = steps if steps is not None else FormSelectors.LOGIN_STEPS
        self.logger = get_logger()
        self.state = LoginState.NOT_STARTED

    @property
    def is_authenticated(self) -> bool:
        return self.state is LoginState.AUTHENTICATED

    def login(self, credentials: Credentials, start_url: str, form_url: Optional[str] = None):
        """
        Sign in and wait until the form page is ready.

        Args:
            credentials: Account email and password
            start_url: Page that starts the sign-in flow
            form_url: Form page to open before waiting for the form, when
                sign-in does not land there by itself

        Raises:
            LoginError: If any required step fails, the host rejects the
                credentials, or login was already attempted
        """
        if self.state is not LoginState.NOT_STARTED:
            raise LoginError(f"Login already attempted (state: {self.state.value})")

        self.state = LoginState.AUTHENTICATING
        log_section("LOGIN", self.logger)
        self.logger.info(f"Signing in as {mask_email(credentials.email)}")

        try:
            page = self.session.page
            self._navigate(page, start_url)
            for step in self.steps:
                if step.selector == FormSelectors.FORM_READY and form_url and not page.url.startswith(form_url):
                    self._navigate(page, form_url)
                self._run_step(page, step, credentials)
                if step.action == 'click':
                    self._raise_for_login_error(page)
        except LoginError as e:
            self.state = LoginState.FAILED
            log_error(f"Login failed: {e}", self.logger)
            raise
        except BrowserSessionError as e:
            self.state = LoginState.FAILED
            log_error(f"Login failed: {e}", self.logger)
            raise LoginError(str(e)) from e
        except PlaywrightError as e:
            self.state = LoginState.FAILED
            log_error(f"Login failed: {_first_line(e)}", self.logger)
            raise LoginError(_first_line(e)) from e

        self.state = LoginState.AUTHENTICATED
        log_success("Login complete", self.logger)

    def _navigate(self, page: Page, url: str):
        """
        Open a page, retrying a bounded number of times.

        Raises:
            LoginError: If every attempt fails
        """
        attempts = self.config.navigation_retries
        last_error = ""

        for attempt in range(1, attempts + 1):
            log_step(f"Navigating to {url} (attempt {attempt}/{attempts})...", self.logger)
            try:
                page.goto(url, timeout=self.config.navigation_timeout, wait_until='domcontentloaded')
                self.logger.debug("Navigation successful")
                return
            except PlaywrightError as e:
                if page.is_closed():
                    raise BrowserSessionError("Browser page was closed during navigation") from e
                last_error = _first_line(e)
                log_warning(f"Navigation failed: {last_error}", self.logger)

        if is_network_error(last_error):
            self.logger.error("")
            self.logger.error("=" * 70)
            self.logger.error("  NETWORK CONNECTION ERROR")
            self.logger.error("=" * 70)
            self.logger.error("  Check your VPN/proxy and network connection, and that")
            self.logger.error(f"  {url} opens in a regular browser.")
            self.logger.error("=" * 70)

        raise LoginError(f"Could not open {url} after {attempts} attempt(s): {last_error}")

    def _run_step(self, page: Page, step: LoginStep, credentials: Credentials):
        """Execute one login step; optional steps tolerate missing elements."""
        timeout = self.config.element_timeout if step.optional else self.config.login_timeout
        locator = page.locator(step.selector).first
        self.logger.debug(f"Login step: {step.name}")

        try:
            if step.action == 'wait':
                locator.wait_for(state=step.wait_state, timeout=timeout)
            elif step.action == 'input':
                locator.wait_for(state='visible', timeout=timeout)
                locator.fill(getattr(credentials, step.value_key), timeout=timeout)
            elif step.action == 'click':
                locator.click(timeout=timeout)
                if step.expects_navigation:
                    self._wait_for_load(page)
            else:
                raise LoginError(f"Unknown login action '{step.action}' in step '{step.name}'")
        except PlaywrightTimeoutError:
            if step.optional:
                self.logger.debug(f"Optional login step skipped: {step.name}")
                return
            raise LoginError(f"Login step '{step.name}' timed out waiting for {step.selector}")

    def _wait_for_load(self, page: Page):
        try:
            page.wait_for_load_state('domcontentloaded', timeout=self.config.navigation_timeout)
        except PlaywrightTimeoutError:
            self.logger.debug("No page load after click")

    def _raise_for_login_error(self, page: Page):
        """Fail fast if the sign-in page shows a credentials error."""
        for selector in FormSelectors.LOGIN_ERRORS:
            banner = page.locator(selector).first
            if banner.count() > 0 and banner.is_visible():
                text = (banner.text_content() or '').strip()
                raise LoginError(f"Sign-in rejected: {text or selector}")

    def check_login_state(self) -> LoginCheck:
        """
        Inspect the current page URL.

        Returns:
            CONFIRMED if the URL matches a configured success pattern,
            UNCONFIRMED if it matches none, FAILED if the page cannot be read
        """
        try:
            url = self.session.page.url
        except (BrowserSessionError, PlaywrightError) as e:
            self.logger.debug(f"Could not read page URL: {e}")
            return LoginCheck.FAILED

        if any(pattern in url for pattern in self.config.login_success_url_patterns):
            return LoginCheck.CONFIRMED
        return LoginCheck.UNCONFIRMED

    def validate_login_state(self) -> bool:
        """
        Check whether the session appears to be logged in.

        An unconfirmed URL counts as logged in unless strict checking is enabled.
        """
        check = self.check_login_state()
        if check is LoginCheck.UNCONFIRMED:
            self.logger.debug("Page URL matches no login success pattern")
            return self.config.permissive_login_check
        return check is LoginCheck.CONFIRMED
