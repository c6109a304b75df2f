"""
Browser session management.

One Playwright browser, context and page, started and torn down as a unit.
"""

from typing import Optional

from playwright.sync_api import sync_playwright, Browser, BrowserContext, Page, Playwright

from .config import Config
from .logging_utils import get_logger, log_step, log_warning


class BrowserSessionError(Exception):
    """Raised when the browser cannot be launched or the page is gone."""
    pass


class BrowserSession:
    """
    Owns a single Playwright page for the duration of one run.
    """

    def __init__(self, config: Config):
        """
        Initialize the session.

        Args:
            config: Application configuration
        """
        self.config = config
        self.logger = get_logger()
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    def __enter__(self):
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    @property
    def page(self) -> Page:
        """
        Get the live page.

        Raises:
            BrowserSessionError: If the session is not started or the page was closed
        """
        if self._page is None:
            raise BrowserSessionError("Browser session is not started")
        if self._page.is_closed():
            raise BrowserSessionError("Browser page was closed")
        return self._page

    def start(self):
        """
        Start Playwright and launch the browser.

        Raises:
            BrowserSessionError: If the browser cannot be launched
        """
        log_step("Starting browser...", self.logger)

        try:
            self.playwright = sync_playwright().start()
            self.browser = self.playwright.chromium.launch(headless=self.config.headless)
            self.context = self.browser.new_context()
            self.context.set_default_timeout(self.config.element_timeout)
            self.context.set_default_navigation_timeout(self.config.navigation_timeout)
            self._page = self.context.new_page()
        except Exception as e:
            self.close()
            raise BrowserSessionError(f"Failed to launch browser: {e}") from e

        self.logger.debug(f"Browser launched (headless={self.config.headless})")

    def close(self):
        """
        Close page, context, browser and Playwright.

        Each resource is released even if an earlier one fails to close;
        failures are logged, never raised.
        """
        for name, resource, method in (
            ('page', self._page, 'close'),
            ('context', self.context, 'close'),
            ('browser', self.browser, 'close'),
            ('playwright', self.playwright, 'stop'),
        ):
            if resource is None:
                continue
            try:
                getattr(resource, method)()
            except Exception as e:
                log_warning(f"Failed to close {name}: {e}", self.logger)

        self._page = None
        self.context = None
        self.browser = None
        self.playwright = None

        self.logger.debug("Browser closed")
