"""
Shared fixtures: an in-memory stand-in for a Playwright page and session.

FakePage knows which selectors are "present" on the page. Waiting for,
filling or clicking a missing selector raises Playwright's TimeoutError,
just like the real page would after its timeout.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from timesheet_submitter.browser_session import BrowserSessionError
from timesheet_submitter.business_rules import PROJECT_TO_TOOL_LABEL
from timesheet_submitter.config import Config
from timesheet_submitter.models import TimesheetRow, Credentials
from timesheet_submitter.selectors import FormSelectors


class FakeLocator:
    def __init__(self, page, selector):
        self.page = page
        self.selector = selector

    @property
    def first(self):
        return self

    def _require(self, timeout=None):
        if self.page.closed:
            raise PlaywrightTimeoutError("Target page, context or browser has been closed")
        if self.selector not in self.page.present:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {self.selector}")

    def count(self):
        return 1 if self.selector in self.page.present else 0

    def is_visible(self):
        return self.selector in self.page.present

    def text_content(self):
        return self.page.texts.get(self.selector, '')

    def wait_for(self, state='visible', timeout=None):
        self.page.waited_for.append(self.selector)
        self._require(timeout)

    def fill(self, value, timeout=None):
        self._require(timeout)
        self.page.filled.append((self.selector, value))

    def press(self, key):
        self._require()
        self.page.pressed.append((self.selector, key))

    def click(self, timeout=None):
        self._require(timeout)
        self.page.clicked.append(self.selector)
        action = self.page.click_actions.get(self.selector)
        if action is not None:
            action(self.page)


class FakePage:
    def __init__(self, present=(), url='about:blank'):
        self.present = set(present)
        self.texts = {}
        self.url = url
        self.closed = False
        self.goto_calls = []
        self.goto_errors = []
        self.filled = []
        self.pressed = []
        self.clicked = []
        self.waited_for = []
        self.waited_ms = 0
        self.click_actions = {}
        self.listeners = {}

    def locator(self, selector):
        return FakeLocator(self, selector)

    def goto(self, url, timeout=None, wait_until=None):
        self.goto_calls.append(url)
        if self.goto_errors:
            raise self.goto_errors.pop(0)
        self.url = url

    def wait_for_load_state(self, state='load', timeout=None):
        pass

    def wait_for_timeout(self, ms):
        self.waited_ms += ms

    def is_closed(self):
        return self.closed

    def on(self, event, handler):
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event, handler):
        self.listeners[event].remove(handler)

    def emit_response(self, url, status):
        for handler in list(self.listeners.get('response', [])):
            handler(SimpleNamespace(url=url, status=status))

    def filled_value(self, selector):
        values = [value for sel, value in self.filled if sel == selector]
        return values[-1] if values else None


class FakeSession:
    def __init__(self, page):
        self._page = page
        self.start_calls = 0
        self.close_calls = 0

    @property
    def page(self):
        if self._page.closed:
            raise BrowserSessionError("Browser page was closed")
        return self._page

    def start(self):
        self.start_calls += 1

    def close(self):
        self.close_calls += 1


FORM_SELECTORS = (
    [FormSelectors.FORM_READY, FormSelectors.SUBMIT_BUTTON, FormSelectors.DROPDOWN_LISTBOX]
    + [field.selector for field in FormSelectors.FIELDS]
    + [f"input[aria-label='{label}']" for label in PROJECT_TO_TOOL_LABEL.values()]
)

LOGIN_SELECTORS = [step.selector for step in FormSelectors.LOGIN_STEPS]


@pytest.fixture
def fast_config():
    """Config with short timeouts so failure paths finish quickly."""
    return Config(
        element_timeout=50,
        login_timeout=50,
        submit_timeout=100,
        poll_interval=10,
        navigation_timeout=100,
    )


@pytest.fixture
def form_page():
    """A page showing the timesheet form, confirming every submission."""
    page = FakePage(present=FORM_SELECTORS + LOGIN_SELECTORS)

    def confirm(p):
        form_id = p.url.rstrip('/').rsplit('/', 1)[-1]
        p.emit_response(f"https://forms.smartsheet.com/api/submit/{form_id}", 200)

    page.click_actions[FormSelectors.SUBMIT_BUTTON] = confirm
    return page


@pytest.fixture
def session(form_page):
    return FakeSession(form_page)


@pytest.fixture
def credentials():
    return Credentials(email='jane.doe@example.com', password='s3cret')


@pytest.fixture
def make_row():
    """Factory for rows with sensible defaults."""
    def _make(date='2026-01-05', hours='8', project='OSC-BBB', tool='Hydraulic Press',
              charge_code='CC-100', task_description='Press maintenance'):
        return TimesheetRow(
            date=date,
            hours=Decimal(hours),
            project=project,
            tool=tool,
            charge_code=charge_code,
            task_description=task_description,
        )
    return _make
