"""
Configuration for the timesheet submission bot.

This module centralizes configuration values including timeouts,
login validation behaviour and the form submission endpoint.
"""

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class Config:
    """
    Application configuration.

    Attributes:
        headless: Whether to run browser in headless mode
        navigation_timeout: Timeout for page navigation (milliseconds)
        element_timeout: Timeout for element operations (milliseconds)
        login_timeout: Timeout for each required login step (milliseconds)
        submit_timeout: Timeout for submission confirmation (milliseconds)
        poll_interval: Interval between confirmation checks (milliseconds)
        navigation_retries: Attempts to reach the login start page
        login_url: Page that starts the login flow (defaults to the first form URL)
        login_success_url_patterns: URL fragments that indicate a logged-in page
        permissive_login_check: Treat "no pattern matched" as logged in
        submission_endpoint_template: Submission API URL, formatted with form_id
        dry_run: Route rows without opening the browser
        verbose: Whether to enable verbose logging
        csv_path: Path to the CSV file
        quarters_path: Optional JSON file with quarter definitions
    """
    headless: bool = False
    navigation_timeout: int = 30000  # 30 seconds
    element_timeout: int = 10000     # 10 seconds
    login_timeout: int = 30000       # 30 seconds
    submit_timeout: int = 10000      # 10 seconds
    poll_interval: int = 250
    navigation_retries: int = 3

    login_url: Optional[str] = None
    login_success_url_patterns: List[str] = field(default_factory=lambda: [
        'app.smartsheet.com/b/form',
        'forms.smartsheet.com',
    ])
    permissive_login_check: bool = True
    submission_endpoint_template: str = 'forms.smartsheet.com/api/submit/{form_id}'

    # CLI options
    dry_run: bool = False
    verbose: bool = False

    # Data options
    csv_path: Optional[str] = None
    quarters_path: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> 'Config':
        """
        Build a configuration from TS_* environment variables.

        Recognized variables: TS_HEADLESS, TS_NAVIGATION_TIMEOUT_MS,
        TS_ELEMENT_TIMEOUT_MS, TS_LOGIN_TIMEOUT_MS, TS_SUBMIT_TIMEOUT_MS,
        TS_LOGIN_URL, TS_STRICT_LOGIN_CHECK.

        Args:
            environ: Mapping to read from (defaults to os.environ)
            **overrides: Explicit values that win over the environment

        Raises:
            ValueError: If a numeric variable is not an integer
        """
        env = os.environ if environ is None else environ
        values = {}

        if 'TS_HEADLESS' in env:
            values['headless'] = _env_bool(env['TS_HEADLESS'])
        if 'TS_STRICT_LOGIN_CHECK' in env:
            values['permissive_login_check'] = not _env_bool(env['TS_STRICT_LOGIN_CHECK'])
        if env.get('TS_LOGIN_URL'):
            values['login_url'] = env['TS_LOGIN_URL']

        for var, attr in (
            ('TS_NAVIGATION_TIMEOUT_MS', 'navigation_timeout'),
            ('TS_ELEMENT_TIMEOUT_MS', 'element_timeout'),
            ('TS_LOGIN_TIMEOUT_MS', 'login_timeout'),
            ('TS_SUBMIT_TIMEOUT_MS', 'submit_timeout'),
        ):
            if var in env:
                try:
                    values[attr] = int(env[var])
                except ValueError:
                    raise ValueError(f"{var} must be an integer, got: {env[var]!r}")

        values.update(overrides)
        return cls(**values)

    def submission_endpoint(self, form_id: str) -> str:
        """Get the submission endpoint fragment for a form."""
        return self.submission_endpoint_template.format(form_id=form_id)

    def validate(self):
        """
        Validate configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        for name in ('navigation_timeout', 'element_timeout', 'login_timeout',
                     'submit_timeout', 'poll_interval'):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got: {value}")

        if self.poll_interval > self.submit_timeout:
            raise ValueError("poll_interval cannot exceed submit_timeout")

        if self.navigation_retries < 1:
            raise ValueError(f"navigation_retries must be at least 1, got: {self.navigation_retries}")

        if '{form_id}' not in self.submission_endpoint_template:
            raise ValueError("submission_endpoint_template must contain '{form_id}'")


# Default configuration instance
DEFAULT_CONFIG = Config()
