"""
Timesheet Submitter - Automated timesheet submission to quarterly Smartsheet forms.

This package routes timesheet entries to the form of their fiscal quarter,
signs in once, and submits the entries one by one with Playwright.
"""

__version__ = '1.0.0'
__author__ = 'Timesheet Automation'

from .models import TimesheetRow, QuarterDefinition, Credentials, AutomationResult, RowOutcome, ProgressEvent
from .config import Config
from .csv_loader import load_csv, CSVLoadError
from .quarter_router import (
    QuarterTable,
    QuarterConfigError,
    DEFAULT_QUARTERS,
    resolve_quarter,
    validate_availability,
    group_by_quarter,
)
from .browser_session import BrowserSession, BrowserSessionError
from .login_manager import LoginManager, LoginError
from .webform_filler import WebformFiller, WebformError
from .orchestrator import BotOrchestrator, BotNotStartedError, run_timesheet

__all__ = [
    'TimesheetRow',
    'QuarterDefinition',
    'Credentials',
    'AutomationResult',
    'RowOutcome',
    'ProgressEvent',
    'Config',
    'load_csv',
    'CSVLoadError',
    'QuarterTable',
    'QuarterConfigError',
    'DEFAULT_QUARTERS',
    'resolve_quarter',
    'validate_availability',
    'group_by_quarter',
    'BrowserSession',
    'BrowserSessionError',
    'LoginManager',
    'LoginError',
    'WebformFiller',
    'WebformError',
    'BotOrchestrator',
    'BotNotStartedError',
    'run_timesheet',
]
