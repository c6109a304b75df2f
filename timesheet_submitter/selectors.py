"""
DOM selectors for the Smartsheet timesheet form and its sign-in flow.

This module defines the login recipe, the form field definitions and the
markers used to detect submission success or failure.

IMPORTANT: These selectors target the live Smartsheet form and the Microsoft
sign-in pages it redirects to. If either DOM changes, update this module
rather than the code that drives it.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from .business_rules import PROJECT_TO_TOOL_LABEL


@dataclass(frozen=True)
class LoginStep:
    """
    One step of the login recipe.

    Attributes:
        name: Step name used in logs
        action: "wait", "input" or "click"
        selector: Element the step waits for, fills or clicks
        value_key: For inputs, "email" or "password"
        wait_state: For waits, the Playwright element state to wait for
        expects_navigation: For clicks, wait for the page load afterwards
        optional: Missing elements are tolerated instead of failing login
    """
    name: str
    action: str
    selector: str
    value_key: Optional[str] = None
    wait_state: str = 'visible'
    expects_navigation: bool = False
    optional: bool = False


@dataclass(frozen=True)
class FieldDefinition:
    """
    A form field and how to fill it.

    Attributes:
        key: Semantic field name on TimesheetRow
        label: Field label on the form
        selector: Playwright selector for the input
        dropdown: Whether the value must be committed from a listbox
        optional: Whether the field may be left untouched
    """
    key: str
    label: str
    selector: str
    dropdown: bool = False
    optional: bool = False


class FormSelectors:
    """
    Centralized selectors for the timesheet form.

    All selectors use Playwright locator syntax.
    """

    # Marker that the form is rendered and interactive
    FORM_READY = "input[aria-label='Project Task']"

    SUBMIT_BUTTON = "button[data-client-id='form_submit_btn']"
    SUBMIT_BUTTON_FALLBACKS = [
        "button:has-text('Submit')",
        "button[type='submit']",
        "input[type='submit']",
        "button[aria-label*='submit' i]",
    ]

    # Listbox shown by dropdown fields while typing
    DROPDOWN_LISTBOX = "[role='listbox']"

    # Confirmation shown after a successful submission
    SUCCESS_ELEMENTS = [
        "[data-client-id='form_confirmation']",
        ".submission-success",
        ".form-success",
        ".success-message",
        ".alert-success",
    ]
    SUCCESS_TEXTS = [
        "Success! We've captured your submission",
        "Thank you for your submission",
        "Form submitted successfully",
    ]
    SUCCESS_URL_FRAGMENTS = ['confirmation', 'success', 'complete']

    # Error banner shown when the form rejects a submission
    ERROR_BANNERS = [
        "[data-client-id='form_error_banner']",
        ".form-error-banner",
        ".alert-danger",
        ".error-banner",
    ]

    # Sign-in errors shown for bad credentials
    LOGIN_ERRORS = [
        "#passwordError",
        "#usernameError",
        "#errorText",
        "[data-client-id='login_error']",
    ]

    # Fill order matters: later fields depend on earlier dropdown selections
    FIELDS: List[FieldDefinition] = [
        FieldDefinition('project', 'Project', "input[aria-label='Project Task']", dropdown=True),
        FieldDefinition('date', 'Date', "input[placeholder='mm/dd/yyyy']"),
        FieldDefinition('hours', 'Hours', "input[aria-label='Hours']"),
        FieldDefinition('tool', 'Tool', "input[aria-label*='Tool']", dropdown=True, optional=True),
        FieldDefinition('task_description', 'Task Description', "role=textbox[name='Task Description']"),
        FieldDefinition('charge_code', 'Detail Charge Code', "input[aria-label='Detail Charge Code']",
                        dropdown=True, optional=True),
    ]

    LOGIN_STEPS: List[LoginStep] = [
        LoginStep("Wait for Login Form", 'wait', "#loginEmail", optional=True),
        LoginStep("Email Input", 'input', "#loginEmail", value_key='email', optional=True),
        LoginStep("Continue", 'click', "#formControl", expects_navigation=True, optional=True),
        LoginStep("Wait for SSO Choice", 'wait', "a.clsJspButtonWide", optional=True),
        LoginStep("Login with company account", 'click', "a.clsJspButtonWide",
                  expects_navigation=True, optional=True),
        LoginStep("Wait for AAD Email", 'wait', "#i0116"),
        LoginStep("AAD Email", 'input', "#i0116", value_key='email'),
        LoginStep("AAD Next", 'click', "#idSIButton9", expects_navigation=True, optional=True),
        LoginStep("Wait for Password", 'wait', "#passwordInput"),
        LoginStep("Password Input", 'input', "#passwordInput", value_key='password'),
        LoginStep("Password Submit", 'click', "#submitButton", expects_navigation=True, optional=True),
        LoginStep("Stay Signed In Prompt", 'wait', "#idBtn_Back", optional=True),
        LoginStep("Stay Signed In - No", 'click', "#idBtn_Back", expects_navigation=True, optional=True),
        LoginStep("Wait for Form Page Ready", 'wait', FORM_READY),
    ]

    @staticmethod
    def get_tool_selector(project: str) -> str:
        """
        Get the selector for the tool input of a project.

        Some projects render a dedicated tool control labelled after the project.

        Example:
            >>> FormSelectors.get_tool_selector("OSC-BBB")
            "input[aria-label='BBB Tool']"
        """
        label = PROJECT_TO_TOOL_LABEL.get(project)
        if label:
            return f"input[aria-label='{label}']"
        return FormSelectors.field('tool').selector

    @staticmethod
    def field(key: str) -> FieldDefinition:
        """Get a field definition by key."""
        return FIELD_BY_KEY[key]


FIELD_BY_KEY: Dict[str, FieldDefinition] = {f.key: f for f in FormSelectors.FIELDS}
