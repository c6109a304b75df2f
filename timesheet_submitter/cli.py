"""
Command-line interface for the timesheet submission bot.

This module provides the CLI using argparse: submitting rows from a CSV
file, checking how rows route to quarters, and listing the quarters.
"""

import argparse
import getpass
import json
import os
import sys
import threading
from pathlib import Path
from typing import List, Optional, Sequence

from .config import Config
from .csv_loader import load_csv, CSVLoadError
from .logging_utils import setup_logging, get_logger, log_section, log_success, log_warning, log_error
from .models import AutomationResult, Credentials, ProgressEvent, TimesheetRow
from .orchestrator import run_timesheet
from .quarter_router import (
    QuarterConfigError,
    QuarterTable,
    DEFAULT_QUARTERS,
    group_by_quarter,
    load_quarter_definitions,
    resolve_quarter,
    validate_availability,
)


EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_CANCELLED = 130  # Standard exit code for SIGINT


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog='timesheet_submitter',
        description='Submit timesheet entries to the quarterly Smartsheet forms',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check which quarter each row goes to (no browser)
  python -m timesheet_submitter check --csv data/january.csv

  # Submit rows, password read from $TS_PASSWORD or prompted
  python -m timesheet_submitter submit --csv data/january.csv --email jane.doe@example.com

  # Submit headless with strict login checking
  python -m timesheet_submitter submit --csv data/january.csv --email jane.doe@example.com --headless --strict-login

  # List the configured quarters
  python -m timesheet_submitter quarters
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Submit command
    submit_parser = subparsers.add_parser('submit', help='Submit timesheet rows from CSV data')
    submit_parser.add_argument(
        '--csv',
        type=str,
        required=True,
        metavar='PATH',
        help='Path to CSV file with timesheet rows'
    )
    submit_parser.add_argument(
        '--email',
        type=str,
        required=True,
        help='Account email used to sign in'
    )
    submit_parser.add_argument(
        '--password-env',
        type=str,
        default='TS_PASSWORD',
        metavar='VAR',
        help='Environment variable holding the password (default: TS_PASSWORD); prompts if unset'
    )
    submit_parser.add_argument(
        '--headless',
        action='store_true',
        help='Run browser in headless mode (no GUI)'
    )
    submit_parser.add_argument(
        '--strict-login',
        action='store_true',
        help='Only treat login as confirmed when the page URL matches a known form page'
    )
    submit_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Route rows and show the plan without opening the browser'
    )
    submit_parser.add_argument(
        '--json',
        action='store_true',
        help='Print the run result as JSON'
    )

    # Check command
    check_parser = subparsers.add_parser('check', help='Route CSV rows to quarters without submitting')
    check_parser.add_argument(
        '--csv',
        type=str,
        required=True,
        metavar='PATH',
        help='Path to CSV file with timesheet rows'
    )

    # Quarters command
    quarters_parser = subparsers.add_parser('quarters', help='List configured quarters')

    for sub in (submit_parser, check_parser, quarters_parser):
        sub.add_argument(
            '--quarters',
            type=str,
            metavar='JSON',
            help='JSON file with quarter definitions (default: built-in quarters)'
        )
        sub.add_argument(
            '--verbose',
            '-v',
            action='store_true',
            help='Enable verbose logging (debug level)'
        )

    return parser


def validate_args(args: argparse.Namespace) -> bool:
    """
    Validate command-line arguments.

    Args:
        args: Parsed arguments

    Returns:
        True if valid, False otherwise
    """
    logger = get_logger()

    csv_path = getattr(args, 'csv', None)
    if csv_path is not None and not Path(csv_path).exists():
        log_error(f"CSV file not found: {csv_path}", logger)
        return False

    quarters_path = getattr(args, 'quarters', None)
    if quarters_path is not None and not Path(quarters_path).exists():
        log_error(f"Quarter file not found: {quarters_path}", logger)
        return False

    return True


def _load_quarters(args: argparse.Namespace) -> QuarterTable:
    if args.quarters:
        return load_quarter_definitions(args.quarters)
    return DEFAULT_QUARTERS


def _read_password(var_name: str) -> str:
    password = os.environ.get(var_name)
    if password:
        return password
    return getpass.getpass('Password: ')


def _log_plan(rows: Sequence[TimesheetRow], quarters: QuarterTable) -> List[str]:
    """
    Log the per-quarter plan and return routing errors.
    """
    logger = get_logger()
    errors = []

    for quarter_id, quarter_rows in group_by_quarter(rows, quarters).items():
        hours = sum(row.hours for row in quarter_rows)
        logger.info(f"  {quarter_id}: {len(quarter_rows)} row(s), {hours} hour(s)")

    for i, row in enumerate(rows, 1):
        if resolve_quarter(row.date, quarters) is None:
            message = f"Row {i} ({row.date or 'no date'}): {validate_availability(row.date, quarters)}"
            log_warning(message, logger)
            errors.append(message)

    return errors


def _log_progress(event: ProgressEvent):
    get_logger().debug(f"[{event.percent:3d}%] {event.message}")


def _run_with_interrupt(rows, credentials, config, quarters) -> Optional[AutomationResult]:
    """
    Run the bot in a worker thread so Ctrl-C can request a clean stop.

    Returns:
        Run result (flagged cancelled if Ctrl-C stopped it early), or None
        if the worker produced no result
    """
    cancel_event = threading.Event()
    outcome = {}

    def worker():
        try:
            outcome['result'] = run_timesheet(
                rows,
                credentials,
                config=config,
                quarters=quarters,
                progress_callback=_log_progress,
                cancel_event=cancel_event
            )
        except Exception as e:
            outcome['error'] = e

    thread = threading.Thread(target=worker, name='timesheet-run')
    thread.start()
    try:
        while thread.is_alive():
            thread.join(timeout=0.5)
    except KeyboardInterrupt:
        log_warning("Cancelling after the current row...", get_logger())
        cancel_event.set()
        thread.join()

    if 'error' in outcome:
        raise outcome['error']
    return outcome.get('result')


def cmd_submit(args: argparse.Namespace) -> int:
    """
    Execute the submit command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 all submitted, 1 errors, 130 cancelled)
    """
    logger = get_logger()

    overrides = {
        'csv_path': args.csv,
        'quarters_path': args.quarters,
        'dry_run': args.dry_run,
        'verbose': args.verbose,
    }
    if args.headless:
        overrides['headless'] = True
    if args.strict_login:
        overrides['permissive_login_check'] = False

    try:
        config = Config.from_env(**overrides)
        config.validate()
        quarters = _load_quarters(args)
    except (ValueError, QuarterConfigError) as e:
        log_error(f"Configuration error: {e}", logger)
        return EXIT_ERRORS

    log_section("Loading CSV Data", logger)
    try:
        rows = load_csv(config.csv_path)
    except CSVLoadError as e:
        log_error(f"CSV loading failed: {e}", logger)
        return EXIT_ERRORS

    logger.info(f"Loaded {len(rows)} row(s) from {config.csv_path}")
    routing_errors = _log_plan(rows, quarters)

    if config.dry_run:
        log_section("Dry Run Complete", logger)
        logger.info("No browser operations performed.")
        return EXIT_ERRORS if routing_errors else EXIT_OK

    try:
        credentials = Credentials(args.email, _read_password(args.password_env))
    except ValueError as e:
        log_error(str(e), logger)
        return EXIT_ERRORS
    except (EOFError, KeyboardInterrupt):
        logger.warning("Operation cancelled by user")
        return EXIT_CANCELLED

    log_section("Submitting", logger)
    try:
        result = _run_with_interrupt(rows, credentials, config, quarters)
    except Exception as e:
        log_error(f"Operation failed: {e}", logger)
        if config.verbose:
            import traceback
            logger.debug(traceback.format_exc())
        return EXIT_ERRORS

    if result is None:
        logger.warning("Operation cancelled by user")
        return EXIT_CANCELLED

    logger.info(result.format_summary())
    if result.cancelled:
        logger.warning("Operation cancelled by user")
        exit_code = EXIT_CANCELLED
    elif result.ok:
        log_success("All rows submitted", logger)
        exit_code = EXIT_OK
    else:
        logger.warning("Operation completed with errors")
        exit_code = EXIT_ERRORS

    # Must stay the last line written to stdout
    if args.json:
        print(json.dumps(result.to_dict()))

    return exit_code


def cmd_check(args: argparse.Namespace) -> int:
    """Execute the check command."""
    logger = get_logger()

    try:
        quarters = _load_quarters(args)
        rows = load_csv(args.csv)
    except (QuarterConfigError, CSVLoadError) as e:
        log_error(str(e), logger)
        return EXIT_ERRORS

    log_section(f"Routing {len(rows)} row(s)", logger)
    errors = _log_plan(rows, quarters)

    if errors:
        logger.warning(f"{len(errors)} row(s) cannot be routed")
        return EXIT_ERRORS

    log_success("All rows route to a quarter", logger)
    return EXIT_OK


def cmd_quarters(args: argparse.Namespace) -> int:
    """Execute the quarters command."""
    logger = get_logger()

    try:
        quarters = _load_quarters(args)
    except QuarterConfigError as e:
        log_error(str(e), logger)
        return EXIT_ERRORS

    log_section("Configured Quarters", logger)
    for quarter in quarters:
        logger.info(f"  {quarter.id:<10} {quarter.start_date} .. {quarter.end_date}  {quarter.form_url}")
    return EXIT_OK


COMMANDS = {
    'submit': cmd_submit,
    'check': cmd_check,
    'quarters': cmd_quarters,
}


def main(argv=None):
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=getattr(args, 'verbose', False))

    logger = get_logger()

    logger.info("")
    logger.info("=" * 70)
    logger.info("  Timesheet Submission Bot")
    logger.info("=" * 70)

    if not args.command:
        parser.print_help()
        return EXIT_ERRORS

    if not validate_args(args):
        return EXIT_ERRORS

    try:
        return COMMANDS[args.command](args)
    except KeyboardInterrupt:
        logger.info("")
        logger.warning("Operation cancelled by user")
        return EXIT_CANCELLED


if __name__ == '__main__':
    sys.exit(main())
