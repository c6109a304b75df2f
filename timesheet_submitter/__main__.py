"""
Main entry point for running the package as a module.

Usage:
    python -m timesheet_submitter submit --csv data/january.csv --email jane.doe@example.com
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
