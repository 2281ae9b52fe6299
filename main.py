#!/usr/bin/env python3
"""
Broken Link Checker - Main Entry Point

Recursively checks every link reachable within a web site and prints a JSON
report of each URL's outcome.
"""

import sys

from brokenlinks.cli import main


if __name__ == '__main__':
    sys.exit(main())
