#!/usr/bin/env python3
"""
Main entry point for the dbschema command line
"""

import sys

from dbschema.cli.main_cli import main

if __name__ == "__main__":
    sys.exit(main())
