#!/usr/bin/env python3
"""
docpipe - Entry point for python -m docpipe

This module allows the package to be run as a module:
    python -m docpipe
"""

import sys

from docpipe.cli import main

if __name__ == "__main__":
    sys.exit(main())
