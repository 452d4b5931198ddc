"""
Main entry point for the eeg_bandpower package

This allows running the package with: python -m eeg_bandpower
"""

import sys

from .cli.main import main

if __name__ == "__main__":
    sys.exit(main())
