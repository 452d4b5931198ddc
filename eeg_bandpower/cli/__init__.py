"""
Command line interface

This module provides the CLI for running, calibrating and validating the
band power engine.
"""

from .main import main, create_parser

__all__ = ['main', 'create_parser']
