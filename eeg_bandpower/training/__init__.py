"""
Calibration procedures

This module captures per-user band power baselines and stores them as
JSON profiles.
"""

from .calibration import BaselineCalibrator, ProfileStore

__all__ = ['BaselineCalibrator', 'ProfileStore']
