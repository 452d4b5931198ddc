"""
Mental state detection and biofeedback

This module turns published band powers into focus/relaxation/stress
indices and baseline-normalised feedback values.
"""

from .mental_state import compute_mental_state, normalize_to_baseline, average_band_powers, FeedbackTracker

__all__ = ['compute_mental_state', 'normalize_to_baseline', 'average_band_powers', 'FeedbackTracker']
