"""
EEG signal processing components

This module contains preprocessing, the frequency transform, the fallback
estimator and band power aggregation.
"""

from .preprocessor import Preprocessor, HighPassFilter, NotchFilter, hann_window, apply_hann_window
from .transform import SpectralTransform
from .fallback import FallbackEstimator
from .features import BandAggregator

__all__ = [
    'Preprocessor', 'HighPassFilter', 'NotchFilter', 'hann_window', 'apply_hann_window',
    'SpectralTransform', 'FallbackEstimator', 'BandAggregator',
]
