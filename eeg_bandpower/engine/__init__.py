"""
Engine orchestration: tick scheduling and result broadcasting
"""

from .broadcast import ReplayBroadcast, Subscription
from .scheduler import PeriodicScheduler
from .engine import SpectralEngine, PATH_FFT, PATH_FALLBACK

__all__ = ['ReplayBroadcast', 'Subscription', 'PeriodicScheduler', 'SpectralEngine', 'PATH_FFT', 'PATH_FALLBACK']
