"""
EEG Band Power - real-time spectral analysis of multi-channel EEG

Streams raw samples per channel into rolling buffers and, on a fixed
cadence, publishes per-band (delta/theta/alpha/beta/gamma), per-channel
power snapshots to any number of observers.
"""

__version__ = "1.0.0"

# Main package imports for easy access
from .core.config import EngineConfig, load_config
from .core.data_types import SampleBatch, PowerSnapshot, CalibrationBaseline, MentalState
from .core.errors import SpectralEngineError, ConfigError, TransformUnavailable, NumericAnomaly
from .acquisition.ring_buffer import ChannelRingBuffer, RingBufferBank
from .acquisition.sources import SyntheticEEGSource, simulate_sine
from .processing.preprocessor import Preprocessor
from .processing.transform import SpectralTransform
from .processing.fallback import FallbackEstimator
from .processing.features import BandAggregator
from .engine.broadcast import ReplayBroadcast, Subscription
from .engine.scheduler import PeriodicScheduler
from .engine.engine import SpectralEngine
from .detection.mental_state import compute_mental_state, FeedbackTracker
from .training.calibration import BaselineCalibrator, ProfileStore
from .communication.udp_sender import SnapshotSender

__all__ = [
    'EngineConfig', 'load_config',
    'SampleBatch', 'PowerSnapshot', 'CalibrationBaseline', 'MentalState',
    'SpectralEngineError', 'ConfigError', 'TransformUnavailable', 'NumericAnomaly',
    'ChannelRingBuffer', 'RingBufferBank',
    'SyntheticEEGSource', 'simulate_sine',
    'Preprocessor', 'SpectralTransform', 'FallbackEstimator', 'BandAggregator',
    'ReplayBroadcast', 'Subscription', 'PeriodicScheduler', 'SpectralEngine',
    'compute_mental_state', 'FeedbackTracker',
    'BaselineCalibrator', 'ProfileStore',
    'SnapshotSender',
]
