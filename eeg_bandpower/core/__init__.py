"""
Core data types, configuration and errors for the EEG band-power engine
"""

from .data_types import SampleBatch, PowerSnapshot, CalibrationBaseline, MentalState
from .config import EngineConfig, load_config
from .errors import SpectralEngineError, ConfigError, TransformUnavailable, NumericAnomaly

__all__ = [
    'SampleBatch', 'PowerSnapshot', 'CalibrationBaseline', 'MentalState',
    'EngineConfig', 'load_config',
    'SpectralEngineError', 'ConfigError', 'TransformUnavailable', 'NumericAnomaly',
]
