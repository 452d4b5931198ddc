"""
Exception types for the EEG band-power engine

Warm-up (a buffer that has not reached the window size) and unknown channel
names are not exceptions: the first is a quiescent state, the second is
counted and dropped.
"""


class SpectralEngineError(Exception):
    """Base class for engine errors"""


class ConfigError(SpectralEngineError, ValueError):
    """Invalid engine configuration"""


class TransformUnavailable(SpectralEngineError):
    """The structured frequency transform cannot be used in this environment"""


class NumericAnomaly(SpectralEngineError, ArithmeticError):
    """A channel's processing produced NaN or infinite values"""

    def __init__(self, channel: str, stage: str):
        super().__init__(f"Non-finite values in channel {channel} after {stage}")
        self.channel = channel
        self.stage = stage
