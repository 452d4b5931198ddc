"""
Configuration for the EEG band-power engine

This module contains the default parameters users may need to customize for
their headset and processing requirements, plus the EngineConfig dataclass
that carries them into an engine instance.
"""

import json
import logging
import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple

from .errors import ConfigError

# ============================================================================
# HARDWARE CONFIGURATION - edit these values for your headset
# ============================================================================

# Muse-style 4-electrode headset
CHANNELS = ("TP9", "AF7", "AF8", "TP10")
FS_EXPECTED = 256                 # Sampling rate (Hz)
NOTCH_HZ = 50                     # Power line frequency (50 Hz for EU, 60 Hz for US)
NOTCH_Q = 30.0                    # Notch quality factor
HIGHPASS_HZ = 0.5                 # High-pass cutoff for DC/drift removal (Hz)

# Processing Configuration
WINDOW_SIZE = 256                 # Transform window (samples, power of two)
UPDATE_INTERVAL_MS = 250          # Scheduler period (4 updates per second)
OUTPUT_SCALE = 50000.0            # Uniform display scale for band powers
VARIABILITY_THRESHOLD = 20.0      # Fallback movement/artifact threshold

# Calibration
PROFILE_DIR = "profiles"          # Saved baselines, one JSON file per user
CALIBRATION_SEC = 10.0            # Baseline capture duration (seconds)

# Communication Configuration
UDP_HOST = "127.0.0.1"
UDP_PORT = 5005

# Frequency Bands (Hz), half-open [min, max)
FREQ_BANDS = {
    "delta": (1.0, 4.0),
    "theta": (4.0, 8.0),
    "alpha": (8.0, 13.0),
    "beta": (13.0, 30.0),
    "gamma": (30.0, 50.0),
}

# Representative frequency per band for the fallback's autocorrelation lags
BAND_CENTERS = {
    "delta": 2.0,
    "theta": 6.0,
    "alpha": 10.0,
    "beta": 20.0,
    "gamma": 40.0,
}


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


@dataclass
class EngineConfig:
    """
    Load-time configuration for a SpectralEngine

    Every algorithm parameter lives here rather than in the processing code:
    - channels: ordered channel names; index positions stay fixed
    - sampling_rate / window_size: transform resolution is sampling_rate / window_size Hz
    - update_interval_ms: scheduler period
    - notch_hz / notch_q / highpass_hz: preprocessing filters
    - freq_bands: band name -> (min_hz, max_hz)
    - output_scale: uniform factor applied to every band power
    - use_fft: request the structured transform (fallback otherwise)
    - fallback_jitter / seed: randomness of the fallback estimator
    - band_centers: band name -> representative Hz for fallback lags
      (bands without one use the geometric mean of their edges)
    """

    channels: Tuple[str, ...] = CHANNELS
    sampling_rate: float = FS_EXPECTED
    window_size: int = WINDOW_SIZE
    update_interval_ms: float = UPDATE_INTERVAL_MS
    notch_hz: float = NOTCH_HZ
    notch_q: float = NOTCH_Q
    highpass_hz: float = HIGHPASS_HZ
    freq_bands: Dict[str, Tuple[float, float]] = field(default_factory=lambda: dict(FREQ_BANDS))
    output_scale: float = OUTPUT_SCALE
    filtering: bool = True
    use_fft: bool = True
    fallback_jitter: bool = True
    seed: Optional[int] = None
    variability_threshold: float = VARIABILITY_THRESHOLD
    band_centers: Dict[str, float] = field(default_factory=lambda: dict(BAND_CENTERS))

    def __post_init__(self):
        self.channels = tuple(self.channels)
        self.freq_bands = {
            str(name): (float(rng[0]), float(rng[1]))
            for name, rng in dict(self.freq_bands).items()
        }
        self.band_centers = {
            str(name): float(hz) for name, hz in dict(self.band_centers).items()
        }
        self.validate()

    def validate(self) -> None:
        """Raise ConfigError if any parameter is out of range"""
        if not self.channels:
            raise ConfigError("At least one channel is required")
        if len(set(self.channels)) != len(self.channels):
            raise ConfigError(f"Duplicate channel names: {self.channels}")
        if not self.sampling_rate > 0:
            raise ConfigError(f"Sampling rate must be positive, got {self.sampling_rate}")
        if not isinstance(self.window_size, int) or self.window_size < 8 or not _is_power_of_two(self.window_size):
            raise ConfigError(f"Window size must be a power of two >= 8, got {self.window_size}")
        if not self.update_interval_ms > 0:
            raise ConfigError(f"Update interval must be positive, got {self.update_interval_ms}")

        nyquist = self.sampling_rate / 2
        if not 0 < self.notch_hz < nyquist:
            raise ConfigError(f"Notch frequency {self.notch_hz} Hz must lie in (0, {nyquist}) Hz")
        if not self.notch_q > 0:
            raise ConfigError(f"Notch Q must be positive, got {self.notch_q}")
        if not 0 < self.highpass_hz < nyquist:
            raise ConfigError(f"High-pass cutoff {self.highpass_hz} Hz must lie in (0, {nyquist}) Hz")

        if not self.freq_bands:
            raise ConfigError("Band table must not be empty")
        for name, (low, high) in self.freq_bands.items():
            if not (math.isfinite(low) and math.isfinite(high)) or low < 0 or low >= high:
                raise ConfigError(f"Band '{name}' must satisfy 0 <= min < max, got [{low}, {high})")

        if not (math.isfinite(self.output_scale) and self.output_scale > 0):
            raise ConfigError(f"Output scale must be finite and positive, got {self.output_scale}")
        if not self.variability_threshold >= 0:
            raise ConfigError(f"Variability threshold must be >= 0, got {self.variability_threshold}")
        for name, hz in self.band_centers.items():
            if not (math.isfinite(hz) and hz > 0):
                raise ConfigError(f"Band centre for '{name}' must be finite and positive, got {hz}")

    @property
    def update_interval_s(self) -> float:
        return self.update_interval_ms / 1000.0

    @property
    def bin_resolution(self) -> float:
        """Width of one spectrum bin in Hz"""
        return self.sampling_rate / self.window_size

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Build a config from a plain dict, rejecting unknown keys"""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {sorted(unknown)}")
        try:
            return cls(**data)
        except (TypeError, ValueError, IndexError) as e:
            if isinstance(e, ConfigError):
                raise
            raise ConfigError(f"Invalid configuration: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channels": list(self.channels),
            "sampling_rate": self.sampling_rate,
            "window_size": self.window_size,
            "update_interval_ms": self.update_interval_ms,
            "notch_hz": self.notch_hz,
            "notch_q": self.notch_q,
            "highpass_hz": self.highpass_hz,
            "freq_bands": {name: list(rng) for name, rng in self.freq_bands.items()},
            "output_scale": self.output_scale,
            "filtering": self.filtering,
            "use_fft": self.use_fft,
            "fallback_jitter": self.fallback_jitter,
            "seed": self.seed,
            "variability_threshold": self.variability_threshold,
            "band_centers": dict(self.band_centers),
        }


def load_config(path: str, **overrides) -> EngineConfig:
    """
    Load an EngineConfig from a JSON file

    Args:
        path: JSON file with any subset of EngineConfig fields
        **overrides: Values that take precedence over the file (None is ignored)

    Returns:
        EngineConfig: Validated configuration
    """
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to read config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a JSON object")

    data.update({k: v for k, v in overrides.items() if v is not None})
    config = EngineConfig.from_dict(data)
    logging.info(f"Loaded config: {path}")
    return config
