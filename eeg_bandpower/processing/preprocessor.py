"""
EEG signal preprocessing pipeline

This module handles per-channel filtering and windowing of buffer snapshots.
The high-pass and notch filters are stateful: their history carries from one
tick to the next so consecutive snapshots are filtered without restarting
transients. The Hann window is applied on every tick, whether or not
filtering is enabled.
"""

import logging
from functools import lru_cache
from typing import Dict, Iterable

import numpy as np
from scipy import signal as sp_signal

from ..core.config import EngineConfig
from ..core.errors import NumericAnomaly


class HighPassFilter:
    """
    First-order high-pass filter for DC offset and slow drift

    y[n] = alpha * (y[n-1] + x[n] - x[n-1]), alpha = RC / (RC + dt)
    """

    def __init__(self, fs: float, cutoff_hz: float = 0.5):
        self.fs = fs
        self.cutoff_hz = cutoff_hz
        rc = 1.0 / (2 * np.pi * cutoff_hz)
        dt = 1.0 / fs
        self.alpha = rc / (rc + dt)
        self.b = np.array([self.alpha, -self.alpha])
        self.a = np.array([1.0, -self.alpha])
        self.reset()

    def reset(self):
        self.prev_input = 0.0
        self.prev_output = 0.0

    def apply(self, samples: np.ndarray) -> np.ndarray:
        x = np.asarray(samples, dtype=np.float64)
        if x.size == 0:
            return x.copy()

        zi = sp_signal.lfiltic(self.b, self.a, y=[self.prev_output], x=[self.prev_input])
        y, _ = sp_signal.lfilter(self.b, self.a, x, zi=zi)

        self.prev_input = float(x[-1])
        self.prev_output = float(y[-1])
        return y


class NotchFilter:
    """
    Second-order IIR notch (biquad) for power line interference

    Coefficients follow w0 = 2*pi*f0/fs, alpha = sin(w0) / (2Q):
    b = [1, -2cos(w0), 1], a = [1 + alpha, -2cos(w0), 1 - alpha], both divided by a[0].
    """

    def __init__(self, fs: float, notch_hz: float = 50.0, q: float = 30.0):
        self.fs = fs
        self.notch_hz = notch_hz
        self.q = q

        w0 = 2 * np.pi * notch_hz / fs
        alpha = np.sin(w0) / (2 * q)
        a0 = 1 + alpha
        self.b = np.array([1.0, -2 * np.cos(w0), 1.0]) / a0
        self.a = np.array([a0, -2 * np.cos(w0), 1 - alpha]) / a0
        self.reset()

    def reset(self):
        self.x1 = 0.0
        self.x2 = 0.0
        self.y1 = 0.0
        self.y2 = 0.0

    def apply(self, samples: np.ndarray) -> np.ndarray:
        x = np.asarray(samples, dtype=np.float64)
        if x.size == 0:
            return x.copy()

        zi = sp_signal.lfiltic(self.b, self.a, y=[self.y1, self.y2], x=[self.x1, self.x2])
        y, _ = sp_signal.lfilter(self.b, self.a, x, zi=zi)

        # Prepend history so single-sample inputs shift correctly
        xs = np.concatenate(([self.x2, self.x1], x))
        ys = np.concatenate(([self.y2, self.y1], y))
        self.x1, self.x2 = float(xs[-1]), float(xs[-2])
        self.y1, self.y2 = float(ys[-1]), float(ys[-2])
        return y


@lru_cache(maxsize=8)
def _hann(n: int) -> np.ndarray:
    window = sp_signal.get_window('hann', n, fftbins=False)
    window.setflags(write=False)
    return window


def hann_window(n: int) -> np.ndarray:
    """Symmetric Hann window 0.5 * (1 - cos(2*pi*i / (n-1))), read-only"""
    return _hann(n)


def apply_hann_window(samples: np.ndarray) -> np.ndarray:
    """Taper samples with a Hann window to reduce spectral leakage"""
    x = np.asarray(samples, dtype=np.float64)
    if x.size < 2:
        return x.copy()
    return x * hann_window(x.size)


class ChannelFilters:
    """Filter state owned by one channel"""

    def __init__(self, fs: float, highpass_hz: float, notch_hz: float, notch_q: float):
        self.highpass = HighPassFilter(fs, highpass_hz)
        self.notch = NotchFilter(fs, notch_hz, notch_q)

    def reset(self):
        self.highpass.reset()
        self.notch.reset()

    def apply(self, samples: np.ndarray) -> np.ndarray:
        return self.notch.apply(self.highpass.apply(samples))


class Preprocessor:
    """
    Per-channel preprocessing pipeline

    High-pass then notch (when filtering is enabled), then the Hann window.
    Filter state persists between calls and is reset on engine start and
    whenever filtering is switched on.
    """

    def __init__(self, config: EngineConfig, channels: Iterable[str] = None):
        self.fs = config.sampling_rate
        self.filtering = config.filtering
        channels = tuple(channels) if channels is not None else config.channels
        self.filters: Dict[str, ChannelFilters] = {
            ch: ChannelFilters(self.fs, config.highpass_hz, config.notch_hz, config.notch_q)
            for ch in channels
        }

        logging.info(f"Filters designed: HP {config.highpass_hz}Hz, "
                     f"Notch {config.notch_hz}Hz (Q={config.notch_q})")

    def process(self, channel: str, samples: np.ndarray) -> np.ndarray:
        """
        Filter (if enabled) and window one channel's snapshot

        Args:
            channel: Channel name
            samples: Raw buffer snapshot (window_size,)

        Returns:
            np.ndarray: Preprocessed samples, same length as the input

        Raises:
            NumericAnomaly: Filtering produced NaN/inf; the channel's filter
                state has been reset before raising
        """
        processed = np.asarray(samples, dtype=np.float64)

        if self.filtering:
            with np.errstate(over='ignore', invalid='ignore'):
                processed = self.filters[channel].apply(processed)
            if not np.all(np.isfinite(processed)):
                self.reset_channel(channel)
                raise NumericAnomaly(channel, "filtering")

        return apply_hann_window(processed)

    def set_filtering(self, enabled: bool) -> None:
        """Enable or disable filtering; enabling clears stale filter history"""
        if enabled:
            self.reset()
        self.filtering = bool(enabled)
        logging.info(f"Filtering {'enabled' if enabled else 'disabled'}")

    def reset_channel(self, channel: str) -> None:
        self.filters[channel].reset()

    def reset(self) -> None:
        for filters in self.filters.values():
            filters.reset()
