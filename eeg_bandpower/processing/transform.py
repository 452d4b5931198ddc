"""
Fixed-size real frequency transform

Wraps scipy.fft for a power-of-two window and produces the one-sided power
spectrum the band aggregator consumes.
"""

import logging

import numpy as np
from scipy import fft as sp_fft

from ..core.errors import TransformUnavailable


class SpectralTransform:
    """
    Power spectrum of a W-sample real window

    power[i] = (re[i]^2 + im[i]^2) / W for i in [0, W/2); bin i is centred
    on i * fs / W Hz.

    Construction raises TransformUnavailable when the transform cannot run,
    so callers decide their processing path once, up front.
    """

    def __init__(self, window_size: int, enabled: bool = True):
        self.window_size = window_size
        self.n_bins = window_size // 2

        if not enabled:
            raise TransformUnavailable("Transform disabled by configuration")
        if window_size < 2 or window_size & (window_size - 1):
            raise TransformUnavailable(f"Window size {window_size} is not a power of two")

        # Probe once so an unusable backend fails here, not mid-run
        try:
            probe = sp_fft.rfft(np.zeros(window_size))
        except Exception as e:
            raise TransformUnavailable(f"FFT backend failed: {e}") from e
        if probe.shape[0] != window_size // 2 + 1:
            raise TransformUnavailable(f"Unexpected FFT output length {probe.shape[0]}")

        logging.debug(f"Spectral transform ready: {window_size}-point FFT")

    def power_spectrum(self, samples: np.ndarray) -> np.ndarray:
        """
        Compute the power spectrum of one window

        Args:
            samples: Preprocessed samples (window_size,)

        Returns:
            np.ndarray: Power per bin (window_size // 2,)
        """
        x = np.asarray(samples, dtype=np.float64)
        if x.shape != (self.window_size,):
            raise ValueError(f"Expected {self.window_size} samples, got {x.shape}")

        with np.errstate(over='ignore', invalid='ignore'):
            spectrum = sp_fft.rfft(x)[:self.n_bins]
            return (spectrum.real ** 2 + spectrum.imag ** 2) / self.window_size

    def bin_frequencies(self, fs: float) -> np.ndarray:
        return np.arange(self.n_bins) * fs / self.window_size
