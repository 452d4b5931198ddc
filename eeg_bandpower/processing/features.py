"""
Band power extraction

This module reduces a power spectrum to one scalar per frequency band by
averaging the spectrum bins each band covers.
"""

import math
from typing import Dict, Tuple

import numpy as np


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


class BandAggregator:
    """
    Map frequency bands onto spectrum bins and average their power

    Bin indices come from bin = round(hz * W / fs), clamped to [1, W/2 - 1]
    so the DC bin never contributes. Both ends of the bin range are inclusive.
    """

    def __init__(self, fs: float, window_size: int, freq_bands: Dict[str, Tuple[float, float]],
                 scale: float = 1.0):
        self.fs = fs
        self.window_size = window_size
        self.n_bins = window_size // 2
        self.freq_bands = dict(freq_bands)
        self.scale = scale
        self.bin_ranges = {name: self.bin_range(low, high)
                           for name, (low, high) in self.freq_bands.items()}

    def freq_to_bin(self, freq_hz: float) -> int:
        return _round_half_up(freq_hz * self.window_size / self.fs)

    def _clamp_bin(self, index: int) -> int:
        return min(max(index, 1), self.n_bins - 1)

    def bin_range(self, min_hz: float, max_hz: float) -> Tuple[int, int]:
        """
        Inclusive bin range covered by [min_hz, max_hz)

        Returns:
            Tuple[min_bin, max_bin]: A band narrower than one bin collapses
            to the single bin nearest its centre
        """
        lo = self._clamp_bin(self.freq_to_bin(min_hz))
        hi = self._clamp_bin(self.freq_to_bin(max_hz))
        if lo > hi:
            centre = self._clamp_bin(self.freq_to_bin((min_hz + max_hz) / 2))
            lo = hi = centre
        return lo, hi

    def band_power(self, spectrum: np.ndarray, band: str) -> float:
        """Scaled mean power of one band"""
        lo, hi = self.bin_ranges[band]
        with np.errstate(over='ignore', invalid='ignore'):
            return float(np.mean(spectrum[lo:hi + 1]) * self.scale)

    def aggregate_checked(self, spectrum: np.ndarray) -> Tuple[Dict[str, float], int]:
        """
        Band powers for one channel's spectrum, with non-finite values zeroed

        Returns:
            Tuple[powers, anomalies]: powers maps band -> value >= 0;
            anomalies counts bands whose value had to be replaced
        """
        spectrum = np.asarray(spectrum, dtype=np.float64)
        if spectrum.shape != (self.n_bins,):
            raise ValueError(f"Expected {self.n_bins} spectrum bins, got {spectrum.shape}")

        powers = {}
        anomalies = 0
        for band in self.freq_bands:
            value = self.band_power(spectrum, band)
            if not math.isfinite(value) or value < 0:
                value = 0.0
                anomalies += 1
            powers[band] = value
        return powers, anomalies

    def aggregate(self, spectrum: np.ndarray) -> Dict[str, float]:
        powers, _ = self.aggregate_checked(spectrum)
        return powers
