"""
Transform-free spectrum estimation

When the structured transform is unavailable, this estimator synthesizes a
power spectrum with the same bin layout from three cheap signal statistics:
the amplitude envelope, a dominant band found by short-lag autocorrelation,
and sample-to-sample variability (movement and blink artifacts).

The synthesized spectrum is only qualitatively EEG-like. Its purpose is to
keep band aggregation and downstream displays behaving sensibly.
"""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

# Amplitude envelope scaling and clamp range
AMPLITUDE_GAIN = 10.0
AMPLITUDE_RANGE = (500.0, 10000.0)

# Autocorrelation is limited to this many products per lag
MAX_CORRELATION_SAMPLES = 100

DOMINANT_BOOST = 1.5
NON_DOMINANT_FACTOR = 0.8
ARTIFACT_BOOSTS = (1.4, 1.2)      # Applied to the two lowest bands
OUT_OF_BAND_LEVEL = 0.05
BAND_TAPER = 0.1
HIGH_BAND_TAPER = 0.05            # Bands starting at or above HIGH_BAND_MIN_HZ
HIGH_BAND_MIN_HZ = 13.0

# Liveliness: per-bin jitter range and chance of a random dominant band
JITTER_RANGE = (0.8, 1.2)
DOMINANT_SWITCH_PROB = 0.05


def band_center(low: float, high: float) -> float:
    """Log-frequency centre of a band (arithmetic midpoint if it starts at 0)"""
    if low > 0:
        return float(np.sqrt(low * high))
    return (low + high) / 2


class FallbackEstimator:
    """
    Heuristic W/2-bin power spectrum

    Args:
        fs: Sampling frequency (Hz)
        window_size: Samples per window (W)
        freq_bands: Band name -> (min_hz, max_hz), in display order
        variability_threshold: Mean |x[i] - x[i-1]| above which the window is
            treated as movement-contaminated
        rng: Randomness source for jitter and dominant-band switching;
            None makes the estimator deterministic
        band_centers: Band name -> representative Hz for the autocorrelation
            lag; bands without an entry use band_center() of their edges
    """

    def __init__(self, fs: float, window_size: int, freq_bands: Dict[str, Tuple[float, float]],
                 variability_threshold: float = 20.0, rng: Optional[np.random.Generator] = None,
                 band_centers: Optional[Dict[str, float]] = None):
        self.fs = fs
        self.window_size = window_size
        self.n_bins = window_size // 2
        self.freq_bands = dict(freq_bands)
        self.variability_threshold = variability_threshold
        self.rng = rng

        self.band_names: List[str] = list(self.freq_bands)
        self.band_levels = {
            name: max(0.1, 1.0 - 0.1 * k) for k, name in enumerate(self.band_names)
        }
        centers = band_centers or {}
        self.band_lags = {
            name: max(1, int(round(fs / centers.get(name, band_center(low, high)))))
            for name, (low, high) in self.freq_bands.items()
        }
        self.band_tapers = {
            name: HIGH_BAND_TAPER if low >= HIGH_BAND_MIN_HZ else BAND_TAPER
            for name, (low, high) in self.freq_bands.items()
        }
        self.low_bands = sorted(self.band_names, key=lambda name: self.freq_bands[name][0])[:len(ARTIFACT_BOOSTS)]

        # Bin -> band lookup (first band in table order that contains the bin)
        freqs = np.arange(self.n_bins) * fs / window_size
        self._bin_band: List[Optional[str]] = []
        self._bin_position = np.zeros(self.n_bins)
        for i, f in enumerate(freqs):
            owner = None
            for name, (low, high) in self.freq_bands.items():
                if low <= f < high:
                    owner = name
                    self._bin_position[i] = (f - low) / (high - low)
                    break
            self._bin_band.append(owner)

        self.last_dominant: Optional[str] = None
        self.last_variability = 0.0

    def detect_dominant_band(self, samples: np.ndarray) -> Optional[str]:
        """
        Band whose representative lag has the strongest autocorrelation

        Returns:
            str or None: None when no lag shows any correlation
        """
        x = np.asarray(samples, dtype=np.float64)
        correlations = {}
        with np.errstate(over='ignore', invalid='ignore'):
            for band, lag in self.band_lags.items():
                n = min(x.size - lag, MAX_CORRELATION_SAMPLES)
                if n <= 0:
                    continue
                corr = abs(float(np.dot(x[:n], x[lag:lag + n]))) / n
                if np.isfinite(corr):
                    correlations[band] = corr

        dominant = None
        max_corr = 0.0
        for band, corr in correlations.items():
            if corr > max_corr:
                max_corr = corr
                dominant = band

        if self.rng is not None and self.rng.random() < DOMINANT_SWITCH_PROB:
            dominant = self.band_names[int(self.rng.integers(len(self.band_names)))]

        return dominant

    @staticmethod
    def signal_variability(samples: np.ndarray) -> float:
        """Mean absolute sample-to-sample difference"""
        x = np.asarray(samples, dtype=np.float64)
        if x.size < 2:
            return 0.0
        with np.errstate(over='ignore', invalid='ignore'):
            return float(np.mean(np.abs(np.diff(x))))

    @staticmethod
    def normalized_amplitude(samples: np.ndarray) -> float:
        x = np.asarray(samples, dtype=np.float64)
        if x.size == 0:
            return AMPLITUDE_RANGE[0]
        with np.errstate(over='ignore', invalid='ignore'):
            avg = float(np.mean(np.abs(x)))
        if np.isnan(avg):
            avg = 0.0
        return float(np.clip(avg * AMPLITUDE_GAIN, *AMPLITUDE_RANGE))

    def boost_factors(self, dominant: Optional[str], high_variability: bool) -> Dict[str, float]:
        factors = dict(self.band_levels)
        if dominant is not None:
            for band in factors:
                factors[band] = DOMINANT_BOOST if band == dominant else factors[band] * NON_DOMINANT_FACTOR
        if high_variability:
            for band, boost in zip(self.low_bands, ARTIFACT_BOOSTS):
                factors[band] = boost
        return factors

    def estimate(self, samples: np.ndarray) -> np.ndarray:
        """
        Synthesize a power spectrum for one preprocessed window

        Args:
            samples: Filtered, windowed samples

        Returns:
            np.ndarray: Non-negative finite power per bin (window_size // 2,)
        """
        amplitude = self.normalized_amplitude(samples)
        dominant = self.detect_dominant_band(samples)
        variability = self.signal_variability(samples)
        high_variability = variability > self.variability_threshold
        factors = self.boost_factors(dominant, high_variability)

        result = np.full(self.n_bins, amplitude * OUT_OF_BAND_LEVEL)
        for i, band in enumerate(self._bin_band):
            if band is None:
                continue
            level = self.band_levels[band] - self.band_tapers[band] * self._bin_position[i]
            result[i] = amplitude * factors[band] * max(level, 0.0)

        if self.rng is not None:
            result *= self.rng.uniform(JITTER_RANGE[0], JITTER_RANGE[1], size=self.n_bins)

        self.last_dominant = dominant
        self.last_variability = variability
        logging.debug(f"Fallback spectrum - amplitude: {amplitude:.1f}, dominant: {dominant}, "
                      f"variability: {variability:.2f}")
        return result
