"""
Synthetic EEG sources

This module generates test signals for demos, validation runs and the test
suite: pure sines at a chosen frequency, and a multi-channel source with
slowly modulated alpha/beta rhythms on top of noise.
"""

from typing import Dict, Optional, Sequence

import numpy as np

from ..core.config import CHANNELS, FS_EXPECTED


def simulate_sine(frequency_hz: float, amplitude: float = 50.0, duration_sec: float = 1.0,
                  fs: float = FS_EXPECTED, phase: float = 0.0) -> np.ndarray:
    """
    Generate a pure sine wave

    Args:
        frequency_hz: Sine frequency (Hz)
        amplitude: Peak amplitude
        duration_sec: Signal length (seconds)
        fs: Sampling frequency (Hz)
        phase: Initial phase (radians)

    Returns:
        np.ndarray: Samples (n_samples,)
    """
    n_samples = int(round(duration_sec * fs))
    t = np.arange(n_samples) / fs
    return amplitude * np.sin(2 * np.pi * frequency_hz * t + phase)


def simulate_mixture(components: Dict[float, float], duration_sec: float = 1.0,
                     fs: float = FS_EXPECTED) -> np.ndarray:
    """Sum of sines, components maps frequency (Hz) -> amplitude"""
    n_samples = int(round(duration_sec * fs))
    signal = np.zeros(n_samples)
    for freq, amp in components.items():
        signal += simulate_sine(freq, amp, duration_sec, fs)
    return signal


class SyntheticEEGSource:
    """
    Generate synthetic multi-channel EEG in small batches

    Temporal channels carry an alpha rhythm and frontal channels a beta
    rhythm; both amplitudes drift on a slow cycle so the band powers move.
    """

    def __init__(self, fs: float = FS_EXPECTED, channels: Sequence[str] = CHANNELS,
                 noise_uv: float = 10.0, seed: Optional[int] = None):
        self.fs = fs
        self.channels = tuple(channels)
        self.noise_uv = noise_uv
        self.time = 0.0
        self.state_cycle_time = 10.0  # Full alpha/beta swing every 10 seconds
        self._rng = np.random.default_rng(seed)
        self._phases = {ch: self._rng.random() * 2 * np.pi for ch in self.channels}

    def generate(self, n_samples: int) -> Dict[str, np.ndarray]:
        """
        Generate the next n_samples for every channel

        Returns:
            Dict[str, np.ndarray]: channel name -> samples
        """
        duration = n_samples / self.fs
        t = self.time + np.arange(n_samples) / self.fs
        cycle = 2 * np.pi * self.time / self.state_cycle_time

        batches = {}
        for idx, ch in enumerate(self.channels):
            data = self._rng.standard_normal(n_samples) * self.noise_uv
            phase = self._phases[ch]
            if idx in (0, len(self.channels) - 1):
                # Temporal sites: alpha
                alpha_amp = 15 + 10 * np.sin(cycle)
                data += alpha_amp * np.sin(2 * np.pi * 10 * t + phase)
            else:
                # Frontal sites: beta
                beta_amp = 8 + 6 * np.cos(cycle)
                data += beta_amp * np.sin(2 * np.pi * 20 * t + phase)
            batches[ch] = data

        self.time += duration
        return batches
