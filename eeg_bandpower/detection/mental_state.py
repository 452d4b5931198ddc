"""
Mental state indices and biofeedback normalisation

This module derives focus, relaxation and stress indices from band power
ratios, and normalises a chosen band against a calibration baseline for
threshold-based feedback.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from ..core.data_types import CalibrationBaseline, MentalState, PowerSnapshot


def _clip_index(value: float) -> float:
    if not np.isfinite(value):
        return 0.0
    return float(min(100.0, max(0.0, value)))


def _ratio(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def average_band_powers(snapshot: PowerSnapshot) -> dict:
    """Channel-averaged power per band"""
    return {band: snapshot.channel_average(band) for band in snapshot.bands}


def compute_mental_state(snapshot: PowerSnapshot) -> MentalState:
    """
    Compute focus, relaxation and stress indices from a snapshot

    - Focus = Beta / (Theta + Alpha) * 100
    - Relaxation = Alpha / Beta * 50
    - Stress = (Beta + Gamma) / (Alpha + Theta) * 50

    Each index is clipped to [0, 100]; a zero denominator yields 0. Bands
    missing from the snapshot count as zero power.

    Args:
        snapshot: Published power snapshot

    Returns:
        MentalState: Indices plus the channel-averaged band powers
    """
    powers = average_band_powers(snapshot)
    theta = powers.get("theta", 0.0)
    alpha = powers.get("alpha", 0.0)
    beta = powers.get("beta", 0.0)
    gamma = powers.get("gamma", 0.0)

    focus = _clip_index(_ratio(beta, theta + alpha) * 100)
    relaxation = _clip_index(_ratio(alpha, beta) * 50)
    stress = _clip_index(_ratio(beta + gamma, alpha + theta) * 50)

    return MentalState(
        timestamp=snapshot.timestamp,
        focus=focus,
        relaxation=relaxation,
        stress=stress,
        band_powers=powers,
    )


def normalize_to_baseline(value: float, baseline_value: float) -> float:
    """
    Scale a band power against its calibration baseline

    A value equal to twice the baseline maps to 1.0; the result is capped
    at 1.0. A missing or zero baseline is treated as 1.
    """
    if not baseline_value or not np.isfinite(baseline_value):
        baseline_value = 1.0
    return float(min(1.0, max(0.0, value / (baseline_value * 2))))


class FeedbackTracker:
    """
    Threshold feedback on one band against a calibration baseline

    Feed it every published snapshot; it reports the normalised value and
    whether it is above the reward threshold.
    """

    def __init__(self, metric: str = "alpha", threshold: float = 0.6,
                 baseline: Optional[CalibrationBaseline] = None):
        self.metric = metric
        self.threshold = threshold
        self.baseline = baseline
        self.last_value = 0.0
        self.rewards = 0
        self.updates = 0

    def set_baseline(self, baseline: Optional[CalibrationBaseline]) -> None:
        self.baseline = baseline
        if baseline is not None:
            logging.info(f"Feedback baseline for {self.metric}: {baseline.get(self.metric):.3f}")

    def update(self, snapshot: PowerSnapshot) -> Tuple[float, bool]:
        """
        Returns:
            Tuple[normalized_value, over_threshold]
        """
        raw = snapshot.channel_average(self.metric) if self.metric in snapshot.bands else 0.0
        baseline_value = self.baseline.get(self.metric, 0.0) if self.baseline is not None else 0.0
        value = normalize_to_baseline(raw, baseline_value)
        over = value > self.threshold

        self.last_value = value
        self.updates += 1
        if over:
            self.rewards += 1
        return value, over

    @property
    def reward_ratio(self) -> float:
        return self.rewards / self.updates if self.updates else 0.0
