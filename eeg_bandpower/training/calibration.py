"""
Baseline calibration and profile storage

This module captures a per-band baseline by averaging published snapshots
over a fixed duration, and stores baselines as JSON profiles so later
sessions can normalise feedback against them.
"""

import json
import logging
import os
import queue
import re
import time
from typing import Callable, Dict, Iterable, List, Optional

import numpy as np

from ..core.config import PROFILE_DIR, CALIBRATION_SEC
from ..core.data_types import CalibrationBaseline, PowerSnapshot


class BaselineCalibrator:
    """
    Accumulate channel-averaged band powers and average them into a baseline

    Snapshots without any channel data (warm-up ticks) are ignored.
    """

    def __init__(self, bands: Iterable[str]):
        self.bands = list(bands)
        self._samples: Dict[str, List[float]] = {band: [] for band in self.bands}
        self.n_snapshots = 0
        self._started_at: Optional[float] = None

    def add(self, snapshot: PowerSnapshot) -> bool:
        """
        Returns:
            bool: True if the snapshot contributed to the baseline
        """
        if not snapshot.channels:
            return False
        if self._started_at is None:
            self._started_at = snapshot.timestamp
        for band in self.bands:
            if band in snapshot.bands:
                self._samples[band].append(snapshot.channel_average(band))
        self.n_snapshots += 1
        return True

    def result(self, duration_s: float = 0.0) -> Optional[CalibrationBaseline]:
        """Baseline from the accumulated snapshots, None if there were none"""
        if self.n_snapshots == 0:
            return None
        values = {
            band: float(np.mean(samples)) if samples else 0.0
            for band, samples in self._samples.items()
        }
        return CalibrationBaseline(
            values=values,
            captured_at=time.time(),
            n_snapshots=self.n_snapshots,
            duration_s=duration_s,
        )

    def reset(self) -> None:
        self._samples = {band: [] for band in self.bands}
        self.n_snapshots = 0
        self._started_at = None

    def capture(self, engine, duration_s: float = CALIBRATION_SEC, poll_s: float = 0.1,
                progress: Optional[Callable[[float], None]] = None,
                clock: Callable[[], float] = time.monotonic) -> Optional[CalibrationBaseline]:
        """
        Average an engine's snapshots for a bounded duration

        The engine must be running (or driven by another thread) for
        snapshots to arrive. The latest snapshot at subscription time is
        included, matching what a user sees when calibration starts.

        Args:
            engine: SpectralEngine to observe
            duration_s: Capture duration (seconds)
            poll_s: Maximum wait per queue read (seconds)
            progress: Optional callback receiving percent complete (0-100)

        Returns:
            CalibrationBaseline or None: None if no usable snapshot arrived
        """
        if duration_s <= 0:
            raise ValueError(f"Calibration duration must be positive, got {duration_s}")
        self.reset()
        start = clock()
        subscription = engine.subscribe()
        try:
            while True:
                elapsed = clock() - start
                if progress is not None:
                    progress(min(100.0, elapsed / duration_s * 100.0))
                if elapsed >= duration_s:
                    break
                try:
                    snapshot = subscription.get(timeout=min(poll_s, max(0.0, duration_s - elapsed)))
                except queue.Empty:
                    continue
                self.add(snapshot)
        finally:
            subscription.unsubscribe()

        baseline = self.result(duration_s)
        if baseline is None:
            logging.error("Calibration collected no usable snapshots")
        else:
            logging.info(f"Calibration complete: {self.n_snapshots} snapshots, "
                         + ", ".join(f"{b}={v:.2f}" for b, v in baseline.values.items()))
        return baseline


_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class ProfileStore:
    """
    JSON profile files, one per user, holding the latest calibration baseline
    """

    def __init__(self, directory: str = PROFILE_DIR):
        self.directory = directory

    def profile_path(self, user_id: str) -> str:
        if not _SAFE_ID.match(user_id) or user_id in (".", ".."):
            raise ValueError(f"Invalid user id: {user_id!r}")
        return os.path.join(self.directory, f"{user_id}.json")

    def save_baseline(self, user_id: str, baseline: CalibrationBaseline,
                      extra: Optional[dict] = None) -> str:
        """
        Write a baseline to the user's profile, replacing any previous one

        Returns:
            str: Profile path
        """
        os.makedirs(self.directory, exist_ok=True)
        path = self.profile_path(user_id)

        profile = {
            "user_id": user_id,
            "calibration_date": time.strftime("%Y-%m-%d %H:%M:%S"),
            "baseline": baseline.to_dict(),
        }
        if extra:
            profile.update(extra)

        with open(path, 'w') as f:
            json.dump(profile, f, indent=2)
        logging.info(f"Profile saved: {path}")
        return path

    def load_baseline(self, user_id: str) -> Optional[CalibrationBaseline]:
        """Latest saved baseline, or None if the user has no usable profile"""
        path = self.profile_path(user_id)
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r') as f:
                profile = json.load(f)
            baseline = CalibrationBaseline.from_dict(profile["baseline"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logging.error(f"Failed to load profile {path}: {e}")
            return None
        logging.info(f"Loaded profile: {path}")
        return baseline
