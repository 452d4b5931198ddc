"""
Core data types for the EEG band-power engine

This module defines the values that cross the engine boundary: incoming
sample batches, published power snapshots, calibration baselines and
derived mental states.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np


@dataclass
class SampleBatch:
    """Container for one batch of raw samples from the sample source"""
    channel: str
    samples: np.ndarray       # Shape: (n_samples,)
    timestamp_ms: Optional[float] = None


def _freeze_bands(bands: Mapping[str, Mapping[str, float]]) -> Mapping[str, Mapping[str, float]]:
    return MappingProxyType({
        band: MappingProxyType({ch: float(v) for ch, v in per_channel.items()})
        for band, per_channel in bands.items()
    })


@dataclass(frozen=True)
class PowerSnapshot:
    """
    Per-band, per-channel power values produced by one scheduler tick

    bands maps band name -> channel name -> power. Channels that were still
    warming up are absent from every band mapping and listed in
    diagnostics["skipped_channels"]. All mappings are read-only.
    """
    timestamp: float
    tick: int
    bands: Mapping[str, Mapping[str, float]]
    path: str = "fft"
    diagnostics: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "bands", _freeze_bands(self.bands))
        object.__setattr__(self, "diagnostics", MappingProxyType(dict(self.diagnostics)))

    @property
    def channels(self) -> Tuple[str, ...]:
        """Channels that have a value in this snapshot"""
        for per_channel in self.bands.values():
            return tuple(per_channel.keys())
        return ()

    def band(self, name: str) -> Mapping[str, float]:
        return self.bands[name]

    def channel(self, name: str) -> Dict[str, float]:
        """Band powers for a single channel"""
        return {band: per_channel[name] for band, per_channel in self.bands.items()
                if name in per_channel}

    def channel_average(self, band: str) -> float:
        """Mean power of a band across all channels present (0.0 if none)"""
        values = list(self.bands[band].values())
        return float(np.mean(values)) if values else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "t": self.timestamp,
            "tick": self.tick,
            "path": self.path,
            "bands": {band: dict(per_channel) for band, per_channel in self.bands.items()},
            "diagnostics": {
                k: list(v) if isinstance(v, tuple) else v
                for k, v in self.diagnostics.items()
            },
        }


@dataclass(frozen=True)
class CalibrationBaseline:
    """Channel-averaged band powers captured during calibration"""
    values: Mapping[str, float]
    captured_at: float = 0.0
    n_snapshots: int = 0
    duration_s: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "values", MappingProxyType({k: float(v) for k, v in self.values.items()}))

    def get(self, band: str, default: float = 0.0) -> float:
        return self.values.get(band, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "values": dict(self.values),
            "captured_at": self.captured_at,
            "n_snapshots": self.n_snapshots,
            "duration_s": self.duration_s,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CalibrationBaseline":
        return cls(
            values=dict(data["values"]),
            captured_at=float(data.get("captured_at", 0.0)),
            n_snapshots=int(data.get("n_snapshots", 0)),
            duration_s=float(data.get("duration_s", 0.0)),
        )


@dataclass
class MentalState:
    """Container for mental state indices derived from a snapshot"""
    timestamp: float
    focus: float              # 0-100
    relaxation: float         # 0-100
    stress: float             # 0-100
    band_powers: Dict[str, float] = field(default_factory=dict)
