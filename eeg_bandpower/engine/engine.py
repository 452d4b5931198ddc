"""
Real-time band power engine

SpectralEngine owns everything for one sensor session: per-channel ring
buffers, filter state, the transform (or its fallback), the band aggregator,
the tick scheduler and the replay-last broadcast of results.

Snapshot policy:
- Channels whose buffer has not reached the window size are left out of the
  snapshot and listed in diagnostics["skipped_channels"].
- Band powers that come out NaN or infinite are published as 0.0.
- A channel whose filters produced NaN/inf has its filter state reset and is
  left out of that tick's snapshot.
Both numeric cases increment the anomaly count reported in diagnostics.
"""

import logging
import threading
import time
from collections import Counter
from typing import Callable, Dict, Optional

import numpy as np

from ..acquisition.ring_buffer import RingBufferBank
from ..core.config import EngineConfig
from ..core.data_types import PowerSnapshot, SampleBatch
from ..core.errors import NumericAnomaly, TransformUnavailable
from ..processing.fallback import FallbackEstimator
from ..processing.features import BandAggregator
from ..processing.preprocessor import Preprocessor
from ..processing.transform import SpectralTransform
from .broadcast import ReplayBroadcast, Subscription
from .scheduler import PeriodicScheduler

PATH_FFT = "fft"
PATH_FALLBACK = "fallback"

# Log every Nth numeric anomaly after the first
ANOMALY_LOG_EVERY = 100


class SpectralEngine:
    """
    Streaming per-band, per-channel power estimation

    Args:
        config: Engine configuration (defaults if omitted)
        rng: Randomness for the fallback estimator. If omitted, one is created
            from config.seed when config.fallback_jitter is set; otherwise the
            fallback path is deterministic.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 rng: Optional[np.random.Generator] = None):
        self.config = config or EngineConfig()
        cfg = self.config

        self.buffers = RingBufferBank(cfg.channels, cfg.window_size)
        self.preprocessor = Preprocessor(cfg)
        self.aggregator = BandAggregator(cfg.sampling_rate, cfg.window_size,
                                         cfg.freq_bands, cfg.output_scale)

        if rng is None and cfg.fallback_jitter:
            rng = np.random.default_rng(cfg.seed)
        self.fallback = FallbackEstimator(cfg.sampling_rate, cfg.window_size, cfg.freq_bands,
                                          cfg.variability_threshold, rng, cfg.band_centers)

        # Processing path is fixed for the engine's lifetime
        self.transform: Optional[SpectralTransform] = None
        try:
            self.transform = SpectralTransform(cfg.window_size, enabled=cfg.use_fft)
            self.path = PATH_FFT
        except TransformUnavailable as e:
            self.path = PATH_FALLBACK
            logging.warning(f"Spectral transform unavailable ({e}); using fallback estimator")

        self.broadcast = ReplayBroadcast()
        self.scheduler = PeriodicScheduler(cfg.update_interval_s, self._scheduled_tick)

        self.unknown_channel_count = 0
        self.unknown_channels: Counter = Counter()
        self.anomaly_count = 0
        self.tick_count = 0
        self.last_timestamps: Dict[str, float] = {}
        # Lock order: _tick_lock before _state_lock
        self._tick_lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._unknown_lock = threading.Lock()
        self._tick_thread: Optional[threading.Thread] = None
        self._running = False

        logging.info(f"Engine ready: {len(cfg.channels)} channels @ {cfg.sampling_rate} Hz, "
                     f"W={cfg.window_size}, path={self.path}")

    # ------------------------------------------------------------------
    # Ingest API
    # ------------------------------------------------------------------

    def ingest(self, channel: str, samples, timestamp_ms: Optional[float] = None) -> None:
        """
        Append a batch of raw samples for one channel

        Unknown channel names are dropped and counted, never raised.
        """
        if self.buffers.ingest(channel, samples):
            if timestamp_ms is not None:
                self.last_timestamps[channel] = timestamp_ms
            return

        with self._unknown_lock:
            self.unknown_channel_count += 1
            self.unknown_channels[channel] += 1
            dropped = self.unknown_channels[channel]
        if dropped == 1:
            logging.warning(f"Dropping samples for unknown channel: {channel!r}")
        else:
            logging.debug(f"Dropped batch #{dropped} for unknown channel {channel!r}")

    def ingest_batch(self, batch: SampleBatch) -> None:
        self.ingest(batch.channel, batch.samples, batch.timestamp_ms)

    def ingest_many(self, batches: Dict[str, np.ndarray], timestamp_ms: Optional[float] = None) -> None:
        for channel, samples in batches.items():
            self.ingest(channel, samples, timestamp_ms)

    # ------------------------------------------------------------------
    # Control API
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Reset filter state and begin ticking (no-op if already running)"""
        with self._tick_lock, self._state_lock:
            if self._running:
                return
            self.preprocessor.reset()
            self._running = True
            self.scheduler.start()
        logging.info("Band power analysis started")

    def stop(self) -> None:
        """
        Stop ticking (no-op if already stopped)

        Safe to call from any thread, including a subscriber callback. Called
        from outside a tick, it returns once the tick thread has exited.
        """
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            thread = self.scheduler.stop(wait=False)
        current = threading.current_thread()
        # A thread inside process_tick holds _tick_lock, which the ticker may be waiting on
        if thread is not None and thread is not current and self._tick_thread is not current:
            thread.join()
        logging.info("Band power analysis stopped")

    def set_filtering(self, enabled: bool) -> None:
        with self._tick_lock:
            self.preprocessor.set_filtering(enabled)

    @property
    def filtering(self) -> bool:
        return self.preprocessor.filtering

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    # ------------------------------------------------------------------
    # Observation API
    # ------------------------------------------------------------------

    def subscribe(self, callback: Optional[Callable[[PowerSnapshot], None]] = None) -> Subscription:
        return self.broadcast.subscribe(callback)

    def unsubscribe(self, subscription: Subscription) -> None:
        self.broadcast.unsubscribe(subscription)

    @property
    def latest(self) -> Optional[PowerSnapshot]:
        return self.broadcast.latest

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def _scheduled_tick(self) -> None:
        with self._tick_lock:
            if self._running:
                self.process_tick()

    def _record_anomaly(self, message: str) -> None:
        self.anomaly_count += 1
        if self.anomaly_count == 1 or self.anomaly_count % ANOMALY_LOG_EVERY == 0:
            logging.warning(f"Numeric anomaly #{self.anomaly_count}: {message}")

    def spectrum(self, samples: np.ndarray) -> np.ndarray:
        """Power spectrum of one preprocessed window via the active path"""
        if self.transform is not None:
            return self.transform.power_spectrum(samples)
        return self.fallback.estimate(samples)

    def process_channel(self, channel: str, raw: np.ndarray) -> Dict[str, float]:
        """
        Run preprocessing, spectrum and band aggregation for one channel

        Raises:
            NumericAnomaly: Filtering produced NaN/inf
        """
        processed = self.preprocessor.process(channel, raw)
        powers, anomalies = self.aggregator.aggregate_checked(self.spectrum(processed))
        if anomalies:
            self._record_anomaly(f"{anomalies} non-finite band value(s) in {channel} clamped to 0")
        return powers

    def process_tick(self) -> PowerSnapshot:
        """
        Process every ready channel and publish one snapshot

        Called by the scheduler on each tick; may also be called directly to
        drive the engine manually. One channel's failure never prevents the
        others from being processed or the snapshot from being published.
        """
        with self._tick_lock:
            cfg = self.config
            bands: Dict[str, Dict[str, float]] = {band: {} for band in cfg.freq_bands}
            skipped = []
            failed = []

            for channel in cfg.channels:
                raw = self.buffers.snapshot(channel)
                if raw is None:
                    skipped.append(channel)
                    continue
                try:
                    powers = self.process_channel(channel, raw)
                except NumericAnomaly as e:
                    self._record_anomaly(str(e))
                    failed.append(channel)
                    continue
                except Exception:
                    logging.exception(f"Processing failed for channel {channel}")
                    failed.append(channel)
                    continue
                for band, value in powers.items():
                    bands[band][channel] = value

            self.tick_count += 1
            snapshot = PowerSnapshot(
                timestamp=time.time(),
                tick=self.tick_count,
                bands=bands,
                path=self.path,
                diagnostics={
                    "skipped_channels": tuple(skipped),
                    "failed_channels": tuple(failed),
                    "anomalies": self.anomaly_count,
                    "unknown_channels": self.unknown_channel_count,
                },
            )
            previous = self._tick_thread
            self._tick_thread = threading.current_thread()
            try:
                self.broadcast.publish(snapshot)
            finally:
                self._tick_thread = previous

        logging.debug(f"Tick {snapshot.tick}: {len(snapshot.channels)} channel(s), skipped {skipped}")
        return snapshot

    def reset(self) -> None:
        """Clear buffers and filter state (e.g. after a reconnect)"""
        with self._tick_lock:
            self.buffers.clear()
            self.preprocessor.reset()
