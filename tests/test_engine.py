import queue
import threading
import time

import numpy as np
import pytest

from eeg_bandpower.acquisition.sources import simulate_sine
from eeg_bandpower.core.config import EngineConfig
from eeg_bandpower.engine.engine import PATH_FALLBACK, PATH_FFT, SpectralEngine
from helpers import wait_for


def _assert_valid(snapshot):
    for per_channel in snapshot.bands.values():
        for value in per_channel.values():
            assert np.isfinite(value)
            assert value >= 0


def test_alpha_sine_dominates_alpha_band(engine):
    engine.set_filtering(False)
    engine.ingest("TP9", simulate_sine(10, 50, duration_sec=1.0, fs=256))
    powers = engine.process_tick().channel("TP9")

    assert engine.path == PATH_FFT
    for band in ("delta", "theta", "beta", "gamma"):
        assert powers["alpha"] > powers[band]


@pytest.mark.parametrize("freq,band", [(3, "delta"), (6, "theta"), (20, "beta"), (40, "gamma")])
def test_pure_tones_land_in_their_band(engine, freq, band):
    engine.set_filtering(False)
    engine.ingest("AF7", simulate_sine(freq, 50, 1.0, 256))
    powers = engine.process_tick().channel("AF7")
    assert max(powers, key=powers.get) == band


def test_warm_up_gating(engine):
    samples = simulate_sine(10, 50, 1.0, 256)
    engine.ingest("TP9", samples[:255])

    snapshot = engine.process_tick()
    assert "TP9" not in snapshot.channels
    assert "TP9" in snapshot.diagnostics["skipped_channels"]
    assert all("TP9" not in per_channel for per_channel in snapshot.bands.values())

    engine.ingest("TP9", samples[255:])
    snapshot = engine.process_tick()
    assert snapshot.channels == ("TP9",)
    assert set(snapshot.diagnostics["skipped_channels"]) == {"AF7", "AF8", "TP10"}


def test_snapshot_published_even_when_nothing_ready(engine):
    sub = engine.subscribe()
    snapshot = engine.process_tick()
    assert sub.get_nowait() is snapshot
    assert snapshot.channels == ()
    assert set(snapshot.bands) == {"delta", "theta", "alpha", "beta", "gamma"}


def test_unknown_channel_counted_not_raised(engine):
    engine.ingest("Fpz", [1.0, 2.0])
    engine.ingest("Fpz", [1.0])
    engine.ingest("O1", [1.0])
    assert engine.unknown_channel_count == 3
    assert engine.unknown_channels["Fpz"] == 2
    assert engine.process_tick().diagnostics["unknown_channels"] == 3


def test_start_resets_filter_state(engine):
    engine.ingest("TP9", np.random.default_rng(0).normal(size=256) * 50)
    engine.process_tick()
    assert engine.preprocessor.filters["TP9"].highpass.prev_output != 0.0

    engine.start()
    engine.stop()
    assert engine.preprocessor.filters["TP9"].highpass.prev_output == 0.0


def test_start_and_stop_are_idempotent(engine):
    engine.stop()
    engine.start()
    engine.start()
    assert engine.is_running
    engine.stop()
    engine.stop()
    assert not engine.is_running


def test_scheduled_ticks_publish(config):
    config.update_interval_ms = 10
    engine = SpectralEngine(config)
    engine.ingest("TP9", simulate_sine(10, 50, 1.0, 256))
    sub = engine.subscribe()
    with engine:
        first = sub.get(timeout=2.0)
        second = sub.get(timeout=2.0)
    assert second.tick == first.tick + 1
    assert "TP9" in first.channels
    assert not engine.is_running


def test_late_subscriber_gets_latest_snapshot(engine):
    engine.ingest("TP9", simulate_sine(10, 50, 1.0, 256))
    snapshots = [engine.process_tick() for _ in range(3)]

    sub = engine.subscribe()
    assert sub.get_nowait() is snapshots[-1]
    with pytest.raises(queue.Empty):
        sub.get_nowait()

    engine.unsubscribe(sub)
    newest = engine.process_tick()
    again = engine.subscribe()
    assert again.drain() == [newest]


def test_stop_from_subscriber_callback(config):
    config.update_interval_ms = 5
    engine = SpectralEngine(config)
    engine.subscribe(lambda snapshot: engine.stop())
    engine.start()
    assert wait_for(lambda: not engine.is_running)
    engine.stop()


def test_channel_failure_does_not_block_others(engine, monkeypatch):
    for ch in ("TP9", "AF7"):
        engine.ingest(ch, simulate_sine(10, 50, 1.0, 256))

    original = engine.preprocessor.process

    def failing(channel, samples):
        if channel == "TP9":
            raise RuntimeError("corrupt channel")
        return original(channel, samples)

    monkeypatch.setattr(engine.preprocessor, "process", failing)
    snapshot = engine.process_tick()
    assert snapshot.channels == ("AF7",)
    assert snapshot.diagnostics["failed_channels"] == ("TP9",)


def test_filter_anomaly_excludes_channel_for_one_tick(engine):
    bad = np.zeros(256)
    bad[5] = np.inf
    engine.ingest("TP9", bad)
    engine.ingest("AF7", np.ones(256))

    snapshot = engine.process_tick()
    assert "TP9" not in snapshot.channels
    assert "AF7" in snapshot.channels
    assert engine.anomaly_count == 1
    assert snapshot.diagnostics["anomalies"] == 1

    engine.ingest("TP9", np.ones(256))
    assert "TP9" in engine.process_tick().channels


def test_fallback_path_selected_once(fallback_engine):
    assert fallback_engine.path == PATH_FALLBACK
    assert fallback_engine.transform is None
    fallback_engine.ingest("TP9", simulate_sine(10, 50, 1.0, 256))
    snapshot = fallback_engine.process_tick()
    assert snapshot.path == PATH_FALLBACK
    _assert_valid(snapshot)


def test_disabled_transform_warns_once(caplog):
    config = EngineConfig(use_fft=False, fallback_jitter=False)
    with caplog.at_level("WARNING"):
        engine = SpectralEngine(config)
        for _ in range(3):
            engine.process_tick()
    warnings = [r for r in caplog.records if "unavailable" in r.getMessage()]
    assert len(warnings) == 1


def test_snapshots_are_immutable(engine):
    engine.ingest("TP9", np.ones(256))
    snapshot = engine.process_tick()
    with pytest.raises(TypeError):
        snapshot.bands["alpha"]["TP9"] = 1.0
    with pytest.raises(TypeError):
        snapshot.bands["new"] = {}
    with pytest.raises(AttributeError):
        snapshot.tick = 99


def test_ingest_after_start_is_processed(config):
    config.update_interval_ms = 10
    with SpectralEngine(config) as engine:
        sub = engine.subscribe()
        engine.ingest("AF8", simulate_sine(20, 30, 1.0, 256))
        assert wait_for(lambda: engine.latest is not None and "AF8" in engine.latest.channels)
        sub.unsubscribe()


@pytest.mark.parametrize("use_fft,ticks", [(True, 10000), (False, 2000)])
def test_randomized_input_never_publishes_invalid_values(use_fft, ticks):
    rng = np.random.default_rng(2024)
    config = EngineConfig(channels=("A", "B"), use_fft=use_fft, seed=7)
    engine = SpectralEngine(config)
    modes = ("zeros", "small", "normal", "huge", "extreme", "spike", "nonfinite")

    published = []
    engine.subscribe(published.append)

    for tick in range(ticks):
        if tick == ticks // 2:
            engine.set_filtering(False)
        for channel in config.channels:
            mode = modes[rng.integers(len(modes))]
            n = int(rng.integers(1, 80))
            if mode == "zeros":
                batch = np.zeros(n)
            elif mode == "small":
                batch = rng.normal(size=n) * 1e-12
            elif mode == "normal":
                batch = rng.normal(size=n) * 50
            elif mode == "huge":
                batch = rng.normal(size=n) * 1e12
            elif mode == "extreme":
                batch = rng.choice([-1.0, 1.0], size=n) * 1e300
            elif mode == "spike":
                batch = np.zeros(n)
                batch[0] = 1e200
            else:
                batch = rng.normal(size=n)
                batch[rng.integers(n)] = rng.choice([np.nan, np.inf, -np.inf])
            engine.ingest(channel, batch)
        engine.process_tick()

    assert len(published) == ticks
    for snapshot in published:
        _assert_valid(snapshot)


def test_stop_from_subscriber_while_start_waits(engine):
    in_callback = threading.Event()
    calls = []

    def stop_later(snapshot):
        if calls:
            return
        calls.append(snapshot)
        in_callback.set()
        time.sleep(0.2)
        engine.stop()

    engine.subscribe(stop_later)
    ticker = threading.Thread(target=engine.process_tick, daemon=True)
    starter = threading.Thread(target=engine.start, daemon=True)

    ticker.start()
    assert in_callback.wait(2.0)
    starter.start()
    ticker.join(3.0)
    starter.join(3.0)

    assert not ticker.is_alive()
    assert not starter.is_alive()
    engine.stop()
    assert not engine.is_running


def test_stop_from_manual_tick_subscriber_while_scheduled(config):
    config.update_interval_ms = 5
    engine = SpectralEngine(config)
    manual = threading.Thread(target=engine.process_tick, daemon=True)

    def stop_from_manual_tick(snapshot):
        if threading.current_thread() is manual:
            time.sleep(0.05)
            engine.stop()

    engine.subscribe(stop_from_manual_tick)
    engine.start()
    manual.start()
    manual.join(3.0)

    assert not manual.is_alive()
    assert not engine.is_running
    assert wait_for(lambda: not engine.scheduler.is_running)


def test_no_publish_after_stop_returns(config):
    config.update_interval_ms = 5
    engine = SpectralEngine(config)
    published = []
    engine.subscribe(published.append)
    engine.start()
    assert wait_for(lambda: len(published) >= 2)
    engine.stop()

    count = len(published)
    time.sleep(0.05)
    assert len(published) == count


def test_concurrent_unknown_channels_are_all_counted(engine):
    def feed(name):
        for _ in range(500):
            engine.ingest(name, [0.0])

    threads = [threading.Thread(target=feed, args=(f"X{i % 2}",)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert engine.unknown_channel_count == 4000
    assert engine.unknown_channels["X0"] == 2000
    assert engine.unknown_channels["X1"] == 2000
