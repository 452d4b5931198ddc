"""
Main CLI entry point for the EEG band-power engine

This module provides the command-line interface and the processing loops
for live runs, baseline calibration and synthetic validation.
"""

import argparse
import logging
import signal
import sys
import time
import threading
from threading import Event
from typing import Optional

from ..core.config import (
    CALIBRATION_SEC, FS_EXPECTED, NOTCH_HZ, PROFILE_DIR, UDP_HOST, UDP_PORT,
    UPDATE_INTERVAL_MS, WINDOW_SIZE, EngineConfig, load_config,
)
from ..core.errors import ConfigError
from ..acquisition.sources import SyntheticEEGSource, simulate_mixture, simulate_sine
from ..engine.engine import SpectralEngine
from ..detection.mental_state import FeedbackTracker, compute_mental_state
from ..communication.udp_sender import SnapshotSender
from ..training.calibration import BaselineCalibrator, ProfileStore

BATCH_SAMPLES = 12                # Samples per synthetic packet (Muse-style)


def feed_synthetic(engine: SpectralEngine, source: SyntheticEEGSource, shutdown_event: Event,
                   duration: Optional[float] = None, on_idle=None) -> None:
    """Push synthetic batches into the engine in real time until shutdown or duration elapses"""
    start = time.monotonic()
    batch_period = BATCH_SAMPLES / source.fs
    next_batch = start

    while not shutdown_event.is_set():
        now = time.monotonic()
        if duration is not None and now - start >= duration:
            break
        engine.ingest_many(source.generate(BATCH_SAMPLES), timestamp_ms=time.time() * 1000)
        if on_idle is not None:
            on_idle()
        next_batch += batch_period
        shutdown_event.wait(max(0.0, next_batch - time.monotonic()))


def run_realtime_processing(engine: SpectralEngine, source: SyntheticEEGSource,
                            duration: Optional[float], sender: Optional[SnapshotSender],
                            feedback: Optional[FeedbackTracker]) -> None:
    """
    Main real-time processing loop

    Feeds the engine, which publishes snapshots on its own schedule; prints a
    status line every couple of seconds.
    """
    logging.info("Starting real-time processing...")

    shutdown_event = Event()
    def signal_handler(signum, frame):
        logging.info("Shutdown signal received")
        shutdown_event.set()

    previous_handlers = {
        signum: signal.signal(signum, signal_handler)
        for signum in (signal.SIGINT, signal.SIGTERM)
    }

    subscriptions = []
    if sender is not None:
        subscriptions.append(engine.subscribe(sender))
    if feedback is not None:
        subscriptions.append(engine.subscribe(feedback.update))

    last_status_time = 0.0
    status_interval = 2.0

    def print_status():
        nonlocal last_status_time
        now = time.monotonic()
        snapshot = engine.latest
        if snapshot is None or not snapshot.channels or now - last_status_time < status_interval:
            return
        state = compute_mental_state(snapshot)
        powers = " | ".join(f"{band}: {value:8.1f}" for band, value in state.band_powers.items())
        line = (f"{powers} | Focus: {state.focus:5.1f} | Relax: {state.relaxation:5.1f} | "
                f"Stress: {state.stress:5.1f}")
        if feedback is not None:
            line += f" | Feedback: {feedback.last_value:.2f}"
        print(line)
        last_status_time = now

    try:
        engine.start()
        logging.info("Real-time processing started. Press Ctrl+C to stop.")
        feed_synthetic(engine, source, shutdown_event, duration, on_idle=print_status)
    finally:
        engine.stop()
        for subscription in subscriptions:
            subscription.unsubscribe()
        if sender is not None:
            sender.close()
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)
        logging.info(f"Real-time processing stopped after {engine.tick_count} ticks")


def run_calibration(user_id: str, engine: SpectralEngine, source: SyntheticEEGSource,
                    store: ProfileStore, duration: float = CALIBRATION_SEC) -> bool:
    """
    Capture a baseline while the engine runs on live input, then save it
    """
    print("\n" + "="*60)
    print(f"CALIBRATION ({duration:.0f} seconds)")
    print("Sit comfortably and relax while your baseline is captured.")
    print("="*60)

    calibrator = BaselineCalibrator(engine.config.freq_bands)
    shutdown_event = Event()

    # Warm the buffers before capture starts
    warmup = engine.config.window_size / engine.config.sampling_rate

    thread = threading.Thread(target=feed_synthetic, name="calibration-feeder", daemon=True,
                              args=(engine, source, shutdown_event, warmup + duration + 1.0))
    try:
        engine.start()
        thread.start()
        shutdown_event.wait(warmup)
        baseline = calibrator.capture(
            engine, duration,
            progress=lambda pct: print(f"\rCalibrating: {pct:5.1f}%", end=""),
        )
        print()
    except KeyboardInterrupt:
        print("\nCalibration interrupted by user")
        return False
    finally:
        shutdown_event.set()
        thread.join(timeout=2.0)
        engine.stop()

    if baseline is None:
        logging.error("Insufficient data collected for calibration")
        return False

    path = store.save_baseline(user_id, baseline, extra={
        "fs": engine.config.sampling_rate,
        "bands": {name: list(rng) for name, rng in engine.config.freq_bands.items()},
    })

    print("CALIBRATION COMPLETE!")
    print(f"Profile saved: {path}")
    for band, value in baseline.values.items():
        print(f"  {band:>6}: {value:.3f}")
    return True


def run_validation(config: EngineConfig) -> bool:
    """
    Push synthetic sines through a fresh engine and print the band powers

    Returns:
        bool: True if each pure tone lands in its expected band
    """
    channel = config.channels[0]
    fs = config.sampling_rate
    duration = config.window_size / fs
    cases = [
        ("10Hz alpha", simulate_sine(10, 50, duration, fs), "alpha"),
        ("3Hz delta", simulate_sine(3, 50, duration, fs), "delta"),
        ("20Hz beta", simulate_sine(20, 50, duration, fs), "beta"),
        ("mixed 5/10/25Hz", simulate_mixture({5: 30, 10: 50, 25: 20}, duration, fs), None),
    ]

    all_ok = True
    for label, samples, expected in cases:
        engine = SpectralEngine(config)
        engine.set_filtering(False)
        engine.ingest(channel, samples)
        powers = engine.process_tick().channel(channel)

        print(f"Testing with {label} ({engine.path}):")
        for band, value in powers.items():
            print(f"  {band:>6}: {value:12.2f}")

        if expected is not None and expected in powers:
            winner = max(powers, key=powers.get)
            ok = winner == expected
            all_ok = all_ok and ok
            print(f"  strongest band: {winner} ({'OK' if ok else 'expected ' + expected})")

    return all_ok


def build_config(args) -> EngineConfig:
    """Merge the optional config file with command line overrides"""
    overrides = {
        "sampling_rate": args.fs,
        "notch_hz": args.notch,
        "window_size": args.window,
        "update_interval_ms": args.interval_ms,
        "seed": args.seed,
    }
    if args.no_filter:
        overrides["filtering"] = False
    if args.fallback:
        overrides["use_fft"] = False

    if args.config:
        return load_config(args.config, **overrides)
    return EngineConfig.from_dict({k: v for k, v in overrides.items() if v is not None})


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser"""
    parser = argparse.ArgumentParser(
        description="EEG Band Power - Real-time spectral analysis of EEG channels",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run on synthetic data and print band powers
  python -m eeg_bandpower --run

  # Stream snapshots to a UDP consumer for 60 seconds
  python -m eeg_bandpower --run --duration 60 --udp-port 5005

  # Capture a baseline for a user
  python -m eeg_bandpower --calibrate --user alice

  # Check that synthetic tones land in the right bands
  python -m eeg_bandpower --validate
        """
    )

    # Mode selection (mutually exclusive)
    mode_group = parser.add_mutually_exclusive_group(required=True)
    mode_group.add_argument("--run", action="store_true",
                           help="Run real-time processing on synthetic input")
    mode_group.add_argument("--calibrate", action="store_true",
                           help="Capture and save a baseline profile")
    mode_group.add_argument("--validate", action="store_true",
                           help="Run synthetic validation signals through the engine")

    # Configuration
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--fs", type=float, default=None,
                       help=f"Sampling frequency (default: {FS_EXPECTED})")
    parser.add_argument("--notch", type=int, choices=[50, 60], default=None,
                       help=f"Notch filter frequency (default: {NOTCH_HZ})")
    parser.add_argument("--window", type=int, default=None,
                       help=f"Transform window in samples, power of two (default: {WINDOW_SIZE})")
    parser.add_argument("--interval-ms", type=float, default=None,
                       help=f"Update interval (default: {UPDATE_INTERVAL_MS})")
    parser.add_argument("--no-filter", action="store_true",
                       help="Disable high-pass and notch filtering")
    parser.add_argument("--fallback", action="store_true",
                       help="Use the transform-free fallback estimator")
    parser.add_argument("--seed", type=int, default=None,
                       help="Seed for synthetic data and fallback jitter")

    # Session options
    parser.add_argument("--user", help="User ID for calibration profiles")
    parser.add_argument("--profile-dir", default=PROFILE_DIR,
                       help=f"Profile directory (default: {PROFILE_DIR})")
    parser.add_argument("--duration", type=float, default=None,
                       help="Run/calibration duration in seconds")
    parser.add_argument("--feedback-band", default="alpha",
                       help="Band used for baseline feedback in --run (default: alpha)")

    # Communication options
    parser.add_argument("--udp-host", default=UDP_HOST,
                       help=f"UDP host (default: {UDP_HOST})")
    parser.add_argument("--udp-port", type=int, default=None,
                       help=f"Send snapshots over UDP to this port (e.g. {UDP_PORT})")

    # Logging
    parser.add_argument("--verbose", "-v", action="store_true",
                       help="Enable verbose logging")

    return parser


def main(argv=None):
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    if args.calibrate and not args.user:
        parser.error("--calibrate requires --user")

    print("="*60)
    print("EEG Band Power - Real-time Spectral Analysis")
    print("="*60)

    try:
        config = build_config(args)
    except ConfigError as e:
        logging.error(f"Invalid configuration: {e}")
        return 2

    try:
        if args.validate:
            return 0 if run_validation(config) else 1

        engine = SpectralEngine(config)
        source = SyntheticEEGSource(config.sampling_rate, config.channels, seed=args.seed)
        store = ProfileStore(args.profile_dir)

        if args.calibrate:
            duration = args.duration if args.duration is not None else CALIBRATION_SEC
            success = run_calibration(args.user, engine, source, store, duration)
            return 0 if success else 1

        feedback = None
        if args.user:
            baseline = store.load_baseline(args.user)
            if baseline is not None:
                feedback = FeedbackTracker(args.feedback_band, baseline=baseline)
            else:
                logging.warning(f"No baseline for user {args.user}; feedback disabled")

        sender = SnapshotSender(args.udp_host, args.udp_port) if args.udp_port else None
        run_realtime_processing(engine, source, args.duration, sender, feedback)
        return 0

    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        return 0
    except Exception as e:
        logging.error(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
