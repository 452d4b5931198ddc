import pytest

from eeg_bandpower.core.data_types import CalibrationBaseline, PowerSnapshot
from eeg_bandpower.detection.mental_state import (
    FeedbackTracker, average_band_powers, compute_mental_state, normalize_to_baseline,
)


def make_snapshot(**band_values):
    bands = {band: {"TP9": value, "AF7": value} for band, value in band_values.items()}
    return PowerSnapshot(timestamp=1.0, tick=1, bands=bands)


def test_indices_follow_band_ratios():
    snapshot = make_snapshot(delta=5.0, theta=10.0, alpha=30.0, beta=20.0, gamma=5.0)
    state = compute_mental_state(snapshot)

    assert state.focus == pytest.approx(20 / 40 * 100)
    assert state.relaxation == pytest.approx(30 / 20 * 50)
    assert state.stress == pytest.approx(25 / 40 * 50)
    assert state.band_powers["alpha"] == pytest.approx(30.0)


def test_indices_are_clipped_to_100():
    state = compute_mental_state(make_snapshot(theta=1.0, alpha=1.0, beta=100.0, gamma=100.0))
    assert state.focus == 100.0
    assert state.stress == 100.0
    assert state.relaxation == pytest.approx(0.5)


def test_zero_denominators_give_zero():
    state = compute_mental_state(make_snapshot(theta=0.0, alpha=0.0, beta=0.0, gamma=0.0))
    assert (state.focus, state.relaxation, state.stress) == (0.0, 0.0, 0.0)


def test_empty_snapshot_is_neutral():
    snapshot = PowerSnapshot(timestamp=0.0, tick=1, bands={"alpha": {}, "beta": {}})
    assert average_band_powers(snapshot) == {"alpha": 0.0, "beta": 0.0}
    state = compute_mental_state(snapshot)
    assert state.focus == 0.0


def test_channel_average():
    snapshot = PowerSnapshot(timestamp=0.0, tick=1, bands={"alpha": {"TP9": 2.0, "AF7": 4.0}})
    assert average_band_powers(snapshot)["alpha"] == pytest.approx(3.0)


@pytest.mark.parametrize("value,baseline,expected", [
    (10.0, 10.0, 0.5),
    (20.0, 10.0, 1.0),
    (50.0, 10.0, 1.0),
    (0.5, 0.0, 0.25),
    (0.5, float("nan"), 0.25),
])
def test_normalize_to_baseline(value, baseline, expected):
    assert normalize_to_baseline(value, baseline) == pytest.approx(expected)


def test_feedback_tracker_counts_rewards():
    tracker = FeedbackTracker("alpha", threshold=0.6,
                              baseline=CalibrationBaseline(values={"alpha": 10.0}))

    assert tracker.update(make_snapshot(alpha=15.0)) == (pytest.approx(0.75), True)
    value, over = tracker.update(make_snapshot(alpha=5.0))
    assert value == pytest.approx(0.25)
    assert not over
    assert tracker.reward_ratio == pytest.approx(0.5)


def test_feedback_tracker_handles_missing_band():
    tracker = FeedbackTracker("theta")
    assert tracker.update(make_snapshot(alpha=1.0)) == (0.0, False)
