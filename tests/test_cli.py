import json
import os

from eeg_bandpower.cli.main import create_parser, main


def test_validate_passes_on_defaults(capsys):
    assert main(["--validate"]) == 0
    out = capsys.readouterr().out
    assert "strongest band: alpha (OK)" in out
    assert "strongest band: delta (OK)" in out


def test_invalid_window_is_a_config_error():
    assert main(["--validate", "--window", "100"]) == 2


def test_short_run_on_synthetic_input():
    assert main(["--run", "--window", "64", "--interval-ms", "50", "--duration", "0.5", "--seed", "1"]) == 0


def test_calibrate_writes_profile(tmp_path):
    profile_dir = tmp_path / "profiles"
    code = main(["--calibrate", "--user", "alice", "--profile-dir", str(profile_dir),
                 "--window", "64", "--interval-ms", "50", "--duration", "0.5", "--seed", "1"])
    assert code == 0

    path = profile_dir / "alice.json"
    assert os.path.exists(path)
    with open(path) as f:
        profile = json.load(f)
    assert profile["user_id"] == "alice"
    assert set(profile["baseline"]["values"]) == {"delta", "theta", "alpha", "beta", "gamma"}
    assert profile["baseline"]["n_snapshots"] > 0


def test_parser_requires_a_mode():
    parser = create_parser()
    args = parser.parse_args(["--run", "--fallback", "--no-filter"])
    assert args.run and args.fallback and args.no_filter
