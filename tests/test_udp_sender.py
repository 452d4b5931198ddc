import json
import socket

import pytest

from eeg_bandpower.communication.udp_sender import SnapshotSender
from eeg_bandpower.core.data_types import PowerSnapshot


@pytest.fixture
def receiver():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


def make_snapshot():
    return PowerSnapshot(
        timestamp=12.5, tick=3,
        bands={"theta": {"TP9": 1.0}, "alpha": {"TP9": 4.0}, "beta": {"TP9": 2.0}},
        diagnostics={"skipped_channels": ("AF7",)},
    )


def test_encode_is_json():
    message = json.loads(SnapshotSender.encode(make_snapshot()))
    assert message["tick"] == 3
    assert message["bands"]["alpha"] == {"TP9": 4.0}
    assert message["diagnostics"]["skipped_channels"] == ["AF7"]
    assert "focus" not in message


def test_sender_delivers_snapshot_with_indices(receiver):
    port = receiver.getsockname()[1]
    sender = SnapshotSender("127.0.0.1", port)
    try:
        sender(make_snapshot())
        data, _ = receiver.recvfrom(65536)
    finally:
        sender.close()

    message = json.loads(data)
    assert message["t"] == 12.5
    assert message["relaxation"] == pytest.approx(4.0 / 2.0 * 50)
    assert sender.sent == 1


def test_closed_sender_does_not_send():
    sender = SnapshotSender("127.0.0.1", 9)
    sender.close()
    assert not sender.send_snapshot(make_snapshot())
