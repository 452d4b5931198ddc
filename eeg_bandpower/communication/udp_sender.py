"""
UDP result sink

This module sends published snapshots to an external consumer (a game
engine, a visualiser) as JSON datagrams.
"""

import json
import logging
import socket
from typing import Optional

from ..core.config import UDP_HOST, UDP_PORT
from ..core.data_types import MentalState, PowerSnapshot
from ..detection.mental_state import compute_mental_state


class SnapshotSender:
    """
    Send band power snapshots over UDP as JSON messages

    An instance is callable, so it can be passed straight to
    SpectralEngine.subscribe().
    """

    def __init__(self, host: str = UDP_HOST, port: int = UDP_PORT, with_mental_state: bool = True):
        self.host = host
        self.port = port
        self.with_mental_state = with_mental_state
        self.socket = None
        self.sent = 0
        self.failed = 0
        self._setup_socket()

    def _setup_socket(self):
        """Setup UDP socket for communication"""
        try:
            self.socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            logging.info(f"UDP sender initialized: {self.host}:{self.port}")
        except OSError as e:
            logging.error(f"Failed to setup UDP socket: {e}")

    @staticmethod
    def encode(snapshot: PowerSnapshot, state: Optional[MentalState] = None) -> bytes:
        message = snapshot.to_dict()
        if state is not None:
            message["focus"] = state.focus
            message["relaxation"] = state.relaxation
            message["stress"] = state.stress
        return json.dumps(message).encode('utf-8')

    def send_snapshot(self, snapshot: PowerSnapshot, state: Optional[MentalState] = None) -> bool:
        """
        Returns:
            bool: True if sent successfully
        """
        if self.socket is None:
            return False

        try:
            self.socket.sendto(self.encode(snapshot, state), (self.host, self.port))
            self.sent += 1
            return True
        except OSError as e:
            self.failed += 1
            logging.error(f"Failed to send UDP message: {e}")
            return False

    def __call__(self, snapshot: PowerSnapshot) -> None:
        state = None
        if self.with_mental_state:
            state = compute_mental_state(snapshot)
        self.send_snapshot(snapshot, state)

    def close(self):
        """Close UDP socket"""
        if self.socket:
            self.socket.close()
            self.socket = None
