"""
Rolling per-channel sample storage

Each channel keeps the most recent W raw samples (W = transform window size).
A buffer that has not yet received W samples is warming up and yields no
snapshot.
"""

import threading
from typing import Dict, Iterable, List, Optional

import numpy as np


class ChannelRingBuffer:
    """
    Fixed-capacity FIFO of the most recent samples for one channel

    Storage is a preallocated numpy array written circularly. The lock is
    held only while samples are copied in or out, never across processing.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"Capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._data = np.zeros(capacity, dtype=np.float64)
        self._write_pos = 0
        self._count = 0
        self._total = 0
        self._lock = threading.Lock()

    def append(self, samples) -> None:
        """Append samples, evicting the oldest once capacity is exceeded"""
        values = np.asarray(samples, dtype=np.float64).ravel()
        n = values.size
        if n == 0:
            return

        with self._lock:
            self._total += n
            if n >= self.capacity:
                # Only the newest W samples can survive
                self._data[:] = values[-self.capacity:]
                self._write_pos = 0
                self._count = self.capacity
                return

            end = self._write_pos + n
            if end <= self.capacity:
                self._data[self._write_pos:end] = values
            else:
                split = self.capacity - self._write_pos
                self._data[self._write_pos:] = values[:split]
                self._data[:n - split] = values[split:]
            self._write_pos = end % self.capacity
            self._count = min(self.capacity, self._count + n)

    def snapshot(self) -> Optional[np.ndarray]:
        """
        Copy of exactly W samples, oldest first

        Returns:
            np.ndarray or None: None while the buffer is still warming up
        """
        with self._lock:
            if self._count < self.capacity:
                return None
            return np.concatenate((self._data[self._write_pos:], self._data[:self._write_pos]))

    @property
    def is_ready(self) -> bool:
        return self._count >= self.capacity

    @property
    def fill_level(self) -> int:
        return self._count

    @property
    def total_samples(self) -> int:
        """Samples ingested since construction or the last clear()"""
        return self._total

    def clear(self) -> None:
        with self._lock:
            self._data.fill(0.0)
            self._write_pos = 0
            self._count = 0
            self._total = 0

    def __len__(self) -> int:
        return self._count


class RingBufferBank:
    """One ChannelRingBuffer per configured channel"""

    def __init__(self, channels: Iterable[str], capacity: int):
        self.channels = tuple(channels)
        self.capacity = capacity
        self._buffers: Dict[str, ChannelRingBuffer] = {
            ch: ChannelRingBuffer(capacity) for ch in self.channels
        }

    def ingest(self, channel: str, samples) -> bool:
        """
        Append samples to a channel's buffer

        Returns:
            bool: False if the channel is not configured (batch dropped)
        """
        buffer = self._buffers.get(channel)
        if buffer is None:
            return False
        buffer.append(samples)
        return True

    def snapshot(self, channel: str) -> Optional[np.ndarray]:
        return self._buffers[channel].snapshot()

    def is_ready(self, channel: str) -> bool:
        return self._buffers[channel].is_ready

    def ready_channels(self) -> List[str]:
        return [ch for ch in self.channels if self._buffers[ch].is_ready]

    def __getitem__(self, channel: str) -> ChannelRingBuffer:
        return self._buffers[channel]

    def __contains__(self, channel: str) -> bool:
        return channel in self._buffers

    def clear(self) -> None:
        for buffer in self._buffers.values():
            buffer.clear()
