"""
Sample acquisition: rolling per-channel buffers and synthetic sources
"""

from .ring_buffer import ChannelRingBuffer, RingBufferBank
from .sources import SyntheticEEGSource, simulate_sine, simulate_mixture

__all__ = ['ChannelRingBuffer', 'RingBufferBank', 'SyntheticEEGSource', 'simulate_sine', 'simulate_mixture']
