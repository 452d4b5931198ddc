"""
Communication interfaces

This module handles delivery of results to external consumers over UDP.
"""

from .udp_sender import SnapshotSender

__all__ = ['SnapshotSender']
