"""Realtime direct messaging, presence and call signaling for Chorus."""

__version__ = "0.1.0"
