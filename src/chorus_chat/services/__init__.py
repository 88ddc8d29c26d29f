# src/chorus_chat/services/__init__.py
"""Business logic services for the Chorus Chat application."""

from .call_signaling import CallSignalingRelay
from .message_relay import MessageRelay
from .notifications import NotificationService
from .presence import PresenceRegistry

__all__ = [
    "CallSignalingRelay",
    "MessageRelay",
    "NotificationService",
    "PresenceRegistry",
]
