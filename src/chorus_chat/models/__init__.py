# src/chorus_chat/models/__init__.py
"""SQLAlchemy models for the Chorus Chat service."""

from .conversation import Conversation, participant_key
from .message import Message
from .notification import NOTIFICATION_TYPE_MESSAGE, Notification
from .user import User

__all__ = [
    "Conversation", "participant_key",
    "Message",
    "Notification", "NOTIFICATION_TYPE_MESSAGE",
    "User",
]
