# src/chorus_chat/schemas/__init__.py
"""
Pydantic schemas for API request/response models and realtime events.

These schemas define the structure of API data for serialization and validation.
"""

from .chat import (
    ConversationCreate,
    ConversationResponse,
    MessageCreate,
    MessageResponse,
    NotificationResponse,
    UserSummary,
)
from .events import InboundEvent, OutboundEvent, parse_inbound_event

__all__ = [
    "ConversationCreate", "ConversationResponse",
    "MessageCreate", "MessageResponse",
    "NotificationResponse",
    "UserSummary",
    "InboundEvent", "OutboundEvent", "parse_inbound_event",
]
