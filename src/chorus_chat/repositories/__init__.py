"""Persistence layer for chat entities."""

from .chat_repo import ChatRepository

__all__ = ["ChatRepository"]
