# src/chorus_chat/models/notification.py
"""Notifications created for message recipients."""

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from chorus_chat.db.session import Base
from chorus_chat.db.time import UTCDateTime, utcnow

NOTIFICATION_TYPE_MESSAGE = "message"


class Notification(Base):
    """In-app notification addressed to a single user."""

    __tablename__ = "notification"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("user_account.id"), nullable=False, index=True)
    sender_id: Mapped[int | None] = mapped_column(ForeignKey("user_account.id"), nullable=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    conversation_id: Mapped[int | None] = mapped_column(ForeignKey("conversation.id"), nullable=True)
    read: Mapped[bool] = mapped_column(default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
