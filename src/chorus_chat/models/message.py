# src/chorus_chat/models/message.py
"""Models describing direct messages between users."""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from chorus_chat.db.session import Base
from chorus_chat.db.time import UTCDateTime, utcnow


class Message(Base):
    """Text message appended to a conversation.

    ``delivered`` and ``viewed`` only ever move from False to True; ``read_at``
    is set exactly when ``viewed`` is.
    """

    __tablename__ = "message"
    __table_args__ = (
        Index("ix_message_conversation_created", "conversation_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[int] = mapped_column(ForeignKey("conversation.id"), nullable=False)

    sender_id: Mapped[int] = mapped_column(ForeignKey("user_account.id"), nullable=False)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("user_account.id"), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    delivered: Mapped[bool] = mapped_column(default=False, nullable=False)
    viewed: Mapped[bool] = mapped_column(default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
