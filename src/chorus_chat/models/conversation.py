# src/chorus_chat/models/conversation.py
"""Two-party conversation threads."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chorus_chat.db.session import Base
from chorus_chat.db.time import UTCDateTime, utcnow
from chorus_chat.models.user import User


def participant_key(user_a: int, user_b: int) -> tuple[int, int]:
    """Return the order-insensitive storage key for a participant pair."""
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


class Conversation(Base):
    """Direct thread between exactly two users.

    The pair is stored normalized (``user_low_id < user_high_id``) so the
    unique constraint holds regardless of which participant opened it.
    """

    __tablename__ = "conversation"
    __table_args__ = (
        UniqueConstraint("user_low_id", "user_high_id", name="uq_conversation_pair"),
        CheckConstraint("user_low_id < user_high_id", name="ck_conversation_pair_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_low_id: Mapped[int] = mapped_column(ForeignKey("user_account.id"), nullable=False, index=True)
    user_high_id: Mapped[int] = mapped_column(ForeignKey("user_account.id"), nullable=False, index=True)

    last_message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, index=True)

    user_low: Mapped[User] = relationship(User, foreign_keys=[user_low_id], lazy="joined")
    user_high: Mapped[User] = relationship(User, foreign_keys=[user_high_id], lazy="joined")

    @property
    def participant_ids(self) -> frozenset[int]:
        """Return both participant ids."""
        return frozenset((self.user_low_id, self.user_high_id))

    @property
    def participants(self) -> list[User]:
        """Return both participant records."""
        return [self.user_low, self.user_high]

    def has_participant(self, user_id: int) -> bool:
        """Return True if ``user_id`` takes part in this conversation."""
        return user_id in self.participant_ids

    def other_participant(self, user_id: int) -> int:
        """Return the id of the participant that is not ``user_id``."""
        return self.user_high_id if user_id == self.user_low_id else self.user_low_id
