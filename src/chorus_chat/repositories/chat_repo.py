"""Data access helpers for conversations, messages and notifications."""
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from chorus_chat.core.errors import TransientPersistenceFailure
from chorus_chat.db.time import utcnow
from chorus_chat.models import Conversation, Message, Notification, User, participant_key

__all__ = ["ChatRepository"]

logger = logging.getLogger(__name__)


class ChatRepository:
    """Thin wrapper around database access for chat entities.

    Every write commits on its own; callers never need multi-row
    transactions. Database errors surface as ``TransientPersistenceFailure``.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Persistence failure while trying to %s", action, exc_info=True)
            raise TransientPersistenceFailure(f"Could not {action}, please retry") from exc

    # Users

    def get_user(self, user_id: int) -> User | None:
        """Return a user by identifier."""
        with self._guard("load user"):
            return self.session.get(User, user_id)

    # Conversations

    def get_conversation(self, conversation_id: int) -> Conversation | None:
        """Return a conversation by identifier."""
        with self._guard("load conversation"):
            return self.session.get(Conversation, conversation_id)

    def find_conversation(self, user_a: int, user_b: int) -> Conversation | None:
        """Return the conversation between two users regardless of argument order."""
        low, high = participant_key(user_a, user_b)
        with self._guard("look up conversation"):
            result = self.session.execute(
                select(Conversation).where(
                    Conversation.user_low_id == low,
                    Conversation.user_high_id == high,
                )
            )
            return result.scalars().first()

    def get_or_create_conversation(self, user_a: int, user_b: int) -> Conversation:
        """Return the unique conversation for the pair, creating it when absent.

        A concurrent creator losing the race on the unique constraint re-reads
        the row the winner inserted.
        """
        existing = self.find_conversation(user_a, user_b)
        if existing is not None:
            return existing

        low, high = participant_key(user_a, user_b)
        with self._guard("create conversation"):
            try:
                with self.session.begin_nested():
                    conversation = Conversation(user_low_id=low, user_high_id=high)
                    self.session.add(conversation)
                self.session.commit()
            except IntegrityError:
                logger.debug("Conversation %s/%s created concurrently; reusing it", low, high)
                winner = self.find_conversation(low, high)
                if winner is None:
                    raise
                return winner
            self.session.refresh(conversation)
            return conversation

    def list_conversations(self, user_id: int) -> list[Conversation]:
        """Return a user's conversations, most recently active first."""
        with self._guard("list conversations"):
            result = self.session.execute(
                select(Conversation)
                .where(
                    or_(
                        Conversation.user_low_id == user_id,
                        Conversation.user_high_id == user_id,
                    )
                )
                .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
            )
            return list(result.scalars().unique())

    def touch_conversation(self, conversation: Conversation, content: str, at: datetime) -> None:
        """Cache the latest message preview on the conversation."""
        with self._guard("update conversation preview"):
            conversation.last_message = content
            conversation.updated_at = at
            self.session.commit()

    # Messages

    def append_message(
        self,
        *,
        conversation: Conversation,
        sender_id: int,
        recipient_id: int,
        content: str,
    ) -> Message:
        """Insert a new undelivered, unviewed message and return it."""
        with self._guard("store message"):
            message = Message(
                conversation_id=conversation.id,
                sender_id=sender_id,
                recipient_id=recipient_id,
                content=content,
                delivered=False,
                viewed=False,
            )
            self.session.add(message)
            self.session.commit()
            self.session.refresh(message)
            return message

    def get_message(self, message_id: int) -> Message | None:
        """Return a message by identifier."""
        with self._guard("load message"):
            return self.session.get(Message, message_id)

    def list_messages(self, conversation_id: int, limit: int | None = None) -> list[Message]:
        """Return a conversation's messages in ascending creation order.

        With ``limit`` only the newest ``limit`` messages are returned, still
        oldest first.
        """
        with self._guard("list messages"):
            if limit is None:
                result = self.session.execute(
                    select(Message)
                    .where(Message.conversation_id == conversation_id)
                    .order_by(Message.created_at.asc(), Message.id.asc())
                )
                return list(result.scalars())

            result = self.session.execute(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(limit)
            )
            return list(reversed(result.scalars().all()))

    def mark_delivered(self, message: Message) -> Message:
        """Flag a message as delivered; no-op when it already is."""
        if message.delivered:
            return message
        with self._guard("mark message delivered"):
            message.delivered = True
            self.session.commit()
            return message

    def mark_viewed(self, message: Message) -> bool:
        """Flag a message as viewed and stamp ``read_at``.

        Returns:
            True if this call performed the transition, False if the message
            was already viewed.
        """
        if message.viewed:
            return False
        with self._guard("mark message viewed"):
            message.viewed = True
            message.delivered = True
            message.read_at = utcnow()
            self.session.commit()
            return True

    # Notifications

    def create_notification(
        self,
        *,
        recipient_id: int,
        sender_id: int | None,
        type_: str,
        title: str,
        body: str,
        conversation_id: int | None = None,
    ) -> Notification:
        """Insert a notification for ``recipient_id``."""
        with self._guard("create notification"):
            notification = Notification(
                recipient_id=recipient_id,
                sender_id=sender_id,
                type=type_,
                title=title,
                body=body,
                conversation_id=conversation_id,
            )
            self.session.add(notification)
            self.session.commit()
            self.session.refresh(notification)
            return notification

    def list_notifications(self, user_id: int, limit: int) -> list[Notification]:
        """Return a user's notifications, newest first."""
        with self._guard("list notifications"):
            result = self.session.execute(
                select(Notification)
                .where(Notification.recipient_id == user_id)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .limit(limit)
            )
            return list(result.scalars())

    def get_notification(self, notification_id: int) -> Notification | None:
        """Return a notification by identifier."""
        with self._guard("load notification"):
            return self.session.get(Notification, notification_id)

    def mark_notification_read(self, notification: Notification) -> Notification:
        """Flag a notification as read."""
        if notification.read:
            return notification
        with self._guard("mark notification read"):
            notification.read = True
            self.session.commit()
            return notification
