"""Message relay: persist a direct message, then try to deliver it live.

A send always writes the message before any delivery attempt. If the
recipient has a live connection the message is pushed and flagged as
delivered; otherwise it stays undelivered and reaches the recipient through
the history endpoints. The sending connection receives the persisted copy
(with its server id and timestamp) so it can replace its provisional one.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from chorus_chat.core.errors import NotAuthorized, NotFound, TransientPersistenceFailure, ValidationError
from chorus_chat.core.settings import settings
from chorus_chat.models import Conversation, Message, User
from chorus_chat.realtime.connection import Connection
from chorus_chat.repositories.chat_repo import ChatRepository
from chorus_chat.schemas.chat import MessageResponse
from chorus_chat.schemas.events import (
    DeliveredEvent,
    DeliveredPayload,
    ReceiveMessageEvent,
    SeenEvent,
    SeenPayload,
)
from chorus_chat.services.notifications import NotificationService
from chorus_chat.services.presence import PresenceRegistry

logger = logging.getLogger(__name__)


def validate_content(content: str | None) -> str:
    """Return ``content`` if it is a non-blank message within the size limit."""
    if content is None or not content.strip():
        raise ValidationError("Message content is required")
    if len(content) > settings.message_max_length:
        raise ValidationError(
            f"Message content exceeds {settings.message_max_length} characters"
        )
    return content


def serialize_message(message: Message, client_id: str | None = None) -> MessageResponse:
    """Build the wire form of a message."""
    payload = MessageResponse.model_validate(message)
    if client_id is not None:
        payload = payload.model_copy(update={"client_id": client_id})
    return payload


class MessageRelay:
    """Persists messages and routes them through the presence registry."""

    def __init__(
        self,
        repository: ChatRepository,
        presence: PresenceRegistry,
        notifications: NotificationService | None = None,
    ) -> None:
        self.repository = repository
        self.presence = presence
        self.notifications = notifications

    def _resolve_conversation(
        self, conversation_id: int | None, sender_id: int, recipient_id: int
    ) -> Conversation:
        if conversation_id is not None:
            hinted = self.repository.get_conversation(conversation_id)
            if hinted is not None and hinted.participant_ids == {sender_id, recipient_id}:
                return hinted
            logger.debug(
                "Conversation hint %s does not match %s/%s; resolving by participants",
                conversation_id,
                sender_id,
                recipient_id,
            )
        return self.repository.get_or_create_conversation(sender_id, recipient_id)

    def persist(
        self,
        *,
        sender_id: int,
        recipient_id: int,
        content: str,
        conversation_id: int | None = None,
    ) -> tuple[Message, User]:
        """Validate and store a message without attempting delivery.

        Returns:
            The stored message and the sender record.

        Raises:
            ValidationError: Blank or oversized content, or a self-addressed message.
            NotFound: The sender or recipient does not exist.
            TransientPersistenceFailure: The message could not be stored.
        """
        validate_content(content)
        if sender_id == recipient_id:
            raise ValidationError("Sender and recipient must be different users")

        sender = self.repository.get_user(sender_id)
        if sender is None:
            raise NotFound("Sender not found")
        if self.repository.get_user(recipient_id) is None:
            raise NotFound("Recipient not found")

        conversation = self._resolve_conversation(conversation_id, sender_id, recipient_id)
        message = self.repository.append_message(
            conversation=conversation,
            sender_id=sender_id,
            recipient_id=recipient_id,
            content=content,
        )

        # The preview is a cache; a failed update leaves it stale, not wrong.
        try:
            self.repository.touch_conversation(conversation, content, message.created_at)
        except TransientPersistenceFailure:
            logger.warning(
                "Conversation %s preview not updated for message %s", conversation.id, message.id
            )
        return message, sender

    async def send(
        self,
        *,
        sender_id: int,
        recipient_id: int,
        content: str,
        conversation_id: int | None = None,
        origin: Connection | None = None,
        client_id: str | None = None,
    ) -> Message:
        """Persist a message, push it to a present recipient, and ack the sender."""
        message, sender = self.persist(
            sender_id=sender_id,
            recipient_id=recipient_id,
            content=content,
            conversation_id=conversation_id,
        )

        delivered = False
        recipient_connection = self.presence.lookup(recipient_id)
        if recipient_connection is not None:
            pushed = await recipient_connection.send(
                ReceiveMessageEvent(data=serialize_message(message))
            )
            if pushed:
                try:
                    self.repository.mark_delivered(message)
                    delivered = True
                except TransientPersistenceFailure:
                    logger.error("Message %s pushed but delivery flag not stored", message.id)
        else:
            logger.debug("Recipient %s offline; message %s left undelivered", recipient_id, message.id)

        if self.notifications is not None:
            await self.notifications.notify_new_message(message, sender)

        # The sender ack goes last: every write for this send is done by then.
        if origin is not None:
            await origin.send(ReceiveMessageEvent(data=serialize_message(message, client_id)))
            if delivered:
                await origin.send(DeliveredEvent(data=DeliveredPayload(message_id=message.id)))
        return message

    async def mark_viewed(self, message_id: int, viewer_id: int) -> Message:
        """Mark a message as read by its recipient.

        Idempotent: only the first call stamps ``read_at`` and notifies the
        sender with a ``seen`` event.

        Raises:
            NotFound: No message with ``message_id``.
            NotAuthorized: ``viewer_id`` is not the message recipient.
        """
        message = self.repository.get_message(message_id)
        if message is None:
            raise NotFound("Message not found")
        if message.recipient_id != viewer_id:
            raise NotAuthorized("Only the recipient can mark a message as viewed")

        if not self.repository.mark_viewed(message):
            return message

        sender_connection = self.presence.lookup(message.sender_id)
        if sender_connection is not None:
            await sender_connection.send(
                SeenEvent(data=SeenPayload(message_id=message.id, read_at=message.read_at))
            )
        return message


def build_message_relay(session: Session, presence: PresenceRegistry) -> MessageRelay:
    """Wire a relay, with notifications, over ``session``."""
    repository = ChatRepository(session)
    return MessageRelay(repository, presence, NotificationService(repository, presence))
