"""Notification side effects of chat activity."""

from __future__ import annotations

import logging

from chorus_chat.core.errors import ChatError
from chorus_chat.core.settings import settings
from chorus_chat.models import NOTIFICATION_TYPE_MESSAGE, Message, User
from chorus_chat.repositories.chat_repo import ChatRepository
from chorus_chat.schemas.events import NewMessageEvent, NewMessageNotice
from chorus_chat.services.presence import PresenceRegistry

logger = logging.getLogger(__name__)

UNKNOWN_SENDER_NAME = "Someone"


def message_preview(sender_name: str, content: str, limit: int | None = None) -> str:
    """Return ``"<sender>: <content>"`` with the content cut to ``limit`` characters."""
    limit = settings.notification_preview_length if limit is None else limit
    excerpt = content[:limit]
    if len(content) > limit:
        excerpt += "..."
    return f"{sender_name}: {excerpt}"


class NotificationService:
    """Records message notifications and pings the recipient if present.

    Failures are logged and swallowed here: a notification is never worth
    failing the message that triggered it.
    """

    def __init__(self, repository: ChatRepository, presence: PresenceRegistry) -> None:
        self.repository = repository
        self.presence = presence

    async def notify_new_message(self, message: Message, sender: User | None) -> None:
        sender_name = sender.display_name if sender is not None else UNKNOWN_SENDER_NAME
        try:
            self.repository.create_notification(
                recipient_id=message.recipient_id,
                sender_id=message.sender_id,
                type_=NOTIFICATION_TYPE_MESSAGE,
                title="New Message",
                body=message_preview(sender_name, message.content),
                conversation_id=message.conversation_id,
            )
        except ChatError as exc:
            logger.warning("Could not record notification for message %s: %s", message.id, exc)
            return

        connection = self.presence.lookup(message.recipient_id)
        if connection is None:
            return
        await connection.send(
            NewMessageEvent(
                data=NewMessageNotice(
                    sender_name=sender_name,
                    sender_avatar=sender.avatar if sender is not None else None,
                )
            )
        )
