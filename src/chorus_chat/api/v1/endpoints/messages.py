# src/chorus_chat/api/v1/endpoints/messages.py
"""Message history endpoints for the Chorus Chat API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from chorus_chat.core.errors import NotAuthorized, NotFound
from chorus_chat.core.settings import settings
from chorus_chat.models import Message
from chorus_chat.schemas.chat import MessageCreate, MessageResponse

from ..dependencies import ChatRepositoryDep, CurrentUserDep, MessageRelayDep

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/{conversation_id}", response_model=list[MessageResponse])
async def list_messages(
    conversation_id: int,
    current_user: CurrentUserDep,
    repository: ChatRepositoryDep,
    limit: int | None = Query(None, ge=1),
) -> list[Message]:
    """Return a conversation's messages, oldest first.

    ``limit`` keeps only the newest messages, capped by ``HISTORY_MAX_LIMIT``.
    """
    conversation = repository.get_conversation(conversation_id)
    if conversation is None:
        raise NotFound("Conversation not found")
    if not conversation.has_participant(current_user.id):
        raise NotAuthorized("Not authorized to access this conversation")

    if limit is not None:
        limit = min(limit, settings.history_max_limit)
    return repository.list_messages(conversation_id, limit=limit)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def send_message(
    body: MessageCreate,
    current_user: CurrentUserDep,
    relay: MessageRelayDep,
) -> Message:
    """Store a message without a live delivery attempt.

    Used by clients that are not connected to the realtime gateway; the
    recipient picks the message up from history.
    """
    if body.sender != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to send as another user",
        )
    message, _ = relay.persist(
        sender_id=body.sender,
        recipient_id=body.recipient,
        content=body.content,
        conversation_id=body.conversation_id,
    )
    return message


@router.put("/{message_id}/read", response_model=MessageResponse)
async def mark_message_read(
    message_id: int,
    current_user: CurrentUserDep,
    relay: MessageRelayDep,
) -> Message:
    """Mark a message as viewed by its recipient."""
    return await relay.mark_viewed(message_id, current_user.id)
