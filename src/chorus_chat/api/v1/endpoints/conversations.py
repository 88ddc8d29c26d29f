# src/chorus_chat/api/v1/endpoints/conversations.py
"""Conversation endpoints for the Chorus Chat API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from chorus_chat.core.errors import NotFound, ValidationError
from chorus_chat.models import Conversation
from chorus_chat.schemas.chat import ConversationCreate, ConversationResponse

from ..dependencies import ChatRepositoryDep, CurrentUserDep

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("/{user_id}", response_model=list[ConversationResponse])
async def list_conversations(
    user_id: int,
    current_user: CurrentUserDep,
    repository: ChatRepositoryDep,
) -> list[Conversation]:
    """List a user's conversations, most recently active first."""
    if user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access these conversations",
        )
    return repository.list_conversations(user_id)


@router.post("", response_model=ConversationResponse)
async def get_or_create_conversation(
    body: ConversationCreate,
    current_user: CurrentUserDep,
    repository: ChatRepositoryDep,
) -> Conversation:
    """Return the conversation between two users, creating it on first use."""
    if current_user.id not in (body.user_id1, body.user_id2):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to create this conversation",
        )
    if body.user_id1 == body.user_id2:
        raise ValidationError("A conversation needs two different users")

    for participant_id in (body.user_id1, body.user_id2):
        if repository.get_user(participant_id) is None:
            raise NotFound("User not found")

    return repository.get_or_create_conversation(body.user_id1, body.user_id2)
