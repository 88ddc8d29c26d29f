"""Conversation and message Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserSummary(BaseModel):
    """Participant display metadata embedded in conversation payloads."""

    id: int
    username: str
    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")
    avatar: str | None = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ConversationResponse(BaseModel):
    """Schema for conversation information returned by the API."""

    id: int
    participants: list[UserSummary]
    last_message: str = Field(alias="lastMessage")
    updated_at: datetime = Field(alias="updatedAt")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ConversationCreate(BaseModel):
    """Schema for the get-or-create conversation request."""

    user_id1: int = Field(..., alias="userId1", description="First participant")
    user_id2: int = Field(..., alias="userId2", description="Second participant")

    model_config = ConfigDict(populate_by_name=True)


class MessageResponse(BaseModel):
    """Schema for a persisted message, shared by REST and realtime payloads."""

    id: int
    conversation: int = Field(validation_alias="conversation_id")
    sender: int = Field(validation_alias="sender_id")
    recipient: int = Field(validation_alias="recipient_id")
    content: str
    delivered: bool
    viewed: bool
    read_at: datetime | None = Field(None, serialization_alias="readAt")
    created_at: datetime = Field(serialization_alias="createdAt")
    client_id: str | None = Field(None, serialization_alias="clientId")

    model_config = ConfigDict(from_attributes=True)


class MessageCreate(BaseModel):
    """Schema for the REST send-message fallback."""

    conversation_id: int | None = Field(None, alias="conversationId")
    sender: int
    recipient: int
    content: str = Field(..., description="Message text; must not be blank")

    model_config = ConfigDict(populate_by_name=True)


class NotificationResponse(BaseModel):
    """Schema for notification information returned by the API."""

    id: int
    type: str
    title: str
    body: str
    sender_id: int | None = Field(None, serialization_alias="senderId")
    conversation_id: int | None = Field(None, serialization_alias="conversationId")
    read: bool
    created_at: datetime = Field(serialization_alias="createdAt")

    model_config = ConfigDict(from_attributes=True)
