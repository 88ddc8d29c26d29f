"""Shared API dependencies for authentication and chat services."""

from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from chorus_chat.core.security import decode_access_token
from chorus_chat.db.session import get_db, session_scope
from chorus_chat.models import User
from chorus_chat.repositories.chat_repo import ChatRepository
from chorus_chat.services.call_signaling import CallSignalingRelay
from chorus_chat.services.message_relay import MessageRelay, build_message_relay
from chorus_chat.services.presence import PresenceRegistry

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

SessionScope = Callable[[], AbstractContextManager[Session]]


def get_session_scope() -> SessionScope:
    """Return the factory the realtime gateway opens one session per frame with."""
    return session_scope


SessionScopeDep = Annotated[SessionScope, Depends(get_session_scope)]


def get_chat_repository(db: SessionDep) -> ChatRepository:
    """Return a repository bound to the request's session."""
    return ChatRepository(db)


ChatRepositoryDep = Annotated[ChatRepository, Depends(get_chat_repository)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    repository: ChatRepositoryDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Raises:
        HTTPException: If token is invalid or user not found
    """
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    user = repository.get_user(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_presence_registry(connection: HTTPConnection) -> PresenceRegistry:
    """Return the process-wide presence registry installed on the app."""
    return connection.app.state.presence


PresenceDep = Annotated[PresenceRegistry, Depends(get_presence_registry)]


def get_call_signaling(connection: HTTPConnection) -> CallSignalingRelay:
    """Return the call signaling relay installed on the app."""
    return connection.app.state.call_signaling


CallSignalingDep = Annotated[CallSignalingRelay, Depends(get_call_signaling)]


def get_message_relay(db: SessionDep, presence: PresenceDep) -> MessageRelay:
    """Return a message relay bound to the request's session."""
    return build_message_relay(db, presence)


MessageRelayDep = Annotated[MessageRelay, Depends(get_message_relay)]
