"""Realtime gateway: one receive loop per WebSocket connection.

A connection is anonymous until it sends ``register`` with its user id.
Events that need a known sender are ignored until then. Registration is
checked against the user table and, when a token is supplied (or
``REALTIME_REQUIRE_TOKEN`` is set), against the token subject.

Every frame runs in its own database session, closed before the next frame
is read, and each connection's frames are handled strictly in arrival order.
Whatever ends the loop (client close, network drop, server error), the
connection is removed from the presence registry on the way out.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AbstractContextManager

from fastapi import WebSocket
from pydantic import ValidationError as PayloadValidationError
from sqlalchemy.orm import Session

from chorus_chat.core.errors import ChatError, NotAuthorized, NotFound, Unreachable
from chorus_chat.core.security import decode_access_token
from chorus_chat.core.settings import settings
from chorus_chat.realtime.connection import Connection
from chorus_chat.schemas.events import (
    AnswerCallEvent,
    CallUnreachableEvent,
    CallUnreachablePayload,
    CallUserEvent,
    EndCallEvent,
    ErrorEvent,
    ErrorPayload,
    IceCandidateEvent,
    InboundEvent,
    MarkViewedEvent,
    RegisteredEvent,
    RegisteredPayload,
    RegisterEvent,
    RejectCallEvent,
    SendMessageEvent,
    parse_inbound_event,
)
from chorus_chat.services.call_signaling import CallSignalingRelay
from chorus_chat.services.message_relay import MessageRelay, build_message_relay
from chorus_chat.services.presence import PresenceRegistry

logger = logging.getLogger(__name__)


class RealtimeGateway:
    """Dispatches inbound events to the message and call signaling relays."""

    def __init__(
        self,
        presence: PresenceRegistry,
        signaling: CallSignalingRelay,
        session_scope: Callable[[], AbstractContextManager[Session]],
    ) -> None:
        self.presence = presence
        self.signaling = signaling
        self.session_scope = session_scope

    async def serve(self, websocket: WebSocket) -> None:
        """Accept ``websocket`` and process its frames until it goes away."""
        await websocket.accept()
        connection = Connection(websocket)
        logger.debug("Accepted %s", connection)
        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    logger.debug("%s closed with code %s", connection, frame.get("code"))
                    break
                raw = frame.get("text")
                if raw is None:
                    raw = frame.get("bytes")
                if raw is None:
                    continue
                await self.handle_frame(connection, raw)
        finally:
            connection.closed = True
            self.presence.unregister(connection)

    async def handle_frame(self, connection: Connection, raw: str | bytes) -> None:
        """Parse and dispatch one frame; malformed frames are dropped."""
        try:
            event = parse_inbound_event(raw)
        except PayloadValidationError as exc:
            logger.warning(
                "Dropping malformed frame from %s (%d validation errors)",
                connection,
                exc.error_count(),
            )
            return

        try:
            with self.session_scope() as session:
                messages = build_message_relay(session, self.presence)
                await self.dispatch(connection, event, messages)
        except Unreachable as exc:
            await connection.send(CallUnreachableEvent(data=CallUnreachablePayload(to=exc.user_id)))
        except ChatError as exc:
            await connection.send(self._error_event(event, exc.code, exc.detail))
        except Exception:
            logger.exception("Unhandled error processing %s from %s", event.event, connection)
            await connection.send(self._error_event(event, "internal_error", "Internal error"))

    @staticmethod
    def _error_event(event: InboundEvent, code: str, detail: str) -> ErrorEvent:
        client_id = event.data.client_id if isinstance(event, SendMessageEvent) else None
        return ErrorEvent(
            data=ErrorPayload(event=event.event, code=code, detail=detail, client_id=client_id)
        )

    async def register(
        self, connection: Connection, event: RegisterEvent, messages: MessageRelay
    ) -> None:
        """Bind ``connection`` to the user named by ``event``.

        Raises:
            NotAuthorized: The token is missing while required, invalid, or
                issued for another user.
            NotFound: The user does not exist.
        """
        user_id = event.user_id
        if event.token is not None:
            if decode_access_token(event.token) != user_id:
                raise NotAuthorized("Token does not match the registering user")
        elif settings.realtime_require_token:
            raise NotAuthorized("A token is required to register")

        if messages.repository.get_user(user_id) is None:
            raise NotFound("User not found")

        self.presence.register(user_id, connection)
        await connection.send(RegisteredEvent(data=RegisteredPayload(user_id=user_id)))

    async def dispatch(
        self, connection: Connection, event: InboundEvent, messages: MessageRelay
    ) -> None:
        if isinstance(event, RegisterEvent):
            await self.register(connection, event, messages)
            return

        user_id = connection.user_id
        if user_id is None:
            logger.debug("Ignoring %s from unregistered %s", event.event, connection)
            return

        if isinstance(event, SendMessageEvent):
            payload = event.data
            if payload.sender != user_id:
                raise NotAuthorized("Sender does not match the registered user")
            await messages.send(
                sender_id=user_id,
                recipient_id=payload.recipient,
                content=payload.content,
                conversation_id=payload.conversation_id,
                origin=connection,
                client_id=payload.client_id,
            )
        elif isinstance(event, MarkViewedEvent):
            await messages.mark_viewed(event.data.message_id, user_id)
        elif isinstance(event, CallUserEvent):
            await self.signaling.relay_offer(user_id, event.data.to, event.data.offer)
        elif isinstance(event, AnswerCallEvent):
            await self.signaling.relay_answer(user_id, event.data.to, event.data.answer)
        elif isinstance(event, IceCandidateEvent):
            await self.signaling.relay_ice_candidate(user_id, event.data.to, event.data.candidate)
        elif isinstance(event, RejectCallEvent):
            await self.signaling.relay_reject(user_id, event.data.to)
        elif isinstance(event, EndCallEvent):
            await self.signaling.relay_end(user_id, event.data.to)
