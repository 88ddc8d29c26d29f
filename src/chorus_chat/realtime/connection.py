"""Connection handles for realtime clients."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Protocol

from chorus_chat.schemas.events import OutboundEvent

logger = logging.getLogger(__name__)


class JsonSender(Protocol):
    """The part of a WebSocket that a connection writes to."""

    async def send_json(self, data: Any, mode: str = "text") -> None: ...


class Connection:
    """One live client connection, addressable through the presence registry.

    Identity is the handle itself: two connections from the same user are
    never equal. Outbound frames are serialized with a per-connection lock so
    concurrent relays cannot interleave writes on one socket.
    """

    def __init__(self, transport: JsonSender, connection_id: str | None = None) -> None:
        self.transport = transport
        self.id = connection_id or uuid.uuid4().hex
        self.user_id: int | None = None
        self.closed = False
        self._send_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"Connection(id={self.id!r}, user_id={self.user_id!r})"

    @property
    def registered(self) -> bool:
        return self.user_id is not None

    async def send(self, event: OutboundEvent) -> bool:
        """Write one event frame.

        Returns:
            True if the frame was handed to the transport, False if the
            connection is closed or the write failed.
        """
        if self.closed:
            return False
        frame = event.model_dump(mode="json", by_alias=True)
        async with self._send_lock:
            try:
                await self.transport.send_json(frame)
            except Exception as exc:  # transport-specific disconnect errors
                logger.warning("Dropping %s frame to %s: %s", event.event, self, exc)
                self.closed = True
                return False
        return True
