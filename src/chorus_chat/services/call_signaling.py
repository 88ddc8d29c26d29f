"""Stateless relay for WebRTC call negotiation.

Offers, answers and ICE candidates are forwarded to whatever connection is
currently registered for the target user. Nothing is stored or queued, and
the payloads are never inspected. Only an offer to an absent user is an
error (``Unreachable``); late answers, candidates and hang-ups for a user
who is gone are dropped, since the call they belong to is already over.
"""

from __future__ import annotations

import logging
from typing import Any

from chorus_chat.core.errors import Unreachable
from chorus_chat.schemas.events import (
    CallAnsweredEvent,
    CallAnsweredPayload,
    CallEndedEvent,
    CallPeerPayload,
    CallRejectedEvent,
    IncomingCallEvent,
    IncomingCallPayload,
    OutboundEvent,
    RelayedCandidatePayload,
    RelayedIceCandidateEvent,
)
from chorus_chat.services.presence import PresenceRegistry

logger = logging.getLogger(__name__)


class CallSignalingRelay:
    """Forwards signaling envelopes between two registered users."""

    def __init__(self, presence: PresenceRegistry) -> None:
        self.presence = presence

    async def _forward(self, to_id: int, event: OutboundEvent) -> bool:
        connection = self.presence.lookup(to_id)
        if connection is None:
            return False
        return await connection.send(event)

    async def relay_offer(self, from_id: int, to_id: int, offer: Any) -> None:
        """Ring ``to_id`` with an incoming call.

        Raises:
            Unreachable: ``to_id`` has no live connection.
        """
        event = IncomingCallEvent(data=IncomingCallPayload(from_=from_id, offer=offer))
        if not await self._forward(to_id, event):
            logger.info("Call from %s to %s failed: callee unreachable", from_id, to_id)
            raise Unreachable(to_id)

    async def relay_answer(self, from_id: int, to_id: int, answer: Any) -> bool:
        event = CallAnsweredEvent(data=CallAnsweredPayload(from_=from_id, answer=answer))
        forwarded = await self._forward(to_id, event)
        if not forwarded:
            logger.debug("Answer from %s dropped; caller %s is gone", from_id, to_id)
        return forwarded

    async def relay_ice_candidate(self, from_id: int, to_id: int, candidate: Any) -> bool:
        event = RelayedIceCandidateEvent(
            data=RelayedCandidatePayload(from_=from_id, candidate=candidate)
        )
        return await self._forward(to_id, event)

    async def relay_reject(self, from_id: int, to_id: int) -> bool:
        return await self._forward(to_id, CallRejectedEvent(data=CallPeerPayload(from_=from_id)))

    async def relay_end(self, from_id: int, to_id: int) -> bool:
        return await self._forward(to_id, CallEndedEvent(data=CallPeerPayload(from_=from_id)))
