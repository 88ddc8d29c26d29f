# src/chorus_chat/api/v1/endpoints/realtime.py
"""WebSocket entry point for realtime messaging and call signaling."""

from __future__ import annotations

from fastapi import APIRouter, WebSocket

from chorus_chat.realtime.gateway import RealtimeGateway

from ..dependencies import CallSignalingDep, PresenceDep, SessionScopeDep

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_gateway(
    websocket: WebSocket,
    presence: PresenceDep,
    signaling: CallSignalingDep,
    session_scope: SessionScopeDep,
) -> None:
    """Serve one realtime client for the lifetime of its socket.

    No database session is held by the socket itself; each frame opens and
    closes its own.
    """
    gateway = RealtimeGateway(presence, signaling, session_scope)
    await gateway.serve(websocket)
