"""Tests for WebRTC signaling relay."""

import pytest

from chorus_chat.core.errors import Unreachable
from chorus_chat.services.call_signaling import CallSignalingRelay

OFFER = {"type": "offer", "sdp": "v=0 o=- 46117317 2 IN IP4 127.0.0.1"}


@pytest.fixture()
def signaling(presence) -> CallSignalingRelay:
    return CallSignalingRelay(presence)


@pytest.mark.asyncio
async def test_offer_reaches_callee_untouched(signaling, connect) -> None:
    _, callee = connect(2)

    await signaling.relay_offer(1, 2, OFFER)

    assert callee.sent == [{"event": "incoming-call", "data": {"from": 1, "offer": OFFER}}]


@pytest.mark.asyncio
async def test_offer_to_absent_user_is_unreachable(signaling) -> None:
    with pytest.raises(Unreachable) as exc_info:
        await signaling.relay_offer(1, 2, OFFER)
    assert exc_info.value.user_id == 2


@pytest.mark.asyncio
async def test_offer_over_broken_connection_is_unreachable(signaling, connect) -> None:
    _, callee = connect(2)
    callee.send_json.side_effect = ConnectionResetError()

    with pytest.raises(Unreachable):
        await signaling.relay_offer(1, 2, OFFER)


@pytest.mark.asyncio
async def test_answer_and_candidates_go_back_to_caller(signaling, connect) -> None:
    _, caller = connect(1)
    answer = {"type": "answer", "sdp": "v=0"}
    candidate = {"candidate": "candidate:1 1 UDP 2122252543 10.0.0.2 51234 typ host"}

    assert await signaling.relay_answer(2, 1, answer) is True
    assert await signaling.relay_ice_candidate(2, 1, candidate) is True

    assert caller.sent == [
        {"event": "call-answered", "data": {"from": 2, "answer": answer}},
        {"event": "ice-candidate", "data": {"from": 2, "candidate": candidate}},
    ]


@pytest.mark.asyncio
async def test_late_signals_to_absent_peer_are_dropped(signaling) -> None:
    assert await signaling.relay_answer(2, 1, {"type": "answer"}) is False
    assert await signaling.relay_ice_candidate(2, 1, {}) is False
    assert await signaling.relay_reject(2, 1) is False
    assert await signaling.relay_end(2, 1) is False


@pytest.mark.asyncio
async def test_reject_and_end_notify_peer(signaling, connect) -> None:
    _, caller = connect(1)

    await signaling.relay_reject(2, 1)
    await signaling.relay_end(2, 1)

    assert caller.sent == [
        {"event": "call-rejected", "data": {"from": 2}},
        {"event": "call-ended", "data": {"from": 2}},
    ]
