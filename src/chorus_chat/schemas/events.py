"""Realtime event envelopes exchanged over the gateway WebSocket.

Every frame is a JSON object ``{"event": <name>, "data": <payload>}``. Inbound
frames are parsed into one of the ``*Event`` models of ``InboundEvent``;
anything that does not match a known event and its payload shape is rejected
by ``parse_inbound_event``. Outbound frames are built from the models in
``OutboundEvent``. Signaling bodies (offers, answers, ICE candidates) are
opaque and passed through untouched.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .chat import MessageResponse

# Inbound payloads


class SendMessagePayload(BaseModel):
    conversation_id: int | None = Field(None, alias="conversationId")
    sender: int
    recipient: int
    content: str
    client_id: str | None = Field(None, alias="clientId")

    model_config = ConfigDict(populate_by_name=True)


class MarkViewedPayload(BaseModel):
    message_id: int = Field(..., alias="messageId")

    model_config = ConfigDict(populate_by_name=True)


class SignalTarget(BaseModel):
    to: int


class CallUserPayload(SignalTarget):
    offer: Any


class AnswerCallPayload(SignalTarget):
    answer: Any


class IceCandidatePayload(SignalTarget):
    candidate: Any


# Inbound events


class RegisterPayload(BaseModel):
    user_id: int = Field(..., alias="userId")
    token: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class RegisterEvent(BaseModel):
    """Either a bare user id or ``{userId, token}``."""

    event: Literal["register"]
    data: int | RegisterPayload

    @property
    def user_id(self) -> int:
        return self.data if isinstance(self.data, int) else self.data.user_id

    @property
    def token(self) -> str | None:
        return None if isinstance(self.data, int) else self.data.token


class SendMessageEvent(BaseModel):
    event: Literal["send_message"]
    data: SendMessagePayload


class MarkViewedEvent(BaseModel):
    event: Literal["mark_viewed"]
    data: MarkViewedPayload


class CallUserEvent(BaseModel):
    event: Literal["call-user"]
    data: CallUserPayload


class AnswerCallEvent(BaseModel):
    event: Literal["answer-call"]
    data: AnswerCallPayload


class IceCandidateEvent(BaseModel):
    event: Literal["ice-candidate"]
    data: IceCandidatePayload


class RejectCallEvent(BaseModel):
    event: Literal["reject-call"]
    data: SignalTarget


class EndCallEvent(BaseModel):
    event: Literal["end-call"]
    data: SignalTarget


InboundEvent = Annotated[
    Union[
        RegisterEvent,
        SendMessageEvent,
        MarkViewedEvent,
        CallUserEvent,
        AnswerCallEvent,
        IceCandidateEvent,
        RejectCallEvent,
        EndCallEvent,
    ],
    Field(discriminator="event"),
]

_inbound_adapter: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)


def parse_inbound_event(raw: str | bytes) -> InboundEvent:
    """Parse a raw frame into its event model.

    Raises:
        pydantic.ValidationError: If the frame is not JSON, names an unknown
            event, or its payload is missing required fields.
    """
    return _inbound_adapter.validate_json(raw)


# Outbound payloads


class RegisteredPayload(BaseModel):
    user_id: int = Field(..., serialization_alias="userId")


class DeliveredPayload(BaseModel):
    message_id: int = Field(..., serialization_alias="messageId")


class SeenPayload(BaseModel):
    message_id: int = Field(..., serialization_alias="messageId")
    read_at: datetime | None = Field(None, serialization_alias="readAt")


class NewMessageNotice(BaseModel):
    sender_name: str = Field(..., serialization_alias="senderName")
    sender_avatar: str | None = Field(None, serialization_alias="senderAvatar")


class IncomingCallPayload(BaseModel):
    from_: int = Field(..., serialization_alias="from")
    offer: Any


class CallAnsweredPayload(BaseModel):
    from_: int = Field(..., serialization_alias="from")
    answer: Any


class RelayedCandidatePayload(BaseModel):
    from_: int = Field(..., serialization_alias="from")
    candidate: Any


class CallPeerPayload(BaseModel):
    from_: int = Field(..., serialization_alias="from")


class CallUnreachablePayload(BaseModel):
    to: int


class ErrorPayload(BaseModel):
    event: str
    code: str
    detail: str
    client_id: str | None = Field(None, serialization_alias="clientId")


# Outbound events


class RegisteredEvent(BaseModel):
    event: Literal["registered"] = "registered"
    data: RegisteredPayload


class ReceiveMessageEvent(BaseModel):
    event: Literal["receive_message"] = "receive_message"
    data: MessageResponse


class DeliveredEvent(BaseModel):
    event: Literal["delivered"] = "delivered"
    data: DeliveredPayload


class SeenEvent(BaseModel):
    event: Literal["seen"] = "seen"
    data: SeenPayload


class NewMessageEvent(BaseModel):
    event: Literal["newMessage"] = "newMessage"
    data: NewMessageNotice


class IncomingCallEvent(BaseModel):
    event: Literal["incoming-call"] = "incoming-call"
    data: IncomingCallPayload


class CallAnsweredEvent(BaseModel):
    event: Literal["call-answered"] = "call-answered"
    data: CallAnsweredPayload


class RelayedIceCandidateEvent(BaseModel):
    event: Literal["ice-candidate"] = "ice-candidate"
    data: RelayedCandidatePayload


class CallRejectedEvent(BaseModel):
    event: Literal["call-rejected"] = "call-rejected"
    data: CallPeerPayload


class CallEndedEvent(BaseModel):
    event: Literal["call-ended"] = "call-ended"
    data: CallPeerPayload


class CallUnreachableEvent(BaseModel):
    event: Literal["call-unreachable"] = "call-unreachable"
    data: CallUnreachablePayload


class ErrorEvent(BaseModel):
    event: Literal["error"] = "error"
    data: ErrorPayload


OutboundEvent = Union[
    RegisteredEvent,
    ReceiveMessageEvent,
    DeliveredEvent,
    SeenEvent,
    NewMessageEvent,
    IncomingCallEvent,
    CallAnsweredEvent,
    RelayedIceCandidateEvent,
    CallRejectedEvent,
    CallEndedEvent,
    CallUnreachableEvent,
    ErrorEvent,
]
