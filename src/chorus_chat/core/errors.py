"""Error taxonomy shared by the REST and realtime surfaces."""

from __future__ import annotations


class ChatError(RuntimeError):
    """Base exception for messaging failures reported to the acting client.

    Each subclass carries a stable ``code`` that is sent to realtime clients
    in ``error`` events.
    """

    code = "chat_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(ChatError):
    """Raised for empty or oversized content and inconsistent identifiers."""

    code = "validation_error"


class NotAuthorized(ChatError):
    """Raised when the acting user may not touch the target resource."""

    code = "not_authorized"


class NotFound(ChatError):
    """Raised when a referenced conversation, message or user does not exist."""

    code = "not_found"


class Unreachable(ChatError):
    """Raised when a signaling target has no live presence entry."""

    code = "unreachable"

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} is not reachable")
        self.user_id = user_id


class TransientPersistenceFailure(ChatError):
    """Raised when the database call failed; the client may retry."""

    code = "persistence_failure"
