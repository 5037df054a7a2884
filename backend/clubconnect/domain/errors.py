"""Domain-level error taxonomy shared by every workflow."""

from __future__ import annotations


class CoreError(Exception):
    """Base class for expected, caller-facing failures."""

    kind: str = "internal"
    reason: str = "unknown"
    message: str = "Unexpected error."

    def __init__(self, reason: str | None = None, message: str | None = None) -> None:
        if reason:
            self.reason = reason
        if message:
            self.message = message
        super().__init__(self.reason)

    def to_payload(self) -> dict[str, object]:
        return {"kind": self.kind, "detail": self.reason, "message": self.message}


class Unauthenticated(CoreError):
    kind = "unauthenticated"
    reason = "unauthenticated"
    message = "A verified caller identity is required."


class Forbidden(CoreError):
    kind = "forbidden"
    reason = "forbidden"
    message = "You are not allowed to perform this action."


class NotFound(CoreError):
    kind = "not_found"
    reason = "not_found"
    message = "The referenced resource does not exist."


class InvalidState(CoreError):
    kind = "invalid_state"
    reason = "invalid_state"
    message = "The resource is not in a state that permits this action."


class InvalidStateTransition(InvalidState):
    reason = "invalid_transition"
    message = "The requested state transition is not allowed."


class Conflict(CoreError):
    kind = "conflict"
    reason = "conflict"
    message = "The action conflicts with an existing record."


class ValidationFailed(CoreError):
    kind = "validation_failed"
    reason = "validation_failed"
    message = "The request is malformed or out of range."


class RateLimitExceeded(CoreError):
    kind = "rate_limited"
    reason = "rate_limited"
    message = "Please wait before repeating this action."

    def __init__(self, retry_after_seconds: int, reason: str | None = None) -> None:
        self.retry_after_seconds = max(1, int(retry_after_seconds))
        super().__init__(reason, f"Rate limit exceeded. Please wait {self.retry_after_seconds} seconds.")

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        payload["retry_after_seconds"] = self.retry_after_seconds
        return payload


class Internal(CoreError):
    kind = "internal"
    reason = "internal_error"
    message = "Something went wrong. Please try again later."


class StorageUnavailable(Internal):
    reason = "storage_unavailable"
