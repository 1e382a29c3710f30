"""Errors raised by the borrow lifecycle.

Every error is recoverable by the caller and is rendered as JSON by the
handler registered in :func:`librarium.create_app`.
"""


class LifecycleError(Exception):
    code = "lifecycle_error"
    status_code = 400

    def __init__(self, message: str | None = None, **extra):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.extra = extra

    def to_dict(self) -> dict:
        payload = {"error": self.code, "message": self.message}
        payload.update(self.extra)
        return payload


class InvalidState(LifecycleError):
    """The entity is not in the status the operation requires."""

    code = "invalid_state"
    status_code = 409


class DuplicateRequest(LifecycleError):
    """The user already holds a pending request for the book."""

    code = "duplicate_request"
    status_code = 409


class AlreadyCheckedOut(LifecycleError):
    """The user already has an open checkout of the book."""

    code = "already_checked_out"
    status_code = 409


class AlreadyResolved(LifecycleError):
    code = "already_resolved"
    status_code = 409


class AlreadyReturned(LifecycleError):
    code = "already_returned"
    status_code = 409


class NotFound(LifecycleError):
    code = "not_found"
    status_code = 404


class Conflict(LifecycleError):
    """A concurrent writer changed the same records; retry the whole operation."""

    code = "conflict"
    status_code = 409

    def __init__(self, message: str | None = None, **extra):
        extra.setdefault("retryable", True)
        super().__init__(message or "concurrent modification, retry", **extra)
