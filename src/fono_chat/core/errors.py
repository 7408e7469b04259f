"""Error taxonomy shared by the services and the HTTP layer.

Every failure a caller can observe is a ``FonoError`` subclass carrying the
HTTP status it maps to and a short public message. Internal details (driver
errors, stack traces) stay in the logs and never reach ``detail``.
"""

from __future__ import annotations

from fastapi import status


class FonoError(Exception):
    """Base class for all domain failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"
    retryable: bool = False

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class UnauthenticatedError(FonoError):
    """No verified principal is attached to the request."""

    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "User not authenticated."


class InvalidArgumentError(FonoError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid request."


class ForbiddenError(FonoError):
    """The principal is not allowed to perform the action."""

    status_code = status.HTTP_403_FORBIDDEN
    detail = "Forbidden"


class NotFoundError(FonoError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found."


class ConflictError(FonoError):
    """The resource is not in the state the operation requires."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Conflicting resource state."


class DecryptionError(FonoError):
    """AEAD tag verification failed: tampered data, wrong key or wrong IV.

    This is a data-integrity failure, not a caller input error.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Decryption failed: authentication tag invalid or data tampered."


class UnavailableError(FonoError):
    """A backing service failed transiently; the request may be retried."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Service temporarily unavailable."
    retryable = True


class MessageNotFoundError(NotFoundError):
    detail = "Message not found."


class MessageForbiddenError(ForbiddenError):
    detail = "You can only modify messages you sent."


class MessageAlreadyDeletedError(ConflictError):
    detail = "Message is already deleted."


class MessageNotDeletedError(ConflictError):
    detail = "Message is not deleted."


class StoreUnavailableError(UnavailableError):
    detail = "Message store unavailable."


class PublishError(UnavailableError):
    detail = "Realtime service unavailable."
