"""Exception classes for the mail construction and threading layer."""

from __future__ import annotations


class MailError(Exception):
    """Base class for all errors raised by mailthread."""


class MailValidationError(MailError):
    """Raised when a message cannot be composed from the supplied fields."""


class ThreadingValidationError(MailValidationError):
    """Raised when reply threading headers are malformed.

    Attributes:
        reason: Which rule the headers failed.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid threading headers: {reason}")


class AttachmentNotFoundError(MailError):
    """Raised when a stable attachment id is absent from a fresh fetch.

    Attributes:
        message_id: The message that was refetched.
        stable_id: The stable id that could not be located.
    """

    def __init__(self, message_id: str, stable_id: str) -> None:
        self.message_id = message_id
        self.stable_id = stable_id
        super().__init__(f"Attachment {stable_id} not found in message {message_id}")


class AttachmentSizeError(MailError):
    """Raised when an attachment exceeds the configured size ceiling.

    Attributes:
        size: Declared or decoded size in bytes.
        max_size: The configured ceiling in bytes.
    """

    def __init__(self, size: int, max_size: int) -> None:
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"Attachment size ({size} bytes) exceeds maximum allowed size ({max_size} bytes)"
        )


class OperationFailedError(MailError):
    """Raised when a named operation cannot complete.

    Attributes:
        operation: Human-readable name of the attempted operation.
        cause: The underlying exception, if any.
    """

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Failed to {operation}")


class RemoteOperationError(OperationFailedError):
    """Raised when a call to the remote mailbox service fails."""


class AuthExpiredError(RemoteOperationError):
    """Raised when the remote service rejects the credentials.

    The session layer reacts to this by forcing re-authentication.
    """
