"""Email protocol construction and threading layer for a Gmail-backed client."""

from mailthread.errors import (
    AttachmentNotFoundError,
    AttachmentSizeError,
    AuthExpiredError,
    MailError,
    MailValidationError,
    OperationFailedError,
    RemoteOperationError,
    ThreadingValidationError,
)
from mailthread.service import MailboxService

__all__ = [
    "AttachmentNotFoundError",
    "AttachmentSizeError",
    "AuthExpiredError",
    "MailError",
    "MailValidationError",
    "MailboxService",
    "OperationFailedError",
    "RemoteOperationError",
    "ThreadingValidationError",
]
