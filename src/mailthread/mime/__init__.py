"""MIME domain: encoding primitives, headers, and message builders."""

from mailthread.mime.builder import MessageBuilder
from mailthread.mime.headers import HeaderSet
from mailthread.mime.multipart import (
    MimePart,
    MultipartMessageBuilder,
    MultipartType,
    TransferEncoding,
)

__all__ = [
    "HeaderSet",
    "MessageBuilder",
    "MimePart",
    "MultipartMessageBuilder",
    "MultipartType",
    "TransferEncoding",
]
