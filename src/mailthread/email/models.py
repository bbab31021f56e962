"""Pydantic v2 models for the email domain.

Provides frozen (immutable) models for messages fetched from the remote
mailbox service, threading context, assembled threads, attachments, and
outbound compositions.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from mailthread.mime.codec import content_disposition, encode_base64, guess_mime_type
from mailthread.mime.headers import HeaderSet

UNREAD_LABEL = "UNREAD"


# ---------------------------------------------------------------------------
# Fetched messages
# ---------------------------------------------------------------------------


class MessagePart(BaseModel):
    """A node of a message's MIME part tree, as returned by the Gmail API.

    ``part_id`` is the server-declared part id (Gmail gives the root ``""``,
    which counts as absent).  ``attachment_ref`` is the transient handle for
    downloading this part's bytes; it is only valid for the fetch that
    produced it and must never be cached.
    """

    model_config = ConfigDict(frozen=True)

    mime_type: str = ""
    headers: HeaderSet = HeaderSet()
    filename: str = ""
    body_data: str = ""
    size: int = 0
    children: tuple[MessagePart, ...] = ()
    part_id: str | None = None
    attachment_ref: str | None = None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @classmethod
    def from_api(cls, part: dict[str, Any] | None) -> MessagePart:
        """Convert a Gmail ``MessagePart`` resource, recursively."""
        if not part:
            return cls()
        body = part.get("body") or {}
        return cls(
            mime_type=part.get("mimeType") or "",
            headers=HeaderSet.from_api(part.get("headers")),
            filename=part.get("filename") or "",
            body_data=body.get("data") or "",
            size=int(body.get("size") or 0),
            children=tuple(cls.from_api(child) for child in part.get("parts") or []),
            part_id=part.get("partId") or None,
            attachment_ref=body.get("attachmentId") or None,
        )


class Message(BaseModel):
    """A single fetched message with its part tree."""

    model_config = ConfigDict(frozen=True)

    id: str
    thread_id: str = ""
    label_ids: tuple[str, ...] = ()
    snippet: str = ""
    internal_date: int = 0  # ms since epoch, server-assigned
    size_estimate: int = 0
    payload: MessagePart = MessagePart()

    @property
    def headers(self) -> HeaderSet:
        return self.payload.headers

    @property
    def is_unread(self) -> bool:
        return UNREAD_LABEL in self.label_ids

    @classmethod
    def from_api(cls, message: dict[str, Any]) -> Message:
        """Convert a Gmail ``Message`` resource fetched with ``format="full"``."""
        return cls(
            id=message.get("id") or "",
            thread_id=message.get("threadId") or "",
            label_ids=tuple(message.get("labelIds") or ()),
            snippet=message.get("snippet") or "",
            internal_date=int(message.get("internalDate") or 0),
            size_estimate=int(message.get("sizeEstimate") or 0),
            payload=MessagePart.from_api(message.get("payload")),
        )


class Thread(BaseModel):
    """A raw thread: its messages in whatever order the service returned."""

    model_config = ConfigDict(frozen=True)

    id: str
    messages: tuple[Message, ...] = ()

    @classmethod
    def from_api(cls, thread: dict[str, Any]) -> Thread:
        return cls(
            id=thread.get("id") or "",
            messages=tuple(Message.from_api(m) for m in thread.get("messages") or []),
        )


# ---------------------------------------------------------------------------
# Threading
# ---------------------------------------------------------------------------


class ThreadingContext(BaseModel):
    """Threading headers extracted from one message.

    Missing headers are ``None``; ``subject`` defaults to ``""``.
    """

    model_config = ConfigDict(frozen=True)

    message_id: str | None = None
    in_reply_to: str | None = None
    references: str | None = None
    subject: str = ""
    thread_id: str | None = None
    sender: str | None = None
    to: str | None = None


class ReplyHeaders(BaseModel):
    """Headers a reply needs to stay in its thread (RFC 5322 section 3.6.4)."""

    model_config = ConfigDict(frozen=True)

    subject: str
    in_reply_to: str | None = None
    references: str | None = None


# ---------------------------------------------------------------------------
# Assembled threads
# ---------------------------------------------------------------------------


class Participant(BaseModel):
    """An address taking part in a thread."""

    model_config = ConfigDict(frozen=True)

    email: str
    name: str | None = None


class MessageSummary(BaseModel):
    """Per-message view inside an assembled thread."""

    model_config = ConfigDict(frozen=True)

    id: str
    thread_id: str
    label_ids: tuple[str, ...]
    snippet: str
    internal_date: int
    size_estimate: int
    sender: Participant
    to: tuple[Participant, ...]
    subject: str
    date: str
    message_id: str | None = None
    in_reply_to: str | None = None
    references: str | None = None
    has_attachments: bool = False
    is_unread: bool = False


class ThreadSummary(BaseModel):
    """A chronologically ordered thread with aggregate flags.

    Built fresh on every fetch and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    thread_id: str
    messages: tuple[MessageSummary, ...]
    message_count: int
    participants: tuple[Participant, ...]
    subject: str
    snippet: str
    labels: tuple[str, ...]
    first_message_timestamp: int
    last_message_timestamp: int
    has_unread: bool
    has_attachments: bool


class ThreadStub(BaseModel):
    """Minimal thread listing entry."""

    model_config = ConfigDict(frozen=True)

    id: str
    snippet: str = ""


class ThreadStubPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    stubs: tuple[ThreadStub, ...] = ()
    next_page_token: str | None = None


class MessageListPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    ids: tuple[str, ...] = ()
    next_page_token: str | None = None


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------


class AttachmentDescriptor(BaseModel):
    """An attachment located in one fetched part tree.

    ``stable_id`` can be handed to callers; ``attachment_ref`` belongs to the
    fetch that produced this descriptor and must not outlive it.
    """

    model_config = ConfigDict(frozen=True)

    stable_id: str
    attachment_ref: str
    filename: str
    mime_type: str
    size: int


class DownloadedAttachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes
    filename: str
    mime_type: str
    size: int

    def content_disposition(self, inline: bool = False) -> str:
        """Response ``Content-Disposition`` header for serving these bytes."""
        return content_disposition(self.filename, inline=inline)


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------


class OutgoingAttachment(BaseModel):
    """A file to attach to an outbound message; ``data`` is standard base64."""

    model_config = ConfigDict(frozen=True)

    filename: str
    mime_type: str
    data: str

    @classmethod
    def from_bytes(
        cls, filename: str, raw: bytes, mime_type: str | None = None
    ) -> OutgoingAttachment:
        """Wrap raw file bytes, guessing the MIME type from the extension."""
        return cls(
            filename=filename,
            mime_type=mime_type or guess_mime_type(filename),
            data=encode_base64(raw),
        )


class ComposeFields(BaseModel):
    """Fields of an outbound multipart message.

    When ``in_reply_to`` / ``references`` / ``thread_id`` are provided the
    message is threaded as a reply; otherwise it starts a new conversation.
    """

    model_config = ConfigDict(frozen=True)

    to: str
    subject: str
    body_html: str
    body_text: str | None = None
    cc: str | None = None
    bcc: str | None = None
    sender: str | None = None
    sender_name: str | None = None  # display name for From, RFC 2047-encoded when needed
    in_reply_to: str | None = None  # RFC 5322 Message-ID to reply to
    references: str | None = None  # Space-separated RFC 5322 Message-IDs
    thread_id: str | None = None


class EncodedMessage(BaseModel):
    """A transport token ready for the send operation, plus its thread."""

    model_config = ConfigDict(frozen=True)

    raw: str
    thread_id: str | None = None


class SendResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    thread_id: str | None = None
    label_ids: tuple[str, ...] = ()
