"""Single-part RFC 5322 message builder.

For messages with attachments or alternative bodies use
:class:`mailthread.mime.multipart.MultipartMessageBuilder`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from mailthread.mime.codec import encode_transport_token
from mailthread.mime.headers import HeaderSet

DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"


class MessageBuilder(BaseModel):
    """Immutable fluent builder for a minimal single-part message.

    Every setter returns a new builder, so one configured builder can never
    leak state into another message.  No field is required: ``build`` emits
    only the headers that were set, then a blank line and the body.
    ``Content-Type`` has a default and is always emitted.
    """

    model_config = ConfigDict(frozen=True)

    sender: str | None = None
    to: str | None = None
    cc: str | None = None
    bcc: str | None = None
    subject: str | None = None
    body: str | None = None
    content_type: str = DEFAULT_CONTENT_TYPE
    extra_headers: HeaderSet = HeaderSet()

    def set_from(self, sender: str) -> MessageBuilder:
        return self.model_copy(update={"sender": sender})

    def set_to(self, to: str) -> MessageBuilder:
        return self.model_copy(update={"to": to})

    def set_cc(self, cc: str) -> MessageBuilder:
        return self.model_copy(update={"cc": cc})

    def set_bcc(self, bcc: str) -> MessageBuilder:
        return self.model_copy(update={"bcc": bcc})

    def set_subject(self, subject: str) -> MessageBuilder:
        return self.model_copy(update={"subject": subject})

    def set_body(self, body: str) -> MessageBuilder:
        return self.model_copy(update={"body": body})

    def set_content_type(self, content_type: str) -> MessageBuilder:
        return self.model_copy(update={"content_type": content_type})

    def set_header(self, name: str, value: str) -> MessageBuilder:
        """Add a header emitted after ``Subject`` (e.g. threading headers)."""
        return self.model_copy(update={"extra_headers": self.extra_headers.set(name, value)})

    def reset(self) -> MessageBuilder:
        """Return an empty builder."""
        return MessageBuilder()

    def build(self) -> str:
        """Render headers, a blank line, and the body, CRLF-separated."""
        lines: list[str] = []
        for name, value in (
            ("From", self.sender),
            ("To", self.to),
            ("Cc", self.cc),
            ("Bcc", self.bcc),
            ("Subject", self.subject),
        ):
            if value:
                lines.append(f"{name}: {value}")
        lines.extend(self.extra_headers.lines())
        lines.append(f"Content-Type: {self.content_type}")

        return "\r\n".join(lines) + "\r\n\r\n" + (self.body or "")

    def build_and_encode(self) -> str:
        """``build()`` encoded as a transport token for the send operation."""
        return encode_transport_token(self.build())
