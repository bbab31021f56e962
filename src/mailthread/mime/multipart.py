"""RFC 2045/2046 multipart message builder.

Supports ``multipart/mixed``, ``multipart/alternative`` and
``multipart/related`` bodies made of HTML, text, and attachment parts.
The builder does not validate its input: a malformed subtype or header
value produces a malformed message.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from mailthread.mime.codec import (
    DEFAULT_MESSAGE_ID_DOMAIN,
    chunk_base64,
    encode_header_word,
    encode_transport_token,
    format_date,
    generate_boundary,
    generate_message_id,
    sanitize_filename,
)
from mailthread.mime.headers import HeaderSet

PREAMBLE = "This is a multi-part message in MIME format."


class MultipartType(StrEnum):
    """Multipart subtypes (RFC 2046 section 5.1)."""

    MIXED = "mixed"
    ALTERNATIVE = "alternative"
    RELATED = "related"


class TransferEncoding(StrEnum):
    """Content-Transfer-Encoding values (RFC 2045 section 6)."""

    SEVEN_BIT = "7bit"
    EIGHT_BIT = "8bit"
    BASE64 = "base64"
    QUOTED_PRINTABLE = "quoted-printable"


class MimePart(BaseModel):
    """One body part of a multipart message.

    When ``headers`` is set, those headers are written instead of the
    default ``Content-Transfer-Encoding`` line.
    """

    model_config = ConfigDict(frozen=True)

    content_type: str
    content: str
    headers: HeaderSet | None = None
    encoding: TransferEncoding | None = None
    is_attachment: bool = False
    filename: str | None = None


class MultipartMessageBuilder(BaseModel):
    """Immutable fluent builder for multipart MIME messages.

    Each setter returns a new builder.  The boundary is generated when the
    builder is created and can be replaced with :meth:`set_boundary`.
    """

    model_config = ConfigDict(frozen=True)

    multipart_type: str = MultipartType.MIXED
    headers: HeaderSet = HeaderSet()
    parts: tuple[MimePart, ...] = ()
    boundary: str = Field(default_factory=generate_boundary)
    message_id_domain: str = DEFAULT_MESSAGE_ID_DOMAIN

    # -- Top-level headers ----------------------------------------------------

    def set_multipart_type(self, multipart_type: MultipartType | str) -> MultipartMessageBuilder:
        return self.model_copy(update={"multipart_type": str(multipart_type)})

    def set_header(self, name: str, value: str) -> MultipartMessageBuilder:
        return self.model_copy(update={"headers": self.headers.set(name, value)})

    def set_headers(self, headers: dict[str, str]) -> MultipartMessageBuilder:
        return self.model_copy(update={"headers": self.headers.set_many(headers)})

    def set_from(self, sender: str) -> MultipartMessageBuilder:
        return self.set_header("From", sender)

    def set_to(self, to: str) -> MultipartMessageBuilder:
        return self.set_header("To", to)

    def set_cc(self, cc: str | None) -> MultipartMessageBuilder:
        return self.set_header("Cc", cc) if cc else self

    def set_bcc(self, bcc: str | None) -> MultipartMessageBuilder:
        return self.set_header("Bcc", bcc) if bcc else self

    def set_subject(self, subject: str) -> MultipartMessageBuilder:
        return self.set_header("Subject", encode_header_word(subject))

    def set_date(self, date: datetime | None = None) -> MultipartMessageBuilder:
        return self.set_header("Date", format_date(date))

    def set_message_id(self, message_id: str | None = None) -> MultipartMessageBuilder:
        """Set ``Message-ID``, generating one for the configured domain if omitted."""
        return self.set_header("Message-ID", message_id or generate_message_id(self.message_id_domain))

    def set_threading_headers(
        self, message_id: str | None = None, references: str | None = None
    ) -> MultipartMessageBuilder:
        """Set ``In-Reply-To`` and ``References`` verbatim.

        Values come pre-computed from ``ThreadingResolver``; empty values
        are skipped.
        """
        builder = self
        if message_id:
            builder = builder.set_header("In-Reply-To", message_id)
        if references:
            builder = builder.set_header("References", references)
        return builder

    def set_boundary(self, boundary: str) -> MultipartMessageBuilder:
        return self.model_copy(update={"boundary": boundary})

    # -- Parts ----------------------------------------------------------------

    def add_part(self, part: MimePart) -> MultipartMessageBuilder:
        return self.model_copy(update={"parts": (*self.parts, part)})

    def add_html_part(self, html: str) -> MultipartMessageBuilder:
        return self.add_part(
            MimePart(
                content_type="text/html; charset=utf-8",
                content=html,
                encoding=TransferEncoding.SEVEN_BIT,
            )
        )

    def add_text_part(self, text: str) -> MultipartMessageBuilder:
        return self.add_part(
            MimePart(
                content_type="text/plain; charset=utf-8",
                content=text,
                encoding=TransferEncoding.SEVEN_BIT,
            )
        )

    def add_attachment(self, filename: str, mime_type: str, data: str) -> MultipartMessageBuilder:
        """Append a base64 attachment part.

        Args:
            filename: Attachment filename; sanitized and RFC 2047-encoded
                when it contains non-ASCII characters.
            mime_type: MIME type of the attachment.
            data: The attachment content, standard base64 without line breaks.
        """
        encoded_filename = encode_header_word(sanitize_filename(filename))
        return self.add_part(
            MimePart(
                content_type=mime_type,
                content=data,
                encoding=TransferEncoding.BASE64,
                is_attachment=True,
                filename=encoded_filename,
                headers=HeaderSet.of(
                    {
                        "Content-Disposition": f'attachment; filename="{encoded_filename}"',
                        "Content-Transfer-Encoding": TransferEncoding.BASE64.value,
                    }
                ),
            )
        )

    # -- Output ---------------------------------------------------------------

    def reset(self) -> MultipartMessageBuilder:
        """Return an empty ``mixed`` builder with a fresh boundary."""
        return MultipartMessageBuilder(message_id_domain=self.message_id_domain)

    @property
    def content_type(self) -> str:
        return f'multipart/{self.multipart_type}; boundary="{self.boundary}"'

    def build(self) -> str:
        """Render the complete message with CRLF line endings."""
        lines: list[str] = [
            *self.headers.lines(),
            "MIME-Version: 1.0",
            f"Content-Type: {self.content_type}",
            "",
            self.build_body(),
        ]
        return "\r\n".join(lines)

    def build_body(self) -> str:
        """Render the preamble, every part, and the closing delimiter."""
        lines: list[str] = [PREAMBLE, ""]

        for part in self.parts:
            lines.append(f"--{self.boundary}")
            lines.append(f"Content-Type: {part.content_type}")
            if part.headers is not None:
                lines.extend(part.headers.lines())
            elif part.encoding is not None:
                lines.append(f"Content-Transfer-Encoding: {part.encoding}")
            lines.append("")
            if part.encoding == TransferEncoding.BASE64:
                lines.append(chunk_base64(part.content))
            else:
                lines.append(part.content)
            lines.append("")

        lines.append(f"--{self.boundary}--")
        return "\r\n".join(lines)

    def as_part(self) -> MimePart:
        """This builder's parts as one nested part of an enclosing multipart."""
        return MimePart(content_type=self.content_type, content=self.build_body())

    def build_and_encode(self) -> str:
        """``build()`` encoded as a transport token for the send operation."""
        return encode_transport_token(self.build())
