"""Reply and multipart composition.

Glues the threading resolver to the MIME builders:
- ``build_reply``: single-part HTML reply carrying threading headers
- ``build_multipart``: new message or reply with attachments
- ``build_multipart_reply``: reply with attachments to a fetched message

Composition problems raise before any network call is made.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from mailthread.email.models import (
    ComposeFields,
    EncodedMessage,
    Message,
    OutgoingAttachment,
    ReplyHeaders,
)
from mailthread.email.threading import ThreadingResolver
from mailthread.errors import AttachmentSizeError, MailValidationError
from mailthread.mime.builder import MessageBuilder
from mailthread.mime.codec import (
    DEFAULT_MESSAGE_ID_DOMAIN,
    decode_transport_bytes,
    encode_header_word,
    format_address,
    is_valid_email,
    parse_address_list,
)
from mailthread.mime.multipart import MultipartMessageBuilder, MultipartType
from mailthread.observability import component_logger

DEFAULT_MAX_OUTGOING_FILES = 10
DEFAULT_MAX_OUTGOING_FILE_BYTES = 25 * 1024 * 1024
DEFAULT_MAX_OUTGOING_TOTAL_BYTES = 50 * 1024 * 1024


class ReplyComposer:
    """Builds transport-encoded replies and multipart messages.

    Outgoing attachments are limited by count, per-file size, and total
    size, all measured on decoded bytes before anything is encoded.

    Args:
        resolver: Threading resolver used to derive reply headers.
        message_id_domain: Domain for generated ``Message-ID`` headers.
        max_outgoing_files: Maximum attachments per message.
        max_outgoing_file_bytes: Maximum decoded size of one attachment.
        max_outgoing_total_bytes: Maximum decoded size of all attachments.
        logger: Optional structlog logger; bound to ``component="ReplyComposer"``.
    """

    def __init__(
        self,
        resolver: ThreadingResolver | None = None,
        message_id_domain: str = DEFAULT_MESSAGE_ID_DOMAIN,
        max_outgoing_files: int = DEFAULT_MAX_OUTGOING_FILES,
        max_outgoing_file_bytes: int = DEFAULT_MAX_OUTGOING_FILE_BYTES,
        max_outgoing_total_bytes: int = DEFAULT_MAX_OUTGOING_TOTAL_BYTES,
        logger: Any = None,
    ) -> None:
        self._resolver = resolver or ThreadingResolver(logger=logger)
        self._message_id_domain = message_id_domain
        self._max_outgoing_files = max_outgoing_files
        self._max_outgoing_file_bytes = max_outgoing_file_bytes
        self._max_outgoing_total_bytes = max_outgoing_total_bytes
        self._logger = component_logger("ReplyComposer", logger)

    def _resolve_recipient(self, original: Message, to: str | None) -> str:
        recipient = to or self._resolver.extract_reply_to_address(original)
        if not recipient:
            raise MailValidationError(
                "To address must be set or original message must have a From address"
            )
        return recipient

    def _check_addresses(self, field: str, value: str | None) -> None:
        """Every address in a comma-separated header must look like ``local@domain.tld``."""
        for item in parse_address_list(value):
            address = self._resolver.extract_email_address(item)
            if not is_valid_email(address):
                raise MailValidationError(f"Invalid {field} address: {address}")

    def _check_attachments(self, attachments: Sequence[OutgoingAttachment]) -> None:
        if len(attachments) > self._max_outgoing_files:
            raise MailValidationError(
                f"Too many attachments: {len(attachments)} (maximum {self._max_outgoing_files})"
            )

        total = 0
        for attachment in attachments:
            try:
                size = len(decode_transport_bytes(attachment.data))
            except ValueError as exc:
                raise MailValidationError(
                    f"Attachment {attachment.filename} is not valid base64"
                ) from exc
            if size > self._max_outgoing_file_bytes:
                raise AttachmentSizeError(size, self._max_outgoing_file_bytes)
            total += size

        if total > self._max_outgoing_total_bytes:
            raise AttachmentSizeError(total, self._max_outgoing_total_bytes)

    def build_reply(
        self,
        original: Message,
        body_html: str,
        to: str | None = None,
        cc: str | None = None,
        bcc: str | None = None,
    ) -> EncodedMessage:
        """Build a threaded HTML reply to *original*.

        When *to* is omitted the reply goes to the original's ``Reply-To``
        (or ``From``) address.

        Returns:
            The transport token plus the original's thread id.

        Raises:
            MailValidationError: No body, no recipient can be resolved, or an
                address is malformed.
            ThreadingValidationError: The derived threading headers are malformed.
        """
        if not body_html:
            raise MailValidationError("Reply body must be set")

        recipient = self._resolve_recipient(original, to)
        self._check_addresses("To", recipient)
        self._check_addresses("Cc", cc)
        self._check_addresses("Bcc", bcc)
        headers = self._resolver.build_reply_headers(original)
        self._resolver.ensure_valid(headers)

        builder = MessageBuilder().set_to(recipient)
        if cc:
            builder = builder.set_cc(cc)
        if bcc:
            builder = builder.set_bcc(bcc)
        builder = builder.set_subject(encode_header_word(headers.subject))
        if headers.in_reply_to:
            builder = builder.set_header("In-Reply-To", headers.in_reply_to)
        if headers.references:
            builder = builder.set_header("References", headers.references)
        builder = builder.set_body(body_html)

        self._logger.debug(
            "reply_built",
            original_id=original.id,
            thread_id=original.thread_id,
            has_references=headers.references is not None,
        )
        return EncodedMessage(raw=builder.build_and_encode(), thread_id=original.thread_id or None)

    def build_multipart(
        self, fields: ComposeFields, attachments: Sequence[OutgoingAttachment] = ()
    ) -> EncodedMessage:
        """Build a ``multipart/mixed`` message from *fields* and *attachments*.

        A plain-text body, when given, is paired with the HTML body in a
        ``multipart/alternative`` section.

        Raises:
            MailValidationError: An address is malformed, there are too many
                attachments, or an attachment is not valid base64.
            AttachmentSizeError: One attachment, or all of them together,
                exceed the configured size.
            ThreadingValidationError: Supplied threading headers are malformed.
        """
        for field, value in (("To", fields.to), ("Cc", fields.cc), ("Bcc", fields.bcc)):
            self._check_addresses(field, value)
        self._check_attachments(attachments)

        builder = MultipartMessageBuilder(message_id_domain=self._message_id_domain)
        if fields.sender:
            builder = builder.set_from(format_address(fields.sender, fields.sender_name))
        builder = (
            builder.set_to(fields.to)
            .set_cc(fields.cc)
            .set_bcc(fields.bcc)
            .set_subject(fields.subject)
            .set_date()
        )

        if fields.in_reply_to or fields.references:
            self._resolver.ensure_valid(
                ReplyHeaders(
                    subject=fields.subject,
                    in_reply_to=fields.in_reply_to,
                    references=fields.references,
                )
            )
            builder = builder.set_threading_headers(fields.in_reply_to, fields.references)

        builder = builder.set_message_id()

        if fields.body_text is not None and not attachments:
            builder = (
                builder.set_multipart_type(MultipartType.ALTERNATIVE)
                .add_text_part(fields.body_text)
                .add_html_part(fields.body_html)
            )
        elif fields.body_text is not None:
            alternative = (
                MultipartMessageBuilder()
                .set_multipart_type(MultipartType.ALTERNATIVE)
                .add_text_part(fields.body_text)
                .add_html_part(fields.body_html)
            )
            builder = builder.add_part(alternative.as_part())
        else:
            builder = builder.add_html_part(fields.body_html)

        for attachment in attachments:
            builder = builder.add_attachment(attachment.filename, attachment.mime_type, attachment.data)

        self._logger.debug(
            "multipart_built",
            multipart_type=builder.multipart_type,
            attachment_count=len(attachments),
            attachment_names=[a.filename for a in attachments],
            is_reply=fields.in_reply_to is not None,
        )
        return EncodedMessage(raw=builder.build_and_encode(), thread_id=fields.thread_id)

    def build_multipart_reply(
        self,
        original: Message,
        body_html: str,
        attachments: Sequence[OutgoingAttachment] = (),
        to: str | None = None,
        cc: str | None = None,
        bcc: str | None = None,
    ) -> EncodedMessage:
        """Build a threaded reply to *original* that carries attachments."""
        if not body_html:
            raise MailValidationError("Reply body must be set")

        headers = self._resolver.build_reply_headers(original)
        fields = ComposeFields(
            to=self._resolve_recipient(original, to),
            subject=headers.subject,
            body_html=body_html,
            cc=cc,
            bcc=bcc,
            in_reply_to=headers.in_reply_to,
            references=headers.references,
            thread_id=original.thread_id or None,
        )
        return self.build_multipart(fields, attachments)
