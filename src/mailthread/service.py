"""Application-facing facade over the mail construction and threading layer.

``MailboxService`` is what controllers call.  It wires one remote mailbox
client to the threading resolver, composer, attachment indexer, and thread
assembler, and logs each operation.  Remote failures arrive already wrapped
by the client and are logged and re-raised here, never swallowed.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from mailthread.auth.credentials import get_gmail_service
from mailthread.config import Settings, get_settings
from mailthread.email.aggregation import aggregate_label_messages
from mailthread.email.attachments import AttachmentIndexer
from mailthread.email.client import GmailClient, RemoteMailbox
from mailthread.email.compose import ReplyComposer
from mailthread.email.labels import LabelAction, label_modification, read_state_modification
from mailthread.email.models import (
    AttachmentDescriptor,
    ComposeFields,
    DownloadedAttachment,
    EncodedMessage,
    Message,
    OutgoingAttachment,
    SendResult,
    ThreadStubPage,
    ThreadSummary,
)
from mailthread.email.thread import ThreadAssembler
from mailthread.email.threading import ThreadingResolver
from mailthread.errors import MailError
from mailthread.observability import component_logger, configure_from_settings


class MailboxService:
    """Reply, compose, attachment, thread, and label operations for one mailbox.

    Args:
        client: The remote mailbox (usually a :class:`GmailClient`).
        settings: Application settings.  If ``None``, ``get_settings()`` is used.
        logger: Optional structlog logger passed to every component.
    """

    def __init__(
        self,
        client: RemoteMailbox,
        settings: Settings | None = None,
        logger: Any = None,
    ) -> None:
        if settings is None:
            settings = get_settings()

        self._client = client
        self._settings = settings
        self._logger = component_logger("MailboxService", logger)
        self._base_logger = logger

        self.resolver = ThreadingResolver(logger=logger)
        self.composer = ReplyComposer(
            self.resolver,
            message_id_domain=settings.message_id_domain,
            max_outgoing_files=settings.max_outgoing_files,
            max_outgoing_file_bytes=settings.max_outgoing_file_bytes,
            max_outgoing_total_bytes=settings.max_outgoing_total_bytes,
            logger=logger,
        )
        self.attachments = AttachmentIndexer(
            client, max_attachment_bytes=settings.max_attachment_bytes, logger=logger
        )
        self.threads = ThreadAssembler(client, self.resolver, logger=logger)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, logger: Any = None) -> MailboxService:
        """Build a service backed by a real Gmail client from *settings*.

        Also configures logging and Sentry from the same settings.
        """
        if settings is None:
            settings = get_settings()
        configure_from_settings(settings)
        service = get_gmail_service(token_path=settings.gmail_token_path, scopes=settings.gmail_scopes)
        client = GmailClient(service, user_id=settings.gmail_user_id, logger=logger)
        return cls(client, settings=settings, logger=logger)

    # -- Replies and outbound messages ---------------------------------------

    def build_reply(
        self,
        original: Message,
        body_html: str,
        to: str | None = None,
        cc: str | None = None,
        bcc: str | None = None,
    ) -> EncodedMessage:
        """Transport token and thread id for a reply to *original*."""
        return self.composer.build_reply(original, body_html, to=to, cc=cc, bcc=bcc)

    def build_multipart(
        self, fields: ComposeFields, attachments: Sequence[OutgoingAttachment] = ()
    ) -> str:
        """Transport token for a multipart message."""
        return self.composer.build_multipart(fields, attachments).raw

    def reply(
        self,
        message_id: str,
        body_html: str,
        to: str | None = None,
        cc: str | None = None,
        bcc: str | None = None,
        attachments: Sequence[OutgoingAttachment] = (),
    ) -> SendResult:
        """Fetch *message_id*, build a threaded reply, and send it."""
        self._logger.info("reply_started", message_id=message_id, attachment_count=len(attachments))
        try:
            original = self._client.get_message(message_id)
            if attachments:
                encoded = self.composer.build_multipart_reply(
                    original, body_html, attachments, to=to, cc=cc, bcc=bcc
                )
            else:
                encoded = self.composer.build_reply(original, body_html, to=to, cc=cc, bcc=bcc)
            result = self._client.send_raw(encoded.raw, encoded.thread_id)
        except MailError as exc:
            self._logger.error("reply_failed", message_id=message_id, error=str(exc))
            raise

        self._logger.info("reply_sent", sent_id=result.id, thread_id=result.thread_id)
        return result

    def send(
        self, fields: ComposeFields, attachments: Sequence[OutgoingAttachment] = ()
    ) -> SendResult:
        """Build and send a multipart message."""
        self._logger.info(
            "send_started",
            attachment_count=len(attachments),
            has_thread=fields.thread_id is not None,
        )
        try:
            encoded = self.composer.build_multipart(fields, attachments)
            result = self._client.send_raw(encoded.raw, encoded.thread_id)
        except MailError as exc:
            self._logger.error("send_failed", error=str(exc))
            raise

        self._logger.info("message_sent", sent_id=result.id, thread_id=result.thread_id)
        return result

    # -- Attachments ----------------------------------------------------------

    def list_attachments(self, message_id: str) -> list[AttachmentDescriptor]:
        return self.attachments.list_attachments(message_id)

    def download_attachment(self, message_id: str, stable_id: str) -> DownloadedAttachment:
        return self.attachments.download(message_id, stable_id)

    # -- Threads and listing --------------------------------------------------

    def get_thread(self, thread_id: str) -> ThreadSummary:
        try:
            return self.threads.get_thread(thread_id)
        except MailError as exc:
            self._logger.error("thread_fetch_failed", thread_id=thread_id, error=str(exc))
            raise

    def list_thread_stubs(
        self,
        label_id: str | None = None,
        page_size: int | None = None,
        page_token: str | None = None,
    ) -> ThreadStubPage:
        """List thread stubs; *page_size* is capped at ``max_page_size``."""
        size = min(page_size or self._settings.default_page_size, self._settings.max_page_size)
        return self.threads.list_thread_stubs(label_id, size, page_token)

    async def list_label_messages(self, label_ids: Iterable[str]) -> tuple[str, ...]:
        """Message ids across several labels; failing labels are skipped."""
        return await aggregate_label_messages(
            self._client,
            label_ids,
            page_size=self._settings.label_page_size,
            logger=self._base_logger,
        )

    # -- Labels ---------------------------------------------------------------

    def modify_labels(self, message_id: str, action: LabelAction, label_ids: Iterable[str]) -> None:
        modification = label_modification(action, label_ids)
        self._client.modify_labels(
            message_id,
            list(modification.add_label_ids),
            list(modification.remove_label_ids),
        )
        self._logger.info("labels_modified", message_id=message_id, action=str(action))

    def mark_as_read(self, message_id: str, read: bool = True) -> None:
        modification = read_state_modification(read)
        self._client.modify_labels(
            message_id,
            list(modification.add_label_ids),
            list(modification.remove_label_ids),
        )
        self._logger.info("read_state_changed", message_id=message_id, read=read)
