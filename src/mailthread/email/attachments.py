"""Stable attachment addressing over a message's MIME part tree.

The remote service hands out attachment references that are only valid for
the fetch that produced them.  Callers instead get a *stable id* derived
from the part's position in the tree; every download refetches the message
and resolves the current reference for that stable id.

Stable ids assume the service numbers parts the same way on every fetch of
a message.  If it ever renumbers, old ids fail with
``AttachmentNotFoundError`` rather than returning another part's bytes.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import Any

from mailthread.email.client import RemoteMailbox
from mailthread.email.models import AttachmentDescriptor, DownloadedAttachment, MessagePart
from mailthread.errors import (
    AttachmentNotFoundError,
    AttachmentSizeError,
    MailError,
    OperationFailedError,
)
from mailthread.mime.codec import (
    DEFAULT_MIME_TYPE,
    decode_transport_bytes,
    default_filename,
    sanitize_filename,
)
from mailthread.observability import component_logger

DEFAULT_MAX_ATTACHMENT_BYTES = 25 * 1024 * 1024
ROOT_PART_ID = "0"

_FILENAME_RE = re.compile(r'filename="?([^";\n]+)"?', re.IGNORECASE)


def iter_parts(root: MessagePart) -> Iterator[tuple[MessagePart, str]]:
    """Yield ``(part, stable_id)`` for every node, depth-first in document order.

    Walks an explicit stack of ``(part, id)`` so the id of a node depends
    only on the tree's shape.  Ids are assigned per sibling list: when every
    sibling carries a server part id those are used as-is, otherwise the whole
    list gets synthesized paths, so siblings never share an id.  Synthesized
    children of the root are ``"0"``, ``"1"``, ...; children of ``"1"`` are
    ``"1.0"``, ``"1.1"``, ...
    """
    stack: list[tuple[MessagePart, str]] = [(root, root.part_id or "")]
    while stack:
        part, part_id = stack.pop()
        yield part, part_id or ROOT_PART_ID

        children = part.children
        if all(child.part_id for child in children):
            child_ids = [child.part_id or "" for child in children]
        else:
            child_ids = [f"{part_id}.{i}" if part_id else str(i) for i in range(len(children))]
        for index in range(len(children) - 1, -1, -1):
            stack.append((children[index], child_ids[index]))


def _disposition_filename(part: MessagePart) -> str | None:
    disposition = part.headers.get("Content-Disposition")
    if not disposition:
        return None
    match = _FILENAME_RE.search(disposition)
    return match.group(1) if match else None


def is_attachment_part(part: MessagePart) -> bool:
    """A part is an attachment iff it has a transient reference and names a file.

    The file may be named by the explicit filename field or by a
    ``Content-Disposition`` header (an ``attachment`` disposition without a
    filename still counts; it gets a synthesized name).
    """
    if not part.attachment_ref:
        return False
    if part.filename:
        return True
    disposition = part.headers.get("Content-Disposition") or ""
    return disposition.lower().startswith("attachment") or _disposition_filename(part) is not None


def resolve_filename(part: MessagePart) -> str:
    """Explicit filename, else ``Content-Disposition``, else a synthesized default."""
    return part.filename or _disposition_filename(part) or default_filename(part.mime_type)


class AttachmentIndexer:
    """Lists and downloads attachments by stable id.

    Args:
        client: The remote mailbox used to refetch messages and bytes.
        max_attachment_bytes: Ceiling enforced on declared and decoded size.
        logger: Optional structlog logger; bound to ``component="AttachmentIndexer"``.
    """

    def __init__(
        self,
        client: RemoteMailbox,
        max_attachment_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
        logger: Any = None,
    ) -> None:
        self._client = client
        self._max_attachment_bytes = max_attachment_bytes
        self._logger = component_logger("AttachmentIndexer", logger)

    def index_attachments(self, root: MessagePart) -> list[AttachmentDescriptor]:
        """Describe every attachment in *root*, in document order."""
        attachments: list[AttachmentDescriptor] = []
        for part, stable_id in iter_parts(root):
            if not is_attachment_part(part):
                continue
            descriptor = AttachmentDescriptor(
                stable_id=stable_id,
                attachment_ref=part.attachment_ref or "",
                filename=resolve_filename(part),
                mime_type=part.mime_type or DEFAULT_MIME_TYPE,
                size=part.size,
            )
            self._logger.debug(
                "attachment_indexed",
                stable_id=stable_id,
                filename=descriptor.filename,
                size=descriptor.size,
            )
            attachments.append(descriptor)
        return attachments

    def list_attachments(self, message_id: str) -> list[AttachmentDescriptor]:
        """Fetch *message_id* once and return its attachment metadata."""
        message = self._client.get_message(message_id)
        attachments = self.index_attachments(message.payload)
        self._logger.info("attachments_listed", message_id=message_id, count=len(attachments))
        return attachments

    def download(self, message_id: str, stable_id: str) -> DownloadedAttachment:
        """Download the attachment at *stable_id* from a fresh fetch.

        Raises:
            AttachmentNotFoundError: *stable_id* is absent after refetching.
            AttachmentSizeError: The declared or decoded size exceeds the ceiling.
            RemoteOperationError: A remote call failed.
        """
        self._logger.info("attachment_download_started", message_id=message_id, stable_id=stable_id)
        try:
            message = self._client.get_message(message_id)
            descriptor = next(
                (d for d in self.index_attachments(message.payload) if d.stable_id == stable_id),
                None,
            )
            if descriptor is None:
                raise AttachmentNotFoundError(message_id, stable_id)

            if descriptor.size > self._max_attachment_bytes:
                raise AttachmentSizeError(descriptor.size, self._max_attachment_bytes)

            payload = self._client.get_attachment_data(message_id, descriptor.attachment_ref)
            if not payload:
                raise OperationFailedError("download attachment")

            try:
                data = decode_transport_bytes(payload)
            except ValueError as exc:
                raise OperationFailedError("decode attachment", exc) from exc
            if len(data) > self._max_attachment_bytes:
                raise AttachmentSizeError(len(data), self._max_attachment_bytes)
        except MailError as exc:
            self._logger.error(
                "attachment_download_failed",
                message_id=message_id,
                stable_id=stable_id,
                error=str(exc),
            )
            raise

        self._logger.info(
            "attachment_downloaded",
            message_id=message_id,
            stable_id=stable_id,
            filename=descriptor.filename,
            size=len(data),
        )
        return DownloadedAttachment(
            data=data,
            filename=descriptor.filename,
            mime_type=descriptor.mime_type,
            size=len(data),
        )
