"""Tests for stable attachment ids, listing, and downloads."""

from __future__ import annotations

import base64
from typing import Any
from unittest.mock import MagicMock

import pytest

from mailthread.email.attachments import (
    AttachmentIndexer,
    is_attachment_part,
    iter_parts,
    resolve_filename,
)
from mailthread.email.models import Message, MessagePart
from mailthread.errors import (
    AttachmentNotFoundError,
    AttachmentSizeError,
    OperationFailedError,
    RemoteOperationError,
)
from mailthread.mime.headers import HeaderSet

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _attachment(
    filename: str, ref: str, size: int = 10, mime_type: str = "application/pdf"
) -> MessagePart:
    return MessagePart(mime_type=mime_type, filename=filename, attachment_ref=ref, size=size)


def _nested_tree() -> MessagePart:
    """mixed[ text, mixed[ a.pdf, b.png ] ] without server part ids."""
    return MessagePart(
        mime_type="multipart/mixed",
        children=(
            MessagePart(mime_type="text/plain", body_data="aGk"),
            MessagePart(
                mime_type="multipart/mixed",
                children=(
                    _attachment("a.pdf", "ref-a"),
                    _attachment("b.png", "ref-b", mime_type="image/png"),
                ),
            ),
        ),
    )


def _make_indexer(
    tree: MessagePart, logger: Any = None, max_bytes: int = 1024
) -> tuple[AttachmentIndexer, MagicMock]:
    client = MagicMock()
    client.get_message.return_value = Message(id="msg-1", thread_id="t1", payload=tree)
    return AttachmentIndexer(client, max_attachment_bytes=max_bytes, logger=logger), client


# ---------------------------------------------------------------------------
# Stable ids
# ---------------------------------------------------------------------------


class TestIterParts:
    def test_synthesized_ids_in_document_order(self) -> None:
        ids = [stable_id for _, stable_id in iter_parts(_nested_tree())]

        assert ids == ["0", "0", "1", "1.0", "1.1"]

    def test_root_leaf_is_zero(self) -> None:
        assert [sid for _, sid in iter_parts(_attachment("a.pdf", "r"))] == ["0"]

    def test_server_part_ids_take_precedence(self) -> None:
        tree = MessagePart(
            children=(
                MessagePart(part_id="0"),
                MessagePart(part_id="1", children=(MessagePart(part_id="1.0"),)),
            )
        )

        assert [sid for _, sid in iter_parts(tree)][1:] == ["0", "1", "1.0"]

    def test_mixed_sibling_ids_fall_back_to_synthesized(self) -> None:
        tree = MessagePart(
            children=(
                MessagePart(part_id="1"),
                MessagePart(children=(MessagePart(part_id="1.0"), MessagePart())),
            )
        )

        ids = [sid for _, sid in iter_parts(tree)][1:]

        assert ids == ["0", "1", "1.0", "1.1"]
        assert len(set(ids)) == len(ids)

    def test_ids_are_deterministic(self) -> None:
        first = [sid for _, sid in iter_parts(_nested_tree())]
        second = [sid for _, sid in iter_parts(_nested_tree())]

        assert first == second

    def test_deep_tree_does_not_recurse(self) -> None:
        part = _attachment("deep.bin", "ref-deep")
        for _ in range(2000):
            part = MessagePart(mime_type="multipart/mixed", children=(part,))

        ids = [sid for p, sid in iter_parts(part) if p.attachment_ref]

        assert len(ids) == 1
        assert ids[0].count(".") == 1999


class TestAttachmentPredicate:
    def test_ref_and_filename(self) -> None:
        assert is_attachment_part(_attachment("a.pdf", "r"))

    def test_ref_without_any_name_is_not_attachment(self) -> None:
        assert not is_attachment_part(MessagePart(attachment_ref="r"))

    def test_filename_without_ref_is_not_attachment(self) -> None:
        assert not is_attachment_part(MessagePart(filename="a.pdf"))

    def test_disposition_attachment_counts(self) -> None:
        part = MessagePart(
            attachment_ref="r",
            headers=HeaderSet.of({"Content-Disposition": "attachment"}),
        )

        assert is_attachment_part(part)

    def test_disposition_filename_counts(self) -> None:
        part = MessagePart(
            attachment_ref="r",
            headers=HeaderSet.of({"Content-Disposition": 'inline; filename="logo.png"'}),
        )

        assert is_attachment_part(part)
        assert resolve_filename(part) == "logo.png"

    def test_synthesized_filename(self) -> None:
        part = MessagePart(
            mime_type="image/png",
            attachment_ref="r",
            headers=HeaderSet.of({"Content-Disposition": "attachment"}),
        )

        assert resolve_filename(part).endswith(".png")


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListAttachments:
    def test_lists_nested_attachments(self) -> None:
        indexer, client = _make_indexer(_nested_tree())

        attachments = indexer.list_attachments("msg-1")

        client.get_message.assert_called_once_with("msg-1")
        assert [(a.stable_id, a.filename, a.mime_type) for a in attachments] == [
            ("1.0", "a.pdf", "application/pdf"),
            ("1.1", "b.png", "image/png"),
        ]

    def test_top_level_and_nested_ids(self) -> None:
        tree = MessagePart(
            mime_type="multipart/mixed",
            children=(
                _attachment("first.pdf", "ref-0"),
                MessagePart(
                    mime_type="multipart/mixed",
                    children=(_attachment("a.pdf", "ref-a"), _attachment("b.pdf", "ref-b")),
                ),
            ),
        )
        indexer, _ = _make_indexer(tree)

        ids = [a.stable_id for a in indexer.list_attachments("msg-1")]

        assert ids == ["0", "1.0", "1.1"]

    def test_no_attachments(self) -> None:
        indexer, _ = _make_indexer(MessagePart(mime_type="text/plain"))

        assert indexer.list_attachments("msg-1") == []

    def test_missing_mime_type_defaults(self) -> None:
        indexer, _ = _make_indexer(MessagePart(filename="x", attachment_ref="r"))

        assert indexer.list_attachments("msg-1")[0].mime_type == "application/octet-stream"


# ---------------------------------------------------------------------------
# Downloads
# ---------------------------------------------------------------------------


class TestDownload:
    def test_downloads_with_fresh_reference(self, capturing_logger: Any, log_capture: Any) -> None:
        indexer, client = _make_indexer(_nested_tree(), logger=capturing_logger)
        client.get_attachment_data.return_value = (
            base64.urlsafe_b64encode(b"PNGDATA").decode().rstrip("=")
        )

        downloaded = indexer.download("msg-1", "1.1")

        client.get_attachment_data.assert_called_once_with("msg-1", "ref-b")
        assert downloaded.data == b"PNGDATA"
        assert downloaded.filename == "b.png"
        assert downloaded.mime_type == "image/png"
        assert downloaded.size == 7
        assert downloaded.content_disposition() == (
            "attachment; filename=\"b.png\"; filename*=UTF-8''b.png"
        )
        assert log_capture.entries[-1]["event"] == "attachment_downloaded"

    def test_refetches_on_every_download(self) -> None:
        indexer, client = _make_indexer(_nested_tree())
        client.get_attachment_data.return_value = "eA"

        indexer.download("msg-1", "1.0")
        indexer.download("msg-1", "1.0")

        assert client.get_message.call_count == 2

    def test_reference_changes_between_fetches(self) -> None:
        indexer, client = _make_indexer(_nested_tree())
        renumbered = MessagePart(
            mime_type="multipart/mixed",
            children=(
                MessagePart(mime_type="text/plain"),
                MessagePart(
                    mime_type="multipart/mixed",
                    children=(_attachment("a.pdf", "ref-a-new"), _attachment("b.png", "ref-b-new")),
                ),
            ),
        )
        client.get_message.return_value = Message(id="msg-1", payload=renumbered)
        client.get_attachment_data.return_value = "eA"

        indexer.download("msg-1", "1.0")

        client.get_attachment_data.assert_called_once_with("msg-1", "ref-a-new")

    def test_stale_id_raises_not_found(self, capturing_logger: Any, log_capture: Any) -> None:
        indexer, client = _make_indexer(_nested_tree(), logger=capturing_logger)

        with pytest.raises(AttachmentNotFoundError) as exc_info:
            indexer.download("msg-1", "2.0")

        assert exc_info.value.stable_id == "2.0"
        client.get_attachment_data.assert_not_called()
        assert log_capture.entries[-1]["event"] == "attachment_download_failed"

    def test_id_from_earlier_fetch_missing_after_refetch(self) -> None:
        indexer, client = _make_indexer(_nested_tree())
        listed = indexer.list_attachments("msg-1")
        assert "1.1" in [a.stable_id for a in listed]
        client.get_message.return_value = Message(
            id="msg-1",
            payload=MessagePart(children=(MessagePart(), MessagePart(children=(MessagePart(),)))),
        )

        with pytest.raises(AttachmentNotFoundError):
            indexer.download("msg-1", "1.1")

        client.get_attachment_data.assert_not_called()

    def test_declared_size_over_ceiling(self) -> None:
        tree = MessagePart(children=(_attachment("big.zip", "r", size=2048),))
        indexer, client = _make_indexer(tree, max_bytes=1024)

        with pytest.raises(AttachmentSizeError) as exc_info:
            indexer.download("msg-1", "0")

        assert exc_info.value.size == 2048
        assert exc_info.value.max_size == 1024
        client.get_attachment_data.assert_not_called()

    def test_decoded_size_over_ceiling(self) -> None:
        tree = MessagePart(children=(_attachment("liar.bin", "r", size=1),))
        indexer, client = _make_indexer(tree, max_bytes=4)
        client.get_attachment_data.return_value = base64.b64encode(b"too many bytes").decode()

        with pytest.raises(AttachmentSizeError):
            indexer.download("msg-1", "0")

    def test_empty_payload_fails(self) -> None:
        tree = MessagePart(children=(_attachment("a.pdf", "r"),))
        indexer, client = _make_indexer(tree)
        client.get_attachment_data.return_value = ""

        with pytest.raises(OperationFailedError, match="download attachment"):
            indexer.download("msg-1", "0")

    @pytest.mark.parametrize("payload", ["a", "!!!!", "ab$$cd"])
    def test_undecodable_payload_fails(self, payload: str) -> None:
        tree = MessagePart(children=(_attachment("a.pdf", "r"),))
        indexer, client = _make_indexer(tree)
        client.get_attachment_data.return_value = payload

        with pytest.raises(OperationFailedError, match="decode attachment"):
            indexer.download("msg-1", "0")

    def test_remote_failure_propagates(self) -> None:
        indexer, client = _make_indexer(_nested_tree())
        client.get_message.side_effect = RemoteOperationError("fetch message")

        with pytest.raises(RemoteOperationError):
            indexer.download("msg-1", "1.0")
