"""Live integration tests against the Gmail API.

These tests send real emails and read them back.  They require valid
OAuth2 credentials (token.json) and LIVE_TEST_EMAIL to be configured in
environment variables.

Run with: pytest -m live
"""

from __future__ import annotations

import time
from datetime import UTC, datetime

import pytest

from mailthread.email.models import ComposeFields, OutgoingAttachment


@pytest.mark.live
def test_send_with_attachment_and_download(mailbox_service, live_recipient):
    """Send a message with an attachment, then download it by stable id."""
    unique_subject = f"[LIVE TEST] mailthread {datetime.now(tz=UTC).isoformat()}"
    attachment = OutgoingAttachment.from_bytes("live-test.txt", b"live test payload")

    sent = mailbox_service.send(
        ComposeFields(
            to=live_recipient,
            subject=unique_subject,
            body_html="<p>Automated live test email. Safe to delete.</p>",
        ),
        [attachment],
    )

    assert sent.id, f"Expected a message id in send response, got: {sent}"

    attachments = mailbox_service.list_attachments(sent.id)
    assert [a.filename for a in attachments] == ["live-test.txt"]

    downloaded = mailbox_service.download_attachment(sent.id, attachments[0].stable_id)
    assert downloaded.data == b"live test payload"


@pytest.mark.live
def test_reply_stays_in_thread(mailbox_service, live_recipient):
    """A reply to a sent message lands in the same thread."""
    sent = mailbox_service.send(
        ComposeFields(
            to=live_recipient,
            subject=f"[LIVE TEST] thread {datetime.now(tz=UTC).isoformat()}",
            body_html="<p>First message.</p>",
        )
    )

    reply = mailbox_service.reply(sent.id, "<p>Reply.</p>", to=live_recipient)
    assert reply.thread_id == sent.thread_id

    # Brief wait for the thread to reflect both messages
    time.sleep(3)

    summary = mailbox_service.get_thread(sent.thread_id)
    assert summary.message_count >= 2
    assert summary.subject.startswith("[LIVE TEST] thread")
