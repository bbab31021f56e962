"""Thread assembly: chronological ordering and per-thread aggregates.

Turns a raw thread (messages in whatever order the remote service returned
them) into a :class:`ThreadSummary` with messages sorted oldest first,
de-duplicated participants, and unread/attachment flags.
"""

from __future__ import annotations

from typing import Any

from mailthread.email.attachments import is_attachment_part
from mailthread.email.client import RemoteMailbox
from mailthread.email.models import (
    Message,
    MessagePart,
    MessageSummary,
    Participant,
    Thread,
    ThreadStubPage,
    ThreadSummary,
)
from mailthread.email.threading import ThreadingResolver
from mailthread.errors import OperationFailedError
from mailthread.observability import component_logger

DEFAULT_PAGE_SIZE = 50


def has_attachment(root: MessagePart) -> bool:
    """True as soon as any part of the tree is an attachment."""
    stack = [root]
    while stack:
        part = stack.pop()
        if is_attachment_part(part):
            return True
        stack.extend(reversed(part.children))
    return False


class ThreadAssembler:
    """Builds :class:`ThreadSummary` values from raw threads.

    Args:
        client: The remote mailbox, used by :meth:`get_thread` and
            :meth:`list_thread_stubs`.
        resolver: Threading resolver for per-message header extraction.
        logger: Optional structlog logger; bound to ``component="ThreadAssembler"``.
    """

    def __init__(
        self,
        client: RemoteMailbox,
        resolver: ThreadingResolver | None = None,
        logger: Any = None,
    ) -> None:
        self._client = client
        self._resolver = resolver or ThreadingResolver(logger=logger)
        self._logger = component_logger("ThreadAssembler", logger)

    def get_thread(self, thread_id: str) -> ThreadSummary:
        """Fetch *thread_id* and assemble it."""
        self._logger.info("thread_fetch_started", thread_id=thread_id)
        thread = self._client.get_thread(thread_id)
        summary = self.assemble(thread)
        self._logger.info(
            "thread_assembled",
            thread_id=thread_id,
            message_count=summary.message_count,
            participant_count=len(summary.participants),
        )
        return summary

    def assemble(self, thread: Thread) -> ThreadSummary:
        """Sort *thread*'s messages and derive the thread aggregates.

        Raises:
            OperationFailedError: The thread has no messages.
        """
        if not thread.messages:
            self._logger.warning("thread_has_no_messages", thread_id=thread.id)
            raise OperationFailedError(
                "assemble thread", ValueError("Thread contains no messages")
            )

        # sorted() is stable: equal timestamps keep their original order.
        ordered = sorted(thread.messages, key=lambda m: m.internal_date)
        summaries = tuple(self._summarize(message) for message in ordered)

        first, last = summaries[0], summaries[-1]
        return ThreadSummary(
            thread_id=thread.id,
            messages=summaries,
            message_count=len(summaries),
            participants=self._unique_participants(summaries),
            subject=first.subject,
            snippet=last.snippet,
            labels=last.label_ids,
            first_message_timestamp=first.internal_date,
            last_message_timestamp=last.internal_date,
            has_unread=any(s.is_unread for s in summaries),
            has_attachments=any(s.has_attachments for s in summaries),
        )

    def list_thread_stubs(
        self,
        label_id: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_token: str | None = None,
    ) -> ThreadStubPage:
        """Pass-through listing of thread ids and snippets."""
        page = self._client.list_threads(label_id, page_size, page_token)
        self._logger.debug(
            "thread_stubs_listed",
            label_id=label_id,
            count=len(page.stubs),
            has_next_page=page.next_page_token is not None,
        )
        return page

    def _summarize(self, message: Message) -> MessageSummary:
        ctx = self._resolver.extract(message)
        return MessageSummary(
            id=message.id,
            thread_id=message.thread_id,
            label_ids=message.label_ids,
            snippet=message.snippet,
            internal_date=message.internal_date,
            size_estimate=message.size_estimate,
            sender=self._resolver.extract_participant(ctx.sender),
            to=self._resolver.extract_participants(ctx.to),
            subject=ctx.subject,
            date=message.headers.get("Date") or "",
            message_id=ctx.message_id,
            in_reply_to=ctx.in_reply_to,
            references=ctx.references,
            has_attachments=has_attachment(message.payload),
            is_unread=message.is_unread,
        )

    @staticmethod
    def _unique_participants(summaries: tuple[MessageSummary, ...]) -> tuple[Participant, ...]:
        """Union of senders and recipients keyed by lower-cased email; first seen wins."""
        seen: dict[str, Participant] = {}
        for summary in summaries:
            for participant in (summary.sender, *summary.to):
                key = participant.email.lower()
                if key and key not in seen:
                    seen[key] = participant
        return tuple(seen.values())
