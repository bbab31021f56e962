"""Threading context extraction and reply header construction.

Implements the RFC 5322 section 3.6.4 threading rules:
- ``In-Reply-To`` names the Message-ID being replied to
- ``References`` carries the whole chain, growing by one id per reply
- reply subjects get a single ``Re:`` prefix
"""

from __future__ import annotations

import re
from typing import Any

from mailthread.email.models import Message, Participant, ReplyHeaders, ThreadingContext
from mailthread.errors import ThreadingValidationError
from mailthread.mime.codec import (
    add_forward_prefix,
    add_reply_prefix,
    parse_address_list,
)
from mailthread.mime.headers import HeaderSet
from mailthread.observability import component_logger

_WHITESPACE_RE = re.compile(r"\s+")
_MSG_ID_RE = re.compile(r"<[^>]+>")
_ANGLE_ADDR_RE = re.compile(r"<([^>]+)>")
_BARE_ADDR_RE = re.compile(r"[^\s@<>\"',;]+@[^\s@<>\"',;]+\.[^\s@<>\"',;]+")
_DISPLAY_NAME_RE = re.compile(r'^"?([^"<]+)"?\s*<')


class ThreadingResolver:
    """Reads and derives threading headers for replies and thread assembly.

    All methods are pure apart from logging.  Header names are matched
    case-insensitively and missing headers never raise.

    Args:
        logger: Optional structlog logger; bound to ``component="ThreadingResolver"``.
    """

    def __init__(self, logger: Any = None) -> None:
        self._logger = component_logger("ThreadingResolver", logger)

    # -- Extraction -----------------------------------------------------------

    def extract(self, message: Message) -> ThreadingContext:
        """Read Message-ID, In-Reply-To, References, Subject, From and To."""
        headers = message.headers
        if not headers.pairs:
            self._logger.warning("message_has_no_headers", message_id=message.id)
            return ThreadingContext(thread_id=message.thread_id or None)

        ctx = ThreadingContext(
            message_id=headers.get("Message-ID"),
            in_reply_to=headers.get("In-Reply-To"),
            references=headers.get("References"),
            subject=headers.get("Subject") or "",
            thread_id=message.thread_id or None,
            sender=headers.get("From"),
            to=headers.get("To"),
        )
        self._logger.debug(
            "threading_context_extracted",
            message_id=message.id,
            thread_id=ctx.thread_id,
            has_message_id=ctx.message_id is not None,
            has_references=ctx.references is not None,
        )
        return ctx

    # -- Derivation -----------------------------------------------------------

    def build_references(
        self, current_message_id: str | None, existing_references: str | None
    ) -> str | None:
        """Build the ``References`` value for a reply to *current_message_id*.

        The existing chain is whitespace-normalized and the id is appended
        unless it is already present, so calling this twice is idempotent.
        """
        if not current_message_id:
            return existing_references

        if existing_references:
            cleaned = _WHITESPACE_RE.sub(" ", existing_references.strip())
            if current_message_id in cleaned:
                return cleaned
            if not cleaned:
                return current_message_id
            return f"{cleaned} {current_message_id}"

        return current_message_id

    def build_reply_subject(self, subject: str) -> str:
        return add_reply_prefix(subject)

    def build_forward_subject(self, subject: str) -> str:
        return add_forward_prefix(subject)

    def build_reply_headers(self, message: Message) -> ReplyHeaders:
        """Derive Subject, In-Reply-To and References for replying to *message*."""
        ctx = self.extract(message)
        return ReplyHeaders(
            subject=self.build_reply_subject(ctx.subject),
            in_reply_to=ctx.message_id,
            references=self.build_references(ctx.message_id, ctx.references),
        )

    # -- Addresses ------------------------------------------------------------

    def extract_email_address(self, header_value: str | None) -> str:
        """Best-effort address extraction from a single header value.

        Prefers ``<...>``, then a bare ``local@domain`` match, then the
        trimmed raw value.  This is a heuristic, not an RFC 5322 parser.
        """
        if not header_value:
            return ""

        angle = _ANGLE_ADDR_RE.search(header_value)
        if angle and angle.group(1).strip():
            return angle.group(1).strip()

        bare = _BARE_ADDR_RE.search(header_value)
        if bare:
            return bare.group(0).strip()

        return header_value.strip()

    def extract_participant(self, header_value: str | None) -> Participant:
        """Split ``"Name" <addr>`` into a :class:`Participant`."""
        if not header_value:
            return Participant(email="")
        name_match = _DISPLAY_NAME_RE.match(header_value.strip())
        name = name_match.group(1).strip() if name_match else None
        return Participant(email=self.extract_email_address(header_value), name=name or None)

    def extract_participants(self, header_value: str | None) -> tuple[Participant, ...]:
        return tuple(self.extract_participant(item) for item in parse_address_list(header_value))

    def extract_reply_to_address(self, message: Message) -> str | None:
        """The address a reply goes to: ``Reply-To`` first, else ``From``."""
        for name in ("Reply-To", "From"):
            value = message.headers.get(name)
            if value:
                return self.extract_email_address(value)
        return None

    def extract_all_recipients(self, message: Message) -> list[str]:
        """Addresses from the ``To`` and ``Cc`` headers, in that order."""
        recipients: list[str] = []
        for name in ("To", "Cc"):
            recipients.extend(
                self.extract_email_address(item)
                for item in parse_address_list(message.headers.get(name))
            )
        return recipients

    # -- Inspection -----------------------------------------------------------

    def is_part_of_thread(self, message: Message) -> bool:
        ctx = self.extract(message)
        return bool(ctx.in_reply_to or ctx.references)

    def thread_depth(self, message: Message) -> int:
        """Number of Message-IDs in ``References`` (1 or 0 from ``In-Reply-To``)."""
        ctx = self.extract(message)
        if not ctx.references:
            return 1 if ctx.in_reply_to else 0
        return len(_MSG_ID_RE.findall(ctx.references))

    def threading_metadata(self, message: Message) -> dict[str, Any]:
        """Threading facts about *message* for logging and debugging."""
        ctx = self.extract(message)
        return {
            "message_id": message.id,
            "thread_id": ctx.thread_id,
            "has_message_id_header": ctx.message_id is not None,
            "has_in_reply_to": ctx.in_reply_to is not None,
            "has_references": ctx.references is not None,
            "is_part_of_thread": bool(ctx.in_reply_to or ctx.references),
            "thread_depth": self.thread_depth(message),
            "subject": ctx.subject,
        }

    # -- Validation -----------------------------------------------------------

    def _failed_rule(self, headers: ReplyHeaders | HeaderSet) -> str | None:
        if isinstance(headers, HeaderSet):
            subject = headers.get("Subject")
            in_reply_to = headers.get("In-Reply-To")
            references = headers.get("References")
        else:
            subject, in_reply_to, references = (
                headers.subject,
                headers.in_reply_to,
                headers.references,
            )

        if not subject or not subject.strip():
            return "subject is required"
        if in_reply_to and not _MSG_ID_RE.search(in_reply_to):
            return f"In-Reply-To is not a bracketed message id: {in_reply_to}"
        if references and not _MSG_ID_RE.search(references):
            return f"References contains no bracketed message id: {references}"
        return None

    def validate(self, headers: ReplyHeaders | HeaderSet) -> bool:
        """Check reply headers before sending; logs the failed rule."""
        reason = self._failed_rule(headers)
        if reason is not None:
            self._logger.warning("invalid_threading_headers", reason=reason)
            return False
        return True

    def ensure_valid(self, headers: ReplyHeaders | HeaderSet) -> None:
        """Raise :class:`ThreadingValidationError` if :meth:`validate` fails."""
        reason = self._failed_rule(headers)
        if reason is not None:
            self._logger.warning("invalid_threading_headers", reason=reason)
            raise ThreadingValidationError(reason)
