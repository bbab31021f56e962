"""Gmail API client wrapper: the boundary to the remote mailbox service.

Provides the ``GmailClient`` class, which performs the five remote
operations this layer depends on (fetch message, fetch thread, list
messages, fetch attachment bytes, send raw message) plus thread listing and
label modification, and converts responses into domain models.

Every call goes through ``GmailClient._execute`` so remote failures are
wrapped in ``RemoteOperationError`` (or ``AuthExpiredError`` when the
credentials were rejected) with the attempted operation name.  No retries
happen here; retry policy belongs to the transport or session layer.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from mailthread.email.models import (
    Message,
    MessageListPage,
    SendResult,
    Thread,
    ThreadStub,
    ThreadStubPage,
)
from mailthread.errors import AuthExpiredError, RemoteOperationError
from mailthread.observability import component_logger

DEFAULT_USER_ID = "me"
INVALID_GRANT = "invalid_grant"


class RemoteMailbox(Protocol):
    """The remote operations the core consumes."""

    def get_message(self, message_id: str) -> Message: ...

    def get_thread(self, thread_id: str) -> Thread: ...

    def list_messages(
        self, label_id: str | None, page_size: int, page_token: str | None = None
    ) -> MessageListPage: ...

    def list_threads(
        self, label_id: str | None, page_size: int, page_token: str | None = None
    ) -> ThreadStubPage: ...

    def get_attachment_data(self, message_id: str, attachment_ref: str) -> str: ...

    def send_raw(self, raw: str, thread_id: str | None = None) -> SendResult: ...

    def modify_labels(
        self, message_id: str, add_label_ids: list[str], remove_label_ids: list[str]
    ) -> None: ...


def _is_auth_failure(exc: HttpError) -> bool:
    status = getattr(exc.resp, "status", None)
    content = exc.content or b""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return status == 401 or INVALID_GRANT.encode() in content


class GmailClient:
    """Wrapper around a Gmail API v1 service resource.

    No network calls are made by this class directly; the service object
    handles transport, timeouts, and cancellation.

    Args:
        service: An authenticated Gmail API v1 service resource.
        user_id: The mailbox owner; ``"me"`` for the authenticated user.
        logger: Optional structlog logger; bound to ``component="GmailClient"``.
    """

    def __init__(self, service: Any, user_id: str = DEFAULT_USER_ID, logger: Any = None) -> None:
        self._service = service
        self._user_id = user_id
        self._logger = component_logger("GmailClient", logger)

    def _execute(self, operation: str, build_request: Callable[[], Any]) -> dict[str, Any]:
        """Build and run an API request, wrapping any failure with *operation*.

        *build_request* is called inside the error handling so a failure while
        building the request chain is wrapped the same way as one raised by
        ``execute()``.
        """
        try:
            result: dict[str, Any] = build_request().execute()
        except RefreshError as exc:
            self._logger.error("remote_auth_expired", operation=operation, error=str(exc))
            raise AuthExpiredError(operation, exc) from exc
        except HttpError as exc:
            if _is_auth_failure(exc):
                self._logger.error("remote_auth_expired", operation=operation, error=INVALID_GRANT)
                raise AuthExpiredError(operation, exc) from exc
            self._logger.error(
                "remote_operation_failed",
                operation=operation,
                status=getattr(exc.resp, "status", None),
                error=str(exc),
            )
            raise RemoteOperationError(operation, exc) from exc
        except Exception as exc:
            self._logger.error("remote_operation_failed", operation=operation, error=str(exc))
            raise RemoteOperationError(operation, exc) from exc
        return result if result is not None else {}

    def get_message(self, message_id: str) -> Message:
        """Fetch a message with its full part tree (``format="full"``)."""
        response = self._execute(
            "fetch message",
            lambda: self._service.users()
            .messages()
            .get(userId=self._user_id, id=message_id, format="full"),
        )
        return Message.from_api(response)

    def get_thread(self, thread_id: str) -> Thread:
        """Fetch every message of a thread with full payloads."""
        response = self._execute(
            "fetch thread",
            lambda: self._service.users()
            .threads()
            .get(userId=self._user_id, id=thread_id, format="full"),
        )
        return Thread.from_api(response)

    def list_messages(
        self, label_id: str | None, page_size: int, page_token: str | None = None
    ) -> MessageListPage:
        """List message ids carrying *label_id* (all messages when ``None``)."""
        response = self._execute(
            "list messages",
            lambda: self._service.users()
            .messages()
            .list(
                userId=self._user_id,
                labelIds=[label_id] if label_id else None,
                maxResults=page_size,
                pageToken=page_token or None,
            ),
        )
        return MessageListPage(
            ids=tuple(m["id"] for m in response.get("messages", []) if m.get("id")),
            next_page_token=response.get("nextPageToken") or None,
        )

    def list_threads(
        self, label_id: str | None, page_size: int, page_token: str | None = None
    ) -> ThreadStubPage:
        """List thread ids and snippets, in the order the service returns them."""
        response = self._execute(
            "list threads",
            lambda: self._service.users()
            .threads()
            .list(
                userId=self._user_id,
                labelIds=[label_id] if label_id else None,
                maxResults=page_size,
                pageToken=page_token or None,
            ),
        )
        return ThreadStubPage(
            stubs=tuple(
                ThreadStub(id=t.get("id") or "", snippet=t.get("snippet") or "")
                for t in response.get("threads", [])
            ),
            next_page_token=response.get("nextPageToken") or None,
        )

    def get_attachment_data(self, message_id: str, attachment_ref: str) -> str:
        """Fetch an attachment's base64url payload by its transient reference."""
        response = self._execute(
            "fetch attachment",
            lambda: self._service.users()
            .messages()
            .attachments()
            .get(userId=self._user_id, messageId=message_id, id=attachment_ref),
        )
        data: str = response.get("data") or ""
        return data

    def send_raw(self, raw: str, thread_id: str | None = None) -> SendResult:
        """Send a transport-encoded message, optionally inside *thread_id*."""
        body: dict[str, Any] = {"raw": raw}
        if thread_id:
            body["threadId"] = thread_id

        response = self._execute(
            "send message",
            lambda: self._service.users()
            .messages()
            .send(userId=self._user_id, body=body),
        )
        return SendResult(
            id=response.get("id") or "",
            thread_id=response.get("threadId") or None,
            label_ids=tuple(response.get("labelIds") or ()),
        )

    def modify_labels(
        self, message_id: str, add_label_ids: list[str], remove_label_ids: list[str]
    ) -> None:
        self._execute(
            "modify labels",
            lambda: self._service.users()
            .messages()
            .modify(
                userId=self._user_id,
                id=message_id,
                body={"addLabelIds": add_label_ids, "removeLabelIds": remove_label_ids},
            ),
        )
