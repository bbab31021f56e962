"""Shared pytest fixtures for the mailthread test suite."""

from __future__ import annotations

import logging
from typing import Any

import pytest
import structlog
from structlog.testing import LogCapture

from mailthread.config import Settings, get_settings


@pytest.fixture
def log_capture() -> LogCapture:
    """Collects every event logged through ``capturing_logger``."""
    return LogCapture()


@pytest.fixture
def capturing_logger(log_capture: LogCapture) -> Any:
    """A structlog logger that records events into ``log_capture``.

    Injected explicitly so assertions hold whatever global structlog
    configuration another test left behind.
    """
    return structlog.wrap_logger(
        None,
        processors=[log_capture],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        context_class=dict,
    )


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only, ignoring any local ``.env`` file."""
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    get_settings.cache_clear()


@pytest.fixture
def gmail_message() -> dict[str, Any]:
    """A Gmail ``format="full"`` message with an HTML body and one PDF attachment."""
    return {
        "id": "msg-1",
        "threadId": "thread-1",
        "labelIds": ["INBOX", "UNREAD"],
        "snippet": "Please see the attached report",
        "internalDate": "1700000000000",
        "sizeEstimate": 4096,
        "payload": {
            "partId": "",
            "mimeType": "multipart/mixed",
            "filename": "",
            "headers": [
                {"name": "From", "value": '"Alice Example" <alice@example.com>'},
                {"name": "To", "value": "bob@example.com, carol@example.com"},
                {"name": "Subject", "value": "Quarterly report"},
                {"name": "Date", "value": "Tue, 14 Nov 2023 22:13:20 +0000"},
                {"name": "Message-ID", "value": "<m1@mail.example.com>"},
            ],
            "body": {"size": 0},
            "parts": [
                {
                    "partId": "0",
                    "mimeType": "text/html",
                    "filename": "",
                    "headers": [{"name": "Content-Type", "value": "text/html; charset=utf-8"}],
                    "body": {"size": 12, "data": "PHA-SGk8L3A-"},
                },
                {
                    "partId": "1",
                    "mimeType": "application/pdf",
                    "filename": "report.pdf",
                    "headers": [
                        {
                            "name": "Content-Disposition",
                            "value": 'attachment; filename="report.pdf"',
                        }
                    ],
                    "body": {"size": 5, "attachmentId": "ANGjdJ-transient-1"},
                },
            ],
        },
    }
