"""Shared fixtures for live integration tests.

Provides session-scoped fixtures that create a real mailbox service using
credentials from the environment (via Settings).  Each fixture skips the
test if the required credentials are not available.
"""

from __future__ import annotations

import os

import pytest

from mailthread.config import Settings


@pytest.fixture(scope="session")
def _live_settings() -> Settings:
    """Load application settings from environment for live tests."""
    return Settings()


@pytest.fixture(scope="session")
def live_recipient() -> str:
    """Address live tests send to, skip if not set."""
    recipient = os.environ.get("LIVE_TEST_EMAIL", "")
    if not recipient:
        pytest.skip("LIVE_TEST_EMAIL not configured")
    return recipient


@pytest.fixture(scope="session")
def mailbox_service(_live_settings: Settings):
    """Create a real MailboxService backed by the Gmail API.

    Skips if the Gmail token file does not exist.
    """
    if not _live_settings.gmail_token_path.exists():
        pytest.skip("Gmail token not available")

    from mailthread.service import MailboxService

    return MailboxService.from_settings(_live_settings)
