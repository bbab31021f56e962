"""Tests for the auth credentials module.

Uses unittest.mock to avoid requiring real Google API credentials.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError

from mailthread.auth.credentials import get_gmail_service, load_gmail_credentials
from mailthread.config import DEFAULT_GMAIL_SCOPES
from mailthread.errors import AuthExpiredError

# ---------------------------------------------------------------------------
# load_gmail_credentials
# ---------------------------------------------------------------------------


class TestLoadGmailCredentials:
    """Tests for load_gmail_credentials."""

    @patch("mailthread.auth.credentials.Credentials.from_authorized_user_file")
    def test_loads_existing_valid_token(self, mock_from_file: MagicMock, tmp_path: Path):
        """Returns the stored credentials when they are valid."""
        token_path = tmp_path / "token.json"
        token_path.write_text("{}")

        mock_creds = MagicMock()
        mock_creds.valid = True
        mock_from_file.return_value = mock_creds

        result = load_gmail_credentials(token_path=token_path)

        mock_from_file.assert_called_once_with(str(token_path), DEFAULT_GMAIL_SCOPES)
        mock_creds.refresh.assert_not_called()
        assert result is mock_creds

    @patch("mailthread.auth.credentials.Credentials.from_authorized_user_file")
    def test_refreshes_expired_token(self, mock_from_file: MagicMock, tmp_path: Path):
        """Refreshes in memory when the token is expired but refreshable."""
        token_path = tmp_path / "token.json"
        token_path.write_text("{}")

        mock_creds = MagicMock()
        mock_creds.valid = False
        mock_creds.expired = True
        mock_creds.refresh_token = "refresh-token"
        mock_from_file.return_value = mock_creds

        result = load_gmail_credentials(token_path=token_path, scopes=["scope-a"])

        mock_from_file.assert_called_once_with(str(token_path), ["scope-a"])
        mock_creds.refresh.assert_called_once()
        assert result is mock_creds
        assert token_path.read_text() == "{}"

    @patch("mailthread.auth.credentials.Credentials.from_authorized_user_file")
    def test_refresh_failure_raises_auth_expired(
        self, mock_from_file: MagicMock, tmp_path: Path
    ):
        token_path = tmp_path / "token.json"
        token_path.write_text("{}")

        mock_creds = MagicMock()
        mock_creds.valid = False
        mock_creds.expired = True
        mock_creds.refresh_token = "refresh-token"
        mock_creds.refresh.side_effect = RefreshError("invalid_grant")
        mock_from_file.return_value = mock_creds

        with pytest.raises(AuthExpiredError) as exc_info:
            load_gmail_credentials(token_path=token_path)

        assert exc_info.value.operation == "refresh gmail credentials"

    @patch("mailthread.auth.credentials.Credentials.from_authorized_user_file")
    def test_unrefreshable_token_raises_auth_expired(
        self, mock_from_file: MagicMock, tmp_path: Path
    ):
        token_path = tmp_path / "token.json"
        token_path.write_text("{}")

        mock_creds = MagicMock()
        mock_creds.valid = False
        mock_creds.expired = True
        mock_creds.refresh_token = None
        mock_from_file.return_value = mock_creds

        with pytest.raises(AuthExpiredError):
            load_gmail_credentials(token_path=token_path)

    def test_missing_token_file_raises_auth_expired(self, tmp_path: Path):
        """Never falls back to an interactive flow."""
        with pytest.raises(AuthExpiredError) as exc_info:
            load_gmail_credentials(token_path=tmp_path / "missing.json")

        assert isinstance(exc_info.value.cause, FileNotFoundError)


# ---------------------------------------------------------------------------
# get_gmail_service
# ---------------------------------------------------------------------------


class TestGetGmailService:
    """Tests for get_gmail_service."""

    @patch("mailthread.auth.credentials.build")
    def test_builds_with_provided_credentials(self, mock_build: MagicMock):
        mock_creds = MagicMock()

        result = get_gmail_service(credentials=mock_creds)

        mock_build.assert_called_once_with(
            "gmail", "v1", credentials=mock_creds, cache_discovery=False
        )
        assert result is mock_build.return_value

    @patch("mailthread.auth.credentials.build")
    @patch("mailthread.auth.credentials.load_gmail_credentials")
    def test_loads_credentials_when_not_provided(
        self, mock_load: MagicMock, mock_build: MagicMock, tmp_path: Path
    ):
        token_path = tmp_path / "token.json"

        get_gmail_service(token_path=token_path, scopes=["scope-a"])

        mock_load.assert_called_once_with(token_path, ["scope-a"])
        mock_build.assert_called_once_with(
            "gmail", "v1", credentials=mock_load.return_value, cache_discovery=False
        )
