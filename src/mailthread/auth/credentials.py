"""Gmail OAuth2 credential loading and service construction.

Provides helpers for:
- Loading (and refreshing when expired) authorized-user credentials
- Building the Gmail API v1 service client

Token issuance and storage belong to the session layer; nothing here runs
an interactive flow or writes tokens back.
"""

from __future__ import annotations

from pathlib import Path

import google.auth.transport.requests
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import Resource, build

from mailthread.config import DEFAULT_GMAIL_SCOPES
from mailthread.errors import AuthExpiredError

DEFAULT_TOKEN_PATH: str = "token.json"


def load_gmail_credentials(
    token_path: str | Path = DEFAULT_TOKEN_PATH,
    scopes: list[str] | None = None,
) -> Credentials:
    """Load Gmail OAuth2 credentials from an authorized-user token file.

    Expired credentials with a refresh token are refreshed in memory.

    Args:
        token_path: Path to the OAuth2 authorized-user token file.
        scopes: OAuth2 scopes.  Defaults to ``DEFAULT_GMAIL_SCOPES``.

    Returns:
        Valid ``google.oauth2.credentials.Credentials``.

    Raises:
        AuthExpiredError: The token file is missing, or the credentials are
            invalid and cannot be refreshed.
    """
    if scopes is None:
        scopes = DEFAULT_GMAIL_SCOPES

    token_path = Path(token_path)
    if not token_path.exists():
        raise AuthExpiredError(
            "load gmail credentials", FileNotFoundError(f"Gmail token file not found: {token_path}")
        )

    creds = Credentials.from_authorized_user_file(str(token_path), scopes)  # type: ignore[no-untyped-call]
    if creds.valid:
        return creds

    if creds.expired and creds.refresh_token:
        try:
            creds.refresh(google.auth.transport.requests.Request())
        except RefreshError as exc:
            raise AuthExpiredError("refresh gmail credentials", exc) from exc
        return creds

    raise AuthExpiredError("load gmail credentials")


def get_gmail_service(
    credentials: Credentials | None = None,
    token_path: str | Path = DEFAULT_TOKEN_PATH,
    scopes: list[str] | None = None,
) -> Resource:
    """Build and return a Gmail API v1 service client.

    Args:
        credentials: Pre-loaded OAuth2 credentials.  If ``None``,
            ``load_gmail_credentials(token_path, scopes)`` is called.
        token_path: Token file used when *credentials* is ``None``.
        scopes: Scopes used when *credentials* is ``None``.

    Returns:
        A ``googleapiclient.discovery.Resource`` for the Gmail API v1.
    """
    if credentials is None:
        credentials = load_gmail_credentials(token_path, scopes)
    return build("gmail", "v1", credentials=credentials, cache_discovery=False)
