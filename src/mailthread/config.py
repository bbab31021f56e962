"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables and a cached ``get_settings()`` accessor.

This module has no imports from the rest of the ``mailthread`` package so it
can be loaded first by any entry point.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()

DEFAULT_GMAIL_SCOPES: list[str] = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.send",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``SecretStr`` fields prevent accidental leaks in logs or error output.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False

    # -- Gmail -----------------------------------------------------------------
    gmail_user_id: str = "me"
    gmail_token_path: Path = Path("token.json")
    gmail_scopes: list[str] = DEFAULT_GMAIL_SCOPES
    message_id_domain: str = "mail.gmail.com"

    # -- Listing ---------------------------------------------------------------
    default_page_size: int = 50
    max_page_size: int = 100
    label_page_size: int = 100

    # -- Attachments -----------------------------------------------------------
    max_attachment_bytes: int = 25 * 1024 * 1024
    max_outgoing_files: int = 10
    max_outgoing_file_bytes: int = 25 * 1024 * 1024
    max_outgoing_total_bytes: int = 50 * 1024 * 1024

    # -- Observability ---------------------------------------------------------
    sentry_dsn: SecretStr = SecretStr("")


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Only the structured errors list; the exception text may hold secrets.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)
