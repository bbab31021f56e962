"""Authentication module for Gmail API credential loading."""

from mailthread.auth.credentials import get_gmail_service, load_gmail_credentials

__all__ = [
    "get_gmail_service",
    "load_gmail_credentials",
]
