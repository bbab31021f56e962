"""MIME encoding primitives shared by every component that emits wire bytes.

Covers:
- base64 / base64url transcoding for the Gmail ``raw`` transport format
- RFC 2047 encoded-words for non-ASCII header values
- boundary and Message-ID generation
- RFC 5322 date formatting and RFC 2045 line chunking
- small header helpers (subjects, addresses, filenames)
"""

from __future__ import annotations

import base64
import re
import secrets
import time
from datetime import UTC, datetime
from email.utils import format_datetime
from urllib.parse import quote

BASE64_LINE_WIDTH = 76
DEFAULT_MESSAGE_ID_DOMAIN = "mail.gmail.com"
DEFAULT_MIME_TYPE = "application/octet-stream"

_MIME_TYPES: dict[str, str] = {
    # Documents
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
    "csv": "text/csv",
    # Images
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "ico": "image/x-icon",
    # Archives
    "zip": "application/zip",
    "rar": "application/x-rar-compressed",
    "7z": "application/x-7z-compressed",
    "tar": "application/x-tar",
    "gz": "application/gzip",
    # Media
    "mp3": "audio/mpeg",
    "mp4": "video/mp4",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "wav": "audio/wav",
    # Web
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",
    "xml": "application/xml",
    # Others
    "eml": "message/rfc822",
}

# Extensions used when a part names no file of its own.
_DEFAULT_EXTENSIONS: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "application/pdf": "pdf",
    "text/plain": "txt",
    "text/html": "html",
    "application/zip": "zip",
}

_WHITESPACE_RE = re.compile(r"\s+")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Commas outside double quotes separate addresses.
_ADDRESS_SPLIT_RE = re.compile(r',(?=(?:[^"]*"[^"]*")*[^"]*$)')
_REPLY_PREFIX_RE = re.compile(r"^re:", re.IGNORECASE)
_FORWARD_PREFIX_RE = re.compile(r"^fwd:", re.IGNORECASE)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


# ---------------------------------------------------------------------------
# base64 / base64url
# ---------------------------------------------------------------------------


def encode_base64(data: str | bytes) -> str:
    """Standard base64 (RFC 2045) of *data*; text is encoded as UTF-8."""
    raw = data.encode("utf-8") if isinstance(data, str) else data
    return base64.b64encode(raw).decode("ascii")


def encode_transport_token(data: str | bytes) -> str:
    """Encode a message for the Gmail ``raw`` field.

    Standard base64 with the URL-safe alphabet (``+`` -> ``-``,
    ``/`` -> ``_``) and the ``=`` padding stripped.

    Args:
        data: The RFC 5322 message text (UTF-8 encoded) or raw bytes.

    Returns:
        The unpadded base64url token.
    """
    raw = data.encode("utf-8") if isinstance(data, str) else data
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_transport_bytes(token: str) -> bytes:
    """Decode a base64 or base64url payload, restoring stripped padding.

    Accepts either alphabet, which covers both Gmail attachment payloads
    and tokens produced by :func:`encode_transport_token`.

    Raises:
        binascii.Error: *token* holds characters outside the base64
            alphabet or cannot be padded to a valid length.
    """
    padding = "=" * ((4 - len(token) % 4) % 4)
    normalized = token.replace("-", "+").replace("_", "/") + padding
    return base64.b64decode(normalized, validate=True)


def decode_transport_token(token: str) -> str:
    """Inverse of :func:`encode_transport_token`, decoded as UTF-8."""
    return decode_transport_bytes(token).decode("utf-8")


def chunk_base64(data: str, width: int = BASE64_LINE_WIDTH) -> str:
    """Split base64 text into CRLF-joined lines of at most *width* chars.

    RFC 2045 section 6.8 limits encoded lines to 76 characters.
    """
    return "\r\n".join(data[i : i + width] for i in range(0, len(data), width))


# ---------------------------------------------------------------------------
# Header values
# ---------------------------------------------------------------------------


def encode_header_word(value: str) -> str:
    """Return *value* unchanged if it is ASCII, else an RFC 2047 encoded-word."""
    if value.isascii():
        return value
    return f"=?UTF-8?B?{encode_base64(value)}?="


def generate_boundary() -> str:
    """Generate a multipart boundary: a timestamp plus 128 random bits.

    The boundary is not checked against part content; a part containing
    the exact boundary string would corrupt the message.
    """
    return f"----=_Part_{_now_ms()}_{secrets.token_hex(16)}"


def generate_message_id(domain: str = DEFAULT_MESSAGE_ID_DOMAIN) -> str:
    """Generate an RFC 5322 Message-ID of the form ``<ts.hex@domain>``."""
    return f"<{_now_ms()}.{secrets.token_hex(8)}@{domain}>"


def format_date(instant: datetime | None = None) -> str:
    """Format *instant* (default: now) as an RFC 5322 date-time in GMT.

    Naive datetimes are interpreted as local time.
    """
    if instant is None:
        instant = datetime.now(UTC)
    return format_datetime(instant.astimezone(UTC), usegmt=True)


def clean_subject(subject: str) -> str:
    """Trim *subject* and collapse internal whitespace runs to one space."""
    return _WHITESPACE_RE.sub(" ", subject.strip())


def add_reply_prefix(subject: str) -> str:
    """Prefix ``Re: `` unless the cleaned subject already starts with it."""
    cleaned = clean_subject(subject)
    if _REPLY_PREFIX_RE.match(cleaned):
        return cleaned
    return f"Re: {cleaned}"


def add_forward_prefix(subject: str) -> str:
    """Prefix ``Fwd: `` unless the cleaned subject already starts with it."""
    cleaned = clean_subject(subject)
    if _FORWARD_PREFIX_RE.match(cleaned):
        return cleaned
    return f"Fwd: {cleaned}"


def format_address(email: str, name: str | None = None) -> str:
    """Format ``"Display Name" <email>``; the name is RFC 2047-encoded if needed."""
    if not name:
        return email
    return f'"{encode_header_word(name)}" <{email}>'


def parse_address_list(value: str | None) -> list[str]:
    """Split a comma-separated address header, ignoring commas inside quotes."""
    if not value:
        return []
    return [item.strip() for item in _ADDRESS_SPLIT_RE.split(value) if item.strip()]


def is_valid_email(email: str) -> bool:
    """Basic ``local@domain.tld`` shape check."""
    return bool(_EMAIL_RE.match(email))


# ---------------------------------------------------------------------------
# Filenames and MIME types
# ---------------------------------------------------------------------------


def sanitize_filename(filename: str) -> str:
    """Strip quotes and line breaks, normalize backslashes, and trim."""
    cleaned = re.sub(r'["\r\n]', "", filename)
    return cleaned.replace("\\", "/").strip()


def guess_mime_type(filename: str) -> str:
    """Map a filename extension to a MIME type, defaulting to octet-stream."""
    extension = filename.lower().rsplit(".", 1)[-1] if "." in filename else ""
    return _MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


def default_filename(mime_type: str | None) -> str:
    """Synthesize ``attachment-<ms>.<ext>`` for a part that names no file."""
    extension = _DEFAULT_EXTENSIONS.get(mime_type or "", "bin")
    return f"attachment-{_now_ms()}.{extension}"


def content_disposition(filename: str, inline: bool = False) -> str:
    """``Content-Disposition`` value with an RFC 5987 ``filename*`` parameter."""
    sanitized = sanitize_filename(filename)
    disposition = "inline" if inline else "attachment"
    return f"{disposition}; filename=\"{sanitized}\"; filename*=UTF-8''{quote(sanitized, safe='')}"
