"""Gmail API payload decoding.

Provides helpers for:
- Decoding base64url message parts into text
- Extracting a plain-text body from a (possibly nested) Gmail payload
- Parsing address headers into bare email addresses
- Converting a Gmail API message resource into a ``ThreadMessage``
"""

from __future__ import annotations

import base64
import binascii
import html
import re
from datetime import UTC, datetime
from email.utils import getaddresses, parseaddr
from typing import Any

import structlog

from personal_context.email.models import ThreadMessage

logger = structlog.get_logger()

_TAG_RE = re.compile(r"<[^>]*>")


def decode_base64url(data: str) -> str:
    """Decode a Gmail base64url string into UTF-8 text.

    Gmail omits ``=`` padding, so it is restored before decoding.  Undecodable
    input is logged and yields an empty string.

    Args:
        data: The base64url-encoded body data.

    Returns:
        The decoded text, with invalid UTF-8 sequences replaced.
    """
    padded = data + "=" * (-len(data) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError):
        logger.warning("base64_decode_failed", length=len(data))
        return ""
    return raw.decode("utf-8", errors="replace")


def strip_html(markup: str) -> str:
    """Remove tags and unescape entities from an HTML fragment."""
    return html.unescape(_TAG_RE.sub("", markup))


def _find_part_data(payload: dict[str, Any], mime_type: str) -> str | None:
    """Depth-first search for the first part of *mime_type* carrying data."""
    if payload.get("mimeType") == mime_type:
        data = payload.get("body", {}).get("data")
        if data:
            return str(data)
    for part in payload.get("parts", []) or []:
        found = _find_part_data(part, mime_type)
        if found:
            return found
    return None


def extract_message_body(payload: dict[str, Any]) -> str:
    """Extract the text body of a Gmail message payload.

    Prefers the first ``text/plain`` part anywhere in the MIME tree, then the
    first ``text/html`` part with tags stripped.  A single-part payload is
    decoded directly.

    Args:
        payload: The ``payload`` field of a Gmail ``format=full`` message.

    Returns:
        The trimmed body text, or an empty string when none is found.
    """
    if payload.get("parts"):
        plain = _find_part_data(payload, "text/plain")
        if plain:
            return decode_base64url(plain).strip()
        markup = _find_part_data(payload, "text/html")
        if markup:
            return strip_html(decode_base64url(markup)).strip()
        return ""

    data = payload.get("body", {}).get("data")
    if not data:
        return ""
    body = decode_base64url(data)
    if payload.get("mimeType") == "text/html":
        body = strip_html(body)
    return body.strip()


def header_value(headers: list[dict[str, str]], name: str) -> str:
    """Return the first header named *name* (case-insensitive), or ``""``."""
    wanted = name.lower()
    for header in headers:
        if header.get("name", "").lower() == wanted:
            return header.get("value", "")
    return ""


def extract_email_address(value: str) -> str:
    """Return the bare address from a header value like ``"Ann <ann@x.com>"``."""
    _, address = parseaddr(value)
    return address or value.strip()


def parse_address_list(value: str) -> list[str]:
    """Parse a comma-separated address header into bare addresses."""
    if not value:
        return []
    return [address for _, address in getaddresses([value]) if address]


def parse_gmail_message(message: dict[str, Any], user_email: str) -> ThreadMessage:
    """Convert a Gmail API message resource into a ``ThreadMessage``.

    Args:
        message: A message resource fetched with ``format=full``.
        user_email: The mailbox owner's address, used to set ``is_from_user``.

    Returns:
        The decoded message.
    """
    payload: dict[str, Any] = message.get("payload", {})
    headers: list[dict[str, str]] = payload.get("headers", [])
    sender = extract_email_address(header_value(headers, "From"))
    internal_ms = int(message.get("internalDate", "0") or 0)

    return ThreadMessage(
        message_id=message["id"],
        sender=sender,
        to=parse_address_list(header_value(headers, "To")),
        cc=parse_address_list(header_value(headers, "Cc")),
        bcc=parse_address_list(header_value(headers, "Bcc")),
        subject=header_value(headers, "Subject"),
        body=extract_message_body(payload),
        timestamp=datetime.fromtimestamp(internal_ms / 1000, tz=UTC),
        is_from_user=sender.lower() == user_email.lower(),
        headers={h["name"]: h["value"] for h in headers if "name" in h and "value" in h},
    )
