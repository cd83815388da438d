"""
Helper functions for naming generated PDF files.
"""

import re
import time
from typing import Optional
from urllib.parse import urlparse

from .url_validator import ascii_hostname

MAX_PATH_SEGMENT_LENGTH = 50


def timestamp_ms() -> int:
    """Current wall-clock time in milliseconds, used as a uniqueness suffix."""
    return int(time.time() * 1000)


def sanitize_for_path(path: str) -> str:
    """
    Sanitize a URL path for use inside a filename.

    Trims leading/trailing slashes, turns inner slashes into hyphens and drops
    every character that is not alphanumeric or a hyphen.

    Example:
        >>> sanitize_for_path("/docs/getting_started/")
        "docs-gettingstarted"
    """
    trimmed = path.strip("/")
    hyphenated = trimmed.replace("/", "-")
    return re.sub(r"[^a-zA-Z0-9-]", "", hyphenated)


def url_to_filename(url: str, timestamp: Optional[int] = None) -> str:
    """
    Derive a PDF filename from a URL.

    Args:
        url: Scheme-normalized URL
        timestamp: Millisecond suffix (defaults to now)

    Returns:
        "<host>-<path>-<timestamp>.pdf", or "page-<timestamp>.pdf" when the
        URL cannot be parsed. The host is in punycode form, so the name is
        always ASCII and safe for a Content-Disposition header.
    """
    ts = timestamp if timestamp is not None else timestamp_ms()

    try:
        parsed = urlparse(url)
        hostname = ascii_hostname(parsed.hostname)
    except ValueError:
        hostname = None

    if not hostname:
        return f"page-{ts}.pdf"

    if hostname.startswith("www."):
        hostname = hostname[len("www."):]

    path = sanitize_for_path(parsed.path) or "index"
    return f"{hostname}-{path[:MAX_PATH_SEGMENT_LENGTH]}-{ts}.pdf"
