"""
URL validation for conversion targets.

Rejects non-HTTP(S) schemes, loopback hosts and private/link-local address
prefixes. The private-network check is textual and does not resolve DNS, so a
public hostname that resolves to a private address is not caught here.
"""

import re
from typing import Optional
from urllib.parse import urlparse

ALLOWED_SCHEMES = frozenset({"http", "https"})

BLOCKED_HOSTS = frozenset({"localhost", "127.0.0.1", "0.0.0.0", "::1"})

BLOCKED_HOST_PREFIXES = (
    "192.168.",
    "10.",
    *(f"172.{octet}." for octet in range(16, 32)),
    "169.254.",
)

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")

# Characters a host may never contain
_FORBIDDEN_HOST_RE = re.compile(r'[\s<>"{}|\\^`]')


def normalize_url(url: str) -> str:
    """
    Ensure the URL carries a scheme, defaulting to https.

    Inputs that already name a scheme are returned stripped but otherwise
    untouched, so unsupported schemes still fail validation.
    """
    cleaned = url.strip()
    if cleaned and not _SCHEME_RE.match(cleaned):
        return f"https://{cleaned}"
    return cleaned


def ascii_hostname(hostname: Optional[str]) -> Optional[str]:
    """
    Lower-cased, IDNA (punycode) form of a hostname.

    Returns None for a missing host or one that cannot be a valid host name.
    """
    if not hostname or _FORBIDDEN_HOST_RE.search(hostname):
        return None
    try:
        return hostname.encode("idna").decode("ascii").lower()
    except UnicodeError:
        return None


def validate(url: str) -> bool:
    """Return True when the URL is an allowed conversion target."""
    try:
        parsed = urlparse(url)
        hostname = ascii_hostname(parsed.hostname)
        parsed.port  # raises ValueError when out of range or not numeric
    except ValueError:
        return False

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return False
    if not hostname:
        return False

    if hostname in BLOCKED_HOSTS:
        return False
    if hostname.startswith(BLOCKED_HOST_PREFIXES):
        return False

    return True
