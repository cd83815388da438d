"""
Error taxonomy and failure classification for URL-to-PDF conversion.

Per-item failures are never raised out of a batch; they are classified into an
ErrorKind by matching the underlying failure message against an ordered rule
table and carried on the ConversionResult.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Pattern, Tuple


class ErrorKind(str, Enum):
    """Classified reason for a failed conversion."""

    INVALID_URL = "InvalidUrl"
    NAME_RESOLUTION_FAILURE = "NameResolutionFailure"
    CONNECTION_REFUSED = "ConnectionRefused"
    CONNECTION_TIMEOUT = "ConnectionTimeout"
    NAVIGATION_TIMEOUT = "NavigationTimeout"
    TLS_FAILURE = "TlsFailure"
    UNKNOWN = "Unknown"


# User-facing messages; UNKNOWN carries the raw failure message instead.
ERROR_MESSAGES = {
    ErrorKind.INVALID_URL: "Invalid or disallowed URL",
    ErrorKind.NAME_RESOLUTION_FAILURE: "Domain not found",
    ErrorKind.CONNECTION_REFUSED: "Connection refused",
    ErrorKind.CONNECTION_TIMEOUT: "Connection timed out",
    ErrorKind.NAVIGATION_TIMEOUT: "Page took too long to load",
    ErrorKind.TLS_FAILURE: "SSL certificate error",
}


class ConverterError(Exception):
    """Base class for errors raised by the conversion service."""


class BrowserLaunchError(ConverterError):
    """The shared Chromium instance could not be launched."""


class RenderTimeoutError(ConverterError):
    """A render stage or the whole render exceeded its time budget."""

    def __init__(self, stage: str, timeout_ms: int):
        self.stage = stage
        self.timeout_ms = timeout_ms
        super().__init__(f"{stage}: timeout of {timeout_ms}ms exceeded")


class ArchiveError(ConverterError):
    """Building the ZIP archive failed; no partial archive is returned."""


@dataclass(frozen=True)
class ClassificationRule:
    """A regex matched against a failure message and the kind it maps to."""

    pattern: Pattern[str]
    kind: ErrorKind

    def matches(self, message: str) -> bool:
        return self.pattern.search(message) is not None


def _rule(pattern: str, kind: ErrorKind, flags: int = 0) -> ClassificationRule:
    return ClassificationRule(re.compile(pattern, flags), kind)


# Evaluated in order, first match wins. Chromium net:: codes come before the
# generic timeout patterns because goto() messages can contain both.
CLASSIFICATION_RULES: Tuple[ClassificationRule, ...] = (
    _rule(r"net::ERR_NAME_NOT_RESOLVED", ErrorKind.NAME_RESOLUTION_FAILURE),
    _rule(r"net::ERR_CONNECTION_REFUSED", ErrorKind.CONNECTION_REFUSED),
    _rule(r"net::ERR_CONNECTION_TIMED_OUT", ErrorKind.CONNECTION_TIMEOUT),
    _rule(r"navigation timeout", ErrorKind.NAVIGATION_TIMEOUT, re.IGNORECASE),
    _rule(r"timeout (of )?\d+\s?ms exceeded", ErrorKind.NAVIGATION_TIMEOUT, re.IGNORECASE),
    _rule(r"net::ERR_(SSL|CERT)", ErrorKind.TLS_FAILURE),
)


def describe_exception(exc: BaseException) -> str:
    """Return the failure message, falling back to the exception type name."""
    message = str(exc).strip()
    return message or type(exc).__name__


def classify_message(message: str) -> Tuple[ErrorKind, str]:
    """
    Classify a raw failure message.

    Returns:
        (kind, message) where message is the user-facing text for known kinds
        and the raw message for UNKNOWN.
    """
    for rule in CLASSIFICATION_RULES:
        if rule.matches(message):
            return rule.kind, ERROR_MESSAGES[rule.kind]
    return ErrorKind.UNKNOWN, message


def classify_error(exc: BaseException) -> Tuple[ErrorKind, str]:
    """Classify an exception raised while rendering a page."""
    return classify_message(describe_exception(exc))


def message_for(kind: ErrorKind, raw: Optional[str] = None) -> str:
    """User-facing message for a kind (raw text for UNKNOWN)."""
    if kind is ErrorKind.UNKNOWN:
        return raw or "Unknown error"
    return ERROR_MESSAGES[kind]
