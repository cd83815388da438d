"""
Unit tests for failure classification.
"""

import asyncio

import pytest

from pdf_service.errors import (
    CLASSIFICATION_RULES,
    ErrorKind,
    RenderTimeoutError,
    classify_error,
    classify_message,
    message_for,
)


class TestClassifyMessage:
    """Tests for the ordered classification table."""

    @pytest.mark.parametrize("message,kind", [
        ("page.goto: net::ERR_NAME_NOT_RESOLVED at https://nope.invalid/", ErrorKind.NAME_RESOLUTION_FAILURE),
        ("page.goto: net::ERR_CONNECTION_REFUSED at http://example.com:81/", ErrorKind.CONNECTION_REFUSED),
        ("page.goto: net::ERR_CONNECTION_TIMED_OUT at https://example.com/", ErrorKind.CONNECTION_TIMEOUT),
        ("Navigation timeout of 30000 ms exceeded", ErrorKind.NAVIGATION_TIMEOUT),
        ("page.goto: Timeout 60000ms exceeded.", ErrorKind.NAVIGATION_TIMEOUT),
        ("render: timeout of 150000ms exceeded", ErrorKind.NAVIGATION_TIMEOUT),
        ("page.goto: net::ERR_SSL_PROTOCOL_ERROR at https://example.com/", ErrorKind.TLS_FAILURE),
        ("page.goto: net::ERR_CERT_AUTHORITY_INVALID at https://self-signed/", ErrorKind.TLS_FAILURE),
    ])
    def test_known_patterns(self, message, kind):
        assert classify_message(message)[0] is kind

    def test_known_kind_gets_user_facing_message(self):
        kind, message = classify_message("net::ERR_NAME_NOT_RESOLVED")
        assert message == "Domain not found"

    def test_unmatched_message_is_unknown_with_raw_text(self):
        kind, message = classify_message("Target page, context or browser has been closed")
        assert kind is ErrorKind.UNKNOWN
        assert message == "Target page, context or browser has been closed"

    def test_first_matching_rule_wins(self):
        """A connection timeout that also mentions a timeout stays a connection timeout."""
        kind, _ = classify_message("net::ERR_CONNECTION_TIMED_OUT; Timeout 30000ms exceeded")
        assert kind is ErrorKind.CONNECTION_TIMEOUT

    def test_rules_are_a_finite_table(self):
        kinds = [rule.kind for rule in CLASSIFICATION_RULES]
        assert ErrorKind.UNKNOWN not in kinds
        assert ErrorKind.INVALID_URL not in kinds


class TestClassifyError:
    """Tests for classify_error()."""

    def test_empty_message_falls_back_to_type_name(self):
        kind, message = classify_error(asyncio.CancelledError())
        assert kind is ErrorKind.UNKNOWN
        assert message == "CancelledError"

    def test_render_timeout_is_navigation_timeout(self):
        kind, _ = classify_error(RenderTimeoutError("settle stage 'images'", 15000))
        assert kind is ErrorKind.NAVIGATION_TIMEOUT

    def test_render_timeout_message(self):
        assert str(RenderTimeoutError("render", 1000)) == "render: timeout of 1000ms exceeded"


def test_message_for_unknown_uses_raw():
    assert message_for(ErrorKind.UNKNOWN, "boom") == "boom"
    assert message_for(ErrorKind.INVALID_URL) == "Invalid or disallowed URL"
