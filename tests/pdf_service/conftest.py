"""
Pytest fixtures for PDF service tests.

No real browser is launched: sessions, browsers, contexts and pages are mocks.
"""

import os

# Set environment BEFORE importing pdf_service so cached settings pick it up
os.environ["ENVIRONMENT"] = "development"
os.environ["WARM_BROWSER_ON_STARTUP"] = "false"
os.environ["BATCH_THROTTLE_SECONDS"] = "0"
os.environ["DEFAULT_TIMEOUT_MS"] = "60000"

import pytest
from unittest.mock import AsyncMock, MagicMock

from pdf_service.renderer import PageRenderer

FAKE_PDF = b"%PDF-1.4 fake pdf content"


def make_page(pdf_bytes: bytes = FAKE_PDF) -> MagicMock:
    """Playwright Page mock: async methods are AsyncMock, timeout setters are sync."""
    page = MagicMock()
    page.route = AsyncMock()
    page.goto = AsyncMock()
    page.evaluate = AsyncMock()
    page.pdf = AsyncMock(return_value=pdf_bytes)
    return page


def make_browser(page: MagicMock):
    """Browser mock whose new_context() yields a context holding the given page."""
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.is_connected = MagicMock(return_value=True)
    browser.close = AsyncMock()
    return browser, context


@pytest.fixture
def fake_page():
    return make_page()


@pytest.fixture
def fake_browser(fake_page):
    browser, context = make_browser(fake_page)
    return browser


@pytest.fixture
def fake_context(fake_browser):
    return fake_browser.new_context.return_value


@pytest.fixture
def fake_session(fake_browser):
    session = MagicMock()
    session.acquire = AsyncMock(return_value=fake_browser)
    return session


@pytest.fixture
def renderer(fake_session):
    """Render pipeline on a mocked session with no settling delays."""
    return PageRenderer(session=fake_session, settle_stages=(), default_timeout_ms=60000)
