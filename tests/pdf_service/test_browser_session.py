"""
Unit tests for the shared browser session.

Playwright is replaced by a factory mock so no Chromium process is started.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from pdf_service.browser_session import CHROMIUM_LAUNCH_ARGS, BrowserSession
from pdf_service.errors import BrowserLaunchError
from pdf_service.models import SessionState


def make_browser():
    browser = MagicMock()
    browser.is_connected = MagicMock(return_value=True)
    browser.close = AsyncMock()
    return browser


def make_playwright(launch):
    """Return (factory, playwright) where factory().start() yields playwright."""
    playwright = MagicMock()
    playwright.chromium.launch = launch
    playwright.stop = AsyncMock()
    starter = MagicMock()
    starter.start = AsyncMock(return_value=playwright)
    return MagicMock(return_value=starter), playwright


def disconnect_handler(browser):
    event, handler = browser.on.call_args[0]
    assert event == "disconnected"
    return handler


@pytest.mark.asyncio
async def test_concurrent_acquire_launches_once():
    """Callers arriving during a launch share that launch."""
    browser = make_browser()

    async def slow_launch(**kwargs):
        await asyncio.sleep(0.01)
        return browser

    launch = AsyncMock(side_effect=slow_launch)
    factory, playwright = make_playwright(launch)
    session = BrowserSession(playwright_factory=factory)

    results = await asyncio.gather(*(session.acquire() for _ in range(5)))

    assert launch.await_count == 1
    assert factory.call_count == 1
    assert all(result is browser for result in results)
    assert session.state is SessionState.READY


@pytest.mark.asyncio
async def test_acquire_reuses_connected_browser():
    browser = make_browser()
    launch = AsyncMock(return_value=browser)
    factory, _ = make_playwright(launch)
    session = BrowserSession(playwright_factory=factory)

    first = await session.acquire()
    second = await session.acquire()

    assert first is second is browser
    assert launch.await_count == 1


@pytest.mark.asyncio
async def test_launch_uses_hardened_headless_args():
    launch = AsyncMock(return_value=make_browser())
    factory, _ = make_playwright(launch)
    session = BrowserSession(headless=True, playwright_factory=factory)

    await session.acquire()

    kwargs = launch.await_args.kwargs
    assert kwargs["headless"] is True
    assert kwargs["args"] == CHROMIUM_LAUNCH_ARGS
    for flag in ("--no-sandbox", "--disable-gpu", "--mute-audio",
                 "--disable-background-networking", "--safebrowsing-disable-auto-update"):
        assert flag in kwargs["args"]


@pytest.mark.asyncio
async def test_state_is_launching_while_launch_in_flight():
    gate = asyncio.Event()
    browser = make_browser()

    async def gated_launch(**kwargs):
        await gate.wait()
        return browser

    factory, _ = make_playwright(AsyncMock(side_effect=gated_launch))
    session = BrowserSession(playwright_factory=factory)

    pending = asyncio.ensure_future(session.acquire())
    await asyncio.sleep(0)
    assert session.state is SessionState.LAUNCHING

    gate.set()
    assert await pending is browser
    assert session.state is SessionState.READY


@pytest.mark.asyncio
async def test_launch_failure_propagates_and_session_is_retryable():
    browser = make_browser()
    launch = AsyncMock(side_effect=[RuntimeError("Executable doesn't exist"), browser])
    factory, _ = make_playwright(launch)
    session = BrowserSession(playwright_factory=factory)

    with pytest.raises(BrowserLaunchError, match="Executable doesn't exist"):
        await session.acquire()
    assert session.state is SessionState.UNSTARTED

    assert await session.acquire() is browser
    assert launch.await_count == 2
    assert session.state is SessionState.READY


@pytest.mark.asyncio
async def test_concurrent_callers_all_see_launch_failure():
    async def failing_launch(**kwargs):
        await asyncio.sleep(0.01)
        raise RuntimeError("boom")

    launch = AsyncMock(side_effect=failing_launch)
    factory, _ = make_playwright(launch)
    session = BrowserSession(playwright_factory=factory)

    results = await asyncio.gather(*(session.acquire() for _ in range(3)), return_exceptions=True)

    assert launch.await_count == 1
    assert all(isinstance(r, BrowserLaunchError) for r in results)


@pytest.mark.asyncio
async def test_disconnect_marks_crashed_and_next_acquire_relaunches():
    first, second = make_browser(), make_browser()
    launch = AsyncMock(side_effect=[first, second])
    factory, _ = make_playwright(launch)
    session = BrowserSession(playwright_factory=factory)

    await session.acquire()
    first.is_connected.return_value = False
    disconnect_handler(first)(first)

    assert session.state is SessionState.CRASHED
    assert session.is_ready is False

    assert await session.acquire() is second
    assert launch.await_count == 2
    assert session.state is SessionState.READY


@pytest.mark.asyncio
async def test_stale_disconnect_is_ignored():
    first, second = make_browser(), make_browser()
    launch = AsyncMock(side_effect=[first, second])
    factory, _ = make_playwright(launch)
    session = BrowserSession(playwright_factory=factory)

    await session.acquire()
    disconnect_handler(first)(first)
    await session.acquire()

    # The old handle reporting again must not reset the new browser
    disconnect_handler(first)(first)
    assert session.state is SessionState.READY


@pytest.mark.asyncio
async def test_shutdown_closes_browser_and_driver():
    browser = make_browser()
    factory, playwright = make_playwright(AsyncMock(return_value=browser))
    session = BrowserSession(playwright_factory=factory)
    await session.acquire()

    await session.shutdown()

    browser.close.assert_awaited_once()
    playwright.stop.assert_awaited_once()
    assert session.state is SessionState.UNSTARTED
    assert session.is_ready is False


@pytest.mark.asyncio
async def test_shutdown_swallows_close_errors():
    browser = make_browser()
    browser.close = AsyncMock(side_effect=Exception("Browser has been closed"))
    factory, playwright = make_playwright(AsyncMock(return_value=browser))
    playwright.stop = AsyncMock(side_effect=Exception("driver gone"))
    session = BrowserSession(playwright_factory=factory)
    await session.acquire()

    await session.shutdown()

    assert session.state is SessionState.UNSTARTED


@pytest.mark.asyncio
async def test_shutdown_without_launch_is_noop():
    factory, _ = make_playwright(AsyncMock())
    session = BrowserSession(playwright_factory=factory)

    await session.shutdown()

    factory.assert_not_called()
    assert session.state is SessionState.UNSTARTED


@pytest.mark.asyncio
async def test_acquire_after_shutdown_relaunches():
    first, second = make_browser(), make_browser()
    launch = AsyncMock(side_effect=[first, second])
    factory, _ = make_playwright(launch)
    session = BrowserSession(playwright_factory=factory)

    await session.acquire()
    await session.shutdown()

    assert await session.acquire() is second
    assert factory.call_count == 2


@pytest.mark.asyncio
async def test_shutdown_during_launch_fails_waiters_with_launch_error():
    """Waiters on a launch that shutdown() abandons get BrowserLaunchError."""
    gate = asyncio.Event()

    async def gated_launch(**kwargs):
        await gate.wait()
        return make_browser()

    factory, _ = make_playwright(AsyncMock(side_effect=gated_launch))
    session = BrowserSession(playwright_factory=factory)

    pending = [asyncio.ensure_future(session.acquire()) for _ in range(2)]
    await asyncio.sleep(0)
    await session.shutdown()

    for waiter in pending:
        with pytest.raises(BrowserLaunchError, match="cancelled by shutdown"):
            await waiter
    assert session.state is SessionState.UNSTARTED


@pytest.mark.asyncio
async def test_cancelled_caller_still_sees_cancellation():
    """Cancelling one caller does not abort the launch for the others."""
    gate = asyncio.Event()
    browser = make_browser()

    async def gated_launch(**kwargs):
        await gate.wait()
        return browser

    factory, _ = make_playwright(AsyncMock(side_effect=gated_launch))
    session = BrowserSession(playwright_factory=factory)

    cancelled = asyncio.ensure_future(session.acquire())
    other = asyncio.ensure_future(session.acquire())
    await asyncio.sleep(0)
    cancelled.cancel()

    with pytest.raises(asyncio.CancelledError):
        await cancelled

    gate.set()
    assert await other is browser
