"""
Page render pipeline: one URL in, one ConversionResult out.

Each render runs in its own browser context on the shared Chromium session:
navigate and wait for network idle, run the content-settling stages so that
lazily loaded content is present, then print to PDF. Failures never escape
render(); they are classified into the result.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Sequence

from .browser_session import BrowserSession, get_browser_session
from .config import get_settings
from .errors import ErrorKind, RenderTimeoutError, classify_error, message_for
from .models import (
    ConversionRequest,
    ConversionResult,
    Margins,
    Orientation,
    PageFormat,
    RenderOptions,
)
from .pdf_helpers import url_to_filename
from .url_validator import validate

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, Page, Route

logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1920, "height": 1080}
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Images are kept for visual fidelity
BLOCKED_RESOURCE_TYPES = frozenset({"media", "font"})

MIN_SCALE = 0.1
MAX_SCALE = 2.0
DEFAULT_MARGIN = "10mm"
MARGIN_SIDES = ("top", "right", "bottom", "left")

SCROLL_STEP_PX = 500
SCROLL_INTERVAL_MS = 100
SCROLL_MAX_STEPS = 50
IMAGE_TIMEOUT_MS = 5000

# Extra time on top of navigation, PDF and settling for acquiring the browser
LAUNCH_ALLOWANCE_SECONDS = 30.0

SCROLL_SCRIPT = """
async ({ distance, intervalMs, maxSteps }) => {
  await new Promise((resolve) => {
    let scrolled = 0;
    let steps = 0;
    const timer = setInterval(() => {
      const scrollHeight = document.body ? document.body.scrollHeight : 0;
      window.scrollBy(0, distance);
      scrolled += distance;
      steps += 1;
      if (scrolled >= scrollHeight || steps >= maxSteps) {
        clearInterval(timer);
        window.scrollTo(0, 0);
        resolve();
      }
    }, intervalMs);
  });
}
"""

WAIT_FOR_IMAGES_SCRIPT = """
async (timeoutMs) => {
  const images = Array.from(document.querySelectorAll('img'));
  await Promise.all(images.map((img) => {
    if (img.complete) return Promise.resolve();
    return new Promise((resolve) => {
      img.addEventListener('load', resolve, { once: true });
      img.addEventListener('error', resolve, { once: true });
      setTimeout(resolve, timeoutMs);
    });
  }));
}
"""


@dataclass(frozen=True)
class SettleStage:
    """One step of the content-settling sequence, bounded by its own timeout."""

    name: str
    action: Callable[["Page"], Awaitable[None]]
    timeout_seconds: float


def delay(seconds: float) -> Callable[["Page"], Awaitable[None]]:
    async def _sleep(page: "Page") -> None:
        await asyncio.sleep(seconds)
    return _sleep


async def scroll_pass(page: "Page") -> None:
    """Scroll down in fixed steps to trigger lazy loading, then back to the top."""
    await page.evaluate(
        SCROLL_SCRIPT,
        {"distance": SCROLL_STEP_PX, "intervalMs": SCROLL_INTERVAL_MS, "maxSteps": SCROLL_MAX_STEPS},
    )


async def wait_for_images(page: "Page") -> None:
    """Wait until every <img> has loaded or errored, or its fallback timer fired."""
    await page.evaluate(WAIT_FOR_IMAGES_SCRIPT, IMAGE_TIMEOUT_MS)


SETTLE_STAGES: Sequence[SettleStage] = (
    SettleStage("initial-delay", delay(1.0), 5.0),
    SettleStage("scroll", scroll_pass, 15.0),
    SettleStage("lazy-load-delay", delay(1.5), 5.0),
    SettleStage("images", wait_for_images, 15.0),
    SettleStage("final-delay", delay(0.5), 5.0),
)


def clamp_scale(scale: Optional[float]) -> float:
    if scale is None or math.isnan(scale):
        return 1.0
    return min(max(scale, MIN_SCALE), MAX_SCALE)


def resolve_pdf_options(options: RenderOptions) -> Dict[str, Any]:
    """Apply defaults and clamping, returning keyword arguments for page.pdf()."""
    margins = options.margins or Margins()
    return {
        "format": (options.page_format or PageFormat.A4).value,
        "landscape": options.orientation is Orientation.LANDSCAPE,
        "print_background": True if options.print_background is None else options.print_background,
        "scale": clamp_scale(options.scale),
        "margin": {side: getattr(margins, side) or DEFAULT_MARGIN for side in MARGIN_SIDES},
    }


async def filter_request(route: "Route") -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


async def _safe_close(context: Optional["BrowserContext"]) -> None:
    if context is None:
        return
    try:
        await context.close()
    except Exception as e:
        logger.debug(f"Ignoring error while closing browser context: {e}")


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class PageRenderer:
    """Converts a single URL into a PDF using the shared browser session."""

    def __init__(
        self,
        session: Optional[BrowserSession] = None,
        settle_stages: Sequence[SettleStage] = SETTLE_STAGES,
        default_timeout_ms: Optional[int] = None,
    ):
        self.session = session if session is not None else get_browser_session()
        self.settle_stages = tuple(settle_stages)
        self.default_timeout_ms = default_timeout_ms or get_settings().default_timeout_ms

    def overall_timeout_seconds(self, timeout_ms: int) -> float:
        """Budget for one whole render: navigation, PDF, settling and launch."""
        settle_budget = sum(stage.timeout_seconds for stage in self.settle_stages)
        return 2 * timeout_ms / 1000 + settle_budget + LAUNCH_ALLOWANCE_SECONDS

    async def render(self, url: str, options: Optional[RenderOptions] = None) -> ConversionResult:
        """
        Convert one URL to PDF.

        Args:
            url: Raw URL as supplied by the caller (scheme optional)
            options: Render options; unset fields take pipeline defaults

        Returns:
            ConversionResult; failures are reported in the result, not raised
        """
        started = time.monotonic()
        request = ConversionRequest(url=url, options=options or RenderOptions())
        target = request.normalized_url
        filename = url_to_filename(target)

        if not validate(target):
            logger.warning(f"Rejected URL: {url!r}")
            return self._failure(
                request, filename, ErrorKind.INVALID_URL, message_for(ErrorKind.INVALID_URL), started
            )

        timeout_ms = request.options.timeout_ms or self.default_timeout_ms
        budget = self.overall_timeout_seconds(timeout_ms)
        logger.info(f"Rendering {target} (timeout={timeout_ms}ms)")

        try:
            payload = await asyncio.wait_for(
                self._capture(target, request.options, timeout_ms), timeout=budget
            )
        except asyncio.TimeoutError:
            kind, message = classify_error(RenderTimeoutError("render", int(budget * 1000)))
            logger.warning(f"Render of {target} exceeded {budget:.0f}s")
            return self._failure(request, filename, kind, message, started)
        except Exception as e:
            kind, message = classify_error(e)
            logger.warning(f"Render of {target} failed [{kind.value}]: {e}")
            return self._failure(request, filename, kind, message, started)

        duration_ms = _elapsed_ms(started)
        logger.info(f"Rendered {target}: {len(payload)} bytes in {duration_ms}ms")
        return ConversionResult(
            url=request.url,
            filename=filename,
            payload=payload,
            success=True,
            duration_ms=duration_ms,
        )

    async def _capture(self, url: str, options: RenderOptions, timeout_ms: int) -> bytes:
        browser = await self.session.acquire()
        context = None
        try:
            context = await browser.new_context(viewport=VIEWPORT, user_agent=USER_AGENT)
            page = await context.new_page()

            await page.route("**/*", filter_request)
            page.set_default_navigation_timeout(timeout_ms)
            page.set_default_timeout(timeout_ms)

            await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
            await self.settle(page)

            return await page.pdf(**resolve_pdf_options(options))
        finally:
            await _safe_close(context)

    async def settle(self, page: "Page") -> None:
        """Run the content-settling stages in order."""
        for stage in self.settle_stages:
            try:
                await asyncio.wait_for(stage.action(page), timeout=stage.timeout_seconds)
            except asyncio.TimeoutError as e:
                raise RenderTimeoutError(
                    f"settle stage '{stage.name}'", int(stage.timeout_seconds * 1000)
                ) from e

    @staticmethod
    def _failure(
        request: ConversionRequest,
        filename: str,
        kind: ErrorKind,
        message: str,
        started: float,
    ) -> ConversionResult:
        return ConversionResult(
            url=request.url,
            filename=filename,
            success=False,
            error_kind=kind,
            error_message=message,
            duration_ms=_elapsed_ms(started),
        )
