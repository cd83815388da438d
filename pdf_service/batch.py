"""
Batch conversion: many URLs, one at a time, on the shared browser.

Items run strictly sequentially with a short throttle between them to cap the
load on the shared Chromium and on target hosts. A failed item never aborts
the batch; every input URL yields exactly one result, in input order.
"""

import asyncio
import uuid
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config import get_settings
from .logger import get_logger
from .models import ConversionResult, RenderOptions
from .renderer import PageRenderer

ProgressCallback = Callable[[int, int, str], None]


async def convert_all(
    urls: Sequence[str],
    options: Optional[RenderOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
    renderer: Optional[PageRenderer] = None,
    throttle_seconds: Optional[float] = None,
) -> List[ConversionResult]:
    """
    Convert each URL to PDF, sequentially.

    Args:
        urls: URLs to convert, in the order results should come back
        options: Render options shared by every item
        on_progress: Called as (completed, total, current_url) before each item
            and as (total, total, "") once all items are done
        renderer: Render pipeline (defaults to one on the shared session)
        throttle_seconds: Pause between items (defaults to settings)

    Returns:
        One ConversionResult per URL, in input order
    """
    renderer = renderer or PageRenderer()
    if throttle_seconds is None:
        throttle_seconds = get_settings().batch_throttle_seconds

    logger = get_logger(__name__, batch_id=uuid.uuid4().hex)
    total = len(urls)
    results: List[ConversionResult] = []
    logger.info(f"Starting batch of {total} URL(s)")

    for index, url in enumerate(urls):
        if on_progress:
            on_progress(index, total, url)

        result = await renderer.render(url, options)
        results.append(result)

        if result.success:
            logger.info(f"[{index + 1}/{total}] {url} -> {result.filename}")
        else:
            logger.warning(f"[{index + 1}/{total}] {url} failed: {result.error_message}")

        if index < total - 1 and throttle_seconds > 0:
            await asyncio.sleep(throttle_seconds)

    if on_progress:
        on_progress(total, total, "")

    summary = summarize(results)
    logger.info(f"Batch finished: {summary['success']} succeeded, {summary['failed']} failed")
    return results


def summarize(results: Sequence[ConversionResult]) -> Dict[str, int]:
    """Counts of total, successful and failed conversions."""
    succeeded = sum(1 for r in results if r.success)
    return {
        "total": len(results),
        "success": succeeded,
        "failed": len(results) - succeeded,
    }


def failure_details(results: Sequence[ConversionResult]) -> List[Dict[str, Any]]:
    """Metadata of every failed item, without payloads."""
    return [r.to_dict() for r in results if not r.success]
