"""
PDF Service - FastAPI application for converting web pages to PDF.

A single URL is returned as a PDF; several URLs are converted one after the
other on the shared Chromium session and returned as a ZIP of the successful
conversions.
"""

import asyncio
import json
from datetime import datetime
from functools import lru_cache
from io import BytesIO
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from . import __version__
from .archive import archive_filename, bundle
from .batch import convert_all, failure_details, summarize
from .browser_session import get_browser_session, shutdown_browser_session
from .config import get_settings, validate_config_on_startup
from .errors import ArchiveError, ErrorKind
from .logger import get_logger, setup_logging
from .models import ConversionResult, RenderOptions
from .renderer import PageRenderer

settings = get_settings()
setup_logging(settings.log_level, settings.log_format)
logger = get_logger(__name__)

app = FastAPI(
    title="PDF Service",
    version=__version__,
    description="Converts web pages to PDF using Playwright/Chromium"
)

MAX_CONCURRENT_REQUESTS = settings.max_concurrent_requests

# Semaphore for rate limiting
_conversion_semaphore = asyncio.Semaphore(MAX_CONCURRENT_REQUESTS)

# Set when the browser could not be launched at startup
_browser_error: Optional[str] = None


@lru_cache()
def get_renderer() -> PageRenderer:
    return PageRenderer()


# ============================================================================
# Lifecycle
# ============================================================================

@app.on_event("startup")
async def warm_browser_on_startup():
    """
    Validate configuration and launch the shared browser.

    A failed launch is recorded for /health; conversions will retry the launch.
    """
    global _browser_error

    validate_config_on_startup()
    if not settings.warm_browser_on_startup:
        return

    logger.info("PDF Service starting - launching shared Chromium...")
    try:
        await get_browser_session().acquire()
        _browser_error = None
        logger.info("✅ Chromium launched")
    except Exception as e:
        _browser_error = str(e)
        logger.error(f"❌ Chromium launch failed: {_browser_error}")
        logger.error("Conversions will retry the launch on demand.")


@app.on_event("shutdown")
async def close_browser_on_shutdown():
    """Close the shared browser before the process exits (uvicorn runs this on SIGINT/SIGTERM)."""
    logger.info("PDF Service stopping - closing shared Chromium...")
    await shutdown_browser_session()


# ============================================================================
# Request/Response Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    timestamp: datetime
    browser_state: str
    active_conversions: int
    max_concurrent: int
    browser_error: Optional[str] = None


class ConvertRequest(BaseModel):
    """URLs to convert and the options shared by all of them."""
    urls: List[str] = Field(..., description="URLs to convert (scheme optional)")
    options: RenderOptions = Field(default_factory=RenderOptions, description="PDF options")


def _active_conversions() -> int:
    return MAX_CONCURRENT_REQUESTS - _conversion_semaphore._value


def _clean_urls(urls: List[str]) -> List[str]:
    return [url.strip() for url in urls if url and url.strip()]


def _failure_detail(result: ConversionResult) -> Dict[str, Any]:
    detail = result.to_dict()
    detail["error"] = result.error_message or "Conversion failed"
    return detail


def _file_response(data: bytes, media_type: str, filename: str, extra_headers: Optional[Dict[str, str]] = None):
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Content-Length": str(len(data)),
    }
    headers.update(extra_headers or {})
    return StreamingResponse(BytesIO(data), media_type=media_type, headers=headers)


# ============================================================================
# Health Check Endpoint
# ============================================================================

@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint for container orchestration.

    Returns HTTP 503 if the browser could not be launched at startup.
    """
    session = get_browser_session()

    if _browser_error is not None and not session.is_ready:
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "timestamp": datetime.utcnow().isoformat(),
                "browser_state": session.state.value,
                "active_conversions": _active_conversions(),
                "max_concurrent": MAX_CONCURRENT_REQUESTS,
                "browser_error": _browser_error,
                "message": "PDF service is unhealthy - Chromium not available"
            }
        )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        browser_state=session.state.value,
        active_conversions=_active_conversions(),
        max_concurrent=MAX_CONCURRENT_REQUESTS,
    )


# ============================================================================
# Conversion Endpoint
# ============================================================================

@app.post("/convert")
async def convert(request: ConvertRequest):
    """
    Convert one or more web pages to PDF.

    Returns:
        application/pdf for a single URL, application/zip for several

    Raises:
        HTTPException: 400 for invalid input, 422 for a rejected single URL,
            502 when nothing could be converted, 503 for overload
    """
    if not request.urls:
        raise HTTPException(status_code=400, detail="At least one URL is required")

    if len(request.urls) > settings.max_urls_per_request:
        raise HTTPException(
            status_code=400,
            detail=f"At most {settings.max_urls_per_request} URLs per request"
        )

    urls = _clean_urls(request.urls)
    if not urls:
        raise HTTPException(status_code=400, detail="No valid URL provided")

    # Check capacity
    if _conversion_semaphore._value <= 0:
        logger.warning("PDF service overloaded, rejecting request")
        raise HTTPException(
            status_code=503,
            detail="Service overloaded. Too many concurrent conversions."
        )

    async with _conversion_semaphore:
        if len(urls) == 1:
            result = await get_renderer().render(urls[0], request.options)
            if not result.success:
                status = 422 if result.error_kind is ErrorKind.INVALID_URL else 502
                raise HTTPException(status_code=status, detail=_failure_detail(result))
            return _file_response(result.payload, "application/pdf", result.filename)

        results = await convert_all(urls, request.options, renderer=get_renderer())

    successes = [r for r in results if r.success]
    summary = summarize(results)

    if not successes:
        logger.error(f"No conversion succeeded out of {summary['total']}")
        raise HTTPException(
            status_code=502,
            detail={
                "error": "No conversion succeeded",
                "details": failure_details(results),
            }
        )

    try:
        zip_bytes = bundle((r.filename, r.payload) for r in successes)
    except ArchiveError as e:
        raise HTTPException(status_code=500, detail=str(e))

    metadata = dict(summary, failures=failure_details(results))
    return _file_response(
        zip_bytes,
        "application/zip",
        archive_filename(),
        {"X-Conversion-Results": json.dumps(metadata)},
    )
