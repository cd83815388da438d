"""
CLI Entry Point: Convert web pages to PDF

Usage:
    python -m pdf_service.cli https://example.com
    python -m pdf_service.cli example.com docs.python.org -o export.zip
    python -m pdf_service.cli https://example.com --format Letter --landscape --scale 0.8
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import List, Optional

from .archive import archive_filename, bundle
from .batch import convert_all, summarize
from .browser_session import shutdown_browser_session
from .config import get_settings
from .logger import get_logger, setup_logging
from .models import Margins, Orientation, PageFormat, RenderOptions

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert web pages to PDF (one URL -> PDF, several -> ZIP)"
    )
    parser.add_argument("urls", nargs="+", help="URLs to convert (scheme optional)")
    parser.add_argument("-o", "--output", help="Output file (default: derived from the URL)")
    parser.add_argument(
        "--format",
        choices=[f.value for f in PageFormat],
        default=None,
        help="Page format (default: A4)",
    )
    parser.add_argument("--landscape", action="store_true", help="Landscape orientation")
    parser.add_argument("--scale", type=float, default=None, help="Scale, clamped to 0.1-2.0")
    parser.add_argument("--margin", default=None, help="Margin for all sides, e.g. 15mm")
    parser.add_argument("--timeout-ms", type=int, default=None, help="Per-URL timeout in ms")
    parser.add_argument(
        "--no-background", action="store_true", help="Do not print background colors/images"
    )
    return parser


def options_from_args(args: argparse.Namespace) -> RenderOptions:
    margins = None
    if args.margin:
        margins = Margins(top=args.margin, right=args.margin, bottom=args.margin, left=args.margin)
    return RenderOptions(
        page_format=PageFormat(args.format) if args.format else None,
        orientation=Orientation.LANDSCAPE if args.landscape else None,
        print_background=False if args.no_background else None,
        scale=args.scale,
        margins=margins,
        timeout_ms=args.timeout_ms,
    )


def _print_progress(completed: int, total: int, url: str) -> None:
    if url:
        print(f"[{completed + 1}/{total}] Converting {url}...")


async def run(urls: List[str], options: RenderOptions, output: Optional[str]) -> int:
    """Convert the URLs and write the PDF or ZIP. Returns the process exit code."""
    try:
        results = await convert_all(urls, options, on_progress=_print_progress)
    finally:
        await shutdown_browser_session()

    for result in results:
        if not result.success:
            print(f"  ✗ {result.url}: {result.error_message}", file=sys.stderr)

    successes = [r for r in results if r.success]
    if not successes:
        print("No conversion succeeded", file=sys.stderr)
        return 1

    if len(urls) == 1:
        target = Path(output or successes[0].filename)
        target.write_bytes(successes[0].payload)
    else:
        target = Path(output or archive_filename())
        target.write_bytes(bundle((r.filename, r.payload) for r in successes))

    summary = summarize(results)
    print(f"Wrote {target} ({summary['success']}/{summary['total']} converted)")
    return 0


async def _main_with_signals(urls: List[str], options: RenderOptions, output: Optional[str]) -> int:
    # SIGTERM cancels the main task so the browser is shut down before exit
    task = asyncio.ensure_future(run(urls, options, output))
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, task.cancel)
    except (NotImplementedError, RuntimeError):
        pass  # not supported on this platform
    return await task


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    try:
        return asyncio.run(_main_with_signals(args.urls, options_from_args(args), args.output))
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.warning("Interrupted; browser session closed")
        return 130


if __name__ == "__main__":
    sys.exit(main())
