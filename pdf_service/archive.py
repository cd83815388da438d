"""
ZIP bundling of generated PDFs.
"""

import logging
import os
import zipfile
from io import BytesIO
from typing import Iterable, Set, Tuple

from .errors import ArchiveError
from .pdf_helpers import timestamp_ms

logger = logging.getLogger(__name__)

COMPRESSION_LEVEL = 9


def archive_filename() -> str:
    return f"pdf-export-{timestamp_ms()}.zip"


def _unique_name(name: str, used: Set[str]) -> str:
    if name not in used:
        return name
    stem, ext = os.path.splitext(name)
    counter = 1
    while f"{stem}-{counter}{ext}" in used:
        counter += 1
    return f"{stem}-{counter}{ext}"


def bundle(named_payloads: Iterable[Tuple[str, bytes]]) -> bytes:
    """
    Pack (filename, payload) pairs into a ZIP archive at maximum compression.

    Entries keep their input order. A name that repeats an earlier entry gets a
    "-1", "-2", ... suffix before its extension.

    Returns:
        The complete archive bytes, available only once the archive is closed

    Raises:
        ArchiveError: if any entry cannot be written; no partial archive is returned
    """
    buffer = BytesIO()
    used: Set[str] = set()

    try:
        with zipfile.ZipFile(
            buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=COMPRESSION_LEVEL
        ) as archive:
            for name, payload in named_payloads:
                entry_name = _unique_name(name, used)
                used.add(entry_name)
                archive.writestr(entry_name, payload)
    except Exception as e:
        logger.error(f"Failed to build archive: {e}")
        raise ArchiveError(f"Failed to build archive: {e}") from e

    data = buffer.getvalue()
    logger.info(f"Built archive with {len(used)} entr{'y' if len(used) == 1 else 'ies'}: {len(data)} bytes")
    return data
