"""
Data model for URL-to-PDF conversion.

RenderOptions is the caller-facing input (every field optional); the render
pipeline resolves defaults. ConversionResult is produced exactly once per
requested URL and never mutated.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .errors import ErrorKind
from .url_validator import normalize_url


class PageFormat(str, Enum):
    A4 = "A4"
    LETTER = "Letter"
    LEGAL = "Legal"


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class SessionState(str, Enum):
    """Lifecycle of the shared browser session."""

    UNSTARTED = "unstarted"
    LAUNCHING = "launching"
    READY = "ready"
    CRASHED = "crashed"


class Margins(BaseModel):
    """Page margins in CSS units; each side defaults independently."""

    model_config = ConfigDict(frozen=True)

    top: Optional[str] = None
    right: Optional[str] = None
    bottom: Optional[str] = None
    left: Optional[str] = None


class RenderOptions(BaseModel):
    """PDF rendering options as supplied by the caller."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page_format: Optional[PageFormat] = Field(
        None,
        validation_alias=AliasChoices("page_format", "pageFormat", "format"),
        description="Page format: A4, Letter or Legal",
    )
    orientation: Optional[Orientation] = Field(None, description="portrait or landscape")
    print_background: Optional[bool] = Field(
        None,
        validation_alias=AliasChoices("print_background", "printBackground"),
        description="Print background colors/images",
    )
    scale: Optional[float] = Field(None, description="Render scale, clamped to [0.1, 2.0]")
    margins: Optional[Margins] = Field(None, description="Page margins (top, right, bottom, left)")
    timeout_ms: Optional[int] = Field(
        None,
        gt=0,
        validation_alias=AliasChoices("timeout_ms", "timeoutMs", "timeout"),
        description="Navigation/operation timeout in milliseconds",
    )


@dataclass(frozen=True)
class ConversionRequest:
    """One URL to convert together with its options."""

    url: str
    options: RenderOptions = field(default_factory=RenderOptions)

    @property
    def normalized_url(self) -> str:
        return normalize_url(self.url)


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of converting one URL."""

    url: str
    filename: str
    payload: bytes = b""
    success: bool = False
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Metadata view without the payload, for JSON serialization."""
        return {
            "url": self.url,
            "filename": self.filename,
            "success": self.success,
            "size_bytes": len(self.payload),
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error": self.error_message,
            "duration_ms": self.duration_ms,
        }
