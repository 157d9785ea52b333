"""chapterkit: chapter discovery and plain-text extraction for EPUB and PDF books."""

from chapterkit.core.book_reader import (
    PLACEHOLDER_TEXT,
    describe_document,
    detect_format,
    discover,
    discover_chapters,
    extract_all,
    extract_text,
    open_document,
)
from chapterkit.core.cancellation import CancellationToken
from chapterkit.core.models import (
    Chapter,
    DiscoveryResult,
    DocumentInfo,
    EpubRef,
    PdfRef,
)

__version__ = "0.2.0"

__all__ = [
    "PLACEHOLDER_TEXT",
    "CancellationToken",
    "Chapter",
    "DiscoveryResult",
    "DocumentInfo",
    "EpubRef",
    "PdfRef",
    "describe_document",
    "detect_format",
    "discover",
    "discover_chapters",
    "extract_all",
    "extract_text",
    "open_document",
]
