"""Plain text for a PDF page range."""

from __future__ import annotations

import structlog

from chapterkit.core.models import PdfRef
from chapterkit.core.pdf_document import PdfSource, safe_page_fragments

logger = structlog.get_logger(__name__)


def page_marker(page_number: int) -> str:
    return f"--- Page {page_number} ---"


def extract_page_range(pdf: PdfSource, start_page: int, end_page: int) -> str:
    """Extract text for pages start_page..end_page (inclusive, 1-based).

    Each page's fragments are joined with single spaces and preceded by a
    "--- Page N ---" marker. Pages without text (scanned images, blank
    pages, unreadable pages) contribute nothing.
    """
    first = max(start_page, 1)
    last = min(end_page, pdf.page_count)

    parts = []
    for page_number in range(first, last + 1):
        fragments = safe_page_fragments(pdf, page_number)
        text = " ".join(f.text.strip() for f in fragments if f.text.strip())
        if text:
            parts.append(f"{page_marker(page_number)}\n{text}")

    logger.debug("pdf_text.range", start=first, end=last, pages_with_text=len(parts))
    return "\n\n".join(parts).strip()


def extract_pdf_text(pdf: PdfSource, ref: PdfRef) -> str:
    return extract_page_range(pdf, ref.start_page, ref.end_page)
