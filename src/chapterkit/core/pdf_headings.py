"""Chapter detection from heading-like text at the top of each page.

Last content-based strategy: scans every page, so it only runs when neither
the outline nor a TOC page produced chapters.

Per page, the first few text fragments are joined and tested:
- "1.1 ..." / "Section 1.1" -> sub-section, skipped
- "Chapter N" / "Chap. N" -> chapter
- "Part N" -> part
- "N. Title" -> numbered chapter
- exact canonical name ("Introduction", "Index", ...) -> section
A (kind, number) pair is recorded once, so a heading repeated on the next
page (running header, wrapped title) does not open a second chapter.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from chapterkit.config.app_config import DEFAULT_CONFIG, DiscoveryConfig
from chapterkit.core.cancellation import CancellationToken, check
from chapterkit.core.errors import NoChaptersDetectedError
from chapterkit.core.models import Found, NotFound, StageResult, TextFragment
from chapterkit.core.page_ranges import build_page_ranges
from chapterkit.core.patterns import HEADING_PATTERNS, SUBSECTION_PATTERNS
from chapterkit.core.pdf_document import PdfSource, safe_page_fragments
from chapterkit.core.pdf_outline import is_canonical_section

logger = structlog.get_logger(__name__)

HEURISTIC_CONFIDENCE = 0.6
MAX_SUBTITLE_LENGTH = 80


@dataclass(frozen=True)
class DetectedHeading:
    """A page that opens a chapter."""

    page_number: int
    title: str
    kind: str
    token: str
    font_size: float = 0.0


def classify_heading(lead: str, first_fragment: str) -> tuple[str, str] | None:
    """Return (kind, token) for heading-like text, None otherwise."""
    if any(pattern.match(lead) for pattern in SUBSECTION_PATTERNS):
        return None

    for kind, pattern in HEADING_PATTERNS:
        match = pattern.match(lead)
        if match:
            return kind, match.group(1).upper()

    if is_canonical_section(first_fragment):
        return "section", first_fragment.strip().rstrip(".:").casefold()

    return None


def _heading_title(kind: str, fragments: list[TextFragment]) -> str:
    first = fragments[0].text.strip()
    # "Chapter 3" alone on its line: take the next line as the subtitle
    if kind in ("chapter", "part") and len(first.split()) <= 2 and len(fragments) > 1:
        subtitle = fragments[1].text.strip()
        if subtitle and len(subtitle) <= MAX_SUBTITLE_LENGTH:
            return f"{first}: {subtitle}"
    return first


def detect_page_heading(
    page_number: int,
    fragments: list[TextFragment],
    fragment_count: int = 5,
) -> DetectedHeading | None:
    """Test the leading fragments of one page."""
    leading = [f for f in fragments if f.text.strip()][:fragment_count]
    if not leading:
        return None

    lead = " ".join(f.text.strip() for f in leading)
    classified = classify_heading(lead, leading[0].text)
    if classified is None:
        return None

    kind, token = classified
    return DetectedHeading(
        page_number=page_number,
        title=_heading_title(kind, leading),
        kind=kind,
        token=token,
        font_size=max(f.font_size for f in leading),
    )


def detect_headings(
    pdf: PdfSource,
    fragment_count: int = 5,
    cancel: CancellationToken | None = None,
) -> list[DetectedHeading]:
    """Scan every page and return the first occurrence of each heading."""
    headings: list[DetectedHeading] = []
    seen: set[str] = set()

    for page_number in range(1, pdf.page_count + 1):
        check(cancel, "headings")
        heading = detect_page_heading(
            page_number, safe_page_fragments(pdf, page_number), fragment_count
        )
        if heading is None:
            continue
        if heading.token in seen:
            logger.debug("pdf_headings.duplicate", page=page_number, token=heading.token)
            continue
        seen.add(heading.token)
        headings.append(heading)

    return headings


def heading_chapters(
    pdf: PdfSource,
    config: DiscoveryConfig = DEFAULT_CONFIG,
    cancel: CancellationToken | None = None,
) -> StageResult:
    """Build chapters from detected page headings.

    Returns:
        Found, or NotFound wrapping NoChaptersDetectedError
    """
    headings = detect_headings(pdf, config.heading_fragment_count, cancel)
    chapters = build_page_ranges(
        [(h.title, h.page_number) for h in headings],
        pdf.page_count,
        config.title_max_length,
    )
    if not chapters:
        return NotFound(NoChaptersDetectedError("No se detectaron encabezados de capítulo"))

    logger.info("pdf_headings.found", pages=pdf.page_count, chapters=len(chapters))
    return Found(chapters=chapters, confidence=HEURISTIC_CONFIDENCE)
