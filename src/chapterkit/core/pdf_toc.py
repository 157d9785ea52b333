"""Chapter detection from a rendered table-of-contents page.

Used when the PDF has no usable outline.

Steps:
1. Find the TOC page among the first pages ("Table of Contents",
   "Contents", "Índice", ...)
2. Rebuild text lines from positioned fragments (y within tolerance)
3. Parse "Title ....... 123" lines into (title, printed page) entries
4. Keep main entries (drop "1.1" sub-sections); if fewer than 3 survive,
   the filter was wrong for this book and every entry is kept
5. Estimate one printed -> physical page offset from a few entries whose
   titles are found at the top of nearby pages
6. Shift every entry by the offset and build page ranges

Confidence:
- 0.7 base, +0.1 per matched offset sample (max 0.95)
- 0.5 with warning "toc_offset_unverified" when no sample matched and the
  offset fell back to 0
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from chapterkit.config.app_config import DEFAULT_CONFIG, DiscoveryConfig
from chapterkit.core.cancellation import CancellationToken, check
from chapterkit.core.errors import TocNotFoundError
from chapterkit.core.models import Found, NotFound, StageResult, TextFragment, TocEntry
from chapterkit.core.page_ranges import build_page_ranges
from chapterkit.core.patterns import (
    BARE_INTEGER_PATTERN,
    DECIMAL_SECTION_PATTERN,
    LEADER_PATTERN,
    TOC_ANYWHERE_PATTERN,
    TOC_HEADER_PATTERN,
    TOC_LINE_PATTERN,
)
from chapterkit.core.pdf_document import PdfSource, safe_page_fragments, safe_page_text
from chapterkit.utils.text_utils import normalize_for_match

logger = structlog.get_logger(__name__)

MIN_TITLE_LENGTH = 3
UNVERIFIED_OFFSET_CONFIDENCE = 0.5
INCONSISTENT_SAMPLE_SPREAD = 2


@dataclass
class PageOffset:
    """Printed -> physical page correction and the samples behind it."""

    value: int
    samples: list[int] = field(default_factory=list)

    @property
    def verified(self) -> bool:
        return bool(self.samples)


def has_toc_indicator(text: str) -> bool:
    if TOC_ANYWHERE_PATTERN.search(text):
        return True
    return any(TOC_HEADER_PATTERN.match(line) for line in text.splitlines())


def find_toc_page(
    pdf: PdfSource,
    scan_pages: int = 20,
    cancel: CancellationToken | None = None,
) -> int | None:
    """Return the first page (1-based) carrying a TOC indicator."""
    for page_number in range(1, min(scan_pages, pdf.page_count) + 1):
        check(cancel, "toc")
        if has_toc_indicator(safe_page_text(pdf, page_number)):
            return page_number
    return None


def group_lines(fragments: list[TextFragment], tolerance: float = 3.0) -> list[str]:
    """Rebuild text lines from positioned fragments.

    Fragments whose y lies within `tolerance` of a line's first fragment
    join that line; each line is then read left to right.
    """
    ordered = sorted(fragments, key=lambda f: (f.y, f.x))
    lines: list[list[TextFragment]] = []
    line_y: float | None = None

    for fragment in ordered:
        if lines and line_y is not None and abs(fragment.y - line_y) <= tolerance:
            lines[-1].append(fragment)
        else:
            lines.append([fragment])
            line_y = fragment.y

    texts = (
        " ".join(f.text.strip() for f in sorted(line, key=lambda f: f.x)) for line in lines
    )
    return [text for text in texts if text.strip()]


def parse_toc_line(line: str) -> TocEntry | None:
    """Parse one TOC line ("Title ....... 123"); None if it is not an entry."""
    line = line.strip()
    if not line or TOC_HEADER_PATTERN.match(line):
        return None

    match = TOC_LINE_PATTERN.match(line)
    if not match:
        return None

    title = LEADER_PATTERN.sub("", match.group(1) or "").strip()
    if len(title) < MIN_TITLE_LENGTH or title.replace(" ", "").isdigit():
        return None

    return TocEntry(title=title, printed_page=int(match.group(2)))


def parse_toc_lines(lines: list[str]) -> list[TocEntry]:
    entries = []
    for line in lines:
        entry = parse_toc_line(line)
        if entry is not None:
            entries.append(entry)
    return entries


def select_main_entries(entries: list[TocEntry], min_main: int = 3) -> list[TocEntry]:
    """Drop "1.1"-style sub-sections; keep everything if too few remain."""
    main = [
        e for e in entries
        if not DECIMAL_SECTION_PATTERN.match(e.title) and not BARE_INTEGER_PATTERN.match(e.title)
    ]
    if len(main) < min_main:
        logger.debug("pdf_toc.main_filter_relaxed", main=len(main), total=len(entries))
        return entries
    return main


def _find_title_page(
    pdf: PdfSource,
    entry: TocEntry,
    toc_page: int,
    config: DiscoveryConfig,
    cancel: CancellationToken | None,
) -> int | None:
    target = normalize_for_match(entry.title)
    if not target:
        return None

    first = max(entry.printed_page - config.offset_search_before, toc_page + 1)
    last = min(entry.printed_page + config.offset_search_after, pdf.page_count)
    for page_number in range(first, last + 1):
        check(cancel, "toc")
        leading = safe_page_text(pdf, page_number)[: config.offset_leading_chars]
        if target in normalize_for_match(leading):
            return page_number
    return None


def compute_page_offset(
    pdf: PdfSource,
    entries: list[TocEntry],
    toc_page: int,
    config: DiscoveryConfig = DEFAULT_CONFIG,
    cancel: CancellationToken | None = None,
) -> PageOffset:
    """Estimate the printed -> physical page offset.

    The first few entries are looked up in a window of pages after the TOC
    page; each hit contributes (physical - printed). The offset is the
    rounded mean of the hits, or 0 when nothing matched.
    """
    samples = []
    for entry in entries[: config.offset_sample_size]:
        page = _find_title_page(pdf, entry, toc_page, config, cancel)
        if page is not None:
            samples.append(page - entry.printed_page)

    if not samples:
        return PageOffset(value=0)
    return PageOffset(value=round(sum(samples) / len(samples)), samples=samples)


def toc_chapters(
    pdf: PdfSource,
    config: DiscoveryConfig = DEFAULT_CONFIG,
    cancel: CancellationToken | None = None,
) -> StageResult:
    """Build chapters from a rendered table of contents.

    Returns:
        Found (with confidence and warnings about the page offset), or
        NotFound wrapping TocNotFoundError
    """
    toc_page = find_toc_page(pdf, config.toc_scan_pages, cancel)
    if toc_page is None:
        return NotFound(
            TocNotFoundError(f"No se encontró TOC en las primeras {config.toc_scan_pages} páginas")
        )

    lines = group_lines(safe_page_fragments(pdf, toc_page), config.line_tolerance)
    entries = parse_toc_lines(lines)
    if not entries:
        return NotFound(TocNotFoundError(f"TOC en página {toc_page} sin entradas parseables"))

    selected = select_main_entries(entries, config.min_main_toc_entries)
    offset = compute_page_offset(pdf, selected, toc_page, config, cancel)

    chapters = build_page_ranges(
        [(entry.title, entry.printed_page + offset.value) for entry in selected],
        pdf.page_count,
        config.title_max_length,
    )
    if not chapters:
        return NotFound(
            TocNotFoundError(f"Las entradas del TOC (página {toc_page}) quedan fuera del documento")
        )

    warnings: list[str] = []
    if offset.verified:
        confidence = min(0.7 + 0.1 * len(offset.samples), 0.95)
        if max(offset.samples) - min(offset.samples) > INCONSISTENT_SAMPLE_SPREAD:
            warnings.append("toc_offset_inconsistent")
    else:
        confidence = UNVERIFIED_OFFSET_CONFIDENCE
        warnings.append("toc_offset_unverified")

    logger.info(
        "pdf_toc.found",
        toc_page=toc_page,
        entries=len(entries),
        chapters=len(chapters),
        offset=offset.value,
        offset_samples=len(offset.samples),
    )
    return Found(chapters=chapters, confidence=confidence, warnings=tuple(warnings))
