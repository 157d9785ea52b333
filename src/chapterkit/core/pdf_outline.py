"""Chapter detection from a PDF's embedded bookmarks (outline).

Steps:
1. Flatten the bookmark tree depth-first (explicit stack), dropping entries
   whose destination does not resolve to a page
2. Sort by page
3. Classify main chapters:
   - "Chapter N" titles exist -> only those
   - "N.M" sub-section titles exist -> level 0 items and bare "N." titles
   - otherwise -> level 0 items
   Canonical section names (Introduction, Index, ...) always qualify.
4. Each chapter ends the page before the next one starts
"""

from __future__ import annotations

import structlog

from chapterkit.config.app_config import DEFAULT_CONFIG, DiscoveryConfig
from chapterkit.core.cancellation import CancellationToken, check
from chapterkit.core.errors import OutlineUnavailableError
from chapterkit.core.models import FlatOutlineItem, Found, NotFound, OutlineNode, StageResult
from chapterkit.core.page_ranges import build_page_ranges
from chapterkit.core.patterns import (
    BARE_NUMBER_DOT_PATTERN,
    CANONICAL_SECTIONS,
    DECIMAL_SECTION_PATTERN,
    OUTLINE_CHAPTER_PATTERN,
)
from chapterkit.core.pdf_document import PdfSource

logger = structlog.get_logger(__name__)

OUTLINE_CONFIDENCE = 0.95


def flatten_outline(roots: list[OutlineNode]) -> list[FlatOutlineItem]:
    """Depth-first flattening with (node, level, parent_title) frames.

    Unresolved entries are skipped but their children are still visited.
    The result is in document (pre-order) order, not yet sorted by page.
    """
    items: list[FlatOutlineItem] = []
    stack: list[tuple[OutlineNode, int, str | None]] = [
        (node, 0, None) for node in reversed(roots)
    ]

    while stack:
        node, level, parent_title = stack.pop()
        if node.destination_page is not None and node.destination_page > 0:
            items.append(
                FlatOutlineItem(
                    title=node.title,
                    page_number=node.destination_page,
                    level=level,
                    parent_title=parent_title,
                )
            )
        for child in reversed(node.children):
            stack.append((child, level + 1, node.title))

    return items


def is_canonical_section(title: str) -> bool:
    return title.strip().rstrip(".:").strip().casefold() in CANONICAL_SECTIONS


def classify_main_chapters(items: list[FlatOutlineItem]) -> list[FlatOutlineItem]:
    """Pick the items that start a main chapter (input already sorted by page)."""
    if any(OUTLINE_CHAPTER_PATTERN.match(item.title) for item in items):
        rule = "chapter_word"

        def is_main(item: FlatOutlineItem) -> bool:
            return bool(OUTLINE_CHAPTER_PATTERN.match(item.title))

    elif any(DECIMAL_SECTION_PATTERN.match(item.title) for item in items):
        rule = "numbered"

        def is_main(item: FlatOutlineItem) -> bool:
            return item.level == 0 or bool(BARE_NUMBER_DOT_PATTERN.match(item.title))

    else:
        rule = "top_level"

        def is_main(item: FlatOutlineItem) -> bool:
            return item.level == 0

    main = [item for item in items if is_main(item) or is_canonical_section(item.title)]
    logger.debug("pdf_outline.classified", rule=rule, items=len(items), main=len(main))
    return main


def outline_chapters(
    pdf: PdfSource,
    config: DiscoveryConfig = DEFAULT_CONFIG,
    cancel: CancellationToken | None = None,
) -> StageResult:
    """Build chapters from the embedded outline.

    Returns:
        Found with chapters ordered by start page, or NotFound wrapping
        OutlineUnavailableError when there is no usable outline
    """
    roots = pdf.outline()
    if not roots:
        return NotFound(OutlineUnavailableError("El PDF no tiene marcadores (outline)"))

    check(cancel, "outline")
    items = flatten_outline(roots)
    if not items:
        return NotFound(OutlineUnavailableError("Ningún marcador apunta a una página válida"))

    items.sort(key=lambda item: item.page_number)
    main = classify_main_chapters(items)
    if not main:
        main = [item for item in items if item.level == 0]

    chapters = build_page_ranges(
        [(item.title, item.page_number) for item in main],
        pdf.page_count,
        config.title_max_length,
    )
    if not chapters:
        return NotFound(OutlineUnavailableError("El outline no produjo capítulos"))

    logger.info("pdf_outline.found", items=len(items), chapters=len(chapters))
    return Found(chapters=chapters, confidence=OUTLINE_CONFIDENCE)
