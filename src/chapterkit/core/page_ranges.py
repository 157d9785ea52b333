"""Turn chapter start pages into contiguous PDF page ranges."""

from __future__ import annotations

import structlog

from chapterkit.core.models import Chapter, PdfRef
from chapterkit.utils.text_utils import clean_title

logger = structlog.get_logger(__name__)


def build_page_ranges(
    starts: list[tuple[str, int]],
    total_pages: int,
    title_max_length: int = 60,
) -> tuple[Chapter, ...]:
    """Build chapters from (title, start_page) pairs.

    Each chapter ends on the page before the next chapter's start; the last
    one ends on the last page. Starts outside 1..total_pages, and repeats of
    an already used start page, are dropped so ranges never overlap.

    Args:
        starts: (title, 1-based start page) pairs, in any order
        total_pages: Page count of the document
        title_max_length: Truncation length for titles

    Returns:
        Chapters ordered by start page (may be empty)
    """
    kept: list[tuple[str, int]] = []
    used_pages: set[int] = set()

    for title, start in sorted(starts, key=lambda s: s[1]):
        if start < 1 or start > total_pages:
            logger.debug("page_ranges.out_of_range", title=title, start=start, total=total_pages)
            continue
        if start in used_pages:
            logger.debug("page_ranges.duplicate_start", title=title, start=start)
            continue
        used_pages.add(start)
        kept.append((title, start))

    chapters = []
    for index, (title, start) in enumerate(kept):
        end = kept[index + 1][1] - 1 if index + 1 < len(kept) else total_pages
        chapters.append(
            Chapter(
                title=clean_title(title, title_max_length) or f"Chapter {index + 1}",
                order=index + 1,
                content_ref=PdfRef(start_page=start, end_page=end),
            )
        )
    return tuple(chapters)
