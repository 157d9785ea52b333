"""Chapter title heuristics for EPUB content documents.

Cascade (first non-empty wins):
1. First heading under <body>
2. First heading anywhere
3. First short bold/strong text without a " - " suffix
4. Chapter-like token in the file name
5. <title> text without "Title - Author" separators
6. "Chapter {n}"
"""

from __future__ import annotations

import posixpath
import re

import structlog
from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from chapterkit.core.markup_text import parse_markup
from chapterkit.core.patterns import FILENAME_CHAPTER_PATTERN, TITLE_SEPARATORS
from chapterkit.utils.text_utils import clean_title

logger = structlog.get_logger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
BOLD_TAGS = ["b", "strong"]
MAX_CANDIDATE_LENGTH = 100
DEFAULT_TITLE_LENGTH = 60

WHITESPACE = re.compile(r"\s+")
FILENAME_SEPARATORS = re.compile(r"[_\-.\s]+")


def generic_title(position: int) -> str:
    return f"Chapter {position}"


def _text_of(tag) -> str:
    return WHITESPACE.sub(" ", tag.get_text()).strip()


def _first_heading(scope) -> str | None:
    if scope is None:
        return None
    for heading in scope.find_all(HEADING_TAGS):
        text = _text_of(heading)
        if text:
            return text
    return None


def _first_bold(soup: BeautifulSoup) -> str | None:
    for tag in soup.find_all(BOLD_TAGS):
        text = _text_of(tag)
        if text and len(text) <= MAX_CANDIDATE_LENGTH and " - " not in text:
            return text
    return None


def title_from_filename(path: str) -> str | None:
    """Build a title from a chapter-like file name ("chap03.xhtml" -> "Chap03")."""
    stem = posixpath.splitext(posixpath.basename(path))[0]
    if not FILENAME_CHAPTER_PATTERN.search(stem):
        return None
    words = [w for w in FILENAME_SEPARATORS.split(stem) if w]
    if not words:
        return None
    return " ".join(w.capitalize() for w in words)


def _title_element(soup: BeautifulSoup) -> str | None:
    tag = soup.find("title")
    if tag is None:
        return None
    text = _text_of(tag)
    if not text or len(text) >= MAX_CANDIDATE_LENGTH:
        return None
    if any(sep in text for sep in TITLE_SEPARATORS):
        return None
    return text


def title_from_soup(soup: BeautifulSoup, path: str) -> str | None:
    """Run the cascade on a parsed document; None if nothing matched."""
    candidates = (
        lambda: _first_heading(soup.body),
        lambda: _first_heading(soup),
        lambda: _first_bold(soup),
        lambda: title_from_filename(path),
        lambda: _title_element(soup),
    )
    for candidate in candidates:
        title = candidate()
        if title:
            return title
    return None


def derive_title(
    markup: bytes | str,
    path: str,
    position: int,
    max_length: int = DEFAULT_TITLE_LENGTH,
) -> str:
    """Return a display title for one content document. Never empty.

    Args:
        markup: Content document source
        path: Resolved path of the document inside the package
        position: 1-based position among the book's chapters
        max_length: Truncation length for the final title
    """
    try:
        soup = parse_markup(markup)
    except (ParserRejectedMarkup, ValueError) as e:
        logger.warning("epub_titles.parse_failed", path=path, error=str(e))
        soup = None

    title = title_from_soup(soup, path) if soup is not None else title_from_filename(path)
    if not title:
        title = generic_title(position)
    return clean_title(title, max_length) or generic_title(position)
