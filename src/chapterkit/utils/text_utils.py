"""Text processing utilities.

Common text manipulation functions used across modules.
"""

import re
import unicodedata

ELLIPSIS = "..."

WHITESPACE = re.compile(r"\s+")
PUNCTUATION = re.compile(r"[^\w\s]")
UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def clean_title(title: str, max_length: int = 60) -> str:
    """Collapse whitespace and truncate with an ellipsis if too long.

    Args:
        title: Raw title text
        max_length: Maximum length of the result, ellipsis included

    Returns:
        Normalized title
    """
    title = WHITESPACE.sub(" ", title).strip()
    if len(title) <= max_length:
        return title
    return title[: max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS


def normalize_for_match(text: str) -> str:
    """Lowercase, strip punctuation and collapse whitespace for fuzzy comparison."""
    text = unicodedata.normalize("NFKC", text).casefold()
    text = PUNCTUATION.sub(" ", text)
    return WHITESPACE.sub(" ", text).strip()


def chapter_filename(title: str, extension: str = ".txt") -> str:
    """Build a download-safe file name from a chapter title.

    Every character outside [a-z0-9] becomes "_" ("Chapter 1: Intro" ->
    "Chapter_1__Intro.txt").
    """
    stem = UNSAFE_FILENAME_CHARS.sub("_", title.strip()) or "chapter"
    return f"{stem}{extension}"
