"""Markup to plain text conversion.

Responsibilities:
- Walk a parsed (X)HTML tree and emit paragraph-separated plain text
- Normalize whitespace and blank lines
- Fall back progressively when the tree yields nothing (malformed or
  non-standard markup), ending with a regex tag strip of the raw source

Dependencies:
- beautifulsoup4
- lxml
"""

from __future__ import annotations

import html
import re
import warnings

import structlog
from bs4 import (
    BeautifulSoup,
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ProcessingInstruction,
    Tag,
    XMLParsedAsHTMLWarning,
)
from bs4.builder import ParserRejectedMarkup

# Suppress XML parser warning for EPUB content
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

logger = structlog.get_logger(__name__)

BLOCK_TAGS = frozenset({
    "p", "h1", "h2", "h3", "h4", "h5", "h6", "br", "li", "div",
    "section", "article", "header", "footer", "aside", "nav", "main",
    "figure", "figcaption", "blockquote", "td", "th", "tr", "table",
    "ul", "ol", "dl", "dt", "dd", "pre", "hr",
})
INLINE_SPACING_TAGS = frozenset({"span", "a", "em", "i", "b", "strong", "u"})
SKIPPED_TAGS = frozenset({"style", "script", "noscript"})

# String node kinds that never carry visible text
NON_TEXT_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)

HORIZONTAL_WHITESPACE = re.compile(r"[^\S\n]+")
EXCESS_NEWLINES = re.compile(r"\n{3,}")
SCRIPT_STYLE_BLOCK = re.compile(r"<(script|style|noscript)\b.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
ANY_TAG = re.compile(r"<[^>]*>")


class _TextBuffer:
    """Accumulates text and answers the boundary questions the walk needs."""

    def __init__(self) -> None:
        self.parts: list[str] = []

    def _last_char(self) -> str:
        for part in reversed(self.parts):
            if part:
                return part[-1]
        return ""

    def append(self, text: str) -> None:
        self.parts.append(text)

    def newline(self) -> None:
        # No leading newline on empty output
        if self._last_char():
            self.parts.append("\n")

    def space(self) -> None:
        last = self._last_char()
        if last and not last.isspace():
            self.parts.append(" ")

    def text(self) -> str:
        return "".join(self.parts)


def parse_markup(markup: bytes | str) -> BeautifulSoup:
    """Parse (X)HTML with lxml's HTML parser.

    Raises:
        ParserRejectedMarkup: If the parser refuses the input
    """
    if isinstance(markup, bytes):
        markup = markup.decode("utf-8", errors="ignore")
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
        return BeautifulSoup(markup, "lxml")


def normalize_text(text: str) -> str:
    """Normalize line endings, spaces and blank lines; trim the result."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = HORIZONTAL_WHITESPACE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = EXCESS_NEWLINES.sub("\n\n", text)
    return text.strip()


def _walk(node, buffer: _TextBuffer) -> None:
    if isinstance(node, NavigableString):
        if not isinstance(node, NON_TEXT_STRINGS):
            buffer.append(str(node))
        return

    if not isinstance(node, Tag):
        return

    name = (node.name or "").lower()
    if name in SKIPPED_TAGS:
        return

    is_block = name in BLOCK_TAGS
    if is_block:
        buffer.newline()

    for child in node.children:
        _walk(child, buffer)

    if is_block:
        buffer.newline()
    elif name in INLINE_SPACING_TAGS:
        buffer.space()


def _direct_text_nodes(root: Tag) -> str:
    """Collect only the text nodes that are direct children of an element."""
    pieces = []
    for element in [root, *root.find_all(True)]:
        if (element.name or "").lower() in SKIPPED_TAGS:
            continue
        for child in element.children:
            if isinstance(child, NavigableString) and not isinstance(child, NON_TEXT_STRINGS):
                if child.strip():
                    pieces.append(child.strip())
    return normalize_text(" ".join(pieces))


def strip_tags(raw: str) -> str:
    """Last-resort conversion: drop every tag and unescape entities."""
    text = SCRIPT_STYLE_BLOCK.sub(" ", raw)
    text = ANY_TAG.sub(" ", text)
    return normalize_text(html.unescape(text))


def element_to_text(root: Tag | None, raw: str | None = None) -> str:
    """Convert a parsed element to plain text.

    Args:
        root: Element to convert (usually <body>); None if parsing failed
        raw: Original markup, used by the last fallback

    Returns:
        Normalized plain text; empty only when the source has no visible text
    """
    if root is not None:
        buffer = _TextBuffer()
        _walk(root, buffer)
        text = normalize_text(buffer.text())
        if text:
            return text

        text = normalize_text(root.get_text())
        if text:
            logger.debug("markup_text.fallback", stage="get_text")
            return text

        text = _direct_text_nodes(root)
        if text:
            logger.debug("markup_text.fallback", stage="direct_text_nodes")
            return text

    if raw:
        logger.debug("markup_text.fallback", stage="strip_tags")
        return strip_tags(raw)
    return ""


def html_to_text(markup: bytes | str) -> str:
    """Convert a (X)HTML document to plain text.

    Args:
        markup: HTML content as bytes or string

    Returns:
        Clean plain text with blank-line separated paragraphs
    """
    if isinstance(markup, bytes):
        markup = markup.decode("utf-8", errors="ignore")
    if not markup.strip():
        return ""

    try:
        soup = parse_markup(markup)
    except (ParserRejectedMarkup, ValueError) as e:
        logger.warning("markup_text.parse_failed", error=str(e))
        return element_to_text(None, markup)

    return element_to_text(soup.body or soup, markup)
