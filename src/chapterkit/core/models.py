"""Data model shared by the discovery and extraction modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

from chapterkit.core.errors import ChapterkitError

DocumentFormat = Literal["epub", "pdf"]


@dataclass(frozen=True)
class EpubRef:
    """Path of a content document inside the EPUB archive."""

    href: str

    def describe(self) -> str:
        return self.href


@dataclass(frozen=True)
class PdfRef:
    """Inclusive, 1-based page range."""

    start_page: int
    end_page: int

    def describe(self) -> str:
        if self.start_page == self.end_page:
            return f"p. {self.start_page}"
        return f"pp. {self.start_page}-{self.end_page}"


ContentRef = Union[EpubRef, PdfRef]


@dataclass(frozen=True)
class Chapter:
    """A logical chapter with its content span."""

    title: str
    order: int
    content_ref: ContentRef

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data: dict = {"order": self.order, "title": self.title}
        if isinstance(self.content_ref, EpubRef):
            data["href"] = self.content_ref.href
        else:
            data["start_page"] = self.content_ref.start_page
            data["end_page"] = self.content_ref.end_page
        return data


@dataclass
class OutlineNode:
    """Bookmark entry as exposed by the PDF, before flattening."""

    title: str
    level: int
    destination_page: int | None
    children: list[OutlineNode] = field(default_factory=list)


@dataclass(frozen=True)
class FlatOutlineItem:
    """Page-resolved projection of an OutlineNode."""

    title: str
    page_number: int
    level: int
    parent_title: str | None = None


@dataclass(frozen=True)
class TocEntry:
    """One parsed line of a rendered table of contents."""

    title: str
    printed_page: int


@dataclass(frozen=True)
class TextFragment:
    """A positioned run of text on a PDF page."""

    text: str
    x: float = 0.0
    y: float = 0.0
    font_size: float = 0.0


# =============================================================================
# Strategy results
# =============================================================================


@dataclass(frozen=True)
class Found:
    """A discovery stage produced a non-empty chapter list."""

    chapters: tuple[Chapter, ...]
    confidence: float = 1.0
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class NotFound:
    """A discovery stage produced nothing; `error` says why."""

    error: ChapterkitError


StageResult = Union[Found, NotFound]


@dataclass
class DiscoveryResult:
    """Chapters plus a report on how they were found."""

    chapters: list[Chapter]
    method_used: str
    confidence: float
    warnings: list[str] = field(default_factory=list)
    stage_errors: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "method_used": self.method_used,
            "confidence": round(self.confidence, 2),
            "warnings": self.warnings,
            "stage_errors": self.stage_errors,
            "chapters": [ch.to_dict() for ch in self.chapters],
        }


@dataclass
class DocumentInfo:
    """Descriptive metadata about a document."""

    title: str
    format: DocumentFormat
    chapter_count: int
    page_count: int | None = None
    language: str | None = None
    author: str | None = None

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "format": self.format,
            "chapter_count": self.chapter_count,
            "page_count": self.page_count,
            "language": self.language,
            "author": self.author,
        }
