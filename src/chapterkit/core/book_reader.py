"""Public entry points: open a book, discover chapters, extract text.

Responsibilities:
- Detect the document format (magic bytes, then file suffix)
- Open EPUB/PDF handles for the duration of one call
- Dispatch chapter discovery and text extraction
- Batch extraction with per-chapter placeholders
- Document metadata (title, author, language)

Dependencies:
- langdetect (language of the extracted text when the book does not say)
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

import structlog
from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException

from chapterkit.config.app_config import DiscoveryConfig, load_config
from chapterkit.core.cancellation import CancellationToken
from chapterkit.core.chapter_discovery import discover_epub, discover_pdf
from chapterkit.core.epub_extractor import EpubDocument, extract_epub_text, read_package
from chapterkit.core.errors import ChapterContentUnavailableError, UnsupportedDocumentTypeError
from chapterkit.core.models import (
    Chapter,
    ContentRef,
    DiscoveryResult,
    DocumentFormat,
    DocumentInfo,
    PdfRef,
)
from chapterkit.core.pdf_document import PdfDocument
from chapterkit.core.pdf_text import extract_pdf_text

# Make langdetect deterministic
DetectorFactory.seed = 0

logger = structlog.get_logger(__name__)

Source = Union[str, Path, bytes]
BookDocument = Union[EpubDocument, PdfDocument]

PLACEHOLDER_TEXT = "Error loading chapter content."
UNKNOWN_TITLE = "Unknown Title"
MAGIC_SNIFF_BYTES = 1024
PDF_MAGIC = b"%PDF"
ZIP_MAGIC = b"PK\x03\x04"


def _read_head(source: Source) -> bytes:
    if isinstance(source, bytes):
        return source[:MAGIC_SNIFF_BYTES]
    with open(source, "rb") as f:
        return f.read(MAGIC_SNIFF_BYTES)


def detect_format(source: Source, filename: str | None = None) -> DocumentFormat:
    """Detect EPUB or PDF from content, falling back to the file suffix.

    Raises:
        FileNotFoundError: If a path source does not exist
        UnsupportedDocumentTypeError: If neither format is recognized
    """
    head = _read_head(source)
    if PDF_MAGIC in head:
        return "pdf"
    if head.startswith(ZIP_MAGIC):
        return "epub"

    name = filename or (None if isinstance(source, bytes) else str(source))
    suffix = Path(name).suffix.lower() if name else ""
    if suffix == ".pdf":
        return "pdf"
    if suffix == ".epub":
        return "epub"
    raise UnsupportedDocumentTypeError(name)


def open_document(source: Source, filename: str | None = None) -> BookDocument:
    """Open a book; use as a context manager.

    Raises:
        UnsupportedDocumentTypeError: If the source is neither EPUB nor PDF
        EpubLoadError / PdfLoadError: If the container cannot be opened
    """
    doc_format = detect_format(source, filename)
    if doc_format == "pdf":
        return PdfDocument.open(source, filename)
    return EpubDocument.open(source, filename)


def _resolve_config(config: DiscoveryConfig | None) -> DiscoveryConfig:
    return config if config is not None else load_config()


def discover_in(
    document: BookDocument,
    config: DiscoveryConfig | None = None,
    cancel: CancellationToken | None = None,
    stage_timeout: float | None = None,
) -> DiscoveryResult:
    """Discover chapters in an already opened document."""
    config = _resolve_config(config)
    if isinstance(document, PdfDocument):
        return discover_pdf(document, config, cancel, stage_timeout)
    return discover_epub(document, config)


def discover(
    source: Source,
    filename: str | None = None,
    *,
    config: DiscoveryConfig | None = None,
    cancel: CancellationToken | None = None,
    stage_timeout: float | None = None,
) -> DiscoveryResult:
    """Discover chapters and report how they were found.

    Args:
        source: Path or raw bytes of an EPUB or PDF
        filename: Original file name (helps format detection for bytes)
        config: Discovery tuning (defaults to load_config())
        cancel: Optional cancellation token for the PDF stages
        stage_timeout: Optional per-stage time limit in seconds (PDF)

    Returns:
        DiscoveryResult with chapters sorted by order
    """
    with open_document(source, filename) as document:
        result = discover_in(document, config, cancel, stage_timeout)
    logger.info(
        "book_reader.discovered",
        source=filename or (None if isinstance(source, bytes) else str(source)),
        method=result.method_used,
        chapters=len(result.chapters),
    )
    return result


def discover_chapters(
    source: Source,
    filename: str | None = None,
    *,
    config: DiscoveryConfig | None = None,
    cancel: CancellationToken | None = None,
    stage_timeout: float | None = None,
) -> list[Chapter]:
    """Ordered chapter list for an EPUB or PDF."""
    return discover(
        source, filename, config=config, cancel=cancel, stage_timeout=stage_timeout
    ).chapters


def extract_from(document: BookDocument, ref: ContentRef) -> str:
    """Extract one chapter's text from an opened document.

    Raises:
        ChapterContentUnavailableError: If the ref does not fit the document
            or its content cannot be read
    """
    if isinstance(ref, PdfRef):
        if not isinstance(document, PdfDocument):
            raise ChapterContentUnavailableError(ref.describe(), "referencia PDF en un EPUB")
        return extract_pdf_text(document, ref)
    if not isinstance(document, EpubDocument):
        raise ChapterContentUnavailableError(ref.describe(), "referencia EPUB en un PDF")
    return extract_epub_text(document, ref)


def extract_text(
    source: Source,
    chapter: Chapter | ContentRef | int,
    filename: str | None = None,
    *,
    config: DiscoveryConfig | None = None,
) -> str:
    """Plain text for one chapter.

    A chapter whose content cannot be read yields the placeholder text
    instead of failing.

    Args:
        source: Path or raw bytes of an EPUB or PDF
        chapter: A discovered Chapter, its content ref, or a 1-based chapter
            number (resolved by running discovery with `config`)
        filename: Original file name (helps format detection for bytes)
        config: Discovery tuning used when `chapter` is a number

    Raises:
        UnsupportedDocumentTypeError / EpubLoadError / PdfLoadError: If the
            document itself cannot be opened
        IndexError: If a chapter number is out of range
    """
    with open_document(source, filename) as document:
        if isinstance(chapter, int):
            chapters = discover_in(document, config).chapters
            if not 1 <= chapter <= len(chapters):
                raise IndexError(f"Capítulo fuera de rango: {chapter} (1-{len(chapters)})")
            chapter = chapters[chapter - 1]
        ref = chapter.content_ref if isinstance(chapter, Chapter) else chapter
        try:
            return extract_from(document, ref)
        except ChapterContentUnavailableError as e:
            logger.warning("book_reader.chapter_unavailable", ref=ref.describe(), error=str(e))
            return PLACEHOLDER_TEXT


def extract_all(
    source: Source,
    filename: str | None = None,
    *,
    config: DiscoveryConfig | None = None,
    cancel: CancellationToken | None = None,
) -> list[tuple[Chapter, str]]:
    """Discover every chapter and extract its text in one pass.

    One unreadable chapter gets placeholder text; the batch continues.
    """
    results = []
    with open_document(source, filename) as document:
        discovery = discover_in(document, config, cancel)
        for chapter in discovery.chapters:
            try:
                text = extract_from(document, chapter.content_ref)
            except ChapterContentUnavailableError as e:
                logger.warning("book_reader.chapter_unavailable", order=chapter.order, error=str(e))
                text = PLACEHOLDER_TEXT
            results.append((chapter, text))

    empty = sum(1 for _, text in results if not text.strip())
    logger.info("book_reader.extracted", chapters=len(results), empty_chapters=empty)
    return results


def detect_language(text: str, sample_chars: int = 10000) -> str | None:
    """Detect language of text using langdetect.

    Args:
        text: Text to analyze
        sample_chars: Size of the sample taken from the start of the text

    Returns:
        ISO 639-1 language code or None if detection fails
    """
    try:
        return detect(text[:sample_chars])
    except LangDetectException as e:
        logger.debug("book_reader.language_detection_failed", error=str(e))
        return None


def _fallback_title(source: Source, filename: str | None) -> str:
    name = filename or (None if isinstance(source, bytes) else str(source))
    return Path(name).stem if name else UNKNOWN_TITLE


def _language_sample(document: BookDocument, chapters: list[Chapter], sample_chars: int) -> str:
    parts: list[str] = []
    size = 0
    for chapter in chapters:
        try:
            text = extract_from(document, chapter.content_ref)
        except ChapterContentUnavailableError:
            continue
        parts.append(text)
        size += len(text)
        if size >= sample_chars:
            break
    return "\n\n".join(parts)


def describe_document(
    source: Source,
    filename: str | None = None,
    *,
    config: DiscoveryConfig | None = None,
) -> DocumentInfo:
    """Title, format, size and language of a book."""
    config = _resolve_config(config)

    with open_document(source, filename) as document:
        if isinstance(document, PdfDocument):
            doc_format: DocumentFormat = "pdf"
            discovery = discover_pdf(document, config)
            title = document.metadata_title()
            author = document.metadata_author()
            language = None
            page_count: int | None = document.page_count
        else:
            doc_format = "epub"
            package = read_package(document)
            discovery = discover_epub(document, config, package)
            title, author, language = package.title, package.author, package.language
            page_count = None

        if not language:
            sample = _language_sample(document, discovery.chapters, config.language_sample_chars)
            language = detect_language(sample, config.language_sample_chars) if sample.strip() else None

    return DocumentInfo(
        title=title or _fallback_title(source, filename),
        format=doc_format,
        chapter_count=len(discovery.chapters),
        page_count=page_count,
        language=language,
        author=author,
    )

