"""Chapter discovery orchestrator.

EPUB: the spine is the reading order, so there is a single strategy.

PDF strategies, in priority order (first Found wins, later stages never run):
1. outline: embedded bookmarks -> confidence 0.95
2. toc: rendered table-of-contents page -> confidence 0.5-0.95
3. headings: heading patterns on every page -> confidence 0.6
4. full: one "Full Document" chapter -> confidence 0.1 (always succeeds)

A stage that is cancelled, times out or hits an unexpected backend error
counts as NotFound and the next stage runs.
"""

from __future__ import annotations

from typing import Callable, Optional

import structlog

from chapterkit.config.app_config import DEFAULT_CONFIG, DiscoveryConfig
from chapterkit.core.cancellation import CancellationToken
from chapterkit.core.epub_extractor import EpubDocument, PackageDocument, discover_epub_chapters
from chapterkit.core.errors import PdfExtractionError, StageCancelledError
from chapterkit.core.models import (
    Chapter,
    DiscoveryResult,
    Found,
    NotFound,
    PdfRef,
    StageResult,
)
from chapterkit.core.pdf_document import PAGE_READ_ERRORS, PdfSource
from chapterkit.core.pdf_headings import heading_chapters
from chapterkit.core.pdf_outline import outline_chapters
from chapterkit.core.pdf_toc import toc_chapters

logger = structlog.get_logger(__name__)

FULL_DOCUMENT_TITLE = "Full Document"
FULL_DOCUMENT_CONFIDENCE = 0.1

Stage = Callable[[PdfSource, DiscoveryConfig, Optional[CancellationToken]], StageResult]

PDF_STAGES: tuple[tuple[str, Stage], ...] = (
    ("outline", outline_chapters),
    ("toc", toc_chapters),
    ("headings", heading_chapters),
)


def whole_document_chapters(pdf: PdfSource) -> Found:
    """One chapter spanning every page."""
    if pdf.page_count < 1:
        return Found(chapters=(), confidence=0.0, warnings=("empty_document",))
    chapter = Chapter(
        title=FULL_DOCUMENT_TITLE,
        order=1,
        content_ref=PdfRef(start_page=1, end_page=pdf.page_count),
    )
    return Found(chapters=(chapter,), confidence=FULL_DOCUMENT_CONFIDENCE)


def _stage_token(
    cancel: CancellationToken | None, stage_timeout: float | None
) -> CancellationToken | None:
    if stage_timeout is None:
        return cancel
    if cancel is None:
        return CancellationToken(timeout=stage_timeout)
    return cancel.child(stage_timeout)


def run_stage(
    name: str,
    stage: Stage,
    pdf: PdfSource,
    config: DiscoveryConfig,
    cancel: CancellationToken | None = None,
) -> StageResult:
    """Run one strategy, turning cancellation and backend errors into NotFound."""
    try:
        return stage(pdf, config, cancel)
    except StageCancelledError as e:
        return NotFound(e)
    except PAGE_READ_ERRORS as e:
        logger.warning("chapter_discovery.stage_error", stage=name, error=str(e))
        return NotFound(PdfExtractionError(f"Error en la etapa '{name}': {e}"))


def discover_pdf(
    pdf: PdfSource,
    config: DiscoveryConfig = DEFAULT_CONFIG,
    cancel: CancellationToken | None = None,
    stage_timeout: float | None = None,
) -> DiscoveryResult:
    """Run the PDF strategies in priority order.

    Args:
        pdf: Document to analyze
        config: Discovery tuning
        cancel: Optional token shared by every stage
        stage_timeout: Optional per-stage time limit in seconds

    Returns:
        DiscoveryResult; never empty for a document with pages
    """
    stage_errors: dict[str, str] = {}

    for name, stage in PDF_STAGES:
        result = run_stage(name, stage, pdf, config, _stage_token(cancel, stage_timeout))
        if isinstance(result, Found) and result.chapters:
            logger.info(
                "chapter_discovery.pdf",
                method=name,
                chapters=len(result.chapters),
                confidence=result.confidence,
            )
            return DiscoveryResult(
                chapters=list(result.chapters),
                method_used=f"pdf:{name}",
                confidence=result.confidence,
                warnings=list(result.warnings),
                stage_errors=stage_errors,
            )
        error = result.error if isinstance(result, NotFound) else None
        stage_errors[name] = str(error) if error else "sin capítulos"
        logger.debug("chapter_discovery.stage_failed", stage=name, reason=stage_errors[name])

    fallback = whole_document_chapters(pdf)
    logger.info("chapter_discovery.pdf", method="full", pages=pdf.page_count)
    return DiscoveryResult(
        chapters=list(fallback.chapters),
        method_used="pdf:full",
        confidence=fallback.confidence,
        warnings=list(fallback.warnings),
        stage_errors=stage_errors,
    )


def discover_epub(
    epub: EpubDocument,
    config: DiscoveryConfig = DEFAULT_CONFIG,
    package: PackageDocument | None = None,
) -> DiscoveryResult:
    """Chapters in spine order.

    Raises:
        MissingContainerError: If container.xml is absent
        MissingPackageDocumentError: If the OPF cannot be read
    """
    chapters = discover_epub_chapters(epub, config.title_max_length, package)
    warnings = [] if chapters else ["empty_spine"]
    return DiscoveryResult(
        chapters=chapters,
        method_used="epub:spine",
        confidence=1.0 if chapters else 0.0,
        warnings=warnings,
    )
