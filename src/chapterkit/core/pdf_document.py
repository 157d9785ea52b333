"""PDF page reader backed by PyMuPDF.

Responsibilities:
- Open a PDF from a path or bytes (informative error if corrupt/protected)
- Report page count and metadata title
- Return positioned text fragments per page (font size, coordinates)
- Return plain page text
- Expose the embedded bookmark tree with resolved pages

Discovery code depends on the PdfSource protocol only, so tests can supply
in-memory fakes.

Dependencies:
- pymupdf (fitz)
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import fitz
import structlog

from chapterkit.core.errors import PdfLoadError
from chapterkit.core.models import OutlineNode, TextFragment

logger = structlog.get_logger(__name__)


class PdfSource(Protocol):
    """What chapter discovery needs from a PDF."""

    @property
    def page_count(self) -> int: ...

    def page_fragments(self, page_number: int) -> list[TextFragment]: ...

    def page_text(self, page_number: int) -> str: ...

    def outline(self) -> list[OutlineNode]: ...

    def metadata_title(self) -> str | None: ...


PAGE_READ_ERRORS = (RuntimeError, ValueError, IndexError, KeyError)


def safe_page_text(pdf: PdfSource, page_number: int) -> str:
    """Page text, or "" if the page cannot be read."""
    try:
        return pdf.page_text(page_number)
    except PAGE_READ_ERRORS as e:
        logger.warning("pdf_document.page_unreadable", page=page_number, error=str(e))
        return ""


def safe_page_fragments(pdf: PdfSource, page_number: int) -> list[TextFragment]:
    """Page fragments, or [] if the page cannot be read."""
    try:
        return pdf.page_fragments(page_number)
    except PAGE_READ_ERRORS as e:
        logger.warning("pdf_document.page_unreadable", page=page_number, error=str(e))
        return []


class PdfDocument:
    """PdfSource implementation over a fitz.Document. Pages are 1-based."""

    def __init__(self, doc: fitz.Document, name: str | None = None):
        self.doc = doc
        self.name = name

    @classmethod
    def open(cls, source: Path | str | bytes, name: str | None = None) -> PdfDocument:
        """Open a PDF from a path or raw bytes.

        Raises:
            PdfLoadError: If the PDF is corrupt or password-protected
        """
        try:
            if isinstance(source, bytes):
                doc = fitz.open(stream=source, filetype="pdf")
            else:
                doc = fitz.open(str(source))
                name = name or Path(source).name
        except (RuntimeError, ValueError) as e:
            raise PdfLoadError(str(e)) from e

        if doc.needs_pass:
            doc.close()
            raise PdfLoadError(f"PDF protegido con contraseña: {name or 'stream'}")

        return cls(doc, name)

    def close(self) -> None:
        self.doc.close()

    def __enter__(self) -> PdfDocument:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def page_count(self) -> int:
        return self.doc.page_count

    def page_fragments(self, page_number: int) -> list[TextFragment]:
        """Text spans of a page in reading order.

        Args:
            page_number: Page number (1-indexed)
        """
        page = self.doc[page_number - 1]
        data = page.get_text("dict")
        fragments = []
        for block in data.get("blocks", []):
            if block.get("type", 0) != 0:
                continue  # image block
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    text = span.get("text", "")
                    if not text.strip():
                        continue
                    x0, y0 = span["bbox"][0], span["bbox"][1]
                    fragments.append(
                        TextFragment(text=text, x=x0, y=y0, font_size=span.get("size", 0.0))
                    )
        return fragments

    def page_text(self, page_number: int) -> str:
        """Plain text of a page.

        Args:
            page_number: Page number (1-indexed)
        """
        return self.doc[page_number - 1].get_text()

    def outline(self) -> list[OutlineNode]:
        """Bookmark tree with 1-based destination pages (None if unresolved)."""
        toc = self.doc.get_toc(simple=True)
        total = self.page_count
        roots: list[OutlineNode] = []
        stack: list[OutlineNode] = []

        for entry in toc:
            level, title, page = entry[0], entry[1], entry[2]
            destination = page if 0 < page <= total else None
            node = OutlineNode(
                title=(title or "").strip(),
                level=max(level - 1, 0),
                destination_page=destination,
            )
            while stack and stack[-1].level >= node.level:
                stack.pop()
            (stack[-1].children if stack else roots).append(node)
            stack.append(node)

        return roots

    def metadata_title(self) -> str | None:
        metadata = self.doc.metadata or {}
        title = (metadata.get("title") or "").strip()
        return title or None

    def metadata_author(self) -> str | None:
        metadata = self.doc.metadata or {}
        author = (metadata.get("author") or "").strip()
        return author or None
