"""Exception hierarchy for chapter discovery and text extraction.

Fatal (propagate to the caller):
- UnsupportedDocumentTypeError, EpubLoadError, PdfLoadError
- MissingContainerError, MissingPackageDocumentError

Non-fatal (degrade to skip/placeholder, logged):
- UnresolvedSpineItemError
- OutlineUnavailableError, TocNotFoundError, NoChaptersDetectedError,
  StageCancelledError (carried inside NotFound by the PDF stages)
- ChapterContentUnavailableError (replaced by placeholder text)
"""

from __future__ import annotations


class ChapterkitError(Exception):
    """Base exception for chapterkit errors."""

    pass


class ConfigError(ChapterkitError):
    """Raised when the configuration file cannot be parsed."""

    pass


class UnsupportedDocumentTypeError(ChapterkitError):
    """Raised when the source is neither an EPUB nor a PDF."""

    def __init__(self, name: str | None = None):
        self.name = name
        msg = "Formato no soportado: se esperaba EPUB o PDF"
        if name:
            msg += f" ({name})"
        super().__init__(msg)


# =============================================================================
# EPUB
# =============================================================================


class EpubExtractionError(ChapterkitError):
    """Base exception for EPUB errors."""

    pass


class EpubLoadError(EpubExtractionError):
    """Raised when the archive cannot be opened at all."""

    def __init__(self, detail: str = ""):
        msg = "EPUB inválido o corrupto"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class MissingContainerError(EpubExtractionError):
    """Raised when META-INF/container.xml is absent."""

    def __init__(self, entry: str):
        self.entry = entry
        super().__init__(f"No se encontró el descriptor de contenedor: {entry}")


class MissingPackageDocumentError(EpubExtractionError):
    """Raised when the package document (OPF) cannot be located or read."""

    def __init__(self, path: str | None):
        self.path = path
        super().__init__(f"No se pudo leer el documento de paquete: {path or '(sin ruta)'}")


class UnresolvedSpineItemError(EpubExtractionError):
    """A spine itemref points to a manifest id that does not exist."""

    def __init__(self, idref: str):
        self.idref = idref
        super().__init__(f"Elemento del spine sin entrada en el manifest: {idref}")


# =============================================================================
# PDF
# =============================================================================


class PdfExtractionError(ChapterkitError):
    """Base exception for PDF errors."""

    pass


class PdfLoadError(PdfExtractionError):
    """Raised when the PDF cannot be opened (corrupt or encrypted)."""

    def __init__(self, detail: str = ""):
        msg = "No se pudo abrir el PDF"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class OutlineUnavailableError(PdfExtractionError):
    """The document has no usable embedded outline."""

    pass


class TocNotFoundError(PdfExtractionError):
    """No table-of-contents page could be located or parsed."""

    pass


class NoChaptersDetectedError(PdfExtractionError):
    """Content heuristics found no chapter headings."""

    pass


class StageCancelledError(PdfExtractionError):
    """A discovery stage was cancelled or ran past its deadline."""

    pass


# =============================================================================
# Per-chapter
# =============================================================================


class ChapterContentUnavailableError(ChapterkitError):
    """Raised when one chapter's content cannot be read."""

    def __init__(self, ref: str, detail: str = ""):
        self.ref = ref
        msg = f"Contenido del capítulo no disponible: {ref}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)
