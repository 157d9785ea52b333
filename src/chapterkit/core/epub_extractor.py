"""EPUB structure resolution and chapter text extraction.

Responsibilities:
- Open the ZIP package and read named entries
- Resolve container.xml -> package document (OPF) -> spine reading order
- Keep only XHTML spine items, in spine order
- Title each chapter via the heuristic cascade in epub_titles
- Extract clean plain text for one chapter
- Read OPF metadata (title, creator, language)

Dependencies:
- beautifulsoup4 (lxml-xml parser for container/OPF)
- lxml
"""

from __future__ import annotations

import io
import posixpath
import warnings
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote

import structlog
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from chapterkit.core.epub_titles import derive_title, generic_title
from chapterkit.core.errors import (
    ChapterContentUnavailableError,
    EpubLoadError,
    MissingContainerError,
    MissingPackageDocumentError,
    UnresolvedSpineItemError,
)
from chapterkit.core.markup_text import html_to_text
from chapterkit.core.models import Chapter, EpubRef

# Suppress XML parser warning for EPUB content
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

logger = structlog.get_logger(__name__)

# Constants
CONTAINER_PATH = "META-INF/container.xml"
XHTML_MEDIA_TYPE = "application/xhtml+xml"


@dataclass
class ManifestItem:
    """One resource declared in the OPF manifest."""

    item_id: str
    href: str
    media_type: str


@dataclass
class PackageDocument:
    """Parsed OPF: spine-ordered chapter refs plus metadata."""

    path: str
    spine: list[EpubRef] = field(default_factory=list)
    title: str | None = None
    author: str | None = None
    language: str | None = None


class EpubDocument:
    """Read-only view over an EPUB ZIP archive."""

    def __init__(self, archive: zipfile.ZipFile, name: str | None = None):
        self.archive = archive
        self.name = name
        self._names = set(archive.namelist())

    @classmethod
    def open(cls, source: Path | str | bytes, name: str | None = None) -> EpubDocument:
        """Open an EPUB from a path or raw bytes.

        Raises:
            EpubLoadError: If the source is not a readable ZIP archive
        """
        try:
            if isinstance(source, bytes):
                archive = zipfile.ZipFile(io.BytesIO(source))
            else:
                archive = zipfile.ZipFile(Path(source))
                name = name or Path(source).name
        except (zipfile.BadZipFile, OSError) as e:
            raise EpubLoadError(str(e)) from e
        return cls(archive, name)

    def close(self) -> None:
        self.archive.close()

    def __enter__(self) -> EpubDocument:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def read_bytes(self, path: str) -> bytes:
        """Read an archive entry.

        Raises:
            KeyError: If no entry matches the path
        """
        for candidate in (path, unquote(path)):
            if candidate in self._names:
                return self.archive.read(candidate)
        raise KeyError(path)


def _parse_xml(content: bytes) -> BeautifulSoup:
    return BeautifulSoup(content, "xml")


def find_package_path(epub: EpubDocument) -> str:
    """Read container.xml and return the package document path.

    Raises:
        MissingContainerError: If container.xml is absent
        MissingPackageDocumentError: If no rootfile path is declared
    """
    try:
        container = epub.read_bytes(CONTAINER_PATH)
    except KeyError:
        raise MissingContainerError(CONTAINER_PATH)

    rootfile = _parse_xml(container).find("rootfile")
    full_path = rootfile.get("full-path") if rootfile is not None else None
    if not full_path:
        raise MissingPackageDocumentError(None)
    return full_path.strip()


def resolve_href(package_path: str, href: str) -> str:
    """Resolve a manifest href against the package document's directory."""
    href = unquote(href.split("#", 1)[0]).strip()
    if href.startswith("/"):
        return posixpath.normpath(href.lstrip("/"))
    base_dir = posixpath.dirname(package_path)
    return posixpath.normpath(posixpath.join(base_dir, href))


def _metadata_text(metadata, name: str) -> str | None:
    if metadata is None:
        return None
    tag = metadata.find(name)
    if tag is None:
        return None
    text = tag.get_text().strip()
    return text or None


def read_package(epub: EpubDocument) -> PackageDocument:
    """Resolve the package document into a spine-ordered list of chapter refs.

    Raises:
        MissingContainerError: If container.xml is absent
        MissingPackageDocumentError: If the OPF cannot be read
    """
    package_path = find_package_path(epub)
    try:
        opf = _parse_xml(epub.read_bytes(package_path))
    except KeyError:
        raise MissingPackageDocumentError(package_path)

    manifest: dict[str, ManifestItem] = {}
    manifest_tag = opf.find("manifest")
    if manifest_tag is not None:
        for item in manifest_tag.find_all("item"):
            item_id = item.get("id")
            if not item_id:
                continue
            manifest[item_id] = ManifestItem(
                item_id=item_id,
                href=item.get("href", ""),
                media_type=(item.get("media-type") or "").strip().lower(),
            )

    spine: list[EpubRef] = []
    spine_tag = opf.find("spine")
    itemrefs = spine_tag.find_all("itemref") if spine_tag is not None else []
    for itemref in itemrefs:
        idref = itemref.get("idref", "")
        item = manifest.get(idref)
        if item is None:
            error = UnresolvedSpineItemError(idref)
            logger.warning("epub_extractor.unresolved_spine_item", idref=idref, error=str(error))
            continue

        if item.media_type != XHTML_MEDIA_TYPE or not item.href:
            continue
        if (itemref.get("linear") or "").strip().lower() == "no":
            continue
        spine.append(EpubRef(href=resolve_href(package_path, item.href)))

    metadata = opf.find("metadata")
    package = PackageDocument(
        path=package_path,
        spine=spine,
        title=_metadata_text(metadata, "title"),
        author=_metadata_text(metadata, "creator"),
        language=_metadata_text(metadata, "language"),
    )

    logger.debug(
        "epub_extractor.package_resolved",
        package=package_path,
        manifest_items=len(manifest),
        spine_items=len(itemrefs),
        chapters=len(spine),
    )
    return package


def read_chapter_markup(epub: EpubDocument, ref: EpubRef) -> bytes:
    """Read one content document.

    Raises:
        ChapterContentUnavailableError: If the entry is missing or unreadable
    """
    try:
        return epub.read_bytes(ref.href)
    except KeyError:
        raise ChapterContentUnavailableError(ref.href, "entrada no encontrada")
    except (zipfile.BadZipFile, zlib.error, EOFError, OSError, RuntimeError) as e:
        raise ChapterContentUnavailableError(ref.href, str(e)) from e


def discover_epub_chapters(
    epub: EpubDocument,
    title_max_length: int = 60,
    package: PackageDocument | None = None,
) -> list[Chapter]:
    """Build the chapter list in spine order.

    A chapter whose document cannot be read keeps its place with a generic
    title; its text is replaced by a placeholder at extraction time.

    Raises:
        MissingContainerError: If container.xml is absent
        MissingPackageDocumentError: If the OPF cannot be read
    """
    package = package or read_package(epub)

    chapters = []
    for position, ref in enumerate(package.spine, start=1):
        try:
            markup = read_chapter_markup(epub, ref)
            title = derive_title(markup, ref.href, position, title_max_length)
        except ChapterContentUnavailableError as e:
            logger.warning("epub_extractor.chapter_unreadable", href=ref.href, error=str(e))
            title = generic_title(position)
        chapters.append(Chapter(title=title, order=position, content_ref=ref))

    logger.info("epub_extractor.chapters", book=epub.name, chapters=len(chapters))
    return chapters


def extract_epub_text(epub: EpubDocument, ref: EpubRef) -> str:
    """Extract plain text for one chapter.

    Raises:
        ChapterContentUnavailableError: If the document cannot be read
    """
    return html_to_text(read_chapter_markup(epub, ref))
