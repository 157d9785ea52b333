"""Shared fixtures: temporary dirs, EPUB/PDF builders and an in-memory PDF."""

import tempfile
import zipfile
from pathlib import Path

import pytest
import structlog

from chapterkit.config.app_config import reset_config_cache
from chapterkit.core.models import OutlineNode, TextFragment

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

OPF_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="uid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:identifier id="uid">test-book</dc:identifier>
    <dc:title>{title}</dc:title>
    <dc:creator>{author}</dc:creator>
    <dc:language>{language}</dc:language>
  </metadata>
  <manifest>
{manifest}
  </manifest>
  <spine>
{spine}
  </spine>
</package>
"""

XHTML = "application/xhtml+xml"


def chapter_markup(heading: str, *paragraphs: str) -> str:
    body = "".join(f"<p>{p}</p>" for p in paragraphs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<html xmlns="http://www.w3.org/1999/xhtml"><head><title>Book</title></head>'
        f"<body><h1>{heading}</h1>{body}</body></html>"
    )


def build_opf(manifest, spine, title="Test Book", author="Test Author", language="en") -> str:
    """Build an OPF document.

    Args:
        manifest: (id, href, media_type) tuples
        spine: idrefs, or (idref, linear) tuples
    """
    items = "\n".join(
        f'    <item id="{item_id}" href="{href}" media-type="{media_type}"/>'
        for item_id, href, media_type in manifest
    )
    refs = []
    for ref in spine:
        idref, linear = ref if isinstance(ref, tuple) else (ref, None)
        attr = f' linear="{linear}"' if linear else ""
        refs.append(f'    <itemref idref="{idref}"{attr}/>')
    return OPF_TEMPLATE.format(
        title=title,
        author=author,
        language=language,
        manifest=items,
        spine="\n".join(refs),
    )


def write_epub(path: Path, entries: dict) -> Path:
    """Write a ZIP with mimetype first, then the given entries."""
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


class FakePdf:
    """In-memory PdfSource: each page is a list of text lines."""

    def __init__(self, pages, outline=None, title=None, broken_pages=()):
        self.pages = pages
        self._outline = outline or []
        self._title = title
        self.broken_pages = set(broken_pages)
        self.pages_read: list[int] = []

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def _lines(self, page_number):
        if page_number in self.broken_pages:
            raise RuntimeError(f"cannot read page {page_number}")
        self.pages_read.append(page_number)
        return self.pages[page_number - 1]

    def page_fragments(self, page_number):
        return [
            TextFragment(text=line, x=72.0, y=72.0 + 20 * i, font_size=12.0)
            for i, line in enumerate(self._lines(page_number))
        ]

    def page_text(self, page_number):
        return "\n".join(self._lines(page_number))

    def outline(self):
        return self._outline

    def metadata_title(self):
        return self._title


@pytest.fixture(autouse=True)
def clean_config_cache():
    """Each test starts and ends with an empty config cache."""
    reset_config_cache()
    yield
    reset_config_cache()


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any logging configuration made by CLI commands."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_pdf():
    """Factory for in-memory PDFs."""
    return FakePdf


@pytest.fixture
def outline_node():
    """Factory for bookmark nodes."""

    def make(title, page, children=None, level=0):
        return OutlineNode(
            title=title, level=level, destination_page=page, children=children or []
        )

    return make


@pytest.fixture
def sample_epub(temp_dir):
    """Three-chapter EPUB with its package document under OEBPS/."""
    manifest = [
        ("ch1", "text/chapter1.xhtml", XHTML),
        ("ch2", "text/chapter2.xhtml", XHTML),
        ("ch3", "text/chapter3.xhtml", XHTML),
        ("css", "styles/main.css", "text/css"),
    ]
    entries = {
        "META-INF/container.xml": CONTAINER_XML.format(opf_path="OEBPS/content.opf"),
        "OEBPS/content.opf": build_opf(manifest, ["ch1", "ch2", "ch3"]),
        "OEBPS/text/chapter1.xhtml": chapter_markup(
            "The Beginning", "It was a bright cold day in April.", "The clocks were striking."
        ),
        "OEBPS/text/chapter2.xhtml": chapter_markup(
            "The Middle", "Nothing happened for a long while."
        ),
        "OEBPS/text/chapter3.xhtml": chapter_markup("The End", "And that was all."),
        "OEBPS/styles/main.css": "body { margin: 0; }",
    }
    return write_epub(temp_dir / "sample.epub", entries)


@pytest.fixture
def epub_builder(temp_dir):
    """Build an EPUB from a manifest, a spine and content documents."""

    def build(manifest, spine, documents, name="book.epub", opf_path="OEBPS/content.opf"):
        entries = {
            "META-INF/container.xml": CONTAINER_XML.format(opf_path=opf_path),
            opf_path: build_opf(manifest, spine),
        }
        base = opf_path.rsplit("/", 1)[0] + "/" if "/" in opf_path else ""
        for href, markup in documents.items():
            entries[base + href] = markup
        return write_epub(temp_dir / name, entries)

    return build


@pytest.fixture
def chapter_pdf(temp_dir):
    """Four pages, each opening with a "Chapter N: Title" heading, no outline."""
    import fitz

    pdf_path = temp_dir / "multipage_book.pdf"
    doc = fitz.open()

    pages_content = [
        "Chapter 1: Introduction\n\nThis is the introduction to our test book.",
        "Chapter 2: Main Content\n\nThe main content discusses important topics.",
        "Chapter 3: Advanced Topics\n\nAdvanced concepts are explained here.",
        "Chapter 4: Conclusion\n\nWe conclude with a summary of key points.",
    ]
    for content in pages_content:
        page = doc.new_page()
        page.insert_text((72, 72), content)

    doc.save(str(pdf_path))
    doc.close()
    return pdf_path


@pytest.fixture
def outline_pdf(temp_dir):
    """Six pages with bookmarks: two chapters, one sub-section."""
    import fitz

    pdf_path = temp_dir / "outlined.pdf"
    doc = fitz.open()
    for i in range(6):
        page = doc.new_page()
        page.insert_text((72, 72), f"Body text of page {i + 1}.")
    doc.set_toc([
        [1, "Chapter 1", 1],
        [2, "1.1 Setup", 2],
        [1, "Chapter 2", 4],
    ])
    doc.save(str(pdf_path))
    doc.close()
    return pdf_path


@pytest.fixture
def toc_pdf(temp_dir):
    """A printed table of contents on page 1; printed page 1 is physical page 2."""
    import fitz

    pdf_path = temp_dir / "with_toc.pdf"
    doc = fitz.open()

    toc_page = doc.new_page()
    toc_lines = [
        "Contents",
        "Introduction ........ 1",
        "Getting Started ..... 3",
        "Advanced Topics ..... 5",
    ]
    for i, line in enumerate(toc_lines):
        toc_page.insert_text((72, 72 + 24 * i), line)

    body_pages = [
        "Introduction\n\nWelcome to the book.",
        "More words about the opening.",
        "Getting Started\n\nInstall the tools first.",
        "Practice the basics every day.",
        "Advanced Topics\n\nNow for the harder material.",
        "Final remarks on the harder material.",
    ]
    for content in body_pages:
        page = doc.new_page()
        page.insert_text((72, 72), content)

    doc.save(str(pdf_path))
    doc.close()
    return pdf_path


@pytest.fixture
def raw_epub(temp_dir):
    """Write arbitrary ZIP entries as an EPUB; `container_for` builds a container.xml."""

    def write(name, entries):
        return write_epub(temp_dir / name, entries)

    write.container_for = lambda opf_path: CONTAINER_XML.format(opf_path=opf_path)
    return write
