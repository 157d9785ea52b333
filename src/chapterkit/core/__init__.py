"""Core chapter discovery and extraction.

Modules:
- book_reader: Public entry points (open, discover, extract)
- cancellation: Cancellation tokens for page scans
- chapter_discovery: Strategy orchestration (EPUB spine, PDF fallback chain)
- epub_extractor: Container/OPF/spine resolution and chapter text
- epub_titles: Chapter title heuristics for content documents
- errors: Exception hierarchy
- markup_text: (X)HTML to plain text
- models: Chapters, content refs and stage results
- page_ranges: Start pages to contiguous page ranges
- patterns: Heading and TOC regex tables
- pdf_document: PyMuPDF page reader
- pdf_outline: Chapters from embedded bookmarks
- pdf_toc: Chapters from a rendered table of contents
- pdf_headings: Chapters from heading patterns on each page
- pdf_text: Page range text
"""

__all__ = [
    "book_reader",
    "cancellation",
    "chapter_discovery",
    "epub_extractor",
    "epub_titles",
    "errors",
    "markup_text",
    "models",
    "page_ranges",
    "patterns",
    "pdf_document",
    "pdf_outline",
    "pdf_toc",
    "pdf_headings",
    "pdf_text",
]
