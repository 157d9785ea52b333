"""Tests for chapter detection from PDF bookmarks."""

from chapterkit.core.errors import OutlineUnavailableError
from chapterkit.core.models import FlatOutlineItem, Found, NotFound, PdfRef
from chapterkit.core.page_ranges import build_page_ranges
from chapterkit.core.pdf_document import PdfDocument
from chapterkit.core.pdf_outline import (
    OUTLINE_CONFIDENCE,
    classify_main_chapters,
    flatten_outline,
    is_canonical_section,
    outline_chapters,
)


def _item(title, page, level=0):
    return FlatOutlineItem(title=title, page_number=page, level=level)


class TestFlattenOutline:
    """Tests for the iterative depth-first flattening."""

    def test_preorder_with_levels(self, outline_node):
        roots = [
            outline_node("Part One", 1, [outline_node("Chapter 1", 2), outline_node("Chapter 2", 5)]),
            outline_node("Part Two", 9, [outline_node("Chapter 3", 10)]),
        ]

        items = flatten_outline(roots)

        assert [i.title for i in items] == ["Part One", "Chapter 1", "Chapter 2", "Part Two", "Chapter 3"]
        assert [i.level for i in items] == [0, 1, 1, 0, 1]
        assert items[1].parent_title == "Part One"
        assert items[0].parent_title is None

    def test_unresolved_entries_skip_but_children_survive(self, outline_node):
        roots = [outline_node("Broken", None, [outline_node("Child", 3)])]

        items = flatten_outline(roots)

        assert [i.title for i in items] == ["Child"]
        assert items[0].level == 1

    def test_deep_nesting(self, outline_node):
        """Deep bookmark trees do not hit the recursion limit."""
        node = outline_node("Leaf", 1)
        for depth in range(5000):
            node = outline_node(f"Level {depth}", 1, [node])

        items = flatten_outline([node])

        assert len(items) == 5001
        assert items[-1].title == "Leaf"


class TestClassifyMainChapters:
    """Tests for main chapter selection."""

    def test_chapter_word_items_only(self):
        """Items ["Chapter 1", "1.1 Setup", "Chapter 2"] give two chapters."""
        items = [_item("Chapter 1", 1, 0), _item("1.1 Setup", 3, 1), _item("Chapter 2", 6, 0)]

        main = classify_main_chapters(items)
        chapters = build_page_ranges([(i.title, i.page_number) for i in main], 10)

        assert [ch.title for ch in chapters] == ["Chapter 1", "Chapter 2"]
        assert chapters[0].content_ref == PdfRef(1, 5)
        assert chapters[1].content_ref == PdfRef(6, 10)

    def test_chapter_word_keeps_canonical_sections(self):
        items = [
            _item("Preface", 1),
            _item("Chapter I", 3),
            _item("Chapter II", 8),
            _item("Notes on style", 12),
            _item("Index", 20),
        ]

        main = classify_main_chapters(items)

        assert [i.title for i in main] == ["Preface", "Chapter I", "Chapter II", "Index"]

    def test_numbered_sections(self):
        """With "N.M" items, top-level and bare "N." items are chapters."""
        items = [
            _item("1. Basics", 1, 1),
            _item("1.1 Terms", 2, 2),
            _item("2. Methods", 5, 1),
            _item("2.1 Tools", 6, 2),
            _item("Appendix", 9, 0),
        ]

        main = classify_main_chapters(items)

        assert [i.title for i in main] == ["1. Basics", "2. Methods", "Appendix"]

    def test_top_level_fallback(self):
        items = [_item("Start", 1, 0), _item("Detail", 2, 1), _item("Finish", 4, 0)]

        main = classify_main_chapters(items)

        assert [i.title for i in main] == ["Start", "Finish"]

    def test_lowercase_roman_is_not_a_chapter(self):
        """"chapter mix" is not read as a roman numeral."""
        items = [_item("Chapter mix", 1, 1), _item("Top", 2, 0)]

        main = classify_main_chapters(items)

        assert [i.title for i in main] == ["Top"]

    def test_canonical_section_names(self):
        assert is_canonical_section("Introduction")
        assert is_canonical_section("  BIBLIOGRAPHY: ")
        assert not is_canonical_section("Introduction to Python")


class TestOutlineChapters:
    """Tests for the outline stage."""

    def test_no_outline(self, fake_pdf):
        result = outline_chapters(fake_pdf([["x"], ["y"]]))

        assert isinstance(result, NotFound)
        assert isinstance(result.error, OutlineUnavailableError)

    def test_all_destinations_unresolved(self, fake_pdf, outline_node):
        pdf = fake_pdf([["x"]], outline=[outline_node("Lost", None)])

        result = outline_chapters(pdf)

        assert isinstance(result, NotFound)

    def test_chapters_sorted_by_page(self, fake_pdf, outline_node):
        """Bookmarks out of page order still give ordered, contiguous ranges."""
        pdf = fake_pdf(
            [["p"]] * 12,
            outline=[
                outline_node("Chapter 2", 7),
                outline_node("Chapter 1", 2),
                outline_node("Chapter 3", 10),
            ],
        )

        result = outline_chapters(pdf)

        assert isinstance(result, Found)
        assert result.confidence == OUTLINE_CONFIDENCE
        assert [ch.title for ch in result.chapters] == ["Chapter 1", "Chapter 2", "Chapter 3"]
        assert [ch.content_ref for ch in result.chapters] == [PdfRef(2, 6), PdfRef(7, 9), PdfRef(10, 12)]
        assert [ch.order for ch in result.chapters] == [1, 2, 3]

    def test_same_page_bookmarks_do_not_overlap(self, fake_pdf, outline_node):
        pdf = fake_pdf(
            [["p"]] * 6,
            outline=[outline_node("Start", 1), outline_node("Also start", 1), outline_node("End", 4)],
        )

        result = outline_chapters(pdf)

        assert [ch.content_ref for ch in result.chapters] == [PdfRef(1, 3), PdfRef(4, 6)]

    def test_real_pdf_bookmarks(self, outline_pdf):
        with PdfDocument.open(outline_pdf) as pdf:
            result = outline_chapters(pdf)

        assert isinstance(result, Found)
        assert [ch.title for ch in result.chapters] == ["Chapter 1", "Chapter 2"]
        assert [ch.content_ref for ch in result.chapters] == [PdfRef(1, 3), PdfRef(4, 6)]

    def test_pdf_outline_tree(self, outline_pdf):
        """PyMuPDF's flat TOC is rebuilt as a tree."""
        with PdfDocument.open(outline_pdf) as pdf:
            roots = pdf.outline()

        assert [r.title for r in roots] == ["Chapter 1", "Chapter 2"]
        assert [c.title for c in roots[0].children] == ["1.1 Setup"]
        assert roots[0].children[0].destination_page == 2
