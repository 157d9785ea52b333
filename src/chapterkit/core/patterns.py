"""Heading and table-of-contents pattern tables.

Shared by the outline, TOC and content-heuristic stages. Everything here is
immutable module-level data.
"""

from __future__ import annotations

import re

# Upper case only, so words like "did" or "mix" are not read as numerals
ROMAN_NUMERAL = r"[IVXLCDM]+"

# Canonical section names that always count as main chapters
CANONICAL_SECTIONS = frozenset({
    "introduction",
    "conclusion",
    "preface",
    "epilogue",
    "appendix",
    "bibliography",
    "references",
    "index",
    "foreword",
    "acknowledgments",
})

# =============================================================================
# Outline classification
# =============================================================================
# "Chapter 3", "CHAPTER 12: Title", "Chapter IV"
OUTLINE_CHAPTER_PATTERN = re.compile(rf"^\s*(?i:chapter)\s+(\d+|{ROMAN_NUMERAL})\b")
# "1.1 Setup", "2.3.4"
DECIMAL_SECTION_PATTERN = re.compile(r"^\s*\d+\.\d+")
# "1. Title" / "1." but not "1.1"
BARE_NUMBER_DOT_PATTERN = re.compile(r"^\s*\d+\.(?!\d)")

# =============================================================================
# Content heuristics (ordered by priority)
# =============================================================================
SUBSECTION_PATTERNS = [
    # "1.1 Title", "1.1.1 Title"
    re.compile(r"^\s*\d+\.\d+"),
    # "Section 1.1"
    re.compile(r"^\s*section\s+\d+\.\d+", re.IGNORECASE),
]

HEADING_PATTERNS = [
    # "Chapter 1", "Chap. IV"
    ("chapter", re.compile(rf"^\s*(?i:chapter\s+|chap\.\s*)(\d+|{ROMAN_NUMERAL})\b")),
    # "Part 2", "Part III"
    ("part", re.compile(rf"^\s*(?i:part)\s+(\d+|{ROMAN_NUMERAL})\b")),
    # "3. Title" at line start
    ("number", re.compile(r"^\s*(\d+)\.(?!\d)\s*\S")),
]

# =============================================================================
# TOC page detection and line parsing
# =============================================================================
TOC_ANYWHERE_PATTERN = re.compile(r"table\s+of\s+contents", re.IGNORECASE)
TOC_HEADER_PATTERN = re.compile(
    r"^\s*(?:table\s+of\s+contents|contents|índice|indice|contenido|contenidos"
    r"|sumario|sommaire|table\s+des\s+matières|inhaltsverzeichnis)\s*$",
    re.IGNORECASE,
)
# "Title ........ 123" / "Title 123"
TOC_LINE_PATTERN = re.compile(r"^(.*?\S)?\s*(\d+)\s*$")
LEADER_PATTERN = re.compile(r"[\s.·…_\-–]+$")
BARE_INTEGER_PATTERN = re.compile(r"^\d+$")

# =============================================================================
# EPUB title heuristics
# =============================================================================
FILENAME_CHAPTER_PATTERN = re.compile(
    r"(?:^|[\W_\d])(?:chapter|chap|ch\d+|part)", re.IGNORECASE
)
TITLE_SEPARATORS = (" - ", " | ", " – ", " — ", " :: ")
