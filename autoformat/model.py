from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Optional, Tuple
import re

NO_RANGE = -1  # sentinel for findings that do not map to paragraphs

HEADING_STYLE_RE = re.compile(r"^heading\s*(\d+)$", re.IGNORECASE)

# Styles that are never treated as body text
EXCLUDED_STYLE_MARKERS = ("heading", "title", "subtitle", "quote", "code", "macro")
CODE_FONTS = {"courier new", "consolas"}

# Visual heading thresholds (points)
VISUAL_H1_SIZE = 18.0
VISUAL_H2_SIZE = 14.0
MAX_HEADING_CHARS = 100
MAX_HEADING_WORDS = 15


@dataclass(frozen=True)
class HeadingClass:
    level: int
    basis: str  # "style" | "visual"


@dataclass(frozen=True)
class ParagraphInfo:
    index: int
    text: str
    style_name: str
    font_name: str
    font_size: float
    alignment: str
    line_spacing: Optional[float] = None  # multiple of a single line, None when exact/unknown
    bold: bool = False
    is_list_item: bool = False
    list_level: int = -1
    heading: Optional[HeadingClass] = None
    has_object: bool = False   # picture, embedded object or section break
    after_block: bool = False  # a table or content control sits right before it

    @property
    def is_heading(self) -> bool:
        return self.heading is not None

    @property
    def heading_level(self) -> int:
        return self.heading.level if self.heading else 0

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    @property
    def is_blank(self) -> bool:
        return self.is_empty and not self.has_object


@dataclass(frozen=True)
class TableInfo:
    index: int
    row_count: int
    column_count: int
    has_header_row: bool = True  # assumed, not verified


@dataclass(frozen=True)
class ImageInfo:
    index: int
    width: float
    height: float
    has_alt_text: bool
    wrapping: str = "inline"


@dataclass(frozen=True)
class Margins:
    top: float
    bottom: float
    left: float
    right: float


@dataclass(frozen=True)
class SectionInfo:
    index: int
    margins: Margins
    page_width: Optional[float] = None


@dataclass(frozen=True)
class HeaderFooterInfo:
    section_index: int
    kind: str  # "header" | "footer"
    text: str = ""


@dataclass(frozen=True)
class DocumentModel:
    paragraphs: Tuple[ParagraphInfo, ...] = ()
    tables: Tuple[TableInfo, ...] = ()
    images: Tuple[ImageInfo, ...] = ()
    sections: Tuple[SectionInfo, ...] = ()
    headers: Tuple[HeaderFooterInfo, ...] = ()
    footers: Tuple[HeaderFooterInfo, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Problem:
    id: str            # "<category>-..." e.g. "font-12", "image-alt-0"
    description: str
    severity: str      # info|warning
    start: int = NO_RANGE
    end: int = NO_RANGE

    @property
    def category(self) -> str:
        return self.id.split("-", 1)[0]

    @property
    def has_range(self) -> bool:
        return self.start != NO_RANGE

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["category"] = self.category
        return d


def is_excluded_style(style_name: str, font_name: str = "") -> bool:
    """True for paragraphs that font normalization must leave alone."""
    s = (style_name or "").lower()
    if any(m in s for m in EXCLUDED_STYLE_MARKERS):
        return True
    return (font_name or "").lower() in CODE_FONTS


def blank_runs(flags: Iterable[Tuple[bool, bool]]) -> List[Tuple[int, int]]:
    """
    Positions (start, end) of every run of two or more blank paragraphs.

    Takes one (is_blank, after_block) pair per paragraph in body order. A
    table or content control between two paragraphs ends the current run.
    Used by both the spacing detector and the blank-line fix.
    """
    runs: List[Tuple[int, int]] = []
    start = last = -1
    for pos, (blank, after_block) in enumerate(flags):
        if start != -1 and (not blank or after_block):
            if last > start:
                runs.append((start, last))
            start = -1
        if blank:
            if start == -1:
                start = pos
            last = pos
    if start != -1 and last > start:
        runs.append((start, last))
    return runs


def classify_heading(
    style_name: str,
    text: str,
    font_size: float,
    bold: bool,
    is_list_item: bool = False,
) -> Optional[HeadingClass]:
    """
    Decide whether a paragraph is a heading.

    A declared "Heading N" style wins. Otherwise a short paragraph can still be
    a heading by visual weight: >= 18pt reads as H1, >= 14pt as H2, and bold
    text as H3. Real documents often fake headings this way.
    """
    m = HEADING_STYLE_RE.match((style_name or "").strip())
    if m:
        return HeadingClass(level=int(m.group(1)), basis="style")

    stripped = (text or "").strip()
    if not stripped or is_list_item or is_excluded_style(style_name):
        return None
    if len(stripped) >= MAX_HEADING_CHARS or len(stripped.split()) >= MAX_HEADING_WORDS:
        return None
    if stripped.endswith((".", ",", ";")):
        return None

    if font_size >= VISUAL_H1_SIZE:
        return HeadingClass(level=1, basis="visual")
    if font_size >= VISUAL_H2_SIZE:
        return HeadingClass(level=2, basis="visual")
    if bold and len(stripped) > 3:
        return HeadingClass(level=3, basis="visual")
    return None
