"""
Remediation primitives and the executor that runs FormatChange commands.

Every primitive takes a DocxContext plus plain parameters, mutates the
document in one write batch and finishes with ctx.sync(). Primitives are
idempotent: running one twice leaves the document as running it once.
"""
from __future__ import annotations
from typing import Any, Callable, Dict, Optional
import logging

from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt, RGBColor

from autoformat.adapters.docx_adapter import DocxContext, blank_flags, doc_defaults, font_attr, is_bold, list_info
from autoformat.changes import FormatChange
from autoformat.model import blank_runs, classify_heading, is_excluded_style

logger = logging.getLogger(__name__)

Primitive = Callable[..., None]

DEFAULT_MAX_IMAGE_WIDTH = 468.0  # 6.5in: letter page less 1in margins
FALLBACK_TABLE_STYLE = "Table Grid"


def _style_names(doc) -> set:
    return {s.name for s in doc.styles}


def _paragraph_font_name(p) -> str:
    return font_attr(p, "name", "") or ""


def normalize_fonts(ctx: DocxContext, font_name: str, font_size: float) -> None:
    """Set body paragraphs to one font and size, leaving headings, titles, quotes and code alone."""
    doc = ctx.write()
    _, default_size = doc_defaults(doc)
    touched = 0
    for p in doc.paragraphs:
        style_name = p.style.name if p.style is not None else ""
        if is_excluded_style(style_name, _paragraph_font_name(p)):
            continue
        if classify_heading(style_name, p.text, _size_pt(p, default_size), is_bold(p), list_info(p, style_name)[0]):
            continue
        for run in p.runs:
            run.font.name = font_name
            run.font.size = Pt(font_size)
        touched += 1
    logger.info(f"normalize_fonts: {touched} paragraph(s) set to {font_name} {font_size}pt")
    ctx.sync()


def _size_pt(p, default: float) -> float:
    size = font_attr(p, "size", None)
    return float(size.pt) if size is not None else default


def standardize_headings(ctx: DocxContext, font_name: str, levels: Dict[int, Dict[str, Any]]) -> None:
    """
    Reclassify and restyle headings.

    Visually-implied headings get a real "Heading N" style, level jumps are
    pulled up to one below the previous heading, and every heading gets the
    size, weight and colour of its level with left alignment.
    """
    doc = ctx.write()
    _, default_size = doc_defaults(doc)
    levels = {int(k): v for k, v in (levels or {}).items()}
    available = _style_names(doc)
    prev_level = 0
    restyled = 0
    for p in doc.paragraphs:
        style_name = p.style.name if p.style is not None else ""
        is_list = list_info(p, style_name)[0]
        h = classify_heading(style_name, p.text, _size_pt(p, default_size), is_bold(p), is_list)
        if h is None:
            continue
        level = h.level
        if prev_level and level > prev_level + 1:
            level = prev_level + 1
        prev_level = level

        target = f"Heading {level}"
        if style_name != target:
            if target in available:
                p.style = doc.styles[target]
                restyled += 1
            else:
                logger.warning(f"Style '{target}' not defined in document; formatting paragraph {p.text[:30]!r} in place")

        spec = (levels.get(level) or levels[max(levels)]) if levels else None
        p.paragraph_format.alignment = WD_ALIGN_PARAGRAPH.LEFT
        for run in p.runs:
            run.font.name = font_name
            run.font.italic = False
            run.font.underline = False
            if spec:
                run.font.size = Pt(spec["font_size"])
                run.font.bold = bool(spec.get("bold", True))
                if spec.get("color"):
                    run.font.color.rgb = RGBColor.from_string(spec["color"].lstrip("#").upper())
            else:
                run.font.bold = True
    logger.info(f"standardize_headings: {restyled} paragraph(s) restyled")
    ctx.sync()


def collapse_blank_paragraphs(ctx: DocxContext, line_spacing: Optional[float] = None) -> None:
    """
    Keep the first blank paragraph of each blank run and delete the rest.

    Paragraphs holding a picture, object or section break are not blank, and a
    table between two blank paragraphs keeps both. Line spacing is then set on
    every text paragraph outside excluded styles.
    """
    doc = ctx.write()
    paragraphs = doc.paragraphs
    runs = blank_runs(blank_flags(p) for p in paragraphs)
    to_delete = [p for start, end in runs for p in paragraphs[start + 1:end + 1]]
    if line_spacing is not None:
        for p in paragraphs:
            style_name = p.style.name if p.style is not None else ""
            if p.text.strip() and not is_excluded_style(style_name):
                p.paragraph_format.line_spacing = line_spacing
    for p in to_delete:
        el = p._element
        el.getparent().remove(el)
    logger.info(f"collapse_blank_paragraphs: removed {len(to_delete)} blank paragraph(s)")
    ctx.sync()


def apply_table_style(ctx: DocxContext, style_name: str) -> None:
    """Apply one table style everywhere and bold the header row."""
    doc = ctx.write()
    available = _style_names(doc)
    if style_name not in available:
        logger.warning(f"Table style '{style_name}' not defined in document; using '{FALLBACK_TABLE_STYLE}'")
        style_name = FALLBACK_TABLE_STYLE if FALLBACK_TABLE_STYLE in available else None
    for table in doc.tables:
        if style_name:
            table.style = doc.styles[style_name]
        if len(table.rows):
            for cell in table.rows[0].cells:
                for p in cell.paragraphs:
                    for run in p.runs:
                        run.font.bold = True
    logger.info(f"apply_table_style: styled {len(doc.tables)} table(s) with {style_name!r}")
    ctx.sync()


def resize_images(ctx: DocxContext, max_width: Optional[float] = None) -> None:
    """Shrink images wider than the usable page width, keeping aspect ratio."""
    doc = ctx.write()
    if max_width is None:
        max_width = DEFAULT_MAX_IMAGE_WIDTH
        if len(doc.sections):
            s = doc.sections[0]
            if s.page_width is not None and s.left_margin is not None and s.right_margin is not None:
                max_width = s.page_width.pt - s.left_margin.pt - s.right_margin.pt
    resized = 0
    for shape in doc.inline_shapes:
        width = shape.width.pt
        if width > max_width:
            ratio = shape.height.pt / width
            shape.width = Pt(max_width)
            shape.height = Pt(max_width * ratio)
            resized += 1
    logger.info(f"resize_images: resized {resized} image(s) to <= {max_width:.0f}pt")
    ctx.sync()


def set_margins(ctx: DocxContext, top: float, bottom: float, left: float, right: float) -> None:
    doc = ctx.write()
    for s in doc.sections:
        s.top_margin = Pt(top)
        s.bottom_margin = Pt(bottom)
        s.left_margin = Pt(left)
        s.right_margin = Pt(right)
    logger.info(f"set_margins: {len(doc.sections)} section(s) set to {top}/{bottom}/{left}/{right}pt")
    ctx.sync()


def mark_missing_alt_text(ctx: DocxContext, placeholder: str) -> None:
    """Write a visible placeholder description on images without alt text."""
    doc = ctx.write()
    marked = 0
    for i, shape in enumerate(doc.inline_shapes):
        doc_pr = shape._inline.docPr
        if (doc_pr.get("descr") or "").strip() or (doc_pr.get("title") or "").strip():
            continue
        doc_pr.set("descr", placeholder.format(n=i + 1))
        marked += 1
    logger.info(f"mark_missing_alt_text: marked {marked} image(s)")
    ctx.sync()


PRIMITIVES: Dict[str, Primitive] = {
    "normalize_fonts": normalize_fonts,
    "standardize_headings": standardize_headings,
    "collapse_blank_paragraphs": collapse_blank_paragraphs,
    "apply_table_style": apply_table_style,
    "resize_images": resize_images,
    "set_margins": set_margins,
    "mark_missing_alt_text": mark_missing_alt_text,
}


class UnknownCommand(KeyError):
    pass


class ChangeExecutor:
    """Resolves a FormatChange's command to a primitive and runs it."""

    def __init__(self, registry: Optional[Dict[str, Primitive]] = None):
        self.registry = dict(PRIMITIVES if registry is None else registry)

    def resolve(self, change: FormatChange) -> Primitive:
        fn = self.registry.get(change.command.kind)
        if fn is None:
            raise UnknownCommand(f"No primitive registered for '{change.command.kind}'")
        return fn

    def execute(self, change: FormatChange, ctx: DocxContext) -> None:
        fn = self.resolve(change)
        logger.info(f"Applying {change.id}: {change.command.describe()}")
        fn(ctx, **change.command.params)
