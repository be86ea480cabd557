from __future__ import annotations
from typing import IO, Iterator, List, Optional, Tuple, Union
import logging

from docx import Document
from docx.document import Document as DocxDocument
from docx.oxml.ns import qn

from autoformat.errors import ReadFailure
from autoformat.model import (
    DocumentModel, ParagraphInfo, TableInfo, ImageInfo, SectionInfo,
    HeaderFooterInfo, Margins, classify_heading,
)

logger = logging.getLogger(__name__)

Target = Union[str, IO[bytes]]

FALLBACK_FONT = "Calibri"
FALLBACK_SIZE = 11.0


class DocxContext:
    """
    Access context for one live .docx document.

    Reads and writes are batched against the in-memory python-docx tree and
    only become durable at sync(), which saves to `out` when one is set.
    """

    def __init__(self, document: DocxDocument, out: Optional[Target] = None):
        self.document = document
        self.out = out
        self.sync_count = 0
        self._dirty = False

    @classmethod
    def open(cls, source: Target, out: Optional[Target] = None) -> "DocxContext":
        try:
            doc = Document(source)
        except Exception as e:
            raise ReadFailure(f"Could not open document {source!r}: {e}") from e
        return cls(doc, out=out)

    def read(self) -> DocxDocument:
        return self.document

    def write(self) -> DocxDocument:
        self._dirty = True
        return self.document

    def sync(self) -> None:
        if self._dirty and self.out is not None:
            if hasattr(self.out, "seek"):
                self.out.seek(0)
                self.out.truncate()
            self.document.save(self.out)
            logger.debug(f"Synced document to {self.out!r}")
        self._dirty = False
        self.sync_count += 1


# =============================================================================
# Attribute resolution
# =============================================================================

def _style_chain(style) -> Iterator:
    seen = 0
    while style is not None and seen < 20:
        yield style
        style = style.base_style
        seen += 1


def doc_defaults(document: DocxDocument) -> Tuple[str, float]:
    el = document.styles.element
    font = FALLBACK_FONT
    size = FALLBACK_SIZE
    fonts = el.xpath("./w:docDefaults/w:rPrDefault/w:rPr/w:rFonts")
    if fonts and fonts[0].get(qn("w:ascii")):
        font = fonts[0].get(qn("w:ascii"))
    sz = el.xpath("./w:docDefaults/w:rPrDefault/w:rPr/w:sz")
    if sz and sz[0].get(qn("w:val")):
        size = int(sz[0].get(qn("w:val"))) / 2.0
    return font, size


def _text_runs(paragraph) -> List:
    return [r for r in paragraph.runs if r.text.strip()]


def font_attr(paragraph, attr: str, default):
    for run in _text_runs(paragraph)[:1]:
        v = getattr(run.font, attr)
        if v is not None:
            return v
    for style in _style_chain(paragraph.style):
        v = getattr(style.font, attr)
        if v is not None:
            return v
    return default


def is_bold(paragraph) -> bool:
    runs = _text_runs(paragraph)
    if not runs:
        return False
    style_bold = False
    for style in _style_chain(paragraph.style):
        if style.font.bold is not None:
            style_bold = bool(style.font.bold)
            break
    return all(r.bold if r.bold is not None else style_bold for r in runs)


def _line_spacing(paragraph) -> Optional[float]:
    v = paragraph.paragraph_format.line_spacing
    if v is None:
        for style in _style_chain(paragraph.style):
            v = style.paragraph_format.line_spacing
            if v is not None:
                break
    # Exact spacing comes back as a Length (an int); only multiples are comparable
    return float(v) if isinstance(v, float) else None


def _alignment(paragraph) -> str:
    a = paragraph.paragraph_format.alignment
    if a is None:
        for style in _style_chain(paragraph.style):
            a = style.paragraph_format.alignment
            if a is not None:
                break
    return a.name.lower() if a is not None else "left"


def list_info(paragraph, style_name: str) -> Tuple[bool, int]:
    if paragraph._p.xpath("./w:pPr/w:numPr"):
        lvl = paragraph._p.xpath("./w:pPr/w:numPr/w:ilvl/@w:val")
        return True, int(lvl[0]) if lvl else 0
    if style_name.lower().startswith("list"):
        return True, 0
    return False, -1


# Paragraph content that survives without text: pictures, VML shapes,
# embedded objects and section breaks.
_OBJECT_XPATH = ".//w:drawing | .//w:pict | .//w:object | ./w:pPr/w:sectPr"
_BLOCK_TAGS = (qn("w:tbl"), qn("w:sdt"))


def has_object(paragraph) -> bool:
    return bool(paragraph._p.xpath(_OBJECT_XPATH))


def blank_flags(paragraph) -> Tuple[bool, bool]:
    """(is_blank, after_block) for one paragraph, the input blank_runs() expects."""
    prev = paragraph._p.getprevious()
    after_block = prev is not None and prev.tag in _BLOCK_TAGS
    return (not paragraph.text.strip() and not has_object(paragraph)), after_block


def _pt(length, default: float = 0.0) -> float:
    return float(length.pt) if length is not None else default


def _header_footer_text(part) -> str:
    # A linked header has no definition of its own; touching .paragraphs would add one
    if part.is_linked_to_previous:
        return ""
    return "\n".join(p.text for p in part.paragraphs)


# =============================================================================
# Model builder
# =============================================================================

def _paragraph_info(index: int, p, default_font: str, default_size: float) -> ParagraphInfo:
    style_name = p.style.name if p.style is not None else ""
    font_name = font_attr(p, "name", default_font)
    size = font_attr(p, "size", None)
    font_size = float(size.pt) if size is not None else default_size
    bold = is_bold(p)
    is_list, level = list_info(p, style_name)
    return ParagraphInfo(
        index=index,
        text=p.text,
        style_name=style_name,
        font_name=font_name,
        font_size=font_size,
        alignment=_alignment(p),
        line_spacing=_line_spacing(p),
        bold=bold,
        is_list_item=is_list,
        list_level=level,
        heading=classify_heading(style_name, p.text, font_size, bold, is_list),
        has_object=has_object(p),
        after_block=blank_flags(p)[1],
    )


def _table_info(index: int, table) -> TableInfo:
    rows = table.rows
    return TableInfo(
        index=index,
        row_count=len(rows),
        column_count=len(rows[0].cells) if len(rows) else 0,
        has_header_row=True,
    )


def _image_info(index: int, shape) -> ImageInfo:
    doc_pr = shape._inline.docPr
    return ImageInfo(
        index=index,
        width=_pt(shape.width),
        height=_pt(shape.height),
        has_alt_text=bool((doc_pr.get("descr") or "").strip() or (doc_pr.get("title") or "").strip()),
        wrapping="inline",
    )


def build_document_model(ctx: DocxContext) -> DocumentModel:
    """
    Snapshot the document in a single read pass.

    The result holds plain values only. If anything in the pass fails the
    error surfaces as ReadFailure and no partial model is returned.
    """
    try:
        doc = ctx.read()
        default_font, default_size = doc_defaults(doc)
        paragraphs = tuple(
            _paragraph_info(i, p, default_font, default_size) for i, p in enumerate(doc.paragraphs)
        )
        tables = tuple(_table_info(i, t) for i, t in enumerate(doc.tables))
        images = tuple(_image_info(i, s) for i, s in enumerate(doc.inline_shapes))

        sections: List[SectionInfo] = []
        headers: List[HeaderFooterInfo] = []
        footers: List[HeaderFooterInfo] = []
        for i, s in enumerate(doc.sections):
            sections.append(SectionInfo(
                index=i,
                margins=Margins(
                    top=_pt(s.top_margin), bottom=_pt(s.bottom_margin),
                    left=_pt(s.left_margin), right=_pt(s.right_margin),
                ),
                page_width=_pt(s.page_width) if s.page_width is not None else None,
            ))
            headers.append(HeaderFooterInfo(section_index=i, kind="header", text=_header_footer_text(s.header)))
            footers.append(HeaderFooterInfo(section_index=i, kind="footer", text=_header_footer_text(s.footer)))
        ctx.sync()
    except ReadFailure:
        raise
    except Exception as e:
        raise ReadFailure(f"Document read failed: {e}") from e

    model = DocumentModel(
        paragraphs=paragraphs,
        tables=tables,
        images=images,
        sections=tuple(sections),
        headers=tuple(headers),
        footers=tuple(footers),
    )
    logger.info(
        f"Built document model: {len(paragraphs)} paragraphs, {len(tables)} tables, "
        f"{len(images)} images, {len(sections)} sections"
    )
    return model
