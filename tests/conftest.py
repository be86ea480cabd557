import base64
import io

import pytest
from docx import Document
from docx.shared import Inches, Pt

from autoformat.adapters.docx_adapter import DocxContext
from autoformat.model import DocumentModel, ParagraphInfo

# 1x1 transparent PNG
PNG_1PX = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def para(index, text="Body text.", font="Calibri", style="Normal", size=11.0, heading=None, bold=False):
    return ParagraphInfo(
        index=index, text=text, style_name=style, font_name=font, font_size=size,
        alignment="left", bold=bold, heading=heading,
    )


def model_from_fonts(fonts):
    return DocumentModel(paragraphs=tuple(para(i, font=f) for i, f in enumerate(fonts)))


def add_text(doc, text, font="Calibri", size=None, bold=None, style=None):
    p = doc.add_paragraph(style=style)
    if text:
        run = p.add_run(text)
        run.font.name = font
        if size is not None:
            run.font.size = Pt(size)
        if bold is not None:
            run.bold = bold
    return p


def add_image(doc, width_in=2.0, alt=None):
    doc.add_picture(io.BytesIO(PNG_1PX), width=Inches(width_in))
    shape = doc.inline_shapes[-1]
    if alt is not None:
        shape._inline.docPr.set("descr", alt)
    return shape


@pytest.fixture
def new_doc():
    return Document()


@pytest.fixture
def ctx_for():
    """Wrap a python-docx Document in a context that syncs into memory."""
    def _make(doc):
        return DocxContext(doc, out=io.BytesIO())
    return _make

