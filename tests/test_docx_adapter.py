import io

import pytest
from docx.shared import Inches, Pt

from conftest import add_image, add_text

from autoformat.adapters.docx_adapter import DocxContext, build_document_model
from autoformat.errors import ReadFailure
from autoformat.model import HeadingClass


class ExplodingContext(DocxContext):
    def read(self):
        raise RuntimeError("document went away")


def test_paragraphs_including_empty(new_doc, ctx_for):
    add_text(new_doc, "First.", font="Arial", size=11)
    new_doc.add_paragraph("")
    add_text(new_doc, "Third.", font="Calibri", size=11)
    model = build_document_model(ctx_for(new_doc))
    assert [p.index for p in model.paragraphs] == [0, 1, 2]
    assert model.paragraphs[1].is_empty
    assert model.paragraphs[0].font_name == "Arial"
    assert model.paragraphs[2].font_size == 11.0
    assert model.paragraphs[0].alignment == "left"


def test_heading_basis(new_doc, ctx_for):
    new_doc.add_heading("Introduction", level=1)
    add_text(new_doc, "Key Findings", bold=True, size=11)
    add_text(new_doc, "Big Banner", size=20)
    add_text(new_doc, "This sentence is bold but ends with a period.", bold=True, size=11)
    add_text(new_doc, "plain body", size=11)
    paras = build_document_model(ctx_for(new_doc)).paragraphs
    assert paras[0].heading == HeadingClass(1, "style")
    assert paras[1].heading == HeadingClass(3, "visual")
    assert paras[2].heading == HeadingClass(1, "visual")
    assert paras[3].heading is None
    assert paras[4].heading is None and not paras[4].is_heading


def test_list_items_are_not_headings(new_doc, ctx_for):
    p = add_text(new_doc, "Bold bullet", bold=True, size=11, style="List Bullet")
    info = build_document_model(ctx_for(new_doc)).paragraphs[0]
    assert p.style.name == "List Bullet"
    assert info.is_list_item
    assert info.heading is None


def test_tables_including_zero_rows(new_doc, ctx_for):
    new_doc.add_table(rows=3, cols=4)
    new_doc.add_table(rows=0, cols=2)
    tables = build_document_model(ctx_for(new_doc)).tables
    assert [(t.row_count, t.column_count) for t in tables] == [(3, 4), (0, 0)]
    assert all(t.has_header_row for t in tables)


def test_images_and_alt_text(new_doc, ctx_for):
    add_image(new_doc, width_in=2.0, alt="A bar chart")
    add_image(new_doc, width_in=8.0)
    images = build_document_model(ctx_for(new_doc)).images
    assert [i.has_alt_text for i in images] == [True, False]
    assert images[0].width == pytest.approx(144.0)
    assert images[1].width == pytest.approx(576.0)
    assert images[0].wrapping == "inline"


def test_sections_headers_and_footers(new_doc, ctx_for):
    s = new_doc.sections[0]
    s.top_margin = s.bottom_margin = Inches(1)
    s.left_margin = s.right_margin = Pt(90)
    s.page_width = Inches(8.5)
    s.header.is_linked_to_previous = False
    s.header.paragraphs[0].text = "Quarterly Report"

    model = build_document_model(ctx_for(new_doc))
    (section,) = model.sections
    assert (section.margins.top, section.margins.left) == (72.0, 90.0)
    assert section.page_width == 612.0
    assert model.headers[0].kind == "header" and model.headers[0].text == "Quarterly Report"
    # No footer defined: still one record, empty text
    assert model.footers[0].kind == "footer" and model.footers[0].text == ""


def test_model_build_syncs_once_without_saving(new_doc):
    out = io.BytesIO()
    ctx = DocxContext(new_doc, out=out)
    build_document_model(ctx)
    assert ctx.sync_count == 1
    assert out.getvalue() == b""


def test_read_errors_surface_as_read_failure(new_doc):
    with pytest.raises(ReadFailure):
        build_document_model(ExplodingContext(new_doc))


def test_open_rejects_non_docx():
    with pytest.raises(ReadFailure):
        DocxContext.open(io.BytesIO(b"definitely not a zip"))


def test_write_then_sync_saves(new_doc, ctx_for):
    ctx = ctx_for(new_doc)
    ctx.write().add_paragraph("hello")
    ctx.sync()
    assert ctx.out.getvalue()[:2] == b"PK"
