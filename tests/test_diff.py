from dataclasses import replace

from conftest import para

from autoformat.detect import run_detectors
from autoformat.diff import ALT_TEXT_PLACEHOLDER, generate_diff, usable_width
from autoformat.model import DocumentModel, HeadingClass, ImageInfo, Margins, SectionInfo, TableInfo
from autoformat.options import AutoFormatOptions
from autoformat.templates import default_registry

STANDARD = default_registry().get("standard")
ACADEMIC = default_registry().get("academic")
LETTER = SectionInfo(index=0, margins=Margins(72, 72, 72, 72), page_width=612.0)


def messy_model():
    return DocumentModel(
        paragraphs=(
            para(0, text="Intro", style="Heading 1", heading=HeadingClass(1, "style")),
            para(1), para(2, font="Arial"), para(3),
            para(4, text=""), para(5, text=""),
            para(6, text="Key Findings", bold=True, heading=HeadingClass(3, "visual")),
            para(7),
        ),
        tables=(TableInfo(index=0, row_count=3, column_count=2),),
        images=(ImageInfo(index=0, width=600.0, height=300.0, has_alt_text=False),),
        sections=(SectionInfo(index=0, margins=Margins(72, 72, 90, 90), page_width=612.0),),
    )


def everything_on(**kw):
    return AutoFormatOptions(margins=True, accessibility=True, **kw)


def diff_for(model, options, template=STANDARD):
    return generate_diff(model, run_detectors(model, options), options, template)


def test_one_change_per_category_in_fixed_order():
    changes = diff_for(messy_model(), everything_on())
    assert [c.id for c in changes] == [
        "normalize-fonts", "fix-headings", "fix-spacing", "fix-tables",
        "fix-images", "fix-margins", "add-alt-text",
    ]
    assert [c.category for c in changes] == [
        "Fonts", "Headings", "Spacing", "Tables", "Images", "Margins", "Accessibility",
    ]
    assert all(c.enabled for c in changes)


def test_suggest_mode_proposes_everything_disabled():
    changes = diff_for(messy_model(), everything_on(mode="suggest"))
    assert len(changes) == 7
    assert not any(c.enabled for c in changes)


def test_values_come_from_the_template():
    model = messy_model()
    opts = everything_on(template_id="academic")
    by_id = {c.id: c for c in diff_for(model, opts, ACADEMIC)}

    fonts = by_id["normalize-fonts"]
    assert fonts.command.kind == "normalize_fonts"
    assert fonts.command.params == {"font_name": "Times New Roman", "font_size": 12}
    assert (fonts.start, fonts.end) == (2, 2)
    assert "Arial" in fonts.before

    headings = by_id["fix-headings"].command.params
    assert headings["font_name"] == "Times New Roman"
    assert headings["levels"][1]["font_size"] == 14

    assert by_id["fix-spacing"].command.params == {"line_spacing": 2.0}
    assert by_id["fix-tables"].command.params == {"style_name": "Table Grid"}
    assert by_id["fix-margins"].command.params == {"top": 72, "bottom": 72, "left": 72, "right": 72}


def test_heading_change_counts_fakes_and_jumps():
    change = next(c for c in diff_for(messy_model(), AutoFormatOptions()) if c.id == "fix-headings")
    assert change.before == "1 unstyled heading(s), 1 level jump(s)"
    assert change.kind == "style"


def test_tables_styled_whenever_present():
    model = DocumentModel(paragraphs=(para(0),), tables=(TableInfo(index=0, row_count=0, column_count=0),))
    changes = diff_for(model, AutoFormatOptions())
    assert [c.id for c in changes] == ["fix-tables"]
    assert changes[0].start == changes[0].end == -1


def test_disabled_categories_emit_nothing():
    opts = AutoFormatOptions(
        fonts=False, headings=False, spacing=False, tables=False, images=False,
        margins=False, accessibility=False,
    )
    assert diff_for(messy_model(), opts) == []


def test_clean_document_needs_no_changes():
    model = DocumentModel(
        paragraphs=(para(0), para(1, text=""), para(2)),
        images=(ImageInfo(index=0, width=200.0, height=100.0, has_alt_text=True),),
        sections=(LETTER,),
    )
    assert diff_for(model, everything_on()) == []


def test_images_only_resized_when_wider_than_page():
    narrow = DocumentModel(images=(ImageInfo(0, 400.0, 100.0, True),), sections=(LETTER,))
    assert diff_for(narrow, AutoFormatOptions()) == []

    wide = DocumentModel(images=(ImageInfo(0, 400.0, 100.0, True), ImageInfo(1, 500.0, 100.0, True)), sections=(LETTER,))
    (change,) = diff_for(wide, AutoFormatOptions())
    assert change.id == "fix-images"
    assert change.command.params == {"max_width": 468.0}
    assert "1 image(s)" in change.before


def test_usable_width_defaults_without_sections():
    assert usable_width(DocumentModel()) == 468.0
    narrow_page = SectionInfo(index=0, margins=Margins(72, 72, 90, 90), page_width=612.0)
    assert usable_width(DocumentModel(sections=(narrow_page,))) == 432.0


def test_margins_within_tolerance_are_left_alone():
    close = SectionInfo(index=0, margins=Margins(72.3, 71.8, 72, 72), page_width=612.0)
    assert diff_for(DocumentModel(sections=(close,)), everything_on()) == []


def test_alt_text_change_uses_placeholder():
    model = DocumentModel(images=(ImageInfo(0, 10.0, 10.0, False),), sections=(LETTER,))
    changes = diff_for(model, AutoFormatOptions(images=False, accessibility=True))
    assert [c.id for c in changes] == ["add-alt-text"]
    assert changes[0].command.params == {"placeholder": ALT_TEXT_PLACEHOLDER}
    assert "via mark_missing_alt_text" in changes[0].explain()


def test_uneven_line_spacing_alone_yields_spacing_change():
    model = DocumentModel(
        paragraphs=tuple(replace(para(i), line_spacing=s) for i, s in enumerate([1.15, 1.15, 2.0])),
        sections=(LETTER,),
    )
    (change,) = diff_for(model, AutoFormatOptions())
    assert change.id == "fix-spacing"
    assert change.before == "1 run(s) of uneven line spacing"
    assert change.command.params == {"line_spacing": 1.15}
    assert (change.start, change.end) == (2, 2)
