"""
Turn a document snapshot and its problems into reviewable FormatChanges.

Each enabled category yields at most one change, so a reviewer approves
"normalize fonts" once rather than paragraph by paragraph. All target values
come from the active template and are frozen into the change's command.
"""
from __future__ import annotations
from typing import List, Optional, Tuple
import logging

from autoformat.changes import FormatChange, FormatCommand
from autoformat.model import DocumentModel, Problem, Margins, NO_RANGE
from autoformat.options import AutoFormatOptions, CATEGORY_LABELS
from autoformat.templates import FormatTemplate

logger = logging.getLogger(__name__)

MARGIN_TOLERANCE_PT = 0.5
ALT_TEXT_PLACEHOLDER = "INSERT ALT TEXT FOR IMAGE {n}"
DEFAULT_USABLE_WIDTH = 468.0


def _of_category(problems: List[Problem], category: str) -> List[Problem]:
    return [p for p in problems if p.category == category]


def _span(problems: List[Problem]) -> Tuple[int, int]:
    ranged = [p for p in problems if p.has_range]
    if not ranged:
        return NO_RANGE, NO_RANGE
    return min(p.start for p in ranged), max(p.end for p in ranged)


def _fmt_margins(m: Margins) -> str:
    return f"{m.top:g}/{m.bottom:g}/{m.left:g}/{m.right:g}pt"


def _margins_differ(a: Margins, b: Margins) -> bool:
    return any(
        abs(x - y) > MARGIN_TOLERANCE_PT
        for x, y in ((a.top, b.top), (a.bottom, b.bottom), (a.left, b.left), (a.right, b.right))
    )


def usable_width(model: DocumentModel) -> float:
    if not model.sections or model.sections[0].page_width is None:
        return DEFAULT_USABLE_WIDTH
    s = model.sections[0]
    return s.page_width - s.margins.left - s.margins.right


def _font_change(model: DocumentModel, problems: List[Problem], template: FormatTemplate) -> Optional[FormatChange]:
    found = _of_category(problems, "font")
    if not found:
        return None
    r = template.rules
    fonts = sorted({model.paragraphs[i].font_name for p in found for i in range(p.start, p.end + 1)})
    start, end = _span(found)
    return FormatChange(
        id="normalize-fonts",
        kind="style",
        category=CATEGORY_LABELS["fonts"],
        description=f"Normalize fonts to {r.font_family} {r.font_size:g}pt",
        before=f"Mixed fonts ({', '.join(fonts)}) in {len(found)} run(s)",
        after=f"{r.font_family} {r.font_size:g}pt",
        command=FormatCommand("normalize_fonts", {"font_name": r.font_family, "font_size": r.font_size}),
        start=start,
        end=end,
    )


def _heading_change(problems: List[Problem], template: FormatTemplate) -> Optional[FormatChange]:
    found = _of_category(problems, "heading")
    if not found:
        return None
    r = template.rules
    levels = {
        level: {"font_size": h.font_size, "bold": h.bold, "color": h.color}
        for level, h in sorted(r.heading_styles.items())
    }
    fake = sum(1 for p in found if p.id.startswith("heading-fake-"))
    skips = len(found) - fake
    start, end = _span(found)
    sizes = ", ".join(f"H{lvl}: {h['font_size']:g}pt" for lvl, h in levels.items())
    return FormatChange(
        id="fix-headings",
        kind="style",
        category=CATEGORY_LABELS["headings"],
        description="Standardize all heading styles",
        before=f"{fake} unstyled heading(s), {skips} level jump(s)",
        after=f"Standardized headings ({sizes})",
        command=FormatCommand("standardize_headings", {"font_name": r.font_family, "levels": levels}),
        start=start,
        end=end,
    )


def _spacing_change(problems: List[Problem], template: FormatTemplate) -> Optional[FormatChange]:
    found = _of_category(problems, "spacing")
    if not found:
        return None
    spacing = template.rules.line_spacing
    start, end = _span(found)
    uneven = [p for p in found if p.id.startswith("spacing-line-")]
    blank = [p for p in found if p not in uneven]
    before = []
    if blank:
        before.append(f"{sum(p.end - p.start + 1 for p in blank)} blank paragraph(s) in {len(blank)} run(s)")
    if uneven:
        before.append(f"{len(uneven)} run(s) of uneven line spacing")
    return FormatChange(
        id="fix-spacing",
        kind="spacing",
        category=CATEGORY_LABELS["spacing"],
        description=f"Remove extra blank lines and set line spacing to {spacing:g}",
        before="; ".join(before),
        after=f"Single blank lines, {spacing:g} line spacing",
        command=FormatCommand("collapse_blank_paragraphs", {"line_spacing": spacing}),
        start=start,
        end=end,
    )


def _table_change(model: DocumentModel, template: FormatTemplate) -> Optional[FormatChange]:
    if not model.tables:
        return None
    style = template.rules.table_style
    return FormatChange(
        id="fix-tables",
        kind="table",
        category=CATEGORY_LABELS["tables"],
        description="Apply standard table style",
        before=f"{len(model.tables)} table(s) with mixed styling",
        after=f"{style}, bold header row",
        command=FormatCommand("apply_table_style", {"style_name": style}),
    )


def _image_change(model: DocumentModel) -> Optional[FormatChange]:
    max_width = usable_width(model)
    oversized = [img for img in model.images if img.width > max_width]
    if not oversized:
        return None
    return FormatChange(
        id="fix-images",
        kind="image",
        category=CATEGORY_LABELS["images"],
        description="Resize images to fit page width",
        before=f"{len(oversized)} image(s) wider than {max_width:g}pt",
        after=f"Resized to fit page ({max_width:g}pt)",
        command=FormatCommand("resize_images", {"max_width": max_width}),
    )


def _margin_change(model: DocumentModel, template: FormatTemplate) -> Optional[FormatChange]:
    target = template.rules.margins
    off = [s for s in model.sections if _margins_differ(s.margins, target)]
    if not off:
        return None
    return FormatChange(
        id="fix-margins",
        kind="page",
        category=CATEGORY_LABELS["margins"],
        description=f"Set page margins to {_fmt_margins(target)}",
        before="; ".join(f"section {s.index}: {_fmt_margins(s.margins)}" for s in off),
        after=_fmt_margins(target),
        command=FormatCommand("set_margins", {
            "top": target.top, "bottom": target.bottom, "left": target.left, "right": target.right,
        }),
    )


def _alt_text_change(problems: List[Problem]) -> Optional[FormatChange]:
    found = _of_category(problems, "image")
    if not found:
        return None
    return FormatChange(
        id="add-alt-text",
        kind="accessibility",
        category=CATEGORY_LABELS["accessibility"],
        description="Mark images missing alt text with a placeholder",
        before=f"{len(found)} image(s) without alt text",
        after="Placeholder alt text for the author to complete",
        command=FormatCommand("mark_missing_alt_text", {"placeholder": ALT_TEXT_PLACEHOLDER}),
    )


def generate_diff(
    model: DocumentModel,
    problems: List[Problem],
    options: AutoFormatOptions,
    template: FormatTemplate,
) -> List[FormatChange]:
    changes: List[Optional[FormatChange]] = []
    if options.fonts:
        changes.append(_font_change(model, problems, template))
    if options.headings:
        changes.append(_heading_change(problems, template))
    if options.spacing:
        changes.append(_spacing_change(problems, template))
    if options.tables:
        changes.append(_table_change(model, template))
    if options.images:
        changes.append(_image_change(model))
    if options.margins:
        changes.append(_margin_change(model, template))
    if options.accessibility:
        changes.append(_alt_text_change(problems))

    enabled = options.mode != "suggest"
    result = [c for c in changes if c is not None]
    for c in result:
        c.enabled = enabled
    logger.info(f"Generated {len(result)} change(s) for template '{template.id}' in {options.mode} mode")
    return result
