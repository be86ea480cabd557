from __future__ import annotations
from collections import Counter
from typing import Callable, Dict, Iterable, List, Optional, Tuple
import logging

from autoformat.model import DocumentModel, Problem, ParagraphInfo, blank_runs, is_excluded_style
from autoformat.options import AutoFormatOptions

logger = logging.getLogger(__name__)

Detector = Callable[[DocumentModel], List[Problem]]

LINE_SPACING_TOLERANCE = 0.01


def _is_body_text(p: ParagraphInfo) -> bool:
    return not p.is_empty and not p.is_heading and not is_excluded_style(p.style_name, p.font_name)


def _modal(values: Iterable):
    """Most common value. Ties go to the value seen first."""
    counts: Counter = Counter()
    order: List = []
    for v in values:
        if v not in counts:
            order.append(v)
        counts[v] += 1
    if not order:
        return None
    return max(order, key=lambda v: counts[v])


def modal_font(model: DocumentModel) -> Optional[str]:
    """Most common body font. Ties go to the font seen first in document order."""
    return _modal(p.font_name for p in model.paragraphs if _is_body_text(p))


def modal_line_spacing(model: DocumentModel) -> Optional[float]:
    return _modal(p.line_spacing for p in model.paragraphs if _is_body_text(p) and p.line_spacing is not None)


def _deviating_runs(model: DocumentModel, deviates: Callable[[ParagraphInfo], bool]) -> List[Tuple[int, int]]:
    # Any paragraph that does not deviate (empty ones included) ends a run
    runs: List[Tuple[int, int]] = []
    start = end = -1
    for p in model.paragraphs:
        if deviates(p):
            if start == -1:
                start = p.index
            end = p.index
        elif start != -1:
            runs.append((start, end))
            start = end = -1
    if start != -1:
        runs.append((start, end))
    return runs


def detect_font_inconsistencies(model: DocumentModel) -> List[Problem]:
    primary = modal_font(model)
    if primary is None:
        return []
    runs = _deviating_runs(model, lambda p: _is_body_text(p) and p.font_name != primary)
    by_index = {p.index: p for p in model.paragraphs}
    return [
        Problem(
            id=f"font-{start}",
            description=f'Inconsistent font "{by_index[start].font_name}" (should be {primary})',
            severity="warning",
            start=start,
            end=end,
        )
        for start, end in runs
    ]


def detect_line_spacing_inconsistencies(model: DocumentModel) -> List[Problem]:
    """
    Body paragraphs whose explicit line spacing differs from the usual one.

    Paragraphs with exact or inherited-unknown spacing are not compared.
    """
    primary = modal_line_spacing(model)
    if primary is None:
        return []

    def deviates(p: ParagraphInfo) -> bool:
        return (
            _is_body_text(p)
            and p.line_spacing is not None
            and abs(p.line_spacing - primary) > LINE_SPACING_TOLERANCE
        )

    by_index = {p.index: p for p in model.paragraphs}
    return [
        Problem(
            id=f"spacing-line-{start}",
            description=f"Line spacing {by_index[start].line_spacing:g} differs from the usual {primary:g}",
            severity="info",
            start=start,
            end=end,
        )
        for start, end in _deviating_runs(model, deviates)
    ]


def detect_heading_problems(model: DocumentModel) -> List[Problem]:
    problems: List[Problem] = []
    prev_level = 0
    for p in model.paragraphs:
        h = p.heading
        if h is None:
            continue
        if h.basis == "visual":
            problems.append(Problem(
                id=f"heading-fake-{p.index}",
                description=f'"{p.text.strip()[:40]}" looks like a level {h.level} heading but uses style "{p.style_name}"',
                severity="warning",
                start=p.index,
                end=p.index,
            ))
        if prev_level and h.level > prev_level + 1:
            problems.append(Problem(
                id=f"heading-skip-{p.index}",
                description=f"Heading level jumps from H{prev_level} to H{h.level}",
                severity="warning",
                start=p.index,
                end=p.index,
            ))
        prev_level = h.level
    return problems


def detect_spacing_issues(model: DocumentModel) -> List[Problem]:
    paras = model.paragraphs
    problems: List[Problem] = []
    for start, end in blank_runs((p.is_blank, p.after_block) for p in paras):
        problems.append(Problem(
            id=f"spacing-{paras[start].index}",
            description=f"Multiple blank lines found ({end - start + 1})",
            severity="info",
            start=paras[start].index,
            end=paras[end].index,
        ))
    return problems


def detect_image_problems(model: DocumentModel) -> List[Problem]:
    return [
        Problem(
            id=f"image-alt-{img.index}",
            description="Image missing alt text",
            severity="warning",
        )
        for img in model.images
        if not img.has_alt_text
    ]


# Option toggle(s) -> detector. A detector runs when any of its toggles is on.
DETECTORS: Dict[str, tuple] = {
    "font": (("fonts",), detect_font_inconsistencies),
    "heading": (("headings",), detect_heading_problems),
    "spacing": (("spacing",), detect_spacing_issues),
    "line-spacing": (("spacing",), detect_line_spacing_inconsistencies),
    "image": (("images", "accessibility"), detect_image_problems),
}


def register_detector(name: str, toggles: tuple, fn: Detector) -> None:
    DETECTORS[name] = (tuple(toggles), fn)


def run_detectors(model: DocumentModel, options: AutoFormatOptions) -> List[Problem]:
    problems: List[Problem] = []
    for name, (toggles, fn) in DETECTORS.items():
        if not any(options.is_enabled(t) for t in toggles):
            continue
        found = fn(model)
        logger.info(f"Detector '{name}': {len(found)} problem(s)")
        problems.extend(found)
    return problems
