from __future__ import annotations
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
import logging

import yaml

from autoformat.errors import ConfigurationError
from autoformat.model import Margins
from autoformat.options import AutoFormatOptions, TOGGLES

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_PACK = Path(__file__).parent / "rules" / "templates.yml"


@dataclass(frozen=True)
class HeadingStyle:
    font_size: float
    bold: bool = True
    color: Optional[str] = None  # "#RRGGBB"


@dataclass(frozen=True)
class TemplateRules:
    font_family: str
    font_size: float
    line_spacing: float
    margins: Margins
    heading_styles: Dict[int, HeadingStyle] = field(default_factory=dict)
    table_style: str = "Table Grid"


@dataclass(frozen=True)
class FormatTemplate:
    id: str
    name: str
    description: str
    settings: Dict[str, bool]
    rules: TemplateRules


def load_template_pack(path: str | Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _parse_heading_styles(raw: Dict[str, Any]) -> Dict[int, HeadingStyle]:
    styles: Dict[int, HeadingStyle] = {}
    for key, h in (raw or {}).items():
        level = int(str(key).lower().lstrip("h"))
        styles[level] = HeadingStyle(
            font_size=float(h["font_size"]),
            bold=bool(h.get("bold", True)),
            color=h.get("color"),
        )
    return styles


def parse_templates(pack: Dict[str, Any]) -> List[FormatTemplate]:
    templates: List[FormatTemplate] = []
    for t in pack.get("templates", []) or []:
        try:
            settings = dict(t.get("settings") or {})
            bad = [k for k in settings if k not in TOGGLES]
            if bad:
                raise ConfigurationError(f"Template '{t.get('id')}' sets unknown toggle(s): {', '.join(bad)}")
            r = t["rules"]
            m = r["margins"]
            templates.append(FormatTemplate(
                id=t["id"],
                name=t.get("name", t["id"]),
                description=t.get("description", ""),
                settings={k: bool(v) for k, v in settings.items()},
                rules=TemplateRules(
                    font_family=r["font_family"],
                    font_size=float(r["font_size"]),
                    line_spacing=float(r.get("line_spacing", 1.0)),
                    margins=Margins(
                        top=float(m["top"]), bottom=float(m["bottom"]),
                        left=float(m["left"]), right=float(m["right"]),
                    ),
                    heading_styles=_parse_heading_styles(r.get("heading_styles")),
                    table_style=r.get("table_style", "Table Grid"),
                ),
            ))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Malformed template entry {t!r}: {e}") from e
    return templates


class TemplateRegistry:
    """Fixed, enumerable set of templates keyed by id."""

    def __init__(self, templates: List[FormatTemplate]):
        self._templates: Dict[str, FormatTemplate] = {}
        for t in templates:
            if t.id in self._templates:
                raise ConfigurationError(f"Duplicate template id '{t.id}'")
            self._templates[t.id] = t

    @classmethod
    def from_yaml(cls, path: str | Path) -> "TemplateRegistry":
        return cls(parse_templates(load_template_pack(path)))

    def __iter__(self) -> Iterator[FormatTemplate]:
        return iter(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def ids(self) -> List[str]:
        return list(self._templates)

    def get(self, template_id: str) -> FormatTemplate:
        t = self._templates.get(template_id)
        if t is None:
            raise ConfigurationError(
                f"Unknown template '{template_id}' (available: {', '.join(self.ids())})"
            )
        return t


_default: Optional[TemplateRegistry] = None


def default_registry() -> TemplateRegistry:
    global _default
    if _default is None:
        _default = TemplateRegistry.from_yaml(DEFAULT_TEMPLATE_PACK)
    return _default


def apply_template_settings(
    current: AutoFormatOptions,
    template_id: str,
    registry: Optional[TemplateRegistry] = None,
) -> AutoFormatOptions:
    """
    Merge a template's toggles into the caller's options.

    Only toggles the template names are overwritten; every other field keeps
    the caller's value, so earlier manual edits survive a template switch.
    """
    template = (registry or default_registry()).get(template_id)
    merged = replace(current, **template.settings, template_id=template.id)
    logger.debug(f"Applied template settings '{template.id}': {template.settings}")
    return merged
