from __future__ import annotations
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, List

from autoformat.errors import ConfigurationError

RUN_MODES = ("auto-fix", "semi-auto", "suggest")
PROCESSING_MODES = ("heuristics", "model-assisted")

# Toggle name -> category label shown to reviewers and stored in the audit log
CATEGORY_LABELS: Dict[str, str] = {
    "fonts": "Fonts",
    "headings": "Headings",
    "spacing": "Spacing",
    "lists": "Lists",
    "tables": "Tables",
    "images": "Images",
    "margins": "Margins",
    "accessibility": "Accessibility",
    "grammar": "Grammar",
    "citations": "Citations",
    "repair": "Repair",
}
TOGGLES: List[str] = list(CATEGORY_LABELS)


@dataclass
class AutoFormatOptions:
    """Per-run configuration: which categories to fix, how, and against which template."""
    fonts: bool = True
    headings: bool = True
    spacing: bool = True
    lists: bool = True
    tables: bool = True
    images: bool = True
    margins: bool = False
    accessibility: bool = False
    grammar: bool = False
    citations: bool = False
    repair: bool = False

    mode: str = "semi-auto"               # auto-fix|semi-auto|suggest
    processing_mode: str = "heuristics"   # heuristics|model-assisted
    template_id: str = "standard"

    def is_enabled(self, toggle: str) -> bool:
        return bool(getattr(self, toggle))

    def enabled_categories(self) -> List[str]:
        return [t for t in TOGGLES if self.is_enabled(t)]

    def validate(self) -> "AutoFormatOptions":
        if self.mode not in RUN_MODES:
            raise ConfigurationError(f"Unknown run mode '{self.mode}' (expected one of {', '.join(RUN_MODES)})")
        if self.processing_mode not in PROCESSING_MODES:
            raise ConfigurationError(
                f"Unknown processing mode '{self.processing_mode}' (expected one of {', '.join(PROCESSING_MODES)})"
            )
        for t in TOGGLES:
            if not isinstance(getattr(self, t), bool):
                raise ConfigurationError(f"Toggle '{t}' must be true or false, got {getattr(self, t)!r}")
        if not isinstance(self.template_id, str) or not self.template_id:
            raise ConfigurationError("template_id must be a non-empty string")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AutoFormatOptions":
        if not isinstance(data, dict):
            raise ConfigurationError(f"Options must be a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown option(s): {', '.join(unknown)}")
        return cls(**data).validate()
