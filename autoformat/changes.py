from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Literal

from autoformat.model import NO_RANGE

ChangeKind = Literal["style", "spacing", "table", "image", "page", "accessibility"]


@dataclass(frozen=True)
class FormatCommand:
    kind: str                   # primitive name, e.g. "normalize_fonts"
    params: Dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.params.items())
        return f"{self.kind}({args})"


@dataclass
class FormatChange:
    id: str
    kind: ChangeKind
    category: str               # "Fonts", "Headings", ...
    description: str
    before: str
    after: str
    command: FormatCommand
    start: int = NO_RANGE       # paragraph index range, -1/-1 when not paragraph-addressable
    end: int = NO_RANGE
    enabled: bool = True

    def explain(self) -> str:
        rng = f"paragraphs {self.start}-{self.end}" if self.start != NO_RANGE else "whole document"
        return f"[{self.category}] {self.description} ({rng}): {self.before} -> {self.after} via {self.command.describe()}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
