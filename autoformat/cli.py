from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from autoformat.adapters.docx_adapter import DocxContext
from autoformat.audit import AuditLogger, JsonFileStore
from autoformat.controller import FormattingController
from autoformat.errors import ApplyFailure, AutoFormatError
from autoformat.options import AutoFormatOptions, RUN_MODES, PROCESSING_MODES, TOGGLES
from autoformat.templates import TemplateRegistry, apply_template_settings, default_registry

DEFAULT_HISTORY = Path.home() / ".autoformat" / "history.json"


def _history_logger(path: Optional[str]) -> AuditLogger:
    path = path or os.environ.get("AUTOFORMAT_HISTORY") or str(DEFAULT_HISTORY)
    return AuditLogger(JsonFileStore(path))


def _default_out(input_docx: str) -> str:
    p = Path(input_docx)
    return str(p.parent / f"{p.stem}.formatted.docx")


def _build_options(args, registry: TemplateRegistry) -> AutoFormatOptions:
    options = apply_template_settings(AutoFormatOptions(), args.template, registry)
    overrides = {t: True for t in args.enable or []}
    overrides.update({t: False for t in args.disable or []})
    for k, v in overrides.items():
        setattr(options, k, v)
    options.mode = args.mode
    options.processing_mode = args.processing_mode
    return options.validate()


def _print_changes(changes) -> None:
    if not changes:
        print("No formatting changes needed.")
        return
    print(f"Proposed changes ({len(changes)}):")
    for c in changes:
        mark = "x" if c.enabled else " "
        print(f"  [{mark}] {c.id:<16} {c.category:<14} {c.description}")
        print(f"        before: {c.before}")
        print(f"        after:  {c.after}")


def _print_history(audit: AuditLogger) -> None:
    history = audit.get_audit_history()
    if not history:
        print("No formatting history.")
        return
    for e in history:
        print(
            f"{e.timestamp.isoformat(timespec='seconds')}  {e.outcome:<9} "
            f"{e.changes_applied} change(s)  {', '.join(e.categories) or '-'}  {e.duration_ms:.0f}ms"
        )


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        prog="autoformat",
        description="Detect and fix formatting problems in Word documents",
    )
    ap.add_argument("input_docx", nargs="?", help="Path to input .docx")
    ap.add_argument("--out", default=None, help="Output path (default: <input>.formatted.docx)")
    ap.add_argument("--template", default="standard", help="Template id (see --list-templates)")
    ap.add_argument("--templates", default=None, help="Path to a custom template pack (YAML)")
    ap.add_argument(
        "--mode", default="semi-auto", choices=RUN_MODES,
        help="auto-fix: apply everything; semi-auto: apply approved (all by default); suggest: report only"
    )
    ap.add_argument("--processing-mode", default="heuristics", choices=PROCESSING_MODES)

    cat_group = ap.add_argument_group("Categories")
    cat_group.add_argument("--enable", action="append", choices=TOGGLES, help="Turn a category on (repeatable)")
    cat_group.add_argument("--disable", action="append", choices=TOGGLES, help="Turn a category off (repeatable)")

    review_group = ap.add_argument_group("Review")
    review_group.add_argument("--accept", action="append", default=[], help="Approve a change id (repeatable)")
    review_group.add_argument("--reject", action="append", default=[], help="Reject a change id (repeatable)")

    hist_group = ap.add_argument_group("History")
    hist_group.add_argument("--history-file", default=None, help="Audit history file (or AUTOFORMAT_HISTORY env var)")
    hist_group.add_argument("--history", action="store_true", help="Show formatting history and exit")
    hist_group.add_argument("--clear-history", action="store_true", help="Clear formatting history and exit")

    ap.add_argument("--list-templates", action="store_true", help="List available templates and exit")
    ap.add_argument("--json", action="store_true", help="Print a JSON summary")
    ap.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        registry = TemplateRegistry.from_yaml(args.templates) if args.templates else default_registry()
    except (OSError, AutoFormatError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.list_templates:
        for t in registry:
            print(f"{t.id:<10} {t.name:<20} {t.description}")
        return 0

    audit = _history_logger(args.history_file)
    if args.history:
        _print_history(audit)
        return 0
    if args.clear_history:
        audit.clear_audit_history()
        print("Formatting history cleared.")
        return 0

    if not args.input_docx:
        ap.error("input_docx is required")

    out = args.out or _default_out(args.input_docx)

    def progress(fraction: float, step: str) -> None:
        print(f"  {fraction:4.0%} {step}")

    try:
        options = _build_options(args, registry)
        ctx = DocxContext.open(args.input_docx, out=out)
        controller = FormattingController(ctx, audit=audit, registry=registry, progress_callback=progress)
        changes = controller.run(options)

        if changes is None:
            _print_changes(controller.analysis.changes)
        else:
            for c in changes:
                if c.id in args.accept:
                    c.enabled = True
                if c.id in args.reject:
                    c.enabled = False
            _print_changes(changes)
            if any(c.enabled for c in changes):
                controller.apply_selected(changes)
    except ApplyFailure as e:
        print(f"error: {e}. Partial result written to {out}", file=sys.stderr)
        return 1
    except AutoFormatError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    entry = controller.last_entry
    if entry is not None and entry.changes_applied:
        print(f"{entry.headline()} -> {out}")

    if args.json:
        print(json.dumps(controller.summary(), indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
