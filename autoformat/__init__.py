"""
Document Auto-Format

Analyzes a Word document against a style template, proposes one reviewable
change per formatting category and applies the approved ones.

Main entry point: FormattingController

Stages:
1. Model Builder - one read pass into an immutable DocumentModel
2. Detectors - fonts, headings, spacing, images
3. Diff Generator - category-level FormatChanges from the active template
4. Change Applier - approved changes, one at a time, with an audit entry
"""
from autoformat.adapters.docx_adapter import DocxContext, build_document_model
from autoformat.audit import AuditEntry, AuditLogger, JsonFileStore, MemoryStore
from autoformat.changes import FormatChange, FormatCommand
from autoformat.controller import FormattingController, RunState
from autoformat.detect import (
    detect_font_inconsistencies,
    detect_heading_problems,
    detect_spacing_issues,
    detect_image_problems,
    run_detectors,
)
from autoformat.diff import generate_diff
from autoformat.errors import (
    AutoFormatError,
    ApplyFailure,
    ConfigurationError,
    PersistenceFailure,
    PipelineBusy,
    ReadFailure,
)
from autoformat.fixes import ChangeExecutor, PRIMITIVES
from autoformat.model import DocumentModel, Problem
from autoformat.options import AutoFormatOptions
from autoformat.templates import FormatTemplate, TemplateRegistry, apply_template_settings, default_registry

__all__ = [
    # === Primary Entry Point ===
    "FormattingController",
    "RunState",
    "AutoFormatOptions",

    # === Document access ===
    "DocxContext",
    "build_document_model",
    "DocumentModel",
    "Problem",

    # === Detection & diff ===
    "detect_font_inconsistencies",
    "detect_heading_problems",
    "detect_spacing_issues",
    "detect_image_problems",
    "run_detectors",
    "generate_diff",
    "FormatChange",
    "FormatCommand",

    # === Application ===
    "ChangeExecutor",
    "PRIMITIVES",

    # === Templates ===
    "FormatTemplate",
    "TemplateRegistry",
    "apply_template_settings",
    "default_registry",

    # === Audit ===
    "AuditEntry",
    "AuditLogger",
    "JsonFileStore",
    "MemoryStore",

    # === Errors ===
    "AutoFormatError",
    "ApplyFailure",
    "ConfigurationError",
    "PersistenceFailure",
    "PipelineBusy",
    "ReadFailure",
]
