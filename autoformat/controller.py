"""
Execution Controller - orchestrates one formatting run against a document.

States:
    idle -> analyzing -> ready_for_review -> applying -> done | cancelled | failed
                      -> applying_direct  -> applying -> ...

analyzing runs the model builder, the enabled detectors and the diff
generator in that order. auto-fix applies everything straight away;
semi-auto and suggest hand the change list back for review.

Changes are applied strictly one after another, each finishing (including its
sync) before the next starts. Cancellation is checked only between changes.
A failure mid-run leaves earlier changes in place; there is no rollback.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional
import logging
import threading
import time

from autoformat.adapters.docx_adapter import DocxContext, build_document_model
from autoformat.audit import AuditEntry, AuditLogger, MemoryStore, now_utc
from autoformat.changes import FormatChange
from autoformat.detect import run_detectors
from autoformat.diff import generate_diff
from autoformat.errors import ApplyFailure, PipelineBusy
from autoformat.fixes import ChangeExecutor
from autoformat.model import DocumentModel, Problem
from autoformat.options import AutoFormatOptions
from autoformat.templates import TemplateRegistry, default_registry

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]


class RunState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    READY_FOR_REVIEW = "ready_for_review"
    APPLYING_DIRECT = "applying_direct"
    APPLYING = "applying"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class AnalysisResult:
    """What the last analysis saw and proposed."""
    model: DocumentModel
    problems: List[Problem] = field(default_factory=list)
    changes: List[FormatChange] = field(default_factory=list)


class FormattingController:
    """
    Caller-facing API: run(), apply_selected(), cancel(), get_history(),
    clear_history(). One controller drives one document; only one run may be
    in flight at a time.
    """

    def __init__(
        self,
        ctx: DocxContext,
        audit: Optional[AuditLogger] = None,
        executor: Optional[ChangeExecutor] = None,
        registry: Optional[TemplateRegistry] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.ctx = ctx
        self.audit = audit or AuditLogger(MemoryStore())
        self.executor = executor or ChangeExecutor()
        self.registry = registry or default_registry()
        self.progress_callback = progress_callback

        self.state = RunState.IDLE
        self.options: Optional[AutoFormatOptions] = None
        self.analysis: Optional[AnalysisResult] = None
        self.last_entry: Optional[AuditEntry] = None
        self._cancel = threading.Event()
        self._busy = threading.Lock()

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def run(self, options: AutoFormatOptions) -> Optional[List[FormatChange]]:
        """
        Analyze the document.

        Returns the proposed changes for review in semi-auto and suggest
        modes. In auto-fix mode the changes are applied immediately and
        None is returned; the audit entry is available as `last_entry`.
        """
        if not self._busy.acquire(blocking=False):
            raise PipelineBusy("A formatting run is already in progress for this document")
        try:
            # Configuration problems surface before the document is touched
            options.validate()
            template = self.registry.get(options.template_id)
            if options.processing_mode == "model-assisted":
                logger.warning("Model-assisted processing is not available; using heuristics")

            self._cancel.clear()
            self.options = options
            self.analysis = None
            self.last_entry = None
            self.state = RunState.ANALYZING
            try:
                model = build_document_model(self.ctx)
                problems = run_detectors(model, options)
                changes = generate_diff(model, problems, options, template)
            except Exception:
                self.state = RunState.FAILED
                raise
            self.analysis = AnalysisResult(model=model, problems=problems, changes=changes)
            logger.info(f"Analysis found {len(problems)} problem(s), proposing {len(changes)} change(s)")

            if options.mode == "auto-fix":
                self.state = RunState.APPLYING_DIRECT
                self.last_entry = self._apply([c for c in changes if c.enabled])
                return None

            self.state = RunState.READY_FOR_REVIEW
            return changes
        finally:
            self._busy.release()

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------

    def apply_selected(self, changes: List[FormatChange]) -> AuditEntry:
        """Apply the enabled changes from a reviewed list, in list order."""
        if self.state != RunState.READY_FOR_REVIEW:
            raise RuntimeError(f"Nothing to apply: controller is {self.state.value}, expected ready_for_review")
        if not self._busy.acquire(blocking=False):
            raise PipelineBusy("A formatting run is already in progress for this document")
        try:
            self.last_entry = self._apply([c for c in changes if c.enabled])
            return self.last_entry
        finally:
            self._busy.release()

    def cancel(self) -> None:
        """Stop before the next change starts. A change already running finishes."""
        self._cancel.set()

    def _report(self, fraction: float, step: str) -> None:
        if self.progress_callback:
            self.progress_callback(fraction, step)

    def _apply(self, approved: List[FormatChange]) -> AuditEntry:
        self.state = RunState.APPLYING
        start = time.monotonic()
        total = len(approved)
        applied: List[FormatChange] = []

        for change in approved:
            if self._cancel.is_set():
                logger.info(f"Cancelled after {len(applied)} of {total} change(s)")
                self.state = RunState.CANCELLED
                return self._record(applied, start, "cancelled")
            try:
                self.executor.execute(change, self.ctx)
            except Exception as e:
                logger.error(f"Change '{change.id}' failed after {len(applied)} of {total} applied: {e}")
                self.state = RunState.FAILED
                if applied:
                    self._record(applied, start, "failed")
                raise ApplyFailure(change.id, len(applied), total, cause=e) from e
            applied.append(change)
            self._report(len(applied) / total, f"Applied: {change.description}")

        self.state = RunState.DONE
        return self._record(applied, start, "done")

    def _record(self, applied: List[FormatChange], start: float, outcome: str) -> AuditEntry:
        categories: List[str] = []
        for c in applied:
            if c.category not in categories:
                categories.append(c.category)
        entry = AuditEntry(
            timestamp=now_utc(),
            changes_applied=len(applied),
            categories=categories,
            duration_ms=(time.monotonic() - start) * 1000,
            outcome=outcome,
        )
        self.audit.log_format_operation(entry)
        return entry

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def get_history(self) -> List[AuditEntry]:
        return self.audit.get_audit_history()

    def clear_history(self) -> None:
        self.audit.clear_audit_history()

    def summary(self) -> Dict[str, object]:
        a = self.analysis
        return {
            "state": self.state.value,
            "template": self.options.template_id if self.options else None,
            "mode": self.options.mode if self.options else None,
            "problems": [p.to_dict() for p in a.problems] if a else [],
            "changes": [c.to_dict() for c in a.changes] if a else [],
            "last_entry": self.last_entry.to_dict() if self.last_entry else None,
        }
