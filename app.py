"""
Document Auto-Format - Streamlit GUI

Upload a Word document, review the proposed formatting changes, apply the
ones you approve and download the result.
Run with: streamlit run app.py
"""
import io
import os
from pathlib import Path

import streamlit as st

from autoformat.adapters.docx_adapter import DocxContext
from autoformat.audit import AuditLogger, JsonFileStore
from autoformat.controller import FormattingController, RunState
from autoformat.errors import ApplyFailure, AutoFormatError
from autoformat.options import AutoFormatOptions, CATEGORY_LABELS, TOGGLES
from autoformat.templates import apply_template_settings, default_registry

st.set_page_config(
    page_title="Document Auto-Format",
    page_icon="📐",
    layout="centered",
)

st.title("📐 Document Auto-Format")
st.markdown("Find and fix inconsistent fonts, headings, spacing, tables, images and margins.")

registry = default_registry()
history_path = os.environ.get("AUTOFORMAT_HISTORY", str(Path.home() / ".autoformat" / "history.json"))
audit = AuditLogger(JsonFileStore(history_path))

uploaded_file = st.file_uploader(
    "Drop your Word document here",
    type=["docx"],
    help="Drag and drop a .docx file or click to browse",
)

st.markdown("---")
st.markdown("### Template & Mode")

template_id = st.selectbox(
    "Template",
    options=registry.ids(),
    format_func=lambda t: registry.get(t).name,
    help="Target fonts, spacing, margins and heading styles",
)
st.caption(registry.get(template_id).description)

mode = st.radio(
    "How should changes be applied?",
    options=["semi-auto", "suggest", "auto-fix"],
    format_func=lambda x: {
        "semi-auto": "Review changes (all pre-selected)",
        "suggest": "Suggest only (nothing pre-selected)",
        "auto-fix": "Auto-fix everything",
    }[x],
)

# A template switch overwrites only the toggles that template names
options = st.session_state.get("options", AutoFormatOptions())
if options.template_id != template_id or "options" not in st.session_state:
    options = apply_template_settings(options, template_id, registry)
    for toggle in TOGGLES:
        st.session_state[f"toggle_{toggle}"] = options.is_enabled(toggle)
with st.expander("Categories", expanded=False):
    cols = st.columns(3)
    for i, toggle in enumerate(TOGGLES):
        setattr(options, toggle, cols[i % 3].checkbox(CATEGORY_LABELS[toggle], key=f"toggle_{toggle}"))
options.mode = mode
st.session_state["options"] = options


def _progress_callback(fraction: float, step: str) -> None:
    st.session_state["progress_bar"].progress(fraction, text=step)


if uploaded_file:
    if st.button("🔍 Analyze Document", type="primary", use_container_width=True):
        st.session_state.pop("apply_error", None)
        out = io.BytesIO()
        try:
            ctx = DocxContext.open(io.BytesIO(uploaded_file.getvalue()), out=out)
            st.session_state["progress_bar"] = st.progress(0.0, text="Analyzing document...")
            controller = FormattingController(ctx, audit=audit, registry=registry, progress_callback=_progress_callback)
            controller.run(options)
            st.session_state["controller"] = controller
            st.session_state["out"] = out
            st.session_state["doc_stem"] = Path(uploaded_file.name).stem
        except AutoFormatError as e:
            st.error(f"Error: {e}")

controller = st.session_state.get("controller")
if controller is not None and controller.analysis is not None:
    analysis = controller.analysis

    if analysis.problems:
        with st.expander(f"Problems found ({len(analysis.problems)})"):
            for p in analysis.problems:
                st.markdown(f"- **{p.severity.upper()}** `{p.id}` {p.description}")

    if controller.state == RunState.READY_FOR_REVIEW:
        st.markdown("### Proposed Changes")
        if not analysis.changes:
            st.success("No formatting changes needed.")
        for c in analysis.changes:
            c.enabled = st.checkbox(f"**{c.category}**: {c.description}", value=c.enabled, key=f"chk_{c.id}")
            st.caption(f"{c.before} → {c.after}")

        if analysis.changes and st.button("✨ Apply Selected", type="primary", use_container_width=True):
            st.session_state["progress_bar"] = st.progress(0.0, text="Applying changes...")
            try:
                controller.apply_selected(analysis.changes)
            except ApplyFailure as e:
                st.session_state["apply_error"] = (
                    f"{e.applied} of {e.total} changes applied; not fully reverted. "
                    f"Failed at '{e.change_id}': {e.cause}"
                )
            st.rerun()

    if "apply_error" in st.session_state:
        st.error(st.session_state["apply_error"])

    entry = controller.last_entry
    if entry is not None:
        banner = {"done": st.success, "cancelled": st.warning}.get(entry.outcome, st.error)
        banner(entry.headline())
    if entry is not None or controller.state == RunState.FAILED:
        data = st.session_state["out"].getvalue()
        if data:
            st.download_button(
                "📄 Formatted Document",
                data,
                file_name=f"{st.session_state['doc_stem']}.formatted.docx",
                mime="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            )

    if st.button("Format Another Document"):
        for key in ["controller", "out", "doc_stem", "progress_bar", "apply_error"]:
            if key in st.session_state:
                del st.session_state[key]
        st.rerun()

elif not uploaded_file:
    st.info("Upload a Word document (.docx) to get started.")

st.markdown("---")
with st.expander("Formatting history", expanded=False):
    history = audit.get_audit_history()
    if not history:
        st.write("No formatting history yet.")
    for e in history:
        st.markdown(
            f"- {e.timestamp:%Y-%m-%d %H:%M} · {e.outcome} · {e.changes_applied} change(s) · "
            f"{', '.join(e.categories) or '-'}"
        )
    if history and st.button("Clear history"):
        audit.clear_audit_history()
        st.rerun()
