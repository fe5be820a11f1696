import streamlit as st
import asyncio
import json
import uuid
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional
import sys
from pathlib import Path

# Adding the parent directory to sys.path for imports
sys.path.append(str(Path(__file__).resolve().parents[1]))
from urlcompare.config import settings
from urlcompare.core.baseline import (
    DateSelected,
    ModeChanged,
    OperationChanged,
    RunSelected,
    ServiceSelected,
    WorkflowState,
    button_label,
    url_labels,
)
from urlcompare.core.config_builder import apply_defaults
from urlcompare.core.renderer import PROCESSING, ResultsView, render_error, render_results
from urlcompare.data import db as db_ops
from urlcompare.models import (
    BaselineOperation,
    ComparisonMode,
    ComparisonRunRecord,
    KeyValueRow,
    TestType,
    UiState,
    DEFAULT_MAX_ITERATIONS,
    HTTP_METHODS,
    ITERATION_CONTROLLERS,
)
from urlcompare.services import http_client
from urlcompare.services.catalog import BaselineController
from urlcompare.services.runner import ComparisonRunner, RunConsole

logging.basicConfig(level=settings.LOG_LEVEL,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

TEXT_FIELDS = (
    "operation_name", "url1", "url2", "payload_template", "client_id", "client_secret",
    "baseline_service_name", "baseline_description", "baseline_tags",
)
# last Endpoint 2 value; Streamlit drops the state of widgets it does not draw
URL2_MEMORY = "url2_memory"
SELECT_KEYS = {
    "services": "baseline_service_select",
    "dates": "baseline_date_select",
    "runs": "baseline_run_select",
}


# --- HELPER FUNCTIONS FOR API CALLS ---
def call_service(action: Callable[[Any], Awaitable[Any]]) -> Any:
    """Runs one coroutine against a fresh client; Streamlit reruns are synchronous."""
    async def _main():
        async with http_client.create_client() as client:
            return await action(client)
    return asyncio.run(_main())


def workflow() -> WorkflowState:
    if "workflow" not in st.session_state:
        st.session_state["workflow"] = WorkflowState()
    return st.session_state["workflow"]


def dispatch(event) -> None:
    async def _dispatch(client):
        return await BaselineController(client, workflow()).dispatch(event)

    state = call_service(_dispatch)
    st.session_state["workflow"] = state
    # keep the widgets in step with resets made by the workflow
    st.session_state["baseline_operation"] = state.operation.value
    for selector_name, key in SELECT_KEYS.items():
        st.session_state[key] = getattr(state, selector_name).value


def load_defaults():
    if st.session_state.get("defaults_loaded"):
        return
    st.session_state["defaults_loaded"] = True
    defaults = call_service(http_client.load_config)
    ui_state = apply_defaults(UiState(), defaults)
    for name in TEXT_FIELDS:
        st.session_state[name] = getattr(ui_state, name)
    st.session_state["test_type"] = ui_state.test_type.value
    st.session_state["method"] = ui_state.method
    st.session_state["iteration_controller"] = ui_state.iteration_controller
    st.session_state["max_iterations"] = str(ui_state.max_iterations or DEFAULT_MAX_ITERATIONS)
    st.session_state[URL2_MEMORY] = ui_state.url2
    st.session_state["header_rows"] = [new_row(row.key, row.value) for row in ui_state.headers]
    st.session_state["token_rows"] = [new_row(row.key, row.value) for row in ui_state.tokens]


def key_value_rows(rows_key: str) -> List[KeyValueRow]:
    return [KeyValueRow(key=row.get("key", ""), value=row.get("value", ""))
            for row in st.session_state.get(rows_key, [])]


def collect_ui_state() -> UiState:
    ss = st.session_state
    return UiState(
        test_type=TestType(ss.get("test_type", TestType.REST.value)),
        method=ss.get("method", "POST"),
        iteration_controller=ss.get("iteration_controller", ITERATION_CONTROLLERS[0]),
        max_iterations=ss.get("max_iterations", ""),
        headers=key_value_rows("header_rows"),
        tokens=key_value_rows("token_rows"),
        **{name: ss.get(name, "") for name in TEXT_FIELDS},
    )


# --- UI AND FORMATTING HELPER FUNCTIONS ---

def new_row(key: str = "", value: str = "") -> Dict[str, str]:
    return {"id": uuid.uuid4().hex, "key": key, "value": value}


def manage_rows(rows_key: str, title: str, placeholders: List[str]):
    st.subheader(title)
    if rows_key not in st.session_state:
        st.session_state[rows_key] = []
    rows = st.session_state[rows_key]
    for row in rows:
        # widget keys follow the row, not its position in the list
        row_id = row.setdefault("id", uuid.uuid4().hex)
        cols = st.columns([0.4, 0.5, 0.1])
        row["key"] = cols[0].text_input("Key", value=row.get("key", ""), placeholder=placeholders[0],
                                        key=f"key_{rows_key}_{row_id}", label_visibility="collapsed")
        row["value"] = cols[1].text_input("Value", value=row.get("value", ""), placeholder=placeholders[1],
                                          key=f"value_{rows_key}_{row_id}", label_visibility="collapsed")
        if cols[2].button("❌", key=f"remove_{rows_key}_{row_id}"):
            st.session_state[rows_key] = [r for r in rows if r["id"] != row_id]
            st.rerun()
    if st.button("➕ Add Row", key=f"add_{rows_key}"):
        rows.append(new_row())
        st.rerun()


def url2_input(container, show: bool):
    """Endpoint 2 field. Its value outlives baseline mode, where the widget is not drawn."""
    if not show:
        return
    if "url2" not in st.session_state:
        st.session_state["url2"] = st.session_state.get(URL2_MEMORY, "")
    container.text_input("**Endpoint 2 URL**", placeholder="http://example.com/api/resource", key="url2")
    st.session_state[URL2_MEMORY] = st.session_state["url2"]


def selector_box(label: str, selector_name: str, on_change: Callable[[str], Any]):
    selector = getattr(workflow(), selector_name)
    labels = {option.value: option.label for option in selector.choices()}
    key = SELECT_KEYS[selector_name]
    if st.session_state.get(key) not in labels:
        st.session_state[key] = ""
    st.selectbox(
        label,
        list(labels),
        format_func=lambda value: labels.get(value, value),
        key=key,
        disabled=not selector.enabled,
        on_change=lambda: on_change(st.session_state[key]),
    )


def show_baseline_controls():
    state = workflow()
    st.radio(
        "**Baseline Operation**",
        [op.value for op in BaselineOperation],
        key="baseline_operation",
        horizontal=True,
        on_change=lambda: dispatch(OperationChanged(BaselineOperation(st.session_state["baseline_operation"]))),
    )
    if state.operation is BaselineOperation.CAPTURE:
        st.text_input("Service Name", key="baseline_service_name", placeholder="orders-service")
        st.text_input("Description", key="baseline_description")
        st.text_input("Tags (comma separated)", key="baseline_tags", placeholder="release-1.2, smoke")
    else:
        col1, col2, col3 = st.columns(3)
        with col1:
            selector_box("Service", "services", lambda v: dispatch(ServiceSelected(v)))
        with col2:
            selector_box("Date", "dates", lambda v: dispatch(DateSelected(v)))
        with col3:
            selector_box("Run", "runs", lambda v: dispatch(RunSelected(v)))


def show_results_view(view: ResultsView, key_prefix: str, raw_results: Optional[List[Dict]] = None):
    if view.is_empty:
        st.info(view.placeholder)
        return
    summary = view.summary
    cols = st.columns(5)
    cols[0].metric("Total Iterations", summary.total)
    cols[1].metric("Total Duration", f"{summary.total_duration} ms")
    cols[2].metric("Matches", summary.matches)
    cols[3].metric("Mismatches", summary.mismatches)
    cols[4].metric("Errors", summary.errors)
    st.caption(f"Report Generated: {summary.generated_at}")

    for iteration in view.iterations:
        with st.expander(iteration.label, expanded=iteration.expanded):
            st.markdown(iteration.body_html, unsafe_allow_html=True)

    d_col1, d_col2 = st.columns(2)
    d_col1.download_button("Download HTML Report", view.to_report(), file_name=f"comparison_{key_prefix}.html",
                           mime="text/html", key=f"download_html_{key_prefix}")
    if raw_results is not None:
        d_col2.download_button("Download JSON Results", json.dumps(raw_results, indent=2),
                               file_name=f"comparison_{key_prefix}.json", mime="application/json",
                               key=f"download_json_{key_prefix}")


def describe_run(record: ComparisonRunRecord) -> str:
    mode = record.comparison_mode
    if record.baseline_operation:
        mode = f"{mode}/{record.baseline_operation}"
    return (f"ID: {record.id} | {record.created_at} | {mode} | {record.matches} match / "
            f"{record.mismatches} mismatch / {record.errors} error")


def show_last_stored_run():
    """A fresh session has no console yet; fall back to the newest run in the history."""
    db = db_ops.SessionLocal()
    try:
        latest = db_ops.fetch_latest_run(db)
        if latest is None:
            st.info("No comparison results available. Configure the endpoints and run a comparison.")
            return
        st.caption(f"Last stored run: {describe_run(ComparisonRunRecord.model_validate(latest))}")
        show_results_view(render_results(db_ops.load_results(latest)), f"stored_{latest.id}",
                          json.loads(latest.results))
    finally:
        db.close()


def run_comparison(ui_state: UiState):
    state = workflow()
    console = RunConsole(button_label=button_label(state))

    async def _run(client):
        return await ComparisonRunner(client, console).run(ui_state, state)

    with st.spinner(PROCESSING):
        results = call_service(_run)
    st.session_state["console"] = console
    if console.alerts:
        for message in console.alerts:
            st.warning(message)
        return
    if results is None:
        return

    st.session_state["latest_results"] = [r.model_dump(mode="json", by_alias=True, exclude_none=True)
                                          for r in results]
    db = db_ops.SessionLocal()
    try:
        db_ops.insert_run(db, state.mode.value,
                          state.operation.value if state.in_baseline else None, results)
    except Exception as e:
        st.error(f"Could not save run to history: {e}")
    finally:
        db.close()


# --- Main App ---
def show_dashboard():
    st.set_page_config(layout="wide", page_title="API URL Comparison Console")
    st.title("⚡ API URL Comparison Console")
    db_ops.initialize_database()
    load_defaults()

    input_tab, history_tab = st.tabs(["🔍 New Comparison", "📊 Results & History"])

    with input_tab:
        st.header("Configure Comparison")
        state = workflow()

        top1, top2, top3 = st.columns(3)
        top1.radio("**Comparison Mode**", [m.value for m in ComparisonMode], key="comparison_mode",
                   horizontal=True,
                   on_change=lambda: dispatch(ModeChanged(ComparisonMode(st.session_state["comparison_mode"]))))
        top2.selectbox("**Test Type**", [t.value for t in TestType], key="test_type")
        top3.selectbox("**HTTP Method**", list(HTTP_METHODS), key="method")

        url1_label, show_url2 = url_labels(state)
        col1, col2 = st.columns(2)
        col1.text_input(f"**{url1_label}**", placeholder="http://example.com/api/resource", key="url1")
        url2_input(col2, show_url2)

        if state.in_baseline:
            with st.expander("**Baseline**", expanded=True):
                show_baseline_controls()

        with st.expander("**Operation**"):
            o_col1, o_col2 = st.columns(2)
            o_col1.text_input("Operation Name", key="operation_name", placeholder="web-operation")
            o_col2.text_input("Payload Template Path", key="payload_template")
            o_col1.selectbox("Iteration Controller", list(ITERATION_CONTROLLERS), key="iteration_controller")
            o_col2.text_input("Max Iterations", key="max_iterations")

        with st.expander("**Authentication**"):
            a_col1, a_col2 = st.columns(2)
            a_col1.text_input("Client ID", key="client_id")
            a_col2.text_input("Client Secret", type="password", key="client_secret")

        with st.expander("**Headers & Tokens**"):
            h_col1, h_col2 = st.columns(2)
            with h_col1:
                manage_rows("header_rows", "Headers", ["Header Name", "Value"])
            with h_col2:
                manage_rows("token_rows", "Tokens", ["Token Name", "Values (semicolon separated)"])

        st.header("Run")
        if st.button(f"🚀 **{button_label(state)}**", use_container_width=True):
            run_comparison(collect_ui_state())

        console: Optional[RunConsole] = st.session_state.get("console")
        if console is not None:
            if console.error:
                st.markdown(render_error(console.error), unsafe_allow_html=True)
            elif console.view is not None:
                show_results_view(console.view, "latest", st.session_state.get("latest_results"))
        else:
            show_last_stored_run()

    with history_tab:
        st.header("Results & History")
        db = db_ops.SessionLocal()
        try:
            history = db_ops.fetch_history(db, limit=20) or []
            if not history:
                st.info("No history to display. Run a comparison first.")
            else:
                rows = {row.id: row for row in history}
                records = {row.id: ComparisonRunRecord.model_validate(row) for row in history}
                selected = st.selectbox("Stored run", list(records), format_func=lambda i: describe_run(records[i]),
                                        key="history_select")
                row = rows[selected]
                show_results_view(render_results(db_ops.load_results(row)), f"history_{row.id}",
                                  json.loads(row.results))
        finally:
            db.close()


if __name__ == "__main__":
    show_dashboard()
