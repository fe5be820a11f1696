# urlcompare/core/renderer.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Union

from urlcompare.core.formatting import escape_text, format_payload
from urlcompare.models import ApiCallResult, ComparisonStatus, IterationResult


"""
render_results() turns the ordered iteration list into:
    summarize() → counts, total duration, render timestamp

    render_iteration() → one expandable block per iteration (header + body)

ResultsView.to_html() stitches them into a standalone report.
"""

logger = logging.getLogger(__name__)

NO_RESULTS = "No results returned."
PROCESSING = "Processing..."

REPORT_STYLE = """
<style>
body { font-family: sans-serif; margin: 20px; color: #27173e; }
.summary-grid { display: flex; gap: 10px; margin-bottom: 20px; }
.card { padding: 15px; border: 1px solid #ddd; flex: 1; }
.result-item { border: 1px solid #ddd; margin-bottom: 8px; }
.result-header { padding: 8px 12px; background: #f6f8fa; cursor: pointer; display: flex; justify-content: space-between; }
.result-body { padding: 12px; }
.comparison-grid { display: flex; gap: 10px; }
.payload-box { flex: 1; }
pre { background: #f6f8fa; padding: 8px; white-space: pre-wrap; word-wrap: break-word; }
.status-MATCH { color: #1a7f37; font-weight: bold; }
.status-MISMATCH { color: #bf8700; font-weight: bold; }
.status-ERROR { color: #cf222e; font-weight: bold; }
.error-text, .error-msg { color: #cf222e; }
</style>
"""


def _ms(value: Union[int, float]) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _duration(call: Optional[ApiCallResult]) -> Union[int, float]:
    if call is None or call.duration is None:
        return 0
    return call.duration


def render_timestamp(now: Optional[datetime] = None) -> str:
    now = (now or datetime.now()).astimezone()
    return f"{now.strftime('%m/%d/%Y, %H:%M:%S')} {now.tzname()}"


@dataclass
class RunSummary:
    total: int
    total_duration: Union[int, float]
    matches: int
    mismatches: int
    errors: int
    generated_at: str

    def to_html(self) -> str:
        return f"""
<div class="summary-grid">
  <div class="card">
    <h3>Execution Summary</h3>
    <div><strong>Total Iterations:</strong> {self.total}</div>
    <div><strong>Total Duration:</strong> {_ms(self.total_duration)} ms</div>
    <div><strong>Report Generated:</strong> {escape_text(self.generated_at)}</div>
  </div>
  <div class="card">
    <h3>Comparison Summary</h3>
    <div><span class="status-MATCH">Matches: {self.matches}</span></div>
    <div><span class="status-MISMATCH">Mismatches: {self.mismatches}</span></div>
    <div><span class="status-ERROR">Errors: {self.errors}</span></div>
  </div>
</div>"""


@dataclass
class IterationView:
    index: int
    operation_name: str
    status: ComparisonStatus
    tokens: str
    timestamp: str
    body_html: str
    expanded: bool = False

    @property
    def title(self) -> str:
        return f"Iteration #{self.index} - {self.operation_name}"

    @property
    def label(self) -> str:
        """Plain-text header line, used where the header is not HTML."""
        parts = [self.title]
        if self.tokens:
            parts.append(f"Tokens: {self.tokens}")
        if self.timestamp:
            parts.append(self.timestamp)
        parts.append(self.status.value)
        return " | ".join(parts)

    def toggle(self) -> None:
        self.expanded = not self.expanded

    def header_html(self) -> str:
        token_display = (f'<br><small class="tokens">Tokens: {escape_text(self.tokens)}</small>'
                         if self.tokens else "")
        time_display = (f'<span class="timestamp">{escape_text(self.timestamp)}</span>'
                        if self.timestamp else "")
        return (
            f'<div class="result-header"><div><span>{escape_text(self.title)}</span>{token_display}</div>'
            f'<div>{time_display} <span class="status-{self.status.value}">{self.status.value}</span></div></div>'
        )

    def to_html(self) -> str:
        # <details> gives every iteration its own click-to-expand toggle
        open_attr = " open" if self.expanded else ""
        return (
            f'<details class="result-item"{open_attr}><summary>{self.header_html()}</summary>'
            f'<div class="result-body">{self.body_html}</div></details>'
        )


@dataclass
class ResultsView:
    summary: Optional[RunSummary] = None
    iterations: List[IterationView] = field(default_factory=list)
    placeholder: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.placeholder is not None

    def to_html(self) -> str:
        if self.is_empty:
            return f'<div class="empty-state">{escape_text(self.placeholder)}</div>'
        parts = [self.summary.to_html()]
        parts.extend(view.to_html() for view in self.iterations)
        return "\n".join(parts)

    def to_report(self, title: str = "API Response Comparison Report") -> str:
        return "\n".join([
            "<!DOCTYPE html>",
            '<html lang="en">',
            f'<head><meta charset="UTF-8"><title>{escape_text(title)}</title>{REPORT_STYLE}</head>',
            "<body>",
            f"<h1>{escape_text(title)}</h1>",
            self.to_html(),
            "</body>",
            "</html>",
        ])


def format_tokens(tokens: Optional[dict]) -> str:
    if not tokens:
        return ""
    return "; ".join(f"{k}={v}" for k, v in tokens.items())


def summarize(results: Sequence[IterationResult], now: Optional[datetime] = None) -> RunSummary:
    return RunSummary(
        total=len(results),
        total_duration=sum(_duration(r.api1) + _duration(r.api2) for r in results),
        matches=sum(1 for r in results if r.status is ComparisonStatus.MATCH),
        mismatches=sum(1 for r in results if r.status is ComparisonStatus.MISMATCH),
        errors=sum(1 for r in results if r.status is ComparisonStatus.ERROR),
        generated_at=render_timestamp(now),
    )


def _baseline_note(result: IterationResult) -> str:
    if not result.baseline_service_name:
        return ""
    parts = [result.baseline_service_name, result.baseline_date, result.baseline_run_id]
    location = " / ".join(p for p in parts if p)
    note = f"Baseline: {location}"
    if result.baseline_description:
        note += f" ({result.baseline_description})"
    return f'<p class="baseline-note"><small>{escape_text(note)}</small></p>'


def _differences_html(result: IterationResult) -> str:
    if result.status is not ComparisonStatus.MISMATCH or not result.differences:
        return ""
    items = "".join(f"<li>{escape_text(d)}</li>" for d in result.differences)
    return f'<div class="diff-list"><h5>Differences Found</h5><ul>{items}</ul></div>'


def _request_html(result: IterationResult) -> str:
    payload = result.api1.request_payload if result.api1 else None
    if payload is None or payload == "":
        return ""
    return (
        '<div class="request-box"><h4>Request Payload</h4>'
        f"<pre>{format_payload(payload)}</pre></div>"
    )


def _responses_html(result: IterationResult) -> str:
    api1 = result.api1 or ApiCallResult()
    if result.status is ComparisonStatus.MATCH:
        return (
            '<div class="single-view"><h4>Response (Identical)</h4>'
            f"<pre>{format_payload(api1.response_payload)}</pre>"
            f"<p><small>Duration: {_ms(_duration(result.api1))}ms</small></p></div>"
        )
    api2 = result.api2 or ApiCallResult()
    return (
        '<div class="comparison-grid">'
        f'<div class="payload-box"><h4>API 1 Response ({_ms(_duration(result.api1))}ms)</h4>'
        f"<pre>{format_payload(api1.response_payload)}</pre></div>"
        f'<div class="payload-box"><h4>API 2 Response ({_ms(_duration(result.api2))}ms)</h4>'
        f"<pre>{format_payload(api2.response_payload)}</pre></div>"
        "</div>"
    )


def render_body(result: IterationResult) -> str:
    if result.status is ComparisonStatus.ERROR:
        return f'<p class="error-text">{escape_text(result.error_message or "")}</p>'
    return "".join([
        _baseline_note(result),
        _differences_html(result),
        _request_html(result),
        _responses_html(result),
    ])


def render_iteration(result: IterationResult, index: int) -> IterationView:
    return IterationView(
        index=index,
        operation_name=result.operation_name or "",
        status=result.status,
        tokens=format_tokens(result.iteration_tokens),
        timestamp=result.timestamp or "",
        body_html=render_body(result),
    )


def render_results(results: Sequence[IterationResult], now: Optional[datetime] = None) -> ResultsView:
    if not results:
        return ResultsView(placeholder=NO_RESULTS)
    logger.info(f"Rendering {len(results)} iteration result(s)")
    return ResultsView(
        summary=summarize(results, now),
        iterations=[render_iteration(r, i) for i, r in enumerate(results, start=1)],
    )


def render_error(message: str) -> str:
    return f'<div class="error-msg">{escape_text(message)}</div>'
