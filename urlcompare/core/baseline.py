"""Baseline mode as a pure state machine.

``transition(state, event)`` returns the next state and the catalog fetches
that should follow it. Nothing here touches the network; the controller in
``urlcompare.services.catalog`` performs the fetches and feeds the answers
back in as events.

Every fetch carries a stamp. An answer whose stamp is no longer the latest one
issued for its selector is stale and gets dropped, so picking service A and
then service B always ends with B's dates on screen.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Union

from urlcompare.exceptions import ValidationError
from urlcompare.models import (
    BaselineDirective,
    BaselineOperation,
    BaselineRun,
    CaptureDirective,
    CompareDirective,
    ComparisonMode,
    ComparisonRequest,
    UiState,
)

logger = logging.getLogger(__name__)

SERVICE_PLACEHOLDER = "-- Select Service --"
DATE_PLACEHOLDER = "-- Select Date --"
RUN_PLACEHOLDER = "-- Select Run --"

RUN_LABEL = "Run Comparison"
CAPTURE_LABEL = "Capture Baseline"
COMPARE_LABEL = "Compare with Baseline"
RUNNING_LABEL = "Running..."

DUAL_URL_LABEL = "Endpoint 1 URL"
SINGLE_URL_LABEL = "API Endpoint URL"


@dataclass(frozen=True)
class Option:
    value: str
    label: str


@dataclass(frozen=True)
class Selector:
    placeholder: str
    options: Tuple[Option, ...] = ()
    value: str = ""
    enabled: bool = False

    def choices(self) -> Tuple[Option, ...]:
        return (Option("", self.placeholder),) + self.options

    def reset(self) -> "Selector":
        return Selector(self.placeholder)


def run_label(run: BaselineRun) -> str:
    return f"{run.run_id} - {run.description or 'No description'} ({run.total_iterations} iterations)"


@dataclass(frozen=True)
class WorkflowState:
    mode: ComparisonMode = ComparisonMode.LIVE
    operation: BaselineOperation = BaselineOperation.CAPTURE
    services: Selector = field(default_factory=lambda: Selector(SERVICE_PLACEHOLDER))
    dates: Selector = field(default_factory=lambda: Selector(DATE_PLACEHOLDER))
    runs: Selector = field(default_factory=lambda: Selector(RUN_PLACEHOLDER))
    services_loaded: bool = False
    # stamp of the latest fetch issued per selector; None when nothing is pending
    services_stamp: Optional[int] = None
    dates_stamp: Optional[int] = None
    runs_stamp: Optional[int] = None
    last_stamp: int = 0

    @property
    def in_baseline(self) -> bool:
        return self.mode is ComparisonMode.BASELINE

    @property
    def comparing(self) -> bool:
        return self.in_baseline and self.operation is BaselineOperation.COMPARE


# --- Events ---

@dataclass(frozen=True)
class ModeChanged:
    mode: ComparisonMode


@dataclass(frozen=True)
class OperationChanged:
    operation: BaselineOperation


@dataclass(frozen=True)
class ServiceSelected:
    service: str


@dataclass(frozen=True)
class DateSelected:
    date: str


@dataclass(frozen=True)
class RunSelected:
    run_id: str


@dataclass(frozen=True)
class ServicesLoaded:
    stamp: int
    services: Tuple[str, ...]


@dataclass(frozen=True)
class DatesLoaded:
    stamp: int
    dates: Tuple[str, ...]


@dataclass(frozen=True)
class RunsLoaded:
    stamp: int
    runs: Tuple[BaselineRun, ...]


@dataclass(frozen=True)
class CatalogLoadFailed:
    stamp: int


Event = Union[
    ModeChanged, OperationChanged, ServiceSelected, DateSelected, RunSelected,
    ServicesLoaded, DatesLoaded, RunsLoaded, CatalogLoadFailed,
]


# --- Effects ---

@dataclass(frozen=True)
class FetchServices:
    stamp: int


@dataclass(frozen=True)
class FetchDates:
    stamp: int
    service: str


@dataclass(frozen=True)
class FetchRuns:
    stamp: int
    service: str
    date: str


Effect = Union[FetchServices, FetchDates, FetchRuns]
Transition = Tuple[WorkflowState, Tuple[Effect, ...]]


def _fetch_services(state: WorkflowState) -> Transition:
    stamp = state.last_stamp + 1
    return replace(state, services_stamp=stamp, last_stamp=stamp), (FetchServices(stamp),)


def _clear_dates(state: WorkflowState) -> WorkflowState:
    return replace(state, dates=state.dates.reset(), runs=state.runs.reset(),
                   dates_stamp=None, runs_stamp=None)


def _clear_runs(state: WorkflowState) -> WorkflowState:
    return replace(state, runs=state.runs.reset(), runs_stamp=None)


def _select_service(state: WorkflowState, service: str) -> Transition:
    state = _clear_dates(replace(state, services=replace(state.services, value=service)))
    if not service:
        return state, ()
    stamp = state.last_stamp + 1
    return replace(state, dates_stamp=stamp, last_stamp=stamp), (FetchDates(stamp, service),)


def _select_date(state: WorkflowState, date: str) -> Transition:
    state = _clear_runs(replace(state, dates=replace(state.dates, value=date)))
    service = state.services.value
    if not (service and date):
        return state, ()
    stamp = state.last_stamp + 1
    return replace(state, runs_stamp=stamp, last_stamp=stamp), (FetchRuns(stamp, service, date),)


def _services_loaded(state: WorkflowState, services: Tuple[str, ...]) -> Transition:
    options = tuple(Option(s, s) for s in services)
    selected = state.services.value
    keep = bool(selected) and selected in services
    state = replace(
        state,
        services=Selector(SERVICE_PLACEHOLDER, options, selected if keep else "", enabled=True),
        services_loaded=True,
        services_stamp=None,
    )
    if not keep:
        # the reloaded catalog no longer offers the selected service
        state = _clear_dates(state)
    return state, ()


def transition(state: WorkflowState, event: Event) -> Transition:
    if isinstance(event, ModeChanged):
        if event.mode is state.mode:
            return state, ()
        if event.mode is ComparisonMode.BASELINE:
            fresh = WorkflowState(mode=ComparisonMode.BASELINE, last_stamp=state.last_stamp)
            return _fetch_services(fresh)
        return WorkflowState(last_stamp=state.last_stamp), ()

    if isinstance(event, OperationChanged):
        if not state.in_baseline or event.operation is state.operation:
            return state, ()
        state = replace(state, operation=event.operation)
        if (event.operation is BaselineOperation.COMPARE
                and not state.services_loaded and state.services_stamp is None):
            return _fetch_services(state)
        return state, ()

    if isinstance(event, ServiceSelected):
        if not state.comparing:
            return state, ()
        return _select_service(state, event.service)

    if isinstance(event, DateSelected):
        if not state.comparing:
            return state, ()
        return _select_date(state, event.date)

    if isinstance(event, RunSelected):
        if not state.comparing:
            return state, ()
        return replace(state, runs=replace(state.runs, value=event.run_id)), ()

    if isinstance(event, ServicesLoaded):
        if event.stamp != state.services_stamp:
            logger.debug(f"Dropping stale service list (stamp {event.stamp})")
            return state, ()
        return _services_loaded(state, event.services)

    if isinstance(event, DatesLoaded):
        if event.stamp != state.dates_stamp:
            logger.debug(f"Dropping stale date list (stamp {event.stamp})")
            return state, ()
        options = tuple(Option(d, d) for d in event.dates)
        return replace(state, dates=Selector(DATE_PLACEHOLDER, options, enabled=True), dates_stamp=None), ()

    if isinstance(event, RunsLoaded):
        if event.stamp != state.runs_stamp:
            logger.debug(f"Dropping stale run list (stamp {event.stamp})")
            return state, ()
        options = tuple(Option(r.run_id, run_label(r)) for r in event.runs)
        return replace(state, runs=Selector(RUN_PLACEHOLDER, options, enabled=True), runs_stamp=None), ()

    if isinstance(event, CatalogLoadFailed):
        # the failed selector stays at its placeholder and disabled
        if event.stamp == state.services_stamp:
            state = _clear_dates(replace(state, services=state.services.reset(),
                                         services_loaded=False, services_stamp=None))
        elif event.stamp == state.dates_stamp:
            state = _clear_dates(state)
        elif event.stamp == state.runs_stamp:
            state = _clear_runs(state)
        return state, ()

    raise TypeError(f"Unknown workflow event: {event!r}")


def button_label(state: WorkflowState) -> str:
    if not state.in_baseline:
        return RUN_LABEL
    if state.operation is BaselineOperation.CAPTURE:
        return CAPTURE_LABEL
    return COMPARE_LABEL


def url_labels(state: WorkflowState) -> Tuple[str, bool]:
    """Label of the first URL field and whether the second one is shown."""
    if state.in_baseline:
        return SINGLE_URL_LABEL, False
    return DUAL_URL_LABEL, True


def parse_tags(raw: str) -> list:
    raw = (raw or "").strip()
    return [t.strip() for t in raw.split(",")] if raw else []


def build_directive(state: WorkflowState, ui_state: UiState) -> BaselineDirective:
    if state.operation is BaselineOperation.CAPTURE:
        service_name = ui_state.baseline_service_name.strip()
        if not service_name:
            raise ValidationError("Please enter a service name for baseline capture")
        return CaptureDirective(
            service_name=service_name,
            description=ui_state.baseline_description.strip(),
            tags=parse_tags(ui_state.baseline_tags),
        )

    service, date, run_id = state.services.value, state.dates.value, state.runs.value
    if not (service and date and run_id):
        raise ValidationError("Please select service, date, and run for baseline comparison")
    return CompareDirective(service_name=service, compare_date=date, compare_run_id=run_id)


def with_baseline(config: ComparisonRequest, directive: BaselineDirective) -> ComparisonRequest:
    return config.model_copy(update={
        "comparison_mode": ComparisonMode.BASELINE,
        "baseline": directive,
    })
