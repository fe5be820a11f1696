# urlcompare/services/runner.py
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from urlcompare.core.baseline import (
    RUN_LABEL,
    RUNNING_LABEL,
    WorkflowState,
    build_directive,
    button_label,
    with_baseline,
)
from urlcompare.core.config_builder import build_config, validate_config
from urlcompare.core.renderer import PROCESSING, ResultsView, render_results
from urlcompare.exceptions import TransportError, ValidationError
from urlcompare.models import IterationResult, UiState
from urlcompare.services import http_client

logger = logging.getLogger(__name__)


@dataclass
class RunConsole:
    """
    The run button and the results area, as state. The dashboard draws it;
    tests inspect it.
    """
    button_label: str = RUN_LABEL
    button_enabled: bool = True
    placeholder: Optional[str] = None
    error: Optional[str] = None
    view: Optional[ResultsView] = None
    alerts: List[str] = field(default_factory=list)

    def alert(self, message: str) -> None:
        logger.warning(f"Run aborted: {message}")
        self.alerts.append(message)

    def start(self) -> None:
        self.button_enabled = False
        self.button_label = RUNNING_LABEL
        self.placeholder = PROCESSING
        self.error = None
        self.view = None

    def finish(self, idle_label: str) -> None:
        self.button_enabled = True
        self.button_label = idle_label
        self.placeholder = None

    def show_error(self, message: str) -> None:
        self.error = message
        self.view = None

    def show_results(self, view: ResultsView) -> None:
        self.error = None
        self.view = view


class ComparisonRunner:
    def __init__(self, client: httpx.AsyncClient, console: Optional[RunConsole] = None):
        self.client = client
        self.console = console or RunConsole()

    async def run(self, ui_state: UiState, workflow: Optional[WorkflowState] = None) -> Optional[List[IterationResult]]:
        """
        One click of the run button: build, validate, submit, render.
        Returns the iteration results, or None when the run was aborted or failed.
        """
        workflow = workflow or WorkflowState()
        config = build_config(ui_state)
        if not validate_config(config, alert=self.console.alert):
            return None

        if workflow.in_baseline:
            try:
                config = with_baseline(config, build_directive(workflow, ui_state))
            except ValidationError as e:
                self.console.alert(str(e))
                return None

        self.console.start()
        try:
            results = await http_client.submit_comparison(self.client, config)
            self.console.show_results(render_results(results))
            return results
        except TransportError as e:
            self.console.show_error(f"Error executing comparison: {e}")
            return None
        finally:
            self.console.finish(button_label(workflow))
