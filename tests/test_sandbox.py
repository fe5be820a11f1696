"""Tests for the sandbox comparison service, directly and through the console."""

import asyncio
from datetime import date

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from urlcompare.api.endpoints import sandbox
from urlcompare.core.baseline import DateSelected, ModeChanged, OperationChanged, RunSelected, ServiceSelected
from urlcompare.core.config_builder import apply_defaults, build_config
from urlcompare.models import BaselineOperation, ComparisonMode, UiState
from urlcompare.services import http_client
from urlcompare.services.catalog import BaselineController
from urlcompare.services.runner import ComparisonRunner, RunConsole

TODAY = date.today().isoformat()


@pytest.fixture
def app():
    store = sandbox.SandboxStore()
    app = FastAPI()
    app.include_router(sandbox.router, prefix="/api")
    app.dependency_overrides[sandbox.get_store] = lambda: store
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def live_payload(**ui_fields):
    fields = dict(url1="http://a", url2="http://b")
    fields.update(ui_fields)
    return build_config(UiState(**fields)).to_payload()


def capture_payload(service="Orders", description="nightly"):
    payload = live_payload()
    payload["comparisonMode"] = "BASELINE"
    payload["baseline"] = {"operation": "CAPTURE", "serviceName": service,
                           "description": description, "tags": ["smoke"]}
    return payload


class TestSandboxRoutes:
    def test_config_prefills_form(self, client):
        response = client.get("/api/config")
        assert response.status_code == 200
        ui_state = apply_defaults(UiState(), response.json())
        assert ui_state.url1.startswith("http://localhost:8081")
        assert ui_state.tokens[0].key == "account"

    def test_live_compare_echoes_one_match_per_token_value(self, client):
        payload = live_payload(max_iterations="2")
        payload["tokens"] = {"account": ["1", "2", "3"]}
        response = client.post("/api/compare", json=payload)
        assert response.status_code == 200
        body = response.json()
        assert len(body) == 2
        assert {r["status"] for r in body} == {"MATCH"}
        assert [r["iterationTokens"] for r in body] == [{"account": "1"}, {"account": "2"}]
        assert body[0]["api1"]["url"] == "http://a"

    def test_invalid_request_is_rejected(self, client):
        assert client.post("/api/compare", json={"testType": "REST"}).status_code == 422

    def test_baseline_mode_needs_directive(self, client):
        payload = live_payload()
        payload["comparisonMode"] = "BASELINE"
        assert client.post("/api/compare", json=payload).status_code == 422

    def test_capture_populates_catalog(self, client):
        assert client.get("/api/baselines/services").json() == []
        assert client.post("/api/compare", json=capture_payload("Payments")).status_code == 200
        assert client.post("/api/compare", json=capture_payload("Orders")).status_code == 200

        assert client.get("/api/baselines/services").json() == ["Orders", "Payments"]
        assert client.get("/api/baselines/dates/Orders").json() == [TODAY]
        runs = client.get(f"/api/baselines/runs/Orders/{TODAY}").json()
        assert runs[0]["runId"] == "run-002"
        assert runs[0]["description"] == "nightly"
        assert runs[0]["totalIterations"] == 1
        assert runs[0]["tags"] == ["smoke"]

    def test_compare_with_unknown_run_is_not_found(self, client):
        payload = live_payload()
        payload["comparisonMode"] = "BASELINE"
        payload["baseline"] = {"operation": "COMPARE", "serviceName": "Orders",
                               "compareDate": TODAY, "compareRunId": "run-404"}
        assert client.post("/api/compare", json=payload).status_code == 404

    def test_unknown_service_has_no_dates(self, client):
        assert client.get("/api/baselines/dates/Nobody").json() == []
        assert client.get("/api/baselines/runs/Nobody/2024-01-01").json() == []


class TestConsoleAgainstSandbox:
    def test_capture_then_compare(self, app):
        async def scenario():
            transport = httpx.ASGITransport(app=app)
            async with http_client.create_client("http://sandbox", transport) as client:
                controller = BaselineController(client)
                await controller.dispatch(ModeChanged(ComparisonMode.BASELINE))

                capture_console = RunConsole()
                ui_state = UiState(url1="http://a", baseline_service_name="Orders",
                                   baseline_description="first capture")
                captured = await ComparisonRunner(client, capture_console).run(ui_state, controller.state)

                await controller.dispatch(OperationChanged(BaselineOperation.COMPARE))
                await controller.dispatch(ServiceSelected("Orders"))
                await controller.dispatch(DateSelected(TODAY))
                run_labels = [o.label for o in controller.state.runs.options]
                await controller.dispatch(RunSelected("run-001"))

                compare_console = RunConsole()
                compared = await ComparisonRunner(client, compare_console).run(ui_state, controller.state)
                return captured, run_labels, compared, compare_console

        captured, run_labels, compared, console = asyncio.run(scenario())
        assert len(captured) == 1
        assert run_labels == ["run-001 - first capture (1 iterations)"]
        assert len(compared) == 1
        assert console.error is None
        assert console.view.summary.matches == 1
        assert console.button_label == "Compare with Baseline"
