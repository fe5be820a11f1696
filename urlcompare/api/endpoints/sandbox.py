import logging
from datetime import date, datetime
from itertools import count
from typing import Dict, List

from fastapi import APIRouter, HTTPException, Depends

from urlcompare.models import (
    BaselineRun,
    CaptureDirective,
    CompareDirective,
    ComparisonMode,
    ComparisonRequest,
    TestType,
)

logger = logging.getLogger(__name__)
router = APIRouter()


"""
Stand-in for the comparison service, for running the dashboard locally.

GET  /config: canned form defaults.
POST /compare: echoes one MATCH iteration per token value; compares nothing.
GET  /baselines/...: lists the runs recorded by baseline captures.
"""


SANDBOX_DEFAULTS = {
    "testType": "REST",
    "iterationController": "ONE_BY_ONE",
    "maxIterations": 10,
    "tokens": {"account": ["123", "456", "999"]},
    "rest": {
        "api1": {
            "baseUrl": "http://localhost:8081/api/resource",
            "authentication": {"clientId": "", "clientSecret": ""},
            "operations": [{
                "name": "resource-lookup",
                "methods": ["POST"],
                "headers": {"Content-Type": "application/json"},
                "payloadTemplatePath": "templates/resource.json",
            }],
        },
        "api2": {
            "baseUrl": "http://localhost:8082/api/resource",
            "authentication": {"clientId": "", "clientSecret": ""},
            "operations": [{"name": "resource-lookup", "methods": ["POST"]}],
        },
    },
}


class SandboxStore:
    """In-memory baseline catalog: service → date → runs."""

    def __init__(self):
        self.catalog: Dict[str, Dict[str, List[BaselineRun]]] = {}
        self._run_ids = count(1)

    def record(self, directive: CaptureDirective, total_iterations: int) -> BaselineRun:
        run = BaselineRun(
            run_id=f"run-{next(self._run_ids):03d}",
            description=directive.description or None,
            total_iterations=total_iterations,
            tags=directive.tags,
            timestamp=datetime.now().isoformat(timespec="seconds"),
        )
        runs = self.catalog.setdefault(directive.service_name, {}).setdefault(date.today().isoformat(), [])
        runs.append(run)
        logger.info(f"Recorded baseline {directive.service_name}/{run.run_id}")
        return run

    def find(self, directive: CompareDirective) -> BaselineRun | None:
        runs = self.catalog.get(directive.service_name, {}).get(directive.compare_date, [])
        return next((r for r in runs if r.run_id == directive.compare_run_id), None)


_store = SandboxStore()


def get_store() -> SandboxStore:
    return _store


def _iterations(request: ComparisonRequest) -> List[Dict[str, str]]:
    longest = max((len(values) for values in request.tokens.values()), default=1)
    total = max(1, min(longest, request.max_iterations))
    return [
        {name: values[i % len(values)] for name, values in request.tokens.items()}
        for i in range(total)
    ]


def _canned_results(request: ComparisonRequest) -> List[dict]:
    apis = request.soap if request.test_type is TestType.SOAP else request.rest
    operation = apis.api1.operations[0].name if apis.api1.operations else "web-operation"
    results = []
    for tokens in _iterations(request):
        body = {"status": "success", "operation": operation, "tokens": tokens}
        call = {"requestPayload": {"tokens": tokens}, "responsePayload": body, "duration": 0}
        results.append({
            "operationName": operation,
            "iterationTokens": tokens,
            "status": "MATCH",
            "timestamp": datetime.now().isoformat(timespec="seconds"),
            "api1": dict(call, url=apis.api1.base_url),
            "api2": dict(call, url=apis.api2.base_url),
        })
    return results


@router.get("/config")
def get_config():
    return SANDBOX_DEFAULTS


@router.post("/compare")
def compare(request: ComparisonRequest, store: SandboxStore = Depends(get_store)):
    results = _canned_results(request)
    if request.comparison_mode is ComparisonMode.BASELINE:
        if isinstance(request.baseline, CaptureDirective):
            store.record(request.baseline, len(results))
        elif isinstance(request.baseline, CompareDirective):
            if store.find(request.baseline) is None:
                raise HTTPException(status_code=404, detail="Baseline run not found")
        else:
            raise HTTPException(status_code=422, detail="Baseline mode needs a baseline directive")
    return results


@router.get("/baselines/services")
def list_services(store: SandboxStore = Depends(get_store)):
    return sorted(store.catalog)


@router.get("/baselines/dates/{service_name}")
def list_dates(service_name: str, store: SandboxStore = Depends(get_store)):
    return sorted(store.catalog.get(service_name, {}), reverse=True)


@router.get("/baselines/runs/{service_name}/{run_date}")
def list_runs(service_name: str, run_date: str, store: SandboxStore = Depends(get_store)):
    runs = store.catalog.get(service_name, {}).get(run_date, [])
    return [r.model_dump(by_alias=True) for r in runs]
