from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, List, Union, Literal
from datetime import datetime
from enum import Enum


DEFAULT_OPERATION_NAME = "web-operation"
DEFAULT_METHOD = "POST"
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_ITERATION_CONTROLLER = "ALL_COMBINATIONS"

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
ITERATION_CONTROLLERS = ("ALL_COMBINATIONS", "ONE_BY_ONE")


class TestType(str, Enum):
    __test__ = False  # not a pytest class

    REST = "REST"
    SOAP = "SOAP"


class ComparisonMode(str, Enum):
    LIVE = "LIVE"
    BASELINE = "BASELINE"


class BaselineOperation(str, Enum):
    CAPTURE = "CAPTURE"
    COMPARE = "COMPARE"


class ComparisonStatus(str, Enum):
    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    ERROR = "ERROR"


class WireModel(BaseModel):
    # snake_case attributes, camelCase on the wire
    model_config = ConfigDict(populate_by_name=True)


# --- Request side: what is sent to /api/compare ---

class Authentication(WireModel):
    token_url: Optional[str] = Field(None, alias="tokenUrl")
    client_id: Optional[str] = Field(None, alias="clientId")
    client_secret: Optional[str] = Field(None, alias="clientSecret")


class OperationConfig(WireModel):
    name: str = DEFAULT_OPERATION_NAME
    methods: List[str] = Field(default_factory=lambda: [DEFAULT_METHOD])
    headers: Dict[str, str] = Field(default_factory=dict)
    payload_template_path: Optional[str] = Field(None, alias="payloadTemplatePath")


class EndpointConfig(WireModel):
    base_url: str = Field("", alias="baseUrl", description="Full URL of the endpoint, not just the host")
    authentication: Authentication = Field(default_factory=Authentication)
    operations: List[OperationConfig] = Field(default_factory=list)


class ApiPair(WireModel):
    api1: EndpointConfig
    api2: EndpointConfig


class CaptureDirective(WireModel):
    operation: Literal["CAPTURE"] = "CAPTURE"
    service_name: str = Field(..., alias="serviceName")
    description: str = ""
    tags: List[str] = Field(default_factory=list)


class CompareDirective(WireModel):
    operation: Literal["COMPARE"] = "COMPARE"
    service_name: str = Field(..., alias="serviceName")
    compare_date: str = Field(..., alias="compareDate")
    compare_run_id: str = Field(..., alias="compareRunId")


BaselineDirective = Union[CaptureDirective, CompareDirective]


class ComparisonRequest(WireModel):
    test_type: TestType = Field(TestType.REST, alias="testType")
    max_iterations: int = Field(DEFAULT_MAX_ITERATIONS, alias="maxIterations", gt=0)
    iteration_controller: str = Field(DEFAULT_ITERATION_CONTROLLER, alias="iterationController")
    # values stay strings, the same way the CLI reads them from YAML
    tokens: Dict[str, List[str]] = Field(default_factory=dict)
    comparison_mode: ComparisonMode = Field(ComparisonMode.LIVE, alias="comparisonMode")
    rest: ApiPair
    soap: ApiPair
    baseline: Optional[BaselineDirective] = None

    def to_payload(self) -> Dict[str, Any]:
        """Wire form of the request; ``baseline`` only appears in baseline mode."""
        payload = self.model_dump(mode="json", by_alias=True)
        if self.baseline is None:
            payload.pop("baseline", None)
        return payload


# --- Response side: what /api/compare and /api/baselines/* return ---

class ApiCallResult(WireModel):
    url: Optional[str] = None
    method: Optional[str] = None
    status_code: Optional[int] = Field(None, alias="statusCode")
    request_payload: Optional[Any] = Field(None, alias="requestPayload")
    response_payload: Optional[Any] = Field(None, alias="responsePayload")
    duration: Optional[Union[int, float]] = Field(None, ge=0, description="Milliseconds")


class IterationResult(WireModel):
    status: ComparisonStatus
    operation_name: Optional[str] = Field(None, alias="operationName")
    timestamp: Optional[str] = None
    iteration_tokens: Optional[Dict[str, Any]] = Field(None, alias="iterationTokens")
    api1: Optional[ApiCallResult] = None
    api2: Optional[ApiCallResult] = None
    differences: Optional[List[str]] = None
    error_message: Optional[str] = Field(None, alias="errorMessage")
    # only populated for baseline runs
    baseline_service_name: Optional[str] = Field(None, alias="baselineServiceName")
    baseline_date: Optional[str] = Field(None, alias="baselineDate")
    baseline_run_id: Optional[str] = Field(None, alias="baselineRunId")
    baseline_description: Optional[str] = Field(None, alias="baselineDescription")
    baseline_tags: Optional[List[str]] = Field(None, alias="baselineTags")
    baseline_capture_timestamp: Optional[str] = Field(None, alias="baselineCaptureTimestamp")


class BaselineRun(WireModel):
    run_id: str = Field(..., alias="runId")
    description: Optional[str] = None
    total_iterations: int = Field(0, alias="totalIterations")
    tags: Optional[List[str]] = None
    timestamp: Optional[str] = None


# --- Form state ---

class KeyValueRow(BaseModel):
    key: str = ""
    value: str = ""


class UiState(BaseModel):
    """Snapshot of every form field the console reads when building a request."""
    test_type: TestType = TestType.REST
    operation_name: str = ""
    method: str = DEFAULT_METHOD
    url1: str = ""
    url2: str = ""
    payload_template: str = ""
    iteration_controller: str = DEFAULT_ITERATION_CONTROLLER
    # raw field text, parsed leniently by the config builder
    max_iterations: Union[int, str, None] = ""
    client_id: str = ""
    client_secret: str = ""
    headers: List[KeyValueRow] = Field(default_factory=list)
    tokens: List[KeyValueRow] = Field(default_factory=list)
    baseline_service_name: str = ""
    baseline_description: str = ""
    baseline_tags: str = ""


# --- Local run history ---

class ComparisonRunRecord(BaseModel):
    id: int
    created_at: Optional[datetime] = None
    comparison_mode: str
    baseline_operation: Optional[str] = None
    total: int
    matches: int
    mismatches: int
    errors: int
    total_duration: float
    results: str

    class Config:
        from_attributes = True
