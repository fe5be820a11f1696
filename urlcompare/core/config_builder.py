# urlcompare/core/config_builder.py
import re
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from urlcompare.models import (
    ApiPair,
    Authentication,
    ComparisonRequest,
    EndpointConfig,
    KeyValueRow,
    OperationConfig,
    TestType,
    UiState,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_METHOD,
    DEFAULT_OPERATION_NAME,
    HTTP_METHODS,
)

logger = logging.getLogger(__name__)

TOKEN_SEPARATOR = ";"
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_max_iterations(raw: Any) -> int:
    """Leading integer of the field text; anything non-positive falls back to the default."""
    if isinstance(raw, bool):
        return DEFAULT_MAX_ITERATIONS
    if isinstance(raw, int):
        value = raw
    else:
        match = _LEADING_INT.match(str(raw or ""))
        if not match:
            return DEFAULT_MAX_ITERATIONS
        value = int(match.group(1))
    return value if value > 0 else DEFAULT_MAX_ITERATIONS


def parse_token_values(raw: str) -> List[str]:
    items = [v.strip() for v in (raw or "").split(TOKEN_SEPARATOR)]
    # a trailing separator leaves one empty entry behind
    if items and items[-1] == "":
        items.pop()
    return items


def collect_headers(rows: Iterable[KeyValueRow]) -> Dict[str, str]:
    headers = {}
    for row in rows:
        key = row.key.strip()
        if key:
            headers[key] = row.value.strip()
    return headers


def collect_tokens(rows: Iterable[KeyValueRow]) -> Dict[str, List[str]]:
    tokens = {}
    for row in rows:
        key = row.key.strip()
        if not key:
            continue
        values = parse_token_values(row.value)
        if values:
            tokens[key] = values
    return tokens


def build_config(ui_state: UiState) -> ComparisonRequest:
    """
    Translates the form snapshot into the request sent to the comparison service.
    Both the REST and SOAP blocks are filled from the same fields; the service
    reads whichever one matches testType.
    """
    auth = Authentication(
        token_url=None,
        client_id=ui_state.client_id or None,
        client_secret=ui_state.client_secret or None,
    )
    op_config = OperationConfig(
        name=ui_state.operation_name if ui_state.operation_name.strip() else DEFAULT_OPERATION_NAME,
        methods=[ui_state.method or DEFAULT_METHOD],
        headers=collect_headers(ui_state.headers),
        payload_template_path=ui_state.payload_template or None,
    )

    def endpoint(url: str) -> EndpointConfig:
        return EndpointConfig(
            base_url=url,
            authentication=auth.model_copy(),
            operations=[op_config.model_copy(deep=True)],
        )

    return ComparisonRequest(
        test_type=ui_state.test_type,
        max_iterations=parse_max_iterations(ui_state.max_iterations),
        iteration_controller=ui_state.iteration_controller,
        tokens=collect_tokens(ui_state.tokens),
        rest=ApiPair(api1=endpoint(ui_state.url1), api2=endpoint(ui_state.url2)),
        soap=ApiPair(api1=endpoint(ui_state.url1), api2=endpoint(ui_state.url2)),
    )


def validate_config(config: ComparisonRequest, alert: Callable[[str], Any] = logger.warning) -> bool:
    if not config.rest.api1.base_url:
        alert("URL 1 is required")
        return False
    return True


def _active_apis(defaults: Dict[str, Any], test_type: Optional[str]) -> Optional[Dict[str, Any]]:
    if test_type == TestType.SOAP.value:
        return defaults.get("soap") or defaults.get("soapApis")
    return defaults.get("rest") or defaults.get("restApis")


def _node(value: Any) -> Dict[str, Any]:
    """A nested object of the defaults document; anything else counts as absent."""
    return value if isinstance(value, dict) else {}


def apply_defaults(ui_state: UiState, defaults: Optional[Dict[str, Any]]) -> UiState:
    """
    Prefills the form from a /api/config document. Fields the document does not
    mention keep their current value, and parts of the wrong shape are skipped.
    """
    if not defaults or not isinstance(defaults, dict):
        return ui_state

    updates: Dict[str, Any] = {}
    test_type = defaults.get("testType")
    if test_type in (TestType.REST.value, TestType.SOAP.value):
        updates["test_type"] = TestType(test_type)
    if defaults.get("iterationController"):
        updates["iteration_controller"] = str(defaults["iterationController"])
    if defaults.get("maxIterations"):
        updates["max_iterations"] = str(defaults["maxIterations"])

    apis = _node(_active_apis(defaults, test_type))
    api1, api2 = _node(apis.get("api1")), _node(apis.get("api2"))
    if api1 and api2:
        updates["url1"] = str(api1.get("baseUrl") or "")
        updates["url2"] = str(api2.get("baseUrl") or "")

        auth = _node(api1.get("authentication"))
        if auth:
            updates["client_id"] = str(auth.get("clientId") or "")
            updates["client_secret"] = str(auth.get("clientSecret") or "")

        operations = api1.get("operations")
        op = _node(operations[0]) if isinstance(operations, list) and operations else {}
        if op.get("name"):
            updates["operation_name"] = str(op["name"])
        if op.get("payloadTemplatePath"):
            updates["payload_template"] = str(op["payloadTemplatePath"])
        methods = op.get("methods")
        if isinstance(methods, list) and methods and methods[0] in HTTP_METHODS:
            updates["method"] = methods[0]
        if isinstance(op.get("headers"), dict):
            updates["headers"] = [
                KeyValueRow(key=str(k), value="" if v is None else str(v))
                for k, v in op["headers"].items()
            ]

    tokens = defaults.get("tokens")
    if isinstance(tokens, dict):
        updates["tokens"] = [
            KeyValueRow(key=str(k), value="; ".join(str(v) for v in values))
            for k, values in tokens.items()
            if isinstance(values, list)
        ]

    logger.info(f"Applied defaults for fields: {sorted(updates)}")
    return ui_state.model_copy(update=updates)
