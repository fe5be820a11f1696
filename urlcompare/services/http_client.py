# urlcompare/services/http_client.py
import httpx
from typing import Any, Dict, List, Optional
from urllib.parse import quote
import logging

from urlcompare.config import settings
from urlcompare.exceptions import CatalogLoadError, TransportError
from urlcompare.models import BaselineRun, ComparisonRequest, IterationResult

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
}


def create_client(
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Client for the comparison service; ``transport`` lets tests swap the network out."""
    return httpx.AsyncClient(
        base_url=base_url or settings.API_BASE_URL,
        timeout=settings.REQUEST_TIMEOUT,
        headers=DEFAULT_HEADERS,
        transport=transport,
    )


def _segment(value: str) -> str:
    return quote(value, safe="")


async def load_config(client: httpx.AsyncClient) -> Optional[Dict[str, Any]]:
    """GET /api/config. Any failure simply means there are no defaults."""
    try:
        response = await client.get("/api/config")
    except httpx.HTTPError as e:
        logger.warning(f"Could not load defaults from {client.base_url}: {e}")
        return None

    if not response.is_success:
        logger.info(f"No defaults available ({response.status_code})")
        return None
    try:
        config = response.json()
    except ValueError:
        logger.warning("Defaults response was not JSON, ignoring it")
        return None
    return config if isinstance(config, dict) and config else None


async def submit_comparison(client: httpx.AsyncClient, request: ComparisonRequest) -> List[IterationResult]:
    payload = request.to_payload()
    logger.info(f"Submitting {request.comparison_mode.value} comparison ({request.test_type.value}) "
                f"to {client.base_url}/api/compare")
    logger.debug(f"Comparison request: {payload}")
    try:
        response = await client.post("/api/compare", json=payload)
        logger.info(f"Received Response Status: {response.status_code} for /api/compare")
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(f"Comparison service rejected the request: {e}")
        raise TransportError(f"Comparison service returned {e.response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"HTTP request failed for /api/compare: {e}")
        raise TransportError(f"HTTP request failed: {e}")

    try:
        data = response.json()
        if not isinstance(data, list):
            raise TypeError(f"expected a list of results, got {type(data).__name__}")
        return [IterationResult.model_validate(item) for item in data]
    except (ValueError, TypeError) as e:
        logger.error(f"Unexpected comparison response: {e}")
        raise TransportError(f"Unexpected response from comparison service: {e}")


async def _get_catalog(client: httpx.AsyncClient, path: str) -> list:
    try:
        response = await client.get(path)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise CatalogLoadError(f"Failed to load {path}: {e}") from e
    if not isinstance(data, list):
        raise CatalogLoadError(f"Failed to load {path}: expected a list")
    logger.debug(f"Loaded {len(data)} entries from {path}")
    return data


async def list_services(client: httpx.AsyncClient) -> List[str]:
    return [str(s) for s in await _get_catalog(client, "/api/baselines/services")]


async def list_dates(client: httpx.AsyncClient, service_name: str) -> List[str]:
    path = f"/api/baselines/dates/{_segment(service_name)}"
    return [str(d) for d in await _get_catalog(client, path)]


async def list_runs(client: httpx.AsyncClient, service_name: str, date: str) -> List[BaselineRun]:
    path = f"/api/baselines/runs/{_segment(service_name)}/{_segment(date)}"
    data = await _get_catalog(client, path)
    try:
        return [BaselineRun.model_validate(item) for item in data]
    except ValueError as e:
        raise CatalogLoadError(f"Failed to load {path}: {e}") from e
