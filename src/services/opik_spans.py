"""Opik REST client for the unrecognized-item review queue."""

import logging
from typing import Any

import httpx

from src.config import Settings, get_settings

logger = logging.getLogger(__name__)

UNRECOGNIZED_TAG = "unrecognized_items"
REVIEWED_TAG = "promotion_reviewed"


class OpikApiError(Exception):
    """Opik answered with a non-success status or an unreadable body."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)


def _read_json(response: httpx.Response, action: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise OpikApiError(response.status_code, f"Opik {action} returned invalid JSON") from e


class OpikSpansClient:
    """Search and tag spans through the Opik private REST API."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.base_url = self.settings.opik_url_override.rstrip("/")
        self.project_name = self.settings.opik_project_name
        self._client = client or httpx.AsyncClient(timeout=10.0)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        # Opik Cloud expects the raw key, without a "Bearer " prefix
        if self.settings.opik_api_key:
            headers["authorization"] = self.settings.opik_api_key
        if self.settings.opik_workspace:
            headers["Comet-Workspace"] = self.settings.opik_workspace
        return headers

    async def get_next_unprocessed_span(self) -> dict[str, Any] | None:
        """Return the newest span tagged for review and not yet reviewed."""
        response = await self._client.post(
            f"{self.base_url}/v1/private/spans/search",
            headers=self._headers(),
            json={
                "project_name": self.project_name,
                "filters": [
                    {"field": "tags", "operator": "contains", "value": UNRECOGNIZED_TAG},
                    {"field": "tags", "operator": "not_contains", "value": REVIEWED_TAG},
                ],
                "limit": 1,
                "sort_by": [{"field": "created_at", "direction": "desc"}],
            },
        )
        if response.is_error:
            raise OpikApiError(
                response.status_code, f"Opik search spans failed: {response.status_code}"
            )

        data = _read_json(response, "search spans")
        # Depending on the Opik version the search returns a page or a bare span
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            return data["data"][0] if data["data"] else None
        if isinstance(data, dict) and data.get("id"):
            return data
        return None

    async def get_span(self, span_id: str) -> dict[str, Any]:
        response = await self._client.get(
            f"{self.base_url}/v1/private/spans/{span_id}", headers=self._headers()
        )
        if response.is_error:
            raise OpikApiError(
                response.status_code,
                f"Opik get span failed: {response.status_code} (span_id: {span_id})",
            )
        span = _read_json(response, f"get span {span_id}")
        if not isinstance(span, dict):
            raise OpikApiError(response.status_code, f"Opik get span returned no span: {span_id}")
        return span

    async def mark_span_as_reviewed(self, span_id: str) -> bool:
        """Append the reviewed tag to a span.

        Re-fetches the span first so the PATCH never writes stale tags.
        """
        span = await self.get_span(span_id)
        tags = list(span.get("tags") or [])
        if REVIEWED_TAG in tags:
            return True

        response = await self._client.patch(
            f"{self.base_url}/v1/private/spans/{span_id}",
            headers=self._headers(),
            json={
                "project_name": self.project_name,
                "trace_id": span.get("trace_id"),
                "tags": [*tags, REVIEWED_TAG],
            },
        )
        if response.is_error:
            raise OpikApiError(
                response.status_code,
                f"Opik PATCH span failed: {response.status_code} (span_id: {span_id})",
            )
        logger.info(f"Marked span {span_id} as reviewed")
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
