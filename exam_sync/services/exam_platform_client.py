"""
Exam Platform Client
HTTP client for the external exam-device platform: appointment
create/update/cancel and result retrieval by identifier.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from exam_sync.config import Settings
from exam_sync.exceptions import FetchFailed, PlatformRequestFailed, TransportTimeout
from exam_sync.services.external_timeouts import exam_platform_timeout

logger = logging.getLogger(__name__)

@dataclass
class FetchedResult:
    """Raw result document pulled from the platform"""
    body: bytes
    content_type: str


class ExamPlatformClient:
    """Talks to the exam platform with the shared API token header"""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._owns_client = http_client is None
        self.http = http_client or build_http_client(settings)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http.aclose()

    # ------------------------------------------------------------------
    # Appointments (synchronous request/response, result observed here)
    # ------------------------------------------------------------------

    async def create_appointment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._appointment_call("POST", "/appointments", payload)

    async def update_appointment(self, external_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._appointment_call("PUT", f"/appointments/{quote(external_id, safe='')}", payload)

    async def cancel_appointment(self, external_id: str) -> Dict[str, Any]:
        return await self._appointment_call("POST", f"/appointments/{quote(external_id, safe='')}/cancel", None)

    async def _appointment_call(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        try:
            response = await self.http.request(method, path, json=payload)
        except httpx.TimeoutException as e:
            raise PlatformRequestFailed(f"Timeout calling {method} {path}: {e!r}")
        except httpx.HTTPError as e:
            raise PlatformRequestFailed(f"Transport error calling {method} {path}: {e!r}")

        if not response.is_success:
            raise PlatformRequestFailed(
                f"HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Non-JSON success response from {method} {path}, ignoring body")
            return {}
        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------
    # Result retrieval (pull fallback for notification callbacks)
    # ------------------------------------------------------------------

    async def fetch_result(self, identifier: str) -> FetchedResult:
        """
        Pull the full result document for an identifier.

        Single request, no retries: the platform redelivers the notification
        when we answer non-2xx.

        Raises:
            FetchFailed: non-2xx response or network error
            TransportTimeout: the request exceeded its timeout
        """
        params = {"includeHtml": "true"} if self.settings.EXAM_PLATFORM_INCLUDE_HTML else None
        try:
            response = await self.http.get(f"/results/{quote(identifier, safe='')}", params=params)
        except httpx.TimeoutException as e:
            raise TransportTimeout(
                f"Timed out fetching result: {type(e).__name__}",
                external_id=identifier,
                status_code=502,
            )
        except httpx.HTTPError as e:
            raise FetchFailed(f"Network error fetching result: {type(e).__name__}", external_id=identifier)

        if not response.is_success:
            raise FetchFailed(
                f"Result fetch returned HTTP {response.status_code}",
                external_id=identifier,
                upstream_status=response.status_code,
            )

        logger.info(f"Fetched result document for {identifier} ({len(response.content)} bytes)")
        return FetchedResult(
            body=response.content,
            content_type=response.headers.get("content-type", ""),
        )


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """Build the async HTTP client used for every platform call."""
    return httpx.AsyncClient(
        base_url=settings.EXAM_PLATFORM_BASE_URL,
        headers={settings.EXAM_PLATFORM_TOKEN_HEADER: settings.EXAM_PLATFORM_API_TOKEN},
        timeout=exam_platform_timeout(settings),
        limits=httpx.Limits(
            max_connections=100,
            max_keepalive_connections=20,
            keepalive_expiry=30.0
        ),
    )


def extract_reference_urls(response: Dict[str, Any]) -> Dict[str, str]:
    """Pick the reference URLs out of a platform response."""
    return {
        key: value for key, value in response.items()
        if isinstance(value, str) and key.lower().endswith("url")
    }
