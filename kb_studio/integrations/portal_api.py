"""Portal backend client for insight jobs.

Implements the job-poller ``JobClient`` protocol over the portal's REST
endpoints:

- ``POST /api/client-intel/generate-insights`` submits a job
- ``GET /api/jobs/{job_id}/status`` reports its status
"""

from typing import Any

import httpx
from pydantic import ValidationError

from kb_studio.utils.config import get_settings
from kb_studio.utils.logging_config import get_logger
from kb_studio.workflow.error_handling import APIError, JobNotFoundError
from kb_studio.workflow.job_poller import JobStatus

SUBMIT_PATH = "/api/client-intel/generate-insights"
STATUS_PATH = "/api/jobs/{job_id}/status"


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


class HttpJobClient:
    """Insight job client for the portal API.

    Args:
        base_url: Portal base URL (defaults to PORTAL_API_BASE_URL)
        token: Bearer token (defaults to PORTAL_API_TOKEN)
        timeout: Request timeout in seconds (defaults to API_TIMEOUT)
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.PORTAL_API_BASE_URL).rstrip("/")
        self.token = token if token is not None else settings.get_portal_api_token()
        self.timeout = timeout if timeout is not None else float(settings.API_TIMEOUT)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    @staticmethod
    def _parse(data: Any, api_name: str, **defaults: Any) -> JobStatus:
        if not isinstance(data, dict):
            raise APIError("Unexpected response body", api_name)
        try:
            return JobStatus.model_validate({**defaults, **data})
        except ValidationError as e:
            raise APIError(
                f"Unexpected response body: {e.error_count()} invalid fields", api_name
            ) from e

    async def submit(self, payload: dict[str, Any]) -> JobStatus:
        """Submit an insight job.

        Args:
            payload: Request body, e.g. ``{"contactId": "123", "clientData": {...}}``

        Raises:
            APIError: On transport errors, non-2xx responses or bad bodies
        """
        api_name = "generate_insights"
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self.base_url}{SUBMIT_PATH}",
                    json=payload,
                    headers=self._headers(),
                    timeout=self.timeout,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise APIError(
                f"Insight job submission rejected: HTTP {e.response.status_code}",
                api_name,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise APIError(f"Insight job submission failed: {type(e).__name__}", api_name) from e

        status = self._parse(data, api_name)
        _get_logger().debug(
            "Insight job submitted",
            extra={"extra_fields": {"job_id": status.job_id, "status": status.status}},
        )
        return status

    async def get_status(self, job_id: str) -> JobStatus:
        """Fetch the status of a job.

        Raises:
            JobNotFoundError: If the portal returns 404
            APIError: On other transport errors, non-2xx responses or bad bodies
        """
        api_name = "job_status"
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self.base_url}{STATUS_PATH.format(job_id=job_id)}",
                    headers=self._headers(),
                    timeout=self.timeout,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise JobNotFoundError(f"Job '{job_id}' not found", job_id=job_id) from e
            raise APIError(
                f"Job status request failed: HTTP {e.response.status_code}",
                api_name,
                status_code=e.response.status_code,
                job_id=job_id,
            ) from e
        except httpx.HTTPError as e:
            raise APIError(
                f"Job status request failed: {type(e).__name__}", api_name, job_id=job_id
            ) from e

        return self._parse(data, api_name, jobId=job_id)
