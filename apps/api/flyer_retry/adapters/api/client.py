"""Async HTTP client for the remote flyer jobs API."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from flyer_retry.core.config import Settings
from flyer_retry.errors import FetchError, RetryError
from flyer_retry.schemas.flyer import FlyerRequestRow, RetryRequest, RetryResult

_ROWS_ADAPTER = TypeAdapter(list[FlyerRequestRow])
_SUCCESS_RESPONSE = "success"


class FlyerApiClient:
    """HTTP transport for the jobs listing, single retry and retry-all endpoints.

    The client holds no reconciliation logic. Failures surface as ``FetchError``
    or ``RetryError``; ``retry_all`` failures surface as ``RetryError`` and are
    turned into a rollback by the caller.
    """

    def __init__(
        self,
        *,
        base_url: str,
        jobs_path: str = "/jobs-error",
        retry_path: str = "/retry",
        retry_all_path: str = "/retry-all",
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers: dict[str, str] = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._jobs_path = jobs_path
        self._retry_path = retry_path
        self._retry_all_path = retry_all_path
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> FlyerApiClient:
        return cls(
            base_url=settings.api_base_url,
            jobs_path=settings.jobs_path,
            retry_path=settings.retry_path,
            retry_all_path=settings.retry_all_path,
            api_key=settings.api_key,
            timeout=settings.request_timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_failed_requests(self) -> list[FlyerRequestRow]:
        """GET the jobs-error listing."""
        try:
            response = await self._client.get(self._jobs_path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                "SNAPSHOT_HTTP_ERROR",
                f"Job listing returned HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise FetchError("SNAPSHOT_TRANSPORT_ERROR", f"Job listing request failed: {exc}") from exc

        try:
            return _ROWS_ADAPTER.validate_json(response.content)
        except ValidationError as exc:
            raise FetchError(
                "SNAPSHOT_MALFORMED_BODY",
                "Job listing body is not a list of flyer requests",
                status_code=response.status_code,
            ) from exc

    async def retry(self, request_id: str) -> None:
        """POST a single retry; returns only when the server reported success."""
        payload = RetryRequest(request_id=request_id).model_dump()
        try:
            response = await self._client.post(self._retry_path, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RetryError(
                "RETRY_HTTP_ERROR",
                f"Retry returned HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise RetryError("RETRY_TRANSPORT_ERROR", f"Retry request failed: {exc}") from exc

        result = _parse_retry_result(response)
        if result is None or result.response != _SUCCESS_RESPONSE:
            raise RetryError(
                "RETRY_NOT_SUCCESSFUL",
                "Retry response did not report success",
                status_code=response.status_code,
            )

    async def retry_all(self) -> None:
        """POST the bulk retry; a 2xx response means the server accepted it."""
        try:
            response = await self._client.post(self._retry_all_path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RetryError(
                "RETRY_ALL_HTTP_ERROR",
                f"Retry-all returned HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise RetryError("RETRY_ALL_TRANSPORT_ERROR", f"Retry-all request failed: {exc}") from exc


def _parse_retry_result(response: httpx.Response) -> RetryResult | None:
    try:
        body: Any = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    try:
        return RetryResult.model_validate(body)
    except ValidationError:
        return None
