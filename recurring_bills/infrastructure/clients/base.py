"""Shared HTTP plumbing for finance API clients"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from recurring_bills.config import settings
from recurring_bills.domain.exceptions import NetworkFailure, ServerRejected
from recurring_bills.infrastructure.observability.metrics import upstream_failures_counter


def pick(data: Dict[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    """Read a field that the API may send in camelCase or snake_case"""
    if camel in data and data[camel] is not None:
        return data[camel]
    return data.get(snake, default)


def error_message(response: httpx.Response) -> Optional[str]:
    """Extract the server's human readable message from an error body"""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or None
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if isinstance(body.get(key), str):
                return body[key]
    return None


class FinanceAPIClient:
    """
    Base client for the remote finance API.

    Errors are translated to domain exceptions:
    - timeouts and transport errors -> NetworkFailure
    - 4xx/5xx responses -> ServerRejected (server message preserved)

    GET requests retry on network errors and 5xx with exponential backoff.
    Mutating requests are sent exactly once.
    """

    service_name = "finance"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url if base_url is not None else settings.finance_api_base
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.transport = transport
        self.max_retries = settings.http_max_retries
        self.backoff_base = settings.http_backoff_base

    def _translate(self, exc: httpx.HTTPError) -> Exception:
        if isinstance(exc, httpx.TimeoutException):
            return NetworkFailure(f"{self.service_name} API timeout after {self.timeout}s")
        if isinstance(exc, httpx.HTTPStatusError):
            return ServerRejected(exc.response.status_code, error_message(exc.response))
        return NetworkFailure(f"{self.service_name} API unreachable: {exc}")

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Dict[str, Any] | None = None,
    ) -> Any:
        attempts = self.max_retries if method == "GET" else 1
        attempt = 0
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            while True:
                try:
                    response = await client.request(method, path, json=json, params=params)
                    response.raise_for_status()
                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    upstream_failures_counter.labels(service=self.service_name).inc()

                    retryable = not isinstance(e, httpx.HTTPStatusError) or e.response.status_code >= 500
                    if not retryable or attempt >= max(attempts, 1):
                        raise self._translate(e) from e

                    # Exponential backoff: base, 2*base, 4*base...
                    await asyncio.sleep(self.backoff_base * (2 ** (attempt - 1)))
                    continue

                if not response.content:
                    return None
                try:
                    return response.json()
                except ValueError:
                    return None
