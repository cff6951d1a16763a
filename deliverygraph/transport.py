"""
Async HTTP transport shared by the git hosting providers.

Every vendor provider talks to its REST API through one AsyncHTTPTransport:
authentication headers are fixed at construction, transient failures
(rate limits, gateway errors, dropped connections) are retried with
exponential backoff and vendor error payloads are turned into typed
DeliveryGraphError subclasses.
"""

import asyncio
import random
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from deliverygraph.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DeliveryGraphError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    ValidationError,
)
from deliverygraph.logging import get_logger, log_http_request, log_http_response

logger = get_logger("http")

# Client errors with a dedicated exception type; other 4xx become ValidationError
CLIENT_ERRORS: dict[int, type[DeliveryGraphError]] = {
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: ConflictError,
}

REQUEST_ID_HEADERS = ("X-Request-Id", "X-GitHub-Request-Id", "ActivityId")

DEFAULT_RATE_LIMIT_WAIT = 60


@dataclass
class RetryConfig:
    """Retry policy for provider API calls."""

    max_retries: int = 3
    backoff_factor: float = 2.0
    retry_on: list[int] = field(default_factory=lambda: [429, 500, 502, 503])
    respect_retry_after: bool = True
    max_backoff: float = 60.0  # seconds
    jitter: float = 0.1  # 0.1 = ±10%


class AsyncHTTPTransport:
    """
    Async REST client of one git hosting provider.

    Example:
        ```python
        transport = AsyncHTTPTransport(
            "https://gitlab.com/api/v4",
            headers={"PRIVATE-TOKEN": token},
        )
        pulls = await transport.get("/projects/42/merge_requests", {"state": "opened"})
        ```
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
    ) -> None:
        """
        Args:
            base_url: API root (e.g., "https://gitlab.com/api/v4")
            headers: Headers sent with every request (authentication, API version)
            timeout: Request timeout in seconds
            retry_config: Retry policy (default: RetryConfig())
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Accept": "application/json", **(headers or {})},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncHTTPTransport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET a JSON resource."""
        return await self.request("GET", path, params=params)

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """
        Send a request, retrying transient failures.

        Args:
            method: HTTP method
            path: API path relative to the base URL
            params: Query parameters
            body: JSON body

        Returns:
            Decoded JSON payload, or None for empty responses

        Raises:
            DeliveryGraphError: Typed error of the last failed attempt;
                ServerError("CONNECTION_ERROR") when the host stays unreachable
        """
        attempt = 0
        while True:
            try:
                response = await self._send(method, path, params, body)
            except httpx.RequestError as e:
                if attempt >= self.retry_config.max_retries:
                    raise ServerError("CONNECTION_ERROR", str(e)) from e
                wait = self._get_backoff_time(attempt, None)
                logger.warning(
                    "%s %s failed (%s), retrying in %.1fs", method, path, e, wait
                )
            else:
                if response.status_code < 400:
                    return _decode(response)
                error = self._parse_error_response(response)
                if not self._should_retry(response.status_code, attempt):
                    raise error
                wait = self._get_backoff_time(attempt, response.headers.get("Retry-After"))
                logger.warning(
                    "%s %s returned %d, retrying in %.1fs",
                    method,
                    path,
                    response.status_code,
                    wait,
                )
            await asyncio.sleep(wait)
            attempt += 1

    async def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None,
        body: dict[str, Any] | None,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        log_http_request(method, url, params=params)
        started = time.monotonic()
        response = await self._client.request(method, path, params=params, json=body)
        log_http_response(
            response.status_code, url, elapsed_ms=(time.monotonic() - started) * 1000
        )
        return response

    def _should_retry(self, status_code: int, attempt: int) -> bool:
        """Whether a failed attempt (0-indexed) with this status is retried."""
        return (
            attempt < self.retry_config.max_retries
            and status_code in self.retry_config.retry_on
        )

    def _get_backoff_time(self, attempt: int, retry_after: str | None) -> float:
        """
        Seconds to wait before the next attempt.

        A numeric Retry-After header wins; otherwise backoff_factor ** attempt
        with jitter, capped at max_backoff.
        """
        config = self.retry_config
        if retry_after and config.respect_retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass

        base_wait = config.backoff_factor ** attempt
        spread = base_wait * config.jitter
        return min(base_wait + random.uniform(-spread, spread), config.max_backoff)

    def _parse_error_response(self, response: httpx.Response) -> DeliveryGraphError:
        """
        Turn a vendor error response into a typed exception.

        Understands ``{"message": ...}`` (GitHub, GitLab, Gitea, Azure DevOps),
        ``{"error": {"code": ..., "message": ...}}`` (Bitbucket) and
        ``{"error": "..."}`` (OAuth failures).
        """
        status_code = response.status_code
        code, message = _error_fields(response)
        request_id = next(
            (response.headers[name] for name in REQUEST_ID_HEADERS if response.headers.get(name)),
            None,
        )

        if status_code == 429:
            try:
                retry_after = int(response.headers.get("Retry-After", DEFAULT_RATE_LIMIT_WAIT))
            except ValueError:
                retry_after = DEFAULT_RATE_LIMIT_WAIT
            return RateLimitedError(code, message, retry_after, request_id)
        if status_code >= 500:
            return ServerError(code, message, request_id)
        error_type = CLIENT_ERRORS.get(status_code, ValidationError)
        return error_type(code, message, request_id)


def _decode(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    return response.json()


def _error_fields(response: httpx.Response) -> tuple[str, str]:
    fallback_code = f"HTTP_{response.status_code}"
    fallback_message = f"HTTP {response.status_code}"
    try:
        data = response.json()
    except ValueError:
        return fallback_code, fallback_message
    if not isinstance(data, dict):
        return fallback_code, fallback_message

    error = data.get("error")
    if isinstance(error, dict):
        return (
            str(error.get("code") or fallback_code),
            str(error.get("message") or fallback_message),
        )
    # Azure DevOps names its error type in typeKey
    return (
        str(data.get("typeKey") or fallback_code),
        str(data.get("message") or error or fallback_message),
    )
