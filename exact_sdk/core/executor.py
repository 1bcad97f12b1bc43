"""
exact_sdk.core.executor - Request execution and resilience
==========================================================

Sends authenticated requests to the REST API with:
- a fresh bearer token from the token provider on every attempt
- proactive throttling when the minutely quota is exhausted
- retry on 401/403 driven by an external refresh policy
- rate-limit snapshot updates after every exchange
- classification of failures into the typed error taxonomy

The refresh policy is called with the retry attempt count and decides
whether another attempt is made. There is no internal upper bound: a
policy that keeps answering ``True`` keeps the call retrying forever, so
policies must eventually answer ``False``. The retry loop has no
cancellation hook of its own; cancelling the awaiting task is the only
way out.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
from typing import Any, Awaitable, BinaryIO, Callable, Dict, Mapping, Optional, Union

from exact_sdk.core.errors import (
    ExactError,
    ExactValidationError,
    HttpStatusError,
    classify_error,
)
from exact_sdk.core.ratelimit import RateLimitSnapshot
from exact_sdk.core.transport import HttpTransport, RequestsTransport, TransportResponse


JSON_CONTENT_TYPE = "application/json"
AUTH_FAILURE_STATUSES = (401, 403)
CURRENT_ME_PATH = "/api/v1/current/Me"

TokenProvider = Callable[[], Union[str, Awaitable[str]]]
RefreshPolicy = Callable[[int], Union[bool, Awaitable[bool]]]
DelayObserver = Callable[[float], Union[None, Awaitable[None]]]
Body = Union[str, Mapping[str, Any]]


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class RequestExecutor:
    """
    Authenticated, rate-limit aware request executor.

    Parameters
    ----------
    token_provider : callable
        Returns the current access token; may be a coroutine function
    refresh_policy : callable, optional
        Called with the retry attempt count after a 401/403; a truthy
        result triggers another attempt
    delay_observer : callable, optional
        Called with the throttle delay in milliseconds before waiting
    transport : HttpTransport, optional
        Defaults to :class:`RequestsTransport`
    sleep : callable, optional
        Coroutine used to wait; defaults to ``asyncio.sleep``

    Examples
    --------
    >>> executor = RequestExecutor(lambda: "token")
    >>> payload = await executor.get(
    ...     "https://start.exactonline.nl/api/v1/123/crm/Accounts",
    ...     "$select=ID,Name&$top=10",
    ... )
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        *,
        refresh_policy: Optional[RefreshPolicy] = None,
        delay_observer: Optional[DelayObserver] = None,
        transport: Optional[HttpTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> None:
        if token_provider is None:
            raise ExactValidationError("token_provider is required")
        self.token_provider = token_provider
        self.refresh_policy = refresh_policy
        self.delay_observer = delay_observer
        self.transport: HttpTransport = transport or RequestsTransport()
        self._sleep = sleep or asyncio.sleep
        self._rate_limits = RateLimitSnapshot()
        self.logger = logging.getLogger("exact_sdk.http")

    @property
    def rate_limits(self) -> RateLimitSnapshot:
        """Latest rate-limit snapshot (replaced after every exchange)."""
        return self._rate_limits

    def close(self) -> None:
        self.transport.close()

    # ---------------- public ops ----------------

    async def get(self, endpoint: str, query: Optional[str] = None) -> str:
        """
        Perform a GET request and return the raw response body.

        Parameters
        ----------
        endpoint : str
            ``{URI}/{Division}/{Resource}/{Entity}``
        query : str, optional
            OData query string, without the leading ``?``
        """
        url = self._url(endpoint, query)
        response = await self._execute("GET", url)
        return response.text

    async def get_file(self, endpoint: str) -> BinaryIO:
        """Perform a GET request without Accept header and return the binary body."""
        url = self._url(endpoint, None)
        response = await self._execute("GET", url, accept=None, stream=True)
        return response.stream

    async def post(self, endpoint: str, body: Body) -> str:
        """Create data: POST a JSON body and return the raw response body."""
        url = self._url(endpoint, None)
        response = await self._execute("POST", url, data=self._encode(body))
        return response.text

    async def put(self, endpoint: str, body: Body) -> str:
        """Update data: PUT a JSON body and return the raw response body."""
        url = self._url(endpoint, None)
        response = await self._execute("PUT", url, data=self._encode(body))
        return response.text

    async def delete(self, endpoint: str) -> str:
        url = self._url(endpoint, None)
        response = await self._execute("DELETE", url)
        return response.text

    async def clean_get(self, endpoint: str, query: Optional[str] = None) -> str:
        """
        GET without Accept header.

        Used for ``$count`` style endpoints that answer with plain text.
        """
        url = self._url(endpoint, query)
        response = await self._execute("GET", url, accept=None)
        return response.text

    async def current_division(self, base_url: str) -> int:
        """
        Return the current division of the authenticated user.

        Parameters
        ----------
        base_url : str
            Country site, e.g. ``https://start.exactonline.nl``
        """
        # Import here to avoid circular imports
        from exact_sdk.odata.responses import get_json_array

        payload = await self.get(base_url.rstrip("/") + CURRENT_ME_PATH, "$select=CurrentDivision")
        try:
            return int(get_json_array(payload)[0]["CurrentDivision"])
        except (IndexError, KeyError, TypeError, ValueError) as exc:
            raise ExactError(
                "Cannot get division. Please specify the division explicitly."
            ) from exc

    # ---------------- helpers ----------------

    def _url(self, endpoint: str, query: Optional[str]) -> str:
        if not endpoint:
            raise ExactValidationError("Cannot perform request with empty endpoint")
        if query:
            return f"{endpoint}?{query}"
        return endpoint

    def _encode(self, body: Body) -> bytes:
        if isinstance(body, Mapping):
            body = json.dumps(body, separators=(",", ":")) if body else ""
        if not body:
            raise ExactValidationError("Cannot perform request with empty body")
        self.logger.debug("request body: %s", body)
        return body.encode("utf-8")

    async def _headers(self, accept: Optional[str]) -> Dict[str, str]:
        token = await _resolve(self.token_provider())
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": JSON_CONTENT_TYPE,
        }
        if accept:
            headers["Accept"] = accept
        return headers

    async def _throttle(self) -> None:
        delay_ms = self._rate_limits.minutely.delay_ms(time.time() * 1000.0)
        if delay_ms <= 0:
            return
        self.logger.info("Minutely rate limit reached, waiting %sms", round(delay_ms))
        if self.delay_observer is not None:
            await _resolve(self.delay_observer(delay_ms))
        await self._sleep(delay_ms / 1000.0)

    async def _should_retry(self, attempt: int) -> bool:
        if self.refresh_policy is None:
            return False
        return bool(await _resolve(self.refresh_policy(attempt)))

    def _update_rate_limits(self, headers: Mapping[str, str]) -> None:
        self._rate_limits = RateLimitSnapshot.from_headers(headers)

    async def _execute(
        self,
        method: str,
        url: str,
        *,
        accept: Optional[str] = JSON_CONTENT_TYPE,
        data: Optional[bytes] = None,
        stream: bool = False,
    ) -> TransportResponse:
        attempt = 0
        while True:
            await self._throttle()
            headers = await self._headers(accept)
            self.logger.debug("%s %s (attempt %s)", method, url, attempt + 1)

            response: Optional[TransportResponse] = None
            try:
                response = await self.transport.send(
                    method, url, headers=headers, data=data, stream=stream
                )
                response.raise_for_status()
                self.logger.debug("response: %s", response.text)
                return response
            except HttpStatusError as exc:
                if exc.status in AUTH_FAILURE_STATUSES and await self._should_retry(attempt):
                    self.logger.warning(
                        "%s %s answered %s, retrying after token refresh (retry %s)",
                        method, url, exc.status, attempt + 1,
                    )
                    attempt += 1
                    continue
                error = classify_error(exc.status, exc.body, exc)
                if error is None:
                    raise
                self.logger.warning("%s %s failed: %s %s", method, url, exc.status, error.message)
                raise error from exc
            finally:
                if response is not None:
                    self._update_rate_limits(response.headers)
