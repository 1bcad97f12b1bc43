"""
exact_sdk.core.connection - High-level connection management
=============================================================

Provides a ConnectionContext that resolves configuration from arguments,
environment variables and an optional ``.env`` file, and wires up the
request executor.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from dotenv import load_dotenv

from exact_sdk.core.executor import DelayObserver, RefreshPolicy, RequestExecutor, TokenProvider
from exact_sdk.core.ratelimit import RateLimitSnapshot
from exact_sdk.core.transport import HttpTransport, RequestsTransport

if TYPE_CHECKING:
    from exact_sdk.odata.endpoint import EntityEndpoint
    from exact_sdk.odata.query import ODataQuery


DEFAULT_BASE_URL = "https://start.exactonline.nl"


@dataclass
class ExactConfig:
    """
    Connection configuration for the REST API.

    Parameters
    ----------
    base_url : str
        Country site, e.g. "https://start.exactonline.nl"
    timeout : float
        Request timeout in seconds (default: 60.0)
    retries : int
        Number of connect retry attempts (default: 3)
    backoff : float
        Backoff factor for connect retries (default: 0.5)
    verify : bool or str
        SSL verification (True, False, or path to CA bundle)
    user_agent : str
        User-Agent header value
    """
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 60.0
    retries: int = 3
    backoff: float = 0.5
    verify: Union[bool, str] = True
    user_agent: str = "exact-sdk/0.1"

    @property
    def api_url(self) -> str:
        return self.base_url.rstrip("/") + "/api/v1/"


def _load_env_file() -> None:
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path)


class ConnectionContext:
    """
    High-level connection manager for the REST API.

    Parameters
    ----------
    base_url : str, optional
        Country site. Falls back to EXACT_BASE_URL, then the Dutch site.
    token_provider : callable, optional
        Returns a valid access token (sync or async).
    access_token : str, optional
        Static access token. Falls back to EXACT_ACCESS_TOKEN env var.
        Used only when no token_provider is given.
    refresh_policy : callable, optional
        Called with the retry count after 401/403; must eventually
        return False.
    delay_observer : callable, optional
        Notified with the throttle delay in milliseconds.
    division : int, optional
        Division to work in. Falls back to EXACT_DIVISION env var.
    verify : bool, optional
        SSL verification. Falls back to EXACT_VERIFY_TLS env var.
    timeout : float, optional
        Request timeout in seconds. Falls back to EXACT_TIMEOUT env var.
    transport : HttpTransport, optional
        Replaces the default requests based transport.

    Examples
    --------
    >>> async with ConnectionContext(token_provider=get_token) as conn:
    ...     await conn.initialize()
    ...     accounts = await conn.query("crm/Accounts").select("ID", "Name").top(10).get()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        token_provider: Optional[TokenProvider] = None,
        access_token: Optional[str] = None,
        refresh_policy: Optional[RefreshPolicy] = None,
        delay_observer: Optional[DelayObserver] = None,
        division: Optional[int] = None,
        verify: Optional[bool] = None,
        timeout: Optional[float] = None,
        transport: Optional[HttpTransport] = None,
    ) -> None:
        _load_env_file()

        resolved_url = base_url or os.environ.get("EXACT_BASE_URL", DEFAULT_BASE_URL)
        if not resolved_url or not resolved_url.strip("/"):
            raise ValueError(
                "Missing base_url. Set EXACT_BASE_URL environment variable "
                "or pass base_url parameter."
            )

        if token_provider is None:
            token = access_token or os.environ.get("EXACT_ACCESS_TOKEN", "")
            if not token:
                raise ValueError(
                    "Missing credentials. Set EXACT_ACCESS_TOKEN environment variable, "
                    "or pass access_token or token_provider parameters."
                )
            token_provider = lambda: token  # noqa: E731

        if verify is None:
            verify = os.environ.get("EXACT_VERIFY_TLS", "true").lower() != "false"
        if timeout is None:
            timeout = float(os.environ.get("EXACT_TIMEOUT", "60"))
        if division is None and os.environ.get("EXACT_DIVISION"):
            division = int(os.environ["EXACT_DIVISION"])

        self.cfg = ExactConfig(base_url=resolved_url.rstrip("/"), timeout=timeout, verify=verify)
        self._division = division or 0
        self._token_provider = token_provider
        self._refresh_policy = refresh_policy
        self._delay_observer = delay_observer
        self._transport = transport
        self._executor: Optional[RequestExecutor] = None

    @property
    def executor(self) -> RequestExecutor:
        """Get or create the underlying request executor."""
        if self._executor is None:
            self._executor = self._build_executor()
        return self._executor

    def _build_executor(self) -> RequestExecutor:
        transport = self._transport or RequestsTransport(
            timeout=self.cfg.timeout,
            retries=self.cfg.retries,
            backoff=self.cfg.backoff,
            verify=self.cfg.verify,
            user_agent=self.cfg.user_agent,
        )
        return RequestExecutor(
            self._token_provider,
            refresh_policy=self._refresh_policy,
            delay_observer=self._delay_observer,
            transport=transport,
        )

    @property
    def rate_limits(self) -> RateLimitSnapshot:
        """Latest rate-limit snapshot reported by the API."""
        return self.executor.rate_limits

    @property
    def base_url(self) -> str:
        return self.cfg.base_url

    @property
    def api_url(self) -> str:
        return self.cfg.api_url

    @property
    def division(self) -> int:
        return self._division

    @property
    def service_root(self) -> str:
        """``{api_url}{division}/``; requires a known division."""
        if self._division <= 0:
            raise ValueError("Division unknown. Call initialize() first.")
        return f"{self.api_url}{self._division}/"

    async def initialize(self, division: int = 0) -> int:
        """
        Resolve the division to work in.

        An explicit positive division wins, then the configured one; else
        the current division of the authenticated user is fetched.
        """
        if division > 0:
            self._division = division
        elif self._division <= 0:
            self._division = await self.executor.current_division(self.base_url)
        return self._division

    def endpoint(self, resource: str, key_name: str = "ID") -> "EntityEndpoint":
        """
        Get an EntityEndpoint for a resource, e.g. "crm/Accounts".
        """
        # Import here to avoid circular imports
        from exact_sdk.odata.endpoint import EntityEndpoint
        return EntityEndpoint(self.executor, self.service_root + resource.strip("/"), key_name=key_name)

    def query(self, resource: str, key_name: str = "ID") -> "ODataQuery":
        """Start a query against a resource."""
        from exact_sdk.odata.query import ODataQuery
        return ODataQuery(self.endpoint(resource, key_name))

    def close(self) -> None:
        """Close the connection."""
        if self._executor is not None:
            self._executor.close()
            self._executor = None

    def __enter__(self) -> "ConnectionContext":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    async def __aenter__(self) -> "ConnectionContext":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
