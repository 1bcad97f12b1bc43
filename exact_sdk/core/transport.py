"""
exact_sdk.core.transport - HTTP transport
=========================================

Abstract transport consumed by the request executor, and the default
implementation on top of a pooled ``requests`` session.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Mapping, Optional, Protocol, Union

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from requests.structures import CaseInsensitiveDict
from urllib3.util.retry import Retry

from exact_sdk.core.errors import HttpStatusError, TransportError


REDIRECT_STATUSES = (301, 302, 303, 307, 308)


@dataclass
class TransportResponse:
    """
    Transport-neutral view of an HTTP response.

    Attributes
    ----------
    status : int
        HTTP status code
    url : str
        Final URL of the exchange
    headers : mapping
        Response headers (case-insensitive)
    reason : str
        Status reason phrase
    text : str
        Decoded body; empty for successful streamed responses
    stream : file-like, optional
        Raw binary body for streamed responses
    """
    status: int
    url: str
    headers: Mapping[str, str] = field(default_factory=CaseInsensitiveDict)
    reason: str = ""
    text: str = ""
    stream: Optional[BinaryIO] = None

    @property
    def ok(self) -> bool:
        return not (self.status >= 400 or self.status in REDIRECT_STATUSES)

    def raise_for_status(self) -> None:
        if not self.ok:
            raise HttpStatusError(
                self.status,
                self.reason,
                self.url,
                body=self.text,
                headers=dict(self.headers),
            )


class HttpTransport(Protocol):
    """Anything able to carry a single HTTP exchange."""

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Dict[str, str],
        data: Optional[bytes] = None,
        stream: bool = False,
    ) -> TransportResponse:
        ...

    def close(self) -> None:
        ...


class RequestsTransport:
    """
    Default transport using a ``requests`` session in a worker thread.

    Connection establishment failures are retried by urllib3 with
    exponential backoff. HTTP statuses are never retried here; they are
    handed back to the caller untouched.

    Parameters
    ----------
    timeout : float
        Request timeout in seconds
    retries : int
        Connect retry attempts
    backoff : float
        Backoff factor between connect retries
    verify : bool or str
        SSL verification (True, False, or path to CA bundle)
    user_agent : str
        User-Agent header value
    """

    def __init__(
        self,
        *,
        timeout: float = 60.0,
        retries: int = 3,
        backoff: float = 0.5,
        verify: Union[bool, str] = True,
        user_agent: str = "exact-sdk/0.1",
    ) -> None:
        self.timeout = float(timeout)
        self.verify = verify
        self.retries = retries
        self.backoff = backoff
        self.user_agent = user_agent
        self.logger = logging.getLogger("exact_sdk.http")
        self.session = self._build_session()

    def _build_session(self) -> Session:
        sess = requests.Session()
        sess.headers.update({"User-Agent": self.user_agent})

        retry = Retry(
            total=self.retries,
            connect=self.retries,
            read=0,
            status=0,
            backoff_factor=self.backoff,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=20, pool_maxsize=50)
        sess.mount("https://", adapter)
        sess.mount("http://", adapter)
        return sess

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Dict[str, str],
        data: Optional[bytes] = None,
        stream: bool = False,
    ) -> TransportResponse:
        return await asyncio.to_thread(
            self._send, method, url, headers=headers, data=data, stream=stream
        )

    def _send(
        self,
        method: str,
        url: str,
        *,
        headers: Dict[str, str],
        data: Optional[bytes],
        stream: bool,
    ) -> TransportResponse:
        t0 = time.perf_counter()
        try:
            r = self.session.request(
                method=method,
                url=url,
                headers=headers,
                data=data,
                stream=stream,
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.RequestException as exc:
            raise TransportError(str(exc), url=url) from exc
        dt = (time.perf_counter() - t0) * 1000.0
        self.logger.debug("%s %s -> %s %sms", method.upper(), url, r.status_code, round(dt, 1))
        return self._wrap(r, stream)

    def _wrap(self, r: Response, stream: bool) -> TransportResponse:
        resp = TransportResponse(
            status=r.status_code,
            url=r.url or "",
            headers=CaseInsensitiveDict(r.headers),
            reason=r.reason or "",
        )
        if stream and resp.ok:
            r.raw.decode_content = True
            resp.stream = r.raw
        else:
            resp.text = r.text
        return resp

    def __enter__(self) -> "RequestsTransport":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
