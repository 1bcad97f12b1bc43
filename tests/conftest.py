"""
Pytest configuration and shared fixtures.
"""

import json
from typing import Any, Dict, List, Optional

import pytest
from requests.structures import CaseInsensitiveDict

from exact_sdk.core.transport import TransportResponse


REASONS = {
    200: "OK",
    201: "Created",
    204: "No Content",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    429: "Too Many Requests",
    500: "Internal Server Error",
    502: "Bad Gateway",
}


class FakeTransport:
    """Scripted transport: returns (or raises) queued items in order."""

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.requests: List[Dict[str, Any]] = []
        self.closed = False

    async def send(self, method, url, *, headers, data=None, stream=False):
        self.requests.append({
            "method": method,
            "url": url,
            "headers": dict(headers),
            "data": data,
            "stream": stream,
        })
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_response():
    """Factory for TransportResponse objects."""
    def _make(
        status: int = 200,
        text: str = "",
        headers: Optional[Dict[str, str]] = None,
        url: str = "https://start.exactonline.nl/api/v1/1/crm/Accounts",
        stream: Any = None,
    ) -> TransportResponse:
        return TransportResponse(
            status=status,
            url=url,
            headers=CaseInsensitiveDict(headers or {}),
            reason=REASONS.get(status, ""),
            text=text,
            stream=stream,
        )
    return _make


@pytest.fixture
def fake_transport():
    """Factory for FakeTransport instances."""
    return FakeTransport


@pytest.fixture
def accounts_url():
    return "https://start.exactonline.nl/api/v1/1/crm/Accounts"


@pytest.fixture
def sample_list_payload():
    """Sample OData v2 list response with a next link."""
    return json.dumps({
        "d": {
            "results": [
                {"ID": "0f8fad5b-d9cb-469f-a165-70867728950e", "Name": "Acme"},
                {"ID": "7c9e6679-7425-40de-944b-e07fc1f90ae7", "Name": "Globex"},
            ],
            "__next": "https://start.exactonline.nl/api/v1/1/crm/Accounts?$select=ID,Name&$skiptoken=abc123",
        }
    })


@pytest.fixture
def sample_last_page_payload():
    return json.dumps({
        "d": {
            "results": [{"ID": "a3bb189e-8bf9-3888-9912-ace4e6543002", "Name": "Initech"}],
        }
    })


@pytest.fixture
def sample_me_payload():
    return json.dumps({"d": {"results": [{"CurrentDivision": 123456, "UserName": "user"}]}})
