"""
Tests for exact_sdk.core module.
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from exact_sdk.core.connection import ConnectionContext, ExactConfig
from exact_sdk.core.errors import (
    BadRequestError,
    ForbiddenError,
    HttpStatusError,
    InternalServerError,
    NotFoundError,
    TooManyRequestsError,
    TransportError,
    UnauthorizedError,
    classify_error,
    parse_server_message,
)
from exact_sdk.core.ratelimit import RateLimit, RateLimitSnapshot
from exact_sdk.core.transport import RequestsTransport, TransportResponse
from exact_sdk.odata.query import ODataQuery


class TestRateLimit:
    """Tests for RateLimit and RateLimitSnapshot."""

    def test_empty_snapshot(self):
        snap = RateLimitSnapshot()
        assert snap.daily == RateLimit()
        assert snap.minutely.remaining is None

    def test_from_headers_case_insensitive(self):
        snap = RateLimitSnapshot.from_headers({
            "x-ratelimit-limit": "5000",
            "X-RATELIMIT-REMAINING": "12",
            "X-RateLimit-Reset": "1700000000000",
            "X-RateLimit-Minutely-Limit": "60",
            "X-RateLimit-Minutely-Remaining": "0",
            "X-RateLimit-Minutely-Reset": "1700000060000",
        })
        assert snap.daily == RateLimit(5000, 12, 1700000000000)
        assert snap.minutely == RateLimit(60, 0, 1700000060000)

    def test_missing_and_invalid_headers_stay_none(self):
        snap = RateLimitSnapshot.from_headers({"X-RateLimit-Limit": "lots"})
        assert snap.daily.limit is None
        assert snap.daily.remaining is None
        assert snap.minutely == RateLimit()

    def test_reset_at(self):
        limit = RateLimit(reset=1700000000000)
        assert limit.reset_at == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        assert RateLimit().reset_at is None

    def test_delay_ms(self):
        assert RateLimit(remaining=0, reset=10_000).delay_ms(4_000) == 6_000
        assert RateLimit(remaining=0, reset=10_000).delay_ms(12_000) == 0
        assert RateLimit(remaining=1, reset=10_000).delay_ms(4_000) == 0
        assert RateLimit(remaining=0).delay_ms(4_000) == 0
        assert RateLimit().delay_ms(4_000) == 0


class TestErrorClassification:
    """Tests for classify_error and the error body parser."""

    def test_parse_server_message(self):
        body = json.dumps({"error": {"code": "", "message": {"lang": "", "value": "Field required"}}})
        assert parse_server_message(body) == "Field required"

    @pytest.mark.parametrize("body", [None, "", "   ", "not json", "[]", '{"error": "x"}', '{"other": 1}'])
    def test_parse_server_message_degrades(self, body):
        assert parse_server_message(body) is None

    @pytest.mark.parametrize("status,expected", [
        (400, BadRequestError),
        (405, BadRequestError),
        (401, UnauthorizedError),
        (403, ForbiddenError),
        (404, NotFoundError),
        (500, InternalServerError),
        (429, TooManyRequestsError),
    ])
    def test_status_mapping(self, status, expected):
        cause = HttpStatusError(status, "", "https://test.com")
        err = classify_error(status, None, cause)
        assert type(err) is expected
        assert err.cause is cause
        assert err.message == str(cause)

    @pytest.mark.parametrize("status", [402, 409, 502, 503])
    def test_unmapped_status(self, status):
        assert classify_error(status, "", HttpStatusError(status, "", "https://test.com")) is None

    def test_server_message_wins(self):
        body = json.dumps({"error": {"message": {"value": "Quota exceeded"}}})
        err = classify_error(429, body, HttpStatusError(429, "Too Many Requests", "https://test.com"))
        assert isinstance(err, TooManyRequestsError)
        assert err.message == "Quota exceeded"
        assert str(err) == "Quota exceeded"

    def test_http_status_error_truncates_body(self):
        err = HttpStatusError(500, "Internal Server Error", "https://test.com", body="x" * 2000)
        assert err.status == 500
        assert len(str(err)) < 1500


class TestTransportResponse:

    @pytest.mark.parametrize("status", [200, 201, 204])
    def test_success(self, status):
        TransportResponse(status=status, url="https://test.com").raise_for_status()

    @pytest.mark.parametrize("status", [302, 400, 401, 500])
    def test_failure(self, status):
        resp = TransportResponse(status=status, url="https://test.com", text="boom")
        with pytest.raises(HttpStatusError) as excinfo:
            resp.raise_for_status()
        assert excinfo.value.status == status
        assert excinfo.value.body == "boom"


class TestRequestsTransport:
    """Tests for RequestsTransport."""

    @patch("exact_sdk.core.transport.requests.Session")
    def test_session_setup(self, mock_session_class):
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session

        RequestsTransport(user_agent="ua/1")

        mock_session.headers.update.assert_called_with({"User-Agent": "ua/1"})
        assert mock_session.mount.call_count == 2

    @patch("exact_sdk.core.transport.requests.Session")
    def test_send_wraps_response(self, mock_session_class):
        mock_session = MagicMock()
        mock_session.request.return_value = Mock(
            status_code=200,
            url="https://test.com/x",
            headers={"X-RateLimit-Remaining": "3"},
            reason="OK",
            text='{"d": {}}',
        )
        mock_session_class.return_value = mock_session

        transport = RequestsTransport(timeout=5)
        resp = transport._send("GET", "https://test.com/x", headers={"A": "b"}, data=None, stream=False)

        assert resp.status == 200
        assert resp.text == '{"d": {}}'
        assert resp.headers["x-ratelimit-remaining"] == "3"
        kwargs = mock_session.request.call_args.kwargs
        assert kwargs["timeout"] == 5.0
        assert kwargs["headers"] == {"A": "b"}

    @patch("exact_sdk.core.transport.requests.Session")
    def test_streamed_success_keeps_raw(self, mock_session_class):
        raw = Mock()
        mock_session = MagicMock()
        mock_session.request.return_value = Mock(
            status_code=200, url="https://test.com/f", headers={}, reason="OK", raw=raw,
        )
        mock_session_class.return_value = mock_session

        resp = RequestsTransport()._send("GET", "https://test.com/f", headers={}, data=None, stream=True)

        assert resp.stream is raw
        assert raw.decode_content is True

    @patch("exact_sdk.core.transport.requests.Session")
    def test_connection_error_becomes_transport_error(self, mock_session_class):
        mock_session = MagicMock()
        mock_session.request.side_effect = requests.ConnectionError("refused")
        mock_session_class.return_value = mock_session

        with pytest.raises(TransportError) as excinfo:
            RequestsTransport()._send("GET", "https://test.com", headers={}, data=None, stream=False)
        assert excinfo.value.status is None
        assert isinstance(excinfo.value.__cause__, requests.ConnectionError)

    @pytest.mark.asyncio
    @patch("exact_sdk.core.transport.requests.Session")
    async def test_send_runs_in_thread(self, mock_session_class):
        mock_session = MagicMock()
        mock_session.request.return_value = Mock(
            status_code=204, url="https://test.com", headers={}, reason="No Content", text="",
        )
        mock_session_class.return_value = mock_session

        resp = await RequestsTransport().send("DELETE", "https://test.com", headers={})
        assert resp.status == 204

    @patch("exact_sdk.core.transport.requests.Session")
    def test_context_manager(self, mock_session_class):
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session

        with RequestsTransport():
            pass
        mock_session.close.assert_called_once()


class TestConnectionContext:
    """Tests for ConnectionContext."""

    def test_default_config(self):
        cfg = ExactConfig()
        assert cfg.timeout == 60.0
        assert cfg.retries == 3
        assert cfg.api_url == "https://start.exactonline.nl/api/v1/"

    @patch.dict("os.environ", {}, clear=True)
    def test_missing_credentials_raises(self):
        with pytest.raises(ValueError, match="Missing credentials"):
            ConnectionContext()

    @patch.dict("os.environ", {"EXACT_BASE_URL": "", "EXACT_ACCESS_TOKEN": "t"}, clear=True)
    def test_missing_base_url_raises(self):
        with pytest.raises(ValueError, match="Missing base_url"):
            ConnectionContext()

    @patch.dict("os.environ", {
        "EXACT_BASE_URL": "https://start.exactonline.be/",
        "EXACT_ACCESS_TOKEN": "envtoken",
        "EXACT_DIVISION": "42",
        "EXACT_VERIFY_TLS": "false",
        "EXACT_TIMEOUT": "15",
    }, clear=True)
    def test_reads_from_environment(self):
        conn = ConnectionContext()
        assert conn.base_url == "https://start.exactonline.be"
        assert conn.api_url == "https://start.exactonline.be/api/v1/"
        assert conn.division == 42
        assert conn.service_root == "https://start.exactonline.be/api/v1/42/"
        assert conn.cfg.verify is False
        assert conn.cfg.timeout == 15.0

    @patch.dict("os.environ", {}, clear=True)
    def test_service_root_requires_division(self):
        conn = ConnectionContext(access_token="t")
        with pytest.raises(ValueError, match="Division unknown"):
            _ = conn.service_root

    @pytest.mark.asyncio
    @patch.dict("os.environ", {}, clear=True)
    async def test_initialize_fetches_current_division(self, fake_transport, make_response, sample_me_payload):
        transport = fake_transport([make_response(200, sample_me_payload)])
        conn = ConnectionContext(access_token="t", transport=transport)

        assert await conn.initialize() == 123456
        assert conn.service_root == "https://start.exactonline.nl/api/v1/123456/"
        assert transport.requests[0]["headers"]["Authorization"] == "Bearer t"

    @pytest.mark.asyncio
    @patch.dict("os.environ", {}, clear=True)
    async def test_initialize_explicit_division_skips_lookup(self, fake_transport):
        transport = fake_transport([])
        conn = ConnectionContext(access_token="t", transport=transport)

        assert await conn.initialize(7) == 7
        assert transport.requests == []

    @pytest.mark.asyncio
    @patch.dict("os.environ", {}, clear=True)
    async def test_query_and_rate_limits(self, fake_transport, make_response):
        transport = fake_transport([
            make_response(200, '{"d": {"results": []}}', {"X-RateLimit-Minutely-Remaining": "9"}),
        ])
        async with ConnectionContext(token_provider=lambda: "t", division=1, transport=transport) as conn:
            query = conn.query("crm/Accounts")
            assert isinstance(query, ODataQuery)
            await query.select("ID").get()
            assert conn.rate_limits.minutely.remaining == 9

        assert transport.requests[0]["url"] == "https://start.exactonline.nl/api/v1/1/crm/Accounts?$select=ID"
        assert transport.closed is True
