"""
HTTP Transport Tests.

============================================================
PURPOSE
============================================================
Session lifecycle, request forwarding and mapping of HTTP
and network failures to TRANSPORT errors.

The aiohttp session is mocked; no network access.

============================================================
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

import aiohttp

from exchange_gateway.errors import ErrorKind, ExchangeException
from exchange_gateway.signing import SignedRequest
from exchange_gateway.transport import HttpTransport


URL = "https://api.expie.com/v1.1/public/getmarkets"


def make_session(status=200, text="{}", error=None, read_error=None):
    """Mocked ClientSession whose request() yields one response."""
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=text, side_effect=read_error)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock(spec=aiohttp.ClientSession)
    session.closed = False
    session.close = AsyncMock()
    if error is not None:
        session.request.side_effect = error
    else:
        session.request.return_value = context
    return session


@pytest.fixture
def transport():
    return HttpTransport("bitpie", timeout_seconds=5)


# ============================================================
# LIFECYCLE
# ============================================================

class TestSessionLifecycle:
    """Tests for open/close."""

    @pytest.mark.asyncio
    async def test_open_and_close(self, transport):
        """open() applies the configured total timeout; close() releases the session."""
        await transport.open()

        assert transport.is_open
        assert transport._session.timeout.total == 5

        await transport.close()

        assert not transport.is_open

    @pytest.mark.asyncio
    async def test_open_is_idempotent(self, transport):
        async with transport:
            session = transport._session
            await transport.open()

            assert transport._session is session

        assert not transport.is_open


# ============================================================
# REQUESTS
# ============================================================

class TestRequests:
    """Tests for get/send."""

    @pytest.mark.asyncio
    async def test_get_returns_text(self, transport):
        transport._session = make_session(text='{"success": true}')

        text = await transport.get(URL, params={"market": "BTC-ETH"})

        assert text == '{"success": true}'
        transport._session.request.assert_called_once_with(
            "GET", URL, params={"market": "BTC-ETH"}, headers=None, data=None
        )

    @pytest.mark.asyncio
    async def test_send_forwards_signed_request(self, transport):
        """The signed URL, headers and body go out unchanged."""
        transport._session = make_session(text='{"success": true}')
        request = SignedRequest(
            method="POST",
            url="https://bgogo.com/api/v1/order",
            headers={"X-MBX-APIKEY": "key"},
            body='{"symbol": "ETH/BTC"}',
        )

        await transport.send(request)

        transport._session.request.assert_called_once_with(
            "POST",
            "https://bgogo.com/api/v1/order",
            params=None,
            headers={"X-MBX-APIKEY": "key"},
            data='{"symbol": "ETH/BTC"}',
        )


# ============================================================
# FAILURES
# ============================================================

class TestFailures:
    """Tests for error mapping."""

    @pytest.mark.asyncio
    async def test_http_error_status(self, transport):
        """HTTP >= 400 is TRANSPORT with status and body attached."""
        transport._session = make_session(status=503, text="<html>maintenance</html>")

        with pytest.raises(ExchangeException) as exc_info:
            await transport.get(URL)

        error = exc_info.value.error
        assert error.kind is ErrorKind.TRANSPORT
        assert error.http_status == 503
        assert error.payload == "<html>maintenance</html>"
        assert error.exchange_id == "bitpie"

    @pytest.mark.asyncio
    async def test_connection_error(self, transport):
        transport._session = make_session(
            error=aiohttp.ClientConnectionError("Connection refused")
        )

        with pytest.raises(ExchangeException) as exc_info:
            await transport.get(URL)

        assert exc_info.value.kind is ErrorKind.TRANSPORT
        assert "Connection refused" in exc_info.value.error.message

    @pytest.mark.asyncio
    async def test_timeout(self, transport):
        """A timeout while reading the body is TRANSPORT too."""
        transport._session = make_session(read_error=asyncio.TimeoutError())

        with pytest.raises(ExchangeException) as exc_info:
            await transport.get(URL)

        assert exc_info.value.kind is ErrorKind.TRANSPORT
        assert exc_info.value.error.message.startswith("Timeout")

    @pytest.mark.asyncio
    async def test_credentials_not_logged_on_network_error(self, transport, caplog):
        transport._session = make_session(error=aiohttp.ClientConnectionError("reset"))

        with pytest.raises(ExchangeException):
            await transport.get(f"{URL}?apikey=my-secret-api-key&nonce=1")

        assert "my-secret-api-key" not in caplog.text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
