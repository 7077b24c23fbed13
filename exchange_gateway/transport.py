"""
Exchange Gateway - HTTP Transport.

============================================================
PURPOSE
============================================================
Thin aiohttp wrapper returning raw response text.

The transport knows nothing about exchanges: adapters decode
the text themselves. Failures surface as TRANSPORT errors and
are never retried here.

============================================================
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

import aiohttp

from .errors import ExchangeException, create_transport_error
from .logging_utils import mask_url
from .signing import SignedRequest


logger = logging.getLogger(__name__)


class HttpTransport:
    """
    Shared HTTP session for one adapter.

    Usage:
        async with HttpTransport("bitpie", timeout_seconds=10) as transport:
            text = await transport.get("https://.../v1/markets")
    """

    def __init__(self, exchange_id: str, timeout_seconds: float = 30.0):
        """
        Initialize transport.

        Args:
            exchange_id: Owner exchange, for error context
            timeout_seconds: Total timeout per request
        """
        self._exchange_id = exchange_id
        self._timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def is_open(self) -> bool:
        return self._session is not None and not self._session.closed

    async def open(self) -> None:
        """Create the client session if needed."""
        if self.is_open:
            return
        timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
        self._session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        """Close the client session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "HttpTransport":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --------------------------------------------------------
    # REQUESTS
    # --------------------------------------------------------

    async def get(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Issue an unsigned GET.

        Args:
            url: Full URL
            params: Query parameters
            headers: Extra headers

        Returns:
            Raw response text

        Raises:
            ExchangeException: TRANSPORT on network failure or HTTP error
        """
        return await self._request("GET", url, params=params, headers=headers)

    async def send(self, request: SignedRequest) -> str:
        """
        Issue a signed request exactly as built by the signer.

        The URL already carries its query string; the body, if any,
        is sent verbatim.
        """
        return await self._request(
            request.method,
            request.url,
            headers=request.headers,
            data=request.body,
        )

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        data: Optional[str] = None,
    ) -> str:
        await self.open()

        try:
            async with self._session.request(
                method,
                url,
                params=dict(params) if params else None,
                headers=headers,
                data=data,
            ) as response:
                text = await response.text()

                if response.status >= 400:
                    error = create_transport_error(
                        self._exchange_id,
                        f"HTTP {response.status} from {mask_url(url)}",
                        http_status=response.status,
                    )
                    error.payload = text
                    raise ExchangeException(error)

                return text

        except aiohttp.ClientError as e:
            logger.warning(f"Network error on {method} {mask_url(url)}: {e}")
            raise ExchangeException(
                create_transport_error(self._exchange_id, f"Network error: {e}")
            )
        except asyncio.TimeoutError as e:
            raise ExchangeException(
                create_transport_error(self._exchange_id, f"Timeout: {e}")
            )
