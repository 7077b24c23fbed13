"""
Exchange Gateway - Request Signing.

============================================================
PURPOSE
============================================================
Build authenticated requests for private exchange endpoints.

Two shapes are supported:

QUERY-SIGNED GET
    params -> canonical query "k1=v1&k2=v2"
    signature = HMAC(secret, query)          (target QUERY)
             or HMAC(secret, full URL)       (target URL)
    signature appended as query param or sent as header

BODY-SIGNED POST/DELETE
    signature computed over the canonical query form,
    request body is the JSON encoded parameter map

The API key travels in a header or a query param depending on
the exchange. Replay protection (nonce/timestamp) is injected
immediately before signing.

SAFETY:
- Pure functions, no shared state: safe from any number of tasks
- Caller's parameter mapping is never mutated
- Passing an explicit nonce makes signatures deterministic

============================================================
"""

import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlencode


# ============================================================
# SIGNING VARIANTS
# ============================================================

class DigestAlgorithm(Enum):
    """HMAC digest family."""

    SHA256 = "sha256"
    SHA512 = "sha512"

    @property
    def constructor(self) -> Callable:
        return hashlib.sha256 if self is DigestAlgorithm.SHA256 else hashlib.sha512


class KeyOrder(Enum):
    """Parameter order in the canonical query. Signatures are order-sensitive."""

    INSERTION = "INSERTION"
    SORTED = "SORTED"


class SignatureTarget(Enum):
    """What the HMAC is computed over."""

    QUERY = "QUERY"
    URL = "URL"


class SignaturePlacement(Enum):
    """Where the signature is sent."""

    QUERY_PARAM = "QUERY_PARAM"
    HEADER = "HEADER"


class NonceUnit(Enum):
    """Resolution of the injected nonce/timestamp."""

    MILLISECONDS = "MILLISECONDS"
    NANOSECONDS = "NANOSECONDS"


@dataclass(frozen=True)
class SigningScheme:
    """
    Per-exchange signing variant.

    Example (Binance-style):
        SigningScheme(
            digest=DigestAlgorithm.SHA256,
            api_key_header="X-MBX-APIKEY",
            nonce_param="timestamp",
        )
    """

    digest: DigestAlgorithm = DigestAlgorithm.SHA256
    key_order: KeyOrder = KeyOrder.INSERTION
    target: SignatureTarget = SignatureTarget.QUERY
    placement: SignaturePlacement = SignaturePlacement.QUERY_PARAM

    signature_name: str = "signature"
    """Query param or header name carrying the signature."""

    api_key_header: Optional[str] = None
    api_key_param: Optional[str] = None

    nonce_param: Optional[str] = None
    """Replay-protection param, None if the exchange needs none."""

    nonce_unit: NonceUnit = NonceUnit.MILLISECONDS

    extra_headers: Tuple[Tuple[str, str], ...] = (
        ("Content-Type", "application/json; charset=utf-8"),
    )


@dataclass
class SignedRequest:
    """A finished request, ready for the HTTP transport."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None

    # Parameters as signed, for debug capture
    params: Dict[str, str] = field(default_factory=dict)


# ============================================================
# PRIMITIVES
# ============================================================

def _ordered_items(
    params: Mapping[str, Any],
    key_order: KeyOrder,
) -> List[Tuple[str, str]]:
    items = [(str(k), str(v)) for k, v in params.items()]
    if key_order is KeyOrder.SORTED:
        items.sort(key=lambda item: item[0])
    return items


def canonical_query(
    params: Mapping[str, Any],
    key_order: KeyOrder = KeyOrder.INSERTION,
) -> str:
    """
    Serialize params as k=v pairs joined by &.

    Args:
        params: Parameter name -> value
        key_order: Insertion or lexicographic order

    Returns:
        URL-encoded query string (empty for no params)
    """
    if not params:
        return ""
    return urlencode(_ordered_items(params, key_order))


def compute_hmac(
    message: str,
    secret: str,
    digest: DigestAlgorithm = DigestAlgorithm.SHA256,
) -> str:
    """Hex HMAC of message keyed with secret."""
    return hmac.new(
        secret.encode(),
        message.encode(),
        digest.constructor,
    ).hexdigest()


def _join_url(base_url: str, path: str, query: str = "") -> str:
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}" if path else base_url
    return f"{url}?{query}" if query else url


# ============================================================
# REQUEST SIGNER
# ============================================================

class RequestSigner:
    """
    Signs private requests for one account on one exchange.

    Usage:
        signer = RequestSigner(scheme, api_key, api_secret)
        request = signer.sign_query(API_URL, "/api/v1/order", {"symbol": "ETH/BTC"})
    """

    def __init__(
        self,
        scheme: SigningScheme,
        api_key: str,
        api_secret: str,
        clock: Callable[[], int] = None,
    ):
        """
        Initialize signer.

        Args:
            scheme: Exchange signing variant
            api_key: Account API key
            api_secret: Account secret key
            clock: Returns current time in nanoseconds (time.time_ns)
        """
        self._scheme = scheme
        self._api_key = api_key
        self._api_secret = api_secret
        self._clock = clock or time.time_ns

    @property
    def scheme(self) -> SigningScheme:
        return self._scheme

    def next_nonce(self) -> str:
        """Nonce in the unit the exchange expects."""
        now_ns = self._clock()
        if self._scheme.nonce_unit is NonceUnit.NANOSECONDS:
            return str(now_ns)
        return str(now_ns // 1_000_000)

    def _prepare(
        self,
        params: Optional[Mapping[str, Any]],
        nonce: Optional[str],
    ) -> Dict[str, str]:
        prepared = {str(k): str(v) for k, v in (params or {}).items()}

        if self._scheme.api_key_param:
            prepared[self._scheme.api_key_param] = self._api_key

        # Nonce goes in last, right before the signature is computed
        if self._scheme.nonce_param:
            prepared[self._scheme.nonce_param] = (
                str(nonce) if nonce is not None else self.next_nonce()
            )
        return prepared

    def _headers(self) -> Dict[str, str]:
        headers = dict(self._scheme.extra_headers)
        if self._scheme.api_key_header:
            headers[self._scheme.api_key_header] = self._api_key
        return headers

    def sign_query(
        self,
        base_url: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        nonce: Optional[str] = None,
    ) -> SignedRequest:
        """
        Build a query-signed GET request.

        Args:
            base_url: Exchange REST root
            path: Endpoint path
            params: Request parameters
            nonce: Explicit nonce, generated from the clock if None

        Returns:
            SignedRequest with the final URL and headers
        """
        prepared = self._prepare(params, nonce)
        query = canonical_query(prepared, self._scheme.key_order)

        if self._scheme.target is SignatureTarget.URL:
            message = _join_url(base_url, path, query)
        else:
            message = query

        signature = compute_hmac(message, self._api_secret, self._scheme.digest)
        headers = self._headers()

        if self._scheme.placement is SignaturePlacement.HEADER:
            headers[self._scheme.signature_name] = signature
        else:
            signed_part = urlencode([(self._scheme.signature_name, signature)])
            query = f"{query}&{signed_part}" if query else signed_part
            prepared[self._scheme.signature_name] = signature

        return SignedRequest(
            method="GET",
            url=_join_url(base_url, path, query),
            headers=headers,
            params=prepared,
        )

    def sign_body(
        self,
        method: str,
        base_url: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        nonce: Optional[str] = None,
    ) -> SignedRequest:
        """
        Build a body-signed request (POST/DELETE).

        The signature covers the canonical query form; the body is the
        JSON encoded parameter map.

        Args:
            method: HTTP method
            base_url: Exchange REST root
            path: Endpoint path
            params: Request parameters
            nonce: Explicit nonce, generated from the clock if None

        Returns:
            SignedRequest with URL, headers and JSON body
        """
        prepared = self._prepare(params, nonce)
        query = canonical_query(prepared, self._scheme.key_order)

        if self._scheme.target is SignatureTarget.URL:
            message = _join_url(base_url, path, query)
        else:
            message = query

        signature = compute_hmac(message, self._api_secret, self._scheme.digest)
        headers = self._headers()

        if self._scheme.placement is SignaturePlacement.HEADER:
            headers[self._scheme.signature_name] = signature
        else:
            prepared[self._scheme.signature_name] = signature

        body_items = dict(_ordered_items(prepared, self._scheme.key_order))
        return SignedRequest(
            method=method.upper(),
            url=_join_url(base_url, path),
            headers=headers,
            body=json.dumps(body_items),
            params=prepared,
        )
