"""
Request Signing Tests.

============================================================
PURPOSE
============================================================
Canonical query, HMAC signatures and the two request shapes
(query-signed GET, body-signed POST/DELETE).

============================================================
"""

import hashlib
import hmac
import json

import pytest

from exchange_gateway.signing import (
    DigestAlgorithm,
    KeyOrder,
    NonceUnit,
    RequestSigner,
    SignaturePlacement,
    SignatureTarget,
    SigningScheme,
    canonical_query,
    compute_hmac,
)


BGOGO_STYLE = SigningScheme(
    digest=DigestAlgorithm.SHA256,
    key_order=KeyOrder.SORTED,
    target=SignatureTarget.QUERY,
    placement=SignaturePlacement.QUERY_PARAM,
    api_key_header="X-MBX-APIKEY",
    nonce_param="timestamp",
)

BITPIE_STYLE = SigningScheme(
    digest=DigestAlgorithm.SHA512,
    key_order=KeyOrder.SORTED,
    target=SignatureTarget.URL,
    placement=SignaturePlacement.HEADER,
    signature_name="apisign",
    api_key_param="apikey",
    nonce_param="nonce",
    nonce_unit=NonceUnit.NANOSECONDS,
)

FIXED_NS = 1_700_000_000_123_456_789


def _sha256(message: str, secret: str) -> str:
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


# ============================================================
# PRIMITIVES
# ============================================================

class TestCanonicalQuery:
    """Tests for query canonicalization."""

    def test_insertion_order(self):
        assert canonical_query({"b": "2", "a": "1"}) == "b=2&a=1"

    def test_sorted_order(self):
        assert canonical_query({"b": "2", "a": "1"}, KeyOrder.SORTED) == "a=1&b=2"

    def test_values_are_url_encoded(self):
        assert canonical_query({"symbol": "ETH/BTC"}) == "symbol=ETH%2FBTC"

    def test_empty(self):
        assert canonical_query({}) == ""

    def test_compute_hmac_matches_hashlib(self):
        expected = hmac.new(b"secret", b"a=1", hashlib.sha512).hexdigest()
        assert compute_hmac("a=1", "secret", DigestAlgorithm.SHA512) == expected


# ============================================================
# QUERY-SIGNED GET
# ============================================================

class TestSignQuery:
    """Tests for query-signed GET requests."""

    def test_signature_is_deterministic_with_explicit_nonce(self):
        """Same params, secret and nonce give the same signature."""
        signer = RequestSigner(BGOGO_STYLE, "key", "secret")
        params = {"symbol": "ETH/BTC", "orderId": "42"}

        first = signer.sign_query("https://bgogo.com", "/api/v1/order", params, nonce="1700000000000")
        second = signer.sign_query("https://bgogo.com", "/api/v1/order", params, nonce="1700000000000")

        assert first.url == second.url
        assert first.params["signature"] == second.params["signature"]

    def test_different_nonce_changes_signature(self):
        signer = RequestSigner(BGOGO_STYLE, "key", "secret")

        first = signer.sign_query("https://bgogo.com", "/api/v1/order", {"a": "1"}, nonce="1")
        second = signer.sign_query("https://bgogo.com", "/api/v1/order", {"a": "1"}, nonce="2")

        assert first.params["signature"] != second.params["signature"]

    def test_signature_over_sorted_query_appended_as_param(self):
        """HMAC covers the sorted query with the timestamp; signature goes last."""
        signer = RequestSigner(BGOGO_STYLE, "key", "secret")

        request = signer.sign_query(
            "https://bgogo.com",
            "/api/v1/order",
            {"symbol": "ETH-BTC", "orderId": "42"},
            nonce="1700000000000",
        )

        query = "orderId=42&symbol=ETH-BTC&timestamp=1700000000000"
        signature = _sha256(query, "secret")

        assert request.method == "GET"
        assert request.url == f"https://bgogo.com/api/v1/order?{query}&signature={signature}"
        assert request.headers["X-MBX-APIKEY"] == "key"
        assert request.body is None

    def test_caller_params_not_mutated(self):
        signer = RequestSigner(BGOGO_STYLE, "key", "secret")
        params = {"symbol": "ETH-BTC"}

        signer.sign_query("https://bgogo.com", "/api/v1/order", params, nonce="1")

        assert params == {"symbol": "ETH-BTC"}

    def test_url_signature_in_header(self):
        """Bitpie style: HMAC-SHA512 over the full URL, sent as header."""
        signer = RequestSigner(BITPIE_STYLE, "key", "secret", clock=lambda: FIXED_NS)

        request = signer.sign_query("https://api.expie.com", "/v1.1/account/getorder", {"uuid": "abc"})

        expected_url = (
            "https://api.expie.com/v1.1/account/getorder"
            f"?apikey=key&nonce={FIXED_NS}&uuid=abc"
        )
        assert request.url == expected_url
        assert request.headers["apisign"] == compute_hmac(
            expected_url, "secret", DigestAlgorithm.SHA512
        )
        assert "apisign" not in request.url

    def test_millisecond_nonce_from_clock(self):
        signer = RequestSigner(BGOGO_STYLE, "key", "secret", clock=lambda: FIXED_NS)
        assert signer.next_nonce() == "1700000000123"


# ============================================================
# BODY-SIGNED REQUESTS
# ============================================================

class TestSignBody:
    """Tests for body-signed POST/DELETE requests."""

    def test_body_is_json_signature_over_query_form(self):
        """The JSON body carries the params; the HMAC covers the query form."""
        signer = RequestSigner(BGOGO_STYLE, "key", "secret")

        request = signer.sign_body(
            "post",
            "https://bgogo.com",
            "/api/v1/order",
            {"symbol": "ETH-BTC", "side": "BUY"},
            nonce="1700000000000",
        )

        query = "side=BUY&symbol=ETH-BTC&timestamp=1700000000000"
        body = json.loads(request.body)

        assert request.method == "POST"
        assert request.url == "https://bgogo.com/api/v1/order"
        assert body == {
            "side": "BUY",
            "symbol": "ETH-BTC",
            "timestamp": "1700000000000",
            "signature": _sha256(query, "secret"),
        }
        assert body["signature"] != _sha256(json.dumps({k: v for k, v in body.items() if k != "signature"}), "secret")

    def test_body_signing_is_deterministic(self):
        signer = RequestSigner(BGOGO_STYLE, "key", "secret")

        first = signer.sign_body("DELETE", "https://bgogo.com", "/api/v1/order", {"orderId": "1"}, nonce="5")
        second = signer.sign_body("DELETE", "https://bgogo.com", "/api/v1/order", {"orderId": "1"}, nonce="5")

        assert first.body == second.body
        assert first.method == "DELETE"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
