"""
Secure Logging Tests.

============================================================
PURPOSE
============================================================
Credential masking and structured adapter log lines.

============================================================
"""

import json
import logging

import pytest

from exchange_gateway.errors import (
    ErrorKind,
    ExchangeError,
    create_decode_error,
    create_missing_credentials_error,
)
from exchange_gateway.logging_utils import (
    AdapterLogger,
    mask_headers,
    mask_params,
    mask_url,
    mask_value,
)


# ============================================================
# MASKING
# ============================================================

class TestCredentialMasking:
    """Tests for credential masking."""

    def test_mask_value(self):
        """Long values keep a short prefix."""
        assert mask_value("abcdefghijklmnop") == "abcd...***"

    def test_mask_short_value(self):
        assert mask_value("abc") == "***"
        assert mask_value("") == "***"

    def test_mask_headers(self):
        headers = {
            "X-MBX-APIKEY": "my-secret-api-key",
            "apisign": "0123456789abcdef",
            "Accept": "application/json",
        }

        masked = mask_headers(headers)

        assert "my-secret-api-key" not in masked["X-MBX-APIKEY"]
        assert "0123456789abcdef" not in masked["apisign"]
        assert masked["Accept"] == "application/json"

    def test_mask_params(self):
        """Sensitive params are masked, nested dicts too."""
        params = {
            "apikey": "my-secret-api-key",
            "symbol": "ETH/BTC",
            "nested": {"signature": "deadbeefdeadbeef"},
        }

        masked = mask_params(params)

        assert masked["apikey"] == "my-s...***"
        assert masked["symbol"] == "ETH/BTC"
        assert masked["nested"]["signature"] == "dead...***"

    def test_mask_url(self):
        url = (
            "https://api.expie.com/v1.1/account/getorder"
            "?apikey=my-secret-api-key&nonce=1&uuid=abc&signature=deadbeef"
        )

        masked = mask_url(url)

        assert "my-secret-api-key" not in masked
        assert "deadbeef" not in masked
        assert "apikey=***" in masked
        assert "uuid=abc" in masked


# ============================================================
# ADAPTER LOGGER
# ============================================================

class TestAdapterLogger:
    """Tests for AdapterLogger."""

    def test_log_request_masks_credentials(self, caplog):
        """Request lines never carry raw keys or signatures."""
        log = AdapterLogger("bitpie")

        with caplog.at_level(logging.DEBUG, logger="exchange_gateway.bitpie"):
            request_id = log.log_request(
                "order_status",
                "GET",
                "https://api.expie.com/v1.1/account/getorder?apikey=my-secret-api-key&nonce=1",
                headers={"apisign": "0123456789abcdef"},
                body='{"uuid": "abc"}',
            )

        assert request_id == "bitpie-1"
        assert "my-secret-api-key" not in caplog.text
        assert "0123456789abcdef" not in caplog.text
        assert '{"uuid": "abc"}' not in caplog.text
        assert "REQUEST:" in caplog.text

    def test_request_ids_increase(self):
        log = AdapterLogger("bgogo")

        first = log.log_request("order_book", "GET", "https://bgogo.com/api/tickers")
        second = log.log_request("order_book", "GET", "https://bgogo.com/api/tickers")

        assert (first, second) == ("bgogo-1", "bgogo-2")

    def test_failed_response_is_warning(self, caplog):
        log = AdapterLogger("bgogo")

        with caplog.at_level(logging.DEBUG, logger="exchange_gateway.bgogo"):
            log.log_response(
                "place_order",
                "bgogo-1",
                latency_ms=12.5,
                success=False,
                error_kind="EXCHANGE",
                error_message="Insufficient balance",
            )

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        payload = json.loads(record.getMessage().split("RESPONSE_ERROR: ", 1)[1])
        assert payload["error_kind"] == "EXCHANGE"
        assert payload["latency_ms"] == 12.5

    def test_log_order(self, caplog):
        log = AdapterLogger("bgogo")

        with caplog.at_level(logging.INFO, logger="exchange_gateway.bgogo"):
            log.log_order("place", order_id="42", pair="BTC|ETH", quantity=1, rate="0.05")

        assert '"order_id": "42"' in caplog.text
        assert '"quantity": "1"' in caplog.text


# ============================================================
# ERRORS
# ============================================================

class TestExchangeError:
    """Tests for error formatting."""

    def test_str_includes_context_and_payload(self):
        error = create_decode_error("bitpie", "order_book", "missing 'result'", "<html>")

        text = str(error)

        assert text.startswith("[DECODE] bitpie order_book:")
        assert "payload: <html>" in text

    def test_missing_credentials_message(self):
        error = create_missing_credentials_error("bgogo", "place_order")

        assert error.kind is ErrorKind.AUTHENTICATION
        assert error.message == "API Key or Secret Key are empty"

    def test_to_dict(self):
        error = ExchangeError(kind=ErrorKind.TRANSPORT, message="Timeout", http_status=504)

        assert error.to_dict()["kind"] == "TRANSPORT"
        assert error.to_dict()["http_status"] == 504


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
