"""
Exchange Gateway - Secure Logging Utilities.

============================================================
PURPOSE
============================================================
Logging for adapter traffic with:
- Credential masking (API keys, secrets, signatures)
- Structured JSON log lines for requests, responses, orders

============================================================
SECURITY REQUIREMENTS
============================================================
1. NEVER log raw API keys or secrets
2. Mask signature headers and query params
3. Log a hash of request bodies, never the body itself

============================================================
"""

import hashlib
import json
import logging
import re
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)


# ============================================================
# SENSITIVE DATA
# ============================================================

# Header names that should be masked
SENSITIVE_HEADERS = {
    "authorization",
    "x-api-key",
    "x-mbx-apikey",
    "apisign",
    "api-key",
    "secret",
    "signature",
}

# Parameter names that should be masked
SENSITIVE_PARAMS = {
    "apikey",
    "api_key",
    "apisign",
    "secret",
    "secret_key",
    "signature",
    "sign",
}

PREVIEW_CHARS = 200


# ============================================================
# MASKING FUNCTIONS
# ============================================================

def mask_value(value: str, show_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only first few chars.

    Args:
        value: Value to mask
        show_chars: Number of chars to show at start

    Returns:
        Masked value
    """
    if not value or len(value) <= show_chars:
        return "***"
    return f"{value[:show_chars]}...***"


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Headers with sensitive values masked."""
    if not headers:
        return {}

    return {
        key: mask_value(str(value)) if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def mask_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Mask sensitive parameters.

    Nested dicts are masked recursively.
    """
    if not params:
        return {}

    masked = {}
    for key, value in params.items():
        if key.lower() in SENSITIVE_PARAMS:
            masked[key] = mask_value(str(value)) if value else value
        elif isinstance(value, dict):
            masked[key] = mask_params(value)
        else:
            masked[key] = value
    return masked


def mask_url(url: str) -> str:
    """
    Mask sensitive query params in a URL.

    Args:
        url: URL string

    Returns:
        URL with sensitive params masked
    """
    if not url:
        return url

    for param in SENSITIVE_PARAMS:
        pattern = re.compile(rf"([?&]{param}=)([^&]+)", re.IGNORECASE)
        url = pattern.sub(lambda m: f"{m.group(1)}***", url)

    return url


# ============================================================
# LOG ENTRY STRUCTURES
# ============================================================

@dataclass
class RequestLogEntry:
    """Structured log entry for requests."""

    timestamp: str
    exchange_id: str
    operation: str
    method: str
    endpoint: str
    request_id: str

    headers: Dict[str, str] = None
    body_hash: str = None

    def to_json(self) -> str:
        return json.dumps({k: v for k, v in asdict(self).items() if v is not None})


@dataclass
class ResponseLogEntry:
    """Structured log entry for responses."""

    timestamp: str
    exchange_id: str
    operation: str
    request_id: str
    latency_ms: float
    success: bool

    error_kind: str = None
    error_message: str = None
    response_preview: str = None

    def to_json(self) -> str:
        return json.dumps({k: v for k, v in asdict(self).items() if v is not None})


@dataclass
class OrderLogEntry:
    """Structured log entry for order operations."""

    timestamp: str
    exchange_id: str
    operation: str  # place, cancel, status

    order_id: str = None
    pair: str = None
    side: str = None
    quantity: str = None
    rate: str = None
    status: str = None
    deal_quantity: str = None
    deal_rate: str = None

    def to_json(self) -> str:
        return json.dumps({k: v for k, v in asdict(self).items() if v is not None})


# ============================================================
# ADAPTER LOGGER
# ============================================================

class AdapterLogger:
    """
    Secure logger for exchange adapter operations.

    Provides structured logging with automatic credential masking.
    """

    def __init__(self, exchange_id: str, logger_name: str = None):
        """
        Initialize adapter logger.

        Args:
            exchange_id: Exchange identifier
            logger_name: Logger name (default: exchange_gateway.<exchange_id>)
        """
        self._exchange_id = exchange_id
        self._logger = logging.getLogger(
            logger_name or f"exchange_gateway.{exchange_id}"
        )

        # Request counter for correlation IDs
        self._request_counter = 0

    def _generate_request_id(self) -> str:
        self._request_counter += 1
        return f"{self._exchange_id}-{self._request_counter}"

    @staticmethod
    def _hash_body(body: Optional[str]) -> Optional[str]:
        if not body:
            return None
        return hashlib.sha256(body.encode()).hexdigest()[:16]

    def log_request(
        self,
        operation: str,
        method: str,
        endpoint: str,
        headers: Dict[str, str] = None,
        body: Optional[str] = None,
    ) -> str:
        """
        Log outgoing request.

        Args:
            operation: Operation name (e.g., "place_order")
            method: HTTP method
            endpoint: Full URL, query included
            headers: Request headers
            body: Request body

        Returns:
            Request ID for correlation
        """
        request_id = self._generate_request_id()

        entry = RequestLogEntry(
            timestamp=datetime.utcnow().isoformat(),
            exchange_id=self._exchange_id,
            operation=operation,
            method=method,
            endpoint=mask_url(endpoint),
            request_id=request_id,
            headers=mask_headers(headers) if headers else None,
            body_hash=self._hash_body(body),
        )

        self._logger.debug(f"REQUEST: {entry.to_json()}")
        return request_id

    def log_response(
        self,
        operation: str,
        request_id: str,
        latency_ms: float,
        success: bool,
        error_kind: str = None,
        error_message: str = None,
        response_body: Optional[str] = None,
    ) -> None:
        """
        Log incoming response.

        Args:
            operation: Operation name
            request_id: Correlation ID from log_request
            latency_ms: Request latency
            success: Whether the call succeeded
            error_kind: ErrorKind value if failed
            error_message: Error message if failed
            response_body: Raw response text (truncated)
        """
        entry = ResponseLogEntry(
            timestamp=datetime.utcnow().isoformat(),
            exchange_id=self._exchange_id,
            operation=operation,
            request_id=request_id,
            latency_ms=round(latency_ms, 2),
            success=success,
            error_kind=error_kind,
            error_message=error_message[:PREVIEW_CHARS] if error_message else None,
            response_preview=response_body[:PREVIEW_CHARS] if response_body else None,
        )

        if success:
            self._logger.debug(f"RESPONSE: {entry.to_json()}")
        else:
            self._logger.warning(f"RESPONSE_ERROR: {entry.to_json()}")

    def log_order(
        self,
        operation: str,
        order_id: str = None,
        pair: str = None,
        side: str = None,
        quantity: Any = None,
        rate: Any = None,
        status: str = None,
        deal_quantity: Any = None,
        deal_rate: Any = None,
    ) -> None:
        """Log an order operation (place, cancel, status)."""
        entry = OrderLogEntry(
            timestamp=datetime.utcnow().isoformat(),
            exchange_id=self._exchange_id,
            operation=operation,
            order_id=order_id,
            pair=pair,
            side=side,
            quantity=None if quantity is None else str(quantity),
            rate=None if rate is None else str(rate),
            status=status,
            deal_quantity=None if deal_quantity is None else str(deal_quantity),
            deal_rate=None if deal_rate is None else str(deal_rate),
        )
        self._logger.info(f"ORDER: {entry.to_json()}")

    def info(self, message: str) -> None:
        self._logger.info(f"[{self._exchange_id}] {message}")

    def warning(self, message: str) -> None:
        self._logger.warning(f"[{self._exchange_id}] {message}")

    def error(self, message: str, exc_info: bool = False) -> None:
        self._logger.error(f"[{self._exchange_id}] {message}", exc_info=exc_info)

    def debug(self, message: str) -> None:
        self._logger.debug(f"[{self._exchange_id}] {message}")
