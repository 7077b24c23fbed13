"""
Exchange Gateway - Error Handling.

============================================================
PURPOSE
============================================================
Structured errors for exchange adapters with:
- One error taxonomy across exchanges
- Raw offending payload attached for diagnosis
- Callers branch on kind, never on message text

============================================================
ERROR KINDS
============================================================
1. TRANSPORT       - Connection issues, timeouts
2. DECODE          - Response is not the expected structure
3. EXCHANGE        - Exchange envelope reports failure
4. AUTHENTICATION  - Credentials missing before a private call
5. UNSUPPORTED     - Operation not offered by this exchange

An unrecognized order status is NOT an error, it normalizes to
OrderStatus.OTHER.

No error is retried inside this layer.

============================================================
"""

import logging
from enum import Enum
from typing import Optional, Dict, Any
from dataclasses import dataclass


logger = logging.getLogger(__name__)

# Raw payloads can be large, keep error strings readable
MAX_PAYLOAD_PREVIEW = 300


# ============================================================
# ERROR TAXONOMY
# ============================================================

class ErrorKind(Enum):
    """Standardized error kinds."""

    TRANSPORT = "TRANSPORT"
    DECODE = "DECODE"
    EXCHANGE = "EXCHANGE"
    AUTHENTICATION = "AUTHENTICATION"
    UNSUPPORTED = "UNSUPPORTED"


# ============================================================
# EXCHANGE ERROR
# ============================================================

@dataclass
class ExchangeError:
    """
    Standardized exchange error.

    Provides unified error representation across exchanges.
    """

    kind: ErrorKind
    message: str

    # Context
    exchange_id: Optional[str] = None
    operation: Optional[str] = None

    # Raw response (or request) that caused the failure
    payload: Optional[str] = None
    http_status: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "exchange_id": self.exchange_id,
            "operation": self.operation,
            "payload": self.payload,
            "http_status": self.http_status,
        }

    def __str__(self) -> str:
        text = f"[{self.kind.value}] {self.message}"
        context = " ".join(
            part for part in (self.exchange_id, self.operation) if part
        )
        if context:
            text = f"[{self.kind.value}] {context}: {self.message}"
        if self.payload:
            text = f"{text} | payload: {self.payload[:MAX_PAYLOAD_PREVIEW]}"
        return text


class ExchangeException(Exception):
    """Exception wrapper for ExchangeError."""

    def __init__(self, error: ExchangeError):
        self.error = error
        super().__init__(str(error))

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind


# ============================================================
# ERROR FACTORIES
# ============================================================

def create_transport_error(
    exchange_id: str,
    message: str,
    operation: str = None,
    http_status: int = None,
) -> ExchangeError:
    """Create transport (network/timeout) error."""
    return ExchangeError(
        kind=ErrorKind.TRANSPORT,
        message=message,
        exchange_id=exchange_id,
        operation=operation,
        http_status=http_status,
    )


def create_decode_error(
    exchange_id: str,
    operation: str,
    reason: str,
    payload: Any = None,
) -> ExchangeError:
    """Create decode error with the raw payload attached."""
    return ExchangeError(
        kind=ErrorKind.DECODE,
        message=f"Unexpected response: {reason}",
        exchange_id=exchange_id,
        operation=operation,
        payload=None if payload is None else str(payload),
    )


def create_exchange_failure(
    exchange_id: str,
    operation: str,
    message: str,
    payload: Any = None,
) -> ExchangeError:
    """Create error for a failure reported by the exchange itself."""
    return ExchangeError(
        kind=ErrorKind.EXCHANGE,
        message=message or "Exchange reported failure",
        exchange_id=exchange_id,
        operation=operation,
        payload=None if payload is None else str(payload),
    )


def create_missing_credentials_error(
    exchange_id: str,
    operation: str = None,
) -> ExchangeError:
    """Create error for a private call without API key or secret."""
    return ExchangeError(
        kind=ErrorKind.AUTHENTICATION,
        message="API Key or Secret Key are empty",
        exchange_id=exchange_id,
        operation=operation,
    )


def create_unsupported_operation_error(
    exchange_id: str,
    operation: str,
    detail: str = "",
) -> ExchangeError:
    """Create error for an operation this exchange does not offer."""
    message = f"Operation not supported: {operation}"
    if detail:
        message = f"{message} ({detail})"
    return ExchangeError(
        kind=ErrorKind.UNSUPPORTED,
        message=message,
        exchange_id=exchange_id,
        operation=operation,
    )
