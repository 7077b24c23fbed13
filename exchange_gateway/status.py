"""
Exchange Gateway - Order Status Normalization.

============================================================
PURPOSE
============================================================
Map each exchange's order-status vocabulary onto OrderStatus.

Two vocabularies exist in the wild:
- String tokens ("PARTIALLY_FILLED", "canceled", ...)
  -> StatusMapper, a total lookup table per exchange
- Flag combinations (is-open, quantity remaining, ...)
  -> status_from_fill_flags

INVARIANTS:
- Mapping is total: unknown tokens give OrderStatus.OTHER
- A status query never fails because of an unexpected token
- CANCELING is only ever set by mark_canceling, and the next
  confirmed status query overwrites it

============================================================
"""

import logging
from decimal import Decimal
from typing import Dict, FrozenSet, Mapping, Optional

from .types import Order, OrderStatus, OrderUpdate


logger = logging.getLogger(__name__)


# ============================================================
# TOKEN TABLES
# ============================================================

# Shared by exchanges speaking the Binance dialect
BINANCE_STYLE_STATUS: Dict[str, OrderStatus] = {
    "NEW": OrderStatus.NEW,
    "PARTIALLY_FILLED": OrderStatus.PARTIAL,
    "FILLED": OrderStatus.FILLED,
    "PENDING_CANCEL": OrderStatus.CANCELING,
    "CANCELED": OrderStatus.CANCELLED,
    "CANCELLED": OrderStatus.CANCELLED,
    "REJECTED": OrderStatus.REJECTED,
    "EXPIRED": OrderStatus.EXPIRED,
}


# ============================================================
# STATUS MAPPER
# ============================================================

class StatusMapper:
    """
    Total function from exchange status token to OrderStatus.

    Supplied to an adapter as configuration data, never written
    as an inline if/elif chain.

    Usage:
        mapper = StatusMapper({"live": OrderStatus.NEW, "filled": OrderStatus.FILLED})
        mapper.normalize("LIVE")          # OrderStatus.NEW
        mapper.normalize("WEIRD_STATE")   # OrderStatus.OTHER
    """

    def __init__(
        self,
        table: Mapping[str, OrderStatus],
        case_sensitive: bool = False,
    ):
        """
        Initialize mapper.

        Args:
            table: Exchange token -> canonical status
            case_sensitive: Match tokens exactly as written
        """
        self._case_sensitive = case_sensitive
        self._table: Dict[str, OrderStatus] = {
            self._key(token): status for token, status in table.items()
        }

    def _key(self, token: str) -> str:
        token = token.strip()
        return token if self._case_sensitive else token.upper()

    def normalize(self, token: Optional[str]) -> OrderStatus:
        """
        Map an exchange token to a canonical status.

        Args:
            token: Raw status token, may be None

        Returns:
            Canonical status, OTHER when the token is unknown
        """
        if token is None:
            return OrderStatus.OTHER

        status = self._table.get(self._key(str(token)))
        if status is None:
            logger.debug(f"Unrecognized order status token: {token!r}")
            return OrderStatus.OTHER
        return status

    def known_tokens(self) -> FrozenSet[str]:
        """Tokens this mapper recognizes (normalized form)."""
        return frozenset(self._table)

    def __contains__(self, token: str) -> bool:
        return self._key(token) in self._table


# ============================================================
# FLAG-BASED STATUS
# ============================================================

def status_from_fill_flags(
    quantity: Decimal,
    remaining: Decimal,
    is_open: bool,
    cancel_initiated: bool = False,
) -> OrderStatus:
    """
    Derive status from fill flags, for exchanges without status tokens.

    Args:
        quantity: Original order quantity
        remaining: Quantity still unfilled
        is_open: Order is still on the book
        cancel_initiated: A cancel request is pending

    Returns:
        Canonical status
    """
    if cancel_initiated:
        return OrderStatus.CANCELING
    if not is_open and remaining > 0:
        return OrderStatus.CANCELLED
    if remaining == 0:
        return OrderStatus.FILLED
    if remaining != quantity:
        return OrderStatus.PARTIAL
    return OrderStatus.NEW


# ============================================================
# ORDER MUTATION
# ============================================================

def apply_update(order: Order, update: OrderUpdate, raw_response: str = "") -> Order:
    """
    Apply a confirmed status query result to an order.

    Args:
        order: Order to mutate
        update: Normalized query result
        raw_response: Raw status response, kept for diagnosis

    Returns:
        The same order
    """
    order.status = update.status
    if update.deal_quantity is not None:
        order.deal_quantity = update.deal_quantity
    if update.deal_rate is not None:
        order.deal_rate = update.deal_rate
    order.status_message = raw_response
    return order


def mark_canceling(order: Order, raw_response: str = "") -> Order:
    """
    Record a submitted cancel request.

    Optimistic client-side state; there is no timer, callers confirm
    with an explicit status query.
    """
    order.status = OrderStatus.CANCELING
    order.cancel_status = raw_response
    return order
