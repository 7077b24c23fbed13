"""
Order Status Normalization Tests.

============================================================
PURPOSE
============================================================
Token tables, flag-based status and order mutation.

============================================================
"""

import pytest
from decimal import Decimal

from exchange_gateway.status import (
    BINANCE_STYLE_STATUS,
    StatusMapper,
    apply_update,
    mark_canceling,
    status_from_fill_flags,
)
from exchange_gateway.types import (
    Coin,
    Order,
    OrderSide,
    OrderStatus,
    OrderUpdate,
    Pair,
)


@pytest.fixture
def order():
    """A freshly placed order."""
    pair = Pair(id=1, base=Coin(1, "BTC"), target=Coin(2, "ETH"))
    return Order(
        pair=pair,
        side=OrderSide.BUY,
        quantity=Decimal("1"),
        rate=Decimal("0.05"),
        order_id="42",
    )


# ============================================================
# TOKEN MAPPING
# ============================================================

class TestStatusMapper:
    """Tests for StatusMapper."""

    def test_partially_filled_is_partial(self):
        mapper = StatusMapper(BINANCE_STYLE_STATUS)
        assert mapper.normalize("PARTIALLY_FILLED") is OrderStatus.PARTIAL

    def test_unknown_token_is_other(self):
        """Unexpected tokens never raise."""
        mapper = StatusMapper(BINANCE_STYLE_STATUS)
        assert mapper.normalize("WEIRD_STATE") is OrderStatus.OTHER
        assert mapper.normalize("") is OrderStatus.OTHER
        assert mapper.normalize(None) is OrderStatus.OTHER

    @pytest.mark.parametrize("token,expected", [
        ("NEW", OrderStatus.NEW),
        ("FILLED", OrderStatus.FILLED),
        ("CANCELED", OrderStatus.CANCELLED),
        ("REJECTED", OrderStatus.REJECTED),
        ("Expired", OrderStatus.EXPIRED),
        (" filled ", OrderStatus.FILLED),
    ])
    def test_case_insensitive_by_default(self, token, expected):
        assert StatusMapper(BINANCE_STYLE_STATUS).normalize(token) is expected

    def test_case_sensitive(self):
        mapper = StatusMapper({"live": OrderStatus.NEW}, case_sensitive=True)

        assert mapper.normalize("live") is OrderStatus.NEW
        assert mapper.normalize("LIVE") is OrderStatus.OTHER

    def test_known_tokens(self):
        mapper = StatusMapper({"live": OrderStatus.NEW, "filled": OrderStatus.FILLED})

        assert mapper.known_tokens() == frozenset({"LIVE", "FILLED"})
        assert "Live" in mapper


# ============================================================
# FLAG-BASED STATUS
# ============================================================

class TestStatusFromFillFlags:
    """Tests for flag-combination status."""

    @pytest.mark.parametrize("quantity,remaining,is_open,cancel,expected", [
        ("10", "10", True, False, OrderStatus.NEW),
        ("10", "4", True, False, OrderStatus.PARTIAL),
        ("10", "0", False, False, OrderStatus.FILLED),
        ("10", "0", True, False, OrderStatus.FILLED),
        ("10", "4", False, False, OrderStatus.CANCELLED),
        ("10", "10", False, False, OrderStatus.CANCELLED),
        ("10", "4", True, True, OrderStatus.CANCELING),
    ])
    def test_flags(self, quantity, remaining, is_open, cancel, expected):
        status = status_from_fill_flags(
            Decimal(quantity),
            Decimal(remaining),
            is_open,
            cancel_initiated=cancel,
        )
        assert status is expected


# ============================================================
# ORDER MUTATION
# ============================================================

class TestOrderMutation:
    """Tests for apply_update and mark_canceling."""

    def test_apply_update(self, order):
        update = OrderUpdate(
            status=OrderStatus.PARTIAL,
            deal_quantity=Decimal("0.4"),
            deal_rate=Decimal("0.049"),
        )

        apply_update(order, update, raw_response='{"status":"PARTIALLY_FILLED"}')

        assert order.status is OrderStatus.PARTIAL
        assert order.deal_quantity == Decimal("0.4")
        assert order.deal_rate == Decimal("0.049")
        assert order.status_message == '{"status":"PARTIALLY_FILLED"}'

    def test_missing_fills_are_kept(self, order):
        order.deal_quantity = Decimal("0.4")

        apply_update(order, OrderUpdate(status=OrderStatus.OTHER))

        assert order.deal_quantity == Decimal("0.4")

    def test_canceling_until_next_status_query(self, order):
        """CANCELING holds until a confirmed status overwrites it."""
        mark_canceling(order, raw_response='{"success":true}')

        assert order.status is OrderStatus.CANCELING
        assert order.cancel_status == '{"success":true}'
        assert not order.status.is_terminal()

        apply_update(order, OrderUpdate(status=OrderStatus.CANCELLED))

        assert order.status is OrderStatus.CANCELLED
        assert order.status.is_terminal()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
