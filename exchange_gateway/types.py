"""
Exchange Gateway - Types.

============================================================
PURPOSE
============================================================
Canonical domain model shared by every exchange adapter.

CRITICAL PRINCIPLE:
    "Adapters speak the exchange's dialect on the wire,
     callers only ever see these types."

============================================================
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any, Tuple
from dataclasses import dataclass, field
from enum import Enum

from .precision import is_granularity


# ============================================================
# ENUMERATIONS
# ============================================================

class DataSource(Enum):
    """Where coin/pair catalogs come from."""

    EXCHANGE_API = "EXCHANGE_API"
    """Live discovery calls."""

    JSON_FILE = "JSON_FILE"
    """Static snapshot file."""


class ChainType(Enum):
    """Network a coin is deposited/withdrawn on."""

    MAINNET = "MAINNET"
    ERC20 = "ERC20"
    TRC20 = "TRC20"
    BEP2 = "BEP2"
    BEP20 = "BEP20"
    OMNI = "OMNI"
    OTHER = "OTHER"


class OrderSide(Enum):
    """Order side."""

    BUY = "Buy"
    SELL = "Sell"


class OrderStatus(Enum):
    """
    Canonical order status.

    Flat set, every exchange token maps onto exactly one member.
    CANCELING is client-side: set right after a cancel request and
    replaced by the next confirmed status query.
    """

    NEW = "New"
    PARTIAL = "Partial"
    FILLED = "Filled"
    CANCELING = "Canceling"
    CANCELLED = "Cancelled"
    REJECTED = "Rejected"
    EXPIRED = "Expired"
    OTHER = "Other"

    def is_terminal(self) -> bool:
        """Check if the exchange will not change this order any more."""
        return self in {
            OrderStatus.FILLED,
            OrderStatus.CANCELLED,
            OrderStatus.REJECTED,
            OrderStatus.EXPIRED,
        }


class OperationType(Enum):
    """Account operation kinds."""

    WITHDRAW = "Withdraw"
    TRANSFER = "Transfer"
    BALANCE = "Balance"
    BALANCE_LIST = "BalanceList"


# ============================================================
# COINS AND PAIRS
# ============================================================

@dataclass(frozen=True)
class Coin:
    """Globally identified asset, e.g. BTC."""

    id: int
    code: str

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True)
class Pair:
    """
    Ordered (base, target) market.

    Quantities are expressed in target, prices in base:
    the BTC|ETH pair trades ETH priced in BTC.
    """

    id: int
    base: Coin
    target: Coin

    @property
    def key(self) -> str:
        """Display key in registration orientation, e.g. BTC|ETH."""
        return pair_key(self.base.code, self.target.code)

    def __str__(self) -> str:
        return self.key


def pair_key(base_code: str, target_code: str) -> str:
    """Build the display key for a base/target combination."""
    return f"{base_code.upper()}|{target_code.upper()}"


def combination_key(first_code: str, second_code: str) -> str:
    """Orientation-free identity of two coins: ETH,BTC and BTC,ETH match."""
    return "|".join(sorted((first_code.upper(), second_code.upper())))


# ============================================================
# PER-EXCHANGE CONSTRAINTS
# ============================================================

@dataclass
class CoinConstraint:
    """Trading metadata for one coin on one exchange."""

    coin: Coin
    """Canonical coin."""

    ex_symbol: str
    """Exchange-local symbol."""

    chain_type: ChainType = ChainType.MAINNET
    """Deposit/withdraw network."""

    tx_fee: Decimal = Decimal("0")
    """Withdrawal fee, in the coin itself."""

    withdraw: bool = False
    """Withdrawals enabled."""

    deposit: bool = False
    """Deposits enabled."""

    confirmation: int = 0
    """Minimum confirmations before a deposit is credited."""

    listed: bool = True
    """Whether the exchange currently lists the coin."""


@dataclass
class PairConstraint:
    """Trading metadata for one pair on one exchange."""

    pair: Pair
    """Canonical pair."""

    ex_symbol: str
    """Exchange-local market symbol."""

    maker_fee: Decimal = Decimal("0")
    taker_fee: Decimal = Decimal("0")

    lot_size: Decimal = Decimal("1")
    """Minimum quantity increment, a power of ten <= 1."""

    price_filter: Decimal = Decimal("1")
    """Minimum price increment, a power of ten <= 1."""

    listed: bool = True

    def __post_init__(self) -> None:
        for name in ("lot_size", "price_filter"):
            value = getattr(self, name)
            if not is_granularity(value):
                raise ValueError(
                    f"{name} must be a power of ten <= 1, got {value}"
                )


# ============================================================
# ORDERS
# ============================================================

@dataclass
class Order:
    """
    Trading intent and its latest known result.

    Created by place_order; mutated only by order_status and
    cancel_order. Callers serialize those two for one order.
    """

    pair: Pair
    side: OrderSide
    quantity: Decimal
    rate: Decimal

    order_id: str = ""
    """Exchange-assigned identifier."""

    status: OrderStatus = OrderStatus.NEW

    deal_quantity: Decimal = Decimal("0")
    """Executed quantity."""

    deal_rate: Decimal = Decimal("0")
    """Average execution price."""

    exchange: str = ""

    # Raw payloads kept for diagnosis
    json_response: str = ""
    """Raw placement response."""

    status_message: str = ""
    """Raw response of the last status query."""

    cancel_status: str = ""
    """Raw response of the cancel request."""

    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class OrderUpdate:
    """Normalized result of one status query."""

    status: OrderStatus
    deal_quantity: Optional[Decimal] = None
    deal_rate: Optional[Decimal] = None


# ============================================================
# ORDER BOOK
# ============================================================

@dataclass(frozen=True)
class BookLevel:
    """One price level of an order book."""

    quantity: Decimal
    rate: Decimal


@dataclass(frozen=True)
class Maker:
    """
    Order-book snapshot.

    before_timestamp and after_timestamp (epoch ms) bracket the
    network call, so callers can bound staleness.
    """

    worker_id: str
    source: DataSource
    before_timestamp: float
    after_timestamp: float
    bids: Tuple[BookLevel, ...] = ()
    asks: Tuple[BookLevel, ...] = ()

    @property
    def best_bid(self) -> Optional[BookLevel]:
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> Optional[BookLevel]:
        return self.asks[0] if self.asks else None


# ============================================================
# ACCOUNT OPERATIONS
# ============================================================

@dataclass
class AccountOperation:
    """
    Request/response envelope for withdraw, transfer and balance calls.

    In debug mode the adapter also records the request it sent and
    the raw response it got back.
    """

    type: OperationType
    coin: Optional[Coin] = None

    # Inputs
    withdraw_amount: str = ""
    withdraw_address: str = ""
    withdraw_tag: str = ""
    debug_mode: bool = False

    # Debug capture
    request_uri: str = ""
    map_params: str = ""
    call_response: str = ""

    # Outputs
    withdraw_id: str = ""
    error: Optional[Any] = None
    """ExchangeError of the failed call, if any."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": self.type.value,
            "coin": self.coin.code if self.coin else None,
            "withdraw_amount": self.withdraw_amount,
            "withdraw_address": self.withdraw_address,
            "withdraw_tag": self.withdraw_tag,
            "request_uri": self.request_uri,
            "withdraw_id": self.withdraw_id,
            "error": str(self.error) if self.error else None,
        }
