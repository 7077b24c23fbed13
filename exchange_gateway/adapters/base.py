"""
Exchange Gateway - Exchange Adapter Base.

============================================================
PURPOSE
============================================================
Abstract interface every exchange client implements.

DESIGN PRINCIPLES:
- Adapters take and return canonical types only
- Exchange wire types never cross this boundary
- Credential check is shared, never re-implemented per adapter

============================================================
OPERATIONS
============================================================
Discovery (degrade gracefully, skip malformed entries):
    fetch_assets, fetch_markets

Market data:
    order_book

Trading (propagate the first error, never retry):
    place_order, order_status, cancel_order

Account:
    update_balances      best-effort, logs and returns
    withdraw             returns bool
    do_account_operation records the error on the operation

============================================================
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from ..config import ExchangeConfig
from ..errors import ExchangeException, create_missing_credentials_error
from ..logging_utils import AdapterLogger
from ..registry import Registry
from ..snapshot import read_snapshot
from ..transport import HttpTransport
from ..types import (
    AccountOperation,
    ChainType,
    Coin,
    CoinConstraint,
    DataSource,
    Maker,
    Order,
    OrderSide,
    Pair,
    PairConstraint,
)


logger = logging.getLogger(__name__)


def now_ms() -> float:
    """Current epoch time in milliseconds."""
    return time.time() * 1000


def to_decimal(value: Any) -> Decimal:
    """Decimal from an exchange value (str, int, float or Decimal)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# ============================================================
# EXCHANGE ADAPTER INTERFACE
# ============================================================

class ExchangeAdapter(ABC):
    """
    Abstract base class for exchange adapters.

    Holds the per-exchange constraint stores and the shared
    credential precondition. Concrete adapters implement the
    network operations.
    """

    def __init__(
        self,
        config: ExchangeConfig,
        registry: Registry,
        transport: Optional[HttpTransport] = None,
    ):
        """
        Initialize adapter.

        Args:
            config: Exchange configuration
            registry: Shared coin/pair registry and balance cache
            transport: HTTP transport (created from config if None)
        """
        self._config = config
        self._registry = registry
        self._transport = transport or HttpTransport(
            self.exchange_id,
            timeout_seconds=config.timeout_seconds,
        )
        self._log = AdapterLogger(self.exchange_id)
        self._connected = False

        # Constraint stores, keyed by coin code / pair key
        self._lock = threading.RLock()
        self._coin_constraints: Dict[str, CoinConstraint] = {}
        self._pair_constraints: Dict[str, PairConstraint] = {}

    @property
    @abstractmethod
    def exchange_id(self) -> str:
        """Unique exchange identifier."""
        pass

    @property
    def config(self) -> ExchangeConfig:
        return self._config

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def is_connected(self) -> bool:
        return self._connected

    # --------------------------------------------------------
    # CONNECTION
    # --------------------------------------------------------

    async def connect(self) -> None:
        """Open the HTTP session."""
        await self._transport.open()
        self._connected = True
        logger.info(f"Connected to {self.exchange_id}")

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        self._connected = False
        await self._transport.close()
        logger.info(f"Disconnected from {self.exchange_id}")

    async def __aenter__(self) -> "ExchangeAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    # --------------------------------------------------------
    # CREDENTIALS
    # --------------------------------------------------------

    def require_credentials(self, operation: str) -> None:
        """
        Fail fast before a private call without API key or secret.

        Raises:
            ExchangeException: AUTHENTICATION, before any network call
        """
        if not self._config.has_credentials():
            self._log.warning(f"{operation}: API Key or Secret Key are empty")
            raise ExchangeException(
                create_missing_credentials_error(self.exchange_id, operation)
            )

    # --------------------------------------------------------
    # INITIALIZATION
    # --------------------------------------------------------

    async def initialize(self) -> None:
        """
        Populate constraints from the configured source.

        EXCHANGE_API runs live discovery; JSON_FILE seeds from the
        snapshot file without any network call.
        """
        if self._config.source is DataSource.JSON_FILE:
            self.load_constraints(read_snapshot(self._config.source_uri))
        else:
            await self.fetch_assets()
            await self.fetch_markets()

        self._log.info(
            f"Initialized from {self._config.source.value}: "
            f"{len(self._coin_constraints)} coins, "
            f"{len(self._pair_constraints)} pairs"
        )

    def load_constraints(self, snapshot: Mapping[str, Any]) -> None:
        """Seed registry and constraint stores from a snapshot mapping."""
        self._registry.load_snapshot(snapshot)

        for entry in snapshot.get("coin_constraints") or []:
            coin = self._registry.add_coin(entry["code"])
            self.set_coin_constraint(CoinConstraint(
                coin=coin,
                ex_symbol=entry.get("ex_symbol", coin.code),
                chain_type=ChainType(entry.get("chain_type", ChainType.MAINNET.value)),
                tx_fee=to_decimal(entry.get("tx_fee", "0")),
                withdraw=bool(entry.get("withdraw", False)),
                deposit=bool(entry.get("deposit", False)),
                confirmation=int(entry.get("confirmation", 0)),
                listed=bool(entry.get("listed", True)),
            ))

        for entry in snapshot.get("pair_constraints") or []:
            pair = self._registry.get_pair(
                self._registry.add_coin(entry["base"]),
                self._registry.add_coin(entry["target"]),
            )
            self.set_pair_constraint(PairConstraint(
                pair=pair,
                ex_symbol=entry["ex_symbol"],
                maker_fee=to_decimal(entry.get("maker_fee", "0")),
                taker_fee=to_decimal(entry.get("taker_fee", "0")),
                lot_size=to_decimal(entry.get("lot_size", "1")),
                price_filter=to_decimal(entry.get("price_filter", "1")),
                listed=bool(entry.get("listed", True)),
            ))

    # --------------------------------------------------------
    # CONSTRAINT STORES
    # --------------------------------------------------------

    def set_coin_constraint(self, constraint: CoinConstraint) -> None:
        with self._lock:
            self._coin_constraints[constraint.coin.code] = constraint

    def set_pair_constraint(self, constraint: PairConstraint) -> None:
        with self._lock:
            self._pair_constraints[constraint.pair.key] = constraint

    def get_coin_constraint(self, coin: Coin) -> Optional[CoinConstraint]:
        with self._lock:
            return self._coin_constraints.get(coin.code)

    def get_pair_constraint(self, pair: Pair) -> Optional[PairConstraint]:
        with self._lock:
            return self._pair_constraints.get(pair.key)

    def get_coin_by_symbol(self, symbol: str) -> Optional[Coin]:
        """Canonical coin for an exchange-local symbol (case-insensitive)."""
        wanted = symbol.upper()
        with self._lock:
            for constraint in self._coin_constraints.values():
                if constraint.ex_symbol.upper() == wanted:
                    return constraint.coin
        return None

    def get_pair_by_symbol(self, symbol: str) -> Optional[Pair]:
        """Canonical pair for an exchange-local market symbol."""
        wanted = symbol.upper()
        with self._lock:
            for constraint in self._pair_constraints.values():
                if constraint.ex_symbol.upper() == wanted:
                    return constraint.pair
        return None

    def get_symbol_by_coin(self, coin: Coin) -> str:
        constraint = self.get_coin_constraint(coin)
        return constraint.ex_symbol if constraint else ""

    def get_symbol_by_pair(self, pair: Pair) -> str:
        constraint = self.get_pair_constraint(pair)
        return constraint.ex_symbol if constraint else ""

    def has_coin(self, coin: Coin) -> bool:
        return self.get_coin_constraint(coin) is not None

    def has_pair(self, pair: Pair) -> bool:
        return self.get_pair_constraint(pair) is not None

    def get_coins(self) -> List[Coin]:
        """Coins listed on this exchange."""
        with self._lock:
            return [c.coin for c in self._coin_constraints.values() if c.listed]

    def get_pairs(self) -> List[Pair]:
        """Pairs listed on this exchange."""
        with self._lock:
            return [c.pair for c in self._pair_constraints.values() if c.listed]

    # --------------------------------------------------------
    # CONSTRAINT LOOKUPS
    # --------------------------------------------------------
    # Unknown coins/pairs give neutral values: no fee, disabled,
    # unit granularity.

    def get_tx_fee(self, coin: Coin) -> Decimal:
        constraint = self.get_coin_constraint(coin)
        return constraint.tx_fee if constraint else Decimal("0")

    def can_withdraw(self, coin: Coin) -> bool:
        constraint = self.get_coin_constraint(coin)
        return constraint.withdraw if constraint else False

    def can_deposit(self, coin: Coin) -> bool:
        constraint = self.get_coin_constraint(coin)
        return constraint.deposit if constraint else False

    def get_confirmation(self, coin: Coin) -> int:
        constraint = self.get_coin_constraint(coin)
        return constraint.confirmation if constraint else 0

    def get_fee(self, pair: Pair, maker: bool = False) -> Decimal:
        """Taker fee rate by default, maker fee rate if maker."""
        constraint = self.get_pair_constraint(pair)
        if constraint is None:
            return Decimal("0")
        return constraint.maker_fee if maker else constraint.taker_fee

    def get_lot_size(self, pair: Pair) -> Decimal:
        constraint = self.get_pair_constraint(pair)
        return constraint.lot_size if constraint else Decimal("1")

    def get_price_filter(self, pair: Pair) -> Decimal:
        constraint = self.get_pair_constraint(pair)
        return constraint.price_filter if constraint else Decimal("1")

    def get_balance(self, coin: Coin) -> Decimal:
        """Latest cached available balance (see update_balances)."""
        return self._registry.get_balance(self.exchange_id, coin.code)

    # --------------------------------------------------------
    # DISCOVERY
    # --------------------------------------------------------

    @abstractmethod
    async def fetch_assets(self) -> None:
        """Populate/refresh coin constraints."""
        pass

    @abstractmethod
    async def fetch_markets(self) -> None:
        """Populate/refresh pair constraints."""
        pass

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    @abstractmethod
    async def order_book(self, pair: Pair) -> Maker:
        """
        Capture one order-book snapshot.

        Timestamps on the returned Maker bracket the network call.
        """
        pass

    @abstractmethod
    def trading_web_url(self, pair: Pair) -> str:
        """Exchange web page for trading this pair."""
        pass

    # --------------------------------------------------------
    # TRADING
    # --------------------------------------------------------

    @abstractmethod
    async def place_order(
        self,
        pair: Pair,
        quantity: Decimal,
        rate: Decimal,
        side: OrderSide,
    ) -> Order:
        """
        Place a limit order.

        Raises:
            ExchangeException: AUTHENTICATION without credentials,
                otherwise the first transport/decode/exchange error
        """
        pass

    async def limit_buy(self, pair: Pair, quantity: Decimal, rate: Decimal) -> Order:
        return await self.place_order(pair, quantity, rate, OrderSide.BUY)

    async def limit_sell(self, pair: Pair, quantity: Decimal, rate: Decimal) -> Order:
        return await self.place_order(pair, quantity, rate, OrderSide.SELL)

    @abstractmethod
    async def order_status(self, order: Order) -> None:
        """Refresh status and fills of order in place."""
        pass

    @abstractmethod
    async def cancel_order(self, order: Order) -> None:
        """
        Request cancellation.

        On success the order reads CANCELING until the next
        order_status call.
        """
        pass

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    @abstractmethod
    async def update_balances(self) -> None:
        """Refresh cached balances; never raises."""
        pass

    @abstractmethod
    async def withdraw(
        self,
        coin: Coin,
        quantity: Decimal,
        address: str,
        tag: str = "",
    ) -> bool:
        """Submit a withdrawal; False on any failure."""
        pass

    @abstractmethod
    async def do_account_operation(self, operation: AccountOperation) -> None:
        """
        Execute an account operation envelope.

        Raises:
            ExchangeException: also stored on operation.error
        """
        pass
