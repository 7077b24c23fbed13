"""
Exchange Gateway - Generic REST Adapter.

============================================================
PURPOSE
============================================================
Implements every adapter operation once, driven by
per-exchange configuration:

    ENDPOINTS       where each operation lives
    SIGNING         how private requests are signed
    STATUS_MAPPER   how status tokens normalize
    RESULT_KEY      which envelope field carries the payload

plus small parse hooks that turn one decoded payload entry
into canonical types. Control flow (credential check, signing,
decoding, envelope check, error mapping, logging) lives here.

============================================================
"""

import json
import time
from abc import abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..config import ExchangeConfig
from ..errors import (
    ExchangeException,
    create_decode_error,
    create_exchange_failure,
    create_unsupported_operation_error,
)
from ..logging_utils import mask_params
from ..registry import Registry
from ..signing import RequestSigner, SigningScheme
from ..status import StatusMapper, apply_update, mark_canceling
from ..transport import HttpTransport
from ..types import (
    AccountOperation,
    BookLevel,
    ChainType,
    Coin,
    CoinConstraint,
    DataSource,
    Maker,
    OperationType,
    Order,
    OrderSide,
    OrderStatus,
    OrderUpdate,
    Pair,
    PairConstraint,
)
from .base import ExchangeAdapter, now_ms, to_decimal


# Anything a parse hook may raise on an unexpected shape
DECODE_ERRORS = (
    AttributeError,
    KeyError,
    IndexError,
    TypeError,
    ValueError,
    InvalidOperation,
)


# ============================================================
# ENDPOINT CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class Endpoint:
    """
    One REST endpoint.

    path may contain {symbol} and {side} placeholders.
    """

    path: str
    method: str = "GET"
    signed: bool = False

    enveloped: bool = True
    """Response is wrapped in the exchange's success envelope."""


@dataclass(frozen=True)
class EndpointCatalog:
    """Endpoints for every adapter operation."""

    coins: Endpoint
    pairs: Endpoint
    order_book: Endpoint
    place_order: Endpoint
    order_status: Endpoint
    cancel_order: Endpoint
    balances: Endpoint
    withdraw: Optional[Endpoint] = None


@dataclass
class RawResponse:
    """What went over the wire for one call."""

    text: str
    url: str
    params: Dict[str, str] = field(default_factory=dict)


# ============================================================
# REST EXCHANGE ADAPTER
# ============================================================

class RestExchangeAdapter(ExchangeAdapter):
    """
    Configuration-driven adapter for JSON REST exchanges.

    Subclasses set the class attributes below and implement the
    parse hooks. Every other behavior is shared.
    """

    EXCHANGE_ID: str = ""
    BASE_URL: str = ""
    WEB_URL_TEMPLATE: str = ""
    ENDPOINTS: EndpointCatalog = None
    SIGNING: SigningScheme = SigningScheme()
    STATUS_MAPPER: Optional[StatusMapper] = None

    RESULT_KEY: str = "data"
    """Envelope field carrying the payload."""

    # Coin constraint defaults when discovery does not provide them
    DEFAULT_TX_FEE = Decimal("0")
    DEFAULT_WITHDRAW = False
    DEFAULT_DEPOSIT = False
    DEFAULT_CONFIRMATION = 0
    DEFAULT_MAKER_FEE = Decimal("0")
    DEFAULT_TAKER_FEE = Decimal("0")

    def __init__(
        self,
        config: ExchangeConfig,
        registry: Registry,
        transport: Optional[HttpTransport] = None,
        clock: Callable[[], int] = None,
    ):
        """
        Initialize adapter.

        Args:
            config: Exchange configuration
            registry: Shared coin/pair registry and balance cache
            transport: HTTP transport (created from config if None)
            clock: Nanosecond clock for nonces (time.time_ns)
        """
        super().__init__(config, registry, transport)
        self._signer = RequestSigner(
            self.SIGNING,
            config.api_key,
            config.api_secret,
            clock=clock,
        )

    @property
    def exchange_id(self) -> str:
        return self.EXCHANGE_ID

    @property
    def base_url(self) -> str:
        return self._config.options.get("base_url", self.BASE_URL)

    def trading_web_url(self, pair: Pair) -> str:
        return self.WEB_URL_TEMPLATE.format(
            base=pair.base.code,
            target=pair.target.code,
            symbol=self.get_symbol_by_pair(pair),
        )

    # --------------------------------------------------------
    # WIRE
    # --------------------------------------------------------

    async def _send(
        self,
        operation: str,
        endpoint: Endpoint,
        params: Optional[Dict[str, Any]] = None,
        **path_args: str,
    ) -> RawResponse:
        """Sign (if needed) and send one request, returning raw text."""
        path = endpoint.path.format(**path_args)
        params = params or {}

        if endpoint.signed and endpoint.method == "GET":
            request = self._signer.sign_query(self.base_url, path, params)
        elif endpoint.signed:
            request = self._signer.sign_body(endpoint.method, self.base_url, path, params)
        else:
            request = None

        url = request.url if request else f"{self.base_url.rstrip('/')}{path}"
        request_id = self._log.log_request(
            operation,
            endpoint.method,
            url,
            headers=request.headers if request else None,
            body=request.body if request else None,
        )

        started = time.monotonic()
        try:
            if request is not None:
                text = await self._transport.send(request)
            else:
                text = await self._transport.get(url, params=params or None)
        except ExchangeException as e:
            e.error.operation = e.error.operation or operation
            self._log.log_response(
                operation,
                request_id,
                latency_ms=(time.monotonic() - started) * 1000,
                success=False,
                error_kind=e.kind.value,
                error_message=e.error.message,
            )
            raise

        self._log.log_response(
            operation,
            request_id,
            latency_ms=(time.monotonic() - started) * 1000,
            success=True,
            response_body=text,
        )
        return RawResponse(
            text=text,
            url=url,
            params=request.params if request else {str(k): str(v) for k, v in params.items()},
        )

    def _decode(self, operation: str, endpoint: Endpoint, raw: RawResponse) -> Any:
        """Decode JSON and unwrap the envelope."""
        try:
            data = json.loads(raw.text, parse_float=Decimal)
        except ValueError as e:
            raise ExchangeException(
                create_decode_error(self.exchange_id, operation, f"invalid JSON ({e})", raw.text)
            )

        if not endpoint.enveloped:
            return data
        return self._unwrap(operation, data, raw.text)

    def _unwrap(self, operation: str, data: Any, text: str) -> Any:
        """
        Check the {success, message, <RESULT_KEY>} envelope.

        Raises:
            ExchangeException: EXCHANGE if success is false,
                DECODE if the envelope is missing
        """
        if not isinstance(data, dict):
            raise ExchangeException(
                create_decode_error(self.exchange_id, operation, "envelope is not an object", text)
            )
        if "success" in data and not data["success"]:
            raise ExchangeException(
                create_exchange_failure(self.exchange_id, operation, data.get("message") or "", text)
            )
        if self.RESULT_KEY not in data:
            raise ExchangeException(
                create_decode_error(
                    self.exchange_id, operation, f"missing '{self.RESULT_KEY}'", text
                )
            )
        return data[self.RESULT_KEY]

    async def _call(
        self,
        operation: str,
        endpoint: Endpoint,
        params: Optional[Dict[str, Any]] = None,
        **path_args: str,
    ) -> Tuple[Any, RawResponse]:
        raw = await self._send(operation, endpoint, params, **path_args)
        return self._decode(operation, endpoint, raw), raw

    def _parse(self, operation: str, raw: RawResponse, hook: Callable, *args) -> Any:
        """Run a parse hook, mapping shape errors to DECODE."""
        try:
            return hook(*args)
        except DECODE_ERRORS as e:
            raise ExchangeException(
                create_decode_error(self.exchange_id, operation, repr(e), raw.text)
            )

    def _entries(self, operation: str, raw: RawResponse, hook: Callable, payload: Any) -> List[Any]:
        """Materialize a payload's entry list, mapping shape errors to DECODE."""
        return self._parse(operation, raw, lambda: list(hook(payload)))

    def _require_symbol(self, pair: Pair, operation: str) -> str:
        symbol = self.get_symbol_by_pair(pair)
        if not symbol:
            raise ExchangeException(create_unsupported_operation_error(
                self.exchange_id, operation, f"pair {pair.key} is not listed"
            ))
        return symbol

    # --------------------------------------------------------
    # CATALOG RESOLUTION
    # --------------------------------------------------------

    def _resolve_coin(self, symbol: str) -> Optional[Coin]:
        """
        Coin for an exchange symbol.

        Live discovery registers new coins; snapshot mode only
        refreshes coins the snapshot already knows.
        """
        if self._config.source is DataSource.JSON_FILE:
            return self.get_coin_by_symbol(symbol)
        return self._registry.add_coin(symbol)

    def _resolve_pair(self, symbol: str, base_symbol: str, target_symbol: str) -> Optional[Pair]:
        if self._config.source is DataSource.JSON_FILE:
            return self.get_pair_by_symbol(symbol)
        return self._registry.get_pair(
            self._registry.add_coin(base_symbol),
            self._registry.add_coin(target_symbol),
        )

    def _default_coin_constraint(self, coin: Coin, ex_symbol: str) -> CoinConstraint:
        return CoinConstraint(
            coin=coin,
            ex_symbol=ex_symbol,
            chain_type=ChainType.MAINNET,
            tx_fee=self.DEFAULT_TX_FEE,
            withdraw=self.DEFAULT_WITHDRAW,
            deposit=self.DEFAULT_DEPOSIT,
            confirmation=self.DEFAULT_CONFIRMATION,
            listed=True,
        )

    # --------------------------------------------------------
    # DISCOVERY
    # --------------------------------------------------------

    async def fetch_assets(self) -> None:
        payload, raw = await self._call("fetch_assets", self.ENDPOINTS.coins)
        entries = self._entries("fetch_assets", raw, self._coin_entries, payload)

        loaded = 0
        for entry in entries:
            try:
                constraints = self._parse_coin_entry(entry)
            except DECODE_ERRORS as e:
                self._log.warning(f"fetch_assets: skipping malformed entry {entry!r}: {e!r}")
                continue
            for constraint in constraints:
                self.set_coin_constraint(constraint)
                loaded += 1

        self._log.info(f"fetch_assets: {loaded} coin constraints")

    async def fetch_markets(self) -> None:
        payload, raw = await self._call("fetch_markets", self.ENDPOINTS.pairs)
        entries = self._entries("fetch_markets", raw, self._pair_entries, payload)

        loaded = 0
        for entry in entries:
            try:
                constraint = self._parse_pair_entry(entry)
            except DECODE_ERRORS as e:
                self._log.warning(f"fetch_markets: skipping malformed entry {entry!r}: {e!r}")
                continue
            if constraint is not None:
                self.set_pair_constraint(constraint)
                loaded += 1

        self._log.info(f"fetch_markets: {loaded} pair constraints")

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def order_book(self, pair: Pair) -> Maker:
        symbol = self._require_symbol(pair, "order_book")

        before = now_ms()
        payload, raw = await self._call(
            "order_book",
            self.ENDPOINTS.order_book,
            self._book_params(symbol),
            symbol=symbol,
        )
        after = now_ms()

        bids, asks = self._parse("order_book", raw, self._parse_book, payload)
        return Maker(
            worker_id=self._config.worker_id,
            source=DataSource.EXCHANGE_API,
            before_timestamp=before,
            after_timestamp=after,
            bids=tuple(bids),
            asks=tuple(asks),
        )

    # --------------------------------------------------------
    # TRADING
    # --------------------------------------------------------

    async def place_order(
        self,
        pair: Pair,
        quantity: Decimal,
        rate: Decimal,
        side: OrderSide,
    ) -> Order:
        self.require_credentials("place_order")
        symbol = self._require_symbol(pair, "place_order")
        quantity = to_decimal(quantity)
        rate = to_decimal(rate)

        payload, raw = await self._call(
            "place_order",
            self.ENDPOINTS.place_order,
            self._order_request(symbol, quantity, rate, side),
            symbol=symbol,
            side=side.value.lower(),
        )
        order_id = self._parse("place_order", raw, self._parse_order_id, payload)

        order = Order(
            pair=pair,
            side=side,
            quantity=quantity,
            rate=rate,
            order_id=str(order_id),
            status=OrderStatus.NEW,
            exchange=self.exchange_id,
            json_response=raw.text,
        )
        self._log.log_order(
            "place",
            order_id=order.order_id,
            pair=pair.key,
            side=side.value,
            quantity=quantity,
            rate=rate,
            status=order.status.value,
        )
        return order

    async def order_status(self, order: Order) -> None:
        self.require_credentials("order_status")

        payload, raw = await self._call(
            "order_status",
            self.ENDPOINTS.order_status,
            self._status_params(order),
            symbol=self.get_symbol_by_pair(order.pair),
        )
        update = self._parse("order_status", raw, self._parse_order_update, payload)
        apply_update(order, update, raw.text)

        self._log.log_order(
            "status",
            order_id=order.order_id,
            pair=order.pair.key,
            status=order.status.value,
            deal_quantity=order.deal_quantity,
            deal_rate=order.deal_rate,
        )

    async def cancel_order(self, order: Order) -> None:
        self.require_credentials("cancel_order")

        _, raw = await self._call(
            "cancel_order",
            self.ENDPOINTS.cancel_order,
            self._cancel_params(order),
            symbol=self.get_symbol_by_pair(order.pair),
        )
        mark_canceling(order, raw.text)

        self._log.log_order(
            "cancel",
            order_id=order.order_id,
            pair=order.pair.key,
            status=order.status.value,
        )

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    async def update_balances(self) -> None:
        if not self._config.has_credentials():
            self._log.warning("update_balances: API Key or Secret Key are empty")
            return

        try:
            payload, raw = await self._call("update_balances", self.ENDPOINTS.balances)
            entries = self._entries("update_balances", raw, self._balance_entries, payload)
        except ExchangeException as e:
            self._log.warning(f"update_balances failed: {e}")
            return

        balances: Dict[str, Decimal] = {}
        for entry in entries:
            try:
                symbol, available = self._parse_balance_entry(entry)
            except DECODE_ERRORS as e:
                self._log.warning(f"update_balances: skipping malformed entry {entry!r}: {e!r}")
                continue
            coin = self.get_coin_by_symbol(symbol)
            if coin is not None:
                balances[coin.code] = available

        self._registry.replace_balances(self.exchange_id, balances)
        self._log.debug(f"update_balances: {len(balances)} balances")

    async def withdraw(
        self,
        coin: Coin,
        quantity: Decimal,
        address: str,
        tag: str = "",
    ) -> bool:
        if not self._config.has_credentials():
            self._log.warning("withdraw: API Key or Secret Key are empty")
            return False

        operation = AccountOperation(
            type=OperationType.WITHDRAW,
            coin=coin,
            withdraw_amount=format(to_decimal(quantity), "f"),
            withdraw_address=address,
            withdraw_tag=tag,
            debug_mode=self._config.debug_mode,
        )
        try:
            await self.do_account_operation(operation)
        except ExchangeException as e:
            self._log.warning(f"withdraw failed: {e}")
            return False

        self._log.info(f"withdraw {coin.code} submitted: {operation.withdraw_id}")
        return True

    async def do_account_operation(self, operation: AccountOperation) -> None:
        try:
            if operation.type is not OperationType.WITHDRAW:
                raise ExchangeException(create_unsupported_operation_error(
                    self.exchange_id,
                    "do_account_operation",
                    f"Operation type invalid: {operation.type.value}",
                ))
            await self._do_withdraw(operation)
        except ExchangeException as e:
            operation.error = e.error
            raise

    async def _do_withdraw(self, operation: AccountOperation) -> None:
        self.require_credentials("withdraw")

        endpoint = self.ENDPOINTS.withdraw
        if endpoint is None:
            raise ExchangeException(
                create_unsupported_operation_error(self.exchange_id, "withdraw")
            )

        symbol = self.get_symbol_by_coin(operation.coin) if operation.coin else ""
        if not symbol:
            raise ExchangeException(create_unsupported_operation_error(
                self.exchange_id, "withdraw", f"coin {operation.coin} is not listed"
            ))

        raw = await self._send("withdraw", endpoint, self._withdraw_params(symbol, operation))
        if operation.debug_mode:
            operation.request_uri = endpoint.path
            operation.map_params = json.dumps(mask_params(raw.params))
            operation.call_response = raw.text

        payload = self._decode("withdraw", endpoint, raw)
        operation.withdraw_id = str(
            self._parse("withdraw", raw, self._parse_withdraw_id, payload)
        )

    # --------------------------------------------------------
    # PARSE HOOKS
    # --------------------------------------------------------
    # Shape errors raised from hooks (KeyError, ValueError, ...)
    # become DECODE errors, or skipped entries during discovery.

    def _coin_entries(self, payload: Any) -> Iterable[Any]:
        return payload

    @abstractmethod
    def _parse_coin_entry(self, entry: Any) -> List[CoinConstraint]:
        """Coin constraints from one discovery entry (may be several chains)."""
        pass

    def _pair_entries(self, payload: Any) -> Iterable[Any]:
        return payload

    @abstractmethod
    def _parse_pair_entry(self, entry: Any) -> Optional[PairConstraint]:
        """Pair constraint from one market entry, None to skip it."""
        pass

    def _book_params(self, symbol: str) -> Dict[str, str]:
        return {}

    @abstractmethod
    def _parse_book(self, payload: Any) -> Tuple[List[BookLevel], List[BookLevel]]:
        pass

    @abstractmethod
    def _order_request(
        self,
        symbol: str,
        quantity: Decimal,
        rate: Decimal,
        side: OrderSide,
    ) -> Dict[str, str]:
        """Request params for a new limit order."""
        pass

    @abstractmethod
    def _parse_order_id(self, payload: Any) -> str:
        pass

    @abstractmethod
    def _status_params(self, order: Order) -> Dict[str, str]:
        pass

    @abstractmethod
    def _parse_order_update(self, payload: Any) -> OrderUpdate:
        """Raw status token and fill figures from a status payload."""
        pass

    def _cancel_params(self, order: Order) -> Dict[str, str]:
        return self._status_params(order)

    def _balance_entries(self, payload: Any) -> Iterable[Any]:
        return payload

    @abstractmethod
    def _parse_balance_entry(self, entry: Any) -> Tuple[str, Decimal]:
        pass

    @abstractmethod
    def _withdraw_params(self, symbol: str, operation: AccountOperation) -> Dict[str, str]:
        pass

    @abstractmethod
    def _parse_withdraw_id(self, payload: Any) -> str:
        pass


def optional_decimal(value: Any) -> Optional[Decimal]:
    """Decimal, or None for missing/blank values."""
    if value is None or value == "":
        return None
    return to_decimal(value)
