"""
Exchange Gateway - Bgogo Adapter.

============================================================
PURPOSE
============================================================
Bgogo spot exchange, Binance-style private API.

WIRE DIALECT:
- Discovery from public tickers keyed "TARGET/BASE"
  (ETH/BTC trades ETH priced in BTC)
- No declared precision: price and lot granularity are
  inferred from last price and 24h quote turnover
- Private calls: HMAC-SHA256 over the sorted query,
  "signature" param, X-MBX-APIKEY header, ms timestamp
- POST/DELETE carry the signed params as a JSON body
- Envelope: {"success": bool, "message": str, "data": ...}

============================================================
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from ..precision import infer_granularity
from ..signing import (
    DigestAlgorithm,
    KeyOrder,
    NonceUnit,
    SignaturePlacement,
    SignatureTarget,
    SigningScheme,
)
from ..status import BINANCE_STYLE_STATUS, StatusMapper
from ..types import (
    AccountOperation,
    BookLevel,
    CoinConstraint,
    Order,
    OrderSide,
    OrderUpdate,
    PairConstraint,
)
from .base import to_decimal
from .rest import Endpoint, EndpointCatalog, RestExchangeAdapter, optional_decimal


def split_symbol(symbol: str) -> Tuple[str, str]:
    """Split "ETH/BTC" into (target, base)."""
    parts = symbol.split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Malformed market symbol: {symbol!r}")
    return parts[0], parts[1]


class BgogoAdapter(RestExchangeAdapter):
    """Bgogo exchange adapter."""

    EXCHANGE_ID = "bgogo"
    BASE_URL = "https://bgogo.com"
    WEB_URL_TEMPLATE = "https://bgogo.com/trade/{target}-{base}"
    RESULT_KEY = "data"

    ENDPOINTS = EndpointCatalog(
        coins=Endpoint("/api/tickers", enveloped=False),
        pairs=Endpoint("/api/tickers", enveloped=False),
        order_book=Endpoint("/api/v2/snapshot/{symbol}"),
        place_order=Endpoint("/api/v1/order", method="POST", signed=True),
        order_status=Endpoint("/api/v1/order", signed=True),
        cancel_order=Endpoint("/api/v1/order", method="DELETE", signed=True),
        balances=Endpoint("/api/v1/account/balances", signed=True),
        withdraw=Endpoint("/api/v1/withdraw", method="POST", signed=True),
    )

    SIGNING = SigningScheme(
        digest=DigestAlgorithm.SHA256,
        key_order=KeyOrder.SORTED,
        target=SignatureTarget.QUERY,
        placement=SignaturePlacement.QUERY_PARAM,
        signature_name="signature",
        api_key_header="X-MBX-APIKEY",
        nonce_param="timestamp",
        nonce_unit=NonceUnit.MILLISECONDS,
    )

    STATUS_MAPPER = StatusMapper(BINANCE_STYLE_STATUS)

    DEFAULT_CONFIRMATION = 2
    DEFAULT_MAKER_FEE = Decimal("0.001")
    DEFAULT_TAKER_FEE = Decimal("0.001")

    # --------------------------------------------------------
    # DISCOVERY
    # --------------------------------------------------------

    def _coin_entries(self, payload: Dict[str, Any]) -> List[str]:
        return list(payload.keys())

    def _parse_coin_entry(self, symbol: str) -> List[CoinConstraint]:
        target_symbol, base_symbol = split_symbol(symbol)

        constraints = []
        for ex_symbol in (base_symbol, target_symbol):
            coin = self._resolve_coin(ex_symbol)
            if coin is not None:
                constraints.append(self._default_coin_constraint(coin, ex_symbol))
        return constraints

    def _pair_entries(self, payload: Dict[str, Any]) -> List[Tuple[str, Dict[str, Any]]]:
        return list(payload.items())

    def _parse_pair_entry(self, entry: Tuple[str, Dict[str, Any]]) -> Optional[PairConstraint]:
        symbol, ticker = entry
        target_symbol, base_symbol = split_symbol(symbol)

        pair = self._resolve_pair(symbol, base_symbol, target_symbol)
        if pair is None:
            return None

        return PairConstraint(
            pair=pair,
            ex_symbol=symbol,
            maker_fee=self.DEFAULT_MAKER_FEE,
            taker_fee=self.DEFAULT_TAKER_FEE,
            lot_size=infer_granularity(ticker.get("past_24hrs_quote_turnover")),
            price_filter=infer_granularity(ticker.get("last_price")),
            listed=True,
        )

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    def _parse_book(self, payload: Dict[str, Any]) -> Tuple[List[BookLevel], List[BookLevel]]:
        book = payload["order_books"]
        bids = [
            BookLevel(quantity=to_decimal(level["amount"]), rate=to_decimal(level["price"]))
            for level in book.get("bids") or []
        ]
        asks = [
            BookLevel(quantity=to_decimal(level["amount"]), rate=to_decimal(level["price"]))
            for level in book.get("asks") or []
        ]
        return bids, asks

    # --------------------------------------------------------
    # TRADING
    # --------------------------------------------------------

    def _order_request(
        self,
        symbol: str,
        quantity: Decimal,
        rate: Decimal,
        side: OrderSide,
    ) -> Dict[str, str]:
        return {
            "symbol": symbol,
            "side": side.value.upper(),
            "type": "LIMIT",
            "price": format(rate, "f"),
            "quantity": format(quantity, "f"),
        }

    def _parse_order_id(self, payload: Dict[str, Any]) -> str:
        return payload["orderId"]

    def _status_params(self, order: Order) -> Dict[str, str]:
        return {
            "symbol": self.get_symbol_by_pair(order.pair),
            "orderId": order.order_id,
        }

    def _parse_order_update(self, payload: Dict[str, Any]) -> OrderUpdate:
        return OrderUpdate(
            status=self.STATUS_MAPPER.normalize(payload.get("status")),
            deal_quantity=optional_decimal(payload.get("executedQty")),
            deal_rate=optional_decimal(payload.get("averagePrice")),
        )

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    def _parse_balance_entry(self, entry: Dict[str, Any]) -> Tuple[str, Decimal]:
        return entry["asset"], to_decimal(entry["available"])

    def _withdraw_params(self, symbol: str, operation: AccountOperation) -> Dict[str, str]:
        return {
            "asset": symbol,
            "address": operation.withdraw_address,
            "amount": operation.withdraw_amount,
        }

    def _parse_withdraw_id(self, payload: Dict[str, Any]) -> str:
        return payload["id"]
