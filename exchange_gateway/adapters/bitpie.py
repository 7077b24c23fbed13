"""
Exchange Gateway - Bitpie Adapter.

============================================================
PURPOSE
============================================================
Bitpie (expie) exchange, Bittrex v1.1 style API.

WIRE DIALECT:
- Markets declare precision (moneyPrecision/stockPrecision),
  so no inference is needed
- Private calls are GETs: apikey + nanosecond nonce query
  params, HMAC-SHA512 over the full URL, "apisign" header
- Order status comes as flags (IsOpen, QuantityRemaining,
  CancelInitiated) rather than a status token
- Envelope: {"success": bool, "message": str, "result": ...}

============================================================
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from ..precision import resolve_granularity
from ..signing import (
    DigestAlgorithm,
    KeyOrder,
    NonceUnit,
    SignaturePlacement,
    SignatureTarget,
    SigningScheme,
)
from ..status import status_from_fill_flags
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


class BitpieAdapter(RestExchangeAdapter):
    """Bitpie exchange adapter."""

    EXCHANGE_ID = "bitpie"
    BASE_URL = "https://api.expie.com"
    WEB_URL_TEMPLATE = "https://www.expie.com/trade/{target}_{base}"
    RESULT_KEY = "result"

    ENDPOINTS = EndpointCatalog(
        coins=Endpoint("/v1/markets"),
        pairs=Endpoint("/v1.1/public/getmarkets"),
        order_book=Endpoint("/v1.1/public/getorderbook"),
        place_order=Endpoint("/v1.1/market/{side}limit", signed=True),
        order_status=Endpoint("/v1.1/account/getorder", signed=True),
        cancel_order=Endpoint("/v1.1/market/cancel", signed=True),
        balances=Endpoint("/v1.1/account/getbalances", signed=True),
        withdraw=Endpoint("/v1.1/account/withdraw", signed=True),
    )

    SIGNING = SigningScheme(
        digest=DigestAlgorithm.SHA512,
        key_order=KeyOrder.SORTED,
        target=SignatureTarget.URL,
        placement=SignaturePlacement.HEADER,
        signature_name="apisign",
        api_key_param="apikey",
        nonce_param="nonce",
        nonce_unit=NonceUnit.NANOSECONDS,
        extra_headers=(
            ("Content-Type", "application/json;charset=utf-8"),
            ("Accept", "application/json"),
        ),
    )

    DEFAULT_CONFIRMATION = 6

    # --------------------------------------------------------
    # DISCOVERY
    # --------------------------------------------------------

    def _parse_coin_entry(self, market: Dict[str, Any]) -> List[CoinConstraint]:
        constraints = []
        for ex_symbol in (market["money"], market["stock"]):
            coin = self._resolve_coin(ex_symbol)
            if coin is not None:
                constraints.append(self._default_coin_constraint(coin, ex_symbol))
        return constraints

    def _parse_pair_entry(self, market: Dict[str, Any]) -> Optional[PairConstraint]:
        pair = self._resolve_pair(market["name"], market["money"], market["stock"])
        if pair is None:
            return None

        return PairConstraint(
            pair=pair,
            ex_symbol=market["name"],
            maker_fee=to_decimal(market.get("makerFeeRate", 0)),
            taker_fee=to_decimal(market.get("takerFeeRate", 0)),
            lot_size=resolve_granularity(declared_digits=market.get("stockPrecision")),
            price_filter=resolve_granularity(declared_digits=market.get("moneyPrecision")),
            listed=bool(market.get("enabled", True)),
        )

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    def _book_params(self, symbol: str) -> Dict[str, str]:
        return {"market": symbol, "type": "both"}

    def _parse_book(self, payload: Dict[str, Any]) -> Tuple[List[BookLevel], List[BookLevel]]:
        bids = [
            BookLevel(quantity=to_decimal(level["Quantity"]), rate=to_decimal(level["Rate"]))
            for level in payload.get("buy") or []
        ]
        asks = [
            BookLevel(quantity=to_decimal(level["Quantity"]), rate=to_decimal(level["Rate"]))
            for level in payload.get("sell") or []
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
        # Side is encoded in the path (buylimit/selllimit)
        return {
            "market": symbol,
            "quantity": format(quantity, "f"),
            "rate": format(rate, "f"),
        }

    def _parse_order_id(self, payload: Dict[str, Any]) -> str:
        return payload["uuid"]

    def _status_params(self, order: Order) -> Dict[str, str]:
        return {"uuid": order.order_id}

    def _parse_order_update(self, payload: Dict[str, Any]) -> OrderUpdate:
        quantity = to_decimal(payload["Quantity"])
        remaining = to_decimal(payload["QuantityRemaining"])

        status = status_from_fill_flags(
            quantity=quantity,
            remaining=remaining,
            is_open=bool(payload["IsOpen"]),
            cancel_initiated=bool(payload.get("CancelInitiated", False)),
        )
        return OrderUpdate(
            status=status,
            deal_quantity=quantity - remaining,
            deal_rate=optional_decimal(payload.get("PricePerUnit")),
        )

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    def _parse_balance_entry(self, entry: Dict[str, Any]) -> Tuple[str, Decimal]:
        return entry["Currency"], to_decimal(entry["Available"])

    def _withdraw_params(self, symbol: str, operation: AccountOperation) -> Dict[str, str]:
        params = {
            "currency": symbol,
            "quantity": operation.withdraw_amount,
            "address": operation.withdraw_address,
        }
        if operation.withdraw_tag:
            params["paymentid"] = operation.withdraw_tag
        return params

    def _parse_withdraw_id(self, payload: Dict[str, Any]) -> str:
        return payload["uuid"]
