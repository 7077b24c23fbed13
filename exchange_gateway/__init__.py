"""
Exchange Gateway Package.

============================================================
PURPOSE
============================================================
One canonical trading interface over heterogeneous crypto
exchange REST APIs.

CRITICAL PRINCIPLE:
    "Callers only ever see canonical coins, pairs, orders
     and order books. Exchange dialects stay in the adapters."

AUTHORITY BOUNDARIES:
    CAN:
        - Discover coins/pairs and their trading constraints
        - Fetch order books
        - Place, query and cancel limit orders
        - Refresh balances, withdraw

    MUST NOT:
        - Retry trading calls
        - Rate-limit or back off
        - Store credentials

============================================================
MODULES
============================================================
- types: Coins, pairs, constraints, orders, order books
- precision: Price/lot granularity inference
- signing: HMAC request signing
- status: Order status normalization
- registry: Coin/pair registry and balance cache
- errors: Error taxonomy
- config: Per-exchange configuration
- transport: aiohttp transport
- logging_utils: Credential-masking logging
- snapshot: Static catalog snapshots
- adapters: Exchange adapters, factory, pool

============================================================
"""

from .types import (
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
    combination_key,
    pair_key,
)
from .precision import (
    InvalidNumberError,
    count_decimals,
    granularity_from_digits,
    infer_granularity,
    is_granularity,
    resolve_granularity,
)
from .signing import (
    DigestAlgorithm,
    KeyOrder,
    NonceUnit,
    RequestSigner,
    SignaturePlacement,
    SignatureTarget,
    SignedRequest,
    SigningScheme,
    canonical_query,
    compute_hmac,
)
from .status import (
    BINANCE_STYLE_STATUS,
    StatusMapper,
    apply_update,
    mark_canceling,
    status_from_fill_flags,
)
from .registry import Registry
from .errors import (
    ErrorKind,
    ExchangeError,
    ExchangeException,
)
from .config import ExchangeConfig
from .transport import HttpTransport
from .adapters import (
    AdapterFactory,
    AdapterPool,
    BgogoAdapter,
    BitpieAdapter,
    ExchangeAdapter,
    RestExchangeAdapter,
    create_adapter,
)


__version__ = "1.0.0"


__all__ = [
    # Types
    "AccountOperation",
    "BookLevel",
    "ChainType",
    "Coin",
    "CoinConstraint",
    "DataSource",
    "Maker",
    "OperationType",
    "Order",
    "OrderSide",
    "OrderStatus",
    "OrderUpdate",
    "Pair",
    "PairConstraint",
    "combination_key",
    "pair_key",
    # Precision
    "InvalidNumberError",
    "count_decimals",
    "granularity_from_digits",
    "infer_granularity",
    "is_granularity",
    "resolve_granularity",
    # Signing
    "DigestAlgorithm",
    "KeyOrder",
    "NonceUnit",
    "RequestSigner",
    "SignaturePlacement",
    "SignatureTarget",
    "SignedRequest",
    "SigningScheme",
    "canonical_query",
    "compute_hmac",
    # Status
    "BINANCE_STYLE_STATUS",
    "StatusMapper",
    "apply_update",
    "mark_canceling",
    "status_from_fill_flags",
    # Registry
    "Registry",
    # Errors
    "ErrorKind",
    "ExchangeError",
    "ExchangeException",
    # Config / transport
    "ExchangeConfig",
    "HttpTransport",
    # Adapters
    "AdapterFactory",
    "AdapterPool",
    "BgogoAdapter",
    "BitpieAdapter",
    "ExchangeAdapter",
    "RestExchangeAdapter",
    "create_adapter",
]
