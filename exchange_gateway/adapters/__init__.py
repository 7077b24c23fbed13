"""
Exchange Gateway - Adapters Package.

============================================================
PURPOSE
============================================================
Exchange adapter implementations.

AVAILABLE ADAPTERS:
- BgogoAdapter: Bgogo spot (inferred precision, token status)
- BitpieAdapter: Bitpie spot (declared precision, flag status)

UTILITIES:
- RestExchangeAdapter: Configuration-driven base for REST exchanges
- AdapterFactory: Factory for creating adapters
- AdapterPool: Manage multiple adapters

============================================================
"""

# Base types
from .base import ExchangeAdapter
from .rest import Endpoint, EndpointCatalog, RestExchangeAdapter

# Adapters
from .bgogo import BgogoAdapter
from .bitpie import BitpieAdapter

# Factory
from .factory import (
    AdapterFactory,
    AdapterPool,
    ExchangeId,
    create_adapter,
)


__all__ = [
    # Base
    "ExchangeAdapter",
    "RestExchangeAdapter",
    "Endpoint",
    "EndpointCatalog",
    # Adapters
    "BgogoAdapter",
    "BitpieAdapter",
    # Factory
    "AdapterFactory",
    "AdapterPool",
    "ExchangeId",
    "create_adapter",
]
