"""
Exchange Adapter Factory.

============================================================
PURPOSE
============================================================
Factory pattern for creating exchange adapter instances.

FEATURES:
- Centralized adapter creation
- Configuration injection (explicit or from environment)
- Adapter registry for extension
- Pool managing several adapters over one shared Registry

============================================================
USAGE
============================================================
```python
registry = Registry()

# Create adapter by exchange ID, credentials from env/.env
adapter = AdapterFactory.create("bitpie", registry)

# Create with explicit config
config = ExchangeConfig(api_key="...", api_secret="...")
adapter = AdapterFactory.create("bgogo", registry, config=config)

# Order books across exchanges, concurrently
async with AdapterPool(registry) as pool:
    await pool.add("bgogo")
    await pool.add("bitpie")
    books = await pool.order_books(pair)
```

============================================================
"""

import asyncio
import dataclasses
import logging
from enum import Enum
from typing import Dict, List, Optional, Type

from ..config import ExchangeConfig
from ..errors import ExchangeException
from ..registry import Registry
from ..types import Maker, Pair
from .base import ExchangeAdapter
from .bgogo import BgogoAdapter
from .bitpie import BitpieAdapter


logger = logging.getLogger(__name__)


# ============================================================
# EXCHANGE IDENTIFIERS
# ============================================================

class ExchangeId(Enum):
    """Built-in exchange identifiers."""

    BGOGO = "bgogo"
    BITPIE = "bitpie"


# ============================================================
# ADAPTER FACTORY
# ============================================================

class AdapterFactory:
    """
    Factory for creating exchange adapters.

    Provides centralized adapter creation with configuration
    injection and extension support.
    """

    # Registry of adapter classes
    _registry: Dict[str, Type[ExchangeAdapter]] = {
        ExchangeId.BGOGO.value: BgogoAdapter,
        ExchangeId.BITPIE.value: BitpieAdapter,
    }

    @classmethod
    def register(cls, exchange_id: str, adapter_class: Type[ExchangeAdapter]) -> None:
        """
        Register an adapter class.

        Args:
            exchange_id: Exchange identifier
            adapter_class: Adapter class to register
        """
        cls._registry[exchange_id.lower()] = adapter_class

    @classmethod
    def unregister(cls, exchange_id: str) -> None:
        """Unregister an adapter."""
        cls._registry.pop(exchange_id.lower(), None)

    @classmethod
    def create(
        cls,
        exchange_id: str,
        registry: Registry,
        config: ExchangeConfig = None,
        **options,
    ) -> ExchangeAdapter:
        """
        Create an exchange adapter.

        Args:
            exchange_id: Exchange identifier
            registry: Shared coin/pair registry
            config: Adapter configuration (from environment if None)
            **options: Config fields to override on a copy of config,
                unknown names go to its options

        Returns:
            ExchangeAdapter instance

        Raises:
            ValueError: If exchange not supported
        """
        exchange_id = exchange_id.lower()

        adapter_class = cls._registry.get(exchange_id)
        if adapter_class is None:
            raise ValueError(f"Unsupported exchange: {exchange_id}")

        if config is None:
            config = ExchangeConfig.from_env(exchange_id)

        if options:
            # Overrides apply to a copy; the caller's config is left untouched
            config = dataclasses.replace(config, options=dict(config.options))

        for key, value in options.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                config.options[key] = value

        return adapter_class(config, registry)

    @classmethod
    def list_supported(cls) -> List[str]:
        """List supported exchanges."""
        return sorted(cls._registry)


# ============================================================
# ADAPTER POOL
# ============================================================

class AdapterPool:
    """
    Pool of exchange adapters sharing one Registry.

    Manages lifecycle of multiple adapters.
    """

    def __init__(self, registry: Registry):
        """Initialize pool."""
        self._registry = registry
        self._adapters: Dict[str, ExchangeAdapter] = {}

    @property
    def registry(self) -> Registry:
        return self._registry

    async def add(
        self,
        exchange_id: str,
        adapter: ExchangeAdapter = None,
        config: ExchangeConfig = None,
        auto_connect: bool = True,
    ) -> ExchangeAdapter:
        """
        Add adapter to pool.

        Args:
            exchange_id: Exchange identifier
            adapter: Existing adapter (or create new)
            config: Config for new adapter
            auto_connect: Connect automatically

        Returns:
            Adapter instance
        """
        if adapter is None:
            adapter = AdapterFactory.create(exchange_id, self._registry, config=config)

        self._adapters[exchange_id] = adapter

        if auto_connect and not adapter.is_connected:
            await adapter.connect()

        return adapter

    async def remove(self, exchange_id: str) -> None:
        """Remove adapter from pool."""
        adapter = self._adapters.pop(exchange_id, None)
        if adapter is not None and adapter.is_connected:
            await adapter.disconnect()

    def get(self, exchange_id: str) -> Optional[ExchangeAdapter]:
        """Get adapter by exchange ID."""
        return self._adapters.get(exchange_id)

    def __getitem__(self, exchange_id: str) -> ExchangeAdapter:
        if exchange_id not in self._adapters:
            raise KeyError(f"Adapter not found: {exchange_id}")
        return self._adapters[exchange_id]

    def __contains__(self, exchange_id: str) -> bool:
        return exchange_id in self._adapters

    def list_exchanges(self) -> List[str]:
        """List exchanges in pool."""
        return list(self._adapters)

    async def initialize_all(self) -> None:
        """Run discovery (or snapshot seeding) on every adapter concurrently."""
        await asyncio.gather(*(a.initialize() for a in self._adapters.values()))

    async def order_books(self, pair: Pair) -> Dict[str, Maker]:
        """
        Capture the pair's order book on every exchange listing it.

        Exchanges are queried concurrently; one failing exchange
        is logged and left out of the result.

        Returns:
            exchange_id -> Maker
        """
        listing = {
            eid: adapter
            for eid, adapter in self._adapters.items()
            if adapter.has_pair(pair)
        }
        results = await asyncio.gather(
            *(adapter.order_book(pair) for adapter in listing.values()),
            return_exceptions=True,
        )

        books: Dict[str, Maker] = {}
        for eid, result in zip(listing, results):
            if isinstance(result, ExchangeException):
                logger.warning(f"Order book failed on {eid}: {result}")
            elif isinstance(result, BaseException):
                raise result
            else:
                books[eid] = result
        return books

    async def disconnect_all(self) -> None:
        """Disconnect all adapters."""
        for adapter in self._adapters.values():
            if adapter.is_connected:
                await adapter.disconnect()

    async def __aenter__(self) -> "AdapterPool":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect_all()


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def create_adapter(
    exchange_id: str,
    registry: Registry = None,
    **options,
) -> ExchangeAdapter:
    """
    Create exchange adapter.

    Convenience wrapper for AdapterFactory.create(); a fresh
    Registry is used when none is given.
    """
    return AdapterFactory.create(exchange_id, registry or Registry(), **options)
