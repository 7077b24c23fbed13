"""
Exchange Gateway - Coin/Pair Registry and Balance Cache.

============================================================
PURPOSE
============================================================
Catalog of every coin and pair seen by any adapter, plus the
latest balances per exchange.

One Registry is constructed per process (or per test) and
passed to adapters by reference. There is no module-level
state.

CONCURRENCY:
- Catalogs are append-only during a run, insert-if-absent
- Balances are replaced wholesale per exchange, last writer wins
- One RLock guards everything; objects are fully built before
  they become visible to other threads/tasks

============================================================
"""

import logging
import threading
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from .types import Coin, Pair, combination_key


logger = logging.getLogger(__name__)


class Registry:
    """
    Process-wide coin/pair catalog and balance cache.

    Usage:
        registry = Registry()
        btc = registry.add_coin("BTC")
        eth = registry.add_coin("ETH")
        pair = registry.get_pair(btc, eth)
        assert registry.get_pair(btc, eth) is pair
    """

    def __init__(self):
        """Initialize empty registry."""
        self._lock = threading.RLock()

        self._coins: Dict[str, Coin] = {}
        # combination key -> pair, one entry per unordered coin pair
        self._pairs: Dict[str, Pair] = {}
        self._next_coin_id = 1
        self._next_pair_id = 1

        # exchange -> coin code -> available amount
        self._balances: Dict[str, Dict[str, Decimal]] = {}

    # --------------------------------------------------------
    # COINS
    # --------------------------------------------------------

    def get_coin(self, code: str) -> Optional[Coin]:
        """Look up a coin by code, None if never seen."""
        with self._lock:
            return self._coins.get(code.strip().upper())

    def add_coin(self, code: str) -> Coin:
        """
        Get or create a coin.

        Args:
            code: Coin code, case-insensitive

        Returns:
            The single Coin instance for this code

        Raises:
            ValueError: If code is empty
        """
        normalized = code.strip().upper() if code else ""
        if not normalized:
            raise ValueError("Coin code must not be empty")

        with self._lock:
            coin = self._coins.get(normalized)
            if coin is None:
                coin = Coin(id=self._next_coin_id, code=normalized)
                self._next_coin_id += 1
                self._coins[normalized] = coin
                logger.debug(f"Registered coin {normalized} (id={coin.id})")
            return coin

    def get_coins(self) -> List[Coin]:
        """All coins, in registration order."""
        with self._lock:
            return list(self._coins.values())

    # --------------------------------------------------------
    # PAIRS
    # --------------------------------------------------------

    def get_pair(self, base: Coin, target: Coin) -> Pair:
        """
        Get or create the pair trading target priced in base.

        Both coins are registered first if needed, so a pair always
        resolves to two existing coins. Identity ignores orientation:
        once BTC|ETH exists, get_pair(eth, btc) returns it unchanged.

        Args:
            base: Quote side coin
            target: Traded coin

        Returns:
            The single Pair instance for the two coins
        """
        with self._lock:
            base = self.add_coin(base.code)
            target = self.add_coin(target.code)

            key = combination_key(base.code, target.code)
            pair = self._pairs.get(key)
            if pair is None:
                pair = Pair(id=self._next_pair_id, base=base, target=target)
                self._next_pair_id += 1
                self._pairs[key] = pair
                logger.debug(f"Registered pair {pair.key} (id={pair.id})")
            return pair

    def find_pair(self, base: Coin, target: Coin) -> Optional[Pair]:
        """Look up a pair, in either orientation, without creating it."""
        with self._lock:
            return self._pairs.get(combination_key(base.code, target.code))

    def get_pair_by_key(self, key: str) -> Optional[Pair]:
        """Look up a pair by a "BASE|TARGET" key, either orientation."""
        codes = key.strip().split("|")
        if len(codes) != 2:
            return None
        with self._lock:
            return self._pairs.get(combination_key(codes[0].strip(), codes[1].strip()))

    def get_pairs(self) -> List[Pair]:
        """All pairs, in registration order."""
        with self._lock:
            return list(self._pairs.values())

    # --------------------------------------------------------
    # BALANCES
    # --------------------------------------------------------

    def replace_balances(
        self,
        exchange: str,
        balances: Mapping[str, Decimal],
    ) -> None:
        """
        Replace every cached balance of one exchange.

        Args:
            exchange: Exchange name
            balances: Coin code -> available amount
        """
        fresh = {code.upper(): Decimal(amount) for code, amount in balances.items()}
        with self._lock:
            self._balances[exchange] = fresh

    def get_balance(self, exchange: str, code: str) -> Decimal:
        """Available amount of one coin, 0 when unknown."""
        with self._lock:
            return self._balances.get(exchange, {}).get(code.upper(), Decimal("0"))

    def get_balances(self, exchange: str) -> Dict[str, Decimal]:
        """Copy of the latest balances of one exchange."""
        with self._lock:
            return dict(self._balances.get(exchange, {}))

    # --------------------------------------------------------
    # SNAPSHOT
    # --------------------------------------------------------

    def load_snapshot(self, snapshot: Mapping[str, Any]) -> None:
        """
        Seed catalogs from a static snapshot instead of live discovery.

        Expected shape:
            {"coins": ["BTC", "ETH"],
             "pairs": [{"base": "BTC", "target": "ETH"}]}
        """
        coins = snapshot.get("coins") or []
        pairs = snapshot.get("pairs") or []

        with self._lock:
            for entry in coins:
                code = entry.get("code") if isinstance(entry, Mapping) else entry
                self.add_coin(str(code))

            for entry in pairs:
                base = self.add_coin(str(entry["base"]))
                target = self.add_coin(str(entry["target"]))
                self.get_pair(base, target)

        logger.info(
            f"Loaded registry snapshot: {len(coins)} coins, {len(pairs)} pairs"
        )
