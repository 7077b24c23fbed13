"""
Exchange Gateway - Configuration.

============================================================
PURPOSE
============================================================
Per-exchange adapter configuration.

Credentials are read from the environment (optionally seeded
from a .env file), never from source:

    BITPIE_API_KEY=...
    BITPIE_API_SECRET=...
    BITPIE_SOURCE=EXCHANGE_API      # or JSON_FILE
    BITPIE_SOURCE_URI=/path/to/snapshot.json

============================================================
"""

import os
import socket
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .types import DataSource


# ============================================================
# EXCHANGE CONFIGURATION
# ============================================================

@dataclass
class ExchangeConfig:
    """
    Configuration for one exchange adapter.

    SAFETY: Secrets stay out of repr and logs.
    """

    api_key: str = field(default="", repr=False)
    """Account API key."""

    api_secret: str = field(default="", repr=False)
    """Account secret key."""

    source: DataSource = DataSource.EXCHANGE_API
    """Where coin/pair catalogs come from."""

    source_uri: str = ""
    """Snapshot file path when source is JSON_FILE."""

    timeout_seconds: float = 30.0
    """Total HTTP timeout per request."""

    debug_mode: bool = False
    """Record request/response text on account operations."""

    worker_id: str = field(default_factory=socket.gethostname)
    """Identity stamped on captured order books."""

    options: Dict[str, Any] = field(default_factory=dict)
    """Exchange-specific options (e.g. base_url override)."""

    def has_credentials(self) -> bool:
        """Check that both API key and secret are set."""
        return bool(self.api_key) and bool(self.api_secret)

    @classmethod
    def from_env(
        cls,
        exchange_name: str,
        env_file: Optional[str] = None,
    ) -> "ExchangeConfig":
        """
        Create config from environment variables.

        Args:
            exchange_name: Exchange name, used as variable prefix
            env_file: Optional .env file to load first

        Returns:
            ExchangeConfig
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        prefix = exchange_name.upper()
        source_name = os.environ.get(f"{prefix}_SOURCE", DataSource.EXCHANGE_API.value)

        return cls(
            api_key=os.environ.get(f"{prefix}_API_KEY", ""),
            api_secret=os.environ.get(f"{prefix}_API_SECRET", ""),
            source=DataSource(source_name.upper()),
            source_uri=os.environ.get(f"{prefix}_SOURCE_URI", ""),
        )
