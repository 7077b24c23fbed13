"""
Exchange Gateway - Static Snapshot Files.

============================================================
PURPOSE
============================================================
Seed catalogs and constraints from a JSON file instead of
live discovery calls (DataSource.JSON_FILE).

File layout:
    {
      "coins": ["BTC", "ETH"],
      "pairs": [{"base": "BTC", "target": "ETH"}],
      "coin_constraints": [
        {"code": "ETH", "ex_symbol": "eth", "tx_fee": "0.01",
         "withdraw": true, "deposit": true, "confirmation": 12}
      ],
      "pair_constraints": [
        {"base": "BTC", "target": "ETH", "ex_symbol": "ETH/BTC",
         "maker_fee": "0.001", "taker_fee": "0.002",
         "lot_size": "0.001", "price_filter": "0.000001"}
      ]
    }

============================================================
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from .errors import ErrorKind, ExchangeError, ExchangeException


logger = logging.getLogger(__name__)


def read_snapshot(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a snapshot file.

    Args:
        path: Snapshot file path

    Returns:
        Decoded snapshot mapping

    Raises:
        ExchangeException: DECODE if the file is missing or not a JSON object
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
    except (OSError, json.JSONDecodeError) as e:
        raise ExchangeException(ExchangeError(
            kind=ErrorKind.DECODE,
            message=f"Cannot read snapshot {path}: {e}",
            operation="read_snapshot",
        ))

    if not isinstance(data, dict):
        raise ExchangeException(ExchangeError(
            kind=ErrorKind.DECODE,
            message=f"Snapshot {path} is not a JSON object",
            operation="read_snapshot",
            payload=text[:300],
        ))

    logger.info(f"Read snapshot {path}")
    return data
