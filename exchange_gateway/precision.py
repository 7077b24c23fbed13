"""
Exchange Gateway - Precision Inference.

============================================================
PURPOSE
============================================================
Derive price and quantity granularity for a pair.

Some exchanges declare precision explicitly (number of decimals),
others only return sample numbers such as a last-traded price.
For the latter the granularity is inferred from the number of
digits after the decimal separator:

    "123.45"  ->  0.01
    "1000"    ->  1

BEST EFFORT: inference is a heuristic, not an exchange guarantee.
A sample that happens to be a round number under-reports the real
precision, which is why declared precision always wins when the
exchange provides it (see resolve_granularity).

============================================================
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union


NumberLike = Union[str, int, float, Decimal, None]

# No thousands separators
_PLAIN_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)$")
_EXPONENT_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)[eE][+-]?\d+$")

ONE = Decimal("1")


class InvalidNumberError(ValueError):
    """Raised when an exchange value is not a readable number."""


def _as_text(value: NumberLike) -> str:
    """Render value in plain decimal notation."""
    if value is None:
        return ""
    if isinstance(value, bool):
        raise InvalidNumberError(f"Not a number: {value!r}")
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        value = Decimal(repr(value))
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise InvalidNumberError(f"Not a finite number: {value!r}")
        return format(value, "f")
    raise InvalidNumberError(f"Not a number: {value!r}")


def count_decimals(value: NumberLike) -> int:
    """
    Count digits after the decimal separator.

    Args:
        value: Raw value as received from the exchange

    Returns:
        Number of fractional digits, 0 for missing/empty values

    Raises:
        InvalidNumberError: If value is not decimal or exponent text
    """
    text = _as_text(value)
    if not text:
        return 0

    if _EXPONENT_NUMBER.match(text):
        # "1e-5" counts like "0.00001"
        text = format(Decimal(text), "f")
    elif not _PLAIN_NUMBER.match(text):
        raise InvalidNumberError(f"Malformed number: {value!r}")

    if "." not in text:
        return 0
    return len(text.split(".", 1)[1])


def granularity_from_digits(digits: int) -> Decimal:
    """10^-digits, for exchanges that declare their precision."""
    if digits < 0:
        raise InvalidNumberError(f"Negative precision: {digits}")
    return ONE.scaleb(-digits)


def infer_granularity(value: NumberLike) -> Decimal:
    """
    Infer granularity from a sample value.

    Args:
        value: Raw value, e.g. a last price "123.45"

    Returns:
        Decimal power of ten, e.g. Decimal("0.01")
    """
    return granularity_from_digits(count_decimals(value))


def resolve_granularity(
    declared_digits: Optional[Union[int, str]] = None,
    sample: NumberLike = None,
) -> Decimal:
    """
    Pick granularity from declared precision, else infer it.

    Args:
        declared_digits: Decimals declared by the exchange, if any
        sample: Sample value to infer from otherwise

    Returns:
        Granularity
    """
    if declared_digits is not None and declared_digits != "":
        try:
            digits = int(declared_digits)
        except (TypeError, ValueError):
            raise InvalidNumberError(f"Malformed precision: {declared_digits!r}")
        return granularity_from_digits(digits)
    return infer_granularity(sample)


def is_granularity(value: Union[Decimal, int, float, str]) -> bool:
    """Check that value is a power of ten <= 1."""
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return False
    if not number.is_finite() or number <= 0 or number > ONE:
        return False

    normalized = number.normalize()
    return normalized.as_tuple().digits == (1,)
