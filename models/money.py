"""
Money and weight helpers.

All monetary amounts are Decimal quantized to centavos. Floats from JSON
payloads or the keypad are converted via str() so 0.1 stays 0.1.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Weights typed by the operator are in 10 g steps. Weights derived from a price
# keep 1 mg so that weight x rate rounds back to the entered price.
WEIGHT_INPUT_STEP = Decimal("0.01")
WEIGHT_DERIVED_STEP = Decimal("0.000001")


def to_decimal(value: Any) -> Decimal:
    """
    Convert user or JSON input into a Decimal.

    Raises:
        ValueError: If the value cannot be interpreted as a number
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a number: {value!r}")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def money(value: Any) -> Decimal:
    """Round to centavos, half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
