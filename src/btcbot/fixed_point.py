"""Fixed-point conversion boundary.

All monetary values (prices, balances, margins) travel through the bot as
integers scaled by 1000, i.e. three decimal digits folded into an int.
Decimal prices from the feed are converted here and nowhere else, and the
sale fee is rounded here and nowhere else.
"""

from decimal import ROUND_DOWN, Decimal

SCALE = 1000


def to_scaled(value: Decimal) -> int:
    """Convert a decimal amount to scaled integer units, truncating toward zero.

    Args:
        value: Amount in quote currency (e.g. Decimal("9123.4567")).

    Returns:
        The scaled integer (9123456 for the example above).
    """
    return int((value * SCALE).to_integral_value(rounding=ROUND_DOWN))


def from_scaled(value: int) -> Decimal:
    """Convert scaled integer units back to a Decimal with three places."""
    return (Decimal(value) / SCALE).quantize(Decimal("0.001"))


def format_scaled(value: int) -> str:
    """Render scaled units for humans: 9200000 -> "9200.000"."""
    return f"{from_scaled(value):.3f}"


def fee_for(price: int, fee_rate: Decimal) -> int:
    """Fee charged on a sale at `price`, in scaled units, truncated toward zero.

    Uses Decimal arithmetic so 0.0015 * 9300000 is exactly 13950.
    """
    return int((Decimal(price) * fee_rate).to_integral_value(rounding=ROUND_DOWN))
