"""Money rounding used wherever an amount is produced."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def round_money(value: float) -> float:
    """Round half-up to 2 decimal places."""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def reservation_value(price_per_hour: float, start: datetime, end: datetime) -> float:
    """Pre-discount value: hourly price times the duration in (fractional) hours."""
    hours = (end - start).total_seconds() / 3600
    return round_money(price_per_hour * hours)
