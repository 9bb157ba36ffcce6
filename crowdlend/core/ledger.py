"""
Money, percentage and date primitives.

All currency values are ``Decimal`` quantized to the minor unit (cents) with
ROUND_HALF_UP. Datetimes are timezone-aware UTC; naive values coming back
from the database are treated as UTC.
"""
import math
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Optional[Number]) -> Decimal:
    """Coerce to Decimal without rounding (floats go through str)"""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value: Optional[Number]) -> Decimal:
    """Always return a 2-decimal Decimal with HALF_UP rounding"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percentage(part: Number, whole: Number) -> Decimal:
    """part / whole * 100, unclamped; 0 when whole is 0"""
    whole = to_decimal(whole)
    if whole == 0:
        return ZERO
    return (to_decimal(part) / whole * HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def clamp_percentage(value: Number) -> Decimal:
    """Clamp to [0, 100] for display"""
    return min(max(to_decimal(value), ZERO), HUNDRED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_months(value: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping to month end (Jan 31 + 1 -> Feb 28/29)"""
    return value + relativedelta(months=months)


def days_until(value: datetime, now: Optional[datetime] = None) -> int:
    """ceil((value - now) / 1 day); negative once the date has passed"""
    now = ensure_utc(now) if now else utcnow()
    seconds = (ensure_utc(value) - now).total_seconds()
    return math.ceil(seconds / 86400)
