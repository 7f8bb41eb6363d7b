import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

WEI_PER_ETHER = Decimal(10) ** 18


def hex_to_int(value: Union[str, int, None]) -> Optional[int]:
    """Parse a JSON-RPC quantity ("0x1a") or plain integer; None stays None."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    value = value.strip()
    if not value:
        return None
    if value.lower().startswith("0x"):
        return int(value, 16)
    return int(value)


def to_hex_quantity(value: int) -> str:
    return hex(value)


def wei_to_ether(wei: Union[str, int]) -> Decimal:
    return Decimal(int(wei)) / WEI_PER_ETHER


def format_ether(wei: Union[str, int]) -> str:
    try:
        return f"{wei_to_ether(wei):.4f}"
    except (TypeError, ValueError, InvalidOperation):
        return "0.0000"


def shorten_address(address: Optional[str]) -> str:
    address = address or ""
    return f"{address[:6]}...{address[-4:]}"


MINUTES_IN_DAY = 1440
MINUTES_IN_MONTH = 43200


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}" if n == 1 else f"{n} {unit}s"


def format_time_ago(when: Optional[datetime], now: Optional[datetime] = None) -> str:
    if when is None:
        return "Unknown time"
    now = now or datetime.now(timezone.utc)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    seconds = (now - when).total_seconds()
    if seconds < 0:
        return "just now"

    # same buckets as date-fns formatDistanceToNow
    minutes = _round_half_up(seconds / 60)
    if minutes < 1:
        text = "less than a minute"
    elif minutes < 45:
        text = _plural(minutes, "minute")
    elif minutes < 90:
        text = "about 1 hour"
    elif minutes < MINUTES_IN_DAY:
        text = f"about {_plural(_round_half_up(minutes / 60), 'hour')}"
    elif minutes < 42 * 60:
        text = "1 day"
    elif minutes < MINUTES_IN_MONTH:
        text = _plural(_round_half_up(minutes / MINUTES_IN_DAY), "day")
    elif minutes < 2 * MINUTES_IN_MONTH:
        text = f"about {_plural(_round_half_up(minutes / MINUTES_IN_MONTH), 'month')}"
    else:
        months = _round_half_up(minutes / MINUTES_IN_MONTH)
        if months < 12:
            text = _plural(months, "month")
        else:
            years, remainder = divmod(months, 12)
            if remainder < 3:
                text = f"about {_plural(years, 'year')}"
            elif remainder < 9:
                text = f"over {_plural(years, 'year')}"
            else:
                text = f"almost {_plural(years + 1, 'year')}"
    return f"{text} ago"
