"""Unit conversion and display formatting helpers."""

import math
import time
from datetime import datetime
from typing import Optional

ATOMIC_UNITS = 10 ** 12
HASHRATE_UNITS = ['H/s', 'KH/s', 'MH/s', 'GH/s']
PLACEHOLDER = "---"
NO_TIMESTAMP = "∅"


def format_hashrate(h: Optional[float]) -> str:
    """Format a raw hashrate with a 1000-based unit suffix.

    Args:
        h: Hashrate in H/s (None, zero and negative values give "0 H/s")

    Returns:
        Formatted string (e.g., "1.00 MH/s")
    """
    if not h or h < 0:
        return "0 H/s"
    i = int(math.floor(math.log(h) / math.log(1000)))
    # log ratios can land just below an exact power of 1000
    if h >= 1000 ** (i + 1):
        i += 1
    i = max(0, min(i, len(HASHRATE_UNITS) - 1))
    return f"{h / 1000 ** i:.2f} {HASHRATE_UNITS[i]}"


def atomic_to_coins(v: Optional[float]) -> float:
    """Convert atomic units to whole coins."""
    return (v or 0) / ATOMIC_UNITS


def format_xmr(v: Optional[float]) -> str:
    """Format an atomic-unit amount as coins with 5 decimals."""
    return f"{atomic_to_coins(v):.5f}"


def format_coins(coins: float, digits: int = 6) -> str:
    """Format an amount already expressed in coins."""
    return f"{coins:.{digits}f}"


def format_date(ts: Optional[float]) -> str:
    """Format an epoch-seconds timestamp as a local date-time string."""
    if not ts:
        return PLACEHOLDER
    return datetime.fromtimestamp(ts).strftime('%x %X')


def format_date_ms(ts_ms: Optional[int]) -> str:
    """Format an epoch-milliseconds timestamp as a local date-time string."""
    return format_date(ts_ms / 1000 if ts_ms else None)


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def time_ago(ts: Optional[float], now: Optional[int] = None) -> str:
    """Coarse relative time for an epoch timestamp.

    Values below 10,000,000,000 are seconds, larger ones milliseconds.

    Args:
        ts: Epoch timestamp (seconds or milliseconds)
        now: Reference instant in epoch milliseconds (defaults to now)

    Returns:
        "42s ago", "5m ago", "3h ago", or "∅" when ts is missing
    """
    if not ts:
        return NO_TIMESTAMP
    if ts < 10_000_000_000:
        ts *= 1000
    if now is None:
        now = now_ms()
    diff = (now - ts) / 1000
    if diff < 60:
        return f"{math.floor(diff)}s ago"
    if diff < 3600:
        return f"{math.floor(diff / 60)}m ago"
    return f"{math.floor(diff / 3600)}h ago"


def effort_percent(shares: float, difficulty: float) -> Optional[float]:
    """Shares as a percentage of difficulty, None without a difficulty."""
    if not difficulty or difficulty <= 0:
        return None
    return shares / difficulty * 100


def format_effort(value: Optional[float], digits: int = 2) -> str:
    """Format an effort percentage (e.g., "87.31%")."""
    if value is None:
        return PLACEHOLDER
    return f"{value:.{digits}f}%"


def percent_of(part: float, whole: float, cap: Optional[float] = None) -> float:
    """Percentage of part in whole, optionally capped; 0 when whole is empty."""
    if not whole or whole <= 0:
        return 0.0
    pct = (part or 0) / whole * 100
    if cap is not None:
        pct = min(pct, cap)
    return pct


def format_difficulty(difficulty: float) -> str:
    """Format difficulty with thousands separators (e.g., "312,456,789,012")."""
    return f"{difficulty:,.0f}"
