"""Single source of "now" for the service.

Everything that reasons about freshness (cache expiry, staleness window,
synthetic history) takes a clock callable so tests can pin time.
"""
import time
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], float]

def monotonic() -> float:
    """Seconds from a monotonic clock, used for TTL bookkeeping."""
    return time.monotonic()

def utc_now() -> datetime:
    """Current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)
