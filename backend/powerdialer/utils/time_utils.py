"""
Time Utilities
Timezone-aware helpers shared by services and stores
"""
from datetime import datetime
from typing import Callable, Optional
import pytz

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(pytz.UTC)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Coerce a datetime to aware UTC.

    Naive values are taken to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)
