from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date


def local_now() -> datetime:
    """Naive wall-clock time in the configured timezone.

    Every timestamp the pipeline stores or compares goes through this clock so
    dedup windows and day counts agree with each other.
    """
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).replace(tzinfo=None)


def local_today() -> date:
    return local_now().date()


def month_end(year: int, month: int) -> date:
    if month == 12:
        return date(year + 1, 1, 1) - date.resolution
    return date(year, month + 1, 1) - date.resolution


def budget_window(period: str, *, today: Optional[date] = None) -> Period:
    """Inclusive date range a budget covers, anchored on its creation day."""
    today = today or local_today()
    if period == "monthly":
        first = today.replace(day=1)
        return Period("monthly", first, month_end(today.year, today.month))
    if period == "yearly":
        return Period("yearly", date(today.year, 1, 1), date(today.year, 12, 31))
    raise ValueError(f"Unsupported budget period: {period}")
