from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator, Optional
from zoneinfo import ZoneInfo

from config import get_settings


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    @property
    def length_days(self) -> int:
        return (self.end - self.start).days

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def previous(self) -> "Period":
        # Same length, ending on this period's first day.
        return Period(
            "previous", self.start - timedelta(days=self.length_days), self.start
        )


def naive_local(value: datetime) -> datetime:
    """Offset-aware datetimes become naive wall-clock time in the configured zone."""
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(get_settings().timezone)).replace(tzinfo=None)


def month_start(d: date) -> date:
    return d.replace(day=1)


def month_end(d: date) -> date:
    first = month_start(d)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return next_month - date.resolution


def add_months(d: date, count: int) -> date:
    month_index = (d.year * 12) + (d.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    day = min(d.day, month_end(date(year, month, 1)).day)
    return date(year, month, day)


def days_in_month(d: date) -> int:
    return month_end(d).day


def month_period(d: date, slug: str = "month") -> Period:
    return Period(slug, month_start(d), month_end(d))


def week_start(d: date) -> date:
    return d - timedelta(days=d.weekday())


def resolve_period(
    period: Optional[str],
    start: Optional[date],
    end: Optional[date],
    *,
    today: Optional[date] = None,
) -> Period:
    today = today or date.today()
    if period == "last_month":
        return month_period(add_months(month_start(today), -1), "last_month")
    if period == "custom" or (period is None and (start or end)):
        if not start or not end:
            raise ValueError("Custom period requires start and end dates")
        if start > end:
            raise ValueError("Start date must be before end date")
        return Period("custom", start, end)
    return month_period(today, "this_month")
