"""Partition tenant records into calendar-day buckets over a trailing window."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Callable, Dict, List, Optional, Sequence, TypeVar, Union

from washdesk.schemas.records import Appointment, Expense, Feedback, Payment

T = TypeVar("T")

Moment = Union[datetime, date]


@dataclass(frozen=True)
class DayWindow:
    day: date
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass
class SourceRecords:
    appointments: Sequence[Appointment] = ()
    expenses: Sequence[Expense] = ()
    payments: Sequence[Payment] = ()
    feedback: Sequence[Feedback] = ()


@dataclass
class DayBucket:
    window: DayWindow
    appointments: List[Appointment] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)
    feedback: List[Feedback] = field(default_factory=list)

    @property
    def day(self) -> date:
        return self.window.day


def day_windows(today: date, window_days: int) -> List[DayWindow]:
    """Return ``window_days`` day windows ending at ``today``, oldest first."""

    if window_days < 1:
        raise ValueError("window_days must be at least 1")
    windows = []
    for days_ago in range(window_days - 1, -1, -1):
        day = today - timedelta(days=days_ago)
        windows.append(
            DayWindow(
                day=day,
                start=datetime.combine(day, time.min),
                end=datetime.combine(day, time.max),
            )
        )
    return windows


def to_local(value: Moment, tz: Optional[tzinfo] = None) -> datetime:
    """Express ``value`` as a naive wall-clock time in the business time zone.

    Aware datetimes are converted into ``tz`` when one is given; naive
    datetimes are taken as already local and plain dates map to midnight.
    """

    if isinstance(value, datetime):
        if value.tzinfo is not None and tz is not None:
            value = value.astimezone(tz)
        return value.replace(tzinfo=None)
    return datetime.combine(value, time.min)


def bucket_records(
    windows: Sequence[DayWindow],
    records: Sequence[T],
    key: Callable[[T], Moment],
    *,
    tz: Optional[tzinfo] = None,
) -> List[List[T]]:
    index: Dict[date, int] = {window.day: position for position, window in enumerate(windows)}
    buckets: List[List[T]] = [[] for _ in windows]
    for record in records:
        moment = to_local(key(record), tz)
        position = index.get(moment.date())
        if position is None or not windows[position].contains(moment):
            continue
        buckets[position].append(record)
    return buckets


def bucket_sources(
    windows: Sequence[DayWindow],
    sources: SourceRecords,
    *,
    tz: Optional[tzinfo] = None,
) -> List[DayBucket]:
    appointments = bucket_records(windows, sources.appointments, lambda item: item.scheduled_at, tz=tz)
    expenses = bucket_records(windows, sources.expenses, lambda item: item.expense_date, tz=tz)
    payments = bucket_records(windows, sources.payments, lambda item: item.created_at, tz=tz)
    feedback = bucket_records(windows, sources.feedback, lambda item: item.created_at, tz=tz)
    return [
        DayBucket(
            window=window,
            appointments=appointments[position],
            expenses=expenses[position],
            payments=payments[position],
            feedback=feedback[position],
        )
        for position, window in enumerate(windows)
    ]
