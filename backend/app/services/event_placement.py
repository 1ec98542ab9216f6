"""
Placement of calendar events onto the day cells of a displayed month.

Everything here is pure: callers pass in the events they fetched (already
ordered by start date) and get back view state for the month grid.
"""
from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, List, Literal, Optional, Protocol, Sequence, Union

SegmentKind = Literal["single", "start", "middle", "end"]

DateLike = Union[date, str]


class PlaceableEvent(Protocol):
    start_date: date
    end_date: date
    is_multi_day: bool


@dataclass(frozen=True)
class EventSegment:
    is_start: bool
    is_end: bool
    is_middle: bool
    show_time: bool
    kind: SegmentKind


@dataclass(frozen=True)
class PlacedEvent:
    event: Any
    segment: EventSegment
    duration_label: Optional[str] = None


@dataclass
class DayCell:
    day: Optional[int]
    date: Optional[date]
    events: List[PlacedEvent] = field(default_factory=list)


_SINGLE_DAY = EventSegment(
    is_start=True, is_end=True, is_middle=False, show_time=True, kind="single"
)


def _as_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def format_date(year: int, month: int, day: int) -> str:
    """Canonical zero-padded YYYY-MM-DD form of a day."""
    return date(year, month, day).isoformat()


def first_weekday_column(year: int, month: int) -> int:
    """Column of the 1st of the month in a Sunday-first week (0 = Sunday)."""
    # monthrange counts Monday as 0
    monday_based, _ = monthrange(year, month)
    return (monday_based + 1) % 7


def days_in_month(year: int, month: int) -> List[Optional[int]]:
    """Day cells of a month grid: leading ``None`` padding, then 1..N."""
    _, day_count = monthrange(year, month)
    offset = first_weekday_column(year, month)
    return [None] * offset + list(range(1, day_count + 1))


def occurs_on(event: PlaceableEvent, on: DateLike) -> bool:
    day = _as_date(on)
    start = _as_date(event.start_date)
    if event.is_multi_day:
        return start <= day <= _as_date(event.end_date)
    return day == start


def events_for_day(
    events: Iterable[PlaceableEvent],
    year: int,
    month: int,
    day: Optional[int],
) -> list:
    """Events that occupy the given day, in input order."""
    if not day:
        return []
    target = date(year, month, day)
    return [event for event in events if occurs_on(event, target)]


def segment_info(event: PlaceableEvent, on: DateLike) -> EventSegment:
    """How an event is drawn on one day: a single block, or a slice of a bar."""
    if not event.is_multi_day:
        return _SINGLE_DAY

    day = _as_date(on)
    is_start = day == _as_date(event.start_date)
    is_end = day == _as_date(event.end_date)
    is_middle = not is_start and not is_end
    if is_start:
        kind: SegmentKind = "start"
    elif is_end:
        kind = "end"
    else:
        kind = "middle"
    return EventSegment(
        is_start=is_start,
        is_end=is_end,
        is_middle=is_middle,
        show_time=is_start,
        kind=kind,
    )


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes}min"
    hours, rest = divmod(minutes, 60)
    return f"{hours}h {rest}min" if rest else f"{hours}h"


def build_month_grid(
    events: Sequence[PlaceableEvent], year: int, month: int
) -> List[DayCell]:
    """Materialise the full month view: each cell with its placed events."""
    cells: List[DayCell] = []
    for day in days_in_month(year, month):
        if day is None:
            cells.append(DayCell(day=None, date=None))
            continue

        current = date(year, month, day)
        placed = []
        for event in events_for_day(events, year, month, day):
            segment = segment_info(event, current)
            duration = getattr(event, "duration", None)
            label = (
                format_duration(duration)
                if segment.show_time and duration is not None
                else None
            )
            placed.append(PlacedEvent(event=event, segment=segment, duration_label=label))
        cells.append(DayCell(day=day, date=current, events=placed))
    return cells
