from __future__ import annotations

from datetime import date, datetime
from datetime import date as dt_date
from datetime import time as dt_time
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.profile import ProfileSummary


def check_event_dates(start_date: date, end_date: date, is_multi_day: bool) -> date:
    """Return the effective end date, rejecting ranges that end before they start."""
    if not is_multi_day:
        return start_date
    if end_date < start_date:
        raise ValueError("end_date must be greater than or equal to start_date")
    return end_date


class EventBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    start_date: date
    end_date: Optional[date] = None
    time: dt_time = dt_time(9, 0)
    duration: int = Field(default=30, gt=0)
    is_multi_day: bool = False
    color: str = Field(default="#3B82F6", max_length=16)


class EventCreate(EventBase):
    @model_validator(mode="after")
    def normalize_end_date(self) -> "EventCreate":
        self.end_date = check_event_dates(
            self.start_date, self.end_date or self.start_date, self.is_multi_day
        )
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    time: Optional[dt_time] = None
    duration: Optional[int] = Field(default=None, gt=0)
    is_multi_day: Optional[bool] = None
    color: Optional[str] = Field(default=None, max_length=16)


class EventRead(BaseModel):
    id: UUID
    calendar_id: UUID
    title: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    time: dt_time
    duration: int
    is_multi_day: bool
    color: str
    created_by: UUID
    created_at: datetime
    updated_at: datetime
    creator_profile: Optional[ProfileSummary] = None

    model_config = ConfigDict(from_attributes=True)


class EventSegmentRead(BaseModel):
    is_start: bool
    is_end: bool
    is_middle: bool
    show_time: bool
    kind: Literal["single", "start", "middle", "end"]

    model_config = ConfigDict(from_attributes=True)


class PlacedEventRead(BaseModel):
    event: EventRead
    segment: EventSegmentRead
    duration_label: Optional[str] = None


class DayCellRead(BaseModel):
    day: Optional[int] = None
    date: Optional[dt_date] = None
    events: List[PlacedEventRead] = []


class MonthView(BaseModel):
    calendar_id: UUID
    year: int
    month: int
    cells: List[DayCellRead]
