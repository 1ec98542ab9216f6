from __future__ import annotations

from datetime import date, datetime
from datetime import time as dt_time
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class Event(SQLModel, table=True):
    """Dated activity on a calendar, possibly spanning several days."""

    __tablename__ = "events"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    calendar_id: UUID = Field(foreign_key="calendars.id", nullable=False, index=True)
    title: str = Field(max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    start_date: date = Field(nullable=False, index=True)
    end_date: date = Field(nullable=False, index=True)
    # Start time and length apply to the first (or only) day
    time: dt_time = Field(default=dt_time(9, 0), nullable=False)
    duration: int = Field(default=30, nullable=False)
    is_multi_day: bool = Field(default=False)
    color: str = Field(default="#3B82F6", max_length=16)
    created_by: UUID = Field(foreign_key="profiles.id", nullable=False, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()
