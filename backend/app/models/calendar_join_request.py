from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class CalendarJoinRequest(SQLModel, table=True):
    """Request to join a calendar through its shareable join link."""

    __tablename__ = "calendar_join_requests"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    calendar_id: UUID = Field(foreign_key="calendars.id", nullable=False, index=True)
    user_id: UUID = Field(foreign_key="profiles.id", nullable=False, index=True)
    # pending | approved | declined
    status: str = Field(default="pending", max_length=16)
    requested_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    resolved_at: Optional[datetime] = Field(default=None, nullable=True)
    resolved_by: Optional[UUID] = Field(
        default=None, foreign_key="profiles.id", nullable=True
    )
