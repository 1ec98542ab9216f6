from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class CalendarMember(SQLModel, table=True):
    """Calendar membership with per-user role."""

    __tablename__ = "calendar_members"
    __table_args__ = (
        UniqueConstraint("calendar_id", "user_id", name="uq_calendar_members_user"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    calendar_id: UUID = Field(
        foreign_key="calendars.id", nullable=False, index=True
    )
    user_id: UUID = Field(foreign_key="profiles.id", nullable=False, index=True)
    role: str = Field(default="viewer", max_length=32)
    joined_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
