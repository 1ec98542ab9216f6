from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

_OPEN_INVITATION = text("accepted_at IS NULL AND rejected_at IS NULL")


class CalendarInvitation(SQLModel, table=True):
    """Tokened, expiring invitation for an email address to join a calendar."""

    __tablename__ = "calendar_invitations"
    # One open invitation per (calendar, email); expiry is checked in code
    __table_args__ = (
        Index(
            "uq_calendar_invitations_open_email",
            "calendar_id",
            "email",
            unique=True,
            sqlite_where=_OPEN_INVITATION,
            postgresql_where=_OPEN_INVITATION,
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    calendar_id: UUID = Field(foreign_key="calendars.id", nullable=False, index=True)
    email: str = Field(max_length=255, index=True)
    role: str = Field(default="viewer", max_length=32)
    invited_by: UUID = Field(foreign_key="profiles.id", nullable=False)
    token: str = Field(max_length=128, unique=True, index=True)
    expires_at: datetime = Field(nullable=False)
    accepted_at: Optional[datetime] = Field(default=None, nullable=True)
    rejected_at: Optional[datetime] = Field(default=None, nullable=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<CalendarInvitation {self.email} -> {self.calendar_id} as {self.role}>"
