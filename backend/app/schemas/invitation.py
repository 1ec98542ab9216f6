from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr

from app.schemas.calendar import CalendarMemberRead, InviteRole
from app.schemas.profile import ProfileSummary


class InvitationCreate(BaseModel):
    email: EmailStr
    role: InviteRole = "viewer"


class InvitationRead(BaseModel):
    id: UUID
    calendar_id: UUID
    email: str
    role: InviteRole
    invited_by: UUID
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvitationWithLink(InvitationRead):
    token: str
    link: str


class InviteResult(BaseModel):
    """Outcome of inviting an email: a token invitation or a direct membership."""

    status: Literal["invited", "member_added", "conflict", "already_member"]
    message: str
    invitation: Optional[InvitationWithLink] = None
    member: Optional[CalendarMemberRead] = None


class InvitationCalendarSummary(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    color: str
    member_count: int = 0


class InvitationResolution(BaseModel):
    state: Literal["pending", "already_accepted", "rejected", "expired", "invalid"]
    message: str
    email: Optional[str] = None
    role: Optional[InviteRole] = None
    expires_at: Optional[datetime] = None
    calendar: Optional[InvitationCalendarSummary] = None
    inviter: Optional[ProfileSummary] = None
