from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.profile import ProfileSummary

CalendarRole = Literal["owner", "editor", "viewer"]
InviteRole = Literal["editor", "viewer"]


class CalendarBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    color: str = Field(default="#3B82F6", max_length=16)


class CalendarCreate(CalendarBase):
    pass


class CalendarUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    color: Optional[str] = Field(default=None, max_length=16)


class CalendarRead(CalendarBase):
    id: UUID
    created_by: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CalendarReadWithRole(CalendarRead):
    user_role: Optional[CalendarRole] = None
    member_count: int = 0
    creator_profile: Optional[ProfileSummary] = None


class CalendarMemberRead(BaseModel):
    id: UUID
    calendar_id: UUID
    user_id: UUID
    role: CalendarRole
    joined_at: datetime
    profile: Optional[ProfileSummary] = None

    model_config = ConfigDict(from_attributes=True)


class CalendarMemberUpdate(BaseModel):
    role: InviteRole
