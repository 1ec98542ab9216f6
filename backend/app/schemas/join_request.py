from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.schemas.profile import ProfileSummary


class JoinRequestRead(BaseModel):
    id: UUID
    calendar_id: UUID
    user_id: UUID
    status: Literal["pending", "approved", "declined"]
    requested_at: datetime
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[UUID] = None
    profile: Optional[ProfileSummary] = None

    model_config = ConfigDict(from_attributes=True)


class JoinResult(BaseModel):
    status: Literal["requested", "already_requested", "already_member"]
    message: str
    request: Optional[JoinRequestRead] = None


class JoinLink(BaseModel):
    calendar_id: UUID
    link: str
