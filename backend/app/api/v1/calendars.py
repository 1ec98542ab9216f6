from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session, delete, select

from app.api.deps import get_current_user
from app.api.v1.events import list_calendar_events, serialize_events
from app.db import SessionDep
from app.models import (
    Calendar,
    CalendarInvitation,
    CalendarJoinRequest,
    CalendarMember,
    Event,
    Profile,
)
from app.schemas import (
    CalendarCreate,
    CalendarMemberRead,
    CalendarMemberUpdate,
    CalendarReadWithRole,
    CalendarUpdate,
    DayCellRead,
    EventSegmentRead,
    MonthView,
    PlacedEventRead,
    ProfileSummary,
)
from app.services.event_placement import build_month_grid
from app.services.permissions import (
    add_calendar_member,
    count_members,
    ensure_calendar_access,
    get_membership,
    revoke_membership,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def serialize_calendar(
    session: Session,
    calendar: Calendar,
    *,
    role: str | None,
) -> CalendarReadWithRole:
    creator = session.get(Profile, calendar.created_by)
    base = CalendarReadWithRole.model_validate(calendar)
    return base.model_copy(
        update={
            "user_role": role,
            "member_count": count_members(session, calendar.id),
            "creator_profile": ProfileSummary.model_validate(creator)
            if creator
            else None,
        }
    )


def serialize_member(
    member: CalendarMember, profile: Profile | None
) -> CalendarMemberRead:
    base = CalendarMemberRead.model_validate(member)
    return base.model_copy(
        update={
            "profile": ProfileSummary.model_validate(profile) if profile else None
        }
    )


def _get_member_or_404(
    session: Session, calendar_id: UUID, user_id: UUID
) -> CalendarMember:
    membership = get_membership(session, calendar_id, user_id)
    if not membership:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Calendar member not found",
        )
    return membership


@router.get(
    "/",
    response_model=List[CalendarReadWithRole],
    summary="List my calendars",
)
def list_calendars(
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> List[CalendarReadWithRole]:
    rows = session.exec(
        select(Calendar, CalendarMember.role)
        .join(CalendarMember, CalendarMember.calendar_id == Calendar.id)
        .where(CalendarMember.user_id == current_user.id)
        .order_by(Calendar.created_at.desc())
    ).all()
    return [serialize_calendar(session, calendar, role=role) for calendar, role in rows]


@router.post(
    "/",
    response_model=CalendarReadWithRole,
    status_code=status.HTTP_201_CREATED,
    summary="Create calendar",
)
def create_calendar(
    payload: CalendarCreate,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> CalendarReadWithRole:
    calendar = Calendar(**payload.model_dump(), created_by=current_user.id)
    session.add(calendar)
    session.commit()
    session.refresh(calendar)

    # Second step is not rolled back into the first if it fails
    add_calendar_member(
        session,
        calendar_id=calendar.id,
        user_id=current_user.id,
        role="owner",
    )
    session.commit()
    logger.info("Calendar %s created by %s", calendar.id, current_user.id)
    return serialize_calendar(session, calendar, role="owner")


@router.get(
    "/{calendar_id}",
    response_model=CalendarReadWithRole,
    summary="Get calendar by id",
)
def get_calendar(
    calendar_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> CalendarReadWithRole:
    calendar, role = ensure_calendar_access(session, calendar_id, current_user)
    return serialize_calendar(session, calendar, role=role)


@router.put(
    "/{calendar_id}",
    response_model=CalendarReadWithRole,
    summary="Update calendar",
)
def update_calendar(
    calendar_id: UUID,
    payload: CalendarUpdate,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> CalendarReadWithRole:
    calendar, role = ensure_calendar_access(
        session, calendar_id, current_user, required_role="editor"
    )

    update_data = payload.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field != "description":
            continue
        setattr(calendar, field, value)
    calendar.touch()

    session.add(calendar)
    session.commit()
    session.refresh(calendar)
    return serialize_calendar(session, calendar, role=role)


@router.delete(
    "/{calendar_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete calendar",
    response_model=None,
)
def delete_calendar(
    calendar_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> None:
    calendar, _ = ensure_calendar_access(
        session, calendar_id, current_user, required_role="owner"
    )

    for model in (Event, CalendarInvitation, CalendarJoinRequest, CalendarMember):
        session.exec(delete(model).where(model.calendar_id == calendar_id))
    session.delete(calendar)
    session.commit()
    logger.info("Calendar %s deleted by %s", calendar_id, current_user.id)


@router.get(
    "/{calendar_id}/members",
    response_model=List[CalendarMemberRead],
    summary="List calendar members",
)
def list_calendar_members(
    calendar_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> List[CalendarMemberRead]:
    ensure_calendar_access(session, calendar_id, current_user)

    rows = session.exec(
        select(CalendarMember, Profile)
        .join(Profile, Profile.id == CalendarMember.user_id)
        .where(CalendarMember.calendar_id == calendar_id)
        .order_by(CalendarMember.joined_at)
    ).all()
    return [serialize_member(member, profile) for member, profile in rows]


@router.patch(
    "/{calendar_id}/members/{user_id}",
    response_model=CalendarMemberRead,
    summary="Update calendar member role",
)
def update_calendar_member(
    calendar_id: UUID,
    user_id: UUID,
    payload: CalendarMemberUpdate,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> CalendarMemberRead:
    """Change a member's role (owner only)."""
    ensure_calendar_access(session, calendar_id, current_user, required_role="owner")

    membership = _get_member_or_404(session, calendar_id, user_id)
    if membership.role == "owner":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot change owner role",
        )

    membership.role = payload.role
    session.add(membership)
    session.commit()
    session.refresh(membership)
    return serialize_member(membership, session.get(Profile, user_id))


@router.delete(
    "/{calendar_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove calendar member",
    response_model=None,
)
def delete_calendar_member(
    calendar_id: UUID,
    user_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> None:
    _, role = ensure_calendar_access(session, calendar_id, current_user)
    membership = _get_member_or_404(session, calendar_id, user_id)
    revoke_membership(session, actor_role=role, member=membership)


@router.get(
    "/{calendar_id}/month",
    response_model=MonthView,
    summary="Events placed on the day cells of a month",
)
def get_month_view(
    calendar_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
    year: int = Query(..., ge=1, le=9999),
    month: int = Query(..., ge=1, le=12),
) -> MonthView:
    ensure_calendar_access(session, calendar_id, current_user)

    events = list_calendar_events(session, calendar_id)
    reads = {read.id: read for read in serialize_events(session, events)}
    cells = [
        DayCellRead(
            day=cell.day,
            date=cell.date,
            events=[
                PlacedEventRead(
                    event=reads[placed.event.id],
                    segment=EventSegmentRead.model_validate(placed.segment),
                    duration_label=placed.duration_label,
                )
                for placed in cell.events
            ],
        )
        for cell in build_month_grid(events, year, month)
    ]
    return MonthView(calendar_id=calendar_id, year=year, month=month, cells=cells)
