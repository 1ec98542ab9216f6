from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlmodel import Session, select

from app.models import Calendar, CalendarMember, Event, Profile

logger = logging.getLogger(__name__)

ROLE_HIERARCHY = {"viewer": 1, "editor": 2, "owner": 3}


def has_role(role: str | None, required_role: str) -> bool:
    return ROLE_HIERARCHY.get(role or "", 0) >= ROLE_HIERARCHY[required_role]


def get_membership(
    session: Session,
    calendar_id: UUID,
    user_id: UUID,
) -> CalendarMember | None:
    return session.exec(
        select(CalendarMember).where(
            CalendarMember.calendar_id == calendar_id,
            CalendarMember.user_id == user_id,
        )
    ).one_or_none()


def count_members(session: Session, calendar_id: UUID) -> int:
    return session.exec(
        select(func.count())
        .select_from(CalendarMember)
        .where(CalendarMember.calendar_id == calendar_id)
    ).one()


def get_user_calendar_role(
    session: Session,
    calendar: Calendar,
    user: Profile,
) -> str | None:
    membership = get_membership(session, calendar.id, user.id)
    return membership.role if membership else None


def ensure_calendar_access(
    session: Session,
    calendar_id: UUID,
    user: Profile,
    required_role: str | None = None,
) -> tuple[Calendar, str]:
    """Load a calendar the user belongs to, returning it with the user's role."""
    calendar = session.get(Calendar, calendar_id)
    if not calendar:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Calendar not found"
        )

    user_role = get_user_calendar_role(session, calendar, user)
    if user_role is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Access to calendar denied"
        )

    if required_role and not has_role(user_role, required_role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Required role: {required_role}, but user has: {user_role}",
        )

    return calendar, user_role


def can_modify_event(event: Event, user: Profile, role: str) -> bool:
    """Owners manage every event; editors only the ones they created."""
    if role == "owner":
        return True
    return role == "editor" and event.created_by == user.id


def add_calendar_member(
    session: Session,
    *,
    calendar_id: UUID,
    user_id: UUID,
    role: str = "viewer",
) -> CalendarMember:
    """Insert a membership unless one exists; the existing row wins."""
    existing = get_membership(session, calendar_id, user_id)
    if existing:
        return existing

    membership = CalendarMember(
        calendar_id=calendar_id,
        user_id=user_id,
        role=role,
    )
    session.add(membership)
    return membership


def revoke_membership(
    session: Session,
    *,
    actor_role: str | None,
    member: CalendarMember,
) -> None:
    """Remove a member. Only owners may do this, and never to an owner."""
    if actor_role != "owner":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the calendar owner can remove members",
        )
    if member.role == "owner":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot remove calendar owner",
        )

    session.delete(member)
    session.commit()
    logger.info(
        "Removed user %s from calendar %s", member.user_id, member.calendar_id
    )
