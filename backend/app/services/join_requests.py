"""
Join requests raised through a calendar's shareable join link.

The link never adds anyone by itself: it files a request that an owner
approves (as viewer) or declines.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlmodel import Session, select

from app.core.config import settings
from app.models import CalendarJoinRequest, CalendarMember, Profile
from app.services.permissions import add_calendar_member, get_membership

logger = logging.getLogger(__name__)

JOIN_LINK_ROLE = "viewer"


@dataclass
class JoinOutcome:
    kind: Literal["requested", "already_requested", "already_member"]
    request: Optional[CalendarJoinRequest] = None
    membership: Optional[CalendarMember] = None


def join_link(calendar_id: UUID) -> str:
    return f"{settings.join_link_base}/{calendar_id}"


def _pending_request(
    session: Session, calendar_id: UUID, user_id: UUID
) -> Optional[CalendarJoinRequest]:
    return session.exec(
        select(CalendarJoinRequest).where(
            CalendarJoinRequest.calendar_id == calendar_id,
            CalendarJoinRequest.user_id == user_id,
            CalendarJoinRequest.status == "pending",
        )
    ).first()


def request_to_join(session: Session, calendar_id: UUID, user: Profile) -> JoinOutcome:
    membership = get_membership(session, calendar_id, user.id)
    if membership:
        return JoinOutcome(kind="already_member", membership=membership)

    existing = _pending_request(session, calendar_id, user.id)
    if existing:
        return JoinOutcome(kind="already_requested", request=existing)

    join_request = CalendarJoinRequest(calendar_id=calendar_id, user_id=user.id)
    session.add(join_request)
    session.commit()
    session.refresh(join_request)
    logger.info("User %s requested to join calendar %s", user.id, calendar_id)
    return JoinOutcome(kind="requested", request=join_request)


def list_pending_requests(session: Session, calendar_id: UUID) -> List[CalendarJoinRequest]:
    return list(
        session.exec(
            select(CalendarJoinRequest)
            .where(
                CalendarJoinRequest.calendar_id == calendar_id,
                CalendarJoinRequest.status == "pending",
            )
            .order_by(CalendarJoinRequest.requested_at)
        ).all()
    )


def get_pending_request(
    session: Session, calendar_id: UUID, request_id: UUID
) -> CalendarJoinRequest:
    join_request = session.get(CalendarJoinRequest, request_id)
    if not join_request or join_request.calendar_id != calendar_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Join request not found"
        )
    if join_request.status != "pending":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Join request already {join_request.status}",
        )
    return join_request


def approve_request(
    session: Session,
    join_request: CalendarJoinRequest,
    approver: Profile,
    now: Optional[datetime] = None,
) -> CalendarMember:
    membership = add_calendar_member(
        session,
        calendar_id=join_request.calendar_id,
        user_id=join_request.user_id,
        role=JOIN_LINK_ROLE,
    )
    session.flush()

    join_request.status = "approved"
    join_request.resolved_at = now or datetime.utcnow()
    join_request.resolved_by = approver.id
    session.add(join_request)
    session.commit()
    session.refresh(membership)
    logger.info(
        "Join request %s approved by %s", join_request.id, approver.id
    )
    return membership


def decline_request(
    session: Session,
    join_request: CalendarJoinRequest,
    approver: Profile,
    now: Optional[datetime] = None,
) -> CalendarJoinRequest:
    join_request.status = "declined"
    join_request.resolved_at = now or datetime.utcnow()
    join_request.resolved_by = approver.id
    session.add(join_request)
    session.commit()
    session.refresh(join_request)
    logger.info("Join request %s declined by %s", join_request.id, approver.id)
    return join_request
