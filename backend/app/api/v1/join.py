from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session, select

from app.api.deps import get_current_user
from app.api.v1.calendars import serialize_member
from app.db import SessionDep
from app.models import Calendar, CalendarJoinRequest, Profile
from app.schemas import (
    CalendarMemberRead,
    JoinLink,
    JoinRequestRead,
    JoinResult,
    ProfileSummary,
)
from app.services.join_requests import (
    approve_request,
    decline_request,
    get_pending_request,
    join_link,
    list_pending_requests,
    request_to_join,
)
from app.services.permissions import ensure_calendar_access

router = APIRouter()

JOIN_MESSAGES = {
    "requested": "Your request to join has been sent to the calendar owner",
    "already_requested": "You have already asked to join this calendar",
    "already_member": "You are already a member of this calendar",
}


def _serialize_request(
    session: Session, join_request: CalendarJoinRequest
) -> JoinRequestRead:
    profile = session.get(Profile, join_request.user_id)
    return JoinRequestRead.model_validate(join_request).model_copy(
        update={
            "profile": ProfileSummary.model_validate(profile) if profile else None
        }
    )


@router.post(
    "/join/{calendar_id}",
    response_model=JoinResult,
    summary="Ask to join a calendar through its join link",
)
def join_calendar(
    calendar_id: UUID,
    response: Response,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> JoinResult:
    if not session.get(Calendar, calendar_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Calendar not found"
        )

    outcome = request_to_join(session, calendar_id, current_user)
    if outcome.kind == "requested":
        response.status_code = status.HTTP_201_CREATED
    return JoinResult(
        status=outcome.kind,
        message=JOIN_MESSAGES[outcome.kind],
        request=_serialize_request(session, outcome.request)
        if outcome.request
        else None,
    )


@router.get(
    "/calendars/{calendar_id}/join-link",
    response_model=JoinLink,
    summary="Shareable join link",
)
def read_join_link(
    calendar_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> JoinLink:
    ensure_calendar_access(session, calendar_id, current_user)
    return JoinLink(calendar_id=calendar_id, link=join_link(calendar_id))


@router.get(
    "/calendars/{calendar_id}/join-requests",
    response_model=List[JoinRequestRead],
    summary="List pending join requests",
)
def list_join_requests(
    calendar_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> List[JoinRequestRead]:
    ensure_calendar_access(session, calendar_id, current_user, required_role="owner")
    return [
        _serialize_request(session, join_request)
        for join_request in list_pending_requests(session, calendar_id)
    ]


@router.get(
    "/join-requests/mine",
    response_model=List[JoinRequestRead],
    summary="My join requests",
)
def list_my_join_requests(
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> List[JoinRequestRead]:
    requests = session.exec(
        select(CalendarJoinRequest)
        .where(CalendarJoinRequest.user_id == current_user.id)
        .order_by(CalendarJoinRequest.requested_at.desc())
    ).all()
    return [_serialize_request(session, join_request) for join_request in requests]


@router.post(
    "/calendars/{calendar_id}/join-requests/{request_id}/approve",
    response_model=CalendarMemberRead,
    summary="Approve a join request",
)
def approve_join_request(
    calendar_id: UUID,
    request_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> CalendarMemberRead:
    ensure_calendar_access(session, calendar_id, current_user, required_role="owner")
    join_request = get_pending_request(session, calendar_id, request_id)
    membership = approve_request(session, join_request, current_user)
    return serialize_member(membership, session.get(Profile, membership.user_id))


@router.post(
    "/calendars/{calendar_id}/join-requests/{request_id}/decline",
    response_model=JoinRequestRead,
    summary="Decline a join request",
)
def decline_join_request(
    calendar_id: UUID,
    request_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> JoinRequestRead:
    ensure_calendar_access(session, calendar_id, current_user, required_role="owner")
    join_request = get_pending_request(session, calendar_id, request_id)
    return _serialize_request(
        session, decline_request(session, join_request, current_user)
    )
