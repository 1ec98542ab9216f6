import logging
from typing import List, NoReturn
from uuid import UUID

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Request,
    Response,
    status,
)

from app.api.deps import get_current_user
from app.api.v1.calendars import serialize_member
from app.core.config import settings
from app.core.limiter import limiter
from app.db import SessionDep
from app.models import CalendarInvitation, Profile
from app.schemas import (
    CalendarMemberRead,
    InvitationCalendarSummary,
    InvitationCreate,
    InvitationRead,
    InvitationResolution,
    InvitationWithLink,
    InviteResult,
    ProfileSummary,
)
from app.services.email import send_invitation_email
from app.services.invitations import (
    InvitationState,
    InvitationUnavailable,
    accept_invitation,
    cancel_invitation,
    create_invitation,
    get_invitation_by_token,
    invitation_link,
    list_pending_invitations,
    reject_invitation,
    resolve_token,
)
from app.services.permissions import ensure_calendar_access

logger = logging.getLogger(__name__)

router = APIRouter()

STATE_MESSAGES = {
    InvitationState.PENDING: "You've been invited to join a calendar",
    InvitationState.ALREADY_ACCEPTED: "This invitation has already been accepted",
    InvitationState.REJECTED: "This invitation has been declined",
    InvitationState.EXPIRED: "This invitation has expired",
    InvitationState.INVALID: "Invalid or expired invitation link",
}

OUTCOME_MESSAGES = {
    "invited": "Invitation sent! They will receive an email to join.",
    "member_added": "User added successfully!",
    "conflict": "An invitation has already been sent to this email",
    "already_member": "This user is already a member of this calendar",
}


def _with_link(invitation: CalendarInvitation) -> InvitationWithLink:
    return InvitationWithLink.model_validate(
        {
            **InvitationRead.model_validate(invitation).model_dump(),
            "token": invitation.token,
            "link": invitation_link(invitation.token),
        }
    )


def _raise_unavailable(state: InvitationState) -> NoReturn:
    code = (
        status.HTTP_404_NOT_FOUND
        if state is InvitationState.INVALID
        else status.HTTP_410_GONE
    )
    raise HTTPException(
        status_code=code,
        detail={"state": state.value, "message": STATE_MESSAGES[state]},
    )


@router.post(
    "/calendars/{calendar_id}/invitations",
    response_model=InviteResult,
    status_code=status.HTTP_201_CREATED,
    summary="Invite someone to a calendar by email",
)
def invite_to_calendar(
    calendar_id: UUID,
    payload: InvitationCreate,
    response: Response,
    background_tasks: BackgroundTasks,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> InviteResult:
    calendar, _ = ensure_calendar_access(
        session, calendar_id, current_user, required_role="editor"
    )

    outcome = create_invitation(
        session,
        calendar_id=calendar_id,
        email=payload.email,
        role=payload.role,
        invited_by=current_user.id,
    )
    if outcome.is_conflict:
        response.status_code = status.HTTP_409_CONFLICT

    result = InviteResult(status=outcome.kind, message=OUTCOME_MESSAGES[outcome.kind])
    if outcome.invitation is not None:
        result.invitation = _with_link(outcome.invitation)
    if outcome.membership is not None:
        result.member = serialize_member(
            outcome.membership, session.get(Profile, outcome.membership.user_id)
        )

    if outcome.kind == "invited":
        background_tasks.add_task(
            send_invitation_email,
            outcome.invitation.email,
            invitation_link(outcome.invitation.token),
            calendar.name,
        )
    return result


@router.get(
    "/calendars/{calendar_id}/invitations",
    response_model=List[InvitationWithLink],
    summary="List pending invitations",
)
def list_invitations(
    calendar_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> List[InvitationWithLink]:
    ensure_calendar_access(session, calendar_id, current_user, required_role="editor")
    return [_with_link(inv) for inv in list_pending_invitations(session, calendar_id)]


@router.delete(
    "/calendars/{calendar_id}/invitations/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel an invitation",
    response_model=None,
)
def delete_invitation(
    calendar_id: UUID,
    invitation_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> None:
    ensure_calendar_access(session, calendar_id, current_user, required_role="editor")
    invitation = session.get(CalendarInvitation, invitation_id)
    if not invitation or invitation.calendar_id != calendar_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found"
        )
    cancel_invitation(session, invitation)


@router.get(
    "/invitations/{token}",
    response_model=InvitationResolution,
    summary="Resolve an invitation token",
)
@limiter.limit(settings.INVITATION_RATE_LIMIT)
def read_invitation(
    request: Request,
    token: str,
    session: SessionDep,
) -> InvitationResolution:
    resolution = resolve_token(session, token)
    result = InvitationResolution(
        state=resolution.state.value,
        message=STATE_MESSAGES[resolution.state],
    )
    invitation = resolution.invitation
    if invitation is None:
        return result

    result.email = invitation.email
    result.role = invitation.role
    result.expires_at = invitation.expires_at
    if resolution.calendar is not None:
        result.calendar = InvitationCalendarSummary(
            id=resolution.calendar.id,
            name=resolution.calendar.name,
            description=resolution.calendar.description,
            color=resolution.calendar.color,
            member_count=resolution.member_count,
        )
    if resolution.inviter is not None:
        result.inviter = ProfileSummary.model_validate(resolution.inviter)
    return result


@router.post(
    "/invitations/{token}/accept",
    response_model=CalendarMemberRead,
    summary="Accept an invitation",
)
def accept(
    token: str,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> CalendarMemberRead:
    invitation = get_invitation_by_token(session, token)
    if invitation is None:
        _raise_unavailable(InvitationState.INVALID)

    try:
        membership = accept_invitation(session, invitation, current_user)
    except InvitationUnavailable as exc:
        _raise_unavailable(exc.state)
    return serialize_member(membership, current_user)


@router.post(
    "/invitations/{token}/reject",
    response_model=InvitationRead,
    summary="Decline an invitation",
)
@limiter.limit(settings.INVITATION_RATE_LIMIT)
def reject(
    request: Request,
    token: str,
    session: SessionDep,
) -> CalendarInvitation:
    invitation = get_invitation_by_token(session, token)
    if invitation is None:
        _raise_unavailable(InvitationState.INVALID)

    try:
        return reject_invitation(session, invitation)
    except InvitationUnavailable as exc:
        _raise_unavailable(exc.state)
