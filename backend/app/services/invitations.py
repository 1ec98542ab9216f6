"""
Invitation lifecycle and its effect on calendar membership.

An invitation is ``pending`` until it is accepted, rejected or runs past
``expires_at``; every other state is terminal for that row. Conflicts the
caller is expected to show to the user (already a member, invitation already
sent) come back as ``InviteOutcome`` values. Database errors propagate.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Literal, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.config import settings
from app.models import Calendar, CalendarInvitation, CalendarMember, Profile
from app.services.permissions import (
    add_calendar_member,
    count_members,
    get_membership,
)

logger = logging.getLogger(__name__)


class InvitationState(str, Enum):
    PENDING = "pending"
    ALREADY_ACCEPTED = "already_accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    INVALID = "invalid"


class InvitationUnavailable(Exception):
    """The invitation can no longer be acted on."""

    def __init__(self, state: InvitationState):
        self.state = state
        super().__init__(f"Invitation is {state.value}")


OutcomeKind = Literal["invited", "member_added", "conflict", "already_member"]


@dataclass
class InviteOutcome:
    kind: OutcomeKind
    invitation: Optional[CalendarInvitation] = None
    membership: Optional[CalendarMember] = None
    renewed: bool = False

    @property
    def is_conflict(self) -> bool:
        return self.kind in ("conflict", "already_member")


@dataclass
class TokenResolution:
    state: InvitationState
    invitation: Optional[CalendarInvitation] = None
    calendar: Optional[Calendar] = None
    inviter: Optional[Profile] = None
    member_count: int = 0


def normalize_email(email: str) -> str:
    return email.strip().lower()


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def invitation_link(token: str) -> str:
    return f"{settings.invitation_link_base}/{token}"


def invitation_state(
    invitation: Optional[CalendarInvitation], now: datetime
) -> InvitationState:
    if invitation is None:
        return InvitationState.INVALID
    if invitation.accepted_at is not None:
        return InvitationState.ALREADY_ACCEPTED
    if invitation.rejected_at is not None:
        return InvitationState.REJECTED
    if invitation.expires_at <= now:
        return InvitationState.EXPIRED
    return InvitationState.PENDING


def get_invitation_by_token(
    session: Session, token: str
) -> Optional[CalendarInvitation]:
    return session.exec(
        select(CalendarInvitation).where(CalendarInvitation.token == token)
    ).one_or_none()


def _find_open_invitation(
    session: Session, calendar_id: UUID, email: str
) -> Optional[CalendarInvitation]:
    """Unanswered invitation for the pair, whether or not it has expired."""
    return session.exec(
        select(CalendarInvitation).where(
            CalendarInvitation.calendar_id == calendar_id,
            CalendarInvitation.email == email,
            CalendarInvitation.accepted_at.is_(None),
            CalendarInvitation.rejected_at.is_(None),
        )
    ).one_or_none()


def list_pending_invitations(
    session: Session, calendar_id: UUID, now: Optional[datetime] = None
) -> List[CalendarInvitation]:
    now = now or datetime.utcnow()
    return list(
        session.exec(
            select(CalendarInvitation)
            .where(
                CalendarInvitation.calendar_id == calendar_id,
                CalendarInvitation.accepted_at.is_(None),
                CalendarInvitation.rejected_at.is_(None),
                CalendarInvitation.expires_at > now,
            )
            .order_by(CalendarInvitation.created_at)
        ).all()
    )


def resolve_token(
    session: Session, token: str, now: Optional[datetime] = None
) -> TokenResolution:
    """Work out what presenting this token means right now."""
    now = now or datetime.utcnow()
    invitation = get_invitation_by_token(session, token)
    state = invitation_state(invitation, now)
    if invitation is None:
        return TokenResolution(state=state)

    return TokenResolution(
        state=state,
        invitation=invitation,
        calendar=session.get(Calendar, invitation.calendar_id),
        inviter=session.get(Profile, invitation.invited_by),
        member_count=count_members(session, invitation.calendar_id),
    )


def _close_open_invitation(
    session: Session, calendar_id: UUID, email: str, now: datetime
) -> None:
    """Stamp an unanswered token invitation for an address that now has a profile."""
    stale = _find_open_invitation(session, calendar_id, email)
    if stale is not None:
        stale.accepted_at = now
        session.add(stale)
        logger.info("Closed invitation %s, %s already has a profile", stale.id, email)


def _add_known_profile(
    session: Session,
    calendar_id: UUID,
    profile: Profile,
    role: str,
) -> InviteOutcome:
    existing = get_membership(session, calendar_id, profile.id)
    if existing:
        session.commit()
        logger.info("%s is already a member of calendar %s", profile.email, calendar_id)
        return InviteOutcome(kind="already_member", membership=existing)

    membership = add_calendar_member(
        session, calendar_id=calendar_id, user_id=profile.id, role=role
    )
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        existing = get_membership(session, calendar_id, profile.id)
        if existing is None:
            raise
        return InviteOutcome(kind="already_member", membership=existing)

    session.refresh(membership)
    logger.info(
        "Added existing profile %s to calendar %s as %s",
        profile.email,
        calendar_id,
        role,
    )
    return InviteOutcome(kind="member_added", membership=membership)


def create_invitation(
    session: Session,
    *,
    calendar_id: UUID,
    email: str,
    role: str,
    invited_by: UUID,
    now: Optional[datetime] = None,
) -> InviteOutcome:
    """Invite an email address to a calendar.

    Addresses that already belong to a profile skip the token step and are
    added as members straight away, closing any token invitation they were
    sent before registering. Otherwise a token invitation is created,
    unless an active one exists for the same address, in which case that one
    is returned as a conflict.
    """
    now = now or datetime.utcnow()
    email = normalize_email(email)
    expires_at = now + timedelta(days=settings.INVITATION_EXPIRE_DAYS)

    profile = session.exec(select(Profile).where(Profile.email == email)).one_or_none()
    if profile:
        _close_open_invitation(session, calendar_id, email, now)
        return _add_known_profile(session, calendar_id, profile, role)

    existing = _find_open_invitation(session, calendar_id, email)
    if existing is not None:
        if invitation_state(existing, now) is InvitationState.PENDING:
            logger.info("Invitation for %s to calendar %s already exists", email, calendar_id)
            return InviteOutcome(kind="conflict", invitation=existing)

        # Expired without an answer: reissue it under a fresh token
        existing.token = generate_token()
        existing.expires_at = expires_at
        existing.role = role
        existing.invited_by = invited_by
        session.add(existing)
        session.commit()
        session.refresh(existing)
        logger.info("Renewed expired invitation %s for %s", existing.id, email)
        return InviteOutcome(kind="invited", invitation=existing, renewed=True)

    invitation = CalendarInvitation(
        calendar_id=calendar_id,
        email=email,
        role=role,
        invited_by=invited_by,
        token=generate_token(),
        expires_at=expires_at,
        created_at=now,
    )
    session.add(invitation)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race with a concurrent invite for the same address
        session.rollback()
        winner = _find_open_invitation(session, calendar_id, email)
        if winner is None:
            raise
        logger.warning(
            "Concurrent invitation for %s to calendar %s, using %s",
            email,
            calendar_id,
            winner.id,
        )
        return InviteOutcome(kind="conflict", invitation=winner)

    session.refresh(invitation)
    logger.info("Created invitation %s for %s to calendar %s", invitation.id, email, calendar_id)
    return InviteOutcome(kind="invited", invitation=invitation)


def accept_invitation(
    session: Session,
    invitation: CalendarInvitation,
    user: Profile,
    now: Optional[datetime] = None,
) -> CalendarMember:
    """Turn a pending invitation into a membership for ``user``.

    Accepting again as the same user returns the existing membership and
    leaves ``accepted_at`` untouched.
    """
    now = now or datetime.utcnow()
    state = invitation_state(invitation, now)

    if state is InvitationState.ALREADY_ACCEPTED:
        membership = get_membership(session, invitation.calendar_id, user.id)
        if membership is not None:
            return membership
        raise InvitationUnavailable(state)
    if state is not InvitationState.PENDING:
        raise InvitationUnavailable(state)

    membership = add_calendar_member(
        session,
        calendar_id=invitation.calendar_id,
        user_id=user.id,
        role=invitation.role,
    )
    # Membership must exist before the invitation is stamped as accepted
    try:
        session.flush()
    except IntegrityError:
        # A concurrent accept for the same user inserted the membership first
        session.rollback()
        membership = get_membership(session, invitation.calendar_id, user.id)
        if membership is None:
            raise
        logger.info(
            "Membership for %s in calendar %s already existed on accept",
            user.id,
            invitation.calendar_id,
        )

    invitation.accepted_at = now
    session.add(invitation)
    session.commit()
    session.refresh(membership)
    logger.info(
        "Invitation %s accepted by %s, role %s",
        invitation.id,
        user.id,
        membership.role,
    )
    return membership


def reject_invitation(
    session: Session,
    invitation: CalendarInvitation,
    now: Optional[datetime] = None,
) -> CalendarInvitation:
    now = now or datetime.utcnow()
    state = invitation_state(invitation, now)
    if state is not InvitationState.PENDING:
        raise InvitationUnavailable(state)

    invitation.rejected_at = now
    session.add(invitation)
    session.commit()
    session.refresh(invitation)
    logger.info("Invitation %s rejected", invitation.id)
    return invitation


def cancel_invitation(session: Session, invitation: CalendarInvitation) -> None:
    session.delete(invitation)
    session.commit()
    logger.info("Invitation %s cancelled", invitation.id)
