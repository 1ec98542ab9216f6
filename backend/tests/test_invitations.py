from datetime import datetime, timedelta

import pytest
from sqlmodel import select

from app.models import Calendar, CalendarInvitation, CalendarMember
from app.services import invitations as invitation_service
from app.services import permissions
from app.services.invitations import (
    InvitationState,
    InvitationUnavailable,
    accept_invitation,
    create_invitation,
    invitation_link,
    invitation_state,
    reject_invitation,
    resolve_token,
)
from app.services.permissions import add_calendar_member, count_members


@pytest.fixture
def owner(make_profile):
    return make_profile("owner@tripstitch.io", "Olive Owner")


@pytest.fixture
def calendar(session, owner):
    cal = Calendar(name="Trip A", created_by=owner.id)
    session.add(cal)
    session.commit()
    session.refresh(cal)
    add_calendar_member(session, calendar_id=cal.id, user_id=owner.id, role="owner")
    session.commit()
    return cal


def invite(session, calendar, owner, email="guest@tripstitch.io", role="editor", now=None):
    return create_invitation(
        session,
        calendar_id=calendar.id,
        email=email,
        role=role,
        invited_by=owner.id,
        now=now,
    )


def open_invitations(session, calendar):
    return session.exec(
        select(CalendarInvitation).where(
            CalendarInvitation.calendar_id == calendar.id,
            CalendarInvitation.accepted_at.is_(None),
            CalendarInvitation.rejected_at.is_(None),
        )
    ).all()


def test_invite_unknown_email_creates_pending_invitation(session, calendar, owner):
    outcome = invite(session, calendar, owner, email="  Guest@TripStitch.io ")

    assert outcome.kind == "invited"
    invitation = outcome.invitation
    assert invitation.email == "guest@tripstitch.io"
    assert invitation.role == "editor"
    assert len(invitation.token) >= 32
    assert invitation.expires_at - invitation.created_at == timedelta(days=7)
    assert invitation_link(invitation.token).endswith(f"/invite/accept/{invitation.token}")

    resolution = resolve_token(session, invitation.token)
    assert resolution.state is InvitationState.PENDING
    assert resolution.calendar.name == "Trip A"
    assert resolution.inviter.id == owner.id
    assert resolution.member_count == 1


def test_second_invite_for_same_email_is_a_conflict(session, calendar, owner):
    first = invite(session, calendar, owner)
    second = invite(session, calendar, owner, email="GUEST@tripstitch.io")

    assert second.kind == "conflict"
    assert second.is_conflict
    assert second.invitation.id == first.invitation.id
    assert len(open_invitations(session, calendar)) == 1


def test_concurrent_invite_loses_race_to_existing_row(session, calendar, owner, monkeypatch):
    winner = invite(session, calendar, owner).invitation

    # The losing request checked before the winner committed
    real_find = invitation_service._find_open_invitation
    calls = []

    def stale_find(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return None
        return real_find(*args, **kwargs)

    monkeypatch.setattr(invitation_service, "_find_open_invitation", stale_find)
    outcome = invite(session, calendar, owner)

    assert outcome.kind == "conflict"
    assert outcome.invitation.id == winner.id
    assert len(open_invitations(session, calendar)) == 1


def test_invite_known_profile_adds_member_directly(session, calendar, owner, make_profile):
    friend = make_profile("friend@tripstitch.io")

    outcome = invite(session, calendar, owner, email="Friend@tripstitch.io", role="viewer")

    assert outcome.kind == "member_added"
    assert outcome.invitation is None
    assert outcome.membership.user_id == friend.id
    assert outcome.membership.role == "viewer"
    assert count_members(session, calendar.id) == 2
    assert open_invitations(session, calendar) == []

    again = invite(session, calendar, owner, email="friend@tripstitch.io")
    assert again.kind == "already_member"
    assert count_members(session, calendar.id) == 2


def test_accept_creates_membership_with_invited_role(session, calendar, owner, make_profile):
    invitation = invite(session, calendar, owner, role="editor").invitation
    guest = make_profile("guest@tripstitch.io")

    membership = accept_invitation(session, invitation, guest)

    assert membership.role == "editor"
    assert membership.calendar_id == calendar.id
    assert invitation.accepted_at is not None
    assert count_members(session, calendar.id) == 2
    assert resolve_token(session, invitation.token).state is InvitationState.ALREADY_ACCEPTED


def test_accept_twice_is_idempotent(session, calendar, owner, make_profile):
    invitation = invite(session, calendar, owner).invitation
    guest = make_profile("guest@tripstitch.io")

    first = accept_invitation(session, invitation, guest)
    accepted_at = invitation.accepted_at
    second = accept_invitation(session, invitation, guest)

    assert second.id == first.id
    assert invitation.accepted_at == accepted_at
    assert count_members(session, calendar.id) == 2


def test_accepted_invitation_cannot_be_reused_by_someone_else(
    session, calendar, owner, make_profile
):
    invitation = invite(session, calendar, owner).invitation
    accept_invitation(session, invitation, make_profile("guest@tripstitch.io"))

    with pytest.raises(InvitationUnavailable) as excinfo:
        accept_invitation(session, invitation, make_profile("other@tripstitch.io"))
    assert excinfo.value.state is InvitationState.ALREADY_ACCEPTED
    assert count_members(session, calendar.id) == 2


def test_expired_invitation_reports_expired_and_cannot_be_accepted(
    session, calendar, owner, make_profile
):
    past = datetime.utcnow() - timedelta(days=8)
    invitation = invite(session, calendar, owner, now=past).invitation

    assert resolve_token(session, invitation.token).state is InvitationState.EXPIRED
    with pytest.raises(InvitationUnavailable) as excinfo:
        accept_invitation(session, invitation, make_profile("guest@tripstitch.io"))
    assert excinfo.value.state is InvitationState.EXPIRED

    session.refresh(invitation)
    assert invitation.accepted_at is None
    assert invitation.rejected_at is None
    assert count_members(session, calendar.id) == 1


def test_expired_invitation_is_renewed_on_reinvite(session, calendar, owner):
    past = datetime.utcnow() - timedelta(days=8)
    stale = invite(session, calendar, owner, now=past).invitation
    old_token = stale.token

    outcome = invite(session, calendar, owner, role="viewer")

    assert outcome.kind == "invited"
    assert outcome.renewed
    assert outcome.invitation.id == stale.id
    assert outcome.invitation.token != old_token
    assert outcome.invitation.role == "viewer"
    assert resolve_token(session, old_token).state is InvitationState.INVALID
    assert resolve_token(session, outcome.invitation.token).state is InvitationState.PENDING


def test_reject_is_terminal(session, calendar, owner, make_profile):
    invitation = invite(session, calendar, owner).invitation

    reject_invitation(session, invitation)
    assert resolve_token(session, invitation.token).state is InvitationState.REJECTED

    with pytest.raises(InvitationUnavailable):
        accept_invitation(session, invitation, make_profile("guest@tripstitch.io"))
    with pytest.raises(InvitationUnavailable):
        reject_invitation(session, invitation)

    # A rejected invitation no longer blocks a fresh one
    assert invite(session, calendar, owner).kind == "invited"


def test_unknown_token_is_invalid(session):
    resolution = resolve_token(session, "not-a-real-token")
    assert resolution.state is InvitationState.INVALID
    assert resolution.invitation is None


def test_invitation_state_boundary():
    now = datetime(2025, 1, 1, 12, 0)
    invitation = CalendarInvitation(expires_at=now)
    assert invitation_state(invitation, now) is InvitationState.EXPIRED
    assert invitation_state(invitation, now - timedelta(seconds=1)) is InvitationState.PENDING
    assert invitation_state(None, now) is InvitationState.INVALID


def test_membership_unique_per_calendar_and_user(session, calendar, owner):
    again = add_calendar_member(session, calendar_id=calendar.id, user_id=owner.id, role="viewer")
    assert again.role == "owner"
    rows = session.exec(select(CalendarMember).where(CalendarMember.calendar_id == calendar.id)).all()
    assert len(rows) == 1


def test_accept_by_existing_member_keeps_membership_and_stamps(
    session, calendar, owner, make_profile
):
    invitation = invite(session, calendar, owner, role="editor").invitation
    guest = make_profile("guest@tripstitch.io")
    # Joined some other way before opening the invitation
    existing = add_calendar_member(
        session, calendar_id=calendar.id, user_id=guest.id, role="viewer"
    )
    session.commit()
    existing_id = existing.id

    membership = accept_invitation(session, invitation, guest)

    assert membership.id == existing_id
    assert membership.role == "viewer"
    assert invitation.accepted_at is not None
    assert count_members(session, calendar.id) == 2


def test_concurrent_accept_reuses_membership_from_winner(
    session, calendar, owner, make_profile, monkeypatch
):
    invitation = invite(session, calendar, owner, role="editor").invitation
    guest = make_profile("guest@tripstitch.io")
    winner = add_calendar_member(
        session, calendar_id=calendar.id, user_id=guest.id, role="editor"
    )
    session.commit()
    winner_id = winner.id

    # The losing request looked before the winner's membership was committed
    real_get = permissions.get_membership
    calls = []

    def stale_get(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return None
        return real_get(*args, **kwargs)

    monkeypatch.setattr(permissions, "get_membership", stale_get)
    membership = accept_invitation(session, invitation, guest)

    assert membership.id == winner_id
    assert invitation.accepted_at is not None
    assert count_members(session, calendar.id) == 2
    assert resolve_token(session, invitation.token).state is InvitationState.ALREADY_ACCEPTED


def test_inviting_registered_address_closes_earlier_token(
    session, calendar, owner, make_profile
):
    earlier = invite(session, calendar, owner, email="late@tripstitch.io").invitation
    make_profile("late@tripstitch.io")

    outcome = invite(session, calendar, owner, email="late@tripstitch.io")

    assert outcome.kind == "member_added"
    assert resolve_token(session, earlier.token).state is InvitationState.ALREADY_ACCEPTED
    assert open_invitations(session, calendar) == []


def test_timestamps_round_trip_as_naive_utc(session, calendar, owner):
    invitation = invite(session, calendar, owner).invitation
    session.expire_all()

    stored = session.get(CalendarInvitation, invitation.id)
    assert stored.created_at.tzinfo is None
    assert stored.expires_at.tzinfo is None
    assert abs(stored.created_at - datetime.utcnow()) < timedelta(minutes=1)
