from datetime import datetime, timedelta

from sqlmodel import select

from app.core.config import settings
from app.models import CalendarInvitation

API = settings.API_V1_STR


def invite(client, calendar_id, headers, email, role="viewer"):
    return client.post(
        f"{API}/calendars/{calendar_id}/invitations",
        json={"email": email, "role": role},
        headers=headers,
    )


def test_trip_invitation_end_to_end(client, register, create_calendar):
    _, owner_headers = register("owner@tripstitch.io", "Olive Owner")
    calendar = create_calendar(owner_headers, name="Trip A")
    assert calendar["member_count"] == 1

    sent = invite(client, calendar["id"], owner_headers, "new.friend@tripstitch.io", "editor")
    assert sent.status_code == 201
    body = sent.json()
    assert body["status"] == "invited"
    token = body["invitation"]["token"]
    assert body["invitation"]["link"] == f"{settings.FRONTEND_URL}/invite/accept/{token}"

    resolved = client.get(f"{API}/invitations/{token}")
    assert resolved.status_code == 200
    resolution = resolved.json()
    assert resolution["state"] == "pending"
    assert resolution["role"] == "editor"
    assert resolution["calendar"]["name"] == "Trip A"
    assert resolution["calendar"]["member_count"] == 1
    assert resolution["inviter"]["full_name"] == "Olive Owner"

    friend, friend_headers = register("new.friend@tripstitch.io")
    accepted = client.post(f"{API}/invitations/{token}/accept", headers=friend_headers)
    assert accepted.status_code == 200
    assert accepted.json()["role"] == "editor"
    assert accepted.json()["user_id"] == friend["id"]

    members = client.get(f"{API}/calendars/{calendar['id']}/members", headers=owner_headers).json()
    assert len(members) == 2
    assert {m["role"] for m in members} == {"owner", "editor"}

    mine = client.get(f"{API}/calendars/", headers=friend_headers).json()
    assert [(c["name"], c["user_role"]) for c in mine] == [("Trip A", "editor")]

    # Accepting again changes nothing
    again = client.post(f"{API}/invitations/{token}/accept", headers=friend_headers)
    assert again.status_code == 200
    assert again.json()["id"] == accepted.json()["id"]
    assert client.get(f"{API}/invitations/{token}").json()["state"] == "already_accepted"


def test_duplicate_invite_returns_conflict(client, register, create_calendar):
    _, headers = register()
    calendar = create_calendar(headers)

    assert invite(client, calendar["id"], headers, "guest@tripstitch.io").status_code == 201
    dup = invite(client, calendar["id"], headers, "Guest@tripstitch.io")
    assert dup.status_code == 409
    assert dup.json()["status"] == "conflict"

    pending = client.get(f"{API}/calendars/{calendar['id']}/invitations", headers=headers).json()
    assert len(pending) == 1


def test_inviting_existing_member_is_a_conflict(client, register, create_calendar):
    _, headers = register("owner@tripstitch.io")
    calendar = create_calendar(headers)
    resp = invite(client, calendar["id"], headers, "owner@tripstitch.io")
    assert resp.status_code == 409
    assert resp.json()["status"] == "already_member"


def test_viewer_cannot_invite(client, register, create_calendar):
    _, owner_headers = register()
    _, viewer_headers = register("vi@tripstitch.io")
    calendar = create_calendar(owner_headers)
    invite(client, calendar["id"], owner_headers, "vi@tripstitch.io", "viewer")

    resp = invite(client, calendar["id"], viewer_headers, "guest@tripstitch.io")
    assert resp.status_code == 403


def test_owner_role_cannot_be_granted_by_invite(client, register, create_calendar):
    _, headers = register()
    calendar = create_calendar(headers)
    assert invite(client, calendar["id"], headers, "g@tripstitch.io", "owner").status_code == 422


def test_unknown_token(client, register):
    resolved = client.get(f"{API}/invitations/missing-token")
    assert resolved.status_code == 200
    assert resolved.json()["state"] == "invalid"
    assert resolved.json()["calendar"] is None

    _, headers = register()
    accept = client.post(f"{API}/invitations/missing-token/accept", headers=headers)
    assert accept.status_code == 404
    assert accept.json()["detail"]["state"] == "invalid"


def test_accept_requires_login(client, register, create_calendar):
    _, headers = register()
    calendar = create_calendar(headers)
    token = invite(client, calendar["id"], headers, "g@tripstitch.io").json()["invitation"]["token"]
    assert client.post(f"{API}/invitations/{token}/accept").status_code == 401


def test_expired_invitation_is_gone(client, session, register, create_calendar):
    _, headers = register()
    calendar = create_calendar(headers)
    token = invite(client, calendar["id"], headers, "late@tripstitch.io").json()["invitation"]["token"]

    invitation = session.exec(
        select(CalendarInvitation).where(CalendarInvitation.token == token)
    ).one()
    invitation.expires_at = datetime.utcnow() - timedelta(minutes=1)
    session.add(invitation)
    session.commit()

    assert client.get(f"{API}/invitations/{token}").json()["state"] == "expired"

    _, late_headers = register("late@tripstitch.io")
    resp = client.post(f"{API}/invitations/{token}/accept", headers=late_headers)
    assert resp.status_code == 410
    assert resp.json()["detail"]["state"] == "expired"
    assert client.get(f"{API}/calendars/{calendar['id']}", headers=late_headers).status_code == 403


def test_reject_invitation(client, register, create_calendar):
    _, headers = register()
    calendar = create_calendar(headers)
    token = invite(client, calendar["id"], headers, "no@tripstitch.io").json()["invitation"]["token"]

    rejected = client.post(f"{API}/invitations/{token}/reject")
    assert rejected.status_code == 200
    assert rejected.json()["rejected_at"] is not None
    assert client.get(f"{API}/invitations/{token}").json()["state"] == "rejected"

    assert client.post(f"{API}/invitations/{token}/reject").status_code == 410
    _, no_headers = register("no@tripstitch.io")
    assert client.post(f"{API}/invitations/{token}/accept", headers=no_headers).status_code == 410

def test_cancel_invitation(client, register, create_calendar):
    _, headers = register()
    calendar = create_calendar(headers)
    created = invite(client, calendar["id"], headers, "x@tripstitch.io").json()["invitation"]

    resp = client.delete(
        f"{API}/calendars/{calendar['id']}/invitations/{created['id']}", headers=headers
    )
    assert resp.status_code == 204
    assert client.get(f"{API}/invitations/{created['token']}").json()["state"] == "invalid"
    assert client.get(f"{API}/calendars/{calendar['id']}/invitations", headers=headers).json() == []
