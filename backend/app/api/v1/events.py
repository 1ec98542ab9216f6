from __future__ import annotations

import logging
from typing import List, Sequence
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from app.api.deps import get_current_user
from app.db import SessionDep
from app.models import Event, Profile
from app.schemas import (
    EventCreate,
    EventRead,
    EventUpdate,
    ProfileSummary,
    check_event_dates,
)
from app.services.permissions import can_modify_event, ensure_calendar_access

logger = logging.getLogger(__name__)

router = APIRouter()


def serialize_events(session: Session, events: Sequence[Event]) -> List[EventRead]:
    """Build read DTOs with the creator's profile joined in."""
    creator_ids = {event.created_by for event in events}
    creators: dict[UUID, Profile] = {}
    if creator_ids:
        creators = {
            profile.id: profile
            for profile in session.exec(
                select(Profile).where(Profile.id.in_(list(creator_ids)))
            )
        }

    result: List[EventRead] = []
    for event in events:
        creator = creators.get(event.created_by)
        result.append(
            EventRead.model_validate(event).model_copy(
                update={
                    "creator_profile": ProfileSummary.model_validate(creator)
                    if creator
                    else None
                }
            )
        )
    return result


def list_calendar_events(session: Session, calendar_id: UUID) -> List[Event]:
    return list(
        session.exec(
            select(Event)
            .where(Event.calendar_id == calendar_id)
            .order_by(Event.start_date, Event.time, Event.created_at)
        ).all()
    )


def _get_event_or_404(session: Session, event_id: UUID) -> Event:
    event = session.get(Event, event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        )
    return event


def _ensure_can_modify(event: Event, user: Profile, role: str) -> None:
    if not can_modify_event(event, user, role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the calendar owner or the event's creator can change this event",
        )


@router.get(
    "/calendars/{calendar_id}/events",
    response_model=List[EventRead],
    summary="List calendar events",
)
def list_events(
    calendar_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> List[EventRead]:
    ensure_calendar_access(session, calendar_id, current_user)
    return serialize_events(session, list_calendar_events(session, calendar_id))


@router.post(
    "/calendars/{calendar_id}/events",
    response_model=EventRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create event",
)
def create_event(
    calendar_id: UUID,
    payload: EventCreate,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> EventRead:
    ensure_calendar_access(session, calendar_id, current_user, required_role="editor")

    event = Event(
        **payload.model_dump(),
        calendar_id=calendar_id,
        created_by=current_user.id,
    )
    session.add(event)
    session.commit()
    session.refresh(event)
    logger.info("Event %s created in calendar %s", event.id, calendar_id)
    return serialize_events(session, [event])[0]


@router.get("/events/{event_id}", response_model=EventRead, summary="Get event by id")
def get_event(
    event_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> EventRead:
    event = _get_event_or_404(session, event_id)
    ensure_calendar_access(session, event.calendar_id, current_user)
    return serialize_events(session, [event])[0]


@router.put("/events/{event_id}", response_model=EventRead, summary="Update event")
def update_event(
    event_id: UUID,
    payload: EventUpdate,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> EventRead:
    event = _get_event_or_404(session, event_id)
    _, role = ensure_calendar_access(session, event.calendar_id, current_user)
    _ensure_can_modify(event, current_user, role)

    update_data = payload.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field not in ("description",):
            continue
        setattr(event, field, value)

    try:
        event.end_date = check_event_dates(
            event.start_date, event.end_date, event.is_multi_day
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from None
    event.touch()

    session.add(event)
    session.commit()
    session.refresh(event)
    return serialize_events(session, [event])[0]


@router.delete(
    "/events/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete event",
    response_model=None,
)
def delete_event(
    event_id: UUID,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> None:
    event = _get_event_or_404(session, event_id)
    _, role = ensure_calendar_access(session, event.calendar_id, current_user)
    _ensure_can_modify(event, current_user, role)

    session.delete(event)
    session.commit()
    logger.info("Event %s deleted by %s", event_id, current_user.id)
