from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.db import SessionDep
from app.models import Profile
from app.schemas import ProfileRead, ProfileUpdate

router = APIRouter()


@router.get("/me", response_model=ProfileRead, summary="Get current profile")
def read_me(current_user: Profile = Depends(get_current_user)) -> Profile:
    return current_user


@router.put("/me", response_model=ProfileRead, summary="Update current profile")
def update_me(
    payload: ProfileUpdate,
    session: SessionDep,
    current_user: Profile = Depends(get_current_user),
) -> Profile:
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)
    current_user.touch()

    session.add(current_user)
    session.commit()
    session.refresh(current_user)
    return current_user
