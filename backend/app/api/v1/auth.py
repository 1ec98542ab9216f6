from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from sqlmodel import select

from app.core.security import (
    create_access_token,
    create_refresh_token,
    get_password_hash,
    verify_password,
    verify_token,
)
from app.db import SessionDep
from app.models import Profile
from app.schemas import (
    ProfileCreate,
    ProfileLogin,
    ProfileRead,
    RefreshTokenRequest,
    TokenPair,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register",
    response_model=ProfileRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
def register(payload: ProfileCreate, session: SessionDep) -> Profile:
    email = payload.email.lower()
    existing = session.exec(select(Profile).where(Profile.email == email)).one_or_none()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        )

    profile = Profile(
        email=email,
        full_name=payload.full_name or email,
        avatar_url=payload.avatar_url,
        hashed_password=get_password_hash(payload.password),
    )
    session.add(profile)
    session.commit()
    session.refresh(profile)
    logger.info("Registered profile %s", profile.id)
    return profile


@router.post(
    "/login",
    response_model=TokenPair,
    summary="Login and obtain tokens",
)
def login(payload: ProfileLogin, session: SessionDep) -> TokenPair:
    email = payload.email.lower()
    profile = session.exec(select(Profile).where(Profile.email == email)).one_or_none()
    if not profile or not verify_password(payload.password, profile.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Incorrect email or password",
        )
    if not profile.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is inactive",
        )

    return TokenPair(
        access_token=create_access_token(profile.id),
        refresh_token=create_refresh_token(profile.id),
    )


@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh access token",
)
def refresh_tokens(payload: RefreshTokenRequest) -> TokenPair:
    try:
        refresh_payload = verify_token(payload.refresh_token, token_type="refresh")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        ) from None

    user_id = refresh_payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token payload",
        )

    return TokenPair(
        access_token=create_access_token(user_id),
        refresh_token=create_refresh_token(user_id),
    )
