from fastapi import APIRouter

from app.api.v1 import auth, calendars, events, health, invitations, join, users


api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(calendars.router, prefix="/calendars", tags=["calendars"])
api_router.include_router(events.router, prefix="", tags=["events"])
api_router.include_router(invitations.router, prefix="", tags=["invitations"])
api_router.include_router(join.router, prefix="", tags=["join"])
