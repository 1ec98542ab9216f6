from .calendar import (
    CalendarCreate,
    CalendarMemberRead,
    CalendarMemberUpdate,
    CalendarRead,
    CalendarReadWithRole,
    CalendarRole,
    CalendarUpdate,
    InviteRole,
)
from .event import (
    DayCellRead,
    EventCreate,
    EventRead,
    EventSegmentRead,
    EventUpdate,
    MonthView,
    PlacedEventRead,
    check_event_dates,
)
from .invitation import (
    InvitationCalendarSummary,
    InvitationCreate,
    InvitationRead,
    InvitationResolution,
    InvitationWithLink,
    InviteResult,
)
from .join_request import JoinLink, JoinRequestRead, JoinResult
from .profile import (
    ProfileBase,
    ProfileCreate,
    ProfileLogin,
    ProfileRead,
    ProfileSummary,
    ProfileUpdate,
    RefreshTokenRequest,
    TokenPair,
)

__all__ = [
    "CalendarCreate",
    "CalendarMemberRead",
    "CalendarMemberUpdate",
    "CalendarRead",
    "CalendarReadWithRole",
    "CalendarRole",
    "CalendarUpdate",
    "DayCellRead",
    "EventCreate",
    "EventRead",
    "EventSegmentRead",
    "EventUpdate",
    "InvitationCalendarSummary",
    "InvitationCreate",
    "InvitationRead",
    "InvitationResolution",
    "InvitationWithLink",
    "InviteResult",
    "InviteRole",
    "JoinLink",
    "JoinRequestRead",
    "JoinResult",
    "MonthView",
    "PlacedEventRead",
    "ProfileBase",
    "ProfileCreate",
    "ProfileLogin",
    "ProfileRead",
    "ProfileSummary",
    "ProfileUpdate",
    "RefreshTokenRequest",
    "TokenPair",
    "check_event_dates",
]
