from .calendar import Calendar
from .calendar_invitation import CalendarInvitation
from .calendar_join_request import CalendarJoinRequest
from .calendar_member import CalendarMember
from .event import Event
from .profile import Profile

__all__ = [
    "Calendar",
    "CalendarInvitation",
    "CalendarJoinRequest",
    "CalendarMember",
    "Event",
    "Profile",
]
