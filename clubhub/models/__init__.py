# clubhub/models/__init__.py
# Central import surface for SQLModel table registration.

from .user import User, Gender
from .auth import AuthToken, OtpCode, TokenType
from .club import Club, ClubType, JoinMode
from .membership import Membership, MemberRole, MemberStatus
from .invite import Invite, InviteStatus
from .application import Application, ApplicationStatus
from .event import Event, EventRegistration, RegistrationStatus
from .audit_log import AuditLog
from .notification import Notification

__all__ = [
    "User",
    "Gender",
    "AuthToken",
    "OtpCode",
    "TokenType",
    "Club",
    "ClubType",
    "JoinMode",
    "Membership",
    "MemberRole",
    "MemberStatus",
    "Invite",
    "InviteStatus",
    "Application",
    "ApplicationStatus",
    "Event",
    "EventRegistration",
    "RegistrationStatus",
    "AuditLog",
    "Notification",
]
