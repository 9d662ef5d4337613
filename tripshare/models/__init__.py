"""TripShare Database Models."""

from tripshare.models.user import Trip, User
from tripshare.models.invite import Invite, InviteState, InviteStatus, InviteTripAssignment
from tripshare.models.role import Role
from tripshare.models.trip_access import TripAccess

__all__ = [
    "User",
    "Trip",
    "Invite",
    "InviteState",
    "InviteStatus",
    "InviteTripAssignment",
    "Role",
    "TripAccess",
]
