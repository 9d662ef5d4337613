"""Trip access request/response schemas."""

from typing import Optional

from tripshare.schemas.common import ApiModel, iso


class TripAccessResponse(ApiModel):
    id: str
    user_id: str
    trip_id: str
    role: str
    granted_at: str
    granted_by: Optional[str]


class TripAccessCreateRequest(ApiModel):
    user_id: Optional[str] = None
    trip_id: Optional[str] = None
    role: Optional[str] = None


class TripAccessUpdateRequest(ApiModel):
    role: Optional[str] = None


class TripAccessEnvelope(ApiModel):
    trip_access: TripAccessResponse


class TripUserAccess(ApiModel):
    id: str
    user_id: str
    email: str
    display_name: Optional[str]
    role: str
    granted_at: str
    granted_by: Optional[str]


class TripUsersResponse(ApiModel):
    users: list[TripUserAccess]


class UserSummary(ApiModel):
    id: str
    email: str
    display_name: Optional[str]
    is_admin: bool


class UsersResponse(ApiModel):
    users: list[UserSummary]


class MyAccessResponse(ApiModel):
    trip_id: str
    role: str
    is_admin: bool


def access_to_response(access) -> TripAccessResponse:
    """Build the response model for a TripAccess row."""
    return TripAccessResponse(
        id=access.id,
        user_id=access.user_id,
        trip_id=access.trip_id,
        role=access.role,
        granted_at=iso(access.granted_at),
        granted_by=access.granted_by,
    )
