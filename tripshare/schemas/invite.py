"""Invite request/response schemas."""

from typing import Optional

from tripshare.schemas.common import ApiModel
from tripshare.schemas.trip_access import TripAccessResponse


class InviteCreateRequest(ApiModel):
    email: Optional[str] = None
    role: Optional[str] = None  # 'editor' | 'viewer'
    trip_ids: list[str] = []


class InviteSummary(ApiModel):
    """Invite fields safe to show after creation: everything but the code."""

    id: str
    created_by: str
    email: Optional[str]
    role: str
    expires_at: str
    used_at: Optional[str]
    used_by: Optional[str]
    created_at: str
    updated_at: str


class InviteResponse(InviteSummary):
    code: str  # only returned by create


class InviteCreateResponse(ApiModel):
    invite: InviteResponse
    trip_ids: list[str]


class InviteListItem(InviteSummary):
    trip_count: int
    status: str  # 'pending' | 'used' | 'expired'


class InviteListResponse(ApiModel):
    invites: list[InviteListItem]


# --- Public validation ---

class InvitePreview(ApiModel):
    email: Optional[str]
    role: str
    expires_at: str


class TripSummary(ApiModel):
    id: str
    slug: str
    title: str


class InviteValidationResponse(ApiModel):
    valid: bool
    reason: Optional[str] = None  # 'not_found' | 'expired' | 'already_used'
    message: Optional[str] = None
    invite: Optional[InvitePreview] = None
    trips: Optional[list[TripSummary]] = None


class InviteAcceptResponse(ApiModel):
    success: bool = True
    trip_access: list[TripAccessResponse]
