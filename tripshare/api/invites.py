"""Invite API endpoints."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from tripshare.api.deps import client_identity, get_current_user, require_admin
from tripshare.database import get_session
from tripshare.models.invite import Invite
from tripshare.models.user import User
from tripshare.schemas.common import SuccessResponse, iso
from tripshare.schemas.invite import (
    InviteAcceptResponse,
    InviteCreateRequest,
    InviteCreateResponse,
    InviteListItem,
    InviteListResponse,
    InvitePreview,
    InviteResponse,
    InviteValidationResponse,
    TripSummary,
)
from tripshare.schemas.trip_access import access_to_response
from tripshare.services import invite_service
from tripshare.services.rate_limiter import enforce_rate_limit

router = APIRouter(prefix="/invites", tags=["invites"])


def _invite_fields(invite: Invite) -> dict:
    return dict(
        id=invite.id,
        created_by=invite.created_by,
        email=invite.email,
        role=invite.role,
        expires_at=iso(invite.expires_at),
        used_at=iso(invite.used_at),
        used_by=invite.used_by,
        created_at=iso(invite.created_at),
        updated_at=iso(invite.updated_at),
    )


@router.post("", response_model=InviteCreateResponse, status_code=status.HTTP_201_CREATED)
def create_invite(
    request: InviteCreateRequest,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Create an invite for one or more trips. Admin only.

    This response is the only place the plaintext code is handed out.
    """
    invite, trip_ids = invite_service.create_invite(
        session,
        admin,
        email=request.email,
        role=request.role,
        trip_ids=request.trip_ids,
    )
    return InviteCreateResponse(
        invite=InviteResponse(**_invite_fields(invite), code=invite.code),
        trip_ids=trip_ids,
    )


@router.get("", response_model=InviteListResponse)
def list_invites(
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """List all invites with status and trip count. Admin only."""
    listings = invite_service.list_invites(session)
    return InviteListResponse(
        invites=[
            InviteListItem(
                **_invite_fields(item.invite),
                trip_count=item.trip_count,
                status=item.state.status.value,
            )
            for item in listings
        ]
    )


@router.delete("/{invite_id}", response_model=SuccessResponse)
def revoke_invite(
    invite_id: str,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Revoke a pending invite. Admin only."""
    invite_service.revoke_invite(session, invite_id, admin)
    return SuccessResponse(success=True)


@router.get(
    "/validate/{code}",
    response_model=InviteValidationResponse,
    response_model_exclude_none=True,
)
def validate_invite(
    code: str,
    client_key: str = Depends(client_identity),
    session: Session = Depends(get_session),
):
    """Check an invite code before signing in. Public, rate-limited."""
    enforce_rate_limit(client_key)

    result = invite_service.validate_invite(session, code)
    if not result.valid:
        return InviteValidationResponse(valid=False, reason=result.reason, message=result.message)

    invite = result.invite
    return InviteValidationResponse(
        valid=True,
        invite=InvitePreview(
            email=invite.email,
            role=invite.role,
            expires_at=iso(invite.expires_at),
        ),
        trips=[TripSummary(id=t.id, slug=t.slug, title=t.title) for t in result.trips],
    )


@router.post("/{code}/accept", response_model=InviteAcceptResponse)
def accept_invite(
    code: str,
    user: User = Depends(get_current_user),
    client_key: str = Depends(client_identity),
    session: Session = Depends(get_session),
):
    """Accept an invite as the signed-in user. Rate-limited like validation."""
    enforce_rate_limit(client_key)

    grants = invite_service.accept_invite(session, code, user)
    return InviteAcceptResponse(
        success=True,
        trip_access=[access_to_response(g) for g in grants],
    )
