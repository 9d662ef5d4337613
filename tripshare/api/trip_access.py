"""Trip access API endpoints: admin grant management and the caller's own access."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from tripshare.api.deps import AccessContext, require_admin, require_viewer
from tripshare.database import get_session
from tripshare.models.user import User
from tripshare.schemas.common import SuccessResponse, iso
from tripshare.schemas.trip_access import (
    MyAccessResponse,
    TripAccessCreateRequest,
    TripAccessEnvelope,
    TripAccessUpdateRequest,
    TripUserAccess,
    TripUsersResponse,
    UserSummary,
    UsersResponse,
    access_to_response,
)
from tripshare.services import access_service

router = APIRouter(tags=["trip-access"])


@router.post("/trip-access", response_model=TripAccessEnvelope, status_code=status.HTTP_201_CREATED)
def grant_access(
    request: TripAccessCreateRequest,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Grant a user a role on a trip. Admin only."""
    grant = access_service.grant_access(
        session,
        admin,
        user_id=request.user_id,
        trip_id=request.trip_id,
        role=request.role,
    )
    return TripAccessEnvelope(trip_access=access_to_response(grant))


@router.get("/trips/{trip_id}/access", response_model=TripUsersResponse)
def list_trip_access(
    trip_id: str,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """List users with access to a trip. Admin only."""
    rows = access_service.list_trip_access(session, trip_id)
    return TripUsersResponse(
        users=[
            TripUserAccess(
                id=grant.id,
                user_id=grant.user_id,
                email=user.email,
                display_name=user.display_name,
                role=grant.role,
                granted_at=iso(grant.granted_at),
                granted_by=grant.granted_by,
            )
            for grant, user in rows
        ]
    )


@router.patch("/trip-access/{access_id}", response_model=TripAccessEnvelope)
def update_access(
    access_id: str,
    request: TripAccessUpdateRequest,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Change the role of an existing grant. Admin only."""
    grant = access_service.update_access_role(session, access_id, request.role)
    return TripAccessEnvelope(trip_access=access_to_response(grant))


@router.delete("/trip-access/{access_id}", response_model=SuccessResponse)
def revoke_access(
    access_id: str,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Remove a user's access to a trip. Admin only."""
    access_service.revoke_access(session, access_id)
    return SuccessResponse(success=True, message="Trip access revoked")


@router.get("/users", response_model=UsersResponse)
def list_users(
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """List all users. Admin only."""
    return UsersResponse(
        users=[
            UserSummary(
                id=u.id,
                email=u.email,
                display_name=u.display_name,
                is_admin=u.is_admin,
            )
            for u in access_service.list_users(session)
        ]
    )


@router.get("/trips/{trip_id}/my-access", response_model=MyAccessResponse)
def my_access(ctx: AccessContext = Depends(require_viewer)):
    """The caller's effective role on a trip (viewer or better required)."""
    return MyAccessResponse(
        trip_id=ctx.trip_id,
        role=ctx.role.value,
        is_admin=ctx.user.is_admin,
    )
