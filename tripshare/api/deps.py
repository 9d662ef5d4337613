"""Common API dependencies: current user extraction, admin and trip-role guards."""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from tripshare.config import settings
from tripshare.database import get_session
from tripshare.errors import AuthenticationError, AuthorizationError, ValidationError
from tripshare.models.role import Role
from tripshare.models.user import User
from tripshare.services.access_service import effective_role, has_access
from tripshare.utils.security import decode_token
from tripshare.utils.validation import is_valid_id

logger = logging.getLogger(__name__)

# auto_error=False: a missing header must be a 401 in our error shape
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    """Extract and validate user from JWT access token."""
    if credentials is None:
        raise AuthenticationError("Missing authentication token")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.PyJWTError:
        raise AuthenticationError("Invalid or expired token")

    if payload.get("type") != "access" or not payload.get("sub"):
        raise AuthenticationError("Invalid token type")

    user = session.get(User, payload["sub"])
    if not user:
        raise AuthenticationError("User not found")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Require the current user to be an admin."""
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user


# --- Trip access guards ---

@dataclass
class AccessContext:
    user: User
    trip_id: str
    role: Role  # effective role; admins count as editors


def check_access(min_role: Role, trip_id_param: str = "trip_id"):
    """Build a route dependency requiring ``min_role`` on the trip named by
    the ``trip_id_param`` path parameter.

    401 without a principal, 400 for a missing or malformed trip id,
    403 naming the required role when the check fails.
    """

    def guard(
        request: Request,
        user: User = Depends(get_current_user),
        session: Session = Depends(get_session),
    ) -> AccessContext:
        trip_id = request.path_params.get(trip_id_param)
        if not trip_id or not is_valid_id(trip_id, "trp"):
            raise ValidationError("Invalid trip ID format")

        if not has_access(session, user.id, trip_id, user.is_admin, min_role):
            raise AuthorizationError(f"{min_role.value.capitalize()} access required for this trip")

        return AccessContext(
            user=user,
            trip_id=trip_id,
            role=effective_role(session, user, trip_id) or min_role,
        )

    return guard


require_viewer = check_access(Role.VIEWER)
require_editor = check_access(Role.EDITOR)


# --- Client identity for rate limiting ---

def client_identity(request: Request) -> str:
    """Rate-limit key for the caller.

    The direct peer address, unless proxy headers are explicitly trusted.
    With trusted proxies a request missing both headers is rejected rather
    than lumped under a shared key.
    """
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
        real_ip = request.headers.get("x-real-ip", "").strip()
        if forwarded:
            return forwarded
        if real_ip:
            return real_ip
        logger.warning("Missing proxy headers while trust_proxy_headers is enabled")
        raise ValidationError("Missing required proxy headers")

    return request.client.host if request.client else "unknown"
