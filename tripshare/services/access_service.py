"""Trip access grants and the authorization predicate.

``has_access`` is the single place where role hierarchy and admin bypass are
combined. Grants live in ``trip_access``; admins never get rows there.
"""

import logging
import secrets
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from tripshare.errors import ConflictError, NotFoundError, ValidationError
from tripshare.models.role import Role
from tripshare.models.trip_access import TripAccess
from tripshare.models.user import Trip, User
from tripshare.utils.timeutil import utcnow
from tripshare.utils.validation import is_valid_id

logger = logging.getLogger(__name__)


# --- Authorization ---

def get_grant(session: Session, user_id: str, trip_id: str) -> Optional[TripAccess]:
    return session.exec(
        select(TripAccess).where(
            TripAccess.user_id == user_id,
            TripAccess.trip_id == trip_id,
        )
    ).first()


def has_access(
    session: Session,
    user_id: str,
    trip_id: str,
    is_admin: bool,
    min_role: Role,
) -> bool:
    """Whether a user may act on a trip with at least ``min_role``."""
    if is_admin:
        return True
    grant = get_grant(session, user_id, trip_id)
    if grant is None:
        return False
    return grant.role_enum.satisfies(min_role)


def effective_role(session: Session, user: User, trip_id: str) -> Optional[Role]:
    """The role a user effectively holds on a trip; admins count as editors."""
    if user.is_admin:
        return Role.EDITOR
    grant = get_grant(session, user.id, trip_id)
    return grant.role_enum if grant else None


# --- Grant writes ---

def _dialect_insert(session: Session):
    if session.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


def insert_grants_ignoring_existing(
    session: Session,
    user_id: str,
    trip_ids: list[str],
    role: Role,
    granted_by: Optional[str],
) -> None:
    """Insert one grant per trip; an existing (user, trip) grant is left untouched.

    Runs inside the caller's transaction and does not commit.
    """
    if not trip_ids:
        return
    now = utcnow()
    rows = [
        {
            "id": f"acc_{secrets.token_hex(8)}",
            "user_id": user_id,
            "trip_id": trip_id,
            "role": role.value,
            "granted_at": now,
            "granted_by": granted_by,
        }
        for trip_id in trip_ids
    ]
    insert = _dialect_insert(session)
    stmt = insert(TripAccess).values(rows).on_conflict_do_nothing(
        index_elements=["user_id", "trip_id"]
    )
    session.exec(stmt)


def _parse_role(role: object) -> Role:
    parsed = Role.parse(role)
    if parsed is None:
        raise ValidationError("Role must be either 'editor' or 'viewer'")
    return parsed


def grant_access(
    session: Session,
    admin: User,
    user_id: str,
    trip_id: str,
    role: str,
) -> TripAccess:
    """Directly grant a user a role on a trip. Admin only."""
    if not is_valid_id(user_id, "usr"):
        raise ValidationError("Invalid user ID format")
    if not is_valid_id(trip_id, "trp"):
        raise ValidationError("Invalid trip ID format")
    parsed = _parse_role(role)

    target = session.get(User, user_id)
    if not target:
        raise NotFoundError("User not found")
    if target.is_admin:
        raise ValidationError(
            "Cannot grant trip access to admin users (they have implicit access to all trips)"
        )
    if not session.get(Trip, trip_id):
        raise NotFoundError("Trip not found")

    grant = TripAccess(
        user_id=user_id,
        trip_id=trip_id,
        role=parsed.value,
        granted_by=admin.id,
    )
    session.add(grant)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(
            "User already has access to this trip. Use PATCH to update their role."
        )
    session.refresh(grant)
    logger.info("Granted %s on trip %s to user %s", parsed.value, trip_id, user_id)
    return grant


def list_trip_access(session: Session, trip_id: str) -> list[tuple[TripAccess, User]]:
    """All grants on a trip with their users, newest first."""
    if not is_valid_id(trip_id, "trp"):
        raise ValidationError("Invalid trip ID format")
    if not session.get(Trip, trip_id):
        raise NotFoundError("Trip not found")

    rows = session.exec(
        select(TripAccess, User)
        .join(User, User.id == TripAccess.user_id)
        .where(TripAccess.trip_id == trip_id)
        .order_by(col(TripAccess.granted_at).desc())
    ).all()
    return list(rows)


def update_access_role(session: Session, access_id: str, role: object) -> TripAccess:
    if not is_valid_id(access_id, "acc"):
        raise ValidationError("Invalid trip access ID format")
    parsed = _parse_role(role)

    grant = session.get(TripAccess, access_id)
    if not grant:
        raise NotFoundError("Trip access record not found")

    grant.role = parsed.value
    session.add(grant)
    session.commit()
    session.refresh(grant)
    logger.info("Changed grant %s to %s", access_id, parsed.value)
    return grant


def revoke_access(session: Session, access_id: str) -> None:
    """Delete a grant. Distinct from revoking an invite."""
    if not is_valid_id(access_id, "acc"):
        raise ValidationError("Invalid trip access ID format")

    grant = session.get(TripAccess, access_id)
    if not grant:
        raise NotFoundError("Trip access record not found")

    user_id, trip_id = grant.user_id, grant.trip_id
    session.delete(grant)
    session.commit()
    logger.info("Revoked grant %s (user %s, trip %s)", access_id, user_id, trip_id)


def list_users(session: Session) -> list[User]:
    return list(session.exec(select(User).order_by(User.email)).all())
