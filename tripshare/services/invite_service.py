"""Invite lifecycle: create, validate, accept, list, revoke.

Conflicts are settled by the database. Invite creation is one transaction
(invite row + every trip assignment), code collisions surface as unique
violations and are retried, and the pending -> used transition is a single
conditional UPDATE so exactly one concurrent accept (or revoke) can win.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from tripshare.config import settings
from tripshare.errors import (
    ConflictError,
    InternalError,
    InviteUnavailableError,
    NotFoundError,
    ValidationError,
)
from tripshare.models.invite import Invite, InviteState, InviteStatus, InviteTripAssignment
from tripshare.models.role import Role
from tripshare.models.trip_access import TripAccess
from tripshare.models.user import Trip, User
from tripshare.services.access_service import insert_grants_ignoring_existing
from tripshare.utils.security import generate_invite_code, is_well_formed_code
from tripshare.utils.timeutil import utcnow
from tripshare.utils.validation import is_valid_email, is_valid_id

logger = logging.getLogger(__name__)

REASON_NOT_FOUND = "not_found"
REASON_EXPIRED = "expired"
REASON_ALREADY_USED = "already_used"

_REASON_MESSAGES = {
    REASON_NOT_FOUND: "Invite not found",
    REASON_EXPIRED: "This invite has expired",
    REASON_ALREADY_USED: "This invite has already been used",
}


@dataclass
class InviteValidation:
    valid: bool
    invite: Optional[Invite] = None
    trips: list[Trip] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def message(self) -> Optional[str]:
        return _REASON_MESSAGES.get(self.reason) if self.reason else None


@dataclass
class InviteListing:
    invite: Invite
    trip_count: int
    state: InviteState


def _reason_for(state: InviteState) -> str:
    if state.status is InviteStatus.EXPIRED:
        return REASON_EXPIRED
    return REASON_ALREADY_USED


def _active_invite_filter(now):
    return (
        col(Invite.used_at).is_(None),
        col(Invite.expires_at) > now,
    )


# --- Create ---

def _check_trip_ids(trip_ids: object) -> list[str]:
    """Validate the trip id list and collapse duplicates, keeping order."""
    if not isinstance(trip_ids, list) or not trip_ids:
        raise ValidationError("At least one trip ID is required")
    unique: list[str] = []
    for trip_id in trip_ids:
        if not is_valid_id(trip_id, "trp"):
            raise ValidationError(f"Invalid trip ID format: {trip_id}")
        if trip_id not in unique:
            unique.append(trip_id)
    return unique


def _other_active_invite_exists(session: Session, email: str, invite_id: str, now) -> bool:
    return session.exec(
        select(Invite.id).where(
            Invite.email == email,
            Invite.id != invite_id,
            *_active_invite_filter(now),
        )
    ).first() is not None


def create_invite(
    session: Session,
    admin: User,
    email: Optional[str],
    role: object,
    trip_ids: object,
) -> tuple[Invite, list[str]]:
    """Create an invite granting ``role`` on every trip in ``trip_ids``.

    The returned invite carries the plaintext code. This is the only place
    the code is handed out; listings never include it.

    A blank ``email`` is treated as absent. Otherwise it must be a valid
    address and is stored trimmed and lower-cased.
    """
    normalized_email = (email or "").strip().lower() or None
    if normalized_email is not None and not is_valid_email(normalized_email):
        raise ValidationError("Valid email is required")
    parsed_role = Role.parse(role)
    if parsed_role is None:
        raise ValidationError("Role must be either 'editor' or 'viewer'")
    unique_trip_ids = _check_trip_ids(trip_ids)

    now = utcnow()

    found = session.exec(
        select(Trip.id).where(col(Trip.id).in_(unique_trip_ids))
    ).all()
    if len(found) != len(unique_trip_ids):
        raise NotFoundError("One or more trip IDs do not exist")

    expires_at = now + timedelta(days=settings.invite_ttl_days)

    for attempt in range(1, settings.invite_code_attempts + 1):
        invite = Invite(
            code=generate_invite_code(),
            created_by=admin.id,
            email=normalized_email,
            role=parsed_role.value,
            expires_at=expires_at,
            created_at=now,
            updated_at=now,
        )
        session.add(invite)
        session.add_all(
            InviteTripAssignment(invite_id=invite.id, trip_id=trip_id)
            for trip_id in unique_trip_ids
        )
        try:
            session.flush()
        except IntegrityError:
            # Only the code (or generated id) can collide here: trips were
            # checked and assignment pairs are deduplicated
            session.rollback()
            logger.warning("Invite code collision on attempt %d", attempt)
            continue

        # The flush holds the write lock, so a concurrent create for the
        # same email is either visible here or blocked until we commit
        if normalized_email and _other_active_invite_exists(session, normalized_email, invite.id, now):
            session.rollback()
            raise ConflictError("An active invite already exists for this email")

        session.commit()
        session.refresh(invite)
        logger.info(
            "Invite %s created by %s for %d trip(s) as %s",
            invite.id, admin.id, len(unique_trip_ids), parsed_role.value,
        )
        return invite, unique_trip_ids

    raise InternalError("Failed to generate unique invite code, please retry")


# --- Validate / accept ---

def _trips_for_invite(session: Session, invite_id: str) -> list[Trip]:
    return list(
        session.exec(
            select(Trip)
            .join(InviteTripAssignment, InviteTripAssignment.trip_id == Trip.id)
            .where(InviteTripAssignment.invite_id == invite_id)
            .order_by(Trip.title)
        ).all()
    )


def validate_invite(session: Session, code: str) -> InviteValidation:
    """Check an invite code without consuming it.

    Expected terminal states come back as ``valid=False`` with a reason;
    only a malformed code raises.
    """
    if not is_well_formed_code(code):
        raise ValidationError("Invalid invite code format")

    invite = session.exec(select(Invite).where(Invite.code == code)).first()
    if not invite:
        return InviteValidation(valid=False, reason=REASON_NOT_FOUND)

    state = invite.state()
    if not state.is_pending:
        return InviteValidation(valid=False, reason=_reason_for(state))

    return InviteValidation(
        valid=True,
        invite=invite,
        trips=_trips_for_invite(session, invite.id),
    )


def accept_invite(session: Session, code: str, user: User) -> list[TripAccess]:
    """Consume an invite for ``user`` and materialize its trip grants."""
    result = validate_invite(session, code)
    if not result.valid:
        raise InviteUnavailableError(result.reason, result.message)
    if user.is_admin:
        raise ValidationError("Admins already have access to all trips")

    invite = result.invite
    invite_id = invite.id
    role = invite.role_enum
    issued_by = invite.created_by
    now = utcnow()

    claimed = session.exec(
        update(Invite)
        .where(Invite.id == invite_id, *_active_invite_filter(now))
        .values(used_at=now, used_by=user.id, updated_at=now)
    )
    if claimed.rowcount != 1:
        # Lost to a concurrent accept/revoke, or expired since validation
        session.rollback()
        reason = _reason_for(invite.state())
        raise InviteUnavailableError(reason, _REASON_MESSAGES[reason])

    trip_ids = list(
        session.exec(
            select(InviteTripAssignment.trip_id).where(
                InviteTripAssignment.invite_id == invite_id
            )
        ).all()
    )
    try:
        insert_grants_ignoring_existing(session, user.id, trip_ids, role, issued_by)
        session.commit()
    except IntegrityError:
        # A trip or the user was deleted mid-flight; nothing is persisted
        session.rollback()
        raise ConflictError("Invite could not be applied, please retry")

    logger.info("Invite %s accepted by %s (%d trip(s))", invite_id, user.id, len(trip_ids))

    return list(
        session.exec(
            select(TripAccess).where(
                TripAccess.user_id == user.id,
                col(TripAccess.trip_id).in_(trip_ids),
            )
        ).all()
    )


# --- Admin listing / revocation ---

def list_invites(session: Session) -> list[InviteListing]:
    """All invites, newest first, with derived status and trip count."""
    rows = session.exec(
        select(Invite, func.count(InviteTripAssignment.id))
        .join(
            InviteTripAssignment,
            InviteTripAssignment.invite_id == Invite.id,
            isouter=True,
        )
        .group_by(Invite.id)
        .order_by(col(Invite.created_at).desc())
    ).all()

    now = utcnow()
    return [
        InviteListing(invite=invite, trip_count=count, state=invite.state(now))
        for invite, count in rows
    ]


def revoke_invite(session: Session, invite_id: str, admin: User) -> None:
    """Soft-delete a pending invite by marking it used without a user.

    The row is kept for the audit trail; revocation cannot be undone.
    """
    if not is_valid_id(invite_id, "inv"):
        raise ValidationError("Invalid invite ID format")

    invite = session.get(Invite, invite_id)
    if not invite:
        raise NotFoundError("Invite not found")

    state = invite.state()
    if state.status is InviteStatus.USED:
        raise ValidationError("Cannot revoke an invite that has already been used")
    if state.status is InviteStatus.EXPIRED:
        raise ValidationError("Cannot revoke an expired invite (already inactive)")

    now = utcnow()
    revoked = session.exec(
        update(Invite)
        .where(Invite.id == invite_id, *_active_invite_filter(now))
        .values(used_at=now, updated_at=now)
    )
    if revoked.rowcount != 1:
        session.rollback()
        raise ValidationError("Invite is no longer pending")

    session.commit()
    logger.info("Invite %s revoked by %s", invite_id, admin.id)
