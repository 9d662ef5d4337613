"""Invite models.

An invite's state is never stored: it is derived from ``used_at`` and
``expires_at`` against the clock, see :meth:`Invite.state`.
"""

import enum
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import Field, SQLModel

from tripshare.models.role import ROLE_CHECK_SQL, Role
from tripshare.utils.timeutil import as_utc, utcnow


class InviteStatus(str, enum.Enum):
    PENDING = "pending"
    USED = "used"
    EXPIRED = "expired"


@dataclass(frozen=True)
class InviteState:
    status: InviteStatus
    used_by: Optional[str] = None  # only for USED; None when revoked

    @property
    def is_pending(self) -> bool:
        return self.status is InviteStatus.PENDING


class Invite(SQLModel, table=True):
    __tablename__ = "invites"
    __table_args__ = (CheckConstraint(ROLE_CHECK_SQL, name="ck_invites_role"),)

    id: str = Field(default_factory=lambda: f"inv_{secrets.token_hex(8)}", primary_key=True)
    code: str = Field(unique=True, index=True)  # 192-bit URL-safe secret
    created_by: str = Field(foreign_key="users.id", ondelete="CASCADE")
    email: Optional[str] = Field(default=None, index=True)  # lower-cased
    role: str
    expires_at: datetime
    used_at: Optional[datetime] = None
    used_by: Optional[str] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    def state(self, now: Optional[datetime] = None) -> InviteState:
        """Derive the lifecycle state. Expiry wins over use."""
        now = now or utcnow()
        if as_utc(self.expires_at) <= as_utc(now):
            return InviteState(InviteStatus.EXPIRED)
        if self.used_at is not None:
            return InviteState(InviteStatus.USED, used_by=self.used_by)
        return InviteState(InviteStatus.PENDING)


class InviteTripAssignment(SQLModel, table=True):
    """Junction: which trips an invite grants access to."""

    __tablename__ = "invite_trip_access"
    __table_args__ = (
        UniqueConstraint("invite_id", "trip_id", name="uq_invite_trip"),
    )

    id: str = Field(default_factory=lambda: f"ita_{secrets.token_hex(8)}", primary_key=True)
    invite_id: str = Field(foreign_key="invites.id", index=True, ondelete="CASCADE")
    trip_id: str = Field(foreign_key="trips.id", index=True, ondelete="CASCADE")
    created_at: datetime = Field(default_factory=utcnow)
