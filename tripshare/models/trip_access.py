"""Trip access grant model.

This table is the source of truth for who can access which trip with what
role. Admins bypass it entirely and never get rows here.
"""

import secrets
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import Field, SQLModel

from tripshare.models.role import ROLE_CHECK_SQL, Role
from tripshare.utils.timeutil import utcnow


class TripAccess(SQLModel, table=True):
    __tablename__ = "trip_access"
    __table_args__ = (
        UniqueConstraint("user_id", "trip_id", name="uq_trip_access_user_trip"),
        CheckConstraint(ROLE_CHECK_SQL, name="ck_trip_access_role"),
    )

    id: str = Field(default_factory=lambda: f"acc_{secrets.token_hex(8)}", primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    trip_id: str = Field(foreign_key="trips.id", index=True, ondelete="CASCADE")
    role: str
    granted_at: datetime = Field(default_factory=utcnow)
    granted_by: Optional[str] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")

    @property
    def role_enum(self) -> Role:
        return Role(self.role)
