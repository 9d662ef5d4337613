"""User and Trip models.

Both are owned by other parts of the platform; only the columns this
service reads are mapped here.
"""

import secrets
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from tripshare.utils.timeutil import utcnow


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: f"usr_{secrets.token_hex(8)}", primary_key=True)
    email: str = Field(unique=True, index=True)
    display_name: Optional[str] = None
    is_admin: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)


class Trip(SQLModel, table=True):
    __tablename__ = "trips"

    id: str = Field(default_factory=lambda: f"trp_{secrets.token_hex(8)}", primary_key=True)
    slug: str = Field(unique=True, index=True)
    title: str
    created_at: datetime = Field(default_factory=utcnow)
