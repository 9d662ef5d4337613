"""Input format checks shared by the API and services."""

import re
from typing import Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Entity ids look like "<prefix>_<16 hex chars>", see the models
_ID_RE = re.compile(r"^[a-z]{3}_[0-9a-f]{16}$")


def is_valid_email(email: Optional[str]) -> bool:
    if not email:
        return False
    return bool(EMAIL_RE.match(email))


def is_valid_id(value: object, prefix: str) -> bool:
    """Check that ``value`` is a well-formed id with the given 3-letter prefix."""
    if not isinstance(value, str) or not _ID_RE.match(value):
        return False
    return value.startswith(f"{prefix}_")
