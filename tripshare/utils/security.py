"""Security utilities: JWT access tokens, invite code generation."""

import base64
import re
import secrets
from datetime import datetime, timedelta, timezone

import jwt

from tripshare.config import settings


# --- JWT Tokens ---

def create_access_token(user_id: str) -> str:
    """Issue an access token for ``user_id``.

    Tokens are normally minted by the external login service with the shared
    secret; this is the same encoding, used by tooling and tests.
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": user_id,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


# --- Invite Codes ---

INVITE_CODE_BYTES = 24  # 192 bits
INVITE_CODE_LENGTH = 32  # base64 of 24 bytes, no padding needed

_INVITE_CODE_RE = re.compile(r"^[A-Za-z0-9_-]{%d}$" % INVITE_CODE_LENGTH)


def generate_invite_code() -> str:
    """Generate a 192-bit invite code as unpadded URL-safe base64."""
    raw = secrets.token_bytes(INVITE_CODE_BYTES)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def is_well_formed_code(code: str) -> bool:
    return bool(_INVITE_CODE_RE.fullmatch(code or ""))
