"""Session tokens: JWT encode/decode for the authenticated API."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from clicktrail.core.config import get_settings

settings = get_settings()

# JWT Configuration
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class SessionUser:
    """The authenticated caller."""

    user_id: UUID
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def create_access_token(
    user_id: UUID,
    role: str = "user",
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token carrying the user id and role."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> SessionUser | None:
    """Decode and validate a JWT access token.

    Returns None if the token is invalid, expired or lacks a subject.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None

    subject = payload.get("sub")
    if subject is None:
        return None
    try:
        user_id = UUID(subject)
    except (TypeError, ValueError):
        return None
    return SessionUser(user_id=user_id, role=payload.get("role") or "user")
