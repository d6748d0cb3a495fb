"""
JWT decoding for the identity provider's tokens.

The identity provider signs tokens carrying {"user": {"id", "role"}}. We
only verify and read them; issuing tokens belongs to that provider.
create_access_token exists for seeding scripts and tests.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

from ...core.booking.models import Principal, Role

logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """Token is missing, malformed, expired or carries an unusable identity."""
    pass


def create_access_token(
    user_id: UUID,
    role: Role,
    secret_key: str,
    algorithm: str = "HS256",
    expires_in: Optional[timedelta] = timedelta(hours=1),
) -> str:
    now = datetime.now(timezone.utc)
    payload: dict = {
        "user": {"id": str(user_id), "role": role.value},
        "iat": now,
    }
    if expires_in is not None:
        payload["exp"] = now + expires_in
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def decode_access_token(token: str, secret_key: str, algorithm: str = "HS256") -> Principal:
    """
    Verify a token and return the caller it identifies.

    Raises:
        InvalidTokenError: If the signature, expiry or payload is bad
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError as e:
        logger.warning("JWT decode failed", extra={"error": str(e)})
        raise InvalidTokenError("Invalid or expired token") from e

    user = payload.get("user")
    if not isinstance(user, dict):
        raise InvalidTokenError("Token missing user claim")

    try:
        user_id = UUID(str(user.get("id")))
        role = Role(str(user.get("role", "")).upper())
    except ValueError as e:
        raise InvalidTokenError("Token carries an invalid user id or role") from e

    return Principal(id=user_id, role=role)
