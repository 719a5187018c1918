"""Security utilities for JWT handling.

Tokens are issued by the identity provider in front of this service; the
API only verifies them. ``create_access_token`` exists for scripts and tests.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from app.config import settings


class Role(str, Enum):
    """Clinic staff roles."""

    ADMIN = "admin"
    RECEPTIONIST = "receptionist"
    PRACTITIONER = "practitioner"


def create_access_token(
    user_id: UUID,
    clinic_id: UUID,
    role: Role,
    practitioner_id: UUID | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token scoped to one clinic.

    Args:
        user_id: Subject of the token
        clinic_id: Clinic the user is acting in
        role: Role within that clinic
        practitioner_id: Practitioner record of the user, if any
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "clinic_id": str(clinic_id),
        "role": role.value,
        "exp": expire,
        "iat": datetime.now(UTC),
        "type": "access",
    }
    if practitioner_id:
        to_encode["practitioner_id"] = str(practitioner_id)

    encoded_jwt = jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )

    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token to decode

    Returns:
        Decoded payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )

        # Verify token type
        if payload.get("type") != "access":
            return None

        return payload
    except JWTError:
        return None
