"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException
from app.core.security import Role, decode_access_token
from app.database import get_db

# Security
security = HTTPBearer(auto_error=False)


class CurrentUserClaims(BaseModel):
    """Authenticated user as described by the access token."""

    id: UUID
    clinic_id: UUID
    role: Role
    practitioner_id: UUID | None = None

    def check_clinic(self, clinic_id: UUID) -> None:
        """
        Ensure the user acts within the given clinic.

        Raises:
            ForbiddenException: If the token belongs to another clinic
        """
        if self.clinic_id != clinic_id:
            raise ForbiddenException("Access denied to this clinic")

    def check_role(self, *roles: Role) -> None:
        """
        Ensure the user has one of the given roles.

        Raises:
            ForbiddenException: If the role is not allowed
        """
        if self.role not in roles:
            raise ForbiddenException(f"Role '{self.role.value}' cannot perform this action")

    def check_practitioner(self, practitioner_id: UUID | None) -> None:
        """
        Practitioners may only act on their own agenda.

        A practitioner token without a ``practitioner_id`` claim is not linked
        to any agenda and may act on none.

        Raises:
            ForbiddenException: If acting on another practitioner's agenda
        """
        if self.role != Role.PRACTITIONER:
            return
        if self.practitioner_id is None:
            raise ForbiddenException("Practitioner account is not linked to an agenda")
        if practitioner_id != self.practitioner_id:
            raise ForbiddenException("Practitioners can only manage their own agenda")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> CurrentUserClaims:
    """
    Extract and validate the current user from the JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Claims of the authenticated user

    Raises:
        HTTPException: If token is missing, invalid or expired
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_access_token(credentials.credentials)

    if payload is None:
        raise _unauthorized("Could not validate credentials")

    try:
        return CurrentUserClaims(
            id=payload.get("sub"),
            clinic_id=payload.get("clinic_id"),
            role=payload.get("role"),
            practitioner_id=payload.get("practitioner_id"),
        )
    except ValidationError:
        raise _unauthorized("Invalid token claims")


async def get_clinic_user(
    clinic_id: UUID,
    user: Annotated[CurrentUserClaims, Depends(get_current_user)],
) -> CurrentUserClaims:
    """Current user, checked against the ``clinic_id`` path parameter."""
    user.check_clinic(clinic_id)
    return user


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
ClinicUser = Annotated[CurrentUserClaims, Depends(get_clinic_user)]
