"""
auth/models.py -- Domain dataclasses and enums for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the store, token, and guard modules do the work.

Role is a closed enumeration. The store and token decoder convert raw strings
with Role(value), so an unknown role never reaches the domain layer.

Layer rule: no imports from api/, notify/, or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class RequiredRole(str, Enum):
    """Policy parameter of the access guard. BOTH admits any known Role."""

    ADMIN = "admin"
    USER = "user"
    BOTH = "both"

    def admits(self, role: Role) -> bool:
        if self is RequiredRole.BOTH:
            return role in (Role.ADMIN, Role.USER)
        return role.value == self.value


@dataclass
class Credential:
    """A stored account: identity, bcrypt hash, role, and verification state.

    email is the unique login identifier. verification_code is None once the
    account has been verified (the code is single-use and cleared on match).
    """

    email: str
    hashed_password: str
    role: Role = Role.USER
    id: int | None = None
    first_name: str = ""
    last_name: str = ""
    phone_number: str = ""
    verification_code: str | None = None
    is_verified: bool = False
    created_at: str | None = None

    def public(self) -> PublicUser:
        """Return a copy with the secret and the outstanding code stripped."""
        return PublicUser(
            id=self.id,
            email=self.email,
            role=self.role,
            first_name=self.first_name,
            last_name=self.last_name,
            phone_number=self.phone_number,
            is_verified=self.is_verified,
            created_at=self.created_at,
        )


@dataclass(frozen=True)
class PublicUser:
    id: int | None
    email: str
    role: Role
    first_name: str
    last_name: str
    phone_number: str
    is_verified: bool
    created_at: str | None


@dataclass(frozen=True)
class TokenClaims:
    """Decoded identity token -- the typed context handed to route handlers."""

    subject: int
    role: Role
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class IssuedToken:
    token: str
    user: PublicUser
    expires_in: int
