"""
API request and response models for AccessGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from datetime import date, datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from auth.models import PublicUser, Role
from auth.tokens import MAX_PASSWORD_BYTES, password_fits
from todos.models import Todo

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Deliberately loose: deliverability is proven by the verification code, not
# by the regex.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

_PASSWORD_MIN = 8
# Character cap; the byte cap (MAX_PASSWORD_BYTES) is checked by _check_password_bytes.
_PASSWORD_MAX = MAX_PASSWORD_BYTES

# Emails and profile text are trimmed. Passwords and verification codes are
# taken exactly as sent: a code with stray spaces is a wrong code.
_Trimmed = Annotated[str, StringConstraints(strip_whitespace=True)]


def _check_password_bytes(value: Optional[str]) -> Optional[str]:
    if value is not None and not password_fits(value):
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register. Self-registration always creates a 'user'."""

    email: _Trimmed = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=_PASSWORD_MIN, max_length=_PASSWORD_MAX)
    first_name: _Trimmed = Field(default="", max_length=100)
    last_name: _Trimmed = Field(default="", max_length=100)
    phone_number: _Trimmed = Field(default="", max_length=30)

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    # No byte check here: an over-long password simply fails to match.
    email: _Trimmed = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)


class VerifyRequest(BaseModel):
    """Request body for POST /api/v1/auth/verify.

    code is not pattern-checked or trimmed: a wrong code of any shape is
    reported as invalid_code, the same as a wrong six-digit code.
    """

    email: _Trimmed = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=16)


class ResendRequest(BaseModel):
    email: _Trimmed = Field(min_length=1, max_length=255)


class UserPatch(BaseModel):
    """Request body for PATCH /api/v1/users/{id}. All fields optional; role is admin-only."""

    first_name: Optional[_Trimmed] = Field(default=None, max_length=100)
    last_name: Optional[_Trimmed] = Field(default=None, max_length=100)
    phone_number: Optional[_Trimmed] = Field(default=None, max_length=30)
    password: Optional[str] = Field(default=None, min_length=_PASSWORD_MIN, max_length=_PASSWORD_MAX)
    role: Optional[Role] = None

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_bytes(value)


class TodoCreate(BaseModel):
    """Request body for POST /api/v1/todos. The owner is always the caller."""

    title: _Trimmed = Field(min_length=1, max_length=200)
    description: _Trimmed = Field(default="", max_length=2000)
    due_date: Optional[date] = None


class TodoPatch(BaseModel):
    """Request body for PATCH /api/v1/todos/{id}. Omitted or null fields are left unchanged."""

    title: Optional[_Trimmed] = Field(default=None, min_length=1, max_length=200)
    description: Optional[_Trimmed] = Field(default=None, max_length=2000)
    due_date: Optional[date] = None
    is_completed: Optional[bool] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Sanitized user record -- never carries the password hash or the verification code."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    role: Role
    first_name: str
    last_name: str
    phone_number: str
    is_verified: bool
    created_at: str

    @classmethod
    def from_public(cls, user: PublicUser) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            first_name=user.first_name,
            last_name=user.last_name,
            phone_number=user.phone_number,
            is_verified=user.is_verified,
            created_at=user.created_at or "",
        )


class TodoResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    owner_id: int
    title: str
    description: str
    due_date: Optional[date]
    is_completed: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_todo(cls, todo: Todo) -> "TodoResponse":
        return cls(
            id=todo.id,
            owner_id=todo.owner_id,
            title=todo.title,
            description=todo.description,
            due_date=todo.due_date,
            is_completed=todo.is_completed,
            created_at=todo.created_at,
            updated_at=todo.updated_at,
        )


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "Login successful"
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "Registered. Check your email for a verification code."
    user: UserResponse


class MeResponse(BaseModel):
    """Response for GET /api/v1/auth/me -- claims from the token plus the current record."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    role: Role
    expires_at: datetime
    user: UserResponse


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
