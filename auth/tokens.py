"""
auth/tokens.py -- Token issuer: password hashing, JWT encode/decode, login.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (record id as a string), role,
       iat, and exp. Lifetime defaults to exactly one hour. Tokens are never
       stored server side. decode_access_token() returns None on any failure
       -- the guard turns that into a generic denial without saying whether
       the signature or the expiry was the problem.

  Passwords: bcrypt used directly. checkpw() is a constant-time comparison.
       The _DUMMY_HASH constant enables timing equalization in authenticate()
       so response time does not reveal whether an identifier exists.

  Signing secret: passed in by the caller on every call. This module never
       reads settings itself; the API layer injects Settings.jwt_secret, tests
       pass whatever secret they like. A missing secret is rejected when
       Settings is built (core/config.py), not here.

Layer rule: may import from core/ (errors only). No imports from api/ or notify/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import Credential, IssuedToken, Role, TokenClaims
from core.errors import InvalidCredentials, NotFound

if TYPE_CHECKING:
    from auth.store import CredentialStore

logger = logging.getLogger("accessgate.auth")

ALGORITHM = "HS256"
TOKEN_LIFETIME_SECONDS = 3600

# bcrypt reads at most 72 bytes of input and bcrypt>=5 raises ValueError past
# that. The limit is in UTF-8 bytes, not characters.
MAX_PASSWORD_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def password_fits(plain: str) -> bool:
    """True if the password is within bcrypt's MAX_PASSWORD_BYTES once UTF-8 encoded."""
    return len(plain.encode("utf-8")) <= MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Raises ValueError for a password over MAX_PASSWORD_BYTES. The API models
    and the CLI check password_fits() first, so callers see a validation
    error rather than this.
    """
    if not password_fits(plain):
        raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded.")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A password over MAX_PASSWORD_BYTES never matches: it could not have been
    hashed, and older bcrypt releases would compare only its first 72 bytes.
    """
    if not password_fits(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed or non-bcrypt hash stored -- treat as a mismatch.
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("accessgate_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(
    user_id: int,
    role: Role,
    secret_key: str,
    expire_seconds: int = TOKEN_LIFETIME_SECONDS,
    now: datetime | None = None,
) -> str:
    """Encode a signed JWT for the given record.

    Args:
        user_id:        Numeric record ID, stored as the string `sub` claim.
        role:           Role claim ("admin" or "user").
        secret_key:     HMAC signing secret.
        expire_seconds: Lifetime in seconds; exp = iat + expire_seconds.
        now:            Issuance time. Defaults to the current UTC time; tests
                        pass a fixed instant to mint already-expired tokens.
    """
    issued = now or datetime.now(timezone.utc)
    iat = int(issued.timestamp())
    payload = {
        "sub": str(user_id),
        "role": Role(role).value,
        "iat": iat,
        "exp": iat + expire_seconds,
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, secret_key: str) -> TokenClaims | None:
    """Verify signature and expiry and return typed claims, or None on any failure.

    Returning None (rather than raising) keeps the guard simple: every invalid
    token is handled the same way, whatever the reason.
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
    try:
        subject = int(payload["sub"])
        role = Role(payload["role"])
        exp = int(payload["exp"])
        iat = int(payload.get("iat", exp - TOKEN_LIFETIME_SECONDS))
    except (KeyError, TypeError, ValueError):
        return None
    return TokenClaims(
        subject=subject,
        role=role,
        issued_at=datetime.fromtimestamp(iat, timezone.utc),
        expires_at=datetime.fromtimestamp(exp, timezone.utc),
    )


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


def authenticate(store: CredentialStore, identifier: str, password: str) -> Credential:
    """Return the record for (identifier, password) or raise.

    Raises:
        NotFound:           no record for identifier.
        InvalidCredentials: the password does not match the stored hash.

    bcrypt runs in both failure branches so the response time does not depend
    on whether the identifier exists.
    """
    record = store.find_by_identifier(identifier)
    if record is None:
        verify_password(password, _DUMMY_HASH)
        raise NotFound()
    if not verify_password(password, record.hashed_password):
        raise InvalidCredentials()
    return record


def issue_token(
    store: CredentialStore,
    identifier: str,
    password: str,
    secret_key: str,
    expire_seconds: int = TOKEN_LIFETIME_SECONDS,
) -> IssuedToken:
    """Authenticate and mint a token plus the sanitized record."""
    record = authenticate(store, identifier, password)
    token = create_access_token(record.id, record.role, secret_key, expire_seconds=expire_seconds)
    logger.info("Issued token for user_id=%s role=%s", record.id, record.role.value)
    return IssuedToken(token=token, user=record.public(), expires_in=expire_seconds)
