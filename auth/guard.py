"""
auth/guard.py -- Access guard: Bearer header parsing and role policy.

evaluate() is a pure function of (raw Authorization header, required role,
signing secret). It walks the per-request state machine

    NO_TOKEN / INVALID_FORMAT / INVALID_TOKEN / WRONG_ROLE / ACCEPTED

and returns a GuardDecision. Only ACCEPTED lets a request proceed; every
other state is a denial. evaluate() never raises -- an unexpected error from
the verification call is logged and resolved to INVALID_TOKEN.

The FastAPI wiring (HTTP status, typed context injection) lives in
auth/dependencies.py so this module stays framework-free.

Wire contract: the header must be exactly "Bearer <token>" -- case-sensitive
scheme, a single space, and a non-empty token with no further whitespace.
Any deviation is treated the same as a missing header.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from auth.models import RequiredRole, TokenClaims
from auth.tokens import decode_access_token

logger = logging.getLogger("accessgate.auth")

BEARER_SCHEME = "Bearer"


class GuardState(str, Enum):
    NO_TOKEN = "no_token"
    INVALID_FORMAT = "invalid_format"
    INVALID_TOKEN = "invalid_token"
    WRONG_ROLE = "wrong_role"
    ACCEPTED = "accepted"


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    claims: TokenClaims | None = None

    @property
    def allowed(self) -> bool:
        return self.state is GuardState.ACCEPTED

    @property
    def authenticated(self) -> bool:
        """True when the token itself was valid, whatever the role outcome."""
        return self.state in (GuardState.WRONG_ROLE, GuardState.ACCEPTED)


def extract_bearer_token(header: str | None) -> str | None:
    """Return the token from a well-formed "Bearer <token>" header, else None."""
    if not header:
        return None
    scheme, sep, token = header.partition(" ")
    if scheme != BEARER_SCHEME or not sep or not token:
        return None
    if any(ch.isspace() for ch in token):
        return None
    return token


def evaluate(header: str | None, required_role: RequiredRole, secret_key: str) -> GuardDecision:
    """Resolve a raw Authorization header to a guard decision."""
    if not header:
        return GuardDecision(GuardState.NO_TOKEN)

    token = extract_bearer_token(header)
    if token is None:
        return GuardDecision(GuardState.INVALID_FORMAT)

    try:
        claims = decode_access_token(token, secret_key)
    except Exception:
        logger.exception("Token verification raised unexpectedly")
        claims = None
    if claims is None:
        return GuardDecision(GuardState.INVALID_TOKEN)

    if not RequiredRole(required_role).admits(claims.role):
        return GuardDecision(GuardState.WRONG_ROLE, claims)
    return GuardDecision(GuardState.ACCEPTED, claims)
