"""
auth/dependencies.py -- FastAPI Depends() helpers for the access guard.

require_role(policy) builds a dependency that runs auth.guard.evaluate() on
the request's Authorization header. On acceptance the dependency returns the
decoded TokenClaims, so handlers receive an explicit typed context:

    @router.get("/users")
    async def route(claims: TokenClaims = Depends(admin_only)): ...

Nothing is written onto the request object.

Denials:
  Every non-accepted state raises HTTPException(401) with the same generic
  body -- missing header, wrong scheme, bad signature, expiry, and wrong role
  are indistinguishable to the caller. When Settings.strict_forbidden is true,
  a valid token with the wrong role gets 403 instead.

  The signing secret and strict_forbidden flag come from app.state.settings,
  which api/main.py sets in lifespan (tests inject their own).

Layer rule: may import from fastapi and core/. No imports from api/ or notify/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.guard import GuardState, evaluate
from auth.models import RequiredRole, TokenClaims
from core.errors import AccessGateError, Forbidden, Unauthenticated

logger = logging.getLogger("accessgate.auth")


def _deny(error: AccessGateError) -> HTTPException:
    return HTTPException(
        status_code=error.status_code,
        detail={"code": error.code, "message": error.message},
    )


def require_role(required_role: RequiredRole | str) -> Callable[[Request], TokenClaims]:
    """Return a dependency enforcing `required_role` ("admin", "user", or "both").

    The policy is validated here, at route-definition time, so a typo in a
    role name fails on import rather than on the first request.
    """
    policy = RequiredRole(required_role)

    def guard(request: Request) -> TokenClaims:
        settings = request.app.state.settings
        decision = evaluate(request.headers.get("Authorization"), policy, settings.jwt_secret)
        if decision.allowed:
            return decision.claims

        logger.debug("Access denied on %s %s: %s", request.method, request.url.path, decision.state.value)
        if decision.state is GuardState.WRONG_ROLE and settings.strict_forbidden:
            raise _deny(Forbidden())
        raise _deny(Unauthenticated())

    guard.__name__ = f"require_{policy.value}"
    return guard


admin_only = require_role(RequiredRole.ADMIN)
user_only = require_role(RequiredRole.USER)
admin_or_user = require_role(RequiredRole.BOTH)
