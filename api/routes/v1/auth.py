"""
api/routes/v1/auth.py -- Registration, login, and verification endpoints.

Routes:
  POST /api/v1/auth/register        -- create an unverified account, mail a code
  POST /api/v1/auth/login           -- token issuer; returns a one-hour JWT
  POST /api/v1/auth/verify          -- confirm the outstanding verification code
  POST /api/v1/auth/verify/resend   -- issue a fresh code to an unverified account
  GET  /api/v1/auth/me              -- current claims and record (admin or user)

Security:
  POST /login, /verify and /verify/resend are rate-limited per client IP
  (Settings.login_rate_limit, verify_rate_limit, resend_rate_limit).
  Tokens always live one hour (auth.tokens.TOKEN_LIFETIME_SECONDS).
  Cache-Control: no-store on login responses, success or failure.
  Verification state does not gate login -- an unverified account can log in.
  Mail failures never fail a request; see auth.verification.dispatch.

Handlers are plain `def` (bcrypt, store access and SMTP all block) so
FastAPI runs them in its threadpool instead of on the event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter, login_rate_limit, resend_rate_limit, verify_rate_limit
from api.models import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResendRequest,
    UserResponse,
    VerifyRequest,
)
from auth.accounts import register_account
from auth.dependencies import admin_or_user
from auth.models import TokenClaims
from auth.store import CredentialStore
from auth.tokens import issue_token
from auth.verification import confirm_code, dispatch, issue_code
from core.errors import AccessGateError, Unauthenticated
from notify.templates import WELCOME_SUBJECT, welcome_email

# Auth policy:
# - POST /api/v1/auth/register:       public
# - POST /api/v1/auth/login:          public, rate limited
# - POST /api/v1/auth/verify:         public, rate limited -- possession of the code is the proof
# - POST /api/v1/auth/verify/resend:  public, rate limited
# - GET  /api/v1/auth/me:             admin or user (admin_or_user)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create an account with role 'user' and mail its verification code.

    Admin accounts are created with the CLI (main.py create-user) or promoted
    by an existing admin through PATCH /users/{id}.
    """
    store: CredentialStore = request.app.state.store
    try:
        record = register_account(
            store,
            request.app.state.notifier,
            email=body.email,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
            phone_number=body.phone_number,
        )
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "An account with that email already exists."},
        ) from exc
    return RegisterResponse(user=UserResponse.from_public(record.public()))


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and return a signed token.

    Unknown email -> 404 not_found; wrong password -> 401 invalid_credentials.
    """
    settings = request.app.state.settings
    try:
        issued = issue_token(
            request.app.state.store,
            body.email,
            body.password,
            settings.jwt_secret,
        )
    except AccessGateError as exc:
        resp = JSONResponse(
            status_code=exc.status_code,
            content={"error": {"code": exc.code, "message": exc.message}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=issued.token,
            expires_in=issued.expires_in,
            user=UserResponse.from_public(issued.user),
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@limiter.limit(verify_rate_limit)
@router.post("/auth/verify", response_model=UserResponse)
def verify(request: Request, body: VerifyRequest) -> UserResponse:
    """Confirm the outstanding code. 404 for unknown email, 400 invalid_code on mismatch."""
    record = confirm_code(request.app.state.store, request.app.state.notifier, body.email, body.code)
    return UserResponse.from_public(record.public())


@limiter.limit(resend_rate_limit)
@router.post("/auth/verify/resend", response_model=MessageResponse)
def resend_code(request: Request, body: ResendRequest) -> MessageResponse:
    """Replace the outstanding code with a fresh one and mail it. 409 if already verified."""
    store: CredentialStore = request.app.state.store
    code = issue_code(store, body.email)
    record = store.find_by_identifier(body.email)
    dispatch(request.app.state.notifier, body.email, WELCOME_SUBJECT, welcome_email(record.first_name, code))
    return MessageResponse(message="Verification code sent.")


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request, claims: TokenClaims = Depends(admin_or_user)) -> MeResponse:
    """Return the caller's claims and current record.

    A valid token whose record has since been deleted is treated as
    unauthenticated.
    """
    record = request.app.state.store.get_by_id(claims.subject)
    if record is None:
        raise Unauthenticated()
    return MeResponse(
        user_id=claims.subject,
        role=claims.role,
        expires_at=claims.expires_at,
        user=UserResponse.from_public(record.public()),
    )
