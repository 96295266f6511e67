"""
api/routes/v1/users.py -- User management REST endpoints.

Routes:
  GET    /api/v1/users          -- list all users (admin only)
  GET    /api/v1/users/{id}     -- user detail (admin, or the user themself)
  PATCH  /api/v1/users/{id}     -- update profile / password (admin, or self); role admin only
  DELETE /api/v1/users/{id}     -- delete a user (admin only)

IDOR guard: a non-admin asking for another user's record gets 404, the same
answer as for a record that does not exist.

Deleting a user also deletes their todos.

Handlers are plain `def` (store access and bcrypt block) so FastAPI runs
them in its threadpool.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import UserPatch, UserResponse
from auth.accounts import change_password
from auth.dependencies import admin_only, admin_or_user
from auth.models import Credential, Role, TokenClaims
from auth.store import CredentialStore
from todos.store import TodoStore

# Auth policy:
# - GET    /api/v1/users:        admin (admin_only)
# - GET    /api/v1/users/{id}:   admin or owner (admin_or_user + ownership check)
# - PATCH  /api/v1/users/{id}:   admin or owner; role field admin only
# - DELETE /api/v1/users/{id}:   admin (admin_only); self-delete blocked
router = APIRouter()


def _load_visible(store: CredentialStore, user_id: int, claims: TokenClaims) -> Credential:
    """Fetch a record the caller is allowed to see, else raise 404."""
    record = store.get_by_id(user_id)
    if record is None or (claims.role is not Role.ADMIN and claims.subject != user_id):
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    return record


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request, claims: TokenClaims = Depends(admin_only)) -> list[UserResponse]:
    store: CredentialStore = request.app.state.store
    return [UserResponse.from_public(u.public()) for u in store.list_users()]


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    request: Request,
    user_id: int,
    claims: TokenClaims = Depends(admin_or_user),
) -> UserResponse:
    record = _load_visible(request.app.state.store, user_id, claims)
    return UserResponse.from_public(record.public())


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: int,
    body: UserPatch,
    claims: TokenClaims = Depends(admin_or_user),
) -> UserResponse:
    """Update profile fields and/or the password.

    The password goes through change_password() (fresh bcrypt hash); the
    remaining fields through update_profile(). Role changes require admin,
    and an admin cannot demote themself.
    """
    store: CredentialStore = request.app.state.store
    target = _load_visible(store, user_id, claims)

    updates = body.model_dump(exclude_unset=True, exclude_none=True, exclude={"password"})
    if "role" in updates:
        if claims.role is not Role.ADMIN:
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": "Only admins can change roles."},
            )
        if target.id == claims.subject and updates["role"] is not Role.ADMIN:
            raise HTTPException(
                status_code=400,
                detail={"code": "self_demotion", "message": "You cannot remove your own admin role."},
            )

    if not updates and body.password is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )

    if updates:
        store.update_profile(user_id, **updates)
    if body.password is not None:
        change_password(store, target.email, body.password)

    updated = store.get_by_id(user_id)
    return UserResponse.from_public(updated.public())


@router.delete("/users/{user_id}", status_code=204)
def delete_user(
    request: Request,
    user_id: int,
    claims: TokenClaims = Depends(admin_only),
) -> Response:
    store: CredentialStore = request.app.state.store
    if user_id == claims.subject:
        raise HTTPException(
            status_code=400,
            detail={"code": "self_delete", "message": "You cannot delete your own account."},
        )
    if not store.delete_user(user_id):
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    todos: TodoStore = request.app.state.todos
    todos.delete_for_owner(user_id)
    return Response(status_code=204)
