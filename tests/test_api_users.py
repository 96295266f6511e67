"""
tests/test_api_users.py -- Integration tests for the role-guarded user routes.

Coverage:
  - Admin-only routes deny a 'user' token with the same 401 as no token,
    and with 403 when strict_forbidden is enabled
  - 'both' routes admit admin and user tokens
  - Ownership: a user sees and edits only their own record (others -> 404)
  - Role changes are admin-only; admins cannot demote or delete themselves
  - Password change through PATCH (own or, for admins, anyone's) takes effect
    for the next login; passwords over 72 UTF-8 bytes are refused
  - PATCH and DELETE on a missing id answer 404
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from auth.models import Credential, Role
from auth.tokens import create_access_token, hash_password
from conftest import TEST_SECRET, USER_EMAIL, ApiHarness


@pytest.fixture
def strict(api: ApiHarness):
    """Temporarily switch the running app to strict_forbidden=True."""
    app = api.client.app
    original = app.state.settings
    app.state.settings = original.model_copy(update={"strict_forbidden": True})
    yield
    app.state.settings = original


def _make_user(api: ApiHarness, email: str, role: Role = Role.USER) -> tuple[int, str]:
    uid = api.store.insert(Credential(email=email, hashed_password=hash_password("password123"), role=role))
    return uid, create_access_token(uid, role, TEST_SECRET)


class TestAdminOnlyRoutes:
    def test_admin_lists_users(self, api: ApiHarness) -> None:
        resp = api.client.get("/api/v1/users", headers=api.auth(api.admin_token))
        assert resp.status_code == 200, resp.text
        emails = [u["email"] for u in resp.json()]
        assert USER_EMAIL in emails
        assert all("hashed_password" not in u for u in resp.json())

    def test_user_token_denied_like_missing_token(self, api: ApiHarness) -> None:
        as_user = api.client.get("/api/v1/users", headers=api.auth(api.user_token))
        anonymous = api.client.get("/api/v1/users")
        assert as_user.status_code == anonymous.status_code == 401
        assert as_user.json() == anonymous.json()

    def test_user_token_gets_403_when_strict(self, api: ApiHarness, strict) -> None:
        as_user = api.client.get("/api/v1/users", headers=api.auth(api.user_token))
        anonymous = api.client.get("/api/v1/users")
        assert as_user.status_code == 403
        assert as_user.json()["error"]["code"] == "forbidden"
        assert anonymous.status_code == 401

    def test_expired_admin_token_denied(self, api: ApiHarness) -> None:
        past = datetime.now(timezone.utc) - timedelta(seconds=7200)
        token = create_access_token(api.admin_id, Role.ADMIN, TEST_SECRET, now=past)
        assert api.client.get("/api/v1/users", headers=api.auth(token)).status_code == 401

    def test_admin_deletes_user(self, api: ApiHarness) -> None:
        uid, _ = _make_user(api, "doomed@example.com")
        resp = api.client.delete(f"/api/v1/users/{uid}", headers=api.auth(api.admin_token))
        assert resp.status_code == 204
        assert api.store.get_by_id(uid) is None
        again = api.client.delete(f"/api/v1/users/{uid}", headers=api.auth(api.admin_token))
        assert again.status_code == 404

    def test_user_cannot_delete(self, api: ApiHarness) -> None:
        uid, _ = _make_user(api, "survivor@example.com")
        resp = api.client.delete(f"/api/v1/users/{uid}", headers=api.auth(api.user_token))
        assert resp.status_code == 401
        assert api.store.get_by_id(uid) is not None

    def test_admin_cannot_delete_self(self, api: ApiHarness) -> None:
        resp = api.client.delete(f"/api/v1/users/{api.admin_id}", headers=api.auth(api.admin_token))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "self_delete"


class TestSharedRoutes:
    def test_user_reads_own_record(self, api: ApiHarness) -> None:
        resp = api.client.get(f"/api/v1/users/{api.user_id}", headers=api.auth(api.user_token))
        assert resp.status_code == 200
        assert resp.json()["email"] == USER_EMAIL

    def test_user_cannot_read_other_record(self, api: ApiHarness) -> None:
        resp = api.client.get(f"/api/v1/users/{api.admin_id}", headers=api.auth(api.user_token))
        assert resp.status_code == 404

    def test_admin_reads_any_record(self, api: ApiHarness) -> None:
        resp = api.client.get(f"/api/v1/users/{api.user_id}", headers=api.auth(api.admin_token))
        assert resp.status_code == 200

    def test_missing_record(self, api: ApiHarness) -> None:
        resp = api.client.get("/api/v1/users/99999", headers=api.auth(api.admin_token))
        assert resp.status_code == 404

    def test_user_updates_own_profile(self, api: ApiHarness) -> None:
        uid, token = _make_user(api, "editor@example.com")
        resp = api.client.patch(
            f"/api/v1/users/{uid}",
            json={"first_name": "Eddie", "phone_number": "555-0199"},
            headers=api.auth(token),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["first_name"] == "Eddie"
        assert api.store.get_by_id(uid).phone_number == "555-0199"

    def test_user_cannot_change_role(self, api: ApiHarness) -> None:
        uid, token = _make_user(api, "climber@example.com")
        resp = api.client.patch(f"/api/v1/users/{uid}", json={"role": "admin"}, headers=api.auth(token))
        assert resp.status_code == 403
        assert api.store.get_by_id(uid).role is Role.USER

    def test_invalid_role_value(self, api: ApiHarness) -> None:
        resp = api.client.patch(
            f"/api/v1/users/{api.user_id}", json={"role": "superuser"}, headers=api.auth(api.admin_token)
        )
        assert resp.status_code == 422

    def test_admin_promotes_user(self, api: ApiHarness) -> None:
        uid, _ = _make_user(api, "promoted@example.com")
        resp = api.client.patch(f"/api/v1/users/{uid}", json={"role": "admin"}, headers=api.auth(api.admin_token))
        assert resp.status_code == 200
        assert resp.json()["role"] == "admin"

    def test_admin_cannot_demote_self(self, api: ApiHarness) -> None:
        resp = api.client.patch(
            f"/api/v1/users/{api.admin_id}", json={"role": "user"}, headers=api.auth(api.admin_token)
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "self_demotion"

    def test_empty_patch(self, api: ApiHarness) -> None:
        resp = api.client.patch(f"/api/v1/users/{api.user_id}", json={}, headers=api.auth(api.user_token))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "no_changes"

    def test_password_change_applies_to_next_login(self, api: ApiHarness) -> None:
        uid, token = _make_user(api, "rotator@example.com")
        resp = api.client.patch(
            f"/api/v1/users/{uid}", json={"password": "rotated-pass-1"}, headers=api.auth(token)
        )
        assert resp.status_code == 200

        old = api.client.post("/api/v1/auth/login", json={"email": "rotator@example.com", "password": "password123"})
        new = api.client.post(
            "/api/v1/auth/login", json={"email": "rotator@example.com", "password": "rotated-pass-1"}
        )
        assert old.status_code == 401
        assert new.status_code == 200

    def test_admin_resets_another_users_password(self, api: ApiHarness) -> None:
        uid, _ = _make_user(api, "forgetful@example.com")
        resp = api.client.patch(
            f"/api/v1/users/{uid}", json={"password": "admin-issued-1"}, headers=api.auth(api.admin_token)
        )
        assert resp.status_code == 200

        login = api.client.post(
            "/api/v1/auth/login", json={"email": "forgetful@example.com", "password": "admin-issued-1"}
        )
        assert login.status_code == 200
        assert login.json()["user"]["id"] == uid

    def test_password_over_72_bytes_is_rejected(self, api: ApiHarness) -> None:
        uid, token = _make_user(api, "longpass@example.com")
        resp = api.client.patch(
            f"/api/v1/users/{uid}", json={"password": "é" * 40}, headers=api.auth(token)
        )  # 40 characters, 80 bytes
        assert resp.status_code == 422
        old = api.client.post("/api/v1/auth/login", json={"email": "longpass@example.com", "password": "password123"})
        assert old.status_code == 200


class TestMissingUsers:
    def test_patch_missing_user(self, api: ApiHarness) -> None:
        resp = api.client.patch(
            "/api/v1/users/99999", json={"first_name": "Nobody"}, headers=api.auth(api.admin_token)
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_patch_missing_user_password(self, api: ApiHarness) -> None:
        resp = api.client.patch(
            "/api/v1/users/99999", json={"password": "whatever-123"}, headers=api.auth(api.admin_token)
        )
        assert resp.status_code == 404

    def test_delete_missing_user(self, api: ApiHarness) -> None:
        resp = api.client.delete("/api/v1/users/99999", headers=api.auth(api.admin_token))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"
