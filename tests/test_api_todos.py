"""
tests/test_api_todos.py -- Integration tests for the todo routes.

Coverage:
  - Every route requires an admin or user Bearer token
  - Todos are owned by their creator; another user's todo answers 404,
    the same as a todo that does not exist
  - Admins can list, read, change and delete any todo
  - PATCH validation (no changes, bad dates) and DELETE -> 204
  - Deleting a user removes their todos
"""

from __future__ import annotations

import pytest

from auth.models import Credential, Role
from auth.tokens import create_access_token, hash_password
from conftest import TEST_SECRET, ApiHarness


def _make_user(api: ApiHarness, email: str) -> tuple[int, str]:
    uid = api.store.insert(Credential(email=email, hashed_password=hash_password("password123")))
    return uid, create_access_token(uid, Role.USER, TEST_SECRET)


def _create(api: ApiHarness, token: str, **body) -> dict:
    resp = api.client.post("/api/v1/todos", json={"title": "Buy milk", **body}, headers=api.auth(token))
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestGuard:
    @pytest.mark.parametrize(
        "method, path",
        [
            ("GET", "/api/v1/todos"),
            ("POST", "/api/v1/todos"),
            ("GET", "/api/v1/todos/1"),
            ("PATCH", "/api/v1/todos/1"),
            ("DELETE", "/api/v1/todos/1"),
        ],
    )
    def test_missing_token_is_unauthorized(self, api: ApiHarness, method: str, path: str) -> None:
        resp = api.client.request(method, path, json={"title": "x"})
        assert resp.status_code == 401
        assert resp.json() == {"error": {"code": "unauthorized", "message": "Unauthorized"}}

    def test_wrong_scheme_is_unauthorized(self, api: ApiHarness) -> None:
        resp = api.client.get("/api/v1/todos", headers={"Authorization": f"Token {api.user_token}"})
        assert resp.status_code == 401


class TestOwnership:
    def test_create_assigns_caller_as_owner(self, api: ApiHarness) -> None:
        todo = _create(api, api.user_token, description="2 litres", due_date="2030-05-01", owner_id=api.admin_id)
        assert todo["owner_id"] == api.user_id
        assert todo["description"] == "2 litres"
        assert todo["due_date"] == "2030-05-01"
        assert todo["is_completed"] is False

    def test_user_lists_only_own_todos(self, api: ApiHarness) -> None:
        other_id, other_token = _make_user(api, "lister@example.com")
        mine = _create(api, other_token, title="mine")
        _create(api, api.user_token, title="not mine")

        resp = api.client.get("/api/v1/todos", headers=api.auth(other_token))
        assert resp.status_code == 200
        assert [t["id"] for t in resp.json()] == [mine["id"]]

        # owner_id is ignored for non-admins
        resp = api.client.get(f"/api/v1/todos?owner_id={api.user_id}", headers=api.auth(other_token))
        assert [t["id"] for t in resp.json()] == [mine["id"]]

    def test_other_users_todo_is_not_found(self, api: ApiHarness) -> None:
        _, intruder_token = _make_user(api, "intruder@example.com")
        todo = _create(api, api.user_token, title="private")
        path = f"/api/v1/todos/{todo['id']}"
        headers = api.auth(intruder_token)

        missing = api.client.get("/api/v1/todos/999999", headers=headers)
        assert api.client.get(path, headers=headers).json() == missing.json()
        assert api.client.get(path, headers=headers).status_code == 404
        assert api.client.patch(path, json={"title": "hacked"}, headers=headers).status_code == 404
        assert api.client.delete(path, headers=headers).status_code == 404
        assert api.todos.get(todo["id"]).title == "private"

    def test_admin_reaches_any_todo(self, api: ApiHarness) -> None:
        todo = _create(api, api.user_token, title="audited")
        path = f"/api/v1/todos/{todo['id']}"
        admin = api.auth(api.admin_token)

        assert api.client.get(path, headers=admin).status_code == 200
        listed = api.client.get(f"/api/v1/todos?owner_id={api.user_id}", headers=admin).json()
        assert todo["id"] in [t["id"] for t in listed]
        assert all(t["owner_id"] == api.user_id for t in listed)

        resp = api.client.patch(path, json={"is_completed": True}, headers=admin)
        assert resp.status_code == 200
        assert resp.json()["is_completed"] is True
        assert api.client.delete(path, headers=admin).status_code == 204


class TestUpdateAndDelete:
    def test_owner_updates_todo(self, api: ApiHarness) -> None:
        todo = _create(api, api.user_token, title="draft")
        resp = api.client.patch(
            f"/api/v1/todos/{todo['id']}",
            json={"title": "final", "due_date": "2031-12-24", "is_completed": True},
            headers=api.auth(api.user_token),
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["title"] == "final"
        assert data["due_date"] == "2031-12-24"
        assert data["is_completed"] is True
        assert data["owner_id"] == api.user_id

    def test_empty_patch(self, api: ApiHarness) -> None:
        todo = _create(api, api.user_token)
        resp = api.client.patch(f"/api/v1/todos/{todo['id']}", json={}, headers=api.auth(api.user_token))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "no_changes"

    def test_invalid_fields(self, api: ApiHarness) -> None:
        todo = _create(api, api.user_token)
        headers = api.auth(api.user_token)
        bad_date = api.client.patch(f"/api/v1/todos/{todo['id']}", json={"due_date": "soon"}, headers=headers)
        blank_title = api.client.post("/api/v1/todos", json={"title": "   "}, headers=headers)
        assert bad_date.status_code == 422
        assert blank_title.status_code == 422

    def test_owner_deletes_todo(self, api: ApiHarness) -> None:
        todo = _create(api, api.user_token)
        path = f"/api/v1/todos/{todo['id']}"
        assert api.client.delete(path, headers=api.auth(api.user_token)).status_code == 204
        assert api.client.get(path, headers=api.auth(api.user_token)).status_code == 404

    def test_deleting_user_removes_their_todos(self, api: ApiHarness) -> None:
        uid, token = _make_user(api, "leaver@example.com")
        _create(api, token, title="one")
        _create(api, token, title="two")

        resp = api.client.delete(f"/api/v1/users/{uid}", headers=api.auth(api.admin_token))
        assert resp.status_code == 204
        assert api.todos.list_todos(owner_id=uid) == []
