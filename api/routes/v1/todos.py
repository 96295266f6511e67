"""
api/routes/v1/todos.py -- Todo CRUD endpoints, guarded by role.

Routes:
  GET    /api/v1/todos          -- list the caller's todos (admins: all, or ?owner_id=)
  POST   /api/v1/todos          -- create a todo owned by the caller
  GET    /api/v1/todos/{id}     -- todo detail
  PATCH  /api/v1/todos/{id}     -- update title / description / due date / completion
  DELETE /api/v1/todos/{id}     -- delete a todo

Every route requires an admin or user token (admin_or_user). A user only
ever sees their own todos: someone else's todo answers 404, the same as a
todo that does not exist. Admins can read and change any todo.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.limiter import limiter
from api.models import TodoCreate, TodoPatch, TodoResponse
from auth.dependencies import admin_or_user
from auth.models import Role, TokenClaims
from todos.models import Todo
from todos.store import TodoStore

# Auth policy: admin_or_user on every route, plus the ownership check in
# _load_owned for single-todo routes.
router = APIRouter()


def _load_owned(todos: TodoStore, todo_id: int, claims: TokenClaims) -> Todo:
    """Fetch a todo the caller may act on, else raise 404."""
    todo = todos.get(todo_id)
    if todo is None or (claims.role is not Role.ADMIN and todo.owner_id != claims.subject):
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Todo not found."},
        )
    return todo


@limiter.limit("60/minute")
@router.get("/todos", response_model=list[TodoResponse])
def list_todos(
    request: Request,
    owner_id: Optional[int] = None,
    claims: TokenClaims = Depends(admin_or_user),
) -> list[TodoResponse]:
    """Users get their own todos; owner_id is ignored for them. Admins get all, or one owner's."""
    todos: TodoStore = request.app.state.todos
    if claims.role is not Role.ADMIN:
        owner_id = claims.subject
    return [TodoResponse.from_todo(t) for t in todos.list_todos(owner_id=owner_id)]


@limiter.limit("30/minute")
@router.post("/todos", response_model=TodoResponse, status_code=201)
def create_todo(
    request: Request,
    body: TodoCreate,
    claims: TokenClaims = Depends(admin_or_user),
) -> TodoResponse:
    todos: TodoStore = request.app.state.todos
    todo_id = todos.create(
        Todo(
            owner_id=claims.subject,
            title=body.title,
            description=body.description,
            due_date=body.due_date.isoformat() if body.due_date else None,
        )
    )
    return TodoResponse.from_todo(todos.get(todo_id))


@limiter.limit("60/minute")
@router.get("/todos/{todo_id}", response_model=TodoResponse)
def get_todo(
    request: Request,
    todo_id: int,
    claims: TokenClaims = Depends(admin_or_user),
) -> TodoResponse:
    return TodoResponse.from_todo(_load_owned(request.app.state.todos, todo_id, claims))


@limiter.limit("30/minute")
@router.patch("/todos/{todo_id}", response_model=TodoResponse)
def update_todo(
    request: Request,
    todo_id: int,
    body: TodoPatch,
    claims: TokenClaims = Depends(admin_or_user),
) -> TodoResponse:
    todos: TodoStore = request.app.state.todos
    _load_owned(todos, todo_id, claims)

    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    if "due_date" in updates:
        updates["due_date"] = updates["due_date"].isoformat()

    todos.update(todo_id, **updates)
    return TodoResponse.from_todo(todos.get(todo_id))


@limiter.limit("30/minute")
@router.delete("/todos/{todo_id}", status_code=204)
def delete_todo(
    request: Request,
    todo_id: int,
    claims: TokenClaims = Depends(admin_or_user),
) -> Response:
    todos: TodoStore = request.app.state.todos
    _load_owned(todos, todo_id, claims)
    todos.delete(todo_id)
    return Response(status_code=204)
