"""
todos/store.py -- SQLAlchemy Core persistence for todos.

Pattern: Repository + Data Mapper, as in auth/store.py. TodoStore is the
repository; _row_to_todo is the mapper. Route handlers never touch SQL.

Ownership is stored here (owner_id) but enforced by the route layer, which
knows the caller's claims. The store answers for any owner.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    todos = TodoStore("sqlite:///:memory:")
    todo_id = todos.create(Todo(owner_id=1, title="Write report"))
    todos.update(todo_id, is_completed=True)
    todos.list_todos(owner_id=1)
    todos.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from todos.models import Todo

_DEFAULT_DB_URL = "sqlite:///accessgate.db"

# Columns update() may touch. owner_id is fixed at insert.
_MUTABLE_FIELDS = frozenset({"title", "description", "due_date", "is_completed"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_todos = Table(
    "todos",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", Integer, nullable=False, index=True),  # users.id
    Column("title", String(200), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("due_date", String(10)),  # YYYY-MM-DD
    Column("is_completed", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode. Set per-connection: PRAGMAs are not inherited."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TodoStore:
    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def create(self, todo: Todo) -> int:
        """Insert a new todo and return its assigned database ID."""
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _todos.insert().values(
                    owner_id=todo.owner_id,
                    title=todo.title,
                    description=todo.description,
                    due_date=todo.due_date,
                    is_completed=todo.is_completed,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get(self, todo_id: int) -> Optional[Todo]:
        with self.engine.connect() as conn:
            row = conn.execute(_todos.select().where(_todos.c.id == todo_id)).fetchone()
        return _row_to_todo(row) if row is not None else None

    def list_todos(self, owner_id: Optional[int] = None) -> list[Todo]:
        """Return todos ordered by id, all of them or only those of owner_id."""
        query = _todos.select().order_by(_todos.c.id)
        if owner_id is not None:
            query = query.where(_todos.c.owner_id == owner_id)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_todo(r) for r in rows]

    def update(self, todo_id: int, **fields) -> bool:
        """Update mutable fields (title, description, due_date, is_completed).

        Unknown keys raise ValueError. Returns False if todo_id was not found.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown todo fields: {sorted(unknown)!r}")
        if not fields:
            return self.get(todo_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(
                _todos.update().where(_todos.c.id == todo_id).values(updated_at=_now_iso(), **fields)
            )
            conn.commit()
        return result.rowcount > 0

    def delete(self, todo_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_todos.delete().where(_todos.c.id == todo_id))
            conn.commit()
        return result.rowcount > 0

    def delete_for_owner(self, owner_id: int) -> int:
        """Remove every todo of an account. Returns the number deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(_todos.delete().where(_todos.c.owner_id == owner_id))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


def _row_to_todo(row) -> Todo:
    return Todo(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        description=row.description,
        due_date=row.due_date,
        is_completed=bool(row.is_completed),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
