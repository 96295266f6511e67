"""
auth/store.py -- SQLAlchemy Core persistence layer for credential records.

Pattern: Repository + Data Mapper.
CredentialStore is the repository; _row_to_credential is the mapper.
Route, token, and verification code never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Role values are validated against the Role enum before any write, so the
  role column only ever holds "admin" or "user".

Concurrency note:
  update_verification() is a plain UPDATE. The verification lifecycle reads
  the record, compares the code, then calls this method -- the three steps are
  not atomic, so two concurrent confirmations of the same code can both
  succeed. The outcome is idempotent (the account ends up verified either way)
  and is accepted as a known limitation.

Layer rule: no imports from api/, notify/, or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from auth.models import Credential, Role

_DEFAULT_DB_URL = "sqlite:///accessgate.db"

# Columns update_profile() may touch. Secrets and verification state have
# dedicated methods so they cannot be changed through a generic patch.
_PROFILE_FIELDS = frozenset({"first_name", "last_name", "phone_number", "role"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(10), nullable=False, server_default=Role.USER.value),
    Column("first_name", String(100), nullable=False, server_default=""),
    Column("last_name", String(100), nullable=False, server_default=""),
    Column("phone_number", String(30), nullable=False, server_default=""),
    Column("verification_code", String(6)),  # NULL once verified
    Column("is_verified", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for Credential records.

    Usage:
        store = CredentialStore("sqlite:///:memory:")
        store.insert(Credential(email="a@x.com", hashed_password=hash_password("secret")))
        record = store.find_by_identifier("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_identifier(self, identifier: str) -> Credential | None:
        """Look up a record by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == identifier)).fetchone()
        return _row_to_credential(row) if row is not None else None

    def get_by_id(self, user_id: int) -> Credential | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_credential(row) if row is not None else None

    def list_users(self) -> list[Credential]:
        """Return all records ordered by id. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_credential(r) for r in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, record: Credential) -> int:
        """Insert a new record and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        Callers (POST /auth/register, the CLI) turn that into a conflict.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=record.email,
                    hashed_password=record.hashed_password,
                    role=Role(record.role).value,
                    first_name=record.first_name,
                    last_name=record.last_name,
                    phone_number=record.phone_number,
                    verification_code=record.verification_code,
                    is_verified=record.is_verified,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_secret(self, identifier: str, hashed_password: str) -> bool:
        """Replace the stored bcrypt hash. Returns False if the identifier is unknown."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.email == identifier).values(hashed_password=hashed_password)
            )
            conn.commit()
        return result.rowcount > 0

    def update_verification(self, identifier: str, code: str | None, verified: bool) -> bool:
        """Set the outstanding code and the verified flag in one statement.

        (code, False) records a freshly issued code; (None, True) marks the
        account verified and clears the code. Returns False if the identifier
        is unknown.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.email == identifier)
                .values(verification_code=code, is_verified=verified)
            )
            conn.commit()
        return result.rowcount > 0

    def update_profile(self, user_id: int, **fields) -> bool:
        """Update mutable profile fields on an existing record.

        Accepted fields: first_name, last_name, phone_number, role. Unknown
        keys raise ValueError rather than being silently ignored.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {sorted(unknown)!r}")
        if "role" in fields:
            fields["role"] = Role(fields["role"]).value
        if not fields:
            return self.get_by_id(user_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a record. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_credential(row) -> Credential:
    return Credential(
        id=row.id,
        email=row.email,
        hashed_password=row.hashed_password,
        role=Role(row.role),
        first_name=row.first_name,
        last_name=row.last_name,
        phone_number=row.phone_number,
        verification_code=row.verification_code,
        is_verified=bool(row.is_verified),
        created_at=row.created_at,
    )
