"""
auth/store.py -- User record persistence.

UserRepository is the contract the credential and token services depend on.
UserStore implements it with SQLAlchemy Core; any other backend honouring the
same atomicity guarantees can be swapped in.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service code never touches SQL directly.

Concurrency guarantees the services rely on:
  * email is UNIQUE. create() translates the violation into DuplicateKey.
  * rotate_refresh_token() is a single conditional UPDATE
    (WHERE id = ? AND refresh_token_hash = ?). Two callers presenting the
    same token cannot both succeed; the loser sees rowcount 0.
  * find_or_create_by_email() is a single INSERT ... ON CONFLICT DO NOTHING on
    SQLite and PostgreSQL. Other dialects fall back to insert, catch the
    uniqueness violation, and re-read the winner's row.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Refresh tokens are stored as SHA-256 fingerprints (see auth/tokens.py).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateKey, StoreError
from auth.models import DEFAULT_ROLE, User

logger = logging.getLogger("tokenward.auth.store")

# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class UserRepository(Protocol):
    """Store contract consumed by the credential and token services.

    Emails passed in are already normalized. Every method raises StoreError
    on infrastructure failure.
    """

    def find_by_email(self, email: str) -> User | None: ...

    def find_by_id(self, user_id: str) -> User | None: ...

    def find_by_refresh_token(self, token_hash: str) -> User | None: ...

    def create(self, user: User) -> User:
        """Insert user and return it with id/created_at set. Raises DuplicateKey."""
        ...

    def set_refresh_token(self, user_id: str, token_hash: str | None) -> bool: ...

    def rotate_refresh_token(self, user_id: str, expected_hash: str, new_hash: str | None) -> bool:
        """Atomically replace expected_hash with new_hash. False if expected_hash is no longer current."""
        ...

    def find_or_create_by_email(self, email: str, defaults: dict[str, Any]) -> tuple[User, bool]: ...

    def update_last_login(self, user_id: str) -> None: ...

    def ping(self) -> bool: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False, server_default=""),
    Column("hashed_password", Text),  # NULL for social-only users
    Column("role", String(30), nullable=False, server_default=DEFAULT_ROLE.value),
    Column("refresh_token_hash", String(64), index=True),  # NULL = no live session
    Column("created_at", String(32), nullable=False),
    Column("last_login", String(32)),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL and a busy timeout on every new SQLite connection.

    WAL lets readers proceed during a write. The busy timeout makes a second
    concurrent writer wait for the lock instead of failing immediately with
    "database is locked".
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA busy_timeout=5000")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


def _is_email_conflict(exc: IntegrityError) -> bool:
    """True when exc is a uniqueness violation on users.email.

    Drivers only report the constraint in the message text:
      sqlite:     UNIQUE constraint failed: users.email
      postgresql: duplicate key value violates unique constraint "users_email_key"
      mysql:      Duplicate entry 'a@b.com' for key 'users.email'
    """
    message = str(exc.orig).lower()
    return "email" in message and ("unique" in message or "duplicate" in message)


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate driver errors into the store contract's exceptions."""
    try:
        yield
    except IntegrityError as exc:
        if _is_email_conflict(exc):
            raise DuplicateKey(f"{operation}: uniqueness constraint violated", field="email") from exc
        logger.error("%s failed: integrity error outside the email constraint", operation)
        raise StoreError(f"{operation} failed") from exc
    except SQLAlchemyError as exc:
        logger.error("%s failed: %s", operation, exc.__class__.__name__)
        raise StoreError(f"{operation} failed") from exc


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """SQLAlchemy Core implementation of UserRepository.

    Usage:
        store = UserStore("sqlite:///auth.db")
        user = store.create(User(email="a@b.com", name="A", hashed_password=digest))
        store.set_refresh_token(user.id, fingerprint(refresh_token))
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        with _store_errors("find_by_email"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: str) -> User | None:
        with _store_errors("find_by_id"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_refresh_token(self, token_hash: str) -> User | None:
        """Look up the user whose live session matches a refresh-token fingerprint."""
        with _store_errors("find_by_refresh_token"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.refresh_token_hash == token_hash)).fetchone()
        return _row_to_user(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(_users.select().limit(1))
        except SQLAlchemyError:
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, user: User) -> User:
        """Insert a new user and return the stored record.

        Raises DuplicateKey if the email already exists, including when a
        concurrent request inserted it after the caller's existence check.
        """
        values = _user_values(user)
        with _store_errors("create"), self.engine.connect() as conn:
            conn.execute(_users.insert().values(**values))
            conn.commit()
        return _values_to_user(values)

    def find_or_create_by_email(self, email: str, defaults: dict[str, Any]) -> tuple[User, bool]:
        """Return (user, created) for email, inserting a record from defaults if absent."""
        values = _user_values(User(email=email, **defaults))
        dialect = self.engine.dialect.name
        with _store_errors("find_or_create_by_email"), self.engine.connect() as conn:
            if dialect in ("sqlite", "postgresql"):
                insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
                stmt = insert(_users).values(**values).on_conflict_do_nothing(index_elements=["email"])
                conn.execute(stmt)
                conn.commit()
            else:
                try:
                    conn.execute(_users.insert().values(**values))
                    conn.commit()
                except IntegrityError:
                    # Lost the race: another request created the row first.
                    conn.rollback()
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        if row is None:
            raise StoreError("find_or_create_by_email: row vanished after insert")
        user = _row_to_user(row)
        return user, user.id == values["id"]

    def set_refresh_token(self, user_id: str, token_hash: str | None) -> bool:
        """Unconditionally replace the live refresh fingerprint (login / admin revoke)."""
        with _store_errors("set_refresh_token"), self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(refresh_token_hash=token_hash)
            )
            conn.commit()
        return result.rowcount > 0

    def rotate_refresh_token(self, user_id: str, expected_hash: str, new_hash: str | None) -> bool:
        """Compare-and-swap the live refresh fingerprint.

        Returns False when expected_hash is no longer the stored value, which
        means the token was already rotated, cleared, or superseded by a login.
        """
        with _store_errors("rotate_refresh_token"), self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & (_users.c.refresh_token_hash == expected_hash))
                .values(refresh_token_hash=new_hash)
            )
            conn.commit()
        return result.rowcount > 0

    def update_last_login(self, user_id: str) -> None:
        with _store_errors("update_last_login"), self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login=_now_iso()))
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _user_values(user: User) -> dict[str, Any]:
    return {
        "id": user.id or _new_id(),
        "email": user.email,
        "name": user.name or "",
        "hashed_password": user.hashed_password,
        "role": user.role or DEFAULT_ROLE.value,
        "refresh_token_hash": user.refresh_token_hash,
        "created_at": user.created_at or _now_iso(),
        "last_login": user.last_login,
    }


def _values_to_user(values: dict[str, Any]) -> User:
    return User(**values)


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.hashed_password,
        role=row.role,
        refresh_token_hash=row.refresh_token_hash,
        created_at=row.created_at,
        last_login=row.last_login,
    )
