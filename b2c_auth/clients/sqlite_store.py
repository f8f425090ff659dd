"""SQLite-backed storage for token linkage and handshake state records."""

from __future__ import annotations

import json
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from b2c_auth.models.tokens import StateRecord, TokenRecord

_TOKEN_COLUMNS = (
    "userid",
    "username",
    "oidcuniqid",
    "oidcusername",
    "token",
    "refreshtoken",
    "idtoken",
    "scope",
    "tokenresource",
    "expiry",
    "created_at",
    "updated_at",
)
_TOKEN_LOOKUP_KEYS = ("userid", "username", "oidcuniqid")
_TIMESTAMP_COLUMNS = ("expiry", "created_at", "updated_at")


def _to_epoch(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _from_epoch(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class SQLiteAuthStore:
    """Token and state tables keyed the way the login flows look them up.

    ``userid`` and ``username`` carry UNIQUE constraints so two callbacks
    racing on the same identity fail loudly instead of duplicating a record.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and is always closed."""
        with closing(sqlite3.connect(self._db_path, check_same_thread=False)) as conn:
            conn.row_factory = sqlite3.Row
            with conn:
                yield conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS auth_tokens (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    userid INTEGER UNIQUE,
                    username TEXT NOT NULL UNIQUE,
                    oidcuniqid TEXT NOT NULL UNIQUE,
                    oidcusername TEXT,
                    token TEXT NOT NULL,
                    refreshtoken TEXT,
                    idtoken TEXT,
                    scope TEXT,
                    tokenresource TEXT,
                    expiry REAL NOT NULL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS auth_states (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    state TEXT NOT NULL UNIQUE,
                    nonce TEXT NOT NULL,
                    timecreated REAL NOT NULL,
                    additionaldata TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_auth_states_timecreated "
                "ON auth_states (timecreated)"
            )

    @staticmethod
    def _row_to_token(row: sqlite3.Row) -> TokenRecord:
        data: Dict[str, Any] = dict(row)
        for column in _TIMESTAMP_COLUMNS:
            data[column] = _from_epoch(data[column])
        return TokenRecord(**data)

    @staticmethod
    def _row_to_state(row: sqlite3.Row) -> StateRecord:
        return StateRecord(
            id=row["id"],
            state=row["state"],
            nonce=row["nonce"],
            timecreated=_from_epoch(row["timecreated"]),
            additionaldata=json.loads(row["additionaldata"]),
        )

    def get_token(
        self,
        *,
        userid: Optional[int] = None,
        username: Optional[str] = None,
        oidcuniqid: Optional[str] = None,
    ) -> Optional[TokenRecord]:
        """Fetch the token record matching exactly one lookup key."""
        keys = {
            name: value
            for name, value in zip(_TOKEN_LOOKUP_KEYS, (userid, username, oidcuniqid))
            if value is not None
        }
        if len(keys) != 1:
            raise ValueError("Exactly one of userid, username or oidcuniqid is required")
        column, value = next(iter(keys.items()))
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT * FROM auth_tokens WHERE {column} = ?",
                (value,),
            ).fetchone()
        if not row:
            return None
        return self._row_to_token(row)

    def insert_token(self, record: TokenRecord) -> TokenRecord:
        values = record.model_dump(include=set(_TOKEN_COLUMNS))
        for column in _TIMESTAMP_COLUMNS:
            values[column] = _to_epoch(values[column])
        placeholders = ", ".join("?" for _ in _TOKEN_COLUMNS)
        with self._connect() as conn:
            cursor = conn.execute(
                f"INSERT INTO auth_tokens ({', '.join(_TOKEN_COLUMNS)}) "
                f"VALUES ({placeholders})",
                tuple(values[column] for column in _TOKEN_COLUMNS),
            )
            record_id = cursor.lastrowid
        return record.model_copy(update={"id": record_id})

    def update_token(self, record_id: int, **fields: Any) -> None:
        """Update the named columns of one token record, bumping ``updated_at``."""
        unknown = set(fields) - set(_TOKEN_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown token columns: {sorted(unknown)}")
        fields.setdefault("updated_at", datetime.now(timezone.utc))
        for column in _TIMESTAMP_COLUMNS:
            if column in fields:
                fields[column] = _to_epoch(fields[column])
        assignments = ", ".join(f"{column} = ?" for column in fields)
        with self._connect() as conn:
            conn.execute(
                f"UPDATE auth_tokens SET {assignments} WHERE id = ?",
                (*fields.values(), record_id),
            )

    def delete_token(self, record_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM auth_tokens WHERE id = ?", (record_id,))

    def insert_state(self, record: StateRecord) -> StateRecord:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO auth_states (state, nonce, timecreated, additionaldata)
                VALUES (?, ?, ?, ?)
                """,
                (
                    record.state,
                    record.nonce,
                    _to_epoch(record.timecreated),
                    json.dumps(record.additionaldata),
                ),
            )
            record_id = cursor.lastrowid
        return record.model_copy(update={"id": record_id})

    def get_state(self, state: str) -> Optional[StateRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM auth_states WHERE state = ?",
                (state,),
            ).fetchone()
        if not row:
            return None
        return self._row_to_state(row)

    def delete_state(self, record_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM auth_states WHERE id = ?", (record_id,))

    def delete_states_before(self, threshold: datetime) -> int:
        """Delete state records created strictly before ``threshold``."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM auth_states WHERE timecreated < ?",
                (_to_epoch(threshold),),
            )
            deleted = cursor.rowcount
        return deleted

    def count_states(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM auth_states").fetchone()
        return int(row["total"])


__all__ = ["SQLiteAuthStore"]
