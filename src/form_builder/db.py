from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from .models import SectionRecord, SpecificationRecord, UserRecord

logger = logging.getLogger(__name__)

TIMESTAMP_DEFAULT = "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"

SCHEMA = f"""
CREATE TABLE IF NOT EXISTS section (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT},
    updated_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT}
);

CREATE TABLE IF NOT EXISTS specification (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    price REAL NOT NULL DEFAULT 0 CHECK (price >= 0),
    section_id INTEGER NOT NULL,
    created_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT},
    updated_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT},
    FOREIGN KEY (section_id) REFERENCES section(id)
);

CREATE TABLE IF NOT EXISTS user (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE,
    first_name TEXT NOT NULL DEFAULT '',
    last_name TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT},
    updated_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT}
);
"""


class StorageError(RuntimeError):
    """Raised when a read or write against the database fails."""


class StorageClient:
    """Owns one sqlite connection with an explicit connect/close lifecycle.

    Writes commit immediately unless they run inside :meth:`transaction`,
    in which case the whole block commits or rolls back together.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._in_transaction = False

    def connect(self) -> StorageClient:
        if self._conn is not None:
            return self
        try:
            conn = sqlite3.connect(str(self.db_path))
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as error:
            raise StorageError(f"could not open database at {self.db_path}: {error}") from error
        self._conn = conn
        return self

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None

    @property
    def connected(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("storage client is not connected")
        return self._conn

    def __enter__(self) -> StorageClient:
        return self.connect()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        conn = self.connection
        try:
            if self._in_transaction:
                return conn.execute(sql, params)
            with conn:
                return conn.execute(sql, params)
        except sqlite3.Error as error:
            logger.warning("storage_error", extra={"sql": sql.split(None, 3)[:3], "error": str(error)})
            raise StorageError(str(error)) from error

    def query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        try:
            return self.connection.execute(sql, params).fetchall()
        except sqlite3.Error as error:
            logger.warning("storage_error", extra={"sql": sql.split(None, 3)[:3], "error": str(error)})
            raise StorageError(str(error)) from error

    @contextmanager
    def transaction(self) -> Iterator[StorageClient]:
        if self._in_transaction:
            yield self
            return
        conn = self.connection
        self._in_transaction = True
        try:
            with conn:
                yield self
        except sqlite3.Error as error:
            raise StorageError(str(error)) from error
        finally:
            self._in_transaction = False


def init_db(db_path: str | Path) -> None:
    with StorageClient(db_path) as client:
        try:
            client.connection.executescript(SCHEMA)
        except sqlite3.Error as error:
            raise StorageError(f"could not initialise schema: {error}") from error


def create_section(client: StorageClient, name: str) -> SectionRecord:
    cursor = client.execute("INSERT INTO section(name) VALUES (?)", (name,))
    return _get_section(client, int(cursor.lastrowid))


def create_specification(client: StorageClient, name: str, price: float, section_id: int) -> SpecificationRecord:
    cursor = client.execute(
        "INSERT INTO specification(name, price, section_id) VALUES (?, ?, ?)",
        (name, float(price), section_id),
    )
    row = client.query(
        "SELECT id, name, price, section_id, created_at, updated_at FROM specification WHERE id = ?",
        (int(cursor.lastrowid),),
    )[0]
    return SpecificationRecord.model_validate(dict(row))


def _get_section(client: StorageClient, section_id: int) -> SectionRecord:
    row = client.query("SELECT id, name, created_at, updated_at FROM section WHERE id = ?", (section_id,))[0]
    return SectionRecord.model_validate(dict(row))


def list_sections_with_specifications(client: StorageClient) -> list[SectionRecord]:
    sections = client.query("SELECT id, name, created_at, updated_at FROM section ORDER BY created_at, id")
    specifications = client.query(
        "SELECT id, name, price, section_id, created_at, updated_at FROM specification ORDER BY id"
    )

    by_section: dict[int, list[SpecificationRecord]] = {}
    for row in specifications:
        by_section.setdefault(row["section_id"], []).append(SpecificationRecord.model_validate(dict(row)))

    return [
        SectionRecord.model_validate({**dict(row), "specifications": by_section.get(row["id"], [])})
        for row in sections
    ]


def count_sections(client: StorageClient) -> int:
    return int(client.query("SELECT COUNT(*) AS total FROM section")[0]["total"])


def delete_all_specifications(client: StorageClient) -> int:
    return client.execute("DELETE FROM specification").rowcount


def delete_all_sections(client: StorageClient) -> int:
    return client.execute("DELETE FROM section").rowcount


def create_user(client: StorageClient, email: str, first_name: str = "", last_name: str = "") -> UserRecord:
    cursor = client.execute(
        "INSERT INTO user(email, first_name, last_name) VALUES (?, ?, ?)",
        (email, first_name, last_name),
    )
    row = client.query(
        "SELECT id, email, first_name, last_name, created_at, updated_at FROM user WHERE id = ?",
        (int(cursor.lastrowid),),
    )[0]
    return UserRecord.model_validate(dict(row))


def get_user_by_email(client: StorageClient, email: str) -> UserRecord | None:
    rows = client.query(
        "SELECT id, email, first_name, last_name, created_at, updated_at FROM user WHERE email = ?",
        (email,),
    )
    return UserRecord.model_validate(dict(rows[0])) if rows else None


def list_users(client: StorageClient) -> list[UserRecord]:
    rows = client.query("SELECT id, email, first_name, last_name, created_at, updated_at FROM user ORDER BY id")
    return [UserRecord.model_validate(dict(row)) for row in rows]


def count_users(client: StorageClient) -> int:
    return int(client.query("SELECT COUNT(*) AS total FROM user")[0]["total"])
