"""
SQLite storage and simple migration system for the Record Store.

Services never open connections themselves; they receive a
``SQLiteRepository`` (usually via ``request.app.state.repository``) and
either call its single-statement helpers or open an explicit
``transaction()`` when several writes must succeed or fail together
(check-in, cascading deletes, invoice numbering).

Records cross this boundary as plain dictionaries of JSON-compatible
values.  Columns listed in ``JSON_COLUMNS`` are stored as JSON text.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .errors import ConflictError

logger = logging.getLogger(__name__)


MIGRATIONS: List[Tuple[int, str]] = [
    # Migration 1: Initial schema
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS members (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            phone TEXT NOT NULL UNIQUE,
            membership_type TEXT NOT NULL,
            start_date DATE NOT NULL,
            expiry_date DATE NOT NULL,
            status TEXT NOT NULL DEFAULT 'active',
            assigned_trainer TEXT,
            total_visits INTEGER NOT NULL DEFAULT 0,
            last_visit TIMESTAMP,
            emergency_contact TEXT,
            address TEXT,
            medical_conditions TEXT,
            goals TEXT,
            notes TEXT,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP NOT NULL
        );

        CREATE TABLE IF NOT EXISTS trainers (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT,
            phone TEXT,
            specialization TEXT,
            status TEXT NOT NULL DEFAULT 'available',
            current_sessions INTEGER NOT NULL DEFAULT 0,
            total_sessions INTEGER NOT NULL DEFAULT 0,
            certifications TEXT,
            experience TEXT,
            bio TEXT,
            join_date DATE,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP NOT NULL
        );

        CREATE TABLE IF NOT EXISTS visitors (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            phone TEXT NOT NULL,
            email TEXT,
            purpose TEXT,
            status TEXT NOT NULL DEFAULT 'checked_in',
            visit_date DATE NOT NULL,
            host_member TEXT,
            notes TEXT,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP NOT NULL
        );

        CREATE TABLE IF NOT EXISTS sessions (
            id TEXT PRIMARY KEY,
            trainer_id TEXT NOT NULL,
            trainer_name TEXT,
            member_id TEXT,
            member_name TEXT,
            type TEXT NOT NULL DEFAULT 'personal',
            status TEXT NOT NULL DEFAULT 'scheduled',
            start_time TIMESTAMP NOT NULL,
            end_time TIMESTAMP,
            notes TEXT,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP NOT NULL
        );

        CREATE TABLE IF NOT EXISTS invoices (
            id TEXT PRIMARY KEY,
            member_id TEXT NOT NULL,
            member_name TEXT NOT NULL,
            description TEXT,
            items TEXT NOT NULL,
            subtotal TEXT NOT NULL,
            tax TEXT NOT NULL,
            total TEXT NOT NULL,
            amount TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending',
            due_date DATE NOT NULL,
            paid_date DATE,
            notes TEXT,
            membership_start_date DATE,
            membership_end_date DATE,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP NOT NULL
        );

        CREATE TABLE IF NOT EXISTS followups (
            id TEXT PRIMARY KEY,
            member_id TEXT,
            visitor_id TEXT,
            subject_name TEXT,
            type TEXT NOT NULL,
            category TEXT NOT NULL DEFAULT 'member',
            priority TEXT NOT NULL DEFAULT 'medium',
            status TEXT NOT NULL DEFAULT 'pending',
            due_date DATE NOT NULL,
            notes TEXT,
            completed_at TIMESTAMP,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP NOT NULL
        );

        CREATE TABLE IF NOT EXISTS checkins (
            id TEXT PRIMARY KEY,
            member_id TEXT NOT NULL,
            member_name TEXT NOT NULL,
            check_in_time TIMESTAMP NOT NULL,
            date DATE NOT NULL
        );

        CREATE TABLE IF NOT EXISTS activities (
            id TEXT PRIMARY KEY,
            type TEXT NOT NULL,
            action TEXT NOT NULL,
            name TEXT NOT NULL,
            time TIMESTAMP NOT NULL,
            details TEXT,
            member_id TEXT,
            invoice_id TEXT
        );

        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            type TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS sequences (
            name TEXT PRIMARY KEY,
            value INTEGER NOT NULL
        );
        """,
    ),
    # Migration 2: supplement product store and lookup indices
    (
        2,
        """
        CREATE TABLE IF NOT EXISTS products (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            base_price TEXT NOT NULL,
            selling_price TEXT NOT NULL,
            quantity_in_stock INTEGER NOT NULL DEFAULT 0,
            units_sold INTEGER NOT NULL DEFAULT 0,
            supplier_name TEXT,
            expiry_date DATE,
            margin TEXT NOT NULL,
            profit TEXT NOT NULL,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_invoices_member_id ON invoices(member_id);
        CREATE INDEX IF NOT EXISTS idx_followups_member_id ON followups(member_id);
        CREATE INDEX IF NOT EXISTS idx_sessions_member_id ON sessions(member_id);
        CREATE INDEX IF NOT EXISTS idx_sessions_trainer_id ON sessions(trainer_id);
        CREATE INDEX IF NOT EXISTS idx_checkins_member_id ON checkins(member_id);
        CREATE INDEX IF NOT EXISTS idx_activities_member_id ON activities(member_id);
        """,
    ),
]


COLUMNS: Dict[str, Tuple[str, ...]] = {
    "members": (
        "id", "name", "email", "phone", "membership_type", "start_date", "expiry_date",
        "status", "assigned_trainer", "total_visits", "last_visit", "emergency_contact",
        "address", "medical_conditions", "goals", "notes", "created_at", "updated_at",
    ),
    "trainers": (
        "id", "name", "email", "phone", "specialization", "status", "current_sessions",
        "total_sessions", "certifications", "experience", "bio", "join_date",
        "created_at", "updated_at",
    ),
    "visitors": (
        "id", "name", "phone", "email", "purpose", "status", "visit_date", "host_member",
        "notes", "created_at", "updated_at",
    ),
    "sessions": (
        "id", "trainer_id", "trainer_name", "member_id", "member_name", "type", "status",
        "start_time", "end_time", "notes", "created_at", "updated_at",
    ),
    "invoices": (
        "id", "member_id", "member_name", "description", "items", "subtotal", "tax", "total",
        "amount", "status", "due_date", "paid_date", "notes", "membership_start_date",
        "membership_end_date", "created_at", "updated_at",
    ),
    "followups": (
        "id", "member_id", "visitor_id", "subject_name", "type", "category", "priority",
        "status", "due_date", "notes", "completed_at", "created_at", "updated_at",
    ),
    "checkins": ("id", "member_id", "member_name", "check_in_time", "date"),
    "activities": ("id", "type", "action", "name", "time", "details", "member_id", "invoice_id"),
    "products": (
        "id", "name", "base_price", "selling_price", "quantity_in_stock", "units_sold",
        "supplier_name", "expiry_date", "margin", "profit", "created_at", "updated_at",
    ),
}

JSON_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "invoices": ("items",),
    "trainers": ("certifications",),
}


MEMORY_DATABASE = ":memory:"


def get_database_path(database_url: str) -> str:
    """Compute the path to the SQLite database file.

    Absolute paths (and the special ``:memory:`` name) are returned as
    is; relative paths are resolved against the project root.
    """
    if database_url == MEMORY_DATABASE or os.path.isabs(database_url):
        return database_url
    base_dir = Path(__file__).resolve().parent.parent.parent.parent
    return str((base_dir / database_url).resolve())


def _check_table(table: str) -> Tuple[str, ...]:
    try:
        return COLUMNS[table]
    except KeyError:
        raise ValueError(f"Unknown table: {table}") from None


def _check_column(table: str, column: str) -> str:
    if column not in _check_table(table):
        raise ValueError(f"Unknown column {column!r} for table {table}")
    return column


def _encode(table: str, record: Mapping[str, Any]) -> Dict[str, Any]:
    columns = _check_table(table)
    json_columns = JSON_COLUMNS.get(table, ())
    encoded = {}
    for key, value in record.items():
        if key not in columns:
            continue
        if key in json_columns and value is not None:
            value = json.dumps(value)
        encoded[key] = value
    return encoded


def _decode(table: str, row: sqlite3.Row) -> Dict[str, Any]:
    record = dict(row)
    for column in JSON_COLUMNS.get(table, ()):
        if record.get(column) is not None:
            record[column] = json.loads(record[column])
    return record


class RepositoryTransaction:
    """Storage operations bound to one open cursor/transaction."""

    def __init__(self, cursor: sqlite3.Cursor) -> None:
        self.cursor = cursor

    def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        _check_table(table)
        row = self.cursor.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone()
        return _decode(table, row) if row else None

    def find(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return rows matching an exact-match conjunction of ``where``."""
        _check_table(table)
        query = f"SELECT * FROM {table}"
        clauses, params = self._where(table, where or {})
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        if order_by:
            direction = "DESC" if descending else "ASC"
            query += f" ORDER BY {_check_column(table, order_by)} {direction}, rowid {direction}"
        else:
            query += " ORDER BY rowid ASC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        rows = self.cursor.execute(query, tuple(params)).fetchall()
        return [_decode(table, row) for row in rows]

    def query(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        search: Optional[str] = None,
        search_columns: Sequence[str] = (),
        sort_by: str = "created_at",
        order: str = "asc",
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Filter, search, sort and paginate a table.

        Returns ``(rows, total_count)`` where ``total_count`` ignores
        pagination.  Dates and timestamps are stored as ISO strings, so
        ordering them as text orders them chronologically.
        """
        clauses, params = self._where(table, filters or {})
        if search:
            pattern = "%" + search.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
            likes = [f"LOWER({_check_column(table, column)}) LIKE ? ESCAPE '\\'" for column in search_columns]
            if likes:
                clauses.append("(" + " OR ".join(likes) + ")")
                params.extend([pattern] * len(likes))
        where_sql = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        total = self.cursor.execute(f"SELECT COUNT(*) FROM {table}{where_sql}", tuple(params)).fetchone()[0]
        direction = "DESC" if order.lower() == "desc" else "ASC"
        sql = (
            f"SELECT * FROM {table}{where_sql} "
            f"ORDER BY {_check_column(table, sort_by)} {direction}, rowid {direction} LIMIT ? OFFSET ?"
        )
        rows = self.cursor.execute(sql, tuple(params) + (limit, offset)).fetchall()
        return [_decode(table, row) for row in rows], total

    def count(self, table: str, where: Optional[Mapping[str, Any]] = None) -> int:
        _check_table(table)
        clauses, params = self._where(table, where or {})
        query = f"SELECT COUNT(*) FROM {table}"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        return self.cursor.execute(query, tuple(params)).fetchone()[0]

    def insert(self, table: str, record: Mapping[str, Any]) -> None:
        encoded = _encode(table, record)
        columns = ", ".join(encoded)
        placeholders = ", ".join("?" for _ in encoded)
        try:
            self.cursor.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                tuple(encoded.values()),
            )
        except sqlite3.IntegrityError as exc:
            raise ConflictError(f"Duplicate value in {table}: {exc}") from exc

    def update(self, table: str, record_id: str, changes: Mapping[str, Any]) -> None:
        encoded = _encode(table, changes)
        encoded.pop("id", None)
        if not encoded:
            return
        assignments = ", ".join(f"{column} = ?" for column in encoded)
        try:
            self.cursor.execute(
                f"UPDATE {table} SET {assignments} WHERE id = ?",
                tuple(encoded.values()) + (record_id,),
            )
        except sqlite3.IntegrityError as exc:
            raise ConflictError(f"Duplicate value in {table}: {exc}") from exc

    def increment(
        self, table: str, record_id: str, column: str, amount: int = 1,
        changes: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Atomically add ``amount`` to an integer column and apply ``changes``."""
        _check_column(table, column)
        encoded = _encode(table, changes or {})
        assignments = [f"{column} = {column} + ?"] + [f"{key} = ?" for key in encoded]
        self.cursor.execute(
            f"UPDATE {table} SET {', '.join(assignments)} WHERE id = ?",
            (amount,) + tuple(encoded.values()) + (record_id,),
        )

    def delete(self, table: str, record_id: str) -> bool:
        _check_table(table)
        self.cursor.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
        return self.cursor.rowcount > 0

    def delete_where(self, table: str, column: str, value: Any) -> int:
        self.cursor.execute(f"DELETE FROM {table} WHERE {_check_column(table, column)} = ?", (value,))
        return self.cursor.rowcount

    def clear(self, table: str) -> int:
        _check_table(table)
        self.cursor.execute(f"DELETE FROM {table}")
        return self.cursor.rowcount

    def next_sequence(self, name: str, seed: Callable[[], int], minimum: int = 0) -> int:
        """Advance the named counter and return its new value.

        When the counter does not exist yet, ``seed()`` provides the
        starting point (typically the highest number already in use).
        The result is always greater than ``minimum``.
        Call this inside ``transaction(immediate=True)`` so concurrent
        writers are serialized.
        """
        row = self.cursor.execute("SELECT value FROM sequences WHERE name = ?", (name,)).fetchone()
        current = max(row["value"] if row else seed(), minimum)
        value = current + 1
        self.cursor.execute(
            "INSERT INTO sequences (name, value) VALUES (?, ?)"
            " ON CONFLICT(name) DO UPDATE SET value = excluded.value",
            (name, value),
        )
        return value

    def get_setting(self, key: str) -> Optional[Tuple[str, str]]:
        row = self.cursor.execute("SELECT value, type FROM settings WHERE key = ?", (key,)).fetchone()
        return (row["value"], row["type"]) if row else None

    def set_setting(self, key: str, value: str, type_str: str) -> None:
        self.cursor.execute(
            "INSERT INTO settings (key, value, type) VALUES (?, ?, ?)"
            " ON CONFLICT(key) DO UPDATE SET value = excluded.value, type = excluded.type",
            (key, value, type_str),
        )

    @staticmethod
    def _where(table: str, where: Mapping[str, Any]) -> Tuple[List[str], List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        for column, value in where.items():
            if value is None:
                continue
            clauses.append(f"{_check_column(table, column)} = ?")
            params.append(value)
        return clauses, params


class SQLiteRepository:
    """Injected storage handle for the Record Store.

    Each public helper runs in its own short transaction; use
    :meth:`transaction` to group several operations atomically.  A file
    database gets a fresh connection per transaction; ``:memory:`` keeps
    one shared connection for the repository's lifetime.
    """

    def __init__(self, database_path: str) -> None:
        self.database_path = database_path
        self._shared: Optional[sqlite3.Connection] = None

    @property
    def in_memory(self) -> bool:
        return self.database_path == MEMORY_DATABASE

    def get_connection(self) -> sqlite3.Connection:
        """Return an SQLite connection in autocommit mode.

        Transactions are opened explicitly by :meth:`transaction` so
        that ``BEGIN IMMEDIATE`` can be requested where a counter is
        read and written.
        """
        if self._shared is not None:
            return self._shared
        conn = sqlite3.connect(self.database_path, isolation_level=None, check_same_thread=not self.in_memory)
        conn.row_factory = sqlite3.Row
        if self.in_memory:
            self._shared = conn
        return conn

    def _release(self, conn: sqlite3.Connection) -> None:
        if conn is not self._shared:
            conn.close()

    def close(self) -> None:
        """Close the shared ``:memory:`` connection, discarding its data."""
        if self._shared is not None:
            self._shared.close()
            self._shared = None

    @contextmanager
    def transaction(self, immediate: bool = False) -> Iterator[RepositoryTransaction]:
        conn = self.get_connection()
        cursor = conn.cursor()
        try:
            cursor.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield RepositoryTransaction(cursor)
            except BaseException:
                cursor.execute("ROLLBACK")
                raise
            cursor.execute("COMMIT")
        finally:
            self._release(conn)

    def init_schema(self) -> None:
        """Create the database and apply pending migrations."""
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)")
            row = cursor.execute("SELECT MAX(version) AS version FROM migrations").fetchone()
            current_version = row["version"] if row and row["version"] is not None else 0
            for version, sql in MIGRATIONS:
                if version > current_version:
                    cursor.executescript(sql)
                    cursor.execute("INSERT INTO migrations (version) VALUES (?)", (version,))
                    current_version = version
                    logger.info("Applied migration %s to %s", version, self.database_path)
        finally:
            self._release(conn)

    # Single-operation shortcuts

    def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self.transaction() as tx:
            return tx.get(table, record_id)

    def find(self, table: str, where: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> List[Dict[str, Any]]:
        with self.transaction() as tx:
            return tx.find(table, where, **kwargs)

    def query(self, table: str, **kwargs: Any) -> Tuple[List[Dict[str, Any]], int]:
        with self.transaction() as tx:
            return tx.query(table, **kwargs)

    def count(self, table: str, where: Optional[Mapping[str, Any]] = None) -> int:
        with self.transaction() as tx:
            return tx.count(table, where)

    def insert(self, table: str, record: Mapping[str, Any]) -> None:
        with self.transaction() as tx:
            tx.insert(table, record)

    def clear(self, table: str) -> int:
        with self.transaction() as tx:
            return tx.clear(table)


def init_db(repository: SQLiteRepository) -> None:
    """Apply migrations for the given repository (startup hook)."""
    repository.init_schema()
