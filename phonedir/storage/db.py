"""
SQLite database module for the phone directory.

Provides persistent storage for directory sources, the four weighted lookup
tables, manual and directory contacts, and per-source sync leases.
"""

import sqlite3
import threading
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from phonedir.sync.contact import (
    Contact,
    ContactKind,
    Dimension,
    DimensionKind,
    DirectorySource,
    clamp_weight,
)

# Contact columns written by inserts and updates
CONTACT_VALUE_COLUMNS = (
    "display_name",
    "email",
    "phone",
    "division_id",
    "department_id",
    "title_id",
    "company_id",
)

# Stay well below SQLite's host parameter limit
_IN_CLAUSE_CHUNK = 500

_LOOKUP_TABLE_TEMPLATE = """
CREATE TABLE IF NOT EXISTS {table} (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    weight INTEGER NOT NULL DEFAULT 0 CHECK(weight BETWEEN 0 AND 100)
);
"""

# SQL Schema for sources, lookups, contacts and leases
SCHEMA = (
    """
CREATE TABLE IF NOT EXISTS directory_sources (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    server TEXT NOT NULL,
    port INTEGER NOT NULL DEFAULT 389,
    base_dn TEXT NOT NULL DEFAULT '',
    bind_dn TEXT NOT NULL DEFAULT '',
    bind_password TEXT NOT NULL DEFAULT '',
    search_filter TEXT NOT NULL,
    use_ssl INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    last_sync_at TEXT,
    created_at TEXT
);
"""
    + "".join(_LOOKUP_TABLE_TEMPLATE.format(table=kind.table) for kind in DimensionKind)
    + """
CREATE TABLE IF NOT EXISTS contacts (
    id INTEGER PRIMARY KEY,
    kind TEXT NOT NULL CHECK(kind IN ('manual', 'directory')),
    display_name TEXT NOT NULL DEFAULT '',
    email TEXT NOT NULL DEFAULT '',
    phone TEXT NOT NULL DEFAULT '',
    division_id INTEGER REFERENCES divisions(id),
    department_id INTEGER REFERENCES departments(id),
    title_id INTEGER REFERENCES titles(id),
    company_id INTEGER REFERENCES companies(id),
    distinguished_name TEXT,
    source_id INTEGER REFERENCES directory_sources(id) ON DELETE CASCADE,
    last_updated TEXT,
    CHECK(
        (kind = 'manual' AND source_id IS NULL AND distinguished_name IS NULL)
        OR (kind = 'directory' AND source_id IS NOT NULL
            AND distinguished_name IS NOT NULL)
    ),
    UNIQUE(source_id, distinguished_name)
);

CREATE INDEX IF NOT EXISTS idx_contacts_source ON contacts(source_id);
CREATE INDEX IF NOT EXISTS idx_contacts_division ON contacts(division_id);
CREATE INDEX IF NOT EXISTS idx_contacts_department ON contacts(department_id);
CREATE INDEX IF NOT EXISTS idx_contacts_title ON contacts(title_id);
CREATE INDEX IF NOT EXISTS idx_contacts_company ON contacts(company_id);

CREATE TABLE IF NOT EXISTS sync_leases (
    source_id INTEGER PRIMARY KEY
        REFERENCES directory_sources(id) ON DELETE CASCADE,
    holder TEXT NOT NULL,
    acquired_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
);
"""
)


class RecordNotFoundError(Exception):
    """Raised when a referenced row does not exist."""

    pass


class SourceNotFoundError(RecordNotFoundError):
    """Raised when a directory source id is unknown."""

    pass


class ContactNotFoundError(RecordNotFoundError):
    """Raised when a contact id is unknown or not visible."""

    pass


class DimensionNotFoundError(RecordNotFoundError):
    """Raised when a lookup value id is unknown."""

    pass


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_db_time(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as fixed-width UTC ISO text (sortable as text)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: Optional[str]) -> Optional[datetime]:
    """Parse a timestamp written by to_db_time."""
    if not value:
        return None
    return datetime.fromisoformat(value)


def _chunks(values: list[Any], size: int = _IN_CLAUSE_CHUNK) -> Iterable[list[Any]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


def _row_to_source(row: sqlite3.Row) -> DirectorySource:
    return DirectorySource(
        id=row["id"],
        name=row["name"],
        server=row["server"],
        port=row["port"],
        base_dn=row["base_dn"],
        bind_dn=row["bind_dn"],
        bind_password=row["bind_password"],
        search_filter=row["search_filter"],
        use_ssl=bool(row["use_ssl"]),
        is_active=bool(row["is_active"]),
        last_sync_at=from_db_time(row["last_sync_at"]),
    )


def _contact_select_sql() -> str:
    """Build the contact SELECT with all four lookups joined."""
    columns = [
        "c.id",
        "c.kind",
        "c.display_name",
        "c.email",
        "c.phone",
        "c.distinguished_name",
        "c.source_id",
        "c.last_updated",
    ]
    joins = ["LEFT JOIN directory_sources s ON s.id = c.source_id"]
    for kind in DimensionKind:
        alias = f"l_{kind.value}"
        columns.extend(
            [
                f"{alias}.id AS {kind.value}_ref",
                f"{alias}.name AS {kind.value}_name",
                f"{alias}.weight AS {kind.value}_weight",
            ]
        )
        joins.append(f"LEFT JOIN {kind.table} {alias} ON {alias}.id = c.{kind.column}")
    return (
        f"SELECT {', '.join(columns)} FROM contacts c "  # nosec B608
        + " ".join(joins)
    )


def _row_to_contact(row: sqlite3.Row) -> Contact:
    dimensions: dict[str, Optional[Dimension]] = {}
    for kind in DimensionKind:
        ref = row[f"{kind.value}_ref"]
        dimensions[kind.value] = (
            Dimension(
                id=ref,
                kind=kind,
                name=row[f"{kind.value}_name"],
                weight=row[f"{kind.value}_weight"],
            )
            if ref is not None
            else None
        )
    return Contact(
        id=row["id"],
        kind=ContactKind(row["kind"]),
        display_name=row["display_name"],
        email=row["email"],
        phone=row["phone"],
        distinguished_name=row["distinguished_name"],
        source_id=row["source_id"],
        last_updated=from_db_time(row["last_updated"]),
        **dimensions,
    )


class DirectoryDatabase:
    """
    SQLite database manager for the phone directory.

    Provides methods for:
    - Managing directory sources and their sync leases
    - Resolving and weighting lookup values
    - Storing manual and directory contacts

    All methods open their own connection. Wrap several calls in
    ``transaction()`` to make them atomic; nested calls made on the same
    thread join the open transaction.

    Usage:
        db = DirectoryDatabase('/path/to/phonedir.db')
        db.initialize()

        # Or use in-memory for testing:
        db = DirectoryDatabase(':memory:')
        db.initialize()
    """

    def __init__(self, db_path: str):
        """
        Initialize the database manager.

        Args:
            db_path: Path to SQLite database file, or ':memory:' for in-memory database
        """
        self.db_path = str(db_path)
        self._shared_connection: Optional[sqlite3.Connection] = None
        self._local = threading.local()

    @property
    def is_memory(self) -> bool:
        return self.db_path == ":memory:"

    def _open(self, path: str) -> sqlite3.Connection:
        conn = sqlite3.connect(path, timeout=30.0, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get a database connection.

        For in-memory databases, returns a shared connection to ensure
        schema persists across operations. For file databases, creates
        a new connection each time.

        Returns:
            sqlite3.Connection: Database connection
        """
        if self.is_memory:
            if self._shared_connection is None:
                self._shared_connection = self._open(":memory:")
            return self._shared_connection
        return self._open(self.db_path)

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        Inside an active ``transaction()`` the transaction's connection is
        yielded and commit is left to the transaction.

        Yields:
            sqlite3.Connection: Database connection
        """
        active = getattr(self._local, "conn", None)
        if active is not None:
            yield active
            return

        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            if not self.is_memory:
                conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Run a block of database calls as one atomic write transaction.

        The write lock is taken up front. Any exception rolls back every
        change made in the block.

        Yields:
            sqlite3.Connection: Connection shared by nested calls
        """
        if getattr(self._local, "conn", None) is not None:
            # Already inside a transaction on this thread
            yield self._local.conn
            return

        conn = self._get_connection()
        conn.execute("BEGIN IMMEDIATE")
        self._local.conn = conn
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            self._local.conn = None
            if not self.is_memory:
                conn.close()

    def initialize(self) -> None:
        """
        Initialize the database schema.

        Creates all tables and indexes if they don't exist.
        """
        with self.connection() as conn:
            conn.executescript(SCHEMA)

    def close(self) -> None:
        """Close the shared in-memory connection, if any."""
        if self._shared_connection is not None:
            self._shared_connection.close()
            self._shared_connection = None

    # =========================================================================
    # Directory Source Operations
    # =========================================================================

    def add_source(self, source: DirectorySource) -> DirectorySource:
        """
        Insert a new directory source.

        Args:
            source: Source to insert (its id is ignored)

        Returns:
            The source with its assigned id
        """
        with self.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO directory_sources (
                    name, server, port, base_dn, bind_dn, bind_password,
                    search_filter, use_ssl, is_active, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    source.name,
                    source.server,
                    source.port,
                    source.base_dn,
                    source.bind_dn,
                    source.bind_password,
                    source.search_filter,
                    int(source.use_ssl),
                    int(source.is_active),
                    to_db_time(utcnow()),
                ),
            )
            source.id = cursor.lastrowid
        return source

    def get_source(self, source_id: int) -> DirectorySource:
        """
        Get a directory source by id.

        Raises:
            SourceNotFoundError: If no source has this id
        """
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM directory_sources WHERE id = ?", (source_id,)
            ).fetchone()
        if row is None:
            raise SourceNotFoundError(f"Directory source {source_id} not found")
        return _row_to_source(row)

    def list_sources(self, active_only: bool = False) -> list[DirectorySource]:
        """
        List directory sources ordered by id.

        Args:
            active_only: Only return sources with is_active set
        """
        sql = "SELECT * FROM directory_sources"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY id"
        with self.connection() as conn:
            return [_row_to_source(row) for row in conn.execute(sql).fetchall()]

    def update_source(self, source: DirectorySource) -> DirectorySource:
        """
        Update a directory source's connection settings.

        An empty bind_password keeps the stored password. last_sync_at is
        not touched here.

        Args:
            source: Source with id set and the new values

        Returns:
            The stored source after the update

        Raises:
            SourceNotFoundError: If the source does not exist
        """
        with self.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE directory_sources SET
                    name = ?,
                    server = ?,
                    port = ?,
                    base_dn = ?,
                    bind_dn = ?,
                    bind_password = CASE WHEN ? = '' THEN bind_password ELSE ? END,
                    search_filter = ?,
                    use_ssl = ?,
                    is_active = ?
                WHERE id = ?
                """,
                (
                    source.name,
                    source.server,
                    source.port,
                    source.base_dn,
                    source.bind_dn,
                    source.bind_password,
                    source.bind_password,
                    source.search_filter,
                    int(source.use_ssl),
                    int(source.is_active),
                    source.id,
                ),
            )
            if cursor.rowcount == 0:
                raise SourceNotFoundError(f"Directory source {source.id} not found")
        return self.get_source(source.id)  # type: ignore[arg-type]

    def set_source_active(self, source_id: int, active: bool) -> None:
        """
        Activate or deactivate a source.

        Raises:
            SourceNotFoundError: If the source does not exist
        """
        with self.connection() as conn:
            cursor = conn.execute(
                "UPDATE directory_sources SET is_active = ? WHERE id = ?",
                (int(active), source_id),
            )
            if cursor.rowcount == 0:
                raise SourceNotFoundError(f"Directory source {source_id} not found")

    def set_last_sync(self, source_id: int, when: datetime) -> None:
        """Record the completion time of a successful reconciliation."""
        with self.connection() as conn:
            conn.execute(
                "UPDATE directory_sources SET last_sync_at = ? WHERE id = ?",
                (to_db_time(when), source_id),
            )

    def delete_source(self, source_id: int) -> int:
        """
        Delete a source together with its contacts and lease.

        Returns:
            Number of contacts removed with the source

        Raises:
            SourceNotFoundError: If the source does not exist
        """
        with self.connection() as conn:
            contact_count = conn.execute(
                "SELECT COUNT(*) FROM contacts WHERE source_id = ?", (source_id,)
            ).fetchone()[0]
            cursor = conn.execute(
                "DELETE FROM directory_sources WHERE id = ?", (source_id,)
            )
            if cursor.rowcount == 0:
                raise SourceNotFoundError(f"Directory source {source_id} not found")
            result: int = contact_count
            return result

    # =========================================================================
    # Lookup (Dimension) Operations
    # =========================================================================

    def find_dimensions_by_names(
        self, kind: DimensionKind, names: Iterable[str]
    ) -> dict[str, int]:
        """
        Look up existing lookup rows by exact name.

        Args:
            kind: Lookup table to search
            names: Names to look up

        Returns:
            Mapping of found name to row id (missing names are absent)
        """
        wanted = sorted(set(names))
        found: dict[str, int] = {}
        if not wanted:
            return found
        with self.connection() as conn:
            for chunk in _chunks(wanted):
                placeholders = ", ".join("?" for _ in chunk)
                cursor = conn.execute(
                    f"SELECT id, name FROM {kind.table} "  # nosec B608
                    f"WHERE name IN ({placeholders})",
                    chunk,
                )
                for row in cursor.fetchall():
                    found[row["name"]] = row["id"]
        return found

    def create_dimension(self, kind: DimensionKind, name: str, weight: int = 0) -> int:
        """
        Insert a new lookup value.

        Returns:
            Id of the new row

        Raises:
            sqlite3.IntegrityError: If the name already exists
        """
        with self.connection() as conn:
            cursor = conn.execute(
                f"INSERT INTO {kind.table} (name, weight) VALUES (?, ?)",  # nosec B608
                (name, clamp_weight(weight)),
            )
            result: int = cursor.lastrowid  # type: ignore[assignment]
            return result

    def get_dimension(self, kind: DimensionKind, dimension_id: int) -> Dimension:
        """
        Get a lookup value by id.

        Raises:
            DimensionNotFoundError: If no row has this id
        """
        with self.connection() as conn:
            row = conn.execute(
                f"SELECT id, name, weight FROM {kind.table} WHERE id = ?",  # nosec B608
                (dimension_id,),
            ).fetchone()
        if row is None:
            raise DimensionNotFoundError(f"{kind.value} {dimension_id} not found")
        return Dimension(id=row["id"], kind=kind, name=row["name"], weight=row["weight"])

    def find_dimension(self, kind: DimensionKind, name: str) -> Optional[Dimension]:
        """Get a lookup value by exact name, or None."""
        with self.connection() as conn:
            row = conn.execute(
                f"SELECT id, name, weight FROM {kind.table} WHERE name = ?",  # nosec B608
                (name,),
            ).fetchone()
        if row is None:
            return None
        return Dimension(id=row["id"], kind=kind, name=row["name"], weight=row["weight"])

    def set_dimension_weight(
        self, kind: DimensionKind, dimension_id: int, weight: int
    ) -> None:
        """
        Store a new weight for a lookup value.

        Raises:
            DimensionNotFoundError: If no row has this id
        """
        with self.connection() as conn:
            cursor = conn.execute(
                f"UPDATE {kind.table} SET weight = ? WHERE id = ?",  # nosec B608
                (clamp_weight(weight), dimension_id),
            )
            if cursor.rowcount == 0:
                raise DimensionNotFoundError(f"{kind.value} {dimension_id} not found")

    def list_dimensions(self, kind: DimensionKind) -> list[Dimension]:
        """List all values of a lookup, heaviest first then by name."""
        with self.connection() as conn:
            rows = conn.execute(
                f"SELECT id, name, weight FROM {kind.table} "  # nosec B608
                "ORDER BY weight DESC, name COLLATE NOCASE, id"
            ).fetchall()
        return [
            Dimension(id=row["id"], kind=kind, name=row["name"], weight=row["weight"])
            for row in rows
        ]

    def count_dimensions(self, kind: DimensionKind) -> int:
        with self.connection() as conn:
            result: int = conn.execute(
                f"SELECT COUNT(*) FROM {kind.table}"  # nosec B608
            ).fetchone()[0]
            return result

    def collect_orphan_dimensions(
        self, candidates: dict[DimensionKind, set[int]]
    ) -> int:
        """
        Delete candidate lookup rows that no contact references any more.

        Args:
            candidates: Lookup ids per kind that may have become orphaned

        Returns:
            Number of lookup rows deleted
        """
        removed = 0
        with self.connection() as conn:
            for kind, ids in candidates.items():
                for chunk in _chunks(sorted(i for i in ids if i is not None)):
                    placeholders = ", ".join("?" for _ in chunk)
                    cursor = conn.execute(
                        f"DELETE FROM {kind.table} "  # nosec B608
                        f"WHERE id IN ({placeholders}) AND NOT EXISTS ("
                        f"SELECT 1 FROM contacts WHERE {kind.column} = {kind.table}.id)",
                        chunk,
                    )
                    removed += cursor.rowcount
        return removed

    def dimension_refs_for_source(self, source_id: int) -> dict[DimensionKind, set[int]]:
        """Collect the lookup ids referenced by a source's contacts."""
        refs: dict[DimensionKind, set[int]] = {kind: set() for kind in DimensionKind}
        columns = ", ".join(kind.column for kind in DimensionKind)
        with self.connection() as conn:
            rows = conn.execute(
                f"SELECT {columns} FROM contacts WHERE source_id = ?",  # nosec B608
                (source_id,),
            ).fetchall()
        for row in rows:
            for kind in DimensionKind:
                if row[kind.column] is not None:
                    refs[kind].add(row[kind.column])
        return refs

    # =========================================================================
    # Contact Operations
    # =========================================================================

    def get_directory_contacts(self, source_id: int) -> list[dict[str, Any]]:
        """
        Get the stored rows of every contact owned by a source.

        Returns:
            Dictionaries with id, distinguished_name and the value columns
        """
        columns = ", ".join(("id", "distinguished_name") + CONTACT_VALUE_COLUMNS)
        with self.connection() as conn:
            cursor = conn.execute(
                f"SELECT {columns} FROM contacts "  # nosec B608
                "WHERE kind = 'directory' AND source_id = ? ORDER BY id",
                (source_id,),
            )
            return [dict(row) for row in cursor.fetchall()]

    def insert_directory_contact(
        self,
        source_id: int,
        distinguished_name: str,
        values: dict[str, Any],
        when: datetime,
    ) -> int:
        """Insert a contact owned by a source. Returns its id."""
        return self._insert_contact(
            ContactKind.DIRECTORY, values, when, source_id, distinguished_name
        )

    def insert_manual_contact(self, values: dict[str, Any], when: datetime) -> int:
        """Insert an administrator-entered contact. Returns its id."""
        return self._insert_contact(ContactKind.MANUAL, values, when)

    def _insert_contact(
        self,
        kind: ContactKind,
        values: dict[str, Any],
        when: datetime,
        source_id: Optional[int] = None,
        distinguished_name: Optional[str] = None,
    ) -> int:
        columns = ("kind",) + CONTACT_VALUE_COLUMNS + (
            "source_id",
            "distinguished_name",
            "last_updated",
        )
        params = (
            [kind.value]
            + [values.get(column) for column in CONTACT_VALUE_COLUMNS]
            + [source_id, distinguished_name, to_db_time(when)]
        )
        for i in range(1, 4):
            params[i] = params[i] or ""
        with self.connection() as conn:
            cursor = conn.execute(
                f"INSERT INTO contacts ({', '.join(columns)}) "  # nosec B608
                f"VALUES ({', '.join('?' for _ in columns)})",
                params,
            )
            result: int = cursor.lastrowid  # type: ignore[assignment]
            return result

    def update_contact_values(
        self, contact_id: int, values: dict[str, Any], when: datetime
    ) -> None:
        """
        Overwrite a contact's value columns and stamp last_updated.

        Raises:
            ContactNotFoundError: If the contact does not exist
        """
        assignments = ", ".join(f"{column} = ?" for column in CONTACT_VALUE_COLUMNS)
        params = [values.get(column) for column in CONTACT_VALUE_COLUMNS]
        for i in range(3):
            params[i] = params[i] or ""
        params.extend([to_db_time(when), contact_id])
        with self.connection() as conn:
            cursor = conn.execute(
                f"UPDATE contacts SET {assignments}, last_updated = ? "  # nosec B608
                "WHERE id = ?",
                params,
            )
            if cursor.rowcount == 0:
                raise ContactNotFoundError(f"Contact {contact_id} not found")

    def delete_contacts(self, contact_ids: Iterable[int]) -> int:
        """Delete contacts by id. Returns the number of rows deleted."""
        ids = sorted(set(contact_ids))
        removed = 0
        with self.connection() as conn:
            for chunk in _chunks(ids):
                placeholders = ", ".join("?" for _ in chunk)
                cursor = conn.execute(
                    f"DELETE FROM contacts WHERE id IN ({placeholders})",  # nosec B608
                    chunk,
                )
                removed += cursor.rowcount
        return removed

    def get_contact_row(self, contact_id: int) -> dict[str, Any]:
        """
        Get the raw stored row of a contact, regardless of visibility.

        Raises:
            ContactNotFoundError: If the contact does not exist
        """
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM contacts WHERE id = ?", (contact_id,)
            ).fetchone()
        if row is None:
            raise ContactNotFoundError(f"Contact {contact_id} not found")
        return dict(row)

    def load_contacts(self, include_inactive: bool = False) -> list[Contact]:
        """
        Load every visible contact with its lookups resolved.

        Manual contacts come first, then directory contacts, each group in
        insertion order. Contacts of inactive sources are left out unless
        include_inactive is set.
        """
        sql = _contact_select_sql()
        if not include_inactive:
            sql += " WHERE c.kind = 'manual' OR s.is_active = 1"
        sql += " ORDER BY CASE c.kind WHEN 'manual' THEN 0 ELSE 1 END, c.id"
        with self.connection() as conn:
            return [_row_to_contact(row) for row in conn.execute(sql).fetchall()]

    def get_contact(self, contact_id: int) -> Contact:
        """
        Get one visible contact with its lookups resolved.

        Raises:
            ContactNotFoundError: If the contact does not exist or belongs to
                an inactive source
        """
        sql = (
            _contact_select_sql()
            + " WHERE c.id = ? AND (c.kind = 'manual' OR s.is_active = 1)"
        )
        with self.connection() as conn:
            row = conn.execute(sql, (contact_id,)).fetchone()
        if row is None:
            raise ContactNotFoundError(f"Contact {contact_id} not found")
        return _row_to_contact(row)

    def count_contacts(self, kind: Optional[ContactKind] = None) -> int:
        """Count stored contacts, optionally of one kind."""
        with self.connection() as conn:
            if kind is None:
                row = conn.execute("SELECT COUNT(*) FROM contacts").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM contacts WHERE kind = ?", (kind.value,)
                ).fetchone()
            result: int = row[0]
            return result

    def count_source_contacts(self) -> dict[int, int]:
        """Count stored contacts per source id (sources without contacts are absent)."""
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT source_id, COUNT(*) AS n FROM contacts "
                "WHERE source_id IS NOT NULL GROUP BY source_id"
            ).fetchall()
        return {row["source_id"]: row["n"] for row in rows}

    # =========================================================================
    # Sync Lease Operations
    # =========================================================================

    def acquire_sync_lease(
        self, source_id: int, holder: str, now: datetime, ttl_seconds: float
    ) -> bool:
        """
        Try to take the reconciliation lease of a source.

        An expired lease held by someone else is taken over.

        Args:
            source_id: Source to lock
            holder: Identifier of the caller
            now: Current time
            ttl_seconds: Lease lifetime

        Returns:
            True if the lease is now held by holder
        """
        expires = datetime.fromtimestamp(now.timestamp() + ttl_seconds, timezone.utc)
        with self.transaction() as conn:
            conn.execute(
                "DELETE FROM sync_leases WHERE source_id = ? AND expires_at <= ?",
                (source_id, to_db_time(now)),
            )
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO sync_leases
                    (source_id, holder, acquired_at, expires_at)
                VALUES (?, ?, ?, ?)
                """,
                (source_id, holder, to_db_time(now), to_db_time(expires)),
            )
            return cursor.rowcount == 1

    def release_sync_lease(self, source_id: int, holder: str) -> None:
        """Release a lease if it is still held by holder."""
        with self.connection() as conn:
            conn.execute(
                "DELETE FROM sync_leases WHERE source_id = ? AND holder = ?",
                (source_id, holder),
            )

    def get_sync_lease(self, source_id: int) -> Optional[dict[str, Any]]:
        """Get the current lease row of a source, or None."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM sync_leases WHERE source_id = ?", (source_id,)
            ).fetchone()
        if row is None:
            return None
        return {
            "source_id": row["source_id"],
            "holder": row["holder"],
            "acquired_at": from_db_time(row["acquired_at"]),
            "expires_at": from_db_time(row["expires_at"]),
        }

