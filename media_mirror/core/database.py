"""
Thread-safe SQLite local store for media-mirror.

Each mirrored kind has its own table, keyed by the remote id. The table
name is the MirroredKind value, so every method takes the kind and picks
the table from it.

Schema:
    media_assets:       Drive images / 3D models (id, name, scope, url,
                        thumbnail_url, subtype, note, created_at)
    clip_assets:        Drive videos (same columns without subtype)
    playlist_videos:    YouTube playlist videos (same columns as clip_assets)

Usage:
    db = Database(config.storage.database_path)

    local_ids = db.find_all_ids(MirroredKind.MEDIA, scope="ede")
    db.delete_all_by_ids(MirroredKind.MEDIA, local_ids - remote_ids)
    db.upsert_all(MirroredKind.MEDIA, assets)

    page = db.find_page(MirroredKind.MEDIA, scope="ede", search="gong", limit=20)
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator, Iterable

from media_mirror.core.exceptions import DatabaseError
from media_mirror.core.models import ENTITY_TYPES, MirroredEntity, MirroredKind


DATABASE_VERSION = 1

# SQLite's default SQLITE_MAX_VARIABLE_NUMBER on older builds
_MAX_SQL_PARAMS = 900


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS media_assets (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    scope TEXT NOT NULL,
    url TEXT NOT NULL,
    thumbnail_url TEXT,
    subtype TEXT NOT NULL DEFAULT 'NORMAL',
    note TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS clip_assets (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    scope TEXT NOT NULL,
    url TEXT NOT NULL,
    thumbnail_url TEXT,
    note TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS playlist_videos (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    scope TEXT NOT NULL,
    url TEXT NOT NULL,
    thumbnail_url TEXT,
    note TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_media_assets_scope ON media_assets(scope);
CREATE INDEX IF NOT EXISTS idx_media_assets_created ON media_assets(created_at);
CREATE INDEX IF NOT EXISTS idx_clip_assets_scope ON clip_assets(scope);
CREATE INDEX IF NOT EXISTS idx_clip_assets_created ON clip_assets(created_at);
CREATE INDEX IF NOT EXISTS idx_playlist_videos_created ON playlist_videos(created_at);
"""


class Database:
    """
    Thread-safe SQLite local store.

    Uses a single persistent connection with thread locking for safety.
    All public methods acquire self._lock before executing. Locking makes
    single calls atomic; concurrent sync passes over the same kind must
    still be serialized by the caller.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        if not db_path.parent.exists():
            raise DatabaseError(
                f"Parent directory does not exist: {db_path.parent}",
                details={"path": str(db_path.parent)}
            )

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to initialize database: {e}",
                details={"path": str(db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get the persistent database connection as a context manager.

        The connection is created once and reused for all operations.
        sqlite3 errors raised inside the block are wrapped in DatabaseError.
        """
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # We handle thread safety with _lock
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
        try:
            yield self._conn
        except sqlite3.Error as e:
            self._conn.rollback()
            raise DatabaseError(
                f"Database operation failed: {e}",
                details={"path": str(self.db_path), "original_error": str(e)}
            ) from e

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __del__(self) -> None:
        """Ensure connection is closed on garbage collection."""
        if hasattr(self, '_conn') and self._conn is not None:
            try:
                self._conn.close()
            except sqlite3.Error:
                pass

    def _init_database(self) -> None:
        with self._get_connection() as conn:
            conn.executescript(_SCHEMA_SQL)

            cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
            row = cursor.fetchone()

            if row is None:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
            elif row[0] != DATABASE_VERSION:
                raise DatabaseError(
                    f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                    details={"expected": DATABASE_VERSION, "actual": row[0]}
                )
            conn.commit()

    def _now_iso(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _to_entity(self, kind: MirroredKind, row: sqlite3.Row) -> MirroredEntity:
        return ENTITY_TYPES[kind].from_database_row(dict(row))

    def _check_entity(self, kind: MirroredKind, entity: MirroredEntity) -> None:
        expected = ENTITY_TYPES[kind]
        if not isinstance(entity, expected):
            raise TypeError(
                f"{kind.name} rows hold {expected.__name__}, got {type(entity).__name__}"
            )

    def _upsert_row(self, conn: sqlite3.Connection, kind: MirroredKind, entity: MirroredEntity) -> None:
        row = entity.to_database_dict()
        row["updated_at"] = self._now_iso()

        columns = list(row)
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(f"{col} = excluded.{col}" for col in columns if col != "id")

        conn.execute(f"""
            INSERT INTO {kind.value} ({", ".join(columns)})
            VALUES ({placeholders})
            ON CONFLICT(id) DO UPDATE SET {updates}
        """, [row[col] for col in columns])

    # =========================================================================
    # Reconciliation Operations
    # =========================================================================

    def find_all_ids(self, kind: MirroredKind, scope: str | None = None) -> set[str]:
        """
        Return the ids currently mirrored for a kind.

        Args:
            kind: Which table to read.
            scope: Restrict to rows tagged with this scope. None reads every row.
        """
        with self._lock:
            with self._get_connection() as conn:
                if scope is None:
                    cursor = conn.execute(f"SELECT id FROM {kind.value}")
                else:
                    cursor = conn.execute(f"SELECT id FROM {kind.value} WHERE scope = ?", (scope,))
                return {row[0] for row in cursor.fetchall()}

    def upsert(self, kind: MirroredKind, entity: MirroredEntity) -> None:
        """Insert or fully overwrite one entity, keyed by its remote id."""
        self._check_entity(kind, entity)
        with self._lock:
            with self._get_connection() as conn:
                self._upsert_row(conn, kind, entity)
                conn.commit()

    def upsert_all(self, kind: MirroredKind, entities: Iterable[MirroredEntity]) -> int:
        """
        Insert or overwrite a batch of entities in one transaction.

        Every column is replaced, including scope: re-syncing an entity under
        a different scope tag moves it to that scope.

        Returns:
            Number of entities written.
        """
        entities = list(entities)
        if not entities:
            return 0

        for entity in entities:
            self._check_entity(kind, entity)

        with self._lock:
            with self._get_connection() as conn:
                for entity in entities:
                    self._upsert_row(conn, kind, entity)
                conn.commit()
        return len(entities)

    def delete_all_by_ids(self, kind: MirroredKind, ids: Iterable[str]) -> int:
        """
        Delete the rows with the given ids. Unknown ids are ignored.

        Returns:
            Number of rows actually deleted.
        """
        ids = list(ids)
        if not ids:
            return 0

        deleted = 0
        with self._lock:
            with self._get_connection() as conn:
                for start in range(0, len(ids), _MAX_SQL_PARAMS):
                    chunk = ids[start:start + _MAX_SQL_PARAMS]
                    placeholders = ", ".join("?" for _ in chunk)
                    cursor = conn.execute(
                        f"DELETE FROM {kind.value} WHERE id IN ({placeholders})",
                        chunk
                    )
                    deleted += cursor.rowcount
                conn.commit()
        return deleted

    def delete_by_id(self, kind: MirroredKind, entity_id: str) -> bool:
        """Delete one row. Returns True if it existed."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(f"DELETE FROM {kind.value} WHERE id = ?", (entity_id,))
                conn.commit()
                return cursor.rowcount > 0

    def delete_all(self, kind: MirroredKind) -> int:
        """Empty a kind's table. Returns the number of rows removed."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(f"DELETE FROM {kind.value}")
                conn.commit()
                return cursor.rowcount

    # =========================================================================
    # Read Path
    # =========================================================================

    def exists(self, kind: MirroredKind, entity_id: str) -> bool:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(f"SELECT 1 FROM {kind.value} WHERE id = ?", (entity_id,))
                return cursor.fetchone() is not None

    def get(self, kind: MirroredKind, entity_id: str) -> MirroredEntity | None:
        """Get one entity by its remote id, or None."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(f"SELECT * FROM {kind.value} WHERE id = ?", (entity_id,))
                row = cursor.fetchone()
                return self._to_entity(kind, row) if row else None

    def find_page(
        self,
        kind: MirroredKind,
        scope: str | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int = 20
    ) -> list[MirroredEntity]:
        """
        Page through a kind's rows, newest first.

        Args:
            kind: Which table to read.
            scope: Only rows with this scope tag.
            search: Case-insensitive substring match on the name.
            offset: Rows to skip.
            limit: Maximum rows to return.
        """
        clauses = []
        params: list[Any] = []
        if scope:
            clauses.append("scope = ?")
            params.append(scope)
        if search:
            clauses.append("LOWER(name) LIKE ?")
            params.append(f"%{search.lower()}%")

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.extend([max(limit, 0), max(offset, 0)])

        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(f"""
                    SELECT * FROM {kind.value}
                    {where}
                    ORDER BY created_at DESC, name ASC
                    LIMIT ? OFFSET ?
                """, params)
                return [self._to_entity(kind, row) for row in cursor.fetchall()]

    def count(self, kind: MirroredKind, scope: str | None = None) -> int:
        with self._lock:
            with self._get_connection() as conn:
                if scope is None:
                    cursor = conn.execute(f"SELECT COUNT(*) FROM {kind.value}")
                else:
                    cursor = conn.execute(
                        f"SELECT COUNT(*) FROM {kind.value} WHERE scope = ?", (scope,)
                    )
                return cursor.fetchone()[0]
