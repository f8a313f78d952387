"""
SQLite-backed catalogue of principals and recordings

Each call opens its own connection and runs on a worker thread, so the
store is safe to use from any number of concurrent asyncio tasks. Status
updates are guarded in SQL: a transition only applies when the row is in
one of the allowed predecessor states.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import closing, contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar

from zoomvault.exceptions import InvalidTransitionError, RecordingNotFoundError, StoreError
from zoomvault.models import LinkDescriptor, Principal, Recording, RecordingStatus

T = TypeVar("T")

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    telegram_id INTEGER NOT NULL UNIQUE,
    username TEXT,
    can_upload TEXT DEFAULT 'no',
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS zoom_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    date TEXT NOT NULL,
    zoom_url TEXT NOT NULL,
    passcode TEXT NOT NULL,
    file_path TEXT,
    file_id TEXT,
    uploaded_by INTEGER NOT NULL,
    status TEXT DEFAULT 'pending',
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_zoom_records_created_at ON zoom_records (created_at);
CREATE INDEX IF NOT EXISTS idx_zoom_records_file_path ON zoom_records (file_path);
"""

ORDER_NEWEST_FIRST = "ORDER BY created_at DESC, id DESC"


def _now() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds")


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class RecordStore:
    """Durable catalogue of recordings and uploader permissions"""

    def __init__(self, database_path: Path | str, clock: Callable[[], str] = _now):
        self.database_path = Path(database_path)
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    def __repr__(self) -> str:
        return f"RecordStore(database_path={str(self.database_path)!r})"

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            with closing(sqlite3.connect(self.database_path)) as conn:
                conn.row_factory = sqlite3.Row
                with conn:  # commit on success, rollback on error
                    yield conn
        except sqlite3.Error as e:
            self.logger.error(f"Database error on {self.database_path}: {e}")
            raise StoreError("Database operation failed", details=str(e)) from e

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(func, *args)

    def initialize(self) -> None:
        """Create tables if needed (synchronous, called once at startup)"""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with closing(sqlite3.connect(self.database_path)) as conn:
                conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StoreError("Could not initialize database", details=str(e)) from e
        self.logger.debug(f"Database ready at {self.database_path}")

    # Principals

    def _upsert_principal(self, telegram_id: int, username: str | None) -> Principal:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO users (telegram_id, username, can_upload, created_at) "
                "VALUES (?, ?, 'no', ?) "
                "ON CONFLICT(telegram_id) DO UPDATE SET username = excluded.username",
                (telegram_id, username, self.clock()),
            )
            row = conn.execute(
                "SELECT * FROM users WHERE telegram_id = ?", (telegram_id,)
            ).fetchone()
        return Principal.from_row(row)

    async def upsert_principal(self, telegram_id: int, username: str | None = None) -> Principal:
        """Register a principal on first contact; keeps an existing upload flag"""
        return await self._run(self._upsert_principal, telegram_id, username)

    def _set_can_upload(self, telegram_id: int, allowed: bool) -> None:
        flag = "yes" if allowed else "no"
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO users (telegram_id, username, can_upload, created_at) "
                "VALUES (?, NULL, ?, ?) "
                "ON CONFLICT(telegram_id) DO UPDATE SET can_upload = excluded.can_upload",
                (telegram_id, flag, self.clock()),
            )

    async def set_can_upload(self, telegram_id: int, allowed: bool = True) -> None:
        await self._run(self._set_can_upload, telegram_id, allowed)

    def _get_principal(self, telegram_id: int) -> Principal | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE telegram_id = ?", (telegram_id,)
            ).fetchone()
        return Principal.from_row(row) if row else None

    async def get_principal(self, telegram_id: int) -> Principal | None:
        return await self._run(self._get_principal, telegram_id)

    def _list_uploaders(self) -> list[int]:
        with self._connect() as conn:
            rows = conn.execute("SELECT telegram_id FROM users WHERE can_upload = 'yes'").fetchall()
        return [int(row["telegram_id"]) for row in rows]

    async def list_uploaders(self) -> list[int]:
        return await self._run(self._list_uploaders)

    # Recordings

    def _create_recording(self, descriptor: LinkDescriptor, uploaded_by: int) -> Recording:
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO zoom_records "
                "(title, date, zoom_url, passcode, uploaded_by, status, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    descriptor.title,
                    descriptor.date,
                    descriptor.url,
                    descriptor.passcode,
                    uploaded_by,
                    RecordingStatus.PENDING.value,
                    self.clock(),
                ),
            )
            row = conn.execute(
                "SELECT * FROM zoom_records WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
        return Recording.from_row(row)

    async def create_recording(self, descriptor: LinkDescriptor, uploaded_by: int) -> Recording:
        """Insert a new recording in the pending state"""
        recording = await self._run(self._create_recording, descriptor, uploaded_by)
        self.logger.info(f"Recording {recording.id} created: {recording.title!r}")
        return recording

    def _transition(
        self, record_id: int, target: RecordingStatus, file_path: str | None
    ) -> Recording:
        allowed_from = sorted(s.value for s in target.predecessors())
        placeholders = ", ".join("?" for _ in allowed_from)
        assignments = "status = ?"
        params: list[Any] = [target.value]
        if target is RecordingStatus.COMPLETED:
            assignments += ", file_path = ?"
            params.append(file_path)

        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE zoom_records SET {assignments} "
                f"WHERE id = ? AND status IN ({placeholders})",
                (*params, record_id, *allowed_from),
            )
            row = conn.execute("SELECT * FROM zoom_records WHERE id = ?", (record_id,)).fetchone()

        if row is None:
            raise RecordingNotFoundError(f"Recording {record_id} not found")
        if cursor.rowcount == 0:
            raise InvalidTransitionError(
                f"Recording {record_id} cannot move from {row['status']} to {target.value}"
            )
        return Recording.from_row(row)

    async def mark_downloading(self, record_id: int) -> Recording:
        return await self._run(self._transition, record_id, RecordingStatus.DOWNLOADING, None)

    async def mark_completed(self, record_id: int, file_path: Path | str) -> Recording:
        return await self._run(
            self._transition, record_id, RecordingStatus.COMPLETED, str(file_path)
        )

    async def mark_failed(self, record_id: int) -> Recording:
        return await self._run(self._transition, record_id, RecordingStatus.FAILED, None)

    def _set_file_id(self, file_path: str, file_id: str) -> int:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE zoom_records SET file_id = ? WHERE file_path = ? AND file_id IS NULL",
                (file_id, file_path),
            )
        return cursor.rowcount

    async def set_file_id(self, file_path: Path | str, file_id: str) -> bool:
        """Store the transport handle for a file; the first stored handle is kept

        Returns:
            True if at least one row took the handle
        """
        updated = await self._run(self._set_file_id, str(file_path), file_id)
        return updated > 0

    def _get_recording(self, record_id: int) -> Recording | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM zoom_records WHERE id = ?", (record_id,)).fetchone()
        return Recording.from_row(row) if row else None

    async def get_recording(self, record_id: int) -> Recording | None:
        return await self._run(self._get_recording, record_id)

    def _select(self, where: str, params: tuple[Any, ...], limit: int | None) -> list[Recording]:
        sql = f"SELECT * FROM zoom_records {where} {ORDER_NEWEST_FIRST}"
        if limit is not None:
            sql += " LIMIT ?"
            params = (*params, limit)
        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [Recording.from_row(row) for row in rows]

    async def search(self, text: str, limit: int | None = None) -> list[Recording]:
        """Case-insensitive title substring match, newest first"""
        if not text.strip():
            return []
        return await self._run(
            self._select, "WHERE title LIKE ? ESCAPE '\\'", (_like_pattern(text),), limit
        )

    async def list_recent(self, limit: int | None = None) -> list[Recording]:
        return await self._run(self._select, "", (), limit)

    async def list_recordings(self) -> list[Recording]:
        return await self.list_recent(limit=None)
