"""
Upload record store.

SQLite table with the provenance of every ingested file. sqlite3 calls are
blocking, so the async methods run them in a worker thread; a lock
serializes access to the single connection.
"""
from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, List, Optional, TypeVar

from domain.errors import RecordStoreError, StoreNotInitializedError
from domain.models import FileRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

DB_DIR_NAME = "db"
DB_FILE_NAME = "mirror.db"


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS upload_records (
  fileId TEXT PRIMARY KEY,
  fileName TEXT NOT NULL,
  filePath TEXT NOT NULL,
  uploadTime TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_upload_time ON upload_records(uploadTime DESC);
"""


def _format_time(value: datetime) -> str:
    """
    Fixed-width ISO timestamp with microseconds, so text order is time order.
    Aware datetimes are stored in UTC.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.isoformat(sep=" ", timespec="microseconds")


def _row_to_record(row: sqlite3.Row) -> FileRecord:
    return FileRecord(
        file_id=row["fileId"],
        file_name=row["fileName"],
        file_path=row["filePath"],
        ingested_at=datetime.fromisoformat(row["uploadTime"]),
    )


class RecordStore:
    """
    Durable store of ``FileRecord`` rows.

    Example:
        store = RecordStore("/home/me/mirror")
        await store.initialize()
        await store.add(FileRecord.create("ab12...", "a.pdf", "/docs/a.pdf"))
    """

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / DB_DIR_NAME / DB_FILE_NAME
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._conn is not None

    async def initialize(self) -> None:
        """
        Open (or create) the database and its schema. Idempotent.

        Raises:
            RecordStoreError: If the data directory is not writable
        """
        await asyncio.to_thread(self._initialize_sync)

    def _initialize_sync(self) -> None:
        with self._lock:
            if self._conn is not None:
                return
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                conn.executescript(SCHEMA_SQL)
                conn.commit()
            except (OSError, sqlite3.Error) as exc:
                raise RecordStoreError(
                    f"Cannot open record store at {self.db_path}: {exc}"
                ) from exc
            self._conn = conn
        logger.info(f"Record store ready: {self.db_path}")

    def ensure_initialized(self) -> None:
        if self._conn is None:
            raise StoreNotInitializedError("Record store is not initialized")

    async def add(self, record: FileRecord) -> None:
        """Insert or replace the record with the same file id."""

        def _add(conn: sqlite3.Connection) -> None:
            conn.execute(
                "INSERT OR REPLACE INTO upload_records (fileId, fileName, filePath, uploadTime) "
                "VALUES (?, ?, ?, ?)",
                (
                    record.file_id,
                    record.file_name,
                    record.file_path,
                    _format_time(record.ingested_at),
                ),
            )
            conn.commit()

        await self._run(_add)
        logger.info(f"Saved upload record: {record.file_name} ({record.file_id})")

    async def get_all(self) -> List[FileRecord]:
        """All records, most recent first."""

        def _get_all(conn: sqlite3.Connection) -> List[FileRecord]:
            rows = conn.execute(
                "SELECT fileId, fileName, filePath, uploadTime FROM upload_records "
                "ORDER BY uploadTime DESC"
            ).fetchall()
            return [_row_to_record(row) for row in rows]

        return await self._run(_get_all)

    async def get_by_id(self, file_id: str) -> Optional[FileRecord]:
        def _get(conn: sqlite3.Connection) -> Optional[FileRecord]:
            row = conn.execute(
                "SELECT fileId, fileName, filePath, uploadTime FROM upload_records WHERE fileId = ?",
                (file_id,),
            ).fetchone()
            return _row_to_record(row) if row else None

        return await self._run(_get)

    async def delete(self, file_id: str) -> None:
        """Delete a record. Deleting an unknown id is not an error."""

        def _delete(conn: sqlite3.Connection) -> int:
            cursor = conn.execute("DELETE FROM upload_records WHERE fileId = ?", (file_id,))
            conn.commit()
            return cursor.rowcount

        removed = await self._run(_delete)
        logger.info(f"Deleted upload record {file_id} ({removed} row(s))")

    async def close(self) -> None:
        await asyncio.to_thread(self._close_sync)

    def _close_sync(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info("Record store closed")

    async def relocate(self, data_dir: str | Path) -> None:
        """
        Move the store to another data directory.

        An open store is closed and reopened at the new location. If the new
        location cannot be opened the store goes back to the previous one.

        Raises:
            RecordStoreError: If the new data directory is not usable
        """
        new_dir = Path(data_dir)
        if new_dir == self.data_dir:
            return
        was_open = self.is_initialized
        old_dir = self.data_dir
        await self.close()
        self.data_dir = new_dir
        self.db_path = new_dir / DB_DIR_NAME / DB_FILE_NAME
        if not was_open:
            return
        try:
            await self.initialize()
        except RecordStoreError:
            self.data_dir = old_dir
            self.db_path = old_dir / DB_DIR_NAME / DB_FILE_NAME
            await self.initialize()
            raise
        logger.info(f"Record store moved from {old_dir} to {new_dir}")

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        self.ensure_initialized()

        def _locked() -> Any:
            with self._lock:
                if self._conn is None:
                    raise StoreNotInitializedError("Record store is not initialized")
                try:
                    return fn(self._conn)
                except sqlite3.Error as exc:
                    raise RecordStoreError(str(exc)) from exc

        return await asyncio.to_thread(_locked)
