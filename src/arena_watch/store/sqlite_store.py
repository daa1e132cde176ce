from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from arena_watch.errors import StoreError, StoreReadError, StoreWriteError
from arena_watch.models import ArenaItem
from arena_watch.utils.datetime_utils import parse_datetime_utc, utc_now

from .base import SeenRecord, Store

logger = logging.getLogger(__name__)


class SQLiteStore(Store):
    """Seen-item store backed by a single long-lived SQLite connection.

    The connection is opened once and shared by every caller; cycles run in a
    worker thread, so it is created with ``check_same_thread=False`` and all
    statements go through one lock.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = Path(db_path)
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def open(self) -> None:
        if self._connection is not None:
            return
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(self.db_path, check_same_thread=False)
            connection.execute("SELECT 1").fetchone()
        except (OSError, sqlite3.Error) as exc:
            raise StoreError(f"cannot open store at {self.db_path}: {exc}") from exc
        connection.row_factory = sqlite3.Row
        self._connection = connection

    def close(self) -> None:
        with self._lock:
            if self._connection is None:
                return
            self._connection.close()
            self._connection = None

    def init_db(self) -> None:
        connection = self._require_connection()
        with self._lock:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS arena_elements (
                    id TEXT PRIMARY KEY,
                    title TEXT NULL,
                    contributor TEXT NOT NULL,
                    link TEXT NOT NULL,
                    source_url TEXT NOT NULL,
                    item_class TEXT NULL,
                    connected_at TEXT NULL,
                    first_seen_at TEXT NOT NULL,
                    last_seen_at TEXT NOT NULL
                )
                """
            )
            connection.commit()

    def upsert_batch(self, items: list[ArenaItem]) -> int:
        if not items:
            return 0

        written = 0
        failures: list[str] = []
        for item in items:
            try:
                self._upsert(item)
            except (StoreError, sqlite3.Error) as exc:
                failures.append(item.id)
                logger.warning("failed to upsert element %s: %s", item.id, exc)
                continue
            written += 1

        if written == 0:
            raise StoreWriteError(
                f"no elements written ({len(failures)} failed, first: {failures[0]})"
            )
        return written

    def list_known_ids(self) -> set[str]:
        try:
            connection = self._require_connection()
            with self._lock:
                rows = connection.execute("SELECT id FROM arena_elements").fetchall()
        except (StoreError, sqlite3.Error) as exc:
            raise StoreReadError(f"failed to read known element ids: {exc}") from exc
        return {row["id"] for row in rows}

    def get(self, item_id: str) -> SeenRecord | None:
        connection = self._require_connection()
        with self._lock:
            row = connection.execute(
                """
                SELECT id, title, contributor, link, source_url, item_class,
                       connected_at, first_seen_at, last_seen_at
                FROM arena_elements
                WHERE id = ?
                """,
                (item_id,),
            ).fetchone()

        if row is None:
            return None

        now = utc_now()
        return SeenRecord(
            id=row["id"],
            title=row["title"],
            contributor=row["contributor"],
            link=row["link"],
            source_url=row["source_url"],
            item_class=row["item_class"],
            connected_at=parse_datetime_utc(row["connected_at"]),
            first_seen_at=parse_datetime_utc(row["first_seen_at"]) or now,
            last_seen_at=parse_datetime_utc(row["last_seen_at"]) or now,
        )

    def count(self) -> int:
        connection = self._require_connection()
        with self._lock:
            row = connection.execute("SELECT COUNT(*) AS total FROM arena_elements").fetchone()
        return int(row["total"])

    def _upsert(self, item: ArenaItem) -> None:
        connection = self._require_connection()
        now = utc_now().isoformat()
        connected_value = item.connected_at.isoformat() if item.connected_at else None

        with self._lock:
            try:
                connection.execute(
                    """
                    INSERT INTO arena_elements (
                        id,
                        title,
                        contributor,
                        link,
                        source_url,
                        item_class,
                        connected_at,
                        first_seen_at,
                        last_seen_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        title = excluded.title,
                        contributor = excluded.contributor,
                        link = excluded.link,
                        source_url = excluded.source_url,
                        item_class = excluded.item_class,
                        connected_at = excluded.connected_at,
                        last_seen_at = excluded.last_seen_at
                    """,
                    (
                        item.id,
                        item.title,
                        item.contributor,
                        item.link,
                        item.source_url,
                        item.item_class,
                        connected_value,
                        now,
                        now,
                    ),
                )
                connection.commit()
            except sqlite3.Error:
                connection.rollback()
                raise

    def _require_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StoreError("store is not open")
        return self._connection
