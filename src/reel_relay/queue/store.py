"""SQLite-backed media queue.

One database per account. Rows are created by the CLI (or older tooling),
consumed by the pipeline one at a time.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Iterable, Optional, Union

from pydantic import ValidationError

from reel_relay.constants import CLAIM_LEASE_SECONDS
from reel_relay.errors import StoreError
from reel_relay.queue.models import NewQueueItem, QueueItem

logger = logging.getLogger("reel_relay.queue")

_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS media_queue (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source TEXT NOT NULL CHECK (source IN ('tiktok', 'twitter')),
    url TEXT NOT NULL,
    caption_strategy TEXT NOT NULL DEFAULT 'default'
        CHECK (caption_strategy IN ('default', 'custom', 'from_source')),
    caption_custom TEXT DEFAULT '',
    filename TEXT,
    downloaded INTEGER NOT NULL DEFAULT 0,
    posted INTEGER NOT NULL DEFAULT 0,
    logo INTEGER NOT NULL DEFAULT 1,
    format_preset TEXT NOT NULL DEFAULT 'caption_top',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    claimed_at TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_media_queue_status
    ON media_queue(posted, downloaded, created_at);
"""

_PRIORITY_ORDER = "ORDER BY downloaded DESC, created_at ASC, id ASC"

NewItemLike = Union[NewQueueItem, dict]


class QueueStore:
    """Media queue wrapper.

    Args:
        db_path: SQLite file. Parent directories are created.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(self.db_path))
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA journal_mode=WAL")
            self._migrate()
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"Cannot open queue database {self.db_path}: {e}") from e

    def _migrate(self) -> None:
        cur = self.conn.cursor()
        # Tables created by older tooling lack the lease column
        cur.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'media_queue'"
        )
        if cur.fetchone() is not None:
            columns = {row["name"] for row in cur.execute("PRAGMA table_info(media_queue)")}
            if "claimed_at" not in columns:
                logger.info("Adding claimed_at column to %s", self.db_path)
                cur.execute("ALTER TABLE media_queue ADD COLUMN claimed_at TIMESTAMP")
        cur.executescript(_CREATE_TABLES)
        self.conn.commit()

    def close(self) -> None:
        if self.conn:
            self.conn.close()

    def __enter__(self) -> "QueueStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -- Helpers ---------------------------------------------------------

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> QueueItem:
        try:
            return QueueItem.from_row(row)
        except ValidationError as e:
            raise StoreError(f"Invalid queue row {row['id']}: {e}") from e

    def _fetch_one(self, sql: str, params: tuple = ()) -> Optional[QueueItem]:
        try:
            row = self.conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Queue query failed: {e}") from e
        return self._row_to_item(row) if row else None

    def _update(self, sql: str, params: tuple) -> int:
        try:
            with self.conn:
                return self.conn.execute(sql, params).rowcount
        except sqlite3.Error as e:
            raise StoreError(f"Queue update failed: {e}") from e

    # -- Selection -------------------------------------------------------

    def select_next(self) -> Optional[QueueItem]:
        """Highest-priority unposted item, or None when the queue is drained.

        Already-downloaded items go first so a failed publish is retried
        before new work is fetched.
        """
        return self._fetch_one(
            f"SELECT * FROM media_queue WHERE posted = 0 {_PRIORITY_ORDER} LIMIT 1"
        )

    def claim_next(self, lease_seconds: int = CLAIM_LEASE_SECONDS) -> Optional[QueueItem]:
        """Select and lease the next unposted item.

        Rows leased less than ``lease_seconds`` ago are skipped. The lease is
        taken with a conditional UPDATE, so two concurrent runs never get the
        same row.
        """
        expiry = f"-{int(lease_seconds)} seconds"
        claimable = (
            "posted = 0 AND (claimed_at IS NULL OR claimed_at <= datetime('now', ?))"
        )
        while True:
            candidate = self._fetch_one(
                f"SELECT * FROM media_queue WHERE {claimable} {_PRIORITY_ORDER} LIMIT 1",
                (expiry,),
            )
            if candidate is None:
                return None
            taken = self._update(
                f"UPDATE media_queue SET claimed_at = datetime('now') "
                f"WHERE id = ? AND {claimable}",
                (candidate.id, expiry),
            )
            if taken == 1:
                logger.debug("Claimed item %s", candidate.id)
                return self.get(candidate.id)
            logger.debug("Item %s claimed by another run, retrying", candidate.id)

    def release(self, item_id: int) -> None:
        """Drop the lease on an item. Missing ids are ignored."""
        self._update("UPDATE media_queue SET claimed_at = NULL WHERE id = ?", (item_id,))

    # -- State transitions -----------------------------------------------

    def mark_downloaded(self, item_id: int, filename: str) -> None:
        updated = self._update(
            "UPDATE media_queue SET downloaded = 1, filename = ? WHERE id = ?",
            (filename, item_id),
        )
        if updated == 0:
            raise StoreError(f"Cannot mark downloaded: item {item_id} not found")
        logger.info("Item %s downloaded as %s", item_id, filename)

    def mark_posted(self, item_id: int) -> None:
        updated = self._update(
            "UPDATE media_queue SET posted = 1, claimed_at = NULL WHERE id = ?",
            (item_id,),
        )
        if updated == 0:
            raise StoreError(f"Cannot mark posted: item {item_id} not found")
        logger.info("Item %s posted", item_id)

    # -- CRUD ------------------------------------------------------------

    @staticmethod
    def _validate(item: NewItemLike) -> NewQueueItem:
        if isinstance(item, NewQueueItem):
            return item
        try:
            return NewQueueItem.model_validate(item)
        except ValidationError as e:
            raise StoreError(f"Invalid queue item {item!r}: {e}") from e

    def insert_many(self, items: Iterable[NewItemLike]) -> list[int]:
        """Insert items atomically.

        All items are validated before anything is written; one bad item
        leaves the table untouched.

        Returns:
            New ids, in input order.
        """
        validated = [self._validate(item) for item in items]
        ids: list[int] = []
        try:
            with self.conn:
                for item in validated:
                    cur = self.conn.execute(
                        """INSERT INTO media_queue
                           (source, url, caption_strategy, caption_custom,
                            logo, format_preset)
                           VALUES (?, ?, ?, ?, ?, ?)""",
                        (
                            item.source.value,
                            item.url,
                            item.caption_strategy.value,
                            item.caption_custom,
                            int(item.logo_requested),
                            item.format_preset.value,
                        ),
                    )
                    ids.append(cur.lastrowid)
        except sqlite3.Error as e:
            raise StoreError(f"Queue insert failed: {e}") from e
        logger.info("Inserted %d item(s): %s", len(ids), ids)
        return ids

    def insert_one(self, item: NewItemLike) -> int:
        return self.insert_many([item])[0]

    def delete_one(self, item_id: int) -> int:
        """Delete an item. Returns rows removed (0 or 1)."""
        return self._update("DELETE FROM media_queue WHERE id = ?", (item_id,))

    def get(self, item_id: int) -> Optional[QueueItem]:
        return self._fetch_one("SELECT * FROM media_queue WHERE id = ?", (item_id,))

    def list_recent(self, limit: int = 20) -> list[QueueItem]:
        try:
            rows = self.conn.execute(
                "SELECT * FROM media_queue ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Queue query failed: {e}") from e
        return [self._row_to_item(r) for r in rows]

    def counts(self) -> dict[str, int]:
        """Totals for the queue view: total, downloaded, posted, pending."""
        try:
            row = self.conn.execute(
                """SELECT COUNT(*) AS total,
                          COALESCE(SUM(downloaded), 0) AS downloaded,
                          COALESCE(SUM(posted), 0) AS posted
                   FROM media_queue"""
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Queue query failed: {e}") from e
        return {
            "total": row["total"],
            "downloaded": row["downloaded"],
            "posted": row["posted"],
            "pending": row["total"] - row["posted"],
        }
