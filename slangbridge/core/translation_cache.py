"""
Translation Cache - stores translation results in SQLite.

Cache key = sha256 of (from_style, to_style, normalized source text).
Entries expire after the TTL; entries older than the stale threshold are still
served, and a single background refresh is scheduled for them.
"""
import hashlib
import json
import logging
import os
import re
import sqlite3
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from .refresh import RefreshCoordinator

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000
MAX_CACHEABLE_LENGTH = 5000

_WHITESPACE_RE = re.compile(r"\s+")


class StoreError(Exception):
    """Raised when the underlying SQLite store fails."""
    pass


def normalize_text(text: str) -> str:
    """Trim and collapse internal whitespace to single spaces."""
    return _WHITESPACE_RE.sub(" ", text.strip())


def make_cache_key(from_style: str, to_style: str, text: str) -> str:
    raw = f"{from_style}|{to_style}|{normalize_text(text)}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def should_cache(text: str) -> bool:
    trimmed = (text or "").strip()
    return 0 < len(trimmed) <= MAX_CACHEABLE_LENGTH


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    key: str
    source_text: str
    from_style: str
    to_style: str
    output_text: str
    created_at: int
    expires_at: int
    meta: dict = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "CacheEntry":
        try:
            meta = json.loads(row["meta_json"]) if row["meta_json"] else {}
        except json.JSONDecodeError:
            logger.warning(f"[Cache] Unreadable meta for key {row['key'][:12]}, ignoring")
            meta = {}
        return cls(
            key=row["key"],
            source_text=row["source_text"],
            from_style=row["from_style"],
            to_style=row["to_style"],
            output_text=row["output_text"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
            meta=meta,
        )


class TranslationCache:
    def __init__(
        self,
        db_path: str,
        ttl_days: int = 30,
        stale_after_days: int = 7,
        refresher: RefreshCoordinator = None,
        clock: Callable[[], int] = None,
    ):
        if ttl_days <= 0:
            raise ValueError("ttl_days must be positive")
        if stale_after_days < 0:
            raise ValueError("stale_after_days must not be negative")

        self.db_path = db_path
        self.ttl_days = ttl_days
        self.stale_after_days = stale_after_days
        self.ttl_ms = ttl_days * DAY_MS
        self.stale_after_ms = stale_after_days * DAY_MS
        self.refresher = refresher or RefreshCoordinator()
        self.clock = clock or _now_ms
        self._refresh_handler: Optional[Callable[[CacheEntry], None]] = None
        self._lock = threading.RLock()

        if db_path != ":memory:":
            try:
                os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
            except OSError as e:
                raise StoreError(f"Cannot create cache directory for {db_path}: {e}") from e
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False, timeout=30.0)
            self._conn.row_factory = sqlite3.Row
            self._init_schema()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open cache database {db_path}: {e}") from e

        self.cleanup_expired()
        logger.info(f"[Cache] Translation cache initialized (TTL: {ttl_days}d, Stale: {stale_after_days}d)")

    def _init_schema(self) -> None:
        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS translations (
                    key TEXT PRIMARY KEY,
                    source_text TEXT NOT NULL,
                    from_style TEXT NOT NULL,
                    to_style TEXT NOT NULL,
                    output_text TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    expires_at INTEGER NOT NULL,
                    meta_json TEXT
                )
            """)
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_translations_expires_at ON translations(expires_at)"
            )

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                with self._conn:
                    return self._conn.execute(sql, params)
            except sqlite3.Error as e:
                raise StoreError(str(e)) from e

    def _fetchone(self, sql: str, params: tuple = ()):
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchone()
            except sqlite3.Error as e:
                raise StoreError(str(e)) from e

    def now_ms(self) -> int:
        return self.clock()

    def set_refresh_handler(self, handler: Callable[[CacheEntry], None]) -> None:
        """Install the callable that re-translates a stale entry."""
        self._refresh_handler = handler

    def get(self, from_style: str, to_style: str, text: str) -> Optional[CacheEntry]:
        """Return cached entry or None if miss/expired."""
        if not should_cache(text):
            return None

        key = make_cache_key(from_style, to_style, text)
        now = self.clock()
        row = self._fetchone(
            "SELECT * FROM translations WHERE key = ? AND expires_at > ?", (key, now)
        )
        if row is None:
            return None

        entry = CacheEntry.from_row(row)
        if now - entry.created_at > self.stale_after_ms:
            self._schedule_refresh(entry)
        return entry

    def _schedule_refresh(self, entry: CacheEntry) -> None:
        if self._refresh_handler is None:
            return
        handler = self._refresh_handler
        self.refresher.schedule(entry.key, lambda: handler(entry))

    def set(self, from_style: str, to_style: str, text: str, output: str, meta: dict = None) -> bool:
        """Store a translation result. Returns False when the input is not cacheable."""
        if not should_cache(text) or not (output or "").strip():
            return False

        key = make_cache_key(from_style, to_style, text)
        now = self.clock()
        meta_json = json.dumps(meta, ensure_ascii=False) if meta else None
        self._execute(
            """
            INSERT OR REPLACE INTO translations
            (key, source_text, from_style, to_style, output_text, created_at, expires_at, meta_json)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (key, text.strip(), from_style, to_style, output.strip(), now, now + self.ttl_ms, meta_json),
        )
        logger.info(f"[Cache] Cached translation: {key[:12]} (TTL: {self.ttl_days} days)")
        return True

    def invalidate(self, key: str) -> bool:
        """Remove a cached entry by key. Returns True if a row existed."""
        cursor = self._execute("DELETE FROM translations WHERE key = ?", (key,))
        logger.info(f"[Cache] Invalidated cache key: {key[:12]}")
        return cursor.rowcount > 0

    def invalidate_text(self, from_style: str, to_style: str, text: str) -> bool:
        return self.invalidate(make_cache_key(from_style, to_style, text))

    def cleanup_expired(self) -> int:
        cursor = self._execute("DELETE FROM translations WHERE expires_at <= ?", (self.clock(),))
        removed = cursor.rowcount
        if removed > 0:
            logger.info(f"[Cache] Cleaned up {removed} expired cache entries")
        return removed

    def stats(self) -> dict:
        now = self.clock()
        stale_threshold = now - self.stale_after_ms

        def count(where: str = "", params: tuple = ()) -> int:
            return self._fetchone(f"SELECT COUNT(*) FROM translations {where}", params)[0]

        return {
            "total": count(),
            "expired": count("WHERE expires_at <= ?", (now,)),
            "stale": count("WHERE created_at < ? AND expires_at > ?", (stale_threshold, now)),
            "fresh": count("WHERE created_at >= ? AND expires_at > ?", (stale_threshold, now)),
        }

    def close(self, wait: bool = True) -> None:
        self.refresher.shutdown(wait=wait)
        with self._lock:
            self._conn.close()
