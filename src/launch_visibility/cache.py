"""
Proximity-aware cache for trajectories and assessments.

Entries expire sooner as liftoff approaches, since late trajectory data is
both more likely to change and more valuable. Storage sits behind the
CacheBackend contract so the engine never knows whether it is talking to
process memory or the SQLite store.
"""

import json
import logging
import sqlite3
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional, Union

logger = logging.getLogger(__name__)

# TTL schedule by time remaining until liftoff
TTL_BEYOND_7_DAYS_S = 24 * 3600
TTL_3_TO_7_DAYS_S = 12 * 3600
TTL_1_TO_3_DAYS_S = 6 * 3600
TTL_2_TO_24_HOURS_S = 2 * 3600
TTL_FINAL_HOURS_S = 30 * 60


def ttl_for_launch(net: datetime, now: Optional[datetime] = None) -> int:
    """
    Cache lifetime for a launch based on how far away liftoff is.

    Args:
        net: Scheduled liftoff (naive values are taken as UTC)
        now: Current time, defaults to the wall clock

    Returns:
        TTL in seconds
    """
    if net.tzinfo is None:
        net = net.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    hours_until = (net - now).total_seconds() / 3600.0
    if hours_until > 168:
        return TTL_BEYOND_7_DAYS_S
    if hours_until > 72:
        return TTL_3_TO_7_DAYS_S
    if hours_until > 24:
        return TTL_1_TO_3_DAYS_S
    if hours_until > 2:
        return TTL_2_TO_24_HOURS_S
    return TTL_FINAL_HOURS_S


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with the moment it was stored and its lifetime."""

    data: Any
    cached_at_epoch_ms: int
    ttl_seconds: int

    def __post_init__(self) -> None:
        if self.ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be > 0, got {self.ttl_seconds}")

    @property
    def expires_at_epoch_ms(self) -> int:
        return self.cached_at_epoch_ms + self.ttl_seconds * 1000

    def is_fresh(self, now_epoch_ms: int) -> bool:
        return now_epoch_ms < self.expires_at_epoch_ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "cachedAtEpochMs": self.cached_at_epoch_ms,
            "ttlSeconds": self.ttl_seconds,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "CacheEntry":
        return cls(
            data=raw["data"],
            cached_at_epoch_ms=int(raw["cachedAtEpochMs"]),
            ttl_seconds=int(raw["ttlSeconds"]),
        )


class CacheBackend(ABC):
    """Key-value storage of serialized cache entries."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Serialized entry for key, or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a serialized entry, replacing any previous one."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key; missing keys are ignored."""

    @abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        """Remove every key starting with prefix; returns the count removed."""

    @abstractmethod
    def keys(self) -> List[str]:
        """All stored keys."""


class MemoryBackend(CacheBackend):
    """In-process backend; values are kept as JSON text like the durable store."""

    def __init__(self) -> None:
        self._store: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._store.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._store[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._store if k.startswith(prefix)]
            for key in doomed:
                del self._store[key]
            return len(doomed)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._store)


class SqliteBackend(CacheBackend):
    """
    Durable backend on a single SQLite table.

    Args:
        db_path: Database file; parent directories are created as needed
    """

    def __init__(self, db_path: Union[str, Path]) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()
        logger.info(f"SQLite cache at {self.db_path}")

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._get_connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS cache_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """
            )
            conn.commit()

    def get(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM cache_entries WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO cache_entries (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """,
                (key, value, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()

    def delete(self, key: str) -> None:
        with self._get_connection() as conn:
            conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
            conn.commit()

    def delete_prefix(self, prefix: str) -> int:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM cache_entries WHERE substr(key, 1, ?) = ?",
                (len(prefix), prefix),
            )
            conn.commit()
            return cursor.rowcount

    def keys(self) -> List[str]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT key FROM cache_entries ORDER BY key").fetchall()
            return [row["key"] for row in rows]


class ProximityCache:
    """
    TTL cache over a pluggable backend.

    Args:
        backend: Storage backend, in-memory when omitted
        clock: Returns the current time in seconds since the epoch
    """

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.backend = backend or MemoryBackend()
        self._clock = clock

    @staticmethod
    def make_key(namespace: str, launch_id: str, fingerprint: str) -> str:
        return f"{namespace}:{launch_id}:{fingerprint}"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _load(self, key: str) -> Optional[CacheEntry]:
        raw = self.backend.get(key)
        if raw is None:
            return None
        try:
            return CacheEntry.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Dropping unreadable cache entry {key}: {e}")
            self.backend.delete(key)
            return None

    def get(self, key: str) -> Optional[Any]:
        """Cached value if present and within its TTL."""
        entry = self._load(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._now_ms()):
            logger.debug(f"Cache entry {key} expired")
            return None
        return entry.data

    def get_stale(self, key: str) -> Optional[Any]:
        """Cached value regardless of age."""
        entry = self._load(key)
        return entry.data if entry is not None else None

    def set(self, key: str, value: Any, ttl_seconds: int) -> CacheEntry:
        entry = CacheEntry(
            data=value, cached_at_epoch_ms=self._now_ms(), ttl_seconds=int(ttl_seconds)
        )
        self.backend.set(key, json.dumps(entry.to_dict()))
        logger.debug(f"Cached {key} for {ttl_seconds}s")
        return entry

    def clear(self, prefix: Optional[str] = None) -> int:
        """
        Remove entries.

        Args:
            prefix: Only remove keys starting with this prefix; all when None

        Returns:
            Number of entries removed
        """
        removed = self.backend.delete_prefix(prefix or "")
        logger.info(f"Cleared {removed} cache entries" + (f" under {prefix}" if prefix else ""))
        return removed

    def prune(self, prefix: str, keep: str) -> int:
        """
        Remove every entry directly under ``prefix`` except ``keep``.

        Keys with a further ``:`` after the prefix belong to a longer id and
        are left alone.

        Args:
            prefix: Key prefix, e.g. ``trajectory:<launch id>:``
            keep: Key to retain

        Returns:
            Number of entries removed
        """
        removed = 0
        for key in self.backend.keys():
            if key == keep or not key.startswith(prefix) or ":" in key[len(prefix):]:
                continue
            self.backend.delete(key)
            removed += 1
        if removed:
            logger.debug(f"Pruned {removed} superseded entries under {prefix}")
        return removed
