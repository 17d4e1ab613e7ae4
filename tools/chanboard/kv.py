"""Embedded, ordered key-value store backed by a single SQLite table."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .config import StoreConfig
from .errors import StoreError

logger = logging.getLogger("chanboard.kv")

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key   BLOB PRIMARY KEY,
    value BLOB NOT NULL
) WITHOUT ROWID
"""


@contextmanager
def _translate(op: str, key: bytes) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StoreError(f"{op} {key!r} failed: {exc}") from exc


def _prefix_end(prefix: bytes) -> bytes | None:
    """Smallest key greater than every key starting with `prefix` (None if unbounded)."""
    stripped = prefix.rstrip(b"\xff")
    if not stripped:
        return None
    return stripped[:-1] + bytes([stripped[-1] + 1])


class KVStore:
    """Byte-keyed store iterated in lexicographic key order.

    Each calling thread gets its own connection; SQLite's file locking
    serialises writes, so callers need no lock of their own.  Every write is
    its own transaction: there is no cross-key atomicity.
    """

    def __init__(self, cfg: StoreConfig | None = None) -> None:
        self.cfg = cfg or StoreConfig.from_env()
        self._local = threading.local()
        self._conns: dict[int, sqlite3.Connection] = {}
        self._conns_lock = threading.Lock()
        Path(self.cfg.path).parent.mkdir(parents=True, exist_ok=True)
        with _translate("open", self.cfg.path.encode()):
            self.conn.execute(SCHEMA)

    @property
    def conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(
                self.cfg.path,
                timeout=self.cfg.busy_timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            self._local.conn = conn
            self._register(conn)
        return conn

    def _register(self, conn: sqlite3.Connection) -> None:
        """Track `conn` for the calling thread and close connections of exited threads."""
        # current_thread() also registers threads not started by `threading`.
        threading.current_thread()
        ident = threading.get_ident()
        live = {t.ident for t in threading.enumerate()}
        with self._conns_lock:
            # A reused ident means the previous owner has exited.
            stale = [self._conns.pop(ident)] if ident in self._conns else []
            for owner in [i for i in self._conns if i not in live]:
                stale.append(self._conns.pop(owner))
            self._conns[ident] = conn
        for old in stale:
            old.close()
        logger.debug(
            "Opened %s for thread %s (closed %d stale)", self.cfg.path, ident, len(stale)
        )

    # ── single-key operations ────────────────────────────────────

    def get(self, key: bytes) -> bytes | None:
        with _translate("get", key):
            row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return bytes(row[0]) if row else None

    def put(self, key: bytes, value: bytes) -> None:
        with _translate("put", key):
            self.conn.execute(
                """INSERT INTO kv (key, value) VALUES (?, ?)
                   ON CONFLICT (key) DO UPDATE SET value = excluded.value""",
                (key, value),
            )

    def put_if_absent(self, key: bytes, value: bytes) -> bool:
        """Write `value` only if `key` is unused.  Returns False if it was taken."""
        with _translate("put_if_absent", key):
            cur = self.conn.execute(
                "INSERT OR IGNORE INTO kv (key, value) VALUES (?, ?)", (key, value)
            )
        return cur.rowcount == 1

    # ── prefix scans ─────────────────────────────────────────────

    def scan_prefix(self, prefix: bytes) -> Iterator[tuple[bytes, bytes]]:
        """Yield (key, value) pairs whose key starts with `prefix`, in key order.

        Rows are fetched in batches of `scan_batch`, resuming after the last
        key seen, so no read transaction is held open between batches.
        """
        end = _prefix_end(prefix)
        upper = " AND key < ?" if end is not None else ""
        lower_op = ">="
        cursor_key = prefix
        while True:
            params: list[object] = [cursor_key]
            if end is not None:
                params.append(end)
            params.append(self.cfg.scan_batch)
            with _translate("scan", prefix):
                rows = self.conn.execute(
                    f"SELECT key, value FROM kv WHERE key {lower_op} ?{upper} ORDER BY key LIMIT ?",
                    params,
                ).fetchall()
            for key, value in rows:
                yield bytes(key), bytes(value)
            if len(rows) < self.cfg.scan_batch:
                return
            cursor_key = bytes(rows[-1][0])
            lower_op = ">"

    def count_prefix(self, prefix: bytes) -> int:
        return sum(1 for _ in self.scan_prefix(prefix))

    # ── lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        with self._conns_lock:
            conns, self._conns = list(self._conns.values()), {}
        for conn in conns:
            conn.close()
        self._local = threading.local()

    def __enter__(self) -> KVStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
