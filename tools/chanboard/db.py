"""Content repository – map threads and replies onto store keys."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from .config import BoardConfig
from .errors import NotFound, StoreError, ValidationError
from .ids import IdAllocator
from .keys import THREAD_PREFIX, reply_key, reply_prefix, thread_key
from .kv import KVStore
from .models import Attachment, Reply, Thread

logger = logging.getLogger("chanboard.db")

_DECODE_ERRORS = (ValueError, KeyError, TypeError)

R = TypeVar("R", Thread, Reply)


def clean_text(value: str | None, name: str, limit: int) -> str:
    """Trim `value`; reject it if nothing is left or it exceeds `limit` characters."""
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{name.capitalize()} cannot be empty")
    if len(text) > limit:
        raise ValidationError(f"{name.capitalize()} is longer than {limit} characters")
    return text


def _now() -> int:
    return int(time.time())


class Database:
    """Thread and reply records in the key-value store."""

    def __init__(
        self,
        kv: KVStore,
        cfg: BoardConfig | None = None,
        *,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.kv = kv
        self.cfg = cfg or BoardConfig()
        self.ids = IdAllocator(kv)
        self._clock = clock or _now

    def validate_post(self, title: str | None, message: str | None) -> tuple[str, str]:
        return (
            clean_text(title, "title", self.cfg.title_max),
            clean_text(message, "message", self.cfg.message_max),
        )

    # ── thread operations ────────────────────────────────────────

    def create_thread(
        self, title: str | None, message: str | None, media: Attachment | None = None
    ) -> Thread:
        title, message = self.validate_post(title, message)
        now = self._clock()
        thread = self._insert_new(
            "thread",
            self.ids.next_thread_id,
            thread_key,
            lambda tid: Thread(
                id=tid,
                title=title,
                message=message,
                last_updated=now,
                media_url=media.url if media else None,
                media_kind=media.kind if media else None,
            ),
        )
        logger.info("Created thread %d", thread.id)
        return thread

    def get_thread(self, thread_id: int) -> Thread | None:
        data = self.kv.get(thread_key(thread_id))
        if data is None:
            return None
        try:
            return Thread.from_record(data)
        except _DECODE_ERRORS as exc:
            raise StoreError(f"thread {thread_id} record is corrupt: {exc}") from exc

    def list_threads(self) -> list[Thread]:
        """All threads in store order.  Callers sort."""
        return self._scan(THREAD_PREFIX, Thread.from_record)

    def touch_thread(self, thread_id: int) -> Thread | None:
        """Bump `last_updated` to now.  Read-modify-write; the last writer wins."""
        thread = self.get_thread(thread_id)
        if thread is None:
            return None
        touched = Thread(
            id=thread.id,
            title=thread.title,
            message=thread.message,
            last_updated=max(thread.last_updated, self._clock()),
            media_url=thread.media_url,
            media_kind=thread.media_kind,
        )
        self.kv.put(thread_key(thread_id), touched.to_record())
        return touched

    # ── reply operations ─────────────────────────────────────────

    def create_reply(self, parent_id: int, message: str | None) -> Reply:
        """Record a reply, then touch its parent.

        The two writes are independent: if the second fails the reply is
        kept and only the parent's position on the front page is stale.
        """
        message = clean_text(message, "message", self.cfg.message_max)
        if self.get_thread(parent_id) is None:
            raise NotFound(f"Thread {parent_id} does not exist")
        reply = self._insert_new(
            "reply",
            lambda: self.ids.next_reply_id(parent_id),
            lambda rid: reply_key(parent_id, rid),
            lambda rid: Reply(id=rid, message=message),
        )
        if self.touch_thread(parent_id) is None:
            logger.warning("Thread %d vanished before it could be bumped", parent_id)
        logger.info("Created reply %d in thread %d", reply.id, parent_id)
        return reply

    def list_replies(self, parent_id: int) -> list[Reply]:
        return self._scan(reply_prefix(parent_id), Reply.from_record)

    # ── helpers ──────────────────────────────────────────────────

    def _insert_new(
        self,
        kind: str,
        next_id: Callable[[], int],
        key_for: Callable[[int], bytes],
        build: Callable[[int], R],
    ) -> R:
        for attempt in range(1, self.cfg.id_attempts + 1):
            record = build(next_id())
            if self.kv.put_if_absent(key_for(record.id), record.to_record()):
                return record
            logger.warning(
                "%s id %d taken by a concurrent writer (attempt %d/%d)",
                kind, record.id, attempt, self.cfg.id_attempts,
            )
        raise StoreError(f"could not allocate a {kind} id after {self.cfg.id_attempts} attempts")

    def _scan(self, prefix: bytes, decode: Callable[[bytes], R]) -> list[R]:
        items: list[R] = []
        for key, value in self.kv.scan_prefix(prefix):
            try:
                items.append(decode(value))
            except _DECODE_ERRORS as exc:
                logger.warning("Skipping corrupt record %r: %s", key, exc)
        return items
