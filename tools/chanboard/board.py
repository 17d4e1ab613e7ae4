"""Board orchestration – media pipeline → repository, front page and thread view."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .config import BoardConfig
from .db import Database
from .errors import NotFound, StoreError
from .kv import KVStore
from .models import Reply, Thread, Upload
from .pagination import Page, paginate
from .storage import MediaStore

logger = logging.getLogger("chanboard.board")


class Board:
    """Everything a request handler needs: posting, replying and reading."""

    def __init__(self, cfg: BoardConfig | None = None, *, clock: Callable[[], int] | None = None) -> None:
        self.cfg = cfg or BoardConfig()
        self.kv = KVStore(self.cfg.store)
        self.db = Database(self.kv, self.cfg, clock=clock)
        self.media = MediaStore(self.cfg.media)
        self.media.ensure_dirs()

    # ── posting ──────────────────────────────────────────────────

    def create_thread(self, title: str | None, message: str | None, upload: Upload | None = None) -> Thread:
        """Create a thread, storing its attachment before the thread record.

        Text is checked first so a rejected post never writes a file.  If the
        record write fails, the attachment's files are removed again.
        """
        self.db.validate_post(title, message)
        attachment = self.media.ingest(upload)
        try:
            return self.db.create_thread(title, message, attachment)
        except StoreError:
            if attachment is not None:
                self.media.discard(attachment)
            raise

    def reply(self, parent_id: int, message: str | None) -> Reply:
        return self.db.create_reply(parent_id, message)

    # ── reading ──────────────────────────────────────────────────

    def front_page(self, page: int | None = None) -> Page:
        return paginate(self.db.list_threads(), page, self.cfg.page_size)

    def thread_view(self, thread_id: int) -> tuple[Thread, list[Reply]]:
        thread = self.db.get_thread(thread_id)
        if thread is None:
            raise NotFound(f"Thread {thread_id} does not exist")
        replies = sorted(self.db.list_replies(thread_id), key=lambda r: r.id)
        return thread, replies

    # ── lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        self.kv.close()

    def __enter__(self) -> Board:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
