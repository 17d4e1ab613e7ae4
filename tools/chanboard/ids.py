"""Identifier allocation by counting existing records.

There is no counter record: the next id is the number of records under the
entity's key prefix plus one.  Two writers that count at the same time get
the same id.  `Database` writes new records with `put_if_absent` and
recounts when it loses, so a collision is detected rather than overwriting
the earlier record, but ids are still best-effort under concurrent writers.
"""

from __future__ import annotations

from .keys import THREAD_PREFIX, reply_prefix
from .kv import KVStore


class IdAllocator:
    def __init__(self, kv: KVStore) -> None:
        self.kv = kv

    def next_thread_id(self) -> int:
        return self.kv.count_prefix(THREAD_PREFIX) + 1

    def next_reply_id(self, parent_id: int) -> int:
        return self.kv.count_prefix(reply_prefix(parent_id)) + 1
