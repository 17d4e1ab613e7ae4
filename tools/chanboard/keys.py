"""Storage key scheme.

Thread records live under ``thread_<id>`` and replies under
``reply_<parent>_<id>``.  Reply scans always include the trailing ``_`` so
that the prefix for thread 12 does not also match threads 120-129.
"""

from __future__ import annotations

THREAD_PREFIX = b"thread_"
REPLY_PREFIX = b"reply_"


def thread_key(thread_id: int) -> bytes:
    return THREAD_PREFIX + str(thread_id).encode("ascii")


def reply_prefix(parent_id: int) -> bytes:
    return REPLY_PREFIX + str(parent_id).encode("ascii") + b"_"


def reply_key(parent_id: int, reply_id: int) -> bytes:
    return reply_prefix(parent_id) + str(reply_id).encode("ascii")
