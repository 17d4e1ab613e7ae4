"""Threads, replies and attachments, plus their JSON record format."""

from __future__ import annotations

import enum
import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


class MediaKind(enum.Enum):
    IMAGE = "Image"
    VIDEO = "Video"


@dataclass(frozen=True)
class Thread:
    id: int
    title: str
    message: str
    last_updated: int  # unix seconds
    media_url: str | None = None
    media_kind: MediaKind | None = None

    def to_record(self) -> bytes:
        return _dump({
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "last_updated": self.last_updated,
            "media_url": self.media_url,
            "media_type": self.media_kind.value if self.media_kind else None,
        })

    @classmethod
    def from_record(cls, data: bytes) -> Thread:
        obj = json.loads(data)
        kind = obj.get("media_type")
        return cls(
            id=int(obj["id"]),
            title=obj["title"],
            message=obj["message"],
            last_updated=int(obj["last_updated"]),
            media_url=obj.get("media_url"),
            media_kind=MediaKind(kind) if kind else None,
        )


@dataclass(frozen=True)
class Reply:
    id: int
    message: str

    def to_record(self) -> bytes:
        return _dump({"id": self.id, "message": self.message})

    @classmethod
    def from_record(cls, data: bytes) -> Reply:
        obj = json.loads(data)
        return cls(id=int(obj["id"]), message=obj["message"])


@dataclass(frozen=True)
class Attachment:
    """A stored upload: the public URL recorded on the thread and the files behind it."""
    url: str
    kind: MediaKind
    files: tuple[Path, ...] = field(default=(), compare=False)


@dataclass
class Upload:
    """A file field as delivered by the transport.

    `chunks` is consumed once, in order; it is never buffered whole.
    """
    field_name: str
    filename: str | None
    chunks: Iterable[bytes]


def _dump(obj: dict[str, Any]) -> bytes:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
