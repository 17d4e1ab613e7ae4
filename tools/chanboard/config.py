"""Configuration and environment settings for the board."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class StoreConfig:
    path: str = "board.db"
    busy_timeout: float = 5.0  # seconds SQLite waits on a locked database
    scan_batch: int = 256

    @classmethod
    def from_env(cls) -> StoreConfig:
        return cls(
            path=os.getenv("BOARD_DB_PATH", "board.db"),
            busy_timeout=float(os.getenv("BOARD_DB_BUSY_TIMEOUT", "5.0")),
        )


@dataclass(frozen=True)
class MediaConfig:
    """Upload layout.  URLs are served by an external static file server."""
    root: str = "."
    thumb_max: int = 200
    chunk_size: int = 64 * 1024

    @property
    def image_dir(self) -> Path:
        return Path(self.root) / "uploads" / "images"

    @property
    def video_dir(self) -> Path:
        return Path(self.root) / "uploads" / "videos"

    @property
    def thumb_dir(self) -> Path:
        return Path(self.root) / "thumbs" / "images"

    @classmethod
    def from_env(cls) -> MediaConfig:
        return cls(
            root=os.getenv("BOARD_MEDIA_ROOT", "."),
            thumb_max=int(os.getenv("BOARD_THUMB_MAX", "200")),
        )


@dataclass(frozen=True)
class FetchConfig:
    """Remote media fetching for `post --url`."""
    user_agent: str = "chanboard/1.0"
    timeout: float = 30.0
    max_retries: int = 3
    retry_backoff: float = 1.0  # seconds, doubled on each attempt
    chunk_size: int = 64 * 1024


@dataclass
class BoardConfig:
    store: StoreConfig = field(default_factory=StoreConfig.from_env)
    media: MediaConfig = field(default_factory=MediaConfig.from_env)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    page_size: int = 10
    title_max: int = 75
    message_max: int = 8000
    id_attempts: int = 5
