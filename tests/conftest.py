"""Shared fixtures: a board rooted in tmp_path, a controllable clock, image bytes."""

from __future__ import annotations

import io
from collections.abc import Iterator
from pathlib import Path

import pytest
from PIL import Image

from chanboard.board import Board
from chanboard.config import BoardConfig, MediaConfig, StoreConfig
from chanboard.db import Database
from chanboard.kv import KVStore
from chanboard.models import Upload
from chanboard.storage import MediaStore


class FakeClock:
    def __init__(self, now: int = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int = 1) -> int:
        self.now += seconds
        return self.now


def image_bytes(fmt: str, size: tuple[int, int] = (640, 480), mode: str = "RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color=(200, 30, 30) if mode == "RGB" else 1).save(buf, format=fmt)
    return buf.getvalue()


def chunked(data: bytes, size: int = 1024) -> Iterator[bytes]:
    for i in range(0, len(data), size):
        yield data[i:i + size]


def media_upload(filename: str | None, data: bytes = b"") -> Upload:
    return Upload(field_name="media", filename=filename, chunks=chunked(data))


def files_under(directory: Path) -> list[Path]:
    return sorted(p for p in directory.iterdir() if p.is_file())


@pytest.fixture
def cfg(tmp_path: Path) -> BoardConfig:
    return BoardConfig(
        store=StoreConfig(path=str(tmp_path / "board.db")),
        media=MediaConfig(root=str(tmp_path / "media")),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv(cfg: BoardConfig) -> Iterator[KVStore]:
    with KVStore(cfg.store) as store:
        yield store


@pytest.fixture
def db(kv: KVStore, cfg: BoardConfig, clock: FakeClock) -> Database:
    return Database(kv, cfg, clock=clock)


@pytest.fixture
def media(cfg: BoardConfig) -> MediaStore:
    store = MediaStore(cfg.media)
    store.ensure_dirs()
    return store


@pytest.fixture
def board(cfg: BoardConfig, clock: FakeClock) -> Iterator[Board]:
    with Board(cfg, clock=clock) as b:
        yield b
