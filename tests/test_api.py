"""Tests for the remote media fetcher, using httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest
from conftest import files_under, image_bytes

from chanboard.api import MediaFetcher, filename_from_url
from chanboard.config import FetchConfig
from chanboard.storage import MediaStore

FAST = FetchConfig(retry_backoff=0.0, chunk_size=512)


def test_filename_from_url() -> None:
    assert filename_from_url("https://example.org/a/b/cat%20pic.png?x=1") == "cat pic.png"
    assert filename_from_url("https://example.org/") == ""


def test_streams_body_as_upload(media: MediaStore) -> None:
    body = image_bytes("PNG", (300, 300))

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["User-Agent"] == FAST.user_agent
        return httpx.Response(200, content=body)

    with MediaFetcher(FAST, transport=httpx.MockTransport(handler)) as fetcher:
        with fetcher.open_upload("https://example.org/img/cat.png") as upload:
            assert upload is not None
            assert upload.field_name == "media"
            assert upload.filename == "cat.png"
            attachment = media.ingest(upload)

    assert attachment is not None
    (original,) = files_under(media.cfg.image_dir)
    assert original.read_bytes() == body


def test_404_yields_none() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    with MediaFetcher(FAST, transport=transport) as fetcher:
        with fetcher.open_upload("https://example.org/gone.png") as upload:
            assert upload is None


def test_retries_server_errors() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, content=b"ok")

    with MediaFetcher(FAST, transport=httpx.MockTransport(handler)) as fetcher:
        with fetcher.open_upload("https://example.org/v.mp4") as upload:
            assert upload is not None
            assert b"".join(upload.chunks) == b"ok"
    assert len(calls) == 3


def test_gives_up_after_max_retries() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with MediaFetcher(FAST, transport=httpx.MockTransport(handler)) as fetcher:
        with pytest.raises(httpx.ConnectError):
            with fetcher.open_upload("https://example.org/v.mp4"):
                pass
