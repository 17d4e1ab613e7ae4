"""Remote media client – stream an attachment from a URL into the pipeline."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from urllib.parse import unquote, urlsplit

import httpx

from .config import FetchConfig
from .models import Upload
from .storage import MEDIA_FIELD

logger = logging.getLogger("chanboard.api")


def filename_from_url(url: str) -> str:
    path = unquote(urlsplit(url).path)
    return path.rsplit("/", 1)[-1]


class MediaFetcher:
    """Thin wrapper around httpx that hands remote files over as chunked uploads."""

    def __init__(self, cfg: FetchConfig | None = None, *, transport: httpx.BaseTransport | None = None) -> None:
        self.cfg = cfg or FetchConfig()
        self._client = httpx.Client(
            timeout=self.cfg.timeout,
            headers={"User-Agent": self.cfg.user_agent},
            follow_redirects=True,
            transport=transport,
        )

    def _open(self, url: str) -> httpx.Response | None:
        """Send the request and return a streaming response, retrying until headers arrive."""
        for attempt in range(1, self.cfg.max_retries + 1):
            resp: httpx.Response | None = None
            try:
                resp = self._client.send(self._client.build_request("GET", url), stream=True)
                if resp.status_code == 404:
                    logger.warning("404: %s", url)
                    resp.close()
                    return None
                resp.raise_for_status()
                return resp
            except (httpx.HTTPStatusError, httpx.TransportError) as exc:
                if resp is not None:
                    resp.close()
                logger.warning("Attempt %d/%d failed for %s: %s", attempt, self.cfg.max_retries, url, exc)
                if attempt == self.cfg.max_retries:
                    raise
                time.sleep(self.cfg.retry_backoff * 2 ** (attempt - 1))
        return None

    @contextmanager
    def open_upload(self, url: str) -> Iterator[Upload | None]:
        """Yield an `Upload` reading the body of `url` chunk by chunk, or None on 404.

        The body is streamed once; a failure mid-transfer is not retried.
        """
        resp = self._open(url)
        if resp is None:
            yield None
            return
        try:
            yield Upload(
                field_name=MEDIA_FIELD,
                filename=filename_from_url(str(resp.url)),
                chunks=resp.iter_bytes(self.cfg.chunk_size),
            )
        finally:
            resp.close()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> MediaFetcher:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
