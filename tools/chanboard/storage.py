"""Media ingestion – stream uploads to disk, validate images, make thumbnails."""

from __future__ import annotations

import logging
import mimetypes
import uuid
from collections.abc import Iterable
from pathlib import Path

from PIL import Image

from .config import MediaConfig
from .errors import InvalidMedia, IoError, UnsupportedMediaType
from .models import Attachment, MediaKind, Upload

logger = logging.getLogger("chanboard.storage")

MEDIA_FIELD = "media"

IMAGE_SUBTYPES = frozenset({"jpeg", "png", "gif", "webp"})
VIDEO_SUBTYPES = frozenset({"mp4"})

# Pillow decoder for each accepted image subtype
PIL_FORMATS: dict[str, str] = {"jpeg": "JPEG", "png": "PNG", "gif": "GIF", "webp": "WEBP"}
# Multi-picture camera JPEGs open through the JPEG decoder as MPO
_FORMAT_ALIASES: dict[str, frozenset[str]] = {"JPEG": frozenset({"JPEG", "MPO"})}

IMAGE_URL = "/uploads/images"
VIDEO_URL = "/uploads/videos"
THUMB_URL = "/thumbs/images"
THUMB_PREFIX = "thumb_"

# Map file extension → MIME type; anything else falls back to `mimetypes`
MIME_MAP: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".jpe": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".svg": "image/svg+xml",
    ".mp4": "video/mp4",
    ".m4v": "video/x-m4v",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".pdf": "application/pdf",
}

_DECODE_ERRORS = (OSError, SyntaxError, ValueError, Image.DecompressionBombError)


def guess_mime(filename: str) -> str:
    ext = Path(filename).suffix.lower()
    if ext in MIME_MAP:
        return MIME_MAP[ext]
    mime, _ = mimetypes.guess_type(f"upload{ext}")
    return mime or "application/octet-stream"


class MediaStore:
    """Write attachments under the upload directories and record their public URLs."""

    def __init__(self, cfg: MediaConfig | None = None) -> None:
        self.cfg = cfg or MediaConfig.from_env()

    def ensure_dirs(self) -> None:
        for directory in (self.cfg.image_dir, self.cfg.video_dir, self.cfg.thumb_dir):
            if directory.is_dir():
                continue
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise IoError(f"Could not create {directory}: {exc}") from exc
            logger.info("Created directory: %s", directory)

    # ── ingestion ────────────────────────────────────────────────

    def ingest(self, upload: Upload | None) -> Attachment | None:
        """Store an upload and return its attachment, or None if nothing was attached.

        Every rejection removes whatever was written before raising.
        """
        if upload is None or upload.field_name != MEDIA_FIELD:
            return None
        filename = (upload.filename or "").strip()
        if not filename:
            return None

        mime = guess_mime(filename)
        top, _, subtype = mime.partition("/")
        if top == "image":
            return self._ingest_image(subtype, upload.chunks)
        if top == "video":
            return self._ingest_video(subtype, upload.chunks)
        raise UnsupportedMediaType(f"Unsupported media type: {mime}")

    def _ingest_image(self, subtype: str, chunks: Iterable[bytes]) -> Attachment:
        if subtype not in IMAGE_SUBTYPES:
            raise UnsupportedMediaType(f"Unsupported image format: {subtype}")

        name = self._unique_name(subtype)
        path = self.cfg.image_dir / name
        self._write_stream(path, chunks)

        if not self.is_decodable(path, subtype):
            self._remove(path)
            raise InvalidMedia("Invalid image file")

        original = Attachment(f"{IMAGE_URL}/{name}", MediaKind.IMAGE, (path,))
        if subtype == "gif":
            return original

        thumb_name = THUMB_PREFIX + name
        thumb_path = self.cfg.thumb_dir / thumb_name
        if not self.make_thumbnail(path, thumb_path, subtype):
            return original
        return Attachment(f"{THUMB_URL}/{thumb_name}", MediaKind.IMAGE, (path, thumb_path))

    def _ingest_video(self, subtype: str, chunks: Iterable[bytes]) -> Attachment:
        if subtype not in VIDEO_SUBTYPES:
            raise UnsupportedMediaType(f"Unsupported video format: {subtype}")

        # Only the extension is checked; the container is not parsed.
        name = self._unique_name(subtype)
        path = self.cfg.video_dir / name
        self._write_stream(path, chunks)
        return Attachment(f"{VIDEO_URL}/{name}", MediaKind.VIDEO, (path,))

    # ── image handling ───────────────────────────────────────────

    @staticmethod
    def is_decodable(path: Path, subtype: str) -> bool:
        """True if `path` decodes as the format its extension declares."""
        fmt = PIL_FORMATS[subtype]
        try:
            with Image.open(path, formats=[fmt]) as img:
                img.load()
                decoded = img.format
        except _DECODE_ERRORS as exc:
            logger.debug("Could not decode %s as %s: %s", path.name, fmt, exc)
            return False
        if decoded not in _FORMAT_ALIASES.get(fmt, frozenset({fmt})):
            logger.debug("%s decoded as %s, expected %s", path.name, decoded, fmt)
            return False
        return True

    def make_thumbnail(self, src: Path, dest: Path, subtype: str) -> bool:
        """Write a copy of `src` scaled to fit thumb_max × thumb_max.

        Returns False, leaving no file at `dest`, if anything goes wrong.
        """
        try:
            with Image.open(src, formats=[PIL_FORMATS[subtype]]) as img:
                img.thumbnail((self.cfg.thumb_max, self.cfg.thumb_max), Image.Resampling.LANCZOS)
                img.save(dest)
        except Exception as exc:
            logger.warning("Thumbnail generation failed for %s: %s", src.name, exc)
            dest.unlink(missing_ok=True)
            return False
        return True

    # ── files ────────────────────────────────────────────────────

    @staticmethod
    def _unique_name(subtype: str) -> str:
        return f"{uuid.uuid4().hex}.{subtype}"

    def _write_stream(self, path: Path, chunks: Iterable[bytes]) -> None:
        try:
            fh = open(path, "xb")
        except OSError as exc:
            raise IoError(f"Could not create {path.name}: {exc}") from exc

        size = 0
        try:
            with fh:
                for chunk in chunks:
                    fh.write(chunk)
                    size += len(chunk)
        except OSError as exc:
            self._discard_partial(path)
            raise IoError(f"Failed writing {path.name}: {exc}") from exc
        except Exception:
            self._discard_partial(path)
            logger.warning("Upload of %s interrupted after %d bytes", path.name, size)
            raise
        logger.debug("Stored %s (%d bytes)", path, size)

    def _remove(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise IoError(f"Could not remove {path.name}: {exc}") from exc

    @staticmethod
    def _discard_partial(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Could not remove partial upload %s: %s", path, exc)

    def discard(self, attachment: Attachment) -> None:
        """Delete the files behind an attachment whose thread was never recorded."""
        for path in attachment.files:
            self._discard_partial(path)
        logger.info("Discarded orphaned media %s", attachment.url)
