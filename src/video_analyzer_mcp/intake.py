"""Media intake — validate selected videos, fetch the demo asset, own the preview handle."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import httpx

from .config import get_config
from .errors import DemoFetchFailed, InvalidMediaType
from .handles import HandleRegistry, handle_registry
from .models.media import MediaSource
from .url_policy import UrlPolicyError, fetch_checked

logger = logging.getLogger(__name__)

SUPPORTED_VIDEO_EXTENSIONS: dict[str, str] = {
    ".mp4": "video/mp4",
    ".m4v": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".mkv": "video/x-matroska",
    ".mpeg": "video/mpeg",
    ".mpg": "video/mpeg",
    ".wmv": "video/x-ms-wmv",
    ".3gp": "video/3gpp",
    ".3gpp": "video/3gpp",
    ".ogv": "video/ogg",
}

DEMO_FILENAME = "demo-video.mp4"
DEMO_MIME_TYPE = "video/mp4"

SELECT_ERROR = "Please select a valid video file."
DROP_ERROR = "Please drop a valid video file."


def declared_mime_type(path: Path) -> str:
    """MIME type a file picker would declare for *path* (by extension)."""
    return SUPPORTED_VIDEO_EXTENSIONS.get(path.suffix.lower(), "application/octet-stream")


class MediaIntake:
    """Holds at most one accepted MediaSource and its live display handle."""

    def __init__(self, registry: HandleRegistry | None = None) -> None:
        self._registry = registry if registry is not None else handle_registry
        self._source: MediaSource | None = None
        self._handle: str | None = None

    @property
    def source(self) -> MediaSource | None:
        return self._source

    @property
    def handle(self) -> str | None:
        return self._handle

    def accept(self, source: MediaSource, *, error_message: str = SELECT_ERROR) -> str:
        """Replace the held media with *source* and allocate a preview handle.

        Non-video sources clear whatever was held before raising.

        Returns:
            The new handle id.

        Raises:
            InvalidMediaType: If *source* does not declare a ``video/*`` type.
        """
        if not source.is_video:
            self.clear()
            raise InvalidMediaType(error_message)
        self.clear()
        self._source = source
        self._handle = self._registry.allocate(source)
        logger.info(
            "Accepted %s (%s, %d bytes) as %s",
            source.filename, source.mime_type, source.size, self._handle,
        )
        return self._handle

    def accept_upload(self, filename: str, data: bytes, mime_type: str) -> str:
        """Drag-and-drop path: accept raw bytes with the browser-declared type."""
        source = MediaSource(data=data, mime_type=mime_type, filename=filename)
        return self.accept(source, error_message=DROP_ERROR)

    async def load_path(self, file_path: str) -> str:
        """File-picker path: read a local file and accept it.

        Raises:
            InvalidMediaType: If the file is missing, unreadable, or not a video.
        """
        p = Path(file_path).expanduser()
        mime = declared_mime_type(p)
        if not mime.startswith("video/"):
            self.clear()
            raise InvalidMediaType(SELECT_ERROR)
        try:
            data = await asyncio.to_thread(p.read_bytes)
        except OSError as exc:
            self.clear()
            raise InvalidMediaType(f"{SELECT_ERROR} Could not read {file_path}: {exc}") from exc
        return self.accept(MediaSource(data=data, mime_type=mime, filename=p.name))

    async def load_demo(
        self,
        url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> str:
        """Fetch the demo video and accept it.

        Any held media is cleared first; on failure nothing is left attached.
        The target must pass :func:`~video_analyzer_mcp.url_policy.validate_url`
        and the body is capped at ``DEMO_MAX_BYTES``.

        Args:
            url: Override the configured ``DEMO_VIDEO_URL``.
            transport: Optional httpx transport (used by tests).

        Raises:
            DemoFetchFailed: On a policy violation, oversized body, non-success
                status, or transport error.
        """
        cfg = get_config()
        target = url or cfg.demo_video_url
        self.clear()
        try:
            data = await fetch_checked(
                target,
                max_bytes=cfg.demo_max_bytes,
                timeout=cfg.demo_fetch_timeout_seconds,
                transport=transport,
            )
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            reason = exc.response.reason_phrase or str(status)
            logger.warning("Demo fetch for %s returned %d", target, status)
            raise DemoFetchFailed(f"Failed to fetch demo video: {reason}") from exc
        except (httpx.HTTPError, UrlPolicyError) as exc:
            logger.warning("Demo fetch failed for %s: %s", target, exc)
            raise DemoFetchFailed(f"Failed to fetch demo video: {exc}") from exc

        return self.accept(
            MediaSource(data=data, mime_type=DEMO_MIME_TYPE, filename=DEMO_FILENAME)
        )

    def clear(self) -> None:
        """Drop the held media and release its handle. Safe to call repeatedly."""
        if self._handle is not None:
            self._registry.release(self._handle)
        self._handle = None
        self._source = None
