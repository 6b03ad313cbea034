"""Display handle registry — temporary preview references to in-memory media.

A handle lets an MCP host render the selected video (via the
``preview://{handle_id}`` resource) without re-reading it from disk. Only
:class:`~video_analyzer_mcp.intake.MediaIntake` allocates or releases handles.
"""

from __future__ import annotations

import logging
import uuid

from .models.media import MediaSource

logger = logging.getLogger(__name__)

PREVIEW_SCHEME = "preview://"


def preview_uri(handle_id: str) -> str:
    """Resource URI under which *handle_id* is served."""
    return f"{PREVIEW_SCHEME}{handle_id}"


class HandleRegistry:
    """Process-wide map of live display handles to their media."""

    def __init__(self) -> None:
        self._live: dict[str, MediaSource] = {}

    def allocate(self, source: MediaSource) -> str:
        """Register *source* and return a fresh handle id."""
        handle_id = uuid.uuid4().hex[:12]
        self._live[handle_id] = source
        logger.debug("Allocated display handle %s for %s", handle_id, source.filename)
        return handle_id

    def release(self, handle_id: str | None) -> bool:
        """Drop a handle. Releasing an absent handle is a no-op. Returns True if released."""
        if not handle_id or handle_id not in self._live:
            return False
        del self._live[handle_id]
        logger.debug("Released display handle %s", handle_id)
        return True

    def get(self, handle_id: str) -> MediaSource | None:
        return self._live.get(handle_id)

    @property
    def live_count(self) -> int:
        """Number of handles currently allocated."""
        return len(self._live)

    def clear(self) -> int:
        """Release every handle (shutdown). Returns count released."""
        count = len(self._live)
        self._live.clear()
        return count


# Module-level singleton
handle_registry = HandleRegistry()
