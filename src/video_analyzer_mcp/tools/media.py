"""Media intake tools — select, upload, demo, remove, plus the preview resource."""

from __future__ import annotations

import logging
from typing import Annotated

from mcp.types import ToolAnnotations
from pydantic import Field

from ..encoding import decode_media
from ..errors import make_tool_error
from ..handles import handle_registry
from ..session import session_store
from ..tracing import trace
from ..types import Base64Payload, MimeTypeParam, SessionId, VideoFilePath
from ._video_server import video_server

logger = logging.getLogger(__name__)


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    )
)
@trace
async def video_select_file(session_id: SessionId, file_path: VideoFilePath) -> dict:
    """Select a local video file for analysis (the file-picker path).

    Replaces any previously selected video. Non-video files leave the session
    idle with an error message.

    Args:
        session_id: Session to update.
        file_path: Path to the video on the local filesystem.

    Returns:
        Session state dict (phase, media metadata, preview_uri, prompt, error).
    """
    try:
        session = session_store.get(session_id)
        state = await session.select_file(file_path)
        return {"session_id": session_id, **state.to_dict()}
    except Exception as exc:
        return make_tool_error(exc)


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    )
)
@trace
async def video_upload(
    session_id: SessionId,
    filename: Annotated[str, Field(min_length=1, description="Original file name")],
    data_base64: Base64Payload,
    mime_type: MimeTypeParam,
) -> dict:
    """Upload video bytes directly (the drag-and-drop path).

    Args:
        session_id: Session to update.
        filename: Name of the dropped file.
        data_base64: File contents as base64 text.
        mime_type: The MIME type the client declared for the file.

    Returns:
        Session state dict.
    """
    try:
        session = session_store.get(session_id)
        data = decode_media(data_base64)
        state = session.drop_file(filename, data, mime_type)
        return {"session_id": session_id, **state.to_dict()}
    except Exception as exc:
        return make_tool_error(exc)


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    )
)
@trace
async def video_load_demo(
    session_id: SessionId,
    url: Annotated[str | None, Field(
        description="Override the demo video URL (defaults to DEMO_VIDEO_URL)",
    )] = None,
) -> dict:
    """Download the demo video, select it, and pre-fill the demo prompt.

    Args:
        session_id: Session to update.
        url: Optional demo asset URL override.

    Returns:
        Session state dict; on fetch failure the session is idle with an error.
    """
    try:
        session = session_store.get(session_id)
        state = await session.load_demo(url)
        return {"session_id": session_id, **state.to_dict()}
    except Exception as exc:
        return make_tool_error(exc)


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace
async def video_remove(session_id: SessionId) -> dict:
    """Remove the selected video and its analysis. The prompt is kept.

    Args:
        session_id: Session to update.

    Returns:
        Session state dict in the idle phase.
    """
    try:
        session = session_store.get(session_id)
        state = session.remove_video()
        return {"session_id": session_id, **state.to_dict()}
    except Exception as exc:
        return make_tool_error(exc)


@video_server.resource("preview://{handle_id}", mime_type="application/octet-stream")
async def video_preview(handle_id: str) -> bytes:
    """Raw bytes of the selected video, addressed by its preview handle."""
    source = handle_registry.get(handle_id)
    if source is None:
        raise ValueError(f"Preview handle {handle_id} is not live")
    return source.data
