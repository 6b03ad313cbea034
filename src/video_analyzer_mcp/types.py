"""Shared annotated aliases for tool parameters."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

SessionId = Annotated[str, Field(
    min_length=1,
    description="Session ID returned by video_session_start",
)]
VideoFilePath = Annotated[str, Field(
    min_length=1,
    description="Path to a local video file (mp4, webm, mov, avi, mkv, mpeg, wmv, 3gpp, ogv)",
)]
PromptParam = Annotated[str, Field(
    description="What to ask about the video, e.g. 'Summarize this clip'",
)]
Base64Payload = Annotated[str, Field(
    min_length=1,
    description="Video bytes as base64 text (a data: URL is also accepted)",
)]
MimeTypeParam = Annotated[str, Field(
    description="Declared MIME type of the uploaded file, e.g. video/mp4",
)]
