"""Shared test fixtures for video-analyzer-mcp."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from video_analyzer_mcp.handles import HandleRegistry, handle_registry
from video_analyzer_mcp.models.media import MediaSource

SAMPLE_ANALYSIS: dict[str, Any] = {
    "summary": "A rabbit wakes up and chases away three bullies.",
    "sentiment": "Positive",
    "typeOfDiscussion": "Animated Short Film",
    "primaryTopic": "Friendship and revenge in a forest",
    "subtopics": ["Nature", "Comedy", "Animation"],
    "toneOfDelivery": "Humorous",
    "keyPeopleEntities": ["Big Buck Bunny", "Blender Foundation"],
    "regionCountryFocus": "N/A",
    "additionalInfo": "Produced with **Blender** in 2008.",
    "segments": [
        {"title": "Opening", "timestamp": "00:00 - 00:01", "duration": "00:01"},
        {"title": "Chase", "timestamp": "00:01 - 00:02", "duration": "00:01"},
    ],
}


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function. This helper works with both.
    """
    return getattr(tool, "fn", tool)


class CountingRegistry(HandleRegistry):
    """HandleRegistry that records every allocation and release."""

    def __init__(self) -> None:
        super().__init__()
        self.allocated: list[str] = []
        self.released: list[str] = []

    def allocate(self, source: MediaSource) -> str:
        handle_id = super().allocate(source)
        self.allocated.append(handle_id)
        return handle_id

    def release(self, handle_id: str | None) -> bool:
        released = super().release(handle_id)
        if released:
            self.released.append(handle_id)
        return released

    @property
    def outstanding(self) -> int:
        return len(self.allocated) - len(self.released)


@pytest.fixture(autouse=True)
def _set_dummy_api_key(monkeypatch):
    """Ensure tests never hit real Gemini API."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key-not-real")


@pytest.fixture(autouse=True)
def _disable_tracing(monkeypatch):
    """Disable MLflow tracing in all tests to avoid real tracking-server calls."""
    monkeypatch.setenv("GEMINI_TRACING_ENABLED", "false")


@pytest.fixture(autouse=True)
def _isolate_env_file(tmp_path, monkeypatch):
    """Prevent tests from loading the user's real ~/.config/video-analyzer-mcp/.env."""
    monkeypatch.setattr(
        "video_analyzer_mcp.env.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )


@pytest.fixture(autouse=True)
def _public_dns():
    """Resolve every hostname to a public address so demo fetches never hit real DNS."""
    with patch(
        "video_analyzer_mcp.url_policy._resolve_dns",
        new_callable=AsyncMock,
        return_value=[(2, 1, 6, "", ("93.184.216.34", 0))],
    ) as mock_dns:
        yield mock_dns


@pytest.fixture(autouse=True)
def _clean_config():
    """Reset the config singleton between tests."""
    import video_analyzer_mcp.config as cfg_mod

    cfg_mod._config = None
    yield
    cfg_mod._config = None


@pytest.fixture(autouse=True)
def _clean_sessions():
    """Close every session and preview handle left behind by a test."""
    from video_analyzer_mcp.session import session_store

    yield
    session_store.close_all()
    handle_registry.clear()


@pytest.fixture()
def counting_registry() -> CountingRegistry:
    return CountingRegistry()


@pytest.fixture()
def sample_analysis() -> dict[str, Any]:
    return json.loads(json.dumps(SAMPLE_ANALYSIS))


@pytest.fixture()
def mp4_source() -> MediaSource:
    """A tiny stand-in for a 2-second MP4 clip."""
    return MediaSource(
        data=b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64,
        mime_type="video/mp4",
        filename="clip.mp4",
    )


@pytest.fixture()
def mock_generate():
    """Patch GeminiClient.generate with an AsyncMock returning SAMPLE_ANALYSIS JSON."""
    with patch(
        "video_analyzer_mcp.client.GeminiClient.generate",
        new_callable=AsyncMock,
        return_value=json.dumps(SAMPLE_ANALYSIS),
    ) as mock_gen:
        yield mock_gen
