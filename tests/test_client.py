"""Tests for the Gemini client pool and the structured-output call."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from video_analyzer_mcp.client import GeminiClient


def _part(text, thought=False):
    return SimpleNamespace(text=text, thought=thought)


def _response(*parts, text=None):
    content = SimpleNamespace(parts=list(parts))
    return SimpleNamespace(candidates=[SimpleNamespace(content=content)], text=text)


@pytest.fixture()
def fake_client():
    """Patch GeminiClient.get with a client whose generate_content is an AsyncMock."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=_response(_part('{"a": 1}')))
    with patch.object(GeminiClient, "get", return_value=client):
        yield client


class TestGet:
    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "")
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            GeminiClient.get()

    def test_pooled_per_key(self, monkeypatch):
        monkeypatch.setattr(GeminiClient, "_clients", {})
        with patch("video_analyzer_mcp.client.genai.Client") as ctor:
            first = GeminiClient.get("key-a")
            assert GeminiClient.get("key-a") is first
            GeminiClient.get("key-b")
        assert ctor.call_count == 2
        assert ctor.call_args.kwargs["http_options"].timeout == 600_000


class TestGenerate:
    @pytest.mark.asyncio
    async def test_structured_output_config(self, fake_client):
        schema = {"type": "object", "required": ["summary"]}
        out = await GeminiClient.generate(["hi"], model="gemini-x", response_schema=schema)
        assert out == '{"a": 1}'
        kwargs = fake_client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-x"
        assert kwargs["config"].response_mime_type == "application/json"
        assert kwargs["config"].response_json_schema == schema
        assert kwargs["config"].temperature is None

    @pytest.mark.asyncio
    async def test_defaults_from_config(self, fake_client, monkeypatch):
        monkeypatch.setenv("GEMINI_MODEL", "gemini-2.5-flash")
        monkeypatch.setenv("GEMINI_TEMPERATURE", "0.2")
        await GeminiClient.generate(["hi"])
        kwargs = fake_client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["config"].temperature == 0.2
        assert kwargs["config"].response_mime_type is None

    @pytest.mark.asyncio
    async def test_thought_parts_skipped(self, fake_client):
        fake_client.aio.models.generate_content.return_value = _response(
            _part("thinking...", thought=True), _part('{"b": 2}'),
        )
        assert await GeminiClient.generate(["hi"]) == '{"b": 2}'

    @pytest.mark.asyncio
    async def test_falls_back_to_response_text(self, fake_client):
        fake_client.aio.models.generate_content.return_value = SimpleNamespace(
            candidates=[], text="plain",
        )
        assert await GeminiClient.generate(["hi"]) == "plain"

    @pytest.mark.asyncio
    async def test_errors_propagate_without_retry(self, fake_client):
        fake_client.aio.models.generate_content.side_effect = RuntimeError("503 UNAVAILABLE")
        with pytest.raises(RuntimeError, match="503"):
            await GeminiClient.generate(["hi"])
        assert fake_client.aio.models.generate_content.await_count == 1


class TestCloseAll:
    @pytest.mark.asyncio
    async def test_closes_and_clears(self, monkeypatch):
        good, bad = MagicMock(), MagicMock()
        good.aio.aclose = AsyncMock()
        bad.aio.aclose = AsyncMock(side_effect=RuntimeError("already closed"))
        monkeypatch.setattr(GeminiClient, "_clients", {"a": good, "b": bad})
        assert await GeminiClient.close_all() == 2
        good.aio.aclose.assert_awaited_once()
        assert GeminiClient._clients == {}
