"""Tests for the encode-and-request pipeline."""

from __future__ import annotations

import json

import pytest

from video_analyzer_mcp.errors import (
    EncodingFailed,
    ErrorCategory,
    MalformedResponse,
    RequestFailed,
)
from video_analyzer_mcp.models.analysis import AnalysisResult
from video_analyzer_mcp.models.media import MediaSource
from video_analyzer_mcp.pipeline import (
    AnalysisOutcome,
    analyze,
    build_contents,
    build_instruction,
    parse_analysis,
    strip_code_fence,
)


class TestStripCodeFence:
    def test_json_fence(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fence('```\n{"a": 1}\n```\n') == '{"a": 1}'

    def test_single_line_fence(self):
        assert strip_code_fence('```json {"a": 1}```') == '{"a": 1}'

    def test_no_fence_only_trims(self):
        assert strip_code_fence('  \n{"a": 1}\n ') == '{"a": 1}'

    def test_inner_backticks_untouched(self):
        text = '{"code": "use ```fences``` inline"}'
        assert strip_code_fence(text) == text


class TestParseAnalysis:
    def test_fenced_equals_direct(self, sample_analysis):
        raw = json.dumps(sample_analysis)
        fenced = f"```json\n{raw}\n```"
        assert parse_analysis(fenced) == AnalysisResult.model_validate_json(raw)

    def test_non_json(self):
        with pytest.raises(MalformedResponse, match="non-JSON"):
            parse_analysis("Sorry, I cannot analyze this video.")

    def test_non_object(self):
        with pytest.raises(MalformedResponse, match="JSON object"):
            parse_analysis("[1, 2, 3]")

    def test_missing_field_named(self, sample_analysis):
        del sample_analysis["segments"]
        with pytest.raises(MalformedResponse, match="segments"):
            parse_analysis(json.dumps(sample_analysis))


class TestBuildContents:
    def test_instruction_embeds_prompt_verbatim(self):
        text = build_instruction('Summarize {this} "clip"')
        assert text.startswith("Based on the user's request, please analyze this video")
        assert text.endswith('User request: "Summarize {this} "clip""')

    def test_parts(self):
        contents = build_contents("dmlkZW8=", "video/webm", "Summarize this clip")
        video, text = contents.parts
        assert video.inline_data.mime_type == "video/webm"
        assert video.inline_data.data == b"video"
        assert 'User request: "Summarize this clip"' in text.text


class TestAnalysisOutcome:
    def test_requires_exactly_one(self, sample_analysis):
        with pytest.raises(ValueError):
            AnalysisOutcome()
        with pytest.raises(ValueError):
            AnalysisOutcome(
                result=AnalysisResult.model_validate(sample_analysis),
                error=RequestFailed("x"),
            )


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_success(self, mp4_source, mock_generate, sample_analysis):
        outcome = await analyze(mp4_source, "Summarize this clip")
        assert outcome.ok
        assert outcome.result.to_wire() == sample_analysis
        assert outcome.result.segments

    @pytest.mark.asyncio
    async def test_sends_one_request_with_schema(self, mp4_source, mock_generate):
        await analyze(mp4_source, "Summarize this clip", model="gemini-2.5-flash")
        mock_generate.assert_awaited_once()
        kwargs = mock_generate.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert "segments" in kwargs["response_schema"]["required"]
        contents = mock_generate.call_args.args[0]
        assert contents.parts[0].inline_data.data == mp4_source.data

    @pytest.mark.asyncio
    async def test_fenced_response(self, mp4_source, mock_generate, sample_analysis):
        mock_generate.return_value = f"```json\n{json.dumps(sample_analysis)}\n```"
        outcome = await analyze(mp4_source, "Summarize")
        assert outcome.result == AnalysisResult.model_validate(sample_analysis)

    @pytest.mark.asyncio
    async def test_missing_segments_is_malformed(self, mp4_source, mock_generate, sample_analysis):
        del sample_analysis["segments"]
        mock_generate.return_value = json.dumps(sample_analysis)
        outcome = await analyze(mp4_source, "Summarize")
        assert not outcome.ok
        assert isinstance(outcome.error, MalformedResponse)
        assert outcome.error.category is ErrorCategory.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_request_failure_carries_message(self, mp4_source, mock_generate):
        mock_generate.side_effect = RuntimeError("500 INTERNAL. Backend error")
        outcome = await analyze(mp4_source, "Summarize")
        assert isinstance(outcome.error, RequestFailed)
        assert "500 INTERNAL. Backend error" in str(outcome.error)
        mock_generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_api_key_is_request_failure(self, mp4_source, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        outcome = await analyze(mp4_source, "Summarize")
        assert isinstance(outcome.error, RequestFailed)
        assert "GEMINI_API_KEY" in str(outcome.error)

    @pytest.mark.asyncio
    async def test_empty_media_never_sent(self, mock_generate):
        empty = MediaSource(data=b"", mime_type="video/mp4", filename="empty.mp4")
        outcome = await analyze(empty, "Summarize")
        assert isinstance(outcome.error, EncodingFailed)
        mock_generate.assert_not_awaited()
