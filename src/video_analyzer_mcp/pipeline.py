"""Encode-and-request pipeline — one Gemini call per analysis, outcome as a value.

``analyze()`` never raises for the named error kinds. Each step either
produces its output or an :class:`AnalyzerError`, and the caller receives an
:class:`AnalysisOutcome` holding exactly one of the two.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from google.genai import types
from pydantic import ValidationError

from .client import GeminiClient
from .encoding import encode_media
from .errors import AnalyzerError, EncodingFailed, MalformedResponse, RequestFailed
from .models.analysis import AnalysisResult, analysis_response_schema
from .models.media import MediaSource
from .prompts.analysis import ANALYSIS_INSTRUCTION

logger = logging.getLogger(__name__)

_LEADING_FENCE = re.compile(r"^\s*```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_TRAILING_FENCE = re.compile(r"\r?\n?```\s*$")


@dataclass(frozen=True)
class AnalysisOutcome:
    """Either a validated result or the error that prevented one."""

    result: AnalysisResult | None = None
    error: AnalyzerError | None = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("AnalysisOutcome needs exactly one of result or error")

    @property
    def ok(self) -> bool:
        return self.result is not None


def build_instruction(prompt: str) -> str:
    """Wrap the user's prompt verbatim in the analysis instruction."""
    return ANALYSIS_INSTRUCTION.format(prompt=prompt)


def build_contents(encoded: str, mime_type: str, prompt: str) -> types.Content:
    """Inline video part (base64 + MIME type) followed by the instruction text."""
    # Blob only takes base64 for its bytes field in JSON mode; the SDK re-encodes
    # on send. The decoded copy lives as long as the request, the text does not.
    blob = types.Blob.model_validate_json(json.dumps({"mimeType": mime_type, "data": encoded}))
    return types.Content(
        role="user",
        parts=[
            types.Part(inline_data=blob),
            types.Part(text=build_instruction(prompt)),
        ],
    )


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```` ```lang ```` … ```` ``` ```` fence and trim whitespace."""
    cleaned = _LEADING_FENCE.sub("", text, count=1)
    cleaned = _TRAILING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_analysis(raw: str) -> AnalysisResult:
    """Parse Gemini's response text into a validated AnalysisResult.

    Raises:
        MalformedResponse: If the text is not JSON or does not match the contract.
    """
    cleaned = strip_code_fence(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedResponse(f"Gemini returned non-JSON: {cleaned[:200]!r}") from exc
    if not isinstance(data, dict):
        raise MalformedResponse(f"Expected a JSON object, got {type(data).__name__}")
    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as exc:
        missing = [".".join(str(p) for p in e["loc"]) for e in exc.errors()]
        raise MalformedResponse(
            f"Response does not match the analysis contract ({', '.join(missing)})"
        ) from exc


async def analyze(
    source: MediaSource,
    prompt: str,
    *,
    model: str | None = None,
) -> AnalysisOutcome:
    """Encode *source*, send one structured-output request, and validate the reply.

    Args:
        source: The selected video.
        prompt: The user's request, embedded verbatim in the instruction.
        model: Optional Gemini model override.

    Returns:
        AnalysisOutcome with a result, or with EncodingFailed, RequestFailed,
        or MalformedResponse.
    """
    try:
        encoded = encode_media(source)
        contents = build_contents(encoded, source.mime_type, prompt)
    except AnalyzerError as exc:
        return AnalysisOutcome(error=exc)
    except ValidationError as exc:
        return AnalysisOutcome(error=EncodingFailed(f"Failed to build request for {source.filename}: {exc}"))

    try:
        raw = await GeminiClient.generate(
            contents,
            model=model,
            response_schema=analysis_response_schema(),
        )
    except Exception as exc:
        logger.warning("Gemini request failed for %s: %s", source.filename, exc)
        return AnalysisOutcome(error=RequestFailed(f"Error from Gemini API: {exc}"))

    try:
        result = parse_analysis(raw)
    except MalformedResponse as exc:
        logger.warning("Malformed analysis for %s: %s", source.filename, exc)
        return AnalysisOutcome(error=exc)

    logger.info(
        "Analyzed %s: %d segment(s), topic=%r",
        source.filename, len(result.segments), result.primary_topic,
    )
    return AnalysisOutcome(result=result)
