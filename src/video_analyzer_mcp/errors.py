"""Structured error handling — analyzer error kinds, classification, and tool error model."""

from __future__ import annotations

from enum import Enum

import httpx
from pydantic import BaseModel


class ErrorCategory(str, Enum):
    """Categories of errors surfaced to the user."""

    INVALID_MEDIA_TYPE = "INVALID_MEDIA_TYPE"
    DEMO_FETCH_FAILED = "DEMO_FETCH_FAILED"
    ENCODING_FAILED = "ENCODING_FAILED"
    REQUEST_FAILED = "REQUEST_FAILED"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    VALIDATION = "VALIDATION"
    ANALYSIS_IN_PROGRESS = "ANALYSIS_IN_PROGRESS"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    API_PERMISSION_DENIED = "API_PERMISSION_DENIED"
    API_QUOTA_EXCEEDED = "API_QUOTA_EXCEEDED"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN = "UNKNOWN"


class AnalyzerError(Exception):
    """Base class for every recoverable, user-facing analyzer failure."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    hint: str = ""


class InvalidMediaType(AnalyzerError):
    """The selected file does not declare a video MIME type."""

    category = ErrorCategory.INVALID_MEDIA_TYPE
    hint = "Select a video file (MP4, WebM, MOV, etc.)"


class DemoFetchFailed(AnalyzerError):
    """The demo video could not be downloaded."""

    category = ErrorCategory.DEMO_FETCH_FAILED
    hint = "Demo asset unreachable — check connectivity or DEMO_VIDEO_URL"


class EncodingFailed(AnalyzerError):
    """The video bytes could not be read or encoded for transport."""

    category = ErrorCategory.ENCODING_FAILED
    hint = "The file appears to be empty or unreadable — select it again"


class RequestFailed(AnalyzerError):
    """The Gemini request failed at the transport or API level."""

    category = ErrorCategory.REQUEST_FAILED
    hint = "Gemini request failed — check GEMINI_API_KEY and connectivity, then resubmit"


class MalformedResponse(AnalyzerError):
    """Gemini answered with text that is not a conforming analysis."""

    category = ErrorCategory.MALFORMED_RESPONSE
    hint = "The model did not return the expected structure — resubmit to try again"


class AnalysisInProgress(AnalyzerError):
    """A second analysis was requested while one is still in flight."""

    category = ErrorCategory.ANALYSIS_IN_PROGRESS
    hint = "Wait for the current analysis to finish"


class SessionNotFound(AnalyzerError):
    """The referenced session does not exist or has expired."""

    category = ErrorCategory.SESSION_NOT_FOUND
    hint = "Start a new session with video_session_start"


_RETRYABLE = {
    ErrorCategory.DEMO_FETCH_FAILED,
    ErrorCategory.REQUEST_FAILED,
    ErrorCategory.MALFORMED_RESPONSE,
    ErrorCategory.API_QUOTA_EXCEEDED,
    ErrorCategory.NETWORK_ERROR,
}


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    hint: str
    retryable: bool = False
    retry_after_seconds: int | None = None


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + human-readable hint."""
    if isinstance(error, AnalyzerError):
        return error.category, error.hint

    if isinstance(error, (TimeoutError, httpx.TimeoutException)):
        return (
            ErrorCategory.NETWORK_ERROR,
            "Request timed out — try again or check connectivity",
        )
    if isinstance(error, httpx.TransportError):
        return (
            ErrorCategory.NETWORK_ERROR,
            "Network error — check connectivity and try again",
        )

    s = str(error).lower()
    if "403" in s or "permission" in s:
        return (
            ErrorCategory.API_PERMISSION_DENIED,
            "API key lacks permission for this model",
        )
    if "429" in s or "quota" in s or "resource_exhausted" in s:
        return (
            ErrorCategory.API_QUOTA_EXCEEDED,
            "Rate limit hit — wait and retry, or switch models with infra_configure",
        )
    if "timeout" in s or "timed out" in s:
        return (
            ErrorCategory.NETWORK_ERROR,
            "Request timed out — try again or check connectivity",
        )

    return (ErrorCategory.UNKNOWN, str(error))


def make_tool_error(error: Exception) -> dict:
    """Create a serialisable ToolError dict from an exception."""
    cat, hint = categorize_error(error)
    return ToolError(
        error=str(error),
        category=cat.value,
        hint=hint,
        retryable=cat in _RETRYABLE,
        retry_after_seconds=60 if cat == ErrorCategory.API_QUOTA_EXCEEDED else None,
    ).model_dump(mode="json")
