"""Analyzer session state machine.

``SessionState`` is immutable; every transition is a pure function returning
the next state. ``AnalyzerSession`` applies them around the side-effecting
intake and pipeline calls, and ``SessionStore`` keeps one session per client.

Phases::

    idle ──select/drop/demo──▶ ready ──submit──▶ analyzing ──▶ result | failed
      ▲                          │                               │
      └──── remove video / analyze another / intake error ◀──────┘

Every submission and every media reset bumps ``epoch``; a pipeline outcome is
applied only if the epoch it was issued under is still current.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

import httpx

from . import pipeline
from .config import get_config
from .errors import (
    AnalysisInProgress,
    AnalyzerError,
    ErrorCategory,
    RequestFailed,
    SessionNotFound,
)
from .handles import HandleRegistry, preview_uri
from .intake import MediaIntake
from .models.analysis import AnalysisResult
from .models.media import MediaSource

logger = logging.getLogger(__name__)

SUBMIT_VALIDATION_ERROR = "Please select a video and enter a prompt."


class SessionPhase(str, Enum):
    """Lifecycle phases of an analyzer session."""

    IDLE = "idle"
    READY = "ready"
    ANALYZING = "analyzing"
    RESULT = "result"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionState:
    """Everything the UI needs to decide what to show and enable."""

    phase: SessionPhase = SessionPhase.IDLE
    media: MediaSource | None = None
    preview_handle: str = ""
    prompt: str = ""
    result: AnalysisResult | None = None
    error: str = ""
    error_category: str = ""
    epoch: int = 0

    @property
    def in_flight(self) -> bool:
        return self.phase is SessionPhase.ANALYZING

    @property
    def can_submit(self) -> bool:
        return (
            self.phase in (SessionPhase.READY, SessionPhase.FAILED, SessionPhase.RESULT)
            and self.media is not None
            and bool(self.prompt.strip())
        )

    def to_dict(self) -> dict:
        """JSON-safe view for tool responses (no media bytes)."""
        return {
            "phase": self.phase.value,
            "media": self.media.describe() if self.media else None,
            "preview_uri": preview_uri(self.preview_handle) if self.preview_handle else "",
            "prompt": self.prompt,
            "result": self.result.to_wire() if self.result else None,
            "error": self.error,
            "error_category": self.error_category,
            "in_flight": self.in_flight,
            "can_submit": self.can_submit,
        }


# ── Pure transitions ────────────────────────────────────────────────────────


def media_loaded(
    state: SessionState,
    media: MediaSource,
    handle: str,
    *,
    prompt: str | None = None,
) -> SessionState:
    """New media accepted → ready, with any previous result or error cleared.

    Allowed from any phase. From ``analyzing`` the epoch bump supersedes the
    pending request, whose outcome is then discarded.
    """
    return replace(
        state,
        phase=SessionPhase.READY,
        media=media,
        preview_handle=handle,
        prompt=state.prompt if prompt is None else prompt,
        result=None,
        error="",
        error_category="",
        epoch=state.epoch + 1,
    )


def intake_failed(state: SessionState, error: AnalyzerError) -> SessionState:
    """Selection, drop, or demo fetch failed → idle with the error shown."""
    return replace(
        state,
        phase=SessionPhase.IDLE,
        media=None,
        preview_handle="",
        result=None,
        error=str(error),
        error_category=error.category.value,
        epoch=state.epoch + 1,
    )


def prompt_changed(state: SessionState, prompt: str) -> SessionState:
    return replace(state, prompt=prompt)


def submit(state: SessionState) -> SessionState:
    """Start an analysis, or record a validation error without changing phase.

    Submitting while already analyzing leaves the state untouched.
    """
    if state.in_flight:
        return state
    if not state.can_submit:
        return replace(
            state,
            error=SUBMIT_VALIDATION_ERROR,
            error_category=ErrorCategory.VALIDATION.value,
        )
    return replace(
        state,
        phase=SessionPhase.ANALYZING,
        result=None,
        error="",
        error_category="",
        epoch=state.epoch + 1,
    )


def _is_current(state: SessionState, epoch: int) -> bool:
    return state.phase is SessionPhase.ANALYZING and state.epoch == epoch


def analysis_succeeded(state: SessionState, epoch: int, result: AnalysisResult) -> SessionState:
    if not _is_current(state, epoch):
        return state
    return replace(state, phase=SessionPhase.RESULT, result=result)


def analysis_failed(state: SessionState, epoch: int, error: AnalyzerError) -> SessionState:
    """Pipeline error → failed; media and prompt are kept for a retry."""
    if not _is_current(state, epoch):
        return state
    return replace(
        state,
        phase=SessionPhase.FAILED,
        error=str(error),
        error_category=error.category.value,
    )


def media_removed(state: SessionState) -> SessionState:
    """Remove video → idle. The prompt survives."""
    return replace(
        state,
        phase=SessionPhase.IDLE,
        media=None,
        preview_handle="",
        result=None,
        error="",
        error_category="",
        epoch=state.epoch + 1,
    )


def analyze_another(state: SessionState) -> SessionState:
    """From a result, start over with nothing selected and an empty prompt."""
    if state.phase is not SessionPhase.RESULT:
        return state
    return SessionState(epoch=state.epoch + 1)


# ── Controller ──────────────────────────────────────────────────────────────


class AnalyzerSession:
    """One user's upload → analyze → display cycle."""

    def __init__(self, session_id: str, registry: HandleRegistry | None = None) -> None:
        self.session_id = session_id
        self.intake = MediaIntake(registry)
        self.state = SessionState()
        self.created_at = datetime.now()
        self.last_active = datetime.now()

    def _touch(self) -> None:
        self.last_active = datetime.now()

    def _loaded(self, handle: str, *, prompt: str | None = None) -> SessionState:
        self.state = media_loaded(self.state, self.intake.source, handle, prompt=prompt)
        return self.state

    def _failed_intake(self, exc: AnalyzerError) -> SessionState:
        logger.info("Session %s intake failed: %s", self.session_id, exc)
        self.state = intake_failed(self.state, exc)
        return self.state

    async def select_file(self, file_path: str) -> SessionState:
        self._touch()
        try:
            handle = await self.intake.load_path(file_path)
        except AnalyzerError as exc:
            return self._failed_intake(exc)
        return self._loaded(handle)

    def drop_file(self, filename: str, data: bytes, mime_type: str) -> SessionState:
        self._touch()
        try:
            handle = self.intake.accept_upload(filename, data, mime_type)
        except AnalyzerError as exc:
            return self._failed_intake(exc)
        return self._loaded(handle)

    async def load_demo(
        self,
        url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> SessionState:
        """Fetch the demo video; on success the demo prompt is pre-filled."""
        self._touch()
        # Reset first so an outstanding request for the old media is discarded.
        self.state = media_removed(self.state)
        try:
            handle = await self.intake.load_demo(url, transport=transport)
        except AnalyzerError as exc:
            return self._failed_intake(exc)
        return self._loaded(handle, prompt=get_config().demo_prompt)

    def set_prompt(self, prompt: str) -> SessionState:
        self._touch()
        self.state = prompt_changed(self.state, prompt)
        return self.state

    async def submit(self, *, model: str | None = None) -> SessionState:
        """Run one analysis for the current media and prompt.

        Raises:
            AnalysisInProgress: If an analysis is already in flight.
        """
        self._touch()
        if self.state.in_flight:
            raise AnalysisInProgress("An analysis is already running for this session")

        self.state = submit(self.state)
        if not self.state.in_flight:
            return self.state

        epoch = self.state.epoch
        media, prompt = self.state.media, self.state.prompt
        try:
            outcome = await pipeline.analyze(media, prompt, model=model)
        except asyncio.CancelledError:
            self.state = analysis_failed(
                self.state, epoch, RequestFailed("Analysis was cancelled before Gemini responded"),
            )
            raise
        except Exception as exc:
            logger.exception("Session %s analysis crashed", self.session_id)
            outcome = pipeline.AnalysisOutcome(error=RequestFailed(f"Analysis failed: {exc}"))

        if not _is_current(self.state, epoch):
            logger.info(
                "Session %s discarded stale analysis (epoch %d, now %d)",
                self.session_id, epoch, self.state.epoch,
            )
            return self.state
        if outcome.ok:
            self.state = analysis_succeeded(self.state, epoch, outcome.result)
        else:
            self.state = analysis_failed(self.state, epoch, outcome.error)
        return self.state

    def remove_video(self) -> SessionState:
        self._touch()
        self.intake.clear()
        self.state = media_removed(self.state)
        return self.state

    def analyze_another(self) -> SessionState:
        self._touch()
        if self.state.phase is not SessionPhase.RESULT:
            return self.state
        self.intake.clear()
        self.state = analyze_another(self.state)
        return self.state

    def close(self) -> None:
        """Release the preview handle and drop any outstanding request's result."""
        self.intake.clear()
        self.state = SessionState(epoch=self.state.epoch + 1)


class SessionStore:
    """Process-wide session registry with TTL eviction."""

    def __init__(self, registry: HandleRegistry | None = None) -> None:
        self._sessions: dict[str, AnalyzerSession] = {}
        self._registry = registry

    def create(self) -> AnalyzerSession:
        """Create a new session, evicting expired (then oldest) ones first."""
        self._evict_expired()
        cfg = get_config()
        if len(self._sessions) >= cfg.max_sessions:
            oldest_id = min(self._sessions, key=lambda k: self._sessions[k].last_active)
            self._drop(oldest_id)

        sid = uuid.uuid4().hex[:12]
        session = AnalyzerSession(sid, self._registry)
        self._sessions[sid] = session
        return session

    def get(self, session_id: str) -> AnalyzerSession:
        """Look up a live session.

        Raises:
            SessionNotFound: If the id is unknown or expired.
        """
        self._evict_expired()
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(f"Session {session_id} not found or expired")
        return session

    def close(self, session_id: str) -> bool:
        if session_id not in self._sessions:
            return False
        self._drop(session_id)
        return True

    def close_all(self) -> int:
        count = len(self._sessions)
        for sid in list(self._sessions):
            self._drop(sid)
        return count

    def _drop(self, session_id: str) -> None:
        session = self._sessions.pop(session_id)
        session.close()
        logger.debug("Closed session %s", session_id)

    def _evict_expired(self) -> int:
        """Close sessions idle beyond the configured timeout. Returns count evicted."""
        timeout = timedelta(hours=get_config().session_timeout_hours)
        now = datetime.now()
        expired = [
            sid for sid, s in self._sessions.items()
            if now - s.last_active > timeout and not s.state.in_flight
        ]
        for sid in expired:
            self._drop(sid)
        return len(expired)

    @property
    def count(self) -> int:
        """Number of live sessions."""
        return len(self._sessions)


# Module-level singleton
session_store = SessionStore()
