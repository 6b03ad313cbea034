"""Session and analysis tools — start a session, set the prompt, analyze, reset."""

from __future__ import annotations

import logging
from typing import Annotated

from mcp.types import ToolAnnotations
from pydantic import Field

from ..errors import make_tool_error
from ..render import render_markdown
from ..session import SessionState, session_store
from ..tracing import trace
from ..types import PromptParam, SessionId
from ._video_server import video_server

logger = logging.getLogger(__name__)


def _state_response(session_id: str, state: SessionState) -> dict:
    """State dict plus a markdown rendering when a result is present."""
    payload = {"session_id": session_id, **state.to_dict()}
    if state.result is not None:
        payload["markdown"] = render_markdown(state.result)
    return payload


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    )
)
@trace
async def video_session_start() -> dict:
    """Start a new analyzer session with nothing selected.

    Returns:
        Session state dict including the new session_id.
    """
    try:
        session = session_store.create()
        logger.info("Started analyzer session %s", session.session_id)
        return _state_response(session.session_id, session.state)
    except Exception as exc:
        return make_tool_error(exc)


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def video_session_state(session_id: SessionId) -> dict:
    """Return the current phase, selection, prompt, result, and error of a session."""
    try:
        session = session_store.get(session_id)
        return _state_response(session_id, session.state)
    except Exception as exc:
        return make_tool_error(exc)


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def video_set_prompt(session_id: SessionId, prompt: PromptParam) -> dict:
    """Replace the session's prompt text without submitting it."""
    try:
        session = session_store.get(session_id)
        return _state_response(session_id, session.set_prompt(prompt))
    except Exception as exc:
        return make_tool_error(exc)


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    )
)
@trace
async def video_analyze(
    session_id: SessionId,
    prompt: Annotated[str | None, Field(
        description="Optional prompt; replaces the session prompt before submitting",
    )] = None,
    model: Annotated[str | None, Field(
        description="Gemini model ID override (defaults to GEMINI_MODEL)",
    )] = None,
) -> dict:
    """Analyze the selected video with Gemini and return the structured breakdown.

    Sends one request: the video inline as base64, the prompt wrapped in an
    analysis instruction, and the analysis JSON schema. Failures leave the
    session in the failed phase with the video and prompt kept, so calling
    again retries.

    Args:
        session_id: Session to analyze.
        prompt: Optional new prompt text.
        model: Optional Gemini model override.

    Returns:
        Session state dict. On success ``result`` holds summary, sentiment,
        primaryTopic, typeOfDiscussion, toneOfDelivery, regionCountryFocus,
        subtopics, keyPeopleEntities, additionalInfo, and segments, and
        ``markdown`` holds a rendered report.
    """
    try:
        session = session_store.get(session_id)
        if prompt is not None and not session.state.in_flight:
            session.set_prompt(prompt)
        state = await session.submit(model=model)
        return _state_response(session_id, state)
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
async def video_analyze_another(session_id: SessionId) -> dict:
    """After a result, clear the video, prompt, and result to start over."""
    try:
        session = session_store.get(session_id)
        return _state_response(session_id, session.analyze_another())
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
async def video_session_end(session_id: SessionId) -> dict:
    """Close a session and release its preview handle."""
    try:
        return {"session_id": session_id, "closed": session_store.close(session_id)}
    except Exception as exc:
        return make_tool_error(exc)
