"""Server status and runtime reconfiguration tools."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..config import get_config, update_config
from ..errors import make_tool_error
from ..handles import handle_registry
from ..session import session_store
from ..tracing import trace

infra_server = FastMCP("infra")
_SENSITIVE_CONFIG_FIELDS = {"gemini_api_key"}


def _redacted_config() -> dict:
    """Return runtime config with secret-bearing fields removed."""
    cfg = get_config()
    data = cfg.model_dump(exclude=_SENSITIVE_CONFIG_FIELDS)
    data["gemini_api_key_set"] = cfg.has_api_key
    return data


@infra_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def infra_status() -> dict:
    """Report configuration, live session count, and live preview handles."""
    return {
        "config": _redacted_config(),
        "sessions": session_store.count,
        "preview_handles": handle_registry.live_count,
    }


@infra_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace
async def infra_configure(
    model: Annotated[str | None, Field(description="Gemini model ID for analysis requests")] = None,
    temperature: Annotated[float | None, Field(ge=0.0, le=2.0, description="Sampling temperature")] = None,
    demo_video_url: Annotated[str | None, Field(description="URL of the demo video asset")] = None,
) -> dict:
    """Reconfigure the server at runtime. Changes apply to subsequent calls.

    Args:
        model: Gemini model ID.
        temperature: Sampling temperature (0.0–2.0).
        demo_video_url: Demo asset URL.

    Returns:
        Dict with current_config (secrets redacted).
    """
    try:
        overrides: dict[str, object] = {}
        if model is not None:
            overrides["default_model"] = model
        if temperature is not None:
            overrides["default_temperature"] = temperature
        if demo_video_url is not None:
            overrides["demo_video_url"] = demo_video_url
        if overrides:
            update_config(**overrides)
        return {"current_config": _redacted_config()}
    except Exception as exc:
        return make_tool_error(exc)
