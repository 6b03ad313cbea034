"""Main FastMCP server — mounts the video and infra sub-servers."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from . import tracing
from .client import GeminiClient
from .config import warn_if_unconfigured
from .handles import handle_registry
from .session import session_store
from .tools import analysis as _analysis_tools  # noqa: F401  registers tools on video_server
from .tools import media as _media_tools  # noqa: F401  registers tools on video_server
from .tools._video_server import video_server
from .tools.infra import infra_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Startup/shutdown hook — warns on missing credentials, releases everything on exit."""
    warn_if_unconfigured()
    tracing.setup()
    yield {}
    sessions = session_store.close_all()
    handles = handle_registry.clear()
    closed = await GeminiClient.close_all()
    tracing.shutdown()
    logger.info(
        "Lifespan shutdown: closed %d session(s), %d handle(s), %d client(s)",
        sessions, handles, closed,
    )


app = FastMCP(
    "video-analyzer",
    instructions=(
        "Gemini video analyzer — select or upload a video (or load the demo), "
        "enter a prompt, and get a structured breakdown: summary, sentiment, "
        "topics, entities, and a chronological segment timeline. Start with "
        "video_session_start."
    ),
    lifespan=_lifespan,
)

app.mount(video_server)
app.mount(infra_server)


def main() -> None:
    """Entry-point for ``video-analyzer-mcp`` console script."""
    app.run()


if __name__ == "__main__":
    main()
