"""Optional MLflow tracing for analyzer tools.

``trace()`` wraps tool entrypoints in ``TOOL`` spans and ``setup()`` turns on
``mlflow.gemini.autolog()`` so the Gemini request appears as a child span.
Everything here is inert unless the ``tracing`` extra is installed and
``MLFLOW_TRACKING_URI`` is set (``GEMINI_TRACING_ENABLED=false`` forces off).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

SERVER_ATTRIBUTE = {"mcp.server": "video-analyzer"}

try:
    import mlflow
    import mlflow.gemini

    _HAS_MLFLOW = True
except ImportError:
    _HAS_MLFLOW = False


def is_enabled() -> bool:
    """Return True when mlflow is installed and tracing is configured."""
    if not _HAS_MLFLOW:
        return False
    from .config import get_config

    return get_config().tracing_enabled


def trace(
    func: Callable | None = None,
    *,
    name: str | None = None,
    span_type: str = "TOOL",
    attributes: dict[str, Any] | None = None,
) -> Callable:
    """Wrap a tool in an MLflow span named after it; identity when tracing is off.

    Usable bare (``@trace``) or with arguments (``@trace(name=...)``).
    """
    if not is_enabled():
        return func if func is not None else (lambda f: f)

    def wrap(f: Callable) -> Callable:
        return mlflow.trace(
            f,
            name=name or f.__name__,
            span_type=span_type,
            attributes={**SERVER_ATTRIBUTE, **(attributes or {})},
        )

    return wrap(func) if func is not None else wrap


def setup() -> None:
    """Point MLflow at the configured tracking server and autolog Gemini calls.

    Failures are logged; tracing never blocks server startup.
    """
    if not is_enabled():
        return

    from .config import get_config

    cfg = get_config()
    try:
        mlflow.set_tracking_uri(cfg.mlflow_tracking_uri)
        mlflow.set_experiment(cfg.mlflow_experiment_name)
        mlflow.gemini.autolog()
    except Exception:
        logger.warning("MLflow setup failed, analyzer runs untraced", exc_info=True)
        return
    logger.info(
        "Tracing analyzer tools to %s (experiment %s)",
        cfg.mlflow_tracking_uri, cfg.mlflow_experiment_name,
    )


def shutdown() -> None:
    """Flush pending async traces before the process exits."""
    if not is_enabled():
        return
    try:
        mlflow.flush_trace_async_logging()
    except Exception:
        logger.warning("Could not flush MLflow traces on shutdown", exc_info=True)
