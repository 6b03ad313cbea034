"""Server configuration via environment variables."""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_DEMO_VIDEO_URL = "https://storage.googleapis.com/gtv-videos-bucket/sample/BigBuckBunny.mp4"
DEFAULT_DEMO_PROMPT = "Provide a complete and structured analysis of this video."
DEFAULT_DEMO_MAX_BYTES = 256 * 1024 * 1024


def _resolve_tracing_enabled(flag_value: str, tracking_uri: str) -> bool:
    """Derive tracing_enabled from env vars.

    - ``GEMINI_TRACING_ENABLED=false`` → always disabled (explicit opt-out).
    - Otherwise enabled only when ``MLFLOW_TRACKING_URI`` is non-empty.
    """
    if flag_value.lower() == "false":
        return False
    return bool(tracking_uri)


class AnalyzerConfig(BaseModel):
    """Runtime configuration resolved from environment."""

    gemini_api_key: str = Field(default="")
    default_model: str = Field(default="gemini-2.5-pro")
    default_temperature: float | None = Field(default=None)
    request_timeout_seconds: float = Field(default=600.0)
    demo_video_url: str = Field(default=DEFAULT_DEMO_VIDEO_URL)
    demo_prompt: str = Field(default=DEFAULT_DEMO_PROMPT)
    demo_fetch_timeout_seconds: float = Field(default=120.0)
    demo_max_bytes: int = Field(default=DEFAULT_DEMO_MAX_BYTES)
    max_sessions: int = Field(default=50)
    session_timeout_hours: int = Field(default=2)
    tracing_enabled: bool = Field(default=False)
    mlflow_tracking_uri: str = Field(default="")
    mlflow_experiment_name: str = Field(default="video-analyzer-mcp")

    @field_validator("max_sessions", "session_timeout_hours", "demo_max_bytes")
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Configuration values must be >= 1")
        return value

    @field_validator("request_timeout_seconds", "demo_fetch_timeout_seconds")
    @classmethod
    def validate_timeouts(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Timeouts must be > 0")
        return value

    @field_validator("default_temperature")
    @classmethod
    def validate_temperature(cls, value: float | None) -> float | None:
        if value is not None and not 0.0 <= value <= 2.0:
            raise ValueError("Temperature must be between 0.0 and 2.0")
        return value

    @property
    def has_api_key(self) -> bool:
        return bool(self.gemini_api_key.strip())

    @classmethod
    def from_env(cls) -> AnalyzerConfig:
        """Build config from environment variables."""
        raw_temperature = os.getenv("GEMINI_TEMPERATURE", "").strip()
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            default_model=os.getenv("GEMINI_MODEL", "gemini-2.5-pro"),
            default_temperature=float(raw_temperature) if raw_temperature else None,
            request_timeout_seconds=float(os.getenv("GEMINI_REQUEST_TIMEOUT", "600")),
            demo_video_url=os.getenv("DEMO_VIDEO_URL", DEFAULT_DEMO_VIDEO_URL),
            demo_prompt=os.getenv("DEMO_PROMPT", DEFAULT_DEMO_PROMPT),
            demo_fetch_timeout_seconds=float(os.getenv("DEMO_FETCH_TIMEOUT", "120")),
            demo_max_bytes=int(os.getenv("DEMO_MAX_BYTES", str(DEFAULT_DEMO_MAX_BYTES))),
            max_sessions=int(os.getenv("MAX_SESSIONS", "50")),
            session_timeout_hours=int(os.getenv("SESSION_TIMEOUT_HOURS", "2")),
            tracing_enabled=_resolve_tracing_enabled(
                os.getenv("GEMINI_TRACING_ENABLED", ""),
                os.getenv("MLFLOW_TRACKING_URI", ""),
            ),
            mlflow_tracking_uri=os.getenv("MLFLOW_TRACKING_URI", ""),
            mlflow_experiment_name=os.getenv("MLFLOW_EXPERIMENT_NAME", "video-analyzer-mcp"),
        )


_config: AnalyzerConfig | None = None


def get_config() -> AnalyzerConfig:
    """Return the global config singleton, creating it on first access.

    Loads ``~/.config/video-analyzer-mcp/.env`` before reading env vars.
    Process environment always takes precedence over the config file.
    """
    global _config
    if _config is None:
        from .env import load_env_file

        injected = load_env_file()
        if injected:
            logger.info(
                "Loaded %d var(s) from config: %s",
                len(injected),
                ", ".join(injected.keys()),
            )
        _config = AnalyzerConfig.from_env()
    return _config


def update_config(**overrides: object) -> AnalyzerConfig:
    """Patch the live config (used by ``infra_configure`` tool)."""
    global _config
    cfg = get_config()
    data = cfg.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    _config = AnalyzerConfig(**data)
    return _config


def warn_if_unconfigured() -> bool:
    """Log a warning when no Gemini API key is available. Returns True if configured.

    A missing key is not fatal: the server still starts and every analysis
    request fails at call time with a request error.
    """
    if get_config().has_api_key:
        return True
    logger.warning(
        "GEMINI_API_KEY is not set — video analysis requests will fail until it is configured"
    )
    return False
