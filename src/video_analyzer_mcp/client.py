"""Shared Gemini client pool and the single structured-output call."""

from __future__ import annotations

import logging
from typing import Any

from google import genai
from google.genai import types

from .config import get_config

logger = logging.getLogger(__name__)


class GeminiClient:
    """Process-wide Gemini client pool (one client per API key)."""

    _clients: dict[str, genai.Client] = {}

    @classmethod
    def get(cls, api_key: str | None = None) -> genai.Client:
        """Return (or create) the shared client for *api_key*.

        Raises:
            ValueError: If no API key is configured.
        """
        cfg = get_config()
        key = api_key or cfg.gemini_api_key
        if not key:
            raise ValueError("No Gemini API key — set GEMINI_API_KEY or pass api_key explicitly")
        if key not in cls._clients:
            cls._clients[key] = genai.Client(
                api_key=key,
                http_options=types.HttpOptions(timeout=int(cfg.request_timeout_seconds * 1000)),
            )
            logger.info("Created Gemini client (key …%s)", key[-4:])
        return cls._clients[key]

    @classmethod
    async def generate(
        cls,
        contents: Any,
        *,
        model: str | None = None,
        response_schema: dict | None = None,
        temperature: float | None = None,
    ) -> str:
        """Issue one generate_content call and return the response text.

        No retries: a failure propagates to the caller unchanged.

        Args:
            contents: Prompt contents (text and/or multimodal parts).
            model: Override model ID (defaults to config's default_model).
            response_schema: JSON schema dict constraining the output to JSON.
            temperature: Override temperature (defaults to config's, if any).

        Returns:
            The concatenated text of the first candidate.
        """
        cfg = get_config()
        resolved_model = model or cfg.default_model
        resolved_temperature = temperature if temperature is not None else cfg.default_temperature

        config = types.GenerateContentConfig()
        if resolved_temperature is not None:
            config.temperature = resolved_temperature
        if response_schema:
            config.response_mime_type = "application/json"
            config.response_json_schema = response_schema

        client = cls.get()
        response = await client.aio.models.generate_content(
            model=resolved_model,
            contents=contents,
            config=config,
        )

        # Thought parts are never returned
        content = response.candidates[0].content if response.candidates else None
        parts = (content.parts if content else None) or []
        text_parts = [p.text for p in parts if p.text and not getattr(p, "thought", False)]
        return "\n".join(text_parts) if text_parts else (response.text or "")

    @classmethod
    async def close_all(cls) -> int:
        """Shut down all shared clients. Returns count closed."""
        count = 0
        for client in list(cls._clients.values()):
            try:
                await client.aio.aclose()
            except Exception:
                logger.debug("Async Gemini client close failed", exc_info=True)
            count += 1
        cls._clients.clear()
        logger.info("Closed %d Gemini client(s)", count)
        return count
