"""Pydantic and dataclass models for media, analysis results, and sessions."""
