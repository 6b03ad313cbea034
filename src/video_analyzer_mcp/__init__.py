"""Gemini video analyzer — MCP server for structured video breakdowns."""

__version__ = "0.1.0"
