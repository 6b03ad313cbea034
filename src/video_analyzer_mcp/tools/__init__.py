"""FastMCP sub-servers exposing the analyzer tools."""
