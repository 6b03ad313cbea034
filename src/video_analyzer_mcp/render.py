"""Markdown rendering of an AnalysisResult for MCP hosts.

Section order mirrors the analysis panel: summary, key facts, subtopics,
people and entities, additional info, then the segment timeline. Free-text
fields are passed through as markdown without further processing.
"""

from __future__ import annotations

from .models.analysis import AnalysisResult

_KEY_FACTS: tuple[tuple[str, str], ...] = (
    ("Sentiment", "sentiment"),
    ("Primary Topic", "primary_topic"),
    ("Type of Discussion", "type_of_discussion"),
    ("Tone of Delivery", "tone_of_delivery"),
    ("Region/Country Focus", "region_country_focus"),
)


def _bullets(items: list[str]) -> list[str]:
    return [f"- {item}" for item in items] if items else ["_None identified._"]


def render_markdown(result: AnalysisResult, *, title: str = "Analysis Result") -> str:
    """Render *result* as a single markdown document."""
    lines: list[str] = [f"# {title}", "", "## Summary", "", result.summary.strip(), ""]

    lines.extend(["## Key Facts", "", "| Field | Value |", "| --- | --- |"])
    for label, attr in _KEY_FACTS:
        value = str(getattr(result, attr)).replace("|", "\\|").replace("\n", " ")
        lines.append(f"| {label} | {value} |")
    lines.append("")

    lines.extend(["## Subtopics", "", *_bullets(result.subtopics), ""])
    lines.extend(["## Key People & Entities", "", *_bullets(result.key_people_entities), ""])
    lines.extend(["## Additional Info", "", result.additional_info.strip(), ""])

    lines.extend(["## Segments", ""])
    if not result.segments:
        lines.append("_No segments returned._")
    for i, seg in enumerate(result.segments, 1):
        lines.append(f"{i}. **{seg.title}** — {seg.timestamp} (Duration: {seg.duration})")

    return "\n".join(lines).rstrip() + "\n"
