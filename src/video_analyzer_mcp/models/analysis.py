"""Analysis contract — the structured output schema Gemini is instructed to honor.

Every field is required. Python attributes are snake_case; the JSON the model
returns (and ``to_wire()`` produces) uses the camelCase contract names.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_CONTRACT_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
)


class Segment(BaseModel):
    """One chronological section of the video."""

    model_config = _CONTRACT_CONFIG

    title: str = Field(description="A descriptive title for this segment of the video.")
    timestamp: str = Field(
        description="The start and end time of the segment (e.g., 00:15 - 00:45).",
    )
    duration: str = Field(description="The total duration of the segment (e.g., 00:30).")


class AnalysisResult(BaseModel):
    """Structured breakdown of a video, as returned by Gemini."""

    model_config = _CONTRACT_CONFIG

    summary: str = Field(description="A concise summary of the entire video content.")
    sentiment: str = Field(
        description="The overall sentiment of the video (e.g., Positive, Negative, Neutral).",
    )
    type_of_discussion: str = Field(
        description="The category of the video (e.g., Corporate Promotional Video, News Report, Tutorial).",
    )
    primary_topic: str = Field(description="The main subject matter of the video.")
    subtopics: list[str] = Field(
        description="A list of more specific topics discussed in the video.",
    )
    tone_of_delivery: str = Field(
        description="The mood or style of the presentation (e.g., Informative, Professional, Humorous).",
    )
    key_people_entities: list[str] = Field(
        description="A list of important people, companies, or entities mentioned.",
    )
    region_country_focus: str = Field(
        description="The primary geographical region or country that is the focus of the video.",
    )
    additional_info: str = Field(
        description="A more detailed, paragraph-form summary including specific facts, "
        "figures, or key takeaways.",
    )
    segments: list[Segment] = Field(
        description="A chronological breakdown of the video into distinct segments or scenes.",
    )

    def to_wire(self) -> dict:
        """Serialise using the camelCase contract field names."""
        return self.model_dump(mode="json", by_alias=True)


def analysis_response_schema() -> dict:
    """JSON Schema for the contract, keyed by the camelCase wire names."""
    return AnalysisResult.model_json_schema(by_alias=True)
