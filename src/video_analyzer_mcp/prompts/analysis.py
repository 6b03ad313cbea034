"""Analysis prompt template.

ANALYSIS_INSTRUCTION wraps the user's request verbatim.
    Variables: {prompt}.
"""

from __future__ import annotations

ANALYSIS_INSTRUCTION = (
    "Based on the user's request, please analyze this video and provide a "
    'comprehensive breakdown. User request: "{prompt}"'
)
