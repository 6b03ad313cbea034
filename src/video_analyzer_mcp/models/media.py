"""In-memory media source model."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class MediaSource:
    """A selected video: raw bytes plus declared MIME type and original filename."""

    data: bytes = field(repr=False)
    mime_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_video(self) -> bool:
        return self.mime_type.strip().lower().startswith("video/")

    def describe(self) -> dict:
        """Metadata view without the payload bytes."""
        return {"filename": self.filename, "mime_type": self.mime_type, "size_bytes": self.size}
