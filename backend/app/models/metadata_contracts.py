from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from backend.app.services.metadata_resolver import ResolvedContent

ContentKind = Literal["video", "channel"]


class MetadataResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: ContentKind
    youtube_id: str
    title: str
    description: str
    thumbnail_url: str
    representative_video_id: str | None = None

    @classmethod
    def from_resolved(cls, resolved: ResolvedContent) -> MetadataResponse:
        descriptor = resolved.descriptor
        return cls(
            kind=resolved.identifier.kind.value,
            youtube_id=resolved.identifier.id,
            title=descriptor.title,
            description=descriptor.description,
            thumbnail_url=descriptor.thumbnail_url,
            representative_video_id=descriptor.representative_video_id,
        )


class ResolutionErrorDetail(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str
    message: str
    identifier: str | None = None
