"""
ReleaseForge — Source content and feature set contracts.

FeatureSet is parsed leniently from untrusted model output: structural
problems are reported by the feature validator, not by pydantic, so each
rejection carries a readable reason.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_CONTENT_LENGTH = 100


class SourceOrigin(str, enum.Enum):
    STORED = "stored"
    FULL_NOTES = "fullNotes"
    FETCHED = "fetched"
    COMPARE = "compare"


class SourceContent(BaseModel):
    """Resolved text used as grounding evidence for extraction."""

    text: str
    origin: SourceOrigin
    warnings: list[str] = Field(default_factory=list)

    @property
    def length(self) -> int:
        return len(self.text)

    @property
    def sufficient(self) -> bool:
        return self.length >= MIN_CONTENT_LENGTH


class Feature(BaseModel):
    icon: str = ""
    name: str = ""
    description: str = ""

    @field_validator("icon", "name", "description", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v


class FeatureSet(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    features: list[Feature] = Field(default_factory=list)
    release_highlight: str = Field(default="", alias="releaseHighlight")
    release_info: str = Field(default="", alias="releaseInfo")


class FeatureArtifact(FeatureSet):
    """Accepted FeatureSet plus provenance, persisted as `<base>-features.json`."""

    source_content: str | None = Field(default=None, alias="sourceContent")
    source_url: str | None = Field(default=None, alias="sourceUrl")
    source_origin: SourceOrigin | None = Field(default=None, alias="sourceOrigin")
    extracted_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        alias="extractedAt",
    )

    @classmethod
    def from_feature_set(
        cls,
        feature_set: FeatureSet,
        source: SourceContent | None,
        source_url: str | None,
    ) -> "FeatureArtifact":
        return cls(
            features=feature_set.features,
            releaseHighlight=feature_set.release_highlight,
            releaseInfo=feature_set.release_info,
            sourceContent=source.text if source else None,
            sourceUrl=source_url,
            sourceOrigin=source.origin if source else None,
        )

    def feature_set(self) -> FeatureSet:
        return FeatureSet(
            features=self.features,
            releaseHighlight=self.release_highlight,
            releaseInfo=self.release_info,
        )
