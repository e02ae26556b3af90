"""
ReleaseForge — Typed release record model.

The release store is a single JSON document written by the (external)
release fetcher. Every pipeline step works against ReleaseRecord instead
of raw dicts; unknown keys are preserved so a rewrite never drops data
owned by other collaborators.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ReleaseRecord(BaseModel):
    """One versioned release of one tracked tool."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(min_length=1)
    tool: str = Field(min_length=1)
    tool_display_name: str = Field(default="", alias="toolDisplayName")
    version: str = Field(min_length=1)
    date: str
    summary: str = ""
    full_notes: str | None = Field(default=None, alias="fullNotes")
    url: str | None = None
    type: Literal["release", "prerelease"] | None = None
    infographic_url: str | None = Field(default=None, alias="infographicUrl")
    infographic_url_16x9: str | None = Field(default=None, alias="infographicUrl16x9")

    @property
    def display_name(self) -> str:
        return self.tool_display_name or self.tool

    @property
    def stored_notes(self) -> str:
        """fullNotes when present, otherwise the short summary."""
        return self.full_notes or self.summary or ""

    @property
    def released_at(self) -> datetime:
        return parse_release_date(self.date)

    def matches_version(self, version: str) -> bool:
        """Compare versions with and without a leading 'v'."""
        return (
            self.version == version
            or self.version == f"v{version}"
            or self.version == version.removeprefix("v")
        )


class ReleasesDocument(BaseModel):
    """The whole release store: `{lastUpdated, releases}`."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    last_updated: str | None = Field(default=None, alias="lastUpdated")
    releases: list[ReleaseRecord] = Field(default_factory=list)

    def find(self, tool: str, version: str | None = None) -> ReleaseRecord | None:
        """Specific version of a tool, or the first (latest) entry for it."""
        for release in self.releases:
            if release.tool != tool:
                continue
            if version is None or release.matches_version(version):
                return release
        return None

    def by_id(self, release_id: str) -> ReleaseRecord | None:
        return next((r for r in self.releases if r.id == release_id), None)


def parse_release_date(value: str) -> datetime:
    """Parse an ISO timestamp or date; naive values are treated as UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_release_date(value: str) -> str:
    """'2026-01-05T…' → 'January 5, 2026'."""
    dt = parse_release_date(value)
    return f"{dt:%B} {dt.day}, {dt.year}"


def format_release_info(release: ReleaseRecord) -> str:
    """Fixed-format version/date line. Computed here, never by the model."""
    return f"v{release.version.removeprefix('v')} • {format_release_date(release.date)}"
