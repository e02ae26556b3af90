"""
ReleaseForge — Generation job and batch output contracts.

Every generation returns a GenerationResult with full traceability:
step timings, source origin, warnings, and artifact references.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, Field

from releaseforge.models.features import FeatureSet, SourceOrigin


class JobState(str, enum.Enum):
    RECEIVED = "RECEIVED"
    SKIPPED = "SKIPPED"
    SOURCED = "SOURCED"
    EXTRACTED = "EXTRACTED"
    SYNTHESIZED = "SYNTHESIZED"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class StepTiming(BaseModel):
    step: str
    duration_ms: int
    status: str = "ok"  # ok | skipped | failed
    detail: str = ""


class ArtifactRef(BaseModel):
    format: str  # 1:1 | 16:9 | 9:16
    filename: str
    path: str
    url: str | None = None
    mime_type: str = "image/png"
    size_bytes: int = 0


class GenerationResult(BaseModel):
    """Outcome of one release's generation job."""

    job_id: str
    tool: str
    version: str
    release_id: str | None = None
    state: JobState = JobState.RECEIVED
    success: bool = False
    skipped: bool = False
    error: str | None = None
    feature_set: FeatureSet | None = None
    source_origin: SourceOrigin | None = None
    artifacts: list[ArtifactRef] = Field(default_factory=list)
    timings: list[StepTiming] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    failure_report: str | None = None


class BatchEntry(BaseModel):
    tool: str
    version: str
    error: str | None = None


class BatchResult(BaseModel):
    success: list[BatchEntry] = Field(default_factory=list)
    skipped: list[BatchEntry] = Field(default_factory=list)
    failed: list[BatchEntry] = Field(default_factory=list)
    results: list[GenerationResult] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def record(self, result: GenerationResult) -> None:
        self.results.append(result)
        entry = BatchEntry(tool=result.tool, version=result.version, error=result.error)
        if result.skipped:
            self.skipped.append(entry)
        elif result.success:
            self.success.append(entry)
        else:
            self.failed.append(entry)
