"""
ReleaseForge — Audit, failure, and remediation report contracts.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from releaseforge.models.release import ReleaseRecord


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ValidationStatus(str, enum.Enum):
    VERIFIED = "VERIFIED"
    INFERRED = "INFERRED"
    FABRICATED = "FABRICATED"


class Accuracy(str, enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class FeatureValidation(BaseModel):
    feature: str
    status: ValidationStatus
    evidence: str = ""


class ValidationReport(BaseModel):
    """Per-release output of the accuracy auditor. Advisory only."""

    validations: list[FeatureValidation] = Field(default_factory=list)
    accuracy: Accuracy = Accuracy.LOW
    summary: str = ""

    def count(self, status: ValidationStatus) -> int:
        return sum(1 for v in self.validations if v.status == status)


class AuditedRelease(BaseModel):
    release_id: str
    tool: str
    version: str
    features_file: str | None = None
    report: ValidationReport | None = None
    skipped_reason: str | None = None


class AuditSummary(BaseModel):
    releases: list[AuditedRelease] = Field(default_factory=list)
    verified: int = 0
    inferred: int = 0
    fabricated: int = 0

    @property
    def total(self) -> int:
        return self.verified + self.inferred + self.fabricated

    @property
    def verified_pct(self) -> float:
        return round(self.verified / self.total * 100, 1) if self.total else 0.0

    @property
    def exit_code(self) -> int:
        return 1 if self.fabricated > 0 else 0

    def add(self, audited: AuditedRelease) -> None:
        self.releases.append(audited)
        if audited.report is None:
            return
        self.verified += audited.report.count(ValidationStatus.VERIFIED)
        self.inferred += audited.report.count(ValidationStatus.INFERRED)
        self.fabricated += audited.report.count(ValidationStatus.FABRICATED)


class ReleaseSnapshot(BaseModel):
    id: str
    tool: str
    version: str
    date: str
    summary: str
    url: str | None = None

    @classmethod
    def of(cls, release: ReleaseRecord) -> "ReleaseSnapshot":
        return cls(
            id=release.id,
            tool=release.tool,
            version=release.version,
            date=release.date,
            summary=release.summary,
            url=release.url,
        )


class FailureReport(BaseModel):
    """Durable record of an unrecoverable extraction. Written once."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: str = Field(default_factory=_now)
    tool: str
    version: str
    reason: str
    release_data: ReleaseSnapshot | None = Field(default=None, alias="releaseData")
    fetched_content_length: int = Field(default=0, alias="fetchedContentLength")
    extracted_features: dict[str, Any] | None = Field(default=None, alias="extractedFeatures")
    source_url: str | None = Field(default=None, alias="sourceUrl")
    retry_attempts: int = Field(default=0, alias="retryAttempts")


class RemediationStatus(str, enum.Enum):
    FIXED = "fixed"
    FAILED = "failed"
    ERROR = "error"


class RemediationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: RemediationStatus
    analysis: str
    actions: str = "None"
    features: dict[str, Any] | None = None
    api_calls_used: int = Field(default=0, alias="apiCallsUsed")
    tool: str | None = None
    version: str | None = None
    issue: str | None = None
    attempt: int = 1
    timestamp: str = Field(default_factory=_now)
