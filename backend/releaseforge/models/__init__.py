"""ReleaseForge data models — typed contracts for the entire pipeline."""

from releaseforge.models.release import (
    ReleaseRecord,
    ReleasesDocument,
    format_release_date,
    format_release_info,
)
from releaseforge.models.features import (
    MIN_CONTENT_LENGTH,
    Feature,
    FeatureArtifact,
    FeatureSet,
    SourceContent,
    SourceOrigin,
)
from releaseforge.models.job import (
    ArtifactRef,
    BatchResult,
    GenerationResult,
    JobState,
    StepTiming,
)
from releaseforge.models.reports import (
    Accuracy,
    AuditSummary,
    FailureReport,
    FeatureValidation,
    RemediationResult,
    RemediationStatus,
    ValidationReport,
    ValidationStatus,
)

__all__ = [
    "ReleaseRecord",
    "ReleasesDocument",
    "format_release_date",
    "format_release_info",
    "MIN_CONTENT_LENGTH",
    "Feature",
    "FeatureArtifact",
    "FeatureSet",
    "SourceContent",
    "SourceOrigin",
    "ArtifactRef",
    "BatchResult",
    "GenerationResult",
    "JobState",
    "StepTiming",
    "Accuracy",
    "AuditSummary",
    "FailureReport",
    "FeatureValidation",
    "RemediationResult",
    "RemediationStatus",
    "ValidationReport",
    "ValidationStatus",
]
