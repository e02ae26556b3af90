"""Unit tests for Pydantic data models."""

import pytest
from pydantic import ValidationError

from conftest import make_release
from releaseforge.models import (
    AuditSummary,
    BatchResult,
    FeatureArtifact,
    FeatureSet,
    GenerationResult,
    ReleaseRecord,
    ReleasesDocument,
    SourceContent,
    SourceOrigin,
    format_release_date,
    format_release_info,
)
from releaseforge.models.reports import AuditedRelease, FeatureValidation, ValidationReport, ValidationStatus


class TestReleaseRecord:
    def test_aliases(self):
        r = ReleaseRecord.model_validate(make_release(fullNotes="notes", infographicUrl="/a.png"))
        assert r.tool_display_name == "Tool X"
        assert r.full_notes == "notes"
        assert r.infographic_url == "/a.png"

    def test_unknown_fields_kept(self):
        r = ReleaseRecord.model_validate(make_release(stars=5))
        assert r.model_dump(by_alias=True)["stars"] == 5

    def test_missing_version_fails(self):
        data = make_release()
        del data["version"]
        with pytest.raises(ValidationError):
            ReleaseRecord.model_validate(data)

    def test_stored_notes_prefers_full_notes(self):
        assert ReleaseRecord.model_validate(make_release(fullNotes="full")).stored_notes == "full"
        assert ReleaseRecord.model_validate(make_release()).stored_notes == "Bug fixes"

    @pytest.mark.parametrize("stored,query", [("2.3.0", "v2.3.0"), ("v2.3.0", "2.3.0"), ("2.3.0", "2.3.0")])
    def test_matches_version_with_or_without_prefix(self, stored, query):
        assert ReleaseRecord.model_validate(make_release(version=stored)).matches_version(query)

    def test_display_name_fallback(self):
        assert ReleaseRecord.model_validate(make_release(toolDisplayName="")).display_name == "X"


class TestReleaseDates:
    def test_format_date(self):
        assert format_release_date("2026-01-05T12:00:00Z") == "January 5, 2026"

    def test_plain_date(self):
        assert format_release_date("2025-12-31") == "December 31, 2025"

    def test_release_info_strips_v(self):
        r = ReleaseRecord.model_validate(make_release(version="v0.24.5"))
        assert format_release_info(r) == "v0.24.5 • January 5, 2026"


class TestReleasesDocument:
    def _doc(self):
        return ReleasesDocument.model_validate({"releases": [
            make_release(id="x-2.3.0"),
            make_release(id="x-2.2.0", version="2.2.0"),
            make_release(id="y-1.0.0", tool="Y", version="1.0.0"),
        ]})

    def test_find_latest(self):
        assert self._doc().find("X").id == "x-2.3.0"

    def test_find_version(self):
        assert self._doc().find("X", "v2.2.0").id == "x-2.2.0"

    def test_find_missing(self):
        assert self._doc().find("Z") is None
        assert self._doc().find("X", "9.9.9") is None

    def test_by_id(self):
        assert self._doc().by_id("y-1.0.0").tool == "Y"


class TestFeatureModels:
    def test_null_fields_become_empty(self):
        fs = FeatureSet.model_validate({"features": [{"icon": None, "name": "A", "description": None}]})
        assert fs.features[0].description == ""

    def test_source_sufficiency(self):
        assert SourceContent(text="x" * 100, origin=SourceOrigin.FETCHED).sufficient
        assert not SourceContent(text="x" * 99, origin=SourceOrigin.FETCHED).sufficient

    def test_artifact_serializes_camel_case(self):
        fs = FeatureSet.model_validate({"features": [], "releaseHighlight": "h", "releaseInfo": "i"})
        source = SourceContent(text="src", origin=SourceOrigin.COMPARE)
        data = FeatureArtifact.from_feature_set(fs, source, "https://u").model_dump(by_alias=True, mode="json")
        assert data["sourceOrigin"] == "compare"
        assert data["sourceContent"] == "src"
        assert data["sourceUrl"] == "https://u"
        assert data["releaseHighlight"] == "h"
        assert "extractedAt" in data


class TestResults:
    def _result(self, **kwargs):
        return GenerationResult(job_id="j", tool="X", version="1", **kwargs)

    def test_batch_buckets(self):
        batch = BatchResult()
        batch.record(self._result(success=True))
        batch.record(self._result(success=True, skipped=True))
        batch.record(self._result(success=False, error="boom"))
        assert (len(batch.success), len(batch.skipped), len(batch.failed)) == (1, 1, 1)
        assert batch.failed[0].error == "boom"
        assert batch.exit_code == 1

    def test_empty_batch_exit_zero(self):
        assert BatchResult().exit_code == 0

    def test_audit_summary_skipped_release_counts_nothing(self):
        summary = AuditSummary()
        summary.add(AuditedRelease(release_id="a", tool="X", version="1", skipped_reason="no features file"))
        summary.add(AuditedRelease(
            release_id="b", tool="X", version="2",
            report=ValidationReport(validations=[
                FeatureValidation(feature="f", status=ValidationStatus.VERIFIED),
            ]),
        ))
        assert summary.total == 1
        assert summary.exit_code == 0
