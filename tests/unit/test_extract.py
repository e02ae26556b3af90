"""Unit tests for the feature extractor."""

import json

import pytest

from conftest import GOOD_FEATURES, FakeTextGenerator, make_release
from releaseforge.errors import ExtractionParseError, RetryExhaustedError
from releaseforge.models.release import ReleaseRecord
from releaseforge.pipeline.extract import ExtractionAttempts, extract_features, extract_validated


@pytest.fixture
def release():
    return ReleaseRecord.model_validate(make_release())


@pytest.mark.asyncio
class TestExtractFeatures:
    async def test_release_info_always_overwritten(self, release):
        gen = FakeTextGenerator([json.dumps(GOOD_FEATURES)])
        result = await extract_features(gen, release, 6, "notes")
        assert result.release_info == "v2.3.0 • January 5, 2026"

    async def test_prompt_carries_release_info_and_notes(self, release):
        gen = FakeTextGenerator([json.dumps(GOOD_FEATURES)])
        await extract_features(gen, release, 4, "Added the frobnicator")
        call = gen.calls[0]
        assert "v2.3.0 • January 5, 2026" in call["system"]
        assert "fewer than 4 features" in call["system"]
        assert "Added the frobnicator" in call["prompt"]
        assert "Tool: Tool X" in call["prompt"]

    async def test_falls_back_to_summary(self, release):
        gen = FakeTextGenerator([json.dumps(GOOD_FEATURES)])
        await extract_features(gen, release, 6, None)
        assert "Release Notes:\nBug fixes" in gen.calls[0]["prompt"]

    async def test_truncates_to_count(self, release):
        gen = FakeTextGenerator([json.dumps(GOOD_FEATURES)])
        result = await extract_features(gen, release, 1, "notes")
        assert len(result.features) == 1

    async def test_tolerates_fences_and_chatter(self, release):
        gen = FakeTextGenerator([f"Sure!\n```json\n{json.dumps(GOOD_FEATURES)}\n```"])
        result = await extract_features(gen, release, 6, "notes")
        assert result.features[0].name == "Faster Startup"

    async def test_no_json_raises_parse_error(self, release):
        gen = FakeTextGenerator(["I cannot help with that."])
        with pytest.raises(ExtractionParseError):
            await extract_features(gen, release, 6, "notes")

    async def test_wrong_shape_raises_parse_error(self, release):
        gen = FakeTextGenerator(['{"features": "not a list"}'])
        with pytest.raises(ExtractionParseError):
            await extract_features(gen, release, 6, "notes")


@pytest.mark.asyncio
class TestExtractValidated:
    async def test_rejected_candidate_is_retried(self, release):
        bad = {"features": [{"icon": "❓", "name": "Notes", "description": "Content not available"}]}
        gen = FakeTextGenerator([json.dumps(bad), json.dumps(GOOD_FEATURES)])
        attempts = ExtractionAttempts()
        result = await extract_validated(gen, release, 6, "notes", base_delay=0, attempts=attempts)
        assert len(result.features) == 2
        assert attempts.count == 2

    async def test_exhaustion_keeps_last_candidate(self, release):
        bad = {"features": [{"icon": "❓", "name": "Notes", "description": "Content not available"}]}
        gen = FakeTextGenerator([json.dumps(bad)] * 3)
        attempts = ExtractionAttempts()
        with pytest.raises(RetryExhaustedError):
            await extract_validated(gen, release, 6, "notes", base_delay=0, attempts=attempts)
        assert len(gen.calls) == 3
        assert attempts.count == 3
        assert attempts.last_candidate.features[0].description == "Content not available"
