"""Integration tests for the enrichment service with scripted model and network fakes."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from conftest import GOOD_FEATURES, FakeFetcher, FakeImageGenerator, FakeTextGenerator, make_release
from releaseforge.errors import ReleaseNotFoundError, UnknownToolError
from releaseforge.models.features import SourceOrigin
from releaseforge.models.job import JobState
from releaseforge.models.reports import RemediationStatus

CHANGELOG_URL = "https://example.com/x/changelog"
ISOLATED_NOTES = (
    "## 2.3.0\n"
    "- Cold start is now twice as fast thanks to lazy module loading\n"
    "- Shell commands run inside an isolated sandbox by default\n"
)
LONG_NOTES = "- Added a brand new plugin system with hot reload\n" * 4


def _recent(days_ago=1):
    return (datetime.now(timezone.utc) - timedelta(days=days_ago)).strftime("%Y-%m-%dT%H:%M:%SZ")


def _stored(test_settings):
    return json.loads(test_settings.paths.releases_path.read_text())


@pytest.mark.asyncio
class TestGenerateFetched:
    async def test_fetch_extract_render_and_link(self, make_service, write_store, test_settings):
        write_store([make_release()])
        text_gen = FakeTextGenerator([ISOLATED_NOTES, json.dumps(GOOD_FEATURES)])
        image_gen = FakeImageGenerator()
        fetcher = FakeFetcher({CHANGELOG_URL: "<html><h2>2.3.0</h2>...</html>"})
        service = make_service(text_gen, image_gen, fetcher)

        result = await service.generate("X", "2.3.0")

        assert result.success
        assert result.state == JobState.DELIVERED
        assert result.source_origin == SourceOrigin.FETCHED
        assert result.feature_set.release_info == "v2.3.0 • January 5, 2026"
        assert [ratio for _, ratio in image_gen.calls] == ["1:1", "16:9"]

        base = f"X-2.3.0-{datetime.now(timezone.utc).date().isoformat()}"
        release = _stored(test_settings)["releases"][0]
        assert release["infographicUrl"] == f"/images/infographics/{base}-1x1.png"
        assert release["infographicUrl16x9"] == f"/images/infographics/{base}-16x9.png"
        assert (test_settings.paths.public_images_dir / f"{base}-1x1.png").exists()

        features = json.loads((test_settings.paths.prompts_dir / f"{base}-features.json").read_text())
        assert features["sourceOrigin"] == "fetched"
        assert features["sourceContent"] == ISOLATED_NOTES.strip()
        assert features["sourceUrl"] == CHANGELOG_URL
        assert features["releaseInfo"] == "v2.3.0 • January 5, 2026"
        assert (test_settings.paths.prompts_dir / f"{base}-1x1.txt").exists()

    async def test_full_notes_skip_fetch(self, make_service, write_store):
        write_store([make_release(fullNotes=LONG_NOTES)])
        fetcher = FakeFetcher({CHANGELOG_URL: "<html/>"})
        text_gen = FakeTextGenerator([json.dumps(GOOD_FEATURES)])
        service = make_service(text_gen, FakeImageGenerator(), fetcher)

        result = await service.generate("X")

        assert result.success
        assert result.source_origin == SourceOrigin.FULL_NOTES
        assert fetcher.calls == []
        assert len(text_gen.calls) == 1
        assert LONG_NOTES in text_gen.calls[0]["prompt"]

    async def test_prompt_only_leaves_store_untouched(self, make_service, write_store, test_settings):
        from releaseforge.pipeline.orchestrator import GenerationOptions

        path = write_store([make_release(fullNotes=LONG_NOTES)])
        before = path.read_text()
        image_gen = FakeImageGenerator()
        service = make_service(FakeTextGenerator([json.dumps(GOOD_FEATURES)]), image_gen)

        result = await service.generate("X", options=GenerationOptions(generate_image=False))

        assert result.success
        assert result.artifacts == []
        assert image_gen.calls == []
        assert path.read_text() == before


@pytest.mark.asyncio
class TestIdempotence:
    async def test_existing_infographic_is_skipped(self, make_service, write_store):
        path = write_store([make_release(infographicUrl="/images/infographics/old.png")])
        before = path.read_text()
        text_gen, image_gen, fetcher = FakeTextGenerator(), FakeImageGenerator(), FakeFetcher()
        service = make_service(text_gen, image_gen, fetcher)

        result = await service.generate("X", "2.3.0")

        assert result.success and result.skipped
        assert result.state == JobState.SKIPPED
        assert text_gen.calls == [] and image_gen.calls == [] and fetcher.calls == []
        assert path.read_text() == before

    async def test_force_regenerates(self, make_service, write_store, test_settings):
        from releaseforge.pipeline.orchestrator import GenerationOptions

        write_store([make_release(fullNotes=LONG_NOTES, infographicUrl="/images/infographics/old.png")])
        service = make_service(FakeTextGenerator([json.dumps(GOOD_FEATURES)]), FakeImageGenerator())

        result = await service.generate("X", options=GenerationOptions(force=True))

        assert result.success and not result.skipped
        assert _stored(test_settings)["releases"][0]["infographicUrl"] != "/images/infographics/old.png"


@pytest.mark.asyncio
class TestFailures:
    async def test_degenerate_content_writes_failure_report(self, make_service, write_store, test_settings):
        path = write_store([make_release(url=None)])
        before = path.read_text()
        empty = json.dumps({"features": [], "releaseHighlight": "", "releaseInfo": ""})
        text_gen = FakeTextGenerator([empty, empty, empty])
        image_gen = FakeImageGenerator()
        service = make_service(text_gen, image_gen)

        result = await service.generate("X")

        assert not result.success
        assert result.state == JobState.FAILED
        assert result.error == "Validation failed: No features extracted"
        assert len(text_gen.calls) == 3
        assert image_gen.calls == []
        assert any("minimal content" in w for w in result.warnings)
        assert path.read_text() == before

        report_path = test_settings.paths.prompts_dir / result.failure_report
        report = json.loads(report_path.read_text())
        assert result.failure_report.startswith("failure-X-2.3.0-")
        assert report["retryAttempts"] == 3
        assert report["fetchedContentLength"] == len("Bug fixes")
        assert report["releaseData"]["id"] == "x-2.3.0"
        assert report["extractedFeatures"]["features"] == []

    async def test_image_error_fails_job(self, make_service, write_store):
        from releaseforge.errors import ImageGenerationError

        path = write_store([make_release(fullNotes=LONG_NOTES)])
        before = path.read_text()
        service = make_service(
            FakeTextGenerator([json.dumps(GOOD_FEATURES)]),
            FakeImageGenerator(error=ImageGenerationError("HTTP 500", status=500)),
        )

        result = await service.generate("X")

        assert not result.success
        assert "HTTP 500" in result.error
        assert path.read_text() == before

    async def test_unknown_tool(self, make_service, write_store):
        write_store([make_release()])
        with pytest.raises(UnknownToolError):
            await make_service().generate("nope")

    async def test_missing_release(self, make_service, write_store):
        write_store([make_release()])
        with pytest.raises(ReleaseNotFoundError):
            await make_service().generate("X", "9.9.9")


@pytest.mark.asyncio
class TestBatch:
    async def test_one_failure_does_not_abort_batch(self, make_service, write_store, test_settings):
        write_store([
            make_release(id="x-2.4.0", version="2.4.0", date=_recent(1), url=None),
            make_release(id="x-2.3.0", version="2.3.0", date=_recent(2), fullNotes=LONG_NOTES),
            make_release(id="x-2.2.0", version="2.2.0", date=_recent(3), infographicUrl="/old.png"),
            make_release(id="x-1.0.0", version="1.0.0", date=_recent(30), fullNotes=LONG_NOTES),
        ])

        def handler(prompt, system):
            if "Version: 2.4.0" in prompt:
                return json.dumps({"features": []})
            return json.dumps(GOOD_FEATURES)

        service = make_service(FakeTextGenerator(handler=handler), FakeImageGenerator())

        batch = await service.generate_all_missing(max_age_days=7)

        assert [e.version for e in batch.success] == ["2.3.0"]
        assert [e.version for e in batch.failed] == ["2.4.0"]
        assert batch.skipped == []
        assert batch.exit_code == 1

        releases = {r["id"]: r for r in _stored(test_settings)["releases"]}
        assert releases["x-2.3.0"]["infographicUrl"].endswith("-1x1.png")
        assert "infographicUrl" not in releases["x-2.4.0"]
        assert "infographicUrl" not in releases["x-1.0.0"]
        assert releases["x-2.2.0"]["infographicUrl"] == "/old.png"

    async def test_image_transport_error_does_not_abort_batch(self, make_service, write_store, test_settings):
        import base64

        import httpx

        from conftest import PNG_BYTES
        from releaseforge.llm.image import GeminiImageClient

        write_store([
            make_release(id="x-2.4.0", version="2.4.0", date=_recent(1), fullNotes=LONG_NOTES),
            make_release(id="x-2.3.0", version="2.3.0", date=_recent(2), fullNotes=LONG_NOTES),
        ])

        def handler(request):
            if "v2.4.0" in request.content.decode():
                raise httpx.ConnectError("All connection attempts failed", request=request)
            inline = {"mimeType": "image/png", "data": base64.b64encode(PNG_BYTES).decode()}
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"inlineData": inline}]}}]})

        image_gen = GeminiImageClient(api_key="k", base_url="https://img.test", transport=httpx.MockTransport(handler))
        text_gen = FakeTextGenerator(handler=lambda prompt, system: json.dumps(GOOD_FEATURES))
        service = make_service(text_gen, image_gen)

        batch = await service.generate_all_missing(max_age_days=7)

        assert [e.version for e in batch.failed] == ["2.4.0"]
        assert "ConnectError" in batch.failed[0].error
        assert [e.version for e in batch.success] == ["2.3.0"]
        releases = {r["id"]: r for r in _stored(test_settings)["releases"]}
        assert releases["x-2.3.0"]["infographicUrl"].endswith("-1x1.png")
        assert "infographicUrl" not in releases["x-2.4.0"]

    async def test_nothing_missing(self, make_service, write_store):
        path = write_store([make_release(date=_recent(1), infographicUrl="/old.png")])
        before = path.read_text()
        batch = await make_service().generate_all_missing()
        assert batch.exit_code == 0
        assert batch.results == []
        assert path.read_text() == before


@pytest.mark.asyncio
class TestValidateAndRemediate:
    async def test_validate_counts_statuses(self, make_service, write_store):
        write_store([make_release(fullNotes=LONG_NOTES)])
        service = make_service(FakeTextGenerator([json.dumps(GOOD_FEATURES)]), FakeImageGenerator())
        await service.generate("X")

        report = {
            "validations": [
                {"feature": "Faster Startup", "status": "VERIFIED", "evidence": "twice as fast"},
                {"feature": "Sandboxed Shell", "status": "FABRICATED", "evidence": ""},
            ],
            "accuracy": "MEDIUM",
            "summary": "one invented",
        }
        service.text_gen = FakeTextGenerator([json.dumps(report)])

        summary = await service.validate("X")

        assert (summary.verified, summary.inferred, summary.fabricated) == (1, 0, 1)
        assert summary.exit_code == 1

    async def test_validate_requires_target(self, make_service, write_store):
        from releaseforge.errors import MissingArgumentError

        write_store([make_release()])
        with pytest.raises(MissingArgumentError):
            await make_service().validate()

    async def test_remediate_unknown_tool_is_error(self, make_service, write_store, test_settings):
        write_store([make_release()])
        result = await make_service().remediate("nope", "1.0.0")
        assert result.status == RemediationStatus.ERROR
        assert test_settings.paths.remediation_result_file.exists()
