"""Shared test configuration and fixtures for ReleaseForge test suite."""

import json
import sys
from dataclasses import replace
from pathlib import Path

import pytest

# Add backend to Python path so imports work
backend_dir = str(Path(__file__).parent.parent / "backend")
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from releaseforge.core.config import PathsConfig, RetryConfig, settings  # noqa: E402
from releaseforge.errors import SourceFetchError  # noqa: E402
from releaseforge.llm.image import GeneratedImage  # noqa: E402
from releaseforge.tools.registry import ToolConfig  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32

GOOD_FEATURES = {
    "features": [
        {"icon": "🚀", "name": "Faster Startup", "description": "Cold start is twice as fast"},
        {"icon": "🔒", "name": "Sandboxed Shell", "description": "Commands run in isolated sandbox"},
    ],
    "releaseHighlight": "Speed and safety improvements",
    "releaseInfo": "v9.9.9 • January 1, 1999",
}


class FakeTextGenerator:
    """Scripted TextGenerator: pops one response per call; exceptions are raised."""

    def __init__(self, responses=None, handler=None):
        self.responses = list(responses or [])
        self.handler = handler
        self.calls: list[dict] = []

    async def generate(self, prompt, *, system=None, max_tokens=1024):
        self.calls.append({"prompt": prompt, "system": system, "max_tokens": max_tokens})
        if self.handler is not None:
            return self.handler(prompt, system)
        if not self.responses:
            raise AssertionError(f"unexpected text-generation call: {prompt[:80]!r}")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


class FakeImageGenerator:
    def __init__(self, mime_type="image/png", error=None):
        self.mime_type = mime_type
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def generate(self, prompt, aspect_ratio):
        self.calls.append((prompt, aspect_ratio))
        if self.error is not None:
            raise self.error
        return GeneratedImage(data=PNG_BYTES, mime_type=self.mime_type)


class FakeFetcher:
    """url → page text, or an exception to raise. Unknown URLs 404."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls: list[str] = []

    async def fetch(self, url):
        self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            raise SourceFetchError(url, status=404)
        if isinstance(page, BaseException):
            raise page
        return page


def make_release(**overrides) -> dict:
    release = {
        "id": "x-2.3.0",
        "tool": "X",
        "toolDisplayName": "Tool X",
        "version": "2.3.0",
        "date": "2026-01-05T12:00:00Z",
        "summary": "Bug fixes",
        "url": "https://example.com/x/changelog",
        "type": "release",
    }
    release.update(overrides)
    return release


@pytest.fixture(scope="session")
def project_root():
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def schemas_dir(project_root):
    return project_root / "schemas"


@pytest.fixture
def tool_x():
    return ToolConfig(
        id="X",
        display_name="TOOL X",
        primary_color="#123456",
        style="Neon accent, dark background",
        repo="acme/x",
    )


@pytest.fixture
def tools(tool_x):
    return {"X": tool_x}


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointed at tmp_path, with zero backoff so retries don't sleep."""
    return replace(
        settings,
        paths=PathsConfig(
            releases_path=tmp_path / "data" / "releases.json",
            prompts_dir=tmp_path / "generated-prompts",
            public_images_dir=tmp_path / "public" / "images" / "infographics",
            public_images_url="/images/infographics",
            remediation_result_file=tmp_path / "remediation-result.json",
        ),
        retry=RetryConfig(max_attempts=3, base_delay=0.0, compare_max_attempts=2),
    )


@pytest.fixture
def write_store(test_settings):
    def _write(releases, last_updated="2026-01-06T00:00:00Z"):
        path = test_settings.paths.releases_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"lastUpdated": last_updated, "releases": releases}, indent=2))
        return path

    return _write


@pytest.fixture
def make_service(test_settings, tools):
    from releaseforge.service import EnrichmentService

    def _make(text_gen=None, image_gen=None, fetcher=None, github=None):
        return EnrichmentService(
            settings=test_settings,
            text_gen=text_gen or FakeTextGenerator(),
            image_gen=image_gen or FakeImageGenerator(),
            fetcher=fetcher or FakeFetcher(),
            github=github,
            tools=tools,
        )

    return _make
