"""
ReleaseForge — Content sourcing resolver.

Picks the grounding text for extraction, in strict priority order:
  1. sourceContent cached by a previous run (opt-in)
  2. stored fullNotes / summary when long enough
  3. fetched changelog page, version section isolated by the text model
  4. GitHub compare API (commits + PR summaries)
  5. best available text, with an insufficiency warning

Never raises for thin content; the caller decides what to do with it.
"""

from __future__ import annotations

from releaseforge.clients.github import GitHubClient, parse_compare_reference
from releaseforge.clients.web import PageFetcher
from releaseforge.errors import RetryExhaustedError
from releaseforge.llm.parsing import Found, IsolationResult
from releaseforge.llm.text import TextGenerator
from releaseforge.models.features import MIN_CONTENT_LENGTH, SourceContent, SourceOrigin
from releaseforge.models.release import ReleaseRecord
from releaseforge.pipeline.isolate import isolate_version_content
from releaseforge.storage.artifacts import ArtifactStore
from releaseforge.tools.registry import ToolConfig
from releaseforge.utils.logging import logger
from releaseforge.utils.retry import with_retry


class SourceResolver:
    def __init__(
        self,
        text_gen: TextGenerator,
        fetcher: PageFetcher,
        github: GitHubClient | None,
        artifacts: ArtifactStore,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        compare_max_attempts: int = 2,
    ):
        self.text_gen = text_gen
        self.fetcher = fetcher
        self.github = github
        self.artifacts = artifacts
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.compare_max_attempts = compare_max_attempts

    async def resolve_source(
        self,
        release: ReleaseRecord,
        tool: ToolConfig | None = None,
        use_stored_source: bool = False,
    ) -> SourceContent:
        if use_stored_source:
            stored = self.artifacts.load_stored_source(release.tool, release.version)
            if stored:
                logger.info("Using stored source content (%d chars)", len(stored))
                return SourceContent(text=stored, origin=SourceOrigin.STORED)

        notes = release.stored_notes
        if len(notes) >= MIN_CONTENT_LENGTH:
            logger.info("Using stored notes (%d chars)", len(notes))
            return SourceContent(text=notes, origin=SourceOrigin.FULL_NOTES)

        logger.info("Content is sparse (%d chars), looking for richer sources...", len(notes))
        warnings: list[str] = []

        fetched: str | None = None
        if release.url:
            fetched = await self._fetch_isolated(release, warnings)
            if fetched is not None and len(fetched) >= MIN_CONTENT_LENGTH:
                return SourceContent(text=fetched, origin=SourceOrigin.FETCHED, warnings=warnings)

        compare = await self._compare_content(release, tool, warnings)
        if compare is not None and len(compare) >= MIN_CONTENT_LENGTH:
            logger.info("✅ Using content from GitHub compare API")
            return SourceContent(text=compare, origin=SourceOrigin.COMPARE, warnings=warnings)

        if fetched:
            best = SourceContent(text=fetched, origin=SourceOrigin.FETCHED, warnings=warnings)
        else:
            best = SourceContent(text=notes, origin=SourceOrigin.FULL_NOTES, warnings=warnings)

        message = (
            f"Release has minimal content ({best.length} chars); "
            "generated infographic may not be accurate"
        )
        logger.warning("⚠️  %s", message)
        best.warnings.append(message)
        return best

    async def _fetch_isolated(self, release: ReleaseRecord, warnings: list[str]) -> str | None:
        """Fetch + isolate with retries. A NotFound answer is final for this step."""

        async def _attempt(attempt: int) -> IsolationResult:
            page = await self.fetcher.fetch(release.url)
            return await isolate_version_content(self.text_gen, page, release.version)

        try:
            result = await with_retry(
                _attempt,
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                name="Release notes fetch",
            )
        except RetryExhaustedError as exc:
            message = f"Failed to fetch release notes after {exc.attempts} attempts: {exc.last_error}"
            logger.warning("⚠️  %s", message)
            warnings.append(message)
            return None

        if isinstance(result, Found):
            logger.info("  Fetched %d characters of release notes", len(result.content))
            return result.content

        warnings.append(result.reason)
        return None

    async def _compare_content(
        self,
        release: ReleaseRecord,
        tool: ToolConfig | None,
        warnings: list[str],
    ) -> str | None:
        if self.github is None:
            return None

        logger.info("📊 Content still sparse, trying GitHub compare API fallback...")
        default_repo = tool.repo if tool else None
        ref = (
            parse_compare_reference(release.stored_notes, default_repo)
            or parse_compare_reference(release.summary, default_repo)
        )
        if ref is None:
            logger.info("   No compare URL found in release notes")
            return None

        try:
            content = await with_retry(
                lambda attempt: self.github.build_compare_content(ref),
                max_attempts=self.compare_max_attempts,
                base_delay=self.base_delay,
                name="GitHub compare",
            )
        except RetryExhaustedError as exc:
            message = f"Compare API fallback failed: {exc.last_error}"
            logger.warning("   %s", message)
            warnings.append(message)
            return None

        logger.info("  Built %d chars of content from compare data", len(content))
        return content
