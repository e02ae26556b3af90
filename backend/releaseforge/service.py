"""
ReleaseForge — Enrichment service.

The four exposed operations (generate, generate_all_missing, validate,
remediate) wired to concrete collaborators. The CLI and the HTTP API
both go through here; neither talks to pipeline modules directly.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

from releaseforge.clients.github import GitHubClient
from releaseforge.clients.web import PageFetcher
from releaseforge.core.config import AppConfig, require_api_key
from releaseforge.errors import MissingArgumentError, ReleaseNotFoundError
from releaseforge.llm.image import GeminiImageClient, ImageGenerator
from releaseforge.llm.text import GeminiTextGenerator, TextGenerator
from releaseforge.models.job import BatchResult, GenerationResult
from releaseforge.models.release import ReleaseRecord
from releaseforge.models.reports import AuditSummary, RemediationResult
from releaseforge.pipeline.audit import AccuracyAuditor
from releaseforge.pipeline.orchestrator import GenerationJob, GenerationOptions, PipelineDeps
from releaseforge.pipeline.remediate import RemediationOrchestrator
from releaseforge.pipeline.sourcing import SourceResolver
from releaseforge.storage.artifacts import ArtifactStore
from releaseforge.storage.release_store import ReleaseStore
from releaseforge.tools.registry import TOOLS, ToolConfig, get_tool, require_tool
from releaseforge.utils.logging import banner, logger


class EnrichmentService:
    def __init__(
        self,
        settings: AppConfig,
        text_gen: TextGenerator,
        image_gen: ImageGenerator | None,
        fetcher: PageFetcher,
        github: GitHubClient | None,
        store: ReleaseStore | None = None,
        artifacts: ArtifactStore | None = None,
        tools: dict[str, ToolConfig] | None = None,
    ):
        self.settings = settings
        self.text_gen = text_gen
        self.image_gen = image_gen
        self.fetcher = fetcher
        self.github = github
        self.store = store or ReleaseStore(settings.paths.releases_path)
        self.artifacts = artifacts or ArtifactStore(settings.paths.prompts_dir)
        self.tools = tools if tools is not None else TOOLS

        self.resolver = SourceResolver(
            text_gen=text_gen,
            fetcher=fetcher,
            github=github,
            artifacts=self.artifacts,
            max_attempts=settings.retry.max_attempts,
            base_delay=settings.retry.base_delay,
            compare_max_attempts=settings.retry.compare_max_attempts,
        )

    def _deps(self) -> PipelineDeps:
        return PipelineDeps(
            text_gen=self.text_gen,
            image_gen=self.image_gen,
            resolver=self.resolver,
            artifacts=self.artifacts,
            public_dir=self.settings.paths.public_images_dir,
            public_url=self.settings.paths.public_images_url,
            footer=self.settings.site_footer,
            tagline=self.settings.site_tagline,
            max_attempts=self.settings.retry.max_attempts,
            base_delay=self.settings.retry.base_delay,
        )

    # ── generate ───────────────────────────────────────────

    async def generate(
        self,
        tool: str,
        version: str | None = None,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """Single release. The store is rewritten only when the job changed it."""
        if not tool:
            raise MissingArgumentError(["tool"])
        tool_config = require_tool(tool, self.tools)

        document = self.store.load()
        release = document.find(tool, version)
        if release is None:
            raise ReleaseNotFoundError(tool, version)

        job = GenerationJob(release, tool_config, document, self._deps(), options)
        result = await job.run()
        if job.store_changed:
            self.store.save(document)
        return result

    def missing_releases(self, releases: list[ReleaseRecord], max_age_days: int) -> list[ReleaseRecord]:
        cutoff = datetime.now(timezone.utc) - timedelta(days=max_age_days)
        return [
            r for r in releases
            if not r.infographic_url
            and get_tool(r.tool, self.tools) is not None
            and r.released_at >= cutoff
        ]

    async def generate_all_missing(
        self,
        max_age_days: int = 7,
        options: GenerationOptions | None = None,
    ) -> BatchResult:
        """Sequential batch. One failing release never aborts the rest."""
        document = self.store.load()
        batch = BatchResult()

        logger.info("🔍 Finding releases missing infographics (last %d days)...", max_age_days)
        missing = self.missing_releases(document.releases, max_age_days)
        if not missing:
            logger.info("✅ All releases have infographics!")
            return batch

        logger.info("Found %d releases missing infographics:", len(missing))
        for r in missing:
            logger.info("  - %s %s (%s)", r.tool, r.version, r.date)

        store_changed = False
        for release in missing:
            job = GenerationJob(
                release, require_tool(release.tool, self.tools), document, self._deps(), options,
            )
            batch.record(await job.run())
            store_changed |= job.store_changed

        if store_changed and batch.success:
            self.store.save(document)

        self._log_batch_summary(batch)
        return batch

    @staticmethod
    def _log_batch_summary(batch: BatchResult) -> None:
        banner("SUMMARY")
        logger.info("✅ Success: %d", len(batch.success))
        for e in batch.success:
            logger.info("   - %s v%s", e.tool, e.version)
        if batch.skipped:
            logger.info("⏭️  Skipped: %d", len(batch.skipped))
        if batch.failed:
            logger.info("❌ Failed: %d", len(batch.failed))
            for e in batch.failed:
                logger.info("   - %s v%s: %s", e.tool, e.version, e.error)

    # ── validate ───────────────────────────────────────────

    async def validate(
        self,
        tool: str | None = None,
        version: str | None = None,
        all_releases: bool = False,
    ) -> AuditSummary:
        if not tool and not all_releases:
            raise MissingArgumentError(["tool", "all"])

        document = self.store.load()
        if all_releases:
            releases = [r for r in document.releases if r.infographic_url]
        else:
            release = document.find(tool, version)
            if release is None:
                raise ReleaseNotFoundError(tool, version)
            releases = [release]

        auditor = AccuracyAuditor(self.text_gen, self.fetcher, self.artifacts)
        return await auditor.audit_many(releases)

    # ── remediate ──────────────────────────────────────────

    async def remediate(
        self,
        tool: str,
        version: str,
        issue: str | None = None,
        attempt: int = 1,
        result_path: Path | None = None,
    ) -> RemediationResult:
        missing = [name for name, value in (("tool", tool), ("version", version)) if not value]
        if missing:
            raise MissingArgumentError(missing)

        orchestrator = RemediationOrchestrator(
            text_gen=self.text_gen,
            fetcher=self.fetcher,
            image_gen=self.image_gen,
            artifacts=self.artifacts,
            store=self.store,
            public_dir=self.settings.paths.public_images_dir,
            public_url=self.settings.paths.public_images_url,
            result_path=result_path if result_path is not None else self.settings.paths.remediation_result_file,
            max_api_calls=self.settings.remediation_max_api_calls,
            max_tokens=self.settings.remediation_max_tokens,
            footer=self.settings.site_footer,
            tagline=self.settings.site_tagline,
            tools=self.tools,
        )
        return await orchestrator.remediate(tool, version, issue=issue, attempt=attempt)


def build_service(settings: AppConfig) -> EnrichmentService:
    """Production wiring: Gemini text + image, live web and GitHub clients."""
    api_key = require_api_key(settings)
    return EnrichmentService(
        settings=settings,
        text_gen=GeminiTextGenerator(api_key, settings.gemini.text_model),
        image_gen=GeminiImageClient(
            api_key=api_key,
            model=settings.gemini.image_model,
            base_url=settings.gemini.api_base,
            image_size=settings.gemini.image_size,
        ),
        fetcher=PageFetcher(timeout=settings.http_timeout),
        github=GitHubClient(
            api_base=settings.github.api_base,
            token=settings.github.token,
            rate_limit_floor=settings.github.rate_limit_floor,
            max_pull_requests=settings.github.max_pull_requests,
            max_compare_pages=settings.github.max_compare_pages,
            timeout=settings.http_timeout,
        ),
    )
