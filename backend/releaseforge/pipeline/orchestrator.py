"""
ReleaseForge — Generation job orchestrator.

Runs one release through the enrichment pipeline as a state machine:

  RECEIVED → SOURCED → EXTRACTED → SYNTHESIZED → DELIVERED
          ↘ SKIPPED                ↘ FAILED

Each step is timed, logged, and recorded in the GenerationResult.
The job mutates the in-memory ReleasesDocument only; persisting the
store is the caller's decision (once per release, or once per batch).
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from releaseforge.errors import ReleaseForgeError, RetryExhaustedError
from releaseforge.llm.image import ImageGenerator
from releaseforge.llm.text import TextGenerator
from releaseforge.models.features import FeatureArtifact, FeatureSet, SourceContent
from releaseforge.models.job import GenerationResult, JobState, StepTiming
from releaseforge.models.release import ReleaseRecord, ReleasesDocument
from releaseforge.models.reports import FailureReport, ReleaseSnapshot
from releaseforge.pipeline.extract import ExtractionAttempts, extract_validated
from releaseforge.pipeline.sourcing import SourceResolver
from releaseforge.pipeline.synthesize import apply_artifact, build_image_prompt, formats_for, synthesize
from releaseforge.storage.artifacts import ArtifactStore, base_filename
from releaseforge.tools.registry import ToolConfig
from releaseforge.utils.logging import banner, logger


@dataclass
class GenerationOptions:
    count: int = 6
    force: bool = False
    generate_image: bool = True
    update_releases: bool = True
    all_formats: bool = False
    use_stored_source: bool = False


@dataclass
class PipelineDeps:
    text_gen: TextGenerator
    image_gen: ImageGenerator | None
    resolver: SourceResolver
    artifacts: ArtifactStore
    public_dir: Path
    public_url: str = "/images/infographics"
    footer: str = "havoptic.com"
    tagline: str = "Track AI Tool Releases"
    max_attempts: int = 3
    base_delay: float = 1.0


class GenerationJob:
    """
    State-machine orchestrator for a single release.

    Never raises for pipeline failures: the outcome, including the error
    message and failure report filename, is carried in the result.
    """

    def __init__(
        self,
        release: ReleaseRecord,
        tool: ToolConfig,
        document: ReleasesDocument,
        deps: PipelineDeps,
        options: GenerationOptions | None = None,
    ):
        self.job_id = uuid.uuid4().hex[:12]
        self.release = release
        self.tool = tool
        self.document = document
        self.deps = deps
        self.options = options or GenerationOptions()
        self.state = JobState.RECEIVED
        self.timings: list[StepTiming] = []
        self.source: SourceContent | None = None
        self.feature_set: FeatureSet | None = None
        self.store_changed = False

    def _record_step(self, name: str, start: float, status: str = "ok", detail: str = ""):
        ms = int((time.perf_counter() - start) * 1000)
        self.timings.append(StepTiming(step=name, duration_ms=ms, status=status, detail=detail))
        symbol = "✓" if status == "ok" else ("⊘" if status == "skipped" else "✗")
        logger.info("  %s %s — %dms %s", symbol, name, ms, detail)

    def _result(self, **kwargs) -> GenerationResult:
        return GenerationResult(
            job_id=self.job_id,
            tool=self.release.tool,
            version=self.release.version,
            release_id=self.release.id,
            state=self.state,
            feature_set=self.feature_set,
            source_origin=self.source.origin if self.source else None,
            timings=self.timings,
            warnings=self.source.warnings if self.source else [],
            **kwargs,
        )

    async def run(self) -> GenerationResult:
        banner(f"Processing: {self.release.tool} {self.release.version}")

        if self.release.infographic_url and not self.options.force:
            logger.info("Skipping - infographic already exists: %s", self.release.infographic_url)
            self.state = JobState.SKIPPED
            self._record_step("skip_check", time.perf_counter(), "skipped", "infographic exists")
            return self._result(success=True, skipped=True)

        logger.info("[%s] Date: %s", self.job_id, self.release.date)
        logger.info("[%s] Summary: %s", self.job_id, self.release.summary)

        await self._step_source()

        attempts = ExtractionAttempts()
        try:
            await self._step_extract(attempts)
        except RetryExhaustedError as exc:
            self.state = JobState.FAILED
            logger.error("❌ FATAL: Feature extraction failed after %d attempts", exc.attempts)
            report = self._failure_report(exc, attempts)
            return self._result(success=False, error=str(exc.last_error), failure_report=report)

        base = base_filename(self.release)
        try:
            artifacts = await self._step_synthesize(base)
        except ReleaseForgeError as exc:
            self.state = JobState.FAILED
            return self._result(success=False, error=exc.message)

        self._step_deliver(base, artifacts)
        return self._result(success=True, artifacts=artifacts)

    async def _step_source(self):
        t = time.perf_counter()
        self.source = await self.deps.resolver.resolve_source(
            self.release, self.tool, use_stored_source=self.options.use_stored_source,
        )
        self.state = JobState.SOURCED
        status = "ok" if self.source.sufficient else "failed"
        self._record_step(
            "source", t, status,
            detail=f"{self.source.origin.value} → {self.source.length} chars",
        )

    async def _step_extract(self, attempts: ExtractionAttempts):
        t = time.perf_counter()
        try:
            self.feature_set = await extract_validated(
                self.deps.text_gen,
                self.release,
                self.options.count,
                self.source.text if self.source else None,
                max_attempts=self.deps.max_attempts,
                base_delay=self.deps.base_delay,
                attempts=attempts,
            )
        except RetryExhaustedError:
            self._record_step("extract", t, "failed", f"{attempts.count} attempts")
            raise
        self.state = JobState.EXTRACTED
        self._record_step("extract", t, detail=f"{len(self.feature_set.features)} features")

    async def _step_synthesize(self, base: str):
        t = time.perf_counter()
        refs = []
        for fmt in formats_for(self.options.all_formats, self.options.update_releases):
            prompt = build_image_prompt(
                self.tool, self.feature_set, fmt, self.deps.footer, self.deps.tagline,
            )
            self.deps.artifacts.write_prompt(base, fmt, prompt)

            if not self.options.generate_image or self.deps.image_gen is None:
                continue
            try:
                ref = await synthesize(
                    self.deps.image_gen,
                    self.deps.artifacts,
                    base,
                    prompt,
                    fmt,
                    public_dir=self.deps.public_dir if self.options.update_releases else None,
                    public_url=self.deps.public_url,
                )
            except ReleaseForgeError as exc:
                logger.error("Failed to generate image for %s: %s", fmt, exc.message)
                self._record_step("synthesize", t, "failed", f"{fmt}: {exc.message}")
                raise
            refs.append(ref)

        self.state = JobState.SYNTHESIZED
        status = "ok" if refs else "skipped"
        self._record_step("synthesize", t, status, detail=f"{len(refs)} images")
        return refs

    def _step_deliver(self, base: str, refs):
        t = time.perf_counter()
        artifact = FeatureArtifact.from_feature_set(self.feature_set, self.source, self.release.url)
        self.deps.artifacts.write_features(base, artifact)

        if self.options.update_releases:
            for ref in refs:
                self.store_changed |= apply_artifact(self.document, self.release.id, ref)

        self.state = JobState.DELIVERED
        self._record_step("deliver", t, detail=f"store {'updated' if self.store_changed else 'unchanged'}")

    def _failure_report(self, exc: RetryExhaustedError, attempts: ExtractionAttempts) -> str | None:
        candidate = attempts.last_candidate
        report = FailureReport(
            tool=self.release.tool,
            version=self.release.version,
            reason=str(exc.last_error),
            releaseData=ReleaseSnapshot.of(self.release),
            fetchedContentLength=self.source.length if self.source else 0,
            extractedFeatures=candidate.model_dump(by_alias=True) if candidate else None,
            sourceUrl=self.release.url,
            retryAttempts=attempts.count,
        )
        try:
            return self.deps.artifacts.write_failure_report(report)
        except OSError as exc:
            logger.error("Failed to write failure report: %s", exc)
            return None
