"""
ReleaseForge — Remediation orchestrator.

Best-effort recovery for one release whose infographic was flagged as
inaccurate or empty. Strategies run in order until one yields features:

  1. direct changelog parse        (no text-generation call)
  2. alternative changelog URLs    (one call per fetched page)
  3. inference from sparse notes   (one call)
  4. extraction from 1/2 content   (one call)
  5. synthesize 1:1 + update store

Every text-generation call is charged to a per-run CallBudget; running
out of budget ends the run with status `failed`, not an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from releaseforge.clients.web import PageFetcher
from releaseforge.errors import (
    BudgetExhaustedError,
    ReleaseForgeError,
    ReleaseNotFoundError,
    UnknownToolError,
)
from releaseforge.llm.budget import BudgetedTextGenerator, CallBudget
from releaseforge.llm.image import ImageGenerator
from releaseforge.llm.parsing import VERSION_NOT_FOUND, Found, extract_json_object, interpret_isolation
from releaseforge.llm.text import TextGenerator
from releaseforge.models.features import FeatureArtifact, FeatureSet, SourceContent, SourceOrigin
from releaseforge.models.release import ReleaseRecord, format_release_info
from releaseforge.models.reports import RemediationResult, RemediationStatus
from releaseforge.pipeline.extract import extract_features
from releaseforge.pipeline.synthesize import apply_artifact, build_image_prompt, synthesize
from releaseforge.pipeline.validate import validate_features
from releaseforge.storage.artifacts import ArtifactStore, base_filename, write_remediation_result
from releaseforge.storage.release_store import ReleaseStore
from releaseforge.tools.registry import ToolConfig, require_tool
from releaseforge.utils.logging import logger

CHANGELOG_MIN_CHARS = 30
ALTERNATIVE_MIN_CHARS = 50
INFERENCE_MIN_CHARS = 10
ALTERNATIVE_PAGE_LIMIT = 40_000
REMEDIATION_FEATURE_COUNT = 6

FAILED_ANALYSIS = """Could not remediate infographic for {tool} {version}.

Possible reasons:
- The release has very minimal content (single-line bugfix)
- The version was not found in any source
- API call limit reached before finding usable content

This release may not warrant an infographic if it's just a minor patch."""


@dataclass
class StrategyOutcome:
    success: bool
    reason: str = ""
    content: str | None = None
    features: FeatureSet | None = None
    source: str = ""


def find_changelog_section(markdown: str, version: str) -> str | None:
    """Body of the `## <version>` section, up to the next `## <digit>` heading."""
    bare = re.escape(version.removeprefix("v"))
    pattern = re.compile(rf"^## v?{bare}[ \t]*\n([\s\S]*?)(?=^## \d|\Z)", re.MULTILINE)
    match = pattern.search(markdown)
    return match.group(1).strip() if match else None


def build_alternative_prompt(page: str, version: str) -> str:
    return f"""Extract the release notes for version {version} from this content.

IMPORTANT:
- Find the section specifically for version {version}
- Return ONLY the changes for this version, not other versions
- If you cannot find this specific version, respond with: "{VERSION_NOT_FOUND}"
- Be comprehensive - include all features, fixes, and improvements

Content (first {ALTERNATIVE_PAGE_LIMIT} chars):
{page[:ALTERNATIVE_PAGE_LIMIT]}"""


def build_inference_prompt(release: ReleaseRecord, existing: str) -> str:
    return f"""Analyze this release note and extract meaningful features for an infographic.

Release: {release.display_name} {release.version}
Content: "{existing}"

Even if this is a small bugfix release, extract what information IS available.

Return JSON with this structure:
{{
  "features": [
    {{"icon": "emoji", "name": "2-4 words", "description": "5-8 words"}}
  ],
  "releaseHighlight": "one sentence summary",
  "releaseInfo": "{format_release_info(release)}",
  "confidence": "high|medium|low"
}}

RULES:
- Only extract what's actually mentioned
- For bugfix releases, the feature can be the fix itself
- Use appropriate icons: 🔧 for fixes, ⚡ for improvements, 🆕 for new features
- Minimum 1 feature, even if it's just "Bug Fix" with the fix description"""


class RemediationOrchestrator:
    def __init__(
        self,
        text_gen: TextGenerator,
        fetcher: PageFetcher,
        image_gen: ImageGenerator,
        artifacts: ArtifactStore,
        store: ReleaseStore,
        public_dir: Path,
        public_url: str = "/images/infographics",
        result_path: Path | None = None,
        max_api_calls: int = 3,
        max_tokens: int = 4000,
        footer: str = "havoptic.com",
        tagline: str = "Track AI Tool Releases",
        tools: dict[str, ToolConfig] | None = None,
    ):
        self.text_gen = text_gen
        self.fetcher = fetcher
        self.image_gen = image_gen
        self.artifacts = artifacts
        self.store = store
        self.public_dir = public_dir
        self.public_url = public_url
        self.result_path = result_path
        self.max_api_calls = max_api_calls
        self.max_tokens = max_tokens
        self.footer = footer
        self.tagline = tagline
        self.tools = tools

    # ── Strategies ─────────────────────────────────────────

    async def try_changelog_direct(self, tool: ToolConfig, version: str) -> StrategyOutcome:
        logger.info("📋 Strategy 1: Direct CHANGELOG parsing")
        if not tool.changelog_url:
            return StrategyOutcome(False, "No canonical changelog configured")

        try:
            markdown = await self.fetcher.fetch(tool.changelog_url)
        except ReleaseForgeError as exc:
            return StrategyOutcome(False, exc.message)

        section = find_changelog_section(markdown, version)
        if section is None:
            return StrategyOutcome(False, f"Version {version} not found in CHANGELOG")

        logger.info("  Found version %s section: %d chars", version, len(section))
        if len(section) < CHANGELOG_MIN_CHARS:
            return StrategyOutcome(False, f"Version section too short ({len(section)} chars)")
        return StrategyOutcome(True, content=section, source=tool.changelog_url)

    async def try_alternative_urls(
        self,
        text_gen: TextGenerator,
        tool: ToolConfig,
        version: str,
    ) -> StrategyOutcome:
        logger.info("🔗 Strategy 2: Alternative URLs")
        if not tool.alternative_urls:
            return StrategyOutcome(False, "No alternative URLs configured")

        for url in tool.alternative_urls:
            try:
                page = await self.fetcher.fetch(url)
            except ReleaseForgeError as exc:
                logger.info("  Failed to fetch %s: %s", url, exc.message)
                continue

            try:
                response = await text_gen.generate(build_alternative_prompt(page, version))
            except BudgetExhaustedError as exc:
                return StrategyOutcome(False, exc.message)
            except ReleaseForgeError as exc:
                logger.info("  Extraction from %s failed: %s", url, exc.message)
                continue

            result = interpret_isolation(response, version)
            if not isinstance(result, Found):
                logger.info("  Version not found in %s", url)
                continue
            if len(result.content) > ALTERNATIVE_MIN_CHARS:
                logger.info("  Found content from %s: %d chars", url, len(result.content))
                return StrategyOutcome(True, content=result.content, source=url)

        return StrategyOutcome(False, "No content found in alternative URLs")

    async def try_content_analysis(
        self,
        text_gen: TextGenerator,
        release: ReleaseRecord,
    ) -> StrategyOutcome:
        logger.info("🧠 Strategy 3: Content analysis and inference")
        existing = release.stored_notes
        if len(existing) < INFERENCE_MIN_CHARS:
            return StrategyOutcome(False, "No existing content to analyze")

        try:
            raw = extract_json_object(await text_gen.generate(build_inference_prompt(release, existing)))
            confidence = str(raw.pop("confidence", "") or "").lower()
            features = FeatureSet.model_validate(raw)
        except PydanticValidationError as exc:
            return StrategyOutcome(False, f"Malformed analysis response: {exc.error_count()} errors")
        except ReleaseForgeError as exc:
            return StrategyOutcome(False, exc.message)

        features.release_info = format_release_info(release)
        if not features.features or confidence == "low":
            return StrategyOutcome(False, "Could not extract meaningful features")

        outcome = validate_features(features)
        if not outcome.valid:
            return StrategyOutcome(False, outcome.reason)

        logger.info(
            "  Extracted %d features with %s confidence",
            len(features.features), confidence or "unstated",
        )
        return StrategyOutcome(True, features=features, source="analysis")

    # ── Run ────────────────────────────────────────────────

    def _finish(self, result: RemediationResult) -> RemediationResult:
        if self.result_path is not None:
            write_remediation_result(self.result_path, result)
        return result

    async def remediate(
        self,
        tool_id: str,
        version: str,
        issue: str | None = None,
        attempt: int = 1,
    ) -> RemediationResult:
        budget = CallBudget(self.max_api_calls)

        def _result(status: RemediationStatus, analysis: str, actions: str = "None", features=None):
            return RemediationResult(
                status=status,
                analysis=analysis,
                actions=actions,
                features=features.model_dump(by_alias=True) if features else None,
                apiCallsUsed=budget.used,
                tool=tool_id,
                version=version,
                issue=issue,
                attempt=attempt,
            )

        logger.info("🔧 Remediating infographic for %s %s", tool_id, version)
        logger.info("   Issue: #%s, Attempt: %d", issue, attempt)
        logger.info("   API call limit: %d", self.max_api_calls)

        try:
            result = await self._run(tool_id, version, budget, _result)
        except (UnknownToolError, ReleaseNotFoundError) as exc:
            result = _result(RemediationStatus.ERROR, exc.message)
        except Exception as exc:
            logger.exception("Remediation crashed")
            result = _result(RemediationStatus.ERROR, str(exc), "Remediation crashed")

        return self._finish(result)

    async def _run(self, tool_id, version, budget, _result) -> RemediationResult:
        tool = require_tool(tool_id, self.tools)
        document = self.store.load()
        release = document.find(tool_id, version)
        if release is None:
            raise ReleaseNotFoundError(tool_id, version)

        logger.info("📦 Found release: %s", release.id)
        logger.info("   Current summary: %s...", release.summary[:100])

        text_gen = BudgetedTextGenerator(self.text_gen, budget, max_tokens=self.max_tokens)
        strategies: list[str] = []
        content: str | None = None
        content_source = ""
        features: FeatureSet | None = None

        s1 = await self.try_changelog_direct(tool, release.version)
        strategies.append(f"1. Direct CHANGELOG: {'✅' if s1.success else '❌'} {s1.reason}".rstrip())
        if s1.success:
            content, content_source = s1.content, s1.source

        if content is None and not budget.exhausted:
            s2 = await self.try_alternative_urls(text_gen, tool, release.version)
            strategies.append(f"2. Alternative URLs: {'✅' if s2.success else '❌'} {s2.reason}".rstrip())
            if s2.success:
                content, content_source = s2.content, s2.source

        if content is None and not budget.exhausted:
            s3 = await self.try_content_analysis(text_gen, release)
            strategies.append(f"3. Content analysis: {'✅' if s3.success else '❌'} {s3.reason}".rstrip())
            if s3.success:
                features = s3.features

        if content is not None and features is None and not budget.exhausted:
            try:
                candidate = await extract_features(text_gen, release, REMEDIATION_FEATURE_COUNT, content)
                outcome = validate_features(candidate)
                if outcome.valid:
                    features = candidate
                    strategies.append(
                        f"4. Feature extraction: ✅ Extracted {len(candidate.features)} features"
                    )
                else:
                    strategies.append(f"4. Feature extraction: ❌ {outcome.reason}")
            except ReleaseForgeError as exc:
                strategies.append(f"4. Feature extraction: ❌ {exc.message}")

        if budget.exhausted and features is None:
            strategies.append(f"API call limit reached ({budget.limit})")

        if features is not None:
            try:
                filename = await self._deliver(release, tool, features, content, content_source, document)
            except ReleaseForgeError as exc:
                strategies.append(f"5. Image generation: ❌ {exc.message}")
            else:
                strategies.append(f"5. Image generation: ✅ {filename}")
                logger.info("✅ Remediation successful!")
                return _result(
                    RemediationStatus.FIXED,
                    f"Successfully remediated infographic for {tool_id} {version}",
                    "\n".join(strategies),
                    features,
                )

        logger.info("❌ Remediation failed")
        return _result(
            RemediationStatus.FAILED,
            FAILED_ANALYSIS.format(tool=tool_id, version=version),
            "\n".join(strategies),
        )

    async def _deliver(self, release, tool, features, content, content_source, document) -> str:
        logger.info("🎨 Generating infographic...")
        base = base_filename(release)
        prompt = build_image_prompt(tool, features, "1:1", self.footer, self.tagline)
        self.artifacts.write_prompt(base, "1:1", prompt)

        ref = await synthesize(
            self.image_gen, self.artifacts, base, prompt, "1:1",
            public_dir=self.public_dir, public_url=self.public_url,
        )
        source = SourceContent(text=content, origin=SourceOrigin.FETCHED) if content else None
        self.artifacts.write_features(
            base,
            FeatureArtifact.from_feature_set(features, source, content_source or release.url),
        )
        if apply_artifact(document, release.id, ref):
            self.store.save(document)
        return ref.filename
