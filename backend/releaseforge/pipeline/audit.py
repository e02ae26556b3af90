"""
ReleaseForge — Accuracy auditor.

Second-opinion check of persisted features against their grounding
source. Every input feature gets exactly one classification; anything
the model leaves out or labels with an unknown status is counted as
FABRICATED. Advisory only, the release store is never touched.
"""

from __future__ import annotations

from typing import Any

from releaseforge.clients.web import PageFetcher
from releaseforge.errors import SourceFetchError
from releaseforge.llm.parsing import extract_json_object
from releaseforge.llm.text import TextGenerator
from releaseforge.models.features import MIN_CONTENT_LENGTH, FeatureArtifact, FeatureSet
from releaseforge.models.release import ReleaseRecord
from releaseforge.models.reports import (
    Accuracy,
    AuditedRelease,
    AuditSummary,
    FeatureValidation,
    ValidationReport,
    ValidationStatus,
)
from releaseforge.storage.artifacts import ArtifactStore
from releaseforge.utils.logging import logger

SOURCE_CHAR_LIMIT = 30_000
AUDIT_MAX_TOKENS = 1024

STATUS_ICONS = {
    ValidationStatus.VERIFIED: "✅",
    ValidationStatus.INFERRED: "🟡",
    ValidationStatus.FABRICATED: "❌",
}


def build_audit_prompt(
    feature_set: FeatureSet,
    source_text: str,
    release: ReleaseRecord,
    is_full_notes: bool,
) -> str:
    feature_list = "\n".join(f"- {f.name}: {f.description}" for f in feature_set.features)
    source_label = "release notes" if is_full_notes else "release page HTML"
    return f"""You are validating an infographic for {release.display_name} {release.version}.

The infographic claims these features:
{feature_list}

Here is the actual {source_label}:
{source_text[:SOURCE_CHAR_LIMIT]}

For each feature, determine if it is:
- VERIFIED: Clearly mentioned in the source
- INFERRED: Reasonable inference from the source
- FABRICATED: Not mentioned or supported by the source

Return JSON only:
{{
  "validations": [
    {{"feature": "...", "status": "VERIFIED|INFERRED|FABRICATED", "evidence": "..."}}
  ],
  "accuracy": "HIGH|MEDIUM|LOW",
  "summary": "..."
}}"""


def _matches(entry_name: str, feature_name: str, loose: bool = False) -> bool:
    """Exact name or "name: ..."; with loose, any entry starting with the name."""
    a, b = entry_name.strip().lower(), feature_name.strip().lower()
    if not a:
        return False
    if a == b or a.startswith(f"{b}:"):
        return True
    return loose and a.startswith(b)


def _find_entry(entries: list[dict], used: set[int], name: str, loose: bool = False) -> int | None:
    return next(
        (
            i for i, e in enumerate(entries)
            if i not in used and _matches(str(e.get("feature") or ""), name, loose)
        ),
        None,
    )


def normalize_report(raw: dict[str, Any], feature_set: FeatureSet) -> ValidationReport:
    """Exactly one validation per input feature, in input order."""
    entries = [e for e in (raw.get("validations") or []) if isinstance(e, dict)]
    used: set[int] = set()
    validations: list[FeatureValidation] = []

    # exact and "name: ..." matches are claimed before any loose prefix match
    strict: dict[int, int] = {}
    for position, feature in enumerate(feature_set.features):
        idx = _find_entry(entries, set(strict.values()), feature.name)
        if idx is not None:
            strict[position] = idx
    reserved = set(strict.values())

    for position, feature in enumerate(feature_set.features):
        match_idx = strict.get(position)
        if match_idx is None:
            match_idx = _find_entry(entries, used | reserved, feature.name, loose=True)
        # fall back to positional pairing when names were paraphrased
        if match_idx is None and position < len(entries) and position not in used | reserved:
            match_idx = position

        if match_idx is None:
            validations.append(FeatureValidation(
                feature=feature.name,
                status=ValidationStatus.FABRICATED,
                evidence="Auditor returned no classification for this feature",
            ))
            continue

        used.add(match_idx)
        entry = entries[match_idx]
        status_text = str(entry.get("status") or "").strip().upper()
        evidence = str(entry.get("evidence") or "")
        try:
            status = ValidationStatus(status_text)
        except ValueError:
            status = ValidationStatus.FABRICATED
            evidence = f"Unrecognised auditor status {status_text!r}. {evidence}".strip()

        validations.append(FeatureValidation(feature=feature.name, status=status, evidence=evidence))

    try:
        accuracy = Accuracy(str(raw.get("accuracy") or "").strip().upper())
    except ValueError:
        accuracy = Accuracy.LOW

    return ValidationReport(
        validations=validations,
        accuracy=accuracy,
        summary=str(raw.get("summary") or ""),
    )


async def audit(
    text_gen: TextGenerator,
    feature_set: FeatureSet,
    source_text: str,
    release: ReleaseRecord,
    is_full_notes: bool = False,
) -> ValidationReport:
    response = await text_gen.generate(
        build_audit_prompt(feature_set, source_text, release, is_full_notes),
        max_tokens=AUDIT_MAX_TOKENS,
    )
    return normalize_report(extract_json_object(response), feature_set)


class AccuracyAuditor:
    """Audits persisted releases: locates features + evidence, then calls audit()."""

    def __init__(self, text_gen: TextGenerator, fetcher: PageFetcher, artifacts: ArtifactStore):
        self.text_gen = text_gen
        self.fetcher = fetcher
        self.artifacts = artifacts

    async def select_evidence(
        self,
        release: ReleaseRecord,
        artifact: FeatureArtifact,
    ) -> tuple[str, bool] | None:
        """(source_text, is_full_notes) or None when nothing usable exists."""
        if artifact.source_content and len(artifact.source_content) > MIN_CONTENT_LENGTH:
            origin = artifact.source_origin.value if artifact.source_origin else "unknown"
            logger.info(
                "  Using stored sourceContent (%d chars, origin: %s)",
                len(artifact.source_content), origin,
            )
            return artifact.source_content, True

        if release.full_notes and len(release.full_notes) > MIN_CONTENT_LENGTH:
            logger.info("  Using stored fullNotes (%d chars)", len(release.full_notes))
            return release.full_notes, True

        if not release.url:
            return None

        logger.info("  Fetching from URL (no stored source available)")
        try:
            page = await self.fetcher.fetch(release.url)
        except SourceFetchError as exc:
            logger.warning("  Error fetching: %s", exc)
            return None
        return page, False

    async def audit_release(self, release: ReleaseRecord) -> AuditedRelease:
        logger.info("📋 Validating: %s %s", release.display_name, release.version)
        audited = AuditedRelease(release_id=release.id, tool=release.tool, version=release.version)

        path = self.artifacts.find_features(release.tool, release.version)
        if path is None:
            logger.info("  ⚠️  No features file found - skipping")
            audited.skipped_reason = "no features file"
            return audited

        artifact = self.artifacts.load_features(path)
        audited.features_file = path.name
        logger.info("  Features file: %s (%d features)", path.name, len(artifact.features))

        evidence = await self.select_evidence(release, artifact)
        if evidence is None:
            logger.info("  ⚠️  Could not fetch source - skipping")
            audited.skipped_reason = "no source available"
            return audited

        source_text, is_full_notes = evidence
        report = await audit(self.text_gen, artifact.feature_set(), source_text, release, is_full_notes)
        audited.report = report

        logger.info("  Accuracy: %s", report.accuracy.value)
        logger.info("  Summary: %s", report.summary)
        for v in report.validations:
            logger.info("  %s %s: %s", STATUS_ICONS[v.status], v.feature, v.status.value)
            if v.status == ValidationStatus.FABRICATED:
                logger.info("     Evidence: %s", v.evidence)
        return audited

    async def audit_many(self, releases: list[ReleaseRecord]) -> AuditSummary:
        logger.info("🔍 Validating %d release(s)...", len(releases))
        summary = AuditSummary()
        for release in releases:
            summary.add(await self.audit_release(release))

        logger.info("📊 VALIDATION SUMMARY")
        logger.info("✅ Verified:   %d", summary.verified)
        logger.info("🟡 Inferred:   %d", summary.inferred)
        logger.info("❌ Fabricated: %d", summary.fabricated)
        logger.info("📈 Accuracy: %.1f%% verified", summary.verified_pct)
        if summary.fabricated:
            logger.warning("⚠️  Some features may be inaccurate. Consider regenerating affected infographics.")
        return summary
