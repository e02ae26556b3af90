"""
ReleaseForge — Feature extractor.

Turns grounding text into a FeatureSet via the text-generation service.
releaseInfo is computed locally and always overwritten onto the result;
the model is only trusted for features and the highlight line.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError

from releaseforge.errors import ExtractionParseError, FeatureValidationError
from releaseforge.llm.parsing import extract_json_object
from releaseforge.llm.text import TextGenerator
from releaseforge.models.features import FeatureSet
from releaseforge.models.release import ReleaseRecord, format_release_date, format_release_info
from releaseforge.pipeline.validate import validate_features
from releaseforge.utils.logging import logger
from releaseforge.utils.retry import with_retry

EXTRACTION_MAX_TOKENS = 1024
ICON_PALETTE = "⚡🚀🧠🤖🔌🔗🔒🛠️💻📊👥🆕"


def build_system_prompt(release_info: str, count: int) -> str:
    return f"""You extract features from release notes. For each feature provide:
- icon (emoji from: {ICON_PALETTE})
- name (2-4 words)
- description (5-8 words, benefit-focused)

Return JSON only: {{"features": [{{icon, name, description}}], "releaseHighlight": "...", "releaseInfo": "{release_info}"}}

IMPORTANT:
- Use the exact releaseInfo provided above. Do not change the version or date.
- Only extract features that are ACTUALLY mentioned in the release notes.
- NEVER invent or hallucinate features that aren't explicitly described.
- If there are fewer than {count} features, return only what's available."""


def build_user_prompt(release: ReleaseRecord, count: int, notes: str) -> str:
    return f"""Extract the top {count} features from this release:

Tool: {release.display_name}
Version: {release.version}
Release Date: {format_release_date(release.date)}

Release Notes:
{notes}

Focus on the most impactful user-facing features. Only include features explicitly mentioned in the release notes above."""


async def extract_features(
    text_gen: TextGenerator,
    release: ReleaseRecord,
    count: int,
    source_text: str | None = None,
) -> FeatureSet:
    """
    One extraction call. Raises ExtractionParseError when no usable JSON
    object comes back.
    """
    release_info = format_release_info(release)
    notes = source_text or release.summary

    response = await text_gen.generate(
        build_user_prompt(release, count, notes),
        system=build_system_prompt(release_info, count),
        max_tokens=EXTRACTION_MAX_TOKENS,
    )
    raw = extract_json_object(response)

    try:
        feature_set = FeatureSet.model_validate(raw)
    except PydanticValidationError as exc:
        raise ExtractionParseError(str(exc), raw=response) from exc

    feature_set.features = feature_set.features[:count]
    feature_set.release_info = release_info
    return feature_set


class ExtractionAttempts:
    """Keeps the last candidate so a terminal failure can be reported."""

    def __init__(self) -> None:
        self.count = 0
        self.last_candidate: FeatureSet | None = None


async def extract_validated(
    text_gen: TextGenerator,
    release: ReleaseRecord,
    count: int,
    source_text: str | None,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    attempts: ExtractionAttempts | None = None,
) -> FeatureSet:
    """
    Extraction + validation under one retry budget. A rejected candidate
    raises FeatureValidationError inside the attempt, so it is retried
    like a parse failure.
    """
    tracker = attempts if attempts is not None else ExtractionAttempts()

    async def _attempt(attempt: int) -> FeatureSet:
        tracker.count = attempt
        logger.info("  Extracting features (attempt %d/%d)...", attempt, max_attempts)
        candidate = await extract_features(text_gen, release, count, source_text)
        tracker.last_candidate = candidate

        outcome = validate_features(candidate)
        if not outcome.valid:
            logger.warning("  Validation failed: %s", outcome.reason)
            raise FeatureValidationError(outcome.reason)
        return candidate

    return await with_retry(
        _attempt,
        max_attempts=max_attempts,
        base_delay=base_delay,
        name="Feature extraction",
    )
