"""
ReleaseForge — Feature validator.

Pure structural and content checks on a FeatureSet before it is allowed
anywhere near persistence. Catches the model returning an apology or an
error message dressed up as a feature.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from releaseforge.models.features import FeatureSet

ERROR_PATTERNS = [
    re.compile(r"unable to extract", re.IGNORECASE),
    re.compile(r"not available", re.IGNORECASE),
    re.compile(r"could not find", re.IGNORECASE),
    re.compile(r"no .* found", re.IGNORECASE),
    re.compile(r"content not available", re.IGNORECASE),
    re.compile(r"release notes content", re.IGNORECASE),
    re.compile(r"cannot extract", re.IGNORECASE),
    re.compile(r"insufficient .* content", re.IGNORECASE),
]

MIN_NAME_LENGTH = 3
MIN_DESCRIPTION_LENGTH = 5


@dataclass(frozen=True)
class ValidationOutcome:
    valid: bool
    reason: str = ""


def _as_mapping(candidate: FeatureSet | Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    if isinstance(candidate, FeatureSet):
        return candidate.model_dump(by_alias=True)
    return candidate


def validate_features(candidate: FeatureSet | Mapping[str, Any] | None) -> ValidationOutcome:
    data = _as_mapping(candidate)
    features = data.get("features") if data else None
    if not isinstance(features, list):
        return ValidationOutcome(False, "Invalid features structure: missing features array")
    if not features:
        return ValidationOutcome(False, "No features extracted")

    for feature in features:
        if not isinstance(feature, Mapping):
            return ValidationOutcome(False, f"Feature is not an object: {feature!r}")
        name = feature.get("name") or ""
        description = feature.get("description") or ""
        if not name or not description:
            return ValidationOutcome(
                False,
                f"Feature missing name or description: {json.dumps(dict(feature), ensure_ascii=False)}",
            )

        text = f"{name} {description}"
        for pattern in ERROR_PATTERNS:
            if pattern.search(text):
                return ValidationOutcome(False, f'Feature contains error pattern: "{text}"')

        if len(name) < MIN_NAME_LENGTH or len(description) < MIN_DESCRIPTION_LENGTH:
            return ValidationOutcome(
                False,
                f'Feature has insufficient content: name="{name}", desc="{description}"',
            )

    return ValidationOutcome(True)
