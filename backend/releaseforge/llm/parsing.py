"""
ReleaseForge — Parsing helpers for untrusted model output.

Two wire conventions are handled here:
  * a JSON object embedded anywhere in free text (markdown fences,
    preambles, trailing commentary are tolerated)
  * the VERSION_NOT_FOUND sentinel, surfaced as a tagged
    Found | NotFound value instead of string sniffing at call sites
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from releaseforge.errors import ExtractionParseError

VERSION_NOT_FOUND = "VERSION_NOT_FOUND"

_decoder = json.JSONDecoder()


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the first decodable JSON object in text."""
    if not text:
        raise ExtractionParseError("empty response")

    cleaned = text.replace("```json", "").replace("```", "")
    start = cleaned.find("{")
    while start != -1:
        try:
            obj, _ = _decoder.raw_decode(cleaned, start)
        except json.JSONDecodeError:
            start = cleaned.find("{", start + 1)
            continue
        if isinstance(obj, dict):
            return obj
        start = cleaned.find("{", start + 1)

    raise ExtractionParseError("no JSON object found", raw=text)


@dataclass(frozen=True)
class Found:
    content: str


@dataclass(frozen=True)
class NotFound:
    reason: str


IsolationResult = Union[Found, NotFound]


def interpret_isolation(text: str, version: str | None) -> IsolationResult:
    """Map a version-isolation response onto Found / NotFound."""
    if VERSION_NOT_FOUND in text:
        return NotFound(f"Could not find release notes for version {version or 'specified'}")
    stripped = text.strip()
    if not stripped:
        return NotFound("empty response")
    return Found(stripped)
