"""
ReleaseForge — Generated artifact directory.

Filename convention (one generation run for one release):
  {tool}-{version}-{YYYY-MM-DD}-{1x1|16x9|9x16}.txt   image prompt
  {tool}-{version}-{YYYY-MM-DD}-{1x1|16x9|9x16}.png   generated image
  {tool}-{version}-{YYYY-MM-DD}-features.json         accepted features + provenance
  failure-{tool}-{version}-{epoch_ms}.json             failure report
"""

from __future__ import annotations

import json
import re
import shutil
import time
from datetime import date, datetime, timezone
from pathlib import Path

from releaseforge.models.features import FeatureArtifact
from releaseforge.models.release import ReleaseRecord
from releaseforge.models.reports import FailureReport, RemediationResult
from releaseforge.utils.logging import logger

FEATURES_SUFFIX = "-features.json"

_FEATURES_STAMP = re.compile(r"\d{4}-\d{2}-\d{2}-features\.json")


def format_suffix(fmt: str) -> str:
    """'16:9' → '16x9'."""
    return fmt.replace(":", "x")


def base_filename(release: ReleaseRecord, on: date | None = None) -> str:
    """UTC-dated stem shared by every artifact of one generation run."""
    stamp = (on or datetime.now(timezone.utc).date()).isoformat()
    return f"{release.tool}-{release.version}-{stamp}"


def _write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


class ArtifactStore:
    def __init__(self, output_dir: Path | str):
        self.output_dir = Path(output_dir)

    def find_features(self, tool: str, version: str) -> Path | None:
        """Most recent features file for tool+version, if any."""
        if not self.output_dir.is_dir():
            return None
        prefix = f"{tool}-{version}-"
        matches = sorted(
            p for p in self.output_dir.iterdir()
            if p.name.startswith(prefix) and _FEATURES_STAMP.fullmatch(p.name[len(prefix):])
        )
        return matches[-1] if matches else None

    def load_features(self, path: Path) -> FeatureArtifact:
        return FeatureArtifact.model_validate(json.loads(path.read_text(encoding="utf-8")))

    def load_stored_source(self, tool: str, version: str) -> str | None:
        """sourceContent cached by a previous extraction, or None."""
        path = self.find_features(tool, version)
        if path is None:
            return None
        try:
            artifact = self.load_features(path)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load existing features file %s: %s", path.name, exc)
            return None
        logger.info("Found existing features file: %s", path.name)
        return artifact.source_content or None

    def write_features(self, base: str, artifact: FeatureArtifact) -> Path:
        path = self.output_dir / f"{base}{FEATURES_SUFFIX}"
        _write_json(path, artifact.model_dump(by_alias=True, mode="json"))
        logger.info("Written: %s", path)
        return path

    def write_prompt(self, base: str, fmt: str, prompt: str) -> Path:
        path = self.output_dir / f"{base}-{format_suffix(fmt)}.txt"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(prompt, encoding="utf-8")
        logger.info("Written: %s", path)
        return path

    def write_image(self, base: str, fmt: str, data: bytes, extension: str) -> Path:
        path = self.output_dir / f"{base}-{format_suffix(fmt)}.{extension}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Generated image: %s", path)
        return path

    def write_failure_report(self, report: FailureReport) -> str:
        filename = f"failure-{report.tool}-{report.version}-{int(time.time() * 1000)}.json"
        _write_json(self.output_dir / filename, report.model_dump(by_alias=True, mode="json"))
        logger.info("📋 Failure report written: %s", self.output_dir / filename)
        return filename


def publish_image(path: Path, public_dir: Path) -> Path:
    """Copy a generated image into the public images directory."""
    public_dir.mkdir(parents=True, exist_ok=True)
    target = public_dir / path.name
    shutil.copyfile(path, target)
    logger.info("Copied to public: %s", target)
    return target


def write_remediation_result(path: Path, result: RemediationResult) -> None:
    _write_json(path, result.model_dump(by_alias=True, mode="json"))
    logger.info("📝 Result written to %s", path)
