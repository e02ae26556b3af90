"""
ReleaseForge — Release store (single JSON document).

Whole-document read-modify-write with no locking: only one pipeline
invocation may run against a store at a time. Fields that were never
set are not written back, so a rewrite without mutations reproduces the
input document.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from releaseforge.errors import StoreError
from releaseforge.models.release import ReleasesDocument
from releaseforge.utils.logging import logger


class ReleaseStore:
    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> ReleasesDocument:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(str(self.path), str(exc)) from exc

        try:
            return ReleasesDocument.model_validate(raw)
        except PydanticValidationError as exc:
            raise StoreError(str(self.path), str(exc)) from exc

    def dumps(self, document: ReleasesDocument) -> str:
        data = document.model_dump(by_alias=True, exclude_unset=True, mode="json")
        return json.dumps(data, indent=2, ensure_ascii=False)

    def save(self, document: ReleasesDocument) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.dumps(document), encoding="utf-8")
        logger.info("Updated %s", self.path.name)
