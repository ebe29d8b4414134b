"""On-disk cache of generated explanations.

Explanations are matched back onto rebuilt steps by
``"{type}|{filePath}|{start}-{end}"``. A stored intent that differs from the
current one invalidates the whole file.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from changetour.config.models import StoreConfig
from changetour.core.errors import StoreError
from changetour.tour.models import TourStep

log = structlog.get_logger(__name__)

STORE_VERSION = 1


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExplanationRecord(_CamelModel):
    key: str
    type: str
    file_path: str
    start_line: int
    end_line: int
    explanation: str
    updated_at: str


class ExplanationStoreFile(_CamelModel):
    version: int = STORE_VERSION
    intent: str | None = None
    records: list[ExplanationRecord] = Field(default_factory=list)


def step_key(step: TourStep) -> str:
    target = step.target
    return f"{step.type}|{target.file_path}|{target.range.start_line}-{target.range.end_line}"


def _normalize_intent(intent: str | None) -> str:
    return (intent or "").strip()


class ExplanationStore:
    """JSON file under the repository's ``.changetour`` directory."""

    def __init__(self, repo_root: Path, config: StoreConfig | None = None) -> None:
        config = config or StoreConfig()
        self.path = repo_root / config.directory / config.explanations_file

    def load(self, intent: str | None = None) -> dict[str, ExplanationRecord]:
        """Cached records by key; empty when missing, unreadable or for another intent."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError:
            log.warning("store_read_failed", path=str(self.path), exc_info=True)
            return {}

        try:
            stored = ExplanationStoreFile.model_validate_json(raw)
        except ValidationError:
            log.warning("store_invalid", path=str(self.path))
            return {}

        if _normalize_intent(stored.intent) != _normalize_intent(intent):
            log.debug("store_intent_mismatch", path=str(self.path))
            return {}
        return {record.key: record for record in stored.records}

    def save(
        self,
        steps: Iterable[TourStep],
        intent: str | None = None,
        placeholders: Iterable[str] = (),
    ) -> None:
        """Write every step that carries a generated explanation."""
        skipped = {"", *placeholders}
        now = datetime.now(UTC).isoformat()
        records = [
            ExplanationRecord(
                key=step_key(step),
                type=step.type,
                file_path=step.target.file_path,
                start_line=step.target.range.start_line,
                end_line=step.target.range.end_line,
                explanation=step.explanation,
                updated_at=now,
            )
            for step in steps
            if step.explanation.strip() and step.explanation not in skipped
        ]
        payload = ExplanationStoreFile(intent=_normalize_intent(intent) or None, records=records)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                payload.model_dump_json(by_alias=True, exclude_none=True, indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            raise StoreError.write_failed(str(self.path), str(e)) from e
        log.debug("store_saved", path=str(self.path), records=len(records))

    def clear(self) -> bool:
        """Remove the store file. Returns False when there was nothing to remove."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        log.info("store_cleared", path=str(self.path))
        return True


def apply_cached(
    steps: Iterable[TourStep],
    records: Mapping[str, ExplanationRecord],
    placeholders: Iterable[str] = (),
) -> int:
    """Copy cached explanations onto steps whose text is empty or a placeholder.

    Returns how many steps were filled.
    """
    replaceable = {"", *placeholders}
    filled = 0
    for step in steps:
        record = records.get(step_key(step))
        if record is None or not record.explanation.strip():
            continue
        if step.explanation in replaceable:
            step.explanation = record.explanation
            filled += 1
    return filled
