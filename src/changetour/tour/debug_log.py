"""Plain-text dump of a built tour for troubleshooting."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

import structlog

from changetour.diff.models import ChangeUnit
from changetour.tour.models import TourStep

log = structlog.get_logger(__name__)


def format_tour_debug_log(steps: Sequence[TourStep], generated_at: datetime | None = None) -> str:
    generated_at = generated_at or datetime.now(UTC)
    lines = [
        "ChangeTour Debug Log",
        f"Steps: {len(steps)}",
        f"Generated: {generated_at.isoformat()}",
        "",
    ]
    for step in steps:
        target = step.target
        lines += [
            f"STEP {step.id}",
            f"Type: {step.type}",
            f"File: {target.file_path}",
            f"Range: {target.range}",
        ]
        if isinstance(target, ChangeUnit):
            lines += [
                f"ChangeKind: {target.change_kind or 'unknown'}",
                f"DefinitionName: {target.definition_name or 'n/a'}",
                f"DefinitionType: {target.definition_type or 'n/a'}",
            ]
            introduced = ", ".join(
                f"{d.name}({d.type})@{d.range}" for d in target.introduced_definitions
            )
            lines.append(f"IntroducedDefinitions: {introduced or 'none'}")
            if step.depends_on:
                lines.append(f"DependsOn: {', '.join(step.depends_on)}")
            lines += ["DiffText:", target.diff_text or "(empty)"]
        else:
            lines.append(f"Label: {target.label or 'n/a'}")
        lines += ["Explanation:", step.explanation or "(empty)", "---"]
    return "\n".join(lines)


def write_tour_debug_log(path: Path, steps: Sequence[TourStep]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_tour_debug_log(steps), encoding="utf-8")
    log.info("debug_log_written", path=str(path), steps=len(steps))
    return path
