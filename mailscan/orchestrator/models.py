"""Data models for scan run results."""

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

from mailscan.ledger.models import LedgerEntry, ScanWindow


@dataclass
class AttachmentRecord:
    """An attachment saved during the current run, pending extraction."""

    path: Path
    day: date


@dataclass
class StepResult:
    """Result of a single scan step."""

    name: str
    success: bool
    duration_seconds: float
    details: dict[str, Any]
    error: str | None = None
    skipped: bool = False


@dataclass
class ScanResult:
    """Aggregate result of a scan run."""

    started_at: datetime
    finished_at: datetime | None = None
    steps: list[StepResult] = field(default_factory=list)
    window: Optional[ScanWindow] = None
    daily_stats: dict[date, LedgerEntry] = field(default_factory=dict)
    attachments: list[AttachmentRecord] = field(default_factory=list)
    processed_attachments: int = 0

    @property
    def success(self) -> bool:
        return all(step.success for step in self.steps)
