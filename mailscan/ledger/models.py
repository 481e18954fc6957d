"""Ledger entry and scan window data models."""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional


@dataclass
class LedgerEntry:
    """Counters for one fully scanned calendar day.

    Attributes:
        emails_seen: Matching messages dated on this day
        attachments_saved: Attachments written to disk from those messages
    """

    emails_seen: int = 0
    attachments_saved: int = 0


@dataclass(frozen=True)
class ScanWindow:
    """Date range searched in one run.

    Attributes:
        since: First day searched (inclusive)
        before: Day the search stops at (exclusive), or None for open-ended
    """

    since: date
    before: Optional[date] = None

    def __post_init__(self) -> None:
        if self.before is not None and self.before <= self.since:
            raise ValueError(
                f"Scan window is empty: since={self.since.isoformat()} "
                f"before={self.before.isoformat()}"
            )

    @classmethod
    def from_dates(cls, since: date, until: Optional[date] = None) -> "ScanWindow":
        """Build a window from an inclusive end date.

        Args:
            since: First day to scan
            until: Last day to scan (inclusive), or None for open-ended
        """
        before = until + timedelta(days=1) if until is not None else None
        return cls(since=since, before=before)

    def contains(self, day: date) -> bool:
        if day < self.since:
            return False
        return self.before is None or day < self.before

    def describe(self) -> str:
        """Human-readable range, e.g. '2024-01-01 to 2024-01-31'."""
        if self.before is None:
            return f"{self.since.isoformat()} to open-ended"
        last = self.before - timedelta(days=1)
        return f"{self.since.isoformat()} to {last.isoformat()}"
