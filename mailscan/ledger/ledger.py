"""Durable per-day record of completed scans.

The ledger file is UTF-8 text with one ``date,emails,attachments`` record
per line, sorted by date, no header. A day present in the ledger has been
fully scanned and is skipped by later runs.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Mapping, Optional

from mailscan.config import DEFAULT_START_DATE
from mailscan.utils import atomic_write_text

from .exceptions import LedgerParseError
from .models import LedgerEntry

logger = logging.getLogger(__name__)


def parse_line(line: str, line_number: int | None = None) -> tuple[date, LedgerEntry]:
    """Parse one ledger record.

    Accepts the current three-column layout plus two legacy layouts:
    ``date,n`` (n counts both emails and attachments) and a bare ``date``.

    Args:
        line: Raw line without trailing newline
        line_number: 1-based position, used in error messages

    Returns:
        Tuple of (day, entry)

    Raises:
        LedgerParseError: If the date or a counter is invalid
    """
    parts = [part.strip() for part in line.split(",")]
    if len(parts) > 3:
        raise LedgerParseError(line, "too many fields", line_number)

    try:
        day = date.fromisoformat(parts[0])
    except ValueError:
        raise LedgerParseError(line, "invalid date", line_number) from None

    try:
        counters = [int(part) for part in parts[1:]]
    except ValueError:
        raise LedgerParseError(line, "invalid counter", line_number) from None
    if any(value < 0 for value in counters):
        raise LedgerParseError(line, "negative counter", line_number)

    if len(counters) == 2:
        entry = LedgerEntry(emails_seen=counters[0], attachments_saved=counters[1])
    elif len(counters) == 1:
        entry = LedgerEntry(emails_seen=counters[0], attachments_saved=counters[0])
    else:
        entry = LedgerEntry()
    return day, entry


def _decode_line(raw: bytes, line_number: int) -> str:
    # A damaged line must not make the rest of the file unreadable
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        raise LedgerParseError(
            raw.decode("utf-8", errors="replace"), "invalid UTF-8", line_number
        ) from None


def format_entries(entries: Mapping[date, LedgerEntry]) -> str:
    """Render entries as ledger text, sorted by date, with trailing newline."""
    lines = [
        f"{day.isoformat()},{entry.emails_seen},{entry.attachments_saved}"
        for day, entry in sorted(entries.items())
    ]
    return "\n".join(lines) + "\n" if lines else ""


def resume_point(
    entries: Mapping[date, LedgerEntry],
    override: Optional[date] = None,
    default: date = DEFAULT_START_DATE,
) -> date:
    """Pick the first day of the next scan.

    Args:
        entries: Loaded ledger entries
        override: Caller-supplied start date, wins when given
        default: Used when the ledger is empty

    Returns:
        override, else the latest recorded day, else default
    """
    if override is not None:
        return override
    if entries:
        return max(entries)
    return default


class ScanLedger:
    """Per-day scan counters backed by a text file.

    Days loaded from disk are frozen: is_scanned() reports them and the
    record_* methods refuse to count against them. Days first seen in
    the current run accumulate counts in memory until persist().

    Example:
        ledger = ScanLedger(Path("scan_metadata.csv"))
        ledger.load()
        if not ledger.is_scanned(day):
            ledger.record_message(day)
        ledger.persist()
    """

    def __init__(self, path: Path, default_start: date = DEFAULT_START_DATE):
        """Initialize the ledger.

        Args:
            path: Ledger file location
            default_start: Resume point for an empty ledger
        """
        self._path = path
        self._default_start = default_start
        self._entries: dict[date, LedgerEntry] = {}
        self._scanned: frozenset[date] = frozenset()

    @property
    def path(self) -> Path:
        """Ledger file location."""
        return self._path

    @property
    def entries(self) -> dict[date, LedgerEntry]:
        """Copy of all entries, loaded and recorded this run."""
        return {
            day: LedgerEntry(entry.emails_seen, entry.attachments_saved)
            for day, entry in self._entries.items()
        }

    def load(self) -> dict[date, LedgerEntry]:
        """Read the ledger file, replacing any in-memory state.

        Malformed lines are logged and skipped. A missing file is an
        empty ledger.

        Returns:
            Copy of the loaded entries
        """
        entries: dict[date, LedgerEntry] = {}
        if self._path.exists():
            raw_lines = self._path.read_bytes().splitlines()
            for line_number, raw in enumerate(raw_lines, start=1):
                if not raw.strip():
                    continue
                try:
                    line = _decode_line(raw, line_number)
                    day, entry = parse_line(line, line_number)
                except LedgerParseError as e:
                    logger.warning("Skipping ledger line: %s", e)
                    continue
                entries[day] = entry

        self._entries = entries
        self._scanned = frozenset(entries)
        logger.debug("Loaded %d ledger entries from %s", len(entries), self._path)
        return self.entries

    def is_scanned(self, day: date) -> bool:
        """True if the day was already complete when the ledger was loaded."""
        return day in self._scanned

    def record_message(self, day: date) -> None:
        """Count one matching message for a day being scanned this run."""
        entry = self._entry_for(day)
        if entry is not None:
            entry.emails_seen += 1

    def record_attachment(self, day: date) -> None:
        """Count one saved attachment for a day being scanned this run."""
        entry = self._entry_for(day)
        if entry is not None:
            entry.attachments_saved += 1

    def persist(self, entries: Optional[Mapping[date, LedgerEntry]] = None) -> None:
        """Atomically rewrite the ledger file.

        Args:
            entries: Entries to write. Defaults to the in-memory entries.
        """
        if entries is None:
            entries = self._entries
        atomic_write_text(self._path, format_entries(entries))
        logger.info("Ledger saved: %d days tracked in %s", len(entries), self._path.name)

    def resume_point(self, override: Optional[date] = None) -> date:
        """First day of the next scan, see resume_point()."""
        return resume_point(self._entries, override, self._default_start)

    def _entry_for(self, day: date) -> Optional[LedgerEntry]:
        if day in self._scanned:
            logger.warning(
                "Ignoring ledger update for %s: day was already scanned", day.isoformat()
            )
            return None
        entry = self._entries.get(day)
        if entry is None:
            entry = self._entries[day] = LedgerEntry()
        return entry
