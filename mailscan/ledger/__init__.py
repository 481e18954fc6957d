"""Per-day scan ledger driving idempotent incremental scans.

Public API:
    - ScanLedger: Load, query, update and persist the ledger file
    - LedgerEntry: Counters for one scanned day
    - ScanWindow: Inclusive-start, exclusive-end date range
    - LedgerParseError: Malformed ledger record
    - parse_line, format_entries, resume_point: Format helpers
"""

from .exceptions import LedgerParseError
from .ledger import ScanLedger, format_entries, parse_line, resume_point
from .models import LedgerEntry, ScanWindow

__all__ = [
    "ScanLedger",
    "LedgerEntry",
    "ScanWindow",
    "LedgerParseError",
    "parse_line",
    "format_entries",
    "resume_point",
]
