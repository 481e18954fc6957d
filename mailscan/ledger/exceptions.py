"""Exceptions for the scan ledger."""

from mailscan.exceptions import MailScanError


class LedgerParseError(MailScanError):
    """Raised for a ledger line that cannot be parsed.

    ScanLedger.load() skips such lines; the error only escapes from
    parse_line() when called directly.
    """

    def __init__(self, line: str, reason: str, line_number: int | None = None):
        self.line = line
        self.reason = reason
        self.line_number = line_number
        where = f" at line {line_number}" if line_number is not None else ""
        super().__init__(f"Unparsable ledger record{where}: {line!r} ({reason})")
