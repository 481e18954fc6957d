"""Unit tests for the per-day scan ledger."""

from datetime import date
from unittest.mock import patch

import pytest

from mailscan.ledger import (
    LedgerEntry,
    LedgerParseError,
    ScanLedger,
    ScanWindow,
    format_entries,
    parse_line,
    resume_point,
)

D1 = date(2024, 1, 1)
D2 = date(2024, 1, 2)
D3 = date(2024, 1, 3)


@pytest.fixture
def ledger_path(tmp_path):
    return tmp_path / "scan_metadata.csv"


class TestParseLine:
    def test_three_columns(self):
        assert parse_line("2024-01-01,3,2") == (D1, LedgerEntry(3, 2))

    def test_legacy_two_columns(self):
        assert parse_line("2024-01-01,4") == (D1, LedgerEntry(4, 4))

    def test_legacy_bare_date(self):
        assert parse_line("2024-01-01") == (D1, LedgerEntry(0, 0))

    def test_whitespace_tolerated(self):
        assert parse_line(" 2024-01-01 , 3 , 2 ") == (D1, LedgerEntry(3, 2))

    @pytest.mark.parametrize(
        "line",
        ["not-a-date,1,1", "2024-13-01,1,1", "2024-01-01,x,1", "2024-01-01,1,-1", "2024-01-01,1,2,3"],
    )
    def test_invalid_lines(self, line):
        with pytest.raises(LedgerParseError):
            parse_line(line, line_number=7)

    def test_error_mentions_line_number(self):
        with pytest.raises(LedgerParseError, match="line 7"):
            parse_line("garbage", line_number=7)


class TestFormatEntries:
    def test_sorted_with_trailing_newline(self):
        text = format_entries({D2: LedgerEntry(1, 0), D1: LedgerEntry(3, 2)})
        assert text == "2024-01-01,3,2\n2024-01-02,1,0\n"

    def test_empty(self):
        assert format_entries({}) == ""


class TestResumePoint:
    def test_override_wins(self):
        assert resume_point({D3: LedgerEntry()}, override=D1) == D1

    def test_latest_recorded_day(self):
        entries = {D1: LedgerEntry(), D3: LedgerEntry(), D2: LedgerEntry()}
        assert resume_point(entries) == D3

    def test_default_for_empty_ledger(self):
        assert resume_point({}) == date(2023, 2, 1)
        assert resume_point({}, default=D2) == D2


class TestScanLedger:
    def test_missing_file_is_empty(self, ledger_path):
        ledger = ScanLedger(ledger_path)
        assert ledger.load() == {}
        assert not ledger.is_scanned(D1)

    def test_load_skips_malformed_lines(self, ledger_path):
        ledger_path.write_text("2024-01-01,3,2\nbroken line\n\n2024-01-02,1\n")
        ledger = ScanLedger(ledger_path)

        entries = ledger.load()
        assert entries == {D1: LedgerEntry(3, 2), D2: LedgerEntry(1, 1)}
        assert ledger.is_scanned(D1)
        assert ledger.is_scanned(D2)

    def test_load_skips_undecodable_line(self, ledger_path):
        ledger_path.write_bytes(b"2024-01-01,3,2\n\xff\xfe garbage\n2024-01-05,1,1\n")
        ledger = ScanLedger(ledger_path)

        entries = ledger.load()
        assert entries == {D1: LedgerEntry(3, 2), date(2024, 1, 5): LedgerEntry(1, 1)}
        assert ledger.resume_point() == date(2024, 1, 5)

    def test_record_new_day(self, ledger_path):
        ledger = ScanLedger(ledger_path)
        ledger.load()
        ledger.record_message(D1)
        ledger.record_message(D1)
        ledger.record_attachment(D1)

        assert ledger.entries[D1] == LedgerEntry(2, 1)
        # Not complete until the next load
        assert not ledger.is_scanned(D1)

    def test_record_attachment_creates_entry(self, ledger_path):
        ledger = ScanLedger(ledger_path)
        ledger.record_attachment(D2)
        assert ledger.entries[D2] == LedgerEntry(0, 1)

    def test_already_scanned_day_is_not_double_counted(self, ledger_path):
        ledger_path.write_text("2024-01-01,3,2\n")
        ledger = ScanLedger(ledger_path)
        ledger.load()

        ledger.record_message(D1)
        ledger.record_attachment(D1)
        assert ledger.entries[D1] == LedgerEntry(3, 2)

    def test_entries_is_a_copy(self, ledger_path):
        ledger = ScanLedger(ledger_path)
        ledger.record_message(D1)
        ledger.entries[D1].emails_seen = 99
        assert ledger.entries[D1].emails_seen == 1

    def test_persist_then_load_roundtrip(self, ledger_path):
        entries = {D3: LedgerEntry(0, 0), D1: LedgerEntry(3, 2), D2: LedgerEntry(10, 7)}
        ScanLedger(ledger_path).persist(entries)

        assert ScanLedger(ledger_path).load() == entries
        assert ledger_path.read_text() == "2024-01-01,3,2\n2024-01-02,10,7\n2024-01-03,0,0\n"

    def test_persist_defaults_to_in_memory_entries(self, ledger_path):
        ledger_path.write_text("2024-01-01,3,2\n")
        ledger = ScanLedger(ledger_path)
        ledger.load()
        ledger.record_message(D2)
        ledger.persist()

        assert ledger_path.read_text() == "2024-01-01,3,2\n2024-01-02,1,0\n"

    def test_persist_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "ledger.csv"
        ScanLedger(path).persist({D1: LedgerEntry(1, 1)})
        assert path.read_text() == "2024-01-01,1,1\n"

    def test_failed_persist_keeps_previous_file(self, ledger_path):
        ledger_path.write_text("2024-01-01,3,2\n")
        ledger = ScanLedger(ledger_path)
        ledger.load()
        ledger.record_message(D2)

        with patch("mailscan.utils.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                ledger.persist()

        assert ledger_path.read_text() == "2024-01-01,3,2\n"
        assert ScanLedger(ledger_path).load() == {D1: LedgerEntry(3, 2)}
        assert list(ledger_path.parent.iterdir()) == [ledger_path]

    def test_failed_write_keeps_previous_file(self, ledger_path):
        ledger_path.write_text("2024-01-01,3,2\n")
        ledger = ScanLedger(ledger_path)
        ledger.load()

        with patch("mailscan.utils.os.fsync", side_effect=OSError("I/O error")):
            with pytest.raises(OSError):
                ledger.persist({D2: LedgerEntry(1, 1)})

        assert ledger_path.read_text() == "2024-01-01,3,2\n"

    def test_resume_point_uses_latest_day(self, ledger_path):
        ledger_path.write_text("2024-01-01,3,2\n2024-01-03,1,1\n2024-01-02,1,1\n")
        ledger = ScanLedger(ledger_path, default_start=date(2020, 1, 1))
        ledger.load()
        assert ledger.resume_point() == D3
        assert ledger.resume_point(override=D1) == D1

    def test_resume_point_default(self, ledger_path):
        ledger = ScanLedger(ledger_path, default_start=date(2020, 1, 1))
        ledger.load()
        assert ledger.resume_point() == date(2020, 1, 1)


class TestScanWindow:
    def test_from_dates_makes_end_inclusive(self):
        window = ScanWindow.from_dates(D1, D2)
        assert window.before == D3
        assert window.contains(D2)
        assert not window.contains(D3)

    def test_open_ended(self):
        window = ScanWindow.from_dates(D2)
        assert window.before is None
        assert window.contains(date(2030, 1, 1))
        assert not window.contains(D1)
        assert window.describe() == "2024-01-02 to open-ended"

    def test_empty_window_rejected(self):
        with pytest.raises(ValueError):
            ScanWindow(since=D2, before=D2)

    def test_describe_shows_inclusive_end(self):
        assert ScanWindow.from_dates(D1, D2).describe() == "2024-01-01 to 2024-01-02"
