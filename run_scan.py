"""CLI entry point for the mailbox attachment scanner."""

import argparse
import sys
from datetime import date

from dotenv import load_dotenv

from mailscan.auth import CredentialManager
from mailscan.config import Settings
from mailscan.exceptions import ConfigurationError
from mailscan.logging_config import configure_logging
from mailscan.orchestrator import AttachmentScanOrchestrator


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date (YYYY-MM-DD): {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scan a mailbox for matching emails and download their attachments"
    )
    parser.add_argument(
        "start_date",
        nargs="?",
        type=_iso_date,
        help="First day to scan (default: resume from the scan ledger)",
    )
    parser.add_argument(
        "end_date",
        nargs="?",
        type=_iso_date,
        help="Last day to scan, inclusive (default: open-ended)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set logging level (overrides LOG_LEVEL env var)",
    )
    parser.add_argument(
        "--revoke",
        action="store_true",
        help="Revoke and delete the cached OAuth token, then exit",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level_override=args.log_level)

    if args.start_date and args.end_date and args.end_date < args.start_date:
        parser.error("end_date must not be before start_date")

    try:
        settings = Settings.from_env()
        if args.revoke:
            CredentialManager.from_settings(settings).revoke()
            print("Token revoked.")
            return 0
        orchestrator = AttachmentScanOrchestrator.from_settings(settings)
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print("Mail Attachment Downloader starting...")
    result = orchestrator.run(start=args.start_date, end=args.end_date)

    # Print summary
    print("\n--- Scan Summary ---")
    for step in result.steps:
        status = "SKIPPED" if step.skipped else ("OK" if step.success else "FAILED")
        print(f"  {step.name}: {status} ({step.duration_seconds}s)")
        for key, value in step.details.items():
            print(f"    {key}: {value}")
        if step.error:
            print(f"    error: {step.error}")

    if result.daily_stats:
        print("\nPer-day stats (emails, attachments):")
        for day, entry in sorted(result.daily_stats.items()):
            print(f"  {day.isoformat()}: emails={entry.emails_seen}, attachments={entry.attachments_saved}")

    overall = "SUCCESS" if result.success else "FAILURE"
    print(
        f"\nProcessed {result.processed_attachments} attachments "
        f"across {len(result.daily_stats)} tracked days."
    )
    print(f"Result: {overall}")

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
