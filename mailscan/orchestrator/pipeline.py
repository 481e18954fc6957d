"""AttachmentScanOrchestrator - connects ledger, credentials and mailbox into one run."""

import logging
import time
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from mailscan.auth import CredentialManager
from mailscan.config import Settings
from mailscan.exceptions import MailAuthenticationError
from mailscan.extraction import ExtractionError, extract_text_lines, guess_content_type
from mailscan.ledger import ScanLedger, ScanWindow
from mailscan.mail import ImapMailbox, MailAttachment
from mailscan.utils import safe_filename, unique_path

from .models import AttachmentRecord, ScanResult, StepResult

logger = logging.getLogger(__name__)

Extractor = Callable[[bytes, str], Optional[list[str]]]


class AttachmentScanOrchestrator:
    """Orchestrates an incremental attachment scan.

    Steps:
        1. load_ledger: read the ledger and compute the scan window
        2. authenticate: obtain an access token (OAuth mode only)
        3. scan: search the mailbox, save attachments of days not yet
           scanned, then persist the ledger once
        4. extract: summarize the text of each saved attachment

    A failed step marks the remaining steps as skipped. The ledger is only
    written after every matched message has been handled, so a day in the
    ledger is always a fully scanned day.

    Example:
        result = AttachmentScanOrchestrator.from_settings(Settings.from_env()).run()
        print(f"Success: {result.success}")
    """

    def __init__(
        self,
        ledger: ScanLedger,
        mailbox_factory: Callable[[], ImapMailbox],
        attachments_dir: Path,
        content_filter: str = "CommSec",
        credential_manager: Optional[CredentialManager] = None,
        password: Optional[str] = None,
        extractor: Optional[Extractor] = None,
    ):
        """Initialize the orchestrator.

        Args:
            ledger: Per-day scan ledger
            mailbox_factory: Builds an unconnected mailbox for the run
            attachments_dir: Where attachments are saved
            content_filter: Text searched for in subject and body
            credential_manager: OAuth credential source. When None the
                mailbox logs in with password.
            password: App password for non-OAuth login
            extractor: Attachment text extractor. Defaults to
                extract_text_lines.
        """
        self._ledger = ledger
        self._mailbox_factory = mailbox_factory
        self._attachments_dir = attachments_dir
        self._content_filter = content_filter
        self._credentials = credential_manager
        self._password = password
        self._extractor = extractor or extract_text_lines

    @classmethod
    def from_settings(cls, settings: Settings) -> "AttachmentScanOrchestrator":
        """Wire an orchestrator from validated settings."""
        credentials = None
        if settings.use_oauth:
            logger.info("Using OAuth 2.0 authentication")
            credentials = CredentialManager.from_settings(settings)
        else:
            logger.warning(
                "Using app password authentication (less secure). "
                "Set USE_OAUTH=true in .env for better security."
            )

        def mailbox_factory() -> ImapMailbox:
            return ImapMailbox(
                settings.imap_host,
                settings.email_user,
                mailbox=settings.mailbox,
                port=settings.imap_port,
            )

        return cls(
            ledger=ScanLedger(settings.ledger_path, settings.default_start),
            mailbox_factory=mailbox_factory,
            attachments_dir=settings.attachments_dir,
            content_filter=settings.content_filter,
            credential_manager=credentials,
            password=settings.app_password,
        )

    @staticmethod
    def _skip_step(name: str) -> StepResult:
        """Record a step as skipped due to a prior failure."""
        return StepResult(
            name=name,
            success=False,
            duration_seconds=0.0,
            details={},
            skipped=True,
        )

    def _run_step(self, name: str, fn: Callable[[], dict]) -> StepResult:
        """Run a step with timing and error isolation."""
        start = time.monotonic()
        try:
            details = fn()
            duration = time.monotonic() - start
            return StepResult(
                name=name,
                success=True,
                duration_seconds=round(duration, 2),
                details=details,
            )
        except Exception as e:
            duration = time.monotonic() - start
            logger.exception("Step '%s' failed", name, extra={"step": name})
            return StepResult(
                name=name,
                success=False,
                duration_seconds=round(duration, 2),
                details={},
                error=str(e),
            )

    def run(self, start: Optional[date] = None, end: Optional[date] = None) -> ScanResult:
        """Execute the scan.

        Args:
            start: First day to scan. Defaults to the ledger's resume point.
            end: Last day to scan (inclusive). Defaults to open-ended.

        Returns:
            ScanResult with per-step metrics and per-day stats.
        """
        result = ScanResult(started_at=datetime.now(timezone.utc))
        step_names = ["load_ledger", "authenticate", "scan", "extract"]

        # Shared state between steps
        access_token: Optional[str] = None

        def load_ledger_step() -> dict:
            entries = self._ledger.load()
            since = self._ledger.resume_point(start)
            result.window = ScanWindow.from_dates(since, end)
            logger.info(
                "Scanning for '%s' from %s",
                self._content_filter,
                result.window.describe(),
            )
            return {"days_tracked": len(entries), "window": result.window.describe()}

        def authenticate_step() -> dict:
            nonlocal access_token
            if self._credentials is None:
                return {"method": "app_password"}
            access_token = self._credentials.get_access_token()
            return {
                "method": "oauth",
                "provider": self._credentials.provider.kind.value,
            }

        def scan_step() -> dict:
            return self._scan(result, access_token)

        def extract_step() -> dict:
            return self._extract(result)

        steps = {
            "load_ledger": load_ledger_step,
            "authenticate": authenticate_step,
            "scan": scan_step,
            "extract": extract_step,
        }
        for index, name in enumerate(step_names):
            step_result = self._run_step(name, steps[name])
            result.steps.append(step_result)
            if not step_result.success:
                result.steps.extend(self._skip_step(rest) for rest in step_names[index + 1:])
                break

        result.finished_at = datetime.now(timezone.utc)
        return result

    def _scan(self, result: ScanResult, access_token: Optional[str]) -> dict:
        ledger = self._ledger
        self._attachments_dir.mkdir(parents=True, exist_ok=True)

        matched = skipped = 0
        with self._mailbox_factory() as mailbox:
            self._connect(mailbox, access_token)
            for index, message in enumerate(
                mailbox.search(result.window, self._content_filter), start=1
            ):
                day = message.day
                context = {"day": day.isoformat(), "uid": message.uid}
                if ledger.is_scanned(day):
                    logger.info(
                        "[%d] %s already scanned, skipping message",
                        index,
                        day.isoformat(),
                        extra=context,
                    )
                    skipped += 1
                    continue

                logger.info(
                    "[%d] from: %s | subject: %s | date: %s | attachments: %d",
                    index,
                    message.sender,
                    message.subject,
                    day.isoformat(),
                    len(message.attachments),
                    extra=context,
                )
                ledger.record_message(day)
                matched += 1

                for att_index, attachment in enumerate(message.attachments):
                    path = self._save_attachment(message.uid, att_index, attachment)
                    ledger.record_attachment(day)
                    result.attachments.append(AttachmentRecord(path=path, day=day))
                    logger.info("  -> Saved attachment: %s", path.name, extra=context)

        ledger.persist()
        result.daily_stats = ledger.entries
        return {
            "emails_matched": matched,
            "emails_skipped": skipped,
            "attachments_saved": len(result.attachments),
        }

    def _connect(self, mailbox: ImapMailbox, access_token: Optional[str]) -> None:
        if self._credentials is None:
            mailbox.connect(password=self._password)
            return
        try:
            mailbox.connect(access_token=access_token)
        except MailAuthenticationError as e:
            logger.warning("Mail server rejected the OAuth token (%s), refreshing", e.reason)
            access_token = self._credentials.get_access_token(force_refresh=True)
            mailbox.connect(access_token=access_token)

    def _save_attachment(self, uid: str, index: int, attachment: MailAttachment) -> Path:
        filename = safe_filename(attachment.filename or f"attachment-{uid}-{index}")
        path = unique_path(self._attachments_dir / filename)
        path.write_bytes(attachment.content)
        return path

    def _extract(self, result: ScanResult) -> dict:
        logger.info("Found %d total attachments to process.", len(result.attachments))
        processed = failed = 0
        for record in result.attachments:
            if not record.path.exists():
                continue
            logger.info("Processing attachment: %s from %s", record.path.name, record.day.isoformat())
            processed += 1
            try:
                content = record.path.read_bytes()
                lines = self._extractor(content, guess_content_type(record.path))
            except (ExtractionError, OSError) as e:
                failed += 1
                logger.warning("  -> Failed to extract data from %s: %s", record.path.name, e)
                continue
            if lines:
                logger.info("Extracted data: %s", ", ".join(lines))

        result.processed_attachments = processed
        return {"attachments_processed": processed, "extraction_errors": failed}
