"""Scan orchestrator for the mailbox scanner.

Connects the scan ledger, credential manager, mailbox and attachment
extractor into a single run with per-step error isolation and
structured results.
"""

from .models import AttachmentRecord, ScanResult, StepResult
from .pipeline import AttachmentScanOrchestrator

__all__ = [
    "AttachmentScanOrchestrator",
    "AttachmentRecord",
    "ScanResult",
    "StepResult",
]
