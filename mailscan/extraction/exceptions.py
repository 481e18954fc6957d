"""Exceptions for attachment text extraction."""

from mailscan.exceptions import MailScanError


class ExtractionError(MailScanError):
    """Raised when an attachment's text cannot be extracted.

    Contained per attachment: the scan goes on with the next one.
    """

    def __init__(self, content_type: str, reason: str):
        self.content_type = content_type
        self.reason = reason
        super().__init__(f"Could not extract text from {content_type}: {reason}")
