"""Message and attachment data models for mailbox access."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional


@dataclass
class MailAttachment:
    """One attachment part of a message.

    Attributes:
        filename: Name from the MIME headers, if any
        content_type: MIME type, e.g. application/pdf
        content: Decoded payload bytes
    """

    filename: Optional[str]
    content_type: str
    content: bytes = b""


@dataclass
class MailMessage:
    """A message matched by a mailbox search.

    Attributes:
        uid: IMAP UID of the message
        subject: Decoded subject line
        sender: Comma-separated sender addresses
        date: When the message was sent
        attachments: Attachment parts in message order
    """

    uid: str
    subject: str
    sender: str
    date: datetime
    attachments: list[MailAttachment] = field(default_factory=list)

    @property
    def day(self) -> date:
        """Calendar day of the message in local time."""
        if self.date.tzinfo is not None:
            return self.date.astimezone().date()
        return self.date.date()
