"""Mailbox access over IMAP.

Public API:
    - ImapMailbox: Date-bounded, text-filtered message search
    - MailMessage, MailAttachment: Parsed message data
    - build_search_criteria, parse_message: Protocol helpers
"""

from .imap_client import (
    ImapMailbox,
    build_search_criteria,
    generate_oauth2_string,
    parse_message,
)
from .models import MailAttachment, MailMessage

__all__ = [
    "ImapMailbox",
    "MailMessage",
    "MailAttachment",
    "build_search_criteria",
    "generate_oauth2_string",
    "parse_message",
]
