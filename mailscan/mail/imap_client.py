"""IMAP mailbox access with XOAUTH2 or app-password login."""

import email
import imaplib
import logging
import ssl
from datetime import date, datetime
from email import policy
from email.message import Message
from email.utils import getaddresses, parsedate_to_datetime
from typing import Callable, Iterator, Optional

from mailscan.exceptions import MailAuthenticationError, TransportError
from mailscan.ledger.models import ScanWindow

from .models import MailAttachment, MailMessage

logger = logging.getLogger(__name__)

# IMAP dates use English month abbreviations regardless of locale
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def generate_oauth2_string(username: str, access_token: str) -> str:
    """Build the SASL XOAUTH2 initial response.

    See https://developers.google.com/gmail/imap/xoauth2-protocol
    """
    return f"user={username}\1auth=Bearer {access_token}\1\1"


def imap_date(day: date) -> str:
    """Format a date the way IMAP SEARCH expects, e.g. 01-Feb-2023."""
    return f"{day.day:02d}-{_MONTHS[day.month - 1]}-{day.year}"


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_search_criteria(window: ScanWindow, text: str) -> list[str]:
    """Build UID SEARCH arguments for a window and content filter.

    The text is matched anywhere in the message. Both the given spelling
    and its lower-case form are searched, since some servers match TEXT
    case-sensitively.
    """
    criteria = ["SINCE", imap_date(window.since)]
    if window.before is not None:
        criteria += ["BEFORE", imap_date(window.before)]
    lowered = text.lower()
    if lowered != text:
        criteria += ["OR", "TEXT", _quote(text), "TEXT", _quote(lowered)]
    else:
        criteria += ["TEXT", _quote(text)]
    return criteria


def _iter_attachments(msg: Message) -> Iterator[MailAttachment]:
    for part in msg.walk():
        if part.is_multipart():
            continue
        disposition = part.get_content_disposition()
        filename = part.get_filename()
        if disposition != "attachment" and not filename:
            continue
        content = part.get_payload(decode=True) or b""
        yield MailAttachment(
            filename=filename,
            content_type=part.get_content_type(),
            content=content,
        )


def parse_message(uid: str, raw: bytes, fallback_date: datetime) -> MailMessage:
    """Parse an RFC822 message into a MailMessage.

    Args:
        uid: IMAP UID of the message
        raw: Full message source
        fallback_date: Used when the Date header is missing or invalid

    Returns:
        Parsed message with decoded attachments
    """
    msg = email.message_from_bytes(raw, policy=policy.default)

    subject = str(msg.get("Subject", "") or "").strip() or "(no subject)"
    addresses = [addr for _, addr in getaddresses([str(msg.get("From", "") or "")]) if addr]
    sender = ", ".join(addresses) or "(unknown sender)"

    try:
        sent = parsedate_to_datetime(str(msg.get("Date", "")))
    except (TypeError, ValueError, IndexError):
        sent = None

    return MailMessage(
        uid=uid,
        subject=subject,
        sender=sender,
        date=sent or fallback_date,
        attachments=list(_iter_attachments(msg)),
    )


class ImapMailbox:
    """Read-only IMAP session on one mailbox folder.

    Example:
        with ImapMailbox("imap.gmail.com", "me@gmail.com") as mailbox:
            mailbox.connect(access_token=token)
            for message in mailbox.search(window, "CommSec"):
                print(message.subject)
    """

    def __init__(
        self,
        host: str,
        user: str,
        mailbox: str = "INBOX",
        port: int = 993,
        imap_factory: Optional[Callable[..., imaplib.IMAP4]] = None,
    ):
        """Initialize the mailbox.

        Args:
            host: IMAP server host name
            user: Login name
            mailbox: Folder to select
            port: IMAP SSL port
            imap_factory: Builds the IMAP connection (for testing).
                Defaults to imaplib.IMAP4_SSL.
        """
        self._host = host
        self._user = user
        self._mailbox = mailbox
        self._port = port
        self._imap_factory = imap_factory or imaplib.IMAP4_SSL
        self._imap: Optional[imaplib.IMAP4] = None

    def __enter__(self) -> "ImapMailbox":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def mailbox(self) -> str:
        return self._mailbox

    def connect(self, access_token: Optional[str] = None, password: Optional[str] = None) -> None:
        """Open the connection, log in and select the folder read-only.

        Args:
            access_token: OAuth access token, presented via XOAUTH2
            password: App password, used when no access token is given

        Raises:
            MailAuthenticationError: Server rejected the login
            TransportError: Connection or folder selection failed
        """
        self.close()
        try:
            self._imap = self._imap_factory(
                self._host, self._port, ssl_context=ssl.create_default_context()
            )
        except OSError as e:
            raise TransportError(f"Could not connect to {self._host}:{self._port}: {e}") from e

        try:
            if access_token:
                auth_string = generate_oauth2_string(self._user, access_token)
                self._imap.authenticate("XOAUTH2", lambda _: auth_string)
            else:
                self._imap.login(self._user, password or "")
        except imaplib.IMAP4.error as e:
            self.close()
            raise MailAuthenticationError(self._user, str(e)) from e
        except OSError as e:
            self.close()
            raise TransportError(f"IMAP login failed: {e}") from e

        try:
            status, data = self._imap.select(self._mailbox, readonly=True)
        except (imaplib.IMAP4.error, OSError) as e:
            self.close()
            raise TransportError(f"Failed to select mailbox '{self._mailbox}': {e}") from e
        if status != "OK":
            self.close()
            raise TransportError(f"Failed to select mailbox '{self._mailbox}': {status}")
        logger.info("Connected to %s as %s (mailbox '%s')", self._host, self._user, self._mailbox)

    def search(self, window: ScanWindow, text: str) -> Iterator[MailMessage]:
        """Yield messages in the window whose subject or body contains text.

        Raises:
            TransportError: Search or fetch failed
        """
        imap = self._require_connection()
        criteria = build_search_criteria(window, text)
        try:
            status, data = imap.uid("SEARCH", None, *criteria)
        except (imaplib.IMAP4.error, OSError) as e:
            raise TransportError(f"IMAP search failed: {e}") from e
        if status != "OK":
            raise TransportError(f"IMAP search failed: {status}")

        uids = data[0].split() if data and data[0] else []
        logger.info(
            "Mailbox '%s' -> %d matching emails in range (text contains '%s')",
            self._mailbox,
            len(uids),
            text,
        )

        fallback_date = datetime.combine(window.since, datetime.min.time())
        for uid in uids:
            uid_str = uid.decode() if isinstance(uid, bytes) else str(uid)
            raw = self._fetch_source(imap, uid_str)
            if raw is None:
                logger.warning("Message UID %s has no source, skipping", uid_str)
                continue
            yield parse_message(uid_str, raw, fallback_date)

    def close(self) -> None:
        """Log out. Safe to call more than once."""
        if self._imap is None:
            return
        imap, self._imap = self._imap, None
        try:
            imap.logout()
        except (imaplib.IMAP4.error, OSError) as e:
            logger.debug("IMAP logout failed: %s", e)

    def _require_connection(self) -> imaplib.IMAP4:
        if self._imap is None:
            raise TransportError("Mailbox is not connected")
        return self._imap

    def _fetch_source(self, imap: imaplib.IMAP4, uid: str) -> Optional[bytes]:
        try:
            status, data = imap.uid("FETCH", uid, "(RFC822)")
        except (imaplib.IMAP4.error, OSError) as e:
            raise TransportError(f"IMAP fetch of UID {uid} failed: {e}") from e
        if status != "OK":
            raise TransportError(f"IMAP fetch of UID {uid} failed: {status}")
        for item in data or []:
            if isinstance(item, tuple) and len(item) > 1 and isinstance(item[1], bytes):
                return item[1]
        return None
