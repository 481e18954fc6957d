"""Environment-driven settings for a scan run."""

import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlparse

from .exceptions import ConfigurationError

DEFAULT_IMAP_HOST = "imap.gmail.com"
DEFAULT_REDIRECT_URI = "http://localhost:3000/oauth/callback"
DEFAULT_START_DATE = date(2023, 2, 1)
DEFAULT_CALLBACK_TIMEOUT = 300.0
LOOPBACK_HOSTS = ("localhost", "127.0.0.1", "::1")


@dataclass
class Settings:
    """Everything a scan run needs, resolved once at startup.

    Attributes:
        email_user: Mailbox login name
        imap_host: IMAP server host name (also selects the OAuth provider)
        imap_port: IMAP SSL port
        mailbox: Folder to scan
        use_oauth: Authenticate with OAuth 2.0 instead of an app password
        app_password: App password, required when use_oauth is False
        client_id: OAuth client ID
        client_secret: OAuth client secret
        redirect_uri: OAuth redirect URI served by the callback listener
        token_path: Credential cache file
        callback_timeout: Seconds to wait for the authorization redirect
        attachments_dir: Directory where attachments are saved
        ledger_path: Per-day scan ledger file
        content_filter: Text searched for in subject and body
        default_start: Resume point used when the ledger is empty
    """

    email_user: str
    imap_host: str = DEFAULT_IMAP_HOST
    imap_port: int = 993
    mailbox: str = "INBOX"
    use_oauth: bool = False
    app_password: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: str = DEFAULT_REDIRECT_URI
    token_path: Path = Path(".oauth-tokens.json")
    callback_timeout: float = DEFAULT_CALLBACK_TIMEOUT
    attachments_dir: Path = Path("commsec-attachments")
    ledger_path: Optional[Path] = None
    content_filter: str = "CommSec"
    default_start: date = DEFAULT_START_DATE

    def __post_init__(self) -> None:
        if self.ledger_path is None:
            self.ledger_path = self.attachments_dir / "scan_metadata.csv"

    @property
    def callback_port(self) -> int:
        """Port the callback listener binds, taken from the redirect URI."""
        parsed = urlparse(self.redirect_uri)
        return parsed.port or 80

    @property
    def callback_host(self) -> str:
        """Loopback address the callback listener binds.

        "localhost" maps to the IPv4 loopback. A browser that resolves
        localhost to ::1 and does not fall back to IPv4 needs a redirect
        URI of http://127.0.0.1:... or http://[::1]:... instead.
        """
        hostname = urlparse(self.redirect_uri).hostname or "localhost"
        return "127.0.0.1" if hostname == "localhost" else hostname

    @property
    def callback_path(self) -> str:
        """Only request path the callback listener accepts."""
        return urlparse(self.redirect_uri).path or "/"

    def validate(self) -> None:
        """Check that the selected authentication mode is fully configured.

        Raises:
            ConfigurationError: If a required value is missing
        """
        if not self.email_user:
            raise ConfigurationError("Missing EMAIL_USER environment variable.")
        if self.use_oauth:
            if not self.client_id or not self.client_secret:
                raise ConfigurationError(
                    "Missing OAUTH_CLIENT_ID or OAUTH_CLIENT_SECRET in .env file"
                )
            parsed = urlparse(self.redirect_uri)
            if parsed.scheme != "http" or parsed.hostname not in LOOPBACK_HOSTS:
                raise ConfigurationError(
                    f"OAUTH_REDIRECT_URI must be a local http URI, got {self.redirect_uri}"
                )
        elif not self.app_password:
            raise ConfigurationError(
                "Missing EMAIL_APP_PASSWORD. Set USE_OAUTH=true to use OAuth instead."
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (for testing)

        Returns:
            Validated Settings

        Raises:
            ConfigurationError: If a value is missing or malformed
        """
        env = os.environ if environ is None else environ

        attachments_dir = Path(env.get("ATTACHMENTS_DIR") or "commsec-attachments")
        ledger_path = env.get("SCAN_LEDGER_PATH")

        settings = cls(
            email_user=env.get("EMAIL_USER", ""),
            imap_host=env.get("EMAIL_IMAP_HOST") or DEFAULT_IMAP_HOST,
            imap_port=_parse_int(env, "EMAIL_IMAP_PORT", 993),
            mailbox=env.get("EMAIL_MAILBOX") or "INBOX",
            use_oauth=env.get("USE_OAUTH", "").lower() == "true",
            app_password=env.get("EMAIL_APP_PASSWORD") or None,
            client_id=env.get("OAUTH_CLIENT_ID") or None,
            client_secret=env.get("OAUTH_CLIENT_SECRET") or None,
            redirect_uri=env.get("OAUTH_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
            token_path=Path(env.get("OAUTH_TOKEN_PATH") or ".oauth-tokens.json"),
            callback_timeout=float(
                _parse_int(env, "OAUTH_CALLBACK_TIMEOUT", int(DEFAULT_CALLBACK_TIMEOUT))
            ),
            attachments_dir=attachments_dir,
            ledger_path=Path(ledger_path) if ledger_path else None,
            content_filter=env.get("SCAN_FILTER") or "CommSec",
            default_start=_parse_date(env, "SCAN_DEFAULT_START", DEFAULT_START_DATE),
        )
        settings.validate()
        return settings


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _parse_date(env: Mapping[str, str], name: str, default: date) -> date:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return date.fromisoformat(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an ISO date, got {raw!r}") from e
