"""Credential data model and authentication state types."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class ProviderKind(str, Enum):
    """OAuth provider backing the mailbox, fixed for the process lifetime."""

    GOOGLE = "google"
    YAHOO = "yahoo"

    @classmethod
    def from_host(cls, imap_host: str) -> "ProviderKind":
        """Select the provider from the IMAP host name."""
        return cls.YAHOO if "yahoo" in imap_host.lower() else cls.GOOGLE


class AuthState(str, Enum):
    """States of the credential lifecycle."""

    NO_CREDENTIAL = "no_credential"
    CACHED_VALID = "cached_valid"
    CACHED_EXPIRED = "cached_expired"
    AUTHORIZING = "authorizing"
    FAILED = "failed"


@dataclass
class Credential:
    """OAuth token set used to open a mail session.

    Attributes:
        access_token: Short-lived bearer token
        refresh_token: Long-lived token for minting new access tokens
        expiry: When access_token stops working (timezone-aware UTC).
            None means unknown: the token is used until the server rejects it.
        token_type: Token type reported by the provider, usually "Bearer"
    """

    access_token: str
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None
    token_type: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True if the expiry is known and not in the future."""
        if self.expiry is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.expiry <= now

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON cache shape."""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry": self.expiry.isoformat() if self.expiry else None,
            "token_type": self.token_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Credential":
        """Deserialize from the JSON cache shape.

        Also accepts the older cache layout that stored the expiry as
        epoch milliseconds under "expiry_date".

        Raises:
            KeyError: If access_token is missing
            ValueError: If the expiry cannot be parsed
        """
        access_token = data["access_token"]
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("access_token must be a non-empty string")

        expiry = None
        if data.get("expiry"):
            expiry = _as_utc(datetime.fromisoformat(data["expiry"]))
        elif data.get("expiry_date") is not None:
            expiry = datetime.fromtimestamp(
                float(data["expiry_date"]) / 1000, tz=timezone.utc
            )

        return cls(
            access_token=access_token,
            refresh_token=data.get("refresh_token") or None,
            expiry=expiry,
            token_type=data.get("token_type"),
        )


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC, the convention of google-auth."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
