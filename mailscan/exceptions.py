"""Base exceptions shared by all mailscan modules."""


class MailScanError(Exception):
    """Base exception for all mailscan errors."""

    pass


class ConfigurationError(MailScanError):
    """Raised when required settings are missing or invalid."""

    pass


class TransportError(MailScanError):
    """Raised when the mail server or an OAuth provider cannot be reached."""

    pass


class MailAuthenticationError(TransportError):
    """Raised when the mail server rejects the supplied login."""

    def __init__(self, user: str, reason: str):
        self.user = user
        self.reason = reason
        super().__init__(f"Mail server rejected login for {user}: {reason}")
