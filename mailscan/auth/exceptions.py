"""Exceptions for the OAuth credential lifecycle."""

from mailscan.exceptions import MailScanError


class AuthenticationError(MailScanError):
    """Base exception for all OAuth credential failures."""

    pass


class AuthorizationError(AuthenticationError):
    """Raised when the interactive authorization flow cannot produce a credential.

    Fatal for the run: the ledger is left untouched.
    """

    pass


class AuthorizationTimeoutError(AuthorizationError):
    """Raised when no authorization redirect arrives in time."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Authorization timeout after {timeout:g} seconds")


class AuthorizationDeniedError(AuthorizationError):
    """Raised when the redirect carries no authorization code."""

    def __init__(self, reason: str | None = None):
        self.reason = reason
        message = "Authorization failed: No code received"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class TokenExchangeError(AuthorizationError):
    """Raised when the provider rejects or garbles an authorization-code exchange."""

    def __init__(self, message: str, response_body: str | None = None):
        self.response_body = response_body
        super().__init__(message)


class RefreshError(AuthenticationError):
    """Raised when a refresh token cannot be turned into a new access token.

    Recovered inside CredentialManager by falling back to full authorization.
    """

    pass
