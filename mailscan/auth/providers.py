"""Common interface for OAuth token providers."""

from abc import ABC, abstractmethod

from .models import Credential, ProviderKind


class TokenProvider(ABC):
    """Translates grant, refresh and revoke operations into provider calls.

    Implementations must:
    - Return Credentials in the common shape, never partially populated
    - Raise TokenExchangeError for a rejected or malformed code exchange
    - Raise RefreshError for any refresh failure, network errors included
    - Raise TransportError when the provider cannot be reached during
      an exchange or revoke
    """

    @abstractmethod
    def authorization_url(self) -> str:
        """Build the URL the user visits to approve access."""
        pass

    @abstractmethod
    def exchange_code(self, code: str) -> Credential:
        """Exchange an authorization code for a fresh credential.

        Args:
            code: Code captured from the OAuth redirect

        Returns:
            New credential

        Raises:
            TokenExchangeError: Provider rejected the code or answered garbage
            TransportError: Provider unreachable
        """
        pass

    @abstractmethod
    def refresh(self, refresh_token: str) -> Credential:
        """Mint a new access token from a refresh token.

        Args:
            refresh_token: Refresh token from the cached credential

        Returns:
            New credential (carrying the refresh token forward if the
            provider does not rotate it)

        Raises:
            RefreshError: On any failure
        """
        pass

    @abstractmethod
    def revoke(self, credential: Credential) -> None:
        """Invalidate the grant at the provider.

        Raises:
            AuthenticationError: Provider refused the revocation
            TransportError: Provider unreachable
        """
        pass

    @property
    @abstractmethod
    def kind(self) -> ProviderKind:
        """Return which provider this adapter talks to."""
        pass
