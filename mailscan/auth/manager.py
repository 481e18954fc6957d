"""Credential lifecycle: cache, refresh, and interactive authorization."""

import logging
import webbrowser
from datetime import datetime, timezone
from typing import Callable, Optional

from mailscan.config import Settings
from mailscan.exceptions import ConfigurationError, TransportError

from .callback import CallbackListener
from .exceptions import AuthenticationError, RefreshError
from .google_provider import GoogleTokenProvider
from .models import AuthState, Credential, ProviderKind
from .providers import TokenProvider
from .store import CredentialStore
from .yahoo_provider import YahooTokenProvider

logger = logging.getLogger(__name__)


def create_provider(
    kind: ProviderKind, client_id: str, client_secret: str, redirect_uri: str
) -> TokenProvider:
    """Build the token provider adapter for the given provider kind."""
    if kind is ProviderKind.YAHOO:
        return YahooTokenProvider(client_id, client_secret, redirect_uri)
    return GoogleTokenProvider(client_id, client_secret, redirect_uri)


class CredentialManager:
    """Hands out a usable access token, authorizing only when it must.

    Order of preference:
        1. Cached token that has not expired (no network call)
        2. Refresh of an expired token using its refresh token
        3. Full browser authorization via the local callback listener

    A refresh failure of any kind falls through to step 3. A failure in
    step 3 leaves the manager in AuthState.FAILED and is raised.

    Example:
        manager = CredentialManager.from_settings(Settings.from_env())
        token = manager.get_access_token()
    """

    def __init__(
        self,
        provider: TokenProvider,
        store: CredentialStore,
        listener_factory: Optional[Callable[[], CallbackListener]] = None,
        open_browser: Optional[Callable[[str], bool]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the manager.

        Args:
            provider: Adapter for the mailbox's OAuth provider
            store: Credential cache
            listener_factory: Builds a fresh CallbackListener for each
                authorization. Defaults to port 3000, /oauth/callback.
            open_browser: Opens the authorization URL. Defaults to
                webbrowser.open.
            clock: Returns the current UTC time (for testing)
        """
        self._provider = provider
        self._store = store
        self._listener_factory = listener_factory or CallbackListener
        self._open_browser = open_browser or webbrowser.open
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._state = AuthState.NO_CREDENTIAL

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialManager":
        """Wire a manager from OAuth settings.

        Raises:
            ConfigurationError: If OAuth client credentials are missing
        """
        if not settings.client_id or not settings.client_secret:
            raise ConfigurationError(
                "Missing OAUTH_CLIENT_ID or OAUTH_CLIENT_SECRET in .env file"
            )
        kind = ProviderKind.from_host(settings.imap_host)
        provider = create_provider(
            kind, settings.client_id, settings.client_secret, settings.redirect_uri
        )

        def listener_factory() -> CallbackListener:
            return CallbackListener(
                port=settings.callback_port,
                host=settings.callback_host,
                path=settings.callback_path,
                timeout=settings.callback_timeout,
            )

        return cls(provider, CredentialStore(settings.token_path), listener_factory)

    @property
    def state(self) -> AuthState:
        """Current lifecycle state (last transition taken)."""
        return self._state

    @property
    def provider(self) -> TokenProvider:
        """Adapter for the mailbox's OAuth provider."""
        return self._provider

    def get_access_token(self, force_refresh: bool = False) -> str:
        """Return an access token the mail server should accept.

        Args:
            force_refresh: Treat the cached token as expired, e.g. after
                the mail server rejected it

        Returns:
            Access token string

        Raises:
            AuthorizationError: Interactive authorization failed
            TransportError: Provider unreachable during code exchange
        """
        cached = self._store.load()

        if cached is None:
            self._transition(AuthState.NO_CREDENTIAL)
        elif not force_refresh and not cached.is_expired(self._clock()):
            self._transition(AuthState.CACHED_VALID)
            logger.info("Using cached OAuth token")
            return cached.access_token
        else:
            self._transition(AuthState.CACHED_EXPIRED)
            if cached.refresh_token:
                refreshed = self._try_refresh(cached.refresh_token)
                if refreshed is not None:
                    return refreshed.access_token
            else:
                logger.info("Cached token expired and has no refresh token")

        return self._authorize().access_token

    def revoke(self) -> None:
        """Revoke the grant at the provider and forget the cached credential.

        Provider failures are logged; the cache file is always deleted.
        """
        cached = self._store.load()
        if cached is not None:
            try:
                self._provider.revoke(cached)
            except (AuthenticationError, TransportError) as e:
                logger.warning("Failed to revoke token at provider: %s", e)
        self._store.delete()
        self._transition(AuthState.NO_CREDENTIAL)
        logger.info("Token revoked successfully")

    def _try_refresh(self, refresh_token: str) -> Optional[Credential]:
        logger.info("Refreshing %s OAuth token...", self._provider.kind.value)
        try:
            credential = self._provider.refresh(refresh_token)
        except RefreshError as e:
            logger.warning("Failed to refresh token, starting new OAuth flow: %s", e)
            return None
        self._save(credential)
        self._transition(AuthState.CACHED_VALID)
        return credential

    def _authorize(self) -> Credential:
        self._transition(AuthState.AUTHORIZING)
        logger.info("OAuth 2.0 authorization required")
        try:
            auth_url = self._provider.authorization_url()
            with self._listener_factory() as listener:
                self._launch_browser(auth_url)
                code = listener.wait_for_code()
            logger.info("Authorization code received, exchanging for access token")
            credential = self._provider.exchange_code(code)
        except Exception:
            self._transition(AuthState.FAILED)
            raise

        self._save(credential)
        self._transition(AuthState.CACHED_VALID)
        logger.info("OAuth authentication successful")
        return credential

    def _launch_browser(self, url: str) -> None:
        logger.info("Opening browser for authorization. If it doesn't open, visit: %s", url)
        try:
            opened = self._open_browser(url)
        except webbrowser.Error as e:
            logger.warning("Could not open browser automatically: %s", e)
            return
        if not opened:
            logger.warning("Could not open browser automatically. Please open the URL manually.")

    def _save(self, credential: Credential) -> None:
        try:
            self._store.save(credential)
        except OSError as e:
            logger.warning("Failed to cache token: %s", e)

    def _transition(self, state: AuthState) -> None:
        if state is not self._state:
            logger.debug("Auth state %s -> %s", self._state.value, state.value)
        self._state = state
