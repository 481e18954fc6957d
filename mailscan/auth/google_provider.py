"""Google OAuth provider backed by google-auth and google-auth-oauthlib."""

import logging
from datetime import timezone
from typing import Optional

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from mailscan.exceptions import TransportError

from .exceptions import AuthenticationError, RefreshError, TokenExchangeError
from .models import Credential, ProviderKind
from .providers import TokenProvider

logger = logging.getLogger(__name__)

# Full IMAP access requires the mail.google.com scope
DEFAULT_SCOPES = ["https://mail.google.com/"]

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"
REVOKE_URI = "https://oauth2.googleapis.com/revoke"


class GoogleTokenProvider(TokenProvider):
    """Token provider for Gmail mailboxes.

    The authorization URL and the code exchange share one oauthlib Flow so
    the PKCE verifier generated for the URL is presented at exchange time.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scopes: Optional[list[str]] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the provider.

        Args:
            client_id: OAuth client ID from Google Cloud Console
            client_secret: OAuth client secret
            redirect_uri: Local redirect URI served by the callback listener
            scopes: Scopes to request. Defaults to full Gmail IMAP access.
            session: HTTP session used for refresh and revoke calls
        """
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._scopes = scopes or DEFAULT_SCOPES
        self._session = session or requests.Session()
        self._flow: Optional[Flow] = None

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.GOOGLE

    def _get_flow(self) -> Flow:
        if self._flow is None:
            client_config = {
                "installed": {
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "auth_uri": AUTH_URI,
                    "token_uri": TOKEN_URI,
                    "redirect_uris": [self._redirect_uri],
                }
            }
            self._flow = Flow.from_client_config(
                client_config, scopes=self._scopes, redirect_uri=self._redirect_uri
            )
        return self._flow

    def authorization_url(self) -> str:
        url, _state = self._get_flow().authorization_url(
            access_type="offline",
            prompt="consent",
        )
        return url

    def exchange_code(self, code: str) -> Credential:
        flow = self._get_flow()
        try:
            flow.fetch_token(code=code)
            creds = flow.credentials
        except OAuth2Error as e:
            raise TokenExchangeError(
                f"Token exchange failed: {e.description or e.error}"
            ) from e
        except requests.RequestException as e:
            raise TransportError(f"Could not reach Google token endpoint: {e}") from e
        except (ValueError, Warning) as e:
            # oauthlib raises Warning when the granted scopes differ from the request
            raise TokenExchangeError(f"Token exchange failed: {e}") from e

        if not creds.token:
            raise TokenExchangeError("No access token in response")
        return _to_credential(creds)

    def refresh(self, refresh_token: str) -> Credential:
        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=TOKEN_URI,
            client_id=self._client_id,
            client_secret=self._client_secret,
            scopes=self._scopes,
        )
        try:
            creds.refresh(Request(session=self._session))
        except GoogleAuthError as e:
            raise RefreshError(f"Google token refresh failed: {e}") from e

        if not creds.token:
            raise RefreshError("No access token in response")
        credential = _to_credential(creds)
        if not credential.refresh_token:
            credential.refresh_token = refresh_token
        return credential

    def revoke(self, credential: Credential) -> None:
        token = credential.refresh_token or credential.access_token
        try:
            response = self._session.post(
                REVOKE_URI,
                params={"token": token},
                headers={"content-type": "application/x-www-form-urlencoded"},
                timeout=30,
            )
        except requests.RequestException as e:
            raise TransportError(f"Could not reach Google revoke endpoint: {e}") from e

        if response.status_code != 200:
            raise AuthenticationError(
                f"Token revocation failed ({response.status_code}): {response.text}"
            )
        logger.debug("Google grant revoked")


def _to_credential(creds: Credentials) -> Credential:
    expiry = creds.expiry
    # google-auth keeps expiry as naive UTC
    if expiry is not None and expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return Credential(
        access_token=creds.token,
        refresh_token=creds.refresh_token,
        expiry=expiry,
        token_type="Bearer",
    )
