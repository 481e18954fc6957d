"""Yahoo OAuth provider using manual form-encoded token exchanges."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from urllib.parse import urlencode

import requests

from mailscan.exceptions import TransportError

from .exceptions import RefreshError, TokenExchangeError
from .models import Credential, ProviderKind
from .providers import TokenProvider

logger = logging.getLogger(__name__)

AUTH_URL = "https://api.login.yahoo.com/oauth2/request_auth"
TOKEN_URL = "https://api.login.yahoo.com/oauth2/get_token"
DEFAULT_SCOPE = "openid,mail-r"


class YahooTokenProvider(TokenProvider):
    """Token provider for Yahoo mailboxes.

    Yahoo ships no maintained Python SDK, so both grants are plain POSTs
    to the token endpoint. The expiry is computed locally as
    now + expires_in.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scope: str = DEFAULT_SCOPE,
        session: Optional[requests.Session] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the provider.

        Args:
            client_id: OAuth client ID from the Yahoo developer console
            client_secret: OAuth client secret
            redirect_uri: Local redirect URI served by the callback listener
            scope: Comma-separated Yahoo scopes
            session: HTTP session for token calls (for testing)
            clock: Returns the current UTC time (for testing)
        """
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._scope = scope
        self._session = session or requests.Session()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.YAHOO

    def authorization_url(self) -> str:
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": self._scope,
        }
        return f"{AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> Credential:
        try:
            payload = self._post_token(
                {
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self._redirect_uri,
                }
            )
        except requests.RequestException as e:
            raise TransportError(f"Could not reach Yahoo token endpoint: {e}") from e
        except ValueError as e:
            raise TokenExchangeError(f"Token exchange failed: {e}") from e

        try:
            return self._to_credential(payload, fallback_refresh_token=None)
        except ValueError as e:
            raise TokenExchangeError(
                f"Token exchange failed: {e}", response_body=str(payload)
            ) from e

    def refresh(self, refresh_token: str) -> Credential:
        try:
            payload = self._post_token(
                {"grant_type": "refresh_token", "refresh_token": refresh_token}
            )
            return self._to_credential(payload, fallback_refresh_token=refresh_token)
        except (requests.RequestException, ValueError) as e:
            raise RefreshError(f"Yahoo token refresh failed: {e}") from e

    def revoke(self, credential: Credential) -> None:
        # Yahoo publishes no revocation endpoint; the cached token is
        # simply forgotten by the caller.
        logger.info("Yahoo does not support remote token revocation, skipping")

    def _post_token(self, grant: dict[str, str]) -> dict[str, Any]:
        """POST a grant to the token endpoint and return the decoded body.

        Raises:
            requests.RequestException: Network failure
            ValueError: Non-JSON body or an error response
        """
        data = dict(grant)
        data["client_id"] = self._client_id
        data["client_secret"] = self._client_secret

        response = self._session.post(
            TOKEN_URL,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=30,
        )
        try:
            payload = response.json()
        except ValueError as e:
            raise ValueError(
                f"non-JSON response ({response.status_code}): {response.text[:200]}"
            ) from e

        if not isinstance(payload, dict):
            raise ValueError(f"unexpected response: {payload!r}")
        if "error" in payload:
            description = payload.get("error_description") or payload["error"]
            raise ValueError(f"{description} ({response.status_code})")
        return payload

    def _to_credential(
        self, payload: dict[str, Any], fallback_refresh_token: Optional[str]
    ) -> Credential:
        access_token = payload.get("access_token")
        if not access_token:
            raise ValueError("No access token in response")
        try:
            expires_in = int(payload["expires_in"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError("No valid expires_in in response") from e

        return Credential(
            access_token=access_token,
            refresh_token=payload.get("refresh_token") or fallback_refresh_token,
            expiry=self._clock() + timedelta(seconds=expires_in),
            token_type=payload.get("token_type"),
        )
