"""OAuth credential lifecycle for mailbox access.

Public API:
    - CredentialManager: Cached/refresh/authorize state machine
    - CredentialStore: JSON file cache for the current credential
    - CallbackListener: Local endpoint capturing the OAuth redirect
    - TokenProvider: Interface for provider adapters
    - GoogleTokenProvider, YahooTokenProvider: Provider adapters
    - Credential, ProviderKind, AuthState: Data types
    - AuthenticationError and subclasses
"""

from .callback import CallbackListener
from .exceptions import (
    AuthenticationError,
    AuthorizationDeniedError,
    AuthorizationError,
    AuthorizationTimeoutError,
    RefreshError,
    TokenExchangeError,
)
from .google_provider import GoogleTokenProvider
from .manager import CredentialManager, create_provider
from .models import AuthState, Credential, ProviderKind
from .providers import TokenProvider
from .store import CredentialStore
from .yahoo_provider import YahooTokenProvider

__all__ = [
    "CredentialManager",
    "CredentialStore",
    "CallbackListener",
    "TokenProvider",
    "GoogleTokenProvider",
    "YahooTokenProvider",
    "create_provider",
    "Credential",
    "ProviderKind",
    "AuthState",
    "AuthenticationError",
    "AuthorizationError",
    "AuthorizationDeniedError",
    "AuthorizationTimeoutError",
    "TokenExchangeError",
    "RefreshError",
]
