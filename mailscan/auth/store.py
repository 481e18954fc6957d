"""JSON file cache for the current credential."""

import json
import logging
from pathlib import Path
from typing import Optional

from mailscan.utils import atomic_write_text

from .models import Credential

logger = logging.getLogger(__name__)


class CredentialStore:
    """Reads and writes one Credential as a JSON object.

    Pure data access: no expiry or refresh policy lives here.
    """

    def __init__(self, token_path: Path):
        """Initialize the store.

        Args:
            token_path: Cache file location
        """
        self._token_path = token_path

    @property
    def path(self) -> Path:
        """Credential cache file location."""
        return self._token_path

    def load(self) -> Optional[Credential]:
        """Load the cached credential.

        Returns:
            The credential, or None if the file is missing or unreadable
        """
        if not self._token_path.exists():
            return None
        try:
            data = json.loads(self._token_path.read_text(encoding="utf-8"))
            return Credential.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Failed to load cached token from %s: %s", self._token_path, e)
            return None

    def save(self, credential: Credential) -> None:
        """Persist the credential, replacing any previous one."""
        atomic_write_text(
            self._token_path, json.dumps(credential.to_dict(), indent=2) + "\n"
        )
        logger.info("Token cached to %s", self._token_path.name)

    def delete(self) -> None:
        """Remove the cache file if present."""
        self._token_path.unlink(missing_ok=True)
