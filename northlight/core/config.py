"""Identity configuration — API key, endpoint and per-user identity."""

from __future__ import annotations

import logging
import os
import threading
from typing import TYPE_CHECKING, Optional

from northlight.core.errors import InvalidAPIKey

if TYPE_CHECKING:
    from northlight.data.store import DataStore

logger = logging.getLogger(__name__)

SDK_VERSION = "1.0.0"
DEFAULT_BASE_URL = "https://northlight.app/api/v1"
API_SUFFIX = "/api/v1"


def normalize_endpoint(url: str) -> str:
    """Make sure *url* ends with the API path suffix. Idempotent."""
    if url.endswith(API_SUFFIX):
        return url
    if url.endswith("/"):
        return url + API_SUFFIX.lstrip("/")
    return url + API_SUFFIX


class IdentityConfig:
    """Holds credentials and user identity for one client.

    A single instance is normally created at the application's entry point
    and shared by the transport, the client and the vote ledger.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._api_key: Optional[str] = None
        self._base_endpoint: Optional[str] = None
        self._user_email: Optional[str] = None
        self._user_identifier: Optional[str] = None

    @classmethod
    def from_environment(
        cls, store: Optional[DataStore] = None
    ) -> IdentityConfig:
        """Resolve settings: env var → config DB → built-in defaults."""
        config = cls()
        api_key = os.environ.get("NORTHLIGHT_API_KEY") or (
            store.get_config("api-key") if store else None
        )
        base_url = os.environ.get("NORTHLIGHT_BASE_URL") or (
            store.get_config("base-url") if store else None
        )
        email = os.environ.get("NORTHLIGHT_USER_EMAIL") or (
            store.get_config("user-email") if store else None
        )
        if api_key:
            config.configure(api_key, base_url)
        config.set_user_email(email)
        if store is not None:
            config.set_user_identifier(store.get_config("user-identifier"))
        return config

    # ── Setup ────────────────────────────────────────────────────────

    def configure(self, api_key: str, base_endpoint: Optional[str] = None) -> None:
        if not api_key:
            logger.warning("Empty API key provided; configuration unchanged")
            return
        with self._lock:
            self._api_key = api_key
            self._base_endpoint = base_endpoint
        if base_endpoint:
            logger.info(
                "Configured with API key %s... and custom base URL %s",
                api_key[:8], base_endpoint,
            )
        else:
            logger.info("Configured with API key %s...", api_key[:8])

    def set_user_email(self, email: Optional[str]) -> None:
        with self._lock:
            self._user_email = email

    def set_user_identifier(self, identifier: Optional[str]) -> None:
        with self._lock:
            self._user_identifier = identifier

    # ── Accessors ────────────────────────────────────────────────────

    @property
    def is_configured(self) -> bool:
        return self._api_key is not None

    @property
    def user_email(self) -> Optional[str]:
        return self._user_email

    @property
    def user_identifier(self) -> Optional[str]:
        return self._user_identifier

    @property
    def sdk_version(self) -> str:
        return SDK_VERSION

    def require_api_key(self) -> str:
        key = self._api_key
        if key is None:
            raise InvalidAPIKey()
        return key

    def resolved_endpoint(self) -> str:
        base = self._base_endpoint
        if base:
            return normalize_endpoint(base)
        return DEFAULT_BASE_URL
