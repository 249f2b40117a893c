"""Transport — the only place that talks HTTP to the Northlight API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Optional, TypeVar
from urllib.parse import urlsplit

import httpx

from northlight.core.config import SDK_VERSION, IdentityConfig
from northlight.core.errors import (
    DecodingError,
    FeedbackLimitReached,
    InvalidAPIKey,
    InvalidInput,
    NetworkError,
    RateLimitExceeded,
    ServerError,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")

PLATFORM = "python"
REQUEST_TIMEOUT = 30.0
RESOURCE_TIMEOUT = 60.0


def extract_error_message(body: bytes) -> Optional[str]:
    """Pull a human-readable message out of an error payload, if any.

    Accepts ``{"error": "..."}``, ``{"message": "..."}`` and
    ``{"error": {"message": "..."}}``.
    """
    if not body:
        return None
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        error = error.get("message")
    for candidate in (error, data.get("message")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return None


def classify_response(status_code: int, body: bytes) -> None:
    """Raise the taxonomy error matching *status_code*; return on 2xx."""
    if 200 <= status_code <= 299:
        return
    if status_code in (401, 403):
        message = extract_error_message(body)
        if message:
            raise InvalidInput(message)
        raise InvalidAPIKey()
    if status_code == 429:
        raise RateLimitExceeded()
    if status_code == 402:
        raise FeedbackLimitReached()
    if status_code == 400:
        raise InvalidInput(extract_error_message(body) or "Invalid request")
    raise ServerError(status_code, extract_error_message(body))


class TransportClient:
    """Builds authenticated requests, executes them, decodes the replies."""

    def __init__(
        self,
        config: IdentityConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        request_timeout: float = REQUEST_TIMEOUT,
        resource_timeout: float = RESOURCE_TIMEOUT,
    ):
        self.config = config
        self.request_timeout = request_timeout
        self.resource_timeout = resource_timeout
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazy-initialize the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.request_timeout)
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> TransportClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _build_url(self, path: str) -> str:
        url = self.config.resolved_endpoint() + path
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise InvalidInput("Invalid URL")
        return url

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "X-API-Key": api_key,
            "X-Platform": PLATFORM,
            "Content-Type": "application/json",
            "User-Agent": f"northlight-python/{SDK_VERSION}",
        }

    async def execute(
        self,
        path: str,
        method: str = "GET",
        body: Optional[dict[str, Any]] = None,
    ) -> tuple[int, bytes]:
        """Send one request and return ``(status_code, raw_body)``.

        Raises:
            InvalidAPIKey: No API key configured.
            InvalidInput: The endpoint and path do not form a valid URL.
            NetworkError: The request failed before a status was received.
        """
        api_key = self.config.require_api_key()
        url = self._build_url(path)
        content = json.dumps(body).encode() if body is not None else None

        try:
            response = await asyncio.wait_for(
                self._get_client().request(
                    method, url, headers=self._headers(api_key), content=content,
                ),
                timeout=self.resource_timeout,
            )
        except httpx.InvalidURL as e:
            raise InvalidInput("Invalid URL") from e
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise NetworkError(e) from e

        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response.status_code, response.content

    async def send(
        self,
        path: str,
        response_type: Callable[[Any], R],
        method: str = "GET",
        body: Optional[dict[str, Any]] = None,
    ) -> R:
        """Execute a request and decode a 2xx body with *response_type*.

        *response_type* is any callable taking the parsed JSON, usually a
        dataclass ``from_dict``.
        """
        status_code, raw = await self.execute(path, method, body)
        self._classify(method, path, status_code, raw)
        try:
            return response_type(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Could not decode %s %s response: %s", method, path, e)
            raise DecodingError(e) from e

    async def send_no_content(
        self,
        path: str,
        method: str = "POST",
        body: Optional[dict[str, Any]] = None,
    ) -> None:
        """Execute a request whose body, if any, is ignored."""
        status_code, raw = await self.execute(path, method, body)
        self._classify(method, path, status_code, raw)

    @staticmethod
    def _classify(method: str, path: str, status_code: int, raw: bytes) -> None:
        try:
            classify_response(status_code, raw)
        except Exception as e:
            logger.warning("%s %s -> %s: %s", method, path, status_code, e)
            raise
