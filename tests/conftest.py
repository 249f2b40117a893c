"""Shared test fixtures for northlight tests."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

import httpx
import pytest

from northlight.core.client import NorthlightClient
from northlight.core.config import IdentityConfig
from northlight.core.device import DeviceInfoProvider
from northlight.core.transport import TransportClient
from northlight.data.ledger import VoteLedger
from northlight.data.store import DataStore


class FakeDeviceProvider(DeviceInfoProvider):
    """Deterministic device readings."""

    def __init__(self, **overrides: Any):
        self.values = {
            "model": "iPhone 15 Pro",
            "os_version": "17.4",
            "app_version": "2.3.1",
            "screen_size": (1179, 2556),
            "locale": "en_US",
            "free_memory_bytes": 512 * 1024 * 1024,
            "battery_level": 0.8,
            "network_type": "wifi",
        }
        self.values.update(overrides)
        self.calls: list[str] = []

    def _get(self, name: str) -> Any:
        self.calls.append(name)
        value = self.values[name]
        if isinstance(value, Exception):
            raise value
        return value

    def model(self) -> str:
        return self._get("model")

    def os_version(self) -> str:
        return self._get("os_version")

    def app_version(self) -> str:
        return self._get("app_version")

    def screen_size(self) -> Optional[tuple[int, int]]:
        return self._get("screen_size")

    def locale(self) -> str:
        return self._get("locale")

    def free_memory_bytes(self) -> Optional[int]:
        return self._get("free_memory_bytes")

    def battery_level(self) -> Optional[float]:
        return self._get("battery_level")

    def network_type(self) -> str:
        return self._get("network_type")


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays routes.

    Routes map ``(method, path)`` to ``(status_code, json_body)``; the path
    is relative to ``/api/v1``.
    """

    def __init__(self, routes: Optional[dict[tuple[str, str], tuple[int, Any]]] = None):
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.raw_path.decode().split("?")[0]
        if path.startswith("/api/v1"):
            path = path[len("/api/v1"):]
        status, body = self.routes.get((request.method, path), (404, {"error": "Not found"}))
        if isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    @property
    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def temp_db(tmp_path):
    """DataStore with a temporary SQLite database."""
    db_path = str(tmp_path / "test.db")
    store = DataStore(db_path=db_path)
    yield store
    store.close()


@pytest.fixture
def config() -> IdentityConfig:
    """IdentityConfig configured with API key "k1" and the default endpoint."""
    cfg = IdentityConfig()
    cfg.configure("k1")
    return cfg


@pytest.fixture
def device_provider() -> FakeDeviceProvider:
    return FakeDeviceProvider()


@pytest.fixture
def make_client(config, temp_db, device_provider) -> Callable[..., tuple[NorthlightClient, RecordingHandler]]:
    """Factory: NorthlightClient wired to a mock transport and temp ledger."""

    def _make(routes=None) -> tuple[NorthlightClient, RecordingHandler]:
        handler = RecordingHandler(routes)
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = NorthlightClient(
            config,
            transport=TransportClient(config, http_client=http),
            ledger=VoteLedger(temp_db, config),
            device_provider=device_provider,
        )
        return client, handler

    return _make


def feedback_payload(**overrides: Any) -> dict[str, Any]:
    """A FeedbackItem as the server sends it."""
    item = {
        "id": "f_1",
        "project_id": "p_1",
        "title": "Add dark mode",
        "description": "please",
        "status": "pending",
        "category": "ui",
        "platform": "ios",
        "vote_count": 3,
        "created_at": "2024-05-01T10:00:00Z",
        "updated_at": "2024-05-02T10:00:00Z",
    }
    item.update(overrides)
    return item
