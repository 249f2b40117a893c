"""Tests for northlight.cli — commands against a mocked API."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest
from typer.testing import CliRunner

from conftest import FakeDeviceProvider, RecordingHandler, feedback_payload
from northlight.cli import app
from northlight.core.client import NorthlightClient
from northlight.core.config import IdentityConfig
from northlight.core.transport import TransportClient
from northlight.data.ledger import VOTED_IDS_KEY, VoteLedger
from northlight.data.store import DataStore

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "cli.db")
    monkeypatch.setenv("NORTHLIGHT_DB_PATH", path)
    monkeypatch.delenv("NORTHLIGHT_API_KEY", raising=False)
    monkeypatch.delenv("NORTHLIGHT_BASE_URL", raising=False)
    monkeypatch.delenv("NORTHLIGHT_USER_EMAIL", raising=False)
    return path


def _mock_api(routes, api_key="k1"):
    """Patch the CLI's client factory to talk to a RecordingHandler."""
    handler = RecordingHandler(routes)

    def factory(store: DataStore) -> NorthlightClient:
        config = IdentityConfig()
        if api_key:
            config.configure(api_key)
        config.set_user_identifier(store.get_config("user-identifier"))
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return NorthlightClient(
            config,
            transport=TransportClient(config, http_client=http),
            ledger=VoteLedger(store, config),
            device_provider=FakeDeviceProvider(),
        )

    return patch("northlight.cli._make_client", side_effect=factory), handler


class TestConfigCommands:
    def test_configure_saves_key(self, db_path):
        result = runner.invoke(app, ["configure", "abcdefgh1234", "--base-url", "https://x"])
        assert result.exit_code == 0
        assert "abcdefgh..." in result.output
        assert "1234" not in result.output
        store = DataStore(db_path)
        assert store.get_config("api-key") == "abcdefgh1234"
        assert store.get_config("base-url") == "https://x"
        store.close()

    def test_configure_rejects_blank_key(self, db_path):
        result = runner.invoke(app, ["configure", "  "])
        assert result.exit_code == 1

    def test_config_set_and_get(self, db_path):
        result = runner.invoke(app, ["config", "set", "user-email", "me@example.com"])
        assert result.exit_code == 0
        result = runner.invoke(app, ["config", "get", "user-email"])
        assert "user-email = me@example.com" in result.output

    def test_config_get_all_masks_key(self, db_path):
        runner.invoke(app, ["config", "set", "api-key", "abcdefgh-secret"])
        result = runner.invoke(app, ["config", "get"])
        assert result.exit_code == 0
        assert "api-key = abcdefgh..." in result.output
        assert "secret" not in result.output
        assert "base-url = (not set)" in result.output

    def test_config_rejects_unknown_key(self, db_path):
        result = runner.invoke(app, ["config", "set", "colour", "blue"])
        assert result.exit_code == 1
        assert "Unknown config key" in result.output

    def test_config_unknown_action(self, db_path):
        result = runner.invoke(app, ["config", "delete"])
        assert result.exit_code == 1


class TestSubmitCommands:
    def test_submit_feedback(self, db_path):
        patcher, handler = _mock_api(
            {("POST", "/feedback"): (200, {"success": True, "feedback_id": "f_42"})}
        )
        with patcher:
            result = runner.invoke(
                app, ["submit-feedback", "Add dark mode", "please", "-c", "ui"]
            )
        assert result.exit_code == 0
        assert "f_42" in result.output
        assert handler.last_json["category"] == "ui"

    def test_report_bug_with_severity(self, db_path):
        patcher, handler = _mock_api(
            {("POST", "/bugs"): (200, {"success": True, "bug_id": "b_1"})}
        )
        with patcher:
            result = runner.invoke(
                app, ["report-bug", "Crash", "On save", "--severity", "critical"]
            )
        assert result.exit_code == 0
        assert "b_1" in result.output
        assert handler.last_json["severity"] == "critical"

    def test_client_error_exits_1(self, db_path):
        patcher, _ = _mock_api({("POST", "/feedback"): (429, {})})
        with patcher:
            result = runner.invoke(app, ["submit-feedback", "Title", "Body"])
        assert result.exit_code == 1
        assert "Rate limit exceeded" in result.output

    def test_validation_error_exits_1(self, db_path):
        patcher, handler = _mock_api({})
        with patcher:
            result = runner.invoke(app, ["submit-feedback", "x" * 256, "Body"])
        assert result.exit_code == 1
        assert "Title must be between 1 and 255 characters" in result.output
        assert handler.requests == []

    def test_missing_api_key(self, db_path):
        patcher, handler = _mock_api({}, api_key=None)
        with patcher:
            result = runner.invoke(app, ["submit-feedback", "Title", "Body"])
        assert result.exit_code == 1
        assert "no API key configured" in result.output
        assert handler.requests == []


class TestListingCommands:
    def test_list_feedback_sorted_with_votes(self, db_path):
        store = DataStore(db_path)
        store.set_string_list(VOTED_IDS_KEY, ["f_2"])
        store.close()
        patcher, _ = _mock_api({
            ("GET", "/feedback"): (200, {"success": True, "feedback": [
                feedback_payload(id="f_1", title="Later", status="completed"),
                feedback_payload(id="f_2", title="Sooner", status="in_progress"),
            ]}),
        })
        with patcher:
            result = runner.invoke(app, ["list-feedback"])
        assert result.exit_code == 0
        assert result.output.index("Sooner") < result.output.index("Later")
        assert "In Progress" in result.output
        assert "✓" in result.output

    def test_list_feedback_status_filter(self, db_path):
        patcher, _ = _mock_api({
            ("GET", "/feedback"): (200, {"success": True, "feedback": [
                feedback_payload(id="f_1", title="Later", status="completed"),
            ]}),
        })
        with patcher:
            result = runner.invoke(app, ["list-feedback", "--status", "pending"])
        assert result.exit_code == 0
        assert "No feedback found" in result.output

    def test_roadmap(self, db_path):
        patcher, _ = _mock_api({
            ("GET", "/roadmap"): (200, {"roadmap_items": [
                {"id": "r_2", "feature": {"title": "Second", "description": "b"},
                 "position": 2, "estimated_date": "2024-12"},
                {"id": "r_1", "feature": {"title": "First", "description": "a"},
                 "position": 1, "estimated_date": "2024-10"},
            ]}),
        })
        with patcher:
            result = runner.invoke(app, ["roadmap"])
        assert result.exit_code == 0
        assert result.output.index("First") < result.output.index("Second")


class TestVoteCommand:
    def test_vote_once(self, db_path):
        patcher, handler = _mock_api({
            ("POST", "/feedback/f_42/vote"): (200, {"success": True, "vote_count": 5}),
        })
        with patcher:
            first = runner.invoke(app, ["vote", "f_42"])
            second = runner.invoke(app, ["vote", "f_42"])
        assert first.exit_code == 0
        assert "5 votes" in first.output
        assert second.exit_code == 1
        assert "already voted" in second.output
        assert len(handler.requests) == 1

        store = DataStore(db_path)
        assert store.get_string_list(VOTED_IDS_KEY) == ["f_42"]
        assert store.get_config("user-identifier")
        store.close()


class TestInfoCommands:
    @patch("northlight.core.device.capture")
    def test_device_info(self, mock_capture, db_path):
        from northlight.core.models import DeviceInfo

        mock_capture.return_value = DeviceInfo(
            model="ThinkPad", os_version="Ubuntu 24.04", app_version="1.0.0",
            screen_resolution="1920x1080", locale="en_US",
        )
        result = runner.invoke(app, ["device-info"])
        assert result.exit_code == 0
        assert "ThinkPad" in result.output
        assert "1920x1080" in result.output

    def test_version(self, db_path):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "northlight 1.0.0" in result.output
