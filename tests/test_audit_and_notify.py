"""Tests for audit events and Slack notifications."""

import json
from unittest.mock import MagicMock, patch

import requests

from secretpatch.audit import AuditTrail, make_event
from secretpatch.notify import send_notification


class TestAuditTrail:
    def test_event_shape(self) -> None:
        event = make_event("update_started", "app/config", "success", {"keys": ["a"]}, backend="aws")
        assert event["actor"] == "secretpatch"
        assert event["resource"] == "app/config"
        assert event["backend"] == "aws"
        assert event["metadata"] == {"keys": ["a"]}
        assert "timestamp" in event

    def test_appends_json_lines(self, tmp_path) -> None:
        path = tmp_path / "audit" / "audit.log"
        trail = AuditTrail(path, backend="vault")

        trail.record("update_started", "app/config", keys=["a"])
        trail.record("update_failed", "app/config", "failure", error="boom")

        lines = [json.loads(line) for line in path.read_text().splitlines()]
        assert [e["action"] for e in lines] == ["update_started", "update_failed"]
        assert lines[1]["result"] == "failure"
        assert lines[1]["metadata"] == {"error": "boom"}

    def test_unwritable_file_is_not_fatal(self, tmp_path, caplog) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        trail = AuditTrail(blocker / "audit.log")

        trail.record("update_started", "app/config")

        assert len(trail.events) == 1
        assert "non-fatal" in caplog.text


class TestSendNotification:
    def test_without_url_only_logs(self, caplog) -> None:
        with caplog.at_level("INFO"), patch("secretpatch.notify.requests.post") as post:
            assert send_notification("done") is False
        post.assert_not_called()
        assert "SLACK MOCK" in caplog.text

    def test_posts_payload(self) -> None:
        with patch("secretpatch.notify.requests.post") as post:
            post.return_value = MagicMock(status_code=200)
            assert send_notification("done", "https://hooks.example/x") is True
        _, kwargs = post.call_args
        assert kwargs["json"]["text"] == "*secretpatch*: done"
        assert kwargs["timeout"] == 5

    def test_transport_error_is_not_fatal(self) -> None:
        with patch(
            "secretpatch.notify.requests.post",
            side_effect=requests.ConnectionError("down"),
        ):
            assert send_notification("done", "https://hooks.example/x") is False
