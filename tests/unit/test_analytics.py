"""Tests for the JSON-lines analytics sink."""

from __future__ import annotations

import json

from pantry.effects.analytics import FileAnalyticsSink
from pantry.models.identity import Identity

ALICE = Identity(username="alice")


class TestFileAnalyticsSink:
    def test_track_appends_lines(self, tmp_dir):
        path = tmp_dir / "nested" / "analytics.jsonl"
        sink = FileAnalyticsSink(path)
        sink.track("cookbook_version_published", ALICE, {"cookbook": "redis", "version": "3.0.0"})
        sink.track("cookbook_deleted", ALICE, {"cookbook": "redis"})

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["event"] == "cookbook_version_published"
        assert first["user"] == "alice"
        assert first["properties"] == {"cookbook": "redis", "version": "3.0.0"}

    def test_read_events(self, tmp_dir):
        sink = FileAnalyticsSink(tmp_dir / "analytics.jsonl")
        assert sink.read_events() == []
        sink.track("cookbook_deleted", ALICE, {"cookbook": "redis"})
        events = sink.read_events()
        assert [e.event for e in events] == ["cookbook_deleted"]
        assert events[0].timestamp_utc.tzinfo is not None
