"""Tests for the JSON-backed device state store."""

from unittest.mock import patch

import pytest

from safealert.utils.local_state import JsonFileStateStore


class TestJsonFileStateStore:

    def test_round_trip_across_instances(self, tmp_path):
        path = tmp_path / "state" / "local.json"
        store = JsonFileStateStore(path)
        store.set("seenReportIds", ["a", "b"])
        store.set("notificationRadius", 1500)

        reloaded = JsonFileStateStore(path)
        assert reloaded.get("seenReportIds") == ["a", "b"]
        assert reloaded.get("notificationRadius") == 1500

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileStateStore(tmp_path / "nothing.json")
        assert store.get("anything", "fallback") == "fallback"

    def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "local.json"
        path.write_text("{not json", encoding="utf-8")

        store = JsonFileStateStore(path)

        assert store.get("seenReportIds") is None

    def test_remove(self, tmp_path):
        path = tmp_path / "local.json"
        store = JsonFileStateStore(path)
        store.set("k", 1)
        store.remove("k")
        store.remove("never-set")

        assert JsonFileStateStore(path).get("k") is None

    def test_failed_write_leaves_previous_file(self, tmp_path):
        path = tmp_path / "local.json"
        store = JsonFileStateStore(path)
        store.set("k", "before")

        with patch("safealert.utils.local_state.os.replace", side_effect=OSError("boom")):
            with pytest.raises(OSError):
                store.set("k", "after")

        assert JsonFileStateStore(path).get("k") == "before"
        assert [p.name for p in tmp_path.iterdir()] == ["local.json"]
