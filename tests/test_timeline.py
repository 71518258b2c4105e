"""Unit tests for the timeline aggregator."""

from datetime import UTC, datetime
from typing import Any

from src.analytics.timeline import bucket_key, build_timeline, resolve_granularity
from src.memory.models import RawRecord

NOW = datetime(2026, 2, 22, 12, 0, tzinfo=UTC)


def _record(point_id: str, **payload: Any) -> RawRecord:
    return RawRecord(id=point_id, payload={"data": "d", "hash": point_id, **payload})


class TestResolveGranularity:
    def test_auto_hourly_up_to_48h(self) -> None:
        assert resolve_granularity(48) == "hour"
        assert resolve_granularity(1) == "hour"

    def test_auto_daily_above_48h(self) -> None:
        assert resolve_granularity(49) == "day"
        assert resolve_granularity(168) == "day"

    def test_explicit_override(self) -> None:
        assert resolve_granularity(168, "hour") == "hour"
        assert resolve_granularity(24, "day") == "day"

    def test_unknown_value_falls_back_to_auto(self) -> None:
        assert resolve_granularity(24, "minute") == "hour"


class TestBucketKey:
    def test_hour_key(self) -> None:
        assert bucket_key(datetime(2026, 2, 3, 7, 45, tzinfo=UTC), "hour") == "2026-02-03T07:00"

    def test_day_key(self) -> None:
        assert bucket_key(datetime(2026, 2, 3, 7, 45, tzinfo=UTC), "day") == "2026-02-03"


class TestBuildTimeline:
    def test_hourly_buckets_per_agent(self) -> None:
        records = [
            _record("1", userId="clawd", createdAt="2026-02-22T10:05:00Z"),
            _record("2", userId="ana", createdAt="2026-02-22T10:55:00Z"),
            _record("3", user_id="clawd", created_at="2026-02-22T11:10:00Z"),
        ]
        buckets = build_timeline(records, 24, "hour", NOW)
        assert buckets == [
            {"time": "2026-02-22T10:00", "total": 2, "clawd": 1, "ana": 1},
            {"time": "2026-02-22T11:00", "total": 1, "clawd": 1},
        ]

    def test_record_at_cutoff_excluded(self) -> None:
        records = [
            _record("edge", userId="clawd", createdAt="2026-02-21T12:00:00Z"),
            _record("inside", userId="clawd", createdAt="2026-02-21T12:00:00.001Z"),
        ]
        buckets = build_timeline(records, 24, "hour", NOW)
        assert sum(int(b["total"]) for b in buckets) == 1

    def test_missing_timestamp_skipped(self) -> None:
        buckets = build_timeline([_record("1", userId="clawd")], 24, "hour", NOW)
        assert buckets == []

    def test_sorted_chronologically(self) -> None:
        records = [
            _record("1", userId="a", createdAt="2026-02-22T09:00:00Z"),
            _record("2", userId="a", createdAt="2026-02-18T09:00:00Z"),
            _record("3", userId="a", createdAt="2026-02-20T09:00:00Z"),
        ]
        buckets = build_timeline(records, 168, "day", NOW)
        assert [b["time"] for b in buckets] == ["2026-02-18", "2026-02-20", "2026-02-22"]

    def test_offset_timestamp_bucketed_in_utc(self) -> None:
        records = [_record("1", user_id="ana", created_at="2026-02-21T17:18:25.835258-08:00")]
        buckets = build_timeline(records, 24, "hour", NOW)
        assert buckets[0]["time"] == "2026-02-22T01:00"

    def test_non_string_timestamp_skipped(self) -> None:
        buckets = build_timeline([_record("1", userId="clawd", createdAt=1708600000)], 24, "hour", NOW)
        assert buckets == []

    def test_idempotent(self) -> None:
        records = [
            _record("1", userId="clawd", createdAt="2026-02-22T10:05:00Z"),
            _record("2", user_id="ana", created_at="2026-02-21T17:18:25.835258-08:00"),
        ]
        assert build_timeline(records, 24, "hour", NOW) == build_timeline(records, 24, "hour", NOW)
