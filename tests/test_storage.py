"""Unit tests for storage estimates and growth projection."""

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from src.analytics.storage import BYTES_PER_POINT_AVG, build_storage, count_since, project_growth
from src.memory.models import CollectionInfo, RawRecord

NOW = datetime(2026, 2, 22, 12, 0, tzinfo=UTC)
MB = 1024 * 1024


def _record(point_id: str, **payload: Any) -> RawRecord:
    return RawRecord(id=point_id, payload={"data": "d", "hash": point_id, **payload})


def _info(points_count: int) -> CollectionInfo:
    return CollectionInfo(status="green", points_count=points_count, vector_dimensions=1536, distance_metric="Cosine")


class TestCountSince:
    def test_inclusive_lower_bound(self) -> None:
        since = NOW - timedelta(days=7)
        records = [
            _record("edge", userId="a", createdAt=since.isoformat()),
            _record("before", userId="a", createdAt=(since - timedelta(seconds=1)).isoformat()),
            _record("none", userId="a"),
        ]
        assert count_since(records, since) == 1


class TestProjectGrowth:
    def test_linear_projection(self) -> None:
        disk, growth = project_growth(points_count=1000, last_7d_count=14)
        assert disk["estimated_mb"] == pytest.approx(1000 * BYTES_PER_POINT_AVG / MB)
        assert growth["avg_per_day"] == 2
        per_day = 2 * BYTES_PER_POINT_AVG / MB
        assert growth["estimated_mb_per_day"] == pytest.approx(per_day)
        assert growth["projected_mb_30d"] == pytest.approx(disk["estimated_mb"] + per_day * 30)
        assert growth["projected_mb_365d"] == pytest.approx(disk["estimated_mb"] + per_day * 365)

    def test_empty_collection(self) -> None:
        disk, growth = project_growth(0, 0)
        assert disk["estimated_mb"] == 0
        assert growth["projected_mb_365d"] == 0


class TestBuildStorage:
    def test_uses_collection_count_not_scan_count(self) -> None:
        records = [_record("1", userId="a", createdAt="2026-02-22T08:00:00Z")]
        stats = build_storage("memories", _info(500), records, None, NOW)
        assert stats["disk"]["points_count"] == 500
        assert stats["growth"]["last_7d_memories"] == 1

    def test_rss_from_metrics_text(self) -> None:
        text = "# HELP process_resident_memory_bytes RSS\nprocess_resident_memory_bytes 209715200\n"
        stats = build_storage("memories", _info(0), [], text, NOW)
        assert stats["ram"]["qdrant_rss_mb"] == pytest.approx(200.0)

    def test_missing_metrics_feed_reports_zero(self) -> None:
        stats = build_storage("memories", _info(0), [], None, NOW)
        assert stats["ram"]["qdrant_rss_mb"] == 0

    def test_collection_block(self) -> None:
        stats = build_storage("memories", _info(3), [], None, NOW)
        assert stats["collection"] == {
            "name": "memories",
            "vector_dimensions": 1536,
            "distance_metric": "Cosine",
            "status": "green",
        }
