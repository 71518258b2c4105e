"""Unit tests for telemetry and Prometheus text parsing."""

from datetime import UTC, datetime
from typing import Any

import pytest

from src.analytics.performance import (
    SEARCH_PATH,
    UPSERT_PATH,
    build_performance,
    extract_attempted_writes,
    format_uptime,
    parse_rss_mb,
    parse_vector_metrics,
)

NOW = datetime(2026, 2, 22, 12, 0, tzinfo=UTC)

METRICS_TEXT = """\
# HELP collections_vector_total total number of vectors
# TYPE collections_vector_total gauge
collections_vector_total 1250
collection_vectors{collection="openclaw-memories"} 1120
collection_vectors{collection="scratch"} 130
process_resident_memory_bytes 104857600
"""


def _telemetry(responses: dict[str, Any], startup: str = "2026-02-19T08:00:00Z") -> dict[str, Any]:
    return {
        "result": {
            "app": {"name": "qdrant", "version": "1.13.2", "startup": startup},
            "requests": {"rest": {"responses": responses}},
        }
    }


class TestFormatUptime:
    def test_days_and_hours(self) -> None:
        assert format_uptime("2026-02-19T08:00:00Z", NOW) == "3 days, 4 hours"

    def test_singular_units(self) -> None:
        assert format_uptime("2026-02-21T11:00:00Z", NOW) == "1 day, 1 hour"

    def test_minutes_only_without_days(self) -> None:
        assert format_uptime("2026-02-22T10:48:00Z", NOW) == "1 hour, 12 minutes"

    def test_under_a_minute(self) -> None:
        assert format_uptime("2026-02-22T11:59:30Z", NOW) == "just started"

    def test_unparseable(self) -> None:
        assert format_uptime("not a date", NOW) == "just started"


class TestPrometheusText:
    def test_vector_metrics(self) -> None:
        vectors = parse_vector_metrics(METRICS_TEXT)
        assert vectors["total"] == 1250
        assert vectors["per_collection"] == {"openclaw-memories": 1120, "scratch": 130}

    def test_empty_text(self) -> None:
        assert parse_vector_metrics("") == {"total": 0, "per_collection": {}}

    def test_rss(self) -> None:
        assert parse_rss_mb(METRICS_TEXT) == pytest.approx(100.0)

    def test_rss_scientific_notation(self) -> None:
        assert parse_rss_mb("process_resident_memory_bytes 2.097152e+08\n") == pytest.approx(200.0)

    def test_rss_missing(self) -> None:
        assert parse_rss_mb("collections_vector_total 3\n") == 0


class TestAttemptedWrites:
    def test_legacy_put_counter(self) -> None:
        assert extract_attempted_writes(_telemetry({"PUT": {"200": 2488}})) == 2488

    def test_route_keyed_counter(self) -> None:
        telemetry = _telemetry({UPSERT_PATH: {"200": {"count": 77, "avg_duration_micros": 900.0}}})
        assert extract_attempted_writes(telemetry) == 77

    def test_missing(self) -> None:
        assert extract_attempted_writes({}) == 0


class TestBuildPerformance:
    def test_summary(self) -> None:
        telemetry = _telemetry(
            {
                SEARCH_PATH: {
                    "200": {"count": 90, "avg_duration_micros": 2000.0},
                    "500": {"count": 10, "avg_duration_micros": 100.0},
                },
                UPSERT_PATH: {"200": {"count": 40, "avg_duration_micros": 4600.0}},
                "POST /collections/{name}/points/delete": {"200": {"count": 3}},
                "POST /collections/{name}/points/payload": {"200": {"count": 5}},
            }
        )
        perf = build_performance(telemetry, METRICS_TEXT, NOW)

        assert perf["qdrant"] == {
            "version": "1.13.2",
            "uptime_since": "2026-02-19T08:00:00Z",
            "uptime_human": "3 days, 4 hours",
        }
        assert perf["search"] == {"total_calls": 90, "avg_latency_ms": 2, "success_rate": 90.0, "errors": 10}
        assert perf["writes"] == {"total_calls": 40, "avg_latency_ms": 5, "deletes": 3, "payload_updates": 5}
        assert perf["vectors"]["total"] == 1250

    def test_no_traffic(self) -> None:
        perf = build_performance(_telemetry({}), None, NOW)
        assert perf["search"] == {"total_calls": 0, "avg_latency_ms": 0, "success_rate": 100.0, "errors": 0}
        assert perf["writes"]["avg_latency_ms"] == 0
        assert perf["vectors"] == {"total": 0, "per_collection": {}}

    def test_missing_app_block(self) -> None:
        perf = build_performance({"result": {}}, None, NOW)
        assert perf["qdrant"]["version"] == "unknown"
        assert perf["qdrant"]["uptime_human"] == "just started"
