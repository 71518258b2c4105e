"""Qdrant performance summary from /telemetry and /metrics.

Telemetry is required; the Prometheus text feed only supplies vector counts
and RSS, so losing it degrades those figures to zero instead of failing.
"""

import logging
import re
from datetime import UTC, datetime
from typing import Any

from typing_extensions import TypedDict

from src.memory.payload import parse_timestamp
from src.memory.store import QdrantStore, gather_or_cancel, get_store

logger = logging.getLogger(__name__)

SEARCH_PATH = "POST /collections/{name}/points/search"
QUERY_PATH = "POST /collections/{name}/points/query"
UPSERT_PATH = "PUT /collections/{name}/points"
DELETE_PATH = "POST /collections/{name}/points/delete"
PAYLOAD_PATH = "POST /collections/{name}/points/payload"

_VECTOR_TOTAL_RE = re.compile(r"^collections_vector_total\s+(\d+)")
_COLLECTION_VECTORS_RE = re.compile(r'^collection_vectors\{collection="([^"]+)"\}\s+(\d+)')
_RSS_RE = re.compile(r"^process_resident_memory_bytes\s+(\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)")


# --- Response types ---


class StatusEntry(TypedDict):
    count: int
    avg_duration_micros: float


class QdrantInfo(TypedDict):
    version: str
    uptime_since: str
    uptime_human: str


class SearchStats(TypedDict):
    total_calls: int
    avg_latency_ms: int
    success_rate: float
    errors: int


class WriteStats(TypedDict):
    total_calls: int
    avg_latency_ms: int
    deletes: int
    payload_updates: int


class VectorStats(TypedDict):
    total: int
    per_collection: dict[str, int]


class PerformanceStats(TypedDict):
    qdrant: QdrantInfo
    search: SearchStats
    writes: WriteStats
    vectors: VectorStats


# --- Telemetry helpers ---


def _dig(data: Any, *keys: str) -> Any:
    """Walk nested dicts, returning None as soon as a level is missing."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def get_responses(telemetry: dict[str, Any]) -> dict[str, Any]:
    responses = _dig(telemetry, "result", "requests", "rest", "responses")
    return responses if isinstance(responses, dict) else {}


def get_entry(responses: dict[str, Any], path: str, status: str) -> StatusEntry:
    entry = _dig(responses, path, status)
    if not isinstance(entry, dict):
        return StatusEntry(count=0, avg_duration_micros=0)
    return StatusEntry(
        count=int(entry.get("count") or 0),
        avg_duration_micros=float(entry.get("avg_duration_micros") or 0),
    )


def extract_attempted_writes(telemetry: dict[str, Any]) -> int:
    """Number of successful upsert calls Qdrant has served since startup.

    Older telemetry exposes a plain ``PUT -> {"200": n}`` counter; current
    versions key responses by route, so fall back to the upsert route count.
    """
    responses = get_responses(telemetry)
    legacy = _dig(responses, "PUT", "200")
    if isinstance(legacy, int | float) and not isinstance(legacy, bool):
        return int(legacy)
    return get_entry(responses, UPSERT_PATH, "200")["count"]


def format_uptime(startup_iso: str, now: datetime) -> str:
    """Human-readable uptime, e.g. '3 days, 4 hours' or '12 minutes'."""
    start = parse_timestamp(startup_iso)
    if start is None:
        return "just started"
    diff = max(int((now - start).total_seconds()), 0)

    days, diff = divmod(diff, 86400)
    hours, diff = divmod(diff, 3600)
    minutes = diff // 60

    parts: list[str] = []
    if days > 0:
        parts.append(f"{days} day{'s' if days != 1 else ''}")
    if hours > 0:
        parts.append(f"{hours} hour{'s' if hours != 1 else ''}")
    if minutes > 0 and days == 0:
        parts.append(f"{minutes} minute{'s' if minutes != 1 else ''}")

    return ", ".join(parts) if parts else "just started"


# --- Prometheus text helpers ---


def _metric_lines(text: str) -> list[str]:
    lines: list[str] = []
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            lines.append(stripped)
    return lines


def parse_vector_metrics(text: str) -> VectorStats:
    """Extract collections_vector_total and per-collection vector counts."""
    total = 0
    per_collection: dict[str, int] = {}
    for line in _metric_lines(text):
        if match := _VECTOR_TOTAL_RE.match(line):
            total = int(match.group(1))
            continue
        if match := _COLLECTION_VECTORS_RE.match(line):
            per_collection[match.group(1)] = int(match.group(2))
    return VectorStats(total=total, per_collection=per_collection)


def parse_rss_mb(text: str) -> float:
    """Resident memory of the Qdrant process in MiB, 0 when absent."""
    for line in _metric_lines(text):
        if match := _RSS_RE.match(line):
            return float(match.group(1)) / (1024 * 1024)
    return 0.0


# --- Summary ---


def build_performance(telemetry: dict[str, Any], metrics_text: str | None, now: datetime) -> PerformanceStats:
    responses = get_responses(telemetry)
    app = _dig(telemetry, "result", "app")
    app = app if isinstance(app, dict) else {}

    version = str(app.get("version") or "unknown")
    startup = str(app.get("startup") or now.isoformat())

    search_ok = get_entry(responses, SEARCH_PATH, "200")
    search_err = get_entry(responses, SEARCH_PATH, "500")
    query_ok = get_entry(responses, QUERY_PATH, "200")

    success_total = search_ok["count"] + query_ok["count"]
    error_total = search_err["count"]
    all_calls = success_total + error_total

    search_latency_ms = 0
    if success_total > 0:
        total_micros = (
            search_ok["count"] * search_ok["avg_duration_micros"]
            + query_ok["count"] * query_ok["avg_duration_micros"]
        )
        search_latency_ms = round(total_micros / success_total / 1000)

    success_rate = round(success_total / all_calls * 100, 2) if all_calls > 0 else 100.0

    upsert_ok = get_entry(responses, UPSERT_PATH, "200")
    write_latency_ms = round(upsert_ok["avg_duration_micros"] / 1000) if upsert_ok["count"] > 0 else 0

    vectors = parse_vector_metrics(metrics_text) if metrics_text else VectorStats(total=0, per_collection={})

    return PerformanceStats(
        qdrant=QdrantInfo(version=version, uptime_since=startup, uptime_human=format_uptime(startup, now)),
        search=SearchStats(
            total_calls=success_total,
            avg_latency_ms=search_latency_ms,
            success_rate=success_rate,
            errors=error_total,
        ),
        writes=WriteStats(
            total_calls=upsert_ok["count"],
            avg_latency_ms=write_latency_ms,
            deletes=get_entry(responses, DELETE_PATH, "200")["count"],
            payload_updates=get_entry(responses, PAYLOAD_PATH, "200")["count"],
        ),
        vectors=vectors,
    )


async def fetch_performance(store: QdrantStore | None = None, now: datetime | None = None) -> PerformanceStats:
    """Telemetry failures propagate; a /metrics failure only zeroes the vector stats."""
    store = store or get_store()
    telemetry, metrics_text = await gather_or_cancel(store.get_telemetry(), store.get_metrics_text_or_none())
    return build_performance(telemetry, metrics_text, now or datetime.now(UTC))
