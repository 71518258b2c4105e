"""mem0 health: deduplication, write velocity, batch size, sources and density.

Everything is recomputed from a full scroll on every call. Attempted writes
come from Qdrant's telemetry upsert counter, stored memories from the
collection's exact point count.
"""

import logging
from collections import defaultdict
from datetime import UTC, datetime, timedelta
from typing import Literal

from typing_extensions import TypedDict

from src.analytics.performance import extract_attempted_writes
from src.memory.models import RawRecord
from src.memory.payload import (
    NO_LABEL,
    format_run_label,
    parse_timestamp,
    resolve_agent,
    resolve_run_id,
    resolve_timestamp,
)
from src.memory.store import QdrantStore, gather_or_cancel, get_store

logger = logging.getLogger(__name__)

TOP_SOURCES_LIMIT = 8
SEED_LABEL = "seed/unknown"

Trend = Literal["up", "down", "stable"]


class Deduplication(TypedDict):
    attempted_writes: int
    stored_memories: int
    dedup_rate: float
    saved_embeddings: int


class Velocity(TypedDict):
    today: int
    yesterday: int
    last_7d: int
    trend: Trend


class BatchSize(TypedDict):
    avg_facts_per_batch: int


class TopSource(TypedDict):
    run_id: str
    label: str
    count: int


class AgentDensity(TypedDict):
    agent: str
    avg_chars: int
    count: int


class HealthSnapshot(TypedDict):
    deduplication: Deduplication
    velocity: Velocity
    batch_size: BatchSize
    top_sources: list[TopSource]
    memory_density: list[AgentDensity]


def compute_deduplication(attempted_writes: int, stored_memories: int) -> Deduplication:
    """Share of upserts that did not create a new point.

    Not clamped: more stored points than attempted writes gives a negative rate.
    """
    dedup_rate = 0.0 if attempted_writes == 0 else 1 - stored_memories / attempted_writes
    return Deduplication(
        attempted_writes=attempted_writes,
        stored_memories=stored_memories,
        dedup_rate=dedup_rate,
        saved_embeddings=attempted_writes - stored_memories,
    )


def compute_trend(today: int, yesterday: int) -> Trend:
    if today > yesterday:
        return "up"
    if today < yesterday:
        return "down"
    return "stable"


def compute_velocity(date_counts: dict[str, int], now: datetime) -> Velocity:
    """Today / yesterday by exact UTC date, last_7d by day-start >= now - 7 days."""
    today_str = now.astimezone(UTC).strftime("%Y-%m-%d")
    yesterday_str = (now - timedelta(hours=24)).astimezone(UTC).strftime("%Y-%m-%d")
    seven_days_ago = now - timedelta(days=7)

    last_7d = 0
    for date_str, count in date_counts.items():
        day_start = datetime.strptime(date_str, "%Y-%m-%d").replace(tzinfo=UTC)
        if day_start >= seven_days_ago:
            last_7d += count

    today = date_counts.get(today_str, 0)
    yesterday = date_counts.get(yesterday_str, 0)
    return Velocity(today=today, yesterday=yesterday, last_7d=last_7d, trend=compute_trend(today, yesterday))


def compute_batch_size(timestamps: list[str], stored_memories: int) -> BatchSize:
    """Average memories per distinct write second.

    mem0 writes all facts extracted from one message in the same second, so
    the first 19 characters (YYYY-MM-DDTHH:MM:SS) identify a batch.
    """
    seconds = {ts[:19] for ts in timestamps}
    avg = 0 if not seconds else round(stored_memories / len(seconds))
    return BatchSize(avg_facts_per_batch=avg)


def compute_top_sources(run_id_counts: dict[str | None, int]) -> list[TopSource]:
    """Largest run-id groups. Points without a run id are reported as seed/unknown."""
    sources: list[TopSource] = []
    for run_id, count in run_id_counts.items():
        label = format_run_label(run_id)
        if run_id is None and label == NO_LABEL:
            label = SEED_LABEL
        sources.append(TopSource(run_id=run_id if run_id is not None else "null", label=label, count=count))
    sources.sort(key=lambda s: s["count"], reverse=True)
    return sources[:TOP_SOURCES_LIMIT]


def compute_density(agent_chars: dict[str, list[int]]) -> list[AgentDensity]:
    """Average memory length per agent, busiest agent first."""
    density = [
        AgentDensity(agent=agent, avg_chars=round(total / count), count=count)
        for agent, (total, count) in agent_chars.items()
    ]
    density.sort(key=lambda d: d["count"], reverse=True)
    return density


def build_health(
    records: list[RawRecord],
    attempted_writes: int,
    stored_memories: int,
    now: datetime,
) -> HealthSnapshot:
    date_counts: dict[str, int] = defaultdict(int)
    run_id_counts: dict[str | None, int] = defaultdict(int)
    agent_chars: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    timestamps: list[str] = []

    for record in records:
        payload = record["payload"]
        raw_ts = resolve_timestamp(payload)

        if raw_ts:
            timestamps.append(raw_ts)
            ts = parse_timestamp(raw_ts)
            if ts is not None:
                date_counts[ts.strftime("%Y-%m-%d")] += 1

        # Sources and density count every point, dated or not.
        run_id_counts[resolve_run_id(payload)] += 1

        totals = agent_chars[resolve_agent(payload)]
        data = payload.get("data")
        totals[0] += len(data) if isinstance(data, str) else 0
        totals[1] += 1

    return HealthSnapshot(
        deduplication=compute_deduplication(attempted_writes, stored_memories),
        velocity=compute_velocity(date_counts, now),
        batch_size=compute_batch_size(timestamps, stored_memories),
        top_sources=compute_top_sources(run_id_counts),
        memory_density=compute_density(agent_chars),
    )


async def fetch_health(store: QdrantStore | None = None, now: datetime | None = None) -> HealthSnapshot:
    """Telemetry, collection info and the scroll run concurrently; any failure is fatal."""
    store = store or get_store()
    telemetry, info, records = await gather_or_cancel(
        store.get_telemetry(),
        store.get_collection_info(),
        store.scroll_all(),
    )
    health = build_health(records, extract_attempted_writes(telemetry), info["points_count"], now or datetime.now(UTC))
    logger.info(
        "Health: dedup_rate=%.4f today=%d trend=%s",
        health["deduplication"]["dedup_rate"],
        health["velocity"]["today"],
        health["velocity"]["trend"],
    )
    return health
