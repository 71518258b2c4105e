"""Storage footprint estimate and linear growth projection."""

import logging
from datetime import UTC, datetime, timedelta

from typing_extensions import TypedDict

from src.analytics.performance import parse_rss_mb
from src.memory.models import CollectionInfo, RawRecord
from src.memory.payload import parse_timestamp, resolve_timestamp
from src.memory.store import QdrantStore, gather_or_cancel, get_store

logger = logging.getLogger(__name__)

# Calibrated against a real collection (1536-d vectors + payload + HNSW links),
# not measured per request.
BYTES_PER_POINT_AVG = 18500
BYTES_PER_MB = 1024 * 1024
PROJECTION_WINDOW_DAYS = 7


class DiskStats(TypedDict):
    estimated_mb: float
    points_count: int
    bytes_per_point_avg: int


class RamStats(TypedDict):
    qdrant_rss_mb: float


class GrowthProjection(TypedDict):
    last_7d_memories: int
    avg_per_day: float
    estimated_mb_per_day: float
    projected_mb_30d: float
    projected_mb_365d: float


class CollectionStats(TypedDict):
    name: str
    vector_dimensions: int
    distance_metric: str
    status: str


class StorageStats(TypedDict):
    disk: DiskStats
    ram: RamStats
    growth: GrowthProjection
    collection: CollectionStats


def count_since(records: list[RawRecord], since: datetime) -> int:
    """Points whose timestamp is at or after since."""
    count = 0
    for record in records:
        ts = parse_timestamp(resolve_timestamp(record["payload"]))
        if ts is not None and ts >= since:
            count += 1
    return count


def project_growth(points_count: int, last_7d_count: int) -> tuple[DiskStats, GrowthProjection]:
    estimated_mb = points_count * BYTES_PER_POINT_AVG / BYTES_PER_MB
    avg_per_day = last_7d_count / PROJECTION_WINDOW_DAYS
    mb_per_day = avg_per_day * BYTES_PER_POINT_AVG / BYTES_PER_MB

    disk = DiskStats(estimated_mb=estimated_mb, points_count=points_count, bytes_per_point_avg=BYTES_PER_POINT_AVG)
    growth = GrowthProjection(
        last_7d_memories=last_7d_count,
        avg_per_day=avg_per_day,
        estimated_mb_per_day=mb_per_day,
        projected_mb_30d=estimated_mb + mb_per_day * 30,
        projected_mb_365d=estimated_mb + mb_per_day * 365,
    )
    return disk, growth


def build_storage(
    collection_name: str,
    info: CollectionInfo,
    records: list[RawRecord],
    metrics_text: str | None,
    now: datetime,
) -> StorageStats:
    last_7d = count_since(records, now - timedelta(days=PROJECTION_WINDOW_DAYS))
    disk, growth = project_growth(info["points_count"], last_7d)
    return StorageStats(
        disk=disk,
        ram=RamStats(qdrant_rss_mb=parse_rss_mb(metrics_text) if metrics_text else 0.0),
        growth=growth,
        collection=CollectionStats(
            name=collection_name,
            vector_dimensions=info["vector_dimensions"],
            distance_metric=info["distance_metric"],
            status=info["status"],
        ),
    )


async def fetch_storage(store: QdrantStore | None = None, now: datetime | None = None) -> StorageStats:
    """Collection info and the scroll must succeed; RSS degrades to 0 without /metrics."""
    store = store or get_store()
    info, metrics_text, records = await gather_or_cancel(
        store.get_collection_info(),
        store.get_metrics_text_or_none(),
        store.scroll_all(),
    )
    return build_storage(store.collection, info, records, metrics_text, now or datetime.now(UTC))
