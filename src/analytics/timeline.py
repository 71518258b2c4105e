"""Activity timeline: memories per hour or per day, split by agent."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Literal

from typing_extensions import TypedDict

from src.memory.models import RawRecord
from src.memory.payload import parse_timestamp, resolve_agent, resolve_timestamp
from src.memory.store import QdrantStore, get_store

logger = logging.getLogger(__name__)

Granularity = Literal["hour", "day"]

# Windows up to this size are bucketed by hour, larger ones by day.
HOURLY_MAX_HOURS = 48

# A bucket is {"time": key, "total": n, <agent>: n, ...}, flat so charts can
# use agent names directly as series keys.
TimelineBucket = dict[str, str | int]


class TimelineResponse(TypedDict):
    hours: int
    granularity: Granularity
    buckets: list[TimelineBucket]


def resolve_granularity(hours: int, requested: str | None = None) -> Granularity:
    """Honour an explicit hour/day request, otherwise pick by window size."""
    if requested == "hour":
        return "hour"
    if requested == "day":
        return "day"
    return "hour" if hours <= HOURLY_MAX_HOURS else "day"


def bucket_key(ts: datetime, granularity: Granularity) -> str:
    """Fixed-width UTC key, so string order is chronological order."""
    ts = ts.astimezone(UTC)
    if granularity == "hour":
        return ts.strftime("%Y-%m-%dT%H:00")
    return ts.strftime("%Y-%m-%d")


def build_timeline(
    records: list[RawRecord],
    hours: int,
    granularity: Granularity,
    now: datetime,
) -> list[TimelineBucket]:
    """Bucket points newer than now - hours. A point exactly at the cutoff is excluded."""
    cutoff = now - timedelta(hours=hours)
    buckets: dict[str, TimelineBucket] = {}

    for record in records:
        ts = parse_timestamp(resolve_timestamp(record["payload"]))
        if ts is None or ts <= cutoff:
            continue

        key = bucket_key(ts, granularity)
        agent = resolve_agent(record["payload"])
        bucket = buckets.setdefault(key, {"time": key, "total": 0})
        bucket["total"] = int(bucket["total"]) + 1
        bucket[agent] = int(bucket.get(agent, 0)) + 1

    return [buckets[k] for k in sorted(buckets)]


async def fetch_timeline(
    hours: int,
    granularity: str | None = None,
    store: QdrantStore | None = None,
    now: datetime | None = None,
) -> TimelineResponse:
    """Scroll the whole collection and bucket it for the requested window."""
    store = store or get_store()
    resolved = resolve_granularity(hours, granularity)
    records = await store.scroll_all()
    buckets = build_timeline(records, hours, resolved, now or datetime.now(UTC))
    logger.info("Timeline over %dh (%s): %d buckets", hours, resolved, len(buckets))
    return TimelineResponse(hours=hours, granularity=resolved, buckets=buckets)
