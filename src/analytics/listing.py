"""Memory listings: full paginated list and the recent-activity feed."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Literal

from typing_extensions import TypedDict

from src.memory.models import Memory, RawRecord
from src.memory.payload import agent_filter, parse_timestamp, to_memory
from src.memory.store import QdrantStore, get_store

logger = logging.getLogger(__name__)

RECENT_MAX_RESULTS = 50

SortOrder = Literal["newest", "oldest"]

_EPOCH = datetime.min.replace(tzinfo=UTC)


class MemoriesResponse(TypedDict):
    total: int
    offset: int
    limit: int
    memories: list[Memory]


class RecentResponse(TypedDict):
    hours: int
    cutoff: str
    total: int
    memories: list[Memory]


def resolve_sort(raw: str | None) -> SortOrder:
    return "oldest" if raw == "oldest" else "newest"


def _sort_key(memory: Memory) -> datetime:
    # Compare absolute instants: raw strings mix "Z" and "-08:00" offsets and
    # differing fractional precision, which breaks lexicographic ordering.
    return parse_timestamp(memory["createdAt"]) or _EPOCH


def sort_memories(memories: list[Memory], order: SortOrder) -> list[Memory]:
    """Sort by timestamp. Undated memories count as the oldest."""
    return sorted(memories, key=_sort_key, reverse=order == "newest")


def to_memories(records: list[RawRecord], agent: str | None = None) -> list[Memory]:
    memories = [to_memory(r["id"], r["payload"]) for r in records]
    if agent:
        memories = [m for m in memories if m["agent"] == agent]
    return memories


def build_memories_page(
    records: list[RawRecord],
    *,
    agent: str | None,
    limit: int,
    offset: int,
    sort: SortOrder,
) -> MemoriesResponse:
    memories = sort_memories(to_memories(records, agent), sort)
    return MemoriesResponse(
        total=len(memories),
        offset=offset,
        limit=limit,
        memories=memories[offset : offset + limit],
    )


def build_recent(records: list[RawRecord], *, agent: str | None, hours: int, now: datetime) -> RecentResponse:
    """Memories strictly newer than now - hours, newest first, capped at 50."""
    cutoff = now - timedelta(hours=hours)
    recent: list[Memory] = []
    for memory in to_memories(records, agent):
        ts = parse_timestamp(memory["createdAt"])
        if ts is not None and ts > cutoff:
            recent.append(memory)

    recent = sort_memories(recent, "newest")
    return RecentResponse(
        hours=hours,
        cutoff=cutoff.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        total=len(recent),
        memories=recent[:RECENT_MAX_RESULTS],
    )


async def fetch_memories(
    *,
    agent: str | None,
    limit: int,
    offset: int,
    sort: SortOrder,
    store: QdrantStore | None = None,
) -> MemoriesResponse:
    store = store or get_store()
    records = await store.scroll_all(agent_filter(agent) if agent else None)
    return build_memories_page(records, agent=agent, limit=limit, offset=offset, sort=sort)


async def fetch_recent(
    *,
    agent: str | None,
    hours: int,
    store: QdrantStore | None = None,
    now: datetime | None = None,
) -> RecentResponse:
    store = store or get_store()
    records = await store.scroll_all(agent_filter(agent) if agent else None)
    return build_recent(records, agent=agent, hours=hours, now=now or datetime.now(UTC))
