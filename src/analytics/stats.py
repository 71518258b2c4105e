"""Headline counts: exact per-agent point counts."""

import logging
from datetime import UTC, datetime

from typing_extensions import TypedDict

from src.memory.agents import discover_agents
from src.memory.payload import agent_filter
from src.memory.store import QdrantStore, get_store

logger = logging.getLogger(__name__)


class StatsResponse(TypedDict):
    total: int
    agents: dict[str, int]
    collection: str
    lastUpdated: str


async def fetch_stats(store: QdrantStore | None = None, now: datetime | None = None) -> StatsResponse:
    """Count each directory agent's points exactly. total is the sum of those counts."""
    store = store or get_store()
    agents = await discover_agents(store)

    counts: dict[str, int] = {}
    for agent in agents:
        counts[agent] = await store.count(agent_filter(agent))
    logger.info("Counted %d agents in '%s'", len(counts), store.collection)

    now = now or datetime.now(UTC)
    return StatsResponse(
        total=sum(counts.values()),
        agents=counts,
        collection=store.collection,
        lastUpdated=now.isoformat(),
    )
