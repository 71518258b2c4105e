"""Agent directory: configured via AGENTS or auto-detected from Qdrant."""

import logging

from src.config import get_settings
from src.memory.payload import UNKNOWN_AGENT, resolve_agent
from src.memory.store import QdrantStore, get_store

logger = logging.getLogger(__name__)

DISCOVERY_PAGE_SIZE = 100
DISCOVERY_MAX_POINTS = 500


def parse_agents_setting(raw: str) -> list[str]:
    """Split a comma-separated agent list, trimming and dropping empty entries.

    Order is preserved exactly as configured.
    """
    return [a.strip() for a in raw.split(",") if a.strip()]


async def discover_agents(store: QdrantStore | None = None) -> list[str]:
    """Return the agent directory.

    Uses the AGENTS setting when it is non-empty. Otherwise samples up to
    DISCOVERY_MAX_POINTS points and returns the distinct resolved agents
    (minus "unknown"), sorted. Scan errors propagate.
    """
    configured = parse_agents_setting(get_settings().agents)
    if configured:
        return configured

    store = store or get_store()
    records = await store.scroll_all(page_size=DISCOVERY_PAGE_SIZE, max_points=DISCOVERY_MAX_POINTS)

    agents: set[str] = set()
    for record in records:
        agent = resolve_agent(record["payload"])
        if agent != UNKNOWN_AGENT:
            agents.add(agent)

    logger.info("Auto-detected %d agents from %d points", len(agents), len(records))
    return sorted(agents)
