"""Collection growth: daily additions and cumulative totals over a window of days."""

import logging
from collections import defaultdict
from datetime import UTC, datetime, timedelta

from typing_extensions import TypedDict

from src.memory.models import RawRecord
from src.memory.payload import parse_timestamp, resolve_agent, resolve_timestamp
from src.memory.store import QdrantStore, get_store

logger = logging.getLogger(__name__)


class GrowthPoint(TypedDict):
    date: str  # YYYY-MM-DD
    added: int
    cumulative: int


class AgentGrowthPoint(TypedDict):
    date: str
    added: int


class GrowthResponse(TypedDict):
    points: list[GrowthPoint]
    agents: dict[str, list[AgentGrowthPoint]]


def _date_range(start: datetime, end: datetime) -> list[str]:
    """Every calendar day from start to end inclusive, as YYYY-MM-DD."""
    dates: list[str] = []
    cursor = start
    while cursor <= end:
        dates.append(cursor.strftime("%Y-%m-%d"))
        cursor += timedelta(days=1)
    return dates


def build_growth(records: list[RawRecord], days: int, now: datetime) -> GrowthResponse:
    """Aggregate points into a gap-free daily series for [today - days, today].

    Points dated before the window only seed the first cumulative value.
    Points without a usable timestamp are ignored entirely.
    """
    end_date = now.astimezone(UTC).replace(hour=0, minute=0, second=0, microsecond=0)
    start_date = end_date - timedelta(days=days)
    date_list = _date_range(start_date, end_date)
    start_str = date_list[0]

    daily_counts: dict[str, int] = defaultdict(int)
    agent_daily_counts: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    pre_window = 0

    for record in records:
        ts = parse_timestamp(resolve_timestamp(record["payload"]))
        if ts is None:
            continue

        date_str = ts.strftime("%Y-%m-%d")
        if date_str < start_str:
            pre_window += 1
            continue

        agent = resolve_agent(record["payload"])
        daily_counts[date_str] += 1
        agent_daily_counts[agent][date_str] += 1

    points: list[GrowthPoint] = []
    cumulative = pre_window
    for date in date_list:
        added = daily_counts.get(date, 0)
        cumulative += added
        points.append(GrowthPoint(date=date, added=added, cumulative=cumulative))

    agents: dict[str, list[AgentGrowthPoint]] = {
        agent: [AgentGrowthPoint(date=d, added=n) for d, n in sorted(counts.items())]
        for agent, counts in agent_daily_counts.items()
    }

    return GrowthResponse(points=points, agents=agents)


async def fetch_growth(days: int, store: QdrantStore | None = None, now: datetime | None = None) -> GrowthResponse:
    """Scroll the whole collection and build the growth series."""
    store = store or get_store()
    records = await store.scroll_all()
    growth = build_growth(records, days, now or datetime.now(UTC))
    logger.info("Growth over %dd: %d points, %d agents", days, len(growth["points"]), len(growth["agents"]))
    return growth
