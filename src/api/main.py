"""FastAPI backend for the memory dashboard.

Every endpoint is read-only and recomputes its figures from Qdrant on each
request. The only cross-request state is the search-rate snapshot buffer,
created once at startup and kept on ``app.state``.
"""

import logging
import time
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, TypeVar

from fastapi import FastAPI, HTTPException, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from src.analytics import params
from src.analytics.explore import ExploreResponse, InvalidQueryError, explore
from src.analytics.growth import GrowthResponse, fetch_growth
from src.analytics.health import HealthSnapshot, fetch_health
from src.analytics.listing import MemoriesResponse, RecentResponse, fetch_memories, fetch_recent, resolve_sort
from src.analytics.performance import PerformanceStats, build_performance, fetch_performance
from src.analytics.settings_view import DashboardSettings, fetch_settings
from src.analytics.snapshots import Rate, RatePoint, SearchSnapshot, SnapshotBuffer, compute_rate
from src.analytics.stats import StatsResponse, fetch_stats
from src.analytics.storage import StorageStats, fetch_storage
from src.analytics.timeline import TimelineResponse, fetch_timeline
from src.config import get_settings
from src.memory.agents import discover_agents
from src.memory.embeddings import EmbeddingNotConfiguredError
from src.memory.store import get_store
from src.observability.metrics import (
    APP_INFO,
    QDRANT_HEALTHY,
    REQUEST_DURATION,
    REQUESTS_IN_PROGRESS,
    REQUESTS_TOTAL,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class AgentsResponse(BaseModel):
    """Response body for GET /api/agents."""

    agents: list[str]


class ExploreRequest(BaseModel):
    """Request body for POST /api/explore.

    query is validated by the explorer itself so a missing or blank query is
    a 400, not a schema 422.
    """

    query: Any = None
    agent: str | None = None
    topK: int | float | None = None


class SearchActivityResponse(BaseModel):
    """Response body for GET /api/search-activity."""

    uptime_since: str
    total_searches: int
    total_writes: int
    search_rate: Rate
    write_rate: Rate
    snapshots: list[SearchSnapshot]
    series: list[RatePoint]


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str
    collection: str
    detail: str | None = None


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the process-wide snapshot buffer once at startup."""
    settings = get_settings()
    APP_INFO.info({"version": "0.1.0", "collection": settings.qdrant_collection})
    app.state.snapshots = SnapshotBuffer()
    logger.info("Memory dashboard ready (collection=%s)", settings.qdrant_collection)
    yield
    logger.info("Shutting down memory dashboard")


app = FastAPI(title="Agent Memory Dashboard", lifespan=lifespan)


async def _instrumented(endpoint: str, what: str, call: Awaitable[T]) -> T:
    """Await call with request metrics; any failure becomes a 500 naming what failed."""
    REQUESTS_IN_PROGRESS.labels(endpoint=endpoint).inc()
    start = time.monotonic()
    try:
        result = await call
    except Exception as exc:
        REQUESTS_TOTAL.labels(endpoint=endpoint, status="error").inc()
        logger.exception("Failed to fetch %s", what)
        raise HTTPException(status_code=500, detail=f"Failed to fetch {what}") from exc
    finally:
        REQUESTS_IN_PROGRESS.labels(endpoint=endpoint).dec()
        REQUEST_DURATION.labels(endpoint=endpoint).observe(time.monotonic() - start)

    REQUESTS_TOTAL.labels(endpoint=endpoint, status="success").inc()
    return result


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics in exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Check that the configured Qdrant collection is reachable."""
    store = get_store()
    try:
        info = await store.get_collection_info()
    except Exception as exc:
        QDRANT_HEALTHY.set(0.0)
        return HealthResponse(status="unhealthy", collection=store.collection, detail=str(exc))

    QDRANT_HEALTHY.set(1.0)
    return HealthResponse(status="healthy", collection=store.collection, detail=f"collection status: {info['status']}")


@app.get("/api/agents", response_model=AgentsResponse)
async def agents() -> AgentsResponse:
    """Agent directory (configured or auto-detected)."""
    found = await _instrumented("/api/agents", "agents", discover_agents())
    return AgentsResponse(agents=found)


@app.get("/api/stats")
async def stats() -> StatsResponse:
    """Total and per-agent memory counts."""
    return await _instrumented("/api/stats", "stats", fetch_stats())


@app.get("/api/memories")
async def memories(
    agent: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    sort: str | None = None,
) -> MemoriesResponse:
    """Paginated memory list, newest or oldest first."""
    return await _instrumented(
        "/api/memories",
        "memories",
        fetch_memories(
            agent=agent or None,
            limit=params.memories_limit(limit),
            offset=params.memories_offset(offset),
            sort=resolve_sort(sort),
        ),
    )


@app.get("/api/recent")
async def recent(agent: str | None = None, hours: str | None = None) -> RecentResponse:
    """Memories written in the last N hours (max 50)."""
    return await _instrumented(
        "/api/recent",
        "recent memories",
        fetch_recent(agent=agent or None, hours=params.recent_hours(hours)),
    )


@app.get("/api/growth")
async def growth(days: str | None = None) -> GrowthResponse:
    """Daily and cumulative collection growth."""
    return await _instrumented("/api/growth", "growth data", fetch_growth(params.growth_days(days)))


@app.get("/api/timeline")
async def timeline(hours: str | None = None, granularity: str | None = None) -> TimelineResponse:
    """Per-hour or per-day activity buckets."""
    return await _instrumented(
        "/api/timeline",
        "timeline data",
        fetch_timeline(params.timeline_hours(hours), granularity),
    )


@app.get("/api/mem0-health")
async def mem0_health() -> HealthSnapshot:
    """Deduplication, velocity, batch size, top sources and density."""
    return await _instrumented("/api/mem0-health", "mem0 health metrics", fetch_health())


@app.get("/api/storage")
async def storage() -> StorageStats:
    """Disk / RAM estimates and growth projection."""
    return await _instrumented("/api/storage", "storage stats", fetch_storage())


@app.get("/api/performance")
async def performance() -> PerformanceStats:
    """Search / write latency and volume from Qdrant telemetry."""
    return await _instrumented("/api/performance", "Qdrant telemetry", fetch_performance())


@app.get("/api/search-activity", response_model=SearchActivityResponse)
async def search_activity(request: Request) -> SearchActivityResponse:
    """Record a search-counter snapshot and return the rolling rate series."""
    buffer: SnapshotBuffer = request.app.state.snapshots
    store = get_store()

    async def _collect() -> PerformanceStats:
        return build_performance(await store.get_telemetry(), None, datetime.now(UTC))

    perf = await _instrumented("/api/search-activity", "Qdrant telemetry", _collect())

    now = datetime.now(UTC)
    total_searches = perf["search"]["total_calls"]
    total_writes = perf["writes"]["total_calls"]
    uptime_since = perf["qdrant"]["uptime_since"]
    _ = buffer.push(total_searches, int(now.timestamp() * 1000))

    return SearchActivityResponse(
        uptime_since=uptime_since,
        total_searches=total_searches,
        total_writes=total_writes,
        search_rate=compute_rate(total_searches, uptime_since, now),
        write_rate=compute_rate(total_writes, uptime_since, now),
        snapshots=buffer.snapshots(),
        series=buffer.rates(),
    )


@app.get("/api/settings")
async def dashboard_settings() -> DashboardSettings:
    """Effective dashboard, embedder and Qdrant configuration."""
    return await _instrumented("/api/settings", "settings", fetch_settings())


@app.post("/api/explore")
async def explore_memories(request: ExploreRequest) -> ExploreResponse:
    """Semantic search over memories."""
    endpoint = "/api/explore"
    start = time.monotonic()
    try:
        response = await explore(
            request.query,
            request.agent,
            params.explore_top_k(request.topK),
        )
    except (EmbeddingNotConfiguredError, InvalidQueryError) as exc:
        REQUESTS_TOTAL.labels(endpoint=endpoint, status="rejected").inc()
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        REQUESTS_TOTAL.labels(endpoint=endpoint, status="error").inc()
        logger.exception("Explore failed")
        raise HTTPException(status_code=500, detail="Explore query failed") from exc
    finally:
        REQUEST_DURATION.labels(endpoint=endpoint).observe(time.monotonic() - start)

    REQUESTS_TOTAL.labels(endpoint=endpoint, status="success").inc()
    return response
