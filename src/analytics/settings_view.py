"""Read-only view of the dashboard's effective configuration."""

import logging

from typing_extensions import TypedDict

from src.config import get_settings
from src.memory.agents import discover_agents
from src.memory.store import QdrantStore, gather_or_cancel, get_store

logger = logging.getLogger(__name__)


class Mem0Settings(TypedDict):
    embedder_model: str
    embedding_dimensions: int
    distance_metric: str
    min_score: float


class QdrantSettings(TypedDict):
    url: str
    collection: str
    status: str
    version: str
    auth_enabled: bool


class DashboardDisplaySettings(TypedDict):
    refresh_interval_s: int
    agents: list[str]
    page_size: int
    port: int


class DashboardSettings(TypedDict):
    mem0: Mem0Settings
    qdrant: QdrantSettings
    dashboard: DashboardDisplaySettings


async def _qdrant_version(store: QdrantStore) -> str:
    """Version from telemetry; "unknown" if telemetry is unavailable."""
    try:
        telemetry = await store.get_telemetry()
    except Exception as exc:
        logger.warning("Failed to fetch Qdrant telemetry for version: %s", exc)
        return "unknown"
    app = (telemetry.get("result") or {}).get("app") or {}
    return str(app.get("version") or "unknown")


async def fetch_settings(store: QdrantStore | None = None) -> DashboardSettings:
    settings = get_settings()
    store = store or get_store()

    info, version, agents = await gather_or_cancel(
        store.get_collection_info(),
        _qdrant_version(store),
        discover_agents(store),
    )

    return DashboardSettings(
        mem0=Mem0Settings(
            embedder_model=settings.openai_embedding_model,
            embedding_dimensions=info["vector_dimensions"],
            distance_metric=info["distance_metric"],
            min_score=settings.min_score,
        ),
        qdrant=QdrantSettings(
            url=store.url,
            collection=store.collection,
            status=info["status"],
            version=version,
            auth_enabled=bool(settings.qdrant_api_key),
        ),
        dashboard=DashboardDisplaySettings(
            refresh_interval_s=settings.refresh_interval,
            agents=agents,
            page_size=settings.page_size,
            port=settings.dashboard_port,
        ),
    )
