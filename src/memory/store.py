"""Read-only Qdrant client over the REST API.

Only the handful of calls the dashboard needs: paginated scroll, exact count,
collection info, vector search, and the instance-level /telemetry and /metrics
endpoints. Every call raises httpx errors on failure (including non-2xx via
raise_for_status); callers decide whether a failure is fatal.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any

from typing_extensions import TypedDict

import httpx

from src.config import get_settings
from src.memory.models import CollectionInfo, RawPayload, RawRecord, ScoredRecord
from src.observability.metrics import SCAN_POINTS

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
SCROLL_PAGE_SIZE = 100

PageOffset = str | int | None


class QdrantPoint(TypedDict, total=False):
    id: str | int
    payload: dict[str, Any] | None
    score: float


class QdrantScrollResult(TypedDict, total=False):
    points: list[QdrantPoint]
    next_page_offset: str | int | None


def _to_record(point: QdrantPoint) -> RawRecord:
    payload: RawPayload = point.get("payload") or {}  # pyright: ignore[reportAssignmentType]
    return RawRecord(id=str(point.get("id", "")), payload=payload)


class QdrantStore:
    """Thin async wrapper around one Qdrant collection."""

    def __init__(
        self,
        url: str,
        collection: str,
        *,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.url = url.rstrip("/")
        self.collection = collection
        self.api_key = api_key
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["api-key"] = self.api_key
        return httpx.AsyncClient(base_url=self.url, headers=headers, timeout=self.timeout)

    async def _post(self, client: httpx.AsyncClient, path: str, body: dict[str, Any]) -> Any:
        response = await client.post(path, json=body)
        _ = response.raise_for_status()
        data: dict[str, Any] = response.json()
        return data.get("result")

    # --- Points ---

    async def scroll(
        self,
        client: httpx.AsyncClient,
        *,
        limit: int = SCROLL_PAGE_SIZE,
        offset: PageOffset = None,
        query_filter: dict[str, Any] | None = None,
    ) -> tuple[list[RawRecord], PageOffset]:
        """Fetch one page of points (payload only, no vectors)."""
        body: dict[str, Any] = {"limit": limit, "with_payload": True, "with_vector": False}
        if offset is not None:
            body["offset"] = offset
        if query_filter is not None:
            body["filter"] = query_filter

        result: QdrantScrollResult = await self._post(
            client, f"/collections/{self.collection}/points/scroll", body
        ) or {}
        records = [_to_record(p) for p in result.get("points", [])]
        return records, result.get("next_page_offset")

    async def scroll_all(
        self,
        query_filter: dict[str, Any] | None = None,
        *,
        page_size: int = SCROLL_PAGE_SIZE,
        max_points: int | None = None,
    ) -> list[RawRecord]:
        """Scroll the whole collection, following next_page_offset until exhausted.

        Any page failure aborts the scan; no partial result is returned.
        With max_points set, stops once that many points have been read.
        """
        records: list[RawRecord] = []
        offset: PageOffset = None
        async with self._client() as client:
            while True:
                page, offset = await self.scroll(
                    client, limit=page_size, offset=offset, query_filter=query_filter
                )
                records.extend(page)
                if offset is None:
                    break
                if max_points is not None and len(records) >= max_points:
                    break

        if max_points is not None:
            records = records[:max_points]

        SCAN_POINTS.observe(len(records))
        logger.info("Scrolled %d points from '%s'", len(records), self.collection)
        return records

    async def count(self, query_filter: dict[str, Any] | None = None) -> int:
        """Exact point count, optionally filtered."""
        body: dict[str, Any] = {"exact": True}
        if query_filter is not None:
            body["filter"] = query_filter
        async with self._client() as client:
            result = await self._post(client, f"/collections/{self.collection}/points/count", body)
        return int((result or {}).get("count", 0))

    async def search(
        self,
        vector: list[float],
        limit: int,
        query_filter: dict[str, Any] | None = None,
        score_threshold: float = 0.0,
    ) -> list[ScoredRecord]:
        """Nearest-neighbour search. Ranking is entirely Qdrant's."""
        body: dict[str, Any] = {
            "vector": vector,
            "limit": limit,
            "with_payload": True,
            "score_threshold": score_threshold,
        }
        if query_filter is not None:
            body["filter"] = query_filter
        async with self._client() as client:
            result: list[QdrantPoint] = await self._post(
                client, f"/collections/{self.collection}/points/search", body
            ) or []
        return [
            ScoredRecord(
                id=str(p.get("id", "")),
                payload=p.get("payload") or {},  # pyright: ignore[reportArgumentType]
                score=float(p.get("score", 0.0)),
            )
            for p in result
        ]

    # --- Collection / instance metadata ---

    async def get_collection_info(self) -> CollectionInfo:
        async with self._client() as client:
            response = await client.get(f"/collections/{self.collection}")
            _ = response.raise_for_status()
            body: dict[str, Any] = response.json()

        result: dict[str, Any] = body.get("result") or {}
        vectors = ((result.get("config") or {}).get("params") or {}).get("vectors")
        # Named-vector collections map names to configs; only a single unnamed config has a size.
        size = vectors.get("size") if isinstance(vectors, dict) else None
        distance = vectors.get("distance") if isinstance(vectors, dict) else None
        return CollectionInfo(
            status=str(result.get("status") or "unknown"),
            points_count=int(result.get("points_count") or 0),
            vector_dimensions=size if isinstance(size, int) else 0,
            distance_metric=distance if isinstance(distance, str) else "unknown",
        )

    async def get_telemetry(self) -> dict[str, Any]:
        """Fetch the instance /telemetry JSON document."""
        async with self._client() as client:
            response = await client.get("/telemetry")
            _ = response.raise_for_status()
            data: dict[str, Any] = response.json()
            return data

    async def get_metrics_text(self) -> str:
        """Fetch the instance /metrics endpoint (Prometheus exposition format)."""
        async with self._client() as client:
            response = await client.get("/metrics", headers={"Accept": "text/plain"})
            _ = response.raise_for_status()
            return response.text

    async def get_metrics_text_or_none(self) -> str | None:
        """Like get_metrics_text(), but a failure is logged and returns None."""
        try:
            return await self.get_metrics_text()
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch Qdrant /metrics (continuing with partial data): %s", exc)
            return None


async def gather_or_cancel(*calls: Awaitable[Any]) -> list[Any]:
    """Await calls concurrently.

    The first failure cancels the calls still running and is re-raised
    unchanged.
    """
    tasks = [asyncio.ensure_future(call) for call in calls]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            _ = task.cancel()
        raise


def get_store() -> QdrantStore:
    """Build a store for the configured collection."""
    settings = get_settings()
    return QdrantStore(
        settings.qdrant_url,
        settings.qdrant_collection,
        api_key=settings.qdrant_api_key,
        timeout=settings.request_timeout_seconds,
    )
