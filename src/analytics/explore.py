"""Semantic search over memories ("query explorer")."""

import logging

from typing_extensions import TypedDict

from src.memory.embeddings import EmbeddingNotConfiguredError, embed_query, is_embedding_configured
from src.memory.models import ExploreResult
from src.memory.payload import agent_filter, to_memory
from src.memory.store import QdrantStore, get_store

logger = logging.getLogger(__name__)

ALL_AGENTS = "all"


class InvalidQueryError(ValueError):
    """Raised for an empty or non-string explorer query."""


class ExploreResponse(TypedDict):
    query: str
    agent: str | None
    results: list[ExploreResult]


def validate_query(query: object) -> str:
    """Return the trimmed query, or raise InvalidQueryError."""
    if not isinstance(query, str) or not query.strip():
        raise InvalidQueryError("Query is required")
    return query.strip()


async def explore(
    query: object,
    agent: str | None,
    top_k: int,
    store: QdrantStore | None = None,
) -> ExploreResponse:
    """Embed the query and return the top_k nearest memories.

    Credential and query checks happen before any embedding or Qdrant call.
    """
    if not is_embedding_configured():
        raise EmbeddingNotConfiguredError(
            "Query Explorer requires an OpenAI API key. Set OPENAI_API_KEY in .env"
        )
    text = validate_query(query)

    vector = await embed_query(text)
    store = store or get_store()
    query_filter = agent_filter(agent) if agent and agent != ALL_AGENTS else None
    hits = await store.search(vector, limit=top_k, query_filter=query_filter, score_threshold=0.0)

    results: list[ExploreResult] = []
    for hit in hits:
        memory = to_memory(hit["id"], hit["payload"])
        results.append(ExploreResult(**memory, score=hit["score"]))

    logger.info("Explore returned %d results (agent=%s, top_k=%d)", len(results), agent or "all", top_k)
    return ExploreResponse(query=text, agent=agent or None, results=results)
