"""TypedDict models for Qdrant points and resolved memories."""

from typing_extensions import TypedDict


class RawPayload(TypedDict, total=False):
    # Newer writers use camelCase, older ones snake_case.
    userId: str
    createdAt: str  # ISO 8601, any precision / offset
    user_id: str
    created_at: str
    runId: str
    data: str
    hash: str


class RawRecord(TypedDict):
    id: str
    payload: RawPayload


class ScoredRecord(TypedDict):
    id: str
    payload: RawPayload
    score: float


class Memory(TypedDict):
    id: str
    agent: str
    data: str
    createdAt: str | None
    runId: str | None
    runLabel: str
    hash: str


class ExploreResult(Memory):
    score: float


class CollectionInfo(TypedDict):
    status: str
    points_count: int
    vector_dimensions: int
    distance_metric: str
