"""Payload resolution for the two historical Qdrant payload schemas.

Points written by newer agents carry ``userId`` / ``createdAt``; older points
carry ``user_id`` / ``created_at``. Every consumer goes through the resolvers
here so the priority rules live in exactly one place.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from src.memory.models import Memory, RawPayload

AGENT_KEY = "userId"
LEGACY_AGENT_KEY = "user_id"
TIMESTAMP_KEY = "createdAt"
LEGACY_TIMESTAMP_KEY = "created_at"
RUN_ID_KEY = "runId"

UNKNOWN_AGENT = "unknown"
NO_LABEL = "—"  # em dash


def _text(value: Any) -> str | None:
    """Non-empty string fields only; empty or non-string JSON values count as missing."""
    return value if isinstance(value, str) and value else None


def resolve_agent(payload: RawPayload) -> str:
    """Return the agent id, preferring ``userId`` over ``user_id``. Never empty."""
    return _text(payload.get(AGENT_KEY)) or _text(payload.get(LEGACY_AGENT_KEY)) or UNKNOWN_AGENT


def resolve_timestamp(payload: RawPayload) -> str | None:
    """Return the raw timestamp string, preferring ``createdAt`` over ``created_at``.

    The format is not validated here. Callers that need a date use
    parse_timestamp() and decide what to do with unparseable values.
    """
    return _text(payload.get(TIMESTAMP_KEY)) or _text(payload.get(LEGACY_TIMESTAMP_KEY))


def resolve_run_id(payload: RawPayload) -> str | None:
    return _text(payload.get(RUN_ID_KEY))


def parse_timestamp(ts: Any) -> datetime | None:
    """Parse an ISO 8601 string into an aware UTC datetime.

    Accepts ``Z``, explicit offsets and fractional seconds. Naive strings are
    assumed to be UTC. Returns None for missing or unparseable values.
    """
    if not isinstance(ts, str) or not ts:
        return None
    try:
        dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


# --- Run labels ---


def _discord_channel_label(run_id: str) -> str:
    channel_id = run_id.split(":")[-1]
    return f"discord #{channel_id[-4:]}"


# Evaluated top to bottom, first matching prefix wins.
RUN_LABEL_RULES: list[tuple[str, Callable[[str], str]]] = [
    ("agent:main:discord:channel:", _discord_channel_label),
    ("agent:main:discord:thread:", lambda _: "discord thread"),
    ("agent:main:cron:", lambda _: "cron"),
    ("agent:main:telegram:", lambda _: "telegram"),
    ("agent:sub:", lambda _: "sub-agent"),
]


def format_run_label(run_id: str | None) -> str:
    """Map an opaque run id onto a short source label for display."""
    if not run_id:
        return NO_LABEL
    for prefix, formatter in RUN_LABEL_RULES:
        if run_id.startswith(prefix):
            return formatter(run_id)
    return NO_LABEL


# --- Composition ---


def to_memory(point_id: str, payload: RawPayload) -> Memory:
    """Build the canonical Memory view of a stored point."""
    run_id = resolve_run_id(payload)
    return Memory(
        id=point_id,
        agent=resolve_agent(payload),
        data=_text(payload.get("data")) or "",
        createdAt=resolve_timestamp(payload),
        runId=run_id,
        runLabel=format_run_label(run_id),
        hash=_text(payload.get("hash")) or "",
    )


def agent_filter(agent: str) -> dict[str, Any]:
    """Qdrant filter matching an agent under either payload schema."""
    return {
        "should": [
            {"key": AGENT_KEY, "match": {"value": agent}},
            {"key": LEGACY_AGENT_KEY, "match": {"value": agent}},
        ]
    }
