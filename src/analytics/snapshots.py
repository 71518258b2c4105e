"""Rolling buffer of search-counter snapshots for the search-rate chart.

Qdrant only exposes cumulative counters, so the rate chart is built from the
deltas between successive polls. The buffer lives for the process lifetime;
one instance is created at app startup and shared through ``app.state``.
"""

import threading
import time
from datetime import datetime

from typing_extensions import TypedDict

from src.memory.payload import parse_timestamp

MAX_SNAPSHOTS = 60  # ~1 hour at the default 60s refresh
DEDUP_WINDOW_MS = 5000


class SearchSnapshot(TypedDict):
    time: int  # epoch milliseconds
    total: int


class RatePoint(TypedDict):
    time: int
    searches: int
    rate: float  # per minute


class Rate(TypedDict):
    per_hour: float
    per_day: float


class SnapshotBuffer:
    """Bounded, thread-safe list of snapshots with trim-from-front eviction."""

    def __init__(self, max_entries: int = MAX_SNAPSHOTS, dedup_window_ms: int = DEDUP_WINDOW_MS) -> None:
        self.max_entries = max_entries
        self.dedup_window_ms = dedup_window_ms
        self._snapshots: list[SearchSnapshot] = []
        self._lock = threading.Lock()

    def push(self, total: int, at_ms: int | None = None) -> bool:
        """Append a snapshot. Returns False when it duplicates the previous one.

        A snapshot with the same total arriving within the dedup window of the
        last one is dropped (several dashboard tabs polling at once).
        """
        snapshot = SearchSnapshot(time=at_ms if at_ms is not None else int(time.time() * 1000), total=total)
        with self._lock:
            if self._snapshots:
                last = self._snapshots[-1]
                if last["total"] == snapshot["total"] and snapshot["time"] - last["time"] < self.dedup_window_ms:
                    return False
            self._snapshots.append(snapshot)
            if len(self._snapshots) > self.max_entries:
                self._snapshots = self._snapshots[-self.max_entries :]
            return True

    def snapshots(self) -> list[SearchSnapshot]:
        with self._lock:
            return list(self._snapshots)

    def rates(self) -> list[RatePoint]:
        """Per-interval deltas between consecutive snapshots."""
        snaps = self.snapshots()
        points: list[RatePoint] = []
        for prev, snap in zip(snaps, snaps[1:], strict=False):
            elapsed_min = (snap["time"] - prev["time"]) / 60_000
            delta = max(0, snap["total"] - prev["total"])
            rate = round(delta / elapsed_min, 1) if elapsed_min > 0 else 0.0
            points.append(RatePoint(time=snap["time"], searches=delta, rate=rate))
        return points

    def clear(self) -> None:
        with self._lock:
            self._snapshots = []


def compute_rate(total: int, uptime_since: str, now: datetime) -> Rate:
    """Average calls per hour / day since the Qdrant process started."""
    start = parse_timestamp(uptime_since)
    if start is None:
        return Rate(per_hour=0.0, per_day=0.0)
    uptime_hours = (now - start).total_seconds() / 3600
    if uptime_hours <= 0:
        return Rate(per_hour=0.0, per_day=0.0)
    per_hour = total / uptime_hours
    return Rate(per_hour=per_hour, per_day=per_hour * 24)
