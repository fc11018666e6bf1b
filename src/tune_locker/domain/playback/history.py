"""
Play history: recently played distinct tracks, most recent first.
"""

from typing import Optional

MAX_HISTORY = 50


class PlayHistory:
    """Bounded list of distinct track ids, newest first.

    A track already present is not re-inserted and keeps its earlier place;
    it is not moved to the front. When a new id pushes the list past the
    limit, the oldest entry is dropped.
    """

    def __init__(self, limit: int = MAX_HISTORY, ids: Optional[list[str]] = None) -> None:
        self.limit = limit
        self._ids: list[str] = list(ids or [])[:limit]

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._ids

    def ids(self) -> list[str]:
        return list(self._ids)

    def record(self, track_id: str) -> bool:
        """Record a play. Returns True if the history changed."""
        if track_id in self._ids:
            return False
        self._ids.insert(0, track_id)
        if len(self._ids) > self.limit:
            self._ids.pop()
        return True

    def recent(self, count: int) -> list[str]:
        return self._ids[:count]

    def restore(self, ids: list[str]) -> None:
        """Replace the history with ``ids`` (newest first), dropping repeats."""
        self._ids = list(dict.fromkeys(ids))[: self.limit]
