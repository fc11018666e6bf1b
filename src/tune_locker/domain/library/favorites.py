"""
Favorite tracks, persisted to the preference store.
"""

import asyncio
from typing import Optional, Sequence

from loguru import logger

from tune_locker.core.preferences import FAVORITES_KEY, PreferenceStore
from tune_locker.events import FAVORITE, ChangeNotifier

from .models import Track


class FavoritesIndex:
    """Set of favorited track ids.

    Membership changes only through toggle(). Each toggle writes the full set,
    in the order ids were favorited.
    """

    def __init__(self, store: PreferenceStore, notifier: Optional[ChangeNotifier] = None) -> None:
        self._store = store
        self._notifier = notifier
        self._ids: dict[str, None] = {}  # ordered set
        self._write_lock = asyncio.Lock()  # saves land in toggle order

    async def load(self) -> None:
        stored = await self._store.load(FAVORITES_KEY)
        self._ids = dict.fromkeys(stored or [])
        logger.debug(f"Loaded {len(self._ids)} favorites")

    def is_favorite(self, track_id: str) -> bool:
        return track_id in self._ids

    def ids(self) -> list[str]:
        return list(self._ids)

    async def toggle(self, track_id: str) -> bool:
        """Flip membership of ``track_id`` and persist the whole set.

        The in-memory flip happens before the write is awaited. If the write
        fails the flip stays and PersistenceError reaches the caller.

        Returns:
            True if the track is now a favorite
        """
        if track_id in self._ids:
            del self._ids[track_id]
            now_favorite = False
        else:
            self._ids[track_id] = None
            now_favorite = True
        snapshot = list(self._ids)

        if self._notifier:
            self._notifier.emit(FAVORITE, track_id)

        async with self._write_lock:
            await self._store.save(FAVORITES_KEY, snapshot)
        logger.debug(f"Favorite {track_id} -> {now_favorite}")
        return now_favorite

    def filter_tracks(self, tracks: Sequence[Track]) -> list[Track]:
        """Favorited tracks, keeping the order of ``tracks``."""
        return [track for track in tracks if track.id in self._ids]
