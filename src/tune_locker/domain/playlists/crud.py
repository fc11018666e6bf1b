"""
Playlist management for Tune Locker

Playlists are ordered lists of track ids stored as one document in the
preference store. Every mutation rewrites the whole collection.
"""

import asyncio
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

from loguru import logger

from tune_locker.core.exceptions import NotFoundError
from tune_locker.core.preferences import PLAYLISTS_KEY, PreferenceStore
from tune_locker.events import PLAYLISTS, ChangeNotifier


@dataclass
class Playlist:
    """A named, ordered list of track ids (no duplicates)."""

    id: str
    name: str
    tracks: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Playlist":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            tracks=[str(track_id) for track_id in data.get("tracks", [])],
            created_at=data.get("created_at") or datetime.now().isoformat(),
        )


class PlaylistIndex:
    """All playlists, in creation order."""

    def __init__(self, store: PreferenceStore, notifier: Optional[ChangeNotifier] = None) -> None:
        self._store = store
        self._notifier = notifier
        self._playlists: list[Playlist] = []
        self._write_lock = asyncio.Lock()

    async def load(self) -> list[Playlist]:
        stored = await self._store.load(PLAYLISTS_KEY) or []
        playlists = []
        for data in stored:
            try:
                playlists.append(Playlist.from_dict(data))
            except (KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed playlist record {data!r}: {e}")
        self._playlists = playlists
        logger.debug(f"Loaded {len(playlists)} playlists")
        return self.all()

    def all(self) -> list[Playlist]:
        return list(self._playlists)

    def find(self, playlist_id: str) -> Optional[Playlist]:
        for playlist in self._playlists:
            if playlist.id == playlist_id:
                return playlist
        return None

    def get(self, playlist_id: str) -> Playlist:
        playlist = self.find(playlist_id)
        if playlist is None:
            raise NotFoundError("playlist", playlist_id)
        return playlist

    async def create(self, name: str) -> Playlist:
        """
        Create a new, empty playlist.

        Raises:
            ValueError: If the name is blank
        """
        name = name.strip()
        if not name:
            raise ValueError("Playlist name cannot be empty")
        playlist = Playlist(id=uuid.uuid4().hex, name=name)
        self._playlists.append(playlist)
        await self._persist()
        logger.info(f"Created playlist '{name}' ({playlist.id})")
        return playlist

    async def add_track(self, playlist_id: str, track_id: str) -> bool:
        """Append a track unless it is already in the playlist.

        Returns:
            True if the playlist changed
        """
        playlist = self.get(playlist_id)
        if track_id in playlist.tracks:
            return False
        playlist.tracks.append(track_id)
        await self._persist()
        return True

    async def remove_track(self, playlist_id: str, track_id: str) -> bool:
        """Remove every occurrence of a track. Returns True if it was present."""
        playlist = self.get(playlist_id)
        if track_id not in playlist.tracks:
            return False
        playlist.tracks = [tid for tid in playlist.tracks if tid != track_id]
        await self._persist()
        return True

    async def delete(self, playlist_id: str) -> None:
        playlist = self.get(playlist_id)
        self._playlists = [p for p in self._playlists if p.id != playlist.id]
        await self._persist()
        logger.info(f"Deleted playlist '{playlist.name}' ({playlist_id})")

    async def _persist(self) -> None:
        document = [asdict(playlist) for playlist in self._playlists]
        if self._notifier:
            self._notifier.emit(PLAYLISTS)
        async with self._write_lock:
            await self._store.save(PLAYLISTS_KEY, document)
