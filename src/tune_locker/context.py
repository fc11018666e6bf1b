"""Application context for explicit state passing.

AppContext owns the one repository, favorites index, playlist index, notifier
and playback session of a running application. Nothing lives in module-level
globals, so tests build a fresh context each time.
"""

import random
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from tune_locker.core.config import Config, get_data_dir
from tune_locker.core.database import MemoryTrackStore, SqliteTrackStore, TrackStore
from tune_locker.core.exceptions import NotFoundError
from tune_locker.core.preferences import JsonPreferenceStore, MemoryPreferenceStore, PreferenceStore
from tune_locker.domain.library.favorites import FavoritesIndex
from tune_locker.domain.library.models import Track
from tune_locker.domain.library.queries import recommend, search
from tune_locker.domain.library.repository import TrackRepository
from tune_locker.domain.playback.audio import AudioBackend
from tune_locker.domain.playback.session import PlaybackSession
from tune_locker.domain.playlists.crud import PlaylistIndex
from tune_locker.events import LIBRARY, ChangeNotifier


@dataclass
class AppContext:
    """Everything a running Tune Locker instance needs.

    Attributes:
        config: Application configuration
        repository: Canonical in-memory track set
        favorites: Favorited track ids
        playlists: User playlists
        session: The playback session
        notifier: Change notifications for renderers
    """

    config: Config
    repository: TrackRepository
    favorites: FavoritesIndex
    playlists: PlaylistIndex
    session: PlaybackSession
    notifier: ChangeNotifier

    @classmethod
    def create(
        cls,
        config: Config,
        audio: AudioBackend,
        track_store: Optional[TrackStore] = None,
        preference_store: Optional[PreferenceStore] = None,
        rng: Optional[random.Random] = None,
    ) -> "AppContext":
        """Wire up a context.

        Stores default to SQLite and JSON files under the data directory.
        """
        if track_store is None or preference_store is None:
            data_dir = get_data_dir(config)
            track_store = track_store or SqliteTrackStore(data_dir / config.library.database_name)
            preference_store = preference_store or JsonPreferenceStore(data_dir)

        notifier = ChangeNotifier()
        repository = TrackRepository(track_store)
        favorites = FavoritesIndex(preference_store, notifier)
        playlists = PlaylistIndex(preference_store, notifier)
        session = PlaybackSession(
            repository,
            audio,
            playlists,
            notifier,
            volume=config.player.volume,
            shuffled=config.player.shuffle_on_start,
            repeat_mode=config.player.repeat_mode,
            rng=rng,
        )
        return cls(
            config=config,
            repository=repository,
            favorites=favorites,
            playlists=playlists,
            session=session,
            notifier=notifier,
        )

    @classmethod
    def in_memory(cls, config: Config, audio: AudioBackend, **kwargs) -> "AppContext":
        """Context backed by memory stores (nothing touches disk)."""
        return cls.create(
            config,
            audio,
            track_store=MemoryTrackStore(),
            preference_store=MemoryPreferenceStore(),
            **kwargs,
        )

    async def startup(self) -> None:
        """Load tracks, favorites and playlists, and rebuild play history."""
        await self.repository.load()
        await self.favorites.load()
        await self.playlists.load()
        self._restore_history()
        self.notifier.emit(LIBRARY)
        logger.info(
            f"Startup complete: {len(self.repository)} tracks, "
            f"{len(self.favorites.ids())} favorites, {len(self.playlists.all())} playlists"
        )

    def _restore_history(self) -> None:
        # Play history is rebuilt from the durable last_played timestamps
        played = sorted(
            (track for track in self.repository.all() if track.last_played is not None),
            key=lambda track: track.last_played,
            reverse=True,
        )
        self.session.history.restore([track.id for track in played])

    def search(self, query: str) -> list[Track]:
        return search(query, self.repository.all())

    def recommendations(self, limit: Optional[int] = None) -> list[Track]:
        return recommend(
            self.session.history.ids(),
            self.repository.all(),
            limit if limit is not None else self.config.recommendations.limit,
        )

    def recent_plays(self, count: Optional[int] = None) -> list[Track]:
        count = count if count is not None else self.config.ui.recent_plays
        tracks = []
        for track_id in self.session.history.recent(count):
            track = self.repository.find_by_id(track_id)
            if track is not None:
                tracks.append(track)
        return tracks

    def library_tracks(self, favorites_only: bool = False) -> list[Track]:
        """The library view, optionally filtered to favorites."""
        tracks = self.repository.all()
        return self.favorites.filter_tracks(tracks) if favorites_only else tracks

    def playlist_tracks(self, playlist_id: str) -> list[Track]:
        """Tracks of a playlist, in playlist order, skipping vanished ids."""
        playlist = self.playlists.get(playlist_id)
        return [
            track
            for track in (self.repository.find_by_id(tid) for tid in playlist.tracks)
            if track is not None
        ]

    async def toggle_favorite(self, track_id: str) -> bool:
        """Toggle a known track's favorite flag.

        Raises:
            NotFoundError: If the track is not in the library
        """
        self.repository.get(track_id)
        return await self.favorites.toggle(track_id)

    async def add_to_playlist(self, playlist_id: str, track_id: str) -> bool:
        """Add a known track to a playlist.

        Raises:
            NotFoundError: If the track or playlist is unknown
        """
        if track_id not in self.repository:
            raise NotFoundError("track", track_id)
        return await self.playlists.add_track(playlist_id, track_id)

    async def delete_playlist(self, playlist_id: str) -> None:
        await self.playlists.delete(playlist_id)
        if self.session.playlist_id == playlist_id:
            self.session.clear_playlist()
