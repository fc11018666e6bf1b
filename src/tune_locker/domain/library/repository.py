"""
In-memory track repository.

Mirrors every known track, keyed by id, in insertion/load order. It is the
only owner of Track records; other components hold ids and look tracks up
here.
"""

import asyncio
import uuid
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from loguru import logger

from tune_locker.core.exceptions import NotFoundError, PersistenceError

from .models import NewTrack, Track

# Avoid circular import (core.database imports the models)
if TYPE_CHECKING:
    from tune_locker.core.database import TrackStore


class TrackRepository:
    """Canonical, in-memory set of tracks backed by a durable TrackStore."""

    def __init__(self, store: "TrackStore") -> None:
        self._store = store
        self._tracks: dict[str, Track] = {}  # dict keeps insertion order
        self._write_lock = asyncio.Lock()  # play-stat writes land in call order

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._tracks

    async def load(self) -> list[Track]:
        """Replace the mirror with everything in the durable store."""
        tracks = await self._store.get_all()
        self.replace_all(tracks)
        logger.info(f"Loaded {len(tracks)} tracks from store")
        return tracks

    async def add(self, new_track: NewTrack, now: Optional[datetime] = None) -> str:
        """Store a new track and return its freshly assigned id.

        The durable write happens first. The mirror only changes once it has
        succeeded, so a failed write raises PersistenceError and leaves the
        repository exactly as it was.
        """
        track_id = self._fresh_id()
        track = Track(
            id=track_id,
            name=new_track.name,
            artist=new_track.artist,
            album=new_track.album,
            genre=new_track.genre,
            duration_seconds=new_track.duration_seconds,
            audio_payload=new_track.audio_payload,
            mime_type=new_track.mime_type,
            date_added=now or datetime.now(),
        )
        try:
            await self._store.put(track)
        except PersistenceError:
            logger.warning(f"Not adding '{track.name}': durable write failed")
            raise
        self._tracks[track_id] = track
        logger.debug(f"Added track {track_id}: {track.artist} - {track.name}")
        return track_id

    def find_by_id(self, track_id: Optional[str]) -> Optional[Track]:
        if track_id is None:
            return None
        return self._tracks.get(track_id)

    def get(self, track_id: str) -> Track:
        """Like find_by_id, but raises NotFoundError for unknown ids."""
        track = self.find_by_id(track_id)
        if track is None:
            raise NotFoundError("track", track_id)
        return track

    def all(self) -> list[Track]:
        """Snapshot of every track in insertion/load order."""
        return list(self._tracks.values())

    def ids(self) -> list[str]:
        return list(self._tracks.keys())

    def replace_all(self, tracks: list[Track]) -> None:
        """Bulk load (startup). Later duplicates of an id replace earlier ones."""
        self._tracks = {track.id: track for track in tracks}

    def record_play(self, track_id: str, when: Optional[datetime] = None) -> Track:
        """Bump play_count and set last_played for a track being loaded.

        Only the in-memory record changes here; call persist() afterwards to
        write it through.
        """
        track = self.get(track_id)
        updated = replace(
            track, play_count=track.play_count + 1, last_played=when or datetime.now()
        )
        self._tracks[track_id] = updated
        return updated

    async def persist(self, track: Track) -> bool:
        """Write play statistics of ``track`` to the durable store.

        Writes are applied in call order, so a later load never gets
        overwritten by an earlier one. Failures are logged and reported as
        False rather than raised. The next successful update carries the newer
        counts.
        """
        try:
            async with self._write_lock:
                await self._store.update(track)
        except PersistenceError as e:
            logger.warning(f"Play statistics for {track.id} not persisted: {e}")
            return False
        return True

    def _fresh_id(self) -> str:
        # ids are never reused
        track_id = uuid.uuid4().hex
        while track_id in self._tracks:
            track_id = uuid.uuid4().hex
        return track_id
