"""Shared fixtures: memory stores, a scripted audio backend and track builders."""

import asyncio
import random
from datetime import datetime, timedelta
from typing import Optional

import pytest

from tune_locker.core.database import MemoryTrackStore
from tune_locker.core.exceptions import PlaybackError
from tune_locker.core.preferences import MemoryPreferenceStore
from tune_locker.domain.library.models import NewTrack, Track
from tune_locker.domain.library.repository import TrackRepository
from tune_locker.domain.playback.session import PlaybackSession
from tune_locker.domain.playlists.crud import PlaylistIndex
from tune_locker.events import ChangeNotifier

BASE_DATE = datetime(2024, 1, 1, 12, 0, 0)


class FakeAudioBackend:
    """Records calls; binds and plays can be made to fail, plays can block."""

    def __init__(self) -> None:
        self.listener = None
        self.bound: list[bytes] = []
        self.released = 0
        self.play_calls = 0
        self.pause_calls = 0
        self.seeks: list[float] = []
        self.volume: Optional[float] = None
        self.fail_next_play = False
        self.fail_next_bind = False
        self.gate: Optional[asyncio.Event] = None
        self.position = 0.0
        self._duration: Optional[float] = None

    def set_listener(self, listener) -> None:
        self.listener = listener

    def bind_source(self, payload: bytes, mime_type: str) -> None:
        if self.bound:
            self.released += 1
        if self.fail_next_bind:
            self.fail_next_bind = False
            raise PlaybackError("cannot write temporary source")
        self.bound.append(payload)
        self.position = 0.0
        self._duration = None

    async def play(self) -> None:
        self.play_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next_play:
            self.fail_next_play = False
            raise PlaybackError("autoplay blocked")

    def pause(self) -> None:
        self.pause_calls += 1

    def seek(self, seconds: float) -> None:
        self.seeks.append(seconds)
        self.position = seconds

    def set_volume(self, volume: float) -> None:
        self.volume = volume

    def release(self) -> None:
        self.released += 1

    @property
    def current_time(self) -> float:
        return self.position

    @property
    def duration(self) -> Optional[float]:
        return self._duration

    # Test helpers

    def finish_metadata(self, duration: float) -> None:
        self._duration = duration
        self.listener.on_metadata_ready()


def make_track(
    track_id: str,
    name: str = "",
    artist: str = "Artist",
    album: str = "Album",
    genre: Optional[str] = "rock",
    days: int = 0,
) -> Track:
    return Track(
        id=track_id,
        name=name or f"Track {track_id}",
        artist=artist,
        album=album,
        genre=genre,
        duration_seconds=180.0,
        audio_payload=f"payload-{track_id}".encode(),
        mime_type="audio/mpeg",
        date_added=BASE_DATE + timedelta(days=days),
    )


def make_new_track(name: str = "Song", genre: Optional[str] = "rock") -> NewTrack:
    return NewTrack(
        name=name,
        artist="Artist",
        album="Album",
        genre=genre,
        duration_seconds=200.0,
        audio_payload=b"\x00\x01",
    )


@pytest.fixture
def track_store() -> MemoryTrackStore:
    return MemoryTrackStore()


@pytest.fixture
def preference_store() -> MemoryPreferenceStore:
    return MemoryPreferenceStore()


@pytest.fixture
def repository(track_store) -> TrackRepository:
    """Repository pre-loaded with five tracks t1..t5 (store and mirror agree)."""
    tracks = [make_track(f"t{i}", days=i) for i in range(1, 6)]
    track_store._records = {track.id: track for track in tracks}
    repo = TrackRepository(track_store)
    repo.replace_all(tracks)
    return repo


@pytest.fixture
def audio() -> FakeAudioBackend:
    return FakeAudioBackend()


@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier()


@pytest.fixture
def playlists(preference_store, notifier) -> PlaylistIndex:
    return PlaylistIndex(preference_store, notifier)


@pytest.fixture
def session(repository, audio, playlists, notifier) -> PlaybackSession:
    return PlaybackSession(
        repository, audio, playlists, notifier, rng=random.Random(1234)
    )
