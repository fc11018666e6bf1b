"""
Playback session: the state machine behind "what is playing, what comes next".

States:
    idle     no current track
    loaded   a track is bound to the audio backend, not playing
    playing  the backend is producing output

Every state mutation happens synchronously before the first ``await`` of an
operation. A generation counter, bumped by each load, pause and close, lets
a play completion that resumes after a newer load, pause or close notice it
is stale and drop its effects.
"""

import asyncio
import math
import random
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from tune_locker.core.config import REPEAT_MODES
from tune_locker.core.exceptions import NotFoundError, PlaybackError
from tune_locker.domain.library.models import Track
from tune_locker.domain.library.repository import TrackRepository
from tune_locker.domain.playlists.crud import PlaylistIndex
from tune_locker.events import PLAY_STATE, QUEUE, SETTINGS, TRACK_CHANGED, ChangeNotifier

from .audio import AudioBackend
from .history import MAX_HISTORY, PlayHistory
from .queue import BACKWARD, FORWARD, PlayQueue

STATE_IDLE = "idle"
STATE_LOADED = "loaded"
STATE_PLAYING = "playing"

REPEAT_OFF, REPEAT_ALL, REPEAT_ONE = REPEAT_MODES


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session for renderers."""

    state: str
    current_track_id: Optional[str]
    is_playing: bool
    shuffled: bool
    repeat_mode: str
    volume: float
    queue: tuple[str, ...]
    queue_position: int
    current_time: float
    duration: Optional[float]
    history: tuple[str, ...]
    playlist_id: Optional[str]


def format_time(seconds: Optional[float]) -> str:
    """Format seconds as m:ss ("0:00" for unknown values)."""
    if seconds is None or math.isnan(seconds) or seconds < 0:
        return "0:00"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


class PlaybackSession:
    """The single live playback state machine of an application instance."""

    def __init__(
        self,
        repository: TrackRepository,
        audio: AudioBackend,
        playlists: Optional[PlaylistIndex] = None,
        notifier: Optional[ChangeNotifier] = None,
        *,
        volume: float = 0.7,
        shuffled: bool = False,
        repeat_mode: str = REPEAT_OFF,
        rng: Optional[random.Random] = None,
        history_limit: int = MAX_HISTORY,
    ) -> None:
        if repeat_mode not in REPEAT_MODES:
            raise ValueError(f"Invalid repeat mode: {repeat_mode}")

        self._repository = repository
        self._audio = audio
        self._playlists = playlists
        self._notifier = notifier or ChangeNotifier()

        self.queue = PlayQueue(rng)
        self.history = PlayHistory(history_limit)

        self.current_track_id: Optional[str] = None
        self.is_playing = False
        self.shuffled = shuffled
        self.repeat_mode = repeat_mode
        self.volume = 0.0
        self.playlist_id: Optional[str] = None

        self._duration: Optional[float] = None
        self._generation = 0
        self._tasks: set[asyncio.Task] = set()

        self._audio.set_listener(self)
        self.set_volume(volume)

    # Read-only accessors

    @property
    def state(self) -> str:
        if self.current_track_id is None:
            return STATE_IDLE
        return STATE_PLAYING if self.is_playing else STATE_LOADED

    @property
    def current_track(self) -> Optional[Track]:
        return self._repository.find_by_id(self.current_track_id)

    @property
    def current_time(self) -> float:
        if self.current_track_id is None:
            return 0.0
        return self._audio.current_time

    @property
    def duration(self) -> Optional[float]:
        return self._duration

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self.state,
            current_track_id=self.current_track_id,
            is_playing=self.is_playing,
            shuffled=self.shuffled,
            repeat_mode=self.repeat_mode,
            volume=self.volume,
            queue=tuple(self.queue.ids),
            queue_position=self.queue.position,
            current_time=self.current_time,
            duration=self._duration,
            history=tuple(self.history.ids()),
            playlist_id=self.playlist_id,
        )

    # Transitions

    async def load_track(self, track_id: str) -> Track:
        """Bind ``track_id`` to the audio backend (any state -> loaded).

        Records the play in history (distinct tracks only) and bumps the
        track's play count before the durable write is awaited.

        Raises:
            NotFoundError: If the track is not in the repository
            PlaybackError: If the backend cannot bind the source; the previous
                source is gone too, so the session becomes idle
        """
        track = self._begin_load(track_id)
        await self._repository.persist(track)
        return track

    def _begin_load(self, track_id: str) -> Track:
        track = self._repository.get(track_id)

        # bind_source releases the previously bound source, even when it fails
        try:
            self._audio.bind_source(track.audio_payload, track.mime_type)
        except PlaybackError:
            previous = self.current_track_id
            self._generation += 1
            self.current_track_id = None
            self.is_playing = False
            self._duration = None
            logger.warning(f"Could not bind {track.id}; session is idle")
            self._notifier.emit(PLAY_STATE, previous)
            raise

        self._generation += 1
        self.current_track_id = track.id
        self.is_playing = False
        self._duration = None

        self.history.record(track.id)
        track = self._repository.record_play(track.id)

        logger.debug(f"Loaded track {track.id} (play_count={track.play_count})")
        self._notifier.emit(TRACK_CHANGED, track.id)
        return track

    async def play(self) -> None:
        """Start output (loaded/playing -> playing).

        Does nothing when idle. A completion that arrives after a newer load
        or pause is ignored.

        Raises:
            PlaybackError: If the backend refuses to start; the session stays
                loaded
        """
        if self.current_track_id is None:
            logger.debug("play() ignored: no track loaded")
            return

        generation = self._generation
        track_id = self.current_track_id
        try:
            await self._audio.play()
        except PlaybackError:
            if generation != self._generation:
                logger.debug(f"Dropping stale play failure for {track_id}")
                return
            self.is_playing = False
            logger.warning(f"Playback of {track_id} failed to start")
            self._notifier.emit(PLAY_STATE, track_id)
            raise

        if generation != self._generation:
            logger.debug(f"Dropping stale play completion for {track_id}")
            return

        self.is_playing = True
        self._notifier.emit(PLAY_STATE, track_id)

    def pause(self) -> None:
        """Stop output, keeping the position (playing -> loaded)."""
        if self.current_track_id is None:
            return
        self._generation += 1
        self._audio.pause()
        self.is_playing = False
        self._notifier.emit(PLAY_STATE, self.current_track_id)

    async def toggle_play_pause(self) -> None:
        if self.is_playing:
            self.pause()
        else:
            await self.play()

    async def advance_to_next(self) -> Optional[str]:
        return await self._advance(FORWARD)

    async def advance_to_previous(self) -> Optional[str]:
        return await self._advance(BACKWARD)

    async def _advance(self, direction: str) -> Optional[str]:
        track_id = self.queue.advance(direction, self.shuffled)
        if track_id is None:
            return None
        if track_id not in self._repository:
            logger.warning(f"Queue entry {track_id} no longer in library, not advancing")
            return None
        self._notifier.emit(QUEUE)
        await self._load_and_play(track_id)
        return track_id

    async def _load_and_play(self, track_id: str) -> None:
        track = self._begin_load(track_id)
        generation = self._generation
        await self._repository.persist(track)
        if generation != self._generation:
            logger.debug(f"Load of {track_id} superseded before play")
            return
        await self.play()

    async def handle_track_ended(self) -> None:
        """Natural end of the current track (not user initiated)."""
        if self.current_track_id is None:
            return

        if self.repeat_mode == REPEAT_ONE:
            self._audio.seek(0.0)
            await self.play()
        elif self.repeat_mode == REPEAT_ALL or len(self.queue) > 0:
            await self.advance_to_next()
        else:
            self.pause()

    async def play_track(self, track_id: str) -> None:
        """Start an explicit track.

        The queue becomes the selected playlist's tracks when a non-empty
        playlist is selected, otherwise the whole library in repository order.
        The queue starts at the track's index (0 if it is not in the queue).

        Raises:
            NotFoundError: If the track is not in the repository
            PlaybackError: If the backend refuses to start
        """
        self._repository.get(track_id)

        playlist_ids = self._playlist_track_ids()
        ids = playlist_ids if playlist_ids else self._repository.ids()
        self.queue.set_queue(ids, track_id)
        self._notifier.emit(QUEUE)

        await self._load_and_play(track_id)

    async def play_queue_index(self, index: int) -> None:
        """Jump to a queue slot and play it.

        Raises:
            NotFoundError: If the index is outside the queue or its track is
                no longer in the library
        """
        try:
            track_id = self.queue.jump_to(index)
        except IndexError as e:
            raise NotFoundError("queue index", index) from e
        self._notifier.emit(QUEUE)
        await self._load_and_play(track_id)

    def select_playlist(self, playlist_id: str) -> None:
        """Make a playlist the playback context and queue its tracks.

        No track is chosen; the next forward advance starts at the first
        playlist track.

        Raises:
            NotFoundError: If the playlist does not exist
        """
        if self._playlists is None:
            raise NotFoundError("playlist", playlist_id)
        self._playlists.get(playlist_id)
        self.playlist_id = playlist_id
        self.queue.load(self._playlist_track_ids())
        self._notifier.emit(QUEUE)

    def clear_playlist(self) -> None:
        self.playlist_id = None

    def _playlist_track_ids(self) -> list[str]:
        if self.playlist_id is None or self._playlists is None:
            return []
        playlist = self._playlists.find(self.playlist_id)
        if playlist is None:
            logger.debug(f"Selected playlist {self.playlist_id} no longer exists")
            self.playlist_id = None
            return []
        return [track_id for track_id in playlist.tracks if track_id in self._repository]

    def seek(self, seconds: float) -> None:
        """Seek within the current track, clamped to [0, duration]."""
        if self.current_track_id is None:
            return
        seconds = max(0.0, seconds)
        if self._duration is not None:
            seconds = min(seconds, self._duration)
        self._audio.seek(seconds)

    def set_volume(self, volume: float) -> None:
        """Clamp to [0, 1] and apply immediately, whatever the state."""
        if math.isnan(volume):
            raise ValueError("Volume cannot be NaN")
        self.volume = min(1.0, max(0.0, float(volume)))
        self._audio.set_volume(self.volume)
        self._notifier.emit(SETTINGS)

    def toggle_shuffle(self) -> bool:
        self.shuffled = not self.shuffled
        self._notifier.emit(SETTINGS)
        return self.shuffled

    def cycle_repeat_mode(self) -> str:
        """off -> all -> one -> off"""
        index = REPEAT_MODES.index(self.repeat_mode)
        self.repeat_mode = REPEAT_MODES[(index + 1) % len(REPEAT_MODES)]
        self._notifier.emit(SETTINGS)
        return self.repeat_mode

    def close(self) -> None:
        """Release the audio source and cancel pending end-of-track handling."""
        for task in list(self._tasks):
            task.cancel()
        self._generation += 1
        self._audio.release()
        self.current_track_id = None
        self.is_playing = False

    # AudioListener

    def on_metadata_ready(self) -> None:
        self._duration = self._audio.duration
        self._notifier.emit(PLAY_STATE, self.current_track_id)

    def on_ended(self) -> None:
        self._spawn(self.handle_track_ended())

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.opt(exception=error).error(f"End-of-track handling failed: {error}")
