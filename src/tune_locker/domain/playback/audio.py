"""
Audio backend interface.

The session treats audio decode/output as an opaque capability: bind a source,
start, pause, seek, report position and duration, and tell a listener when
metadata is ready or the track ended.
"""

from typing import Optional, Protocol


class AudioListener(Protocol):
    """Receives backend events. Callbacks run on the event loop thread."""

    def on_metadata_ready(self) -> None: ...

    def on_ended(self) -> None: ...


class AudioBackend(Protocol):
    """Opaque audio output. Exactly one source is bound at a time."""

    def set_listener(self, listener: Optional[AudioListener]) -> None: ...

    def bind_source(self, payload: bytes, mime_type: str) -> None:
        """Bind a new source, releasing the previous one. Playback is paused."""
        ...

    async def play(self) -> None:
        """Start or resume output.

        Raises:
            PlaybackError: If output cannot start (decode error, refused)
        """
        ...

    def pause(self) -> None: ...

    def seek(self, seconds: float) -> None: ...

    def set_volume(self, volume: float) -> None: ...

    def release(self) -> None:
        """Release the bound source, if any."""
        ...

    @property
    def current_time(self) -> float: ...

    @property
    def duration(self) -> Optional[float]:
        """Track length in seconds, None until metadata is ready."""
        ...
