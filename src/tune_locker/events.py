"""State-change notifications for renderers.

The engine never pushes renders. After a mutation it emits a change kind and,
where one applies, the affected track id; subscribers re-query the engine by
that id.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

TRACK_CHANGED = "track-changed"
PLAY_STATE = "play-state"
FAVORITE = "favorite"
QUEUE = "queue"
PLAYLISTS = "playlists"
LIBRARY = "library"
SETTINGS = "settings"


@dataclass(frozen=True)
class ChangeEvent:
    kind: str
    track_id: Optional[str] = None


Subscriber = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """Fan-out of ChangeEvents to subscribers, in subscription order."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, kind: str, track_id: Optional[str] = None) -> None:
        event = ChangeEvent(kind=kind, track_id=track_id)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                # Subscriber errors never propagate to the emitting operation
                logger.exception(f"Subscriber failed handling {event}")
