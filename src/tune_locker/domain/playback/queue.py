"""
Play queue: the ordered sequence of track ids being played through and the
current position within it.
"""

import random
from typing import Optional, Sequence

FORWARD = "forward"
BACKWARD = "backward"

NO_POSITION = -1


class PlayQueue:
    """Ordered track ids plus a current position.

    The position is always NO_POSITION (-1) or a valid index. The queue is
    replaced wholesale when the playback context changes, never edited in
    place. Ids may repeat. Whether an id still exists in the library is
    checked by the caller when it is resolved.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._ids: list[str] = []
        self._position = NO_POSITION
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def ids(self) -> list[str]:
        return list(self._ids)

    @property
    def position(self) -> int:
        return self._position

    def set_queue(self, ids: Sequence[str], start_id: Optional[str] = None) -> None:
        """Replace the sequence and start at ``start_id``.

        The position becomes the first index of ``start_id``, or 0 when it is
        not in the new sequence. An empty sequence leaves no position.
        """
        self._ids = list(ids)
        if not self._ids:
            self._position = NO_POSITION
            return
        try:
            self._position = self._ids.index(start_id)
        except ValueError:
            self._position = 0

    def load(self, ids: Sequence[str]) -> None:
        """Replace the sequence without choosing a current track.

        The next forward advance starts from index 0.
        """
        self._ids = list(ids)
        self._position = NO_POSITION

    def clear(self) -> None:
        self.load([])

    def current_id(self) -> Optional[str]:
        if self._position == NO_POSITION:
            return None
        return self._ids[self._position]

    def advance(self, direction: str = FORWARD, shuffled: bool = False) -> Optional[str]:
        """Move the position and return the id there.

        Shuffled: a uniformly random index, whatever the direction (it may
        be the current one again). Otherwise forward wraps from the end to
        the start and backward wraps from the start (or no position) to the
        end. An empty queue is left alone and None is returned.
        """
        if direction not in (FORWARD, BACKWARD):
            raise ValueError(f"Invalid direction: {direction}")
        if not self._ids:
            return None

        length = len(self._ids)
        if shuffled:
            self._position = self._rng.randrange(length)
        elif direction == FORWARD:
            self._position = (self._position + 1) % length
        else:
            self._position = length - 1 if self._position <= 0 else self._position - 1
        return self._ids[self._position]

    def jump_to(self, index: int) -> str:
        """Make ``index`` the current position and return its id.

        Raises:
            IndexError: If ``index`` is outside the queue
        """
        if not 0 <= index < len(self._ids):
            raise IndexError(f"Queue index {index} out of range (length {len(self._ids)})")
        self._position = index
        return self._ids[index]
