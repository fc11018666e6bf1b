"""Playback domain - queue, history and the session state machine.

This domain handles:
- The play queue and its ordering rules
- Play history (distinct, bounded)
- The playback session (idle / loaded / playing)
- MPV integration via JSON IPC
"""

from .audio import AudioBackend, AudioListener
from .history import MAX_HISTORY, PlayHistory
from .queue import BACKWARD, FORWARD, NO_POSITION, PlayQueue
from .session import (
    REPEAT_ALL,
    REPEAT_OFF,
    REPEAT_ONE,
    STATE_IDLE,
    STATE_LOADED,
    STATE_PLAYING,
    PlaybackSession,
    SessionSnapshot,
    format_time,
)

__all__ = [
    "AudioBackend",
    "AudioListener",
    "BACKWARD",
    "FORWARD",
    "MAX_HISTORY",
    "NO_POSITION",
    "PlayHistory",
    "PlayQueue",
    "PlaybackSession",
    "REPEAT_ALL",
    "REPEAT_OFF",
    "REPEAT_ONE",
    "STATE_IDLE",
    "STATE_LOADED",
    "STATE_PLAYING",
    "SessionSnapshot",
    "format_time",
]
