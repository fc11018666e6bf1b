"""
Music library domain models.

Contains data structures for representing stored tracks.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class NewTrack:
    """Metadata and payload for a track that has not been stored yet.

    Produced by ingestion. The repository turns it into a Track by assigning
    an id and the date added.
    """

    name: str
    artist: str
    album: str
    genre: Optional[str]
    duration_seconds: float
    audio_payload: bytes = field(repr=False)
    mime_type: str = "audio/mpeg"


@dataclass(frozen=True)
class Track:
    """Represents a stored track.

    Instances are immutable. The TrackRepository is the only owner and replaces
    a record wholesale when play statistics change; everything else holds ids.
    """

    id: str
    name: str
    artist: str
    album: str
    genre: Optional[str]  # None means "no genre"; matches every genre in recommendations
    duration_seconds: float
    audio_payload: bytes = field(repr=False)
    mime_type: str
    date_added: datetime
    play_count: int = 0
    last_played: Optional[datetime] = None
