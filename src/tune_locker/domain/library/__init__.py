"""Library domain - tracks, ingestion, search and recommendations.

This domain handles:
- Track data models
- The in-memory track repository
- Metadata extraction from audio files
- Search, recommendations and favorites
"""

from .favorites import FavoritesIndex
from .ingest import ingest_files, read_new_track
from .models import NewTrack, Track
from .queries import recommend, search, top_genre
from .repository import TrackRepository

__all__ = [
    "FavoritesIndex",
    "NewTrack",
    "Track",
    "TrackRepository",
    "ingest_files",
    "read_new_track",
    "recommend",
    "search",
    "top_genre",
]
