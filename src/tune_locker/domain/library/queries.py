"""
Library queries: substring search and genre-affinity recommendations.

Both are plain functions over a sequence of tracks. They are linear in the
library size, which is fine for a personal library.
"""

from typing import Optional, Sequence

from .models import Track

# Number of most recent history entries used to find the favourite genre
GENRE_WINDOW = 20

# Number of most recent history entries never recommended again
RECENT_EXCLUSION_WINDOW = 10


def search(query: Optional[str], library: Sequence[Track]) -> list[Track]:
    """Case-insensitive substring match on name, artist or album.

    An empty or whitespace-only query returns the whole library. Results keep
    library order.
    """
    if not query or not query.strip():
        return list(library)

    needle = query.strip().lower()
    return [
        track
        for track in library
        if needle in (track.name or "").lower()
        or needle in (track.artist or "").lower()
        or needle in (track.album or "").lower()
    ]


def top_genre(history: Sequence[str], library: Sequence[Track]) -> Optional[str]:
    """Most frequent genre over the most recent GENRE_WINDOW history entries.

    Ties go to the genre seen first (history is most-recent-first). History
    ids no longer in the library are skipped. Returns None when nothing in the
    window resolves to a track, or when tracks without a genre win.
    """
    by_id = {track.id: track for track in library}
    counts: dict[Optional[str], int] = {}  # insertion order == first seen
    for track_id in history[:GENRE_WINDOW]:
        track = by_id.get(track_id)
        if track is None:
            continue
        counts[track.genre] = counts.get(track.genre, 0) + 1

    best: Optional[str] = None
    best_count = 0
    for genre, count in counts.items():
        if count > best_count:
            best, best_count = genre, count
    return best


def recommend(history: Sequence[str], library: Sequence[Track], limit: int = 10) -> list[Track]:
    """
    Recommend up to ``limit`` tracks.

    With no history, the newest tracks by date added (ties keep library order).
    Otherwise tracks of the top genre (or with no genre) that were not among the
    RECENT_EXCLUSION_WINDOW most recent plays, in library order, padded with
    any other non-recent tracks when there are not enough.

    Args:
        history: Track ids, most recent first
        library: All tracks in library order
        limit: Maximum number of tracks to return

    Returns:
        List of distinct tracks, at most ``limit`` long
    """
    if limit <= 0:
        return []

    if not history:
        # sorted() is stable, and reverse=True keeps ties in original order
        newest = sorted(library, key=lambda track: track.date_added, reverse=True)
        return newest[:limit]

    genre = top_genre(history, library)
    recent_ids = set(history[:RECENT_EXCLUSION_WINDOW])

    recommendations = [
        track
        for track in library
        if (track.genre == genre or track.genre is None) and track.id not in recent_ids
    ][:limit]

    if len(recommendations) < limit:
        chosen = {track.id for track in recommendations}
        for track in library:
            if len(recommendations) >= limit:
                break
            if track.id in recent_ids or track.id in chosen:
                continue
            recommendations.append(track)
            chosen.add(track.id)

    return recommendations
