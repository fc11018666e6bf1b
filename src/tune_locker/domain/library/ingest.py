"""
Audio file ingestion.

Reads an audio file from disk, extracts metadata with Mutagen (falling back to
the "Artist - Title" filename convention) and hands the result to the
TrackRepository.
"""

import mimetypes
from pathlib import Path
from typing import Any, Iterable, Optional

from loguru import logger
from mutagen import File as MutagenFile
from mutagen import MutagenError

from tune_locker.core.exceptions import IngestionError, PersistenceError

from .models import NewTrack
from .repository import TrackRepository

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"
DEFAULT_GENRE = "General"

# mimetypes has no entry for these on some platforms
_EXTRA_AUDIO_TYPES = {
    ".opus": "audio/ogg",
    ".flac": "audio/flac",
    ".m4a": "audio/mp4",
}


def get_tag_value(audio_file: Any, tag_names: list[str]) -> Optional[str]:
    """Get tag value, trying multiple possible tag names."""
    for tag_name in tag_names:
        try:
            value = audio_file.get(tag_name)
            if value:
                if isinstance(value, list) and value:
                    return str(value[0])
                return str(value)
        except (KeyError, ValueError):
            # Some formats (like Vorbis) raise ValueError for non-existent keys
            continue
    return None


def guess_mime_type(path: Path) -> Optional[str]:
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or _EXTRA_AUDIO_TYPES.get(path.suffix.lower())


def metadata_from_filename(path: Path) -> dict[str, str]:
    """Provisional name/artist from an "Artist - Title.ext" filename."""
    stem = path.stem
    parts = stem.split(" - ", 1)
    if len(parts) == 2 and parts[0].strip() and parts[1].strip():
        return {"name": parts[1].strip(), "artist": parts[0].strip()}
    return {"name": stem, "artist": UNKNOWN_ARTIST}


def read_new_track(path: Path, supported_formats: Optional[list[str]] = None) -> NewTrack:
    """Build a NewTrack from a file on disk.

    Raises:
        IngestionError: The file is missing, not audio, or has an unsupported
            extension.
    """
    if not path.is_file():
        raise IngestionError(str(path), "file not found")

    mime_type = guess_mime_type(path)
    if not mime_type or not mime_type.startswith("audio/"):
        raise IngestionError(str(path), f"not an audio file ({mime_type or 'unknown type'})")

    if supported_formats and path.suffix.lower() not in supported_formats:
        raise IngestionError(str(path), f"unsupported format {path.suffix.lower()}")

    try:
        payload = path.read_bytes()
    except OSError as e:
        raise IngestionError(str(path), f"cannot read file: {e}") from e

    fallback = metadata_from_filename(path)
    name, artist, album, genre = fallback["name"], fallback["artist"], None, None
    duration = 0.0

    try:
        audio_file = MutagenFile(path)
    except (MutagenError, OSError) as e:
        logger.warning(f"Could not read tags from {path}: {e}")
        audio_file = None

    if audio_file is not None:
        # ID3 (MP3), MP4, and Vorbis/Opus tags (lowercase)
        name = get_tag_value(audio_file, ["TIT2", "\xa9nam", "TITLE", "title"]) or name
        artist = get_tag_value(audio_file, ["TPE1", "\xa9ART", "ARTIST", "artist"]) or artist
        album = get_tag_value(audio_file, ["TALB", "\xa9alb", "ALBUM", "album"])
        genre = get_tag_value(audio_file, ["TCON", "\xa9gen", "GENRE", "genre"])
        if getattr(audio_file, "info", None) is not None:
            duration = float(getattr(audio_file.info, "length", 0.0) or 0.0)

    return NewTrack(
        name=name,
        artist=artist,
        album=album or UNKNOWN_ALBUM,
        genre=genre or DEFAULT_GENRE,
        duration_seconds=duration,
        audio_payload=payload,
        mime_type=mime_type,
    )


async def ingest_files(
    paths: Iterable[Path],
    repository: TrackRepository,
    supported_formats: Optional[list[str]] = None,
) -> tuple[list[str], list[Exception]]:
    """Ingest each file, skipping and reporting the ones that fail.

    Returns:
        Tuple of (ids of added tracks, per-file IngestionError/PersistenceError)
    """
    added: list[str] = []
    failures: list[Exception] = []

    for path in paths:
        try:
            new_track = read_new_track(Path(path), supported_formats)
            track_id = await repository.add(new_track)
        except (IngestionError, PersistenceError) as e:
            logger.warning(f"Skipping {path}: {e}")
            failures.append(e)
            continue
        added.append(track_id)
        logger.info(f"Imported {path} as {track_id}")

    return added, failures
