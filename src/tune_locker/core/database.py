"""
Durable track storage for Tune Locker.

Track stores hold the binary payload and metadata of every ingested track.
The SQLite store does its blocking work in a worker thread so callers on the
event loop are never blocked.
"""

import asyncio
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from loguru import logger

from tune_locker.core.exceptions import PersistenceError
from tune_locker.domain.library.models import Track

# Database schema version for migrations
SCHEMA_VERSION = 1


class TrackStore(Protocol):
    """Durable home of track records."""

    async def put(self, track: Track) -> str: ...

    async def update(self, track: Track) -> None: ...

    async def get_all(self) -> list[Track]: ...


class MemoryTrackStore:
    """Track store kept in process memory (no durability)."""

    def __init__(self) -> None:
        self._records: dict[str, Track] = {}

    async def put(self, track: Track) -> str:
        if track.id in self._records:
            raise PersistenceError(f"Track {track.id} already stored")
        self._records[track.id] = track
        return track.id

    async def update(self, track: Track) -> None:
        if track.id not in self._records:
            raise PersistenceError(f"Track {track.id} is not stored")
        self._records[track.id] = track

    async def get_all(self) -> list[Track]:
        return list(self._records.values())


class SqliteTrackStore:
    """Track store backed by a single SQLite file."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._initialized = False

    @contextmanager
    def _connection(self):
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        if self._initialized:
            return
        conn.execute("""
            CREATE TABLE IF NOT EXISTS tracks (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT UNIQUE NOT NULL,
                name TEXT NOT NULL,
                artist TEXT NOT NULL,
                album TEXT NOT NULL,
                genre TEXT,
                duration_seconds REAL NOT NULL DEFAULT 0,
                audio_payload BLOB NOT NULL,
                mime_type TEXT NOT NULL,
                date_added TEXT NOT NULL,
                play_count INTEGER NOT NULL DEFAULT 0,
                last_played TEXT
            )
        """)
        conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        conn.commit()
        self._initialized = True

    def _put_sync(self, track: Track) -> str:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connection() as conn:
            self._init_schema(conn)
            conn.execute(
                """
                INSERT INTO tracks (
                    id, name, artist, album, genre, duration_seconds,
                    audio_payload, mime_type, date_added, play_count, last_played
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    track.id,
                    track.name,
                    track.artist,
                    track.album,
                    track.genre,
                    track.duration_seconds,
                    track.audio_payload,
                    track.mime_type,
                    track.date_added.isoformat(),
                    track.play_count,
                    _format_timestamp(track.last_played),
                ),
            )
            conn.commit()
        return track.id

    def _update_sync(self, track: Track) -> None:
        with self._connection() as conn:
            self._init_schema(conn)
            cursor = conn.execute(
                """
                UPDATE tracks
                SET play_count = ?, last_played = ?
                WHERE id = ?
                """,
                (track.play_count, _format_timestamp(track.last_played), track.id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise PersistenceError(f"Track {track.id} is not stored")

    def _get_all_sync(self) -> list[Track]:
        if not self.db_path.exists():
            return []
        with self._connection() as conn:
            self._init_schema(conn)
            rows = conn.execute("SELECT * FROM tracks ORDER BY seq").fetchall()
        return [_row_to_track(row) for row in rows]

    async def put(self, track: Track) -> str:
        try:
            return await asyncio.to_thread(self._put_sync, track)
        except sqlite3.Error as e:
            logger.error(f"Failed to store track {track.id}: {e}")
            raise PersistenceError(f"Failed to store track {track.id}: {e}") from e

    async def update(self, track: Track) -> None:
        try:
            await asyncio.to_thread(self._update_sync, track)
        except sqlite3.Error as e:
            logger.error(f"Failed to update track {track.id}: {e}")
            raise PersistenceError(f"Failed to update track {track.id}: {e}") from e

    async def get_all(self) -> list[Track]:
        try:
            return await asyncio.to_thread(self._get_all_sync)
        except sqlite3.Error as e:
            logger.error(f"Failed to read tracks from {self.db_path}: {e}")
            raise PersistenceError(f"Failed to read tracks: {e}") from e


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _row_to_track(row: sqlite3.Row) -> Track:
    return Track(
        id=row["id"],
        name=row["name"],
        artist=row["artist"],
        album=row["album"],
        genre=row["genre"],
        duration_seconds=row["duration_seconds"],
        audio_payload=bytes(row["audio_payload"]),
        mime_type=row["mime_type"],
        date_added=datetime.fromisoformat(row["date_added"]),
        play_count=row["play_count"],
        last_played=(
            datetime.fromisoformat(row["last_played"]) if row["last_played"] else None
        ),
    )
