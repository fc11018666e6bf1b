"""Playlists domain - named, ordered track lists."""

from .crud import Playlist, PlaylistIndex

__all__ = ["Playlist", "PlaylistIndex"]
