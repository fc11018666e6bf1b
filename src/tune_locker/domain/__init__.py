"""Business logic: library, playlists and playback."""
