"""Tune Locker - a personal media library with a playback session engine."""

__version__ = "0.1.0"
