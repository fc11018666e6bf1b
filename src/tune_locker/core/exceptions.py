"""Error taxonomy for Tune Locker.

None of these are fatal to the process. Callers catch them, keep the last
good state and report.
"""


class TuneLockerError(Exception):
    """Base exception for Tune Locker operations."""

    pass


class IngestionError(TuneLockerError):
    """Raised when a file cannot be ingested (unsupported or unreadable payload)."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot ingest {path}: {reason}")


class PersistenceError(TuneLockerError):
    """Raised when a durable-store read or write fails."""

    pass


class PlaybackError(TuneLockerError):
    """Raised when the audio backend refuses to start or load a source."""

    pass


class NotFoundError(TuneLockerError):
    """Raised when an operation references an unknown identifier."""

    def __init__(self, kind: str, identifier: object):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"Unknown {kind}: {identifier}")
