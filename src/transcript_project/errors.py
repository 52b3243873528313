"""Exceptions raised by transcript_project."""


class TranscriptProjectError(Exception):
    pass


class MissingCacheNamespaceError(TranscriptProjectError):
    """A component asked for a cache namespace that was never registered."""

    def __init__(self, namespace: str):
        super().__init__(
            f"Cache namespace {namespace!r} is not registered. "
            "Register it on the CacheContext before constructing its consumers."
        )
        self.namespace = namespace


class CacheCorruptionError(TranscriptProjectError):
    """A persisted cache file could not be read or has the wrong shape."""


class TranscriptReadError(TranscriptProjectError, OSError):
    """A transcript source exists but its contents cannot be extracted."""
