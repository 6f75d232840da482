"""Error types."""

from __future__ import annotations


class InvalidSegmentError(ValueError):
    """A segment whose start/end pair is malformed."""


class PersistenceError(RuntimeError):
    """Saving or loading an annotation failed."""


class NotFoundError(LookupError):
    """No persisted annotation exists for a conversation."""
