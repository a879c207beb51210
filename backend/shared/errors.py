"""Domain errors raised by the display queue services.

Routers translate these into HTTP responses; everything else is treated as an
unexpected failure and logged.
"""

from __future__ import annotations


class DisplayQueueError(Exception):
    """Base class for expected, client-visible failures."""


class NotFoundError(DisplayQueueError, LookupError):
    """A mutation or lookup referenced an id that does not exist (or no longer does)."""


class ValidationError(DisplayQueueError, ValueError):
    """A submission or config update is missing fields or has out-of-range values."""


class InvalidTransitionError(DisplayQueueError, ValueError):
    """The requested status change is not allowed from the record's current status."""


class MediaIOError(DisplayQueueError, OSError):
    """A media file could not be written."""
