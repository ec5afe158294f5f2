"""Error types raised inside the loaders.

Public loading functions catch these, log them and degrade to empty or
partial results, so callers normally only see them in log output.
"""

from typing import Optional


class TourMapperError(Exception):
    """Base class for tourmapper errors."""


class MalformedRecordError(TourMapperError, ValueError):
    """A single POI, route or track point failed validation."""

    def __init__(self, reason: str, field: Optional[str] = None):
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field else reason
        super().__init__(message)


class ResourceNotFoundError(TourMapperError, FileNotFoundError):
    """A data file, track file or tile asset does not exist."""


class DecodeFailureError(TourMapperError, ValueError):
    """A whole document could not be decoded."""
