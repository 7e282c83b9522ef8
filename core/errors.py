# Domain errors
"""
Error taxonomy shared by the scheduler, repositories and services.

All errors are permanent: they describe bad input or corrupted data, never a
transient condition worth retrying.
"""


class ResurfaceError(Exception):
    """Base class for all application errors."""


class InvalidRatingError(ResurfaceError, ValueError):
    """Raised when a rating is not one of again/hard/good/easy."""

    def __init__(self, rating):
        self.rating = rating
        super().__init__(f"Invalid rating: {rating!r}. Expected one of again, hard, good, easy.")


class InvalidStateError(ResurfaceError):
    """Raised when a persisted review state breaks its invariants."""


class ValidationError(ResurfaceError, ValueError):
    """Raised when a caller payload is missing or malformed."""


class ConcurrentUpdateError(ResurfaceError):
    """Raised when a highlight was changed by someone else since it was read."""

    def __init__(self, highlight_id: int):
        self.highlight_id = highlight_id
        super().__init__(f"Highlight {highlight_id} was modified concurrently")
