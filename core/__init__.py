# Domain layer
from .errors import (
    ConcurrentUpdateError,
    InvalidRatingError,
    InvalidStateError,
    ResurfaceError,
    ValidationError,
)
from .models import (
    JOB_STATUSES,
    SOURCES,
    DashboardMetrics,
    DashboardSnapshot,
    DigestPreview,
    Highlight,
    ImportJob,
    QueueItem,
    Rating,
    ReviewState,
)

__all__ = [
    "ConcurrentUpdateError",
    "InvalidRatingError",
    "InvalidStateError",
    "ResurfaceError",
    "ValidationError",
    "JOB_STATUSES",
    "SOURCES",
    "DashboardMetrics",
    "DashboardSnapshot",
    "DigestPreview",
    "Highlight",
    "ImportJob",
    "QueueItem",
    "Rating",
    "ReviewState",
]
