# Domain models
import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import InvalidRatingError

SOURCES = ("kindle", "manual", "integration")
JOB_STATUSES = ("pending", "processing", "completed", "failed")


class Rating(str, Enum):
    """User feedback on a single review attempt, ordered again < hard < good < easy."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @property
    def rank(self) -> int:
        return list(Rating).index(self)

    @classmethod
    def parse(cls, value) -> "Rating":
        """Coerce a Rating or its string name; anything else is an InvalidRatingError."""
        if isinstance(value, Rating):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidRatingError(value)


@dataclass(frozen=True)
class ReviewState:
    """Learning progress of one highlight.

    ease_factor and interval_days drive scheduling. mastery_score is a
    derived value for display and never feeds back into the interval.
    """
    ease_factor: float = 2.5
    interval_days: int = 1
    mastery_score: float = 0.0
    review_count: int = 0
    last_reviewed_at: Optional[dt.datetime] = None
    next_review_at: Optional[dt.datetime] = None


@dataclass(frozen=True)
class Highlight:
    """A captured passage together with its review state."""
    id: Optional[int] = None
    user_id: str = ""
    source: str = "manual"
    source_title: str = ""
    author: str = ""
    text: str = ""
    location: str = ""
    captured_at: Optional[dt.datetime] = None
    tags: tuple[str, ...] = ()
    review: ReviewState = field(default_factory=ReviewState)
    version: int = 0


@dataclass(frozen=True)
class QueueItem:
    highlight_id: int
    text: str
    source_title: str
    due_at: dt.datetime
    mastery_score: float
    recommended_action: str


@dataclass(frozen=True)
class ImportJob:
    id: int
    user_id: str
    source: str
    status: str = "processing"
    submitted_at: Optional[dt.datetime] = None
    processed_at: Optional[dt.datetime] = None
    failure_reason: Optional[str] = None


@dataclass(frozen=True)
class DigestPreview:
    id: int
    user_id: str
    scheduled_for: dt.datetime
    highlight_count: int = 0
    recently_added_count: int = 0

    @property
    def actions(self) -> list[dict[str, str]]:
        return [
            {"label": "View Digest", "href": f"/digests/{self.id}"},
            {"label": "Reschedule", "href": f"/digests/{self.id}/schedule"},
        ]


@dataclass(frozen=True)
class DashboardMetrics:
    """Review progress for one user.

    weekly_reviews_completed counts highlights whose latest review falls in
    the past seven days. Only the latest review of each highlight is kept, so
    two reviews of the same highlight count once.
    """
    total_highlights: int = 0
    weekly_reviews_completed: int = 0
    retention_score: int = 0
    streak_weeks: int = 1
    due_now: int = 0


@dataclass
class DashboardSnapshot:
    metrics: DashboardMetrics
    review_queue: list[QueueItem]
    upcoming_digest: DigestPreview
    recent_highlights: list[Highlight]
    import_jobs: list[ImportJob]
