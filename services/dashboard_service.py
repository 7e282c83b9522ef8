# Dashboard Service
"""
Aggregates review progress for the dashboard and the `stats` command.
"""
import datetime as dt
import math

from core import DashboardMetrics, DashboardSnapshot, Highlight
from storage import HighlightRepository, ImportJobRepository

from .digest_service import DigestService
from .review_service import ReviewService

RECENT_LIMIT = 5
REVIEWS_PER_STREAK_WEEK = 3


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def build_metrics(highlights: list[Highlight], now: dt.datetime) -> DashboardMetrics:
    """Compute metrics from a user's highlights as of `now`.

    Weekly reviews are counted per highlight, by last_reviewed_at.
    """
    total = len(highlights)
    week_ago = now - dt.timedelta(days=7)
    weekly = sum(
        1 for h in highlights
        if h.review.last_reviewed_at is not None and h.review.last_reviewed_at >= week_ago
    )
    retention = _round_half_up(sum(h.review.mastery_score for h in highlights) / max(1, total) * 100)
    due_now = sum(
        1 for h in highlights
        if h.review.next_review_at is None or h.review.next_review_at <= now
    )
    return DashboardMetrics(
        total_highlights=total,
        weekly_reviews_completed=weekly,
        retention_score=retention,
        streak_weeks=max(1, _round_half_up(weekly / REVIEWS_PER_STREAK_WEEK)),
        due_now=due_now,
    )


class DashboardService:
    """Service for the dashboard snapshot."""

    def __init__(self, highlights: HighlightRepository, jobs: ImportJobRepository,
                 reviews: ReviewService, digests: DigestService, digest_lead_days: int = 7):
        self.highlights = highlights
        self.jobs = jobs
        self.reviews = reviews
        self.digests = digests
        self.digest_lead_days = digest_lead_days

    def metrics(self, user_id: str, now: dt.datetime) -> DashboardMetrics:
        return build_metrics(self.highlights.list_by_user(user_id), now)

    def snapshot(self, user_id: str, now: dt.datetime) -> DashboardSnapshot:
        """Everything the dashboard shows.

        Schedules a digest `digest_lead_days` ahead when the user has none yet.
        """
        highlights = self.highlights.list_by_user(user_id)
        digest = self.digests.latest(user_id)
        if digest is None:
            digest = self.digests.schedule(user_id, now + dt.timedelta(days=self.digest_lead_days))
        recent = sorted(highlights, key=lambda h: h.captured_at or now, reverse=True)[:RECENT_LIMIT]
        return DashboardSnapshot(
            metrics=build_metrics(highlights, now),
            review_queue=self.reviews.queue(user_id, now),
            upcoming_digest=digest,
            recent_highlights=recent,
            import_jobs=self.jobs.list_by_user(user_id),
        )
