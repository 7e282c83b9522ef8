import datetime as dt
import logging
from typing import Optional

from core import Highlight, InvalidStateError, QueueItem, Rating
from scheduler import Scheduler, default_scheduler, select_due
from storage import HighlightRepository

logger = logging.getLogger(__name__)


class ReviewService:
    """Review submission and the due queue."""

    def __init__(self, highlights: HighlightRepository, scheduler: Scheduler = default_scheduler):
        self.highlights = highlights
        self.scheduler = scheduler

    def submit_review(self, highlight_id: int, rating, now: dt.datetime) -> Optional[Highlight]:
        """Grade one highlight and persist its new state.

        Returns None when the highlight does not exist. A corrupt stored state
        is logged and the InvalidStateError propagates; the data is left as is.
        """
        rating = Rating.parse(rating)
        highlight = self.highlights.get(highlight_id)
        if highlight is None:
            return None
        try:
            state = self.scheduler.compute_next_review(highlight.review, rating, now)
        except InvalidStateError as exc:
            logger.error("Refusing review of highlight %s: %s", highlight_id, exc)
            raise
        updated = self.highlights.save_review_state(highlight, state)
        logger.info("Highlight %s rated %s, next review %s (interval %d days)",
                    highlight_id, rating.value, state.next_review_at.date(), state.interval_days)
        return updated

    def queue(self, user_id: str, now: dt.datetime, limit: Optional[int] = None) -> list[QueueItem]:
        return select_due(self.highlights.list_by_user(user_id), now, limit)
