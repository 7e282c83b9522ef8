import datetime as dt
import logging
from typing import Optional

from core import DigestPreview
from storage import DigestRepository, HighlightRepository

logger = logging.getLogger(__name__)

MAX_RECENTLY_ADDED = 5


class DigestService:
    """Schedules digests that bundle the highlights due by delivery time."""

    def __init__(self, highlights: HighlightRepository, digests: DigestRepository):
        self.highlights = highlights
        self.digests = digests

    def schedule(self, user_id: str, scheduled_for: dt.datetime) -> DigestPreview:
        highlights = self.highlights.list_by_user(user_id)
        due = [h for h in highlights
               if h.review.next_review_at is None or h.review.next_review_at <= scheduled_for]
        recently_added = max(0, min(MAX_RECENTLY_ADDED, len(highlights) - len(due)))
        digest = self.digests.schedule(user_id, scheduled_for, len(due), recently_added)
        logger.info("Digest %s scheduled for %s with %d due highlights",
                    digest.id, scheduled_for.isoformat(), len(due))
        return digest

    def latest(self, user_id: str) -> Optional[DigestPreview]:
        return self.digests.latest_for_user(user_id)
