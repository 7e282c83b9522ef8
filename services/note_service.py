import datetime as dt
import logging

from core import Highlight
from scheduler import Scheduler, default_scheduler
from storage import HighlightRepository

from .import_service import draft_highlight
from .validation import EntryPayload, NotePayload

logger = logging.getLogger(__name__)


class NoteService:
    """Manual notes are highlights captured at the moment they are written."""

    def __init__(self, highlights: HighlightRepository, scheduler: Scheduler = default_scheduler):
        self.highlights = highlights
        self.scheduler = scheduler

    def create_note(self, user_id: str, payload: NotePayload, now: dt.datetime) -> Highlight:
        entry = EntryPayload(
            text=payload.text,
            source_title=payload.source_title,
            captured_at=now,
            author=payload.author,
            tags=payload.tags,
        )
        [highlight] = self.highlights.create_many(
            [draft_highlight(user_id, "manual", entry, now, self.scheduler)]
        )
        logger.debug("Created manual note %s for %s", highlight.id, user_id)
        return highlight
