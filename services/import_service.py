import datetime as dt
import logging
from dataclasses import dataclass

from core import Highlight, ImportJob
from scheduler import Scheduler, default_scheduler, initial_review_state
from storage import HighlightRepository, ImportJobRepository

from .validation import EntryPayload, ImportPayload

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    job: ImportJob
    highlights: list[Highlight]


def draft_highlight(user_id: str, source: str, entry: EntryPayload, now: dt.datetime,
                    scheduler: Scheduler = default_scheduler) -> Highlight:
    """Build an unsaved highlight with its bootstrapped review state."""
    return Highlight(
        user_id=user_id,
        source=source,
        source_title=entry.source_title,
        author=entry.author,
        text=entry.text,
        location=entry.location,
        captured_at=entry.captured_at,
        tags=entry.tags,
        review=initial_review_state(entry.captured_at, now, scheduler),
    )


class ImportService:
    """Turns validated import payloads into scheduled highlights, tracked by an import job."""

    def __init__(self, highlights: HighlightRepository, jobs: ImportJobRepository,
                 scheduler: Scheduler = default_scheduler):
        self.highlights = highlights
        self.jobs = jobs
        self.scheduler = scheduler

    def process_import(self, user_id: str, payload: ImportPayload, now: dt.datetime) -> ImportResult:
        job = self.jobs.create(user_id, payload.source, now)
        logger.info("Import job %s started: %d %s entries for %s",
                    job.id, len(payload.entries), payload.source, user_id)
        try:
            drafts = [draft_highlight(user_id, payload.source, entry, now, self.scheduler)
                      for entry in payload.entries]
            created = self.highlights.create_many(drafts)
        except Exception as exc:
            logger.warning("Import job %s failed: %s", job.id, exc)
            self.jobs.update_status(job.id, "failed", now, str(exc))
            raise

        job = self.jobs.update_status(job.id, "completed", now) or job
        logger.info("Import job %s completed with %d highlights", job.id, len(created))
        return ImportResult(job=job, highlights=created)
