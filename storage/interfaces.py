"""Repository contracts the services are constructed with."""
import datetime as dt
from typing import Optional, Protocol

from core import DigestPreview, Highlight, ImportJob, ReviewState


class HighlightRepository(Protocol):

    def create_many(self, highlights: list[Highlight]) -> list[Highlight]:
        """Store new highlights and return them with ids assigned."""
        ...

    def get(self, highlight_id: int) -> Optional[Highlight]:
        ...

    def list_by_user(self, user_id: str) -> list[Highlight]:
        ...

    def save_review_state(self, highlight: Highlight, state: ReviewState) -> Highlight:
        """Replace the review state of `highlight`.

        Raises ConcurrentUpdateError if the stored version no longer matches
        highlight.version.
        """
        ...

    def delete(self, highlight_id: int) -> bool:
        ...


class ImportJobRepository(Protocol):

    def create(self, user_id: str, source: str, submitted_at: dt.datetime) -> ImportJob:
        ...

    def update_status(self, job_id: int, status: str, processed_at: Optional[dt.datetime] = None,
                      failure_reason: Optional[str] = None) -> Optional[ImportJob]:
        ...

    def list_by_user(self, user_id: str) -> list[ImportJob]:
        ...


class DigestRepository(Protocol):

    def schedule(self, user_id: str, scheduled_for: dt.datetime, highlight_count: int,
                 recently_added_count: int) -> DigestPreview:
        ...

    def latest_for_user(self, user_id: str) -> Optional[DigestPreview]:
        ...
